import os
import sys
import datetime
import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from models import ActualSet, Exercise, Goal, GoalType, HistoryRecord, Measurement, Training
from workout_engine import ProgressCalculator, format_day


def measurement(day: datetime.date, weight: float, **body: float) -> Measurement:
    return Measurement("t", day, weight, dict(body))


def goal(current: float, target: float) -> Goal:
    return Goal(
        id="g",
        trainee_id="t",
        goal_type=GoalType.PERFORMANCE,
        name="Bench",
        current_value=current,
        target_value=target,
        unit="kg",
        deadline=datetime.date(2024, 6, 1),
    )


def test_empty_training_completion():
    training = Training("t1", "t", "Rest", datetime.date(2024, 1, 1))
    completion = ProgressCalculator.training_completion(training)
    assert completion.label == "0/0 sets"
    assert completion.percent_label == "0%"
    assert completion.ratio == 0.0


def test_training_completion():
    training = Training(
        "t1",
        "t",
        "Push",
        datetime.date(2024, 1, 1),
        exercises=[
            Exercise("a", "Bench", 3, 8, actual_sets=[ActualSet(8, 60.0)] * 3),
            Exercise("b", "Dips", 3, 10, actual_sets=[ActualSet(10, 0.0)]),
        ],
    )
    completion = ProgressCalculator.training_completion(training)
    assert completion.label == "4/6 sets"
    assert completion.percent_label == "67%"
    ex = ProgressCalculator.exercise_completion(training.exercises[1])
    assert ex.to_dict()["label"] == "1/3 sets"


def test_goal_percentage_clamped():
    assert ProgressCalculator.goal_percentage(goal(50, 100)) == 50.0
    assert ProgressCalculator.goal_percentage(goal(150, 100)) == 100.0
    assert ProgressCalculator.goal_percentage(goal(-5, 100)) == 0.0
    assert ProgressCalculator.goal_percentage(goal(10, 0)) == 0.0
    assert ProgressCalculator.goal_label(goal(33.4, 100)) == "33%"


def test_week_start_is_monday():
    assert ProgressCalculator.week_start(datetime.date(2024, 1, 3)) == datetime.date(2024, 1, 1)
    assert ProgressCalculator.week_start(datetime.date(2024, 1, 1)) == datetime.date(2024, 1, 1)
    assert ProgressCalculator.week_start(datetime.date(2024, 1, 7)) == datetime.date(2024, 1, 1)


def test_weekly_average_excludes_last_week():
    tuesday = datetime.date(2024, 1, 2)
    entries = [
        measurement(datetime.date(2023, 12, 31), 80.0),
        measurement(tuesday, 78.0),
    ]
    avg = ProgressCalculator.weekly_weight_average(entries, today=tuesday)
    assert avg.value == 78.0
    assert avg.count == 1


def test_weekly_average_no_data():
    today = datetime.date(2024, 1, 2)
    assert ProgressCalculator.weekly_weight_average([], today=today) is None
    old = [measurement(datetime.date(2023, 12, 20), 80.0)]
    assert ProgressCalculator.weekly_weight_average(old, today=today) is None


def test_weekly_body_averages_per_dimension():
    today = datetime.date(2024, 1, 4)
    entries = [
        measurement(datetime.date(2024, 1, 1), 80.0, waist=90.0),
        measurement(datetime.date(2024, 1, 2), 79.0, waist=88.0, arms=35.0),
        measurement(datetime.date(2024, 1, 3), 79.0),
    ]
    body = ProgressCalculator.weekly_body_averages(entries, today=today)
    assert body["waist"].value == 89.0
    assert body["waist"].count == 2
    assert body["arms"].value == 35.0
    assert "chest" not in body


def test_calorie_balance():
    under = ProgressCalculator.calorie_balance(2000, 1500)
    assert under.remaining == 500
    assert not under.is_over
    over = ProgressCalculator.calorie_balance(2000, 2300)
    assert over.remaining == -300
    assert over.is_over
    assert over.magnitude == 300


def test_deltas_sorted_by_date():
    entries = [
        measurement(datetime.date(2024, 1, 5), 78.5),
        measurement(datetime.date(2024, 1, 1), 80.0),
        measurement(datetime.date(2024, 1, 3), 79.0),
    ]
    paired = ProgressCalculator.deltas(entries, lambda m: m.weight, lambda m: m.date)
    assert [(m.date.day, d) for m, d in paired] == [(1, None), (3, -1.0), (5, -0.5)]


def history(*sets: ActualSet) -> HistoryRecord:
    return HistoryRecord(
        "t",
        "Bench",
        datetime.date(2024, 1, 1),
        "old",
        datetime.datetime(2024, 1, 1, 10, 0),
        list(sets),
    )


def test_compare_first_time():
    ex = Exercise("a", "Bench", 2, 8, actual_sets=[ActualSet(8, 60.0)])
    comparison = ProgressCalculator.compare(ex, None)
    assert comparison.description == "First time doing this exercise"
    assert not comparison.has_improved
    assert comparison.weight_progress_percentage == 0.0


def test_compare_improvement():
    ex = Exercise("a", "Bench", 2, 8, actual_sets=[ActualSet(9, 62.5), ActualSet(8, 62.5)])
    comparison = ProgressCalculator.compare(ex, history(ActualSet(8, 60.0), ActualSet(8, 60.0)))
    assert comparison.weight_progress == 2.5
    assert comparison.reps_progress == 1
    assert comparison.has_improved
    assert comparison.description == "2.5kg weight increase, 1 more reps"
    assert comparison.weight_progress_percentage == pytest.approx(4.1666, rel=1e-3)


def test_compare_maintained_and_decline():
    same = Exercise("a", "Bench", 1, 8, actual_sets=[ActualSet(8, 60.0)])
    assert ProgressCalculator.compare(same, history(ActualSet(8, 60.0))).description == (
        "Performance maintained"
    )
    worse = Exercise("a", "Bench", 1, 8, actual_sets=[ActualSet(6, 55.0)])
    assert ProgressCalculator.compare(worse, history(ActualSet(8, 60.0))).description == (
        "5.0kg weight decrease, 2 fewer reps"
    )


def test_report_summary():
    better = ProgressCalculator.compare(
        Exercise("a", "Bench", 1, 8, actual_sets=[ActualSet(8, 65.0)]),
        history(ActualSet(8, 60.0)),
    )
    same = ProgressCalculator.compare(
        Exercise("b", "Bench", 1, 8, actual_sets=[ActualSet(8, 60.0)]),
        history(ActualSet(8, 60.0)),
    )
    report = ProgressCalculator.report([better, same])
    assert report["summary"] == "Improvement in 1 out of 2 exercises"
    assert report["improvement_percentage"] == 50.0
    assert report["total_volume_increase"] == 40.0
    assert ProgressCalculator.report([better])["summary"] == "Improvement in all exercises!"
    assert ProgressCalculator.report([])["summary"] == (
        "Performance maintained across all exercises"
    )


def test_day_labels():
    today = datetime.date(2024, 3, 10)
    assert format_day(today, today) == "Today"
    assert format_day(datetime.date(2024, 3, 9), today) == "Yesterday"
    assert format_day(datetime.date(2024, 3, 8), today) == "2024-03-08"
    assert format_day("2024-03-09", today) == "Yesterday"
    assert format_day(datetime.datetime(2024, 3, 10, 23, 59), today) == "Today"
