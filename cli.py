import argparse
import asyncio
import datetime
import logging
import shutil

from db import AsyncTrainingRepository, GoalRepository, MeasurementRepository, SettingsRepository
from models import Exercise, Goal, GoalType, Training
from stats_service import StatisticsService
from workout_engine import WeightConverter

logger = logging.getLogger(__name__)


def backup_db(db_path: str, backup_path: str) -> None:
    shutil.copy(db_path, backup_path)
    logger.info("backed up %s to %s", db_path, backup_path)


def restore_db(backup_path: str, db_path: str) -> None:
    shutil.copy(backup_path, db_path)
    logger.info("restored %s from %s", db_path, backup_path)


def demo_data(db_path: str, trainee_id: str = "demo") -> None:
    """Populate the database with a demo training and goal if empty."""
    trainings = AsyncTrainingRepository(db_path)
    if asyncio.run(trainings.get_for_trainee(trainee_id)):
        print("Database already contains trainings")
        return
    today = datetime.date.today()
    training = Training(
        id=f"{trainee_id}-upper-{today.isoformat()}",
        trainee_id=trainee_id,
        name="Upper body",
        scheduled_date=today,
        exercises=[
            Exercise("bench", "Bench Press", sets=3, reps=8, weight=60.0),
            Exercise("row", "Barbell Row", sets=3, reps=10, weight=50.0),
        ],
    )
    asyncio.run(trainings.upsert(training))
    GoalRepository(db_path).upsert(
        Goal(
            id=f"{trainee_id}-weight",
            trainee_id=trainee_id,
            goal_type=GoalType.WEIGHT,
            name="Reach 75 kg",
            current_value=78.0,
            target_value=75.0,
            unit="kg",
            deadline=today + datetime.timedelta(days=90),
        )
    )
    MeasurementRepository(db_path).upsert(trainee_id, 78.0, {"waist": 84.0}, today)
    print("Demo data inserted")


def weekly_report(db_path: str, yaml_path: str, trainee_id: str) -> None:
    settings = SettingsRepository(db_path, yaml_path)
    stats = StatisticsService(
        MeasurementRepository(db_path), GoalRepository(db_path), settings_repo=settings
    )
    report = stats.weekly_averages(trainee_id)
    print(f"Week starting {report['week_start']}")
    weight = report["weight"]
    if weight is None:
        print("Weight: no data")
    else:
        print(f"Weight: {weight['average']:.1f} {report['unit']} ({weight['count']} entries)")
    for key, avg in report["body"].items():
        print(f"{key.capitalize()}: {avg['average']:.1f} ({avg['count']} entries)")


def main() -> None:
    parser = argparse.ArgumentParser(description="Utility commands")
    parser.add_argument("--log-level", default=None)
    sub = parser.add_subparsers(dest="cmd", required=True)

    bkp = sub.add_parser("backup")
    bkp.add_argument("--db", default="trainee.db")
    bkp.add_argument("--out", default="backup.db")

    rst = sub.add_parser("restore")
    rst.add_argument("--in", dest="src", default="backup.db")
    rst.add_argument("--db", default="trainee.db")

    demo = sub.add_parser("demo")
    demo.add_argument("--db", default="trainee.db")
    demo.add_argument("--trainee", default="demo")

    mode = sub.add_parser("mode")
    mode.add_argument("value", nargs="?", choices=["normal", "bulk"])
    mode.add_argument("--db", default="trainee.db")
    mode.add_argument("--yaml", default="settings.yaml")

    weekly = sub.add_parser("weekly")
    weekly.add_argument("trainee")
    weekly.add_argument("--db", default="trainee.db")
    weekly.add_argument("--yaml", default="settings.yaml")

    conv = sub.add_parser("convert")
    conv.add_argument("--weight", type=float, required=True)
    conv.add_argument("--unit", choices=["kg", "lb"], required=True)

    args = parser.parse_args()
    logging.basicConfig(
        level=(args.log_level or "INFO").upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.cmd == "backup":
        backup_db(args.db, args.out)
    elif args.cmd == "restore":
        restore_db(args.src, args.db)
    elif args.cmd == "demo":
        demo_data(args.db, args.trainee)
    elif args.cmd == "mode":
        settings = SettingsRepository(args.db, args.yaml)
        if args.value:
            settings.set_workout_mode(args.value)
        print(settings.get_workout_mode())
    elif args.cmd == "weekly":
        weekly_report(args.db, args.yaml, args.trainee)
    elif args.cmd == "convert":
        if args.unit == "kg":
            print(f"{args.weight} kg = {WeightConverter.kg_to_lb(args.weight)} lb")
        else:
            print(f"{args.weight} lb = {WeightConverter.lb_to_kg(args.weight)} kg")


if __name__ == "__main__":
    main()
