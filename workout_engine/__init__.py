from .set_validator import SetValidator
from .session_mode import SessionMode, SessionState, resolve_mode, resume_position, session_state
from .progress_calculator import ProgressCalculator, PerformanceComparison
from .history_matcher import HistoryMatcher, PrefillRow
from .day_labels import format_day
from .weight_converter import WeightConverter

__all__ = [
    "SetValidator",
    "SessionMode",
    "SessionState",
    "resolve_mode",
    "resume_position",
    "session_state",
    "ProgressCalculator",
    "PerformanceComparison",
    "HistoryMatcher",
    "PrefillRow",
    "format_day",
    "WeightConverter",
]
