from __future__ import annotations
import math
from typing import Iterable, Optional

from errors import (
    EmptyFieldError,
    InvalidRepsError,
    InvalidWeightError,
    ValidationError,
)
from models import ActualSet


class SetValidator:
    """Parse and check reps/weight text entered for one set."""

    @staticmethod
    def validate(reps_text: str | None, weight_text: str | None) -> ActualSet:
        """Return the parsed set or raise a :class:`ValidationError`.

        Blank fields are reported before malformed ones, and reps are
        checked before weight.
        """
        reps_raw = (reps_text or "").strip()
        weight_raw = (weight_text or "").strip()
        if not reps_raw or not weight_raw:
            raise EmptyFieldError()
        try:
            reps = int(reps_raw)
        except ValueError:
            raise InvalidRepsError(f"invalid reps: {reps_raw!r}")
        if reps <= 0:
            raise InvalidRepsError("reps must be positive")
        try:
            weight = float(weight_raw)
        except ValueError:
            raise InvalidWeightError(f"invalid weight: {weight_raw!r}")
        if not math.isfinite(weight) or weight < 0:
            raise InvalidWeightError("weight must be non-negative")
        return ActualSet(reps, weight)

    @staticmethod
    def try_parse(reps_text: str | None, weight_text: str | None) -> Optional[ActualSet]:
        """Lenient variant: a half-filled or invalid row counts as not entered."""
        try:
            return SetValidator.validate(reps_text, weight_text)
        except ValidationError:
            return None

    @staticmethod
    def parse_rows(rows: Iterable[tuple[str | None, str | None]]) -> list[ActualSet]:
        """Keep the rows that parse, in order."""
        result: list[ActualSet] = []
        for reps_text, weight_text in rows:
            parsed = SetValidator.try_parse(reps_text, weight_text)
            if parsed is not None:
                result.append(parsed)
        return result

    @staticmethod
    def check(actual: ActualSet) -> None:
        """Re-validate an already stored set."""
        if isinstance(actual.reps, bool) or not isinstance(actual.reps, int):
            raise InvalidRepsError("reps must be an integer")
        if actual.reps <= 0:
            raise InvalidRepsError("reps must be positive")
        if not math.isfinite(actual.weight) or actual.weight < 0:
            raise InvalidWeightError("weight must be non-negative")
