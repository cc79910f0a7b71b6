from __future__ import annotations

from typing import Optional, Union

from template_scheduler.core.errors import DurationParseError, DurationValidationError
from template_scheduler.core.model import Duration
from template_scheduler.core.parse.parse_duration import parse_duration


MAX_DURATION_DAYS = 3650  # 10 years

OffsetError = Union[DurationParseError, DurationValidationError]


def validate_duration(
    duration: Duration,
    *,
    max_days: int = MAX_DURATION_DAYS,
    path: Optional[str] = None,
) -> Optional[DurationValidationError]:
    """Return an error when the duration cannot be used as an offset, else None.

    Offsets never move a date backward from its anchor, so negatives are
    rejected. Zero ("same day") is valid.
    """

    if duration.days < 0:
        return DurationValidationError(
            code="E_DURATION_NEGATIVE",
            message=f"offset cannot be negative: {duration.days} days",
            path=path,
        )
    if duration.days > max_days:
        return DurationValidationError(
            code="E_DURATION_UNREALISTIC",
            message=f"offset of {duration.days} days exceeds the maximum of {max_days} days",
            path=path,
        )
    return None


def parse_and_validate(
    text: Optional[str],
    *,
    max_days: int = MAX_DURATION_DAYS,
    path: Optional[str] = None,
) -> tuple[Optional[Duration], Optional[OffsetError]]:
    duration, parse_error = parse_duration(text, path=path)
    if parse_error is not None or duration is None:
        return None, parse_error

    validation_error = validate_duration(duration, max_days=max_days, path=path)
    if validation_error is not None:
        return None, validation_error
    return duration, None
