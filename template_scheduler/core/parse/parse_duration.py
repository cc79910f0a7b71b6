from __future__ import annotations

import re
from typing import Any, Optional, cast

from template_scheduler.core.errors import DurationParseError
from template_scheduler.core.model import Duration, DurationUnit


# Relative offset grammar, tried in this order:
# - keywords: "same day"/"today" -> 0, "next day"/"tomorrow" -> 1
# - "<int> <unit>" with an optional trailing "later"
# - a bare integer, read as days
# Signed integers are recognized here; the validator rejects negatives.

KEYWORDS: dict[str, Duration] = {
    "same day": Duration(days=0, amount=0),
    "today": Duration(days=0, amount=0),
    "next day": Duration(days=1, amount=1),
    "tomorrow": Duration(days=1, amount=1),
}

UNIT_DAYS: dict[str, int] = {
    "day": 1,
    "week": 7,
    # Fixed 30-day month; no calendar-month arithmetic.
    "month": 30,
    "year": 365,
}

_UNIT_RE = re.compile(r"^(-?[0-9]+) (day|week|month|year)s?(?: later)?$")
_BARE_INT_RE = re.compile(r"^-?[0-9]+$")

# Longer digit runs are clamped to 10**_MAX_DIGITS, which every bound rejects.
_MAX_DIGITS = 9

DATE_SUGGESTIONS: list[dict[str, Any]] = [
    {"label": "Same day", "value": "same day", "days": 0},
    {"label": "Next day", "value": "next day", "days": 1},
    {"label": "3 days", "value": "3 days", "days": 3},
    {"label": "1 week", "value": "1 week", "days": 7},
    {"label": "2 weeks", "value": "2 weeks", "days": 14},
    {"label": "3 weeks", "value": "3 weeks", "days": 21},
    {"label": "1 month", "value": "1 month", "days": 30},
    {"label": "2 months", "value": "2 months", "days": 60},
    {"label": "3 months", "value": "3 months", "days": 90},
    {"label": "6 months", "value": "6 months", "days": 180},
]


def normalize_offset_text(text: str) -> str:
    return " ".join(text.split()).lower()


def parse_duration(
    text: Optional[str], *, path: Optional[str] = None
) -> tuple[Optional[Duration], Optional[DurationParseError]]:
    """Parse a relative offset expression into a Duration.

    Returns (duration, error); exactly one of them is None.
    """

    if not isinstance(text, str) or not text.strip():
        return None, DurationParseError(
            code="E_DURATION_EMPTY",
            message="offset is empty",
            path=path,
        )

    normalized = normalize_offset_text(text)

    keyword = KEYWORDS.get(normalized)
    if keyword is not None:
        return keyword, None

    m = _UNIT_RE.match(normalized)
    if m:
        amount = _to_int(m.group(1))
        unit = cast(DurationUnit, m.group(2))
        return Duration(days=amount * UNIT_DAYS[unit], amount=amount, unit=unit), None

    if _BARE_INT_RE.match(normalized):
        amount = _to_int(normalized)
        return Duration(days=amount, amount=amount), None

    return None, DurationParseError(
        code="E_DURATION_UNRECOGNIZED",
        message=f"unrecognized offset: {text.strip()!r} (try 'same day', '3 days', '2 weeks', '1 month')",
        path=path,
    )


def _to_int(digits: str) -> int:
    sign = -1 if digits.startswith("-") else 1
    body = digits.lstrip("-").lstrip("0") or "0"
    if len(body) > _MAX_DIGITS:
        return sign * 10**_MAX_DIGITS
    return sign * int(body)


def format_duration(days: int) -> str:
    """Render a day count using the largest unit that divides it evenly."""
    if days == 0:
        return "Same day"
    if days == 1:
        return "Next day"
    if days >= 30 and days % 30 == 0:
        months = days // 30
        return f"{months} {'month' if months == 1 else 'months'}"
    if days >= 7 and days % 7 == 0:
        weeks = days // 7
        return f"{weeks} {'week' if weeks == 1 else 'weeks'}"
    return f"{days} {'day' if days == 1 else 'days'}"
