from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ScheduleError(Exception):
    """Base error envelope. Prefer returning/printing these rather than raising raw exceptions."""

    code: str
    message: str
    file: Optional[str] = None
    path: Optional[str] = None

    def __str__(self) -> str:
        parts: list[str] = []
        if self.file:
            parts.append(self.file)
        if self.path:
            parts.append(self.path)
        loc = ":".join(parts) if parts else "<template>"
        return f"{loc}: {self.code}: {self.message}"


class DurationParseError(ScheduleError):
    pass


class DurationValidationError(ScheduleError):
    pass


@dataclass(frozen=True)
class ExpansionError(ScheduleError):
    """First offset that could not be resolved; no partial schedule accompanies it."""

    node_id: Optional[str] = None
    cause: Optional[ScheduleError] = None


class InvalidReorderError(ScheduleError):
    pass


class TemplateEditError(ScheduleError):
    pass


class TemplateLoadError(ScheduleError):
    pass


class TemplateValidationError(ScheduleError):
    pass
