from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Literal, Optional


DurationUnit = Literal["day", "week", "month", "year"]
TaskPriority = Literal["low", "medium", "high", "urgent"]


@dataclass(frozen=True)
class Duration:
    days: int
    amount: int
    unit: DurationUnit = "day"


@dataclass
class TaskNode:
    id: str
    title: str
    due_offset: Optional[str] = None
    priority: TaskPriority = "medium"
    estimated_hours: Optional[float] = None
    description: Optional[str] = None
    position: int = 0


@dataclass
class MilestoneNode:
    id: str
    name: str
    start_offset: str = "same day"
    due_offset: Optional[str] = None
    description: Optional[str] = None
    position: int = 0
    tasks: list[TaskNode] = field(default_factory=list)


@dataclass(frozen=True)
class MilestoneDates:
    start_date: date
    due_date: Optional[date]


@dataclass(frozen=True)
class TaskDates:
    milestone_id: str
    due_date: Optional[date]


@dataclass(frozen=True)
class ExpandedSchedule:
    anchor_date: date
    milestones: dict[str, MilestoneDates]
    tasks: dict[str, TaskDates]

    def to_dict(self) -> dict[str, Any]:
        return {
            "anchor_date": self.anchor_date.isoformat(),
            "milestones": {
                mid: {
                    "start_date": d.start_date.isoformat(),
                    "due_date": _iso_or_none(d.due_date),
                }
                for mid, d in self.milestones.items()
            },
            "tasks": {
                tid: {
                    "milestone_id": d.milestone_id,
                    "due_date": _iso_or_none(d.due_date),
                }
                for tid, d in self.tasks.items()
            },
        }


def _iso_or_none(d: Optional[date]) -> Optional[str]:
    return d.isoformat() if d is not None else None
