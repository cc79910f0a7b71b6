from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional, Union

from template_scheduler.core.errors import ExpansionError, TemplateValidationError
from template_scheduler.core.expand.expand_schedule import expand_schedule
from template_scheduler.core.model import ExpandedSchedule
from template_scheduler.core.template.template_graph import TemplateGraph


AnchorInput = Union[date, datetime, str, None]
PreviewError = Union[ExpansionError, TemplateValidationError]


def preview_schedule(
    graph: TemplateGraph,
    candidate_anchor: AnchorInput,
) -> tuple[Optional[ExpandedSchedule], Optional[PreviewError]]:
    """Expand the graph for display while it is still being edited.

    Called on every keystroke or date-picker change, so it never raises and
    never writes anywhere: a missing anchor or a half-typed offset comes back
    as an error value meaning "not ready to preview yet".
    """

    anchor = coerce_anchor(candidate_anchor)
    if anchor is None:
        return None, TemplateValidationError(
            code="E_PREVIEW_INVALID_ANCHOR",
            message=f"start date must be a date or YYYY-MM-DD string, got {candidate_anchor!r}",
            path="start_date",
        )
    return expand_schedule(graph, anchor)


def coerce_anchor(value: AnchorInput) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        # A full ISO timestamp is accepted; anything else after the date is not.
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            return None
    return None


def preview_rows(graph: TemplateGraph, schedule: ExpandedSchedule) -> list[dict[str, Any]]:
    """Flatten a schedule into ordered rows: one per milestone, tasks nested."""
    rows: list[dict[str, Any]] = []
    for milestone in graph.milestones:
        dates = schedule.milestones.get(milestone.id)
        if dates is None:
            # Graph was edited after this schedule was produced.
            continue
        rows.append(
            {
                "id": milestone.id,
                "name": milestone.name,
                "start_date": dates.start_date.isoformat(),
                "due_date": dates.due_date.isoformat() if dates.due_date else None,
                "tasks": [
                    {
                        "id": t.id,
                        "title": t.title,
                        "due_date": _task_due(schedule, t.id),
                    }
                    for t in milestone.tasks
                    if t.id in schedule.tasks
                ],
            }
        )
    return rows


def _task_due(schedule: ExpandedSchedule, task_id: str) -> Optional[str]:
    d = schedule.tasks[task_id].due_date
    return d.isoformat() if d else None
