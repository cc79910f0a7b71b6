from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Optional

import yaml

from template_scheduler.core.errors import ExpansionError
from template_scheduler.core.model import ExpandedSchedule, MilestoneDates, TaskDates
from template_scheduler.core.template.template_graph import TemplateGraph
from template_scheduler.core.validate.validate_duration import parse_and_validate


def expand_schedule(
    graph: TemplateGraph,
    anchor_date: date,
) -> tuple[Optional[ExpandedSchedule], Optional[ExpansionError]]:
    """Resolve every relative offset in the graph into an absolute date.

    Anchors are chained:
      - milestone start = anchor_date + start_offset
      - milestone due   = milestone start + due_offset
      - task due        = milestone start + task due_offset

    Dates use plain calendar-day addition (weekends are not skipped). A due
    offset of None means "no due date". Milestones are not required to resolve
    in chronological order.

    Expansion is all-or-nothing: the first offset that fails to parse or
    validate is returned as an ExpansionError and no schedule is produced.
    Returns (schedule, error); exactly one of them is None.
    """

    if isinstance(anchor_date, datetime):
        anchor_date = anchor_date.date()

    milestones: dict[str, MilestoneDates] = {}
    tasks: dict[str, TaskDates] = {}

    for mi, milestone in enumerate(graph.milestones):
        m_path = f"milestones[{mi}]"

        start, err = _resolve(anchor_date, milestone.start_offset, milestone.id, f"{m_path}.start_offset")
        if err is not None:
            return None, err
        assert start is not None

        due: Optional[date] = None
        if milestone.due_offset is not None:
            due, err = _resolve(start, milestone.due_offset, milestone.id, f"{m_path}.due_offset")
            if err is not None:
                return None, err

        milestones[milestone.id] = MilestoneDates(start_date=start, due_date=due)

        for ti, task in enumerate(milestone.tasks):
            task_due: Optional[date] = None
            if task.due_offset is not None:
                task_due, err = _resolve(start, task.due_offset, task.id, f"{m_path}.tasks[{ti}].due_offset")
                if err is not None:
                    return None, err
            tasks[task.id] = TaskDates(milestone_id=milestone.id, due_date=task_due)

    return ExpandedSchedule(anchor_date=anchor_date, milestones=milestones, tasks=tasks), None


def materialize_service(
    graph: TemplateGraph,
    schedule: ExpandedSchedule,
    *,
    service_name: Optional[str] = None,
) -> dict[str, Any]:
    """Return concrete milestone/task records carrying the resolved dates.

    This is the document handed to the persistence layer (and what the CLI
    writes). The graph is only read.
    """

    out_milestones: list[dict[str, Any]] = []
    for milestone in graph.milestones:
        m_dates = schedule.milestones[milestone.id]
        out_tasks: list[dict[str, Any]] = []
        for task in milestone.tasks:
            t_dates = schedule.tasks[task.id]
            record: dict[str, Any] = {
                "template_task_id": task.id,
                "title": task.title,
                "priority": task.priority,
                "position": task.position,
                "due_date": _iso(t_dates.due_date),
            }
            if task.estimated_hours is not None:
                record["estimated_hours"] = task.estimated_hours
            if task.description:
                record["description"] = task.description
            out_tasks.append(record)

        m_record: dict[str, Any] = {
            "template_milestone_id": milestone.id,
            "name": milestone.name,
            "position": milestone.position,
            "start_date": _iso(m_dates.start_date),
            "due_date": _iso(m_dates.due_date),
        }
        if milestone.description:
            m_record["description"] = milestone.description
        m_record["tasks"] = out_tasks
        out_milestones.append(m_record)

    return {
        "name": service_name or graph.name,
        "start_date": schedule.anchor_date.isoformat(),
        "milestones": out_milestones,
    }


def dump_yaml(doc: dict[str, Any], path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(doc, f, sort_keys=False, default_flow_style=False, allow_unicode=True)


def _resolve(
    anchor: date, text: Optional[str], node_id: str, path: str
) -> tuple[Optional[date], Optional[ExpansionError]]:
    duration, cause = parse_and_validate(text, path=path)
    if cause is not None or duration is None:
        return None, ExpansionError(
            code="E_EXPANSION_FAILED",
            message=f"{node_id}: {cause.message if cause else 'offset could not be resolved'}",
            path=path,
            node_id=node_id,
            cause=cause,
        )
    try:
        return anchor + timedelta(days=duration.days), None
    except OverflowError:
        return None, ExpansionError(
            code="E_EXPANSION_FAILED",
            message=f"{node_id}: {anchor.isoformat()} + {duration.days} days is past the last supported date",
            path=path,
            node_id=node_id,
        )


def _iso(d: Optional[date]) -> Optional[str]:
    return d.isoformat() if d is not None else None
