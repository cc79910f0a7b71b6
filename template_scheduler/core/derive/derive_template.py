from __future__ import annotations

from datetime import date
from typing import Any, Optional, cast

from template_scheduler.core.errors import TemplateValidationError
from template_scheduler.core.parse.parse_duration import format_duration
from template_scheduler.core.preview.preview_schedule import coerce_anchor
from template_scheduler.core.template.template_graph import TemplateGraph
from template_scheduler.core.validate.validate_duration import MAX_DURATION_DAYS
from template_scheduler.core.validate.validate_template import ALLOWED_PRIORITIES


def derive_template(
    service: dict[str, Any],
    *,
    name: Optional[str] = None,
) -> tuple[Optional[TemplateGraph], list[TemplateValidationError]]:
    """Build a reusable template from a concrete service ("save as template").

    Offsets follow the same anchor chain the expander uses:
      - milestone start_offset = milestone start - service start
      - milestone due_offset   = milestone due - milestone start
      - task due_offset        = task due - milestone start

    A milestone without a start_date starts with the service. Gaps that would
    be negative are clamped to "same day", since offsets never run backward.
    Gaps longer than MAX_DURATION_DAYS are reported as E_DURATION_UNREALISTIC,
    because the expander would reject them. Expanding the result from the
    service start reproduces the original dates wherever no clamping happened.
    """

    file = cast(Optional[str], service.get("__file__"))
    errors: list[TemplateValidationError] = []

    def err(code: str, message: str, path: str) -> None:
        errors.append(TemplateValidationError(code=code, message=message, file=file, path=path))

    def offset(anchor: date, target: date, path: str) -> Optional[str]:
        days = max(0, (target - anchor).days)
        if days > MAX_DURATION_DAYS:
            err(
                "E_DURATION_UNREALISTIC",
                f"gap of {days} days exceeds the maximum offset of {MAX_DURATION_DAYS} days",
                path,
            )
            return None
        return format_duration(days).lower()

    service_start = coerce_anchor(service.get("start_date"))
    if service_start is None:
        err("E_REQUIRED_FIELD", "start_date is required and must be a YYYY-MM-DD date", "start_date")

    milestones = service.get("milestones")
    if not isinstance(milestones, list):
        err("E_REQUIRED_FIELD", "milestones is required and must be an array", "milestones")
    if errors:
        return None, errors
    assert service_start is not None
    assert isinstance(milestones, list)

    template_name = name or service.get("name")
    graph = TemplateGraph(name=template_name if isinstance(template_name, str) else "")

    for mi, raw in enumerate(milestones):
        m_path = f"milestones[{mi}]"
        if not isinstance(raw, dict) or not isinstance(raw.get("name"), str) or not raw["name"].strip():
            err("E_REQUIRED_FIELD", "milestone must be an object with a non-empty name", m_path)
            continue

        m_start, ok = _optional_date(raw.get("start_date"))
        m_due, ok_due = _optional_date(raw.get("due_date"))
        if not ok:
            err("E_INVALID_TYPE", "start_date must be a YYYY-MM-DD date", f"{m_path}.start_date")
        if not ok_due:
            err("E_INVALID_TYPE", "due_date must be a YYYY-MM-DD date", f"{m_path}.due_date")
        if not ok or not ok_due:
            continue
        if m_start is None:
            m_start = service_start

        start_offset = offset(service_start, m_start, f"{m_path}.start_date")
        due_offset = offset(m_start, m_due, f"{m_path}.due_date") if m_due is not None else None
        if start_offset is None or (m_due is not None and due_offset is None):
            continue

        milestone, _ = graph.add_milestone(
            raw["name"].strip(),
            start_offset=start_offset,
            due_offset=due_offset,
            description=raw.get("description") if isinstance(raw.get("description"), str) else None,
        )
        assert milestone is not None

        tasks = raw.get("tasks") or []
        if not isinstance(tasks, list):
            err("E_INVALID_TYPE", "tasks must be an array", f"{m_path}.tasks")
            continue

        for ti, traw in enumerate(tasks):
            t_path = f"{m_path}.tasks[{ti}]"
            if not isinstance(traw, dict) or not isinstance(traw.get("title"), str) or not traw["title"].strip():
                err("E_REQUIRED_FIELD", "task must be an object with a non-empty title", t_path)
                continue
            t_due, ok = _optional_date(traw.get("due_date"))
            if not ok:
                err("E_INVALID_TYPE", "due_date must be a YYYY-MM-DD date", f"{t_path}.due_date")
                continue
            task_offset = offset(m_start, t_due, f"{t_path}.due_date") if t_due is not None else None
            if t_due is not None and task_offset is None:
                continue

            priority = traw.get("priority")
            hours = traw.get("estimated_hours")
            graph.add_task(
                milestone.id,
                traw["title"].strip(),
                due_offset=task_offset,
                priority=priority if priority in ALLOWED_PRIORITIES else "medium",
                estimated_hours=hours if isinstance(hours, (int, float)) and not isinstance(hours, bool) else None,
                description=traw.get("description") if isinstance(traw.get("description"), str) else None,
            )

    if errors:
        return None, errors
    return graph, []


def template_to_dict(graph: TemplateGraph, *, schema_version: str = "0.1.0") -> dict[str, Any]:
    """Serialize a graph back into a template document."""
    out: dict[str, Any] = {"schema_version": schema_version, "name": graph.name}
    if graph.description:
        out["description"] = graph.description
    out["milestones"] = []
    for m in graph.milestones:
        m_doc: dict[str, Any] = {
            "id": m.id,
            "name": m.name,
            "start_offset": m.start_offset,
            "due_offset": m.due_offset,
        }
        if m.description:
            m_doc["description"] = m.description
        m_doc["tasks"] = []
        for t in m.tasks:
            t_doc: dict[str, Any] = {"id": t.id, "title": t.title, "priority": t.priority}
            if t.estimated_hours is not None:
                t_doc["estimated_hours"] = t.estimated_hours
            t_doc["due_offset"] = t.due_offset
            if t.description:
                t_doc["description"] = t.description
            m_doc["tasks"].append(t_doc)
        out["milestones"].append(m_doc)
    return out


def _optional_date(value: Any) -> tuple[Optional[date], bool]:
    # PyYAML already turns unquoted YYYY-MM-DD into date objects.
    if value is None:
        return None, True
    d = coerce_anchor(value)
    return d, d is not None
