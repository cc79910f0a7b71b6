from __future__ import annotations

from typing import Any, Iterable, Optional, cast

from template_scheduler.core.errors import TemplateValidationError
from template_scheduler.core.template.template_graph import TemplateGraph


ALLOWED_PRIORITIES: set[str] = {"low", "medium", "high", "urgent"}


def validate_template(template: dict[str, Any]) -> tuple[Optional[TemplateGraph], list[TemplateValidationError]]:
    """Validate a template document and build its TemplateGraph.

    Returns (graph, errors). Graph is None when errors exist.

    Only the document shape is checked here. Offset *text* is kept as-is and
    checked by lint/expansion, so a template with a half-typed offset still
    loads into an editable graph. Integer offsets are accepted and read as a
    day count.
    """

    file = cast(Optional[str], template.get("__file__"))
    errors: list[TemplateValidationError] = []

    def err(code: str, message: str, path: str) -> None:
        errors.append(TemplateValidationError(code=code, message=message, file=file, path=path))

    schema_version = template.get("schema_version")
    if schema_version is not None and (not isinstance(schema_version, str) or not schema_version.strip()):
        err("E_INVALID_TYPE", "schema_version must be a non-empty string", "schema_version")

    name = template.get("name")
    if not isinstance(name, str) or not name.strip():
        err("E_REQUIRED_FIELD", "name is required and must be a non-empty string", "name")
        name = ""

    description = template.get("description")
    if description is not None and not isinstance(description, str):
        err("E_INVALID_TYPE", "description must be a string", "description")
        description = None

    milestones = template.get("milestones")
    if not isinstance(milestones, list):
        err("E_REQUIRED_FIELD", "milestones is required and must be an array", "milestones")
        return None, _sorted(errors)

    graph = TemplateGraph(name=name.strip(), description=description)

    for mi, raw in enumerate(milestones):
        m_path = f"milestones[{mi}]"
        if not isinstance(raw, dict):
            err("E_INVALID_TYPE", "milestone must be an object", m_path)
            continue

        mid = raw.get("id")
        if mid is not None and (not isinstance(mid, str) or not mid.strip()):
            err("E_INVALID_TYPE", "id must be a non-empty string", f"{m_path}.id")
            continue

        m_name = raw.get("name")
        if not isinstance(m_name, str) or not m_name.strip():
            err("E_REQUIRED_FIELD", "name is required and must be a non-empty string", f"{m_path}.name")
            continue

        start_offset, ok = _offset_text(raw.get("start_offset", "same day"))
        if not ok or start_offset is None:
            err("E_INVALID_TYPE", "start_offset must be a string or integer", f"{m_path}.start_offset")
            continue

        due_offset, ok = _offset_text(raw.get("due_offset"))
        if not ok:
            err("E_INVALID_TYPE", "due_offset must be a string, integer or null", f"{m_path}.due_offset")
            continue

        m_description = raw.get("description")
        if m_description is not None and not isinstance(m_description, str):
            err("E_INVALID_TYPE", "description must be a string", f"{m_path}.description")
            m_description = None

        milestone, edit_error = graph.add_milestone(
            m_name.strip(),
            start_offset=start_offset,
            due_offset=due_offset,
            description=m_description,
            milestone_id=mid.strip() if isinstance(mid, str) else None,
        )
        if edit_error is not None or milestone is None:
            err("E_DUPLICATE_ID", f"duplicate node id: {mid}", f"{m_path}.id")
            continue

        tasks = raw.get("tasks", [])
        if tasks is None:
            tasks = []
        if not isinstance(tasks, list):
            err("E_INVALID_TYPE", "tasks must be an array", f"{m_path}.tasks")
            continue

        for ti, traw in enumerate(tasks):
            _add_task(graph, milestone.id, traw, f"{m_path}.tasks[{ti}]", err)

    if errors:
        return None, _sorted(errors)
    return graph, []


def _add_task(graph: TemplateGraph, milestone_id: str, raw: Any, t_path: str, err: Any) -> None:
    if not isinstance(raw, dict):
        err("E_INVALID_TYPE", "task must be an object", t_path)
        return

    tid = raw.get("id")
    if tid is not None and (not isinstance(tid, str) or not tid.strip()):
        err("E_INVALID_TYPE", "id must be a non-empty string", f"{t_path}.id")
        return

    title = raw.get("title")
    if not isinstance(title, str) or not title.strip():
        err("E_REQUIRED_FIELD", "title is required and must be a non-empty string", f"{t_path}.title")
        return

    priority = raw.get("priority", "medium")
    if priority is None:
        priority = "medium"
    if not isinstance(priority, str) or priority not in ALLOWED_PRIORITIES:
        err("E_INVALID_ENUM", f"priority must be one of {sorted(ALLOWED_PRIORITIES)}", f"{t_path}.priority")
        return

    estimated_hours = raw.get("estimated_hours")
    if estimated_hours is not None and (
        isinstance(estimated_hours, bool) or not isinstance(estimated_hours, (int, float)) or estimated_hours < 0
    ):
        err("E_INVALID_TYPE", "estimated_hours must be a non-negative number", f"{t_path}.estimated_hours")
        return

    due_offset, ok = _offset_text(raw.get("due_offset"))
    if not ok:
        err("E_INVALID_TYPE", "due_offset must be a string, integer or null", f"{t_path}.due_offset")
        return

    description = raw.get("description")
    if description is not None and not isinstance(description, str):
        err("E_INVALID_TYPE", "description must be a string", f"{t_path}.description")
        return

    _, edit_error = graph.add_task(
        milestone_id,
        title.strip(),
        due_offset=due_offset,
        priority=priority,
        estimated_hours=estimated_hours,
        description=description,
        task_id=tid.strip() if isinstance(tid, str) else None,
    )
    if edit_error is not None:
        err("E_DUPLICATE_ID", f"duplicate node id: {tid}", f"{t_path}.id")


def _offset_text(value: Any) -> tuple[Optional[str], bool]:
    if value is None:
        return None, True
    if isinstance(value, bool):
        return None, False
    if isinstance(value, int):
        return str(value), True
    if isinstance(value, str):
        return value, True
    return None, False


def _sorted(errors: Iterable[TemplateValidationError]) -> list[TemplateValidationError]:
    return sorted(
        list(errors),
        key=lambda e: (
            e.file or "",
            e.path or "",
            e.code,
        ),
    )
