from __future__ import annotations

from typing import Optional

from template_scheduler.core.errors import TemplateValidationError
from template_scheduler.core.template.template_graph import TemplateGraph
from template_scheduler.core.validate.validate_duration import parse_and_validate


# Template lint rules:
# - L_INVALID_OFFSET: an offset does not parse or validate (every one is reported)
# - L_TASK_DUE_AFTER_MILESTONE_DUE: a task is due after its milestone's due date
# - L_EMPTY_TEMPLATE: template has no milestones


def lint_template(graph: TemplateGraph, *, file: Optional[str] = None) -> list[TemplateValidationError]:
    """Lint a template graph.

    Unlike expansion, which stops at the first bad offset, lint walks the whole
    graph so an editor can flag every field at once.
    """

    errors: list[TemplateValidationError] = []

    if not graph.milestones:
        errors.append(
            TemplateValidationError(
                code="L_EMPTY_TEMPLATE",
                message="template must have at least 1 milestone",
                file=file,
                path="milestones",
            )
        )

    for mi, milestone in enumerate(graph.milestones):
        m_path = f"milestones[{mi}]"

        _check_offset(milestone.start_offset, f"{m_path}.start_offset", file, errors)
        milestone_due_days: Optional[int] = None
        if milestone.due_offset is not None:
            milestone_due_days = _check_offset(milestone.due_offset, f"{m_path}.due_offset", file, errors)

        for ti, task in enumerate(milestone.tasks):
            if task.due_offset is None:
                continue
            t_path = f"{m_path}.tasks[{ti}].due_offset"
            task_days = _check_offset(task.due_offset, t_path, file, errors)
            # Both offsets are measured from the milestone start.
            if task_days is not None and milestone_due_days is not None and task_days > milestone_due_days:
                errors.append(
                    TemplateValidationError(
                        code="L_TASK_DUE_AFTER_MILESTONE_DUE",
                        message=(
                            f"task {task.id} is due {task_days} days after milestone start, "
                            f"but milestone {milestone.id} is due after {milestone_due_days} days"
                        ),
                        file=file,
                        path=t_path,
                    )
                )

    return _sorted(errors)


def _check_offset(
    text: Optional[str], path: str, file: Optional[str], errors: list[TemplateValidationError]
) -> Optional[int]:
    duration, cause = parse_and_validate(text, path=path)
    if cause is not None or duration is None:
        errors.append(
            TemplateValidationError(
                code="L_INVALID_OFFSET",
                message=f"{cause.code}: {cause.message}" if cause else "invalid offset",
                file=file,
                path=path,
            )
        )
        return None
    return duration.days


def _sorted(errors: list[TemplateValidationError]) -> list[TemplateValidationError]:
    return sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))
