from __future__ import annotations

from typing import Any, Optional

from template_scheduler.core.errors import InvalidReorderError, TemplateEditError
from template_scheduler.core.model import MilestoneNode, TaskNode


MILESTONE_FIELDS: set[str] = {"name", "start_offset", "due_offset", "description"}
TASK_FIELDS: set[str] = {"title", "due_offset", "priority", "estimated_hours", "description"}


class TemplateGraph:
    """Ordered milestones, each owning an ordered list of tasks.

    Positions are dense and zero-based after every mutation, so list order and
    position always agree. The expander never mutates a graph; edits go through
    the methods below. Failures are returned, not raised.
    """

    def __init__(self, name: str = "", description: Optional[str] = None) -> None:
        self.name = name
        self.description = description
        self._milestones: list[MilestoneNode] = []

    @property
    def milestones(self) -> tuple[MilestoneNode, ...]:
        return tuple(self._milestones)

    def milestone(self, milestone_id: str) -> Optional[MilestoneNode]:
        for m in self._milestones:
            if m.id == milestone_id:
                return m
        return None

    def task_count(self) -> int:
        return sum(len(m.tasks) for m in self._milestones)

    def node_ids(self) -> set[str]:
        ids: set[str] = set()
        for m in self._milestones:
            ids.add(m.id)
            ids.update(t.id for t in m.tasks)
        return ids

    # Milestones

    def add_milestone(
        self,
        name: str,
        *,
        start_offset: str = "same day",
        due_offset: Optional[str] = None,
        description: Optional[str] = None,
        after_position: Optional[int] = None,
        milestone_id: Optional[str] = None,
    ) -> tuple[Optional[MilestoneNode], Optional[TemplateEditError]]:
        """Append a milestone, or insert it right after `after_position`.

        `after_position=-1` inserts at the front.
        """

        existing = self.node_ids()
        if milestone_id is None:
            milestone_id = _next_id("MS", existing)
        elif milestone_id in existing:
            return None, _duplicate_id(milestone_id)

        node = MilestoneNode(
            id=milestone_id,
            name=name,
            start_offset=start_offset,
            due_offset=due_offset,
            description=description,
        )
        self._milestones.insert(_insert_index(after_position, len(self._milestones)), node)
        _reindex(self._milestones)
        return node, None

    def remove_milestone(self, milestone_id: str) -> Optional[TemplateEditError]:
        node = self.milestone(milestone_id)
        if node is None:
            return _unknown_milestone(milestone_id)
        self._milestones.remove(node)
        _reindex(self._milestones)
        return None

    def reorder_milestones(self, order: list[str]) -> Optional[InvalidReorderError]:
        by_id = {m.id: m for m in self._milestones}
        err = _check_permutation(order, list(by_id.keys()), path="milestones")
        if err is not None:
            return err
        self._milestones = [by_id[mid] for mid in order]
        _reindex(self._milestones)
        return None

    def update_milestone(self, milestone_id: str, **fields: Any) -> Optional[TemplateEditError]:
        node = self.milestone(milestone_id)
        if node is None:
            return _unknown_milestone(milestone_id)
        err = _check_fields(fields, MILESTONE_FIELDS, path=f"milestones[{node.position}]")
        if err is not None:
            return err
        for k, v in fields.items():
            setattr(node, k, v)
        return None

    # Tasks

    def add_task(
        self,
        milestone_id: str,
        title: str,
        *,
        due_offset: Optional[str] = None,
        priority: str = "medium",
        estimated_hours: Optional[float] = None,
        description: Optional[str] = None,
        after_position: Optional[int] = None,
        task_id: Optional[str] = None,
    ) -> tuple[Optional[TaskNode], Optional[TemplateEditError]]:
        milestone = self.milestone(milestone_id)
        if milestone is None:
            return None, _unknown_milestone(milestone_id)

        existing = self.node_ids()
        if task_id is None:
            task_id = _next_id(f"{milestone_id}-T", existing)
        elif task_id in existing:
            return None, _duplicate_id(task_id)

        node = TaskNode(
            id=task_id,
            title=title,
            due_offset=due_offset,
            priority=priority,  # type: ignore[arg-type]
            estimated_hours=estimated_hours,
            description=description,
        )
        milestone.tasks.insert(_insert_index(after_position, len(milestone.tasks)), node)
        _reindex(milestone.tasks)
        return node, None

    def remove_task(self, milestone_id: str, task_id: str) -> Optional[TemplateEditError]:
        milestone = self.milestone(milestone_id)
        if milestone is None:
            return _unknown_milestone(milestone_id)
        task = _find_task(milestone, task_id)
        if task is None:
            return _unknown_task(milestone, task_id)
        milestone.tasks.remove(task)
        _reindex(milestone.tasks)
        return None

    def reorder_tasks(
        self, milestone_id: str, order: list[str]
    ) -> Optional[TemplateEditError | InvalidReorderError]:
        milestone = self.milestone(milestone_id)
        if milestone is None:
            return _unknown_milestone(milestone_id)
        by_id = {t.id: t for t in milestone.tasks}
        err = _check_permutation(order, list(by_id.keys()), path=f"milestones[{milestone.position}].tasks")
        if err is not None:
            return err
        milestone.tasks = [by_id[tid] for tid in order]
        _reindex(milestone.tasks)
        return None

    def update_task(self, milestone_id: str, task_id: str, **fields: Any) -> Optional[TemplateEditError]:
        milestone = self.milestone(milestone_id)
        if milestone is None:
            return _unknown_milestone(milestone_id)
        task = _find_task(milestone, task_id)
        if task is None:
            return _unknown_task(milestone, task_id)
        err = _check_fields(
            fields, TASK_FIELDS, path=f"milestones[{milestone.position}].tasks[{task.position}]"
        )
        if err is not None:
            return err
        for k, v in fields.items():
            setattr(task, k, v)
        return None


def _insert_index(after_position: Optional[int], length: int) -> int:
    if after_position is None:
        return length
    return max(0, min(after_position + 1, length))


def _reindex(items: list[Any]) -> None:
    for i, item in enumerate(items):
        item.position = i


def _find_task(milestone: MilestoneNode, task_id: str) -> Optional[TaskNode]:
    for t in milestone.tasks:
        if t.id == task_id:
            return t
    return None


def _check_permutation(order: list[str], current: list[str], *, path: str) -> Optional[InvalidReorderError]:
    if len(order) != len(current) or set(order) != set(current) or len(set(order)) != len(order):
        missing = sorted(set(current) - set(order))
        unknown = sorted(set(order) - set(current))
        dupes = sorted({x for x in order if order.count(x) > 1})
        details = []
        if missing:
            details.append(f"missing={missing}")
        if unknown:
            details.append(f"unknown={unknown}")
        if dupes:
            details.append(f"duplicates={dupes}")
        return InvalidReorderError(
            code="E_INVALID_REORDER",
            message="new order must be a permutation of existing ids ("
            + ", ".join(details)
            + ")",
            path=path,
        )
    return None


def _check_fields(fields: dict[str, Any], allowed: set[str], *, path: str) -> Optional[TemplateEditError]:
    unknown = sorted(set(fields) - allowed)
    if unknown:
        return TemplateEditError(
            code="E_UNKNOWN_FIELD",
            message=f"unknown field(s): {unknown} (allowed: {sorted(allowed)})",
            path=path,
        )
    return None


def _next_id(prefix: str, existing: set[str]) -> str:
    sep = "" if prefix.endswith("-T") else "-"
    n = 1
    while True:
        candidate = f"{prefix}{sep}{n:02d}"
        if candidate not in existing:
            return candidate
        n += 1


def _duplicate_id(node_id: str) -> TemplateEditError:
    return TemplateEditError(code="E_DUPLICATE_ID", message=f"duplicate node id: {node_id}", path="id")


def _unknown_milestone(milestone_id: str) -> TemplateEditError:
    return TemplateEditError(
        code="E_UNKNOWN_MILESTONE",
        message=f"unknown milestone id: {milestone_id}",
        path="milestones",
    )


def _unknown_task(milestone: MilestoneNode, task_id: str) -> TemplateEditError:
    return TemplateEditError(
        code="E_UNKNOWN_TASK",
        message=f"unknown task id in milestone {milestone.id}: {task_id}",
        path=f"milestones[{milestone.position}].tasks",
    )
