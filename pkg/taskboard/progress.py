"""
Subtask progress: completion counts and per-row checklist state.

Everything here reads ``subtasks_status`` as the single source of truth.
Short or missing status/id lists are tolerated: absent entries count as not
done and render with an empty id.
"""
from dataclasses import dataclass
from typing import List

from .schema import Task


class SubtaskNotFound(Exception):
    """Raised when toggling a subtask id or index the task does not have."""
    pass


@dataclass(frozen=True)
class Progress:
    completed: int
    total: int

    @property
    def visible(self) -> bool:
        """Cards without subtasks get no progress bar at all."""
        return self.total > 0

    @property
    def percent(self) -> int:
        if not self.total:
            return 0
        return round(self.completed * 100 / self.total)

    def to_dict(self) -> dict:
        return {"completed": self.completed, "total": self.total, "percent": self.percent}


@dataclass(frozen=True)
class SubtaskView:
    id: str
    label: str
    checked: bool
    line_through: bool

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "checked": self.checked,
            "line_through": self.line_through,
        }


def compute_progress(task: Task) -> Progress:
    total = len(task.subtasks or [])
    statuses = (task.subtasks_status or [])[:total]
    return Progress(completed=sum(1 for s in statuses if s), total=total)


def apply_status(task: Task) -> List[SubtaskView]:
    """Checked/line-through state for each subtask row."""
    ids = task.subtasks_id or []
    statuses = task.subtasks_status or []
    views = []
    for index, label in enumerate(task.subtasks or []):
        done = bool(statuses[index]) if index < len(statuses) else False
        views.append(SubtaskView(
            id=ids[index] if index < len(ids) else "",
            label=label,
            checked=done,
            line_through=done,
        ))
    return views


def set_status(task: Task, index: int, done: bool) -> None:
    """Set one subtask's completion flag by position."""
    if index < 0 or index >= len(task.subtasks):
        raise SubtaskNotFound(f"Task {task.id} has no subtask #{index}")
    task.align_subtasks()
    task.subtasks_status[index] = bool(done)


def toggle_status(task: Task, subtask_id: str) -> bool:
    """Flip one subtask's completion flag by id. Returns the new value."""
    try:
        index = task.subtasks_id.index(subtask_id)
    except ValueError:
        raise SubtaskNotFound(f"Task {task.id} has no subtask {subtask_id}") from None
    if index >= len(task.subtasks):
        raise SubtaskNotFound(f"Task {task.id} has no subtask {subtask_id}")
    done = not (task.subtasks_status[index] if index < len(task.subtasks_status) else False)
    set_status(task, index, done)
    return done
