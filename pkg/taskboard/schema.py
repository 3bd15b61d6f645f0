"""
Task schema for the board.

Board layout:
  To-Do → In-Progress → Await-Feedback → Done

Containers are not a state machine: any task may move to any container.
Stored payloads written by the browser board (camelCase keys,
``inWhichContainer`` container strings) are migrated on read.
"""
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any
import uuid


class ContainerKey(Enum):
    """The four board containers, plus a sentinel for unmapped identifiers."""
    TO_DO = "to_do"
    IN_PROGRESS = "in_progress"
    AWAIT_FEEDBACK = "await_feedback"
    DONE = "done"
    UNKNOWN = ""

    @classmethod
    def from_str(cls, value: Any) -> "ContainerKey":
        if not value or not isinstance(value, str):
            return cls.UNKNOWN
        legacy = LEGACY_CONTAINER_KEYS.get(value)
        if legacy is not None:
            return legacy
        try:
            return cls(value.strip().lower())
        except ValueError:
            try:
                return cls[value.strip().upper()]
            except KeyError:
                return cls.UNKNOWN


# Board order, left to right
CONTAINER_ORDER = (
    ContainerKey.TO_DO,
    ContainerKey.IN_PROGRESS,
    ContainerKey.AWAIT_FEEDBACK,
    ContainerKey.DONE,
)

CONTAINER_TITLES: Dict[ContainerKey, str] = {
    ContainerKey.TO_DO: "To do",
    ContainerKey.IN_PROGRESS: "In progress",
    ContainerKey.AWAIT_FEEDBACK: "Await feedback",
    ContainerKey.DONE: "Done",
}

# Container strings written by the browser board
LEGACY_CONTAINER_KEYS: Dict[str, ContainerKey] = {
    "for-To-Do-Container": ContainerKey.TO_DO,
    "in-Progress-Container": ContainerKey.IN_PROGRESS,
    "for-Await-Feedback-Container": ContainerKey.AWAIT_FEEDBACK,
    "for-Done-Container": ContainerKey.DONE,
}


class Priority(Enum):
    """Task urgency shown on the card."""
    LOW = "low"
    MEDIUM = "medium"
    URGENT = "urgent"

    @classmethod
    def from_str(cls, value: Any) -> "Priority":
        # Browser board stored priority as a one-element list
        if isinstance(value, (list, tuple)):
            value = value[0] if value else ""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.LOW


def make_subtask_id() -> str:
    """Unique id for one subtask row."""
    return f"subtask-{uuid.uuid4().hex[:12]}"


@dataclass
class Assignee:
    """Person badge on a card."""
    name: str
    color: str = ""

    @property
    def initials(self) -> str:
        parts = self.name.strip().split()
        return "".join(p[0] for p in parts[:2]).upper()

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "color": self.color}


@dataclass
class Task:
    """One card on the board."""

    # Identifier (immutable once stored)
    id: str

    # Content
    title: str
    description: str = ""

    # Display category tag (not the board container)
    category: str = ""
    category_color: str = ""

    priority: Priority = Priority.LOW
    created_at: str = ""                # due/creation date as entered
    assignees: List[Assignee] = field(default_factory=list)

    # Checklist, index-aligned
    subtasks: List[str] = field(default_factory=list)
    subtasks_id: List[str] = field(default_factory=list)
    subtasks_status: List[bool] = field(default_factory=list)

    # Board position
    container_key: ContainerKey = ContainerKey.TO_DO

    def add_subtask(self, label: str, done: bool = False) -> str:
        """Append a checklist entry to all three aligned lists; returns its id."""
        subtask_id = make_subtask_id()
        self.subtasks.append(label)
        self.subtasks_id.append(subtask_id)
        self.subtasks_status.append(bool(done))
        return subtask_id

    def align_subtasks(self) -> bool:
        """Repair the subtask lists so all three match ``subtasks``.

        Missing ids are generated, missing statuses default to False, extras
        are dropped. Returns True if anything had to change.
        """
        n = len(self.subtasks)
        changed = False
        if len(self.subtasks_id) != n:
            ids = list(self.subtasks_id[:n])
            ids.extend(make_subtask_id() for _ in range(n - len(ids)))
            self.subtasks_id = ids
            changed = True
        if len(self.subtasks_status) != n:
            statuses = [bool(s) for s in self.subtasks_status[:n]]
            statuses.extend([False] * (n - len(statuses)))
            self.subtasks_status = statuses
            changed = True
        return changed

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "category_color": self.category_color,
            "priority": self.priority.value,
            "created_at": self.created_at,
            "assignees": [a.to_dict() for a in self.assignees],
            "subtasks": list(self.subtasks),
            "subtasks_id": list(self.subtasks_id),
            "subtasks_status": list(self.subtasks_status),
            "container_key": self.container_key.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Deserialize from dict, accepting browser-board field names."""
        if "id" not in data or data["id"] in (None, ""):
            raise ValueError("task payload has no id")

        raw_container = data.get("container_key") or data.get("inWhichContainer")
        if raw_container is not None and not isinstance(raw_container, str):
            raise ValueError(f"task {data['id']} has a non-string container: {raw_container!r}")
        container = ContainerKey.from_str(raw_container)
        if container == ContainerKey.UNKNOWN:
            container = ContainerKey.TO_DO

        category_color = data.get("category_color", "")
        if not category_color and data.get("categoryColors"):
            category_color = data["categoryColors"][0]

        task = cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            description=data.get("description", data.get("description_text", "")),
            category=data.get("category", data.get("task_category", "")),
            category_color=category_color,
            priority=Priority.from_str(data.get("priority", "low")),
            created_at=data.get("created_at", data.get("createdAt", "")) or "",
            assignees=_assignees_from_dict(data),
            subtasks=[str(s) for s in data.get("subtasks") or []],
            subtasks_id=[str(s) for s in data.get("subtasks_id", data.get("subtasksId")) or []],
            subtasks_status=[bool(s) for s in data.get("subtasks_status", data.get("subtasksStatus")) or []],
            container_key=container,
        )
        task.align_subtasks()
        return task


def _assignees_from_dict(data: Dict[str, Any]) -> List[Assignee]:
    if "assignees" in data:
        result = []
        for raw in data.get("assignees") or []:
            if isinstance(raw, dict):
                result.append(Assignee(name=str(raw.get("name") or ""), color=str(raw.get("color") or "")))
            else:
                result.append(Assignee(name=str(raw)))
        return result

    # Browser board kept names and colours in two parallel lists
    names = data.get("assignedToValues") or []
    colors = data.get("assignedToColors") or []
    return [
        Assignee(name=name, color=colors[i] if i < len(colors) else "")
        for i, name in enumerate(names)
    ]
