"""Read-only board snapshot for renderers. Derived entirely from the store."""
from typing import Any, Dict

from .progress import apply_status, compute_progress
from .schema import CONTAINER_ORDER, CONTAINER_TITLES, Task
from .store import TaskStore


def task_card(task: Task) -> Dict[str, Any]:
    progress = compute_progress(task)
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "category": task.category,
        "category_color": task.category_color,
        "priority": task.priority.value,
        "created_at": task.created_at,
        "container_key": task.container_key.value,
        "assignees": [
            {"name": a.name, "initials": a.initials, "color": a.color}
            for a in task.assignees
        ],
        # No subtasks, no progress bar
        "progress": progress.to_dict() if progress.visible else None,
        "subtasks": [view.to_dict() for view in apply_status(task)],
    }


def board_snapshot(store: TaskStore) -> Dict[str, Any]:
    containers = []
    for key in CONTAINER_ORDER:
        tasks = store.containers[key]
        containers.append({
            "key": key.value,
            "title": CONTAINER_TITLES[key],
            "empty": not tasks,
            "tasks": [task_card(t) for t in tasks],
        })

    stats = {"total": len(store)}
    for key in CONTAINER_ORDER:
        stats[key.value] = len(store.containers[key])

    return {"containers": containers, "stats": stats}
