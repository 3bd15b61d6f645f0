"""
In-memory task store.

Holds the full task collection plus the four container lists, which are
disjoint partitions of it. The container list objects are created once and
only ever cleared/refilled, so callers may hold references to them.
"""
import logging
from typing import Dict, Iterator, List, Optional

from .schema import CONTAINER_ORDER, ContainerKey, Task

logger = logging.getLogger(__name__)


class TaskNotFound(Exception):
    """Raised when a task id is absent from the collection or an expected list."""

    def __init__(self, task_id: str, where: str = "board"):
        super().__init__(f"Task {task_id} not found in {where}")
        self.task_id = task_id
        self.where = where


class DuplicateTask(Exception):
    """Raised when inserting a task whose id is already stored."""
    pass


class TaskStore:
    """All tasks plus their per-container ordered lists."""

    def __init__(self, tasks: Optional[List[Task]] = None):
        self.all_tasks: List[Task] = []
        self.containers: Dict[ContainerKey, List[Task]] = {key: [] for key in CONTAINER_ORDER}
        for task in tasks or []:
            self.add(task)

    def __len__(self) -> int:
        return len(self.all_tasks)

    def __iter__(self) -> Iterator[Task]:
        return iter(self.all_tasks)

    # ── queries ──────────────────────────────────────────────

    def list_for(self, key: ContainerKey) -> List[Task]:
        """Backing list of one container. UNKNOWN has no list."""
        if key not in self.containers:
            raise KeyError(f"No container list for {key!r}")
        return self.containers[key]

    def get(self, task_id: str) -> Optional[Task]:
        for task in self.all_tasks:
            if task.id == task_id:
                return task
        return None

    def find_by_id(self, task_id: str) -> Task:
        """Linear lookup; raises TaskNotFound."""
        task = self.get(task_id)
        if task is None:
            raise TaskNotFound(task_id)
        return task

    def find_container(self, task_id: str) -> Optional[ContainerKey]:
        """Scan all four lists for the task, ignoring its stored key."""
        for key, tasks in self.containers.items():
            if any(t.id == task_id for t in tasks):
                return key
        return None

    def next_task_id(self) -> str:
        """Next free numeric id, as a string."""
        highest = 0
        for task in self.all_tasks:
            try:
                highest = max(highest, int(task.id))
            except ValueError:
                continue
        return str(highest + 1)

    def partition_errors(self) -> List[str]:
        """Invariant violations between the collection and the container lists."""
        errors = []
        seen_ids = set()
        for task in self.all_tasks:
            if task.id in seen_ids:
                errors.append(f"duplicate id {task.id} in collection")
            seen_ids.add(task.id)

        placed: Dict[str, ContainerKey] = {}
        for key, tasks in self.containers.items():
            for task in tasks:
                if task.id in placed:
                    errors.append(
                        f"task {task.id} in both {placed[task.id].value} and {key.value}"
                    )
                    continue
                placed[task.id] = key
                if task.container_key != key:
                    errors.append(
                        f"task {task.id} stamped {task.container_key.value} but listed in {key.value}"
                    )
                if task.id not in seen_ids:
                    errors.append(f"task {task.id} in {key.value} but not in collection")

        for task_id in seen_ids - set(placed):
            errors.append(f"task {task_id} in no container")

        for task in self.all_tasks:
            if not (len(task.subtasks) == len(task.subtasks_id) == len(task.subtasks_status)):
                errors.append(f"task {task.id} has misaligned subtask lists")
        return errors

    # ── mutations ────────────────────────────────────────────

    def add(self, task: Task) -> Task:
        """Insert into the collection and the tail of its container list."""
        if self.get(task.id) is not None:
            raise DuplicateTask(f"Task {task.id} already exists")
        if task.container_key not in self.containers:
            task.container_key = ContainerKey.TO_DO
        self.all_tasks.append(task)
        self.containers[task.container_key].append(task)
        return task

    def remove_by_id(self, task_id: str) -> Task:
        """Remove from the collection and its container list in one step.

        Both locations are checked before anything is removed, so a miss in
        either leaves the store untouched.
        """
        task = self.get(task_id)
        if task is None:
            raise TaskNotFound(task_id)
        key = self.find_container(task_id)
        if key is None:
            raise TaskNotFound(task_id, where="any container")

        self.all_tasks.remove(task)
        for tasks in self.containers.values():
            tasks[:] = [t for t in tasks if t.id != task_id]
        logger.debug("Removed task %s from %s", task_id, key.value)
        return task

    def clear_all(self) -> None:
        """Empty everything. Does not persist."""
        self.all_tasks.clear()
        for tasks in self.containers.values():
            tasks.clear()

    def rebuild_partition(self) -> None:
        """Refill the four lists from each task's container_key, in collection order."""
        for tasks in self.containers.values():
            tasks.clear()
        for task in self.all_tasks:
            if task.container_key not in self.containers:
                logger.warning(
                    "Task %s had no usable container, placing in %s",
                    task.id, ContainerKey.TO_DO.value,
                )
                task.container_key = ContainerKey.TO_DO
            self.containers[task.container_key].append(task)
