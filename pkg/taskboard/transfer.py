"""
Transfer engine: moves tasks between containers.

Two call shapes reach it:
  drop()             - drag-and-drop; only the target is known, the task is
                       looked up in the full collection
  move_to_category() - category button; the current list is found by
                       scanning all four lists on every call

Moves are remove-then-append: a task lands at the tail of its target and is
never duplicated, so repeating a move changes nothing. No other ordering
within a container exists.
"""
import logging
from typing import List, Optional

from .classifier import key_for_list, resolve_list
from .schema import Task
from .store import TaskNotFound, TaskStore

logger = logging.getLogger(__name__)


class TransferEngine:
    """Moves tasks between the store's container lists. Does not persist."""

    def __init__(self, store: TaskStore):
        self.store = store

    def transfer(self, task_id: str, source: List[Task], target: List[Task]) -> Task:
        """Move a task from ``source`` to the tail of ``target``.

        Raises TaskNotFound (with nothing changed) if the task is not in ``source``.
        """
        index = next((i for i, t in enumerate(source) if t.id == task_id), None)
        if index is None:
            raise TaskNotFound(task_id, where="source container")

        task = source.pop(index)
        task.container_key = key_for_list(self.store, target)
        # source may be target; any stray copy is dropped before appending
        target[:] = [t for t in target if t.id != task_id]
        target.append(task)
        logger.info("Moved task %s to %s", task_id, task.container_key.value)
        return task

    def drop(self, task_id: str, target_identifier: str) -> Optional[Task]:
        """Drag-and-drop move. Returns None for an unrecognized drop target."""
        target = resolve_list(self.store, target_identifier)
        if target is None:
            return None

        task = self.store.find_by_id(task_id)
        for tasks in self.store.containers.values():
            tasks[:] = [t for t in tasks if t.id != task_id]
        task.container_key = key_for_list(self.store, target)
        target.append(task)
        logger.info("Dropped task %s on %s", task_id, task.container_key.value)
        return task

    def move_to_category(self, task_id: str, identifier: str) -> Optional[Task]:
        """Category-button move. Returns None for an unrecognized category."""
        target = resolve_list(self.store, identifier)
        if target is None:
            return None

        # Re-scan instead of trusting task.container_key
        current = self.store.find_container(task_id)
        if current is None:
            raise TaskNotFound(task_id, where="any container")
        return self.transfer(task_id, self.store.list_for(current), target)
