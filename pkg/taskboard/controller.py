"""
Board controller: the single owner of the task store.

Every operation follows the same sequence:
  1. mutate the store in memory (synchronous, runs to completion)
  2. await one persistence flush
  3. emit "board_changed" so renderers can redraw from the store

A failed flush does not undo step 1. Callers must not start a second
operation before the previous one has returned.
"""
import logging
from typing import Callable, Dict, List, Optional

from .classifier import require_key
from .persistence import PersistenceSynchronizer
from .progress import toggle_status
from .schema import Assignee, Priority, Task
from .store import TaskNotFound, TaskStore
from .transfer import TransferEngine

logger = logging.getLogger(__name__)


class BoardController:
    """Routes board actions to the store, the transfer engine and persistence."""

    def __init__(self, synchronizer: PersistenceSynchronizer, store: Optional[TaskStore] = None):
        self.store = store if store is not None else TaskStore()
        self.engine = TransferEngine(self.store)
        self.synchronizer = synchronizer
        self.subscribers: Dict[str, list] = {}  # event_type -> list of callbacks
        self.last_flush_ok: Optional[bool] = None

    def subscribe(self, event_type: str, callback: Callable) -> None:
        """Register a callback for an event type."""
        if event_type not in self.subscribers:
            self.subscribers[event_type] = []
        self.subscribers[event_type].append(callback)

    def _emit(self, event_type: str, **kwargs) -> None:
        """Emit an event to all subscribers."""
        for callback in self.subscribers.get(event_type, []):
            try:
                callback(**kwargs)
            except Exception:
                logger.exception("Error in %s callback", event_type)

    async def _commit(self, action: str, **details) -> bool:
        self.last_flush_ok = await self.synchronizer.save_all(self.store)
        self._emit("board_changed", store=self.store, action=action, **details)
        return self.last_flush_ok

    async def load(self) -> int:
        count = await self.synchronizer.load_all(self.store)
        self._emit("board_changed", store=self.store, action="load")
        return count

    async def create_task(
        self,
        title: str,
        container: str = "to_do",
        task_id: Optional[str] = None,
        description: str = "",
        category: str = "",
        category_color: str = "",
        priority: str = "low",
        created_at: str = "",
        assignees: Optional[List[Assignee]] = None,
        subtasks: Optional[List[str]] = None,
    ) -> Task:
        """Create a task in the given container (default To-Do) and flush.

        Raises UnknownContainer for an unrecognized container, DuplicateTask
        for an id already on the board.
        """
        key = require_key(container)
        task = Task(
            id=str(task_id) if task_id not in (None, "") else self.store.next_task_id(),
            title=title,
            description=description,
            category=category,
            category_color=category_color,
            priority=Priority.from_str(priority),
            created_at=created_at,
            assignees=list(assignees or []),
            container_key=key,
        )
        for label in subtasks or []:
            task.add_subtask(label)
        self.store.add(task)
        logger.info("Created task %s in %s", task.id, key.value)
        await self._commit("create", task_id=task.id)
        return task

    async def drop(self, task_id: str, target_identifier: str) -> Optional[Task]:
        """Drag-and-drop move. None (no flush, no event) for an unknown target."""
        try:
            task = self.engine.drop(task_id, target_identifier)
        except TaskNotFound as e:
            logger.warning("Drop rejected: %s", e)
            raise
        if task is None:
            return None
        await self._commit("transfer", task_id=task_id)
        return task

    async def move_to_category(self, task_id: str, identifier: str) -> Optional[Task]:
        """Category-button move. None (no flush, no event) for an unknown category."""
        try:
            task = self.engine.move_to_category(task_id, identifier)
        except TaskNotFound as e:
            logger.warning("Category move rejected: %s", e)
            raise
        if task is None:
            return None
        await self._commit("transfer", task_id=task_id)
        return task

    async def delete_task(self, task_id: str) -> Task:
        """Remove a task, re-derive the container lists, flush once."""
        try:
            task = self.store.remove_by_id(task_id)
        except TaskNotFound as e:
            logger.warning("Delete rejected: %s", e)
            raise
        self.store.rebuild_partition()
        logger.info("Deleted task %s", task_id)
        await self._commit("delete", task_id=task_id)
        return task

    async def clear_all(self) -> None:
        self.store.clear_all()
        logger.info("Cleared board")
        await self._commit("clear")

    async def toggle_subtask(self, task_id: str, subtask_id: str) -> bool:
        """Flip one checklist entry and flush. Returns the new status."""
        task = self.store.find_by_id(task_id)
        done = toggle_status(task, subtask_id)
        await self._commit("subtask", task_id=task_id, subtask_id=subtask_id)
        return done
