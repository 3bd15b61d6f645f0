"""Shared test fixtures for the task board tests."""

import sys
from pathlib import Path

import pytest

# Ensure the repo root (pkg/, board_server.py) is importable
sys.path.insert(0, str(Path(__file__).parent.parent))

from pkg.taskboard.persistence import MemoryBackend, PersistenceError
from pkg.taskboard.schema import ContainerKey, Task
from pkg.taskboard.store import TaskStore


class FailingBackend:
    """Backend whose saves always fail; loads return a fixed payload."""

    def __init__(self, payload=None, load_error: bool = False):
        self.payload = payload
        self.load_error = load_error
        self.save_calls = 0

    async def load(self):
        if self.load_error:
            raise PersistenceError("storage unreachable")
        return self.payload

    async def save(self, data):
        self.save_calls += 1
        raise PersistenceError("storage unreachable")


class RecordingBackend(MemoryBackend):
    """Memory backend that also counts saves and keeps every payload."""

    def __init__(self):
        super().__init__()
        self.saved = []

    async def save(self, data):
        await super().save(data)
        self.saved.append(data)


def make_task(task_id: str, container: ContainerKey = ContainerKey.TO_DO, **kwargs) -> Task:
    return Task(id=task_id, title=kwargs.pop("title", f"Task {task_id}"), container_key=container, **kwargs)


@pytest.fixture
def store():
    """Board with one task in each container (ids 1-4) plus a second To-Do (5)."""
    return TaskStore([
        make_task("1", ContainerKey.TO_DO),
        make_task("2", ContainerKey.IN_PROGRESS),
        make_task("3", ContainerKey.AWAIT_FEEDBACK),
        make_task("4", ContainerKey.DONE),
        make_task("5", ContainerKey.TO_DO),
    ])
