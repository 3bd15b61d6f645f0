"""
Persistence sync: flushes the task store to a key-value backend and loads it back.

Stored payload (one key):
    {
      "tasks":      [task dict, ...],                # full collection
      "containers": {"to_do": [task dict, ...], ...} # the four sub-lists
    }

Save failures are logged and reported as False; the in-memory store stays
the source of truth for the session. Load never fails: a missing or
unreadable payload gives an empty board.
"""
import asyncio
import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from .config import Config
from .schema import CONTAINER_ORDER, Task
from .store import TaskStore

logger = logging.getLogger(__name__)

DEFAULT_KEY = "board"


class PersistenceError(Exception):
    """The backend did not acknowledge a save (or could not be read)."""
    pass


# ── Backends ─────────────────────────────────────────────────────────────────


class MemoryBackend:
    """In-process backend; keeps a JSON copy so saved state cannot alias live objects."""

    def __init__(self, key: str = DEFAULT_KEY):
        self.key = key
        self._items: Dict[str, str] = {}

    async def load(self) -> Optional[Dict[str, Any]]:
        raw = self._items.get(self.key)
        return json.loads(raw) if raw is not None else None

    async def save(self, data: Dict[str, Any]) -> None:
        self._items[self.key] = json.dumps(data)


def _connect(db_path: str) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


class SqliteBackend:
    """Key-value rows in a local SQLite file."""

    def __init__(self, db_path: str, key: str = DEFAULT_KEY):
        self.db_path = db_path
        self.key = key
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _init_schema(self):
        with _connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS board_state (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.commit()

    def _read(self) -> Optional[str]:
        with _connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT value FROM board_state WHERE key = ? LIMIT 1", (self.key,)
            ).fetchone()
        return row["value"] if row else None

    def _write(self, value: str) -> None:
        now = datetime.now(timezone.utc).isoformat()
        with _connect(self.db_path) as conn:
            conn.execute("""
                INSERT INTO board_state (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
            """, (self.key, value, now))
            conn.commit()

    async def load(self) -> Optional[Dict[str, Any]]:
        try:
            raw = await asyncio.to_thread(self._read)
        except sqlite3.Error as e:
            raise PersistenceError(f"SQLite read failed: {e}") from e
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Stored board is not valid JSON: {e}") from e

    async def save(self, data: Dict[str, Any]) -> None:
        try:
            await asyncio.to_thread(self._write, json.dumps(data, ensure_ascii=False))
        except sqlite3.Error as e:
            raise PersistenceError(f"SQLite write failed: {e}") from e


class RemoteStorageBackend:
    """JSON key-value HTTP store.

    Writes are ``POST url`` with ``{"key", "value", "token"}``; reads are
    ``GET url?key=...&token=...`` answering ``{"data": {"value": "<json>"}}``.
    """

    def __init__(self, url: str, token: str = "", key: str = DEFAULT_KEY, timeout: float = 5.0):
        self.url = url
        self.token = token
        self.key = key
        self.timeout = timeout

    def _get(self) -> Optional[str]:
        r = requests.get(
            self.url,
            params={"key": self.key, "token": self.token},
            timeout=self.timeout,
        )
        if r.status_code == 404:
            return None
        r.raise_for_status()
        body = r.json()
        if not isinstance(body, dict):
            raise PersistenceError(f"Remote storage answered {type(body).__name__}, expected an object")
        data = body.get("data") or {}
        if not isinstance(data, dict):
            raise PersistenceError(f"Remote storage 'data' is {type(data).__name__}, expected an object")
        value = data.get("value")
        return value if value else None

    def _post(self, value: str) -> None:
        r = requests.post(
            self.url,
            json={"key": self.key, "value": value, "token": self.token},
            timeout=self.timeout,
        )
        r.raise_for_status()

    async def load(self) -> Optional[Dict[str, Any]]:
        try:
            raw = await asyncio.to_thread(self._get)
        except (requests.RequestException, ValueError) as e:
            raise PersistenceError(f"Remote storage read failed: {e}") from e
        if raw is None:
            return None
        if isinstance(raw, dict):
            return raw
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Stored board is not valid JSON: {e}") from e

    async def save(self, data: Dict[str, Any]) -> None:
        try:
            await asyncio.to_thread(self._post, json.dumps(data, ensure_ascii=False))
        except requests.RequestException as e:
            raise PersistenceError(f"Remote storage write failed: {e}") from e


def make_backend(config: Config):
    """Build the backend named in config."""
    if config.backend == "remote":
        return RemoteStorageBackend(
            config.storage_url,
            token=config.storage_token,
            key=config.storage_key,
            timeout=config.storage_timeout,
        )
    if config.backend == "memory":
        return MemoryBackend(key=config.storage_key)
    return SqliteBackend(config.db_path, key=config.storage_key)


# ── Synchronizer ─────────────────────────────────────────────────────────────


def serialize_store(store: TaskStore) -> Dict[str, Any]:
    return {
        "tasks": [t.to_dict() for t in store.all_tasks],
        "containers": {
            key.value: [t.to_dict() for t in store.containers[key]]
            for key in CONTAINER_ORDER
        },
    }


def _tasks_from_payload(data: Any) -> List[Task]:
    if not isinstance(data, dict):
        logger.warning("Stored board has unexpected type %s, ignoring", type(data).__name__)
        return []

    raw_tasks = data.get("tasks")
    if not isinstance(raw_tasks, list):
        # Older payloads only had the per-container lists
        raw_tasks = []
        containers = data.get("containers")
        if isinstance(containers, dict):
            for key in CONTAINER_ORDER:
                entries = containers.get(key.value)
                if isinstance(entries, list):
                    raw_tasks.extend(entries)

    tasks: List[Task] = []
    seen = set()
    for raw in raw_tasks:
        if not isinstance(raw, dict):
            continue
        try:
            task = Task.from_dict(raw)
        except (ValueError, TypeError, KeyError, IndexError, AttributeError) as e:
            logger.warning("Skipping unreadable stored task: %s", e)
            continue
        if task.id in seen:
            logger.warning("Skipping duplicate stored task %s", task.id)
            continue
        seen.add(task.id)
        tasks.append(task)
    return tasks


class PersistenceSynchronizer:
    """Writes the whole store after each mutation; rebuilds it on startup."""

    def __init__(self, backend):
        self.backend = backend

    async def save_all(self, store: TaskStore) -> bool:
        """Flush the store. False (after logging) if the backend failed."""
        try:
            await self.backend.save(serialize_store(store))
        except PersistenceError as e:
            logger.error("Failed to persist board (%d tasks): %s", len(store), e)
            return False
        logger.debug("Persisted board (%d tasks)", len(store))
        return True

    async def load_all(self, store: TaskStore) -> int:
        """Replace the store's contents with the persisted board. Returns task count."""
        try:
            data = await self.backend.load()
        except PersistenceError as e:
            logger.error("Failed to load board, starting empty: %s", e)
            data = None

        store.clear_all()
        if data is None:
            return 0
        store.all_tasks.extend(_tasks_from_payload(data))
        store.rebuild_partition()
        logger.info("Loaded %d tasks", len(store))
        return len(store)
