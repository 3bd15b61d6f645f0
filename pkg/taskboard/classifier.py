"""
Container classifier: maps container identifiers to board lists and back.

Identifiers arrive from three places: drop-target element ids, category
buttons on the small-screen card menu, and stored container keys. All of
them resolve through one lookup table; anything else is UNKNOWN.
"""
import logging
from typing import Dict, List, Optional

from .schema import CONTAINER_ORDER, LEGACY_CONTAINER_KEYS, ContainerKey, Task
from .store import TaskStore

logger = logging.getLogger(__name__)


class UnknownContainer(Exception):
    """A drop or category target that maps to none of the four containers."""
    pass


CONTAINER_IDENTIFIERS: Dict[str, ContainerKey] = {
    # Drop targets
    "target-to-do-table": ContainerKey.TO_DO,
    "target-in-progress-table": ContainerKey.IN_PROGRESS,
    "target-await-feedback-table": ContainerKey.AWAIT_FEEDBACK,
    "target-done-table": ContainerKey.DONE,
    # Category buttons
    "to-do-category": ContainerKey.TO_DO,
    "in-progress-category": ContainerKey.IN_PROGRESS,
    "await-feedback-category": ContainerKey.AWAIT_FEEDBACK,
    "done-category": ContainerKey.DONE,
    **LEGACY_CONTAINER_KEYS,
    **{key.value: key for key in CONTAINER_ORDER},
}


def classify(identifier: Optional[str]) -> ContainerKey:
    """Container key for an identifier; UNKNOWN if it is not in the table."""
    if not identifier or not isinstance(identifier, str):
        return ContainerKey.UNKNOWN
    return CONTAINER_IDENTIFIERS.get(identifier.strip(), ContainerKey.UNKNOWN)


def require_key(identifier: Optional[str]) -> ContainerKey:
    """Like classify, but raises UnknownContainer instead of returning UNKNOWN."""
    key = classify(identifier)
    if key == ContainerKey.UNKNOWN:
        raise UnknownContainer(f"Unknown container: {identifier!r}")
    return key


def resolve_list(store: TaskStore, identifier: Optional[str]) -> Optional[List[Task]]:
    """Backing list for an identifier, or None for an unrecognized target."""
    key = classify(identifier)
    if key == ContainerKey.UNKNOWN:
        logger.debug("Ignoring unknown container identifier %r", identifier)
        return None
    return store.list_for(key)


def key_for_list(store: TaskStore, tasks: List[Task]) -> ContainerKey:
    """Inverse of resolve_list, by list identity. Never raises."""
    for key, container in store.containers.items():
        if container is tasks:
            return key
    return ContainerKey.UNKNOWN
