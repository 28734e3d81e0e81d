"""
Entity change notifications.

Mutations publish "entity X changed" once; every view or cache that depends
on X subscribes by entity type instead of each mutation listing cache keys.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Optional

logger = logging.getLogger(__name__)

STUDENT = "student"


@dataclass(frozen=True)
class EntityChange:
    entity: str
    action: str  # "created" | "updated" | "deleted" | "imported"
    entity_id: Optional[Any] = None


Listener = Callable[[EntityChange], None]


class EntityEventBus:
    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def subscribe(self, entity: str, listener: Listener) -> Callable[[], None]:
        """Register listener for changes to entity. Returns an unsubscribe callable."""
        self._listeners[entity].append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners[entity]:
                self._listeners[entity].remove(listener)

        return unsubscribe

    def publish(self, entity: str, action: str, entity_id: Any = None) -> EntityChange:
        change = EntityChange(entity, action, entity_id)
        logger.debug("[events] %s %s %s", entity, action, entity_id if entity_id is not None else "")
        for listener in list(self._listeners[entity]):
            listener(change)
        return change


class QueryCache:
    """
    Results of read queries, keyed by (entity, *params).

    Subscribes to the bus for each entity it has cached and drops all of
    that entity's entries on any change.
    """

    def __init__(self, bus: EntityEventBus) -> None:
        self._bus = bus
        self._entries: dict[tuple[Hashable, ...], Any] = {}
        self._watched: set[str] = set()

    def _watch(self, entity: str) -> None:
        if entity not in self._watched:
            self._bus.subscribe(entity, lambda change: self.invalidate(change.entity))
            self._watched.add(entity)

    def get_or_fetch(self, key: tuple[Hashable, ...], fetch: Callable[[], Any]) -> Any:
        if key not in self._entries:
            self._watch(str(key[0]))
            self._entries[key] = fetch()
        return self._entries[key]

    def invalidate(self, entity: str) -> int:
        stale = [key for key in self._entries if key[0] == entity]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.info("[events] invalidated %d cached %s queries", len(stale), entity)
        return len(stale)

    def __contains__(self, key: tuple[Hashable, ...]) -> bool:
        return key in self._entries
