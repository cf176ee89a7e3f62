"""
Metadata Cache

In-memory caches for catalog records that are referenced from many places
(episodes, drivers, teams). Each cache owns its lock; the caches are built
once at startup and handed to every component that needs them.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Generic, TypeVar

from f1viewer.schemas import Driver, Episode, Team


logger = logging.getLogger(__name__)

T = TypeVar("T")


class EntityKind(str, Enum):
    EPISODE = "episode"
    DRIVER = "driver"
    TEAM = "team"


class MetadataCache(Generic[T]):
    """
    Map of entity identifier to immutable record.

    Every read and write holds the cache-wide lock, so a reader never sees
    a map in the middle of an update. The lock is never held across a
    network call: two workers missing the same identifier both fetch and
    the last write wins, which is harmless because records are immutable.
    """

    def __init__(self, kind: EntityKind):
        self.kind = kind
        self._lock = asyncio.Lock()
        self._records: dict[str, T] = {}

    async def get(self, entity_id: str) -> tuple[T | None, bool]:
        """
        Look up a cached record.

        Returns:
            Tuple of (record, found); record is None when not found
        """
        async with self._lock:
            if entity_id in self._records:
                return self._records[entity_id], True
        return None, False

    async def put(self, entity_id: str, record: T) -> None:
        """Store a record, replacing any previous one."""
        async with self._lock:
            self._records[entity_id] = record

    async def fetch_through(self, entity_id: str, fetch: Callable[[str], Awaitable[T]]) -> T:
        """
        Return the cached record or fetch, store and return it.

        Args:
            entity_id: Identifier to look up
            fetch: Coroutine function loading the record on a miss

        Raises:
            Any exception raised by fetch (nothing is stored in that case)
        """
        record, found = await self.get(entity_id)
        if found:
            return record

        record = await fetch(entity_id)
        await self.put(entity_id, record)
        logger.debug("Cached %s %s", self.kind.value, entity_id)
        return record

    def __len__(self) -> int:
        return len(self._records)


@dataclass
class MetadataCaches:
    """The three process-wide caches, keyed by entity kind."""
    episodes: MetadataCache[Episode] = field(default_factory=lambda: MetadataCache(EntityKind.EPISODE))
    drivers: MetadataCache[Driver] = field(default_factory=lambda: MetadataCache(EntityKind.DRIVER))
    teams: MetadataCache[Team] = field(default_factory=lambda: MetadataCache(EntityKind.TEAM))

    def for_kind(self, kind: EntityKind) -> MetadataCache:
        if kind is EntityKind.EPISODE:
            return self.episodes
        if kind is EntityKind.DRIVER:
            return self.drivers
        return self.teams

    async def get(self, kind: EntityKind, entity_id: str) -> tuple[object | None, bool]:
        return await self.for_kind(kind).get(entity_id)

    async def put(self, kind: EntityKind, entity_id: str, record: object) -> None:
        await self.for_kind(kind).put(entity_id, record)
