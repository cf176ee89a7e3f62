"""
Entity Resolver

Turns lists of driver or team identifiers into sorted display names,
going through the metadata caches so each entity is fetched once.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Sequence

from f1viewer.exceptions import CatalogFetchError
from f1viewer.schemas import Driver, Team
from f1viewer.services.catalog_client import CatalogClient
from f1viewer.services.fetch_types import FetchResult, count_failures
from f1viewer.services.metadata_cache import EntityKind, MetadataCache, MetadataCaches
from f1viewer.utils.logging_helpers import log_fetch_summary


logger = logging.getLogger(__name__)

DRIVER_PREFIX = "/api/driver/"
TEAM_PREFIX = "/api/team/"
# Strict classification demands identifiers longer than the driver prefix
# for both kinds, although the team prefix is two characters shorter.
MIN_IDENTIFIER_LENGTH = len(DRIVER_PREFIX) + 1


def classify_identifiers(ids: Sequence[str], *, strict_length: bool = True) -> EntityKind | None:
    """
    Decide which entity kind a homogeneous identifier list holds.

    Only the first identifier is inspected.

    Args:
        ids: Identifier list
        strict_length: Require the first identifier to be longer than the
            driver prefix for both kinds (historical behaviour). When False
            the prefix alone decides.

    Returns:
        EntityKind.DRIVER, EntityKind.TEAM or None when not recognised
    """
    if not ids:
        return None
    first = ids[0]
    if strict_length and len(first) < MIN_IDENTIFIER_LENGTH:
        return None
    if first.startswith(DRIVER_PREFIX) and len(first) > len(DRIVER_PREFIX):
        return EntityKind.DRIVER
    if first.startswith(TEAM_PREFIX) and len(first) > len(TEAM_PREFIX):
        return EntityKind.TEAM
    return None


def add_number_to_name(number: int, name: str) -> str:
    """Prefix a name with a racing number, padded so one and two digits align."""
    if number >= 10:
        return f"({number}) {name}"
    return f" ({number}) {name}"


def format_driver(driver: Driver) -> str:
    return add_number_to_name(driver.driver_racingnumber, f"{driver.first_name} {driver.last_name}")


def format_team(team: Team) -> str:
    return team.name


class EntityResolver:
    """Resolves driver and team identifiers to display names."""

    def __init__(
        self,
        client: CatalogClient,
        caches: MetadataCaches,
        *,
        strict_length: bool = True,
    ) -> None:
        self._client = client
        self._caches = caches
        self._strict_length = strict_length

    async def resolve_names(self, ids: Sequence[str]) -> list[str]:
        """
        Resolve identifiers to display names.

        One task per identifier; all are awaited before sorting, so the
        result order is lexicographic and unrelated to the input order.
        Lists that are neither drivers nor teams are returned unchanged.

        Args:
            ids: Homogeneous list of driver or team identifiers

        Returns:
            Sorted display names
        """
        kind = classify_identifiers(ids, strict_length=self._strict_length)
        if kind is EntityKind.DRIVER:
            results = await self._resolve_all(ids, self._caches.drivers, self._client.fetch_driver)
            names = [format_driver(result.value or Driver()) for result in results]
        elif kind is EntityKind.TEAM:
            results = await self._resolve_all(ids, self._caches.teams, self._client.fetch_team)
            names = [format_team(result.value or Team()) for result in results]
        else:
            return list(ids)

        log_fetch_summary(logger, kind.value, len(results) - count_failures(results), count_failures(results))
        return sorted(names)

    async def _resolve_all(
        self,
        ids: Sequence[str],
        cache: MetadataCache,
        fetch: Callable[[str], Awaitable[object]],
    ) -> list[FetchResult]:
        tasks = [asyncio.create_task(self._resolve_one(entity_id, cache, fetch)) for entity_id in ids]
        return list(await asyncio.gather(*tasks))

    async def _resolve_one(
        self,
        entity_id: str,
        cache: MetadataCache,
        fetch: Callable[[str], Awaitable[object]],
    ) -> FetchResult:
        try:
            record = await cache.fetch_through(entity_id, fetch)
        except CatalogFetchError as exc:
            logger.warning("Could not resolve %s, showing empty entry: %s", entity_id, exc)
            return FetchResult.failed(exc)
        return FetchResult(identifier=entity_id, value=record)
