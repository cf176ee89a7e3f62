"""
Info Panel

Builds the metadata rows shown next to the tree for the highlighted node.
Driver and team identifier lists are shown as resolved names.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from f1viewer.services.entity_resolver import EntityResolver
from f1viewer.services.node_payloads import (
    CategoryRef,
    ChannelRef,
    EpisodeRef,
    EventRef,
    SeasonListRef,
    SeasonRef,
    SessionRef,
)
from f1viewer.schemas import Episode, VodTypeList


logger = logging.getLogger(__name__)

SEPARATOR = "=" * 32


@dataclass(slots=True)
class InfoRow:
    title: str
    lines: list[str] = field(default_factory=list)


def _field_title(name: str) -> str:
    return name.replace("_", " ").title()


def record_rows(record: BaseModel) -> list[tuple[str, list[str]]]:
    """
    Flatten a record into (title, raw lines) pairs.

    Lists of strings become multi-line values, lists of records are
    expanded between separator rows, fields about winners are left out.
    """
    rows: list[tuple[str, list[str]]] = []
    for name in type(record).model_fields:
        if "winner" in name.lower():
            continue
        title = _field_title(name)
        value: Any = getattr(record, name)

        if isinstance(value, list):
            lines = []
            for item in value:
                if isinstance(item, BaseModel):
                    rows.append((title, [SEPARATOR]))
                    rows.extend(record_rows(item))
                    rows.append((" ", [SEPARATOR]))
                else:
                    lines.append(str(item))
            rows.append((title, lines))
        elif isinstance(value, BaseModel):
            rows.extend(record_rows(value))
        else:
            rows.append((title, [str(value)]))
    return rows


class InfoPanel:
    """Describes node payloads for display."""

    def __init__(self, resolver: EntityResolver, categories: VodTypeList | None = None) -> None:
        self._resolver = resolver
        self.categories = categories or VodTypeList()

    async def describe(self, payload: Any) -> list[InfoRow]:
        """
        Rows for a node payload; empty for payloads without metadata.

        Rows whose first value is shorter than two characters are dropped.
        """
        match payload:
            case EpisodeRef(episode=episode):
                raw = self._episode_rows(episode)
            case CategoryRef(index=index) if 0 <= index < len(self.categories.objects):
                raw = record_rows(self.categories.objects[index])
            case SeasonRef(season=record) | EventRef(event=record) | ChannelRef(channel=record):
                raw = record_rows(record)
            case SessionRef(streams=streams):
                raw = record_rows(streams)
            case SeasonListRef(seasons=seasons):
                raw = record_rows(seasons)
            case _:
                raw = []

        rows = []
        for title, lines in raw:
            if not lines or len(lines[0]) <= 1:
                continue
            rows.append(InfoRow(title=title, lines=await self._resolver.resolve_names(lines)))
        return rows

    @staticmethod
    def _episode_rows(episode: Episode) -> list[tuple[str, list[str]]]:
        return [
            ("Title", [episode.title]),
            ("Subtitle", [episode.subtitle]),
            ("Synopsis", [episode.synopsis]),
            ("Drivers", list(episode.driver_urls)),
            ("Teams", list(episode.team_urls)),
        ]
