"""
Payloads attached to catalog tree nodes.

Every node carries exactly one of these variants; the tree engine and the
info panel dispatch on the variant with ``match``.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from f1viewer.config import CommandTemplate
from f1viewer.schemas import Channel, Episode, Event, Season, SeasonList, Session, SessionStreams


class PlaybackAction(str, Enum):
    DOWNLOAD = "Download .m3u8"
    COPY_URL = "GET URL"


@dataclass(frozen=True, slots=True)
class CategoryRef:
    """VOD category, by index into the loaded category list"""
    index: int


@dataclass(frozen=True, slots=True)
class AllSeasonsRef:
    """'Full Race Weekends' before its seasons are loaded"""


@dataclass(frozen=True, slots=True)
class SeasonListRef:
    """'Full Race Weekends' after its seasons are loaded"""
    seasons: SeasonList


@dataclass(frozen=True, slots=True)
class SeasonRef:
    season: Season


@dataclass(frozen=True, slots=True)
class EventRef:
    event: Event


@dataclass(frozen=True, slots=True)
class SessionRef:
    session: Session
    streams: SessionStreams


@dataclass(frozen=True, slots=True)
class ChannelRef:
    channel: Channel


@dataclass(frozen=True, slots=True)
class YearBucketRef:
    year: str


@dataclass(frozen=True, slots=True)
class EpisodeRef:
    episode: Episode


@dataclass(frozen=True, slots=True)
class CommandContext:
    """Everything a command dispatch needs to know about its node"""
    asset_id: str
    template: CommandTemplate
    title: str


@dataclass(frozen=True, slots=True)
class CommandRef:
    context: CommandContext


@dataclass(frozen=True, slots=True)
class ActionRef:
    action: PlaybackAction
    asset_id: str
    title: str


NodePayload = Union[
    CategoryRef,
    AllSeasonsRef,
    SeasonListRef,
    SeasonRef,
    EventRef,
    SessionRef,
    ChannelRef,
    YearBucketRef,
    EpisodeRef,
    CommandRef,
    ActionRef,
]
