"""
Pytest configuration and shared fixtures for f1viewer tests.
"""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Sequence

import pytest

from f1viewer.exceptions import CatalogFetchError, ErrorKind
from f1viewer.nodes import NodeColor, NodeSpec, NodeState
from f1viewer.schemas import (
    Driver,
    Episode,
    Event,
    SeasonList,
    Session,
    SessionStreams,
    Team,
    VodTypeList,
)
from f1viewer.services.busy_indicator import BusyIndicator
from f1viewer.services.command_dispatcher import CommandDispatcher
from f1viewer.services.metadata_cache import MetadataCaches
from f1viewer.services.tree_engine import TreeEngine
from f1viewer.utils.file_operations import write_playlist


# ---------------------------------------------------------------------------
# Tree node fake
# ---------------------------------------------------------------------------


class FakeNode:
    """In-memory node implementing the primitives the engine uses."""

    def __init__(
        self,
        label: str,
        payload: Any = None,
        color: NodeColor = NodeColor.ACTION,
        expanded: bool = False,
    ) -> None:
        self._label = label
        self._payload = payload
        self._color = color
        self._expanded = expanded
        self._selectable = True
        self._children: list[FakeNode] = []
        self.state = NodeState.UNEXPANDED
        self.label_history: list[str] = [label]
        self.color_history: list[NodeColor] = [color]
        self.attach_calls = 0

    @property
    def label(self) -> str:
        return self._label

    def set_label(self, label: str) -> None:
        self._label = label
        self.label_history.append(label)

    @property
    def color(self) -> NodeColor:
        return self._color

    def set_color(self, color: NodeColor) -> None:
        self._color = color
        self.color_history.append(color)

    @property
    def selectable(self) -> bool:
        return self._selectable

    def set_selectable(self, selectable: bool) -> None:
        self._selectable = selectable

    @property
    def expanded(self) -> bool:
        return self._expanded

    def set_expanded(self, expanded: bool) -> None:
        self._expanded = expanded

    @property
    def payload(self) -> Any:
        return self._payload

    def set_payload(self, payload: Any) -> None:
        self._payload = payload

    @property
    def children(self) -> list[FakeNode]:
        return list(self._children)

    def attach(self, specs: Sequence[NodeSpec]) -> None:
        self.attach_calls += 1
        built = []
        for spec in specs:
            child = FakeNode(spec.label, spec.payload, spec.color, spec.expanded)
            if spec.children:
                child.attach(spec.children)
            built.append(child)
        self._children = self._children + built

    def find(self, label: str) -> FakeNode:
        for child in self._children:
            if child.label == label:
                return child
        raise KeyError(label)

    @property
    def child_labels(self) -> list[str]:
        return [child.label for child in self._children]


# ---------------------------------------------------------------------------
# Catalog client fake
# ---------------------------------------------------------------------------


class FakeCatalogClient:
    """Serves canned records and counts every call."""

    def __init__(self) -> None:
        self.categories = VodTypeList()
        self.episodes: dict[str, Episode] = {}
        self.drivers: dict[str, Driver] = {}
        self.teams: dict[str, Team] = {}
        self.seasons = SeasonList()
        self.events: dict[str, Event] = {}
        self.sessions: dict[str, Session] = {}
        self.streams: dict[str, SessionStreams] = {}
        self.playable_urls: dict[str, str] = {}
        self.failing: set[str] = set()
        self.calls: list[tuple[str, str]] = []
        self.downloads: list[tuple[str, str]] = []
        self.delay = 0.0
        self.in_flight = 0
        self.peak_in_flight = 0

    async def _serve(self, method: str, key: str, table: dict):
        self.calls.append((method, key))
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1
        if key in self.failing or key not in table:
            raise CatalogFetchError(key, ErrorKind.HTTP_STATUS, f"HTTP 404 for {key}")
        return table[key]

    def count(self, method: str, key: str | None = None) -> int:
        return sum(1 for name, arg in self.calls if name == method and (key is None or arg == key))

    async def fetch_vod_categories(self) -> VodTypeList:
        self.calls.append(("fetch_vod_categories", ""))
        return self.categories

    async def fetch_episode(self, episode_id: str) -> Episode:
        return await self._serve("fetch_episode", episode_id, self.episodes)

    async def fetch_driver(self, driver_id: str) -> Driver:
        return await self._serve("fetch_driver", driver_id, self.drivers)

    async def fetch_team(self, team_id: str) -> Team:
        return await self._serve("fetch_team", team_id, self.teams)

    async def fetch_seasons(self) -> SeasonList:
        self.calls.append(("fetch_seasons", ""))
        if "seasons" in self.failing:
            raise CatalogFetchError("seasons", ErrorKind.CONNECTION)
        return self.seasons

    async def fetch_event(self, event_id: str) -> Event:
        return await self._serve("fetch_event", event_id, self.events)

    async def fetch_session(self, session_id: str) -> Session:
        return await self._serve("fetch_session", session_id, self.sessions)

    async def fetch_session_streams(self, slug: str) -> SessionStreams:
        return await self._serve("fetch_session_streams", slug, self.streams)

    async def resolve_playable_url(self, asset_id: str) -> str:
        return await self._serve("resolve_playable_url", asset_id, self.playable_urls)

    async def download_asset(self, url: str, title: str) -> Path:
        self.downloads.append((url, title))
        await asyncio.sleep(0)
        return Path("/tmp") / f"{title}.m3u8"


# ---------------------------------------------------------------------------
# Process launcher fake
# ---------------------------------------------------------------------------


class FakeProcess:
    def __init__(self, stdout: asyncio.StreamReader | None) -> None:
        self.stdout = stdout
        self.pid = 4242


class FakeLauncher:
    """Records launched argv lists; stdout of captured processes is scripted."""

    def __init__(self, executables: Sequence[str] = ("mpv",)) -> None:
        self.executables = set(executables)
        self.launched: list[list[str]] = []
        self.captured: list[bool] = []
        self.readers: list[asyncio.StreamReader] = []
        self.missing: set[str] = set()
        self.output: list[bytes] = []
        self.close_output = True

    async def spawn(self, argv, *, capture_output: bool = False) -> FakeProcess:
        if argv[0] in self.missing:
            raise FileNotFoundError(argv[0])
        self.launched.append(list(argv))
        self.captured.append(capture_output)
        reader = None
        if capture_output:
            reader = asyncio.StreamReader()
            for line in self.output:
                reader.feed_data(line)
            if self.close_output:
                reader.feed_eof()
            self.readers.append(reader)
        return FakeProcess(reader)

    def executable_available(self, name: str) -> bool:
        return name in self.executables


# ---------------------------------------------------------------------------
# Record factories
# ---------------------------------------------------------------------------


def make_episode(title: str, data_source_id: str = "", items: list[str] | None = None, **extra) -> Episode:
    return Episode(
        uid=f"ep_{title}",
        title=title,
        data_source_id=data_source_id,
        items=items if items is not None else [f"/api/assets/{title}/"],
        **extra,
    )


def make_driver(first: str, last: str, number: int) -> Driver:
    return Driver(first_name=first, last_name=last, driver_racingnumber=number)


def make_streams(*channels: dict) -> SessionStreams:
    return SessionStreams.model_validate({"objects": [{"uid": "s", "channel_urls": list(channels)}]})


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def client() -> FakeCatalogClient:
    return FakeCatalogClient()


@pytest.fixture
def caches() -> MetadataCaches:
    return MetadataCaches()


@pytest.fixture
def launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture
def busy() -> BusyIndicator:
    return BusyIndicator(interval=0.001)


@pytest.fixture
def dispatcher(client, launcher, busy) -> CommandDispatcher:
    return CommandDispatcher(client, launcher, busy)


@pytest.fixture
def engine(client, caches, dispatcher, busy, launcher) -> TreeEngine:
    return TreeEngine(client, caches, dispatcher, busy, launcher, max_concurrent_fetches=4)


@pytest.fixture
def unwritable_downloads(client, tmp_path, monkeypatch):
    """Make the client save playlists beneath a regular file."""
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")

    async def download_asset(url, title):
        client.downloads.append((url, title))
        return await write_playlist("#EXTM3U\n", title, blocker / "sub")

    monkeypatch.setattr(client, "download_asset", download_asset)
    return blocker / "sub"
