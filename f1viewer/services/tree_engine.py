"""
Tree Population Engine

Expands catalog tree nodes on demand. Selecting a node without children
dispatches on its payload to a loader that fetches the children
concurrently, waits for all of them and attaches them in one step while
the node blinks.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Sequence

from f1viewer.config import CommandTemplate
from f1viewer.exceptions import CatalogFetchError
from f1viewer.nodes import (
    LIVE_SUFFIX,
    NO_CONTENT_SUFFIX,
    NodeColor,
    NodeSpec,
    NodeState,
    RedrawHook,
    TreeNodeView,
    no_redraw,
)
from f1viewer.schemas import Channel, Episode, Event, Season, Session, SessionStreams, VodTypeList
from f1viewer.services.busy_indicator import BusyIndicator
from f1viewer.services.catalog_client import CatalogClient
from f1viewer.services.command_dispatcher import CommandDispatcher, player_templates
from f1viewer.services.entity_resolver import add_number_to_name
from f1viewer.services.episode_organizer import organize
from f1viewer.services.fetch_types import FetchResult, count_failures
from f1viewer.services.metadata_cache import MetadataCaches
from f1viewer.services.node_payloads import (
    ActionRef,
    AllSeasonsRef,
    CategoryRef,
    ChannelRef,
    CommandContext,
    CommandRef,
    EpisodeRef,
    EventRef,
    PlaybackAction,
    SeasonListRef,
    SeasonRef,
    SessionRef,
    YearBucketRef,
)
from f1viewer.services.process_launcher import ProcessLauncher
from f1viewer.utils.logging_helpers import log_expansion_end, log_expansion_start, log_fetch_summary


logger = logging.getLogger(__name__)

FULL_RACE_WEEKENDS = "Full Race Weekends"
SESSION_UPCOMING = "upcoming"
SESSION_LIVE = "live"

PERSPECTIVE_NAMES = {
    "WIF": "Main Feed",
    "pit lane": "Pit Lane",
    "driver": "Driver Tracker",
    "data": "Data Channel",
}


def perspective_label(channel: Channel) -> str:
    name = channel.name
    if channel.driver_urls:
        name = add_number_to_name(channel.driver_urls[0].driver_racingnumber, name)
    return PERSPECTIVE_NAMES.get(name, name)


def perspective_specs(channels: Sequence[Channel]) -> list[NodeSpec]:
    """Perspective nodes, general feeds first, then driver onboards by number."""
    specs = [
        NodeSpec(label=perspective_label(channel), payload=ChannelRef(channel), color=NodeColor.ITEM)
        for channel in channels
    ]
    specs.sort(key=lambda spec: ("(" in spec.label, spec.label))
    return specs


def episode_spec(episode: Episode) -> NodeSpec:
    return NodeSpec(label=episode.title, payload=EpisodeRef(episode), color=NodeColor.ITEM)


class TreeEngine:
    """
    Populates tree nodes from the catalog.

    Node lifecycle: UNEXPANDED -> LOADING -> POPULATED, or
    UNEXPANDED -> LOADING -> NO_CONTENT (unselectable, flagged).
    Fetch failures of single children drop those children; a failed
    expansion as a whole ends in NO_CONTENT. Nothing here raises into the UI.
    """

    def __init__(
        self,
        client: CatalogClient,
        caches: MetadataCaches,
        dispatcher: CommandDispatcher,
        busy: BusyIndicator,
        launcher: ProcessLauncher,
        *,
        language: str = "en",
        custom_options: Sequence[CommandTemplate] = (),
        max_concurrent_fetches: int = 100,
        debug: bool = False,
        redraw: RedrawHook = no_redraw,
    ) -> None:
        self._client = client
        self._caches = caches
        self._dispatcher = dispatcher
        self._busy = busy
        self._launcher = launcher
        self._language = language
        self._custom_options = list(custom_options)
        self._max_concurrent_fetches = max(1, max_concurrent_fetches)
        self._debug = debug
        self._redraw = redraw
        self.categories = VodTypeList()

    async def load_root(self) -> list[NodeSpec]:
        """
        Build the top level: one node per non-empty VOD category plus
        the 'Full Race Weekends' entry.
        """
        try:
            self.categories = await self._client.fetch_vod_categories()
        except CatalogFetchError as exc:
            logger.error("Could not load VOD categories: %s", exc)
            self.categories = VodTypeList()

        specs = [
            NodeSpec(label=vod_type.name, payload=CategoryRef(index), color=NodeColor.CATEGORY)
            for index, vod_type in enumerate(self.categories.objects)
            if vod_type.content_urls
        ]
        specs.append(NodeSpec(label=FULL_RACE_WEEKENDS, payload=AllSeasonsRef(), color=NodeColor.CATEGORY))
        logger.info("Loaded %s VOD categories", len(specs) - 1)
        return specs

    async def select(self, node: TreeNodeView) -> None:
        """Handle selection of a node: toggle, expand or run its action."""
        payload = node.payload
        if payload is None or node.state in (NodeState.LOADING, NodeState.NO_CONTENT):
            return

        if node.children:
            node.set_expanded(not node.expanded)
            self._redraw()
            return

        match payload:
            case CategoryRef(index=index):
                await self._expand(node, "category", self._load_episodes(index))
            case AllSeasonsRef():
                await self._expand(node, "seasons", self._load_seasons(node))
            case SeasonRef(season=season):
                await self._expand(node, "season", self._load_events(season))
            case EventRef(event=event):
                await self._expand(node, "event", self._load_sessions(event))
            case EpisodeRef(episode=episode):
                if not episode.items:
                    logger.warning("Episode '%s' has no playable items", episode.title)
                    self._mark_no_content(node)
                    return
                self._attach(node, self._playback_specs(episode.items[0], episode.title))
            case ChannelRef(channel=channel):
                self._attach(node, self._playback_specs(channel.self_url, node.label))
            case CommandRef(context=context):
                await self._dispatcher.dispatch(node, context)
            case ActionRef(action=PlaybackAction.DOWNLOAD, asset_id=asset_id, title=title):
                await self._download(node, asset_id, title)
            case ActionRef(action=PlaybackAction.COPY_URL, asset_id=asset_id):
                await self._log_url(asset_id)
            case SeasonListRef() | YearBucketRef() | SessionRef():
                pass
            case _:
                logger.warning("Unknown node payload %r", payload)

    async def _expand(self, node: TreeNodeView, kind: str, loader: Awaitable[list[NodeSpec]]) -> None:
        label = node.label
        node.state = NodeState.LOADING
        log_expansion_start(logger, kind, label)
        try:
            specs = await self._busy.track(node, loader)
        except Exception as exc:
            logger.error("Failed to load %s '%s': %s", kind, label, exc, exc_info=True)
            specs = []

        log_expansion_end(logger, kind, label, len(specs))
        if not specs:
            self._mark_no_content(node)
            return
        self._attach(node, specs)

    def _attach(self, node: TreeNodeView, specs: list[NodeSpec]) -> None:
        node.attach(specs)
        node.set_expanded(True)
        node.state = NodeState.POPULATED
        self._redraw()

    def _mark_no_content(self, node: TreeNodeView) -> None:
        node.state = NodeState.NO_CONTENT
        node.set_color(NodeColor.NO_CONTENT)
        node.set_label(node.label + NO_CONTENT_SUFFIX)
        node.set_selectable(False)
        self._redraw()

    async def _load_episodes(self, index: int) -> list[NodeSpec]:
        if not 0 <= index < len(self.categories.objects):
            logger.warning("Category index %s out of range", index)
            return []

        episode_ids = self.categories.objects[index].content_urls
        semaphore = asyncio.Semaphore(self._max_concurrent_fetches)

        async def fetch_episode(episode_id: str) -> FetchResult[Episode]:
            async with semaphore:
                try:
                    episode = await self._caches.episodes.fetch_through(episode_id, self._client.fetch_episode)
                except CatalogFetchError as exc:
                    logger.warning("Skipping episode %s: %s", episode_id, exc)
                    return FetchResult.failed(exc)
            return FetchResult(identifier=episode_id, value=episode)

        tasks = [asyncio.create_task(fetch_episode(episode_id)) for episode_id in episode_ids]
        results = await asyncio.gather(*tasks)
        log_fetch_summary(logger, "episode", len(results) - count_failures(results), count_failures(results))

        organized = organize([result.value for result in results if result.ok])
        specs = [
            NodeSpec(
                label=bucket.year,
                payload=YearBucketRef(bucket.year),
                color=NodeColor.FOLDER,
                children=[episode_spec(episode) for episode in bucket.episodes],
            )
            for bucket in organized.buckets
        ]
        specs.extend(episode_spec(episode) for episode in organized.residual)
        return specs

    async def _load_seasons(self, node: TreeNodeView) -> list[NodeSpec]:
        seasons = await self._client.fetch_seasons()
        node.set_payload(SeasonListRef(seasons))
        return [
            NodeSpec(label=season.name, payload=SeasonRef(season), color=NodeColor.FOLDER)
            for season in seasons.seasons
        ]

    async def _load_events(self, season: Season) -> list[NodeSpec]:
        tasks = [asyncio.create_task(self._fetch_event(event_id)) for event_id in season.eventoccurrence_urls]
        results = await asyncio.gather(*tasks)
        log_fetch_summary(logger, "event", len(results) - count_failures(results), count_failures(results))

        specs = []
        for result in results:
            event = result.value
            # Only events with recorded sessions are worth showing
            if result.ok and event.sessionoccurrence_urls:
                specs.append(
                    NodeSpec(label=event.official_name or event.name, payload=EventRef(event), color=NodeColor.FOLDER)
                )
        return specs

    async def _fetch_event(self, event_id: str) -> FetchResult[Event]:
        try:
            return FetchResult(identifier=event_id, value=await self._client.fetch_event(event_id))
        except CatalogFetchError as exc:
            logger.warning("Skipping event %s: %s", event_id, exc)
            return FetchResult.failed(exc)

    async def _load_sessions(self, event: Event) -> list[NodeSpec]:
        tasks = [asyncio.create_task(self._session_spec(session_id)) for session_id in event.sessionoccurrence_urls]
        results = await asyncio.gather(*tasks)
        log_fetch_summary(logger, "session", len(results) - count_failures(results), count_failures(results))
        return [result.value for result in results if result.ok and result.value is not None]

    async def _session_spec(self, session_id: str) -> FetchResult[NodeSpec | None]:
        """Session node with its perspectives, or None when nothing is playable."""
        try:
            session = await self._client.fetch_session(session_id)
            if session.status == SESSION_UPCOMING:
                return FetchResult(identifier=session_id)
            streams = await self._client.fetch_session_streams(session.slug)
        except CatalogFetchError as exc:
            logger.warning("Skipping session %s: %s", session_id, exc)
            return FetchResult.failed(exc)

        children = perspective_specs(streams.channels)
        if not children:
            logger.info("Session '%s' has no perspectives", session.name)
            return FetchResult(identifier=session_id)
        return FetchResult(identifier=session_id, value=self._session_node(session, streams, children))

    def _session_node(self, session: Session, streams: SessionStreams, children: list[NodeSpec]) -> NodeSpec:
        spec = NodeSpec(
            label=session.name,
            payload=SessionRef(session, streams),
            color=NodeColor.FOLDER,
            children=children,
        )
        if session.status == SESSION_LIVE:
            spec.label = session.name + LIVE_SUFFIX
            spec.color = NodeColor.LIVE
        return spec

    def _playback_specs(self, asset_id: str, title: str) -> list[NodeSpec]:
        """Action nodes offered under an episode or perspective."""
        templates = [option for option in self._custom_options if option.commands]
        templates.extend(player_templates(self._launcher, self._language, title))

        specs = [
            NodeSpec(
                label=template.title,
                payload=CommandRef(CommandContext(asset_id=asset_id, template=template, title=title)),
                color=NodeColor.ACTION,
            )
            for template in templates
        ]
        specs.append(
            NodeSpec(
                label=PlaybackAction.DOWNLOAD.value,
                payload=ActionRef(PlaybackAction.DOWNLOAD, asset_id, title),
                color=NodeColor.ACTION,
            )
        )
        if self._debug:
            specs.append(
                NodeSpec(
                    label=PlaybackAction.COPY_URL.value,
                    payload=ActionRef(PlaybackAction.COPY_URL, asset_id, title),
                    color=NodeColor.ACTION,
                )
            )
        return specs

    async def _download(self, node: TreeNodeView, asset_id: str, title: str) -> None:
        node.set_color(NodeColor.DISPATCHED)
        self._redraw()
        try:
            url = await self._client.resolve_playable_url(asset_id)
            path = await self._busy.track(node, self._client.download_asset(url, title))
        except (CatalogFetchError, OSError) as exc:
            logger.error("Download of '%s' failed: %s", title, exc)
            return
        logger.info("Downloaded '%s' to %s", title, path)

    async def _log_url(self, asset_id: str) -> None:
        try:
            url = await self._client.resolve_playable_url(asset_id)
        except CatalogFetchError as exc:
            logger.error("Could not resolve %s: %s", asset_id, exc)
            return
        logger.info(url)
