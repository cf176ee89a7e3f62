"""
Command Dispatcher

Runs playback commands against a resolved stream URL. Tokens containing
``$url`` receive the URL; tokens containing ``$file`` receive the path of
a playlist downloaded at most once per dispatch. One command's output may
be watched for a phrase while its node blinks.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from f1viewer.config import CommandTemplate
from f1viewer.exceptions import CatalogFetchError
from f1viewer.nodes import NodeColor, RedrawHook, TreeNodeView, no_redraw
from f1viewer.services.busy_indicator import BusyIndicator
from f1viewer.services.catalog_client import CatalogClient
from f1viewer.services.node_payloads import CommandContext
from f1viewer.services.process_launcher import ProcessLauncher
from f1viewer.utils.logging_helpers import log_command_start


logger = logging.getLogger(__name__)

URL_PLACEHOLDER = "$url"
FILE_PLACEHOLDER = "$file"
MPV_WATCHPHRASE = "Video"


def player_templates(launcher: ProcessLauncher, language: str, title: str) -> list[CommandTemplate]:
    """
    Built-in playback commands for the players found on PATH.

    Args:
        launcher: Used to look up executables
        language: Preferred audio language code
        title: Title shown by the player
    """
    templates = []
    if launcher.executable_available("mpv"):
        templates.append(
            CommandTemplate(
                title="Play with MPV",
                commands=[["mpv", URL_PLACEHOLDER, f"--alang={language}", "--start=0"]],
                watchphrase=MPV_WATCHPHRASE,
                command_to_watch=0,
            )
        )
    if launcher.executable_available("vlc"):
        templates.append(
            CommandTemplate(
                title="Play with VLC",
                commands=[["vlc", URL_PLACEHOLDER, f"--meta-title={title}"]],
            )
        )
    return templates


@dataclass(slots=True)
class DispatchResult:
    launched: list[list[str]] = field(default_factory=list)
    failed: list[list[str]] = field(default_factory=list)
    downloaded: Path | None = None
    watched: bool = False


class CommandDispatcher:
    """Expands command templates and launches them."""

    def __init__(
        self,
        client: CatalogClient,
        launcher: ProcessLauncher,
        busy: BusyIndicator,
        *,
        redraw: RedrawHook = no_redraw,
    ) -> None:
        self._client = client
        self._launcher = launcher
        self._busy = busy
        self._redraw = redraw
        self._drains: set[asyncio.Task] = set()

    async def dispatch(self, node: TreeNodeView, context: CommandContext) -> DispatchResult:
        """
        Run every command of the context's template in order.

        Without a watch the node is coloured as dispatched right away.
        With a watch this returns once the phrase was seen or the watched
        output closed; the node blinks meanwhile.

        Args:
            node: Node the command was started from
            context: Asset, template and title

        Returns:
            DispatchResult describing what was launched
        """
        template = context.template
        result = DispatchResult()

        try:
            url = await self._client.resolve_playable_url(context.asset_id)
        except CatalogFetchError as exc:
            logger.error("Could not resolve stream for '%s': %s", context.title, exc)
            return result

        watched_output: asyncio.StreamReader | None = None
        for index, command in enumerate(template.commands):
            if not command:
                continue

            try:
                argv = await self._expand(command, url, context.title, result)
            except (CatalogFetchError, OSError) as exc:
                logger.error("Could not download playlist for '%s': %s", context.title, exc)
                return result

            watch_this = template.watch_enabled and index == template.command_to_watch
            log_command_start(logger, argv)
            try:
                process = await self._launcher.spawn(argv, capture_output=watch_this)
            except (OSError, ValueError) as exc:
                logger.error("Could not start %s: %s", argv[0], exc)
                result.failed.append(argv)
                continue

            result.launched.append(argv)
            if watch_this:
                watched_output = process.stdout

        if watched_output is not None:
            result.watched = True
            await self._busy.track(node, self._watch(watched_output, template.watchphrase))
        elif not template.watch_enabled:
            node.set_color(NodeColor.DISPATCHED)
            self._redraw()
        return result

    async def _expand(
        self,
        command: Sequence[str],
        url: str,
        title: str,
        result: DispatchResult,
    ) -> list[str]:
        argv = []
        for token in command:
            if FILE_PLACEHOLDER in token:
                if result.downloaded is None:
                    result.downloaded = await self._client.download_asset(url, title)
                token = token.replace(FILE_PLACEHOLDER, str(result.downloaded))
            argv.append(token.replace(URL_PLACEHOLDER, url))
        return argv

    async def _watch(self, output: asyncio.StreamReader, watchphrase: str) -> None:
        """Log output lines until one contains watchphrase or the stream closes."""
        while True:
            line = await output.readline()
            if not line:
                logger.debug("Watched command output closed")
                return
            text = line.decode("utf-8", errors="replace").rstrip("\r\n")
            logger.info(text)
            if watchphrase in text:
                break

        # Keep reading so the process never blocks on a full pipe
        task = asyncio.create_task(self._drain(output))
        self._drains.add(task)
        task.add_done_callback(self._drains.discard)

    async def _drain(self, output: asyncio.StreamReader) -> None:
        while True:
            line = await output.readline()
            if not line:
                return
            logger.debug(line.decode("utf-8", errors="replace").rstrip("\r\n"))
