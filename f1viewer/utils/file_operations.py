"""
File operation utilities

This module handles playlist downloads and file naming.
"""
import logging
import re
import sys
from pathlib import Path
from urllib.parse import urljoin

import aiofiles


logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_URI_ATTRIBUTE = re.compile(r'URI="([^"]+)"')

if sys.platform == "win32":
    _ILLEGAL_CHARACTERS = re.compile(r'[<>:"/\\|?*]')
else:
    _ILLEGAL_CHARACTERS = re.compile(r"/")


def sanitize_file_name(name: str) -> str:
    """
    Make a title usable as a file name on the current platform

    Args:
        name: Episode or perspective title

    Returns:
        Name with illegal characters replaced and whitespace collapsed
    """
    name = _ILLEGAL_CHARACTERS.sub(" ", name)
    name = _WHITESPACE.sub(" ", name)
    return name.strip()


def absolutize_playlist(content: str, playlist_url: str) -> str:
    """
    Rewrite relative segment and key URIs of an HLS playlist to absolute URLs

    The downloaded playlist is played from disk, so every reference has to
    point back to the server the playlist came from.

    Args:
        content: Playlist text
        playlist_url: URL the playlist was downloaded from

    Returns:
        Playlist text with absolute URIs
    """
    lines = []
    for line in content.splitlines():
        stripped = line.strip()
        if not stripped:
            lines.append(line)
        elif stripped.startswith("#"):
            lines.append(
                _URI_ATTRIBUTE.sub(
                    lambda match: f'URI="{urljoin(playlist_url, match.group(1))}"',
                    line,
                )
            )
        else:
            lines.append(urljoin(playlist_url, stripped))
    return "\n".join(lines) + "\n"


async def write_playlist(content: str, title: str, directory: Path | str = ".") -> Path:
    """
    Save playlist text as ``<sanitized title>.m3u8``

    Args:
        content: Playlist text
        title: Title used for the file name
        directory: Target directory (created if missing)

    Returns:
        Path of the written file
    """
    target_dir = Path(directory)
    target_dir.mkdir(parents=True, exist_ok=True)
    file_name = sanitize_file_name(title) or "playlist"
    target = target_dir / f"{file_name}.m3u8"

    async with aiofiles.open(target, "w", encoding="utf-8") as f:
        await f.write(content)

    logger.info("Saved playlist to %s (%.1f KB)", target, len(content.encode("utf-8")) / 1024)
    return target
