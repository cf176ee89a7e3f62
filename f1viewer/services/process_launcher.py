"""
Process Launcher

Starts external players and user commands without blocking the UI loop.
"""
import asyncio
import logging
import shutil
from typing import Sequence


logger = logging.getLogger(__name__)


class ProcessLauncher:
    """Thin wrapper over asyncio subprocesses."""

    def __init__(self) -> None:
        self._available: dict[str, bool] = {}

    async def spawn(self, argv: Sequence[str], *, capture_output: bool = False) -> asyncio.subprocess.Process:
        """
        Start a process.

        Args:
            argv: Program and arguments
            capture_output: Pipe stdout (and stderr) so it can be watched;
                otherwise output is discarded

        Raises:
            OSError: If the program cannot be started
            ValueError: If argv is empty
        """
        if not argv:
            raise ValueError("Cannot start an empty command")
        output = asyncio.subprocess.PIPE if capture_output else asyncio.subprocess.DEVNULL
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=output,
            stderr=asyncio.subprocess.STDOUT if capture_output else asyncio.subprocess.DEVNULL,
        )
        logger.debug("Started %s (pid %s)", argv[0], process.pid)
        return process

    def check_commands(self, *names: str) -> int:
        """
        Look up executables once and remember the answer.

        Returns:
            Number of executables found
        """
        found = 0
        for name in names:
            available = shutil.which(name) is not None
            self._available[name] = available
            if available:
                found += 1
            else:
                logger.info("could not find %s", name)
        return found

    def executable_available(self, name: str) -> bool:
        if name not in self._available:
            self.check_commands(name)
        return self._available[name]
