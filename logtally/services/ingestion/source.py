"""Access-log tail source feeding micro-batches to the pipelines.

The source tails the log file asynchronously, buffers raw lines, and hands
everything buffered so far to the scheduler on each ``drain()``.
"""
from __future__ import annotations

import asyncio
import logging
import os
import time
from collections.abc import AsyncGenerator
from functools import wraps
from pathlib import Path
from typing import Callable, ParamSpec

import aiofiles
import aiofiles.os


logger = logging.getLogger(__name__)

P = ParamSpec("P")


def wait(timeout_seconds: int = 60) -> Callable[[Callable[P, bool]], Callable[P, bool]]:
    """Factory Decorator to wait for a function to return True for a given amount of time.

    Args:
        timeout_seconds (int, optional): Defaults to 60.
    """
    def decorator(func: Callable[P, bool]) -> Callable[P, bool]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> bool:
            # Allow tests to bypass retry loops
            if os.getenv("DISABLE_WAIT", "false").lower() == "true":
                return bool(func(*args, **kwargs))
            timeout: float = time.time() + timeout_seconds
            while time.time() < timeout:
                if func(*args, **kwargs):
                    return True
                time.sleep(1)
            logger.error(f"Timeout of {timeout_seconds} seconds reached on {func.__name__} function.")
            return False
        return wrapper
    return decorator


class LogTailSource:
    """Tails an access log and buffers raw lines between batches.

    Example:
        source = LogTailSource(Path("/var/log/nginx/access.log"))
        await source.start()
        # ... on every batch interval ...
        lines = source.drain()
        # ... later ...
        await source.stop()
    """

    def __init__(
        self,
        log_path: Path,
        *,
        poll_interval: float = 1.0,
        start_at_end: bool = True,
    ) -> None:
        """Initialize the tail source.

        Args:
            log_path: The path to the access log file.
            poll_interval: How often to check for new log lines.
            start_at_end: Seek to the end of the file on start (tail -f behavior).
        """
        self.log_path = log_path
        self.poll_interval = poll_interval
        self.start_at_end = start_at_end

        self._buffer: list[str] = []
        self._stop_event: asyncio.Event | None = None
        self._task: asyncio.Task[None] | None = None

        # Statistics
        self.total_lines_read: int = 0
        self.total_batches: int = 0
        self.rotations: int = 0

    @property
    def is_running(self) -> bool:
        """Return True if the tail task is running."""
        return self._task is not None and not self._task.done()

    @property
    def buffered_lines(self) -> int:
        return len(self._buffer)

    @wait(timeout_seconds=60)
    def log_file_exists(self) -> bool:
        """Try for 60 seconds to check if the log file exists."""
        logger.debug("Checking if log file %s exists.", self.log_path)
        if not os.path.exists(self.log_path):
            logger.warning("Log file %s does not exist.", self.log_path)
            return False
        logger.info("Log file %s exists.", self.log_path)
        return True

    def drain(self) -> list[str]:
        """Hand off every buffered line as one batch and start a new buffer."""
        lines, self._buffer = self._buffer, []
        self.total_batches += 1
        return lines

    async def start(self) -> None:
        """Start tailing in a background task."""
        if self.is_running:
            logger.warning("Log tail already running")
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name="log-tail")
        logger.info("Started log tail on %s (poll_interval=%.1fs)", self.log_path, self.poll_interval)

    async def stop(self, timeout: float = 10.0) -> None:
        """Stop tailing gracefully.

        Args:
            timeout: Seconds to wait before force-cancelling.
        """
        if not self._stop_event or not self._task:
            return

        self._stop_event.set()
        try:
            await asyncio.wait_for(self._task, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Log tail did not stop gracefully, cancelling")
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        logger.info("Stopped log tail. Total lines read: %d", self.total_lines_read)

    async def _run(self) -> None:
        if not await asyncio.to_thread(self.log_file_exists):
            logger.error("Cannot start log tail: log file does not exist at %s", self.log_path)
            return
        try:
            async for line in self.iter_lines(start_at_end=self.start_at_end):
                if line is None:
                    continue
                self._buffer.append(line)
                self.total_lines_read += 1
        except asyncio.CancelledError:
            logger.info("Log tail cancelled")
            raise
        except Exception as e:
            logger.exception("Log tail error: %s", e)
            raise

    async def _is_rotated_async(self, prev_stat: os.stat_result) -> bool:
        """Check if the log file was rotated.

        Detects rotation via:
        - Inode change (file replaced)
        - Size decrease of >=99% (file truncated)
        """
        try:
            new_stat = await aiofiles.os.stat(self.log_path)
        except OSError as e:
            logger.warning("Could not stat log file: %s", e)
            return False

        if new_stat.st_ino != prev_stat.st_ino:
            logger.info("Log file inode changed: %s -> %s", prev_stat.st_ino, new_stat.st_ino)
            return True

        if new_stat.st_size < prev_stat.st_size and prev_stat.st_size > 0:
            decrease_pct = ((prev_stat.st_size - new_stat.st_size) / prev_stat.st_size) * 100.0
            if decrease_pct >= 99.0:
                logger.info(
                    "Log file rotated (size: %d -> %d, decrease=%.1f%%)",
                    prev_stat.st_size,
                    new_stat.st_size,
                    decrease_pct,
                )
                return True

        return False

    async def iter_lines(self, *, start_at_end: bool = True) -> AsyncGenerator[str | None, None]:
        """Async generator that tails the log file and yields raw lines.

        Yields:
            Each complete line without its trailing newline.
            None when no new line is available (idle tick).
        """
        async with aiofiles.open(self.log_path, "r", encoding="utf-8", errors="replace") as file:
            stat_result = await aiofiles.os.stat(self.log_path)
            if start_at_end:
                await file.seek(stat_result.st_size)
            else:
                await file.seek(0)

            logger.info("Streaming log file lines.")
            partial = ""

            while not (self._stop_event and self._stop_event.is_set()):
                chunk = await file.readline()

                if not chunk:
                    yield None
                    await asyncio.sleep(self.poll_interval)

                    if await self._is_rotated_async(stat_result):
                        self.rotations += 1
                        logger.info("Log rotation detected, restarting from new file.")
                        async for line in self.iter_lines(start_at_end=False):
                            yield line
                        return
                    continue

                stat_result = await aiofiles.os.stat(self.log_path)

                # A line without newline is still being written
                if not chunk.endswith("\n"):
                    partial += chunk
                    continue
                yield (partial + chunk).rstrip("\r\n")
                partial = ""
