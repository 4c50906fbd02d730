"""
Handles the resumable, retrying download of a single file.
"""

import asyncio
import logging
import os
from typing import Callable, Optional

import aiofiles
import aiofiles.os

from amz_cli.exceptions import (
    OutputFileError,
    RangeNotSatisfiableError,
    TransferError,
)

from .transport import HttpTransport

log = logging.getLogger(__name__)

# Receives a completion percentage, or None while the size is unknown.
ProgressCallback = Callable[[Optional[int]], None]

_UNREPORTED = object()


class ProgressReporter:
    """
    Converts transport byte counts into percentages for a progress callback.

    Percentages account for the bytes already on disk before the transfer
    resumed. The callback only fires when the reported value changes.
    """

    def __init__(self, offset: int, callback: Optional[ProgressCallback]):
        self.offset = offset
        self.callback = callback
        self._last = _UNREPORTED

    def __call__(self, received: int, total: Optional[int]) -> None:
        if total and total > 0:
            done = self.offset + received
            percent = int(100 * done / (self.offset + total))
        else:
            percent = None
        self.report(percent)

    def report(self, percent: Optional[int]) -> None:
        if self.callback is None or percent == self._last:
            return
        self._last = percent
        self.callback(percent)


class Downloader:
    """A file downloader that appends to its destination and retries failures."""

    def __init__(
        self,
        transport: HttpTransport,
        max_attempts: int = 5,
        retry_delay: float = 2.0,
    ):
        self.transport = transport
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay

    async def download_file(
        self,
        url: str,
        destination_path: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> int:
        """
        Downloads `url` onto the end of `destination_path`.

        The file is never truncated: each attempt resumes from the file's
        current length, so a partial file left by an earlier run or attempt
        is completed rather than restarted.

        Returns:
            The number of bytes appended.

        Raises:
            TransferError: Every attempt failed; the last failure is raised.
            OutputFileError: The destination could not be opened or written.
        """
        try:
            async with aiofiles.open(destination_path, "ab") as f:

                async def write_chunk(chunk: bytes) -> None:
                    try:
                        await f.write(chunk)
                    except OSError as e:
                        raise OutputFileError(
                            f"Error writing to {destination_path}: {e.strerror or e}"
                        ) from e

                return await self._attempt_loop(
                    url, destination_path, f, write_chunk, on_progress
                )
        except OSError as e:
            raise OutputFileError(
                f"Unable to write \"{destination_path}\" ({e.strerror or e})"
            ) from e

    async def _attempt_loop(self, url, destination_path, f, write_chunk, on_progress):
        initial_size = await aiofiles.os.path.getsize(destination_path)
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_attempts + 1):
            await f.flush()
            offset = await aiofiles.os.path.getsize(destination_path)
            reporter = ProgressReporter(offset, on_progress)

            try:
                await self.transport.fetch(url, offset, write_chunk, reporter)
                await f.flush()
                return await aiofiles.os.path.getsize(destination_path) - initial_size
            except RangeNotSatisfiableError as e:
                if offset > 0:
                    # The file is already complete; the server refuses a
                    # range that starts at its end.
                    log.debug(
                        f"'{os.path.basename(destination_path)}' already complete "
                        f"at {offset} bytes"
                    )
                    reporter.report(100)
                    return offset - initial_size
                last_error = e
            except (TransferError, OutputFileError) as e:
                last_error = e

            log.error(f"[red]Error downloading file:[/red] {last_error}")
            log.debug(
                f"Download attempt {attempt}/{self.max_attempts} for "
                f"'{os.path.basename(destination_path)}' failed"
            )
            if attempt < self.max_attempts:
                await asyncio.sleep(self.retry_delay)

        raise last_error
