"""
The main orchestrator for reading manifests and downloading their tracks.
"""

import contextlib
import logging
import os
import sys
from pathlib import Path
from typing import Iterable, Optional

from rich.markup import escape

from amz_cli.cli.formatters import print_playlist_info, print_track_info
from amz_cli.cli.progress_manager import ProgressManager
from amz_cli.exceptions import ExitStatus, ManifestError, SideFileError
from amz_cli.manifest import decode_manifest, read_manifest
from amz_cli.media import Downloader, HttpTransport
from amz_cli.models.config import DownloadConfig
from amz_cli.models.playlist import Playlist
from amz_cli.models.stats import DownloadStats
from amz_cli.storage.side_files import SideFiles
from amz_cli.utils.path import FilenameFormatter, getbasename

from .track_processor import TrackProcessor

log = logging.getLogger(__name__)

STDIN_NAME = "-"


class DownloadManager:
    """Orchestrates the entire download process."""

    def __init__(
        self,
        config: DownloadConfig,
        transport: HttpTransport,
        progress_manager: ProgressManager,
        side_files: SideFiles,
        formatter: Optional[FilenameFormatter] = None,
    ):
        self.config = config
        self.transport = transport
        self.progress_manager = progress_manager
        self.console = progress_manager.console
        self.side_files = side_files
        self.stats = DownloadStats(dry_run=config.print_only)
        # Worst track status of the manifest being processed
        self._status = ExitStatus.OK
        self.track_processor = TrackProcessor(
            config,
            self.stats,
            Downloader(transport, config.max_attempts, config.retry_delay),
            progress_manager,
            formatter,
        )

    async def run_files(self, filenames: Iterable[str]) -> ExitStatus:
        """
        Processes each manifest file in turn. A failing manifest never stops
        the ones after it.

        Returns:
            The worst status of all manifests.
        """
        for filename in filenames:
            data, name = self._read_input(filename)
            if data is None:
                status = ExitStatus.BAD_MANIFEST
            else:
                status = await self.run_manifest(data, name)
            self.stats.record_manifest(status)
        return self.stats.status

    def _read_input(self, filename: str) -> tuple[Optional[bytes], str]:
        if filename == STDIN_NAME:
            name = f"amz-stdin-{os.getpid()}"
            try:
                return sys.stdin.buffer.read(), name
            except OSError as e:
                log.error(f"[red]Unable to read standard input:[/red] {e}")
                return None, name

        try:
            return Path(filename).read_bytes(), filename
        except OSError as e:
            log.error(f"[red]{escape(filename)}:[/red] {e.strerror or e}")
            return None, filename

    async def run_manifest(self, data: bytes, filename: str) -> ExitStatus:
        """
        Decodes one manifest and downloads every track it lists.

        Returns:
            The worst status of the manifest's tracks and of the error that
            stopped the manifest, if any.
        """
        self._status = ExitStatus.OK
        try:
            return await self._run_manifest(data, filename)
        except (ManifestError, SideFileError) as e:
            log.error(f"[red]{escape(str(e))}[/red]")
            return max(self._status, e.status)

    async def _run_manifest(self, data: bytes, filename: str) -> ExitStatus:
        if self.config.print_xml:
            markup = decode_manifest(data, filename)
            self.console.out(
                markup.decode("utf-8", errors="replace"), end="", highlight=False
            )
            return ExitStatus.OK

        basename = getbasename(filename)
        if not self.config.print_only:
            self.side_files.write_backup(data, basename)

        playlist = read_manifest(data, filename)

        with self._transcript(basename) as stream:
            self.transport.set_transcript(stream)
            try:
                return await self._process_playlist(playlist, filename)
            finally:
                self.transport.set_transcript(None)

    def _transcript(self, basename: str):
        if self.config.print_only:
            return contextlib.nullcontext()
        return self.side_files.open_transcript(basename)

    async def _process_playlist(self, playlist: Playlist, filename: str) -> ExitStatus:
        show_info = self.config.print_only or self.config.verbose
        if show_info:
            print_playlist_info(self.console, playlist, filename)

        for number, track in enumerate(playlist.tracks, 1):
            if show_info:
                print_track_info(self.console, track, number)

            outcome = await self.track_processor.process_track(track)
            if not self.config.print_only:
                self.stats.record_track(outcome)
            self._status = max(self._status, outcome.status)
        return self._status
