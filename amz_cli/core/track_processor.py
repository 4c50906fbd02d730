"""
Handles the processing of a single track, from naming to a file on disk.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from rich.markup import escape

from amz_cli.cli.progress_manager import ProgressManager
from amz_cli.exceptions import (
    EmptyFilenameError,
    ExitStatus,
    OutputFileError,
    TransferError,
)
from amz_cli.media import Downloader
from amz_cli.models.config import DownloadConfig
from amz_cli.models.playlist import Track
from amz_cli.models.stats import DownloadStats, TrackOutcome, TrackState
from amz_cli.utils.path import FilenameFormatter, create_dir, unique_path

log = logging.getLogger(__name__)


class TrackProcessor:
    """
    Orchestrates the naming and download of a single track.
    """

    def __init__(
        self,
        config: DownloadConfig,
        stats: DownloadStats,
        downloader: Downloader,
        progress_manager: ProgressManager,
        formatter: Optional[FilenameFormatter] = None,
    ):
        self.config = config
        self.stats = stats
        self.downloader = downloader
        self.progress_manager = progress_manager
        self.formatter = formatter or FilenameFormatter(config)

    def _pick_output_path(self, track: Track) -> str:
        path = self.formatter.resolve_output_path(track)
        if not self.config.resume and os.path.lexists(path):
            renamed = unique_path(path)
            log.warning(
                f'[yellow]"{escape(path)}" already exists; renaming new file '
                f'to "{escape(renamed)}"[/yellow]'
            )
            self.stats.tracks_renamed += 1
            path = renamed
        return path

    async def process_track(self, track: Track) -> TrackOutcome:
        """
        Manages the complete lifecycle of downloading and saving a track.

        Failures are reported in the returned outcome rather than raised,
        except malformed templates, which leave no usable name for any track
        of the playlist. A template that expands to an empty name fails only
        this track.

        Raises:
            TemplateError: The name or directory template is malformed.
        """
        outcome = TrackOutcome()

        if not track.location:
            log.error("[red]No URL provided for this track[/red]")
            outcome.state = TrackState.FAILED
            outcome.status = ExitStatus.BAD_MANIFEST
            outcome.error = "No URL provided for this track"
            return outcome

        try:
            outcome.path = self._pick_output_path(track)
        except EmptyFilenameError as e:
            log.error(f"[red]{escape(str(e))}[/red]")
            return self._fail(outcome, e.status, str(e))
        outcome.state = TrackState.PATH_RESOLVED

        if self.config.print_only:
            self.progress_manager.console.print(
                f'  Output to "{escape(outcome.path)}"', highlight=False
            )
            outcome.state = TrackState.DONE
            return outcome

        try:
            create_dir(Path(outcome.path).parent)
        except OSError as e:
            log.error(
                f"[red]Cannot create directory {escape(str(Path(outcome.path).parent))}:"
                f"[/red] {e.strerror or e}"
            )
            return self._fail(outcome, ExitStatus.DOWNLOAD_FAILED, str(e))

        if not self.config.quiet:
            log.info(f'Downloading "{escape(outcome.path)}"')

        outcome.state = TrackState.TRANSFERRING
        task_id = self.progress_manager.add_track_task(
            track.title or os.path.basename(outcome.path)
        )

        def on_progress(percent: Optional[int]) -> None:
            self.progress_manager.update_task_progress(task_id, percent)

        try:
            outcome.bytes_written = await self.downloader.download_file(
                track.location, outcome.path, on_progress
            )
        except (TransferError, OutputFileError) as e:
            self.progress_manager.remove_task(task_id, success=False)
            log.error(f"[red]✗ Failed:[/] {escape(outcome.path)} ({escape(str(e))})")
            return self._fail(outcome, e.status, str(e))

        self.progress_manager.remove_task(task_id, success=True)
        outcome.state = TrackState.DONE
        return outcome

    @staticmethod
    def _fail(outcome: TrackOutcome, status: ExitStatus, error: str) -> TrackOutcome:
        outcome.state = TrackState.FAILED
        outcome.status = status
        outcome.error = error
        return outcome
