"""
Dataclasses for tracking per-track outcomes and session statistics.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from amz_cli.exceptions import ExitStatus


class TrackState(Enum):
    """Lifecycle of a single track download."""

    IDLE = "idle"
    PATH_RESOLVED = "path_resolved"
    TRANSFERRING = "transferring"
    DONE = "done"
    FAILED = "failed"


@dataclass
class TrackOutcome:
    """The result of processing one track."""

    state: TrackState = TrackState.IDLE
    status: ExitStatus = ExitStatus.OK
    path: Optional[str] = None
    bytes_written: int = 0
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state is TrackState.DONE


@dataclass
class DownloadStats:
    """Tracks statistics for a download session."""

    manifests_total: int = 0
    manifests_succeeded: int = 0
    tracks_downloaded: int = 0
    tracks_failed: int = 0
    tracks_renamed: int = 0
    total_size_downloaded: int = 0
    dry_run: bool = False
    status: ExitStatus = ExitStatus.OK
    start_time: float = field(default_factory=time.monotonic, repr=False)

    def record_track(self, outcome: TrackOutcome) -> None:
        if outcome.succeeded:
            self.tracks_downloaded += 1
            self.total_size_downloaded += outcome.bytes_written
        else:
            self.tracks_failed += 1

    def record_manifest(self, status: ExitStatus) -> None:
        self.manifests_total += 1
        if status is ExitStatus.OK:
            self.manifests_succeeded += 1
        self.status = max(self.status, status)

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.start_time
