"""
Files kept beside the downloads for later diagnosis: a verbatim backup of
every manifest processed and a transcript of each manifest's HTTP traffic.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, TextIO

from pathvalidate import sanitize_filename

from amz_cli.exceptions import SideFileError

log = logging.getLogger(__name__)


class SideFiles:
    """Locates and writes backup and transcript files under the config dir."""

    def __init__(self, config_dir: Path):
        self.config_dir = config_dir
        self.backup_dir = config_dir / "amzfiles"
        self.log_dir = config_dir / "logs"

    @staticmethod
    def _safe_name(basename: str) -> str:
        return sanitize_filename(basename, platform="auto") or "unnamed"

    def backup_path(self, basename: str) -> Path:
        return self.backup_dir / self._safe_name(basename)

    def transcript_path(self, basename: str) -> Path:
        return self.log_dir / f"{self._safe_name(basename)}.log"

    def write_backup(self, data: bytes, basename: str) -> Path:
        """
        Stores an unmodified copy of a manifest, replacing any earlier copy
        of the same name.

        Raises:
            SideFileError: The backup could not be written.
        """
        path = self.backup_path(basename)
        try:
            path.parent.mkdir(mode=0o775, parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise SideFileError(f"Unable to write backup file '{path}': {e}") from e
        log.debug(f"Saved backup of '{basename}' to '{path}'")
        return path

    @contextmanager
    def open_transcript(self, basename: str) -> Iterator[TextIO]:
        """
        Opens a fresh transcript file for one manifest.

        Raises:
            SideFileError: The transcript could not be created.
        """
        path = self.transcript_path(basename)
        try:
            path.parent.mkdir(mode=0o775, parents=True, exist_ok=True)
            stream = open(path, "w", encoding="utf-8")  # noqa: SIM115
        except OSError as e:
            raise SideFileError(f"Unable to open log file '{path}': {e}") from e

        try:
            yield stream
        finally:
            stream.close()
