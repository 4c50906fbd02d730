"""
Utilities for handling output file paths.
"""

import os
from pathlib import Path
from typing import Mapping, Optional

from amz_cli.exceptions import EmptyFilenameError
from amz_cli.models.config import DownloadConfig
from amz_cli.models.playlist import Track

from .template import TemplateEvaluator, parse_template


def create_dir(directory_path: Path) -> None:
    """Creates a directory and its parents if they do not already exist."""
    directory_path.mkdir(mode=0o777, parents=True, exist_ok=True)


def unique_path(path: str) -> str:
    """Returns `path` with the first free '.N' suffix appended."""
    n = 1
    while os.path.lexists(f"{path}.{n}"):
        n += 1
    return f"{path}.{n}"


def getbasename(filename: str) -> str:
    """The last '/'-separated component of `filename`."""
    return filename.rsplit("/", 1)[-1]


class FilenameFormatter:
    """
    Builds output paths for tracks from the configured directory and name
    templates.
    """

    def __init__(
        self, config: DownloadConfig, environ: Optional[Mapping[str, str]] = None
    ) -> None:
        self.config = config
        self.environ = os.environ if environ is None else environ

    def _evaluator(self, track: Track) -> TemplateEvaluator:
        return TemplateEvaluator(
            track,
            self.environ,
            allow_utf8=self.config.allow_utf8,
            allow_uppercase=self.config.allow_uppercase,
            forbid_chars=self.config.forbid_chars,
        )

    def expand(self, template: str, track: Track, prefix: str = "") -> str:
        """Expands `template` for `track`, appending the result to `prefix`."""
        return self._evaluator(track).render(parse_template(template), prefix)

    def resolve_output_path(self, track: Track) -> str:
        """
        Generates the output path for a track.

        The output directory is ignored when the name template expands to an
        absolute path.

        Raises:
            TemplateError: A template is malformed.
            EmptyFilenameError: The expanded name is empty.
        """
        name = self.expand(self.config.name_format, track)
        output_dir = self.config.output_dir

        if output_dir and not os.path.isabs(name):
            directory = self.expand(output_dir, track)
            if directory and not directory.endswith("/"):
                directory += "/"
            name = self.expand(self.config.name_format, track, prefix=directory)

        if not name:
            raise EmptyFilenameError("No output filename specified")
        return name
