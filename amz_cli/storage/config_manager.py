"""
Manages loading, validation, and migration of the INI configuration file.
"""

import configparser
import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from amz_cli.exceptions import ConfigurationError
from amz_cli.models.config import (
    DEFAULT_FORBID_CHARS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_NAME_FORMAT,
    DownloadConfig,
    merge_forbidden_chars,
    remove_forbidden_chars,
)
from amz_cli.utils.environment import is_utf8_locale

log = logging.getLogger(__name__)

DEFAULT_CONFIG_TEXT = f"""\
## amz-cli configuration file

[DEFAULT]
## Default format for output filenames. This may contain any of
## the following variables:
##
##  ${{title}} ${{creator}} ${{album}} ${{tracknum}} ${{album_artist}}
##  ${{genre}} ${{discnum}} ${{suffix}} ${{asin}} ${{album_asin}}
##
## The name format may also contain slashes, if you'd like to
## categorize your files in subdirectories.
name_format = {DEFAULT_NAME_FORMAT}

## The base directory in which to store downloaded music.
## If unset, it defaults to the current directory.
# output_dir = ${{XDG_MUSIC_DIR:-$HOME/Music}}

## Set to true to allow uppercase in filenames,
## false to convert to lowercase.
allow_uppercase = true

## Set to true to output UTF-8 filenames, false to output ASCII only,
## locale to check the system locale setting.
allow_utf8 = locale

## The set of ASCII characters which are disallowed. (Control
## characters and slashes are always disallowed.)
forbid_chars = {DEFAULT_FORBID_CHARS}

## How many times to try each track before giving up.
max_attempts = {DEFAULT_MAX_ATTEMPTS}

## Set to true to continue partial downloads instead of saving
## a second copy next to them.
resume = false
"""

# Values written for keys missing from an older config file
MIGRATION_DEFAULTS = {
    "name_format": DEFAULT_NAME_FORMAT,
    "allow_uppercase": "true",
    "allow_utf8": "locale",
    "forbid_chars": DEFAULT_FORBID_CHARS,
    "max_attempts": str(DEFAULT_MAX_ATTEMPTS),
    "resume": "false",
}


class ConfigManager:
    """Handles all operations related to the application's INI config file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(
        self,
        cli_options: Optional[dict[str, Any]] = None,
        forbid_chars: str = "",
        allow_chars: str = "",
        default_output_dir: Optional[str] = None,
    ) -> DownloadConfig:
        """
        Loads configuration from the INI file, applies CLI overrides, and validates it.

        A missing config file is created with default settings first.

        Args:
            cli_options: A dictionary of options provided via the command line.
            forbid_chars: Characters to add to the forbidden set.
            allow_chars: Characters to remove from the forbidden set.
            default_output_dir: Output directory used only if none is
                configured in the file or on the command line.

        Returns:
            A validated DownloadConfig object.

        Raises:
            ConfigurationError: If the config file is unreadable or validation
            fails.
        """
        if not self.config_file_path.is_file():
            self.save_default_config()

        try:
            self._parser.read(self.config_file_path, encoding="utf-8")
        except configparser.Error as e:
            raise ConfigurationError(f"Error parsing configuration file: {e}") from e

        if self._migrate_if_needed():
            log.info(
                "[yellow]Configuration file was updated with new default values."
                "[/yellow]"
            )

        try:
            config_from_file = self._get_config_as_dict()
        except ValueError as e:
            raise ConfigurationError(f"Invalid value in configuration file: {e}") from e

        if cli_options:
            config_from_file.update(cli_options)

        chars = merge_forbidden_chars(config_from_file["forbid_chars"], forbid_chars)
        config_from_file["forbid_chars"] = remove_forbidden_chars(chars, allow_chars)

        if default_output_dir and not config_from_file.get("output_dir"):
            config_from_file["output_dir"] = default_output_dir

        try:
            config_dir = self.config_file_path.parent
            return DownloadConfig(**config_from_file, config_path=str(config_dir))
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_default_config(self) -> None:
        """Creates a configuration file holding the documented defaults."""
        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            self.config_file_path.write_text(DEFAULT_CONFIG_TEXT, encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(
                f"Unable to create configuration file '{self.config_file_path}': {e}"
            ) from e
        log.debug(f"Created default configuration at '{self.config_file_path}'")

    def _get_config_as_dict(self) -> dict[str, Any]:
        """Reads the 'DEFAULT' section of the INI file into a dictionary."""
        section = self._parser["DEFAULT"]

        allow_utf8 = section.get("allow_utf8", "locale").strip().lower()
        if allow_utf8 in ("locale", "uselocale"):
            utf8 = is_utf8_locale()
        else:
            utf8 = section.getboolean("allow_utf8", False)

        return {
            "name_format": section.get("name_format", DEFAULT_NAME_FORMAT),
            "output_dir": section.get("output_dir", None),
            "forbid_chars": section.get("forbid_chars", ""),
            "allow_uppercase": section.getboolean("allow_uppercase", False),
            "allow_utf8": utf8,
            "max_attempts": section.getint("max_attempts", DEFAULT_MAX_ATTEMPTS),
            "resume": section.getboolean("resume", False),
        }

    def get_display_dict(self) -> dict[str, Any]:
        """The raw settings from the config file, for display."""
        if not self._parser.defaults() and self.config_file_path.is_file():
            self._parser.read(self.config_file_path, encoding="utf-8")
        return dict(self._parser["DEFAULT"])

    def _migrate_if_needed(self) -> bool:
        """Adds missing default values to an existing config file."""
        config_section = self._parser["DEFAULT"]
        needs_saving = False

        for key in DownloadConfig.get_ini_keys():
            if key not in config_section and key in MIGRATION_DEFAULTS:
                config_section[key] = MIGRATION_DEFAULTS[key]
                needs_saving = True
                log.debug(
                    f"Migrating config: added missing key '{key}' with "
                    f"value '{config_section[key]}'."
                )

        if needs_saving:
            try:
                with open(self.config_file_path, "w", encoding="utf-8") as f:
                    self._parser.write(f)
            except OSError as e:
                log.error(f"Could not save migrated configuration file: {e}")
                return False

        return needs_saving
