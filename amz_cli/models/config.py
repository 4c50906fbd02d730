"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_NAME_FORMAT = "${tracknum} - ${title}.${suffix}"
DEFAULT_FORBID_CHARS = '!"$*:;<>?\\`|~'
DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_RETRY_DELAY = 2.0


def merge_forbidden_chars(current: str, added: str) -> str:
    """Adds characters to a forbidden set, keeping order and skipping duplicates."""
    result = current
    for char in added:
        if char not in result:
            result += char
    return result


def remove_forbidden_chars(current: str, removed: str) -> str:
    """Removes every character in `removed` from a forbidden set."""
    return "".join(char for char in current if char not in removed)


class DownloadConfig(BaseModel):
    """A validated configuration model for the application."""

    # Output naming
    output_dir: Optional[str] = None
    name_format: str = DEFAULT_NAME_FORMAT
    forbid_chars: str = ""
    allow_uppercase: bool = False
    allow_utf8: bool = False

    # Download behaviour
    resume: bool = False
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_delay: float = DEFAULT_RETRY_DELAY

    # Output modes
    quiet: bool = False
    verbose: bool = False
    print_only: bool = False
    print_xml: bool = False

    # Internal fields not loaded from INI file
    config_path: str = Field(default="", repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True

    @field_validator("name_format")
    @classmethod
    def validate_name_format(cls, v: str) -> str:
        """Validates the output file name template."""
        if not v or not v.strip():
            raise ValueError("Name format cannot be empty.")
        return v

    @field_validator("output_dir")
    @classmethod
    def validate_output_dir(cls, v: Optional[str]) -> Optional[str]:
        """Treats an empty output directory as unset."""
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("max_attempts")
    @classmethod
    def validate_attempts(cls, v: int) -> int:
        """Ensures a reasonable number of transfer attempts."""
        if v < 1 or v > 100:
            raise ValueError("Max attempts must be between 1 and 100.")
        return v

    @field_validator("retry_delay")
    @classmethod
    def validate_retry_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Retry delay cannot be negative.")
        return v

    @model_validator(mode="before")
    @classmethod
    def validate_output_modes(cls, data: Any) -> Any:
        """An XML dump never downloads anything."""
        if isinstance(data, dict) and data.get("print_xml"):
            data = {**data, "print_only": True}
        return data

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        return {
            "name_format",
            "output_dir",
            "forbid_chars",
            "allow_uppercase",
            "allow_utf8",
            "resume",
            "max_attempts",
        }
