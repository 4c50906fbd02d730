"""
Defines custom exceptions for the application to allow for more specific error handling.
"""

from enum import IntEnum


class ExitStatus(IntEnum):
    """Process exit statuses. When several apply, the highest value wins."""

    OK = 0
    ERROR = 1
    BAD_MANIFEST = 2
    SIDE_FILE_ERROR = 3
    DOWNLOAD_FAILED = 4


class AmzCliError(Exception):
    """Base exception for all application-specific errors."""

    status = ExitStatus.ERROR


class ConfigurationError(AmzCliError):
    """Raised for issues related to configuration loading or validation."""


class ManifestError(AmzCliError):
    """Base class for failures that abort processing of a single manifest."""

    status = ExitStatus.BAD_MANIFEST


class ManifestDecodeError(ManifestError):
    """Raised when a manifest cannot be turned back into markup."""


class InvalidEncodingError(ManifestDecodeError):
    """Raised when an encrypted manifest contains non-base64 data."""


class CryptoError(ManifestDecodeError):
    """Raised when the manifest cipher cannot be set up or fails to decrypt."""


class ManifestParseError(ManifestError):
    """Raised when decoded manifest markup is malformed."""

    def __init__(self, message: str, line: int = 0, column: int = 0):
        super().__init__(f"{message} (line {line}, column {column})")
        self.message = message
        self.line = line
        self.column = column


class DepthExceededError(ManifestParseError):
    """Raised when manifest markup nests deeper than the parser allows."""


class TemplateError(ManifestError):
    """Raised when an output file name template cannot be expanded."""

    status = ExitStatus.ERROR


class UnterminatedReferenceError(TemplateError):
    """Raised for a '${' without a matching '}'."""


class InvalidConditionalError(TemplateError):
    """Raised for a '${VAR:x...}' where 'x' is neither '-' nor '+'."""


class EmptyFilenameError(TemplateError):
    """Raised when a well-formed template expands to an empty file name."""


class TransferError(AmzCliError):
    """Raised when a single HTTP transfer attempt fails."""

    status = ExitStatus.DOWNLOAD_FAILED


class RangeNotSatisfiableError(TransferError):
    """Raised when the server rejects the requested resume range (HTTP 416)."""


class OutputFileError(AmzCliError):
    """Raised when an output file or its directories cannot be written."""

    status = ExitStatus.DOWNLOAD_FAILED


class SideFileError(AmzCliError):
    """Raised when a manifest backup or transcript file cannot be written."""

    status = ExitStatus.SIDE_FILE_ERROR
