"""
Helper functions for formatting data into human-readable strings.
"""

from typing import Optional

_SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_size(size: float) -> str:
    """Formats a byte count as a human-readable size (e.g., '7.4 MB')."""
    if size <= 0:
        return "0 B"
    for unit in _SIZE_UNITS[:-1]:
        if size < 1024:
            break
        size /= 1024
    else:
        unit = _SIZE_UNITS[-1]
    return f"{size:.1f} {unit}"


def format_duration(seconds: float) -> str:
    """Formats elapsed seconds as e.g. '1h 2m 3s', leaving out zero units."""
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    parts = [f"{value}{unit}" for value, unit in ((hours, "h"), (minutes, "m")) if value]
    if secs or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)


def format_track_length(duration_ms: Optional[str]) -> Optional[str]:
    """
    Formats a manifest duration (milliseconds, as text) as 'M:SS'.

    Returns None when the value is missing or not a number.
    """
    if not duration_ms or not duration_ms.strip().isdigit():
        return None
    minutes, secs = divmod(int(duration_ms.strip()) // 1000, 60)
    return f"{minutes}:{secs:02d}"
