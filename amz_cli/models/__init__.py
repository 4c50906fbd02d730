"""
Data Models Layer.

This package contains the structures used throughout the application: the
validated configuration, the playlist/track model built from a manifest, and
session statistics.
"""

from .config import DownloadConfig
from .playlist import MetaEntry, Playlist, Track
from .stats import DownloadStats, TrackOutcome, TrackState

__all__ = [
    "DownloadConfig",
    "DownloadStats",
    "MetaEntry",
    "Playlist",
    "Track",
    "TrackOutcome",
    "TrackState",
]
