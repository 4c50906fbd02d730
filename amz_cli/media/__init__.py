"""
Media Transfer Layer.

This package is responsible for moving track data from the store's servers
onto disk: the HTTP transport and the resumable, retrying downloader.
"""

from .downloader import Downloader, ProgressReporter
from .transport import HttpTransport

__all__ = ["Downloader", "HttpTransport", "ProgressReporter"]
