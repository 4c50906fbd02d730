"""
Storage Layer.

This package handles all data persistence: the configuration file and the
manifest backups and transfer transcripts kept under the config directory.
"""

from .config_manager import ConfigManager
from .side_files import SideFiles

__all__ = ["ConfigManager", "SideFiles"]
