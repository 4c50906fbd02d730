"""
Manifest Layer.

This package reads .amz purchase files: `decoder` recovers the markup from the
obfuscated file format and `parser` turns that markup into a `Playlist`.
"""

from .decoder import decode_manifest
from .parser import ManifestParser, parse_manifest, read_manifest

__all__ = ["ManifestParser", "decode_manifest", "parse_manifest", "read_manifest"]
