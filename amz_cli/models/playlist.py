"""
Data model for a decoded .amz manifest: a playlist, its tracks, and the
URN-keyed metadata entries attached to either.
"""

from dataclasses import dataclass, field
from typing import Optional

_DMUSIC = "http://www.amazon.com/dmusic/"

# Playlist metadata URNs
PMETA_ASIN = _DMUSIC + "ASIN"
PMETA_GENRE = _DMUSIC + "primaryGenre"

# Track metadata URNs
TMETA_ALBUM_ARTIST = _DMUSIC + "albumPrimaryArtist"
TMETA_ALBUM_ASIN = _DMUSIC + "albumASIN"
TMETA_ASIN = _DMUSIC + "ASIN"
TMETA_DISC_NUM = _DMUSIC + "discNum"
TMETA_FILE_SIZE = _DMUSIC + "fileSize"
TMETA_GENRE = _DMUSIC + "primaryGenre"
TMETA_PRODUCT_TYPE = _DMUSIC + "productTypeName"
TMETA_TRACK_TYPE = _DMUSIC + "trackType"

PLAYLIST_META_LABELS = {
    PMETA_ASIN: "ASIN",
    PMETA_GENRE: "Genre",
}

TRACK_META_LABELS = {
    TMETA_ALBUM_ARTIST: "Album Artist",
    TMETA_ALBUM_ASIN: "Album ASIN",
    TMETA_ASIN: "ASIN",
    TMETA_DISC_NUM: "Disc Number",
    TMETA_FILE_SIZE: "File Size",
    TMETA_GENRE: "Genre",
    TMETA_PRODUCT_TYPE: "Product Type",
    TMETA_TRACK_TYPE: "File Type",
}


@dataclass
class MetaEntry:
    """A single URN-keyed metadata value."""

    urn: Optional[str] = None
    value: Optional[str] = None


def add_meta(entries: list[MetaEntry], entry: MetaEntry) -> MetaEntry:
    """
    Attaches a metadata entry to its owner's list.

    Entries are prepended, so the list always reads most recent first and
    `find_meta` prefers the entry that appeared last in the manifest.
    """
    entries.insert(0, entry)
    return entry


def find_meta(entries: list[MetaEntry], urn: str) -> Optional[str]:
    """Returns the value of the first entry with the given URN, if any."""
    for entry in entries:
        if entry.urn == urn:
            return entry.value
    return None


@dataclass
class Track:
    """One downloadable item of a playlist."""

    playlist: "Playlist" = field(repr=False, compare=False)
    location: Optional[str] = None
    title: Optional[str] = None
    creator: Optional[str] = None
    album: Optional[str] = None
    image_name: Optional[str] = None
    duration: Optional[str] = None
    track_num: Optional[str] = None
    meta: list[MetaEntry] = field(default_factory=list)

    def find_meta(self, urn: str) -> Optional[str]:
        return find_meta(self.meta, urn)


@dataclass
class Playlist:
    """The contents of one manifest. Owns its tracks and metadata."""

    title: Optional[str] = None
    creator: Optional[str] = None
    image_name: Optional[str] = None
    meta: list[MetaEntry] = field(default_factory=list)
    tracks: list[Track] = field(default_factory=list)

    def add_track(self) -> Track:
        """Creates a new track at the end of the playlist and returns it."""
        track = Track(playlist=self)
        self.tracks.append(track)
        return track

    def find_meta(self, urn: str) -> Optional[str]:
        return find_meta(self.meta, urn)
