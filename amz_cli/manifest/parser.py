"""
Builds the playlist model from manifest markup.

The markup is an XSPF-like document. Expat delivers start tag, end tag and
character data events; a bounded stack of recognised tag kinds plus a small
scope state decide where each piece of text belongs.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Union
from xml.parsers import expat

from amz_cli.exceptions import DepthExceededError, ManifestParseError
from amz_cli.models.playlist import MetaEntry, Playlist, Track, add_meta

from .decoder import decode_manifest

log = logging.getLogger(__name__)

MAX_DEPTH = 1024


class TagKind(Enum):
    UNKNOWN = "unknown"
    # A track or meta tag opened where one is already active. Everything
    # inside it is discarded.
    REJECTED = "rejected"
    ALBUM = "album"
    CREATOR = "creator"
    DURATION = "duration"
    IMAGE = "image"
    LOCATION = "location"
    META = "meta"
    PLAYLIST = "playlist"
    TITLE = "title"
    TRACK = "track"
    TRACKLIST = "tracklist"
    TRACKNUM = "trackNum"


_TAG_KINDS = {
    kind.value: kind
    for kind in TagKind
    if kind not in (TagKind.UNKNOWN, TagKind.REJECTED)
}

# Text of these tags belongs to the active track only.
_TRACK_FIELDS = {
    TagKind.ALBUM: "album",
    TagKind.DURATION: "duration",
    TagKind.LOCATION: "location",
    TagKind.TRACKNUM: "track_num",
}

# Text of these tags belongs to the active track, or to the playlist.
_SHARED_FIELDS = {
    TagKind.CREATOR: "creator",
    TagKind.IMAGE: "image_name",
    TagKind.TITLE: "title",
}


@dataclass(frozen=True)
class Idle:
    """Neither a track nor a meta entry is being populated."""


@dataclass(frozen=True)
class InTrack:
    track: Track


@dataclass(frozen=True)
class InMeta:
    """
    A meta entry is open. `track` is the track the entry belongs to, if any;
    `inner_track` is a track opened inside a playlist-level entry.
    """

    entry: MetaEntry
    track: Optional[Track] = None
    inner_track: Optional[Track] = None


Scope = Union[Idle, InTrack, InMeta]


def _active_track(scope: Scope) -> Optional[Track]:
    if isinstance(scope, InMeta):
        return scope.inner_track or scope.track
    if isinstance(scope, InTrack):
        return scope.track
    return None


def _append_text(target: object, attr: str, text: str) -> None:
    current = getattr(target, attr)
    setattr(target, attr, text if current is None else current + text)


class ManifestParser:
    """
    Single-use event handler that fills a `Playlist` from markup.

    Usage:
        playlist = ManifestParser("purchase.amz").parse(markup)
    """

    def __init__(self, filename: str, max_depth: int = MAX_DEPTH):
        self.filename = filename
        self.max_depth = max_depth
        self.playlist = Playlist()
        self._scope: Scope = Idle()
        self._stack: list[TagKind] = []
        self._rejected = 0
        self._parser = expat.ParserCreate()
        self._parser.StartElementHandler = self._handle_start_tag
        self._parser.EndElementHandler = self._handle_end_tag
        self._parser.CharacterDataHandler = self._handle_chars

    def parse(self, markup: Union[bytes, str]) -> Playlist:
        """
        Feeds the whole document to expat and returns the populated playlist.

        Raises:
            ManifestParseError: The markup is malformed.
            DepthExceededError: Elements nest deeper than `max_depth`.
        """
        try:
            self._parser.Parse(markup, True)
        except expat.ExpatError as e:
            raise ManifestParseError(
                f"Invalid XML ({expat.ErrorString(e.code)}) in {self.filename}",
                line=e.lineno,
                column=e.offset,
            ) from e
        return self.playlist

    def _handle_start_tag(self, name: str, attrs: dict[str, str]) -> None:
        if len(self._stack) >= self.max_depth:
            raise DepthExceededError(
                "Maximum stack depth exceeded while parsing AMZ file "
                f"'{self.filename}'",
                line=self._parser.CurrentLineNumber,
                column=self._parser.CurrentColumnNumber,
            )

        if self._rejected:
            kind = TagKind.UNKNOWN
        else:
            kind = _TAG_KINDS.get(name, TagKind.UNKNOWN)
        scope = self._scope

        if kind is TagKind.META:
            if isinstance(scope, InMeta):
                kind = TagKind.REJECTED
            else:
                track = _active_track(scope)
                owner = track.meta if track else self.playlist.meta
                entry = add_meta(owner, MetaEntry(urn=attrs.get("rel")))
                self._scope = InMeta(entry, track)
        elif kind is TagKind.TRACK:
            if _active_track(scope) is not None:
                kind = TagKind.REJECTED
            elif isinstance(scope, InMeta):
                self._scope = replace(scope, inner_track=self.playlist.add_track())
            else:
                self._scope = InTrack(self.playlist.add_track())

        if kind is TagKind.REJECTED:
            self._rejected += 1
        self._stack.append(kind)

    def _handle_end_tag(self, name: str) -> None:
        kind = self._stack.pop()
        if kind is TagKind.REJECTED:
            self._rejected -= 1
        elif kind is TagKind.META and isinstance(self._scope, InMeta):
            track = self._scope.track
            self._scope = InTrack(track) if track else Idle()
        elif kind is TagKind.TRACK:
            if isinstance(self._scope, InMeta):
                self._scope = replace(self._scope, inner_track=None)
            else:
                self._scope = Idle()

    def _handle_chars(self, data: str) -> None:
        if not self._stack or self._rejected:
            return
        kind = self._stack[-1]
        track = _active_track(self._scope)

        if kind in _TRACK_FIELDS:
            if track:
                _append_text(track, _TRACK_FIELDS[kind], data)
        elif kind in _SHARED_FIELDS:
            _append_text(track or self.playlist, _SHARED_FIELDS[kind], data)
        elif kind is TagKind.META and isinstance(self._scope, InMeta):
            _append_text(self._scope.entry, "value", data)


def parse_manifest(
    markup: Union[bytes, str], filename: str, max_depth: int = MAX_DEPTH
) -> Playlist:
    """Parses manifest markup into a new `Playlist`."""
    return ManifestParser(filename, max_depth).parse(markup)


def read_manifest(data: bytes, filename: str) -> Playlist:
    """Decodes a raw .amz file and parses the result."""
    playlist = parse_manifest(decode_manifest(data, filename), filename)
    log.debug(f"'{filename}': {len(playlist.tracks)} track(s)")
    return playlist
