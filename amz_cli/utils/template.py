"""
Expansion of output file name templates.

A template is literal text with shell-like variable references:

    $name  ${name}  ${name:-alternative}  ${name:+alternative}

Alternatives are templates themselves and may contain further references.
`parse_template` turns a string into a tree of nodes; `TemplateEvaluator`
renders a tree against one track.
"""

import string
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Mapping, Optional, Union

from amz_cli.exceptions import InvalidConditionalError, UnterminatedReferenceError
from amz_cli.models.playlist import (
    PMETA_ASIN,
    PMETA_GENRE,
    TMETA_ALBUM_ARTIST,
    TMETA_ALBUM_ASIN,
    TMETA_ASIN,
    TMETA_DISC_NUM,
    TMETA_GENRE,
    TMETA_TRACK_TYPE,
    Track,
)

_NAME_CHARS = frozenset(string.ascii_letters + string.digits + "_")


@dataclass(frozen=True)
class Literal:
    text: str


@dataclass(frozen=True)
class VarRef:
    name: str


@dataclass(frozen=True)
class DefaultRef:
    """`${name:-alternative}`: the value of `name`, or else the alternative."""

    name: str
    alternative: "Template"


@dataclass(frozen=True)
class PresentRef:
    """`${name:+alternative}`: the alternative, only if `name` has a value."""

    name: str
    alternative: "Template"


Node = Union[Literal, VarRef, DefaultRef, PresentRef]
Template = tuple[Node, ...]


class _TemplateParser:
    def __init__(self, text: str, source: str):
        self.text = text
        self.source = source

    def parse(self) -> Template:
        text = self.text
        nodes: list[Node] = []
        pos = 0

        while pos < len(text):
            dollar = text.find("$", pos)
            if dollar < 0:
                nodes.append(Literal(text[pos:]))
                break
            if dollar > pos:
                nodes.append(Literal(text[pos:dollar]))

            start = dollar + 1
            if text.startswith("{", start):
                end = self._closing_brace(start + 1)
                body = text[start + 1 : end]
                pos = end + 1
            else:
                end = start
                while end < len(text) and text[end] in _NAME_CHARS:
                    end += 1
                body = text[start:end]
                pos = end

            nodes.append(self._reference(body) if body else Literal("$"))

        return tuple(nodes)

    def _closing_brace(self, pos: int) -> int:
        depth = 1
        while pos < len(self.text):
            char = self.text[pos]
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return pos
            pos += 1
        raise UnterminatedReferenceError(f"Missing '}}' in '{self.source}'")

    def _reference(self, body: str) -> Node:
        name, colon, rest = body.partition(":")
        if not colon:
            return VarRef(body)

        operator, alternative = rest[:1], rest[1:]
        if operator == "-":
            return DefaultRef(name, _TemplateParser(alternative, self.source).parse())
        if operator == "+":
            return PresentRef(name, _TemplateParser(alternative, self.source).parse())
        raise InvalidConditionalError(
            f"Invalid expression '${{{body}}}' in '{self.source}'"
        )


@lru_cache(maxsize=64)
def parse_template(text: str) -> Template:
    """
    Parses a template string.

    Raises:
        UnterminatedReferenceError: A '${' has no matching '}'.
        InvalidConditionalError: A ':' inside a reference is not followed by
        '-' or '+'.
    """
    return _TemplateParser(text, text).parse()


def sanitize_component(
    value: str,
    allow_utf8: bool = False,
    allow_uppercase: bool = False,
    forbid_chars: str = "",
) -> str:
    """
    Makes a metadata value safe to use inside a file name.

    Each character is checked in turn: non-ASCII characters become '_'
    unless UTF-8 is allowed; '/' and control characters become '_';
    uppercase letters are lowercased unless allowed; characters in
    `forbid_chars` become '_'.
    """
    result = []
    for char in value:
        code = ord(char)
        if code > 0x7F:
            result.append(char if allow_utf8 else "_")
        elif char == "/" or code < 0x20 or code == 0x7F:
            result.append("_")
        elif "A" <= char <= "Z" and not allow_uppercase:
            result.append(char.lower())
        elif char in forbid_chars:
            result.append("_")
        else:
            result.append(char)
    return "".join(result)


def _track_number(track: Track) -> Optional[str]:
    number = track.track_num
    if number and len(number) == 1:
        return "0" + number
    return number


# name -> (value getter, default substituted for a plain reference)
VARIABLES: dict[str, tuple[Callable[[Track], Optional[str]], str]] = {
    "title": (lambda t: t.title, "Unknown"),
    "creator": (lambda t: t.creator, "Unknown"),
    "album": (lambda t: t.album, "Unknown"),
    "tracknum": (_track_number, "00"),
    "album_artist": (lambda t: t.find_meta(TMETA_ALBUM_ARTIST), "Unknown"),
    "genre": (lambda t: t.find_meta(TMETA_GENRE), "Unknown"),
    "discnum": (lambda t: t.find_meta(TMETA_DISC_NUM), "1"),
    "suffix": (lambda t: t.find_meta(TMETA_TRACK_TYPE), "mp3"),
    "asin": (lambda t: t.find_meta(TMETA_ASIN), ""),
    "album_asin": (lambda t: t.find_meta(TMETA_ALBUM_ASIN), ""),
    "amz_title": (lambda t: t.playlist.title, "Unknown"),
    "amz_creator": (lambda t: t.playlist.creator, "Unknown"),
    "amz_asin": (lambda t: t.playlist.find_meta(PMETA_ASIN), ""),
    "amz_genre": (lambda t: t.playlist.find_meta(PMETA_GENRE), "Unknown"),
}


class TemplateEvaluator:
    """Renders parsed templates for one track."""

    def __init__(
        self,
        track: Track,
        environ: Mapping[str, str],
        allow_utf8: bool = False,
        allow_uppercase: bool = False,
        forbid_chars: str = "",
    ):
        self.track = track
        self.environ = environ
        self.allow_utf8 = allow_utf8
        self.allow_uppercase = allow_uppercase
        self.forbid_chars = forbid_chars

    def lookup(self, name: str, use_default: bool) -> str:
        """
        Resolves a variable. Names outside the variable table are looked up
        in the environment and returned unsanitized.
        """
        entry = VARIABLES.get(name.lower())
        if entry is None:
            return self.environ.get(name) or ""

        getter, default = entry
        value = getter(self.track)
        if not value:
            value = default if use_default else ""
        return sanitize_component(
            value, self.allow_utf8, self.allow_uppercase, self.forbid_chars
        )

    def render(self, template: Template, prefix: str = "") -> str:
        """Renders `template` after `prefix`, returning the combined text."""
        out = [prefix] if prefix else []
        self._render_into(template, out)
        return "".join(out)

    def _render_into(self, template: Template, out: list[str]) -> None:
        for node in template:
            if isinstance(node, Literal):
                out.append(node.text)
            elif isinstance(node, VarRef):
                self._append_value(out, self.lookup(node.name, use_default=True))
            elif isinstance(node, DefaultRef):
                value = self.lookup(node.name, use_default=False)
                if value:
                    self._append_value(out, value)
                else:
                    self._render_into(node.alternative, out)
            elif self.lookup(node.name, use_default=False):
                self._render_into(node.alternative, out)

    @staticmethod
    def _append_value(out: list[str], value: str) -> None:
        # Never let a substitution start a hidden file or directory name.
        if value.startswith("."):
            text = "".join(out)
            if not text or text.endswith("/"):
                out.append("_")
        out.append(value)
