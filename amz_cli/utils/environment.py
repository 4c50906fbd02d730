"""
Process environment helpers: XDG user directories and locale detection.
"""

import locale
import logging
import os
import re
from pathlib import Path
from typing import MutableMapping, Optional

log = logging.getLogger(__name__)

_USER_DIR_LINE = re.compile(r'^[ \t]*(XDG_[A-Za-z0-9_]*)="')


def _user_dirs_file(environ: MutableMapping[str, str]) -> Optional[Path]:
    if config_home := environ.get("XDG_CONFIG_HOME"):
        return Path(config_home) / "user-dirs.dirs"
    if home := environ.get("HOME"):
        return Path(home) / ".config" / "user-dirs.dirs"
    return None


def parse_user_dirs(text: str, home: str) -> dict[str, str]:
    """
    Parses the contents of an XDG `user-dirs.dirs` file.

    Lines look like `XDG_MUSIC_DIR="$HOME/Music"`. A leading `$HOME` is
    replaced by `home` and backslash escapes are honoured.
    """
    dirs = {}
    for line in text.splitlines():
        match = _USER_DIR_LINE.match(line)
        if not match:
            continue

        value = line[match.end() :]
        result = ""
        if value.startswith("$HOME"):
            result = home
            value = value[len("$HOME") :]

        i = 0
        while i < len(value) and value[i] != '"':
            if value[i] == "\\" and i + 1 < len(value):
                i += 1
            result += value[i]
            i += 1
        dirs[match.group(1)] = result
    return dirs


def load_user_dirs(environ: Optional[MutableMapping[str, str]] = None) -> dict[str, str]:
    """
    Exports the user's XDG directories (XDG_MUSIC_DIR etc.) into the
    environment so that name templates can refer to them.
    """
    environ = os.environ if environ is None else environ
    home = environ.get("HOME")
    path = _user_dirs_file(environ)
    if not home or path is None or not path.is_file():
        return {}

    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        log.debug(f"Could not read '{path}': {e}")
        return {}

    dirs = parse_user_dirs(text, home)
    environ.update(dirs)
    return dirs


def is_utf8_locale() -> bool:
    """True if the user's locale uses UTF-8."""
    encoding = locale.getpreferredencoding(False) or ""
    return encoding.replace("-", "").lower() == "utf8"
