"""
Tests for XDG user directory discovery and locale detection.
"""

import pytest

from amz_cli.utils import environment
from amz_cli.utils.environment import is_utf8_locale, load_user_dirs, parse_user_dirs

USER_DIRS = r"""# This file is written by xdg-user-dirs-update
XDG_DESKTOP_DIR="$HOME/Desktop"
  XDG_MUSIC_DIR="$HOME/My \"Tunes\""
XDG_PUBLICSHARE_DIR="/srv/public"
not_a_dir="ignored"
XDG_BROKEN_DIR=$HOME/unquoted
"""


class TestParseUserDirs:
    def test_parses_matching_lines(self):
        dirs = parse_user_dirs(USER_DIRS, "/home/me")
        assert dirs == {
            "XDG_DESKTOP_DIR": "/home/me/Desktop",
            "XDG_MUSIC_DIR": '/home/me/My "Tunes"',
            "XDG_PUBLICSHARE_DIR": "/srv/public",
        }

    def test_empty_text(self):
        assert parse_user_dirs("", "/home/me") == {}


class TestLoadUserDirs:
    def test_exports_into_environment(self, tmp_path):
        (tmp_path / "user-dirs.dirs").write_text('XDG_MUSIC_DIR="$HOME/Music"\n')
        environ = {"HOME": "/home/me", "XDG_CONFIG_HOME": str(tmp_path)}

        dirs = load_user_dirs(environ)

        assert dirs == {"XDG_MUSIC_DIR": "/home/me/Music"}
        assert environ["XDG_MUSIC_DIR"] == "/home/me/Music"

    def test_falls_back_to_home_config(self, tmp_path):
        config = tmp_path / ".config"
        config.mkdir()
        (config / "user-dirs.dirs").write_text('XDG_MUSIC_DIR="$HOME/Music"\n')
        environ = {"HOME": str(tmp_path)}

        load_user_dirs(environ)

        assert environ["XDG_MUSIC_DIR"] == f"{tmp_path}/Music"

    def test_missing_file(self, tmp_path):
        environ = {"HOME": str(tmp_path), "XDG_CONFIG_HOME": str(tmp_path)}
        assert load_user_dirs(environ) == {}
        assert "XDG_MUSIC_DIR" not in environ

    def test_without_home(self, tmp_path):
        (tmp_path / "user-dirs.dirs").write_text('XDG_MUSIC_DIR="/music"\n')
        assert load_user_dirs({"XDG_CONFIG_HOME": str(tmp_path)}) == {}


@pytest.mark.parametrize(
    "encoding, expected",
    [("UTF-8", True), ("utf8", True), ("ANSI_X3.4-1968", False), ("", False)],
)
def test_is_utf8_locale(monkeypatch, encoding, expected):
    monkeypatch.setattr(
        environment.locale, "getpreferredencoding", lambda do_setlocale: encoding
    )
    assert is_utf8_locale() is expected
