"""
Tests for loading, overriding and migrating the INI configuration file.
"""

import pytest

from amz_cli.exceptions import ConfigurationError
from amz_cli.models.config import DEFAULT_FORBID_CHARS, DEFAULT_NAME_FORMAT
from amz_cli.storage.config_manager import ConfigManager


@pytest.fixture
def config_file(tmp_path):
    return tmp_path / "amz-cli" / "config.ini"


@pytest.fixture
def utf8_locale(monkeypatch):
    monkeypatch.setattr(
        "amz_cli.storage.config_manager.is_utf8_locale", lambda: True
    )


class TestDefaults:
    def test_missing_file_is_created(self, config_file, utf8_locale):
        config = ConfigManager(config_file).load_config()

        text = config_file.read_text(encoding="utf-8")
        assert f"name_format = {DEFAULT_NAME_FORMAT}" in text
        assert "# output_dir = ${XDG_MUSIC_DIR:-$HOME/Music}" in text

        assert config.name_format == DEFAULT_NAME_FORMAT
        assert config.output_dir is None
        assert config.forbid_chars == DEFAULT_FORBID_CHARS
        assert config.allow_uppercase is True
        assert config.max_attempts == 5
        assert config.resume is False
        assert config.config_path == str(config_file.parent)

    @pytest.mark.parametrize("utf8", [True, False])
    def test_locale_decides_utf8(self, config_file, monkeypatch, utf8):
        monkeypatch.setattr(
            "amz_cli.storage.config_manager.is_utf8_locale", lambda: utf8
        )
        assert ConfigManager(config_file).load_config().allow_utf8 is utf8

    def test_explicit_utf8_setting(self, config_file):
        config_file.parent.mkdir()
        config_file.write_text("[DEFAULT]\nallow_utf8 = yes\n")
        assert ConfigManager(config_file).load_config().allow_utf8 is True


class TestOverrides:
    def test_command_line_wins(self, config_file, utf8_locale):
        config = ConfigManager(config_file).load_config(
            {"resume": True, "max_attempts": 2, "name_format": "$title"}
        )
        assert config.resume is True
        assert config.max_attempts == 2
        assert config.name_format == "$title"

    def test_forbid_and_allow_characters(self, config_file, utf8_locale):
        config = ConfigManager(config_file).load_config(
            forbid_chars="#&", allow_chars="$&"
        )
        assert "#" in config.forbid_chars
        assert "$" not in config.forbid_chars
        assert "&" not in config.forbid_chars

    def test_default_output_dir_fills_gap(self, config_file, utf8_locale):
        config = ConfigManager(config_file).load_config(default_output_dir="/srv/music")
        assert config.output_dir == "/srv/music"

    def test_default_output_dir_does_not_override(self, config_file, utf8_locale):
        config_file.parent.mkdir()
        config_file.write_text("[DEFAULT]\noutput_dir = /home/me/Music\n")

        config = ConfigManager(config_file).load_config(default_output_dir="/srv/music")

        assert config.output_dir == "/home/me/Music"

    def test_xml_mode_implies_print_only(self, config_file, utf8_locale):
        config = ConfigManager(config_file).load_config({"print_xml": True})
        assert config.print_only is True


class TestInvalidFiles:
    def test_malformed_file(self, config_file):
        config_file.parent.mkdir()
        config_file.write_text("no section header here\n")
        with pytest.raises(ConfigurationError, match="parsing"):
            ConfigManager(config_file).load_config()

    def test_non_numeric_attempts(self, config_file, utf8_locale):
        config_file.parent.mkdir()
        config_file.write_text("[DEFAULT]\nmax_attempts = lots\n")
        with pytest.raises(ConfigurationError, match="Invalid value"):
            ConfigManager(config_file).load_config()

    def test_out_of_range_attempts(self, config_file, utf8_locale):
        with pytest.raises(ConfigurationError, match="validation failed"):
            ConfigManager(config_file).load_config({"max_attempts": 0})


class TestMigration:
    def test_missing_keys_are_added(self, config_file, utf8_locale):
        config_file.parent.mkdir()
        config_file.write_text("[DEFAULT]\nname_format = $title.mp3\n")

        config = ConfigManager(config_file).load_config()

        assert config.name_format == "$title.mp3"
        text = config_file.read_text(encoding="utf-8")
        assert "name_format = $title.mp3" in text
        assert "max_attempts = 5" in text
        assert "resume = false" in text

    def test_display_dict(self, config_file, utf8_locale):
        manager = ConfigManager(config_file)
        manager.load_config()
        settings = manager.get_display_dict()
        assert settings["allow_utf8"] == "locale"
        assert settings["max_attempts"] == "5"
