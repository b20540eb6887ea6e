"""
Tests for gpt_image_prep.config.settings module.

This test suite covers:
- Settings loading and saving
- Default settings initialization
- Settings persistence to JSON file
- Type conversion helpers (get_bool, set_bool)
- Error handling for corrupted settings files
"""

import json

from gpt_image_prep.config import settings


class TestLoadSettings:
    """Tests for load_settings() function."""

    def test_load_defaults_when_no_file(self):
        """Test that default settings are loaded when file doesn't exist."""
        settings.settings_store.values = {}
        settings.load_settings()

        assert settings.settings_store.values["qemu_img_path"] == "qemu-img"
        assert settings.settings_store.values["sgdisk_path"] == "sgdisk"
        assert settings.settings_store.values["default_image_size"] == "30G"
        assert settings.settings_store.values["verify_after_repair"] is True

    def test_load_merges_with_defaults(self):
        """Test that loaded settings merge with defaults."""
        settings.SETTINGS_PATH.parent.mkdir(parents=True, exist_ok=True)
        settings.SETTINGS_PATH.write_text(json.dumps({"sgdisk_path": "/sbin/sgdisk"}))

        settings.settings_store.values = {}
        settings.load_settings()

        assert settings.settings_store.values["sgdisk_path"] == "/sbin/sgdisk"
        assert settings.settings_store.values["qemu_img_path"] == "qemu-img"

    def test_corrupted_file_falls_back_to_defaults(self):
        """Test that invalid JSON leaves defaults in place."""
        settings.SETTINGS_PATH.parent.mkdir(parents=True, exist_ok=True)
        settings.SETTINGS_PATH.write_text("{not json")

        settings.settings_store.values = {}
        settings.load_settings()

        assert settings.settings_store.values == settings.DEFAULT_SETTINGS

    def test_non_dict_json_is_ignored(self):
        """Test that a JSON list is ignored."""
        settings.SETTINGS_PATH.parent.mkdir(parents=True, exist_ok=True)
        settings.SETTINGS_PATH.write_text(json.dumps(["sgdisk"]))

        settings.settings_store.values = {}
        settings.load_settings()

        assert settings.settings_store.values == settings.DEFAULT_SETTINGS


class TestSaveSettings:
    """Tests for save_settings() and set_setting()."""

    def test_set_setting_persists(self):
        settings.set_setting("default_image_size", "40G")

        data = json.loads(settings.SETTINGS_PATH.read_text())
        assert data["default_image_size"] == "40G"
        assert settings.get_setting("default_image_size") == "40G"

    def test_round_trip_through_load(self):
        settings.set_setting("image_format", "raw")
        settings.set_setting("qemu_img_path", "/opt/qemu/bin/qemu-img")

        settings.settings_store.values = {}
        settings.load_settings()

        assert settings.get_setting("qemu_img_path") == "/opt/qemu/bin/qemu-img"


class TestBoolHelpers:
    """Tests for get_bool() and set_bool()."""

    def test_get_bool_default(self):
        assert settings.get_bool("missing_key", default=True) is True

    def test_set_bool_coerces(self):
        settings.set_bool("verify_after_repair", 0)

        assert settings.get_bool("verify_after_repair") is False
        assert json.loads(settings.SETTINGS_PATH.read_text())["verify_after_repair"] is False
