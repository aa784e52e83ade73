"""Unit tests for the config module."""

import pytest

from gridmark.config import EditorSettings


class TestEditorSettings:
    """Tests for EditorSettings."""

    def test_defaults(self):
        """Test the default speed and snap settings."""
        settings = EditorSettings()
        assert settings.base_speed == 0.5
        assert settings.max_speed == 5.0
        assert settings.acceleration == 0.1
        assert settings.step_interval == 16.0
        assert settings.snap_enabled is True
        assert settings.snap_threshold == 5.0

    def test_updated_returns_new_instance(self):
        """Test updated() leaves the original alone."""
        settings = EditorSettings()
        changed = settings.updated(snap_threshold=8)
        assert changed.snap_threshold == 8
        assert settings.snap_threshold == 5.0

    @pytest.mark.parametrize(
        "changes",
        [
            {"snap_threshold": -1},
            {"base_speed": "fast"},
            {"snap_enabled": 1},
            {"max_speed": True},
            {"base_speed": 6.0},
        ],
    )
    def test_validation(self, changes):
        """Test invalid values raise ValueError."""
        with pytest.raises(ValueError):
            EditorSettings(**changes)

    def test_to_mapping(self):
        """Test the persisted mapping uses field names."""
        mapping = EditorSettings(snap_enabled=False).to_mapping()
        assert mapping["snap_enabled"] is False
        assert set(mapping) == {
            "base_speed",
            "max_speed",
            "acceleration",
            "step_interval",
            "snap_enabled",
            "snap_threshold",
        }


class TestFromMapping:
    """Tests for reading settings from a key/value store."""

    def test_camel_case_keys(self):
        """Test keys as persisted by the front end."""
        settings = EditorSettings.from_mapping(
            {"baseSpeed": 1, "maxSpeed": 20, "acceleration": 0.5, "snapEnabled": False}
        )
        assert settings.base_speed == 1
        assert settings.max_speed == 20
        assert settings.acceleration == 0.5
        assert settings.snap_enabled is False

    def test_unknown_keys_ignored(self):
        """Test foreign keys in the store are skipped."""
        settings = EditorSettings.from_mapping({"theme": "dark", "snap_threshold": 3})
        assert settings.snap_threshold == 3
        assert settings.base_speed == 0.5

    def test_round_trip(self):
        """Test to_mapping output reads back to the same settings."""
        settings = EditorSettings(snap_threshold=7.5, base_speed=1.0)
        assert EditorSettings.from_mapping(settings.to_mapping()) == settings

    def test_invalid_value(self):
        """Test bad stored values raise ValueError."""
        with pytest.raises(ValueError):
            EditorSettings.from_mapping({"snapThreshold": "near"})
