"""
Unit tests for configuration loading, density profiles, color parsing
and logging setup.

Run with: python -m pytest tests/test_utils.py -v
"""

import json
import logging
from pathlib import Path

import pytest

from utils import deep_merge, load_config, parse_color, resolve_profile, setup_logging


class TestLoadConfig:
    def test_loads_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"field": {"particle_count": 10}}))
        assert load_config(str(path)) == {"field": {"particle_count": 10}}

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "absent.json"))

    def test_invalid_json_raises(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        with pytest.raises(json.JSONDecodeError):
            load_config(str(path))

    def test_shipped_config_is_valid(self):
        config = load_config(str(Path(__file__).resolve().parent.parent / "config.json"))
        assert config["animation"]["states"][0]["shape"]["kind"] == "tree"
        assert {"shape", "text"} <= set(config["palettes"])


class TestProfiles:
    @pytest.fixture
    def config(self):
        return {
            "field": {"particle_count": 1500, "particle_size": 2.5},
            "profiles": {
                "tiny": {"max_viewport": 400, "overrides": {"field": {"particle_count": 300}}},
                "compact": {"max_viewport": 768, "overrides": {"field": {"particle_count": 900}}},
            },
        }

    def test_large_viewport_keeps_base(self, config):
        assert resolve_profile(config, 1920, 1080)["field"]["particle_count"] == 1500

    def test_smallest_matching_profile_wins(self, config):
        assert resolve_profile(config, 800, 700)["field"]["particle_count"] == 900
        assert resolve_profile(config, 390, 844)["field"]["particle_count"] == 300

    def test_overrides_merge_not_replace(self, config):
        resolved = resolve_profile(config, 600, 600)
        assert resolved["field"]["particle_size"] == 2.5

    def test_input_is_not_mutated(self, config):
        resolve_profile(config, 300, 300)
        assert config["field"]["particle_count"] == 1500

    def test_deep_merge(self):
        merged = deep_merge({"a": {"b": 1, "c": 2}, "d": 3}, {"a": {"b": 5}, "e": 6})
        assert merged == {"a": {"b": 5, "c": 2}, "d": 3, "e": 6}

    def test_shipped_compact_profile_spares_default_window(self):
        config = load_config(str(Path(__file__).resolve().parent.parent / "config.json"))
        assert resolve_profile(config, 1280, 720)["field"]["particle_count"] == 1500
        assert resolve_profile(config, 390, 844)["field"]["particle_count"] == 900


class TestParseColor:
    @pytest.mark.parametrize(
        "value,expected",
        [("#4285f4", (66, 133, 244)), ("ffffff", (255, 255, 255)), ([1, 2, 3], (1, 2, 3))],
    )
    def test_valid(self, value, expected):
        assert parse_color(value) == expected

    @pytest.mark.parametrize("value", ["#fff", [1, 2], [0, 0, 256], None, "#gggggg"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_color(value)


class TestSetupLogging:
    def test_creates_log_file(self, tmp_path):
        log_file = tmp_path / "logs" / "morph.log"
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        try:
            setup_logging({"logging": {"level": "debug", "log_file": str(log_file)}})
            logging.info("hello")
            for handler in root.handlers:
                handler.flush()
            assert root.level == logging.DEBUG
            assert "hello" in log_file.read_text()
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
