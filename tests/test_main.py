"""
End-to-end run of the frame loop with the shipped configuration, bounded
by run_control.max_steps.

Run with: python -m pytest tests/test_main.py -v
"""

import json
import logging
from pathlib import Path

import pytest

from main import main, parse_args

SHIPPED_CONFIG = Path(__file__).resolve().parent.parent / "config.json"


@pytest.fixture
def restore_logging():
    """main() reconfigures the root logger; put pytest's handlers back."""
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


@pytest.fixture
def config_path(tmp_path):
    config = json.loads(SHIPPED_CONFIG.read_text())
    config["logging"]["log_file"] = str(tmp_path / "logs" / "morph.log")
    config["run_control"].update({"seed": 3, "max_steps": 3, "log_throttle_steps": 1})
    config["field"]["particle_count"] = 120
    config["sampling"]["tree"]["points"] = 120
    overrides = config["profiles"]["compact"]["overrides"]
    overrides["field"]["particle_count"] = 120
    overrides["sampling"]["tree"]["points"] = 120
    config["visualization"].update({"window_width": 320, "window_height": 240, "fps": 1000})
    path = tmp_path / "config.json"
    path.write_text(json.dumps(config))
    return path


class TestMain:
    def test_default_config_path(self):
        assert parse_args([]).config == "config.json"

    def test_runs_until_max_steps(self, config_path, tmp_path, restore_logging):
        main(["--config", str(config_path)])
        log_text = (tmp_path / "logs" / "morph.log").read_text()
        assert "Reached max_steps (3)" in log_text
        assert "Frame 3 | state 'tree'" in log_text
        assert "Shutting Down" in log_text

    def test_missing_config_is_reported(self, tmp_path, capsys):
        main(["--config", str(tmp_path / "absent.json")])
        assert "FATAL" in capsys.readouterr().out
