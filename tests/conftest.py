"""
Shared fixtures for the particle morph tests.

Pygame runs with the dummy SDL drivers so surfaces, fonts and the display
work without a screen or sound card.
"""

import os

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

import numpy as np
import pytest


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def sampling_params():
    return {
        "virtual_width": 200,
        "virtual_height": 100,
        "stride": 2,
        "alpha_threshold": 128,
        "fill_ratio": 0.8,
        "fallback_points": 16,
        "tree": {"points": 300},
    }


@pytest.fixture
def config(sampling_params):
    """A small but complete configuration: one volumetric and two text states."""
    return {
        "run_control": {"seed": 7},
        "field": {
            "particle_count": 200,
            "particle_size": 2.0,
            "size_jitter": 0.0,
            "transition_rate": 0.1,
            "depth": 600.0,
            "wave_amplitude": 0.0,
            "noise_amplitude": 0.0,
        },
        "sampling": sampling_params,
        "animation": {
            "dwell_seconds": 2.0,
            "rotation_speed": 0.05,
            "states": [
                {"name": "tree", "shape": {"kind": "tree"}},
                {"name": "text1", "shape": {"kind": "text", "lines": ["HI"]}},
                {"name": "text2", "shape": {"kind": "text", "lines": ["OK"]}},
            ],
        },
        "palettes": {
            "shape": {"colors": ["#ff0000"]},
            "text": {"colors": ["#0000ff"]},
        },
    }
