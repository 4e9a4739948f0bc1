# particle.py
"""
Manages the state of all particles in the field.

This module defines the ParticleField class, which stores per-particle
data (position, target binding, size, color, phase) in NumPy arrays, one
row per particle, and the Palette used to color them.
"""
import logging
import numpy as np
from dataclasses import dataclass
from typing import Dict, Any, List, Optional, Tuple
from constants import DEFAULT_PALETTE
from utils import parse_color

# --- Data Contracts ---
#
# class ParticleField:
#   - __init__(self, params: Dict[str, Any], width: int, height: int,
#              rng: np.random.Generator):
#     - Inputs:
#       - params: The "field" section of config.json.
#         - "particle_count": int >= 1
#         - "particle_size": float, base radius in pixels
#         - "size_jitter": float, extra random radius in [0, size_jitter)
#         - "start_spread": float, depth of the entrance scatter relative
#           to the viewport's shorter side
#       - width, height: Viewport size. Positions are centred on (0, 0).
#     - Invariants:
#       - positions: float64 (N, 3); target_index: int64 (N,), equal to
#         arange(N) and never reassigned.
#       - sizes, phases: float64 (N,); colors: uint8 (N, 3);
#         palette_index: int64 (N,).
#       - screen_xy: float64 (N, 2); screen_size: float64 (N,);
#         visible: bool (N,). Written by the kinematics step.

@dataclass(frozen=True)
class Particle:
    """A read-only snapshot of one particle."""
    index: int
    target_index: int
    position: Tuple[float, float, float]
    size: float
    color: Tuple[int, int, int]
    phase: float

class Palette:
    """
    A set of colors eligible for random assignment, with optional weights.
    """
    def __init__(self, name: str, colors: List[Any], weights: Optional[List[float]] = None):
        if not colors:
            msg = f"Configuration error: palette '{name}' has no colors."
            logging.critical(msg)
            raise ValueError(msg)
        self.name = name
        self.colors = np.array([parse_color(c) for c in colors], dtype=np.uint8)
        if weights is None:
            weights = [1.0] * len(colors)
        weights = np.asarray(weights, dtype=np.float64)
        if weights.shape != (len(colors),) or np.any(weights < 0) or weights.sum() <= 0:
            msg = (
                f"Configuration error: palette '{name}' needs one non-negative "
                f"weight per color ({len(colors)}), got {weights.tolist()}."
            )
            logging.critical(msg)
            raise ValueError(msg)
        self.weights = weights / weights.sum()

    def __len__(self) -> int:
        return len(self.colors)

    def draw(self, count: int, rng: np.random.Generator) -> np.ndarray:
        """Returns `count` palette indices drawn with the palette weights."""
        return rng.choice(len(self.colors), size=count, p=self.weights)

def load_palettes(params: Dict[str, Any]) -> Dict[str, Palette]:
    """
    Builds Palette objects from the "palettes" config section.

    Each entry is either a list of colors or {"colors": [...], "weights": [...]}.
    The "shape" and "text" palettes fall back to the default palette.
    """
    palettes = {}
    for name, entry in params.items():
        if isinstance(entry, dict):
            palettes[name] = Palette(name, entry.get('colors', []), entry.get('weights'))
        else:
            palettes[name] = Palette(name, entry)
    for name in ('shape', 'text'):
        if name not in palettes:
            logging.info(f"No '{name}' palette in config. Using default palette.")
            palettes[name] = Palette(name, DEFAULT_PALETTE)
    return palettes

class ParticleField:
    """
    A fixed-size container for all particles, stored as NumPy arrays.
    """
    def __init__(self, params: Dict[str, Any], width: int, height: int, rng: np.random.Generator):
        """
        Initializes the field with particles scattered over the viewport.

        Args:
            params (Dict[str, Any]): Field parameters from config.
            width (int): The width of the viewport.
            height (int): The height of the viewport.
            rng (np.random.Generator): Source of randomness.
        """
        self.particle_count = int(params.get('particle_count', 1500))
        if self.particle_count < 1:
            msg = f"Configuration error: particle_count must be >= 1, got {self.particle_count}."
            logging.critical(msg)
            raise ValueError(msg)

        self.width = width
        self.height = height
        base_size = float(params.get('particle_size', 2.5))
        size_jitter = float(params.get('size_jitter', 1.5))
        start_spread = float(params.get('start_spread', 0.5))

        # Scatter over the whole viewport so the first state forms from an
        # explosion of particles.
        half_depth = start_spread * min(width, height) / 2
        self.positions = rng.uniform(
            low=[-width / 2, -height / 2, -half_depth],
            high=[width / 2, height / 2, half_depth],
            size=(self.particle_count, 3)
        )
        self.target_index = np.arange(self.particle_count, dtype=np.int64)
        self.sizes = base_size + rng.random(self.particle_count) * size_jitter
        # One phase per particle, shared by every motion term (wave, noise).
        self.phases = rng.uniform(0.0, 2.0 * np.pi, self.particle_count)
        self.palette_index = np.zeros(self.particle_count, dtype=np.int64)
        self.colors = np.zeros((self.particle_count, 3), dtype=np.uint8)

        self.screen_xy = np.zeros((self.particle_count, 2), dtype=np.float64)
        self.screen_size = self.sizes.copy()
        self.visible = np.zeros(self.particle_count, dtype=np.bool_)

        logging.info(
            f"ParticleField initialized with {self.particle_count} particles "
            f"for a {width}x{height} viewport."
        )
        logging.debug(
            f"Particle arrays created. Positions shape: {self.positions.shape}, "
            f"sizes in [{self.sizes.min():.2f}, {self.sizes.max():.2f}]"
        )

    def recolor(self, palette: Palette, rng: np.random.Generator):
        """Redraws every particle's color from the palette."""
        self.palette_index = palette.draw(self.particle_count, rng)
        self.colors = palette.colors[self.palette_index]
        logging.debug(f"Field recolored from palette '{palette.name}'.")

    def particle(self, index: int) -> Particle:
        return Particle(
            index=index,
            target_index=int(self.target_index[index]),
            position=tuple(float(v) for v in self.positions[index]),
            size=float(self.sizes[index]),
            color=tuple(int(c) for c in self.colors[index]),
            phase=float(self.phases[index]),
        )
