# simulation.py
"""
Handles particle transport between target shapes and the 3D projection.

This module defines the Simulation class, which advances the scheduler,
eases every particle toward its bound target, and projects the result to
screen space. It also provides `rebuild`, which builds a fresh particle
field and target sets for a viewport without touching a running
simulation.
"""
import logging
import numpy as np
from dataclasses import dataclass
from typing import Dict, Any, Optional, Tuple
from numba import jit
from constants import DEPTH_CONSTANT, SIZE_FLOOR, FPS
from particle import ParticleField, load_palettes
from sampler import ShapeSampler
from scheduler import StateScheduler, AnimationContext
from targets import TargetSet, build_targets
from utils import resolve_profile

# --- Data Contracts ---
#
# rebuild(config: Dict[str, Any], viewport: Tuple[int, int],
#         rng: np.random.Generator) -> Scene:
#   - Outputs: A new Scene (field, targets, kinematics) for the viewport,
#     with the viewport's density profile applied.
#   - Side Effects: None beyond drawing from rng.
#
# class Simulation:
#   - __init__(self, config: Dict[str, Any], width: int, height: int,
#              rng: Optional[np.random.Generator] = None)
#   - step(self, now: float) -> AnimationContext:
#     - Side Effects: Advances the scheduler, recolors the field on a
#       transition, eases field.positions toward the targets and writes
#       field.screen_xy, field.screen_size and field.visible.
#     - Invariants: Particle count and target bindings never change.
#       The wave and noise terms only reach the screen arrays, never
#       field.positions.
#   - resize(self, width: int, height: int) -> None:
#     - Side Effects: Replaces the scene with a single assignment. The
#       scheduler (state, clock, angle) carries over.

@jit(nopython=True)
def _lattice_numba(perm, i, j, k):
    """Pseudo-random value in [-1, 1] for an integer lattice point."""
    return perm[(perm[(perm[i & 255] + j) & 255] + k) & 255] / 127.5 - 1.0

@jit(nopython=True)
def _value_noise3_numba(perm, x, y, z):
    """
    Smooth 3D value noise in [-1, 1], trilinearly interpolated between
    lattice values with a smoothstep fade.
    """
    x0 = np.floor(x)
    y0 = np.floor(y)
    z0 = np.floor(z)
    i = int(x0)
    j = int(y0)
    k = int(z0)
    fx = x - x0
    fy = y - y0
    fz = z - z0
    u = fx * fx * (3.0 - 2.0 * fx)
    v = fy * fy * (3.0 - 2.0 * fy)
    w = fz * fz * (3.0 - 2.0 * fz)

    c000 = _lattice_numba(perm, i, j, k)
    c100 = _lattice_numba(perm, i + 1, j, k)
    c010 = _lattice_numba(perm, i, j + 1, k)
    c110 = _lattice_numba(perm, i + 1, j + 1, k)
    c001 = _lattice_numba(perm, i, j, k + 1)
    c101 = _lattice_numba(perm, i + 1, j, k + 1)
    c011 = _lattice_numba(perm, i, j + 1, k + 1)
    c111 = _lattice_numba(perm, i + 1, j + 1, k + 1)

    x00 = c000 + (c100 - c000) * u
    x10 = c010 + (c110 - c010) * u
    x01 = c001 + (c101 - c001) * u
    x11 = c011 + (c111 - c011) * u
    y0v = x00 + (x10 - x00) * v
    y1v = x01 + (x11 - x01) * v
    return y0v + (y1v - y0v) * w

@jit(nopython=True)
def _project_numba(
    positions, phases, sizes, time, center_x, center_y, depth,
    wave_amplitude, wave_frequency, noise_amplitude, noise_scale, noise_speed,
    perm, size_floor, screen_xy, screen_size, visible
):
    """
    Adds the per-particle wave and noise drift to the eased positions and
    projects them through a pinhole camera.

    Particles behind the camera (depth + z <= 0) or shrunk to the size
    floor are clamped to the floor and marked invisible for this frame.
    """
    particle_count = positions.shape[0]
    for i in range(particle_count):
        phase = phases[i]
        x = positions[i, 0] + np.sin(time * wave_frequency + phase) * wave_amplitude
        y = positions[i, 1] + np.cos(time * wave_frequency + phase) * wave_amplitude
        z = positions[i, 2]

        if noise_amplitude != 0.0:
            nx = x * noise_scale
            ny = y * noise_scale
            nz = z * noise_scale + time * noise_speed + phase
            # Offset the lattice per axis so the three drifts are uncorrelated.
            x += _value_noise3_numba(perm, nx, ny, nz) * noise_amplitude
            y += _value_noise3_numba(perm, nx + 31.7, ny, nz) * noise_amplitude
            z += _value_noise3_numba(perm, nx, ny + 47.3, nz) * noise_amplitude

        denominator = depth + z
        if denominator <= 0.0:
            screen_size[i] = size_floor
            visible[i] = False
            continue

        scale = depth / denominator
        screen_xy[i, 0] = center_x + x * scale
        screen_xy[i, 1] = center_y + y * scale
        size = sizes[i] * scale
        if size <= size_floor:
            screen_size[i] = size_floor
            visible[i] = False
        else:
            screen_size[i] = size
            visible[i] = True

def rotate_about_vertical(points: np.ndarray, angle: float) -> np.ndarray:
    """Rotates points about the y axis; y is left unchanged."""
    cos_a, sin_a = np.cos(angle), np.sin(angle)
    rotated = points.copy()
    rotated[:, 0] = points[:, 0] * cos_a - points[:, 2] * sin_a
    rotated[:, 2] = points[:, 0] * sin_a + points[:, 2] * cos_a
    return rotated

def ease_towards(positions: np.ndarray, targets: np.ndarray, rate: float) -> None:
    """Moves positions a fixed fraction of the remaining way to targets, in place."""
    positions += (targets - positions) * rate

@dataclass(frozen=True)
class Kinematics:
    """Motion and projection tunables from the "field" config section."""
    rate: float = 0.05
    delta_time_scaling: bool = False
    reference_fps: float = FPS
    depth: float = DEPTH_CONSTANT
    size_floor: float = SIZE_FLOOR
    wave_amplitude: float = 0.5
    wave_frequency: float = 2.0
    noise_amplitude: float = 0.0
    noise_scale: float = 0.01
    noise_speed: float = 0.3

    @classmethod
    def from_params(cls, params: Dict[str, Any], viewport: Optional[Tuple[int, int]] = None) -> "Kinematics":
        """
        Reads the tunables. With "depth_ratio" and a viewport the camera depth
        is relative to the shorter viewport side, so shapes that scale with
        the viewport keep the same perspective on any screen size.
        """
        depth = float(params.get('depth', cls.depth))
        depth_ratio = params.get('depth_ratio')
        if depth_ratio is not None and viewport is not None:
            depth = float(depth_ratio) * min(viewport)
        kinematics = cls(
            rate=float(params.get('transition_rate', cls.rate)),
            delta_time_scaling=bool(params.get('delta_time_scaling', cls.delta_time_scaling)),
            reference_fps=float(params.get('reference_fps', cls.reference_fps)),
            depth=depth,
            size_floor=float(params.get('size_floor', cls.size_floor)),
            wave_amplitude=float(params.get('wave_amplitude', cls.wave_amplitude)),
            wave_frequency=float(params.get('wave_frequency', cls.wave_frequency)),
            noise_amplitude=float(params.get('noise_amplitude', cls.noise_amplitude)),
            noise_scale=float(params.get('noise_scale', cls.noise_scale)),
            noise_speed=float(params.get('noise_speed', cls.noise_speed)),
        )
        problems = []
        if not 0.0 < kinematics.rate <= 1.0:
            problems.append(f"transition_rate must be in (0, 1], got {kinematics.rate}")
        if kinematics.depth <= 0:
            problems.append(f"depth must be positive, got {kinematics.depth}")
        if kinematics.size_floor <= 0:
            problems.append(f"size_floor must be positive, got {kinematics.size_floor}")
        if problems:
            msg = f"Configuration error in 'field': {'; '.join(problems)}."
            logging.critical(msg)
            raise ValueError(msg)
        return kinematics

    def frame_rate(self, dt: Optional[float]) -> float:
        """The easing rate for a frame that took `dt` seconds."""
        if not self.delta_time_scaling or dt is None:
            return self.rate
        return 1.0 - (1.0 - self.rate) ** (max(dt, 0.0) * self.reference_fps)

@dataclass(frozen=True)
class Scene:
    """Everything that depends on the viewport; replaced as a unit on resize."""
    field: ParticleField
    targets: TargetSet
    kinematics: Kinematics
    viewport: Tuple[int, int]

def rebuild(config: Dict[str, Any], viewport: Tuple[int, int], rng: np.random.Generator) -> Scene:
    """
    Builds a particle field and its target sets for a viewport.

    Does not touch any running Simulation; the caller swaps the result in.
    """
    width, height = viewport
    resolved = resolve_profile(config, width, height)
    field_params = resolved.get('field', {})
    kinematics = Kinematics.from_params(field_params, viewport)
    sampler = ShapeSampler(resolved.get('sampling', {}))
    field = ParticleField(field_params, width, height, rng)
    targets = build_targets(
        sampler,
        resolved.get('animation', {}).get('states', []),
        viewport,
        limit=field.particle_count,
        rng=rng
    )
    return Scene(field=field, targets=targets, kinematics=kinematics, viewport=(width, height))

class Simulation:
    """
    Owns the scheduler and the current scene and advances them frame by frame.
    """
    def __init__(
        self,
        config: Dict[str, Any],
        width: int,
        height: int,
        rng: Optional[np.random.Generator] = None
    ):
        """
        Initializes the scheduler, palettes and the first scene.

        Args:
            config (Dict[str, Any]): The full configuration.
            width (int): Viewport width.
            height (int): Viewport height.
            rng (Optional[np.random.Generator]): Master generator. Defaults
                to one seeded from run_control.seed.
        """
        self.config = config
        if rng is None:
            rng = np.random.default_rng(config.get('run_control', {}).get('seed'))
        self.rng = rng

        self.scheduler = StateScheduler(config.get('animation', {}))
        self.palettes = load_palettes(config.get('palettes', {}))
        for i, state in enumerate(self.scheduler.states):
            name = self.scheduler.palette_for(i)
            if name not in self.palettes:
                msg = f"Configuration error: state '{state['name']}' uses unknown palette '{name}'."
                logging.critical(msg)
                raise ValueError(msg)

        # Shuffled lattice for the ambient value noise.
        self.perm = self.rng.permutation(256).astype(np.int64)
        self.last_time: Optional[float] = None
        self.last_targets: Optional[np.ndarray] = None

        self.scene = self._prepare(rebuild(config, (width, height), self.rng))
        logging.info("Simulation initialized and configuration validated.")

    @property
    def field(self) -> ParticleField:
        return self.scene.field

    @property
    def targets(self) -> TargetSet:
        return self.scene.targets

    def _prepare(self, scene: Scene) -> Scene:
        scene.field.recolor(self.palettes[self.scheduler.palette_for()], self.rng)
        return scene

    def resize(self, width: int, height: int):
        """Rebuilds the scene for a new viewport and swaps it in."""
        if (width, height) == self.scene.viewport:
            return
        logging.info(f"Viewport changed to {width}x{height}; rebuilding particle field.")
        self.scene = self._prepare(rebuild(self.config, (width, height), self.rng))
        self.last_targets = None

    def restart(self, now: float):
        """Returns to the first state and its palette."""
        self.scheduler.restart(now)
        self.field.recolor(self.palettes[self.scheduler.palette_for()], self.rng)
        logging.info(f"Animation restarted at state '{self.scheduler.state}'.")

    def step(self, now: float) -> AnimationContext:
        """
        Executes one frame: scheduler, palette swap, easing and projection.
        """
        scene = self.scene
        field = scene.field
        kinematics = scene.kinematics

        ctx = self.scheduler.tick(now)
        if ctx.transitioned:
            field.recolor(self.palettes[ctx.palette], self.rng)

        # 1. Look up the bound target of every particle.
        targets = scene.targets.resolve(ctx.state, field.target_index)

        # 2. Only rotating states spin; flat states use their targets as-is.
        if ctx.rotating:
            targets = rotate_about_vertical(targets, ctx.angle)

        # 3. Ease toward the targets.
        dt = None if self.last_time is None else now - self.last_time
        ease_towards(field.positions, targets, kinematics.frame_rate(dt))

        # 4-5. Perturb and project to screen space.
        width, height = scene.viewport
        _project_numba(
            field.positions, field.phases, field.sizes, float(now),
            width / 2.0, height / 2.0, kinematics.depth,
            kinematics.wave_amplitude, kinematics.wave_frequency,
            kinematics.noise_amplitude, kinematics.noise_scale, kinematics.noise_speed,
            self.perm, kinematics.size_floor,
            field.screen_xy, field.screen_size, field.visible
        )

        self.last_time = now
        self.last_targets = targets
        return ctx

    def mean_target_distance(self) -> float:
        """Average distance between eased positions and the last targets."""
        if self.last_targets is None:
            return float('nan')
        return float(np.mean(np.linalg.norm(self.field.positions - self.last_targets, axis=1)))
