# sampler.py
"""
Turns shape descriptors into point clouds.

Flat shapes (text, the tree silhouette) are drawn onto an off-screen
Pygame surface of a fixed virtual resolution and scanned for opaque
pixels. The volumetric tree is generated analytically with NumPy. Either
way the result is a float64 array of shape (N, 3), centred on the origin
and scaled to a fraction of the viewport.
"""
import logging
import math
import pygame
import numpy as np
from typing import Dict, Any, Optional, Tuple
from constants import (
    VIRTUAL_RESOLUTION, SAMPLING_STRIDE, ALPHA_THRESHOLD, FILL_RATIO,
    FALLBACK_POINTS, GOLDEN_ANGLE
)

# --- Data Contracts ---
#
# class ShapeSampler:
#   - __init__(self, params: Dict[str, Any]):
#     - Inputs:
#       - params: The "sampling" section of config.json.
#         - "virtual_width", "virtual_height": int, raster size in pixels
#         - "stride": int >= 1, scan every Nth pixel on both axes
#         - "alpha_threshold": int, pixels with alpha above it are inside
#         - "fill_ratio": float, fraction of the viewport the shape fills
#         - "fallback_points": int >= 1, size of the empty-sample fallback
#         - "font": Optional[str], system font name (None = Pygame default)
#         - "tree": dict, default parameters of the volumetric tree
#     - Side Effects: Initializes pygame.font.
#
#   - sample(self, descriptor, viewport, rng=None, shuffle=True) -> np.ndarray:
#     - Inputs:
#       - descriptor: {"kind": "text" | "tree" | "tree_silhouette", ...}
#       - viewport: (width, height) of the final display.
#     - Outputs: A read-only float64 array of shape (N, 3), N >= 1.
#     - Invariants: Never empty. Flat shapes have z == 0. For the same
#       descriptor and viewport the length is always the same.

FLAT_KINDS = ('text', 'tree_silhouette')
VOLUMETRIC_KINDS = ('tree',)
SHAPE_KINDS = FLAT_KINDS + VOLUMETRIC_KINDS

def is_volumetric(descriptor: Dict[str, Any]) -> bool:
    return descriptor.get('kind') in VOLUMETRIC_KINDS

def fit_scale(span_x: float, span_y: float, viewport: Tuple[int, int], fill_ratio: float) -> float:
    """Aspect-preserving scale: the smaller of the width-fit and height-fit factors."""
    width, height = viewport
    return min(width * fill_ratio / span_x, height * fill_ratio / span_y)

def shuffle_points(points: np.ndarray, rng: np.random.Generator) -> np.ndarray:
    """
    Returns the points in random order.

    Kept as a separate stage so callers can inspect the scan-order set and
    so truncating the result acts as a random subsample.
    """
    return points[rng.permutation(len(points))]

def fallback_points(count: int, radius: float) -> np.ndarray:
    """A deterministic ring of `count` points evenly spaced in the z=0 plane."""
    angles = np.arange(count) * (2.0 * math.pi / count)
    points = np.zeros((count, 3), dtype=np.float64)
    points[:, 0] = np.cos(angles) * radius
    points[:, 1] = np.sin(angles) * radius
    return points

class ShapeSampler:
    """
    Rasterizes or generates shapes and converts them to centred 3D points.
    """
    def __init__(self, params: Dict[str, Any]):
        self.virtual_width = int(params.get('virtual_width', VIRTUAL_RESOLUTION[0]))
        self.virtual_height = int(params.get('virtual_height', VIRTUAL_RESOLUTION[1]))
        self.stride = int(params.get('stride', SAMPLING_STRIDE))
        self.alpha_threshold = int(params.get('alpha_threshold', ALPHA_THRESHOLD))
        self.fill_ratio = float(params.get('fill_ratio', FILL_RATIO))
        self.fallback_count = int(params.get('fallback_points', FALLBACK_POINTS))
        self.font_name = params.get('font')
        self.bold = bool(params.get('bold', True))
        self.tree_defaults = dict(params.get('tree', {}))

        problems = []
        if self.virtual_width < 1 or self.virtual_height < 1:
            problems.append("virtual resolution must be positive")
        if self.stride < 1:
            problems.append("stride must be >= 1")
        if self.fill_ratio <= 0:
            problems.append("fill_ratio must be positive")
        if self.fallback_count < 1:
            problems.append("fallback_points must be >= 1")
        if problems:
            msg = f"Configuration error in 'sampling': {'; '.join(problems)}."
            logging.critical(msg)
            raise ValueError(msg)

        if not pygame.font.get_init():
            pygame.font.init()

        logging.debug(
            f"ShapeSampler ready: {self.virtual_width}x{self.virtual_height} raster, "
            f"stride {self.stride}, alpha > {self.alpha_threshold}."
        )

    def sample(
        self,
        descriptor: Dict[str, Any],
        viewport: Tuple[int, int],
        rng: Optional[np.random.Generator] = None,
        shuffle: bool = True
    ) -> np.ndarray:
        """
        Produces the point cloud for one shape descriptor.

        Args:
            descriptor (Dict[str, Any]): Shape description from config.
            viewport (Tuple[int, int]): Final display width and height.
            rng (Optional[np.random.Generator]): Source of randomness for the
                shuffle and the volumetric generator.
            shuffle (bool): If False the raster points stay in scan order.

        Returns:
            np.ndarray: Read-only (N, 3) array of points, never empty.
        """
        kind = descriptor.get('kind')
        if kind not in SHAPE_KINDS:
            msg = f"Configuration error: unknown shape kind {kind!r}. Expected one of {SHAPE_KINDS}."
            logging.critical(msg)
            raise ValueError(msg)
        if rng is None:
            rng = np.random.default_rng()

        if kind in VOLUMETRIC_KINDS:
            points = self._generate_tree(descriptor, viewport, rng)
        else:
            surface = self.rasterize(descriptor)
            points = self._fit_to_viewport(self.scan(surface), viewport)

        if len(points) == 0:
            radius = min(viewport) * self.fill_ratio / 4
            logging.warning(
                f"Shape '{kind}' produced no points; using a {self.fallback_count}-point fallback ring."
            )
            points = fallback_points(self.fallback_count, radius)
        elif shuffle:
            points = shuffle_points(points, rng)

        points.flags.writeable = False
        logging.debug(f"Sampled {len(points)} points for shape '{kind}'.")
        return points

    # --- Raster path ---

    def rasterize(self, descriptor: Dict[str, Any]) -> pygame.Surface:
        """Draws a flat shape onto a transparent surface of the virtual resolution."""
        surface = pygame.Surface((self.virtual_width, self.virtual_height), pygame.SRCALPHA)
        surface.fill((0, 0, 0, 0))
        if descriptor['kind'] == 'text':
            self._draw_text(surface, descriptor)
        else:
            self._draw_tree_silhouette(surface)
        return surface

    def scan(self, surface: pygame.Surface) -> np.ndarray:
        """
        Returns raster (x, y) coordinates of every stride-th opaque pixel,
        row by row.
        """
        # array_alpha is indexed [x][y]; transpose so nonzero walks rows.
        alpha = pygame.surfarray.array_alpha(surface).T
        grid = alpha[::self.stride, ::self.stride]
        rows, cols = np.nonzero(grid > self.alpha_threshold)
        return np.column_stack((cols * self.stride, rows * self.stride)).astype(np.float64)

    def _fit_to_viewport(self, coords: np.ndarray, viewport: Tuple[int, int]) -> np.ndarray:
        if len(coords) == 0:
            return np.zeros((0, 3), dtype=np.float64)
        low = coords.min(axis=0)
        high = coords.max(axis=0)
        span = np.maximum(high - low, self.stride)
        scale = fit_scale(span[0], span[1], viewport, self.fill_ratio)
        points = np.zeros((len(coords), 3), dtype=np.float64)
        points[:, :2] = (coords - (low + high) / 2) * scale
        return points

    def _load_font(self, descriptor: Dict[str, Any], size: int) -> pygame.font.Font:
        name = descriptor.get('font', self.font_name)
        bold = descriptor.get('bold', self.bold)
        return pygame.font.SysFont(name, size, bold=bold)

    def _draw_text(self, surface: pygame.Surface, descriptor: Dict[str, Any]):
        lines = descriptor.get('lines')
        if lines is None:
            lines = [descriptor.get('text', '')]
        lines = [line for line in lines if line.strip()]
        if not lines:
            return

        max_width = self.virtual_width * 0.95
        font_size = max(int(self.virtual_height * 0.8 / len(lines)), 1)
        try:
            while True:
                font = self._load_font(descriptor, font_size)
                rendered = [font.render(line, True, (255, 255, 255)) for line in lines]
                widest = max(s.get_width() for s in rendered)
                if widest <= max_width or font_size <= 4:
                    break
                # Shrink proportionally, always by at least one point.
                font_size = max(min(font_size - 1, int(font_size * max_width / widest)), 4)
        except pygame.error as e:
            logging.warning(f"Could not render text {lines!r}: {e}")
            return

        total_height = sum(s.get_height() for s in rendered)
        y = (self.virtual_height - total_height) / 2
        for line_surf in rendered:
            x = (self.virtual_width - line_surf.get_width()) / 2
            surface.blit(line_surf, (int(x), int(y)))
            y += line_surf.get_height()

    def _draw_tree_silhouette(self, surface: pygame.Surface):
        # Drawn inside a centred square so the tree keeps its proportions.
        side = min(self.virtual_width, self.virtual_height)
        ox = (self.virtual_width - side) / 2
        oy = (self.virtual_height - side) / 2
        white = (255, 255, 255, 255)
        crown = [
            (ox + side * 0.5, oy + side * 0.1),
            (ox + side * 0.8, oy + side * 0.7),
            (ox + side * 0.2, oy + side * 0.7),
        ]
        pygame.draw.polygon(surface, white, crown)
        trunk = pygame.Rect(int(ox + side * 0.45), int(oy + side * 0.7), int(side * 0.1), int(side * 0.2))
        pygame.draw.rect(surface, white, trunk)

    # --- Volumetric path ---

    def _generate_tree(
        self, descriptor: Dict[str, Any], viewport: Tuple[int, int], rng: np.random.Generator
    ) -> np.ndarray:
        """
        Builds a tiered cone with a short trunk.

        Height t runs from 0 at the tip to 1 at the base of the crown. The
        tier term shrinks the radius at the top of every tier, which reads
        as layered branches once the cloud rotates.
        """
        p = dict(self.tree_defaults)
        p.update({k: v for k, v in descriptor.items() if k != 'kind'})
        count = int(p.get('points', 1500))
        power = float(p.get('height_power', 0.6))
        tiers = float(p.get('tiers', 5))
        layer_depth = float(p.get('layer_depth', 0.35))
        jitter = float(p.get('jitter', 0.15))
        base_radius = float(p.get('base_radius', 0.4))
        trunk_fraction = float(p.get('trunk_fraction', 0.06))
        trunk_height = float(p.get('trunk_height', 0.12))
        trunk_radius = float(p.get('trunk_radius', 0.05))
        azimuth = p.get('azimuth', 'spiral')

        if count <= 0 or power <= 0 or base_radius <= 0:
            logging.warning(
                f"Degenerate tree parameters (points={count}, height_power={power}, "
                f"base_radius={base_radius})."
            )
            return np.zeros((0, 3), dtype=np.float64)

        trunk_count = int(round(count * min(max(trunk_fraction, 0.0), 1.0)))
        crown_count = count - trunk_count
        total_height = 1.0 + trunk_height
        top = -total_height / 2

        t = rng.random(crown_count) ** power
        tier_phase = np.mod(t * tiers, 1.0)
        radius = base_radius * t * (1.0 - layer_depth + layer_depth * tier_phase)
        radius *= 1.0 + jitter * (rng.random(crown_count) - 0.5)
        if azimuth == 'random':
            theta = rng.uniform(0.0, 2.0 * math.pi, crown_count)
        else:
            theta = np.arange(crown_count) * GOLDEN_ANGLE

        trunk_r = trunk_radius * np.sqrt(rng.random(trunk_count))
        trunk_theta = rng.uniform(0.0, 2.0 * math.pi, trunk_count)
        trunk_y = top + 1.0 + rng.random(trunk_count) * trunk_height

        radius = np.concatenate((radius, trunk_r))
        theta = np.concatenate((theta, trunk_theta))
        y = np.concatenate((top + t, trunk_y))

        points = np.column_stack((radius * np.cos(theta), y, radius * np.sin(theta)))
        width = 2.0 * base_radius * (1.0 + jitter / 2)
        return points * fit_scale(width, total_height, viewport, self.fill_ratio)
