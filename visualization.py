# visualization.py
"""
Handles the rendering of the particle field using Pygame.
"""
import logging
import pygame
from constants import (
    BACKGROUND_COLOR, CAPTION, DEFAULT_WINDOW_SIZE, FPS, GLOW_ALPHA,
    GLOW_RATIO, MAX_HALO_RADIUS, TRAIL_ALPHA
)
from typing import Dict, Any, Optional, Tuple
from utils import parse_color

# Forward reference for type hinting to avoid circular import
from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from scheduler import AnimationContext
    from simulation import Simulation


# --- Data Contracts ---
#
# class Visualizer:
#   - __init__(self, params: Optional[Dict[str, Any]] = None):
#     - Inputs:
#       - params: The "visualization" section of config.json.
#         - "fullscreen": bool
#         - "window_width", "window_height": int
#         - "background_color", "trail_alpha", "glow", "glow_ratio",
#           "glow_alpha", "show_hud", "fps"
#     - Side Effects: Initializes Pygame and creates a resizable display.
#
#   - draw(self, simulation: "Simulation", ctx: "AnimationContext") -> bool:
#     - Outputs: False if the user has quit, True otherwise.
#     - Side Effects: Handles events (quit, resize, restart, HUD toggle),
#       fades the previous frame, draws every visible particle, flips the
#       display and waits for the next frame.

class Visualizer:
    """
    Renders the projected particle field with trails and glow.
    """
    def __init__(self, params: Optional[Dict[str, Any]] = None):
        """
        Initializes Pygame and the display window.
        """
        params = params if params is not None else {}
        pygame.init()
        pygame.font.init()

        self.fullscreen = bool(params.get('fullscreen', False))
        if self.fullscreen:
            display_info = pygame.display.Info()
            size = (display_info.current_w, display_info.current_h)
            self.display_flags = pygame.FULLSCREEN
        else:
            size = (
                int(params.get('window_width', DEFAULT_WINDOW_SIZE[0])),
                int(params.get('window_height', DEFAULT_WINDOW_SIZE[1]))
            )
            self.display_flags = pygame.RESIZABLE
        self.screen = pygame.display.set_mode(size, self.display_flags)
        self.width, self.height = self.screen.get_size()

        pygame.display.set_caption(params.get('caption', CAPTION))
        self.clock = pygame.time.Clock()
        self.fps = int(params.get('fps', FPS))

        try:
            self.background_color = parse_color(params.get('background_color', BACKGROUND_COLOR))
        except ValueError as e:
            logging.error(f"Invalid background color in config: {e}. Falling back to black.")
            self.background_color = BACKGROUND_COLOR
        self.trail_alpha = int(params.get('trail_alpha', TRAIL_ALPHA))
        self.trail_surface = self._make_trail_surface()

        self.glow = bool(params.get('glow', True))
        self.glow_ratio = float(params.get('glow_ratio', GLOW_RATIO))
        self.glow_alpha = int(params.get('glow_alpha', GLOW_ALPHA))
        # Halo surfaces are rendered on first use per (color, radius).
        self.halo_surfaces: Dict[Tuple[Tuple[int, int, int], int], pygame.Surface] = {}

        self.show_hud = bool(params.get('show_hud', False))
        try:
            self.font_hud = pygame.font.SysFont("Segoe UI", 14)
        except pygame.error:
            logging.warning("Segoe UI font not found, falling back to default sans-serif.")
            self.font_hud = pygame.font.SysFont(None, 18)
        self.text_color = (200, 200, 200)

        logging.info(f"Visualizer initialized with Pygame display ({self.width}x{self.height}).")

    def _make_trail_surface(self) -> pygame.Surface:
        # Blitted over the previous frame instead of clearing it, so moving
        # particles leave fading trails.
        surface = pygame.Surface((self.width, self.height), pygame.SRCALPHA)
        surface.fill((*self.background_color, self.trail_alpha))
        return surface

    def _halo(self, color: Tuple[int, int, int], radius: int) -> pygame.Surface:
        key = (color, radius)
        halo_surf = self.halo_surfaces.get(key)
        if halo_surf is None:
            diameter = radius * 2
            halo_surf = pygame.Surface((diameter, diameter), pygame.SRCALPHA)
            pygame.draw.circle(halo_surf, (*color, self.glow_alpha), (radius, radius), radius)
            self.halo_surfaces[key] = halo_surf
        return halo_surf

    def _resize(self, width: int, height: int):
        if (width, height) == (self.width, self.height):
            return
        self.screen = pygame.display.set_mode((width, height), self.display_flags)
        self.width, self.height = self.screen.get_size()
        self.trail_surface = self._make_trail_surface()
        self.screen.fill(self.background_color)

    def handle_events(self, simulation: "Simulation") -> bool:
        """
        Processes pending Pygame events.

        Returns:
            bool: False if the user asked to quit, True otherwise.
        """
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                logging.info("Quit event received. Shutting down visualizer.")
                return False

            if event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    logging.info("ESC key pressed. Shutting down visualizer.")
                    return False
                if event.key == pygame.K_r:
                    simulation.restart(pygame.time.get_ticks() / 1000.0)
                elif event.key == pygame.K_h:
                    self.show_hud = not self.show_hud

            # SDL2 reports a window resize as WINDOWRESIZED, and also as
            # VIDEORESIZE where the legacy event is enabled. The second of the
            # pair finds the viewport unchanged and does nothing.
            if event.type == pygame.VIDEORESIZE and not self.fullscreen:
                self._resize(event.w, event.h)
                simulation.resize(self.width, self.height)
            elif event.type == pygame.WINDOWRESIZED and not self.fullscreen:
                self._resize(event.x, event.y)
                simulation.resize(self.width, self.height)
        return True

    def draw(self, simulation: "Simulation", ctx: "AnimationContext") -> bool:
        """
        Draws all visible particles and the HUD, and handles events.

        Returns:
            bool: False if the animation should exit, True otherwise.
        """
        if not self.handle_events(simulation):
            return False

        # 1. Fade the previous frame.
        self.screen.blit(self.trail_surface, (0, 0))

        # 2. Draw particles in field order. Lists are faster to index than
        #    NumPy arrays in a Python loop.
        field = simulation.field
        positions = field.screen_xy.tolist()
        sizes = field.screen_size.tolist()
        colors = field.colors.tolist()
        visible = field.visible.tolist()

        for i in range(field.particle_count):
            if not visible[i]:
                continue
            x, y = positions[i]
            size = sizes[i]
            color = tuple(colors[i])

            if self.glow:
                halo_radius = min(int(size * self.glow_ratio), MAX_HALO_RADIUS)
                if halo_radius > size:
                    self.screen.blit(self._halo(color, halo_radius), (x - halo_radius, y - halo_radius))

            if size < 1.0:
                # A circle this small rasterizes to nothing.
                self.screen.set_at((int(x), int(y)), color)
            else:
                pygame.draw.circle(self.screen, color, (x, y), size)

        # 3. Overlay
        if self.show_hud:
            self._draw_hud(simulation, ctx)

        pygame.display.flip()
        self.clock.tick(self.fps)
        return True

    def _draw_hud(self, simulation: "Simulation", ctx: "AnimationContext"):
        lines = [
            f"State: {ctx.state}",
            f"FPS: {self.clock.get_fps():.1f}",
            f"Particles: {simulation.field.particle_count}",
        ]
        y = 10
        for line in lines:
            surf = self.font_hud.render(line, True, self.text_color)
            self.screen.blit(surf, (10, y))
            y += self.font_hud.get_linesize()

    def close(self):
        """Shuts down Pygame."""
        pygame.font.quit()
        pygame.quit()
