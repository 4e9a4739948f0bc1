# constants.py
"""
Application-level constants.

These values are static and do not change between runs. They cover the
rendering framework (frame rate, fallbacks) and the defaults used when
config.json leaves a tunable out.
"""

# Visualization settings
FPS = 60
BACKGROUND_COLOR = (0, 0, 0)
DEFAULT_WINDOW_SIZE = (1280, 720)
CAPTION = "Particle Morph"

# --- Trails and Glow ---
# Alpha value for the trail overlay (0-255). Lower is a longer trail.
TRAIL_ALPHA = 77
# Ratio of the glow halo radius to the projected particle radius.
GLOW_RATIO = 2.5
# Alpha value for the glow halo (0-255).
GLOW_ALPHA = 45
# Halo surfaces are cached per (color, radius); radii are bucketed to ints.
MAX_HALO_RADIUS = 24

# --- Projection ---
# Particles whose projected size falls to this floor are not drawn.
SIZE_FLOOR = 0.5
DEPTH_CONSTANT = 600.0

# --- Sampling ---
VIRTUAL_RESOLUTION = (400, 200)
SAMPLING_STRIDE = 2
ALPHA_THRESHOLD = 128
FILL_RATIO = 0.8
FALLBACK_POINTS = 64
# Golden angle in radians, used for the spiral azimuth of volumetric shapes.
GOLDEN_ANGLE = 2.399963229728653

# Palette used when config.json does not provide one for a name.
DEFAULT_PALETTE = [
    (66, 133, 244),   # Blue
    (155, 114, 203),  # Violet
    (217, 101, 112),  # Rose
    (255, 255, 255),  # White
]
