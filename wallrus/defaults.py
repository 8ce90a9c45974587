"""Central place for Wallrus default settings."""

import math

# Export resolution tiers (width, height)
RESOLUTION_FHD: tuple[int, int] = (1920, 1080)
RESOLUTION_QHD: tuple[int, int] = (2560, 1440)
RESOLUTION_UHD: tuple[int, int] = (3840, 2160)
MAX_RENDER_DIM: int = 16384

# Palette images: 4 horizontal bands, sampled at the center of each band
PALETTE_SIZE: int = 4
PALETTE_IMAGE_SIZE: tuple[int, int] = (400, 400)

# Pattern defaults
DEFAULT_PATTERN: str = "bars"
DEFAULT_ANGLE: float = 0.0
DEFAULT_SCALE: float = 4.0
DEFAULT_CENTER: tuple[float, float] = (0.5, 0.5)
DEFAULT_TIME: float = 0.0
DEFAULT_BLEND: float = 1.0
MIN_PATTERN_SCALE: float = 1e-3
MAX_PATTERN_SCALE: float = 1e4
MAX_TIME: float = 1e6

# Plasma: 4 unit sinusoids, normalized with a fixed bound so colors are time-stable
PLASMA_FREQUENCIES: tuple[float, ...] = (1.0, 0.8, 0.6, 1.3)
PLASMA_SPEEDS: tuple[float, ...] = (1.0, 0.7, 1.3, -0.9)
PLASMA_BOUND: float = 4.0

# Waves: primary wave plus a weaker perpendicular wave for texture
WAVES_SPEED: float = 1.0
WAVES_SECONDARY_AMPLITUDE: float = 0.35
WAVES_SECONDARY_FREQUENCY: float = 0.5
WAVES_SECONDARY_SPEED: float = 0.6

# Terrain: fractal value noise
TERRAIN_OCTAVES: int = 5
TERRAIN_LACUNARITY: float = 2.0
TERRAIN_GAIN: float = 0.5
TERRAIN_BASE_FREQUENCY: float = 1.0
TERRAIN_DRIFT: tuple[float, float] = (0.05, 0.03)
TERRAIN_CONTRAST_LOW: float = 0.2   # fbm values below map to 0
TERRAIN_CONTRAST_HIGH: float = 0.8  # fbm values above map to 1

# Swirl: rotation decays with distance from the frame center
SWIRL_MAX_ANGLE: float = 3.0 * math.pi
SWIRL_RADIUS: float = 0.5  # in normalized units, 0.5 = half the shorter side

# Grain: max per-channel offset at grain_strength=1 (fraction of full range)
GRAIN_AMPLITUDE: float = 0.15

# Ordered dithering
DITHER_MATRIX_SIZE: int = 8

# Encoding
JPEG_QUALITY: int = 92

# Blend / effect defaults
DEFAULT_SWIRL_STRENGTH: float = 0.0
DEFAULT_GRAIN_STRENGTH: float = 0.0
DEFAULT_DITHER_ENABLED: bool = False

# Rendering
RENDER_BAND_ROWS: int = 256  # rows per band; cancellation is checked between bands

# Preview loop
PREVIEW_FPS: float = 60.0
PREVIEW_RENDER_SCALE: float = 0.5
MIN_PREVIEW_RENDER_SCALE: float = 0.1
MAX_PREVIEW_RENDER_SCALE: float = 1.0

# Wallpaper files
WALLPAPER_LIGHT_NAME: str = "wallpaper-light"
WALLPAPER_DARK_NAME: str = "wallpaper-dark"

# Environment switch to keep all rendering on the numpy path
FORCE_CPU_ENV: str = "WALLRUS_FORCE_CPU"
