"""Core data types for wallrus - framework-agnostic."""

from __future__ import annotations

import enum
import threading
from dataclasses import dataclass, field, replace
from typing import Union

import numpy as np
from PIL import Image

from wallrus import defaults
from wallrus.errors import CancelledRender

RGB = tuple[int, int, int]


@dataclass(frozen=True)
class Palette:
    """Four 8-bit RGB colors, ordered c0..c3.

    Never empty and never resized after construction; safe to share
    read-only between concurrent renders.
    """

    colors: tuple[RGB, ...]

    def __post_init__(self):
        colors = tuple(tuple(int(channel) for channel in color) for color in self.colors)
        if len(colors) != defaults.PALETTE_SIZE:
            raise ValueError(
                f"Palette needs exactly {defaults.PALETTE_SIZE} colors, got {len(colors)}"
            )
        for color in colors:
            if len(color) != 3 or any(c < 0 or c > 255 for c in color):
                raise ValueError(f"Invalid RGB color: {color}")
        object.__setattr__(self, "colors", colors)

    def __getitem__(self, index: int) -> RGB:
        return self.colors[index]

    def __len__(self) -> int:
        return len(self.colors)

    def as_array(self) -> np.ndarray:
        """Colors as a (4, 3) float64 array in [0, 1]."""
        return np.asarray(self.colors, dtype=np.float64) / 255.0

    @classmethod
    def from_hex(cls, *hex_colors: str) -> "Palette":
        """Build a palette from '#rrggbb' strings (the '#' is optional)."""
        colors = []
        for hex_color in hex_colors:
            value = hex_color.lstrip('#')
            if len(value) != 6:
                raise ValueError(f"Invalid hex color: {hex_color!r}")
            colors.append((int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)))
        return cls(tuple(colors))

    def to_hex(self) -> tuple[str, ...]:
        return tuple(f"#{r:02x}{g:02x}{b:02x}" for r, g, b in self.colors)


# === Pattern variants ===
# A closed set: every consumer dispatches over exactly these five records.

@dataclass(frozen=True)
class Bars:
    """Parallel bands. angle in radians, scale = color bands per unit span."""
    angle: float = defaults.DEFAULT_ANGLE
    scale: float = defaults.DEFAULT_SCALE


@dataclass(frozen=True)
class Circle:
    """Concentric rings around center (x, y in the [0, 1] image frame)."""
    center: tuple[float, float] = defaults.DEFAULT_CENTER
    scale: float = defaults.DEFAULT_SCALE


@dataclass(frozen=True)
class Plasma:
    """Sum of sinusoids; time is added to the request time as a phase offset."""
    scale: float = defaults.DEFAULT_SCALE
    time: float = defaults.DEFAULT_TIME


@dataclass(frozen=True)
class Waves:
    """Sinusoidal waves travelling along angle."""
    angle: float = defaults.DEFAULT_ANGLE
    scale: float = defaults.DEFAULT_SCALE
    time: float = defaults.DEFAULT_TIME


@dataclass(frozen=True)
class Terrain:
    """Fractal value noise; time acts as seed and offset."""
    scale: float = defaults.DEFAULT_SCALE
    time: float = defaults.DEFAULT_TIME


PatternKind = Union[Bars, Circle, Plasma, Waves, Terrain]

PATTERN_TYPES: dict[str, type] = {
    "bars": Bars,
    "circle": Circle,
    "plasma": Plasma,
    "waves": Waves,
    "terrain": Terrain,
}


def pattern_name(pattern: PatternKind) -> str:
    """Lowercase name of a pattern variant ('bars', 'circle', ...)."""
    for name, cls in PATTERN_TYPES.items():
        if type(pattern) is cls:
            return name
    raise TypeError(f"Unknown pattern type: {type(pattern).__name__}")


def pattern_from_name(name: str, **params) -> PatternKind:
    """Build a pattern variant by name, missing parameters take defaults."""
    try:
        cls = PATTERN_TYPES[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown pattern {name!r}. Expected one of: {', '.join(PATTERN_TYPES)}"
        ) from None
    if "center" in params:
        params["center"] = tuple(params["center"])
    return cls(**params)


class GrainMode(enum.Enum):
    """How the grain stage seeds its per-pixel offsets."""

    DETERMINISTIC = "deterministic"  # seed derived from time; required for export
    LIVE = "live"  # fresh random seed each frame; preview only


@dataclass(frozen=True)
class EffectConfig:
    """Effect toggles and strengths. Application order is fixed by the pipeline."""

    swirl_strength: float = defaults.DEFAULT_SWIRL_STRENGTH
    grain_strength: float = defaults.DEFAULT_GRAIN_STRENGTH
    dither_enabled: bool = defaults.DEFAULT_DITHER_ENABLED

    @property
    def is_passthrough(self) -> bool:
        return self.swirl_strength <= 0.0 and self.grain_strength <= 0.0 and not self.dither_enabled


@dataclass(frozen=True)
class RenderRequest:
    """Everything needed to render one image. Fully determines the output."""

    pattern: PatternKind
    palette: Palette
    blend: float = defaults.DEFAULT_BLEND
    effects: EffectConfig = field(default_factory=EffectConfig)
    width: int = defaults.RESOLUTION_FHD[0]
    height: int = defaults.RESOLUTION_FHD[1]
    time: float = defaults.DEFAULT_TIME

    @property
    def size(self) -> tuple[int, int]:
        """(width, height)"""
        return (self.width, self.height)

    def resized(self, width: int, height: int) -> "RenderRequest":
        """Same request evaluated at another resolution."""
        return replace(self, width=int(width), height=int(height))


class PixelBuffer:
    """RGBA8 pixels, row-major, top-to-bottom.

    Attributes:
        pixels: uint8 array of shape (height, width, 4)
    """

    def __init__(self, pixels: np.ndarray):
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"Expected (H, W, 4) RGBA array, got shape {pixels.shape}")
        if pixels.dtype != np.uint8:
            raise ValueError(f"Expected uint8 pixels, got {pixels.dtype}")
        self.pixels = pixels

    @classmethod
    def from_rgb(cls, rgb: np.ndarray) -> "PixelBuffer":
        """Wrap an (H, W, 3) uint8 array with an opaque alpha channel."""
        h, w = rgb.shape[:2]
        pixels = np.empty((h, w, 4), dtype=np.uint8)
        pixels[..., :3] = rgb
        pixels[..., 3] = 255
        return cls(pixels)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    @property
    def rgb(self) -> np.ndarray:
        """(H, W, 3) view without alpha."""
        return self.pixels[..., :3]

    def to_image(self) -> Image.Image:
        return Image.fromarray(self.pixels)

    def __eq__(self, other) -> bool:
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return self.pixels.shape == other.pixels.shape and np.array_equal(self.pixels, other.pixels)

    def __repr__(self) -> str:
        return f"PixelBuffer(width={self.width}, height={self.height})"


class CancelToken:
    """Cancellation flag handed to one render; checked between row bands."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancelledRender("Render superseded by newer parameters")
