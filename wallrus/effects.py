"""Effect stack: swirl (pre-warp), grain (post-color), ordered dither (quantization).

The pipeline applies the stages in that fixed order. A disabled stage
returns its input unchanged. All stages accept numpy arrays or torch tensors.
"""

from __future__ import annotations

from functools import lru_cache

import numpy as np

from wallrus import _backend as B
from wallrus import defaults
from wallrus._backend import Array
from wallrus.noise import hash_coords, hash_int, U32_MASK
from wallrus.patterns import clamp_time
from wallrus.types import GrainMode


def clamp_strength(value: float) -> float:
    """Effect strength as a finite value in [0, 1] (NaN -> 0)."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if value != value:
        return 0.0
    return min(max(value, 0.0), 1.0)


# === Swirl ===

def smoothstep(edge0: float, edge1: float, x: Array) -> Array:
    t = B.clip((x - edge0) / (edge1 - edge0), 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)


def swirl_falloff(distance: Array, radius: float = defaults.SWIRL_RADIUS) -> Array:
    """1 at the center, smoothly decaying to 0 at radius and beyond."""
    return 1.0 - smoothstep(0.0, radius, distance)


def swirl_coordinates(
    u: Array,
    v: Array,
    strength: float,
    center: tuple[float, float] = (0.5, 0.5),
    radius: float = defaults.SWIRL_RADIUS,
) -> tuple[Array, Array]:
    """Rotate sampling coordinates around center by an angle decaying with distance.

    Args:
        u, v: Normalized coordinates
        strength: Swirl strength in [0, 1]; 0 returns the inputs unchanged
        center: Rotation center in normalized coordinates
        radius: Distance at which the rotation vanishes

    Returns:
        Warped (u, v) to feed into the pattern evaluator
    """
    strength = clamp_strength(strength)
    if strength <= 0.0:
        return u, v

    cx, cy = center
    dx = u - cx
    dy = v - cy
    distance = B.sqrt(dx * dx + dy * dy)
    angle = swirl_falloff(distance, radius) * (strength * defaults.SWIRL_MAX_ANGLE)
    cos_a = B.cos(angle)
    sin_a = B.sin(angle)
    return cx + dx * cos_a - dy * sin_a, cy + dx * sin_a + dy * cos_a


# === Grain ===

def grain_seed(mode: GrainMode, time: float, rng: np.random.Generator | None = None) -> int:
    """Seed for the grain stage.

    DETERMINISTIC derives the seed from time (millisecond resolution), so the
    same request always produces the same grain. LIVE draws a fresh seed.
    """
    if mode is GrainMode.LIVE:
        rng = rng if rng is not None else np.random.default_rng()
        return int(rng.integers(0, U32_MASK, endpoint=True))
    return hash_int(int(round(clamp_time(time) * 1000.0)))


def apply_grain(rgb: Array, x: Array, y: Array, strength: float, seed: int) -> Array:
    """Perturb each channel by a hashed offset proportional to strength.

    Args:
        rgb: (..., 3) colors in [0, 1]
        x, y: Integer pixel coordinates broadcastable to rgb[..., 0]
        strength: Grain strength in [0, 1]; 0 returns rgb unchanged
        seed: From grain_seed()

    Returns:
        Perturbed colors clipped to [0, 1]
    """
    strength = clamp_strength(strength)
    if strength <= 0.0:
        return rgb

    amplitude = 2.0 * strength * defaults.GRAIN_AMPLITUDE
    offsets = []
    for channel in range(3):
        h = B.to_float(hash_coords(x, y, seed + channel), rgb) / 4294967296.0
        offsets.append((h - 0.5) * amplitude)
    return B.clip(rgb + B.stack(offsets, axis=-1), 0.0, 1.0)


# === Ordered dithering ===

@lru_cache(maxsize=8)
def bayer_matrix(size: int = defaults.DITHER_MATRIX_SIZE) -> np.ndarray:
    """Normalized Bayer threshold matrix (size x size) with values in (0, 1).

    size must be a power of two.
    """
    if size < 1 or size & (size - 1):
        raise ValueError(f"Bayer matrix size must be a power of two, got {size}")
    matrix = np.array([[0]], dtype=np.int64)
    base = np.array([[0, 2], [3, 1]], dtype=np.int64)
    n = 1
    while n < size:
        matrix = np.block(
            [
                [4 * matrix + base[0, 0], 4 * matrix + base[0, 1]],
                [4 * matrix + base[1, 0], 4 * matrix + base[1, 1]],
            ]
        )
        n *= 2
    thresholds = (matrix.astype(np.float64) + 0.5) / float(size * size)
    thresholds.setflags(write=False)
    return thresholds


def quantize(
    rgb: Array,
    x: Array,
    y: Array,
    dither: bool,
    matrix_size: int = defaults.DITHER_MATRIX_SIZE,
) -> Array:
    """Quantize [0, 1] colors to 8-bit.

    Without dither, rounds to the nearest level. With dither, each channel's
    fractional remainder is compared against a tiled Bayer threshold before
    flooring, so rounding error becomes a fixed pattern instead of banding.

    Returns:
        uint8 array with the shape of rgb
    """
    scaled = B.clip(B.nan_to_num(rgb), 0.0, 1.0) * 255.0

    if not dither:
        levels = B.floor(scaled + 0.5)
    else:
        thresholds = B.from_numpy(np.array(bayer_matrix(matrix_size)), scaled)
        threshold = B.expand_dims(thresholds[y % matrix_size, x % matrix_size], -1)
        base = B.floor(scaled)
        levels = B.where(scaled - base > threshold, base + 1.0, base)

    return B.to_uint8(B.clip(levels, 0.0, 255.0))
