"""Pattern evaluators: pure scalar fields over normalized coordinates.

Every pattern maps aspect-corrected normalized coordinates (u, v), a time
sample t and its parameter record to a field value s in [0, 1]. Nothing
here depends on the target resolution, so the same request evaluated at
1080p and at 4K shows the same content.

All functions accept numpy arrays or torch tensors.
"""

from __future__ import annotations

import math
from dataclasses import replace

from wallrus import _backend as B
from wallrus import defaults
from wallrus._backend import Array
from wallrus.noise import fbm
from wallrus.types import Bars, Circle, PatternKind, Plasma, Terrain, Waves

TWO_PI = 2.0 * math.pi


# === Parameter sanitizing ===
# Pattern math is total: malformed parameters are clamped, never propagated.

def _finite(value: float, fallback: float) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return fallback
    return value if math.isfinite(value) else fallback


def _clamp_scale(value: float) -> float:
    value = _finite(value, defaults.DEFAULT_SCALE)
    return min(max(value, defaults.MIN_PATTERN_SCALE), defaults.MAX_PATTERN_SCALE)


def _wrap_angle(value: float) -> float:
    return _finite(value, defaults.DEFAULT_ANGLE) % TWO_PI


def clamp_time(value: float) -> float:
    value = _finite(value, defaults.DEFAULT_TIME)
    return min(max(value, -defaults.MAX_TIME), defaults.MAX_TIME)


def _clamp_center(center) -> tuple[float, float]:
    try:
        cx, cy = center
    except (TypeError, ValueError):
        return defaults.DEFAULT_CENTER
    cx = min(max(_finite(cx, defaults.DEFAULT_CENTER[0]), 0.0), 1.0)
    cy = min(max(_finite(cy, defaults.DEFAULT_CENTER[1]), 0.0), 1.0)
    return (cx, cy)


def sanitize_pattern(pattern: PatternKind) -> PatternKind:
    """Return a copy of pattern with every parameter finite and in range."""
    if isinstance(pattern, Bars):
        return replace(pattern, angle=_wrap_angle(pattern.angle), scale=_clamp_scale(pattern.scale))
    if isinstance(pattern, Circle):
        return replace(pattern, center=_clamp_center(pattern.center), scale=_clamp_scale(pattern.scale))
    if isinstance(pattern, Plasma):
        return replace(pattern, scale=_clamp_scale(pattern.scale), time=clamp_time(pattern.time))
    if isinstance(pattern, Waves):
        return replace(
            pattern,
            angle=_wrap_angle(pattern.angle),
            scale=_clamp_scale(pattern.scale),
            time=clamp_time(pattern.time),
        )
    if isinstance(pattern, Terrain):
        return replace(pattern, scale=_clamp_scale(pattern.scale), time=clamp_time(pattern.time))
    raise TypeError(f"Unknown pattern type: {type(pattern).__name__}")


def effective_time(pattern: PatternKind, t: float) -> float:
    """Request time plus the pattern's own time offset (0 for static patterns)."""
    return clamp_time(clamp_time(t) + getattr(pattern, "time", 0.0))


def _cycles(scale: float) -> float:
    """Full palette cycles per unit span (scale counts color bands)."""
    return scale / defaults.PALETTE_SIZE


# === Variants ===

def bars_field(u: Array, v: Array, pattern: Bars) -> Array:
    """Repeating ramp along the direction at pattern.angle."""
    projection = u * math.cos(pattern.angle) + v * math.sin(pattern.angle)
    return B.fract(projection * _cycles(pattern.scale))


def circle_field(
    u: Array,
    v: Array,
    pattern: Circle,
    extent: tuple[float, float] = (1.0, 1.0),
) -> Array:
    """Concentric rings: repeating ramp over distance from the center.

    The center is given in the [0, 1] image frame and mapped into the
    aspect-corrected coordinate space described by extent.
    """
    cx = 0.5 + (pattern.center[0] - 0.5) * extent[0]
    cy = 0.5 + (pattern.center[1] - 0.5) * extent[1]
    distance = B.sqrt((u - cx) ** 2 + (v - cy) ** 2)
    return B.fract(distance * _cycles(pattern.scale))


def plasma_field(u: Array, v: Array, t: float, pattern: Plasma) -> Array:
    """Sum of four sinusoids, normalized with the fixed bound PLASMA_BOUND."""
    k = TWO_PI * _cycles(pattern.scale)
    f = defaults.PLASMA_FREQUENCIES
    w = defaults.PLASMA_SPEEDS
    radial = B.sqrt((u - 0.5) ** 2 + (v - 0.5) ** 2)

    total = (
        B.sin(u * (k * f[0]) + t * w[0])
        + B.sin(v * (k * f[1]) + t * w[1])
        + B.sin((u + v) * (k * f[2]) + t * w[2])
        + B.sin(radial * (k * f[3]) + t * w[3])
    )
    return (total + defaults.PLASMA_BOUND) / (2.0 * defaults.PLASMA_BOUND)


def waves_field(u: Array, v: Array, t: float, pattern: Waves) -> Array:
    """Travelling wave along pattern.angle plus a weaker perpendicular wave."""
    k = TWO_PI * _cycles(pattern.scale)
    cos_a = math.cos(pattern.angle)
    sin_a = math.sin(pattern.angle)
    along = u * cos_a + v * sin_a
    across = v * cos_a - u * sin_a

    amplitude = defaults.WAVES_SECONDARY_AMPLITUDE
    primary = B.sin(along * k - t * defaults.WAVES_SPEED)
    secondary = amplitude * B.sin(
        across * (k * defaults.WAVES_SECONDARY_FREQUENCY) + t * defaults.WAVES_SECONDARY_SPEED
    )
    bound = 1.0 + amplitude
    return (primary + secondary + bound) / (2.0 * bound)


def terrain_field(u: Array, v: Array, t: float, pattern: Terrain) -> Array:
    """Fractal value noise. pattern.time picks the seed, t drifts the sample window."""
    frequency = pattern.scale * defaults.TERRAIN_BASE_FREQUENCY
    drift_x, drift_y = defaults.TERRAIN_DRIFT
    seed = int(math.floor(pattern.time))

    n = fbm(
        u * frequency + t * drift_x,
        v * frequency + t * drift_y,
        seed,
        octaves=defaults.TERRAIN_OCTAVES,
        lacunarity=defaults.TERRAIN_LACUNARITY,
        gain=defaults.TERRAIN_GAIN,
    )
    low = defaults.TERRAIN_CONTRAST_LOW
    high = defaults.TERRAIN_CONTRAST_HIGH
    return B.clip((n - low) / (high - low), 0.0, 1.0)


def evaluate_pattern(
    pattern: PatternKind,
    u: Array,
    v: Array,
    t: float = 0.0,
    extent: tuple[float, float] = (1.0, 1.0),
) -> Array:
    """Evaluate a pattern variant at normalized coordinates.

    Args:
        pattern: One of Bars, Circle, Plasma, Waves, Terrain
        u, v: Aspect-corrected normalized coordinates (same shape)
        t: Request time in seconds; the pattern's own time is added to it
        extent: Span of the frame along (u, v); the shorter side is 1.0

    Returns:
        Field values in [0, 1], same shape and backend as u
    """
    pattern = sanitize_pattern(pattern)
    t = effective_time(pattern, t)

    if isinstance(pattern, Bars):
        s = bars_field(u, v, pattern)
    elif isinstance(pattern, Circle):
        s = circle_field(u, v, pattern, extent)
    elif isinstance(pattern, Plasma):
        s = plasma_field(u, v, t, pattern)
    elif isinstance(pattern, Waves):
        s = waves_field(u, v, t, pattern)
    elif isinstance(pattern, Terrain):
        s = terrain_field(u, v, t, pattern)
    else:  # pragma: no cover - sanitize_pattern already rejects unknown types
        raise TypeError(f"Unknown pattern type: {type(pattern).__name__}")

    return B.clip(B.nan_to_num(s), 0.0, 1.0)
