"""Palette color mapping: scalar field -> RGB.

[0, 1] is split into 4 equal intervals, one per palette color. blend=0 gives
a hard step (flag-like stripes), blend=1 a smooth cyclic gradient through
the interval centers, so s=0 and s=1 land on the same color. Values in
between mix the two linearly.

Works with numpy arrays or torch tensors.
"""

from __future__ import annotations

import math

import numpy as np

from wallrus import _backend as B
from wallrus import defaults
from wallrus._backend import Array
from wallrus.types import Palette


def clamp_blend(blend: float) -> float:
    """Blend factor as a finite value in [0, 1] (NaN -> 0)."""
    try:
        blend = float(blend)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(blend):
        return 1.0 if blend > 0 else 0.0
    return min(max(blend, 0.0), 1.0)


def palette_colors(palette: Palette, reference: Array) -> Array:
    """Palette as a (4, 3) float array on the backend/device of reference."""
    return B.from_numpy(palette.as_array(), reference)


def step_colors(s: Array, colors: Array) -> Array:
    """Hard banding: color of the interval containing s."""
    n = defaults.PALETTE_SIZE
    index = B.clip(B.to_int(B.floor(s * n)), 0, n - 1)
    return colors[index]


def smooth_colors(s: Array, colors: Array) -> Array:
    """Cyclic piecewise-linear gradient between interval centers."""
    n = defaults.PALETTE_SIZE
    position = s * n - 0.5
    base = B.floor(position)
    frac = B.expand_dims(position - base, -1)
    i0 = B.to_int(base) % n
    i1 = (i0 + 1) % n
    return colors[i0] * (1.0 - frac) + colors[i1] * frac


def map_palette(s: Array, colors: Array, blend: float) -> Array:
    """Map field values to RGB.

    Args:
        s: Field values in [0, 1], any shape
        colors: (4, 3) palette colors in [0, 1] (see palette_colors())
        blend: 0 = hard step, 1 = smooth gradient

    Returns:
        RGB floats in [0, 1] with shape s.shape + (3,)
    """
    blend = clamp_blend(blend)
    s = B.clip(B.nan_to_num(s), 0.0, 1.0)

    if blend <= 0.0:
        return step_colors(s, colors)
    if blend >= 1.0:
        return smooth_colors(s, colors)

    step = step_colors(s, colors)
    smooth = smooth_colors(s, colors)
    return step + (smooth - step) * blend


def map_palette_numpy(s: np.ndarray, palette: Palette, blend: float) -> np.ndarray:
    """Convenience wrapper for numpy callers holding a Palette."""
    s = np.asarray(s, dtype=np.float64)
    return map_palette(s, palette.as_array(), blend)
