"""Deterministic hash-based noise.

Everything here is a pure function of its inputs: no RNG state, no globals.
Integer hashing runs in int64 arithmetic masked to 32 bits, which gives the
same values on numpy arrays and torch tensors.
"""

from wallrus import _backend as B
from wallrus._backend import Array

U32_MASK = 0xFFFFFFFF
_U32_RANGE = 4294967296.0


def hash_int(value: int) -> int:
    """32-bit avalanche hash of a Python int (used for seeds)."""
    x = int(value) & U32_MASK
    x ^= x >> 16
    x = (x * 0x7FEB352D) & U32_MASK
    x ^= x >> 15
    x = (x * 0x846CA68B) & U32_MASK
    x ^= x >> 16
    return x


def hash_u32(x: Array) -> Array:
    """Same hash as hash_int(), elementwise on int64 arrays/tensors.

    Products may wrap around int64; the low 32 bits stay exact.
    """
    x = x & U32_MASK
    x = x ^ (x >> 16)
    x = (x * 0x7FEB352D) & U32_MASK
    x = x ^ (x >> 15)
    x = (x * 0x846CA68B) & U32_MASK
    x = x ^ (x >> 16)
    return x


def hash_coords(ix: Array, iy: Array, seed: int) -> Array:
    """Hash integer lattice coordinates with a seed, result in [0, 2**32)."""
    return hash_u32((ix & U32_MASK) ^ hash_u32((iy & U32_MASK) ^ hash_int(seed)))


def unit_hash(ix: Array, iy: Array, seed: int, reference: Array) -> Array:
    """Hash of lattice coordinates as floats in [0, 1), dtype of reference."""
    return B.to_float(hash_coords(ix, iy, seed), reference) / _U32_RANGE


def quintic(t: Array) -> Array:
    """Quintic fade 6t^5 - 15t^4 + 10t^3 (C2-continuous lattice blending)."""
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


def value_noise(x: Array, y: Array, seed: int) -> Array:
    """Smooth lattice value noise in [0, 1)."""
    x0 = B.floor(x)
    y0 = B.floor(y)
    sx = quintic(x - x0)
    sy = quintic(y - y0)
    ix = B.to_int(x0)
    iy = B.to_int(y0)

    v00 = unit_hash(ix, iy, seed, x)
    v10 = unit_hash(ix + 1, iy, seed, x)
    v01 = unit_hash(ix, iy + 1, seed, x)
    v11 = unit_hash(ix + 1, iy + 1, seed, x)

    top = v00 + (v10 - v00) * sx
    bottom = v01 + (v11 - v01) * sx
    return top + (bottom - top) * sy


def fbm(
    x: Array,
    y: Array,
    seed: int,
    octaves: int,
    lacunarity: float = 2.0,
    gain: float = 0.5,
) -> Array:
    """Fractal sum of value noise octaves, normalized to [0, 1].

    Args:
        x, y: Sample coordinates (lattice units at the base octave)
        seed: Integer seed; every octave gets its own derived seed
        octaves: Number of octaves (>= 1)
        lacunarity: Frequency multiplier per octave
        gain: Amplitude multiplier per octave
    """
    octaves = max(int(octaves), 1)
    total = B.zeros_like(x)
    amplitude = 1.0
    frequency = 1.0
    norm = 0.0
    for octave in range(octaves):
        octave_seed = hash_int(seed + octave)
        # Offset each octave so lattice points don't line up at the origin
        shift = 17.0 * octave
        total = total + amplitude * value_noise(x * frequency + shift, y * frequency - shift, octave_seed)
        norm += amplitude
        amplitude *= gain
        frequency *= lacunarity
    return total / norm
