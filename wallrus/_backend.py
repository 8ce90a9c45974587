"""Array math shared by the numpy reference path and the torch path.

Pattern, color and effect code calls these helpers instead of numpy
directly, so one implementation serves both CPU arrays and device tensors.
torch is only imported once a tensor actually shows up.
"""

from typing import Any

import numpy as np

Array = Any  # numpy.ndarray or torch.Tensor

_torch_module = None


def _torch():
    global _torch_module
    if _torch_module is None:
        import torch
        _torch_module = torch
    return _torch_module


def is_torch(x: Array) -> bool:
    return type(x).__module__.split('.', 1)[0] == 'torch'


def _xp(x: Array):
    """Namespace (numpy or torch) that owns x."""
    return _torch() if is_torch(x) else np


# Elementwise functions spelled the same in both namespaces

def sin(x: Array) -> Array:
    return _xp(x).sin(x)


def cos(x: Array) -> Array:
    return _xp(x).cos(x)


def sqrt(x: Array) -> Array:
    return _xp(x).sqrt(x)


def floor(x: Array) -> Array:
    return _xp(x).floor(x)


def fract(x: Array) -> Array:
    """x - floor(x); lands in [0, 1) for negative x too."""
    return x - floor(x)


def where(cond: Array, a: Array, b: Array) -> Array:
    return _xp(cond).where(cond, a, b)


def zeros_like(x: Array) -> Array:
    return _xp(x).zeros_like(x)


def nan_to_num(x: Array) -> Array:
    """Zero out NaN and both infinities."""
    return _xp(x).nan_to_num(x, nan=0.0, posinf=0.0, neginf=0.0)


# Functions whose names or keywords differ between numpy and torch

def clip(x: Array, lo: float, hi: float) -> Array:
    if is_torch(x):
        return x.clamp(lo, hi)
    return np.clip(x, lo, hi)


def stack(arrays: list[Array], axis: int = -1) -> Array:
    first = arrays[0]
    if is_torch(first):
        return _torch().stack(arrays, dim=axis)
    return np.stack(arrays, axis=axis)


def expand_dims(x: Array, axis: int) -> Array:
    return x.unsqueeze(axis) if is_torch(x) else np.expand_dims(x, axis)


# Dtype and device conversions

def to_int(x: Array) -> Array:
    """Truncate to int64."""
    if is_torch(x):
        return x.long()
    return np.asarray(x).astype(np.int64)


def to_float(x: Array, reference: Array) -> Array:
    """Cast x to reference's floating dtype."""
    return x.to(reference.dtype) if is_torch(x) else np.asarray(x).astype(reference.dtype)


def to_uint8(x: Array) -> Array:
    return x.byte() if is_torch(x) else x.astype(np.uint8)


def to_numpy(x: Array) -> np.ndarray:
    """Host copy of x (no-op for numpy input)."""
    if not is_torch(x):
        return x
    return x.detach().to('cpu').numpy()


def from_numpy(arr: np.ndarray, reference: Array) -> Array:
    """Place arr next to reference.

    Float data takes reference's dtype (and device, for tensors); integer
    data keeps its own dtype.
    """
    floating = np.issubdtype(arr.dtype, np.floating)
    if not is_torch(reference):
        return arr.astype(reference.dtype, copy=False) if floating else arr
    tensor = _torch().as_tensor(np.ascontiguousarray(arr), device=reference.device)
    return tensor.to(reference.dtype) if floating else tensor
