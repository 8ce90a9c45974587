"""Torch device selection for accelerated rendering.

CUDA wins over MPS, and MPS over plain CPU torch. Setting WALLRUS_FORCE_CPU
pins everything to the CPU, which the test suite relies on.
"""

import logging
import os
from typing import Optional

import numpy as np
import torch

from wallrus import defaults

logger = logging.getLogger(__name__)

_TRUTHY = ("1", "true", "yes")


def _mps_ready() -> bool:
    mps = getattr(torch.backends, 'mps', None)
    return mps is not None and mps.is_available()


class GPUContext:
    """Process-wide render device, detected once on first use."""

    _device: Optional[torch.device] = None
    _accelerator: Optional[str] = None  # 'cuda', 'mps' or None for cpu

    @classmethod
    def _forced_cpu(cls) -> bool:
        return os.environ.get(defaults.FORCE_CPU_ENV, "").strip().lower() in _TRUTHY

    @classmethod
    def _detect(cls) -> None:
        accelerator = None
        if not cls._forced_cpu():
            try:
                if torch.cuda.is_available():
                    accelerator = 'cuda'
                elif _mps_ready():
                    accelerator = 'mps'
            except Exception as e:
                logger.warning("Accelerator detection failed, rendering on CPU: %s", e)
        cls._accelerator = accelerator
        cls._device = torch.device(accelerator or 'cpu')
        logger.debug("Render device: %s", cls._device)

    @classmethod
    def device(cls) -> torch.device:
        """Best available device; CPU torch when no accelerator is usable."""
        if cls._device is None:
            cls._detect()
        return cls._device

    @classmethod
    def is_available(cls) -> bool:
        """True when CUDA or MPS will be used."""
        cls.device()
        return cls._accelerator is not None

    @classmethod
    def float_dtype(cls, device: Optional[torch.device] = None) -> torch.dtype:
        """float64 on CPU, float32 on accelerators (MPS lacks float64)."""
        kind = (device or cls.device()).type
        return torch.float64 if kind == 'cpu' else torch.float32

    @classmethod
    def to_gpu(cls, arr: np.ndarray) -> torch.Tensor:
        device = cls.device()
        return torch.as_tensor(np.ascontiguousarray(arr), device=device).to(cls.float_dtype(device))

    @classmethod
    def to_cpu(cls, tensor: torch.Tensor) -> np.ndarray:
        return tensor.detach().to('cpu').numpy()

    @classmethod
    def synchronize(cls) -> None:
        """Block until queued kernels finish."""
        sync = cls._accelerator_call('synchronize')
        if sync is not None:
            sync()

    @classmethod
    def empty_cache(cls) -> None:
        """Hand cached device memory back after a large export."""
        release = cls._accelerator_call('empty_cache')
        if release is None:
            return
        try:
            release()
        except RuntimeError as e:
            logger.debug("Could not release device cache: %s", e)

    @classmethod
    def reset(cls) -> None:
        """Drop the detected device; the next call detects (and reads the env) again."""
        cls._device = None
        cls._accelerator = None

    @classmethod
    def _accelerator_call(cls, name: str):
        if cls._accelerator is None:
            return None
        module = getattr(torch, cls._accelerator, None)
        return getattr(module, name, None)


__all__ = ['GPUContext']
