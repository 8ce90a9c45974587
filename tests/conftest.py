"""Test configuration for wallrus."""

import os

import pytest

from wallrus.types import Bars, EffectConfig, Palette, RenderRequest

# Keep the suite on the numpy path unless a test asks for torch explicitly
os.environ.setdefault("WALLRUS_FORCE_CPU", "1")


@pytest.fixture
def rgbw_palette():
    """[red, green, blue, white] - every band visually distinct."""
    return Palette(((255, 0, 0), (0, 255, 0), (0, 0, 255), (255, 255, 255)))


@pytest.fixture
def make_request(rgbw_palette):
    """Factory for small render requests with sensible defaults."""

    def _make(pattern=None, width=64, height=48, blend=1.0, time=0.0, effects=None, palette=None):
        return RenderRequest(
            pattern=pattern if pattern is not None else Bars(),
            palette=palette if palette is not None else rgbw_palette,
            blend=blend,
            effects=effects if effects is not None else EffectConfig(),
            width=width,
            height=height,
            time=time,
        )

    return _make
