"""Wallrus: procedural abstract wallpaper rendering.

A pattern, a four-color palette and an effect stack (swirl, grain, ordered
dither) are evaluated into an RGBA8 pixel buffer, either live for the
animated preview or once at export resolution.

Example:
    >>> from wallrus import Bars, RenderRequest, get_preset_palette, render
    >>> request = RenderRequest(Bars(scale=8), get_preset_palette(), width=640, height=360)
    >>> buffer = render(request)
"""

from wallrus.errors import (
    CancelledRender,
    EncodeError,
    ExportIOError,
    InvalidPaletteImage,
    RequestLoadError,
    WallrusError,
)
from wallrus.export import ExportFormat, ResolutionTier, export_image, write_buffer
from wallrus.palette import extract_palette, get_preset_palette, load_palette, load_palettes
from wallrus.pipeline import render, render_export
from wallrus.types import (
    Bars,
    CancelToken,
    Circle,
    EffectConfig,
    GrainMode,
    Palette,
    PixelBuffer,
    Plasma,
    RenderRequest,
    Terrain,
    Waves,
)

__version__ = "0.1.0"

__all__ = [
    'Bars', 'Circle', 'Plasma', 'Waves', 'Terrain',
    'Palette', 'EffectConfig', 'GrainMode', 'RenderRequest', 'PixelBuffer', 'CancelToken',
    'extract_palette', 'load_palette', 'load_palettes', 'get_preset_palette',
    'render', 'render_export',
    'ExportFormat', 'ResolutionTier', 'export_image', 'write_buffer',
    'WallrusError', 'InvalidPaletteImage', 'EncodeError', 'ExportIOError',
    'CancelledRender', 'RequestLoadError',
]
