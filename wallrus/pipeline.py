"""Pure render pipeline orchestration - no UI dependencies.

For every pixel: normalized coordinate -> swirl -> pattern -> palette color
-> grain -> dither/quantize. The image is processed in horizontal bands so
a preview render can be cancelled between bands.
"""

from __future__ import annotations

import logging
import time

import numpy as np
from scipy.ndimage import gaussian_filter, zoom

from wallrus import _backend as B
from wallrus import defaults
from wallrus._backend import Array
from wallrus.color import map_palette, palette_colors
from wallrus.effects import apply_grain, clamp_strength, grain_seed, quantize, swirl_coordinates
from wallrus.patterns import evaluate_pattern
from wallrus.types import CancelToken, GrainMode, PixelBuffer, RenderRequest

logger = logging.getLogger(__name__)


def validate_size(width: int, height: int) -> None:
    """Raise ValueError unless 1 <= width, height <= MAX_RENDER_DIM."""
    if width < 1 or height < 1:
        raise ValueError(f"Render size must be positive, got {width}x{height}")
    if width > defaults.MAX_RENDER_DIM or height > defaults.MAX_RENDER_DIM:
        raise ValueError(
            f"Render size {width}x{height} exceeds maximum dimension {defaults.MAX_RENDER_DIM}"
        )


def frame_extent(width: int, height: int) -> tuple[float, float]:
    """Span of the frame in normalized units: the shorter side is 1.0."""
    short = float(min(width, height))
    return (width / short, height / short)


def normalized_coordinates(
    width: int,
    height: int,
    row_start: int = 0,
    row_stop: int | None = None,
    *,
    torch_device=None,
) -> tuple[Array, Array, Array, Array]:
    """Aspect-corrected pixel-center coordinates for rows [row_start, row_stop).

    The frame center is (0.5, 0.5); the shorter side spans [0, 1] and the
    longer side extends symmetrically. Images with the same aspect ratio
    sample the same physical content at any resolution.

    Returns:
        (u, v, x, y): float coordinates and int64 pixel indices, each of
        shape (rows, width). numpy float64 by default, torch tensors on
        torch_device when given.
    """
    row_stop = height if row_stop is None else row_stop
    ex, ey = frame_extent(width, height)

    if torch_device is not None:
        import torch
        from wallrus.gpu import GPUContext

        device = torch.device(torch_device)
        dtype = GPUContext.float_dtype(device)
        ys = torch.arange(row_start, row_stop, device=device, dtype=torch.int64)
        xs = torch.arange(width, device=device, dtype=torch.int64)
        y, x = torch.meshgrid(ys, xs, indexing='ij')
        xf = x.to(dtype)
        yf = y.to(dtype)
    else:
        ys = np.arange(row_start, row_stop, dtype=np.int64)
        xs = np.arange(width, dtype=np.int64)
        y, x = np.meshgrid(ys, xs, indexing='ij')
        xf = x.astype(np.float64)
        yf = y.astype(np.float64)

    u = 0.5 + ((xf + 0.5) / width - 0.5) * ex
    v = 0.5 + ((yf + 0.5) / height - 0.5) * ey
    return u, v, x, y


def shade(
    u: Array,
    v: Array,
    x: Array,
    y: Array,
    request: RenderRequest,
    colors: Array,
    grain_seed_value: int = 0,
) -> Array:
    """Run the per-pixel pipeline on one block of coordinates.

    Returns:
        uint8 RGB array of shape u.shape + (3,)
    """
    effects = request.effects
    extent = frame_extent(request.width, request.height)

    u, v = swirl_coordinates(u, v, effects.swirl_strength)
    s = evaluate_pattern(request.pattern, u, v, request.time, extent)
    rgb = map_palette(s, colors, request.blend)
    rgb = apply_grain(rgb, x, y, effects.grain_strength, grain_seed_value)
    return quantize(rgb, x, y, effects.dither_enabled)


def _select_device(use_gpu: bool, torch_device):
    if torch_device is not None:
        return torch_device
    if use_gpu:
        from wallrus.gpu import GPUContext
        if GPUContext.is_available():
            return GPUContext.device()
    return None


def render(
    request: RenderRequest,
    *,
    grain_mode: GrainMode = GrainMode.DETERMINISTIC,
    cancel_token: CancelToken | None = None,
    use_gpu: bool = False,
    torch_device=None,
    band_rows: int = defaults.RENDER_BAND_ROWS,
    grain_rng: np.random.Generator | None = None,
) -> PixelBuffer:
    """Render a request into a new pixel buffer.

    Pure function of the request (unless grain_mode is LIVE).

    Args:
        request: What to render
        grain_mode: DETERMINISTIC for reproducible output, LIVE for preview sparkle
        cancel_token: Checked between bands; raises CancelledRender when set
        use_gpu: Run on CUDA/MPS through torch when available
        torch_device: Force the torch path on this device (e.g. 'cpu')
        band_rows: Rows per band
        grain_rng: Random generator for LIVE grain seeds

    Returns:
        PixelBuffer owned by the caller
    """
    width, height = int(request.width), int(request.height)
    validate_size(width, height)
    band_rows = max(int(band_rows), 1)

    device = _select_device(use_gpu, torch_device)
    seed = 0
    if clamp_strength(request.effects.grain_strength) > 0.0:
        seed = grain_seed(grain_mode, request.time, grain_rng)

    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[..., 3] = 255

    t_start = time.perf_counter()
    colors = None
    for row_start in range(0, height, band_rows):
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        row_stop = min(row_start + band_rows, height)
        u, v, x, y = normalized_coordinates(width, height, row_start, row_stop, torch_device=device)
        if colors is None:
            colors = palette_colors(request.palette, u)
        rgb8 = shade(u, v, x, y, request, colors, seed)
        pixels[row_start:row_stop, :, :3] = B.to_numpy(rgb8)

    backend = "numpy" if device is None else f"torch:{device}"
    logger.debug(
        "Rendered %s %dx%d (%s) in %.3fs",
        type(request.pattern).__name__, width, height, backend, time.perf_counter() - t_start,
    )
    return PixelBuffer(pixels)


def render_export(request: RenderRequest, **kwargs) -> PixelBuffer:
    """Render for export: grain is always deterministic.

    Raises:
        ValueError: If grain_mode=GrainMode.LIVE is requested
    """
    grain_mode = kwargs.pop("grain_mode", GrainMode.DETERMINISTIC)
    if grain_mode is not GrainMode.DETERMINISTIC:
        raise ValueError("Export renders require deterministic grain")
    return render(request, grain_mode=GrainMode.DETERMINISTIC, **kwargs)


def resample_buffer(buffer: PixelBuffer, width: int, height: int) -> PixelBuffer:
    """Resize a buffer for display (e.g. a reduced-scale preview to its surface).

    Gaussian prefilter when shrinking, then bilinear zoom over pixel areas.
    Not used for export: exports re-evaluate the pattern at full resolution.
    """
    validate_size(width, height)
    if buffer.size == (width, height):
        return PixelBuffer(buffer.pixels.copy())

    arr = buffer.pixels.astype(np.float32)
    zoom_y = height / buffer.height
    zoom_x = width / buffer.width

    sigma_y = 0.5 * max(1.0 / zoom_y - 1.0, 0.0)
    sigma_x = 0.5 * max(1.0 / zoom_x - 1.0, 0.0)
    if sigma_y > 0.0 or sigma_x > 0.0:
        arr = gaussian_filter(arr, sigma=(sigma_y, sigma_x, 0.0))

    resized = zoom(arr, (zoom_y, zoom_x, 1.0), order=1, grid_mode=True, mode='nearest')
    resized = resized[:height, :width]
    if resized.shape[:2] != (height, width):
        pad_y = height - resized.shape[0]
        pad_x = width - resized.shape[1]
        resized = np.pad(resized, ((0, pad_y), (0, pad_x), (0, 0)), mode='edge')
    return PixelBuffer(np.clip(np.rint(resized), 0, 255).astype(np.uint8))
