"""Export encoder: PNG/JPEG encoding and atomic file writes.

Exports always re-evaluate the request at the target resolution through
render_export(); nothing here upscales a preview.
"""

from __future__ import annotations

import enum
import io
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from PIL import Image

from wallrus import defaults
from wallrus.errors import EncodeError, ExportIOError
from wallrus.pipeline import render_export
from wallrus.types import PixelBuffer, RenderRequest

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


class ExportFormat(enum.Enum):
    PNG = "png"
    JPEG = "jpeg"

    @property
    def extension(self) -> str:
        return ".png" if self is ExportFormat.PNG else ".jpg"

    @property
    def pil_format(self) -> str:
        return "PNG" if self is ExportFormat.PNG else "JPEG"

    @classmethod
    def from_path(cls, path: PathLike) -> "ExportFormat":
        """Infer the format from the file suffix (.png, .jpg, .jpeg)."""
        suffix = Path(path).suffix.lower()
        if suffix == ".png":
            return cls.PNG
        if suffix in (".jpg", ".jpeg"):
            return cls.JPEG
        raise ValueError(f"Cannot infer export format from {str(path)!r}; use .png, .jpg or .jpeg")


class ResolutionTier(enum.Enum):
    """Export resolution presets. DISPLAY uses the active display's size."""

    FHD = defaults.RESOLUTION_FHD
    QHD = defaults.RESOLUTION_QHD
    UHD = defaults.RESOLUTION_UHD
    DISPLAY = None


def resolve_export_size(
    tier: ResolutionTier,
    display_size: Optional[tuple[int, int]] = None,
) -> tuple[int, int]:
    """(width, height) for a tier.

    Raises:
        ValueError: DISPLAY without a usable display_size
    """
    if tier is ResolutionTier.DISPLAY:
        if display_size is None:
            raise ValueError("ResolutionTier.DISPLAY requires display_size")
        width, height = (int(display_size[0]), int(display_size[1]))
        if width < 1 or height < 1:
            raise ValueError(f"Invalid display size: {width}x{height}")
        return (width, height)
    return tier.value


def encode_buffer(buffer: PixelBuffer, fmt: ExportFormat = ExportFormat.PNG) -> bytes:
    """Encode a pixel buffer in memory.

    Alpha is dropped: wallpapers are opaque and JPEG has no alpha channel.

    Raises:
        EncodeError: Degenerate buffer or encoder failure
    """
    if buffer.width == 0 or buffer.height == 0:
        raise EncodeError(f"Cannot encode empty buffer ({buffer.width}x{buffer.height})")

    image = Image.fromarray(buffer.rgb.copy())
    out = io.BytesIO()
    save_kwargs = {}
    if fmt is ExportFormat.JPEG:
        save_kwargs["quality"] = defaults.JPEG_QUALITY
    try:
        image.save(out, format=fmt.pil_format, **save_kwargs)
    except (OSError, ValueError) as e:
        raise EncodeError(f"{fmt.pil_format} encoding failed: {e}") from e
    return out.getvalue()


def _resolve_format(path: Path, fmt: Optional[ExportFormat]) -> ExportFormat:
    if fmt is None:
        return ExportFormat.from_path(path)
    try:
        implied = ExportFormat.from_path(path)
    except ValueError:
        return fmt
    if implied is not fmt:
        logger.warning("Writing %s data to %s (suffix suggests %s)", fmt.name, path, implied.name)
    return fmt


def _stage(data: bytes, path: Path) -> str:
    """Write data to a fsynced temporary file next to path and return its name."""
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
    except OSError:
        _discard(tmp_name)
        raise
    return tmp_name


def _discard(tmp_name: str) -> None:
    try:
        os.unlink(tmp_name)
    except OSError:
        logger.debug("Could not remove temporary file %s", tmp_name)


def write_buffer(
    buffer: PixelBuffer,
    path: PathLike,
    fmt: Optional[ExportFormat] = None,
) -> Path:
    """Encode and write atomically: the destination is either complete or untouched.

    The encoded bytes go to a temporary file in the destination directory,
    which is fsynced and then renamed over the target. An explicit fmt wins
    over the suffix; a conflicting known suffix is logged as a warning.

    Raises:
        EncodeError: Buffer could not be encoded (nothing is written)
        ExportIOError: Any filesystem failure; the temp file is removed
    """
    return write_buffers([(buffer, path)], fmt)[0]


def write_buffers(
    items: list[tuple[PixelBuffer, PathLike]],
    fmt: Optional[ExportFormat] = None,
) -> list[Path]:
    """Write several buffers as one group.

    Every file is encoded and staged before any destination is replaced, so
    an encode or staging failure leaves all destinations untouched. Only a
    failing rename in the final replace step can leave the group mixed.

    Raises:
        EncodeError: A buffer could not be encoded (nothing is written)
        ExportIOError: Any filesystem failure; staged temp files are removed
    """
    jobs = []
    for buffer, path in items:
        path = Path(path)
        path_fmt = _resolve_format(path, fmt)
        jobs.append((buffer, path, path_fmt, encode_buffer(buffer, path_fmt)))

    staged: list[str] = []
    current = None
    try:
        for _, path, _, data in jobs:
            current = path
            staged.append(_stage(data, path))
        for tmp_name, (_, path, _, _) in zip(list(staged), jobs):
            current = path
            os.replace(tmp_name, path)
            staged.remove(tmp_name)
    except OSError as e:
        raise ExportIOError(f"Failed to write {current}: {e}") from e
    finally:
        for tmp_name in staged:
            _discard(tmp_name)

    for buffer, path, path_fmt, data in jobs:
        logger.info("Wrote %s (%dx%d, %s, %d bytes)", path, buffer.width, buffer.height, path_fmt.name, len(data))
    return [path for _, path, _, _ in jobs]


def export_image(
    request: RenderRequest,
    path: PathLike,
    fmt: Optional[ExportFormat] = None,
    tier: Optional[ResolutionTier] = None,
    display_size: Optional[tuple[int, int]] = None,
    use_gpu: bool = False,
) -> Path:
    """Render a request at export resolution and write it to path.

    Args:
        request: Request as previewed; only its size is replaced by the tier
        path: Destination file
        fmt: Output format (inferred from path when None)
        tier: Resolution tier; None keeps the request's own size
        display_size: Needed for ResolutionTier.DISPLAY
        use_gpu: Render through torch on CUDA/MPS when available

    Returns:
        The written path
    """
    if tier is not None:
        request = request.resized(*resolve_export_size(tier, display_size))
    fmt = fmt if fmt is not None else ExportFormat.from_path(path)

    buffer = render_export(request, use_gpu=use_gpu)
    if use_gpu:
        from wallrus.gpu import GPUContext
        GPUContext.empty_cache()
    return write_buffer(buffer, path, fmt)
