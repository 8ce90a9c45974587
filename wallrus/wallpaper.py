"""Wallpaper file preparation.

Renders the light and dark variants to stable paths and only then hands
them to the desktop hook, so the desktop never sees a half-written file.
Applying the files (gsettings, portals, ...) is the hook's job.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

from wallrus import defaults
from wallrus.errors import ExportIOError
from wallrus.export import ExportFormat, ResolutionTier, resolve_export_size, write_buffers
from wallrus.pipeline import render_export
from wallrus.types import RenderRequest

logger = logging.getLogger(__name__)


class WallpaperHook(Protocol):
    """Desktop integration: apply two complete image files as wallpaper."""

    def __call__(self, light: Path, dark: Path) -> None: ...


@dataclass(frozen=True)
class WallpaperFiles:
    light: Path
    dark: Path

    def uris(self) -> tuple[str, str]:
        """file:// URIs of (light, dark), absolute and resolved."""
        return (self.light.resolve().as_uri(), self.dark.resolve().as_uri())


def wallpaper_paths(directory: Path, fmt: ExportFormat = ExportFormat.PNG) -> WallpaperFiles:
    """Stable destination paths inside directory (overwritten on every install)."""
    directory = Path(directory)
    return WallpaperFiles(
        light=directory / f"{defaults.WALLPAPER_LIGHT_NAME}{fmt.extension}",
        dark=directory / f"{defaults.WALLPAPER_DARK_NAME}{fmt.extension}",
    )


def _render_variant(request, tier, display_size, use_gpu):
    if tier is not None:
        request = request.resized(*resolve_export_size(tier, display_size))
    return render_export(request, use_gpu=use_gpu)


def prepare_wallpaper(
    light: RenderRequest,
    dark: Optional[RenderRequest] = None,
    *,
    directory: Path,
    fmt: ExportFormat = ExportFormat.PNG,
    tier: Optional[ResolutionTier] = None,
    display_size: Optional[tuple[int, int]] = None,
    use_gpu: bool = False,
) -> WallpaperFiles:
    """Render and write both wallpaper variants.

    When dark is None the light request serves both variants (rendered once,
    written twice). Both files are encoded and staged next to their
    destinations before either is replaced, so a failed write leaves the
    previous pair in place.

    Raises:
        ExportIOError: Directory could not be created or a file not written
        EncodeError: Rendered buffer could not be encoded
    """
    directory = Path(directory)
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ExportIOError(f"Cannot create wallpaper directory {directory}: {e}") from e

    files = wallpaper_paths(directory, fmt)
    light_buffer = _render_variant(light, tier, display_size, use_gpu)
    if dark is None:
        dark_buffer = light_buffer
    else:
        dark_buffer = _render_variant(dark, tier, display_size, use_gpu)

    # Both variants are staged before either file is replaced
    write_buffers([(light_buffer, files.light), (dark_buffer, files.dark)], fmt)
    logger.info("Prepared wallpaper files %s, %s", files.light, files.dark)
    return files


def install_wallpaper(files: WallpaperFiles, hook: WallpaperHook) -> WallpaperFiles:
    """Hand complete wallpaper files to the desktop hook.

    Raises:
        FileNotFoundError: Either file is missing; the hook is not called
    """
    for path in (files.light, files.dark):
        if not Path(path).is_file():
            raise FileNotFoundError(f"Wallpaper file missing: {path}")
    hook(files.light, files.dark)
    logger.info("Installed wallpaper %s (dark: %s)", files.light, files.dark)
    return files
