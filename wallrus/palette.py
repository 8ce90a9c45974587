"""Palette images - extract 4 colors from banded palette images.

A palette image is 400x400 px, divided into 4 equal horizontal bands
(100 px each, top to bottom). The pixel at the center of each band is
sampled. Built-in palettes are kept in PRESET_PALETTES; user palettes can
be written back as palette images with save_palette_image().
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

import numpy as np
from PIL import Image, UnidentifiedImageError

from wallrus import defaults
from wallrus.errors import InvalidPaletteImage
from wallrus.types import Palette

logger = logging.getLogger(__name__)


PRESET_PALETTES: dict[str, Palette] = {
    "Flag": Palette(((230, 57, 70), (241, 250, 238), (69, 123, 157), (29, 53, 87))),
    "Deep Ocean": Palette(((13, 13, 51), (38, 82, 158), (115, 179, 224), (230, 245, 255))),
    "Ember": Palette(((20, 10, 5), (153, 66, 20), (230, 140, 60), (250, 220, 170))),
    "Twilight": Palette(((38, 13, 77), (140, 64, 140), (242, 166, 140), (255, 235, 205))),
    "Forest": Palette(((16, 42, 32), (46, 102, 66), (140, 170, 90), (230, 220, 170))),
    "Ink Wash": Palette(((0, 0, 0), (20, 20, 20), (230, 230, 230), (255, 255, 255))),
}

DEFAULT_PALETTE_NAME = "Deep Ocean"


def list_preset_palettes() -> tuple[str, ...]:
    """Names of the built-in palettes."""
    return tuple(PRESET_PALETTES.keys())


def get_preset_palette(name: str | None = None) -> Palette:
    """Look up a built-in palette (the default palette when name is None)."""
    if name is None:
        name = DEFAULT_PALETTE_NAME
    try:
        return PRESET_PALETTES[name]
    except KeyError:
        raise KeyError(f"Unknown palette {name!r}") from None


def band_sample_points(size: tuple[int, int] = defaults.PALETTE_IMAGE_SIZE) -> list[tuple[int, int]]:
    """(x, y) pixel sampled for each band, top to bottom."""
    width, height = size
    band_height = height // defaults.PALETTE_SIZE
    cx = width // 2
    return [(cx, band_height * i + band_height // 2) for i in range(defaults.PALETTE_SIZE)]


def extract_palette(image: Image.Image) -> Palette:
    """Extract the 4 band colors from a palette image.

    Args:
        image: PIL image of exactly PALETTE_IMAGE_SIZE, any mode

    Returns:
        Palette with the sampled colors in top-to-bottom order

    Raises:
        InvalidPaletteImage: If the image dimensions differ from 400x400
    """
    if image.size != defaults.PALETTE_IMAGE_SIZE:
        expected_w, expected_h = defaults.PALETTE_IMAGE_SIZE
        raise InvalidPaletteImage(
            f"Palette image must be {expected_w}x{expected_h}, got {image.size[0]}x{image.size[1]}"
        )

    rgb = image if image.mode == "RGB" else image.convert("RGB")
    colors = []
    for x, y in band_sample_points(image.size):
        r, g, b = rgb.getpixel((x, y))
        colors.append((int(r), int(g), int(b)))
    return Palette(tuple(colors))


def load_palette(path: str | Path) -> Palette:
    """Load a palette image from disk and extract its colors.

    Raises:
        InvalidPaletteImage: If the file is unreadable or has the wrong dimensions
    """
    path = Path(path)
    try:
        with Image.open(path) as image:
            image.load()
            return extract_palette(image)
    except InvalidPaletteImage as e:
        raise InvalidPaletteImage(f"{path.name}: {e}") from e
    except (OSError, UnidentifiedImageError) as e:
        raise InvalidPaletteImage(f"Failed to load palette image {path}: {e}") from e


def load_palettes(
    paths: Iterable[str | Path],
) -> tuple[dict[Path, Palette], dict[Path, InvalidPaletteImage]]:
    """Load many palette images. Bad images are skipped, not fatal to the set.

    Returns:
        (palettes, errors) - loaded palettes and the error for every skipped path,
        both keyed by path in input order.
    """
    palettes: dict[Path, Palette] = {}
    errors: dict[Path, InvalidPaletteImage] = {}
    for raw_path in paths:
        path = Path(raw_path)
        try:
            palettes[path] = load_palette(path)
        except InvalidPaletteImage as e:
            logger.warning("Skipping palette %s: %s", path, e)
            errors[path] = e
    return palettes, errors


def palette_to_image(palette: Palette) -> Image.Image:
    """Render a palette as a 400x400 four-band image."""
    width, height = defaults.PALETTE_IMAGE_SIZE
    band_height = height // defaults.PALETTE_SIZE
    pixels = np.empty((height, width, 3), dtype=np.uint8)
    for i, color in enumerate(palette.colors):
        pixels[i * band_height:(i + 1) * band_height] = color
    # Remainder rows (none for 400 px) take the last color
    pixels[defaults.PALETTE_SIZE * band_height:] = palette.colors[-1]
    return Image.fromarray(pixels)


def save_palette_image(palette: Palette, path: str | Path) -> Path:
    """Save a palette as a PNG palette image that load_palette() reads back exactly.

    Args:
        palette: Palette to save
        path: Destination (suffix is forced to .png)

    Returns:
        The written path
    """
    path = Path(path)
    if path.suffix.lower() != ".png":
        path = path.with_suffix(".png")
    path.parent.mkdir(parents=True, exist_ok=True)
    palette_to_image(palette).save(path, format="PNG")
    logger.info("Saved palette image %s", path)
    return path
