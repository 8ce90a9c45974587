"""Rendering, palette and export errors."""


class WallrusError(Exception):
    """Base class for Wallrus errors."""
    pass


class InvalidPaletteImage(WallrusError, ValueError):
    """Palette source image has the wrong dimensions or cannot be read."""
    pass


class EncodeError(WallrusError):
    """Pixel buffer cannot be encoded (e.g. zero width or height)."""
    pass


class ExportIOError(WallrusError, OSError):
    """Writing an exported image failed. The destination was left untouched."""
    pass


class CancelledRender(WallrusError):
    """Preview render superseded by newer parameters."""
    pass


class RequestLoadError(WallrusError):
    """Saved render request is corrupt or has an unsupported schema."""
    pass
