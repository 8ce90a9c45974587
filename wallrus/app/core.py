"""Toolkit-neutral application state for wallrus."""

from __future__ import annotations

from dataclasses import dataclass, field

from wallrus import defaults
from wallrus.palette import get_preset_palette
from wallrus.types import (
    EffectConfig,
    GrainMode,
    Palette,
    PatternKind,
    RenderRequest,
    pattern_from_name,
)


@dataclass(frozen=True)
class PreviewSettings:
    """User-facing parameters of the live preview.

    Snapshotted under the preview lock once per frame; a frame never sees a
    half-applied update.
    """

    pattern: PatternKind = field(default_factory=lambda: pattern_from_name(defaults.DEFAULT_PATTERN))
    palette: Palette = field(default_factory=get_preset_palette)
    blend: float = defaults.DEFAULT_BLEND
    effects: EffectConfig = field(default_factory=EffectConfig)
    grain_mode: GrainMode = GrainMode.LIVE

    def to_request(self, width: int, height: int, time: float = defaults.DEFAULT_TIME) -> RenderRequest:
        return RenderRequest(
            pattern=self.pattern,
            palette=self.palette,
            blend=self.blend,
            effects=self.effects,
            width=int(width),
            height=int(height),
            time=float(time),
        )
