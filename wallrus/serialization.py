"""Render request serialization - save/load wallrus requests as JSON."""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any

from wallrus import defaults
from wallrus.errors import RequestLoadError
from wallrus.types import (
    EffectConfig,
    Palette,
    PatternKind,
    RenderRequest,
    pattern_from_name,
    pattern_name,
)

SCHEMA_VERSION = "1.0"
FILE_SUFFIX = ".wallrus"


def save_request(request: RenderRequest, filepath: str | Path) -> Path:
    """Save a render request to a .wallrus JSON file.

    Format:
        {
          "schema_version": "1.0",
          "created_at": "...",
          "request": {"pattern": {...}, "palette": [...], ...}
        }

    Returns:
        The path written (suffix forced to .wallrus)
    """
    filepath = Path(filepath)
    if filepath.suffix != FILE_SUFFIX:
        filepath = filepath.with_suffix(FILE_SUFFIX)

    metadata = {
        'schema_version': SCHEMA_VERSION,
        'created_at': datetime.now().isoformat(),
        'request': request_to_dict(request),
    }
    filepath.write_text(json.dumps(metadata, indent=2), encoding='utf-8')
    return filepath


def load_request(filepath: str | Path) -> RenderRequest:
    """Load a render request from a .wallrus file.

    Raises:
        RequestLoadError: If file is missing, corrupt, wrong version, or missing data
    """
    filepath = Path(filepath)
    try:
        metadata = json.loads(filepath.read_text(encoding='utf-8'))
    except OSError as e:
        raise RequestLoadError(f"Cannot read {filepath}: {e}") from e
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise RequestLoadError(f"Corrupt request file {filepath}: {e}") from e

    if not isinstance(metadata, dict):
        raise RequestLoadError(f"Corrupt request file {filepath}: expected a JSON object")

    schema_version = metadata.get('schema_version')
    if schema_version != SCHEMA_VERSION:
        raise RequestLoadError(
            f"Schema version {schema_version} not supported. Expected {SCHEMA_VERSION}."
        )

    try:
        return request_from_dict(metadata['request'])
    except (KeyError, TypeError, ValueError) as e:
        raise RequestLoadError(f"Invalid request data in {filepath}: {e}") from e


# ============================================================================
# Conversion helpers
# ============================================================================

def _pattern_to_dict(pattern: PatternKind) -> dict[str, Any]:
    data = asdict(pattern)
    if 'center' in data:
        data['center'] = list(data['center'])
    return {'type': pattern_name(pattern), 'params': data}


def request_to_dict(request: RenderRequest) -> dict[str, Any]:
    """Convert RenderRequest to JSON-serializable dict."""
    return {
        'pattern': _pattern_to_dict(request.pattern),
        'palette': list(request.palette.to_hex()),
        'blend': request.blend,
        'effects': {
            'swirl_strength': request.effects.swirl_strength,
            'grain_strength': request.effects.grain_strength,
            'dither_enabled': request.effects.dither_enabled,
        },
        'size': [request.width, request.height],
        'time': request.time,
    }


def request_from_dict(data: dict[str, Any]) -> RenderRequest:
    """Reconstruct RenderRequest from dict.

    Raises:
        KeyError, TypeError, ValueError: Missing or malformed fields
    """
    pattern_data = data['pattern']
    effects = data.get('effects', {})
    width, height = data['size']
    return RenderRequest(
        pattern=pattern_from_name(pattern_data['type'], **pattern_data.get('params', {})),
        palette=Palette.from_hex(*data['palette']),
        blend=float(data.get('blend', defaults.DEFAULT_BLEND)),
        effects=EffectConfig(
            swirl_strength=float(effects.get('swirl_strength', 0.0)),
            grain_strength=float(effects.get('grain_strength', 0.0)),
            dither_enabled=bool(effects.get('dither_enabled', False)),
        ),
        width=int(width),
        height=int(height),
        time=float(data.get('time', defaults.DEFAULT_TIME)),
    )


# ============================================================================
# Request Fingerprinting
# ============================================================================

def compute_request_fingerprint(request: RenderRequest) -> str:
    """Hash of everything that affects the rendered pixels.

    Two requests with equal fingerprints render identical buffers (under
    deterministic grain).

    Returns:
        64-character SHA-256 hex string
    """
    canonical = json.dumps(request_to_dict(request), sort_keys=True, separators=(',', ':'))
    return hashlib.sha256(canonical.encode()).hexdigest()
