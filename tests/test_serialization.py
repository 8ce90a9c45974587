"""Tests for render request serialization (save/load) and fingerprinting."""

import json
import tempfile
from pathlib import Path

import pytest

from wallrus.errors import RequestLoadError
from wallrus.serialization import (
    SCHEMA_VERSION,
    compute_request_fingerprint,
    load_request,
    request_from_dict,
    request_to_dict,
    save_request,
)
from wallrus.types import Bars, Circle, EffectConfig, Plasma, Terrain, Waves


@pytest.mark.parametrize("pattern", [
    Bars(angle=1.25, scale=3.0),
    Circle(center=(0.25, 0.75), scale=12.0),
    Plasma(scale=2.0, time=4.5),
    Waves(angle=0.5, scale=6.0, time=1.0),
    Terrain(scale=5.0, time=42.0),
], ids=lambda p: type(p).__name__)
def test_roundtrip(make_request, pattern):
    """Test save/load preserves every field."""
    request = make_request(
        pattern=pattern,
        blend=0.3,
        time=2.5,
        effects=EffectConfig(swirl_strength=0.4, grain_strength=0.2, dither_enabled=True),
    )

    with tempfile.TemporaryDirectory() as tmpdir:
        filepath = save_request(request, Path(tmpdir) / "scene.wallrus")
        assert filepath.exists()
        assert load_request(filepath) == request


def test_suffix_forced(make_request, tmp_path):
    path = save_request(make_request(), tmp_path / "scene.json")
    assert path.name == "scene.wallrus"


def test_dict_roundtrip(make_request):
    request = make_request(pattern=Circle(center=(0.1, 0.9)))
    data = request_to_dict(request)
    # Must survive JSON
    assert request_from_dict(json.loads(json.dumps(data))) == request


def test_wrong_schema_version(make_request, tmp_path):
    path = save_request(make_request(), tmp_path / "scene")
    data = json.loads(path.read_text())
    data['schema_version'] = "0.1"
    path.write_text(json.dumps(data))
    with pytest.raises(RequestLoadError, match="Schema version"):
        load_request(path)


@pytest.mark.parametrize("content", ["{not json", "[1, 2]", json.dumps({'schema_version': SCHEMA_VERSION})])
def test_corrupt_files(tmp_path, content):
    path = tmp_path / "bad.wallrus"
    path.write_text(content)
    with pytest.raises(RequestLoadError):
        load_request(path)


def test_unknown_pattern(tmp_path, make_request):
    path = save_request(make_request(), tmp_path / "scene")
    data = json.loads(path.read_text())
    data['request']['pattern']['type'] = "spiral"
    path.write_text(json.dumps(data))
    with pytest.raises(RequestLoadError):
        load_request(path)


def test_missing_file(tmp_path):
    with pytest.raises(RequestLoadError):
        load_request(tmp_path / "nope.wallrus")


class TestFingerprint:

    def test_stable(self, make_request):
        assert compute_request_fingerprint(make_request()) == compute_request_fingerprint(make_request())
        assert len(compute_request_fingerprint(make_request())) == 64

    @pytest.mark.parametrize("change", [
        dict(time=1.0), dict(blend=0.5), dict(width=65), dict(pattern=Bars(scale=5.0)),
        dict(effects=EffectConfig(dither_enabled=True)),
    ])
    def test_sensitive_to_render_inputs(self, make_request, change):
        assert compute_request_fingerprint(make_request()) != compute_request_fingerprint(make_request(**change))
