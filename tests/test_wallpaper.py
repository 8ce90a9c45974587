"""Tests for wallpaper file preparation and installation."""

import tempfile

import numpy as np
import pytest
from PIL import Image

from wallrus.errors import ExportIOError
from wallrus.export import ExportFormat, ResolutionTier
from wallrus.types import Bars, Plasma
from wallrus.wallpaper import WallpaperFiles, install_wallpaper, prepare_wallpaper, wallpaper_paths


class RecordingHook:
    """Records calls and checks both files are complete when called."""

    def __init__(self):
        self.calls = []

    def __call__(self, light, dark):
        assert light.is_file() and dark.is_file()
        with Image.open(light) as image:
            image.load()
        with Image.open(dark) as image:
            image.load()
        self.calls.append((light, dark))


class TestPrepare:

    def test_stable_paths(self, tmp_path):
        files = wallpaper_paths(tmp_path, ExportFormat.JPEG)
        assert files.light == tmp_path / "wallpaper-light.jpg"
        assert files.dark == tmp_path / "wallpaper-dark.jpg"

    def test_single_request_serves_both(self, make_request, tmp_path):
        files = prepare_wallpaper(make_request(pattern=Plasma()), directory=tmp_path / "walls")
        assert files.light.read_bytes() == files.dark.read_bytes()

    def test_light_and_dark(self, make_request, tmp_path, rgbw_palette):
        light = make_request(pattern=Bars(scale=4))
        dark = make_request(pattern=Bars(scale=8))
        files = prepare_wallpaper(light, dark, directory=tmp_path)
        assert files.light.read_bytes() != files.dark.read_bytes()

    def test_tier_applies_to_both(self, make_request, tmp_path):
        files = prepare_wallpaper(
            make_request(), directory=tmp_path, tier=ResolutionTier.DISPLAY, display_size=(80, 60)
        )
        for path in (files.light, files.dark):
            with Image.open(path) as image:
                assert image.size == (80, 60)

    def test_overwrites_previous_files(self, make_request, tmp_path):
        first = prepare_wallpaper(make_request(pattern=Bars(scale=2)), directory=tmp_path)
        before = first.light.read_bytes()
        second = prepare_wallpaper(make_request(pattern=Bars(scale=6)), directory=tmp_path)
        assert second == first
        assert second.light.read_bytes() != before
        assert sorted(p.name for p in tmp_path.iterdir()) == ["wallpaper-dark.png", "wallpaper-light.png"]


class TestInstall:

    def test_hook_called_after_files_exist(self, make_request, tmp_path):
        hook = RecordingHook()
        files = prepare_wallpaper(make_request(), directory=tmp_path)
        assert install_wallpaper(files, hook) == files
        assert hook.calls == [(files.light, files.dark)]

    def test_missing_file_skips_hook(self, tmp_path):
        hook = RecordingHook()
        files = WallpaperFiles(light=tmp_path / "a.png", dark=tmp_path / "b.png")
        with pytest.raises(FileNotFoundError):
            install_wallpaper(files, hook)
        assert hook.calls == []

    def test_uris(self, tmp_path):
        files = wallpaper_paths(tmp_path)
        light_uri, dark_uri = files.uris()
        assert light_uri.startswith("file://")
        assert dark_uri.endswith("wallpaper-dark.png")


class TestFailedWrite:

    def test_failed_dark_write_keeps_previous_pair(self, make_request, tmp_path, monkeypatch):
        files = prepare_wallpaper(make_request(pattern=Bars(scale=2)), directory=tmp_path)
        before = (files.light.read_bytes(), files.dark.read_bytes())

        real_mkstemp = tempfile.mkstemp

        def mkstemp(*args, prefix="", **kwargs):
            if "wallpaper-dark" in prefix:
                raise OSError(28, "No space left on device")
            return real_mkstemp(*args, prefix=prefix, **kwargs)

        monkeypatch.setattr("wallrus.export.tempfile.mkstemp", mkstemp)
        with pytest.raises(ExportIOError):
            prepare_wallpaper(make_request(pattern=Bars(scale=6)), directory=tmp_path)

        assert (files.light.read_bytes(), files.dark.read_bytes()) == before
        assert sorted(p.name for p in tmp_path.iterdir()) == ["wallpaper-dark.png", "wallpaper-light.png"]
