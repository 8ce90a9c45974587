"""Tests for the effect stack: swirl, grain, ordered dither."""

import numpy as np
import pytest

from wallrus import defaults
from wallrus.effects import (
    apply_grain,
    bayer_matrix,
    clamp_strength,
    grain_seed,
    quantize,
    swirl_coordinates,
    swirl_falloff,
)
from wallrus.types import EffectConfig, GrainMode


def pixel_grid(width=32, height=24):
    y, x = np.meshgrid(np.arange(height, dtype=np.int64), np.arange(width, dtype=np.int64), indexing='ij')
    return x, y


class TestSwirl:

    def test_zero_strength_is_identity(self):
        u = np.linspace(0, 1, 10)
        v = np.linspace(1, 0, 10)
        su, sv = swirl_coordinates(u, v, 0.0)
        assert su is u and sv is v

    def test_falloff_shape(self):
        d = np.array([0.0, 0.1, 0.25, 0.4, 0.5, 0.8])
        f = swirl_falloff(d)
        assert f[0] == pytest.approx(1.0)
        assert f[-2] == pytest.approx(0.0)
        assert f[-1] == pytest.approx(0.0)
        assert np.all(np.diff(f) <= 0.0)

    def test_center_fixed_and_far_points_untouched(self):
        u = np.array([0.5, 1.2, -0.3])
        v = np.array([0.5, 0.5, 0.9])
        su, sv = swirl_coordinates(u, v, 1.0)
        np.testing.assert_allclose(su, u, atol=1e-12)
        np.testing.assert_allclose(sv, v, atol=1e-12)

    def test_preserves_distance_from_center(self):
        rng = np.random.default_rng(0)
        u, v = rng.random(100), rng.random(100)
        su, sv = swirl_coordinates(u, v, 0.7)
        np.testing.assert_allclose(np.hypot(su - 0.5, sv - 0.5), np.hypot(u - 0.5, v - 0.5), atol=1e-12)

    def test_rotation_grows_with_strength(self):
        u, v = np.array([0.6]), np.array([0.5])
        weak = swirl_coordinates(u, v, 0.1)
        strong = swirl_coordinates(u, v, 0.2)
        angle = lambda p: np.arctan2(p[1] - 0.5, p[0] - 0.5)[0]
        assert abs(angle(strong)) > abs(angle(weak)) > 0.0

    @pytest.mark.parametrize("raw, expected", [(-0.5, 0.0), (1.5, 1.0), (float("nan"), 0.0), (None, 0.0)])
    def test_clamp_strength(self, raw, expected):
        assert clamp_strength(raw) == expected


class TestGrain:

    def test_zero_strength_is_identity(self):
        rgb = np.full((4, 4, 3), 0.5)
        x, y = pixel_grid(4, 4)
        assert apply_grain(rgb, x, y, 0.0, seed=1) is rgb

    def test_offsets_bounded(self):
        x, y = pixel_grid()
        rgb = np.full(x.shape + (3,), 0.5)
        out = apply_grain(rgb, x, y, 1.0, seed=9)
        assert np.max(np.abs(out - rgb)) <= defaults.GRAIN_AMPLITUDE + 1e-12
        assert np.std(out - rgb) > 0.01

    def test_channels_independent(self):
        x, y = pixel_grid()
        out = apply_grain(np.full(x.shape + (3,), 0.5), x, y, 1.0, seed=3)
        assert not np.allclose(out[..., 0], out[..., 1])

    def test_output_clipped(self):
        x, y = pixel_grid()
        out = apply_grain(np.ones(x.shape + (3,)), x, y, 1.0, seed=3)
        assert out.max() <= 1.0

    def test_deterministic_seed_from_time(self):
        assert grain_seed(GrainMode.DETERMINISTIC, 1.25) == grain_seed(GrainMode.DETERMINISTIC, 1.25)
        assert grain_seed(GrainMode.DETERMINISTIC, 1.25) != grain_seed(GrainMode.DETERMINISTIC, 1.5)

    def test_live_seed_uses_rng(self):
        seeds = {grain_seed(GrainMode.LIVE, 0.0, np.random.default_rng(i)) for i in range(5)}
        assert len(seeds) == 5
        a = grain_seed(GrainMode.LIVE, 0.0, np.random.default_rng(42))
        b = grain_seed(GrainMode.LIVE, 0.0, np.random.default_rng(42))
        assert a == b


class TestDither:

    def test_bayer_matrix_is_permutation(self):
        m = bayer_matrix(8)
        assert m.shape == (8, 8)
        ranks = np.sort(((m * 64) - 0.5).round().astype(int).ravel())
        np.testing.assert_array_equal(ranks, np.arange(64))

    def test_bayer_2x2(self):
        np.testing.assert_allclose(bayer_matrix(2), (np.array([[0, 2], [3, 1]]) + 0.5) / 4)

    def test_bayer_read_only(self):
        with pytest.raises(ValueError):
            bayer_matrix(8)[0, 0] = 0.0

    def test_bayer_rejects_non_power_of_two(self):
        with pytest.raises(ValueError):
            bayer_matrix(6)

    def test_round_to_nearest_without_dither(self):
        x, y = pixel_grid(3, 1)
        rgb = np.array([[[0.0, 0.5, 1.0], [0.2, 0.4, 0.6], [1.2, -0.1, np.nan]]])
        out = quantize(rgb, x, y, dither=False)
        assert out.dtype == np.uint8
        np.testing.assert_array_equal(out[0, 0], [0, 128, 255])
        np.testing.assert_array_equal(out[0, 1], np.floor(np.array([0.2, 0.4, 0.6]) * 255 + 0.5))
        np.testing.assert_array_equal(out[0, 2], [255, 0, 0])

    def test_dither_preserves_mean(self):
        x, y = pixel_grid(64, 64)
        level = (100.3 / 255.0)
        rgb = np.full(x.shape + (3,), level)
        out = quantize(rgb, x, y, dither=True)
        assert set(np.unique(out)) == {100, 101}
        assert out.mean() == pytest.approx(100.3, abs=0.02)

    def test_dither_pattern_is_fixed(self):
        x, y = pixel_grid(16, 16)
        rgb = np.full(x.shape + (3,), 50.5 / 255.0)
        out = quantize(rgb, x, y, dither=True)[..., 0]
        # Tiles with the matrix period
        np.testing.assert_array_equal(out[:8, :8], out[8:, 8:])
        np.testing.assert_array_equal(out, quantize(rgb, x, y, dither=True)[..., 0])

    def test_exact_levels_unchanged_by_dither(self):
        x, y = pixel_grid(8, 8)
        rgb = np.full(x.shape + (3,), 77 / 255.0)
        assert np.all(quantize(rgb, x, y, dither=True) == 77)


class TestEffectConfig:

    def test_default_passthrough(self):
        assert EffectConfig().is_passthrough

    @pytest.mark.parametrize("effects", [
        EffectConfig(swirl_strength=0.1), EffectConfig(grain_strength=0.1), EffectConfig(dither_enabled=True),
    ])
    def test_any_effect_disables_passthrough(self, effects):
        assert not effects.is_passthrough
