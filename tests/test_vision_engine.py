import numpy as np
import pytest

from analysis_types import FaceBox, PixelSample
from vision_engine import (
    GAIN_RANGE,
    SkinSampler,
    apply_gray_world_correction,
    compute_robust_lab_stats,
    display_color,
    estimate_lighting_bias,
    median_absolute_deviation,
    trimmed_mean,
)


def test_sampler_draws_fixed_grid(skin_image):
    sampling = SkinSampler().sample(skin_image, FaceBox(0, 0, 200, 200))
    assert sampling['all_samples'].shape == (588, 3)
    assert len(sampling['skin_samples']) == 588
    assert sampling['zone_counts'] == {'cheek_left': 196, 'cheek_right': 196, 'forehead': 196}


def test_sampler_keeps_non_skin_in_all_samples(blue_image):
    sampling = SkinSampler().sample(blue_image, FaceBox(10, 10, 120, 150))
    assert len(sampling['all_samples']) == 588
    assert len(sampling['skin_samples']) == 0


def test_trimmed_mean_drops_tails():
    values = list(range(10)) + [1000]
    assert trimmed_mean(values) == pytest.approx(5.0)
    assert trimmed_mean([]) == 0.0


def test_balanced_samples_need_no_correction():
    samples = np.array([[100, 150, 200], [150, 200, 100], [200, 100, 150]] * 20)
    corrected, gains, clamped = apply_gray_world_correction(samples)
    assert gains == pytest.approx((1.0, 1.0, 1.0))
    assert not clamped
    assert np.array_equal(corrected, samples)


def test_strong_cast_clamps_gains():
    samples = np.array([[230, 180, 100]] * 50)
    corrected, gains, clamped = apply_gray_world_correction(samples)
    assert clamped
    assert all(GAIN_RANGE[0] <= g <= GAIN_RANGE[1] for g in gains)
    assert gains[0] == pytest.approx(0.75)
    assert gains[2] == pytest.approx(1.35)
    assert corrected.max() <= 255 and corrected.min() >= 0


def test_moderate_cast_is_neutralized():
    samples = np.array([[220, 170, 140]] * 50)
    corrected, gains, clamped = apply_gray_world_correction(samples)
    assert not clamped
    r, g, b = corrected[0]
    assert abs(int(r) - int(b)) <= 1 and abs(int(g) - int(b)) <= 1


def test_dark_samples_skip_correction():
    samples = np.array([[5, 20, 30]] * 40)
    corrected, gains, clamped = apply_gray_world_correction(samples)
    assert gains == (1.0, 1.0, 1.0)
    assert not clamped
    assert np.array_equal(corrected, samples)


def test_median_absolute_deviation():
    assert median_absolute_deviation([1, 1, 2, 2, 4, 6, 9]) == pytest.approx(1.0)
    assert median_absolute_deviation([]) == 0.0


def test_robust_stats_ignore_outliers():
    rng = np.random.default_rng(7)
    skin = np.clip(rng.normal([200, 150, 120], 2.0, size=(200, 3)), 0, 255).astype(int)
    outliers = np.array([[20, 20, 200]] * 10)
    stats = compute_robust_lab_stats(np.vstack([skin, outliers]))

    clean = compute_robust_lab_stats(skin)
    assert stats['median_lab'].l == pytest.approx(clean['median_lab'].l, abs=1.0)
    assert stats['median_lab'].b == pytest.approx(clean['median_lab'].b, abs=1.0)
    assert stats['gamut_count'] == 200
    assert stats['used_count'] == 200
    assert not stats['is_noisy']


def test_robust_stats_fall_back_to_all_samples():
    samples = np.array([[128, 128, 140]] * 20)
    stats = compute_robust_lab_stats(samples)
    assert stats['gamut_count'] == 0
    assert stats['used_count'] == 20


def test_noisy_when_lightness_spreads():
    dark = np.array([[90, 60, 45]] * 50)
    light = np.array([[240, 200, 175]] * 50)
    stats = compute_robust_lab_stats(np.vstack([dark, light]))
    assert stats['mad'][0] > 10
    assert stats['is_noisy']


def test_lighting_bias_warm_image():
    img = np.empty((120, 80, 3), dtype=np.uint8)
    img[:] = (200, 150, 80)
    bias = estimate_lighting_bias(img)
    assert bias.is_warm
    assert bias.severity == pytest.approx(1.0)
    assert bias.warm_index == pytest.approx(0.3725, abs=0.005)


def test_lighting_bias_neutral_and_partial():
    gray = np.full((64, 64, 3), 128, dtype=np.uint8)
    bias = estimate_lighting_bias(gray)
    assert not bias.is_warm
    assert bias.severity == 0.0

    amber = np.empty((64, 64, 3), dtype=np.uint8)
    amber[:] = (150, 150, 107)
    bias = estimate_lighting_bias(amber)
    assert bias.is_warm
    assert bias.severity == pytest.approx(0.49, abs=0.01)


def test_display_color_trims_extremes():
    samples = np.array([[180, 140, 120]] * 18 + [[0, 0, 0], [255, 255, 255]])
    assert display_color(samples) == PixelSample(180, 140, 120)
    assert display_color(np.zeros((0, 3))) == PixelSample(0, 0, 0)
