import numpy as np
import pytest

from color_space import chroma, lab_to_rgb, rgb_to_hsv, rgb_to_lab


def test_mid_gray_has_no_chroma():
    l, a, b = rgb_to_lab([128, 128, 128])
    assert a == pytest.approx(0.0, abs=0.05)
    assert b == pytest.approx(0.0, abs=0.05)
    assert 50 < l < 56


def test_white_and_black_lightness():
    lab = rgb_to_lab([[255, 255, 255], [0, 0, 0]])
    assert lab.shape == (2, 3)
    assert lab[0, 0] == pytest.approx(100.0, abs=0.1)
    assert lab[1, 0] == pytest.approx(0.0, abs=0.1)


def test_pure_red_matches_reference_values():
    l, a, b = rgb_to_lab([255, 0, 0])
    assert l == pytest.approx(53.24, abs=0.1)
    assert a == pytest.approx(80.09, abs=0.2)
    assert b == pytest.approx(67.20, abs=0.2)


def test_skin_color_is_warm_in_lab():
    l, a, b = rgb_to_lab([220, 170, 140])
    assert 70 < l < 77
    assert a > 5
    assert b > 10


def test_lab_to_rgb_recovers_skin_color():
    lab = rgb_to_lab([220, 170, 140])
    rgb = lab_to_rgb(lab)
    assert np.all(np.abs(rgb.astype(int) - np.array([220, 170, 140])) <= 1)


def test_hsv_of_primaries():
    hsv = rgb_to_hsv([[255, 0, 0], [0, 0, 255], [128, 128, 128]])
    assert hsv[0] == pytest.approx([0.0, 1.0, 1.0])
    assert hsv[1, 0] == pytest.approx(240.0)
    assert hsv[2, 1] == pytest.approx(0.0)


def test_chroma():
    assert chroma(3.0, 4.0) == pytest.approx(5.0)
