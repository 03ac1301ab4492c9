import numpy as np
from skimage import color


def _as_rgb_rows(rgb):
    """Return an (N, 1, 3) float array in 0..1 plus the original leading shape."""
    arr = np.asarray(rgb, dtype=np.float64)
    lead_shape = arr.shape[:-1]
    return arr.reshape(-1, 1, 3) / 255.0, lead_shape


def rgb_to_lab(rgb):
    """sRGB (0..255, shape (..., 3)) to CIE Lab, D65 white (0.95047, 1, 1.08883)."""
    rows, lead_shape = _as_rgb_rows(rgb)
    lab = color.rgb2lab(rows, illuminant="D65", observer="2")
    return lab.reshape(lead_shape + (3,))


def lab_to_rgb(lab):
    """CIE Lab to sRGB as integers in 0..255."""
    arr = np.asarray(lab, dtype=np.float64)
    lead_shape = arr.shape[:-1]
    rgb = color.lab2rgb(arr.reshape(-1, 1, 3), illuminant="D65", observer="2")
    rgb = np.clip(np.round(rgb * 255.0), 0, 255).astype(np.uint8)
    return rgb.reshape(lead_shape + (3,))


def rgb_to_hsv(rgb):
    """RGB (0..255) to HSV with hue in degrees and s, v in 0..1."""
    rows, lead_shape = _as_rgb_rows(rgb)
    hsv = color.rgb2hsv(rows).reshape(lead_shape + (3,))
    hsv[..., 0] *= 360.0
    return hsv


def chroma(a, b):
    return np.hypot(a, b)
