import logging

import cv2
import numpy as np

from analysis_types import LabColor, LightingBias, PixelSample
from color_space import chroma, lab_to_rgb, rgb_to_lab
from skin_detection import grid_points, skin_gamut_mask, skin_pixel_mask

logger = logging.getLogger(__name__)

SAMPLER_SIZE = 160
SAMPLER_GRID = 14

# (x0, y0, x1, y1) as fractions of the resized face crop
SAMPLING_ZONES = {
    'cheek_left': (0.15, 0.45, 0.40, 0.70),
    'cheek_right': (0.60, 0.45, 0.85, 0.70),
    'forehead': (0.30, 0.12, 0.70, 0.30),
}

GAIN_RANGE = (0.75, 1.35)
TRIM_FRACTION = 0.10
MIN_CHANNEL_MEAN = 10.0

MIN_GAMUT_SAMPLES = 30
NOISY_MAD_B = 4.5
NOISY_MAD_L = 10.0

LIGHTING_SIZE = 64
WARM_INDEX_THRESHOLD = 0.08
WARM_INDEX_SPAN = 0.18

DISPLAY_TRIM = 0.15


class SkinSampler:
    """Fixed-grid sampling of cheek and forehead zones of a face crop."""

    def __init__(self, size=SAMPLER_SIZE, grid=SAMPLER_GRID, zones=None):
        self.size = size
        self.grid = grid
        self.zones = zones or SAMPLING_ZONES

    def crop_face(self, image_rgb, face_box):
        x, y = int(face_box.x), int(face_box.y)
        w, h = int(face_box.width), int(face_box.height)
        crop = image_rgb[y:y + h, x:x + w, :3]
        return cv2.resize(crop, (self.size, self.size), interpolation=cv2.INTER_AREA)

    def sample(self, image_rgb, face_box):
        face = self.crop_face(image_rgb, face_box)

        all_samples = []
        zone_counts = {}
        skin_masks = []
        for zone_name, (fx0, fy0, fx1, fy1) in self.zones.items():
            xs, ys, _, _ = grid_points(
                fx0 * self.size, fy0 * self.size, fx1 * self.size, fy1 * self.size,
                self.grid, self.grid,
            )
            pts = face[np.ix_(ys, xs)].reshape(-1, 3).astype(np.int32)
            mask = skin_pixel_mask(pts)
            zone_counts[zone_name] = int(mask.sum())
            all_samples.append(pts)
            skin_masks.append(mask)

        all_samples = np.concatenate(all_samples, axis=0)
        skin_mask = np.concatenate(skin_masks, axis=0)
        skin_samples = all_samples[skin_mask]

        logger.debug(f"Sampler: {len(skin_samples)}/{len(all_samples)} skin samples, zones={zone_counts}")
        return {
            'all_samples': all_samples,
            'skin_samples': skin_samples,
            'zone_counts': zone_counts,
        }


def trimmed_mean(values, fraction=TRIM_FRACTION):
    """Mean after dropping `fraction` of values from each tail."""
    values = np.sort(np.asarray(values, dtype=np.float64))
    n = len(values)
    if n == 0:
        return 0.0
    cut = int(n * fraction)
    kept = values[cut:n - cut] if n - 2 * cut > 0 else values
    return float(kept.mean())


def apply_gray_world_correction(samples):
    """Gray-world gains from trimmed channel means, clamped and applied.

    Returns (corrected samples, (gain_r, gain_g, gain_b), gains_clamped).
    """
    samples = np.asarray(samples, dtype=np.float64).reshape(-1, 3)
    if len(samples) == 0:
        return samples.astype(np.int32), (1.0, 1.0, 1.0), False

    means = [trimmed_mean(samples[:, c]) for c in range(3)]
    if min(means) < MIN_CHANNEL_MEAN:
        # Too dark to trust the illuminant estimate
        return samples.astype(np.int32), (1.0, 1.0, 1.0), False

    gray = sum(means) / 3.0
    raw_gains = [gray / m for m in means]
    gains = [float(np.clip(g, GAIN_RANGE[0], GAIN_RANGE[1])) for g in raw_gains]
    gains_clamped = any(g != rg for g, rg in zip(gains, raw_gains))

    corrected = np.clip(np.round(samples * np.array(gains)), 0, 255).astype(np.int32)
    return corrected, tuple(gains), gains_clamped


def median_absolute_deviation(values):
    values = np.asarray(values, dtype=np.float64)
    if len(values) == 0:
        return 0.0
    med = np.median(values)
    return float(np.median(np.abs(values - med)))


def compute_robust_lab_stats(corrected_samples):
    """Median Lab and MAD over gamut-filtered corrected samples."""
    corrected_samples = np.asarray(corrected_samples).reshape(-1, 3)
    if len(corrected_samples) == 0:
        raise ValueError("No samples to aggregate")

    lab = rgb_to_lab(corrected_samples)
    in_gamut = skin_gamut_mask(lab)
    gamut_count = int(in_gamut.sum())

    if gamut_count >= MIN_GAMUT_SAMPLES:
        used = lab[in_gamut]
    else:
        logger.debug(f"Aggregator: only {gamut_count} samples in skin gamut, using all {len(lab)}")
        used = lab

    med = np.median(used, axis=0)
    mad = tuple(median_absolute_deviation(used[:, c]) for c in range(3))
    median_lab = LabColor(float(med[0]), float(med[1]), float(med[2]))

    return {
        'median_lab': median_lab,
        'mad': mad,
        'chroma': float(chroma(median_lab.a, median_lab.b)),
        'gamut_count': gamut_count,
        'used_count': len(used),
        'is_noisy': mad[2] > NOISY_MAD_B or mad[0] > NOISY_MAD_L,
    }


def estimate_lighting_bias(image_rgb):
    """Whole-image warm/cool cast from a coarse 64x64 average."""
    small = cv2.resize(image_rgb[..., :3], (LIGHTING_SIZE, LIGHTING_SIZE), interpolation=cv2.INTER_AREA)
    avg = small.reshape(-1, 3).astype(np.float64).mean(axis=0)
    rn, gn, bn = avg / 255.0

    warm_index = (rn + gn) / 2.0 - bn
    severity = float(np.clip((warm_index - WARM_INDEX_THRESHOLD) / WARM_INDEX_SPAN, 0.0, 1.0))
    return LightingBias(
        warm_index=float(warm_index),
        is_warm=bool(warm_index > WARM_INDEX_THRESHOLD),
        severity=severity,
        average_rgb=tuple(float(c) for c in avg),
    )


def display_color(corrected_samples, trim=DISPLAY_TRIM):
    """Swatch color: brightness-trimmed mean of the corrected samples."""
    samples = np.asarray(corrected_samples).reshape(-1, 3)
    if len(samples) == 0:
        return PixelSample(0, 0, 0)
    order = np.argsort(samples.sum(axis=1), kind='stable')
    ordered = samples[order]
    cut = int(len(ordered) * trim)
    kept = ordered[cut:max(cut + 1, len(ordered) - cut)]
    r, g, b = np.round(kept.astype(np.float64).mean(axis=0)).astype(int)
    return PixelSample(int(r), int(g), int(b))


def lab_swatch(lab):
    """sRGB swatch for a Lab median."""
    r, g, b = lab_to_rgb([lab.l, lab.a, lab.b])
    return PixelSample(int(r), int(g), int(b))
