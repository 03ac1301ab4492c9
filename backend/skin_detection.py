import logging

import cv2
import numpy as np

from analysis_types import FaceBox
from color_space import rgb_to_hsv

logger = logging.getLogger(__name__)

# Locator works on a downsampled copy; longest side capped here
LOCATOR_MAX_SIDE = 500
LOCATOR_GRID = 30
MIN_ZONE_SKIN_RATIO = 0.35
MIN_ZONE_SKIN_PIXELS = 50
ASPECT_RANGE = (0.5, 1.5)
BOX_MARGIN = 0.15
BOX_GROWTH = 0.30
MIN_FACE_SIZE = 40

# (x0, y0, x1, y1) as fractions of the image, all inside the upper ~70%
CANDIDATE_ZONES = {
    'center': (0.20, 0.10, 0.80, 0.70),
    'upper': (0.25, 0.05, 0.75, 0.55),
    'middle': (0.15, 0.20, 0.85, 0.70),
}

SKIN_LAB_GAMUT = {
    'l': (18.0, 92.0),
    'a': (-5.0, 28.0),
    'b': (0.0, 38.0),
}


def skin_pixel_mask(pixels):
    """RGB heuristic skin test over an (N, 3) array, returns a boolean mask."""
    px = np.asarray(pixels, dtype=np.int32).reshape(-1, 3)
    if len(px) == 0:
        return np.zeros(0, dtype=bool)
    r, g, b = px[:, 0], px[:, 1], px[:, 2]
    total = r + g + b

    mask = total >= 60

    # Normalized brightness window
    v = total / 765.0
    mask &= (v >= 0.12) & (v <= 0.90)

    mask &= (r - b) >= 5

    sat = rgb_to_hsv(px)[:, 1]
    mask &= (sat >= 0.04) & (sat <= 0.65)

    # Lips, clothing, red light
    mask &= ~((r > 220) & (g < 80) & (b < 80))

    mask &= r >= g - 10
    mask &= np.abs(g - b) <= 2 * np.abs(r - g)
    return mask


def is_skin_pixel(r, g, b):
    return bool(skin_pixel_mask([[r, g, b]])[0])


def skin_gamut_mask(lab):
    """Lab gamut gate applied after lighting correction."""
    lab = np.asarray(lab, dtype=np.float64).reshape(-1, 3)
    mask = np.ones(len(lab), dtype=bool)
    for idx, key in enumerate(('l', 'a', 'b')):
        lo, hi = SKIN_LAB_GAMUT[key]
        mask &= (lab[:, idx] >= lo) & (lab[:, idx] <= hi)
    return mask


def downsample(image_rgb, max_side):
    """Resize so the longest side is at most max_side. Returns (image, scale)."""
    h, w = image_rgb.shape[:2]
    longest = max(h, w)
    if longest <= max_side:
        return image_rgb, 1.0
    scale = max_side / float(longest)
    new_w = max(1, int(round(w * scale)))
    new_h = max(1, int(round(h * scale)))
    small = cv2.resize(image_rgb, (new_w, new_h), interpolation=cv2.INTER_AREA)
    return small, scale


def grid_points(x0, y0, x1, y1, cols, rows):
    """Cell-center pixel coordinates of a cols x rows grid over a rectangle."""
    step_x = (x1 - x0) / float(cols)
    step_y = (y1 - y0) / float(rows)
    xs = np.floor(x0 + (np.arange(cols) + 0.5) * step_x).astype(int)
    ys = np.floor(y0 + (np.arange(rows) + 0.5) * step_y).astype(int)
    return xs, ys, step_x, step_y


class FaceRegionLocator:
    """Heuristic skin-rectangle scan.

    Deliberately crude: three fixed candidate zones are scanned for skin-colored
    pixels and the best one is expanded into a face box. It will miss faces that
    sit outside the zones or are under strongly colored light.
    """

    def __init__(self, zones=None, grid=LOCATOR_GRID, max_side=LOCATOR_MAX_SIDE):
        self.zones = zones or CANDIDATE_ZONES
        self.grid = grid
        self.max_side = max_side

    def scan_zone(self, image_rgb, bounds):
        h, w = image_rgb.shape[:2]
        fx0, fy0, fx1, fy1 = bounds
        x0, y0, x1, y1 = fx0 * w, fy0 * h, fx1 * w, fy1 * h

        xs, ys, step_x, step_y = grid_points(x0, y0, x1, y1, self.grid, self.grid)
        xs = np.clip(xs, 0, w - 1)
        ys = np.clip(ys, 0, h - 1)
        samples = image_rgb[np.ix_(ys, xs)][..., :3]

        mask = skin_pixel_mask(samples.reshape(-1, 3)).reshape(self.grid, self.grid)
        skin_pixels = int(mask.sum())
        total = self.grid * self.grid
        skin_ratio = skin_pixels / float(total)

        zone = {
            'skin_ratio': skin_ratio,
            'skin_pixels': skin_pixels,
            'total_pixels': total,
            'score': skin_ratio * skin_pixels,
            'box': None,
            'aspect': None,
            'qualifies': False,
        }
        if skin_pixels == 0:
            return zone

        rows = np.where(mask.any(axis=1))[0]
        cols = np.where(mask.any(axis=0))[0]
        bx0 = x0 + cols[0] * step_x
        bx1 = x0 + (cols[-1] + 1) * step_x
        by0 = y0 + rows[0] * step_y
        by1 = y0 + (rows[-1] + 1) * step_y
        box_w, box_h = bx1 - bx0, by1 - by0
        aspect = box_w / box_h if box_h > 0 else 0.0

        zone['box'] = (bx0, by0, box_w, box_h)
        zone['aspect'] = aspect
        zone['qualifies'] = (
            skin_ratio >= MIN_ZONE_SKIN_RATIO
            and skin_pixels >= MIN_ZONE_SKIN_PIXELS
            and ASPECT_RANGE[0] <= aspect <= ASPECT_RANGE[1]
        )
        return zone

    def expand_box(self, box, scale, image_width, image_height):
        x, y, w, h = box

        # Margin on each side
        x -= w * BOX_MARGIN
        y -= h * BOX_MARGIN
        w *= 1 + 2 * BOX_MARGIN
        h *= 1 + 2 * BOX_MARGIN

        # Grow each dimension about the center
        cx, cy = x + w / 2.0, y + h / 2.0
        w *= 1 + BOX_GROWTH
        h *= 1 + BOX_GROWTH
        x, y = cx - w / 2.0, cy - h / 2.0

        inv = 1.0 / scale
        x0, y0 = max(0.0, x * inv), max(0.0, y * inv)
        x1 = min(float(image_width), (x + w) * inv)
        y1 = min(float(image_height), (y + h) * inv)
        return FaceBox(x0, y0, x1 - x0, y1 - y0).clamp(image_width, image_height)

    def locate(self, image_rgb):
        """Find the face box. Returns (FaceBox or None, report dict)."""
        src_h, src_w = image_rgb.shape[:2]
        small, scale = downsample(image_rgb, self.max_side)

        zones = {name: self.scan_zone(small, bounds) for name, bounds in self.zones.items()}
        for name, zone in zones.items():
            logger.debug(
                f"Locator zone {name}: ratio={zone['skin_ratio']:.3f} "
                f"pixels={zone['skin_pixels']} aspect={zone['aspect']} qualifies={zone['qualifies']}"
            )

        report = {
            'zones': {
                name: {'skinRatio': round(z['skin_ratio'], 3), 'skinPixels': z['skin_pixels']}
                for name, z in zones.items()
            },
            'zone': None,
            'skin_ratio': max((z['skin_ratio'] for z in zones.values()), default=0.0),
            'skin_pixels': max((z['skin_pixels'] for z in zones.values()), default=0),
            'total_pixels': self.grid * self.grid,
        }

        qualifying = [(name, z) for name, z in zones.items() if z['qualifies']]
        if not qualifying:
            logger.info("Locator: no candidate zone qualified")
            return None, report

        best_name, best = max(qualifying, key=lambda item: item[1]['score'])
        report['zone'] = best_name
        report['skin_ratio'] = best['skin_ratio']
        report['skin_pixels'] = best['skin_pixels']

        face_box = self.expand_box(best['box'], scale, src_w, src_h)
        if face_box is None or face_box.width < MIN_FACE_SIZE or face_box.height < MIN_FACE_SIZE:
            logger.info(f"Locator: box from zone {best_name} too small: {face_box}")
            return None, report

        logger.info(f"Locator: zone {best_name} selected, box={face_box.to_dict()}")
        return face_box, report
