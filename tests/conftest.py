import os

import numpy as np
import pytest

# Keep the service from writing analysis_log.txt during tests
os.environ.setdefault("SKIN_TONE_LOG_FILE", "")

SKIN_RGB = (220, 170, 140)
BACKGROUND_RGB = (40, 60, 160)
FACE_RECT = (120, 80, 280, 300)  # x0, y0, x1, y1


def make_face_image(height=500, width=400, rect=FACE_RECT, skin=SKIN_RGB, background=BACKGROUND_RGB):
    img = np.empty((height, width, 3), dtype=np.uint8)
    img[:] = background
    x0, y0, x1, y1 = rect
    img[y0:y1, x0:x1] = skin
    return img


@pytest.fixture
def face_image():
    return make_face_image()


@pytest.fixture
def blue_image():
    img = np.empty((400, 300, 3), dtype=np.uint8)
    img[:] = BACKGROUND_RGB
    return img


@pytest.fixture
def skin_image():
    img = np.empty((200, 200, 3), dtype=np.uint8)
    img[:] = SKIN_RGB
    return img
