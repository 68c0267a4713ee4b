"""Pytest configuration and shared fixtures for the pillar command pipeline.

Frames are synthetic: solid BGR squares on a black background, placed in
region-of-interest coordinates so tests can reason about areas and
normalized positions directly.
"""
import sys
import logging
from pathlib import Path
from typing import List, Tuple

import pytest
import numpy as np
import cv2

# Add the project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import PipelineConfig
from stages import Detection


# Configure logging for tests
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler()]
)

logging.getLogger('serial').setLevel(logging.WARNING)

FRAME_WIDTH = 640
FRAME_HEIGHT = 480

RED_BGR = (0, 0, 255)
GREEN_BGR = (0, 255, 0)
MAGENTA_BGR = (255, 0, 255)


def roi_offset(width: int = FRAME_WIDTH, height: int = FRAME_HEIGHT) -> Tuple[int, int]:
    fraction = PipelineConfig.PREPROCESS['ROI_FRACTION']
    return (width - int(width * fraction)) // 2, (height - int(height * fraction)) // 2


def make_frame(squares: List[Tuple[Tuple[int, int, int], int, int, int]],
               width: int = FRAME_WIDTH,
               height: int = FRAME_HEIGHT) -> np.ndarray:
    """Black frame with filled squares given as (bgr, x, y, side) in ROI coordinates.

    A square of side s yields a contour area of (s - 1) ** 2.
    """
    frame = np.zeros((height, width, 3), dtype=np.uint8)
    ox, oy = roi_offset(width, height)
    for bgr, x, y, side in squares:
        top_left = (ox + x, oy + y)
        bottom_right = (ox + x + side - 1, oy + y + side - 1)
        cv2.rectangle(frame, top_left, bottom_right, bgr, -1)
    return frame


def square_contour(x: int, y: int, side: int) -> np.ndarray:
    """Four-corner contour as findContours returns it for a filled square."""
    x1, y1 = x + side - 1, y + side - 1
    return np.array([[[x, y]], [[x, y1]], [[x1, y1]], [[x1, y]]], dtype=np.int32)


def star_contour(cx: int = 200, cy: int = 200, outer: int = 100, inner: int = 38,
                 tips: int = 5) -> np.ndarray:
    """Spiky star polygon; its tips are far sharper than 45 degrees."""
    points = []
    for i in range(tips * 2):
        radius = outer if i % 2 == 0 else inner
        angle = np.pi * i / tips - np.pi / 2
        points.append([int(round(cx + radius * np.cos(angle))),
                       int(round(cy + radius * np.sin(angle)))])
    return np.array(points, dtype=np.int32).reshape(-1, 1, 2)


@pytest.fixture
def near_square():
    """110 px square: area 11881, about 44 cm."""
    return square_contour(40, 40, 110)


@pytest.fixture
def far_square():
    """41 px square: area 1600, about 120 cm."""
    return square_contour(400, 40, 41)


@pytest.fixture
def star():
    return star_contour()


@pytest.fixture
def empty_frame():
    return make_frame([])


@pytest.fixture
def red_near_left_frame():
    return make_frame([(RED_BGR, 50, 100, 110)])


@pytest.fixture
def dual_frame():
    """Red near on the left, green far on the right."""
    return make_frame([(RED_BGR, 50, 100, 110), (GREEN_BGR, 430, 60, 41)])


class FakeClock:
    """Manually advanced clock; `sleep` advances it too."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


def make_detection(color, area: float, x: float, frame_size: Tuple[int, int] = (512, 384)) -> Detection:
    width, height = frame_size
    return Detection(color=color, area=area, centroid=(x * width, 100.0),
                     normalized=(x, 100.0 / height), frame_size=frame_size)


@pytest.fixture
def restore_root_logger():
    """Undo handlers and level changes made by setup_logging."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
