"""
Core Entities

Value types shared by every stage: target colors, bearings, distance zones,
detections and the single-owner holder of the latest ranked detections.
"""

import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union


class TargetColor(Enum):
    """Closed set of colors the segmenter looks for."""

    RED = 'red'
    GREEN = 'green'
    MAGENTA = 'magenta'

    @property
    def letter(self) -> str:
        """Single-letter code used in raw command tokens."""
        return _COLOR_LETTERS[self]


_COLOR_LETTERS = {
    TargetColor.RED: 'R',
    TargetColor.GREEN: 'G',
    TargetColor.MAGENTA: 'E',
}

_COLOR_ALIASES = {
    'red': TargetColor.RED,
    'rojo': TargetColor.RED,
    'green': TargetColor.GREEN,
    'verde': TargetColor.GREEN,
    'magenta': TargetColor.MAGENTA,
    'purple': TargetColor.MAGENTA,
}


def normalize_color(color: Union[str, TargetColor, None]) -> Optional[TargetColor]:
    """
    Map a color label from any input boundary onto TargetColor.

    Args:
        color: Enum member or free-form label (case and whitespace ignored)

    Returns:
        Matching TargetColor, or None for unknown labels
    """
    if isinstance(color, TargetColor):
        return color
    if not isinstance(color, str):
        return None
    return _COLOR_ALIASES.get(color.strip().lower())


class Bearing(Enum):
    """Two-bucket bearing used for command resolution."""

    LEFT = 'L'
    RIGHT = 'R'


class DisplayBearing(Enum):
    """Three-bucket bearing used only for on-screen information."""

    LEFT = 'left'
    CENTER = 'center'
    RIGHT = 'right'


class Zone(Enum):
    """Named distance zones."""

    NEAR = 'near'
    MID = 'mid'
    FAR = 'far'


@dataclass(frozen=True)
class Detection:
    """One validated, ranked object in a frame."""

    color: TargetColor
    area: float
    centroid: Tuple[float, float]
    normalized: Tuple[float, float]
    frame_size: Tuple[int, int]

    def __post_init__(self):
        if self.area <= 0:
            raise ValueError(f"Detection area must be positive, got {self.area}")
        width, height = self.frame_size
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid frame size {self.frame_size}")

    @property
    def x(self) -> float:
        return self.normalized[0]

    @property
    def y(self) -> float:
        return self.normalized[1]


@dataclass(frozen=True)
class DualDetection:
    """Ranked output of one frame: largest and second largest detections."""

    primary: Optional[Detection] = None
    secondary: Optional[Detection] = None

    @property
    def count(self) -> int:
        return int(self.primary is not None) + int(self.secondary is not None)

    @property
    def is_empty(self) -> bool:
        return self.primary is None


class DetectionState:
    """
    Holder of the current and previous DualDetection.

    The pipeline worker is the only writer; the monitor and any display code
    read through the accessors. Replacement is atomic under the lock.
    """

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._current = DualDetection()
        self._previous = DualDetection()
        self._last_detection_time = clock()

    def update(self, detections: DualDetection, now: Optional[float] = None) -> None:
        """Replace the current detections; refreshes the timestamp when non-empty."""
        now = self._clock() if now is None else now
        with self._lock:
            self._previous = self._current
            self._current = detections
            if not detections.is_empty:
                self._last_detection_time = now

    @property
    def current(self) -> DualDetection:
        with self._lock:
            return self._current

    @property
    def previous(self) -> DualDetection:
        with self._lock:
            return self._previous

    @property
    def last_detection_time(self) -> float:
        with self._lock:
            return self._last_detection_time

    def seconds_since_detection(self, now: Optional[float] = None) -> float:
        now = self._clock() if now is None else now
        with self._lock:
            return now - self._last_detection_time
