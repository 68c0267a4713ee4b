"""
Shape Validation Module

Accepts contours that look like rigid rectangular targets and rejects
organic or irregular false positives (leaves, jagged blobs, slivers).

Checks, all of which must pass:
- area above MIN_AREA
- basic: solidity, aspect ratio, extent, perimeter^2/area
- advanced: rectangularity, convexity, convexity defect count,
  sharp-angle spikes, vertex count after re-approximation
"""

import logging
import math

import cv2
import numpy as np
from dataclasses import dataclass
from typing import Optional, Tuple

from config import PipelineConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShapeMetrics:
    """Read-only geometric measurements of one contour."""

    area: float
    bounding_box: Tuple[int, int, int, int]
    hull_area: float
    perimeter: float

    @classmethod
    def compute(cls, contour: np.ndarray) -> 'ShapeMetrics':
        area = float(cv2.contourArea(contour))
        x, y, w, h = cv2.boundingRect(contour)
        hull = cv2.convexHull(contour)
        hull_area = float(cv2.contourArea(hull))
        perimeter = float(cv2.arcLength(contour, True))
        return cls(area, (int(x), int(y), int(w), int(h)), hull_area, perimeter)

    @property
    def box_area(self) -> float:
        return float(self.bounding_box[2] * self.bounding_box[3])

    @property
    def solidity(self) -> float:
        return self.area / self.hull_area if self.hull_area > 0 else 0.0

    @property
    def aspect_ratio(self) -> float:
        w, h = self.bounding_box[2], self.bounding_box[3]
        return w / h if h > 0 else float('inf')

    @property
    def extent(self) -> float:
        return self.area / self.box_area if self.box_area > 0 else 0.0

    @property
    def perimeter_area_ratio(self) -> float:
        return (self.perimeter ** 2) / self.area if self.area > 0 else float('inf')

    # Same formulas as extent/solidity; kept separate because the advanced
    # pass compares them against their own (stricter) thresholds.
    @property
    def rectangularity(self) -> float:
        return self.extent

    @property
    def convexity(self) -> float:
        return self.solidity


def count_convexity_defects(contour: np.ndarray) -> Optional[int]:
    """Number of convexity defects, or None when they cannot be computed."""
    try:
        hull_idx = cv2.convexHull(contour, returnPoints=False)
        if hull_idx is None or len(hull_idx) < 3:
            return 0
        defects = cv2.convexityDefects(contour, hull_idx)
    except cv2.error as exc:
        logger.debug("Convexity defects unavailable: %s", exc)
        return None
    return 0 if defects is None else len(defects)


def vertex_angles(contour: np.ndarray, max_points: int) -> list:
    """
    Interior angles (degrees) at up to max_points consecutive vertices.

    For each i the angle is measured at point i+1 between its neighbours
    i and i+2, wrapping around the closed polygon.
    """
    points = contour.reshape(-1, 2).astype(np.float64)
    n = len(points)
    if n < 3:
        return []

    angles = []
    for i in range(min(n, max_points)):
        p1 = points[i]
        p2 = points[(i + 1) % n]
        p3 = points[(i + 2) % n]
        v1 = p1 - p2
        v2 = p3 - p2
        mag1 = np.hypot(*v1)
        mag2 = np.hypot(*v2)
        if mag1 == 0 or mag2 == 0:
            continue
        cos_angle = float(np.dot(v1, v2) / (mag1 * mag2))
        angles.append(math.degrees(math.acos(max(-1.0, min(1.0, cos_angle)))))
    return angles


def has_sharp_spikes(contour: np.ndarray,
                     max_points: int = 20,
                     angle_threshold: float = 45.0,
                     max_sharp: int = 2) -> bool:
    """True when more than max_sharp sampled angles are below angle_threshold."""
    sharp = 0
    for angle in vertex_angles(contour, max_points):
        if angle < angle_threshold:
            sharp += 1
            if sharp > max_sharp:
                logger.debug("Spike detected: angle=%.1f", angle)
                return True
    return False


class ShapeValidator:
    """Rejects small or irregular contours."""

    def __init__(self, config: dict = None):
        """
        Initialize shape validator.

        Args:
            config: Optional config dict, uses PipelineConfig.SHAPE_FILTER if None
        """
        self.config = config or PipelineConfig.SHAPE_FILTER
        self.min_area = self.config['MIN_AREA']

    def check_basic(self, metrics: ShapeMetrics) -> Optional[str]:
        """Return the name of the first failing basic check, or None."""
        cfg = self.config

        if metrics.solidity < cfg['MIN_SOLIDITY']:
            return 'solidity'

        if not (cfg['MIN_ASPECT'] <= metrics.aspect_ratio <= cfg['MAX_ASPECT']):
            return 'aspect_ratio'

        if metrics.extent < cfg['MIN_EXTENT']:
            return 'extent'

        if metrics.perimeter_area_ratio > cfg['MAX_PERIMETER_AREA_RATIO']:
            return 'perimeter_area_ratio'

        return None

    def check_advanced(self, contour: np.ndarray, metrics: ShapeMetrics) -> Optional[str]:
        """Return the name of the first failing advanced check, or None."""
        cfg = self.config

        if metrics.rectangularity < cfg['MIN_RECTANGULARITY']:
            return 'rectangularity'

        if metrics.convexity < cfg['MIN_CONVEXITY']:
            return 'convexity'

        # Skipped when OpenCV cannot compute defects for this contour
        defects = count_convexity_defects(contour)
        if defects is not None and defects > cfg['MAX_CONVEXITY_DEFECTS']:
            return 'convexity_defects'

        if cfg['SPIKE_DETECTION'] and has_sharp_spikes(
                contour,
                max_points=cfg['SPIKE_SAMPLE_POINTS'],
                angle_threshold=cfg['SPIKE_ANGLE_THRESHOLD'],
                max_sharp=cfg['MAX_SHARP_ANGLES']):
            return 'spikes'

        approx = cv2.approxPolyDP(contour, cfg['VERTEX_EPSILON'] * metrics.perimeter, True)
        if not (cfg['MIN_VERTICES'] <= len(approx) <= cfg['MAX_VERTICES']):
            return 'vertex_count'

        return None

    def explain(self, contour: np.ndarray) -> Optional[str]:
        """
        Run every check in order and report the first failure.

        Args:
            contour: Contour of shape (N, 1, 2)

        Returns:
            Name of the failing check, or None if the contour is accepted
        """
        metrics = ShapeMetrics.compute(contour)
        if metrics.area <= self.min_area:
            return 'area'

        reason = self.check_basic(metrics)
        if reason is None and self.config['ADVANCED']:
            reason = self.check_advanced(contour, metrics)

        if reason is not None:
            logger.debug(
                "Rejected by %s (area=%.0f solidity=%.2f aspect=%.2f extent=%.2f p2a=%.1f)",
                reason, metrics.area, metrics.solidity, metrics.aspect_ratio,
                metrics.extent, metrics.perimeter_area_ratio
            )
        return reason

    def validate(self, contour: np.ndarray) -> bool:
        """True if the contour is a plausible rigid target."""
        return self.explain(contour) is None
