"""
Geometry Estimation Module

Converts contour area to an estimated distance and horizontal position to a
bearing bucket.
"""

import math

from typing import Dict

from config import PipelineConfig
from .entities import Bearing, DisplayBearing


class GeometryEstimator:
    """Distance and bearing estimates from a single calibration pair."""

    def __init__(self, config: dict = None):
        """
        Initialize geometry estimator.

        Args:
            config: Optional config dict, uses PipelineConfig.GEOMETRY if None
        """
        self.config = config or PipelineConfig.GEOMETRY
        self.reference_area = float(self.config['REFERENCE_AREA'])
        self.reference_distance = float(self.config['REFERENCE_DISTANCE'])
        self.min_distance = int(self.config['MIN_DISTANCE'])
        self.max_distance = int(self.config['MAX_DISTANCE'])
        self.bearing_split = self.config['BEARING_SPLIT']
        self.display_left = self.config['DISPLAY_LEFT']
        self.display_right = self.config['DISPLAY_RIGHT']

    def estimate_distance(self, area: float) -> int:
        """
        Inverse square-root distance model.

        distance = sqrt(REFERENCE_AREA / area) * REFERENCE_DISTANCE, truncated
        to whole centimetres and clamped to [MIN_DISTANCE, MAX_DISTANCE].
        """
        if area <= 0:
            return self.max_distance
        distance = int(math.sqrt(self.reference_area / area) * self.reference_distance)
        return max(self.min_distance, min(self.max_distance, distance))

    def bearing(self, normalized_x: float) -> Bearing:
        """Two-bucket bearing used for command resolution."""
        return Bearing.LEFT if normalized_x < self.bearing_split else Bearing.RIGHT

    def display_bearing(self, normalized_x: float) -> DisplayBearing:
        """Three-bucket bearing for on-screen information only."""
        if normalized_x < self.display_left:
            return DisplayBearing.LEFT
        if normalized_x > self.display_right:
            return DisplayBearing.RIGHT
        return DisplayBearing.CENTER

    def calibration_info(self, area: float) -> Dict[str, float]:
        """Area and resulting distance, for calibrating REFERENCE_AREA."""
        return {'area': float(area), 'distance': self.estimate_distance(area)}
