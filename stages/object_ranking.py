"""
Object Ranking Module

Selects the largest and second largest validated contours across all
colors and turns them into Detections.
"""

import logging

import cv2
import numpy as np
from typing import Dict, List, Tuple

from .entities import Detection, DualDetection, TargetColor
from .shape_validation import ShapeValidator

logger = logging.getLogger(__name__)


class ObjectRanker:
    """Ranks validated contours by area."""

    def __init__(self, validator: ShapeValidator = None):
        self.validator = validator or ShapeValidator()

    def collect(self,
                contours_by_color: Dict[TargetColor, List[np.ndarray]]
                ) -> Tuple[List[Tuple[TargetColor, np.ndarray, float, dict]], List[np.ndarray]]:
        """
        Validate every contour and keep the ones with a usable centroid.

        Returns:
            Tuple of (candidates, rejected_contours) where each candidate is
            (color, contour, area, moments)
        """
        candidates = []
        rejected = []
        for color, contours in contours_by_color.items():
            for cnt in contours:
                if not self.validator.validate(cnt):
                    rejected.append(cnt)
                    continue
                M = cv2.moments(cnt)
                if M['m00'] == 0:
                    rejected.append(cnt)
                    continue
                candidates.append((color, cnt, float(cv2.contourArea(cnt)), M))
        return candidates, rejected

    @staticmethod
    def to_detection(color: TargetColor, area: float, moments: dict,
                     frame_size: Tuple[int, int]) -> Detection:
        """Build a Detection from the contour's area-weighted centroid."""
        width, height = frame_size
        cx = moments['m10'] / moments['m00']
        cy = moments['m01'] / moments['m00']
        return Detection(
            color=color,
            area=area,
            centroid=(cx, cy),
            normalized=(cx / width, cy / height),
            frame_size=(width, height)
        )

    def rank(self,
             contours_by_color: Dict[TargetColor, List[np.ndarray]],
             frame_size: Tuple[int, int]) -> Tuple[DualDetection, List[np.ndarray], List[np.ndarray]]:
        """
        Main ranking method.

        Args:
            contours_by_color: Dict of TargetColor -> smoothed contours
            frame_size: (width, height) of the processed frame

        Returns:
            Tuple of (dual_detection, accepted_contours, rejected_contours),
            accepted contours sorted by descending area
        """
        candidates, rejected = self.collect(contours_by_color)
        candidates.sort(key=lambda c: c[2], reverse=True)

        detections = [self.to_detection(color, area, M, frame_size)
                      for color, _, area, M in candidates[:2]]

        primary = detections[0] if detections else None
        secondary = detections[1] if len(detections) > 1 else None

        if primary is not None:
            logger.debug("Primary %s area=%.0f x=%.2f", primary.color.value, primary.area, primary.x)
        if secondary is not None:
            logger.debug("Secondary %s area=%.0f x=%.2f", secondary.color.value, secondary.area, secondary.x)

        accepted = [cnt for _, cnt, _, _ in candidates]
        return DualDetection(primary, secondary), accepted, rejected
