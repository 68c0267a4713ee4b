"""
Contour Extraction & Smoothing Module

Extracts outer boundaries from color masks and smooths them with up to two
passes of polygon approximation.
"""

import logging

import cv2
import numpy as np
from typing import Dict, List

from config import PipelineConfig
from .entities import TargetColor

logger = logging.getLogger(__name__)


class ContourExtractor:
    """Extracts and smooths external contours."""

    def __init__(self, config: dict = None):
        """
        Initialize contour extractor.

        Args:
            config: Optional config dict, uses PipelineConfig.SMOOTHING if None
        """
        self.config = config or PipelineConfig.SMOOTHING
        self.enabled = self.config['ENABLED']
        self.epsilon = self.config['EPSILON']
        self.double_pass = self.config['DOUBLE_PASS']
        self.second_factor = self.config['SECOND_PASS_FACTOR']

    def extract(self, mask: np.ndarray) -> List[np.ndarray]:
        """Outermost boundaries only; holes are ignored."""
        contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
        return list(contours)

    def smooth(self, contour: np.ndarray) -> np.ndarray:
        """
        Smooth a contour in up to two approximation passes.

        The first pass uses EPSILON * perimeter. The second pass runs only
        while more than 4 vertices remain, with the tolerance scaled by
        SECOND_PASS_FACTOR against the first result's perimeter.

        Args:
            contour: Contour of shape (N, 1, 2)

        Returns:
            A new int32 contour, or the input unchanged if smoothing is
            numerically degenerate
        """
        try:
            pts = contour.astype(np.float32)
            first = cv2.approxPolyDP(pts, self.epsilon * cv2.arcLength(pts, True), True)

            result = first
            if self.double_pass and len(first) > 4:
                eps2 = self.epsilon * self.second_factor * cv2.arcLength(first, True)
                result = cv2.approxPolyDP(first, eps2, True)

            if len(result) < 3:
                return contour
            return np.round(result).astype(np.int32)
        except cv2.error as exc:
            logger.debug("Smoothing failed, keeping raw contour: %s", exc)
            return contour

    def extract_and_smooth(self, masks: Dict[TargetColor, np.ndarray]) -> Dict[TargetColor, List[np.ndarray]]:
        """
        Extract contours from every mask and smooth them.

        Args:
            masks: Dict of TargetColor -> binary mask

        Returns:
            Dict of TargetColor -> list of contours
        """
        result = {}
        for color, mask in masks.items():
            contours = self.extract(mask)
            if self.enabled:
                contours = [self.smooth(c) for c in contours]
            result[color] = contours
        return result
