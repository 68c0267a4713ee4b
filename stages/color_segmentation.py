"""
Color Segmentation Module

Builds one binary mask per target color from an HSV frame using inclusive
range thresholds, then removes speckle noise with morphological opening and
fills small holes with closing.
"""

import cv2
import numpy as np
from typing import Dict, List

from config import TargetColors, PipelineConfig
from .entities import TargetColor


class ColorSegmenter:
    """Produces cleaned binary masks per target color."""

    def __init__(self, config: dict = None, colors: List[Dict] = None):
        """
        Initialize color segmenter.

        Args:
            config: Optional config dict, uses PipelineConfig.SEGMENTATION if None
            colors: Optional list of color definitions, uses TargetColors.ALL if None
        """
        self.config = config or PipelineConfig.SEGMENTATION
        self.colors = colors or TargetColors.ALL
        size = int(self.config['KERNEL_SIZE'])
        self.kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (size, size))

    def threshold(self, hsv_image: np.ndarray, color_def: Dict) -> np.ndarray:
        """Union of the inRange masks of every range of a color."""
        mask = np.zeros(hsv_image.shape[:2], dtype=np.uint8)
        for lower, upper in color_def.get('ranges', []):
            mask |= cv2.inRange(hsv_image, lower, upper)
        return mask

    def clean_mask(self, mask: np.ndarray) -> np.ndarray:
        """Opening (erode then dilate) followed by closing (dilate then erode)."""
        opened = cv2.morphologyEx(mask, cv2.MORPH_OPEN, self.kernel)
        return cv2.morphologyEx(opened, cv2.MORPH_CLOSE, self.kernel)

    def segment(self, hsv_image: np.ndarray) -> Dict[TargetColor, np.ndarray]:
        """
        Main segmentation method.

        Args:
            hsv_image: HSV frame (already equalized)

        Returns:
            Dict of TargetColor -> binary mask with the frame's dimensions
        """
        masks = {}
        for color_def in self.colors:
            color = TargetColor(color_def['name'])
            masks[color] = self.clean_mask(self.threshold(hsv_image, color_def))
        return masks
