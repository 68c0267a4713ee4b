"""
Frame Preprocessing Module

Crops the centered region of interest, converts to HSV and normalizes
illumination by applying CLAHE to the V (brightness) channel only.
"""

import logging

import cv2
import numpy as np
from typing import Tuple

from config import PipelineConfig
from .exceptions import FrameError, PreprocessFailure

logger = logging.getLogger(__name__)


class FramePreprocessor:
    """Normalizes illumination of incoming BGR frames."""

    def __init__(self, config: dict = None):
        """
        Initialize preprocessor.

        Args:
            config: Optional config dict, uses PipelineConfig.PREPROCESS if None
        """
        self.config = config or PipelineConfig.PREPROCESS
        self.roi_fraction = float(self.config['ROI_FRACTION'])
        self.equalize = self.config['EQUALIZE']
        self.clahe = cv2.createCLAHE(
            clipLimit=self.config['CLAHE_CLIP_LIMIT'],
            tileGridSize=tuple(self.config['CLAHE_TILE_GRID'])
        )

    @staticmethod
    def validate_frame(frame: np.ndarray) -> None:
        """Raise FrameError unless frame is a non-empty BGR or BGRA 8-bit image."""
        if frame is None or not isinstance(frame, np.ndarray):
            raise FrameError("Frame is missing or not an array")
        if frame.ndim != 3 or frame.shape[2] not in (3, 4):
            raise FrameError(f"Expected HxWx3 or HxWx4 frame, got shape {frame.shape}")
        if frame.shape[0] == 0 or frame.shape[1] == 0:
            raise FrameError("Frame is empty")
        if frame.dtype != np.uint8:
            raise FrameError(f"Expected uint8 frame, got {frame.dtype}")

    def roi_bounds(self, width: int, height: int) -> Tuple[int, int, int, int]:
        """Return (x, y, w, h) of the centered region of interest."""
        if self.roi_fraction >= 1.0:
            return 0, 0, width, height
        roi_w = max(1, int(width * self.roi_fraction))
        roi_h = max(1, int(height * self.roi_fraction))
        return (width - roi_w) // 2, (height - roi_h) // 2, roi_w, roi_h

    def crop_roi(self, frame: np.ndarray) -> np.ndarray:
        """Crop the centered region of interest (a view, not a copy)."""
        h, w = frame.shape[:2]
        x, y, roi_w, roi_h = self.roi_bounds(w, h)
        return frame[y:y + roi_h, x:x + roi_w]

    def equalize_value_channel(self, hsv: np.ndarray) -> np.ndarray:
        """
        Apply contrast-limited adaptive equalization to the V channel.

        Args:
            hsv: HSV image

        Returns:
            New HSV image with H and S untouched and V equalized

        Raises:
            PreprocessFailure: if the image does not split into 3 channels
        """
        channels = cv2.split(hsv)
        if len(channels) != 3:
            raise PreprocessFailure(f"HSV image has {len(channels)} channels, expected 3")
        h, s, v = channels
        try:
            v_eq = self.clahe.apply(v)
        except cv2.error as exc:
            raise PreprocessFailure(f"CLAHE failed: {exc}") from exc
        return cv2.merge([h, s, v_eq])

    def preprocess(self, frame: np.ndarray) -> np.ndarray:
        """
        Main preprocessing method.

        Args:
            frame: BGR input frame (BGRA is accepted, alpha is dropped)

        Returns:
            Equalized HSV image of the region of interest. When equalization
            fails the unequalized HSV image is returned instead.

        Raises:
            FrameError: if the frame is malformed
        """
        self.validate_frame(frame)
        roi = self.crop_roi(frame)
        if roi.shape[2] == 4:
            roi = cv2.cvtColor(roi, cv2.COLOR_BGRA2BGR)
        hsv = cv2.cvtColor(roi, cv2.COLOR_BGR2HSV)

        if not self.equalize:
            return hsv

        try:
            return self.equalize_value_channel(hsv)
        except PreprocessFailure as exc:
            logger.warning("Equalization skipped: %s", exc)
            return hsv
