"""
Visualization utilities for the command pipeline.
Debug overlays only; nothing here feeds command resolution.
"""

import cv2
import numpy as np
from typing import Dict, List, Optional, Tuple

from config import PipelineConfig
from .entities import Detection, DualDetection, TargetColor
from .geometry import GeometryEstimator


def add_label_to_image(img: np.ndarray,
                       text: str,
                       color: Tuple[int, int, int] = (255, 255, 255),
                       bg_color: Tuple[int, int, int] = (0, 0, 0)) -> np.ndarray:
    """
    Add a top banner with a label to an image.

    Args:
        img: Input image (BGR or grayscale mask)
        text: Label text
        color: Text color
        bg_color: Banner color

    Returns:
        BGR copy with the banner drawn
    """
    vis = cv2.cvtColor(img, cv2.COLOR_GRAY2BGR) if img.ndim == 2 else img.copy()

    h, w = vis.shape[:2]
    font_scale = max(0.4, w / 800.0)
    thickness = max(1, int(w / 400.0))
    bar_h = max(18, int(h * 0.07))

    cv2.rectangle(vis, (0, 0), (w, bar_h), bg_color, -1)
    cv2.putText(vis, text, (10, int(bar_h * 0.72)), cv2.FONT_HERSHEY_SIMPLEX,
                font_scale, color, thickness, cv2.LINE_AA)
    return vis


def dim_image(img: np.ndarray, factor: float = 0.4) -> np.ndarray:
    """Dim an image so overlays stand out."""
    return (img.astype(np.float32) * factor).astype(np.uint8)


def create_mask_panel(masks: Dict[TargetColor, np.ndarray]) -> Optional[np.ndarray]:
    """Side-by-side labeled masks, one per color."""
    if not masks:
        return None
    tiles = [add_label_to_image(mask, color.value) for color, mask in masks.items()]
    return np.hstack(tiles)


def _draw_detection(vis: np.ndarray,
                    detection: Detection,
                    rank: str,
                    ring_color: Tuple[int, int, int],
                    estimator: GeometryEstimator) -> None:
    cx, cy = int(detection.centroid[0]), int(detection.centroid[1])
    fill = PipelineConfig.TARGET_COLOR_MAP.get(detection.color.value, (200, 200, 200))

    cv2.circle(vis, (cx, cy), 8, fill, -1)
    cv2.circle(vis, (cx, cy), 10, ring_color, 2)

    distance = estimator.estimate_distance(detection.area)
    side = estimator.display_bearing(detection.x)
    label = f"{rank}: {detection.color.value} {distance}cm {side.value}"
    cv2.putText(vis, label, (cx + 12, cy - 12), cv2.FONT_HERSHEY_SIMPLEX, 0.5, (0, 0, 0), 3)
    cv2.putText(vis, label, (cx + 12, cy - 12), cv2.FONT_HERSHEY_SIMPLEX, 0.5, ring_color, 1)


def draw_detections(img: np.ndarray,
                    detections: DualDetection,
                    accepted: List[np.ndarray],
                    rejected: List[np.ndarray],
                    command: Optional[str] = None,
                    estimator: GeometryEstimator = None) -> np.ndarray:
    """
    Draw accepted/rejected contours and the ranked detections.

    The bearing shown is the three-bucket display bearing.

    Args:
        img: BGR frame in the same coordinates as the contours (the ROI)
        detections: Ranked detections
        accepted: Contours that passed validation
        rejected: Contours that failed validation
        command: Optional resolved command shown in the banner
        estimator: Geometry estimator, default-configured if None

    Returns:
        Annotated copy of the frame
    """
    colors = PipelineConfig.VIZ_COLORS
    estimator = estimator or GeometryEstimator()

    vis = dim_image(img, colors['BG_DIM'])
    cv2.drawContours(vis, rejected, -1, colors['REJECTED'], 1)
    cv2.drawContours(vis, accepted, -1, colors['PRIMARY'], 2)

    if detections.primary is not None:
        _draw_detection(vis, detections.primary, 'P', colors['PRIMARY'], estimator)
    if detections.secondary is not None:
        _draw_detection(vis, detections.secondary, 'S', colors['SECONDARY'], estimator)

    if command is not None:
        vis = add_label_to_image(vis, f"Command: {command}", colors['TEXT'])
    return vis
