"""
Configuration settings for the pillar command pipeline.
Centralized configuration for all stages.
"""

import numpy as np
from dataclasses import dataclass


@dataclass
class TargetColors:
    """HSV color ranges for target segmentation (OpenCV hue scale 0-180)."""

    # Red spans the hue wrap-around, so it is tested as two ranges
    RED = {
        'name': 'red',
        'ranges': [
            (np.array([0, 100, 80]), np.array([10, 255, 255])),
            (np.array([172, 100, 80]), np.array([180, 255, 255]))
        ]
    }

    # Wide saturation/value floor so dark greens still segment
    GREEN = {
        'name': 'green',
        'ranges': [
            (np.array([30, 40, 25]), np.array([90, 255, 255]))
        ]
    }

    MAGENTA = {
        'name': 'magenta',
        'ranges': [
            (np.array([145, 90, 60]), np.array([170, 255, 255]))
        ]
    }

    ALL = [RED, GREEN, MAGENTA]


class PipelineConfig:
    """Configuration for the entire command pipeline."""

    # Frame Preprocessing
    PREPROCESS = {
        'ROI_FRACTION': 0.8,
        'EQUALIZE': True,
        'CLAHE_CLIP_LIMIT': 2.0,
        'CLAHE_TILE_GRID': (8, 8)
    }

    # Color Segmentation
    SEGMENTATION = {
        'KERNEL_SIZE': 5
    }

    # Contour Smoothing
    SMOOTHING = {
        'ENABLED': True,
        'EPSILON': 0.008,
        'DOUBLE_PASS': True,
        'SECOND_PASS_FACTOR': 0.5
    }

    # Shape Validation
    SHAPE_FILTER = {
        'MIN_AREA': 800.0,
        'MIN_SOLIDITY': 0.5,
        'MIN_ASPECT': 0.25,
        'MAX_ASPECT': 4.0,
        'MIN_EXTENT': 0.4,
        'MAX_PERIMETER_AREA_RATIO': 20.0,
        'ADVANCED': True,
        'MIN_RECTANGULARITY': 0.6,
        'MIN_CONVEXITY': 0.85,
        'MAX_CONVEXITY_DEFECTS': 3,
        'SPIKE_DETECTION': True,
        'SPIKE_SAMPLE_POINTS': 20,
        'SPIKE_ANGLE_THRESHOLD': 45.0,
        'MAX_SHARP_ANGLES': 2,
        'VERTEX_EPSILON': 0.02,
        'MIN_VERTICES': 4,
        'MAX_VERTICES': 12
    }

    # Distance / Bearing Estimation
    GEOMETRY = {
        'REFERENCE_AREA': 26000.0,
        'REFERENCE_DISTANCE': 30.0,
        'MIN_DISTANCE': 10,
        'MAX_DISTANCE': 135,
        'BEARING_SPLIT': 0.60,
        'DISPLAY_LEFT': 0.33,
        'DISPLAY_RIGHT': 0.80
    }

    # Distance zones (cm, inclusive)
    ZONES = {
        'NEAR': (40, 60),
        'MID': (80, 100),
        'FAR': (110, 130),
        'VALID_DISTANCE': (10, 200)
    }

    # Command encoding
    COMMANDS = {
        'NO_DETECTION': 'N',
        'MODE': 'case'
    }

    # Temporal Stabilizer
    STABILIZER = {
        'STABILITY_WINDOW': 0.15
    }

    # Outbound dispatch queue
    DISPATCH = {
        'MIN_COMMAND_INTERVAL': 0.010,
        'QUEUE_DEPTH': 16
    }

    # No-detection monitor
    MONITOR = {
        'DETECTION_TIMEOUT': 0.200,
        'TICK': 0.050
    }

    # Serial link to the actuator controller
    SERIAL = {
        'BAUD_RATE': 115200,
        'WRITE_TIMEOUT': 0.05,
        'MAX_RETRIES': 2,
        'RESET_DELAY': 2.0
    }

    # Logging
    LOGGING = {
        'LEVEL': 'INFO',
        'FORMAT': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        'FILE': None,
        'MAX_BYTES': 1_000_000,
        'BACKUP_COUNT': 3
    }

    # Visualization Colors (BGR)
    VIZ_COLORS = {
        'BG_DIM': 0.4,
        'REJECTED': (60, 60, 60),
        'PRIMARY': (0, 255, 255),
        'SECONDARY': (255, 255, 0),
        'CENTROID': (255, 255, 255),
        'TEXT': (255, 255, 255)
    }

    # Per-color overlay fill (BGR)
    TARGET_COLOR_MAP = {
        'red': (0, 0, 255),
        'green': (0, 255, 0),
        'magenta': (255, 0, 255),
    }
