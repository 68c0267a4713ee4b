"""
Pipeline Stages

This package contains the stages of the pillar command pipeline:
- preprocessing: ROI crop and CLAHE illumination normalization
- color_segmentation: per-color HSV masks with morphological cleanup
- contour_smoothing: external contour extraction and two-pass smoothing
- shape_validation: rejects small, organic or irregular contours
- object_ranking: primary/secondary detections by area
- geometry: distance and bearing estimates
- command_resolver: single and dual case tables
- stabilizer: temporal debounce of resolved commands
- dispatch: bounded outbound queue and no-detection monitor
- transport: serial link to the actuator controller
"""

from .entities import (
    Bearing,
    Detection,
    DetectionState,
    DisplayBearing,
    DualDetection,
    TargetColor,
    Zone,
    normalize_color,
)
from .exceptions import FrameError, PreprocessFailure, TransportError, VisionError
from .preprocessing import FramePreprocessor
from .color_segmentation import ColorSegmenter
from .contour_smoothing import ContourExtractor
from .shape_validation import ShapeMetrics, ShapeValidator
from .object_ranking import ObjectRanker
from .geometry import GeometryEstimator
from .command_resolver import (
    DUAL_CASES,
    SINGLE_CASES,
    CommandCase,
    CommandResolver,
    DualCase,
    Observation,
    Resolution,
    encode_raw_command,
)
from .stabilizer import StabilizerPhase, TemporalStabilizer
from .dispatch import DetectionMonitor, DispatchQueue
from .transport import LoggingTransport, SerialTransport, Transport

__all__ = [
    'Bearing',
    'Detection',
    'DetectionState',
    'DisplayBearing',
    'DualDetection',
    'TargetColor',
    'Zone',
    'normalize_color',
    'FrameError',
    'PreprocessFailure',
    'TransportError',
    'VisionError',
    'FramePreprocessor',
    'ColorSegmenter',
    'ContourExtractor',
    'ShapeMetrics',
    'ShapeValidator',
    'ObjectRanker',
    'GeometryEstimator',
    'CommandCase',
    'CommandResolver',
    'DualCase',
    'Observation',
    'Resolution',
    'SINGLE_CASES',
    'DUAL_CASES',
    'encode_raw_command',
    'StabilizerPhase',
    'TemporalStabilizer',
    'DetectionMonitor',
    'DispatchQueue',
    'LoggingTransport',
    'SerialTransport',
    'Transport',
]
