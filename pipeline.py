"""
Pillar Command Pipeline

Main script that orchestrates all stages to turn a camera frame into a
stabilized command for the actuator controller.
Process: Preprocess -> Segment -> Extract/Smooth -> Validate -> Rank ->
Estimate -> Resolve -> Stabilize -> Dispatch

Usage:
    python pipeline.py <image_directory | camera_index> [--serial PORT] [--visualize]
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Callable, Dict, Optional

import cv2
import numpy as np

from config import PipelineConfig
from stages import (
    ColorSegmenter,
    CommandResolver,
    ContourExtractor,
    DetectionMonitor,
    DetectionState,
    DispatchQueue,
    DualDetection,
    FrameError,
    FramePreprocessor,
    GeometryEstimator,
    LoggingTransport,
    ObjectRanker,
    Resolution,
    SerialTransport,
    ShapeValidator,
    TemporalStabilizer,
    Transport,
    encode_raw_command,
)
from stages.logging_config import setup_logging
from stages.visualization import create_mask_panel, draw_detections

logger = logging.getLogger(__name__)


class PillarCommandPipeline:
    """Main pipeline from BGR frames to dispatched commands."""

    def __init__(self,
                 transport: Transport = None,
                 mode: str = None,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize all stages.

        Args:
            transport: Command sink, a LoggingTransport if None
            mode: 'case' for case codes or 'raw' for color,distance,bearing tokens
            clock: Time source shared by the state, stabilizer and monitor
        """
        self.clock = clock
        self.mode = mode or PipelineConfig.COMMANDS['MODE']
        if self.mode not in ('case', 'raw'):
            raise ValueError(f"Unknown command mode: {self.mode}")

        self.preprocessor = FramePreprocessor()
        self.segmenter = ColorSegmenter()
        self.extractor = ContourExtractor()
        self.validator = ShapeValidator()
        self.ranker = ObjectRanker(self.validator)
        self.estimator = GeometryEstimator()
        self.resolver = CommandResolver(estimator=self.estimator)

        self.transport = transport or LoggingTransport()
        self.state = DetectionState(clock=clock)
        self.dispatch = DispatchQueue(self.transport, clock=clock)
        self.stabilizer = TemporalStabilizer(dispatch=self.dispatch.enqueue, clock=clock)
        self.monitor = DetectionMonitor(self.state, self.stabilizer, clock=clock)

    def detect(self, frame: np.ndarray) -> Dict:
        """
        Run the perception stages on a frame.

        Args:
            frame: BGR input frame

        Returns:
            Dictionary with masks, contours and ranked detections

        Raises:
            FrameError: if the frame is malformed
        """
        results = {}

        # Step 1: Preprocess
        hsv = self.preprocessor.preprocess(frame)
        h, w = hsv.shape[:2]
        results['hsv'] = hsv
        results['frame_size'] = (w, h)

        # Step 2: Segment
        masks = self.segmenter.segment(hsv)
        results['masks'] = masks

        # Step 3: Extract & smooth
        contours = self.extractor.extract_and_smooth(masks)
        results['contours'] = contours

        # Step 4: Validate & rank
        detections, accepted, rejected = self.ranker.rank(contours, (w, h))
        results['detections'] = detections
        results['accepted'] = accepted
        results['rejected'] = rejected

        return results

    def command_for(self, detections: DualDetection, resolution: Resolution) -> str:
        """Command token for the current mode."""
        if self.mode == 'raw' and detections.primary is not None:
            primary = detections.primary
            return encode_raw_command(
                primary.color,
                self.estimator.estimate_distance(primary.area),
                self.estimator.bearing(primary.x)
            )
        return resolution.code

    def process_frame(self, frame: np.ndarray, now: Optional[float] = None) -> Dict:
        """
        Run full pipeline on a frame.

        Malformed frames are skipped: nothing is resolved or dispatched.

        Args:
            frame: BGR input frame
            now: Frame timestamp in seconds (defaults to the clock)

        Returns:
            Dictionary with all detection and command results
        """
        now = self.clock() if now is None else now
        results = {
            'frame_ok': False,
            'detections': DualDetection(),
            'resolution': None,
            'command': None,
            'dispatched': None,
        }

        try:
            results.update(self.detect(frame))
        except FrameError as exc:
            logger.warning("Skipping frame: %s", exc)
            return results
        results['frame_ok'] = True

        detections = results['detections']
        self.state.update(detections, now)

        # Step 5: Resolve
        resolution = self.resolver.resolve_detections(detections)
        command = self.command_for(detections, resolution)
        results['resolution'] = resolution
        results['command'] = command
        logger.debug("Resolved %s (%s)", command, resolution.description)

        # Step 6: Stabilize (dispatches through the queue)
        results['dispatched'] = self.stabilizer.update(command, now)

        return results

    def start(self) -> None:
        """Start the dispatch consumer and the no-detection monitor."""
        self.dispatch.start()
        self.monitor.start()

    def stop(self) -> None:
        """Stop background threads; in-flight commands are dropped."""
        self.monitor.stop()
        self.dispatch.stop()
        close = getattr(self.transport, 'close', None)
        if close is not None:
            close()

    def visualize_results(self, image: np.ndarray, results: Dict) -> np.ndarray:
        """
        Create a debug visualization of results.

        Args:
            image: Original BGR frame
            results: Results dictionary from process_frame

        Returns:
            Overlay of the ROI stacked above the per-color masks
        """
        roi = self.preprocessor.crop_roi(image)
        if roi.shape[2] == 4:
            roi = cv2.cvtColor(roi, cv2.COLOR_BGRA2BGR)
        overlay = draw_detections(
            roi,
            results.get('detections', DualDetection()),
            results.get('accepted', []),
            results.get('rejected', []),
            command=results.get('command'),
            estimator=self.estimator
        )

        panel = create_mask_panel(results.get('masks', {}))
        if panel is None:
            return overlay

        scale = overlay.shape[1] / float(panel.shape[1])
        panel = cv2.resize(panel, (overlay.shape[1], max(1, int(panel.shape[0] * scale))))
        return np.vstack([overlay, panel])


def _summarize(results: Dict) -> str:
    detections = results.get('detections', DualDetection())
    parts = []
    for rank, det in (('P', detections.primary), ('S', detections.secondary)):
        if det is not None:
            parts.append(f"{rank}={det.color.value}@{det.x:.2f}/{det.area:.0f}px")
    found = ' '.join(parts) if parts else 'none'
    dispatched = results.get('dispatched') or '-'
    return f"Objects: {found} | Command: {results.get('command')} | Sent: {dispatched}"


def run_image_directory(pipeline: PillarCommandPipeline, input_dir: Path, output_dir: Optional[Path],
                        frame_period: float, calibrate: bool) -> int:
    image_files = []
    for ext in ['*.jpg', '*.jpeg', '*.png', '*.JPG', '*.JPEG', '*.PNG']:
        image_files.extend(input_dir.glob(ext))
    image_files = sorted(set(image_files))

    logger.info("Found %d image(s) to process", len(image_files))
    if not image_files:
        logger.error("No images found in %s", input_dir)
        return 1

    if output_dir is not None:
        output_dir.mkdir(exist_ok=True, parents=True)

    # Images are replayed as a fixed-rate frame sequence on the calling thread
    for idx, img_path in enumerate(image_files):
        image = cv2.imread(str(img_path))
        results = pipeline.process_frame(image, now=idx * frame_period)
        while pipeline.dispatch.drain_once() is not None:
            pass

        logger.info("[%d/%d] %s: %s", idx + 1, len(image_files), img_path.name, _summarize(results))

        primary = results['detections'].primary
        if calibrate and primary is not None:
            info = pipeline.estimator.calibration_info(primary.area)
            logger.info("  Calibration: area=%.0f -> %dcm", info['area'], info['distance'])

        if output_dir is not None and results['frame_ok']:
            vis = pipeline.visualize_results(image, results)
            out_path = output_dir / f"{img_path.stem}_commands.jpg"
            cv2.imwrite(str(out_path), vis)

    return 0


def run_camera(pipeline: PillarCommandPipeline, index: int, calibrate: bool) -> int:
    capture = cv2.VideoCapture(index)
    if not capture.isOpened():
        logger.error("Could not open camera %d", index)
        return 1

    pipeline.start()
    try:
        while True:
            ok, frame = capture.read()
            if not ok:
                logger.warning("Camera read failed")
                time.sleep(0.05)
                continue
            results = pipeline.process_frame(frame)
            if results.get('dispatched'):
                logger.info(_summarize(results))
            primary = results['detections'].primary
            if calibrate and primary is not None:
                info = pipeline.estimator.calibration_info(primary.area)
                logger.info("Calibration: area=%.0f -> %dcm", info['area'], info['distance'])
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        pipeline.stop()
        capture.release()
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(description='Pillar Command Vision Pipeline')
    parser.add_argument('source', type=str, nargs='?',
                        help='Directory of images, or a camera index for live capture')
    parser.add_argument('--serial', type=str, help='Serial port of the actuator controller')
    parser.add_argument('--baud', type=int, default=PipelineConfig.SERIAL['BAUD_RATE'], help='Serial baud rate')
    parser.add_argument('--mode', choices=['case', 'raw'], default=PipelineConfig.COMMANDS['MODE'],
                        help='Emit case codes or raw color,distance,bearing tokens')
    parser.add_argument('--output', '-o', type=str, help='Directory for visualization images')
    parser.add_argument('--visualize', '-v', action='store_true', help='Generate visualization images')
    parser.add_argument('--frame-period', type=float, default=0.05,
                        help='Seconds between replayed image frames')
    parser.add_argument('--calibrate', action='store_true', help='Log area/distance of the primary object')
    parser.add_argument('--list-cases', action='store_true', help='Print the command tables and exit')
    parser.add_argument('--log-level', type=str, default=PipelineConfig.LOGGING['LEVEL'])
    parser.add_argument('--log-file', type=str)

    args = parser.parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    if args.list_cases:
        print(CommandResolver().all_cases_info())
        return 0

    if not args.source:
        parser.error('source is required unless --list-cases is given')

    transport = SerialTransport(args.serial, args.baud) if args.serial else LoggingTransport()
    pipeline = PillarCommandPipeline(transport=transport, mode=args.mode)

    if args.source.isdigit():
        return run_camera(pipeline, int(args.source), args.calibrate)

    input_dir = Path(args.source)
    if not input_dir.exists():
        logger.error("Input directory does not exist: %s", input_dir)
        return 1

    output_dir = None
    if args.visualize:
        output_dir = Path(args.output) if args.output else input_dir / "command_results"

    try:
        return run_image_directory(pipeline, input_dir, output_dir, args.frame_period, args.calibrate)
    finally:
        pipeline.stop()


if __name__ == "__main__":
    sys.exit(main())
