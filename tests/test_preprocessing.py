"""Tests for frame validation, ROI cropping and V-channel equalization."""
from unittest.mock import patch

import numpy as np
import pytest
import cv2

from stages import FrameError, FramePreprocessor, PreprocessFailure
from conftest import RED_BGR, make_frame


class TestFrameValidation:

    @pytest.mark.parametrize("frame", [
        None,
        [[0, 0, 0]],
        np.zeros((48, 64), dtype=np.uint8),
        np.zeros((48, 64, 2), dtype=np.uint8),
        np.zeros((0, 64, 3), dtype=np.uint8),
        np.zeros((48, 64, 3), dtype=np.float32),
    ])
    def test_malformed_frames_raise(self, frame):
        with pytest.raises(FrameError):
            FramePreprocessor.validate_frame(frame)

    def test_valid_frame_passes(self, empty_frame):
        FramePreprocessor.validate_frame(empty_frame)


class TestRegionOfInterest:

    def test_centered_bounds(self):
        pre = FramePreprocessor()
        assert pre.roi_bounds(640, 480) == (64, 48, 512, 384)

    def test_full_frame_when_fraction_is_one(self):
        config = dict(FramePreprocessor().config, ROI_FRACTION=1.0)
        pre = FramePreprocessor(config)
        assert pre.roi_bounds(640, 480) == (0, 0, 640, 480)

    def test_crop_shape(self, empty_frame):
        roi = FramePreprocessor().crop_roi(empty_frame)
        assert roi.shape == (384, 512, 3)


class TestPreprocess:

    def test_output_is_hsv_of_roi(self):
        frame = make_frame([(RED_BGR, 10, 10, 50)])
        hsv = FramePreprocessor().preprocess(frame)

        assert hsv.shape == (384, 512, 3)
        assert hsv.dtype == np.uint8
        # Pure red: hue 0, full saturation, brightest value preserved by CLAHE
        assert tuple(hsv[30, 30]) == (0, 255, 255)

    def test_hue_and_saturation_untouched(self):
        frame = np.random.RandomState(7).randint(0, 256, (120, 160, 3)).astype(np.uint8)
        pre = FramePreprocessor()
        plain = cv2.cvtColor(pre.crop_roi(frame), cv2.COLOR_BGR2HSV)
        equalized = pre.preprocess(frame)

        np.testing.assert_array_equal(plain[:, :, 0], equalized[:, :, 0])
        np.testing.assert_array_equal(plain[:, :, 1], equalized[:, :, 1])

    def test_equalization_can_be_disabled(self):
        frame = np.random.RandomState(3).randint(0, 256, (120, 160, 3)).astype(np.uint8)
        config = dict(FramePreprocessor().config, EQUALIZE=False)
        pre = FramePreprocessor(config)
        expected = cv2.cvtColor(pre.crop_roi(frame), cv2.COLOR_BGR2HSV)
        np.testing.assert_array_equal(pre.preprocess(frame), expected)

    def test_equalization_failure_falls_back_to_plain_hsv(self, caplog):
        frame = np.random.RandomState(5).randint(0, 256, (120, 160, 3)).astype(np.uint8)
        pre = FramePreprocessor()
        expected = cv2.cvtColor(pre.crop_roi(frame), cv2.COLOR_BGR2HSV)

        with patch.object(FramePreprocessor, 'equalize_value_channel',
                          side_effect=PreprocessFailure('boom')):
            result = pre.preprocess(frame)

        np.testing.assert_array_equal(result, expected)
        assert 'Equalization skipped' in caplog.text

    def test_two_channel_image_is_preprocess_failure(self):
        with pytest.raises(PreprocessFailure):
            FramePreprocessor().equalize_value_channel(np.zeros((10, 10, 2), dtype=np.uint8))

    def test_malformed_frame_propagates(self):
        with pytest.raises(FrameError):
            FramePreprocessor().preprocess(np.zeros((10, 10), dtype=np.uint8))

    def test_bgra_frame_is_processed_like_bgr(self):
        frame = make_frame([(RED_BGR, 10, 10, 50)])
        bgra = cv2.cvtColor(frame, cv2.COLOR_BGR2BGRA)
        pre = FramePreprocessor()

        FramePreprocessor.validate_frame(bgra)
        np.testing.assert_array_equal(pre.preprocess(bgra), pre.preprocess(frame))
