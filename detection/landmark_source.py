"""
detection/landmark_source.py — MediaPipe FaceLandmarker Frame Source
Reads frames with OpenCV and runs the MediaPipe Tasks FaceLandmarker in VIDEO
mode, yielding one FrameResult per frame: the tracked face's landmarks (or
None) plus its facial transformation matrix.

The model file (face_landmarker.task) must already exist at
config.FACE_LANDMARKER_MODEL_PATH; nothing is downloaded here.
"""

import os
import time
from typing import Optional, Union

import cv2
import mediapipe as mp
import numpy as np
from mediapipe.tasks import python as mp_python
from mediapipe.tasks.python import vision

import config
from sentinel_engine.data_structures import FrameResult, Landmark
from sentinel_engine.interfaces import FrameSource
from core.logger import get_logger

log = get_logger(__name__)


def to_frame_result(detection, timestamp_ms: int) -> FrameResult:
    """Convert a FaceLandmarkerResult into the engine's FrameResult."""
    if not detection.face_landmarks:
        return FrameResult(timestamp_ms=timestamp_ms)

    landmarks = tuple(
        Landmark(lm.x, lm.y, lm.z) for lm in detection.face_landmarks[0]
    )
    transform = None
    matrices = getattr(detection, "facial_transformation_matrixes", None)
    if matrices:
        transform = np.asarray(matrices[0], dtype=np.float64).reshape(4, 4)
    return FrameResult(landmarks=landmarks, transform=transform, timestamp_ms=timestamp_ms)


class VideoLandmarkSource(FrameSource):
    """
    FrameSource over any cv2.VideoCapture input (device index, file, URL).

    Usage:
        source = VideoLandmarkSource(0)
        frame = source.read()       # FrameResult or None at end of stream
        source.release()
    """

    def __init__(
        self,
        video: Union[int, str] = config.VIDEO_SOURCE,
        model_path: str = config.FACE_LANDMARKER_MODEL_PATH,
        mirror: bool = True,
    ):
        if not os.path.exists(model_path):
            raise RuntimeError(
                f"FaceLandmarker model not found at {model_path}. "
                "Download face_landmarker.task into the models/ directory."
            )

        self._capture = cv2.VideoCapture(video)
        if not self._capture.isOpened():
            raise RuntimeError(f"Cannot open video source {video!r}")
        self._mirror = mirror

        options = vision.FaceLandmarkerOptions(
            base_options=mp_python.BaseOptions(model_asset_path=model_path),
            running_mode=vision.RunningMode.VIDEO,
            num_faces=config.MP_NUM_FACES,
            min_face_detection_confidence=config.MP_MIN_DETECTION_CONF,
            min_tracking_confidence=config.MP_MIN_TRACKING_CONF,
            output_face_blendshapes=False,
            output_facial_transformation_matrixes=True,
        )
        self._landmarker = vision.FaceLandmarker.create_from_options(options)
        self._t0 = time.monotonic()
        self._last_ts_ms = -1

        log.info(f"VideoLandmarkSource opened ({video!r}).")

    def read(self) -> Optional[FrameResult]:
        ok, frame_bgr = self._capture.read()
        if not ok:
            return None
        if self._mirror:
            frame_bgr = cv2.flip(frame_bgr, 1)

        # detect_for_video needs strictly increasing timestamps
        ts_ms = int((time.monotonic() - self._t0) * 1000)
        if ts_ms <= self._last_ts_ms:
            ts_ms = self._last_ts_ms + 1
        self._last_ts_ms = ts_ms

        rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)
        detection = self._landmarker.detect_for_video(mp_image, ts_ms)
        return to_frame_result(detection, ts_ms)

    def release(self) -> None:
        self._capture.release()
        self._landmarker.close()
        log.info("VideoLandmarkSource released.")
