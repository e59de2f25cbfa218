# =============================================================================
# conftest.py — shared fakes and fixtures for the pytest suite
# No camera, audio device, browser or network is needed by any test.
# =============================================================================

import math

import numpy as np
import pytest

from config import (
    LEFT_EYE_EAR_IDX, RIGHT_EYE_EAR_IDX,
    MOUTH_INNER_TOP, MOUTH_INNER_BOTTOM, MOUTH_LEFT, MOUTH_RIGHT,
)
from sentinel_engine.config_store import ConfigStore
from sentinel_engine.data_structures import (
    DetectionConfig, EmergencyConfig, FrameResult, Landmark,
)
from sentinel_engine.detection_engine import DetectionEngine
from sentinel_engine.interfaces import (
    AudioOutput, FrameSource, HistorySink, MessageTransport,
)

MESH_SIZE = 478


# ── Synthetic geometry ────────────────────────────────────────────────────────

def _place_eye(points, idx, cx, cy, ear, width=0.1):
    """Eye whose EAR is exactly `ear` (both vertical gaps = ear · width)."""
    half = ear * width / 2.0
    p1, p2, p3, p4, p5, p6 = idx
    points[p1] = Landmark(cx - width / 2, cy)
    points[p4] = Landmark(cx + width / 2, cy)
    points[p2] = Landmark(cx - width / 6, cy - half)
    points[p6] = Landmark(cx - width / 6, cy + half)
    points[p3] = Landmark(cx + width / 6, cy - half)
    points[p5] = Landmark(cx + width / 6, cy + half)


def make_landmarks(ear=0.30, mar=0.20):
    """478-point face with the requested mean EAR and MAR."""
    points = [Landmark(0.5, 0.5, 0.0)] * MESH_SIZE
    _place_eye(points, LEFT_EYE_EAR_IDX, 0.62, 0.40, ear)
    _place_eye(points, RIGHT_EYE_EAR_IDX, 0.38, 0.40, ear)
    width = 0.1
    points[MOUTH_LEFT]         = Landmark(0.45, 0.70)
    points[MOUTH_RIGHT]        = Landmark(0.55, 0.70)
    points[MOUTH_INNER_TOP]    = Landmark(0.50, 0.70 - mar * width / 2)
    points[MOUTH_INNER_BOTTOM] = Landmark(0.50, 0.70 + mar * width / 2)
    return tuple(points)


def make_transform(pitch=0.0, yaw=0.0):
    """4×4 row-major transform rotating by pitch (X) then yaw (Y), in degrees."""
    p, y = math.radians(pitch), math.radians(yaw)
    rx = np.array([[1, 0, 0], [0, math.cos(p), -math.sin(p)], [0, math.sin(p), math.cos(p)]])
    ry = np.array([[math.cos(y), 0, math.sin(y)], [0, 1, 0], [-math.sin(y), 0, math.cos(y)]])
    m = np.eye(4)
    m[:3, :3] = ry @ rx
    return m


def face_frame(ear=0.30, mar=0.20, pitch=None, yaw=None, timestamp_ms=0):
    transform = None
    if pitch is not None or yaw is not None:
        transform = make_transform(pitch or 0.0, yaw or 0.0)
    return FrameResult(
        landmarks=make_landmarks(ear, mar),
        transform=transform,
        timestamp_ms=timestamp_ms,
    )


def no_face_frame(timestamp_ms=0):
    return FrameResult(landmarks=None, timestamp_ms=timestamp_ms)


# ── Fake collaborators ────────────────────────────────────────────────────────

class RecordingHistory(HistorySink):
    def __init__(self):
        self.events = []

    def append_event(self, event):
        self.events.append(event)

    def types(self):
        return [e.type.value for e in self.events]


class FakeAudio(AudioOutput):
    def __init__(self):
        self.active = False
        self.activations = 0
        self.deactivations = 0

    def activate(self):
        self.activations += 1
        self.active = True

    def deactivate(self):
        self.deactivations += 1
        self.active = False


class FakeTransport(MessageTransport):
    def __init__(self):
        self.sent = []

    def dispatch(self, destination_digits, message_text):
        self.sent.append((destination_digits, message_text))
        return f"handle-{len(self.sent)}"


class ListSource(FrameSource):
    def __init__(self, frames):
        self._frames = list(frames)
        self.released = 0

    def read(self):
        return self._frames.pop(0) if self._frames else None

    def release(self):
        self.released += 1


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def history():
    return RecordingHistory()


@pytest.fixture
def audio():
    return FakeAudio()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def store():
    return ConfigStore(
        detection=DetectionConfig(
            ear_threshold=0.22, mar_threshold=0.60,
            yaw_threshold=45.0, pitch_threshold=25.0,
            time_to_trigger=1.5,
        ),
        emergency=EmergencyConfig(
            enabled=True, contact_name="Alex",
            contact_number="+1 (555) 123-4567", cooldown_seconds=30.0,
        ),
    )


@pytest.fixture
def engine(store, history, audio, transport):
    return DetectionEngine(store, history, audio, transport)
