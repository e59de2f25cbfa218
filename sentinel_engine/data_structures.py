# =============================================================================
# sentinel_engine/data_structures.py
# Shared dataclasses that flow between every module of the alertness engine.
# All fields have sensible defaults so partial updates never crash downstream.
# =============================================================================

import enum
import uuid
from dataclasses import dataclass, field
from typing import NamedTuple, Optional, Sequence

import numpy as np

import config


# ── Frame Input ───────────────────────────────────────────────────────────────

class Landmark(NamedTuple):
    """One face-mesh point in normalized image coordinates."""
    x: float
    y: float
    z: float = 0.0


@dataclass(frozen=True)
class FrameResult:
    """
    What the frame source yields per call.
    `landmarks` is None when no face was found in the frame.
    `transform` is a 4×4 row-major pose matrix (16 floats or 4×4 array).
    """
    landmarks: Optional[Sequence[Landmark]] = None
    transform: Optional[np.ndarray] = None
    timestamp_ms: int = 0

    @property
    def face_detected(self) -> bool:
        return self.landmarks is not None and len(self.landmarks) > 0


@dataclass(frozen=True)
class FrameSignals:
    """Scalar signals derived from one frame's geometry."""
    ear: float = 0.0
    mar: float = 0.0
    pitch: float = 0.0   # degrees
    yaw: float = 0.0     # degrees


# ── Configuration ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class DetectionConfig:
    """Thresholds read by every frame. Replaced wholesale, never mutated."""
    ear_threshold: float   = config.EAR_THRESHOLD
    mar_threshold: float   = config.MAR_THRESHOLD
    yaw_threshold: float   = config.YAW_THRESHOLD_DEG
    pitch_threshold: float = config.PITCH_THRESHOLD_DEG
    time_to_trigger: float = config.TIME_TO_TRIGGER_S


@dataclass(frozen=True)
class EmergencyConfig:
    enabled: bool          = config.EMERGENCY_ENABLED
    contact_name: str      = config.EMERGENCY_CONTACT_NAME
    contact_number: str    = config.EMERGENCY_CONTACT_NUMBER
    cooldown_seconds: float = config.EMERGENCY_COOLDOWN_S


# ── Conditions & Events ───────────────────────────────────────────────────────

class Condition(enum.Enum):
    """The five independently timed alarm conditions."""
    DROWSY      = "drowsy"
    YAWN        = "yawn"
    DISTRACTION = "distraction"
    POSTURE     = "posture"
    SEATBELT    = "seatbelt"


class EventType(str, enum.Enum):
    DROWSY      = "drowsy"
    YAWN        = "yawn"
    DISTRACTION = "distraction"
    POSTURE     = "posture"
    SEATBELT    = "seatbelt"
    SOS         = "sos"

    @classmethod
    def for_condition(cls, condition: Condition) -> "EventType":
        return cls(condition.value)


def _new_event_id() -> str:
    return uuid.uuid4().hex[:9]


@dataclass(frozen=True)
class HistoryEvent:
    """
    One logged occurrence. Ownership passes to the history sink on emission.
    Serialized as {id: str, type: str, timestamp: int ms}.
    """
    type: EventType
    timestamp: int
    id: str = field(default_factory=_new_event_id)

    def to_dict(self) -> dict:
        return {"id": self.id, "type": self.type.value, "timestamp": int(self.timestamp)}

    @classmethod
    def from_dict(cls, data: dict) -> "HistoryEvent":
        return cls(
            type=EventType(data["type"]),
            timestamp=int(data["timestamp"]),
            id=str(data["id"]),
        )


# ── Alarm State ───────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AlarmFlags:
    """Five alarm booleans. Also serves as the previous-frame edge state."""
    drowsy: bool       = False
    yawning: bool      = False
    distracted: bool   = False
    asleep_posture: bool = False
    seatbelt_off: bool = False

    def get(self, condition: Condition) -> bool:
        return getattr(self, _FLAG_FIELDS[condition])

    @classmethod
    def from_conditions(cls, values: dict) -> "AlarmFlags":
        return cls(**{_FLAG_FIELDS[c]: bool(v) for c, v in values.items()})


_FLAG_FIELDS = {
    Condition.DROWSY:      "drowsy",
    Condition.YAWN:        "yawning",
    Condition.DISTRACTION: "distracted",
    Condition.POSTURE:     "asleep_posture",
    Condition.SEATBELT:    "seatbelt_off",
}


# ── Output Snapshot ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class DetectionState:
    """
    Per-frame snapshot for the presentation layer.
    Recomputed and replaced wholesale every frame a face is present.
    """
    is_drowsy: bool         = False
    is_yawning: bool        = False
    is_distracted: bool     = False
    is_asleep_posture: bool = False
    is_seatbelt_off: bool   = False
    ear: float   = 0.0
    mar: float   = 0.0
    yaw: float   = 0.0
    pitch: float = 0.0
    # Events in the last rolling window (counts, read as "per minute")
    blink_rate: int = 0
    yawn_rate: int  = 0
    # 0–100
    stress_level: int = 0

    def to_dict(self) -> dict:
        return {
            "isDrowsy":        self.is_drowsy,
            "isYawning":       self.is_yawning,
            "isDistracted":    self.is_distracted,
            "isAsleepPosture": self.is_asleep_posture,
            "isSeatbeltOff":   self.is_seatbelt_off,
            "ear":             round(self.ear, 3),
            "mar":             round(self.mar, 3),
            "yaw":             round(self.yaw, 1),
            "pitch":           round(self.pitch, 1),
            "blinkRate":       self.blink_rate,
            "yawnRate":        self.yawn_rate,
            "stressLevel":     self.stress_level,
        }


# ── SOS Notification ──────────────────────────────────────────────────────────

class NotificationStep(str, enum.Enum):
    HIDDEN  = "hidden"
    SENDING = "sending"
    SENT    = "sent"


@dataclass(frozen=True)
class SOSNotification:
    step: NotificationStep = NotificationStep.HIDDEN
    contact_name: str = ""
    link: str = ""
    # Wall-clock ms after which the notification reverts to hidden
    expires_at_ms: int = 0

    @property
    def visible(self) -> bool:
        return self.step is not NotificationStep.HIDDEN

    def to_dict(self) -> dict:
        return {
            "show":        self.visible,
            "step":        self.step.value,
            "contactName": self.contact_name,
            "link":        self.link,
        }


@dataclass(frozen=True)
class FrameOutcome:
    """Everything the engine produced for one frame (for the HUD bridge)."""
    state: DetectionState
    face_detected: bool = True
    alert_message: Optional[str] = None
    notification: SOSNotification = field(default_factory=SOSNotification)
    events: tuple = ()
