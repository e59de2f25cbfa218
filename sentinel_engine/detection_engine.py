# =============================================================================
# sentinel_engine/detection_engine.py
#
# DetectionEngine — per-frame orchestrator of the alertness engine.
#
# This is the single public interface between the engine and the rest of
# the application (frame driver, HUD bridge, main loop).
#
# Call flow per frame:
#   0. ConfigStore.snapshot()             → one coherent config for the frame
#   1. geometry.extract_signals(...)      → FrameSignals
#   2. RollingRateTracker.update(...)     → blink_rate, yawn_rate, stress
#   3. ConditionTimers.update(...)        → AlarmFlags
#   4. AlarmDecisionEngine.update(...)    → history events, message, sound
#   5. EscalationController.update(...)   → SOS dispatch (cooldown-gated)
#   6. Pack everything into DetectionState / FrameOutcome and return
#
# No face in the frame: steps 1–5 are skipped entirely. Timers are frozen
# (neither incremented nor reset) and the last DetectionState is kept.
# =============================================================================

from typing import Optional

from sentinel_engine.alarm_engine import AlarmDecisionEngine
from sentinel_engine.condition_timers import ConditionTimers, clamp_dt, raw_conditions
from sentinel_engine.config_store import ConfigStore
from sentinel_engine.data_structures import (
    DetectionState, FrameOutcome, FrameResult, SOSNotification,
)
from sentinel_engine.escalation import EscalationController, SOSDispatcher
from sentinel_engine.geometry import extract_signals
from sentinel_engine.interfaces import AudioOutput, HistorySink, MessageTransport
from sentinel_engine.rate_tracker import RollingRateTracker
from core.logger import get_logger

log = get_logger(__name__)


class DetectionEngine:
    """
    Single entry point for the detection state engine.

    Usage:
        engine = DetectionEngine(config_store, history, audio, transport)

        # Once per frame (the FrameDriver does this):
        outcome = engine.process_frame(frame_result, dt, now_ms)
    """

    def __init__(
        self,
        config_store: ConfigStore,
        history: HistorySink,
        audio: AudioOutput,
        transport: MessageTransport,
    ):
        log.info("Initializing DetectionEngine …")

        self._config     = config_store
        self._rates      = RollingRateTracker()
        self._timers     = ConditionTimers()
        self._alarms     = AlarmDecisionEngine(history, audio)
        self._escalation = EscalationController(SOSDispatcher(history, transport))

        self._frame_count = 0
        self._face_frames = 0
        self._last_state  = DetectionState()
        self._face_present = False

        log.info("DetectionEngine initialized.")

    # ── Main Update ───────────────────────────────────────────────────────────

    def process_frame(self, frame: FrameResult, dt: float, now_ms: int) -> FrameOutcome:
        """
        Run one frame through the engine.

        Args:
            frame:  the frame source's result for this tick
            dt:     seconds since the previous frame (clamped here)
            now_ms: wall-clock milliseconds, used for windows and events

        Returns:
            FrameOutcome with the DetectionState snapshot for this frame.
        """
        self._frame_count += 1
        snap = self._config.snapshot()
        dt = clamp_dt(dt)
        notification = self._escalation.dispatcher.tick(now_ms)

        if not frame.face_detected:
            if self._face_present:
                log.info("Face lost — holding timers.")
            self._face_present = False
            return FrameOutcome(
                state=self._last_state,
                face_detected=False,
                alert_message=self._alarms.message,
                notification=notification,
            )

        if not self._face_present:
            log.info("Face acquired.")
        self._face_present = True
        self._face_frames += 1
        cfg = snap.detection

        # ── 1. Geometry ─────────────────────────────────────────────────────
        signals = extract_signals(frame.landmarks, frame.transform)

        # ── 2. Rolling analytics ────────────────────────────────────────────
        blink_rate, yawn_rate, stress = self._rates.update(signals, cfg, now_ms)

        # ── 3. Condition timers ─────────────────────────────────────────────
        raw = raw_conditions(signals, cfg, snap.seatbelt_off)
        flags = self._timers.update(raw, dt, cfg.time_to_trigger)

        # ── 4. Alarm decision ───────────────────────────────────────────────
        decision, events = self._alarms.update(flags, now_ms)

        # ── 5. Escalation ───────────────────────────────────────────────────
        events += self._escalation.update(flags, snap.emergency, dt, now_ms)

        # ── 6. Snapshot ─────────────────────────────────────────────────────
        state = DetectionState(
            is_drowsy         = flags.drowsy,
            is_yawning        = flags.yawning,
            is_distracted     = flags.distracted,
            is_asleep_posture = flags.asleep_posture,
            is_seatbelt_off   = flags.seatbelt_off,
            ear               = signals.ear,
            mar               = signals.mar,
            yaw               = signals.yaw,
            pitch             = signals.pitch,
            blink_rate        = blink_rate,
            yawn_rate         = yawn_rate,
            stress_level      = stress,
        )
        self._last_state = state

        return FrameOutcome(
            state=state,
            face_detected=True,
            alert_message=decision.message,
            notification=self._escalation.notification,
            events=tuple(events),
        )

    # ── Utility ───────────────────────────────────────────────────────────────

    def reset(self) -> None:
        """Clear timers, rate windows, alarm edge state and face tracking (e.g. driver change)."""
        self._timers.reset()
        self._rates.reset()
        self._face_present = False
        self._escalation.reset()
        self._alarms.reset()
        self._last_state = DetectionState()
        log.info("DetectionEngine reset.")

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def last_state(self) -> DetectionState:
        """Return the most recently computed state without re-processing."""
        return self._last_state

    @property
    def timers(self) -> ConditionTimers:
        return self._timers

    @property
    def escalation(self) -> EscalationController:
        return self._escalation

    @property
    def alert_message(self) -> Optional[str]:
        return self._alarms.message

    @property
    def notification(self) -> SOSNotification:
        return self._escalation.notification
