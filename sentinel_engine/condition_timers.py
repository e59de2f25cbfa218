# =============================================================================
# sentinel_engine/condition_timers.py
#
# Condition Timers — one duration accumulator per alarm condition.
#
#   raw condition holds this frame  →  t += dt
#   otherwise                       →  t  = 0      (no decay, no partial credit)
#
#   alarm = t > time_to_trigger
#
# No hysteresis: a flat threshold plus sustained
# violation is what gates the alarm. The seatbelt condition comes from an
# external sensor; its alarm is the raw value with no delay, but it still has
# an accumulator so the increment-or-reset rule is uniform over the table.
# =============================================================================

from typing import Dict

from config import MAX_FRAME_DT_S
from sentinel_engine.data_structures import (
    AlarmFlags, Condition, DetectionConfig, FrameSignals,
)

# Conditions whose alarm is the raw value itself
UNGATED_CONDITIONS = frozenset({Condition.SEATBELT})


def clamp_dt(dt: float, max_dt: float = MAX_FRAME_DT_S) -> float:
    """Guard against negative, NaN or huge deltas (first frame, stalls)."""
    if not dt > 0.0:
        return 0.0
    return min(dt, max_dt)


def raw_conditions(
    signals: FrameSignals,
    cfg: DetectionConfig,
    seatbelt_off: bool,
) -> Dict[Condition, bool]:
    """Instantaneous per-frame condition values."""
    return {
        Condition.DROWSY:      signals.ear < cfg.ear_threshold,
        Condition.YAWN:        signals.mar > cfg.mar_threshold,
        Condition.DISTRACTION: abs(signals.yaw) > cfg.yaw_threshold,
        Condition.POSTURE:     abs(signals.pitch) > cfg.pitch_threshold,
        Condition.SEATBELT:    bool(seatbelt_off),
    }


class ConditionTimers:
    """
    Fixed table of accumulators keyed by Condition.

    Usage:
        timers = ConditionTimers()
        flags  = timers.update(raw_conditions(sig, cfg, belt), dt, cfg.time_to_trigger)
    """

    def __init__(self):
        self._elapsed: Dict[Condition, float] = {c: 0.0 for c in Condition}

    def update(
        self,
        raw: Dict[Condition, bool],
        dt: float,
        time_to_trigger: float,
    ) -> AlarmFlags:
        """Integrate one frame and return the resulting alarm flags."""
        for condition in Condition:
            if raw.get(condition, False):
                self._elapsed[condition] += dt
            else:
                self._elapsed[condition] = 0.0
        return self.alarm_flags(raw, time_to_trigger)

    def alarm_flags(self, raw: Dict[Condition, bool], time_to_trigger: float) -> AlarmFlags:
        return AlarmFlags.from_conditions({
            c: (bool(raw.get(c, False)) if c in UNGATED_CONDITIONS
                else self._elapsed[c] > time_to_trigger)
            for c in Condition
        })

    def elapsed(self, condition: Condition) -> float:
        return self._elapsed[condition]

    def reset(self) -> None:
        for condition in Condition:
            self._elapsed[condition] = 0.0
