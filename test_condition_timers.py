# =============================================================================
# test_condition_timers.py — per-condition duration accumulators
# Run: pytest test_condition_timers.py
# =============================================================================

import math

import pytest

from sentinel_engine.condition_timers import ConditionTimers, clamp_dt, raw_conditions
from sentinel_engine.data_structures import Condition, DetectionConfig, FrameSignals

CFG = DetectionConfig(
    ear_threshold=0.22, mar_threshold=0.60,
    yaw_threshold=45.0, pitch_threshold=25.0, time_to_trigger=1.5,
)


def _only(condition, value=True):
    raw = {c: False for c in Condition}
    raw[condition] = value
    return raw


def test_raw_conditions_use_thresholds():
    raw = raw_conditions(FrameSignals(ear=0.10, mar=0.70, pitch=-30.0, yaw=-50.0), CFG, True)
    assert all(raw.values())

    raw = raw_conditions(FrameSignals(ear=0.22, mar=0.60, pitch=25.0, yaw=45.0), CFG, False)
    assert not any(raw.values())


def test_alarm_fires_only_after_time_to_trigger():
    # ear 0.10 for 10 frames of 0.2 s: alarm from the 8th frame (1.6 s > 1.5 s)
    timers = ConditionTimers()
    raw = raw_conditions(FrameSignals(ear=0.10, mar=0.2), CFG, False)
    history = [timers.update(raw, 0.2, CFG.time_to_trigger).drowsy for _ in range(10)]
    assert history == [False] * 7 + [True] * 3


def test_alarm_never_fires_at_exact_threshold():
    timers = ConditionTimers()
    flags = timers.update(_only(Condition.YAWN), 1.5, 1.5)
    assert not flags.yawning
    flags = timers.update(_only(Condition.YAWN), 0.01, 1.5)
    assert flags.yawning


@pytest.mark.parametrize("condition", [c for c in Condition])
def test_reset_to_zero_when_condition_drops(condition):
    timers = ConditionTimers()
    for _ in range(20):
        timers.update(_only(condition), 0.1, 1.5)
    assert timers.elapsed(condition) == pytest.approx(2.0)

    timers.update(_only(condition, False), 0.1, 1.5)
    assert timers.elapsed(condition) == 0.0


def test_timers_are_independent():
    timers = ConditionTimers()
    for _ in range(10):
        timers.update({Condition.DROWSY: True, Condition.DISTRACTION: True}, 0.2, 1.5)
    flags = timers.update({Condition.DROWSY: True, Condition.DISTRACTION: False}, 0.2, 1.5)
    assert flags.drowsy
    assert not flags.distracted
    assert timers.elapsed(Condition.DROWSY) == pytest.approx(2.2)


def test_seatbelt_alarm_has_no_delay():
    timers = ConditionTimers()
    flags = timers.update(_only(Condition.SEATBELT), 0.0, 1.5)
    assert flags.seatbelt_off
    flags = timers.update(_only(Condition.SEATBELT, False), 0.1, 1.5)
    assert not flags.seatbelt_off


@pytest.mark.parametrize("dt, expected", [
    (-0.5, 0.0),
    (0.0, 0.0),
    (0.033, 0.033),
    (5.0, 1.0),
    (math.nan, 0.0),
])
def test_clamp_dt(dt, expected):
    assert clamp_dt(dt, max_dt=1.0) == pytest.approx(expected)
