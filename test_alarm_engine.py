# =============================================================================
# test_alarm_engine.py — rising-edge logging, message priority, sound control
# Run: pytest test_alarm_engine.py
# =============================================================================

from dataclasses import replace

import pytest

from sentinel_engine.alarm_engine import (
    ALARM_MESSAGES, AlarmDecisionEngine, decide_alarms, select_message,
)
from sentinel_engine.data_structures import AlarmFlags, Condition, EventType

NONE = AlarmFlags()


def test_no_alarms_no_message():
    decision = decide_alarms(NONE, NONE)
    assert decision.message is None
    assert not decision.sound_on
    assert decision.rising_edges == ()


def test_seatbelt_beats_drowsy():
    flags = AlarmFlags(drowsy=True, seatbelt_off=True)
    assert select_message(flags) == "SEATBELT NOT DETECTED!"


def test_full_priority_order():
    order = []
    flags = AlarmFlags(
        drowsy=True, yawning=True, distracted=True,
        asleep_posture=True, seatbelt_off=True,
    )
    for field in ("seatbelt_off", "drowsy", "asleep_posture", "distracted", "yawning"):
        order.append(select_message(flags))
        flags = replace(flags, **{field: False})
    assert order == [
        ALARM_MESSAGES[Condition.SEATBELT],
        ALARM_MESSAGES[Condition.DROWSY],
        ALARM_MESSAGES[Condition.POSTURE],
        ALARM_MESSAGES[Condition.DISTRACTION],
        ALARM_MESSAGES[Condition.YAWN],
    ]
    assert select_message(flags) is None


def test_rising_edges_are_transitions_only():
    previous = AlarmFlags(drowsy=True)
    current = AlarmFlags(drowsy=True, distracted=True)
    assert decide_alarms(previous, current).rising_edges == (Condition.DISTRACTION,)


def test_sustained_alarm_logs_once(history, audio):
    engine = AlarmDecisionEngine(history, audio)
    for t in range(10):
        engine.update(AlarmFlags(drowsy=True), now_ms=t * 100)
    assert history.types() == ["drowsy"]
    assert history.events[0].timestamp == 0


def test_realarm_after_clear_logs_again(history, audio):
    engine = AlarmDecisionEngine(history, audio)
    engine.update(AlarmFlags(yawning=True), 0)
    engine.update(NONE, 100)
    engine.update(AlarmFlags(yawning=True), 200)
    assert [e.type for e in history.events] == [EventType.YAWN, EventType.YAWN]


def test_simultaneous_edges_each_logged(history, audio):
    engine = AlarmDecisionEngine(history, audio)
    _, events = engine.update(AlarmFlags(asleep_posture=True, seatbelt_off=True), 5)
    assert sorted(e.type.value for e in events) == ["posture", "seatbelt"]
    assert len(history.events) == 2


def test_sound_follows_alarm_state(history, audio):
    engine = AlarmDecisionEngine(history, audio)
    engine.update(AlarmFlags(distracted=True), 0)
    assert audio.active
    assert engine.message == "DISTRACTED! LOOK AHEAD"

    engine.update(NONE, 100)
    assert not audio.active
    assert engine.message is None


def test_previous_flags_tracked(history, audio):
    engine = AlarmDecisionEngine(history, audio)
    flags = AlarmFlags(drowsy=True, yawning=True)
    engine.update(flags, 0)
    assert engine.previous_flags == flags


class BrokenHistory:
    def append_event(self, event):
        raise OSError("disk full")


def test_sound_is_on_before_history_is_written(audio):
    engine = AlarmDecisionEngine(BrokenHistory(), audio)
    with pytest.raises(OSError):
        engine.update(AlarmFlags(seatbelt_off=True), 30)
    assert audio.active
    assert engine.message == ALARM_MESSAGES[Condition.SEATBELT]
