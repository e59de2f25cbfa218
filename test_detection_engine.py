# =============================================================================
# test_detection_engine.py — full per-frame pipeline with fake collaborators
# Run: pytest test_detection_engine.py
# =============================================================================

import pytest

from conftest import face_frame, no_face_frame
from sentinel_engine.data_structures import Condition


def _feed(engine, frame, frames, dt=0.2, start_ms=0):
    outcomes = []
    t = start_ms
    for _ in range(frames):
        t += int(dt * 1000)
        outcomes.append(engine.process_frame(frame, dt, t))
    return outcomes, t


def test_drowsy_example_fires_on_eighth_frame(engine, history):
    outcomes, _ = _feed(engine, face_frame(ear=0.10), 10)
    assert [o.state.is_drowsy for o in outcomes] == [False] * 7 + [True] * 3
    assert history.types().count("drowsy") == 1
    assert outcomes[7].events[0].type.value == "drowsy"


def test_alert_free_frame(engine, audio):
    outcome = engine.process_frame(face_frame(), 0.033, 1_000)
    assert outcome.face_detected
    assert outcome.alert_message is None
    assert not audio.active
    assert outcome.state.ear == pytest.approx(0.30)
    assert outcome.state.stress_level == 0


def test_condition_loss_resets_timer(engine):
    _feed(engine, face_frame(ear=0.10), 5)
    assert engine.timers.elapsed(Condition.DROWSY) == pytest.approx(1.0)
    engine.process_frame(face_frame(ear=0.30), 0.2, 2_000)
    assert engine.timers.elapsed(Condition.DROWSY) == 0.0


def test_face_loss_freezes_timers_and_state(engine):
    outcomes, t = _feed(engine, face_frame(ear=0.10, mar=0.8), 5)
    before = engine.timers.elapsed(Condition.DROWSY)

    lost, t = _feed(engine, no_face_frame(), 10, start_ms=t)
    assert all(not o.face_detected for o in lost)
    assert engine.timers.elapsed(Condition.DROWSY) == before
    assert lost[-1].state == outcomes[-1].state

    resumed, _ = _feed(engine, face_frame(ear=0.10, mar=0.8), 3, start_ms=t)
    assert resumed[-1].state.is_drowsy


def test_seatbelt_takes_priority(engine, store, audio, history):
    store.set_seatbelt_off(True)
    outcomes, _ = _feed(engine, face_frame(ear=0.10), 10)
    assert outcomes[0].alert_message == "SEATBELT NOT DETECTED!"
    assert outcomes[-1].state.is_drowsy
    assert outcomes[-1].alert_message == "SEATBELT NOT DETECTED!"
    assert audio.active
    assert history.types() == ["seatbelt", "drowsy"]


def test_message_falls_back_when_higher_priority_clears(engine, store):
    store.set_seatbelt_off(True)
    _feed(engine, face_frame(yaw=60.0), 10)
    store.set_seatbelt_off(False)
    outcome = engine.process_frame(face_frame(yaw=60.0), 0.2, 10_000)
    assert outcome.alert_message == "DISTRACTED! LOOK AHEAD"


def test_head_down_escalates_to_sos(engine, transport, history):
    # 1.5 s to alarm, then > 5 s critical
    outcomes, _ = _feed(engine, face_frame(pitch=-40.0), 40)
    assert history.types() == ["posture", "sos"]
    assert transport.sent == [("15551234567", transport.sent[0][1])]
    idx = next(i for i, o in enumerate(outcomes) if any(e.type.value == "sos" for e in o.events))
    assert outcomes[idx].notification.step.value == "sending"
    assert outcomes[idx + 1].notification.step.value == "sent"
    assert outcomes[-1].alert_message == "HEAD DOWN DETECTED"


def test_sos_disabled_by_config(engine, store, transport):
    store.update_emergency(enabled=False)
    _feed(engine, face_frame(ear=0.05), 60)
    assert transport.sent == []


def test_config_change_applies_next_frame(engine, store):
    engine.process_frame(face_frame(ear=0.20), 0.2, 200)
    assert engine.timers.elapsed(Condition.DROWSY) == pytest.approx(0.2)

    store.update_detection(ear_threshold=0.15)
    engine.process_frame(face_frame(ear=0.20), 0.2, 400)
    assert engine.timers.elapsed(Condition.DROWSY) == 0.0


def test_blink_and_yawn_rates(engine):
    t = 0
    for _ in range(3):
        t += 100
        engine.process_frame(face_frame(ear=0.10, mar=0.9), 0.1, t)
        t += 100
        engine.process_frame(face_frame(), 0.1, t)
    state = engine.last_state
    assert state.blink_rate == 3
    assert state.yawn_rate == 3
    assert state.stress_level == 50


def test_huge_first_delta_is_clamped(engine):
    outcome = engine.process_frame(face_frame(ear=0.10), 3_600.0, 1_000)
    assert not outcome.state.is_drowsy


def test_reset_clears_everything(engine, audio):
    _feed(engine, face_frame(ear=0.10), 10)
    assert audio.active
    engine.reset()
    assert engine.timers.elapsed(Condition.DROWSY) == 0.0
    assert not audio.active
    assert engine.alert_message is None


def test_unwritable_history_does_not_stop_the_alarm(tmp_path, store, audio, transport):
    from sentinel_engine.detection_engine import DetectionEngine
    from sentinel_engine.history import HistoryStore

    blocker = tmp_path / "file"
    blocker.write_text("", encoding="utf-8")
    history = HistoryStore(str(blocker / "history.json"))
    engine = DetectionEngine(store, history, audio, transport)
    store.set_seatbelt_off(True)

    outcome = engine.process_frame(face_frame(), 0.03, 30)

    assert audio.active
    assert outcome.alert_message == "SEATBELT NOT DETECTED!"
    assert [e.type.value for e in outcome.events] == ["seatbelt"]
    assert [e.type.value for e in history.events()] == ["seatbelt"]


def test_reset_clears_rate_windows(engine):
    _feed(engine, face_frame(ear=0.10, mar=0.80), 3)
    engine.reset()
    outcome = engine.process_frame(face_frame(), 0.2, 1_000)
    assert outcome.state.blink_rate == 0
    assert outcome.state.yawn_rate == 0
    assert outcome.state.stress_level == 0


def test_closure_spanning_reset_counts_as_new_blink(engine):
    _feed(engine, face_frame(ear=0.10), 3)
    engine.reset()
    outcome = engine.process_frame(face_frame(ear=0.10), 0.2, 1_000)
    assert outcome.state.blink_rate == 1
