# =============================================================================
# sentinel_engine/alarm_engine.py
#
# Alarm Decision Engine — turns the five alarm flags into history events,
# one display message and a sound on/off request.
#
# Rising-edge logging:
#   An event is emitted only on a False → True transition of a flag between
#   consecutive frames. A sustained alarm never re-logs.
#
# Message priority (authoritative tie-break, most safety-critical first):
#
#   SEATBELT  >  DROWSY  >  POSTURE  >  DISTRACTION  >  YAWN
#
# The previous-frame flags are passed in and returned explicitly; the
# decision itself is a pure function. AlarmDecisionEngine holds the edge
# state and applies the side effects (history sink, audio).
# =============================================================================

from dataclasses import dataclass
from typing import List, Optional, Tuple

from sentinel_engine.data_structures import (
    AlarmFlags, Condition, EventType, HistoryEvent,
)
from sentinel_engine.interfaces import AudioOutput, HistorySink
from core.logger import get_logger

log = get_logger(__name__)

ALARM_PRIORITY: Tuple[Condition, ...] = (
    Condition.SEATBELT,
    Condition.DROWSY,
    Condition.POSTURE,
    Condition.DISTRACTION,
    Condition.YAWN,
)

ALARM_MESSAGES = {
    Condition.SEATBELT:    "SEATBELT NOT DETECTED!",
    Condition.DROWSY:      "WAKE UP! EYES CLOSED",
    Condition.POSTURE:     "HEAD DOWN DETECTED",
    Condition.DISTRACTION: "DISTRACTED! LOOK AHEAD",
    Condition.YAWN:        "YAWNING DETECTED",
}


@dataclass(frozen=True)
class AlarmDecision:
    rising_edges: Tuple[Condition, ...] = ()
    message: Optional[str] = None
    sound_on: bool = False


def select_message(flags: AlarmFlags) -> Optional[str]:
    """Highest-priority active alarm message, or None when all are clear."""
    for condition in ALARM_PRIORITY:
        if flags.get(condition):
            return ALARM_MESSAGES[condition]
    return None


def decide_alarms(previous: AlarmFlags, current: AlarmFlags) -> AlarmDecision:
    """Pure per-frame decision. The caller stores `current` as the next `previous`."""
    edges = tuple(
        c for c in Condition
        if current.get(c) and not previous.get(c)
    )
    message = select_message(current)
    return AlarmDecision(rising_edges=edges, message=message, sound_on=message is not None)


class AlarmDecisionEngine:
    """
    Applies alarm decisions to the outside world.

    Usage:
        engine = AlarmDecisionEngine(history_sink, audio)
        decision, events = engine.update(flags, now_ms)
    """

    def __init__(self, history: HistorySink, audio: AudioOutput):
        self._history = history
        self._audio = audio
        self._previous = AlarmFlags()
        self.message: Optional[str] = None
        self._sound_on = False

        log.info("AlarmDecisionEngine initialized.")

    # ── Public API ────────────────────────────────────────────────────────────

    def update(self, flags: AlarmFlags, now_ms: int) -> Tuple[AlarmDecision, List[HistoryEvent]]:
        decision = decide_alarms(self._previous, flags)
        self._previous = flags

        # Sound is driven before any history write
        if decision.sound_on:
            self._audio.activate()
            if not self._sound_on:
                log.info(f"Alarm sound on ({decision.message})")
        else:
            self._audio.deactivate()
            if self._sound_on:
                log.info("All alarms cleared.")
        self._sound_on = decision.sound_on
        self.message = decision.message

        events = []
        for condition in decision.rising_edges:
            event = HistoryEvent(type=EventType.for_condition(condition), timestamp=now_ms)
            events.append(event)
            log.warning(f"Alarm raised: {condition.value}")
            self._history.append_event(event)

        return decision, events

    @property
    def previous_flags(self) -> AlarmFlags:
        return self._previous

    def reset(self) -> None:
        """Forget edge state and silence the alarm."""
        self._previous = AlarmFlags()
        self.message = None
        self._sound_on = False
        self._audio.deactivate()
