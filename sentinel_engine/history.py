# =============================================================================
# sentinel_engine/history.py
#
# HistoryStore — the default HistorySink. Keeps the most recent
# HISTORY_MAX_EVENTS events in memory and mirrors them to a JSON file
# ([{id, type, timestamp}, ...]) after every append.
#
# The engine never reads history back; readers are the HUD bridge and tools.
# =============================================================================

import json
import os
import threading
from typing import List, Optional

from config import HISTORY_MAX_EVENTS
from sentinel_engine.data_structures import HistoryEvent
from sentinel_engine.interfaces import HistorySink
from core.logger import get_logger

log = get_logger(__name__)


class HistoryStore(HistorySink):
    """
    Append-only event log with count-based retention.

    Usage:
        store = HistoryStore("data/history.json")
        store.append_event(event)
        store.events()        # oldest first
        store.clear()
    """

    def __init__(self, path: Optional[str] = None, max_events: int = HISTORY_MAX_EVENTS):
        self.path = path
        self.max_events = max_events
        self._lock = threading.Lock()
        self._events: List[HistoryEvent] = self._load()
        log.info(f"HistoryStore ready ({len(self._events)} events, path={path})")

    # ── HistorySink ───────────────────────────────────────────────────────────

    def append_event(self, event: HistoryEvent) -> None:
        with self._lock:
            self._events.append(event)
            if len(self._events) > self.max_events:
                del self._events[: len(self._events) - self.max_events]
            self._save()

    # ── Readers ───────────────────────────────────────────────────────────────

    def events(self) -> List[HistoryEvent]:
        with self._lock:
            return list(self._events)

    def to_list(self) -> List[dict]:
        return [e.to_dict() for e in self.events()]

    def clear(self) -> None:
        with self._lock:
            self._events = []
            if self.path and os.path.exists(self.path):
                try:
                    os.remove(self.path)
                except OSError as exc:
                    log.error(f"Could not remove history file {self.path}: {exc}")
        log.info("History cleared.")

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    # ── Persistence ───────────────────────────────────────────────────────────

    def _load(self) -> List[HistoryEvent]:
        if not self.path or not os.path.exists(self.path):
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                raw = json.load(fh)
            events = [HistoryEvent.from_dict(item) for item in raw]
        except (OSError, ValueError, KeyError, TypeError) as exc:
            log.error(f"Could not read history file {self.path}: {exc}. Starting empty.")
            return []
        return events[-self.max_events:]

    def _save(self) -> None:
        """Mirror the in-memory list to disk; write failures are logged only."""
        if not self.path:
            return
        tmp_path = self.path + ".tmp"
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as fh:
                json.dump([e.to_dict() for e in self._events], fh)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            log.error(f"Could not write history file {self.path}: {exc}")
        finally:
            if os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError as exc:
                    log.warning(f"Could not remove {tmp_path}: {exc}")
