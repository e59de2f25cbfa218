# =============================================================================
# sentinel_engine/rate_tracker.py
#
# Rolling Rate Tracker — blink and yawn occurrences over a sliding window.
#
#   • A blink is the rising edge of  ear < ear_threshold
#   • A yawn  is the rising edge of  mar > mar_threshold
#   • Each occurrence appends the wall-clock ms to its window
#   • Entries at or before (now − RATE_WINDOW_MS) are evicted from the front
#
#   blink_rate = |blinks|      yawn_rate = |yawns|
#   stress     = min(100, round(blink_rate · 1.5 + yawn_rate · 15))
#
# Windows are append-only plus prefix eviction, so they stay sorted.
# =============================================================================

import collections
import math
from typing import Deque, Tuple

from config import (
    RATE_WINDOW_MS, STRESS_BLINK_WEIGHT, STRESS_YAWN_WEIGHT, STRESS_MAX,
)
from sentinel_engine.data_structures import DetectionConfig, FrameSignals
from core.logger import get_logger

log = get_logger(__name__)


def compute_stress_level(blink_rate: int, yawn_rate: int) -> int:
    """Composite 0–100 stress score. Rounds half up."""
    raw = blink_rate * STRESS_BLINK_WEIGHT + yawn_rate * STRESS_YAWN_WEIGHT
    return int(min(STRESS_MAX, max(0, math.floor(raw + 0.5))))


class RollingRateTracker:
    """
    Maintains the blink and yawn timestamp windows.

    Usage:
        tracker = RollingRateTracker()
        blink_rate, yawn_rate, stress = tracker.update(signals, cfg, now_ms)
    """

    def __init__(self, window_ms: int = RATE_WINDOW_MS):
        self.window_ms = window_ms
        self._blinks: Deque[int] = collections.deque()
        self._yawns:  Deque[int] = collections.deque()
        # Previous raw states for rising-edge detection
        self._was_closed  = False
        self._was_yawning = False

    # ── Public API ────────────────────────────────────────────────────────────

    def update(
        self,
        signals: FrameSignals,
        cfg: DetectionConfig,
        now_ms: int,
    ) -> Tuple[int, int, int]:
        """
        Feed one frame.

        Returns:
            (blink_rate, yawn_rate, stress_level)
        """
        is_closed = signals.ear < cfg.ear_threshold
        if is_closed and not self._was_closed:
            self._blinks.append(now_ms)
        self._was_closed = is_closed

        is_yawning = signals.mar > cfg.mar_threshold
        if is_yawning and not self._was_yawning:
            self._yawns.append(now_ms)
            log.debug(f"Yawn onset at {now_ms}")
        self._was_yawning = is_yawning

        return self.rates(now_ms)

    def rates(self, now_ms: int) -> Tuple[int, int, int]:
        """Evict stale entries and return (blink_rate, yawn_rate, stress)."""
        self._evict(now_ms)
        blink_rate = len(self._blinks)
        yawn_rate  = len(self._yawns)
        return blink_rate, yawn_rate, compute_stress_level(blink_rate, yawn_rate)

    def record_blink(self, timestamp_ms: int) -> None:
        """Append a blink directly (replaying recorded sessions)."""
        self._blinks.append(timestamp_ms)

    def reset(self) -> None:
        """Empty both windows and forget the previous eye/mouth state."""
        self._blinks.clear()
        self._yawns.clear()
        self._was_closed  = False
        self._was_yawning = False

    @property
    def blink_timestamps(self) -> list:
        return list(self._blinks)

    @property
    def yawn_timestamps(self) -> list:
        return list(self._yawns)

    # ── Private ───────────────────────────────────────────────────────────────

    def _evict(self, now_ms: int) -> None:
        cutoff = now_ms - self.window_ms
        for window in (self._blinks, self._yawns):
            while window and window[0] <= cutoff:
                window.popleft()
