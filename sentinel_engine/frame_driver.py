# =============================================================================
# sentinel_engine/frame_driver.py
#
# FrameDriver — owns the frame clock and pumps frames from a FrameSource into
# the DetectionEngine, one synchronous engine update per frame.
#
#   read frame → dt from monotonic clock → engine.process_frame → listeners
#
# Event timestamps come from the wall clock but never decrease between frames.
#
# stop() only sets a flag: the frame in flight completes, no further frame is
# scheduled, and the source is released on the way out of run().
# =============================================================================

import threading
import time
from typing import Callable, List, Optional

from sentinel_engine.data_structures import FrameOutcome
from sentinel_engine.detection_engine import DetectionEngine
from sentinel_engine.interfaces import FrameSource
from core.logger import get_logger

log = get_logger(__name__)

OutcomeListener = Callable[[FrameOutcome, float], None]


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


class FrameDriver:
    """
    Real-time frame loop.

    Usage:
        driver = FrameDriver(source, engine)
        driver.add_listener(lambda outcome, fps: server.emit_frame(...))
        driver.run()              # blocks until stop() or end of stream
    """

    def __init__(
        self,
        source: FrameSource,
        engine: DetectionEngine,
        clock: Callable[[], float] = time.monotonic,
        wall_clock_ms: Callable[[], int] = _wall_clock_ms,
    ):
        self._source = source
        self._engine = engine
        self._clock = clock
        self._wall_clock_ms = wall_clock_ms
        self._listeners: List[OutcomeListener] = []

        self._stop_event = threading.Event()
        self._last_tick: Optional[float] = None
        self._last_now_ms: Optional[int] = None
        self._released = False

        # FPS tracking
        self._fps: float = 0.0
        self._fps_count: int = 0
        self._last_fps_time: Optional[float] = None

    # ── Listeners ─────────────────────────────────────────────────────────────

    def add_listener(self, listener: OutcomeListener) -> None:
        self._listeners.append(listener)

    # ── Loop ──────────────────────────────────────────────────────────────────

    def run(self) -> int:
        """
        Process frames until the stream ends or stop() is called.

        Returns:
            Number of frames processed.
        """
        processed = 0
        log.info("Frame loop running …")
        try:
            while not self._stop_event.is_set():
                if self.step() is None:
                    log.info("Frame source exhausted.")
                    break
                processed += 1
        finally:
            self.release()
        log.info(f"Frame loop stopped after {processed} frames.")
        return processed

    def step(self) -> Optional[FrameOutcome]:
        """Read and process exactly one frame. None when the source has ended."""
        frame = self._source.read()
        if frame is None:
            return None

        tick = self._clock()
        dt = 0.0 if self._last_tick is None else tick - self._last_tick
        self._last_tick = tick
        self._update_fps(tick)

        outcome = self._engine.process_frame(frame, dt, self._next_now_ms())
        for listener in self._listeners:
            listener(outcome, self._fps)
        return outcome

    def stop(self) -> None:
        """Request a clean stop; safe to call from any thread or signal handler."""
        self._stop_event.set()

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._source.release()
        log.info("Frame source released.")

    def _next_now_ms(self) -> int:
        """Wall-clock ms, held at the previous value if the system clock steps back."""
        now_ms = self._wall_clock_ms()
        if self._last_now_ms is not None and now_ms < self._last_now_ms:
            log.warning(f"Wall clock stepped back {self._last_now_ms - now_ms} ms; holding timestamp.")
            now_ms = self._last_now_ms
        self._last_now_ms = now_ms
        return now_ms

    # ── FPS tracking ──────────────────────────────────────────────────────────

    def _update_fps(self, now: float) -> None:
        if self._last_fps_time is None:
            self._last_fps_time = now
            return
        self._fps_count += 1
        if now - self._last_fps_time >= 1.0:
            self._fps = self._fps_count / (now - self._last_fps_time)
            self._fps_count = 0
            self._last_fps_time = now

    @property
    def fps(self) -> float:
        return self._fps

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()
