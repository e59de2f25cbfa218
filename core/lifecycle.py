# =============================================================================
# core/lifecycle.py
#
# Lifecycle — start/stop registry for the application's adapters (alarm
# audio, HUD bridge, frame loop).
#
#   • start_all() starts components in registration order and aborts on the
#     first failure, stopping whatever already started
#   • stop_all() stops started components in reverse order (LIFO); errors are
#     logged and never re-raised so the app always exits cleanly
#   • stop_all() is idempotent
# =============================================================================

import time
from typing import Callable, List, Optional, Tuple
from core.logger import get_logger

log = get_logger(__name__)


class Lifecycle:
    """
    Usage:
        lc = Lifecycle()
        lc.register("AlarmSound", alarm.start, alarm.stop)
        lc.register("HUD bridge", server.start_background, server.stop)
        lc.start_all()
        # ... frame loop ...
        lc.stop_all()
    """

    def __init__(self):
        self._components: List[Tuple[str, Optional[Callable], Optional[Callable]]] = []
        self._started: List[str] = []

    def register(
        self,
        name: str,
        start_fn: Optional[Callable] = None,
        stop_fn: Optional[Callable] = None,
    ) -> None:
        self._components.append((name, start_fn, stop_fn))
        log.debug(f"Registered component: {name}")

    def start_all(self) -> None:
        t_total = time.perf_counter()
        for name, start_fn, _ in self._components:
            if start_fn is not None:
                t0 = time.perf_counter()
                try:
                    start_fn()
                except Exception:
                    log.error(f"  ✗  {name} failed to start", exc_info=True)
                    self.stop_all()
                    raise
                log.info(f"  ✓  {name:<20} started  ({(time.perf_counter() - t0) * 1000:.0f}ms)")
            self._started.append(name)
        log.info(f"All components ready in {(time.perf_counter() - t_total) * 1000:.0f}ms")

    def stop_all(self) -> None:
        if not self._started:
            return
        log.info("Shutting down …")
        for name, _, stop_fn in reversed(self._components):
            if name not in self._started:
                continue
            self._started.remove(name)
            if stop_fn is None:
                continue
            try:
                stop_fn()
                log.info(f"  ✓  {name} stopped.")
            except Exception as e:
                log.error(f"  ✗  {name} shutdown error: {e}", exc_info=True)
        log.info("Shut down cleanly.")

    @property
    def started(self) -> List[str]:
        return list(self._started)
