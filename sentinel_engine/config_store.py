# =============================================================================
# sentinel_engine/config_store.py
#
# Holds the live DetectionConfig / EmergencyConfig and the simulated seatbelt
# input. Writers (HUD bridge thread, CLI) replace the frozen config objects
# wholesale under a lock; the engine calls snapshot() once at the top of each
# frame so thresholds cannot change mid-computation.
# =============================================================================

import threading
from dataclasses import dataclass, replace

from sentinel_engine.data_structures import DetectionConfig, EmergencyConfig
from core.logger import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class ConfigSnapshot:
    detection: DetectionConfig
    emergency: EmergencyConfig
    seatbelt_off: bool = False


class ConfigStore:
    """
    Thread-safe holder for externally mutable inputs.

    Usage:
        store = ConfigStore()
        store.update_detection(ear_threshold=0.2)
        snap = store.snapshot()
    """

    def __init__(
        self,
        detection: DetectionConfig = None,
        emergency: EmergencyConfig = None,
        seatbelt_off: bool = False,
    ):
        self._lock = threading.Lock()
        self._detection = detection or DetectionConfig()
        self._emergency = emergency or EmergencyConfig()
        self._seatbelt_off = seatbelt_off

    def snapshot(self) -> ConfigSnapshot:
        with self._lock:
            return ConfigSnapshot(self._detection, self._emergency, self._seatbelt_off)

    def update_detection(self, **changes) -> DetectionConfig:
        """Replace the detection config. Values are used as-is."""
        with self._lock:
            self._detection = replace(self._detection, **changes)
            updated = self._detection
        log.info(f"Detection config updated: {changes}")
        return updated

    def update_emergency(self, **changes) -> EmergencyConfig:
        with self._lock:
            self._emergency = replace(self._emergency, **changes)
            updated = self._emergency
        log.info(f"Emergency config updated: {sorted(changes)}")
        return updated

    def set_seatbelt_off(self, value: bool) -> None:
        with self._lock:
            self._seatbelt_off = bool(value)
        log.info(f"Seatbelt input: {'OFF' if value else 'ON'}")

    @property
    def detection(self) -> DetectionConfig:
        with self._lock:
            return self._detection

    @property
    def emergency(self) -> EmergencyConfig:
        with self._lock:
            return self._emergency
