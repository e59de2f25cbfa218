# =============================================================================
# sentinel_engine/escalation.py
#
# Escalation / SOS controller.
#
# Second-order timer over the composite critical condition:
#
#   critical = (drowsy or asleep_posture) and emergency.enabled
#
#   critical  →  critical_timer += dt
#                critical_timer > SOS_ESCALATION_S  →  request SOS, timer = 0
#   else      →  critical_timer  = 0
#
# Every SOS request then passes its own cooldown gate:
#
#   now − last_dispatch < cooldown_seconds · 1000   →  suppressed
#
# so a driver who stays critical re-triggers every max(escalation, cooldown).
#
# A dispatch that passes the gate counts as successful the moment it is handed
# to the transport. "Success" here means ATTEMPTED, not delivered; the
# transport never reports back.
#
# Notification lifecycle (shown by the HUD):
#
#   HIDDEN ──dispatch──→ SENDING ──next frame──→ SENT ──8 s──→ HIDDEN
#
# The dispatching frame publishes SENDING; the following tick() shows SENT.
# =============================================================================

import re
from dataclasses import replace
from typing import Any, List, Optional
from urllib.parse import quote

from config import (
    SOS_ESCALATION_S, SOS_NOTICE_DURATION_MS, SOS_LOCATION_URL,
    SOS_MESSAGE_TEMPLATE, WHATSAPP_URL_TEMPLATE,
)
from sentinel_engine.data_structures import (
    AlarmFlags, EmergencyConfig, EventType, HistoryEvent,
    NotificationStep, SOSNotification,
)
from sentinel_engine.interfaces import HistorySink, MessageTransport
from core.logger import get_logger

log = get_logger(__name__)


# ── Payload helpers ───────────────────────────────────────────────────────────

def digits_only(number: str) -> str:
    """Messaging links want bare digits incl. country code: no '+', spaces or dashes."""
    return re.sub(r"[^0-9]", "", number or "")


def build_sos_message(location_url: str = SOS_LOCATION_URL) -> str:
    return SOS_MESSAGE_TEMPLATE.format(location=location_url)


def build_whatsapp_link(destination_digits: str, message_text: str) -> str:
    return WHATSAPP_URL_TEMPLATE.format(
        number=destination_digits,
        text=quote(message_text, safe=""),
    )


# ── Dispatcher ────────────────────────────────────────────────────────────────

class SOSDispatcher:
    """
    Cooldown-gated emergency dispatch plus the notification it drives.

    Usage:
        sos = SOSDispatcher(history_sink, transport)
        sent = sos.request(emergency_cfg, now_ms)
        sos.tick(now_ms)          # once per frame, expires the notification
    """

    def __init__(
        self,
        history: HistorySink,
        transport: MessageTransport,
        location_url: str = SOS_LOCATION_URL,
        notice_ms: int = SOS_NOTICE_DURATION_MS,
    ):
        self._history = history
        self._transport = transport
        self._location_url = location_url
        self._notice_ms = notice_ms

        self.last_dispatch_ms: Optional[int] = None
        self.last_handle: Any = None
        self.dispatch_count = 0
        self.notification = SOSNotification()

    def request(self, emergency: EmergencyConfig, now_ms: int) -> Optional[HistoryEvent]:
        """
        Attempt a dispatch.

        Returns:
            The emitted `sos` HistoryEvent, or None if suppressed by cooldown.
        """
        if self.last_dispatch_ms is not None:
            since = now_ms - self.last_dispatch_ms
            if since < emergency.cooldown_seconds * 1000.0:
                log.info(f"SOS suppressed by cooldown ({since} ms since last dispatch)")
                return None

        self.last_dispatch_ms = now_ms
        event = HistoryEvent(type=EventType.SOS, timestamp=now_ms)
        self._history.append_event(event)

        digits = digits_only(emergency.contact_number)
        text = build_sos_message(self._location_url)
        link = build_whatsapp_link(digits, text)

        self.notification = SOSNotification(
            step=NotificationStep.SENDING,
            contact_name=emergency.contact_name,
            link=link,
            expires_at_ms=now_ms + self._notice_ms,
        )
        self.last_handle = self._transport.dispatch(digits, text)
        self.dispatch_count += 1

        log.warning(f"SOS dispatched to {emergency.contact_name} ({digits or 'no number'})")
        return event

    def tick(self, now_ms: int) -> SOSNotification:
        """Advance SENDING to SENT; hide once the display window has passed."""
        if self.notification.visible and now_ms >= self.notification.expires_at_ms:
            self.notification = SOSNotification()
        elif self.notification.step is NotificationStep.SENDING:
            self.notification = replace(self.notification, step=NotificationStep.SENT)
        return self.notification


# ── Escalation timer ──────────────────────────────────────────────────────────

class EscalationController:
    """
    Critical-condition timer that requests SOS dispatch.

    Usage:
        esc = EscalationController(dispatcher)
        events = esc.update(flags, emergency_cfg, dt, now_ms)
    """

    def __init__(self, dispatcher: SOSDispatcher, threshold_s: float = SOS_ESCALATION_S):
        self.dispatcher = dispatcher
        self.threshold_s = threshold_s
        self.critical_timer = 0.0

        log.info(f"EscalationController initialized (threshold={threshold_s:.1f}s).")

    @staticmethod
    def is_critical(flags: AlarmFlags, emergency: EmergencyConfig) -> bool:
        return (flags.drowsy or flags.asleep_posture) and emergency.enabled

    def update(
        self,
        flags: AlarmFlags,
        emergency: EmergencyConfig,
        dt: float,
        now_ms: int,
    ) -> List[HistoryEvent]:
        events = []
        if self.is_critical(flags, emergency):
            self.critical_timer += dt
            if self.critical_timer > self.threshold_s:
                log.warning(f"Driver unresponsive for {self.critical_timer:.1f}s — escalating.")
                event = self.dispatcher.request(emergency, now_ms)
                if event is not None:
                    events.append(event)
                self.critical_timer = 0.0
        else:
            self.critical_timer = 0.0
        return events

    def reset(self) -> None:
        self.critical_timer = 0.0

    @property
    def notification(self) -> SOSNotification:
        return self.dispatcher.notification
