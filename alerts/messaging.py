"""
alerts/messaging.py — SOS Message Transports
MessageTransport adapters for the escalation controller.

Dispatch is fire-and-forget: the link is opened on a daemon thread and the
call returns the link immediately. Failures are logged on that thread and
never reach the engine.
"""

import threading
import webbrowser

from sentinel_engine.escalation import build_whatsapp_link
from sentinel_engine.interfaces import MessageTransport
from core.logger import get_logger

log = get_logger(__name__)


class WhatsAppTransport(MessageTransport):
    """
    Opens a prefilled WhatsApp chat (wa.me link) in the default browser.

    Usage:
        transport = WhatsAppTransport()
        link = transport.dispatch("15551234567", "EMERGENCY: ...")
    """

    def __init__(self, opener=webbrowser.open):
        self._opener = opener

    def dispatch(self, destination_digits: str, message_text: str) -> str:
        link = build_whatsapp_link(destination_digits, message_text)

        def _open():
            try:
                if not self._opener(link):
                    log.warning("No browser available to open the SOS link.")
            except webbrowser.Error as exc:
                log.error(f"Opening SOS link failed: {exc}")

        threading.Thread(target=_open, daemon=True, name="sentinel-sos-dispatch").start()
        log.info(f"SOS link handed to browser: {link}")
        return link


class LogTransport(MessageTransport):
    """Records the payload in the log only (dry runs, --dry-run-sos)."""

    def dispatch(self, destination_digits: str, message_text: str) -> str:
        link = build_whatsapp_link(destination_digits, message_text)
        log.warning(f"[dry-run] SOS to {destination_digits or '<unset>'}: {message_text}")
        return link
