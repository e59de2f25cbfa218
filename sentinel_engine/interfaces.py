# =============================================================================
# sentinel_engine/interfaces.py
#
# Contracts for the engine's external collaborators. The engine only ever
# talks to these; concrete adapters live in alerts/, detection/ and
# sentinel_engine/history.py.
#
#   FrameSource       ──→ engine ──→ HistorySink
#                                ──→ AudioOutput
#                                ──→ MessageTransport
# =============================================================================

from abc import ABC, abstractmethod
from typing import Any, Optional

from sentinel_engine.data_structures import FrameResult, HistoryEvent


class FrameSource(ABC):
    """Yields one FrameResult per call; zero-or-one face per frame."""

    @abstractmethod
    def read(self) -> Optional[FrameResult]:
        """Block until the next frame. Returns None when the stream has ended."""

    def release(self) -> None:
        """Free the underlying capture / model resources."""


class HistorySink(ABC):
    """Append-only event log. Retention and dedup are the sink's business."""

    @abstractmethod
    def append_event(self, event: HistoryEvent) -> None:
        ...


class AudioOutput(ABC):
    """Alarm sound. Both calls must be idempotent."""

    @abstractmethod
    def activate(self) -> None:
        ...

    @abstractmethod
    def deactivate(self) -> None:
        ...


class MessageTransport(ABC):
    """
    Outbound emergency messaging. Fire-and-forget: the engine never waits on
    or inspects the result beyond keeping the returned handle for display.
    """

    @abstractmethod
    def dispatch(self, destination_digits: str, message_text: str) -> Any:
        ...


# ── Null collaborators ────────────────────────────────────────────────────────

class NullAudio(AudioOutput):
    """Used when audio is disabled from the command line."""

    def activate(self) -> None:
        pass

    def deactivate(self) -> None:
        pass
