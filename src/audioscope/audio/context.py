"""Process-wide audio context owned by the analyzer session.

The context gates every stream a tap opens. It starts suspended, like a
browser context waiting for a user gesture, and only runs streams once the
session resumes it on ``start()``.
"""

import logging
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from audioscope.audio.taps import SignalTap

logger = logging.getLogger(__name__)


class ContextState(Enum):
    """Run state of an AudioContext."""

    SUSPENDED = "suspended"
    RUNNING = "running"
    CLOSED = "closed"


class AudioContext:
    """Tracks the live taps and starts or stops their streams together."""

    def __init__(self) -> None:
        self.state = ContextState.SUSPENDED
        self._taps: list["SignalTap"] = []

    @property
    def running(self) -> bool:
        """Whether streams should be flowing."""
        return self.state is ContextState.RUNNING

    def register(self, tap: "SignalTap") -> None:
        """Track a tap whose stream follows this context's run state."""
        if self.state is ContextState.CLOSED:
            raise RuntimeError("AudioContext is closed")
        self._taps.append(tap)

    def unregister(self, tap: "SignalTap") -> None:
        """Stop tracking a detached tap."""
        if tap in self._taps:
            self._taps.remove(tap)

    def resume(self) -> None:
        """Start every registered stream."""
        if self.state is ContextState.CLOSED:
            raise RuntimeError("AudioContext is closed")
        if self.state is ContextState.RUNNING:
            return
        self.state = ContextState.RUNNING
        for tap in list(self._taps):
            tap.resume()
        logger.info("AudioContext resumed (%d tap(s))", len(self._taps))

    def suspend(self) -> None:
        """Stop every registered stream without closing it."""
        if self.state is not ContextState.RUNNING:
            return
        self.state = ContextState.SUSPENDED
        for tap in list(self._taps):
            tap.pause()
        logger.info("AudioContext suspended")

    def close(self) -> None:
        """Detach all taps and refuse further use."""
        for tap in list(self._taps):
            tap.detach()
        self._taps.clear()
        self.state = ContextState.CLOSED
        logger.info("AudioContext closed")
