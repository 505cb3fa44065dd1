"""
Progress reporting surfaces.

The orchestrator only ever talks to the ``ProgressReporter`` protocol.
``PanelReporter`` keeps state in memory for an embedded panel to render;
``ConsoleReporter`` behaves like a transient overlay writing to a stream.
"""
from __future__ import annotations

import logging
import sys
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Protocol, TextIO, runtime_checkable

from .cancellation import CancellationToken

logger = logging.getLogger(__name__)

ERROR_PERCENT = -1


@runtime_checkable
class ProgressReporter(Protocol):
    @property
    def cancelled(self) -> bool: ...

    def request_cancel(self) -> None: ...

    def update_status(self, text: str, percent: Optional[float] = None) -> None: ...

    def log(self, message: str) -> None: ...

    def clear_display(self) -> None: ...

    def attach_token(self, token: CancellationToken) -> None: ...

    def detach_token(self, token: CancellationToken) -> None: ...


@dataclass
class LogEntry:
    timestamp: datetime
    message: str

    def format(self) -> str:
        return f"[{self.timestamp.strftime('%H:%M:%S')}] {self.message}"


def clamp_percent(percent: float) -> float:
    return min(100.0, max(0.0, float(percent)))


def format_time(seconds: float) -> str:
    mins = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{mins}m {secs}s"


class BaseReporter(ABC):
    """Cancellation and token bookkeeping shared by every surface."""

    def __init__(self) -> None:
        self._cancelled = False
        self._token: CancellationToken | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def active_token(self) -> CancellationToken | None:
        return self._token

    def attach_token(self, token: CancellationToken) -> None:
        self._token = token
        if self._cancelled:
            token.cancel()

    def detach_token(self, token: CancellationToken) -> None:
        # A finished attempt must not clear the token of a newer one.
        if self._token is token:
            self._token = None

    def request_cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        logger.info("Cancellation requested")
        self.update_status("Cancelling...", ERROR_PERCENT)
        self.log("User requested cancellation.")
        if self._token is not None:
            self._token.cancel()

    def clear_display(self) -> None:
        self._cancelled = False
        self._token = None
        self._reset_view()

    @abstractmethod
    def update_status(self, text: str, percent: Optional[float] = None) -> None:
        ...

    @abstractmethod
    def log(self, message: str) -> None:
        ...

    @abstractmethod
    def _reset_view(self) -> None:
        ...


class PanelReporter(BaseReporter):
    def __init__(self) -> None:
        super().__init__()
        self.entries: List[LogEntry] = []
        self.status = "Idle"
        self.percent: float | None = None
        self.error = False

    def update_status(self, text: str, percent: Optional[float] = None) -> None:
        self.status = text
        if percent is None:
            return
        if percent < 0:
            self.percent = 100.0
            self.error = True
        else:
            self.percent = clamp_percent(percent)
            self.error = False

    def log(self, message: str) -> None:
        self.entries.append(LogEntry(timestamp=datetime.now(), message=message))

    @property
    def lines(self) -> List[str]:
        return [e.format() for e in self.entries]

    def _reset_view(self) -> None:
        self.entries = []
        self.status = "Starting..."
        self.percent = 0.0
        self.error = False


@dataclass
class _OverlayState:
    started_at: float = field(default_factory=time.monotonic)
    last_status: str = ""


class ConsoleReporter(BaseReporter):
    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__()
        self.stream = stream or sys.stderr
        self._state = _OverlayState()

    def update_status(self, text: str, percent: Optional[float] = None) -> None:
        self._state.last_status = text
        if percent is None:
            self._write(text)
        elif percent < 0:
            self._write(f"{text} [Cancelled/Error] Processing stopped.")
        else:
            clamped = clamp_percent(percent)
            self._write(f"{text} [{round(clamped)}%] Estimated time remaining: {self._remaining(clamped)}")

    def log(self, message: str) -> None:
        self._write(LogEntry(timestamp=datetime.now(), message=message).format())

    def _remaining(self, percent: float) -> str:
        if percent <= 0:
            return "calculating..."
        elapsed = time.monotonic() - self._state.started_at
        total = elapsed / (percent / 100)
        return format_time(max(0.0, total - elapsed))

    def _write(self, line: str) -> None:
        self.stream.write(line + "\n")
        self.stream.flush()

    def _reset_view(self) -> None:
        self._state = _OverlayState()
