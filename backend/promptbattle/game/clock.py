from __future__ import annotations

import threading
import time
from typing import Any, Callable, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Clock:
    """Sleeps and deadline timers backed by plain threads."""

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)

    def call_later(self, seconds: float, callback: Callable[[], Any]) -> TimerHandle:
        timer = threading.Timer(max(0.0, seconds), callback)
        timer.daemon = True
        timer.start()
        return timer


class _ScheduledCall:
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class SocketIOClock(Clock):
    """Clock that cooperates with the Socket.IO async mode (eventlet or threads)."""

    def __init__(self, socketio, poll_interval_sec: float = 0.5) -> None:
        self._socketio = socketio
        # Cancelled deadlines are noticed within one interval.
        self.poll_interval_sec = poll_interval_sec

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            self._socketio.sleep(seconds)

    def call_later(self, seconds: float, callback: Callable[[], Any]) -> TimerHandle:
        handle = _ScheduledCall()

        def _runner() -> None:
            remaining = max(0.0, seconds)
            while remaining > 0 and not handle.cancelled:
                step = min(self.poll_interval_sec, remaining)
                self._socketio.sleep(step)
                remaining -= step
            if not handle.cancelled:
                callback()

        self._socketio.start_background_task(_runner)
        return handle
