from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from .clock import Clock, TimerHandle

if TYPE_CHECKING:
    from .models import Room

logger = logging.getLogger(__name__)


class SubmissionGate:
    """Waits for every player's prompt or a deadline, whichever comes first.

    A gate is single use: it is opened once for one writing phase and
    resolves exactly once. ``resolve`` is guarded by the ``resolved`` flag,
    so a last submission racing the deadline timer only advances the round
    once. Room bookkeeping (``room.pending_gate``) is done under the shared
    registry lock.
    """

    ALL_SUBMITTED = "all_submitted"
    DEADLINE = "deadline"
    SUPERSEDED = "superseded"

    def __init__(self, room: Room, lock: threading.RLock, clock: Clock | None = None) -> None:
        self.room = room
        self.reason: str | None = None
        self._lock = lock
        self._clock = clock or Clock()
        self._done = threading.Event()
        self._timer: TimerHandle | None = None

    @property
    def resolved(self) -> bool:
        return self._done.is_set()

    def open(self, deadline_sec: float) -> "SubmissionGate":
        with self._lock:
            previous = self.room.pending_gate
            if previous is not None and previous is not self:
                previous.resolve(self.SUPERSEDED)

            self.room.pending_gate = self

            # Prompts can arrive between the phase change and the gate opening.
            self.signal_submission()
            if not self.resolved:
                self._timer = self._clock.call_later(deadline_sec, self.expire)
        return self

    def signal_submission(self) -> bool:
        with self._lock:
            if self.resolved or not self._all_submitted():
                return False
            return self.resolve(self.ALL_SUBMITTED)

    def expire(self) -> bool:
        return self.resolve(self.DEADLINE)

    def resolve(self, reason: str) -> bool:
        with self._lock:
            if self.resolved:
                return False

            self.reason = reason
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            if self.room.pending_gate is self:
                self.room.pending_gate = None
            self._done.set()

        logger.info("Gate for room %s resolved: %s", self.room.code, reason)
        return True

    def wait(self, timeout: float | None = None) -> str | None:
        self._done.wait(timeout)
        return self.reason

    def _all_submitted(self) -> bool:
        round_data = self.room.round_data
        if round_data is None:
            return False
        return all(round_data.prompts.get(pid) for pid in self.room.players)


def submit_prompt(room: Room, player_id: str, prompt: str) -> bool:
    """Store a prompt for the current round (last write wins).

    Returns True when an open gate received it and False when it came in
    late. The caller holds the registry lock.
    """
    round_data = room.round_data
    if round_data is None:
        return False

    round_data.prompts[player_id] = prompt
    player = room.players.get(player_id)
    if player is not None:
        player.prompt = prompt

    gate = room.pending_gate
    if gate is None:
        return False
    gate.signal_submission()
    return True
