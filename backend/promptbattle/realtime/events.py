from __future__ import annotations

import logging

from flask_socketio import SocketIO

from ..game.models import GameState
from ..game.orchestrator import Broadcaster

logger = logging.getLogger(__name__)


class SocketIOBroadcaster(Broadcaster):
    """Emits game notifications to everyone in the room's Socket.IO room.

    Best effort: a failed emit is logged and never reaches the game loop.
    """

    def __init__(self, socketio: SocketIO) -> None:
        self.socketio = socketio

    def _emit(self, event: str, payload: dict, code: str) -> None:
        try:
            self.socketio.emit(event, payload, to=code)
        except Exception:
            logger.exception("Failed to emit %s to room %s", event, code)

    def state_changed(self, code: str, state: GameState, round_no: int | None = None) -> None:
        payload: dict = {"state": state.value}
        if round_no is not None:
            payload["round"] = round_no
        self._emit("game-state", payload, code)

    def original_ready(self, code: str, prompt: str, image: str, category: str) -> None:
        self._emit("original-image", {"prompt": prompt, "image": image, "category": category}, code)

    def images_ready(self, code: str, images: dict[str, str | None]) -> None:
        self._emit("generated-images", {"images": images}, code)

    def round_results(self, code: str, scores: dict[str, int], totals: dict[str, int]) -> None:
        self._emit("round-results", {"scores": scores, "totalScores": totals}, code)

    def game_over(self, code: str, scores: dict[str, int]) -> None:
        self._emit("game-over", {"finalScores": scores}, code)

    def player_list_changed(self, code: str, players: list[dict], host_id: str) -> None:
        self._emit("player-list", {"players": players, "host": host_id}, code)
