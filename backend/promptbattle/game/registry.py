from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from threading import RLock

from .constants import (
    DEFAULT_HOST_NAME,
    DEFAULT_PLAYER_NAME,
    ROOM_CODE_ALPHABET,
    ROOM_CODE_LENGTH,
)
from .errors import GameError, RoomFull, RoomNotFound
from .models import Player, Room, RoomConfig

logger = logging.getLogger(__name__)

DEFAULT_MAX_PLAYERS = 6


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class JoinResult:
    ok: bool
    room: Room | None = None
    player: Player | None = None
    error: GameError | None = None

    def to_ack(self) -> dict:
        if self.ok:
            return {"success": True, "message": "Joined room successfully."}
        return self.error.to_ack() if self.error else {"success": False}


class SessionRegistry:
    """In-memory index of live rooms.

    Every read and write goes through ``lock``. The round orchestrator and
    the submission gate take the same lock while mutating a room, so one
    room is never changed by two handlers at once.
    """

    def __init__(self, max_players: int = DEFAULT_MAX_PLAYERS, rng: random.Random | None = None) -> None:
        self.lock = RLock()
        self.max_players = max_players
        self._rng = rng or random.Random()
        self._rooms: dict[str, Room] = {}

    def _generate_code(self) -> str:
        return "".join(self._rng.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))

    def create_room(self, config: RoomConfig | None, creator_id: str, creator_name: str = "") -> Room:
        with self.lock:
            # A creator already sitting in another room leaves it first.
            self.remove_player(creator_id)

            code = self._generate_code()
            while code in self._rooms:
                code = self._generate_code()

            host = Player(id=creator_id, name=(creator_name or "").strip() or DEFAULT_HOST_NAME)
            room = Room(
                code=code,
                host_id=creator_id,
                config=config or RoomConfig(),
                players={creator_id: host},
                created_at_ms=now_ms(),
            )
            self._rooms[code] = room
            logger.info("Created room %s with host %s", code, creator_id)
            return room

    def join_room(self, code: str, player_id: str, player_name: str = "") -> JoinResult:
        with self.lock:
            room = self._rooms.get(code)
            if room is None:
                return JoinResult(ok=False, error=RoomNotFound())

            name = (player_name or "").strip() or DEFAULT_PLAYER_NAME

            existing = room.players.get(player_id)
            if existing is not None:
                existing.name = name
                return JoinResult(ok=True, room=room, player=existing)

            if len(room.players) >= self.max_players:
                return JoinResult(ok=False, room=room, error=RoomFull())

            self.remove_player(player_id)

            player = Player(id=player_id, name=name)
            room.players[player_id] = player
            logger.info("Player %s joined room %s", player_id, code)
            return JoinResult(ok=True, room=room, player=player)

    def remove_player(self, player_id: str) -> Room | None:
        """Drop the player from its room; returns that room or None.

        The returned room may already be deleted from the registry when the
        departing player was its last member.
        """
        with self.lock:
            room = self._find_room_by_player(player_id)
            if room is None:
                return None

            del room.players[player_id]
            logger.info("Removed player %s from room %s", player_id, room.code)

            if not room.players:
                self.delete_room(room.code)
            elif room.host_id == player_id:
                room.host_id = next(iter(room.players))
                logger.info("Room %s host is now %s", room.code, room.host_id)

            return room

    def get_room(self, code: str) -> Room | None:
        with self.lock:
            return self._rooms.get(code)

    def get_room_by_player(self, player_id: str) -> Room | None:
        with self.lock:
            return self._find_room_by_player(player_id)

    def _find_room_by_player(self, player_id: str) -> Room | None:
        for room in self._rooms.values():
            if player_id in room.players:
                return room
        return None

    def delete_room(self, code: str) -> bool:
        with self.lock:
            if code in self._rooms:
                del self._rooms[code]
                logger.info("Deleted empty room %s", code)
                return True
            return False

    def list_rooms(self) -> list[Room]:
        with self.lock:
            return list(self._rooms.values())

    def player_list(self, room: Room) -> list[dict]:
        with self.lock:
            return [{"id": p.id, "name": p.name, "score": p.score} for p in room.players.values()]

    def public_state(self, room: Room) -> dict:
        with self.lock:
            return {
                "code": room.code,
                "hostId": room.host_id,
                "state": room.state.value,
                "round": room.current_round,
                "roundCount": room.config.rounds,
                "difficulty": room.config.difficulty,
                "categories": list(room.config.categories),
                "mode": room.config.mode,
                "createdAtMs": room.created_at_ms,
                "players": self.player_list(room),
            }
