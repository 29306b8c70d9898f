from __future__ import annotations

import functools
import logging

from flask import request
from flask_socketio import SocketIO, join_room, leave_room

from ..game.constants import MAX_NAME_LENGTH
from ..game.errors import InvalidPayload
from ..game.models import Room, RoomConfig
from ..services import GameServices

logger = logging.getLogger(__name__)


def _validate_name(name: str) -> bool:
    # Empty names are allowed; the registry fills in a default.
    n = (name or "").strip()
    if len(n) > MAX_NAME_LENGTH:
        return False
    # Avoid obvious HTML/script injection.
    if "<" in n or ">" in n:
        return False
    # No control characters.
    for ch in n:
        if ord(ch) < 32:
            return False
    return True


def _room_code(payload: dict) -> str:
    return str(payload.get("roomCode", "") or "").strip().upper()


def _guarded(handler):
    """Turn an unexpected fault into a failure ack instead of a dropped event."""

    @functools.wraps(handler)
    def wrapper(*args, **kwargs):
        try:
            return handler(*args, **kwargs)
        except Exception as exc:
            logger.exception("Error handling %s", handler.__name__)
            return {"success": False, "error": "internal_error", "message": str(exc)}

    return wrapper


def register_socketio_handlers(socketio: SocketIO, services: GameServices) -> None:
    registry = services.registry
    orchestrator = services.orchestrator
    broadcaster = services.broadcaster

    def _broadcast_player_list(room: Room | None) -> None:
        if room is None or registry.get_room(room.code) is not room:
            return
        broadcaster.player_list_changed(room.code, registry.player_list(room), room.host_id)

    def _depart(sid: str) -> None:
        room = registry.remove_player(sid)
        if room is None:
            return
        leave_room(room.code, sid=sid)
        _broadcast_player_list(room)

    @socketio.on("create-room")
    @_guarded
    def create_room(data=None):
        payload = data if isinstance(data, dict) else {}
        name = str(payload.get("playerName", "") or "").strip()
        if not _validate_name(name):
            return InvalidPayload("Invalid player name.").to_ack()

        previous = registry.get_room_by_player(request.sid)
        room = registry.create_room(RoomConfig.from_payload(payload), request.sid, name)
        if previous is not None:
            leave_room(previous.code)
            _broadcast_player_list(previous)

        join_room(room.code)
        _broadcast_player_list(room)
        return {"success": True, "roomCode": room.code}

    @socketio.on("join-room")
    @_guarded
    def join_room_request(data=None):
        payload = data if isinstance(data, dict) else {}
        room_code = _room_code(payload)
        name = str(payload.get("playerName", "") or "").strip()
        if not room_code or not _validate_name(name):
            return InvalidPayload().to_ack()

        previous = registry.get_room_by_player(request.sid)
        result = registry.join_room(room_code, request.sid, name)
        if not result.ok:
            return result.to_ack()

        if previous is not None and previous is not result.room:
            leave_room(previous.code)
            _broadcast_player_list(previous)

        join_room(room_code)
        _broadcast_player_list(result.room)
        return result.to_ack()

    @socketio.on("leave-room")
    @_guarded
    def leave_room_request(data=None):
        _depart(request.sid)
        return {"success": True}

    @socketio.on("start-game")
    @_guarded
    def start_game(data=None):
        payload = data if isinstance(data, dict) else {}
        room_code = _room_code(payload)
        if not room_code:
            return InvalidPayload().to_ack()

        result = orchestrator.request_start(room_code, requester_id=request.sid)
        if result.ok:
            logger.info("Player %s started the game in room %s", request.sid, room_code)
        return result.to_ack()

    @socketio.on("submit-prompt")
    @_guarded
    def submit_prompt(data=None):
        payload = data if isinstance(data, dict) else {}
        room_code = _room_code(payload)
        prompt = payload.get("prompt", "")
        if not room_code or not isinstance(prompt, str):
            return InvalidPayload().to_ack()

        result = orchestrator.submit_prompt(room_code, request.sid, prompt.strip())
        return result.to_ack()

    @socketio.on("disconnect")
    def on_disconnect(reason=None):
        try:
            _depart(request.sid)
        except Exception:
            logger.exception("Error cleaning up after %s disconnected", request.sid)
