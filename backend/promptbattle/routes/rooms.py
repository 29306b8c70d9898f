from __future__ import annotations

from flask import Blueprint, current_app, jsonify

bp = Blueprint("rooms", __name__)


@bp.get("/rooms/<code>")
def get_room(code: str):
    registry = current_app.extensions["promptbattle"].registry
    room = registry.get_room(code.strip().upper())
    if not room:
        return jsonify({"error": "room_not_found"}), 404
    return jsonify(registry.public_state(room))
