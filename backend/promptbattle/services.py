from __future__ import annotations

from dataclasses import dataclass

from flask_socketio import SocketIO

from .game.clock import SocketIOClock
from .game.orchestrator import RoundOrchestrator
from .game.registry import SessionRegistry
from .imaging.gateway import ImageGateway
from .realtime.events import SocketIOBroadcaster


@dataclass
class GameServices:
    registry: SessionRegistry
    gateway: ImageGateway
    broadcaster: SocketIOBroadcaster
    orchestrator: RoundOrchestrator


def build_services(config, socketio: SocketIO) -> GameServices:
    registry = SessionRegistry(max_players=int(config.get("MAX_PLAYERS_PER_ROOM", 6)))
    gateway = ImageGateway.from_config(config)
    broadcaster = SocketIOBroadcaster(socketio)
    orchestrator = RoundOrchestrator(
        registry,
        gateway,
        broadcaster=broadcaster,
        clock=SocketIOClock(socketio),
        spawn=socketio.start_background_task,
    )
    return GameServices(
        registry=registry,
        gateway=gateway,
        broadcaster=broadcaster,
        orchestrator=orchestrator,
    )
