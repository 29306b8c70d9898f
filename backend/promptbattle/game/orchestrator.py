from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass
from typing import Any, Callable

from .clock import Clock
from .constants import (
    CATEGORIES,
    DEFAULT_WRITE_DURATION_SEC,
    ROUND_PAUSE_SEC,
    VIEW_DURATION_SEC,
    WRITE_DURATIONS_SEC,
)
from .errors import GameError, GameInProgress, InvalidRoom, NotHost, RoomNotFound
from .gate import SubmissionGate, submit_prompt as gate_submit
from .models import RANDOM_CATEGORY, GameState, Room, RoomConfig, RoundData
from .registry import SessionRegistry
from .scoring import apply_round_scores, final_scores, score_round

logger = logging.getLogger(__name__)


class Broadcaster:
    """Notification sink for game progress. The base class drops everything."""

    def state_changed(self, code: str, state: GameState, round_no: int | None = None) -> None:
        pass

    def original_ready(self, code: str, prompt: str, image: str, category: str) -> None:
        pass

    def images_ready(self, code: str, images: dict[str, str | None]) -> None:
        pass

    def round_results(self, code: str, scores: dict[str, int], totals: dict[str, int]) -> None:
        pass

    def game_over(self, code: str, scores: dict[str, int]) -> None:
        pass

    def player_list_changed(self, code: str, players: list[dict], host_id: str) -> None:
        pass


@dataclass
class StartResult:
    ok: bool
    error: GameError | None = None

    def to_ack(self) -> dict:
        if self.ok:
            return {"success": True}
        return self.error.to_ack() if self.error else {"success": False}


@dataclass
class SubmitResult:
    ok: bool
    late: bool = False
    error: GameError | None = None

    def to_ack(self) -> dict:
        if self.ok:
            return {"success": True, "late": self.late}
        return self.error.to_ack() if self.error else {"success": False}


def write_duration(difficulty: str | None) -> float:
    return float(WRITE_DURATIONS_SEC.get((difficulty or "").lower(), DEFAULT_WRITE_DURATION_SEC))


def pick_category(config: RoomConfig, rng: random.Random) -> str:
    categories = list(config.categories)
    if not categories or RANDOM_CATEGORY in categories:
        return rng.choice(CATEGORIES)
    return rng.choice(categories)


def _spawn_thread(fn: Callable[..., Any], *args: Any) -> None:
    threading.Thread(target=fn, args=args, daemon=True).start()


class RoundOrchestrator:
    """Drives a room from STARTING through every round to GAME_OVER.

    The room is looked up again at every phase boundary. If it was deleted
    (the last player left) the phase does nothing and the loop keeps going
    until the game is over; nothing here raises for a vanished room,
    player, prompt or image.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        gateway,
        broadcaster: Broadcaster | None = None,
        clock: Clock | None = None,
        rng: random.Random | None = None,
        spawn: Callable[..., Any] | None = None,
        view_duration_sec: float = VIEW_DURATION_SEC,
        round_pause_sec: float = ROUND_PAUSE_SEC,
        write_duration_sec: float | None = None,
    ) -> None:
        self.registry = registry
        self.gateway = gateway
        self.broadcaster = broadcaster or Broadcaster()
        self.clock = clock or Clock()
        self.rng = rng or random.Random()
        self.spawn = spawn or _spawn_thread
        self.view_duration_sec = view_duration_sec
        self.round_pause_sec = round_pause_sec
        # Replaces the difficulty table when set.
        self.write_duration_sec = write_duration_sec

    # Boundary-facing requests

    def request_start(self, code: str, requester_id: str | None = None) -> StartResult:
        with self.registry.lock:
            room = self.registry.get_room(code)
            if room is None:
                return StartResult(ok=False, error=RoomNotFound())
            if requester_id is not None and requester_id != room.host_id:
                return StartResult(ok=False, error=NotHost())
            if room.state is not GameState.WAITING:
                return StartResult(ok=False, error=GameInProgress())
            # Claimed here so a second request is rejected before the task runs.
            room.state = GameState.STARTING

        self.spawn(self._run_game, room)
        return StartResult(ok=True)

    def submit_prompt(self, code: str, player_id: str, prompt: str) -> SubmitResult:
        with self.registry.lock:
            room = self.registry.get_room(code)
            if room is None:
                return SubmitResult(ok=False, error=RoomNotFound())
            accepted = gate_submit(room, player_id, prompt)
        return SubmitResult(ok=True, late=not accepted)

    # Game loop

    def _run_game(self, room: Room) -> None:
        try:
            self.start_game(room)
        except Exception:
            logger.exception("Game loop crashed in room %s", room.code)

    def start_game(self, room: Room | None) -> None:
        if room is None:
            raise InvalidRoom()

        code = room.code
        config = room.config

        with self.registry.lock:
            room.state = GameState.STARTING
        self.broadcaster.state_changed(code, GameState.STARTING)
        logger.info("Starting game in room %s (%d rounds)", code, config.rounds)

        for round_no in range(1, config.rounds + 1):
            self._play_round(room, round_no)
            self.clock.sleep(self.round_pause_sec)

        finals: dict[str, int] | None = None
        with self.registry.lock:
            if self._is_live(room):
                room.state = GameState.GAME_OVER
                finals = final_scores(room)

        if finals is None:
            logger.info("Room %s vanished before game over", code)
            return
        self.broadcaster.state_changed(code, GameState.GAME_OVER)
        self.broadcaster.game_over(code, finals)
        logger.info("Game over in room %s", code)

    def _is_live(self, room: Room) -> bool:
        return self.registry.get_room(room.code) is room

    def _enter(self, room: Room, state: GameState, round_no: int) -> bool:
        with self.registry.lock:
            if not self._is_live(room):
                return False
            room.state = state
        self.broadcaster.state_changed(room.code, state, round_no)
        logger.debug("Room %s round %d -> %s", room.code, round_no, state.value)
        return True

    def _play_round(self, room: Room, round_no: int) -> None:
        code = room.code

        with self.registry.lock:
            if self._is_live(room):
                room.current_round = round_no
                room.round_data = RoundData()
                for player in room.players.values():
                    player.prompt = None
                    player.image = None
        self._enter(room, GameState.SHOWING_IMAGE, round_no)

        self._show_original(room)
        self.clock.sleep(self.view_duration_sec)

        if self._enter(room, GameState.WRITING_PROMPT, round_no):
            self._collect_prompts(room)

        if self._enter(room, GameState.GENERATING_IMAGES, round_no):
            self._generate_images(room)

        if self._enter(room, GameState.VOTING, round_no):
            self._score(room)
        else:
            logger.info("Room %s is gone, skipping round %d", code, round_no)

    def _show_original(self, room: Room) -> None:
        category = pick_category(room.config, self.rng)
        if not self._is_live(room):
            return

        original = self.gateway.generate_original(category)

        with self.registry.lock:
            if not self._is_live(room) or room.round_data is None:
                return
            room.round_data.category = category
            room.round_data.original_prompt = original.prompt
            room.round_data.original_image = original.image
        self.broadcaster.original_ready(room.code, original.prompt, original.image, category)

    def _collect_prompts(self, room: Room) -> None:
        if self.write_duration_sec is not None:
            deadline = self.write_duration_sec
        else:
            deadline = write_duration(room.config.difficulty)

        with self.registry.lock:
            if not self._is_live(room):
                return
            gate = SubmissionGate(room, self.registry.lock, self.clock).open(deadline)

        reason = gate.wait()
        logger.info("Room %s stopped collecting prompts (%s)", room.code, reason)

    def _generate_images(self, room: Room) -> None:
        with self.registry.lock:
            if not self._is_live(room) or room.round_data is None:
                return
            player_ids = list(room.players)
            prompts = dict(room.round_data.prompts)

        images: dict[str, str | None] = {}
        rendered: dict[str, str] = {}
        for pid in player_ids:
            prompt = prompts.get(pid)
            with self.registry.lock:
                present = pid in room.players
            if not prompt or not present:
                images[pid] = None
                continue
            try:
                images[pid] = self.gateway.generate_from_prompt(prompt)
            except Exception:
                logger.exception("Error generating image for player %s in room %s", pid, room.code)
                images[pid] = None
                continue
            rendered[pid] = prompt

        with self.registry.lock:
            if not self._is_live(room) or room.round_data is None:
                return
            room.round_data.images = images
            room.round_data.rendered_prompts = rendered
            for pid, image in images.items():
                player = room.players.get(pid)
                if player is not None:
                    player.image = image
        self.broadcaster.images_ready(room.code, dict(images))

    def _score(self, room: Room) -> None:
        with self.registry.lock:
            if not self._is_live(room) or room.round_data is None:
                return
            round_data = room.round_data
            scores = score_round(round_data.original_prompt, round_data.rendered_prompts, list(room.players))
            round_data.scores = scores
            totals = apply_round_scores(room, scores)
        self.broadcaster.round_results(room.code, dict(scores), totals)
