from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .gate import SubmissionGate


DEFAULT_ROUNDS = 3
MAX_ROUNDS = 20
DEFAULT_DIFFICULTY = "medium"
DEFAULT_MODE = "classic"
RANDOM_CATEGORY = "random"


class GameState(str, Enum):
    WAITING = "waiting"
    STARTING = "starting"
    SHOWING_IMAGE = "showing_image"
    WRITING_PROMPT = "writing_prompt"
    GENERATING_IMAGES = "generating_images"
    VOTING = "voting"
    # Reserved for an explicit voting phase; never entered.
    SHOWING_RESULTS = "showing_results"
    GAME_OVER = "game_over"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EXTREME = "extreme"


def _parse_rounds(raw: Any) -> int:
    if isinstance(raw, bool):
        return DEFAULT_ROUNDS
    try:
        rounds = int(raw)
    except (TypeError, ValueError):
        return DEFAULT_ROUNDS
    if rounds < 1:
        return DEFAULT_ROUNDS
    return min(rounds, MAX_ROUNDS)


@dataclass(frozen=True)
class RoomConfig:
    rounds: int = DEFAULT_ROUNDS
    difficulty: str = DEFAULT_DIFFICULTY
    categories: tuple[str, ...] = (RANDOM_CATEGORY,)
    mode: str = DEFAULT_MODE

    @classmethod
    def from_payload(cls, data: dict | None) -> "RoomConfig":
        payload = data or {}

        difficulty = str(payload.get("difficulty") or DEFAULT_DIFFICULTY).strip().lower()

        categories_raw = payload.get("categories")
        if isinstance(categories_raw, str):
            categories_raw = [categories_raw]
        if isinstance(categories_raw, (list, tuple)):
            categories = tuple(c.strip() for c in categories_raw if isinstance(c, str) and c.strip())
        else:
            categories = (RANDOM_CATEGORY,)

        mode = str(payload.get("mode") or DEFAULT_MODE).strip() or DEFAULT_MODE

        return cls(
            rounds=_parse_rounds(payload.get("rounds", DEFAULT_ROUNDS)),
            difficulty=difficulty or DEFAULT_DIFFICULTY,
            categories=categories,
            mode=mode,
        )

    def to_dict(self) -> dict:
        return {
            "rounds": self.rounds,
            "difficulty": self.difficulty,
            "categories": list(self.categories),
            "mode": self.mode,
        }


@dataclass
class Player:
    id: str
    name: str
    score: int = 0
    # Per-round, reset when a round starts.
    prompt: str | None = None
    image: str | None = None


@dataclass
class RoundData:
    category: str | None = None
    original_prompt: str | None = None
    original_image: str | None = None
    prompts: dict[str, str] = field(default_factory=dict)
    images: dict[str, str | None] = field(default_factory=dict)
    # Prompts that produced an image; only these are scored.
    rendered_prompts: dict[str, str] = field(default_factory=dict)
    scores: dict[str, int] = field(default_factory=dict)


@dataclass
class Room:
    code: str
    host_id: str
    config: RoomConfig = field(default_factory=RoomConfig)
    state: GameState = GameState.WAITING
    current_round: int = 0
    players: dict[str, Player] = field(default_factory=dict)
    round_data: RoundData | None = None
    pending_gate: SubmissionGate | None = None
    created_at_ms: int | None = None
