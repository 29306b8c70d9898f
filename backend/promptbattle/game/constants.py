from __future__ import annotations

import string

from .models import Difficulty


ROOM_CODE_LENGTH = 6
ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits

DEFAULT_HOST_NAME = "Host"
DEFAULT_PLAYER_NAME = "Player"
MAX_NAME_LENGTH = 16

CATEGORIES = (
    "naturaleza",
    "abstracto",
    "objetos",
    "escenas",
    "fantástico",
)

# Seconds to write a prompt, by difficulty.
WRITE_DURATIONS_SEC = {
    Difficulty.EASY.value: 5 * 60,
    Difficulty.MEDIUM.value: 3 * 60,
    Difficulty.HARD.value: 2 * 60,
    Difficulty.EXTREME.value: 1 * 60,
}
DEFAULT_WRITE_DURATION_SEC = 3 * 60

VIEW_DURATION_SEC = 10
ROUND_PAUSE_SEC = 5
