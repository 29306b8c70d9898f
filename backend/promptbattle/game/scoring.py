from __future__ import annotations

import math
import re
from typing import Iterable

from .models import Room


_SPLIT_RE = re.compile(r"\W+", re.ASCII)


def _tokens(text: str) -> list[str]:
    # Edge separators yield empty tokens; they count towards the length.
    return _SPLIT_RE.split(text.lower())


def similarity(original: str | None, candidate: str | None) -> int:
    """Lexical overlap between two prompts, from 0 to 100.

    Counts the candidate's words that also appear in the original and
    divides by the longer word count. Rounds half up.
    """
    if not original or not candidate:
        return 0

    words_original = _tokens(original)
    words_candidate = _tokens(candidate)
    vocabulary = set(words_original)

    overlap = sum(1 for word in words_candidate if word in vocabulary)
    longest = max(len(words_original), len(words_candidate))
    if longest == 0:
        return 0
    return int(math.floor(overlap / longest * 100 + 0.5))


def score_round(original: str | None, prompts: dict[str, str], player_ids: Iterable[str]) -> dict[str, int]:
    return {pid: similarity(original, prompts.get(pid)) for pid in player_ids}


def apply_round_scores(room: Room, scores: dict[str, int]) -> dict[str, int]:
    """Add one round's scores to cumulative totals; returns the totals.

    Players that left since scoring are skipped.
    """
    totals: dict[str, int] = {}
    for pid, points in scores.items():
        player = room.players.get(pid)
        if player is None:
            continue
        player.score += max(0, int(points))
        totals[pid] = player.score
    return totals


def final_scores(room: Room) -> dict[str, int]:
    return {pid: p.score for pid, p in room.players.items()}
