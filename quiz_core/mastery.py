"""Streak-based mastery ladder for concepts.

A concept climbs one level after a run of consecutive correct answers and
drops one level after a run of consecutive misses. Thresholds live in
``config.PROMOTE_STREAK`` / ``config.DEMOTE_STREAK``. Crossing a threshold
resets both streak counters; any answer zeroes the opposite counter.

The functions here are pure: callers persist the returned state.
"""
from __future__ import annotations

from typing import Iterable, Optional

from .config import (
    MASTERY_ORDER,
    MASTERY_WEIGHTS,
    PROMOTE_STREAK,
    DEMOTE_STREAK,
    WEAK_LEVELS,
)
from .types import MasteryLevel, MasteryState

__all__ = [
    "INITIAL_MASTERY_STATE",
    "transition",
    "replay",
    "level_index",
    "mastery_weight",
    "is_weak",
]

INITIAL_MASTERY_STATE = MasteryState(MasteryLevel.COOKED, 0, 0)


def level_index(level: MasteryLevel | str) -> int:
    return MASTERY_ORDER.index(MasteryLevel.parse(level).value)


def mastery_weight(level: MasteryLevel | str) -> int:
    return MASTERY_WEIGHTS[MasteryLevel.parse(level).value]


def is_weak(level: MasteryLevel | str) -> bool:
    return MasteryLevel.parse(level).value in WEAK_LEVELS


def _step(level: MasteryLevel, delta: int) -> MasteryLevel:
    idx = max(0, min(len(MASTERY_ORDER) - 1, level_index(level) + delta))
    return MasteryLevel(MASTERY_ORDER[idx])


def transition(state: MasteryState, is_correct: bool) -> MasteryState:
    """Return the state after one answer. Total over all inputs."""

    level = MasteryLevel.parse(state.level)
    if is_correct:
        streak = int(state.streak_correct) + 1
        need: Optional[int] = PROMOTE_STREAK.get(level.value)
        if need is not None and streak >= need:
            return MasteryState(_step(level, +1), 0, 0)
        return MasteryState(level, streak, 0)

    streak = int(state.streak_incorrect) + 1
    need = DEMOTE_STREAK.get(level.value)
    if need is not None and streak >= need:
        return MasteryState(_step(level, -1), 0, 0)
    return MasteryState(level, 0, streak)


def replay(state: MasteryState, outcomes: Iterable[bool]) -> MasteryState:
    """Fold chronological answer outcomes through :func:`transition`."""

    for correct in outcomes:
        state = transition(state, bool(correct))
    return state


if __name__ == "__main__":  # pragma: no cover - developer utility
    st = INITIAL_MASTERY_STATE
    for correct in (True, True, True, True, True, False, False, True, True, True, True):
        nxt = transition(st, correct)
        print(f"{int(correct)} | {st.level.value:>12} -> {nxt.level.value:<12} "
              f"streaks=({nxt.streak_correct}, {nxt.streak_incorrect})")
        st = nxt
