from __future__ import annotations
from dataclasses import replace
from typing import List, Optional, Sequence
from .types import QueuedQuestion


def can_requeue(queue: Sequence[QueuedQuestion], current_index: int) -> bool:
    if current_index < 0 or current_index >= len(queue):
        return False
    q = queue[current_index]
    return q.appearance_count < q.max_appearances


def requeue(queue: Sequence[QueuedQuestion], current_index: int) -> Optional[List[QueuedQuestion]]:
    """Append a retry copy of ``queue[current_index]`` to the end.

    Returns a new list, or ``None`` when the index is out of range or the
    question already hit its appearance cap. Existing entries keep their
    positions.
    """
    if not can_requeue(queue, current_index):
        return None
    q = queue[current_index]
    return [*queue, replace(q, appearance_count=q.appearance_count + 1)]
