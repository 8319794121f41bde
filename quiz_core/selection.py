# quiz_core/selection.py
from __future__ import annotations

from functools import cmp_to_key
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple, TypeVar, Union
import logging
import random

from .config import (
    DEFAULT_MODE,
    MAX_QUESTION_APPEARANCES,
    TOPIC_TIE_BAND,
    WEAKNESS_WEIGHT_FLOOR,
    make_rng,
)
from .enrich import aggregate_topics, enrich_questions
from .mastery import mastery_weight
from .types import (
    Concept,
    EnrichedQuestion,
    MasteryLevel,
    MasteryState,
    QueuedQuestion,
    QuizMode,
    RawQuestion,
    SelectQuestionsResult,
    Subtopic,
    Topic,
    TopicSelectionSummary,
)

log = logging.getLogger(__name__)

T = TypeVar("T")

# Anything exposing random() -> [0, 1), or a bare zero-arg callable.
RandomSource = Union[random.Random, Callable[[], float], None]


class _CallableRandom:
    def __init__(self, fn: Callable[[], float]):
        self._fn = fn

    def random(self) -> float:
        return float(self._fn())


def _resolve_rng(rng: RandomSource):
    if rng is None:
        return make_rng()
    if hasattr(rng, "random"):
        return rng
    if callable(rng):
        return _CallableRandom(rng)
    raise TypeError(f"rng must provide random(), got {type(rng).__name__}")


def _pick_index(n: int, rng) -> int:
    return min(int(rng.random() * n), n - 1)


def shuffle(items: Sequence[T], rng: RandomSource = None) -> List[T]:
    """Fisher-Yates over a copy; the input is left untouched."""

    rng = _resolve_rng(rng)
    out = list(items)
    for i in range(len(out) - 1, 0, -1):
        j = _pick_index(i + 1, rng)
        out[i], out[j] = out[j], out[i]
    return out


def select_uniform(
    pool: Sequence[EnrichedQuestion], count: int, rng: RandomSource = None
) -> List[EnrichedQuestion]:
    return shuffle(pool, rng)[: max(int(count), 0)]


def _concept_weight(level: MasteryLevel) -> float:
    # Floor keeps Locked in concepts drawable.
    return max(float(mastery_weight(level)), WEAKNESS_WEIGHT_FLOOR)


def _roulette(candidates: Sequence[str], weights: Sequence[float], rng) -> str:
    r = rng.random() * sum(weights)
    for cand, w in zip(candidates, weights):
        r -= w
        if r <= 0:
            return cand
    return candidates[-1]


def select_weighted_by_weakness(
    pool: Sequence[EnrichedQuestion], count: int, rng: RandomSource = None
) -> List[EnrichedQuestion]:
    """Draw concepts by weakness, one question per concept, then backfill.

    Works at concept granularity so one weak concept with many questions
    cannot flood the quiz.
    """

    rng = _resolve_rng(rng)
    count = max(int(count), 0)
    if count == 0 or not pool:
        return []

    groups: Dict[str, List[EnrichedQuestion]] = {}
    levels: Dict[str, MasteryLevel] = {}
    for q in pool:
        groups.setdefault(q.concept_id, []).append(q)
        levels.setdefault(q.concept_id, MasteryLevel.parse(q.mastery_level))

    remaining: Tuple[str, ...] = tuple(groups)
    chosen: Tuple[EnrichedQuestion, ...] = ()
    used_ids: Set[str] = set()

    while len(chosen) < count and remaining:
        weights = [_concept_weight(levels[cid]) for cid in remaining]
        pick = _roulette(remaining, weights, rng)
        remaining = tuple(cid for cid in remaining if cid != pick)
        options = [q for q in groups[pick] if q.id not in used_ids]
        if options:
            q = options[_pick_index(len(options), rng)]
            chosen += (q,)
            used_ids = used_ids | {q.id}

    weighted = len(chosen)
    if len(chosen) < count:
        rest = [q for q in pool if q.id not in used_ids]
        chosen += tuple(shuffle(rest, rng)[: count - len(chosen)])

    log.debug(
        "weakness selection concepts=%d weighted=%d backfill=%d",
        len(groups),
        weighted,
        len(chosen) - weighted,
    )
    return shuffle(chosen, rng)


def rank_topics(summaries: Sequence[TopicSelectionSummary]) -> List[TopicSelectionSummary]:
    """Order topics with questions by average mastery weight, ascending.

    Weights within ``TOPIC_TIE_BAND`` of each other count as a tie, broken by
    the larger question count first.
    """

    def cmp(a: TopicSelectionSummary, b: TopicSelectionSummary) -> int:
        diff = a.average_mastery_weight - b.average_mastery_weight
        if abs(diff) > TOPIC_TIE_BAND:
            return -1 if diff < 0 else 1
        return b.question_count - a.question_count

    return sorted((t for t in summaries if t.question_count > 0), key=cmp_to_key(cmp))


def select_topic_priority(
    pool: Sequence[EnrichedQuestion],
    count: int,
    topic_summaries: Sequence[TopicSelectionSummary],
    rng: RandomSource = None,
) -> List[EnrichedQuestion]:
    rng = _resolve_rng(rng)
    count = max(int(count), 0)
    ranked = rank_topics(topic_summaries)
    if not ranked:
        return select_uniform(pool, count, rng)

    accumulated: Tuple[EnrichedQuestion, ...] = ()
    taken: List[str] = []
    for topic in ranked:
        if len(accumulated) >= count:
            break
        # whole topics only; may overshoot count before the final cut
        accumulated += tuple(q for q in pool if q.topic_id == topic.id)
        taken.append(topic.id)

    log.debug("topic selection topics=%s pool=%d", taken, len(accumulated))
    return shuffle(accumulated, rng)[:count]


def _to_queued(q: EnrichedQuestion) -> QueuedQuestion:
    return QueuedQuestion(
        id=q.id,
        text=q.text,
        options=list(q.options),
        correct_option_index=q.correct_option_index,
        concept_id=q.concept_id,
        topic_id=q.topic_id,
        explanation=q.explanation,
        subtopic_id=q.subtopic_id,
        concept_name=q.concept_name,
        topic_name=q.topic_name,
        subtopic_name=q.subtopic_name,
        mastery_level=q.mastery_level,
        streak_correct=q.streak_correct,
        streak_incorrect=q.streak_incorrect,
        appearance_count=0,
        max_appearances=MAX_QUESTION_APPEARANCES,
    )


def select_questions(
    questions: Sequence[RawQuestion],
    concepts: Sequence[Concept],
    topics: Sequence[Topic],
    subtopics: Sequence[Subtopic],
    selected_topic_ids: Sequence[str] = (),
    mode: QuizMode = DEFAULT_MODE,
    num_questions: int = 10,
    rng: RandomSource = None,
) -> SelectQuestionsResult:
    """Filter, enrich, and select the queue for one quiz run."""

    rng = _resolve_rng(rng)
    topic_filter = set(selected_topic_ids or ())
    if topic_filter:
        pool_raw = [q for q in questions if q.topic_id in topic_filter]
        pool_concepts = [c for c in concepts if c.topic_id in topic_filter]
    else:
        pool_raw = list(questions)
        pool_concepts = list(concepts)

    enriched = enrich_questions(pool_raw, concepts, topics, subtopics)
    available = len(enriched)

    if mode == "normal":
        selected = select_uniform(enriched, num_questions, rng)
    elif mode == "targetWeakness":
        selected = select_weighted_by_weakness(enriched, num_questions, rng)
    elif mode == "suggestedTopics":
        scoped_topics = [t for t in topics if not topic_filter or t.id in topic_filter]
        summaries = aggregate_topics(scoped_topics, pool_concepts, pool_raw)
        selected = select_topic_priority(enriched, num_questions, summaries, rng)
    else:
        log.warning("unknown quiz mode %r, falling back to normal selection", mode)
        selected = select_uniform(enriched, num_questions, rng)

    in_quiz = {q.concept_id for q in selected}
    snapshot: Dict[str, MasteryState] = {
        c.id: c.mastery for c in concepts if c.id in in_quiz
    }
    queued = [_to_queued(q) for q in selected]

    log.info(
        "selected %d of %d questions mode=%s topics=%s",
        len(queued),
        available,
        mode,
        sorted(topic_filter) or "all",
    )
    return SelectQuestionsResult(
        questions=queued,
        effective_count=len(queued),
        available_count=available,
        mastery_snapshot=snapshot,
    )


def _dev_check_weakness_bias(trials: int = 2000, seed: Optional[int] = 7) -> Dict[str, int]:
    """Developer helper: how often each concept's question wins a 1-slot draw."""

    pool = [
        EnrichedQuestion(
            id=f"q_{lvl.name}",
            text="stub",
            options=["A", "B"],
            correct_option_index=0,
            concept_id=f"c_{lvl.name}",
            topic_id="t",
            mastery_level=lvl,
        )
        for lvl in MasteryLevel
    ]
    rng = random.Random(seed)
    hits: Dict[str, int] = {q.concept_id: 0 for q in pool}
    for _ in range(trials):
        for q in select_weighted_by_weakness(pool, 1, rng):
            hits[q.concept_id] += 1
    return hits


if __name__ == "__main__":
    print("Weakness draw frequencies:", _dev_check_weakness_bias())
