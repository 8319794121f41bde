from __future__ import annotations

import math
from typing import Dict, List, Mapping, Sequence

from .config import UNKNOWN_LABEL
from .mastery import is_weak, level_index
from .types import (
    AnswerRecord,
    Concept,
    ConceptResult,
    CurrentMastery,
    MasteryLevel,
    MasteryState,
    QuizSummary,
    Topic,
)


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def score_band(score_percent: float) -> str:
    s = float(score_percent)
    if s >= 90: return "Outstanding!"
    if s >= 80: return "Great work!"
    if s >= 70: return "Good job!"
    if s >= 60: return "Not bad!"
    if s >= 50: return "Getting there!"
    return "Keep practicing!"


def build_current_mastery(
    concepts: Sequence[Concept], topics: Sequence[Topic]
) -> Dict[str, CurrentMastery]:
    topic_names = {t.id: t.name for t in topics}
    return {
        c.id: CurrentMastery(
            level=c.mastery_level,
            concept_name=c.name,
            topic_name=topic_names.get(c.topic_id, UNKNOWN_LABEL),
        )
        for c in concepts
    }


def summarize(
    answers: Sequence[AnswerRecord],
    before: Mapping[str, MasteryState],
    after: Mapping[str, CurrentMastery],
) -> QuizSummary:
    """Roll one run's answer log up into a :class:`QuizSummary`.

    ``before`` is the snapshot taken at selection time and ``after`` the live
    concept mastery at run end. Concepts missing from either side are treated
    as ``Cooked``.
    """

    first_attempts: Dict[str, AnswerRecord] = {}
    for ans in answers:
        first_attempts.setdefault(ans.question_id, ans)

    total_questions = len(first_attempts)
    correct_first_try = sum(1 for a in first_attempts.values() if a.is_correct)
    correct_total = sum(1 for a in answers if a.is_correct)
    score = _round_half_up(correct_first_try / total_questions * 100) if total_questions else 0

    attempts: Dict[str, int] = {}
    correct: Dict[str, int] = {}
    for ans in answers:
        attempts[ans.concept_id] = attempts.get(ans.concept_id, 0) + 1
        correct[ans.concept_id] = correct.get(ans.concept_id, 0) + int(bool(ans.is_correct))

    results: List[ConceptResult] = []
    for cid in attempts:
        snap = before.get(cid)
        cur = after.get(cid)
        lvl_before = MasteryLevel.parse(snap.level) if snap else MasteryLevel.COOKED
        lvl_after = MasteryLevel.parse(cur.level) if cur else MasteryLevel.COOKED
        delta = level_index(lvl_after) - level_index(lvl_before)
        results.append(
            ConceptResult(
                concept_id=cid,
                concept_name=(cur.concept_name if cur and cur.concept_name else UNKNOWN_LABEL),
                topic_name=(cur.topic_name if cur and cur.topic_name else UNKNOWN_LABEL),
                mastery_before=lvl_before,
                mastery_after=lvl_after,
                improved=delta > 0,
                decreased=delta < 0,
                attempts=attempts[cid],
                correct_attempts=correct[cid],
            )
        )

    return QuizSummary(
        total_questions=total_questions,
        total_attempts=len(answers),
        correct_first_try=correct_first_try,
        correct_total=correct_total,
        score_percent=score,
        concepts_improved=[r for r in results if r.improved],
        concepts_unchanged=[r for r in results if not r.improved and not r.decreased],
        concepts_decreased=[r for r in results if r.decreased],
        concepts_still_weak=[r for r in results if is_weak(r.mastery_after)],
    )
