from __future__ import annotations

import json
import logging
import random
from typing import List

from .config import DEBUG_SEED, DEBUG_TRACE, QUIZ_MODES, TRACE_FIELDS
from .session import QuizConfig, QuizSession
from .study_set import StudySet
from .summary import score_band
from .types import Concept, MasteryLevel, RawQuestion, Topic


def _maybe_enable_trace() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    if DEBUG_TRACE:
        logging.getLogger("quiz_core.session").setLevel(logging.INFO)


def _synthetic_study_set() -> StudySet:
    topics = [Topic(id=f"smoke_t{i}", name=f"Smoke topic {i}") for i in range(3)]
    concepts: List[Concept] = []
    questions: List[RawQuestion] = []
    levels = list(MasteryLevel)
    for t_idx, topic in enumerate(topics):
        for c_idx, level in enumerate(levels):
            cid = f"{topic.id}_c{c_idx}"
            concepts.append(
                Concept(id=cid, name=f"{topic.name} / {level.value}", topic_id=topic.id, mastery_level=level)
            )
            for q_idx in range(3):
                questions.append(
                    RawQuestion(
                        id=f"{cid}_q{q_idx}",
                        text=f"Smoke question {t_idx}.{c_idx}.{q_idx}",
                        options=["A", "B", "C", "D"],
                        correct_option_index=q_idx % 4,
                        concept_id=cid,
                        topic_id=topic.id,
                        explanation="Synthetic item",
                    )
                )
    return StudySet(topics=topics, concepts=concepts, questions=questions)


def _auto_answer(rng: random.Random, correct_index: int, n_options: int) -> int:
    # roughly two thirds right so both ladder directions get exercised
    if rng.random() < 0.66:
        return correct_index
    return (correct_index + 1) % n_options


def run_smoke_session() -> None:
    _maybe_enable_trace()
    study_set = _synthetic_study_set()
    seed = DEBUG_SEED if DEBUG_SEED is not None else 1
    logging.info("Starting synthetic quiz runs with seed=%s", seed)
    logging.info("Trace fields: %s", ", ".join(TRACE_FIELDS))

    for mode in QUIZ_MODES:
        rng = random.Random(seed)
        session = QuizSession(
            study_set,
            QuizConfig(question_count=10, mode=mode, active_recall=True),
            rng=rng,
        )
        while True:
            q = session.next_question()
            if q is None:
                break
            session.answer_current(_auto_answer(rng, q.correct_option_index, len(q.options)))

        summary = session.finalize()
        payload = json.loads(json.dumps(summary, default=lambda o: getattr(o, "__dict__", o)))
        logging.info(
            "Mode %s: questions=%d attempts=%d score=%d%% (%s)",
            mode,
            payload["total_questions"],
            payload["total_attempts"],
            payload["score_percent"],
            score_band(payload["score_percent"]),
        )
        logging.info(
            "  improved=%d unchanged=%d decreased=%d still_weak=%d",
            len(payload["concepts_improved"]),
            len(payload["concepts_unchanged"]),
            len(payload["concepts_decreased"]),
            len(payload["concepts_still_weak"]),
        )
        study_set = session.study_set


if __name__ == "__main__":  # pragma: no cover
    run_smoke_session()
