from __future__ import annotations

from typing import Iterable

import pytest

from quiz_core.study_set import StudySet, study_set_to_dict
from quiz_core.types import Concept, MasteryLevel, QueuedQuestion, RawQuestion, Subtopic, Topic


class ScriptedRandom:
    """rng stub replaying a fixed sequence of draws, cycling when exhausted."""

    def __init__(self, values: Iterable[float]):
        self._values = list(values) or [0.0]
        self._i = 0

    def random(self) -> float:
        v = self._values[self._i % len(self._values)]
        self._i += 1
        return v


def build_synthetic_study_set(
    *,
    n_topics: int = 2,
    questions_per_concept: int = 2,
    levels: list[MasteryLevel] | None = None,
) -> StudySet:
    """Deterministic study set: one concept per level per topic."""

    topics: list[Topic] = []
    subtopics: list[Subtopic] = []
    concepts: list[Concept] = []
    questions: list[RawQuestion] = []
    target_levels = levels or list(MasteryLevel)
    for t_idx in range(n_topics):
        tid = f"t{t_idx}"
        topics.append(Topic(id=tid, name=f"Topic {t_idx}"))
        subtopics.append(Subtopic(id=f"{tid}_s0", name=f"Subtopic {t_idx}.0", topic_id=tid))
        for c_idx, level in enumerate(target_levels):
            cid = f"{tid}_c{c_idx}"
            concepts.append(
                Concept(id=cid, name=f"Concept {t_idx}.{c_idx}", topic_id=tid, mastery_level=level)
            )
            for q_idx in range(questions_per_concept):
                questions.append(
                    RawQuestion(
                        id=f"{cid}_q{q_idx}",
                        text=f"Question {t_idx}.{c_idx}.{q_idx}",
                        options=["A", "B", "C", "D"],
                        correct_option_index=0,
                        concept_id=cid,
                        topic_id=tid,
                        explanation=f"A is right for {cid}",
                        subtopic_id=f"{tid}_s0" if q_idx == 0 else None,
                    )
                )
    return StudySet(topics=topics, subtopics=subtopics, concepts=concepts, questions=questions)


def make_queued(qid: str, *, concept_id: str = "c1", appearance_count: int = 0) -> QueuedQuestion:
    return QueuedQuestion(
        id=qid,
        text=f"text {qid}",
        options=["A", "B"],
        correct_option_index=0,
        concept_id=concept_id,
        topic_id="t1",
        appearance_count=appearance_count,
    )


@pytest.fixture
def synthetic_study_set() -> StudySet:
    return build_synthetic_study_set()


@pytest.fixture
def synthetic_study_set_rows() -> dict:
    return study_set_to_dict(build_synthetic_study_set())
