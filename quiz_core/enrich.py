from __future__ import annotations

import logging
from typing import Dict, List, Sequence

from .config import UNKNOWN_CONCEPT, UNKNOWN_TOPIC
from .mastery import mastery_weight
from .types import (
    Concept,
    EnrichedQuestion,
    MasteryLevel,
    RawQuestion,
    Subtopic,
    Topic,
    TopicSelectionSummary,
)

log = logging.getLogger(__name__)


def enrich_questions(
    questions: Sequence[RawQuestion],
    concepts: Sequence[Concept],
    topics: Sequence[Topic],
    subtopics: Sequence[Subtopic],
) -> List[EnrichedQuestion]:
    """Attach concept/topic names and concept mastery to each question.

    A dangling reference never fails the batch: the question gets a sentinel
    name and ``Cooked`` mastery instead.
    """

    concept_map: Dict[str, Concept] = {c.id: c for c in concepts}
    topic_map: Dict[str, Topic] = {t.id: t for t in topics}
    subtopic_map: Dict[str, Subtopic] = {s.id: s for s in subtopics}

    out: List[EnrichedQuestion] = []
    missing = 0
    for q in questions:
        concept = concept_map.get(q.concept_id)
        topic = topic_map.get(q.topic_id)
        subtopic = subtopic_map.get(q.subtopic_id) if q.subtopic_id else None
        if concept is None:
            missing += 1
        out.append(
            EnrichedQuestion(
                id=q.id,
                text=q.text,
                options=list(q.options),
                correct_option_index=q.correct_option_index,
                concept_id=q.concept_id,
                topic_id=q.topic_id,
                explanation=q.explanation,
                subtopic_id=q.subtopic_id,
                concept_name=concept.name if concept and concept.name else UNKNOWN_CONCEPT,
                topic_name=topic.name if topic and topic.name else UNKNOWN_TOPIC,
                subtopic_name=subtopic.name if subtopic and subtopic.name else None,
                mastery_level=concept.mastery_level if concept else MasteryLevel.COOKED,
                streak_correct=concept.streak_correct if concept else 0,
                streak_incorrect=concept.streak_incorrect if concept else 0,
            )
        )
    if missing:
        log.warning("enrich: %d of %d questions reference an unknown concept", missing, len(out))
    return out


def aggregate_topics(
    topics: Sequence[Topic],
    concepts: Sequence[Concept],
    questions: Sequence[RawQuestion],
) -> List[TopicSelectionSummary]:
    out: List[TopicSelectionSummary] = []
    for topic in topics:
        topic_concepts = [c for c in concepts if c.topic_id == topic.id]
        question_count = sum(1 for q in questions if q.topic_id == topic.id)

        distribution: Dict[MasteryLevel, int] = {lvl: 0 for lvl in MasteryLevel}
        total_weight = 0
        for c in topic_concepts:
            lvl = MasteryLevel.parse(c.mastery_level)
            distribution[lvl] += 1
            total_weight += mastery_weight(lvl)

        # Topics with no concepts rank as 0.0, never NaN.
        avg = total_weight / len(topic_concepts) if topic_concepts else 0.0

        out.append(
            TopicSelectionSummary(
                id=topic.id,
                name=topic.name,
                question_count=question_count,
                concept_count=len(topic_concepts),
                average_mastery_weight=float(avg),
                mastery_distribution=distribution,
            )
        )
    return out
