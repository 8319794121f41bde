from __future__ import annotations
import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping
from .types import Concept, MasteryLevel, MasteryState, RawQuestion, Subtopic, Topic


@dataclass(frozen=True)
class StudySet:
    """Rows for one study session, as handed over by the store."""
    topics: List[Topic] = field(default_factory=list)
    subtopics: List[Subtopic] = field(default_factory=list)
    concepts: List[Concept] = field(default_factory=list)
    questions: List[RawQuestion] = field(default_factory=list)

    def concept(self, concept_id: str) -> Concept | None:
        return next((c for c in self.concepts if c.id == concept_id), None)

    def with_mastery(self, updates: Mapping[str, MasteryState]) -> "StudySet":
        concepts = [
            replace(
                c,
                mastery_level=updates[c.id].level,
                streak_correct=updates[c.id].streak_correct,
                streak_incorrect=updates[c.id].streak_incorrect,
            ) if c.id in updates else c
            for c in self.concepts
        ]
        return replace(self, concepts=concepts)


def _pick(row: Mapping[str, Any], *names: str, default: Any = None) -> Any:
    for n in names:
        if n in row and row[n] is not None:
            return row[n]
    return default


def _require(row: Mapping[str, Any], kind: str, idx: int, *names: str) -> Any:
    val = _pick(row, *names)
    if val is None:
        raise ValueError(f"{kind}[{idx}] missing field {names[0]!r}")
    return val


def _streak(row: Mapping[str, Any], idx: int, *names: str) -> int:
    try:
        val = int(_pick(row, *names, default=0))
    except (TypeError, ValueError):
        raise ValueError(f"concepts[{idx}] {names[0]} must be an integer") from None
    if val < 0:
        raise ValueError(f"concepts[{idx}] {names[0]} must be non-negative, got {val}")
    return val


def _question(row: Mapping[str, Any], idx: int) -> RawQuestion:
    options = _require(row, "questions", idx, "options")
    if not isinstance(options, list):
        raise ValueError(f"questions[{idx}] options must be a list")
    if len(options) < 2:
        raise ValueError(f"questions[{idx}] needs at least 2 options, got {len(options)}")
    try:
        correct = int(_require(row, "questions", idx, "correct_option_index", "correctOptionIndex"))
    except (TypeError, ValueError):
        raise ValueError(f"questions[{idx}] correct_option_index must be an integer") from None
    if not 0 <= correct < len(options):
        raise ValueError(f"questions[{idx}] correct_option_index {correct} out of range for {len(options)} options")
    return RawQuestion(
        id=str(_require(row, "questions", idx, "id")),
        text=str(_require(row, "questions", idx, "question_text", "text")),
        options=[str(o) for o in options],
        correct_option_index=correct,
        concept_id=str(_require(row, "questions", idx, "concept_id", "conceptId")),
        topic_id=str(_require(row, "questions", idx, "topic_id", "topicId")),
        explanation=_pick(row, "explanation"),
        subtopic_id=_pick(row, "subtopic_id", "subtopicId"),
    )


def _concept(row: Mapping[str, Any], idx: int) -> Concept:
    return Concept(
        id=str(_require(row, "concepts", idx, "id")),
        name=str(_pick(row, "name", default="")),
        topic_id=str(_require(row, "concepts", idx, "topic_id", "topicId")),
        mastery_level=MasteryLevel.parse(_pick(row, "mastery_level", "masteryLevel", default=MasteryLevel.COOKED)),
        streak_correct=_streak(row, idx, "streak_correct", "streakCorrect"),
        streak_incorrect=_streak(row, idx, "streak_incorrect", "streakIncorrect"),
        subtopic_id=_pick(row, "subtopic_id", "subtopicId"),
    )


def study_set_from_dict(data: Mapping[str, Any]) -> StudySet:
    topics = [
        Topic(id=str(_require(r, "topics", i, "id")), name=str(_pick(r, "name", default="")))
        for i, r in enumerate(data.get("topics") or [])
    ]
    subtopics = [
        Subtopic(
            id=str(_require(r, "subtopics", i, "id")),
            name=str(_pick(r, "name", default="")),
            topic_id=str(_require(r, "subtopics", i, "topic_id", "topicId")),
        )
        for i, r in enumerate(data.get("subtopics") or [])
    ]
    concepts = [_concept(r, i) for i, r in enumerate(data.get("concepts") or [])]
    questions = [_question(r, i) for i, r in enumerate(data.get("questions") or [])]
    return StudySet(topics=topics, subtopics=subtopics, concepts=concepts, questions=questions)


def study_set_to_dict(ss: StudySet) -> Dict[str, List[Dict[str, Any]]]:
    return {
        "topics": [{"id": t.id, "name": t.name} for t in ss.topics],
        "subtopics": [{"id": s.id, "name": s.name, "topic_id": s.topic_id} for s in ss.subtopics],
        "concepts": [
            {
                "id": c.id,
                "name": c.name,
                "topic_id": c.topic_id,
                "subtopic_id": c.subtopic_id,
                "mastery_level": c.mastery_level.value,
                "streak_correct": c.streak_correct,
                "streak_incorrect": c.streak_incorrect,
            }
            for c in ss.concepts
        ],
        "questions": [
            {
                "id": q.id,
                "question_text": q.text,
                "options": list(q.options),
                "correct_option_index": q.correct_option_index,
                "explanation": q.explanation,
                "concept_id": q.concept_id,
                "topic_id": q.topic_id,
                "subtopic_id": q.subtopic_id,
            }
            for q in ss.questions
        ],
    }


def load_study_set(path: str | Path) -> StudySet:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    return study_set_from_dict(raw)
