from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Dict, Optional, Literal
import logging

from .config import (
    LEVEL_COOKED,
    LEVEL_MEH,
    LEVEL_THERE_IS_HOPE,
    LEVEL_LOCKED_IN,
    MAX_QUESTION_APPEARANCES,
    UNKNOWN_CONCEPT,
    UNKNOWN_TOPIC,
)

log = logging.getLogger(__name__)

QuizMode = Literal["normal", "targetWeakness", "suggestedTopics"]


class MasteryLevel(str, Enum):
    """Concept mastery, lowest to highest. Values are the stored labels."""

    COOKED = LEVEL_COOKED
    MEH = LEVEL_MEH
    THERE_IS_HOPE = LEVEL_THERE_IS_HOPE
    LOCKED_IN = LEVEL_LOCKED_IN

    @classmethod
    def parse(cls, raw: object) -> "MasteryLevel":
        if isinstance(raw, cls):
            return raw
        text = str(raw or "").strip()
        for lvl in cls:
            if text == lvl.value or text == lvl.name:
                return lvl
        key = "".join(ch for ch in text.lower() if ch.isalnum())
        for lvl in cls:
            if key in ("".join(ch for ch in lvl.value.lower() if ch.isalnum()), lvl.name.lower().replace("_", "")):
                return lvl
        log.warning("unknown mastery level %r, treating as %s", raw, cls.COOKED.value)
        return cls.COOKED


@dataclass(frozen=True)
class MasteryState:
    level: MasteryLevel = MasteryLevel.COOKED
    streak_correct: int = 0
    streak_incorrect: int = 0

    def to_dict(self) -> Dict[str, object]:
        return {
            "level": self.level.value,
            "streak_correct": self.streak_correct,
            "streak_incorrect": self.streak_incorrect,
        }


@dataclass(frozen=True)
class Topic:
    id: str; name: str
@dataclass(frozen=True)
class Subtopic:
    id: str; name: str; topic_id: str
@dataclass(frozen=True)
class Concept:
    id: str; name: str; topic_id: str
    mastery_level: MasteryLevel = MasteryLevel.COOKED
    streak_correct: int = 0
    streak_incorrect: int = 0
    subtopic_id: Optional[str] = None

    @property
    def mastery(self) -> MasteryState:
        return MasteryState(self.mastery_level, self.streak_correct, self.streak_incorrect)


@dataclass(frozen=True)
class RawQuestion:
    id: str; text: str
    options: List[str]
    correct_option_index: int
    concept_id: str
    topic_id: str
    explanation: Optional[str] = None
    subtopic_id: Optional[str] = None


@dataclass(frozen=True)
class EnrichedQuestion(RawQuestion):
    concept_name: str = UNKNOWN_CONCEPT
    topic_name: str = UNKNOWN_TOPIC
    subtopic_name: Optional[str] = None
    mastery_level: MasteryLevel = MasteryLevel.COOKED
    streak_correct: int = 0
    streak_incorrect: int = 0


@dataclass(frozen=True)
class QueuedQuestion(EnrichedQuestion):
    appearance_count: int = 0
    max_appearances: int = MAX_QUESTION_APPEARANCES


@dataclass(frozen=True)
class TopicSelectionSummary:
    id: str
    name: str
    question_count: int
    concept_count: int
    average_mastery_weight: float
    mastery_distribution: Dict[MasteryLevel, int] = field(default_factory=dict)


@dataclass(frozen=True)
class AnswerRecord:
    question_id: str; concept_id: str
    selected_option_index: int
    is_correct: bool
    timestamp_ms: int
    appearance_number: int = 1


# Per-concept mastery snapshot, keyed by concept id.
MasterySnapshot = Dict[str, MasteryState]


@dataclass(frozen=True)
class CurrentMastery:
    level: MasteryLevel; concept_name: str; topic_name: str


@dataclass(frozen=True)
class ConceptResult:
    concept_id: str
    concept_name: str
    topic_name: str
    mastery_before: MasteryLevel
    mastery_after: MasteryLevel
    improved: bool
    decreased: bool
    attempts: int
    correct_attempts: int


@dataclass(frozen=True)
class QuizSummary:
    total_questions: int
    total_attempts: int
    correct_first_try: int
    correct_total: int
    score_percent: int
    concepts_improved: List[ConceptResult] = field(default_factory=list)
    concepts_unchanged: List[ConceptResult] = field(default_factory=list)
    concepts_decreased: List[ConceptResult] = field(default_factory=list)
    concepts_still_weak: List[ConceptResult] = field(default_factory=list)


@dataclass(frozen=True)
class SelectQuestionsResult:
    questions: List[QueuedQuestion]
    effective_count: int
    available_count: int
    mastery_snapshot: MasterySnapshot = field(default_factory=dict)
