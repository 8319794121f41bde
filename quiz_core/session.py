# quiz_core/session.py
from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Mapping, Optional, Tuple
import logging, time

from .config import (
    DEBUG_TRACE,
    DEFAULT_ACTIVE_RECALL,
    DEFAULT_MODE,
    DEFAULT_QUESTION_COUNT,
    TRACE_FIELDS,
)
from .answer_export import answer_row
from .mastery import transition
from .recall import requeue
from .selection import RandomSource, select_questions
from .study_set import StudySet
from .summary import build_current_mastery, summarize
from .types import AnswerRecord, MasterySnapshot, MasteryState, QueuedQuestion, QuizMode, QuizSummary


log = logging.getLogger(__name__)


def _emit_trace(**values: object) -> None:
    if not DEBUG_TRACE:
        return
    ordered = []
    for key in TRACE_FIELDS:
        if key in values:
            ordered.append(f"{key}={values[key]}")
    if ordered:
        log.info("trace %s", " ".join(str(val) for val in ordered))


@dataclass(frozen=True)
class QuizConfig:
    selected_topic_ids: Tuple[str, ...] = ()
    question_count: int = DEFAULT_QUESTION_COUNT
    mode: QuizMode = DEFAULT_MODE
    active_recall: bool = DEFAULT_ACTIVE_RECALL

    @staticmethod
    def from_cfg(cfg: Mapping[str, Any] | None, **overrides: Any) -> "QuizConfig":
        cfg = cfg or {}
        base = QuizConfig(
            mode=str(cfg.get("DEFAULT_MODE", DEFAULT_MODE)),
            question_count=int(cfg.get("DEFAULT_QUESTION_COUNT", DEFAULT_QUESTION_COUNT)),
            active_recall=bool(cfg.get("ACTIVE_RECALL", DEFAULT_ACTIVE_RECALL)),
        )
        clean = {k: v for k, v in overrides.items() if v is not None}
        if "selected_topic_ids" in clean:
            clean["selected_topic_ids"] = tuple(clean["selected_topic_ids"])
        return replace(base, **clean)


@dataclass(frozen=True)
class AnswerOutcome:
    record: AnswerRecord
    correct_option_index: int
    explanation: Optional[str]
    mastery_before: Optional[MasteryState]
    mastery_after: Optional[MasteryState]
    requeued: bool
    done: bool


class QuizSession:
    """One quiz run: queue, answer log, and live concept mastery.

    Mastery changes are kept in memory; callers persist each answer's
    ``mastery_after`` or read :meth:`mastery_updates` at the end.
    """

    def __init__(self, study_set: StudySet, config: QuizConfig | None = None, rng: RandomSource = None):
        self.config = config or QuizConfig()
        self._study_set = study_set
        result = select_questions(
            study_set.questions,
            study_set.concepts,
            study_set.topics,
            study_set.subtopics,
            selected_topic_ids=self.config.selected_topic_ids,
            mode=self.config.mode,
            num_questions=self.config.question_count,
            rng=rng,
        )
        self.queue: List[QueuedQuestion] = list(result.questions)
        self.snapshot: MasterySnapshot = dict(result.mastery_snapshot)
        self.available_count = result.available_count
        self.original_question_count = result.effective_count
        self.answers: List[AnswerRecord] = []
        self.audit_events: List[Dict[str, object]] = []
        self._index = 0
        self._answered = False
        self._stopped = False
        self._mastery: Dict[str, MasteryState] = {c.id: c.mastery for c in study_set.concepts}
        self._touched: List[str] = []

    @property
    def index(self) -> int:
        return self._index

    @property
    def done(self) -> bool:
        return self._stopped or self._index >= len(self.queue)

    @property
    def answered(self) -> bool:
        return self._answered

    def current(self) -> Optional[QueuedQuestion]:
        if self.done:
            return None
        return self.queue[self._index]

    def next_question(self) -> Optional[QueuedQuestion]:
        """Move past an answered question and return the one to ask now."""
        if self._answered:
            self._index += 1
            self._answered = False
        return self.current()

    def answer_current(self, option_index: int, timestamp_ms: int | None = None) -> AnswerOutcome:
        q = self.current()
        if q is None:
            raise RuntimeError("quiz is complete; no question to answer")
        if self._answered:
            raise RuntimeError(f"question {q.id} already answered; call next_question()")
        if not 0 <= int(option_index) < len(q.options):
            raise ValueError(f"option index {option_index} out of range for question {q.id}")

        is_correct = int(option_index) == q.correct_option_index
        record = AnswerRecord(
            question_id=q.id,
            concept_id=q.concept_id,
            selected_option_index=int(option_index),
            is_correct=is_correct,
            timestamp_ms=int(timestamp_ms if timestamp_ms is not None else time.time() * 1000),
            appearance_number=q.appearance_count + 1,
        )
        self.answers.append(record)

        before = self._mastery.get(q.concept_id)
        after: Optional[MasteryState] = None
        if before is None:
            log.warning("answer for question %s references unknown concept %s", q.id, q.concept_id)
        else:
            after = transition(before, is_correct)
            self._mastery[q.concept_id] = after
            if q.concept_id not in self._touched:
                self._touched.append(q.concept_id)
            self.queue[self._index] = replace(
                q,
                mastery_level=after.level,
                streak_correct=after.streak_correct,
                streak_incorrect=after.streak_incorrect,
            )
            log.debug(
                "mastery concept=%s correct=%s level=%s->%s streaks=(%d,%d)",
                q.concept_id,
                int(is_correct),
                before.level.value,
                after.level.value,
                after.streak_correct,
                after.streak_incorrect,
            )

        requeued = False
        if self.config.active_recall and not is_correct:
            new_queue = requeue(self.queue, self._index)
            if new_queue is not None:
                self.queue = new_queue
                requeued = True

        _emit_trace(
            question_id=q.id,
            concept_id=q.concept_id,
            appearance=record.appearance_number,
            correct=int(is_correct),
            level_before=before.level.value if before else None,
            level_after=after.level.value if after else None,
            streak_correct=after.streak_correct if after else None,
            streak_incorrect=after.streak_incorrect if after else None,
            requeued=requeued,
        )
        self.audit_events.append(
            answer_row(record, before.level if before else None, after.level if after else None)
        )

        self._answered = True
        return AnswerOutcome(
            record=record,
            correct_option_index=q.correct_option_index,
            explanation=q.explanation,
            mastery_before=before,
            mastery_after=after,
            requeued=requeued,
            done=self._index + 1 >= len(self.queue),
        )

    def stop(self) -> None:
        self._stopped = True

    def mastery_updates(self) -> Dict[str, MasteryState]:
        return {cid: self._mastery[cid] for cid in self._touched}

    def sync_mastery(self, states: Mapping[str, MasteryState]) -> None:
        """Adopt mastery written elsewhere since the run started.

        The next transition for these concepts starts from the given state.
        Unknown concept ids are ignored.
        """
        for cid, state in states.items():
            if cid in self._mastery:
                self._mastery[cid] = state

    @property
    def study_set(self) -> StudySet:
        return self._study_set.with_mastery(self.mastery_updates())

    def finalize(self) -> QuizSummary:
        self._stopped = True
        ss = self.study_set
        summary = summarize(self.answers, self.snapshot, build_current_mastery(ss.concepts, ss.topics))
        log.info(
            "quiz finished questions=%d attempts=%d score=%d%%",
            summary.total_questions,
            summary.total_attempts,
            summary.score_percent,
        )
        return summary
