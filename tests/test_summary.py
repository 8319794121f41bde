from __future__ import annotations

import pytest

from quiz_core.summary import build_current_mastery, score_band, summarize
from quiz_core.types import AnswerRecord, Concept, CurrentMastery, MasteryLevel, MasteryState, Topic


def _ans(qid: str, cid: str, correct: bool, appearance: int = 1) -> AnswerRecord:
    return AnswerRecord(
        question_id=qid,
        concept_id=cid,
        selected_option_index=0 if correct else 1,
        is_correct=correct,
        timestamp_ms=1_700_000_000_000,
        appearance_number=appearance,
    )


def _cur(level: MasteryLevel, name: str = "C") -> CurrentMastery:
    return CurrentMastery(level=level, concept_name=name, topic_name="T")


def test_score_counts_first_attempts_only():
    answers = [_ans("q1", "c1", False), _ans("q2", "c1", True), _ans("q1", "c1", True, appearance=2)]
    s = summarize(answers, {}, {})
    assert s.total_questions == 2
    assert s.total_attempts == 3
    assert s.correct_first_try == 1
    assert s.correct_total == 2
    assert s.score_percent == 50, "Retries must not lift the score"


@pytest.mark.parametrize("n_correct, n_total, expected", [(1, 8, 13), (2, 3, 67), (1, 3, 33), (3, 8, 38)])
def test_score_rounds_half_up(n_correct, n_total, expected):
    answers = [_ans(f"q{i}", "c1", i < n_correct) for i in range(n_total)]
    assert summarize(answers, {}, {}).score_percent == expected


def test_empty_run_scores_zero():
    s = summarize([], {}, {})
    assert (s.total_questions, s.total_attempts, s.score_percent) == (0, 0, 0)
    assert s.concepts_improved == s.concepts_unchanged == s.concepts_decreased == s.concepts_still_weak == []


def test_concepts_land_in_the_right_buckets():
    answers = [
        _ans("q1", "up", True),
        _ans("q2", "down", False),
        _ans("q3", "flat", True),
        _ans("q4", "new", False),
    ]
    before = {
        "up": MasteryState(MasteryLevel.COOKED, 2, 0),
        "down": MasteryState(MasteryLevel.LOCKED_IN, 0, 1),
        "flat": MasteryState(MasteryLevel.MEH),
    }
    after = {
        "up": _cur(MasteryLevel.MEH, "Up"),
        "down": _cur(MasteryLevel.THERE_IS_HOPE, "Down"),
        "flat": _cur(MasteryLevel.MEH, "Flat"),
    }
    s = summarize(answers, before, after)

    assert [r.concept_id for r in s.concepts_improved] == ["up"]
    assert [r.concept_id for r in s.concepts_decreased] == ["down"]
    assert [r.concept_id for r in s.concepts_unchanged] == ["flat", "new"]
    assert [r.concept_id for r in s.concepts_still_weak] == ["up", "flat", "new"], "Cooked and Meh are weak"

    new = s.concepts_unchanged[1]
    assert new.mastery_before == new.mastery_after == MasteryLevel.COOKED
    assert new.concept_name == "Unknown" and new.topic_name == "Unknown"
    assert new.attempts == 1 and new.correct_attempts == 0


def test_concept_attempts_include_retries():
    answers = [_ans("q1", "c1", False), _ans("q1", "c1", True, 2), _ans("q2", "c1", True)]
    (row,) = summarize(answers, {}, {"c1": _cur(MasteryLevel.COOKED)}).concepts_unchanged
    assert row.attempts == 3 and row.correct_attempts == 2


def test_build_current_mastery_names_topics():
    concepts = [Concept("c1", "Cells", "t1", MasteryLevel.MEH), Concept("c2", "Orbit", "gone")]
    out = build_current_mastery(concepts, [Topic("t1", "Biology")])
    assert out["c1"] == CurrentMastery(MasteryLevel.MEH, "Cells", "Biology")
    assert out["c2"].topic_name == "Unknown"


@pytest.mark.parametrize(
    "score, band",
    [(100, "Outstanding!"), (90, "Outstanding!"), (89, "Great work!"), (70, "Good job!"),
     (60, "Not bad!"), (50, "Getting there!"), (49, "Keep practicing!"), (0, "Keep practicing!")],
)
def test_score_band_boundaries(score, band):
    assert score_band(score) == band
