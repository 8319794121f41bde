from __future__ import annotations

import importlib
import os
import sys

import pytest
from fastapi.testclient import TestClient

from quiz_core.mastery import transition
from quiz_core.study_set import study_set_to_dict
from tests.conftest import build_synthetic_study_set


_DEF_MODULES = [
    "quiz_core.config",
    "api.storage",
    "api.app",
]


def _reload_app(tmp_path) -> tuple[object, object]:
    os.environ["DATA_DIR"] = str(tmp_path)
    for name in _DEF_MODULES:
        if name in sys.modules:
            importlib.reload(sys.modules[name])
        else:
            __import__(name)
    storage = sys.modules["api.storage"]
    app_module = sys.modules["api.app"]
    return storage, app_module


def _client_with_set(tmp_path, set_id: str = "bio"):
    storage, app_module = _reload_app(tmp_path)
    client = TestClient(app_module.app)
    resp = client.put(f"/study-sets/{set_id}", json=study_set_to_dict(build_synthetic_study_set()))
    assert resp.status_code == 200, resp.text
    return storage, client


def test_upload_and_topic_summaries(tmp_path):
    _storage, client = _client_with_set(tmp_path)

    topics = client.get("/study-sets/bio/topics")
    assert topics.status_code == 200
    rows = topics.json()["topics"]
    assert [r["id"] for r in rows] == ["t0", "t1"]
    assert rows[0]["question_count"] == 8 and rows[0]["concept_count"] == 4
    assert rows[0]["average_mastery_weight"] == 1.5
    assert rows[0]["mastery_distribution"] == {"Cooked": 1, "Meh": 1, "There's Hope": 1, "Locked in": 1}

    assert client.get("/study-sets/missing/topics").status_code == 404


def test_upload_rejects_rows_missing_required_fields(tmp_path):
    _storage, app_module = _reload_app(tmp_path)
    client = TestClient(app_module.app)
    resp = client.put("/study-sets/bad", json={"questions": [{"id": "q1", "options": ["A", "B"]}]})
    assert resp.status_code == 400
    assert "questions[0]" in resp.json()["detail"]


def test_quiz_run_persists_mastery_and_summary(tmp_path):
    storage, client = _client_with_set(tmp_path)

    start = client.post("/study-sets/bio/quiz/start", json={"question_count": 10, "mode": "targetWeakness", "seed": 3})
    assert start.status_code == 200, start.text
    body = start.json()
    qid = body["quiz_id"]
    assert body["question_count"] == 10 and body["available_count"] == 16
    assert "correct_option_index" not in body["question"], "Answers must not leak before submission"

    answered = 0
    question = body["question"]
    while question is not None:
        resp = client.post(f"/quiz/{qid}/answer", json={"question_id": question["id"], "option_index": 0})
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["correct"] is True and data["correct_option_index"] == 0
        answered += 1
        question = data["next"]
    assert answered == 10

    current = client.get(f"/quiz/{qid}/current")
    assert current.status_code == 200 and current.json()["done"] is True

    finish = client.post(f"/quiz/{qid}/finish")
    assert finish.status_code == 200
    summary = finish.json()
    assert summary["score_percent"] == 100 and summary["total_questions"] == 10
    assert len(summary["answers"]) == 10

    stored = client.get(f"/quiz-summaries/{summary['id']}")
    assert stored.status_code == 200 and stored.json()["score_percent"] == 100

    listed = client.get("/study-sets/bio/summaries").json()["summaries"]
    assert [s["id"] for s in listed] == [summary["id"]]

    touched = {a["concept_id"] for a in summary["answers"]}
    original = {c.id: c.mastery for c in build_synthetic_study_set().concepts}
    for concept in storage.load_study_set("bio").concepts:
        if concept.id in touched:
            assert concept.mastery != original[concept.id], f"{concept.id} should have persisted progress"
        else:
            assert concept.mastery == original[concept.id]

    assert client.post(f"/quiz/{qid}/answer", json={"option_index": 0}).status_code == 404


def test_answer_errors_map_to_status_codes(tmp_path):
    _storage, client = _client_with_set(tmp_path)
    qid = client.post("/study-sets/bio/quiz/start", json={"question_count": 10, "seed": 1}).json()["quiz_id"]

    assert client.post(f"/quiz/{qid}/answer", json={"option_index": 9}).status_code == 400
    assert client.post(f"/quiz/{qid}/answer", json={"option_index": 0, "question_id": "nope"}).status_code == 409
    assert client.get("/quiz/unknown/current").status_code == 404
    assert client.post("/quiz/unknown/finish").status_code == 404


def test_start_with_no_matching_topics_conflicts(tmp_path):
    _storage, client = _client_with_set(tmp_path)
    resp = client.post("/study-sets/bio/quiz/start", json={"topic_ids": ["nope"]})
    assert resp.status_code == 409
    assert client.post("/study-sets/missing/quiz/start", json={}).status_code == 404


def test_active_recall_over_http(tmp_path):
    _storage, client = _client_with_set(tmp_path)
    start = client.post(
        "/study-sets/bio/quiz/start",
        json={"question_count": 10, "active_recall": True, "topic_ids": ["t0"], "seed": 5},
    ).json()
    qid = start["quiz_id"]
    miss = client.post(f"/quiz/{qid}/answer", json={"option_index": 1}).json()
    assert miss["correct"] is False and miss["requeued"] is True

    cur = client.get(f"/quiz/{qid}/current").json()
    assert cur["total"] == 9, "8 questions in t0 plus one retry"


def test_word_game_outcome_moves_one_step(tmp_path):
    storage, client = _client_with_set(tmp_path)
    first = client.post("/study-sets/bio/concepts/t0_c1/outcome", json={"correct": False})
    assert first.status_code == 200
    assert first.json()["after"] == {"level": "Meh", "streak_correct": 0, "streak_incorrect": 1}

    second = client.post("/study-sets/bio/concepts/t0_c1/outcome", json={"correct": False}).json()
    assert second["after"]["level"] == "Cooked"
    assert storage.load_study_set("bio").concept("t0_c1").mastery_level.value == "Cooked"

    assert client.post("/study-sets/bio/concepts/ghost/outcome", json={"correct": True}).status_code == 404


def test_each_answer_is_stored_even_if_the_quiz_is_abandoned(tmp_path):
    storage, client = _client_with_set(tmp_path)
    start = client.post("/study-sets/bio/quiz/start", json={"question_count": 1, "seed": 1}).json()
    cid = start["question"]["concept_id"]

    resp = client.post(f"/quiz/{start['quiz_id']}/answer", json={"option_index": 0}).json()
    stored = storage.load_study_set("bio").concept(cid)
    assert stored.mastery.to_dict() == resp["mastery_after"], "Answer must reach the store without /finish"
    assert stored.mastery != build_synthetic_study_set().concept(cid).mastery


def test_finish_keeps_word_game_steps_taken_mid_quiz(tmp_path):
    storage, client = _client_with_set(tmp_path)
    start = client.post("/study-sets/bio/quiz/start", json={"question_count": 1, "seed": 1}).json()
    qid, cid = start["quiz_id"], start["question"]["concept_id"]
    original = build_synthetic_study_set().concept(cid).mastery

    client.post(f"/quiz/{qid}/answer", json={"option_index": 1})
    after_game = client.post(f"/study-sets/bio/concepts/{cid}/outcome", json={"correct": True}).json()["after"]
    assert client.post(f"/quiz/{qid}/finish").status_code == 200

    expected = transition(transition(original, False), True)
    assert after_game == expected.to_dict()
    assert storage.load_study_set("bio").concept(cid).mastery == expected, "Finish must not replay stale state"


def test_quiz_answer_builds_on_word_game_progress(tmp_path):
    storage, client = _client_with_set(tmp_path)
    start = client.post(
        "/study-sets/bio/quiz/start", json={"question_count": 10, "active_recall": True, "topic_ids": ["t0"], "seed": 5}
    ).json()
    qid, cid = start["quiz_id"], start["question"]["concept_id"]
    original = build_synthetic_study_set().concept(cid).mastery

    client.post(f"/quiz/{qid}/answer", json={"option_index": 1})
    client.post(f"/study-sets/bio/concepts/{cid}/outcome", json={"correct": True})

    question = client.get(f"/quiz/{qid}/current").json()["question"]
    while question["concept_id"] != cid:
        question = client.post(f"/quiz/{qid}/answer", json={"option_index": 0}).json()["next"]
    client.post(f"/quiz/{qid}/answer", json={"option_index": 0})

    expected = transition(transition(transition(original, False), True), True)
    assert storage.load_study_set("bio").concept(cid).mastery == expected


@pytest.mark.parametrize(
    "patch, message",
    [
        ({"questions": {"options": ["A"], "correct_option_index": 0}}, "at least 2 options"),
        ({"questions": {"correct_option_index": 9}}, "out of range"),
        ({"concepts": {"streak_correct": -4}}, "non-negative"),
    ],
)
def test_upload_rejects_rows_that_break_the_data_model(tmp_path, patch, message):
    _storage, app_module = _reload_app(tmp_path)
    client = TestClient(app_module.app)
    rows = study_set_to_dict(build_synthetic_study_set())
    for table, fields in patch.items():
        rows[table][0].update(fields)

    resp = client.put("/study-sets/broken", json=rows)
    assert resp.status_code == 400
    assert message in resp.json()["detail"]
    assert client.get("/study-sets/broken/topics").status_code == 404, "Rejected uploads are not stored"
