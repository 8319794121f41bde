from __future__ import annotations
from fastapi import FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
import uuid, os, json, random, logging, typing as t

# ---- Engine imports ----
from quiz_core.config import load_config, make_rng, ANSWER_EXPORT_ENABLED
from quiz_core.answer_export import to_json as answers_to_json, to_csv as answers_to_csv
from quiz_core.enrich import aggregate_topics
from quiz_core.mastery import transition
from quiz_core.session import QuizConfig, QuizSession
from quiz_core.study_set import study_set_from_dict
from quiz_core.types import QueuedQuestion
from .storage import (
    apply_mastery_updates,
    list_summaries_for_set,
    load_study_set,
    load_summary,
    save_study_set,
    save_summary,
    utcnow_iso,
)

log = logging.getLogger(__name__)

QUIZZES: dict[str, QuizSession] = {}
QUIZ_INFO: dict[str, dict[str, t.Any]] = {}

app = FastAPI(title="BrainBlitz Quiz API")


@app.get("/")
def root():
    return {"status": "ok", "service": "brainblitz-quiz-api"}


ALLOWED_ORIGINS = [
    o.strip()
    for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    if o.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)

# ---- Schemas ----
class StudySetReq(BaseModel):
    topics: list[dict[str, t.Any]] = []
    subtopics: list[dict[str, t.Any]] = []
    concepts: list[dict[str, t.Any]] = []
    questions: list[dict[str, t.Any]] = []

class StartReq(BaseModel):
    topic_ids: list[str] = []
    question_count: int | None = None
    mode: str | None = None   # "normal" | "targetWeakness" | "suggestedTopics"
    active_recall: bool | None = None
    seed: int | None = None

class AnswerReq(BaseModel):
    option_index: int
    question_id: str | None = None
    timestamp_ms: int | None = None

class OutcomeReq(BaseModel):
    correct: bool

# ---- Helpers ----
def _serialize(obj: t.Any) -> t.Any:
    return json.loads(json.dumps(obj, default=lambda o: getattr(o, "__dict__", o)))


def _serialize_question(q: QueuedQuestion | None):
    if q is None: return None
    return {
        "id": q.id,
        "text": q.text,
        "options": list(q.options),
        "concept_id": q.concept_id,
        "concept_name": q.concept_name,
        "topic_id": q.topic_id,
        "topic_name": q.topic_name,
        "subtopic_name": q.subtopic_name,
        "mastery_level": q.mastery_level.value,
        "appearance": q.appearance_count + 1,
        "max_appearances": q.max_appearances,
    }


def _get_quiz(qid: str) -> QuizSession:
    sess = QUIZZES.get(qid)
    if not sess: raise HTTPException(404, "quiz not found")
    return sess


def _require_study_set(set_id: str):
    try:
        ss = load_study_set(set_id)
    except ValueError as exc:
        log.error("stored study set %s is invalid: %s", set_id, exc)
        raise HTTPException(500, f"stored study set {set_id} is invalid") from exc
    if ss is None:
        raise HTTPException(404, "study set not found")
    return ss

# ---- Health ----
@app.get("/health")
def health():
    return {
        "status": "ok",
        "active_quizzes": len(QUIZZES),
        "answer_export_enabled": ANSWER_EXPORT_ENABLED,
    }

# ---- Study sets ----
@app.put("/study-sets/{set_id}")
def put_study_set(set_id: str, req: StudySetReq):
    try:
        ss = study_set_from_dict(req.model_dump())
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc
    save_study_set(set_id, ss)
    return {
        "id": set_id,
        "topics": len(ss.topics),
        "subtopics": len(ss.subtopics),
        "concepts": len(ss.concepts),
        "questions": len(ss.questions),
    }


@app.get("/study-sets/{set_id}/topics")
def get_topics(set_id: str):
    ss = _require_study_set(set_id)
    summaries = aggregate_topics(ss.topics, ss.concepts, ss.questions)
    return {"study_set_id": set_id, "topics": _serialize(summaries)}


@app.get("/study-sets/{set_id}/summaries")
def get_set_summaries(set_id: str):
    return {"summaries": list_summaries_for_set(set_id)}


@app.post("/study-sets/{set_id}/concepts/{concept_id}/outcome")
def record_outcome(set_id: str, concept_id: str, req: OutcomeReq):
    """One word-game answer counts as one ladder step for the concept."""
    ss = _require_study_set(set_id)
    concept = ss.concept(concept_id)
    if concept is None:
        raise HTTPException(404, "concept not found")
    before = concept.mastery
    after = transition(before, req.correct)
    apply_mastery_updates(set_id, {concept_id: after})
    return {"concept_id": concept_id, "before": before.to_dict(), "after": after.to_dict()}

# ---- Quiz runs ----
@app.post("/study-sets/{set_id}/quiz/start")
def start_quiz(set_id: str, req: StartReq):
    ss = _require_study_set(set_id)
    cfg = load_config()
    config = QuizConfig.from_cfg(
        cfg,
        selected_topic_ids=req.topic_ids,
        question_count=req.question_count,
        mode=req.mode,
        active_recall=req.active_recall,
    )
    if config.question_count <= 0:
        raise HTTPException(400, "question_count must be positive")
    rng = random.Random(req.seed) if req.seed is not None else make_rng(cfg)
    sess = QuizSession(ss, config, rng=rng)
    if not sess.queue:
        raise HTTPException(409, "no questions available for the selected topics")

    qid = str(uuid.uuid4())
    QUIZZES[qid] = sess
    QUIZ_INFO[qid] = {"study_set_id": set_id, "started_at": utcnow_iso()}
    return {
        "quiz_id": qid,
        "question_count": sess.original_question_count,
        "available_count": sess.available_count,
        "mode": config.mode,
        "active_recall": config.active_recall,
        "question": _serialize_question(sess.current()),
    }


@app.get("/quiz/{qid}/current")
def current_question(qid: str):
    sess = _get_quiz(qid)
    q = sess.next_question()
    return {
        "done": q is None,
        "index": sess.index,
        "total": len(sess.queue),
        "question": _serialize_question(q),
    }


@app.post("/quiz/{qid}/answer")
def answer(qid: str, req: AnswerReq):
    sess = _get_quiz(qid)
    q = sess.next_question()
    if q is None:
        raise HTTPException(409, "quiz is complete")
    if req.question_id is not None and req.question_id != q.id:
        raise HTTPException(409, f"question {req.question_id} is not the current question")
    set_id = QUIZ_INFO.get(qid, {}).get("study_set_id")
    stored = load_study_set(set_id) if set_id else None
    concept = stored.concept(q.concept_id) if stored else None
    if concept is not None:
        # word-game results or other runs may have moved this concept
        sess.sync_mastery({concept.id: concept.mastery})
    try:
        out = sess.answer_current(req.option_index, timestamp_ms=req.timestamp_ms)
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc
    if set_id and out.mastery_after is not None:
        apply_mastery_updates(set_id, {q.concept_id: out.mastery_after})
    nxt = sess.next_question()
    return {
        "correct": out.record.is_correct,
        "correct_option_index": out.correct_option_index,
        "explanation": out.explanation,
        "mastery_before": out.mastery_before.to_dict() if out.mastery_before else None,
        "mastery_after": out.mastery_after.to_dict() if out.mastery_after else None,
        "requeued": out.requeued,
        "done": nxt is None,
        "next": _serialize_question(nxt),
    }


@app.post("/quiz/{qid}/finish")
def finish(qid: str):
    sess = _get_quiz(qid)
    info = QUIZ_INFO.get(qid, {})
    set_id = info.get("study_set_id")
    # mastery is already stored per answer
    summary = sess.finalize()

    summary_id = str(uuid.uuid4())
    created = utcnow_iso()
    payload = _serialize(summary)
    payload.update(
        {
            "id": summary_id,
            "quiz_id": qid,
            "study_set_id": set_id,
            "created_at": created,
            "mode": sess.config.mode,
            "answers": _serialize(sess.answers),
            "audit_events": list(sess.audit_events),
        }
    )
    metadata = {
        "quizId": qid,
        "studySetId": set_id,
        "createdAt": created,
        "startedAt": info.get("started_at"),
        "mode": sess.config.mode,
        "scorePercent": summary.score_percent,
    }
    save_summary(summary_id, payload, metadata)
    QUIZZES.pop(qid, None)
    QUIZ_INFO.pop(qid, None)
    return payload


@app.get("/quiz-summaries/{summary_id}")
def get_summary(summary_id: str):
    summary = load_summary(summary_id)
    if not summary:
        raise HTTPException(404, "summary not found")
    return summary


@app.get("/quiz-summaries/{summary_id}/answers.json")
def get_answers_json(summary_id: str):
    if not ANSWER_EXPORT_ENABLED:
        raise HTTPException(404, "answer export disabled")

    summary = load_summary(summary_id)
    if not summary:
        raise HTTPException(404, "summary not found")

    events = summary.get("audit_events") if isinstance(summary, dict) else None
    payload = answers_to_json(events or [])
    return {"summary_id": summary_id, **payload}


@app.get("/quiz-summaries/{summary_id}/answers.csv")
def get_answers_csv(summary_id: str):
    if not ANSWER_EXPORT_ENABLED:
        raise HTTPException(404, "answer export disabled")

    summary = load_summary(summary_id)
    if not summary:
        raise HTTPException(404, "summary not found")

    events = summary.get("audit_events") if isinstance(summary, dict) else None
    body = answers_to_csv(events or [])
    filename = f"{summary_id}_answers.csv"
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=\"{filename}\""},
    )
