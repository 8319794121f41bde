from __future__ import annotations
from collections import Counter, defaultdict
import json
import sys
from typing import Any, Dict, List, Mapping

from quiz_core.config import MASTERY_ORDER


def _ids(rows: List[Mapping[str, Any]]) -> set:
    return {str(r.get("id")) for r in rows if r.get("id") is not None}


def _first(row: Mapping[str, Any], *names: str) -> Any:
    for n in names:
        if row.get(n) is not None:
            return row[n]
    return None


def check_study_set(data: Mapping[str, Any]) -> List[str]:
    """Return human-readable integrity problems; an empty list means clean."""

    topics = list(data.get("topics") or [])
    subtopics = list(data.get("subtopics") or [])
    concepts = list(data.get("concepts") or [])
    questions = list(data.get("questions") or [])
    problems: List[str] = []

    for kind, rows in (("topics", topics), ("subtopics", subtopics), ("concepts", concepts), ("questions", questions)):
        counts = Counter(str(r.get("id")) for r in rows)
        for rid, n in counts.items():
            if n > 1:
                problems.append(f"{kind}: duplicate id {rid} ({n}x)")

    topic_ids, subtopic_ids, concept_ids = _ids(topics), _ids(subtopics), _ids(concepts)

    for i, s in enumerate(subtopics):
        tid = _first(s, "topic_id", "topicId")
        if str(tid) not in topic_ids:
            problems.append(f"subtopics[{i}] {s.get('id')}: unknown topic {tid}")

    for i, c in enumerate(concepts):
        cid = c.get("id")
        tid = _first(c, "topic_id", "topicId")
        if str(tid) not in topic_ids:
            problems.append(f"concepts[{i}] {cid}: unknown topic {tid}")
        level = _first(c, "mastery_level", "masteryLevel")
        if level is not None and level not in MASTERY_ORDER:
            problems.append(f"concepts[{i}] {cid}: unknown mastery level {level!r}")
        for key, alt in (("streak_correct", "streakCorrect"), ("streak_incorrect", "streakIncorrect")):
            val = _first(c, key, alt)
            if val is None:
                continue
            if not isinstance(val, int) or isinstance(val, bool) or val < 0:
                problems.append(f"concepts[{i}] {cid}: {key} must be a non-negative integer")

    for i, q in enumerate(questions):
        qid = q.get("id")
        text = _first(q, "question_text", "text")
        if not str(text or "").strip():
            problems.append(f"questions[{i}] {qid}: empty question text")
        options = q.get("options")
        if not isinstance(options, list) or len(options) < 2:
            problems.append(f"questions[{i}] {qid}: needs at least 2 options")
            options = options if isinstance(options, list) else []
        elif any(not str(o).strip() for o in options):
            problems.append(f"questions[{i}] {qid}: blank option text")
        correct = _first(q, "correct_option_index", "correctOptionIndex")
        if not isinstance(correct, int) or isinstance(correct, bool) or not 0 <= correct < len(options):
            problems.append(f"questions[{i}] {qid}: correct option index {correct!r} out of range")
        cid = _first(q, "concept_id", "conceptId")
        if str(cid) not in concept_ids:
            problems.append(f"questions[{i}] {qid}: unknown concept {cid}")
        tid = _first(q, "topic_id", "topicId")
        if str(tid) not in topic_ids:
            problems.append(f"questions[{i}] {qid}: unknown topic {tid}")
        sid = _first(q, "subtopic_id", "subtopicId")
        if sid is not None and str(sid) not in subtopic_ids:
            problems.append(f"questions[{i}] {qid}: unknown subtopic {sid}")

    return problems


def coverage(data: Mapping[str, Any]) -> Dict[str, Dict[str, int]]:
    """Questions and concepts per topic id."""
    out: Dict[str, Dict[str, int]] = defaultdict(lambda: {"concepts": 0, "questions": 0})
    for c in data.get("concepts") or []:
        out[str(_first(c, "topic_id", "topicId"))]["concepts"] += 1
    for q in data.get("questions") or []:
        out[str(_first(q, "topic_id", "topicId"))]["questions"] += 1
    return dict(out)


def main(argv=None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    if len(argv) != 1:
        print("usage: python -m tools.validate_study_set STUDY_SET.json")
        return 2
    with open(argv[0], encoding="utf-8") as f:
        data = json.load(f)

    names = {str(t.get("id")): t.get("name") for t in data.get("topics") or []}
    for tid, counts in sorted(coverage(data).items()):
        print(f"{names.get(tid, tid)}: concepts={counts['concepts']} questions={counts['questions']}")

    problems = check_study_set(data)
    if problems:
        print(f"\n{len(problems)} problem(s):")
        for p in problems:
            print(f"  → {p}")
        return 1
    print("\n✓ Study set is consistent")
    return 0


if __name__ == "__main__":
    sys.exit(main())
