"""Answer-log export for quiz runs.

Rows come either from :class:`AnswerRecord` objects (live sessions) or from
the plain dicts stored with a finished summary; both end up with the same
columns in ``EXPORT_FIELDS`` order.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union
import csv
import io

from .types import AnswerRecord, MasteryLevel

EXPORT_FIELDS: tuple[str, ...] = (
    "t",
    "question_id",
    "concept_id",
    "selected_option_index",
    "is_correct",
    "appearance_number",
    "level_before",
    "level_after",
)

AnswerEvent = Union[AnswerRecord, Mapping[str, Any]]


def _as_int(val: Any) -> int:
    try:
        return int(val)
    except (TypeError, ValueError):
        return 0


def _as_text(val: Any) -> str:
    if val is None:
        return ""
    if isinstance(val, MasteryLevel):
        return val.value
    return str(val)


_CONVERT: Dict[str, Callable[[Any], Any]] = {
    "selected_option_index": _as_int,
    "appearance_number": _as_int,
    "is_correct": bool,
}


def _iso_from_ms(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc).isoformat()


def answer_row(
    record: AnswerRecord,
    level_before: Optional[MasteryLevel] = None,
    level_after: Optional[MasteryLevel] = None,
) -> Dict[str, Any]:
    """One export row for a recorded answer; levels are None for unknown concepts."""
    return {
        "t": _iso_from_ms(record.timestamp_ms),
        "question_id": record.question_id,
        "concept_id": record.concept_id,
        "selected_option_index": record.selected_option_index,
        "is_correct": record.is_correct,
        "appearance_number": record.appearance_number,
        "level_before": level_before.value if level_before else None,
        "level_after": level_after.value if level_after else None,
    }


def _row(event: AnswerEvent | None) -> Dict[str, Any]:
    raw = answer_row(event) if isinstance(event, AnswerRecord) else (event or {})
    return {key: _CONVERT.get(key, _as_text)(raw.get(key)) for key in EXPORT_FIELDS}


def to_json(events: Iterable[AnswerEvent]) -> Dict[str, Any]:
    rows: List[Dict[str, Any]] = [_row(evt) for evt in events]
    return {"events": rows, "count": len(rows)}


def to_csv(events: Iterable[AnswerEvent]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(EXPORT_FIELDS)
    writer.writerows([row[key] for key in EXPORT_FIELDS] for row in map(_row, events))
    return buf.getvalue()


__all__ = ["EXPORT_FIELDS", "answer_row", "to_json", "to_csv"]
