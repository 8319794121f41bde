"""Utility helpers for persisting study sets and finished quiz summaries.

A production deployment would back this with the real database.  For now we
keep simple JSON files on disk so mastery progress survives restarts and
finished quiz summaries can be fetched again by id.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from quiz_core.study_set import StudySet, study_set_from_dict, study_set_to_dict
from quiz_core.types import MasteryState


log = logging.getLogger(__name__)

DATA_ROOT = Path(os.getenv("DATA_DIR", "data")).resolve()
STUDY_SETS_DIR = DATA_ROOT / "study_sets"
SUMMARIES_DIR = DATA_ROOT / "summaries"
SUMMARY_INDEX_PATH = DATA_ROOT / "summaries_index.json"

_LOCK = threading.Lock()


def _ensure_dirs() -> None:
    STUDY_SETS_DIR.mkdir(parents=True, exist_ok=True)
    SUMMARIES_DIR.mkdir(parents=True, exist_ok=True)


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        log.warning("unreadable JSON at %s, using default", path)
        return default


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    tmp.replace(path)


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _study_set_path(set_id: str) -> Path:
    return STUDY_SETS_DIR / f"{set_id}.json"


def save_study_set(set_id: str, study_set: StudySet) -> None:
    _ensure_dirs()
    with _LOCK:
        _write_json(_study_set_path(set_id), study_set_to_dict(study_set))


def load_study_set(set_id: str) -> Optional[StudySet]:
    raw = _read_json(_study_set_path(set_id), None)
    if raw is None:
        return None
    return study_set_from_dict(raw)


def apply_mastery_updates(set_id: str, updates: Mapping[str, MasteryState]) -> Optional[StudySet]:
    """Write concept mastery changes back into a stored study set.

    Returns the updated set, or ``None`` when the set does not exist.
    Concept ids absent from the set are skipped with a warning.
    """

    if not updates:
        return load_study_set(set_id)
    with _LOCK:
        raw = _read_json(_study_set_path(set_id), None)
        if raw is None:
            return None
        current = study_set_from_dict(raw)
        known = {c.id for c in current.concepts}
        missing = [cid for cid in updates if cid not in known]
        if missing:
            log.warning("mastery updates for unknown concepts in %s: %s", set_id, missing)
        updated = current.with_mastery(updates)
        _write_json(_study_set_path(set_id), study_set_to_dict(updated))
    return updated


def save_summary(summary_id: str, summary: Dict[str, Any], metadata: Dict[str, Any]) -> None:
    """Persist a finished quiz summary and its index metadata."""

    _ensure_dirs()
    with _LOCK:
        index: Dict[str, Dict[str, Any]] = _read_json(SUMMARY_INDEX_PATH, {})
        index[summary_id] = metadata
        _write_json(SUMMARY_INDEX_PATH, index)

    _write_json(SUMMARIES_DIR / f"{summary_id}.json", summary)


def load_summary(summary_id: str) -> Optional[Dict[str, Any]]:
    return _read_json(SUMMARIES_DIR / f"{summary_id}.json", None)


def list_summaries_for_set(set_id: str) -> List[Dict[str, Any]]:
    index: Dict[str, Dict[str, Any]] = _read_json(SUMMARY_INDEX_PATH, {})
    out: List[Dict[str, Any]] = []
    for sid, meta in index.items():
        if meta.get("studySetId") == set_id:
            item = {"id": sid}
            item.update({k: v for k, v in meta.items() if k != "id"})
            out.append(item)
    out.sort(key=lambda r: r.get("createdAt", ""), reverse=True)
    return out
