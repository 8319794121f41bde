from __future__ import annotations
import os, json, pathlib, random


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


# Mastery ladder, lowest to highest. Values are the stored labels.
LEVEL_COOKED = "Cooked"
LEVEL_MEH = "Meh"
LEVEL_THERE_IS_HOPE = "There's Hope"
LEVEL_LOCKED_IN = "Locked in"

MASTERY_ORDER: tuple[str, ...] = (
    LEVEL_COOKED,
    LEVEL_MEH,
    LEVEL_THERE_IS_HOPE,
    LEVEL_LOCKED_IN,
)

# Higher weight = weaker concept = more likely to be drawn.
MASTERY_WEIGHTS: dict[str, int] = {
    LEVEL_COOKED: 3,
    LEVEL_MEH: 2,
    LEVEL_THERE_IS_HOPE: 1,
    LEVEL_LOCKED_IN: 0,
}

# Consecutive answers needed to leave a level.
PROMOTE_STREAK: dict[str, int] = {
    LEVEL_COOKED: 3,
    LEVEL_MEH: 2,
    LEVEL_THERE_IS_HOPE: 2,
}
DEMOTE_STREAK: dict[str, int] = {
    LEVEL_LOCKED_IN: 2,
    LEVEL_THERE_IS_HOPE: 2,
    LEVEL_MEH: 2,
}

WEAK_LEVELS: frozenset[str] = frozenset({LEVEL_COOKED, LEVEL_MEH})

MAX_QUESTION_APPEARANCES: int = 3
WEAKNESS_WEIGHT_FLOOR: float = 0.1
TOPIC_TIE_BAND: float = 0.1

QUIZ_MODES: tuple[str, ...] = ("normal", "targetWeakness", "suggestedTopics")
DEFAULT_MODE: str = "normal"
QUESTION_COUNTS: tuple[int, ...] = (10, 25, 50)
DEFAULT_QUESTION_COUNT: int = 10
DEFAULT_ACTIVE_RECALL: bool = False

UNKNOWN_CONCEPT = "Unknown Concept"
UNKNOWN_TOPIC = "Unknown Topic"
UNKNOWN_LABEL = "Unknown"

ANSWER_EXPORT_ENABLED: bool = True

DEBUG_TRACE: bool = False
DEBUG_SEED: int | None = None
TRACE_FIELDS: tuple[str, ...] = (
    "question_id",
    "concept_id",
    "appearance",
    "correct",
    "level_before",
    "level_after",
    "streak_correct",
    "streak_incorrect",
    "requeued",
)
# // env overrides for staging/ops; engine thresholds are not overridable.
DEFAULT_QUESTION_COUNT = _env_int("DEFAULT_QUESTION_COUNT", DEFAULT_QUESTION_COUNT)
ANSWER_EXPORT_ENABLED = _env_bool("ANSWER_EXPORT_ENABLED", ANSWER_EXPORT_ENABLED)
DEBUG_TRACE = _env_bool("DEBUG_TRACE", False)
_seed_raw = os.getenv("DEBUG_SEED")
DEBUG_SEED = int(_seed_raw) if _seed_raw and _seed_raw.strip().lstrip("-").isdigit() else None


def _env_true(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("1","true","yes","on")
def load_config() -> dict:
    cfg = {}
    p = pathlib.Path("config.json")
    if p.exists():
        try: cfg = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError): cfg = {}
    e = os.environ
    if e.get("QUIZ_DEFAULT_MODE"): cfg["DEFAULT_MODE"] = e.get("QUIZ_DEFAULT_MODE")
    if e.get("QUIZ_ACTIVE_RECALL"): cfg["ACTIVE_RECALL"] = _env_true("QUIZ_ACTIVE_RECALL")
    if e.get("SEED"):
        try: cfg["SEED"] = int(e.get("SEED"))
        except ValueError: pass
    cfg.setdefault("DEFAULT_MODE", DEFAULT_MODE)
    cfg.setdefault("DEFAULT_QUESTION_COUNT", DEFAULT_QUESTION_COUNT)
    cfg.setdefault("ACTIVE_RECALL", DEFAULT_ACTIVE_RECALL)
    return cfg
def make_rng(cfg: dict | None = None) -> random.Random:
    s = (cfg or {}).get("SEED")
    if s is None:
        s = DEBUG_SEED
    if s is None:
        return random.Random()
    return random.Random(int(s))
