from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


def _env_choice(name: str, default: str, choices: tuple[str, ...]) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    val = raw.strip().lower()
    return val if val in choices else default


# fill-in-the-blank fuzzy policy
FUZZY_FULL_THRESHOLD: float = 0.8
FUZZY_PARTIAL_THRESHOLD: float = 0.6
FUZZY_PARTIAL_RATIO: float = 0.7
UNKNOWN_ANSWER_RATIO: float = 0.5

ILLEGIBLE_SENTINEL: str = "illegible"
UNKNOWN_SENTINEL: str = "unknown"

# legacy proportional-with-penalty rule
LEGACY_WRONG_PENALTY: float = 0.5
LEGACY_CORRECT_RATIO: float = 0.8

DEFAULT_MAX_POINTS: float = 1.0
SCORE_DECIMALS: int = 2

# inclusive lower bounds, highest first
GRADE_BANDS: tuple[tuple[float, str], ...] = (
    (90.0, "A+"),
    (80.0, "A"),
    (70.0, "B+"),
    (60.0, "B"),
    (50.0, "C"),
    (40.0, "D"),
)
FAIL_GRADE: str = "F"

DEFAULT_MODE: str = "traditional"
DEFAULT_MULTI_RULE: str = "strict"

AUDIT_EXPORT_ENABLED: bool = True

DEBUG_TRACE: bool = False
TRACE_FIELDS: tuple[str, ...] = (
    "question",
    "rule",
    "student",
    "correct",
    "score",
    "max_points",
)
# // env overrides for staging/ops; scoring thresholds stay fixed policy.
DEFAULT_MULTI_RULE = _env_choice("DEFAULT_MULTI_RULE", DEFAULT_MULTI_RULE, ("strict", "proportional"))
DEFAULT_MODE = _env_choice("DEFAULT_MODE", DEFAULT_MODE, ("traditional", "manual", "omr"))
DEFAULT_MAX_POINTS = _env_float("DEFAULT_MAX_POINTS", DEFAULT_MAX_POINTS)
AUDIT_EXPORT_ENABLED = _env_bool("AUDIT_EXPORT_ENABLED", AUDIT_EXPORT_ENABLED)
DEBUG_TRACE = _env_bool("DEBUG_TRACE", False)
