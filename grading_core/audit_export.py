"""Helpers to export evaluation results as JSON/CSV records for persistence."""
from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List
import csv
import io

from .types import EvaluationResult, QuestionResult

_FIELDS: tuple[str, ...] = (
    "question_number",
    "student_selections",
    "correct_selections",
    "is_correct",
    "score",
    "max_points",
    "rule",
    "answered",
    "confidence",
    "weightage_breakdown",
    "rationale",
)

_SUMMARY_FIELDS: tuple[str, ...] = (
    "total_score",
    "max_possible_score",
    "percentage",
    "grade",
    "answered_count",
    "correct_count",
    "strategy",
)


def _normalize_row(res: QuestionResult) -> Dict[str, Any]:
    return {
        "question_number": int(res.question_number),
        "student_selections": list(res.student_selections),
        "correct_selections": list(res.correct_selections),
        "is_correct": bool(res.is_correct),
        "score": float(res.score),
        "max_points": float(res.max_points),
        "rule": res.rule,
        "answered": bool(res.answered),
        "confidence": res.confidence or "",
        "weightage_breakdown": {opt: float(w) for opt, w in res.weightage_breakdown},
        "rationale": res.rationale,
    }


def summary(result: EvaluationResult) -> Dict[str, Any]:
    """The aggregate record of one submission."""

    out = {name: getattr(result, name) for name in _SUMMARY_FIELDS}
    out["total_questions"] = len(result.per_question)
    out["warnings"] = list(result.warnings)
    return out


def to_json(result: EvaluationResult) -> Dict[str, Any]:
    """Return a JSON-safe payload: one aggregate record plus one row per question."""

    rows: List[Dict[str, Any]] = []
    for res in result.per_question:
        row = _normalize_row(res)
        if res.blank_results:
            row["blank_results"] = [
                dict(asdict(b), expected_answers=list(b.expected_answers)) for b in res.blank_results
            ]
        rows.append(row)
    return {"summary": summary(result), "questions": rows}


def to_csv(result: EvaluationResult) -> str:
    """Render per-question rows as CSV with a fixed header."""

    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=_FIELDS)
    writer.writeheader()
    for res in result.per_question:
        row = _normalize_row(res)
        row["student_selections"] = "|".join(row["student_selections"])
        row["correct_selections"] = "|".join(row["correct_selections"])
        row["weightage_breakdown"] = "|".join(f"{k}={v:g}" for k, v in row["weightage_breakdown"].items())
        writer.writerow(row)
    return buf.getvalue()


__all__ = ["summary", "to_json", "to_csv"]
