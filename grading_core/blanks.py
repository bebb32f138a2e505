# grading_core/blanks.py
from __future__ import annotations
from typing import Optional, Sequence, Tuple
import math

from .types import BlankAnswer, BlankResult, BlankSpec, ExtractedAnswer, QuestionKey, QuestionResult
from .similarity import similarity
from .scoring import round_score
from .config import (
    FUZZY_FULL_THRESHOLD,
    FUZZY_PARTIAL_THRESHOLD,
    FUZZY_PARTIAL_RATIO,
    UNKNOWN_ANSWER_RATIO,
    ILLEGIBLE_SENTINEL,
    UNKNOWN_SENTINEL,
)

RULE = "fill_blanks"


def score_blank_text(
    text: str,
    expected_answers: Sequence[str],
    match_type: str = "fuzzy",
    points: float = 1.0,
) -> Tuple[float, str]:
    """
    Score one blank. Returns (score, rationale).

    Any "unknown" expected answer gives half credit (floored) for any legible
    attempt. Fuzzy matches at or above FUZZY_FULL_THRESHOLD earn full points,
    the first match in [FUZZY_PARTIAL_THRESHOLD, FUZZY_FULL_THRESHOLD) earns
    FUZZY_PARTIAL_RATIO of the points (floored).
    """
    student = (text or "").strip()
    if not student:
        return 0.0, "no answer"
    if student == ILLEGIBLE_SENTINEL:
        return 0.0, "illegible"

    expected = [e for e in expected_answers if isinstance(e, str)]
    if any(e.strip().lower() == UNKNOWN_SENTINEL for e in expected):
        return float(math.floor(points * UNKNOWN_ANSWER_RATIO)), "answer key unknown: attempt credit"

    folded = student.lower()
    for exp in expected:
        target = exp.strip().lower()
        if match_type == "exact":
            if folded == target:
                return float(points), f"exact match '{exp}'"
        elif match_type == "contains":
            if target in folded or folded in target:
                return float(points), f"contains match '{exp}'"
        else:
            sim = similarity(folded, target)
            if sim >= FUZZY_FULL_THRESHOLD:
                return float(points), f"fuzzy match '{exp}' ({sim:.2f})"
            if sim >= FUZZY_PARTIAL_THRESHOLD:
                return float(math.floor(points * FUZZY_PARTIAL_RATIO)), f"close match '{exp}' ({sim:.2f})"
    return 0.0, "no match"


def _find_blank(answer: Optional[ExtractedAnswer], position: int) -> Optional[BlankAnswer]:
    if answer is None:
        return None
    for blank in answer.blank_answers:
        if blank.position == position:
            return blank
    return None


def _score_spec(spec: BlankSpec, blank: Optional[BlankAnswer]) -> BlankResult:
    text = blank.text.strip() if blank is not None and isinstance(blank.text, str) else ""
    points = float(spec.points)
    score, why = score_blank_text(text, spec.expected_answers, spec.match_type or "fuzzy", points)
    return BlankResult(
        position=spec.position,
        student_answer=text,
        expected_answers=tuple(spec.expected_answers),
        match_type=spec.match_type or "fuzzy",
        score=score,
        max_points=points,
        is_correct=score > 0 and score == points,
        confidence=blank.confidence if blank is not None else None,
        rationale=why,
    )


def expected_blanks(key: QuestionKey) -> Tuple[str, ...]:
    return tuple(" / ".join(spec.expected_answers) for spec in key.blank_specs)


def score_fill_blanks(key: QuestionKey, answer: Optional[ExtractedAnswer]) -> QuestionResult:
    """Score every blank of a fill-in-the-blank question and sum the blanks."""
    max_points = key.blank_points
    if not key.blank_specs:
        return QuestionResult(
            question_number=key.number,
            student_selections=(),
            correct_selections=(),
            is_correct=False,
            score=0.0,
            max_points=max_points,
            rationale="no blanks defined",
            rule=RULE,
            answered=bool(answer and answer.blank_answers),
            confidence=answer.confidence if answer is not None else None,
        )

    results = tuple(_score_spec(spec, _find_blank(answer, spec.position)) for spec in key.blank_specs)
    score = round_score(sum(r.score for r in results))
    answered = any(r.student_answer for r in results)
    summary = "; ".join(f"blank {r.position}: {r.rationale} ({r.score:g}/{r.max_points:g})" for r in results)
    return QuestionResult(
        question_number=key.number,
        student_selections=tuple(r.student_answer for r in results) if answered else (),
        correct_selections=expected_blanks(key),
        is_correct=all(r.is_correct for r in results),
        score=score,
        max_points=max_points,
        rationale=summary if answered else "unanswered",
        rule=RULE,
        answered=answered,
        confidence=answer.confidence if answer is not None else None,
        blank_results=results,
    )


__all__ = ["RULE", "expected_blanks", "score_blank_text", "score_fill_blanks"]
