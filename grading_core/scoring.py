from __future__ import annotations
from dataclasses import replace
from functools import partial
from typing import Callable, Dict, Optional, Tuple
import math

from .types import ExtractedAnswer, QuestionKey, QuestionResult
from .options import NormalizedSelection, normalize, normalize_correct, resolve_weights, weight_for
from .config import LEGACY_CORRECT_RATIO, LEGACY_WRONG_PENALTY, SCORE_DECIMALS

Strategy = Callable[[QuestionKey, Optional[ExtractedAnswer]], QuestionResult]

NO_CORRECT_ANSWER = "no correct answer defined"
UNANSWERED = "unanswered"


class MarkDetectionError(ValueError):
    """Raised when an OMR detection cannot be read as option selections."""


def round_score(x: float) -> float:
    # half-up, same as the historical Math.round(x * 100) / 100
    scale = 10 ** SCORE_DECIMALS
    return math.floor(float(x) * scale + 0.5) / scale


def _fmt(values) -> str:
    return ", ".join(values) if values else "-"


def _selections(key: QuestionKey, answer: Optional[ExtractedAnswer]) -> Tuple[NormalizedSelection, NormalizedSelection]:
    raw = answer.selected_options if answer is not None else ()
    return normalize(raw, key.options), normalize_correct(key.correct_options, key.options)


def _result(
    key: QuestionKey,
    answer: Optional[ExtractedAnswer],
    student: NormalizedSelection,
    correct: NormalizedSelection,
    *,
    score: float,
    is_correct: bool,
    rationale: str,
    rule: str,
    breakdown: Tuple[Tuple[str, float], ...] = (),
) -> QuestionResult:
    return QuestionResult(
        question_number=key.number,
        student_selections=student.display,
        correct_selections=correct.display,
        is_correct=is_correct,
        score=score,
        max_points=float(key.max_points),
        rationale=rationale,
        rule=rule,
        answered=bool(student),
        confidence=answer.confidence if answer is not None else None,
        weightage_breakdown=breakdown,
    )


def _precheck(key, answer, student, correct, rule: str) -> Optional[QuestionResult]:
    if not correct:
        return _result(key, answer, student, correct, score=0.0, is_correct=False,
                       rationale=NO_CORRECT_ANSWER, rule=rule)
    if not student:
        return _result(key, answer, NormalizedSelection((), frozenset()), correct,
                       score=0.0, is_correct=False, rationale=UNANSWERED, rule=rule)
    return None


def _wrong_result(key, answer, student, correct, rule: str) -> QuestionResult:
    wrong = student.display_for(student.comparison - correct.comparison)
    return _result(key, answer, student, correct, score=0.0, is_correct=False,
                   rationale=f"wrong option(s) selected: {_fmt(wrong)}", rule=rule)


def _score_single(key, answer, student, correct, rule: str) -> QuestionResult:
    if student.comparison == correct.comparison:
        return _result(key, answer, student, correct, score=float(key.max_points), is_correct=True,
                       rationale=f"correct: selected {_fmt(student.display)}", rule=rule)
    return _result(key, answer, student, correct, score=0.0, is_correct=False,
                   rationale=f"expected {_fmt(correct.display)}, selected {_fmt(student.display)}", rule=rule)


def score_traditional_strict(key: QuestionKey, answer: Optional[ExtractedAnswer]) -> QuestionResult:
    """
    Current rule without weightages.
    Single answer: exact match. Several answers: any wrong pick zeroes the
    question, otherwise credit in proportion to the correct options found.
    """
    rule = "traditional_strict"
    student, correct = _selections(key, answer)
    early = _precheck(key, answer, student, correct, rule)
    if early is not None:
        return early
    if len(correct.comparison) == 1:
        return _score_single(key, answer, student, correct, rule)
    if student.comparison - correct.comparison:
        return _wrong_result(key, answer, student, correct, rule)
    hits = len(student.comparison & correct.comparison)
    total = len(correct.comparison)
    score = round_score(hits / total * float(key.max_points))
    complete = hits == total
    why = f"all {total} correct options selected" if complete else f"partial: {hits}/{total} correct options selected"
    return _result(key, answer, student, correct, score=score, is_correct=complete, rationale=why, rule=rule)


def score_traditional_proportional(key: QuestionKey, answer: Optional[ExtractedAnswer]) -> QuestionResult:
    """Oldest multi-select rule: each wrong pick costs half a correct one."""
    rule = "traditional_proportional"
    student, correct = _selections(key, answer)
    early = _precheck(key, answer, student, correct, rule)
    if early is not None:
        return early
    if len(correct.comparison) == 1:
        return _score_single(key, answer, student, correct, rule)
    hits = len(student.comparison & correct.comparison)
    misses = len(student.comparison - correct.comparison)
    total = len(correct.comparison)
    ratio = max(0.0, (hits - LEGACY_WRONG_PENALTY * misses) / total)
    score = round_score(ratio * float(key.max_points))
    is_correct = score >= LEGACY_CORRECT_RATIO * float(key.max_points)
    why = f"proportional: {hits}/{total} correct, {misses} wrong (-{LEGACY_WRONG_PENALTY:g} each)"
    return _result(key, answer, student, correct, score=score, is_correct=is_correct, rationale=why, rule=rule)


TRADITIONAL_RULES: Dict[str, Strategy] = {
    "strict": score_traditional_strict,
    "proportional": score_traditional_proportional,
}


def score_weighted(
    key: QuestionKey,
    answer: Optional[ExtractedAnswer],
    fallback: Strategy = score_traditional_strict,
) -> QuestionResult:
    """
    Sum per-option weightages of the selected options.

    Any selection outside the answer key zeroes the question. Questions without
    a weightage map are scored by `fallback` instead of summing zeros.
    """
    resolved = resolve_weights(key.weightages, key.options)
    if not resolved:
        return fallback(key, answer)
    rule = "weighted"
    student, correct = _selections(key, answer)
    early = _precheck(key, answer, student, correct, rule)
    if early is not None:
        return early
    if student.comparison - correct.comparison:
        return _wrong_result(key, answer, student, correct, rule)
    breakdown = tuple((opt, weight_for(opt, resolved)) for opt in student.display)
    score = round_score(sum(w for _, w in breakdown))
    is_correct = student.comparison == correct.comparison and score == float(key.max_points)
    parts = " + ".join(f"{opt}={w:g}" for opt, w in breakdown)
    return _result(key, answer, student, correct, score=score, is_correct=is_correct,
                   rationale=f"weighted: {parts} = {score:g}", rule=rule, breakdown=breakdown)


def _omr_note(answer: Optional[ExtractedAnswer]) -> str:
    if answer is None:
        return ""
    bits = [f"confidence={answer.confidence}"]
    if answer.mark_type:
        bits.append(f"mark={answer.mark_type}")
    return "omr " + " ".join(bits)


def score_omr(key: QuestionKey, answer: Optional[ExtractedAnswer], base: Strategy = score_traditional_strict) -> QuestionResult:
    """Mark-detected selections scored with `base`; detection details go to the rationale only."""
    if answer is not None:
        for sel in answer.selected_options:
            if not isinstance(sel, str):
                raise MarkDetectionError(
                    f"question {key.number}: unreadable mark detection {sel!r}"
                )
    res = base(key, answer)
    note = _omr_note(answer)
    rationale = f"{res.rationale}; {note}" if note else res.rationale
    return replace(res, rule=f"omr/{res.rule}", rationale=rationale)


def traditional_strategy(multi_rule: str = "strict") -> Strategy:
    return TRADITIONAL_RULES.get(multi_rule, score_traditional_strict)


def weighted_strategy(multi_rule: str = "strict") -> Strategy:
    return partial(score_weighted, fallback=traditional_strategy(multi_rule))


def omr_strategy(base: Strategy) -> Strategy:
    return partial(score_omr, base=base)


def expected_selections(key: QuestionKey) -> Tuple[str, ...]:
    return normalize_correct(key.correct_options, key.options).display


__all__ = [
    "MarkDetectionError",
    "NO_CORRECT_ANSWER",
    "Strategy",
    "TRADITIONAL_RULES",
    "UNANSWERED",
    "expected_selections",
    "omr_strategy",
    "round_score",
    "score_omr",
    "score_traditional_proportional",
    "score_traditional_strict",
    "score_weighted",
    "traditional_strategy",
    "weighted_strategy",
]
