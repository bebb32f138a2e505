# grading_core/engine.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence
import logging, math

from .types import (
    EvaluationResult,
    ExtractedAnswer,
    QuestionKey,
    QuestionResult,
    EVALUATION_MODES,
    MULTI_SELECT_RULES,
    QUESTION_FORMATS,
)
from .scoring import (
    Strategy,
    expected_selections,
    omr_strategy,
    round_score,
    traditional_strategy,
    weighted_strategy,
)
from .blanks import RULE as FILL_BLANKS_RULE, score_fill_blanks
from .grades import letter_grade, percentage
from .config import DEBUG_TRACE, DEFAULT_MODE, DEFAULT_MULTI_RULE, TRACE_FIELDS


log = logging.getLogger(__name__)


def _emit_trace(logger: logging.Logger, **values: object) -> None:
    if not DEBUG_TRACE:
        return
    ordered = []
    for key in TRACE_FIELDS:
        if key in values:
            ordered.append(f"{key}={values[key]}")
    if ordered:
        logger.info("trace %s", " ".join(str(val) for val in ordered))


@dataclass(frozen=True)
class DispatchPlan:
    """Strategy chosen once per evaluation call."""

    name: str
    strategy: Strategy
    format: Optional[str] = None
    fallback: Optional[Strategy] = None
    fallback_name: str = ""

    def routes_to_blanks(self, key: QuestionKey) -> bool:
        if self.format == "fill_blanks":
            return True
        return self.format is None and key.format == "fill_blanks"


def select_strategy(
    question_keys: Sequence[QuestionKey],
    format: Optional[str] = None,
    mode: Optional[str] = None,
    multi_rule: Optional[str] = None,
) -> DispatchPlan:
    """
    Pick the scoring strategy for a whole paper.

    fill_blanks papers always use the blank scorer. OMR mode scores marks with
    the weighted or traditional rule and keeps that rule as its fallback.
    Manual mode, or any weightage on the paper, selects the weighted rule.
    """
    mode = mode if mode in EVALUATION_MODES else DEFAULT_MODE
    rule = multi_rule if multi_rule in MULTI_SELECT_RULES else DEFAULT_MULTI_RULE
    if format == "fill_blanks":
        return DispatchPlan(FILL_BLANKS_RULE, score_fill_blanks, format)

    if mode == "manual" or any(k.weightages for k in question_keys):
        base_name, base = "weighted", weighted_strategy(rule)
    else:
        base_name, base = f"traditional_{rule}", traditional_strategy(rule)

    if mode == "omr":
        return DispatchPlan(f"omr/{base_name}", omr_strategy(base), format, base, base_name)
    return DispatchPlan(base_name, base, format)


class _Recorder:
    """Collects warnings for the result and forwards them to the logger."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.messages: List[str] = []

    def warn(self, msg: str) -> None:
        self.messages.append(msg)
        self.logger.warning(msg)


def _index_keys(question_keys: Iterable[QuestionKey], rec: _Recorder) -> Dict[int, QuestionKey]:
    keys: Dict[int, QuestionKey] = {}
    for key in question_keys:
        if key.number in keys:
            rec.warn(f"question {key.number}: duplicate answer key ignored")
            continue
        keys[key.number] = key
    return keys


def _index_answers(
    extracted_answers: Iterable[ExtractedAnswer],
    keys: Dict[int, QuestionKey],
    rec: _Recorder,
) -> Dict[int, ExtractedAnswer]:
    answers: Dict[int, ExtractedAnswer] = {}
    for ans in extracted_answers:
        if ans.question_number not in keys:
            rec.warn(f"question {ans.question_number}: no answer key, extracted answer skipped")
            continue
        if ans.question_number in answers:
            rec.warn(f"question {ans.question_number}: duplicate extracted answer skipped")
            continue
        answers[ans.question_number] = ans
    return answers


def _score_question(
    plan: DispatchPlan,
    key: QuestionKey,
    answer: Optional[ExtractedAnswer],
    rec: _Recorder,
) -> QuestionResult:
    if plan.routes_to_blanks(key):
        return score_fill_blanks(key, answer)
    if plan.fallback is None:
        return plan.strategy(key, answer)
    try:
        return plan.strategy(key, answer)
    except Exception as exc:
        rec.warn(
            f"question {key.number}: omr scoring failed ({exc}); "
            f"falling back to {plan.fallback_name}"
        )
        return plan.fallback(key, answer)


def aggregate(
    results: Sequence[QuestionResult],
    *,
    strategy: str = "",
    warnings: Sequence[str] = (),
) -> EvaluationResult:
    total = round_score(math.fsum(r.score for r in results))
    max_possible = round_score(math.fsum(r.max_points for r in results))
    pct = percentage(total, max_possible)
    return EvaluationResult(
        per_question=tuple(results),
        total_score=total,
        max_possible_score=max_possible,
        percentage=pct,
        grade=letter_grade(pct),
        answered_count=sum(1 for r in results if r.answered),
        correct_count=sum(1 for r in results if r.is_correct),
        strategy=strategy,
        warnings=tuple(warnings),
    )


def evaluate(
    question_keys: Sequence[QuestionKey],
    extracted_answers: Sequence[ExtractedAnswer],
    format: Optional[str] = None,
    mode: Optional[str] = None,
    multi_rule: Optional[str] = None,
    logger: Optional[logging.Logger] = None,
) -> EvaluationResult:
    """
    Score one submission against its answer key.

    Returns one QuestionResult per key, ordered by question number; keys with
    no extracted answer are backfilled with a zero score. Never raises for bad
    scoring input: problems are logged and listed in `warnings`.
    """
    rec = _Recorder(logger or log)
    if format is not None and format not in QUESTION_FORMATS:
        rec.warn(f"unknown question format {format!r}; using each key's own format")
        format = None
    if mode is not None and mode not in EVALUATION_MODES:
        rec.warn(f"unknown evaluation mode {mode!r}; using {DEFAULT_MODE}")
    if multi_rule is not None and multi_rule not in MULTI_SELECT_RULES:
        rec.warn(f"unknown multi-select rule {multi_rule!r}; using {DEFAULT_MULTI_RULE}")

    keys = _index_keys(question_keys, rec)
    answers = _index_answers(extracted_answers, keys, rec)
    plan = select_strategy(list(keys.values()), format, mode, multi_rule)

    results: List[QuestionResult] = []
    for number in sorted(keys):
        key = keys[number]
        if not plan.routes_to_blanks(key) and not expected_selections(key):
            rec.warn(f"question {number}: no correct answer defined")
        res = _score_question(plan, key, answers.get(number), rec)
        _emit_trace(
            rec.logger,
            question=number,
            rule=res.rule,
            student="|".join(res.student_selections),
            correct="|".join(res.correct_selections),
            score=res.score,
            max_points=res.max_points,
        )
        results.append(res)

    return aggregate(results, strategy=plan.name, warnings=rec.messages)


__all__ = ["DispatchPlan", "aggregate", "evaluate", "select_strategy"]
