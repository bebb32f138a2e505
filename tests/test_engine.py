from __future__ import annotations

import logging

from grading_core import engine as eng
from grading_core.engine import evaluate, select_strategy
from grading_core.types import QuestionKey

from tests.conftest import (
    build_answer,
    build_blank_answer,
    build_blank_key,
    build_key,
)


def test_single_label_key_scenario():
    key = QuestionKey(number=1, correct_options=("A",), options={"A": "Paris", "B": "Lyon"})
    res = evaluate([key], [build_answer(1, "A")])
    q = res.per_question[0]
    assert q.score == 1.0 and q.is_correct
    assert res.total_score == 1.0 and res.percentage == 100.0 and res.grade == "A+"


def test_wrong_option_scenario():
    key = QuestionKey(number=1, correct_options=("A",), options={"A": "Paris", "B": "Lyon"})
    q = evaluate([key], [build_answer(1, "A", "B")]).per_question[0]
    assert q.score == 0.0 and not q.is_correct


def test_fill_blank_scenario():
    key = build_blank_key(1, (1, ["Paris"], 2, "fuzzy"))
    res = evaluate([key], [build_blank_answer(1, (1, "paris"))], format="fill_blanks")
    assert res.total_score == 2.0 and res.max_possible_score == 2.0


def test_unanswered_questions_are_backfilled_once(sample_paper):
    res = evaluate(sample_paper, [build_answer(1, "A"), build_answer(3, "c")])
    numbers = [q.question_number for q in res.per_question]
    assert numbers == [1, 2, 3, 4]
    q2 = res.per_question[1]
    assert q2.score == 0.0 and q2.student_selections == () and not q2.answered
    assert res.answered_count == 2 and res.correct_count == 2
    assert res.total_score == 2.0 and res.max_possible_score == 4.0
    assert res.percentage == 50.0 and res.grade == "C"


def test_answers_without_key_are_skipped_with_warning(sample_paper, caplog):
    with caplog.at_level(logging.WARNING, logger="grading_core.engine"):
        res = evaluate(sample_paper, [build_answer(99, "A"), build_answer(1, "A")])
    assert len(res.per_question) == 4
    assert any("question 99" in w for w in res.warnings)
    assert "question 99" in caplog.text


def test_duplicate_answers_keep_first(sample_paper):
    res = evaluate(sample_paper, [build_answer(1, "A"), build_answer(1, "B")])
    assert res.per_question[0].score == 1.0
    assert any("duplicate extracted answer" in w for w in res.warnings)


def test_injected_logger_receives_warnings():
    logger = logging.getLogger("tests.injected")
    seen: list[str] = []

    class _Capture(logging.Handler):
        def emit(self, record):
            seen.append(record.getMessage())

    handler = _Capture()
    logger.addHandler(handler)
    try:
        evaluate([build_key(1, ())], [], logger=logger)
    finally:
        logger.removeHandler(handler)
    assert seen == ["question 1: no correct answer defined"]


def test_evaluate_is_idempotent(sample_paper):
    answers = [build_answer(1, "A"), build_answer(2, "A"), build_answer(4, "true")]
    first = evaluate(sample_paper, answers, mode="omr")
    second = evaluate(sample_paper, answers, mode="omr")
    assert first == second


def test_strategy_selection():
    plain = [build_key(1), build_key(2, ("A", "B"))]
    weighted = plain + [build_key(3, ("A",), weightages={"A": 1})]
    assert select_strategy(plain).name == "traditional_strict"
    assert select_strategy(plain, multi_rule="proportional").name == "traditional_proportional"
    assert select_strategy(plain, mode="manual").name == "weighted"
    assert select_strategy(weighted).name == "weighted"
    assert select_strategy(weighted, mode="omr").name == "omr/weighted"
    assert select_strategy(plain, mode="omr").name == "omr/traditional_strict"
    assert select_strategy(weighted, format="fill_blanks", mode="omr").name == "fill_blanks"


def test_multi_rule_changes_multi_select_scoring():
    keys = [build_key(1, ("A", "B", "C"))]
    answers = [build_answer(1, "A", "B", "C", "D")]
    assert evaluate(keys, answers).total_score == 0.0
    legacy = evaluate(keys, answers, multi_rule="proportional")
    assert legacy.total_score == 0.83 and legacy.correct_count == 1


def test_paper_weightages_route_every_question_through_weighted_rule():
    keys = [
        build_key(1, ("A", "C"), weightages={"A": 0.6, "C": 0.4}),
        build_key(2, ("A", "C")),
    ]
    res = evaluate(keys, [build_answer(1, "A"), build_answer(2, "A")])
    assert res.strategy == "weighted"
    assert [q.rule for q in res.per_question] == ["weighted", "traditional_strict"]
    assert res.total_score == 1.1


def test_omr_failure_falls_back(sample_paper):
    answers = [build_answer(1, "A", None)]  # type: ignore[arg-type]
    res = evaluate(sample_paper, answers, mode="omr")
    q1 = res.per_question[0]
    assert q1.rule == "traditional_strict" and q1.score == 1.0
    assert any("omr scoring failed" in w for w in res.warnings)


def test_fill_blanks_format_overrides_mode():
    key = build_blank_key(1, (1, ["Paris"], 1, "exact"))
    res = evaluate([key], [build_blank_answer(1, (1, "Paris"))], format="fill_blanks", mode="omr")
    assert res.per_question[0].rule == "fill_blanks" and res.total_score == 1.0


def test_mixed_paper_uses_each_key_format():
    keys = [build_key(1), build_blank_key(2, (1, ["Paris"], 2, "fuzzy"))]
    answers = [build_answer(1, "A"), build_blank_answer(2, (1, "Pariss"))]
    res = evaluate(keys, answers)
    assert [q.rule for q in res.per_question] == ["traditional_strict", "fill_blanks"]
    assert res.total_score == 3.0 and res.max_possible_score == 3.0


def test_empty_paper_is_degenerate_not_an_error():
    res = evaluate([], [build_answer(1, "A")])
    assert res.per_question == () and res.percentage == 0.0 and res.grade == "F"


def test_unknown_flags_fall_back_with_warnings(sample_paper):
    res = evaluate(sample_paper, [], format="essay", mode="vision", multi_rule="lenient")
    assert res.strategy == "traditional_strict"
    assert len(res.warnings) == 3


def test_trace_lines_when_debug_trace_enabled(monkeypatch, caplog, sample_paper):
    monkeypatch.setattr(eng, "DEBUG_TRACE", True)
    with caplog.at_level(logging.INFO, logger="grading_core.engine"):
        evaluate(sample_paper, [build_answer(1, "A")])
    traces = [r.getMessage() for r in caplog.records if r.getMessage().startswith("trace ")]
    assert len(traces) == 4
    assert "question=1" in traces[0] and "rule=traditional_strict" in traces[0]


def test_blank_only_correct_options_warn_as_missing(caplog):
    with caplog.at_level(logging.WARNING, logger="grading_core.engine"):
        res = evaluate([build_key(1, ("  ", ""))], [build_answer(1, "A")])
    assert res.per_question[0].score == 0.0
    assert res.warnings == ("question 1: no correct answer defined",)
    assert "no correct answer defined" in caplog.text
