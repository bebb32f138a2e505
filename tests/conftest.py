from __future__ import annotations

import pytest

from grading_core.types import BlankAnswer, BlankSpec, ExtractedAnswer, QuestionKey


CAPITALS = {"A": "Paris", "B": "Lyon", "C": "Marseille", "D": "Nice"}


def build_key(number: int, correct=("A",), **kwargs) -> QuestionKey:
    """Multiple-choice key; labels resolve through CAPITALS unless options are given."""

    kwargs.setdefault("options", dict(CAPITALS))
    return QuestionKey(number=number, correct_options=tuple(correct), **kwargs)


def build_answer(number: int, *selected: str, **kwargs) -> ExtractedAnswer:
    return ExtractedAnswer(question_number=number, selected_options=tuple(selected), **kwargs)


def build_blank_key(number: int, *specs: tuple) -> QuestionKey:
    """specs: (position, expected answers, points, match type)."""

    return QuestionKey(
        number=number,
        format="fill_blanks",
        blank_specs=tuple(
            BlankSpec(position=pos, expected_answers=tuple(exp), points=pts, match_type=mt)
            for pos, exp, pts, mt in specs
        ),
    )


def build_blank_answer(number: int, *texts: tuple) -> ExtractedAnswer:
    """texts: (position, text) pairs."""

    return ExtractedAnswer(
        question_number=number,
        blank_answers=tuple(BlankAnswer(position=pos, text=txt) for pos, txt in texts),
    )


def build_sample_paper() -> list[QuestionKey]:
    """Deterministic four-question paper: single, multi, content-keyed and label-free keys."""

    return [
        build_key(1, ("A",)),
        build_key(2, ("A", "C")),
        build_key(3, ("Marseille",)),
        QuestionKey(number=4, correct_options=("True",)),
    ]


@pytest.fixture
def sample_paper() -> list[QuestionKey]:
    return build_sample_paper()
