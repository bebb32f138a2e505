"""Boundary adapter from producer payloads to the engine's canonical types.

Answer keys come from the paper editor, the database and the extraction prompts,
each with its own field names. They are all accepted here and nowhere else.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .config import DEFAULT_MAX_POINTS
from .types import (
    BlankAnswer,
    BlankSpec,
    ExtractedAnswer,
    QuestionKey,
    CONFIDENCE_LEVELS,
    MATCH_TYPES,
)

log = logging.getLogger(__name__)


class KeyFormatError(ValueError):
    """An answer key payload that cannot be mapped to a QuestionKey."""

    def __init__(self, index: int, error: ValidationError):
        self.index = index
        self.error = error
        super().__init__(f"answer key #{index}: {error.error_count()} invalid field(s): {error}")


def _as_list(v: Any) -> List[Any]:
    if v is None:
        return []
    if isinstance(v, (list, tuple, set, frozenset)):
        return list(v)
    return [v]


def _text_list(v: Any) -> List[str]:
    return [str(x) for x in _as_list(v) if x is not None and str(x).strip()]


def _confidence(v: Any) -> str:
    val = str(v).strip().lower() if v is not None else ""
    return val if val in CONFIDENCE_LEVELS else "medium"


class _Model(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class BlankSpecIn(_Model):
    position: int
    expected_answers: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("expectedAnswers", "expected_answers", "answers"),
    )
    match_type: str = Field("fuzzy", validation_alias=AliasChoices("matchType", "match_type"))
    points: float = 1.0

    @field_validator("expected_answers", mode="before")
    @classmethod
    def _expected(cls, v):
        return _text_list(v)

    @field_validator("match_type", mode="before")
    @classmethod
    def _match(cls, v):
        val = str(v or "").strip().lower()
        return val if val in MATCH_TYPES else "fuzzy"

    @field_validator("points", mode="before")
    @classmethod
    def _points(cls, v):
        return 1.0 if v is None or v == "" else v

    def to_core(self) -> BlankSpec:
        return BlankSpec(
            position=self.position,
            expected_answers=tuple(self.expected_answers),
            match_type=self.match_type,  # type: ignore[arg-type]
            points=float(self.points),
        )


class QuestionKeyIn(_Model):
    number: int = Field(validation_alias=AliasChoices("number", "questionNumber", "question_number"))
    format: str = Field(
        "multiple_choice",
        validation_alias=AliasChoices("format", "questionFormat", "question_format"),
    )
    correct_options: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("correctOptions", "correct_options", "correct_option", "correctOption"),
    )
    options: Any = None
    weightages: Dict[str, Any] = Field(default_factory=dict)
    max_points: Optional[float] = Field(
        None,
        validation_alias=AliasChoices("maxPoints", "max_points", "pointsPerBlank", "points_per_blank", "totalMarks"),
    )
    blank_specs: List[BlankSpecIn] = Field(
        default_factory=list,
        validation_alias=AliasChoices("blankSpecs", "blank_specs", "blankPositions", "blank_positions"),
    )

    @field_validator("format", mode="before")
    @classmethod
    def _format(cls, v):
        val = str(v or "").strip().lower()
        return "fill_blanks" if val == "fill_blanks" else "multiple_choice"

    @field_validator("correct_options", mode="before")
    @classmethod
    def _correct(cls, v):
        return _text_list(v)

    @field_validator("weightages", "blank_specs", mode="before")
    @classmethod
    def _none_to_empty(cls, v, info):
        if v is None:
            return {} if info.field_name == "weightages" else []
        return v

    @field_validator("max_points", mode="before")
    @classmethod
    def _max_points(cls, v):
        return None if v == "" else v

    def _editor_options(self) -> tuple[Dict[str, str], List[str], Dict[str, Any]]:
        """Options as the key editor sends them: [{id, text, isCorrect, weight}]."""
        options: Dict[str, str] = {}
        correct: List[str] = []
        weights: Dict[str, Any] = {}
        for opt in self.options:
            if not isinstance(opt, dict) or not opt.get("id") or opt.get("text") is None:
                continue
            label = str(opt["id"])
            options[label] = str(opt["text"])
            if opt.get("isCorrect") or opt.get("is_correct"):
                correct.append(label)
                # editor rule: a missing or invalid weight counts as 1
                try:
                    weight = float(opt.get("weight"))
                except (TypeError, ValueError):
                    weight = 1.0
                if math.isnan(weight) or weight < 0:
                    weight = 1.0
                weights[label] = weight
        return options, correct, weights

    def to_core(self) -> QuestionKey:
        correct = list(self.correct_options)
        weights = dict(self.weightages)
        if isinstance(self.options, dict):
            options = {str(k): str(v) for k, v in self.options.items() if v is not None}
        elif isinstance(self.options, list):
            options, editor_correct, editor_weights = self._editor_options()
            correct = correct or editor_correct
            for label, w in editor_weights.items():
                weights.setdefault(label, w)
        else:
            options = {}
        max_points = DEFAULT_MAX_POINTS if self.max_points is None or self.max_points < 0 else float(self.max_points)
        return QuestionKey(
            number=self.number,
            format=self.format,  # type: ignore[arg-type]
            correct_options=tuple(correct),
            options=options,
            weightages=weights,
            max_points=max_points,
            blank_specs=tuple(b.to_core() for b in self.blank_specs),
        )


class BlankAnswerIn(_Model):
    position: int
    text: str = Field("", validation_alias=AliasChoices("text", "answer"))
    confidence: str = "medium"

    @field_validator("text", mode="before")
    @classmethod
    def _text(cls, v):
        return "" if v is None else str(v)

    @field_validator("confidence", mode="before")
    @classmethod
    def _conf(cls, v):
        return _confidence(v)

    def to_core(self) -> BlankAnswer:
        return BlankAnswer(position=self.position, text=self.text, confidence=self.confidence)  # type: ignore[arg-type]


class ExtractedAnswerIn(_Model):
    question_number: int = Field(
        validation_alias=AliasChoices("questionNumber", "question_number", "question", "number"),
    )
    selected_options: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices(
            "selectedOptions", "selected_options", "selectedOption", "selected_option", "answer",
        ),
    )
    confidence: str = "medium"
    blank_answers: List[BlankAnswerIn] = Field(
        default_factory=list,
        validation_alias=AliasChoices("blankAnswers", "blank_answers"),
    )
    mark_type: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("markType", "mark_type", "marking_type"),
    )

    @field_validator("selected_options", mode="before")
    @classmethod
    def _selected(cls, v):
        return _text_list(v)

    @field_validator("confidence", mode="before")
    @classmethod
    def _conf(cls, v):
        return _confidence(v)

    @field_validator("blank_answers", mode="before")
    @classmethod
    def _blanks(cls, v):
        return [] if v is None else v

    def to_core(self) -> ExtractedAnswer:
        return ExtractedAnswer(
            question_number=self.question_number,
            selected_options=tuple(self.selected_options),
            confidence=self.confidence,  # type: ignore[arg-type]
            blank_answers=tuple(b.to_core() for b in self.blank_answers),
            mark_type=self.mark_type,
        )


def parse_keys(raw: Iterable[Dict[str, Any]]) -> List[QuestionKey]:
    """Map answer key payloads; a malformed key raises KeyFormatError."""
    out: List[QuestionKey] = []
    for idx, item in enumerate(raw or []):
        try:
            out.append(QuestionKeyIn.model_validate(item).to_core())
        except ValidationError as exc:
            raise KeyFormatError(idx, exc) from exc
    return out


def parse_answers(raw: Iterable[Dict[str, Any]]) -> List[ExtractedAnswer]:
    """Map extracted answers; malformed entries are skipped with a warning."""
    out: List[ExtractedAnswer] = []
    for idx, item in enumerate(raw or []):
        try:
            out.append(ExtractedAnswerIn.model_validate(item).to_core())
        except ValidationError as exc:
            log.warning("extracted answer #%d skipped: %s", idx, exc.errors()[0].get("msg", exc))
    return out


__all__ = [
    "BlankAnswerIn",
    "BlankSpecIn",
    "ExtractedAnswerIn",
    "KeyFormatError",
    "QuestionKeyIn",
    "parse_answers",
    "parse_keys",
]
