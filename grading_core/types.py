from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Literal, Optional, Tuple

QuestionFormat = Literal["multiple_choice", "fill_blanks"]
MatchType = Literal["exact", "contains", "fuzzy"]
Confidence = Literal["high", "medium", "low"]
EvaluationMode = Literal["traditional", "manual", "omr"]
MultiSelectRule = Literal["strict", "proportional"]

QUESTION_FORMATS: Tuple[str, ...] = ("multiple_choice", "fill_blanks")
MATCH_TYPES: Tuple[str, ...] = ("exact", "contains", "fuzzy")
CONFIDENCE_LEVELS: Tuple[str, ...] = ("high", "medium", "low")
EVALUATION_MODES: Tuple[str, ...] = ("traditional", "manual", "omr")
MULTI_SELECT_RULES: Tuple[str, ...] = ("strict", "proportional")


@dataclass(frozen=True)
class BlankSpec:
    position: int
    expected_answers: Tuple[str, ...] = ()
    match_type: MatchType = "fuzzy"
    points: float = 1.0


@dataclass(frozen=True)
class QuestionKey:
    number: int
    format: QuestionFormat = "multiple_choice"
    correct_options: Tuple[str, ...] = ()
    options: Dict[str, str] = field(default_factory=dict)
    weightages: Dict[str, float] = field(default_factory=dict)
    max_points: float = 1.0
    blank_specs: Tuple[BlankSpec, ...] = ()

    @property
    def blank_points(self) -> float:
        if not self.blank_specs:
            return 1.0
        return float(sum(b.points for b in self.blank_specs))

    @property
    def total_points(self) -> float:
        if self.format == "fill_blanks":
            return self.blank_points
        return float(self.max_points)


@dataclass(frozen=True)
class BlankAnswer:
    position: int
    text: str = ""
    confidence: Confidence = "medium"


@dataclass(frozen=True)
class ExtractedAnswer:
    question_number: int
    selected_options: Tuple[str, ...] = ()
    confidence: Confidence = "medium"
    blank_answers: Tuple[BlankAnswer, ...] = ()
    mark_type: Optional[str] = None


@dataclass(frozen=True)
class BlankResult:
    position: int
    student_answer: str
    expected_answers: Tuple[str, ...]
    match_type: str
    score: float
    max_points: float
    is_correct: bool
    confidence: Optional[str] = None
    rationale: str = ""


@dataclass(frozen=True)
class QuestionResult:
    question_number: int
    student_selections: Tuple[str, ...]
    correct_selections: Tuple[str, ...]
    is_correct: bool
    score: float
    max_points: float
    rationale: str
    rule: str = ""
    answered: bool = True
    confidence: Optional[str] = None
    weightage_breakdown: Tuple[Tuple[str, float], ...] = ()
    blank_results: Tuple[BlankResult, ...] = ()


@dataclass(frozen=True)
class EvaluationResult:
    per_question: Tuple[QuestionResult, ...]
    total_score: float
    max_possible_score: float
    percentage: float
    grade: str
    answered_count: int = 0
    correct_count: int = 0
    strategy: str = ""
    warnings: Tuple[str, ...] = ()
