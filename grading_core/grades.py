# grading_core/grades.py
from .config import FAIL_GRADE, GRADE_BANDS


def letter_grade(percentage: float) -> str:
    p = float(percentage)
    for floor, grade in GRADE_BANDS:
        if p >= floor: return grade
    return FAIL_GRADE


def percentage(total: float, max_possible: float) -> float:
    if max_possible <= 0: return 0.0
    return 100.0 * float(total) / float(max_possible)
