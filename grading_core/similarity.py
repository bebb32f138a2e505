# grading_core/similarity.py
from __future__ import annotations


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance with unit cost for insert, delete and substitute."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        cur = [i] + [0] * len(b)
        for j, cb in enumerate(b, start=1):
            if ca == cb:
                cur[j] = prev[j - 1]
            else:
                cur[j] = 1 + min(prev[j - 1], prev[j], cur[j - 1])
        prev = cur
    return prev[len(b)]


def similarity(a: str, b: str) -> float:
    """
    Normalized similarity in [0,1]: (len(longer) - distance) / len(longer).
    Two empty strings are identical (1.0). Case folding is the caller's job.
    """
    longer, shorter = (a, b) if len(a) > len(b) else (b, a)
    if not longer:
        return 1.0
    return (len(longer) - edit_distance(longer, shorter)) / len(longer)
