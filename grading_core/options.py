"""Option label/content resolution and weightage maps.

Answer keys, weightage maps and student selections may name an option either by
its label ("A") or by its content ("Paris"). Everything here turns labels into
content so the strategies only ever compare content.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Tuple


def comparison_form(value: str) -> str:
    return value.strip().casefold()


@dataclass(frozen=True)
class NormalizedSelection:
    display: Tuple[str, ...]
    comparison: FrozenSet[str]

    def __bool__(self) -> bool:
        return bool(self.comparison)

    def display_for(self, keys: Iterable[str]) -> Tuple[str, ...]:
        """Display forms of the given comparison keys, in selection order."""
        wanted = set(keys)
        return tuple(d for d in self.display if comparison_form(d) in wanted)


def resolve_label(value: str, options: Optional[Mapping[str, str]] = None) -> str:
    if not options:
        return value
    if value in options:
        return options[value]
    stripped = value.strip()
    if stripped in options:
        return options[stripped]
    folded = comparison_form(value)
    for label, content in options.items():
        if comparison_form(str(label)) == folded:
            return content
    return value


def uses_labels(correct: Iterable[str], options: Optional[Mapping[str, str]] = None) -> bool:
    if not options:
        return False
    labels = {comparison_form(str(k)) for k in options}
    return any(comparison_form(c) in labels for c in correct if isinstance(c, str))


def normalize(selections: Iterable[str], options: Optional[Mapping[str, str]] = None) -> NormalizedSelection:
    """
    Resolve selections to content form.

    Keeps the original casing for display (and weightage lookup) and a trimmed,
    case-folded set for comparison. Blank entries are dropped and duplicates are
    collapsed on their comparison key, first occurrence wins.
    """
    display: list[str] = []
    seen: set[str] = set()
    for raw in selections or ():
        if not isinstance(raw, str) or not raw.strip():
            continue
        content = resolve_label(raw, options).strip()
        key = comparison_form(content)
        if not key or key in seen:
            continue
        seen.add(key)
        display.append(content)
    return NormalizedSelection(display=tuple(display), comparison=frozenset(seen))


def normalize_correct(correct: Iterable[str], options: Optional[Mapping[str, str]] = None) -> NormalizedSelection:
    """Answer keys are only label-resolved when they are authored as labels."""
    correct = tuple(correct or ())
    if uses_labels(correct, options):
        return normalize(correct, options)
    return normalize(correct, None)


def resolve_weights(
    weight_map: Optional[Mapping[str, object]],
    options: Optional[Mapping[str, str]] = None,
) -> Dict[str, float]:
    resolved: Dict[str, float] = {}
    for key, raw in (weight_map or {}).items():
        try:
            weight = float(raw)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            continue
        if weight < 0 or weight != weight:
            continue
        resolved[resolve_label(str(key), options).strip()] = weight
    return resolved


def weight_for(option: str, resolved: Mapping[str, float]) -> float:
    if option in resolved:
        return resolved[option]
    folded = comparison_form(option)
    for key, weight in resolved.items():
        if comparison_form(key) == folded:
            return weight
    return 0.0


__all__ = [
    "NormalizedSelection",
    "comparison_form",
    "normalize",
    "normalize_correct",
    "resolve_label",
    "resolve_weights",
    "uses_labels",
    "weight_for",
]
