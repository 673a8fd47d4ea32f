"""Evidence based confidence scoring shared by every analyzer."""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import Evidence, SourceRange

SYNTAX = "syntax"
EXTENSION = "extension"
CONFIG_FILE = "config-file"
COMMAND = "command"
FRAMEWORK = "framework"
DEPENDENCY = "dependency"
IMPORT = "import"
KEYWORD = "keyword"
TEXT_MENTION = "text-mention"
HEADING = "heading"
PATTERN = "pattern"
CONTEXT = "context"

EVIDENCE_WEIGHTS: Dict[str, float] = {
    SYNTAX: 0.9,
    EXTENSION: 0.8,
    CONFIG_FILE: 0.9,
    COMMAND: 0.8,
    FRAMEWORK: 0.7,
    DEPENDENCY: 0.7,
    IMPORT: 0.7,
    KEYWORD: 0.5,
    TEXT_MENTION: 0.5,
    HEADING: 0.6,
    PATTERN: 0.6,
    CONTEXT: 0.6,
}

EVIDENCE_FLOOR = 0.3
DIVERSITY_STEP = 0.1
DIVERSITY_CAP = 1.3
FRAMEWORK_BOOST = 1.1

# Public source kinds reported on LanguageInfo.
SOURCE_KINDS: Dict[str, str] = {
    SYNTAX: "code-block",
    IMPORT: "code-block",
    KEYWORD: "text-mention",
    TEXT_MENTION: "text-mention",
    HEADING: "text-mention",
    FRAMEWORK: "text-mention",
    EXTENSION: "file-reference",
    CONFIG_FILE: "file-reference",
    COMMAND: "pattern-match",
    DEPENDENCY: "pattern-match",
    PATTERN: "pattern-match",
    CONTEXT: "pattern-match",
}


def clamp(value: float, lower: float = 0.0, upper: float = 1.0) -> float:
    if value != value:  # NaN
        return lower
    return max(lower, min(upper, value))


def weight_for(evidence_type: str) -> float:
    return EVIDENCE_WEIGHTS.get(evidence_type, EVIDENCE_WEIGHTS[PATTERN])


def make_evidence(
    evidence_type: str,
    value: str,
    location: Optional[SourceRange] = None,
    *,
    weight: Optional[float] = None,
    snippet: Optional[str] = None,
) -> Evidence:
    """Build an Evidence record using the default weight for its type."""
    return Evidence(
        type=evidence_type,
        value=value,
        location=location or SourceRange.empty(),
        weight=clamp(weight if weight is not None else weight_for(evidence_type)),
        snippet=snippet,
    )


def saturation(count: int) -> float:
    """Diminishing returns for repeated evidence of the same kind."""
    if count <= 0:
        return 0.0
    return 1.0 - 0.5 ** count


def type_strengths(evidence: Iterable[Evidence]) -> Dict[str, float]:
    grouped: Dict[str, List[float]] = defaultdict(list)
    for item in evidence:
        grouped[item.type].append(clamp(item.weight))
    return {
        evidence_type: max(weights) * saturation(len(weights))
        for evidence_type, weights in grouped.items()
    }


def score(evidence: Iterable[Evidence], *, floor: float = EVIDENCE_FLOOR) -> float:
    """Combine evidence into a confidence in [0, 1].

    Strength per evidence type saturates with repetition; types combine by
    noisy-OR; distinct types and framework corroboration add a bounded boost.
    Every step is non-decreasing in the evidence set, so adding evidence never
    lowers the score.
    """
    items = list(evidence)
    if not items:
        return 0.0

    strengths = type_strengths(items)
    missing = 1.0
    for strength in strengths.values():
        missing *= 1.0 - strength
    combined = 1.0 - missing

    diversity = min(DIVERSITY_CAP, 1.0 + DIVERSITY_STEP * (len(strengths) - 1))
    combined *= diversity
    if FRAMEWORK in strengths:
        combined *= FRAMEWORK_BOOST

    return round(clamp(max(combined, floor)), 4)


def source_kinds(evidence: Iterable[Evidence]) -> List[str]:
    """Return the ordered, de-duplicated public source kinds of ``evidence``."""
    kinds: Dict[str, None] = {}
    for item in evidence:
        kinds.setdefault(SOURCE_KINDS.get(item.type, "pattern-match"), None)
    return list(kinds)


def weighted_average(pairs: Sequence[Tuple[float, float]]) -> float:
    """Average ``(value, weight)`` pairs; zero total weight yields 0."""
    total = sum(weight for _, weight in pairs if weight > 0)
    if total <= 0:
        return 0.0
    return clamp(sum(value * weight for value, weight in pairs if weight > 0) / total)


__all__ = [
    "COMMAND",
    "CONFIG_FILE",
    "CONTEXT",
    "DEPENDENCY",
    "EVIDENCE_FLOOR",
    "EVIDENCE_WEIGHTS",
    "EXTENSION",
    "FRAMEWORK",
    "HEADING",
    "IMPORT",
    "KEYWORD",
    "PATTERN",
    "SOURCE_KINDS",
    "SYNTAX",
    "TEXT_MENTION",
    "clamp",
    "make_evidence",
    "saturation",
    "score",
    "source_kinds",
    "type_strengths",
    "weight_for",
    "weighted_average",
]
