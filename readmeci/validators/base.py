"""Core validation data structures shared by aggregation-time validators."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from ..models import AnalyzerResult, EnhancedAnalyzerResult, ProjectInfo, ValidationIssue

ERROR = "error"
WARNING = "warning"
INFO = "info"

SEVERITIES = (ERROR, WARNING, INFO)


class Validator(Protocol):
    """Protocol implemented by aggregation validators."""

    name: str

    def validate(self, context: "ValidationContext") -> List[ValidationIssue]:
        """Run validation and return any issues."""


@dataclass
class ValidationContext:
    """Everything a validator may inspect about one pipeline run."""

    results: Mapping[str, AnalyzerResult]
    dependencies: Mapping[str, Sequence[str]] = field(default_factory=dict)
    project_info: ProjectInfo = field(default_factory=ProjectInfo)
    confidence_threshold: float = 0.5
    details: Mapping[str, EnhancedAnalyzerResult] = field(default_factory=dict)

    def edges(self) -> List[Tuple[str, str]]:
        """Return declared ``(producer, consumer)`` pairs in declaration order."""
        return [
            (producer, consumer)
            for consumer, producers in self.dependencies.items()
            for producer in producers
        ]

    def result(self, name: str) -> Optional[AnalyzerResult]:
        return self.results.get(name)

    def quality(self, name: str) -> float:
        """Data quality of ``name``; falls back to its confidence when not enhanced."""
        detail = self.details.get(name)
        if detail is not None:
            return detail.metadata.data_quality
        result = self.results.get(name)
        if result is None or not result.success:
            return 0.0
        return result.confidence

    def completeness(self, name: str) -> Optional[float]:
        detail = self.details.get(name)
        return detail.metadata.completeness if detail is not None else None

    def detected_languages(self) -> Dict[str, float]:
        """Languages reported by the language analyzer, before any enrichment."""
        result = self.results.get("language")
        if result is None or not result.success or result.data is None:
            return {}
        languages = getattr(result.data, "languages", ())
        return {info.name: info.confidence for info in languages if info.confidence > 0}


def issue(
    rule: str,
    severity: str,
    message: str,
    *,
    producer: Optional[str] = None,
    consumer: Optional[str] = None,
) -> ValidationIssue:
    return ValidationIssue(rule=rule, severity=severity, message=message, producer=producer, consumer=consumer)


__all__ = [
    "ERROR",
    "INFO",
    "SEVERITIES",
    "ValidationContext",
    "Validator",
    "WARNING",
    "issue",
]
