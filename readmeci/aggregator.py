"""Merge analyzer results into one validated :class:`ProjectInfo`."""

from __future__ import annotations

from dataclasses import fields, is_dataclass, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from . import confidence as scoring
from .analyzers.utils import MANAGER_LANGUAGES
from .context.collection import ContextDetection
from .context.languages import LANGUAGE_PATTERNS
from .logging import get_logger
from .models import (
    AggregatedResult,
    AnalyzerMetadata,
    AnalyzerResult,
    CommandInfo,
    ConfidenceScores,
    DependencyInfo,
    EnhancedAnalyzerResult,
    Evidence,
    IntegrationMetadata,
    LanguageInfo,
    ProjectInfo,
    ProjectMetadata,
    TestingInfo,
    ValidationIssue,
    ValidationStatus,
    has_content,
)
from .validators import ERROR, INFO, WARNING, ConsistencyValidator, DataFlowValidator, ValidationContext, Validator

logger = get_logger("aggregator")

DOMAIN_WEIGHTS: Dict[str, float] = {
    "languages": 0.3,
    "commands": 0.25,
    "dependencies": 0.2,
    "testing": 0.15,
    "metadata": 0.1,
}
SEVERITY_PENALTIES: Dict[str, float] = {ERROR: 0.15, WARNING: 0.07, INFO: 0.02}
MAX_PENALTY = 0.6

# ProjectInfo field that receives each typed analyzer payload.
_ROUTES = (
    (CommandInfo, "commands"),
    (DependencyInfo, "dependencies"),
    (TestingInfo, "testing"),
    (ProjectMetadata, "metadata"),
)
_KNOWN_LANGUAGES = frozenset(pattern.name for pattern in LANGUAGE_PATTERNS)


class ResultAggregator:
    """Combine partial analyzer results, validate them and score the whole."""

    def __init__(
        self,
        *,
        confidence_threshold: float = 0.5,
        validators: Optional[Iterable[Validator]] = None,
    ) -> None:
        self.confidence_threshold = confidence_threshold
        self._data_flow = DataFlowValidator()
        self._validators: List[Validator] = (
            list(validators) if validators is not None else [ConsistencyValidator()]
        )

    def aggregate(
        self,
        results: Mapping[str, AnalyzerResult | EnhancedAnalyzerResult],
        *,
        dependencies: Optional[Mapping[str, Sequence[str]]] = None,
        timings: Optional[Mapping[str, float]] = None,
    ) -> AggregatedResult:
        """Merge, validate and score ``results``.

        Plain results are enhanced first so validators can read their data
        quality and completeness; already enhanced results are used as given.
        """
        timings = timings or {}
        details: Dict[str, EnhancedAnalyzerResult] = {}
        for name, value in results.items():
            if isinstance(value, EnhancedAnalyzerResult):
                details[name] = value
            else:
                details[name] = enhance(name, value, timings.get(name, 0.0))
        results = {name: detail.result for name, detail in details.items()}

        info = ProjectInfo()
        scores = ConfidenceScores()
        routed: set = set()

        for name, result in results.items():
            self._merge(info, scores, routed, name, result)
        self._enrich_languages(info, scores)

        context = ValidationContext(
            results=results,
            dependencies=dependencies or {},
            project_info=info,
            confidence_threshold=self.confidence_threshold,
            details=details,
        )
        flows, issues = self._data_flow.trace(context)
        for validator in self._validators:
            issues.extend(validator.validate(context))

        naive = scoring.weighted_average(
            [(getattr(scores, domain), weight) for domain, weight in DOMAIN_WEIGHTS.items()]
        )
        penalty = penalty_for(issues)
        scores.overall = round(scoring.clamp(naive - penalty), 4)
        info.confidence = scores

        for item in issues:
            logger.debug("Validation %s [%s]: %s", item.severity, item.rule, item.message)

        return AggregatedResult(
            project_info=info,
            confidence=scores,
            validation_status=ValidationStatus(
                is_valid=not any(item.severity == ERROR for item in issues),
                issues=issues,
            ),
            integration_metadata=IntegrationMetadata(
                analyzers_run=list(results),
                analyzers_failed=[name for name, result in results.items() if not result.success],
                data_flow=flows,
                naive_confidence=round(naive, 4),
                penalty=round(penalty, 4),
                analyzer_details=details,
            ),
        )

    def _merge(
        self,
        info: ProjectInfo,
        scores: ConfidenceScores,
        routed: set,
        name: str,
        result: AnalyzerResult,
    ) -> None:
        data = result.data
        if data is None:
            return
        confidence = scoring.clamp(result.confidence)

        if isinstance(data, ContextDetection) and "languages" not in routed:
            info.languages = [
                replace(language, sources=list(language.sources), frameworks=list(language.frameworks))
                for language in data.languages
            ]
            scores.languages = round(confidence, 4)
            routed.add("languages")
            return
        for data_type, target in _ROUTES:
            if isinstance(data, data_type) and target not in routed:
                setattr(info, target, data)
                setattr(scores, target, round(confidence, 4))
                routed.add(target)
                return
        info.extras[name] = data

    @staticmethod
    def _enrich_languages(info: ProjectInfo, scores: ConfidenceScores) -> None:
        """Add languages implied by managers and command tools the detector missed."""
        implied: Dict[str, List[Evidence]] = {}
        for manager in info.dependencies.managers():
            language = MANAGER_LANGUAGES.get(manager)
            if language is not None:
                implied.setdefault(language, []).append(scoring.make_evidence(scoring.DEPENDENCY, manager))
        for command in info.commands.all_commands():
            if command.language in _KNOWN_LANGUAGES:
                implied.setdefault(command.language, []).append(
                    scoring.make_evidence(scoring.COMMAND, command.command, snippet=command.command)
                )

        detected = {language.name for language in info.languages}
        for language, evidence in implied.items():
            if language in detected:
                continue
            confidence = scoring.score(evidence)
            logger.debug("Inferred language %s from dependencies/commands (%.2f)", language, confidence)
            info.languages.append(LanguageInfo(name=language, confidence=confidence, sources=["pattern-match"]))
            scores.languages = max(scores.languages, confidence)


def penalty_for(issues: Iterable[ValidationIssue]) -> float:
    total = sum(SEVERITY_PENALTIES.get(item.severity, 0.0) for item in issues)
    return min(MAX_PENALTY, total)


def enhance(name: str, result: AnalyzerResult, processing_time: float = 0.0) -> EnhancedAnalyzerResult:
    """Attach quality and completeness figures to a raw analyzer result."""
    return EnhancedAnalyzerResult(
        analyzer_name=name,
        result=result,
        metadata=AnalyzerMetadata(
            processing_time=processing_time,
            data_quality=result.confidence if result.success else 0.0,
            completeness=completeness(result.data),
        ),
    )


def completeness(data: Any) -> float:
    """Share of a record's collections and optional fields that carry content."""
    if data is None:
        return 0.0
    if isinstance(data, ContextDetection):
        return 1.0 if data.languages else 0.0
    if not is_dataclass(data) or isinstance(data, type):
        return 1.0 if has_content(data) else 0.0
    slots = [
        item.name
        for item in fields(data)
        if not item.name.startswith("_") and item.name not in {"confidence", "sources"}
    ]
    if not slots:
        return 0.0
    filled = sum(1 for slot in slots if has_content(getattr(data, slot)))
    return round(filled / len(slots), 4)


__all__ = [
    "DOMAIN_WEIGHTS",
    "MAX_PENALTY",
    "ResultAggregator",
    "SEVERITY_PENALTIES",
    "completeness",
    "enhance",
    "penalty_for",
]
