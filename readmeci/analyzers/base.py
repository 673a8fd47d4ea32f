"""Base classes for analyzer plugins."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Optional, Protocol, Tuple, runtime_checkable

from ..context.analysis import AnalysisContext
from ..logging import get_logger
from ..markdown import MarkdownDocument
from ..models import (
    AnalyzerResult,
    CommandInfo,
    DependencyInfo,
    ParseError,
    ProjectMetadata,
    ReadmeCIError,
    TestingInfo,
)

ANALYZER_ERROR = "ANALYZER_ERROR"

_DOMAIN_RECORDS = (CommandInfo, DependencyInfo, ProjectMetadata, TestingInfo)

logger = get_logger("analyzers")


class AnalyzerContractError(ReadmeCIError):
    """Raised when an analyzer is invoked with arguments outside its contract."""


@runtime_checkable
class SupportsAnalyze(Protocol):
    """Structural contract accepted by the registry for third-party analyzers."""

    name: str

    def analyze(
        self, document: MarkdownDocument, content: str, context: Optional[AnalysisContext] = None
    ) -> AnalyzerResult:
        ...


def contract_violation(candidate: Any) -> Optional[str]:
    """Return why ``candidate`` cannot be registered as an analyzer, or ``None``."""
    name = getattr(candidate, "name", None)
    if not isinstance(name, str) or not name.strip():
        return "Analyzer must define a non-empty string 'name'"
    if not callable(getattr(candidate, "analyze", None)):
        return f"Analyzer '{name}' must implement a callable analyze(document, content, context)"
    return None


class Analyzer(ABC):
    """Contract for analyzers that turn a parsed README into one result."""

    name: str = ""
    dependencies: Tuple[str, ...] = ()
    # Bump when the detection tables change so cached results are invalidated.
    cache_version: str = "1"
    cacheable: bool = False

    def analyze(
        self, document: MarkdownDocument, content: str, context: Optional[AnalysisContext] = None
    ) -> AnalyzerResult:
        """Run detection, reporting internal failures as a failed result."""
        check_contract(document, content)
        try:
            return self.detect(document, content, context)
        except Exception as exc:
            logger.warning("Analyzer %s failed: %s", self.name, exc)
            logger.debug("Analyzer %s traceback", self.name, exc_info=True)
            return AnalyzerResult.failure(
                ParseError(
                    code=ANALYZER_ERROR,
                    message=f"{self.name} analyzer failed: {exc}",
                    component=self.name,
                )
            )

    @abstractmethod
    def detect(
        self, document: MarkdownDocument, content: str, context: Optional[AnalysisContext]
    ) -> AnalyzerResult:
        """Produce the analyzer's typed data for ``document``."""

    def cleanup(self) -> None:
        """Release resources held between runs; analyzers are stateless by default."""


def check_contract(document: Any, content: Any) -> None:
    if document is None:
        raise AnalyzerContractError("Analyzer requires a parsed document, got None")
    if not isinstance(content, str):
        raise AnalyzerContractError(
            f"Analyzer requires str content, got {type(content).__name__}"
        )


def build_result(
    data: Any,
    confidence: float,
    sources: Iterable[str],
    metadata: Optional[Dict[str, Any]] = None,
) -> AnalyzerResult:
    """Successful result whose sources are empty exactly when confidence is zero."""
    ordered = list(dict.fromkeys(sources)) if confidence > 0 else []
    if confidence > 0 and not ordered:
        ordered = ["pattern-match"]
    if isinstance(data, _DOMAIN_RECORDS):
        data.confidence = confidence
        data.sources = list(ordered)
    return AnalyzerResult(
        success=True,
        data=data,
        confidence=confidence,
        sources=ordered,
        metadata=dict(metadata or {}),
    )


__all__ = [
    "ANALYZER_ERROR",
    "Analyzer",
    "AnalyzerContractError",
    "SupportsAnalyze",
    "build_result",
    "check_contract",
    "contract_violation",
]
