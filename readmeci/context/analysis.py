"""Immutable per-execution state handed to every analyzer."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional, Tuple

from ..config import ParserConfig
from ..markdown import MarkdownDocument
from ..models import AnalyzerResult, LanguageContext
from .collection import ContextDetection


@dataclass(frozen=True)
class AnalysisContext:
    """Document, configuration and upstream results visible to an analyzer.

    A new context is derived after each execution level; existing instances
    are never modified, so analyzers running concurrently share one safely.
    """

    document: MarkdownDocument
    content: str
    config: ParserConfig = field(default_factory=ParserConfig)
    results: Mapping[str, AnalyzerResult] = field(default_factory=lambda: MappingProxyType({}))
    failed: FrozenSet[str] = frozenset()
    language_detection: Optional[ContextDetection] = None

    @property
    def language_contexts(self) -> Tuple[LanguageContext, ...]:
        if self.language_detection is None:
            return ()
        return self.language_detection.contexts

    def upstream_available(self, name: str) -> bool:
        """True when ``name`` ran and produced a successful result."""
        return name in self.results and name not in self.failed

    def with_results(self, new_results: Mapping[str, AnalyzerResult]) -> "AnalysisContext":
        merged = dict(self.results)
        merged.update(new_results)
        failed = set(self.failed)
        detection = self.language_detection
        for name, result in new_results.items():
            if result.success:
                failed.discard(name)
            else:
                failed.add(name)
            if result.success and isinstance(result.data, ContextDetection):
                detection = result.data
        return replace(
            self,
            results=MappingProxyType(merged),
            failed=frozenset(failed),
            language_detection=detection,
        )


__all__ = ["AnalysisContext"]
