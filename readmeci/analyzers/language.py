"""Language analyzer backed by the context engine."""

from __future__ import annotations

from typing import List, Optional

from ..context.analysis import AnalysisContext
from ..context.engine import DEFAULT_MAX_CONTEXTS, LanguageContextEngine
from ..markdown import MarkdownDocument
from ..models import AnalyzerResult
from .base import Analyzer


class LanguageDetector(Analyzer):
    """Detects programming languages and the document regions they cover."""

    name = "language"
    cacheable = True

    def __init__(self, *, max_contexts: int = DEFAULT_MAX_CONTEXTS) -> None:
        self.max_contexts = max_contexts

    def detect(
        self, document: MarkdownDocument, content: str, context: Optional[AnalysisContext]
    ) -> AnalyzerResult:
        max_contexts = context.config.max_contexts if context is not None else self.max_contexts
        engine = LanguageContextEngine(max_contexts=max_contexts)
        detection = engine.detect_with_context(document, content)

        sources: List[str] = []
        for info in detection.languages:
            for source in info.sources:
                if source not in sources:
                    sources.append(source)

        confidence = detection.overall_confidence
        return AnalyzerResult(
            success=True,
            data=detection,
            confidence=confidence,
            sources=sources if confidence > 0 else [],
            metadata={
                "languages": detection.language_names(),
                "contexts": len(detection.contexts),
                "boundaries": len(detection.boundaries),
            },
        )


__all__ = ["LanguageDetector"]
