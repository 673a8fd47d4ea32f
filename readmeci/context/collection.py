"""Query helpers over the contexts produced for one document."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple

from ..models import ContextBoundary, Evidence, LanguageContext, LanguageInfo
from ..tracking import TrackedSource


@dataclass(frozen=True)
class ContextDetection:
    """Language contexts, boundaries and per-language summaries of a document."""

    contexts: Tuple[LanguageContext, ...] = ()
    boundaries: Tuple[ContextBoundary, ...] = ()
    languages: Tuple[LanguageInfo, ...] = ()
    overall_confidence: float = 0.0
    source_tracking: Mapping[str, Tuple[TrackedSource, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    evidence: Mapping[str, Tuple[Evidence, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    _line_offsets: Tuple[int, ...] = field(default=(), repr=False, compare=False)

    def get_all_contexts(self) -> List[LanguageContext]:
        return list(self.contexts)

    def get_context_boundaries(self) -> List[ContextBoundary]:
        return list(self.boundaries)

    def get_context_at(self, line: int, column: Optional[int] = None) -> Optional[LanguageContext]:
        """Return the most confident context covering ``line``."""
        covering = [
            context
            for context in self.contexts
            if context.source_range.contains(line, column)
        ]
        if not covering:
            return None
        return max(covering, key=lambda context: (context.confidence, -context.source_range.start_line))

    def get_context(self, position: int) -> Optional[LanguageContext]:
        """Return the context covering a character offset of the document."""
        if position < 0:
            return None
        if not self._line_offsets:
            return self.get_context_at(0, position)
        line = bisect_right(self._line_offsets, position) - 1
        return self.get_context_at(line, position - self._line_offsets[line])

    def contexts_for(self, language: str) -> List[LanguageContext]:
        return [context for context in self.contexts if context.language == language]

    def language(self, name: str) -> Optional[LanguageInfo]:
        for info in self.languages:
            if info.name == name:
                return info
        return None

    def language_names(self) -> List[str]:
        return [info.name for info in self.languages]

    @property
    def confidence(self) -> float:
        return self.overall_confidence


__all__ = ["ContextDetection"]
