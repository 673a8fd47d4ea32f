"""Records where evidence was found so detections can be explained."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from .models import Evidence

CONTEXT_LINES = 2
_MAX_SNIPPET = 160


@dataclass(frozen=True)
class TrackedSource:
    """Evidence plus the surrounding lines it was found in."""

    language: str
    evidence: Evidence
    snippet: str
    context_before: Tuple[str, ...]
    context_after: Tuple[str, ...]


class SourceTracker:
    def __init__(self, lines: Sequence[str], *, context_lines: int = CONTEXT_LINES) -> None:
        self._lines = list(lines)
        self._context_lines = context_lines
        self._tracked: Dict[str, List[TrackedSource]] = {}

    def track(self, language: str, evidence: Evidence) -> TrackedSource:
        line = evidence.location.start_line
        before_start = max(0, line - self._context_lines)
        after_end = min(len(self._lines), evidence.location.end_line + 1 + self._context_lines)
        snippet = evidence.snippet or self._line(line)
        if len(snippet) > _MAX_SNIPPET:
            snippet = snippet[: _MAX_SNIPPET - 3].rstrip() + "..."
        tracked = TrackedSource(
            language=language,
            evidence=evidence,
            snippet=snippet,
            context_before=tuple(self._lines[before_start:line]),
            context_after=tuple(self._lines[evidence.location.end_line + 1:after_end]),
        )
        self._tracked.setdefault(language, []).append(tracked)
        return tracked

    def sources_for(self, language: str) -> List[TrackedSource]:
        return list(self._tracked.get(language, []))

    def as_mapping(self) -> Dict[str, Tuple[TrackedSource, ...]]:
        return {language: tuple(items) for language, items in self._tracked.items()}

    def _line(self, index: int) -> str:
        if 0 <= index < len(self._lines):
            return self._lines[index].strip()
        return ""


__all__ = ["CONTEXT_LINES", "SourceTracker", "TrackedSource"]
