"""Language context engine: locates, clusters and scores language evidence."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone
import re
from types import MappingProxyType
from typing import Dict, List, Optional, Pattern, Sequence, Set, Tuple

from .. import confidence as scoring
from ..logging import get_logger
from ..markdown import MarkdownDocument, Node
from ..models import (
    ContextBoundary,
    ContextMetadata,
    Evidence,
    LanguageContext,
    LanguageInfo,
    SourceRange,
)
from ..tracking import SourceTracker
from .collection import ContextDetection
from .languages import (
    FRAMEWORK_DISPLAY_NAMES,
    LANGUAGE_PATTERNS,
    LanguagePattern,
    compiled_imports,
    extension_pattern,
    infer_language_from_command,
    language_for_fence,
    word_pattern,
)

CONTEXT_MERGE_GAP = 3
MAX_PEAK_WEIGHT = 0.7
MEAN_WEIGHT = 0.3
LANGUAGE_CHANGE_PENALTY = 0.05
MAX_BOUNDARY_PENALTY = 0.2
DEFAULT_MAX_CONTEXTS = 20

logger = get_logger("context")


class _CompiledLanguage:
    def __init__(self, pattern: LanguagePattern) -> None:
        self.name = pattern.name
        self.keywords = [(term, word_pattern(term)) for term in pattern.keywords]
        self.extensions = [(term, extension_pattern(term)) for term in pattern.extensions]
        self.frameworks = [(term, word_pattern(term)) for term in pattern.frameworks]
        self.config_files = [(term, _config_file_pattern(term)) for term in pattern.config_files]
        self.imports = compiled_imports(pattern)


class LanguageContextEngine:
    """Builds confidence scored language contexts for a parsed document."""

    def __init__(self, *, max_contexts: int = DEFAULT_MAX_CONTEXTS) -> None:
        self.max_contexts = max(1, max_contexts)
        self._languages = [_CompiledLanguage(pattern) for pattern in LANGUAGE_PATTERNS]
        self._known = {pattern.name for pattern in LANGUAGE_PATTERNS}

    def detect_with_context(self, document: MarkdownDocument, content: str | None = None) -> ContextDetection:
        if document.is_empty:
            return ContextDetection(_line_offsets=document.line_offsets)

        evidence = self.collect_evidence(document)
        if not evidence:
            return ContextDetection(_line_offsets=document.line_offsets)

        contexts = self._build_contexts(document, evidence)
        boundaries = self._detect_boundaries(document, contexts)
        languages = self._summarise(evidence)
        overall = self._overall_confidence(languages, boundaries)

        tracker = SourceTracker(document.lines)
        for language, items in evidence.items():
            for item in items:
                tracker.track(language, item)

        logger.debug(
            "Detected %d language(s) across %d context(s), overall %.2f",
            len(languages),
            len(contexts),
            overall,
        )
        return ContextDetection(
            contexts=tuple(contexts),
            boundaries=tuple(boundaries),
            languages=tuple(languages),
            overall_confidence=overall,
            source_tracking=MappingProxyType(tracker.as_mapping()),
            evidence=MappingProxyType({language: tuple(items) for language, items in evidence.items()}),
            _line_offsets=document.line_offsets,
        )

    # ------------------------------------------------------------------
    # Evidence collection

    def collect_evidence(self, document: MarkdownDocument) -> Dict[str, List[Evidence]]:
        """Gather located evidence per language from the whole document."""
        evidence: Dict[str, List[Evidence]] = defaultdict(list)
        fence_language: Dict[int, Optional[str]] = {}
        code_body: Set[int] = set()
        skipped: Set[int] = set()

        for node in document.code_blocks():
            language = language_for_fence(node.lang)
            fenced = _is_fenced(document, node)
            for line in range(node.start_line, node.end_line + 1):
                fence_language[line] = language
            if fenced:
                skipped.update({node.start_line, node.end_line})
                code_body.update(range(node.start_line + 1, node.end_line))
            else:
                code_body.update(range(node.start_line, node.end_line + 1))
            if language is not None:
                first_line = next((line for line in node.value.splitlines() if line.strip()), "")
                evidence[language].append(
                    scoring.make_evidence(
                        scoring.SYNTAX,
                        node.lang or language,
                        node.position,
                        snippet=first_line.strip() or None,
                    )
                )

        for node in document.find("html"):
            skipped.update(range(node.start_line, node.end_line + 1))

        heading_lines = {node.start_line for node in document.headings()}

        for index, line in enumerate(document.lines):
            if index in skipped or not line.strip():
                continue
            in_code = index in code_body
            fence = fence_language.get(index)
            mention_type = scoring.HEADING if index in heading_lines else scoring.KEYWORD
            for language in self._languages:
                if in_code and fence is not None and fence != language.name:
                    continue
                self._scan_terms(evidence, language.name, language.keywords, mention_type, index, line)
                self._scan_terms(evidence, language.name, language.extensions, scoring.EXTENSION, index, line)
                self._scan_terms(evidence, language.name, language.config_files, scoring.CONFIG_FILE, index, line)
                self._scan_terms(
                    evidence,
                    language.name,
                    language.frameworks,
                    scoring.FRAMEWORK,
                    index,
                    line,
                    display=FRAMEWORK_DISPLAY_NAMES,
                )
                if in_code:
                    for expression in language.imports:
                        if expression.search(line):
                            evidence[language.name].append(
                                scoring.make_evidence(
                                    scoring.IMPORT,
                                    line.strip(),
                                    SourceRange(index, index, 0, max(len(line) - 1, 0)),
                                    snippet=line.strip(),
                                )
                            )
                            break
            if in_code:
                self._command_evidence(evidence, line, index, 0, fence)

        for span in document.find("codespan"):
            self._command_evidence(evidence, span.value, span.start_line, span.position.start_column, None)

        return {language: items for language, items in evidence.items() if items}

    def _scan_terms(
        self,
        evidence: Dict[str, List[Evidence]],
        language: str,
        terms: Sequence[Tuple[str, Pattern[str]]],
        evidence_type: str,
        index: int,
        line: str,
        *,
        display: Optional[Dict[str, str]] = None,
    ) -> None:
        for term, expression in terms:
            for match in expression.finditer(line):
                value = display.get(term, term) if display else match.group(0)
                evidence[language].append(
                    scoring.make_evidence(
                        evidence_type,
                        value,
                        SourceRange(index, index, match.start(), match.end() - 1),
                        snippet=line.strip(),
                    )
                )

    def _command_evidence(
        self,
        evidence: Dict[str, List[Evidence]],
        text: str,
        line: int,
        column: int,
        fence: Optional[str],
    ) -> None:
        language = infer_language_from_command(text)
        if language is None or language not in self._known:
            return
        if fence is not None and fence != language:
            return
        stripped = text.strip()
        evidence[language].append(
            scoring.make_evidence(
                scoring.COMMAND,
                stripped,
                SourceRange(line, line, column, column + max(len(text) - 1, 0)),
                snippet=stripped,
            )
        )

    # ------------------------------------------------------------------
    # Context construction

    def _build_contexts(
        self, document: MarkdownDocument, evidence: Dict[str, List[Evidence]]
    ) -> List[LanguageContext]:
        contexts: List[LanguageContext] = []
        created_at = datetime.now(timezone.utc)
        for language, items in evidence.items():
            for span in self._cluster(document, items):
                contexts.append(self._context_from_span(language, span, created_at))

        if len(contexts) > self.max_contexts:
            ranked = sorted(
                contexts,
                key=lambda context: (-context.confidence, context.source_range.start_line, context.language),
            )
            contexts = ranked[: self.max_contexts]

        contexts.sort(key=lambda context: (context.source_range.start_line, context.language))
        return contexts

    @staticmethod
    def _cluster(document: MarkdownDocument, items: Sequence[Evidence]) -> List[List[Evidence]]:
        ordered = sorted(items, key=lambda item: (item.location.start_line, item.location.start_column))
        spans: List[List[Evidence]] = []
        span_end = -1
        span_section: Optional[int] = None
        for item in ordered:
            section = _section_key(document, item.location.start_line)
            if spans and (
                item.location.start_line - span_end <= CONTEXT_MERGE_GAP
                or section == span_section
            ):
                spans[-1].append(item)
                span_end = max(span_end, item.location.end_line)
                continue
            spans.append([item])
            span_end = item.location.end_line
            span_section = section
        return spans

    @staticmethod
    def _context_from_span(language: str, span: Sequence[Evidence], created_at: datetime) -> LanguageContext:
        start_line = min(item.location.start_line for item in span)
        end_line = max(item.location.end_line for item in span)
        first = min(span, key=lambda item: (item.location.start_line, item.location.start_column))
        last = max(span, key=lambda item: (item.location.end_line, item.location.end_column))
        framework = next((item.value for item in span if item.type == scoring.FRAMEWORK), None)
        source = "code-block" if any(item.type == scoring.SYNTAX for item in span) else "text"
        return LanguageContext(
            language=language,
            confidence=scoring.score(span),
            source_range=SourceRange(
                start_line,
                end_line,
                first.location.start_column,
                last.location.end_column,
            ),
            evidence=tuple(span),
            metadata=ContextMetadata(created_at=created_at, source=source, framework=framework),
        )

    @staticmethod
    def _detect_boundaries(
        document: MarkdownDocument, contexts: Sequence[LanguageContext]
    ) -> List[ContextBoundary]:
        boundaries: List[ContextBoundary] = []
        major_headings = [node for node in document.headings() if (node.depth or 0) <= 2]
        for previous, current in zip(contexts, contexts[1:]):
            if previous.language != current.language:
                boundaries.append(
                    ContextBoundary(
                        position=current.source_range.start_line,
                        transition_type="language-change",
                        from_language=previous.language,
                        to_language=current.language,
                    )
                )
                continue
            heading = next(
                (
                    node
                    for node in major_headings
                    if previous.source_range.end_line < node.start_line <= current.source_range.start_line
                ),
                None,
            )
            if heading is not None:
                boundaries.append(
                    ContextBoundary(
                        position=heading.start_line,
                        transition_type="section-change",
                        from_language=previous.language,
                        to_language=current.language,
                    )
                )
        return boundaries

    @staticmethod
    def _summarise(evidence: Dict[str, List[Evidence]]) -> List[LanguageInfo]:
        languages: List[LanguageInfo] = []
        for language, items in evidence.items():
            frameworks: Dict[str, None] = {}
            for item in items:
                if item.type == scoring.FRAMEWORK:
                    frameworks.setdefault(item.value, None)
            languages.append(
                LanguageInfo(
                    name=language,
                    confidence=scoring.score(items),
                    sources=scoring.source_kinds(items),
                    frameworks=list(frameworks),
                )
            )
        languages.sort(key=lambda info: (-info.confidence, info.name))
        return languages

    @staticmethod
    def _overall_confidence(
        languages: Sequence[LanguageInfo], boundaries: Sequence[ContextBoundary]
    ) -> float:
        if not languages:
            return 0.0
        values = [info.confidence for info in languages]
        base = MAX_PEAK_WEIGHT * max(values) + MEAN_WEIGHT * (sum(values) / len(values))
        changes = sum(1 for boundary in boundaries if boundary.transition_type == "language-change")
        penalty = min(MAX_BOUNDARY_PENALTY, LANGUAGE_CHANGE_PENALTY * changes)
        return round(scoring.clamp(base - penalty), 4)


def _section_key(document: MarkdownDocument, line: int) -> Optional[int]:
    heading = document.section_at(line)
    return heading.start_line if heading is not None else None


def _is_fenced(document: MarkdownDocument, node: Node) -> bool:
    opening = document.lines[node.start_line].lstrip(" \t>") if node.start_line < len(document.lines) else ""
    return opening.startswith(("```", "~~~"))


def _config_file_pattern(name: str) -> Pattern[str]:
    if name.startswith("."):
        return extension_pattern(name)
    return re.compile(r"(?<![\w.-])" + re.escape(name) + r"(?![\w-]|\.\w)", re.IGNORECASE)


__all__ = [
    "CONTEXT_MERGE_GAP",
    "LanguageContextEngine",
]
