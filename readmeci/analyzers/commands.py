"""Command analyzer: extracts and classifies build/test/run/install commands."""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from .. import confidence as scoring
from ..context.analysis import AnalysisContext
from ..context.collection import ContextDetection
from ..context.languages import infer_language_from_command, language_for_fence
from ..markdown import MarkdownDocument
from ..models import AnalyzerResult, Command, CommandInfo, Evidence, LanguageContext, SourceRange
from .base import Analyzer, build_result
from .utils import (
    classify_command,
    command_body,
    is_shell_block,
    iter_command_lines,
    looks_like_command,
    normalise_command,
)

SOURCE_CONFIDENCE = {
    "code-block": 0.8,
    "inline-code": 0.7,
    "text-mention": 0.5,
}
FALLBACK_LANGUAGE = "Shell"


class CommandExtractor(Analyzer):
    """Extracts shell commands and ties them to the language contexts around them."""

    name = "commands"
    dependencies = ("language",)

    def detect(
        self, document: MarkdownDocument, content: str, context: Optional[AnalysisContext]
    ) -> AnalyzerResult:
        detection = context.language_detection if context is not None else None
        inherit = context.config.enable_context_inheritance if context is not None else True

        info = CommandInfo()
        evidence: List[Evidence] = []
        mappings: Dict[str, List[str]] = {}
        sources: List[str] = []

        for line, column, raw, source, fence_language in self._candidates(document):
            command = normalise_command(raw)
            location = SourceRange(line, line, column, column + max(len(raw) - 1, 0))
            base = SOURCE_CONFIDENCE[source]
            command_evidence = scoring.make_evidence(scoring.COMMAND, command, location, weight=base, snippet=command)
            evidence.append(command_evidence)

            tool_language = infer_language_from_command(command_body(command))
            language = tool_language or fence_language
            confidence = base
            associated: Optional[LanguageContext] = None

            if detection is not None:
                covering = detection.get_context_at(line)
                if covering is not None:
                    associated = covering
                    if language is not None and covering.language == language:
                        confidence = corroborate(base, covering.confidence)
                        evidence.append(
                            scoring.make_evidence(
                                scoring.CONTEXT,
                                covering.language,
                                location,
                                weight=scoring.weight_for(scoring.CONTEXT) * covering.confidence,
                            )
                        )
                    elif language is None and inherit:
                        language = covering.language
                    elif language is not None and covering.language != language:
                        associated = _first_context(detection, language) or covering
                elif language is not None:
                    associated = _first_context(detection, language)

            item = Command(
                command=command,
                language=language or FALLBACK_LANGUAGE,
                confidence=round(scoring.clamp(confidence), 4),
                source=source,
                line=line,
                context_language=associated.language if associated is not None else None,
            )
            getattr(info, classify_command(command)).append(item)
            if source not in sources:
                sources.append(source)
            key = _context_key(associated) if associated is not None else "unassociated"
            mappings.setdefault(key, []).append(command)

        confidence = scoring.score(evidence)
        return build_result(
            info,
            confidence,
            sources,
            metadata={
                "context_mappings": mappings,
                "context_aware": detection is not None and bool(detection.contexts),
                "upstream_language": context.upstream_available("language") if context is not None else False,
            },
        )

    def _candidates(
        self, document: MarkdownDocument
    ) -> List[Tuple[int, int, str, str, Optional[str]]]:
        """Collect (line, column, text, source, fence language) for each distinct command."""
        found: List[Tuple[int, int, str, str, Optional[str]]] = []
        seen: set = set()

        def _add(line: int, column: int, text: str, source: str, fence: Optional[str]) -> None:
            key = normalise_command(text)
            if not key or key in seen:
                return
            seen.add(key)
            found.append((line, column, text, source, fence))

        code_lines = set()
        for node in document.code_blocks():
            code_lines.update(range(node.start_line, node.end_line + 1))
            shell = is_shell_block(node)
            fence = language_for_fence(node.lang)
            for line, text in iter_command_lines(node):
                prompted = text.lstrip().startswith(("$ ", "> "))
                if looks_like_command(text) or (shell and prompted):
                    _add(line, 0, text, "code-block", fence)

        for span in document.find("codespan"):
            if looks_like_command(span.value):
                _add(span.start_line, span.position.start_column, span.value, "inline-code", None)

        for node in document.find("paragraph"):
            for offset, text in enumerate(node.value.split("\n")):
                line = node.start_line + offset
                stripped = text.strip()
                if line in code_lines or "`" in stripped or stripped.endswith((".", ":")):
                    continue
                if len(stripped) <= 120 and looks_like_command(stripped):
                    _add(line, 0, stripped, "text-mention", None)

        found.sort(key=lambda item: (item[0], item[1]))
        return found


def corroborate(base: float, context_confidence: float) -> float:
    """Raise ``base`` by the weight of an agreeing language context (noisy-OR)."""
    support = scoring.weight_for(scoring.CONTEXT) * scoring.clamp(context_confidence)
    return scoring.clamp(1.0 - (1.0 - base) * (1.0 - support))


def _first_context(detection: ContextDetection, language: str) -> Optional[LanguageContext]:
    contexts = detection.contexts_for(language)
    return contexts[0] if contexts else None


def _context_key(context: LanguageContext) -> str:
    span = context.source_range
    return f"{context.language}:{span.start_line}-{span.end_line}"


__all__ = ["CommandExtractor", "corroborate"]
