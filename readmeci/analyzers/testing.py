"""Testing analyzer for frameworks, tooling and test commands."""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Pattern, Sequence, Tuple

from .. import confidence as scoring
from ..context.analysis import AnalysisContext
from ..context.collection import ContextDetection
from ..markdown import MarkdownDocument
from ..models import AnalyzerResult, Evidence, SourceRange, TestingFramework, TestingInfo, TestingTool
from .base import Analyzer, build_result
from .utils import (
    TESTING_FRAMEWORKS,
    TESTING_TOOLS,
    FrameworkPattern,
    ToolPattern,
    classify_command,
    file_pattern,
    iter_command_lines,
    looks_like_command,
    mention_pattern,
    normalise_command,
)

# Frameworks whose language follows the document when it is written in TypeScript.
_TYPESCRIPT_COMPATIBLE = {"Jest", "Mocha", "Vitest", "Jasmine", "Cypress", "Playwright"}


class _CompiledFramework:
    def __init__(self, pattern: FrameworkPattern) -> None:
        self.pattern = pattern
        self.mentions = [mention_pattern(term) for term in pattern.mentions]
        self.config_files = [(name, file_pattern(name)) for name in pattern.config_files]
        self.commands = [re.compile(expression, re.IGNORECASE) for expression in pattern.commands]
        self.imports = [re.compile(expression) for expression in pattern.imports]


class _CompiledTool:
    def __init__(self, pattern: ToolPattern) -> None:
        self.pattern = pattern
        self.mentions = [mention_pattern(term) for term in pattern.mentions]
        self.config_files = [(name, file_pattern(name)) for name in pattern.config_files]


class TestingDetector(Analyzer):
    """Detects testing frameworks and tools mentioned in the README."""

    __test__ = False

    name = "testing"
    dependencies = ("language",)

    def __init__(self) -> None:
        self._frameworks = [_CompiledFramework(pattern) for pattern in TESTING_FRAMEWORKS]
        self._tools = [_CompiledTool(pattern) for pattern in TESTING_TOOLS]

    def detect(
        self, document: MarkdownDocument, content: str, context: Optional[AnalysisContext]
    ) -> AnalyzerResult:
        detection = context.language_detection if context is not None else None
        commands = self._commands(document)
        code_lines = self._code_lines(document)

        info = TestingInfo()
        evidence: List[Evidence] = []
        config_files: Dict[str, None] = {}

        for framework in self._frameworks:
            found = self._framework_evidence(framework, document, commands, code_lines, config_files)
            if not found:
                continue
            language = self._resolve_language(framework.pattern, detection)
            if detection is not None:
                info_language = detection.language(language)
                if info_language is not None and info_language.confidence > 0:
                    found.append(
                        scoring.make_evidence(
                            scoring.CONTEXT,
                            language,
                            weight=scoring.weight_for(scoring.CONTEXT) * info_language.confidence,
                        )
                    )
            evidence.extend(found)
            info.frameworks.append(
                TestingFramework(
                    name=framework.pattern.name,
                    language=language,
                    confidence=scoring.score(found),
                    type=framework.pattern.type,
                )
            )

        for tool in self._tools:
            found = self._tool_evidence(tool, document, config_files)
            if not found:
                continue
            evidence.extend(found)
            info.tools.append(
                TestingTool(name=tool.pattern.name, type=tool.pattern.type, confidence=scoring.score(found))
            )

        for line, command in commands:
            if classify_command(command) == "test" and command not in info.test_commands:
                info.test_commands.append(command)
                evidence.append(
                    scoring.make_evidence(scoring.COMMAND, command, SourceRange(line, line), snippet=command)
                )

        info.frameworks.sort(key=lambda item: (-item.confidence, item.name))
        info.config_files = list(config_files)
        confidence = scoring.score(evidence)
        return build_result(
            info,
            confidence,
            scoring.source_kinds(evidence),
            metadata={"frameworks": [item.name for item in info.frameworks]},
        )

    def _framework_evidence(
        self,
        framework: _CompiledFramework,
        document: MarkdownDocument,
        commands: Sequence[Tuple[int, str]],
        code_lines: Dict[int, bool],
        config_files: Dict[str, None],
    ) -> List[Evidence]:
        found: List[Evidence] = []
        for index, line in enumerate(document.lines):
            found.extend(_term_evidence(framework.mentions, scoring.TEXT_MENTION, index, line))
            found.extend(_config_evidence(framework.config_files, index, line, config_files))
            if code_lines.get(index):
                for expression in framework.imports:
                    if expression.search(line):
                        found.append(
                            scoring.make_evidence(
                                scoring.IMPORT, line.strip(), SourceRange(index, index), snippet=line.strip()
                            )
                        )
                        break
        for line, command in commands:
            if any(expression.match(command) for expression in framework.commands):
                found.append(scoring.make_evidence(scoring.COMMAND, command, SourceRange(line, line), snippet=command))
        return found

    def _tool_evidence(
        self, tool: _CompiledTool, document: MarkdownDocument, config_files: Dict[str, None]
    ) -> List[Evidence]:
        found: List[Evidence] = []
        for index, line in enumerate(document.lines):
            found.extend(_term_evidence(tool.mentions, scoring.TEXT_MENTION, index, line))
            found.extend(_config_evidence(tool.config_files, index, line, config_files))
        return found

    @staticmethod
    def _resolve_language(pattern: FrameworkPattern, detection: Optional[ContextDetection]) -> str:
        language = pattern.language or "Unknown"
        if detection is None or pattern.name not in _TYPESCRIPT_COMPATIBLE:
            return language
        names = detection.language_names()
        if "TypeScript" in names and "JavaScript" not in names:
            return "TypeScript"
        return language

    @staticmethod
    def _commands(document: MarkdownDocument) -> List[Tuple[int, str]]:
        commands: List[Tuple[int, str]] = []
        for node in document.code_blocks():
            for line, text in iter_command_lines(node):
                if looks_like_command(text):
                    commands.append((line, normalise_command(text)))
        for span in document.find("codespan"):
            if looks_like_command(span.value):
                commands.append((span.start_line, normalise_command(span.value)))
        return commands

    @staticmethod
    def _code_lines(document: MarkdownDocument) -> Dict[int, bool]:
        lines: Dict[int, bool] = {}
        for node in document.code_blocks():
            for line in range(node.start_line, node.end_line + 1):
                lines[line] = True
        return lines


def _term_evidence(patterns: Sequence[Pattern[str]], evidence_type: str, index: int, line: str) -> List[Evidence]:
    found: List[Evidence] = []
    for expression in patterns:
        for match in expression.finditer(line):
            found.append(
                scoring.make_evidence(
                    evidence_type,
                    match.group(0),
                    SourceRange(index, index, match.start(), match.end() - 1),
                    snippet=line.strip(),
                )
            )
    return found


def _config_evidence(
    files: Sequence[Tuple[str, Pattern[str]]], index: int, line: str, config_files: Dict[str, None]
) -> List[Evidence]:
    found: List[Evidence] = []
    for name, expression in files:
        for match in expression.finditer(line):
            config_files.setdefault(name, None)
            found.append(
                scoring.make_evidence(
                    scoring.CONFIG_FILE,
                    name,
                    SourceRange(index, index, match.start(), match.end() - 1),
                    snippet=line.strip(),
                )
            )
    return found


__all__ = ["TestingDetector"]
