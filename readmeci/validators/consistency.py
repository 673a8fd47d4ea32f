"""Cross-analyzer consistency rules."""

from __future__ import annotations

from typing import Dict, List

from ..analyzers.utils import MANAGER_LANGUAGES
from ..context.languages import LANGUAGE_PATTERNS
from ..models import CommandInfo, DependencyInfo, ValidationIssue
from .base import ERROR, INFO, WARNING, ValidationContext, issue

_KNOWN_LANGUAGES = frozenset(pattern.name for pattern in LANGUAGE_PATTERNS)


class ConsistencyValidator:
    """Flag failed, weak and mutually contradicting analyzer results."""

    name = "consistency"

    def validate(self, context: ValidationContext) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        for name, result in context.results.items():
            if not result.success:
                codes = ", ".join(error.code for error in result.errors) or "unknown error"
                issues.append(issue("analyzer-failed", WARNING, f"Analyzer '{name}' failed ({codes})", producer=name))
            elif context.quality(name) < context.confidence_threshold:
                message = (
                    f"Analyzer '{name}' data quality {context.quality(name):.2f} is below "
                    f"{context.confidence_threshold:.2f}"
                )
                filled = context.completeness(name)
                if filled is not None:
                    message += f" (completeness {filled:.2f})"
                issues.append(issue("low-confidence", INFO, message, producer=name))

        issues.extend(self._language_mismatches(context))

        if not any(result.usable for result in context.results.values()):
            issues.append(issue("no-usable-data", ERROR, "No analyzer produced usable data"))
        return issues

    def _language_mismatches(self, context: ValidationContext) -> List[ValidationIssue]:
        language_result = context.result("language")
        if language_result is None or not language_result.success:
            return []
        detected = context.detected_languages()

        implied: Dict[str, str] = {}
        commands = context.result("commands")
        if commands is not None and isinstance(commands.data, CommandInfo):
            for command in commands.data.all_commands():
                if command.language in _KNOWN_LANGUAGES:
                    implied.setdefault(command.language, "commands")
        dependencies = context.result("dependencies")
        if dependencies is not None and isinstance(dependencies.data, DependencyInfo):
            for manager in dependencies.data.managers():
                language = MANAGER_LANGUAGES.get(manager)
                if language is not None:
                    implied.setdefault(language, "dependencies")

        return [
            issue(
                "language-mismatch",
                INFO,
                f"{source.capitalize()} imply {language}, which the language analyzer did not detect",
                producer="language",
                consumer=source,
            )
            for language, source in implied.items()
            if language not in detected
        ]


__all__ = ["ConsistencyValidator"]
