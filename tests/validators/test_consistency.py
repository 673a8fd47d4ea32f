"""Tests for the consistency validator."""

from __future__ import annotations

from readmeci.context import ContextDetection
from readmeci.models import (
    AnalyzerResult,
    Command,
    CommandInfo,
    DependencyInfo,
    InstallCommand,
    LanguageInfo,
    ParseError,
    ProjectMetadata,
)
from readmeci.validators import ERROR, INFO, WARNING, ConsistencyValidator, ValidationContext


def _validate(results, threshold: float = 0.5):
    return ConsistencyValidator().validate(ValidationContext(results=results, confidence_threshold=threshold))


def _language(name: str = "Rust") -> AnalyzerResult:
    return AnalyzerResult(
        success=True,
        data=ContextDetection(languages=(LanguageInfo(name, 0.8, ["code-block"]),), overall_confidence=0.8),
        confidence=0.8,
        sources=["code-block"],
    )


def test_failed_analyzer_is_a_warning_with_codes() -> None:
    failed = AnalyzerResult.failure(ParseError(code="ANALYZER_TIMEOUT", message="slow", component="testing"))

    issues = _validate({"language": _language(), "testing": failed})

    [found] = issues
    assert (found.rule, found.severity, found.producer) == ("analyzer-failed", WARNING, "testing")
    assert "ANALYZER_TIMEOUT" in found.message


def test_low_confidence_is_informational() -> None:
    weak = AnalyzerResult(success=True, data=ProjectMetadata(name="tool"), confidence=0.3, sources=["heading"])

    issues = _validate({"metadata": weak})

    assert [(item.rule, item.severity) for item in issues] == [("low-confidence", INFO)]


def test_languages_implied_by_commands_and_managers() -> None:
    commands = AnalyzerResult(
        success=True,
        data=CommandInfo(
            build=[Command("python -m build", "Python", 0.8), Command("./run.sh", "Shell", 0.8)]
        ),
        confidence=0.8,
        sources=["code-block"],
    )
    dependencies = AnalyzerResult(
        success=True,
        data=DependencyInfo(install_commands=[InstallCommand("npm install", "npm", 0.9)]),
        confidence=0.8,
        sources=["code-block"],
    )

    issues = _validate({"language": _language(), "commands": commands, "dependencies": dependencies})

    messages = {item.consumer: item.message for item in issues if item.rule == "language-mismatch"}
    assert set(messages) == {"commands", "dependencies"}
    assert "Python" in messages["commands"]
    assert "JavaScript" in messages["dependencies"]


def test_mismatch_check_needs_a_language_result() -> None:
    commands = AnalyzerResult(
        success=True,
        data=CommandInfo(build=[Command("python -m build", "Python", 0.8)]),
        confidence=0.8,
        sources=["code-block"],
    )

    assert _validate({"commands": commands}) == []


def test_no_usable_data_is_an_error() -> None:
    empty = AnalyzerResult(success=True, data=ProjectMetadata(), confidence=0.0)

    issues = _validate({"metadata": empty}, threshold=0.0)

    assert [(item.rule, item.severity) for item in issues] == [("no-usable-data", ERROR)]
