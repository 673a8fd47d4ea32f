"""Tests for the analyzer registry."""

from __future__ import annotations

import pytest

from readmeci.models import AnalyzerResult
from readmeci.registry import AnalyzerRegistry, FunctionAnalyzer, RegistrationError


class NamedAnalyzer:
    def __init__(self, name: str, dependencies=()) -> None:
        self.name = name
        self.dependencies = tuple(dependencies)

    def analyze(self, document, content, context=None):
        return AnalyzerResult(success=True)


def _noop(document, content, context):
    return AnalyzerResult(success=True)


def test_register_and_order_levels() -> None:
    registry = AnalyzerRegistry()
    registry.register(NamedAnalyzer("language"))
    registry.register(NamedAnalyzer("metadata"))
    registry.register(NamedAnalyzer("commands", ["language"]))
    registry.register(NamedAnalyzer("report", ["commands", "metadata"]))

    assert registry.execution_levels() == [["language", "metadata"], ["commands"], ["report"]]
    assert registry.edges() == [("language", "commands"), ("commands", "report"), ("metadata", "report")]


def test_explicit_dependencies_override_declared_ones() -> None:
    registry = AnalyzerRegistry()
    registry.register(NamedAnalyzer("language"))

    result = registry.register(NamedAnalyzer("commands", ["missing"]), ["language"])

    assert result.success is True
    assert registry.dependencies_of("commands") == ("language",)


@pytest.mark.parametrize(
    ("candidate", "fragment"),
    [
        (object(), "non-empty string 'name'"),
        (NamedAnalyzer("  "), "non-empty string 'name'"),
        (type("NoAnalyze", (), {"name": "broken"})(), "callable analyze"),
        (NamedAnalyzer("commands", ["language"]), "unknown analyzer(s): language"),
        (NamedAnalyzer("loop", ["loop"]), "cannot depend on itself"),
    ],
)
def test_invalid_registrations_are_reported(candidate, fragment) -> None:
    result = AnalyzerRegistry().register(candidate)

    assert result.success is False
    assert fragment in result.error


def test_duplicate_names_are_rejected() -> None:
    registry = AnalyzerRegistry()
    registry.register(NamedAnalyzer("language"))

    result = registry.register(NamedAnalyzer("language"))

    assert result.success is False
    assert "already registered" in result.error
    assert len(registry) == 1


def test_register_or_raise_raises_with_result() -> None:
    with pytest.raises(RegistrationError) as excinfo:
        AnalyzerRegistry().register_or_raise(NamedAnalyzer("x", ["y"]))

    assert excinfo.value.result.name == "x"


def test_register_function_wraps_callable() -> None:
    registry = AnalyzerRegistry()

    assert registry.register_function("custom", _noop).success is True
    assert isinstance(registry.get("custom"), FunctionAnalyzer)
    assert registry.register_function("other", "not callable").success is False


def test_unregister_refuses_while_dependents_exist() -> None:
    registry = AnalyzerRegistry()
    registry.register(NamedAnalyzer("language"))
    registry.register(NamedAnalyzer("commands", ["language"]))

    assert registry.unregister("language") is False
    assert registry.unregister("commands") is True
    assert registry.unregister("language") is True
    assert registry.unregister("language") is False
    assert registry.names() == []
