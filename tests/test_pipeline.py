"""Tests for the integration pipeline."""

from __future__ import annotations

import threading

import pytest

from readmeci.analyzers.base import ANALYZER_ERROR
from readmeci.config import ParserConfig
from readmeci.models import AnalyzerResult
from readmeci.pipeline import (
    ANALYZER_SKIPPED,
    ANALYZER_TIMEOUT,
    INVALID_INPUT,
    PIPELINE_TIMEOUT,
    IntegrationPipeline,
)
from tests._fixtures.readmes import FULL_README, MALFORMED_README, RUST_README


@pytest.fixture
def pipeline():
    instance = IntegrationPipeline(ParserConfig(pipeline_timeout=60.0))
    yield instance
    instance.cleanup()


def test_builtin_levels_respect_dependencies(pipeline) -> None:
    result = pipeline.execute(RUST_README)

    assert result.execution_order == [["language", "metadata", "dependencies"], ["commands", "testing"]]
    assert set(result.analyzer_results) == {"language", "metadata", "dependencies", "commands", "testing"}
    assert result.success is True
    assert result.errors == []


def test_performance_keys_are_recorded(pipeline) -> None:
    performance = pipeline.execute(RUST_README).performance

    for key in ("parse", "stage.level-0", "stage.level-1", "analyzer.language", "aggregate", "total"):
        assert key in performance
    assert all(value >= 0 for value in performance.values())


def test_performance_monitoring_can_be_disabled() -> None:
    pipeline = IntegrationPipeline(ParserConfig(enable_performance_monitoring=False))

    assert pipeline.execute(RUST_README).performance == {}


def test_non_string_content_is_rejected(pipeline) -> None:
    result = pipeline.execute(b"# bytes")

    assert result.success is False
    [error] = result.errors
    assert error.code == INVALID_INPUT
    assert error.recoverable is False


def test_parse_diagnostics_become_warnings(pipeline) -> None:
    result = pipeline.execute(MALFORMED_README)

    assert any(warning.startswith("malformed-table at line 5") for warning in result.warnings)
    assert any(warning.startswith("unterminated-fence") for warning in result.warnings)


def test_second_run_hits_document_and_language_cache(pipeline) -> None:
    first = pipeline.execute(FULL_README)
    second = pipeline.execute(FULL_README)

    assert first.cache_hits == []
    assert second.cache_hits == ["markdown", "language"]
    assert second.data.to_dict() == first.data.to_dict()


def test_caching_is_transparent() -> None:
    cached = IntegrationPipeline(ParserConfig(enable_caching=True))
    uncached = IntegrationPipeline(ParserConfig(enable_caching=False))

    cached.execute(FULL_README)
    warm = cached.execute(FULL_README)
    cold = uncached.execute(FULL_README)

    assert uncached.execute(FULL_README).cache_hits == []
    assert warm.data.to_dict() == cold.data.to_dict()


def test_throwing_custom_analyzer_is_isolated(pipeline) -> None:
    def explode(document, content, context):
        raise RuntimeError("kaboom")

    assert pipeline.register_function("explode", explode).success is True

    result = pipeline.execute(RUST_README)

    failed = result.analyzer_results["explode"]
    assert failed.success is False
    assert failed.errors[0].code == ANALYZER_ERROR
    assert "kaboom" in failed.errors[0].message
    assert result.success is True
    assert result.analyzer_results["commands"].success is True
    assert "explode" in result.aggregated.integration_metadata.analyzers_failed


def test_custom_analyzer_sees_upstream_results(pipeline) -> None:
    seen = {}

    def inspect_upstream(document, content, context):
        seen["commands"] = context.upstream_available("commands")
        seen["languages"] = [item.language for item in context.language_contexts]
        return {"checked": True}

    pipeline.register_function("inspector", inspect_upstream, ["commands"])

    result = pipeline.execute(RUST_README)

    assert result.execution_order[-1] == ["inspector"]
    assert seen == {"commands": True, "languages": ["Rust", "Rust"]}
    wrapped = result.analyzer_results["inspector"]
    assert wrapped.metadata == {"wrapped": True}
    assert result.data.extras["inspector"] == {"checked": True}


def test_failed_upstream_is_visible_downstream(pipeline) -> None:
    seen = {}

    def failing(document, content, context):
        return AnalyzerResult(success=False, confidence=0.9, sources=["x"])

    def consumer(document, content, context):
        seen["available"] = context.upstream_available("failing")
        return AnalyzerResult(success=True, data="ok", confidence=1.7)

    pipeline.register_function("failing", failing)
    pipeline.register_function("consumer", consumer, ["failing"])

    result = pipeline.execute(RUST_README)

    assert seen["available"] is False
    assert result.analyzer_results["failing"].confidence == 0.0
    assert result.analyzer_results["failing"].sources == []
    assert result.analyzer_results["consumer"].confidence == 1.0
    assert result.analyzer_results["consumer"].sources == ["consumer"]
    rules = {issue.rule for issue in result.aggregated.validation_status.issues}
    assert "upstream-unavailable" in rules


def test_timeout_marks_unfinished_analyzers_and_skips_later_levels(pipeline) -> None:
    release = threading.Event()

    def slow(document, content, context):
        release.wait(5)
        return AnalyzerResult(success=True, data="late")

    pipeline.register_function("slow", slow)
    try:
        result = pipeline.execute(RUST_README, timeout=0.5)
    finally:
        release.set()

    slow_result = result.analyzer_results["slow"]
    assert slow_result.success is False
    assert slow_result.errors[0].code == ANALYZER_TIMEOUT
    [pipeline_error] = [error for error in result.errors if error.code == PIPELINE_TIMEOUT]
    assert "level-0" in pipeline_error.message
    assert "skipped: commands, testing" in pipeline_error.message
    assert result.analyzer_results["language"].success is True

    for name in ("commands", "testing"):
        skipped = result.analyzer_results[name]
        assert skipped.success is False
        assert skipped.errors[0].code == ANALYZER_SKIPPED
        assert "level-0" in skipped.errors[0].message
    metadata = result.aggregated.integration_metadata
    assert {"commands", "testing", "slow"} <= set(metadata.analyzers_failed)
    failed_rules = {
        issue.producer for issue in result.aggregated.validation_status.issues if issue.rule == "analyzer-failed"
    }
    assert {"commands", "testing", "slow"} <= failed_rules


def test_consumer_of_timed_out_analyzer_is_reported_as_skipped(pipeline) -> None:
    release = threading.Event()

    def slow(document, content, context):
        release.wait(5)
        return AnalyzerResult(success=True, data="late")

    pipeline.register_function("slow", slow)
    pipeline.register_function("after", lambda document, content, context: {"ran": True}, ["slow"])
    try:
        result = pipeline.execute(RUST_README, timeout=0.5)
    finally:
        release.set()

    assert result.analyzer_results["after"].errors[0].code == ANALYZER_SKIPPED
    [upstream] = [
        issue
        for issue in result.aggregated.validation_status.issues
        if issue.rule == "upstream-unavailable" and issue.consumer == "after"
    ]
    assert "ran without" not in upstream.message


def test_crashing_analyzer_is_retried_when_recovery_enabled() -> None:
    pipeline = IntegrationPipeline(ParserConfig(enable_recovery=True, max_retries=2, pipeline_timeout=60.0))
    calls = []

    def flaky(document, content, context):
        calls.append(1)
        if len(calls) < 3:
            raise RuntimeError("transient")
        return AnalyzerResult(success=True, data="ok", confidence=0.5, sources=["flaky"])

    pipeline.register_function("flaky", flaky)
    result = pipeline.execute(RUST_README)

    assert len(calls) == 3
    assert result.analyzer_results["flaky"].success is True
    assert result.analyzer_results["flaky"].metadata["attempts"] == 3


def test_failures_are_not_retried_by_default(pipeline) -> None:
    calls = []

    def broken(document, content, context):
        calls.append(1)
        raise RuntimeError("permanent")

    pipeline.register_function("broken", broken)
    result = pipeline.execute(RUST_README)

    assert calls == [1]
    assert result.analyzer_results["broken"].errors[0].code == ANALYZER_ERROR


def test_non_positive_call_timeout_falls_back_to_config(pipeline) -> None:
    result = pipeline.execute(RUST_README, timeout=0)

    assert not [error for error in result.errors if error.code == PIPELINE_TIMEOUT]
    assert any("timeout 0 must be positive" in warning for warning in result.warnings)


def test_disabled_dependency_reports_missing_producer() -> None:
    pipeline = IntegrationPipeline(ParserConfig(enabled_analyzers=["commands"]))

    result = pipeline.execute(RUST_README)

    assert result.execution_order == [["commands"]]
    assert result.analyzer_results["commands"].success is True
    status = result.aggregated.validation_status
    assert status.is_valid is False
    assert [issue.rule for issue in status.issues if issue.severity == "error"] == ["missing-producer"]


def test_empty_content_succeeds_with_zero_confidence(pipeline) -> None:
    result = pipeline.execute("")

    assert result.success is True
    assert result.data.confidence.overall == 0.0
    assert all(item.confidence == 0.0 for item in result.analyzer_results.values())


def test_reset_rebuilds_builtin_registry(pipeline) -> None:
    pipeline.register_function("extra", lambda document, content, context: None)

    pipeline.reset()

    assert "extra" not in pipeline.registry
    assert len(pipeline.registry) == 5
