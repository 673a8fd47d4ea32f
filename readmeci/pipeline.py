"""Integration pipeline: runs registered analyzers level by level and aggregates them."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import replace
import hashlib
import inspect
import json
import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from . import confidence as scoring
from .aggregator import ResultAggregator
from .analyzers import discover_analyzers
from .analyzers.base import ANALYZER_ERROR
from .config import ParserConfig, as_dict
from .context.analysis import AnalysisContext
from .logging import get_logger
from .markdown import MarkdownParser, ParseOutput
from .models import AnalyzerResult, ParseError, PipelineResult
from .registry import AnalyzerRegistry, RegistrationResult
from .stores import ContentCache, content_hash

INVALID_INPUT = "INVALID_INPUT"
ANALYZER_TIMEOUT = "ANALYZER_TIMEOUT"
ANALYZER_SKIPPED = "ANALYZER_SKIPPED"
PIPELINE_TIMEOUT = "PIPELINE_TIMEOUT"


class IntegrationPipeline:
    """Coordinates parsing, analyzer scheduling and aggregation for one README."""

    def __init__(
        self,
        config: ParserConfig | None = None,
        *,
        registry: AnalyzerRegistry | None = None,
        cache: ContentCache | None = None,
        aggregator: ResultAggregator | None = None,
    ) -> None:
        self.config = config or ParserConfig()
        self.logger = get_logger("pipeline")
        self.cache = cache or ContentCache()
        self.aggregator = aggregator or ResultAggregator(
            confidence_threshold=self.config.confidence_threshold
        )
        self._declared: Dict[str, Tuple[str, ...]] = {}
        self.registry = registry or self._build_registry()

    # Registration passthroughs used by the parser facade.

    def register(self, analyzer: Any, dependencies: Optional[Iterable[str]] = None) -> RegistrationResult:
        return self.registry.register(analyzer, dependencies)

    def register_function(
        self, name: str, fn: Callable[..., Any], dependencies: Sequence[str] = ()
    ) -> RegistrationResult:
        return self.registry.register_function(name, fn, dependencies)

    def unregister(self, name: str) -> bool:
        removed = self.registry.unregister(name)
        if removed:
            self._declared.pop(name, None)
        return removed

    def execute(self, content: str, *, timeout: float | None = None) -> PipelineResult:
        """Analyse ``content`` and return the aggregated result.

        ``timeout`` overrides ``config.pipeline_timeout`` for this call only.
        """
        if not isinstance(content, str):
            return PipelineResult(
                success=False,
                errors=[
                    ParseError(
                        code=INVALID_INPUT,
                        message=f"README content must be a string, got {type(content).__name__}",
                        component="pipeline",
                        recoverable=False,
                    )
                ],
            )

        monitor = self.config.enable_performance_monitoring
        started = time.perf_counter()
        performance: Dict[str, float] = {}
        cache_hits: List[str] = []

        output = self._parse(content, cache_hits)
        if monitor:
            performance["parse"] = _elapsed(started)

        warnings = [
            f"{diagnostic.code} at line {diagnostic.line + 1}: {diagnostic.message}"
            for diagnostic in output.diagnostics
        ]
        warnings.extend(self.config.diagnostics)

        context = AnalysisContext(document=output.document, content=content, config=self.config)
        levels = self.registry.execution_levels()
        limit = self.config.pipeline_timeout
        if timeout is not None:
            if timeout > 0:
                limit = timeout
            else:
                warnings.append(f"timeout {timeout} must be positive; using {limit}")
        deadline = time.monotonic() + limit

        results: Dict[str, AnalyzerResult] = {}
        timings: Dict[str, float] = {}
        errors: List[ParseError] = []

        executor = ThreadPoolExecutor(max_workers=self.config.max_workers, thread_name_prefix="readmeci")
        try:
            for index, level in enumerate(levels):
                stage = f"level-{index}"
                level_started = time.perf_counter()
                level_results, timed_out = self._run_level(
                    executor, level, context, deadline, limit, timings, cache_hits
                )
                results.update(level_results)
                context = context.with_results(level_results)
                if monitor:
                    performance[f"stage.{stage}"] = _elapsed(level_started)
                if timed_out:
                    skipped = [name for later in levels[index + 1 :] for name in later]
                    message = f"Pipeline timed out after {limit:.2f}s during stage {stage} ({', '.join(timed_out)})"
                    if skipped:
                        message += f"; skipped: {', '.join(skipped)}"
                    self.logger.error(message)
                    errors.append(
                        ParseError(code=PIPELINE_TIMEOUT, message=message, component=stage, severity="error")
                    )
                    for name in skipped:
                        results[name] = AnalyzerResult.failure(
                            ParseError(
                                code=ANALYZER_SKIPPED,
                                message=f"Analyzer '{name}' was skipped after stage {stage} timed out",
                                component=name,
                            )
                        )
                    break
        finally:
            # Timed-out workers keep running; nothing waits for them.
            executor.shutdown(wait=False, cancel_futures=True)

        for name, result in results.items():
            errors.extend(result.errors)
            if monitor and name in timings:
                performance[f"analyzer.{name}"] = timings[name]

        aggregate_started = time.perf_counter()
        aggregated = self.aggregator.aggregate(
            results, dependencies=self._declared_dependencies(), timings=timings
        )
        if monitor:
            performance["aggregate"] = _elapsed(aggregate_started)
            performance["total"] = _elapsed(started)

        usable = any(result.usable for result in results.values())
        success = usable or output.document.is_empty
        if not success:
            self.logger.warning("No analyzer produced usable data")
        return PipelineResult(
            success=success,
            data=aggregated.project_info,
            errors=errors,
            warnings=warnings,
            aggregated=aggregated,
            analyzer_results=results,
            execution_order=levels,
            performance=performance,
            cache_hits=cache_hits,
        )

    def cleanup(self) -> None:
        """Release analyzer resources and drop cached documents and results."""
        for analyzer in self.registry.analyzers():
            hook = getattr(analyzer, "cleanup", None)
            if not callable(hook):
                continue
            try:
                hook()
            except Exception as exc:  # pragma: no cover - plugin cleanup hooks
                self._log_exception(f"Cleanup failed for analyzer {getattr(analyzer, 'name', analyzer)}", exc)
        self.cache.clear()

    def reset(self) -> None:
        """Rebuild the registry from discovery and empty the cache."""
        self.cleanup()
        self._declared = {}
        self.registry = self._build_registry()

    def _build_registry(self) -> AnalyzerRegistry:
        registry = AnalyzerRegistry()
        for analyzer in discover_analyzers(self.config.enabled_analyzers):
            declared = tuple(getattr(analyzer, "dependencies", None) or ())
            self._declared[analyzer.name] = declared
            available = [dependency for dependency in declared if dependency in registry]
            if len(available) != len(declared):
                self.logger.debug(
                    "Analyzer %s runs without disabled dependencies: %s",
                    analyzer.name,
                    ", ".join(dep for dep in declared if dep not in registry),
                )
            registry.register_or_raise(analyzer, available)
        return registry

    def _declared_dependencies(self) -> Dict[str, Tuple[str, ...]]:
        return {
            name: self._declared.get(name, self.registry.dependencies_of(name))
            for name in self.registry.names()
        }

    def _parse(self, content: str, cache_hits: List[str]) -> ParseOutput:
        if not self.config.enable_caching:
            return MarkdownParser().parse(content)
        hits_before = self.cache.hits
        output = MarkdownParser(self.cache).parse(content)
        if self.cache.hits > hits_before:
            cache_hits.append(MarkdownParser.cache_namespace)
        return output

    def _run_level(
        self,
        executor: ThreadPoolExecutor,
        level: Sequence[str],
        context: AnalysisContext,
        deadline: float,
        limit: float,
        timings: Dict[str, float],
        cache_hits: List[str],
    ) -> Tuple[Dict[str, AnalyzerResult], List[str]]:
        results: Dict[str, AnalyzerResult] = {}
        futures: Dict[Future, str] = {}
        for name in level:
            analyzer = self.registry.get(name)
            if analyzer is None:
                continue
            cached = self._cached_result(name, analyzer, context.content)
            if cached is not None:
                self.logger.debug("Using cached result for analyzer %s", name)
                results[name] = cached
                timings[name] = 0.0
                cache_hits.append(name)
                continue
            futures[executor.submit(self._run_analyzer, name, analyzer, context)] = name

        remaining = max(deadline - time.monotonic(), 0.0)
        done, pending = wait(futures, timeout=remaining)

        for future in done:
            name = futures[future]
            result, elapsed = future.result()
            results[name] = result
            timings[name] = elapsed
            self._store_result(name, self.registry.get(name), context.content, result)

        timed_out: List[str] = []
        for future in pending:
            name = futures[future]
            future.cancel()
            timed_out.append(name)
            self.logger.error("Analyzer %s timed out after %.2fs", name, limit)
            results[name] = AnalyzerResult.failure(
                ParseError(
                    code=ANALYZER_TIMEOUT,
                    message=f"Analyzer '{name}' did not finish within {limit:.2f}s",
                    component=name,
                )
            )
        return {name: results[name] for name in level if name in results}, sorted(timed_out)

    def _run_analyzer(self, name: str, analyzer: Any, context: AnalysisContext) -> Tuple[AnalyzerResult, float]:
        started = time.perf_counter()
        attempts = 1 + (self.config.max_retries if self.config.enable_recovery else 0)
        for attempt in range(1, attempts + 1):
            self.logger.debug("Running analyzer %s (attempt %d/%d)", name, attempt, attempts)
            try:
                value = analyzer.analyze(context.document, context.content, context)
            except Exception as exc:
                self._log_exception(f"Analyzer {name} failed", exc)
                result = AnalyzerResult.failure(
                    ParseError(code=ANALYZER_ERROR, message=f"{name} analyzer failed: {exc}", component=name)
                )
            else:
                result = self._normalise(name, value)
            if result.success or not _retryable(result):
                break
            if attempt < attempts:
                self.logger.info("Retrying analyzer %s after failure", name)
        if attempts > 1:
            result = replace(result, metadata={**result.metadata, "attempts": attempt})
        elapsed = _elapsed(started)
        self.logger.debug(
            "Analyzer %s finished in %.4fs (success=%s, confidence=%.2f)",
            name,
            elapsed,
            result.success,
            result.confidence,
        )
        return result, elapsed

    @staticmethod
    def _normalise(name: str, value: Any) -> AnalyzerResult:
        """Coerce whatever an analyzer returned into a well-formed AnalyzerResult."""
        if not isinstance(value, AnalyzerResult):
            return AnalyzerResult(success=True, data=value, metadata={"wrapped": True})
        confidence = round(scoring.clamp(float(value.confidence or 0.0)), 4)
        if not value.success:
            confidence = 0.0
        if confidence <= 0:
            sources: List[str] = []
        else:
            sources = list(value.sources) or [name]
        if confidence == value.confidence and sources == value.sources:
            return value
        return replace(value, confidence=confidence, sources=sources)

    def _cached_result(self, name: str, analyzer: Any, content: str) -> Optional[AnalyzerResult]:
        if not self._is_cacheable(analyzer):
            return None
        cached = self.cache.get(
            f"analyzer:{name}", fingerprint=content_hash(content), signature=self._cache_signature(analyzer)
        )
        if cached is None:
            return None
        return replace(cached, sources=list(cached.sources), metadata=dict(cached.metadata))

    def _store_result(self, name: str, analyzer: Any, content: str, result: AnalyzerResult) -> None:
        if not result.success or not self._is_cacheable(analyzer):
            return
        self.cache.store(
            f"analyzer:{name}",
            fingerprint=content_hash(content),
            value=result,
            signature=self._cache_signature(analyzer),
        )

    def _is_cacheable(self, analyzer: Any) -> bool:
        return (
            self.config.enable_caching
            and analyzer is not None
            and getattr(analyzer, "cacheable", False) is True
            and not getattr(analyzer, "dependencies", ())
        )

    def _cache_signature(self, analyzer: Any) -> str:
        settings = json.dumps(as_dict(self.config), sort_keys=True, default=str)
        settings_hash = hashlib.sha256(settings.encode("utf-8")).hexdigest()[:16]
        return f"{self._analyzer_signature(analyzer)}:{settings_hash}"

    @staticmethod
    def _analyzer_signature(analyzer: Any) -> str:
        module = analyzer.__class__.__module__
        qualname = analyzer.__class__.__qualname__
        cache_version = (
            getattr(analyzer, "cache_version", None)
            or getattr(analyzer.__class__, "cache_version", None)
            or "1"
        )
        try:
            source = inspect.getsource(analyzer.__class__)
        except (OSError, TypeError):
            source_hash = f"{module}:{qualname}"
        else:
            source_hash = hashlib.sha256(source.encode("utf-8")).hexdigest()
        return f"{module}.{qualname}:{cache_version}:{source_hash}"

    def _log_exception(self, message: str, exc: Exception) -> None:
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.warning("%s: %s", message, exc, exc_info=exc)
        else:
            self.logger.warning("%s: %s", message, exc)


def _retryable(result: AnalyzerResult) -> bool:
    """Only analyzer crashes are retried."""
    return any(error.code == ANALYZER_ERROR and error.recoverable for error in result.errors)


def _elapsed(started: float) -> float:
    return round(time.perf_counter() - started, 6)


__all__ = [
    "ANALYZER_ERROR",
    "ANALYZER_SKIPPED",
    "ANALYZER_TIMEOUT",
    "INVALID_INPUT",
    "IntegrationPipeline",
    "PIPELINE_TIMEOUT",
]
