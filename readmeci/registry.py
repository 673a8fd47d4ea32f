"""Analyzer registry with structural validation and dependency ordering."""

from __future__ import annotations

from dataclasses import dataclass
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .analyzers.base import Analyzer, contract_violation
from .context.analysis import AnalysisContext
from .logging import get_logger
from .markdown import MarkdownDocument
from .models import AnalyzerResult, ReadmeCIError

logger = get_logger("registry")


@dataclass
class RegistrationResult:
    """Outcome of registering an analyzer; failures carry a readable reason."""

    success: bool
    name: Optional[str] = None
    error: Optional[str] = None


class RegistrationError(ReadmeCIError):
    """Raised by :meth:`AnalyzerRegistry.register_or_raise` on rejected registrations."""

    def __init__(self, result: RegistrationResult) -> None:
        super().__init__(result.error or "Analyzer registration failed")
        self.result = result


class FunctionAnalyzer(Analyzer):
    """Adapts a plain ``fn(document, content, context)`` callable to the analyzer contract."""

    def __init__(
        self,
        name: str,
        fn: Callable[..., Any],
        dependencies: Sequence[str] = (),
    ) -> None:
        self.name = name
        self.fn = fn
        self.dependencies = tuple(dependencies)

    def detect(
        self, document: MarkdownDocument, content: str, context: Optional[AnalysisContext]
    ) -> AnalyzerResult:
        return self.fn(document, content, context)


@dataclass(frozen=True)
class _Registration:
    analyzer: Any
    dependencies: Tuple[str, ...]


class AnalyzerRegistry:
    """Holds analyzers and resolves the order they can run in."""

    def __init__(self) -> None:
        self._entries: Dict[str, _Registration] = {}
        self._lock = threading.RLock()

    def register(
        self, analyzer: Any, dependencies: Optional[Iterable[str]] = None
    ) -> RegistrationResult:
        """Validate and add ``analyzer``; problems are reported, never raised."""
        name = getattr(analyzer, "name", None)
        violation = contract_violation(analyzer)
        if violation is not None:
            return self._reject(name if isinstance(name, str) else None, violation)

        if dependencies is None:
            dependencies = getattr(analyzer, "dependencies", None) or ()
        if isinstance(dependencies, str):
            dependencies = (dependencies,)
        deps = tuple(dict.fromkeys(dependencies))
        if any(not isinstance(dep, str) or not dep for dep in deps):
            return self._reject(name, f"Analyzer '{name}' declares a non-string dependency")

        with self._lock:
            if name in self._entries:
                return self._reject(name, f"Analyzer '{name}' is already registered")
            if name in deps:
                return self._reject(name, f"Analyzer '{name}' cannot depend on itself")
            unknown = [dep for dep in deps if dep not in self._entries]
            if unknown:
                return self._reject(
                    name,
                    f"Analyzer '{name}' depends on unknown analyzer(s): {', '.join(unknown)}",
                )
            self._entries[name] = _Registration(analyzer=analyzer, dependencies=deps)

        logger.debug("Registered analyzer %s (depends on: %s)", name, ", ".join(deps) or "none")
        return RegistrationResult(success=True, name=name)

    def register_function(
        self,
        name: str,
        fn: Callable[..., Any],
        dependencies: Sequence[str] = (),
    ) -> RegistrationResult:
        if not callable(fn):
            return self._reject(name, f"Analyzer '{name}' must be registered with a callable")
        return self.register(FunctionAnalyzer(name, fn, dependencies), dependencies)

    def register_or_raise(
        self, analyzer: Any, dependencies: Optional[Iterable[str]] = None
    ) -> RegistrationResult:
        result = self.register(analyzer, dependencies)
        if not result.success:
            raise RegistrationError(result)
        return result

    def unregister(self, name: str) -> bool:
        """Remove ``name`` unless it is unknown or other analyzers depend on it."""
        with self._lock:
            if name not in self._entries:
                return False
            dependents = [
                other for other, entry in self._entries.items() if name in entry.dependencies
            ]
            if dependents:
                logger.warning(
                    "Refusing to unregister %s; required by %s", name, ", ".join(dependents)
                )
                return False
            del self._entries[name]
        logger.debug("Unregistered analyzer %s", name)
        return True

    def get(self, name: str) -> Optional[Any]:
        entry = self._entries.get(name)
        return entry.analyzer if entry is not None else None

    def dependencies_of(self, name: str) -> Tuple[str, ...]:
        entry = self._entries.get(name)
        return entry.dependencies if entry is not None else ()

    def names(self) -> List[str]:
        return list(self._entries)

    def analyzers(self) -> List[Any]:
        return [entry.analyzer for entry in self._entries.values()]

    def edges(self) -> List[Tuple[str, str]]:
        """Return ``(producer, consumer)`` pairs for every declared dependency."""
        return [
            (dependency, name)
            for name, entry in self._entries.items()
            for dependency in entry.dependencies
        ]

    def execution_levels(self) -> List[List[str]]:
        """Group analyzers into levels; every analyzer runs after its dependencies."""
        with self._lock:
            remaining = {name: set(entry.dependencies) for name, entry in self._entries.items()}
        levels: List[List[str]] = []
        while remaining:
            ready = [name for name, deps in remaining.items() if not deps]
            if not ready:
                raise ReadmeCIError(
                    f"Dependency cycle among analyzers: {', '.join(sorted(remaining))}"
                )
            levels.append(ready)
            for name in ready:
                del remaining[name]
            for deps in remaining.values():
                deps.difference_update(ready)
        return levels

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def _reject(name: Optional[str], error: str) -> RegistrationResult:
        logger.warning("Analyzer registration rejected: %s", error)
        return RegistrationResult(success=False, name=name, error=error)


__all__ = [
    "AnalyzerRegistry",
    "FunctionAnalyzer",
    "RegistrationError",
    "RegistrationResult",
]
