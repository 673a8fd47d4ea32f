"""Analyzer implementations and discovery utilities."""

from __future__ import annotations

from importlib.metadata import EntryPoint, entry_points
from typing import Callable, Iterable, List, Sequence, Set, Union

from .base import Analyzer, AnalyzerContractError, SupportsAnalyze, contract_violation
from .commands import CommandExtractor
from .dependencies import DependencyExtractor
from .language import LanguageDetector
from .metadata import MetadataExtractor
from .testing import TestingDetector

_ENTRY_POINT_GROUP = "readmeci.analyzers"

AnalyzerLike = Union[Analyzer, SupportsAnalyze]

_BUILTIN_FACTORIES: dict[str, Callable[[], Analyzer]] = {
    "language": LanguageDetector,
    "metadata": MetadataExtractor,
    "dependencies": DependencyExtractor,
    "commands": CommandExtractor,
    "testing": TestingDetector,
}

BUILTIN_ANALYZERS = tuple(_BUILTIN_FACTORIES)


def discover_analyzers(enabled: Sequence[str] | None = None) -> List[AnalyzerLike]:
    """Return instantiated analyzers, honoring optional enabled names.

    Built-ins come first in dependency order, followed by analyzers published
    under the ``readmeci.analyzers`` entry point group. An empty ``enabled``
    sequence means every analyzer.
    """

    enabled_set: Set[str] | None = None
    if enabled:
        enabled_set = {name.lower() for name in enabled}

    analyzers: List[AnalyzerLike] = []
    seen: Set[str] = set()

    def _add(name: str, factory: Callable[[], AnalyzerLike]) -> None:
        key = name.lower()
        if enabled_set is not None and key not in enabled_set:
            return
        if key in seen:
            return
        instance = factory()
        violation = contract_violation(instance)
        if violation is not None:
            raise TypeError(f"Analyzer factory for '{name}' did not return an analyzer: {violation}")
        analyzers.append(instance)
        seen.add(key)
        if enabled_set is not None:
            enabled_set.discard(key)

    for name, factory in _BUILTIN_FACTORIES.items():
        _add(name, factory)

    for entry in _iter_entry_points():
        name = entry.name
        try:
            loaded = entry.load()
        except Exception as exc:  # pragma: no cover - depends on installed plugins
            raise RuntimeError(f"Failed to load analyzer entry point '{name}': {exc}") from exc

        def _factory(obj: object = loaded) -> AnalyzerLike:
            return _coerce_analyzer(obj)

        _add(name, _factory)

    if enabled_set:
        missing = ", ".join(sorted(enabled_set))
        raise ValueError(f"Unknown analyzers requested: {missing}")

    return analyzers


def _coerce_analyzer(obj: object) -> AnalyzerLike:
    """Instantiate classes and call factories; the caller checks the contract."""
    if isinstance(obj, type) or (callable(obj) and not hasattr(obj, "analyze")):
        return obj()
    return obj  # type: ignore[return-value]


def _iter_entry_points() -> Iterable[EntryPoint]:
    return entry_points().select(group=_ENTRY_POINT_GROUP)


__all__ = [
    "Analyzer",
    "AnalyzerContractError",
    "BUILTIN_ANALYZERS",
    "CommandExtractor",
    "DependencyExtractor",
    "LanguageDetector",
    "MetadataExtractor",
    "SupportsAnalyze",
    "TestingDetector",
    "discover_analyzers",
]
