"""Public entry point: parse README content or files into a ProjectInfo."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional, Sequence, Union

from .config import ParserConfig, load_config
from .logging import get_logger
from .models import ParseError, ParseResult
from .pipeline import INVALID_INPUT, IntegrationPipeline
from .registry import RegistrationResult

FILE_READ_ERROR = "FILE_READ_ERROR"

Reader = Callable[[Path], str]


def _read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


class ReadmeParser:
    """Facade over :class:`IntegrationPipeline` used by CLI and workflow generation."""

    def __init__(
        self,
        config: ParserConfig | None = None,
        *,
        pipeline: IntegrationPipeline | None = None,
    ) -> None:
        self.config = config or (pipeline.config if pipeline is not None else ParserConfig())
        self.pipeline = pipeline or IntegrationPipeline(self.config)
        self.logger = get_logger("parser")

    @classmethod
    def from_config_file(cls, path: Union[str, Path]) -> "ReadmeParser":
        """Build a parser from ``.readmeci.yml`` (or a directory containing it)."""
        return cls(load_config(Path(path)))

    def parse_content(self, content: str) -> ParseResult:
        if not isinstance(content, str):
            self.logger.warning("Rejected README content of type %s", type(content).__name__)
            return ParseResult(
                success=False,
                errors=[
                    ParseError(
                        code=INVALID_INPUT,
                        message=f"README content must be a string, got {type(content).__name__}",
                        component="parser",
                        recoverable=False,
                    )
                ],
            )
        return self.pipeline.execute(content)

    def parse_file(self, path: Union[str, Path], reader: Optional[Reader] = None) -> ParseResult:
        """Read ``path`` with ``reader`` (UTF-8 text by default) and parse it."""
        file_path = Path(path)
        read = reader or _read_text
        try:
            content = read(file_path)
        except Exception as exc:
            self.logger.error("Failed to read %s: %s", file_path, exc)
            return ParseResult(
                success=False,
                errors=[
                    ParseError(
                        code=FILE_READ_ERROR,
                        message=f"Could not read {file_path}: {exc}",
                        component="parser",
                        recoverable=False,
                    )
                ],
            )
        self.logger.debug("Parsing %s (%d characters)", file_path, len(content) if isinstance(content, str) else 0)
        return self.parse_content(content)

    def register_analyzer(
        self,
        analyzer: Any,
        analyze_fn: Any = None,
        dependencies: Sequence[str] = (),
    ) -> RegistrationResult:
        """Register a custom analyzer.

        Accepts either ``(name, analyze_fn, dependencies)`` or
        ``(analyzer_obj, dependencies)``. Problems come back in the returned
        :class:`RegistrationResult`; nothing is raised.
        """
        if isinstance(analyzer, str):
            if not callable(analyze_fn):
                return RegistrationResult(
                    success=False,
                    name=analyzer,
                    error=f"Analyzer '{analyzer}' must be registered with a callable analyze function",
                )
            return self.pipeline.register_function(analyzer, analyze_fn, tuple(dependencies))

        declared: Optional[Iterable[str]] = analyze_fn if analyze_fn is not None else None
        if declared is None and dependencies:
            declared = dependencies
        return self.pipeline.register(analyzer, declared)

    def unregister_analyzer(self, name: str) -> bool:
        return self.pipeline.unregister(name)

    def analyzer_names(self) -> List[str]:
        return self.pipeline.registry.names()

    def cleanup(self) -> None:
        self.pipeline.cleanup()


__all__ = ["FILE_READ_ERROR", "ReadmeParser"]
