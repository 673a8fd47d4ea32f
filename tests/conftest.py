from __future__ import annotations

from typing import Callable, Iterator

import pytest

from readmeci.analyzers import LanguageDetector
from readmeci.config import ParserConfig
from readmeci.context import AnalysisContext
from readmeci.markdown import MarkdownDocument, MarkdownParser
from readmeci.parser import ReadmeParser


@pytest.fixture
def parse_document() -> Callable[[str], MarkdownDocument]:
    """Return a helper turning markdown text into a parsed document."""
    parser = MarkdownParser()

    def _parse(text: str) -> MarkdownDocument:
        return parser.parse(text).document

    return _parse


@pytest.fixture
def readme_parser() -> Iterator[ReadmeParser]:
    """Provide a parser with the built-in analyzers and a generous timeout."""
    parser = ReadmeParser(ParserConfig(pipeline_timeout=60.0))
    yield parser
    parser.cleanup()


@pytest.fixture
def language_context() -> Callable[[str], AnalysisContext]:
    """Return a helper building an analysis context with language results attached."""
    parser = MarkdownParser()

    def _build(text: str) -> AnalysisContext:
        document = parser.parse(text).document
        context = AnalysisContext(document=document, content=text)
        return context.with_results({"language": LanguageDetector().analyze(document, text)})

    return _build
