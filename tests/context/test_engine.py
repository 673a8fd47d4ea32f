"""Tests for the language context engine."""

from __future__ import annotations

from itertools import combinations

from readmeci.context import LanguageContextEngine
from tests._fixtures.readmes import RUST_README, readme

MIXED_README = readme(
    """
    # Mixed

    ```python
    import os
    ```

    ```javascript
    const x = require('x')
    ```
    """
)


def test_rust_fence_produces_confident_context(parse_document) -> None:
    detection = LanguageContextEngine().detect_with_context(parse_document(RUST_README))

    assert detection.language_names() == ["Rust"]
    fence_context = detection.get_context_at(7)
    assert fence_context is not None
    assert fence_context.language == "Rust"
    assert fence_context.confidence > 0.5
    assert fence_context.source_range.start_line == 6
    assert fence_context.source_range.end_line == 9
    assert fence_context.metadata.source == "code-block"


def test_same_language_contexts_never_overlap(parse_document) -> None:
    detection = LanguageContextEngine().detect_with_context(parse_document(RUST_README))

    rust = detection.contexts_for("Rust")
    assert len(rust) == 2
    for first, second in combinations(rust, 2):
        assert not first.source_range.overlaps(second.source_range)


def test_heading_between_same_language_contexts_is_section_change(parse_document) -> None:
    detection = LanguageContextEngine().detect_with_context(parse_document(RUST_README))

    [boundary] = detection.get_context_boundaries()
    assert boundary.transition_type == "section-change"
    assert boundary.position == 4


def test_language_change_boundary_and_penalty(parse_document) -> None:
    detection = LanguageContextEngine().detect_with_context(parse_document(MIXED_README))

    assert [context.language for context in detection.get_all_contexts()] == ["Python", "JavaScript"]
    [boundary] = detection.boundaries
    assert boundary.transition_type == "language-change"
    assert (boundary.from_language, boundary.to_language) == ("Python", "JavaScript")
    assert boundary.position == 6

    assert detection.get_context_at(3).language == "Python"
    assert detection.get_context_at(7).language == "JavaScript"
    assert detection.get_context_at(5) is None
    best = max(info.confidence for info in detection.languages)
    assert detection.overall_confidence < best


def test_get_context_maps_character_offsets(parse_document) -> None:
    document = parse_document(MIXED_README)
    detection = LanguageContextEngine().detect_with_context(document)

    offset = document.line_offsets[3] + 2
    assert detection.get_context(offset).language == "Python"
    assert detection.get_context(-1) is None


def test_keywords_inside_other_language_fences_are_ignored(parse_document) -> None:
    document = parse_document("```python\n# uses npm\nprint('x')\n```\n")

    detection = LanguageContextEngine().detect_with_context(document)

    assert detection.language_names() == ["Python"]


def test_unlabeled_fence_and_empty_input_produce_nothing(parse_document) -> None:
    engine = LanguageContextEngine()

    for text in ("", "```\nfoo bar\n```\n"):
        detection = engine.detect_with_context(parse_document(text))
        assert detection.contexts == ()
        assert detection.languages == ()
        assert detection.overall_confidence == 0.0


def test_max_contexts_keeps_most_confident(parse_document) -> None:
    detection = LanguageContextEngine(max_contexts=1).detect_with_context(parse_document(RUST_README))

    [context] = detection.contexts
    assert context.source_range.start_line == 6


def test_source_tracking_records_snippets_with_context(parse_document) -> None:
    detection = LanguageContextEngine().detect_with_context(parse_document(RUST_README))

    tracked = detection.source_tracking["Rust"]
    assert tracked
    mention = next(item for item in tracked if item.evidence.location.start_line == 2)
    assert mention.snippet == "A fast search tool written in Rust."
    assert mention.context_before == ("# ripfast", "")


def test_frameworks_are_reported_on_language_info(parse_document) -> None:
    detection = LanguageContextEngine().detect_with_context(
        parse_document("# App\n\nA Python service built on Django.\n")
    )

    python = detection.language("Python")
    assert python is not None
    assert python.frameworks == ["Django"]
    assert "text-mention" in python.sources
