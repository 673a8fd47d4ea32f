"""Tests for the markdown block parser."""

from __future__ import annotations

from readmeci.markdown import MarkdownParser, plain_text
from readmeci.stores import ContentCache
from tests._fixtures.readmes import MALFORMED_README, readme


def test_parser_builds_headings_with_depth() -> None:
    document = MarkdownParser().parse(
        readme(
            """
            # Title

            Subtitle
            --------

            ### Deep ###
            """
        )
    ).document

    headings = document.headings()
    assert [(node.value, node.depth) for node in headings] == [
        ("Title", 1),
        ("Subtitle", 2),
        ("Deep", 3),
    ]
    assert headings[1].start_line == 2
    assert headings[1].end_line == 3


def test_fenced_code_records_language_and_fence_lines() -> None:
    document = MarkdownParser().parse("intro\n\n```Bash\nnpm install\nnpm test\n```\n").document

    [block] = document.code_blocks()
    assert block.lang == "bash"
    assert block.value == "npm install\nnpm test"
    assert block.start_line == 2
    assert block.end_line == 5


def test_indented_code_spans_only_its_body() -> None:
    document = MarkdownParser().parse("Run this:\n\n    make build\n    make test\n").document

    [block] = document.code_blocks()
    assert block.lang is None
    assert block.value == "make build\nmake test"
    assert (block.start_line, block.end_line) == (2, 3)


def test_codespans_carry_exact_columns() -> None:
    document = MarkdownParser().parse("Run `npm test` now").document

    [span] = document.find("codespan")
    assert span.value == "npm test"
    assert span.position.start_line == 0
    assert span.position.start_column == 4
    assert span.position.end_column == 13


def test_lists_tables_and_blockquotes_are_nested() -> None:
    document = MarkdownParser().parse(
        readme(
            """
            > Quoted `text` here.

            1. first
            2. second

            | Name | Default |
            |------|---------|
            | `PORT` | 3000 |
            """
        )
    ).document

    [quote] = document.find("blockquote")
    assert quote.children[0].type == "paragraph"
    assert quote.children[0].children[0].value == "text"

    [ordered] = document.find("list")
    assert ordered.ordered is True
    assert [item.value for item in ordered.children] == ["first", "second"]

    [table] = document.find("table")
    header, row = table.children
    assert [cell.value for cell in header.children] == ["Name", "Default"]
    assert [cell.value for cell in row.children] == ["`PORT`", "3000"]
    assert row.children[0].children[0].value == "PORT"


def test_malformed_input_produces_diagnostics_not_errors() -> None:
    output = MarkdownParser().parse(MALFORMED_README)

    codes = {diagnostic.code for diagnostic in output.diagnostics}
    assert codes == {"malformed-table", "unterminated-fence", "unterminated-html"}

    [table] = output.document.find("table")
    assert all(len(row.children) == 2 for row in table.children)
    assert output.document.code_blocks() == []


def test_line_endings_are_normalised() -> None:
    document = MarkdownParser().parse("# Title\r\n\r\nBody text\rmore").document

    assert document.lines == ("# Title", "", "Body text", "more")
    assert document.line_column(document.line_offsets[2] + 4) == (2, 4)


def test_section_at_returns_closest_heading() -> None:
    document = MarkdownParser().parse("# A\n\ntext\n\n## B\n\nmore\n").document

    assert document.section_at(2).value == "A"
    assert document.section_at(6).value == "B"


def test_plain_text_strips_inline_code_markers() -> None:
    document = MarkdownParser().parse("Use `cargo` daily.").document

    [paragraph] = document.find("paragraph")
    assert plain_text(paragraph) == "Use cargo daily."


def test_parse_reuses_cached_document_for_identical_content() -> None:
    cache = ContentCache()
    parser = MarkdownParser(cache)

    first = parser.parse("# Cached\n\ntext")
    second = parser.parse("# Cached\n\ntext")

    assert second is first
    assert second == MarkdownParser().parse("# Cached\n\ntext")
    assert cache.hits == 1


def test_empty_document_is_empty() -> None:
    document = MarkdownParser().parse("  \n").document

    assert document.is_empty
    assert document.children == ()
