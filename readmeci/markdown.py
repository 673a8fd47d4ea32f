"""Line based markdown parser producing a positioned block tree."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
import re
from typing import Iterator, List, Optional, Sequence, Tuple

from .logging import get_logger
from .models import SourceRange
from .stores import ContentCache, content_hash

_FENCE_OPEN = re.compile(r"^(?P<indent> {0,3})(?P<fence>`{3,}|~{3,})(?P<info>.*)$")
_FENCE_CLOSE = re.compile(r"^ {0,3}(?P<fence>`{3,}|~{3,})[ \t]*$")
_ATX = re.compile(r"^ {0,3}(?P<marks>#{1,6})(?:[ \t]+(?P<text>.*?))?(?:[ \t]+#+)?[ \t]*$")
_SETEXT = re.compile(r"^ {0,3}(?P<char>=+|-+)[ \t]*$")
_THEMATIC = re.compile(r"^ {0,3}(?:(?:-[ \t]*){3,}|(?:\*[ \t]*){3,}|(?:_[ \t]*){3,})$")
_BLOCKQUOTE = re.compile(r"^ {0,3}> ?")
_LIST_ITEM = re.compile(
    r"^(?P<indent>[ \t]*)(?P<marker>[-*+]|\d{1,9}[.)])(?P<space>[ \t]+|$)(?P<text>.*)$"
)
_TABLE_DELIMITER = re.compile(
    r"^ {0,3}\|?[ \t]*:?-+:?[ \t]*(?:\|[ \t]*:?-+:?[ \t]*)*\|?[ \t]*$"
)
_HTML_OPEN = re.compile(r"^ {0,3}</?[A-Za-z][A-Za-z0-9-]*(?:[\s/>]|$)")
_HTML_COMMENT = re.compile(r"^ {0,3}<!--")
_CODESPAN = re.compile(r"(?<!`)(?P<ticks>`+)(?!`)(?P<body>.+?)(?<!`)(?P=ticks)(?!`)")

logger = get_logger("markdown")


@dataclass(frozen=True)
class Node:
    """Block or inline element of the parsed document."""

    type: str
    position: SourceRange
    value: str = ""
    children: Tuple["Node", ...] = ()
    depth: Optional[int] = None
    lang: Optional[str] = None
    ordered: Optional[bool] = None

    def walk(self) -> Iterator["Node"]:
        yield self
        for child in self.children:
            yield from child.walk()

    @property
    def start_line(self) -> int:
        return self.position.start_line

    @property
    def end_line(self) -> int:
        return self.position.end_line


@dataclass(frozen=True)
class Diagnostic:
    code: str
    message: str
    line: int
    severity: str = "warning"


@dataclass(frozen=True)
class MarkdownDocument:
    """Parsed document: top level nodes plus the normalised source lines."""

    content: str
    lines: Tuple[str, ...]
    children: Tuple[Node, ...]
    line_offsets: Tuple[int, ...]
    _headings: Tuple[Node, ...] = field(default=(), repr=False, compare=False)

    def walk(self) -> Iterator[Node]:
        for child in self.children:
            yield from child.walk()

    def find(self, node_type: str) -> List[Node]:
        return [node for node in self.walk() if node.type == node_type]

    def headings(self) -> List[Node]:
        return list(self._headings)

    def code_blocks(self) -> List[Node]:
        return self.find("code")

    def code_block_at(self, line: int) -> Optional[Node]:
        for node in self.code_blocks():
            if node.start_line <= line <= node.end_line:
                return node
        return None

    def section_at(self, line: int) -> Optional[Node]:
        """Return the closest heading at or above ``line``."""
        current: Optional[Node] = None
        for heading in self._headings:
            if heading.start_line > line:
                break
            current = heading
        return current

    def line_column(self, offset: int) -> Tuple[int, int]:
        """Map a character offset into (line, column)."""
        if offset <= 0 or not self.line_offsets:
            return 0, max(offset, 0)
        line = bisect_right(self.line_offsets, offset) - 1
        return line, offset - self.line_offsets[line]

    @property
    def is_empty(self) -> bool:
        return not self.content.strip()


@dataclass(frozen=True)
class ParseOutput:
    document: MarkdownDocument
    diagnostics: Tuple[Diagnostic, ...] = ()


class MarkdownParser:
    """Parses README markdown without ever raising on malformed input."""

    cache_namespace = "markdown"

    def __init__(self, cache: ContentCache | None = None) -> None:
        self._cache = cache

    def parse(self, text: str) -> ParseOutput:
        fingerprint = content_hash(text) if self._cache is not None else ""
        if self._cache is not None:
            cached = self._cache.get(self.cache_namespace, fingerprint=fingerprint)
            if cached is not None:
                logger.debug("Reusing parsed document %s", fingerprint[:12])
                return cached

        normalised = normalise_newlines(text)
        lines = normalised.split("\n")
        builder = _BlockBuilder()
        children = builder.parse(lines, 0, 0)

        offsets: List[int] = []
        position = 0
        for line in lines:
            offsets.append(position)
            position += len(line) + 1

        headings = tuple(
            sorted(
                (node for child in children for node in child.walk() if node.type == "heading"),
                key=lambda node: node.start_line,
            )
        )
        document = MarkdownDocument(
            content=normalised,
            lines=tuple(lines),
            children=tuple(children),
            line_offsets=tuple(offsets),
            _headings=headings,
        )
        output = ParseOutput(document=document, diagnostics=tuple(builder.diagnostics))
        if self._cache is not None:
            output = self._cache.store(self.cache_namespace, fingerprint=fingerprint, value=output)
        return output


def normalise_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


class _BlockBuilder:
    def __init__(self) -> None:
        self.diagnostics: List[Diagnostic] = []

    def parse(self, lines: Sequence[str], base_line: int, base_column: int) -> List[Node]:
        nodes: List[Node] = []
        paragraph: List[Tuple[int, str]] = []
        index = 0
        total = len(lines)

        def flush() -> None:
            if paragraph:
                nodes.append(self._paragraph(paragraph, base_line, base_column))
                paragraph.clear()

        while index < total:
            line = lines[index]
            stripped = line.strip()

            if not stripped:
                flush()
                index += 1
                continue

            fence = _FENCE_OPEN.match(line)
            if fence and not (fence.group("fence")[0] == "`" and "`" in fence.group("info")):
                closing = self._find_fence_close(lines, index, fence.group("fence"))
                if closing is None:
                    self.diagnostics.append(
                        Diagnostic(
                            code="unterminated-fence",
                            message="Code fence is never closed; remaining lines parsed as text",
                            line=base_line + index,
                        )
                    )
                    paragraph.append((index, line))
                    index += 1
                    continue
                flush()
                nodes.append(self._fenced_code(lines, index, closing, fence, base_line, base_column))
                index = closing + 1
                continue

            if _HTML_COMMENT.match(line):
                flush()
                end = self._find_comment_end(lines, index)
                if end is None:
                    self.diagnostics.append(
                        Diagnostic(
                            code="unterminated-html",
                            message="HTML comment is never closed; treated as text",
                            line=base_line + index,
                        )
                    )
                    for offset in range(index, total):
                        if lines[offset].strip():
                            paragraph.append((offset, lines[offset]))
                    flush()
                    break
                nodes.append(self._html(lines, index, end, base_line, base_column))
                index = end + 1
                continue

            heading = _ATX.match(line)
            if heading:
                flush()
                nodes.append(
                    self._heading(
                        heading.group("text") or "",
                        len(heading.group("marks")),
                        index,
                        index,
                        line,
                        base_line,
                        base_column,
                    )
                )
                index += 1
                continue

            setext = _SETEXT.match(line)
            if setext and paragraph:
                depth = 1 if setext.group("char").startswith("=") else 2
                first = paragraph[0][0]
                text = " ".join(item.strip() for _, item in paragraph)
                paragraph.clear()
                nodes.append(
                    self._heading(text, depth, first, index, lines[first], base_line, base_column)
                )
                index += 1
                continue

            if _THEMATIC.match(line):
                flush()
                nodes.append(
                    Node(
                        type="thematic_break",
                        position=_range(base_line + index, base_line + index, base_column, line),
                        value=stripped,
                    )
                )
                index += 1
                continue

            if not paragraph and (line.startswith("    ") or line.startswith("\t")):
                end = self._indented_code_end(lines, index)
                nodes.append(self._indented_code(lines, index, end, base_line, base_column))
                index = end + 1
                continue

            if _BLOCKQUOTE.match(line):
                flush()
                end = index
                inner: List[str] = []
                while end < total:
                    marker = _BLOCKQUOTE.match(lines[end])
                    if not marker:
                        break
                    inner.append(lines[end][marker.end():])
                    end += 1
                column = base_column + (len(line) - len(line.lstrip())) + 2
                nodes.append(
                    Node(
                        type="blockquote",
                        position=_range(base_line + index, base_line + end - 1, base_column, lines[end - 1]),
                        value="\n".join(inner).strip(),
                        children=tuple(self.parse(inner, base_line + index, column)),
                    )
                )
                index = end
                continue

            if (
                "|" in line
                and index + 1 < total
                and "|" in lines[index + 1]
                and _TABLE_DELIMITER.match(lines[index + 1])
            ):
                flush()
                end = index + 2
                while end < total and lines[end].strip() and "|" in lines[end]:
                    end += 1
                nodes.append(self._table(lines, index, end, base_line, base_column))
                index = end
                continue

            item = _LIST_ITEM.match(line)
            if item and (not paragraph or item.group("text").strip()):
                flush()
                list_node, index = self._list(lines, index, base_line, base_column)
                nodes.append(list_node)
                continue

            if not paragraph and _HTML_OPEN.match(line):
                end = index
                while end + 1 < total and lines[end + 1].strip():
                    end += 1
                nodes.append(self._html(lines, index, end, base_line, base_column))
                index = end + 1
                continue

            paragraph.append((index, line))
            index += 1

        flush()
        return nodes

    # ------------------------------------------------------------------
    # Block helpers

    @staticmethod
    def _find_fence_close(lines: Sequence[str], start: int, fence: str) -> Optional[int]:
        for index in range(start + 1, len(lines)):
            closing = _FENCE_CLOSE.match(lines[index])
            if closing is None:
                continue
            marker = closing.group("fence")
            if marker[0] == fence[0] and len(marker) >= len(fence):
                return index
        return None

    @staticmethod
    def _find_comment_end(lines: Sequence[str], start: int) -> Optional[int]:
        first = lines[start]
        if "-->" in first[first.index("<!--") + 4:]:
            return start
        for index in range(start + 1, len(lines)):
            if "-->" in lines[index]:
                return index
        return None

    @staticmethod
    def _indented_code_end(lines: Sequence[str], start: int) -> int:
        end = start
        index = start + 1
        while index < len(lines):
            line = lines[index]
            if line.startswith("    ") or line.startswith("\t"):
                end = index
            elif line.strip():
                break
            index += 1
        return end

    def _fenced_code(
        self,
        lines: Sequence[str],
        start: int,
        end: int,
        fence: re.Match[str],
        base_line: int,
        base_column: int,
    ) -> Node:
        indent = len(fence.group("indent"))
        body = [_strip_indent(line, indent) for line in lines[start + 1:end]]
        info = fence.group("info").strip()
        lang = info.split()[0].strip("{}.").lower() if info else None
        return Node(
            type="code",
            position=_range(base_line + start, base_line + end, base_column, lines[end]),
            value="\n".join(body),
            lang=lang or None,
        )

    def _indented_code(
        self, lines: Sequence[str], start: int, end: int, base_line: int, base_column: int
    ) -> Node:
        body = [line[4:] if line.startswith("    ") else line.lstrip("\t") for line in lines[start:end + 1]]
        return Node(
            type="code",
            position=_range(base_line + start, base_line + end, base_column, lines[end]),
            value="\n".join(body),
        )

    def _html(
        self, lines: Sequence[str], start: int, end: int, base_line: int, base_column: int
    ) -> Node:
        return Node(
            type="html",
            position=_range(base_line + start, base_line + end, base_column, lines[end]),
            value="\n".join(lines[start:end + 1]),
        )

    def _heading(
        self,
        text: str,
        depth: int,
        start: int,
        end: int,
        source_line: str,
        base_line: int,
        base_column: int,
    ) -> Node:
        column = source_line.find(text) if text else 0
        return Node(
            type="heading",
            position=SourceRange(
                base_line + start,
                base_line + end,
                base_column,
                base_column + max(len(source_line) - 1, 0),
            ),
            value=text.strip(),
            depth=depth,
            children=tuple(_codespans(text, base_line + start, base_column + max(column, 0))),
        )

    def _paragraph(
        self, paragraph: Sequence[Tuple[int, str]], base_line: int, base_column: int
    ) -> Node:
        spans: List[Node] = []
        for index, line in paragraph:
            spans.extend(_codespans(line, base_line + index, base_column))
        first, last = paragraph[0][0], paragraph[-1][0]
        return Node(
            type="paragraph",
            position=_range(base_line + first, base_line + last, base_column, paragraph[-1][1]),
            value="\n".join(line.strip() for _, line in paragraph),
            children=tuple(spans),
        )

    def _table(
        self, lines: Sequence[str], start: int, end: int, base_line: int, base_column: int
    ) -> Node:
        header = _split_row(lines[start])
        width = len(header)
        rows: List[Node] = [self._table_row(lines[start], start, header, base_line, base_column)]
        for index in range(start + 2, end):
            cells = _split_row(lines[index])
            if len(cells) != width:
                self.diagnostics.append(
                    Diagnostic(
                        code="malformed-table",
                        message=f"Table row has {len(cells)} cells, header has {width}",
                        line=base_line + index,
                    )
                )
                cells = (cells + [("", 0)] * width)[:width]
            rows.append(self._table_row(lines[index], index, cells, base_line, base_column))
        return Node(
            type="table",
            position=_range(base_line + start, base_line + end - 1, base_column, lines[end - 1]),
            value="\n".join(lines[start:end]),
            children=tuple(rows),
        )

    @staticmethod
    def _table_row(
        line: str,
        index: int,
        cells: Sequence[Tuple[str, int]],
        base_line: int,
        base_column: int,
    ) -> Node:
        cell_nodes = []
        for text, column in cells:
            line_no = base_line + index
            cell_nodes.append(
                Node(
                    type="table_cell",
                    position=SourceRange(
                        line_no,
                        line_no,
                        base_column + column,
                        base_column + column + max(len(text) - 1, 0),
                    ),
                    value=text,
                    children=tuple(_codespans(text, line_no, base_column + column)),
                )
            )
        return Node(
            type="table_row",
            position=_range(base_line + index, base_line + index, base_column, line),
            value=line.strip(),
            children=tuple(cell_nodes),
        )

    def _list(
        self, lines: Sequence[str], start: int, base_line: int, base_column: int
    ) -> Tuple[Node, int]:
        first = _LIST_ITEM.match(lines[start])
        assert first is not None
        ordered = first.group("marker")[0] not in "-*+"
        list_indent = len(first.group("indent"))
        items: List[Node] = []
        index = start
        total = len(lines)

        while index < total:
            match = _LIST_ITEM.match(lines[index])
            if match is None or _THEMATIC.match(lines[index]):
                break
            if (match.group("marker")[0] not in "-*+") != ordered:
                break
            if len(match.group("indent")) > list_indent + 1 and items:
                break
            content_column = match.start("text") if match.group("text") else match.end("marker") + 1
            item_start = index
            body = [match.group("text")]
            index += 1
            while index < total:
                line = lines[index]
                if not line.strip():
                    lookahead = index
                    while lookahead < total and not lines[lookahead].strip():
                        lookahead += 1
                    if lookahead < total and _indent_of(lines[lookahead]) >= content_column:
                        body.extend([""] * (lookahead - index))
                        index = lookahead
                        continue
                    if lookahead < total and _is_sibling(lines[lookahead], ordered, content_column):
                        index = lookahead
                    break
                if _indent_of(line) >= content_column:
                    body.append(line[content_column:])
                    index += 1
                    continue
                if _LIST_ITEM.match(line) or _starts_block(line) or not body[-1].strip():
                    break
                body.append(line.strip())
                index += 1
            while body and not body[-1].strip():
                body.pop()
            item_end = item_start + max(len(body) - 1, 0)
            children = self.parse(body, base_line + item_start, base_column + content_column)
            items.append(
                Node(
                    type="list_item",
                    position=_range(
                        base_line + item_start, base_line + item_end, base_column, lines[item_end]
                    ),
                    value="\n".join(body).strip(),
                    children=tuple(children),
                    ordered=ordered,
                )
            )
            if index < total and not _is_sibling(lines[index], ordered, content_column):
                break

        last = items[-1].end_line - base_line
        return (
            Node(
                type="list",
                position=_range(base_line + start, base_line + last, base_column, lines[last]),
                value="",
                children=tuple(items),
                ordered=ordered,
            ),
            index,
        )


def _codespans(text: str, line: int, column: int) -> List[Node]:
    spans: List[Node] = []
    for match in _CODESPAN.finditer(text):
        body = match.group("body")
        if len(body) > 2 and body.startswith(" ") and body.endswith(" "):
            body = body[1:-1]
        start = column + match.start()
        spans.append(
            Node(
                type="codespan",
                position=SourceRange(line, line, start, column + match.end() - 1),
                value=body,
            )
        )
    return spans


def _split_row(line: str) -> List[Tuple[str, int]]:
    """Split a table row on unescaped pipes, returning (text, column) pairs."""
    cells: List[Tuple[str, int]] = []
    stripped = line.rstrip()
    begin = len(stripped) - len(stripped.lstrip())
    if stripped[begin:begin + 1] == "|":
        begin += 1
    end = len(stripped)
    if stripped.endswith("|") and not stripped.endswith("\\|") and end - 1 >= begin:
        end -= 1
    cursor = begin
    in_code = False
    for position in range(begin, end + 1):
        char = stripped[position] if position < end else "|"
        if char == "`":
            in_code = not in_code
        if position < end and (char != "|" or in_code or stripped[position - 1] == "\\"):
            continue
        raw = stripped[cursor:position]
        leading = len(raw) - len(raw.lstrip())
        cells.append((raw.strip().replace("\\|", "|"), cursor + leading))
        cursor = position + 1
    return cells


def _range(start: int, end: int, base_column: int, last_line: str) -> SourceRange:
    return SourceRange(start, end, base_column, base_column + max(len(last_line) - 1, 0))


def _strip_indent(line: str, amount: int) -> str:
    removable = len(line) - len(line.lstrip(" "))
    return line[min(removable, amount):]


def _indent_of(line: str) -> int:
    return len(line.expandtabs(4)) - len(line.expandtabs(4).lstrip())


def _is_sibling(line: str, ordered: bool, content_column: int) -> bool:
    match = _LIST_ITEM.match(line)
    if match is None or _THEMATIC.match(line):
        return False
    if (match.group("marker")[0] not in "-*+") != ordered:
        return False
    return len(match.group("indent")) < content_column


def _starts_block(line: str) -> bool:
    return bool(
        _ATX.match(line)
        or _FENCE_OPEN.match(line)
        or _BLOCKQUOTE.match(line)
        or _THEMATIC.match(line)
        or _HTML_COMMENT.match(line)
    )


def plain_text(node: Node) -> str:
    """Return the node's text with inline code markers removed."""
    return node.value.replace("`", "")


__all__ = [
    "Diagnostic",
    "MarkdownDocument",
    "MarkdownParser",
    "Node",
    "ParseOutput",
    "normalise_newlines",
    "plain_text",
]
