"""Project metadata analyzer: name, description, layout and environment."""

from __future__ import annotations

import re
from typing import Dict, List, Optional

from .. import confidence as scoring
from ..context.analysis import AnalysisContext
from ..markdown import MarkdownDocument, Node, plain_text
from ..models import AnalyzerResult, EnvironmentVariable, Evidence, ProjectMetadata, SourceRange
from .base import Analyzer, build_result

MAX_STRUCTURE_ENTRIES = 30


class MetadataExtractor(Analyzer):
    """Extracts project level metadata from the README."""

    name = "metadata"

    INVALID_NAMES = {
        "readme",
        "documentation",
        "docs",
        "guide",
        "tutorial",
        "example",
        "sample",
        "demo",
        "test",
        "installation",
        "setup",
        "getting started",
        "introduction",
        "overview",
    }
    GENERIC_NAMES = {
        "project",
        "app",
        "application",
        "tool",
        "library",
        "package",
        "service",
        "api",
        "website",
        "site",
        "repo",
        "repository",
    }
    COMMON_ENV_DESCRIPTIONS = {
        "NODE_ENV": "Node.js environment (development, production, test)",
        "PORT": "Server port number",
        "HOST": "Server host address",
        "DATABASE_URL": "Database connection URL",
        "API_KEY": "API authentication key",
        "SECRET_KEY": "Application secret key",
        "JWT_SECRET": "JWT token signing secret",
        "REDIS_URL": "Redis connection URL",
        "MONGODB_URI": "MongoDB connection URI",
        "DEBUG": "Debug mode flag",
        "LOG_LEVEL": "Logging level (debug, info, warn, error)",
    }
    COMMON_ENV_VARS = (
        "NODE_ENV",
        "PORT",
        "HOST",
        "DATABASE_URL",
        "API_KEY",
        "SECRET_KEY",
        "JWT_SECRET",
        "REDIS_URL",
        "MONGODB_URI",
        "POSTGRES_URL",
        "MYSQL_URL",
        "AWS_ACCESS_KEY_ID",
        "AWS_SECRET_ACCESS_KEY",
        "AWS_REGION",
        "GITHUB_TOKEN",
        "DEBUG",
        "LOG_LEVEL",
        "APP_ENV",
        "CONFIG_PATH",
    )
    ENV_FENCE_TAGS = {None, "env", "dotenv", "bash", "sh", "shell", "zsh", "console", "properties", "ini"}
    TREE_FENCE_TAGS = {"tree", "directory", "structure", "files", "file", "text", "plaintext", "txt"}
    KNOWN_FILES = (
        "package.json",
        "tsconfig.json",
        "webpack.config.js",
        "babel.config.js",
        "jest.config.js",
        ".env",
        ".env.example",
        ".gitignore",
        "README.md",
        "LICENSE",
        "Dockerfile",
        "docker-compose.yml",
        "Makefile",
        "requirements.txt",
        "setup.py",
        "pyproject.toml",
        "Cargo.toml",
        "go.mod",
        "pom.xml",
        "build.gradle",
        "composer.json",
        "Gemfile",
    )

    _GITHUB_URL = re.compile(r"github\.com/[^/\s]+/([^/\s)#?\]]+)", re.IGNORECASE)
    _PACKAGE_NAME = re.compile(r'"name"\s*:\s*"([^"]+)"')
    _IMAGE = re.compile(r"!\[[^\]]*\]\([^)]*\)")
    _LINK = re.compile(r"\[([^\]]*)\]\([^)]*\)")
    _MARKUP = re.compile(r"[#*`_~]")
    _EMOJI = re.compile(
        "[\U0001F000-\U0001FAFF\U00002600-\U000027BF\U0001F1E6-\U0001F1FF\U0000FE0F\U0000200D]+"
    )
    _SHORTCODE = re.compile(r":[a-z0-9_+-]+:")
    _TREE_MARKERS = re.compile(r"^[\s│├└─|`+\\-]+")
    _DIRECTORY_MENTION = re.compile(
        r"(?<![\w/.-])(?:src|source|lib|app|components?|pages?|routes?|controllers?|models?|views?|"
        r"utils?|helpers?|services?|tests?|spec|docs?|public|assets?|static|build|dist|out|target|"
        r"cmd|pkg|internal|scripts|config)/(?:[\w.-]+/?)*",
    )
    _SOURCE_FILE = re.compile(r"(?<![\w/.-])[A-Za-z_][\w-]*\.(?:py|ts|tsx|js|jsx)\b")

    _ASSIGNMENT = re.compile(
        r"^\s*(?:[-*+]\s+)?`?(?:export\s+|set\s+)?(?P<name>[A-Z][A-Z0-9_]*)\s*=\s*"
        r"(?P<value>\"[^\"]*\"|'[^']*'|[^\s`]*)`?\s*(?:#.*)?$"
    )
    _INLINE_ASSIGNMENT = re.compile(r"\b(?P<name>[A-Z][A-Z0-9_]+)=(?P<value>\"[^\"]*\"|'[^']*'|[^\s`'\"]+)")
    _REFERENCES = (
        re.compile(r"process\.env\.(?P<name>[A-Z][A-Z0-9_]*)"),
        re.compile(r"os\.environ\[[\"'](?P<name>[A-Z][A-Z0-9_]*)[\"']\]"),
        re.compile(r"os\.(?:environ\.get|getenv)\(\s*[\"'](?P<name>[A-Z][A-Z0-9_]*)[\"']"),
        re.compile(r"std::env::var\(\s*\"(?P<name>[A-Z][A-Z0-9_]*)\""),
        re.compile(r"System\.getenv\(\s*\"(?P<name>[A-Z][A-Z0-9_]*)\""),
        re.compile(r"ENV\[[\"'](?P<name>[A-Z][A-Z0-9_]*)[\"']\]"),
        re.compile(r"\$\{(?P<name>[A-Z][A-Z0-9_]*)(?::-(?P<value>[^}]*))?\}"),
    )
    _LIST_VARIABLE = re.compile(r"^`?(?P<name>[A-Z][A-Z0-9_]*)`?\s*(?:[:\-–]|\()\s*(?P<description>.+)$")
    _ENV_SECTION = re.compile(r"environment|\benv\b|config|variables|settings", re.IGNORECASE)
    _ENV_HINTS = (
        re.compile(r"(?:environment|env|config)\w*\s.*(?:variable|setting|configuration)", re.IGNORECASE),
        re.compile(r"\.env(?:\.example|\.local)?\b", re.IGNORECASE),
        re.compile(r"^\s*(?:export|set)\s+[A-Z][A-Z0-9_]*", re.MULTILINE),
        re.compile(r"^\s*(?:[-*+]\s+)?`?[A-Z][A-Z0-9_]*=", re.MULTILINE),
        re.compile(r"process\.env\.|os\.environ|os\.getenv|std::env::var|System\.getenv|\$\{[A-Z]"),
    )
    _NEGATIVE_ENV = re.compile(r"\bno\s+environment\s+variables\b|\bwithout\s+(?:any\s+)?environment\b", re.IGNORECASE)
    _REQUIRED_WORDS = re.compile(r"\b(?:required|must|mandatory)\b", re.IGNORECASE)
    _OPTIONAL_WORDS = re.compile(r"\b(?:optional|default|defaults)\b", re.IGNORECASE)
    _ENV_NAME = re.compile(r"^[A-Z][A-Z0-9_]*$")

    def detect(
        self, document: MarkdownDocument, content: str, context: Optional[AnalysisContext]
    ) -> AnalyzerResult:
        evidence: List[Evidence] = []
        name = self._extract_name(document, evidence)
        description = self._extract_description(document, evidence)
        structure = self._extract_structure(document, evidence)
        environment = self._extract_environment(document, evidence)

        metadata = ProjectMetadata(
            name=name,
            description=description,
            structure=structure,
            environment=environment,
        )
        confidence = scoring.score(evidence)
        return build_result(
            metadata,
            confidence,
            scoring.source_kinds(evidence),
            metadata={"evidence": len(evidence)},
        )

    # ------------------------------------------------------------------
    # Name

    def _extract_name(self, document: MarkdownDocument, evidence: List[Evidence]) -> Optional[str]:
        headings = document.headings()
        for heading in headings:
            if heading.depth == 1:
                candidate = self._usable_name(heading.value)
                if candidate:
                    evidence.append(
                        scoring.make_evidence(scoring.HEADING, candidate, heading.position, snippet=heading.value)
                    )
                    return candidate

        for index, line in enumerate(document.lines):
            match = self._GITHUB_URL.search(line)
            if match:
                candidate = re.sub(r"\.git$", "", match.group(1))
                if self._is_valid_name(candidate):
                    evidence.append(scoring.make_evidence(scoring.PATTERN, candidate, _line_range(index, line)))
                    return candidate

        for node in document.code_blocks():
            if node.lang not in {"json", None}:
                continue
            match = self._PACKAGE_NAME.search(node.value)
            if match and self._is_valid_name(match.group(1)):
                evidence.append(scoring.make_evidence(scoring.CONFIG_FILE, match.group(1), node.position))
                return match.group(1)

        for heading in headings:
            if heading.depth == 2:
                candidate = self._usable_name(heading.value)
                if candidate:
                    evidence.append(
                        scoring.make_evidence(
                            scoring.HEADING, candidate, heading.position, weight=0.4, snippet=heading.value
                        )
                    )
                    return candidate
        return None

    def clean_name(self, text: str) -> str:
        cleaned = self._IMAGE.sub("", text)
        cleaned = self._LINK.sub(r"\1", cleaned)
        cleaned = self._SHORTCODE.sub("", cleaned)
        cleaned = self._EMOJI.sub("", cleaned)
        cleaned = self._MARKUP.sub("", cleaned)
        return " ".join(cleaned.split())

    def _usable_name(self, text: str) -> Optional[str]:
        candidate = self.clean_name(text)
        if self._is_valid_name(candidate) and candidate.lower() not in self.GENERIC_NAMES:
            return candidate
        return None

    def _is_valid_name(self, name: str) -> bool:
        return 2 <= len(name) <= 100 and name.lower() not in self.INVALID_NAMES

    # ------------------------------------------------------------------
    # Description

    def _extract_description(self, document: MarkdownDocument, evidence: List[Evidence]) -> Optional[str]:
        for node in document.children:
            if node.type != "blockquote":
                continue
            for child in node.children:
                if child.type != "paragraph":
                    continue
                description = self._clean_description(plain_text(child))
                if self._is_valid_description(description):
                    evidence.append(scoring.make_evidence(scoring.TEXT_MENTION, description, child.position))
                    return description

        seen_title = False
        for node in document.children:
            if node.type == "heading" and node.depth == 1:
                seen_title = True
                continue
            if seen_title and node.type == "paragraph":
                description = self._clean_description(plain_text(node))
                if self._is_valid_description(description):
                    evidence.append(scoring.make_evidence(scoring.TEXT_MENTION, description, node.position))
                    return description
        return None

    def _clean_description(self, text: str) -> str:
        cleaned = self._IMAGE.sub("", text)
        cleaned = self._LINK.sub(r"\1", cleaned)
        cleaned = re.sub(r"[*_~]", "", cleaned)
        return " ".join(cleaned.split())

    @staticmethod
    def _is_valid_description(text: str) -> bool:
        return 10 <= len(text) <= 500 and text[-1] in ".!?"

    # ------------------------------------------------------------------
    # Structure

    def _extract_structure(self, document: MarkdownDocument, evidence: List[Evidence]) -> List[str]:
        entries: Dict[str, None] = {}

        for node in document.code_blocks():
            body = node.value.split("\n")
            is_tree = node.lang in self.TREE_FENCE_TAGS or any(marker in node.value for marker in ("├", "└", "│"))
            if not is_tree:
                continue
            for line in body:
                entry = self._structure_entry(line)
                if entry:
                    entries.setdefault(entry, None)
                    evidence.append(scoring.make_evidence(scoring.PATTERN, entry, node.position, weight=0.5))

        code_lines = {
            line
            for node in document.code_blocks()
            for line in range(node.start_line, node.end_line + 1)
        }
        for index, line in enumerate(document.lines):
            if index in code_lines:
                continue
            for match in self._DIRECTORY_MENTION.finditer(line):
                entry = match.group(0).rstrip(".")
                if "." not in entry.rsplit("/", 1)[-1] and not entry.endswith("/"):
                    entry += "/"
                self._add_mention(entries, evidence, entry, index, match.start(), match.end())
            for known in self.KNOWN_FILES:
                for match in re.finditer(r"(?<![\w./-])" + re.escape(known) + r"(?![\w-]|\.\w)", line):
                    self._add_mention(entries, evidence, known, index, match.start(), match.end())
            for match in self._SOURCE_FILE.finditer(line):
                self._add_mention(entries, evidence, match.group(0), index, match.start(), match.end())

        return list(entries)[:MAX_STRUCTURE_ENTRIES]

    def _structure_entry(self, line: str) -> Optional[str]:
        stripped = line.split("#", 1)[0].split("//", 1)[0].rstrip()
        stripped = self._TREE_MARKERS.sub("", stripped).strip()
        if not stripped or stripped.startswith(("$", ">")):
            return None
        entry = stripped.split()[0]
        if not 2 <= len(entry) <= 200 or not re.search(r"[\w]", entry):
            return None
        if entry in {"...", ".", ".."}:
            return None
        return entry

    @staticmethod
    def _add_mention(
        entries: Dict[str, None],
        evidence: List[Evidence],
        entry: str,
        line: int,
        start: int,
        end: int,
    ) -> None:
        if not 2 <= len(entry) <= 200 or entry in entries:
            return
        entries[entry] = None
        evidence.append(
            scoring.make_evidence(scoring.PATTERN, entry, SourceRange(line, line, start, end - 1), weight=0.4)
        )

    # ------------------------------------------------------------------
    # Environment

    def _extract_environment(
        self, document: MarkdownDocument, evidence: List[Evidence]
    ) -> List[EnvironmentVariable]:
        content = document.content
        if self._NEGATIVE_ENV.search(content):
            return []
        env_section = any(self._ENV_SECTION.search(heading.value or "") for heading in document.headings())
        if not env_section and not any(pattern.search(content) for pattern in self._ENV_HINTS):
            return []

        found: Dict[str, EnvironmentVariable] = {}
        code_lines: Dict[int, Node] = {}
        for node in document.code_blocks():
            for line in range(node.start_line, node.end_line + 1):
                code_lines[line] = node

        for index, line in enumerate(document.lines):
            node = code_lines.get(index)
            if node is not None and node.lang not in self.ENV_FENCE_TAGS:
                self._references(found, evidence, index, line)
                continue
            match = self._ASSIGNMENT.match(line)
            if match:
                self._record_assignment(found, evidence, document, index, match.group("name"), match.group("value"))
            elif node is None:
                for inline in self._INLINE_ASSIGNMENT.finditer(line):
                    self._record_assignment(
                        found, evidence, document, index, inline.group("name"), inline.group("value")
                    )
            self._references(found, evidence, index, line)

        self._listed_variables(document, found, evidence)
        self._common_variables(document, found, evidence)
        return list(found.values())

    def _record_assignment(
        self,
        found: Dict[str, EnvironmentVariable],
        evidence: List[Evidence],
        document: MarkdownDocument,
        index: int,
        name: str,
        raw_value: str,
    ) -> None:
        if not self._is_env_name(name):
            return
        value = raw_value.strip().strip("\"'")
        if " #" in value:
            value = value.split(" #", 1)[0].strip()
        default = value or None
        prose = self._surrounding_prose(document, index)
        found[name] = EnvironmentVariable(
            name=name,
            required=self._is_required(prose, default),
            description=self._describe(name, None),
            default_value=default,
            value_type=infer_value_type(default, name),
        )
        evidence.append(scoring.make_evidence(scoring.PATTERN, name, _line_range(index, document.lines[index])))

    def _references(
        self,
        found: Dict[str, EnvironmentVariable],
        evidence: List[Evidence],
        index: int,
        line: str,
    ) -> None:
        for pattern in self._REFERENCES:
            for match in pattern.finditer(line):
                name = match.group("name")
                if not self._is_env_name(name) or name in found:
                    continue
                default = match.groupdict().get("value") or None
                found[name] = EnvironmentVariable(
                    name=name,
                    required=default is None,
                    description=self._describe(name, None),
                    default_value=default,
                    value_type=infer_value_type(default, name),
                )
                evidence.append(
                    scoring.make_evidence(
                        scoring.PATTERN, name, SourceRange(index, index, match.start(), match.end() - 1)
                    )
                )

    def _listed_variables(
        self,
        document: MarkdownDocument,
        found: Dict[str, EnvironmentVariable],
        evidence: List[Evidence],
    ) -> None:
        for node in document.walk():
            section = document.section_at(node.start_line)
            if section is None or not self._ENV_SECTION.search(section.value):
                continue
            if node.type == "list_item":
                first_line = plain_text(node).split("\n", 1)[0].strip()
                match = self._LIST_VARIABLE.match(first_line)
                if match:
                    self._record_listed(found, evidence, node, match.group("name"), match.group("description"))
            elif node.type == "table":
                self._table_variables(node, found, evidence)

    def _table_variables(
        self, table: Node, found: Dict[str, EnvironmentVariable], evidence: List[Evidence]
    ) -> None:
        rows = [row for row in table.children if row.type == "table_row"]
        if len(rows) < 2:
            return
        header = [plain_text(cell).strip().lower() for cell in rows[0].children]
        default_column = next((i for i, title in enumerate(header) if "default" in title), None)
        required_column = next((i for i, title in enumerate(header) if "required" in title), None)
        description_column = next(
            (i for i, title in enumerate(header) if "description" in title or "purpose" in title), None
        )
        for row in rows[1:]:
            cells = [plain_text(cell).strip() for cell in row.children]
            if not cells:
                continue
            name = cells[0]
            description = cells[description_column] if description_column is not None and description_column < len(cells) else ""
            default = None
            if default_column is not None and default_column < len(cells):
                default = cells[default_column].strip() or None
                if default in {"-", "—", "none", "None", "n/a"}:
                    default = None
            required_text = " ".join(cells[1:])
            if required_column is not None and required_column < len(cells):
                required_text = cells[required_column]
            self._record_listed(found, evidence, row, name, description, default=default, prose=required_text)

    def _record_listed(
        self,
        found: Dict[str, EnvironmentVariable],
        evidence: List[Evidence],
        node: Node,
        name: str,
        description: str,
        *,
        default: Optional[str] = None,
        prose: Optional[str] = None,
    ) -> bool:
        if not self._is_env_name(name):
            return False
        if "_" not in name and name not in self.COMMON_ENV_DESCRIPTIONS and not found.get(name):
            return False
        text = prose if prose is not None else description
        if default is None:
            match = re.search(r"default(?:s)?\s*(?:is|to|:)?\s*`?([^`\s,)]+)`?", description, re.IGNORECASE)
            if match:
                default = match.group(1).rstrip(".")
        existing = found.get(name)
        if existing is not None:
            if description and existing.description in (None, self.COMMON_ENV_DESCRIPTIONS.get(name)):
                existing.description = description.strip()
            if self._REQUIRED_WORDS.search(text) or re.fullmatch(r"\s*(?:yes|true|✓|✔)\s*", text, re.IGNORECASE):
                existing.required = True
            return True
        found[name] = EnvironmentVariable(
            name=name,
            required=self._is_required(text, default),
            description=description.strip() or self._describe(name, None),
            default_value=default,
            value_type=infer_value_type(default, name),
        )
        evidence.append(scoring.make_evidence(scoring.PATTERN, name, node.position))
        return True

    def _common_variables(
        self,
        document: MarkdownDocument,
        found: Dict[str, EnvironmentVariable],
        evidence: List[Evidence],
    ) -> None:
        for name in self.COMMON_ENV_VARS:
            if name in found:
                continue
            contexts = (
                re.compile(r"(?:set|export|configure)\b.*\b" + name + r"\b", re.IGNORECASE),
                re.compile(r"\b" + name + r"\b.*\b(?:environment|variable)", re.IGNORECASE),
                re.compile(r"\$" + name + r"\b"),
            )
            for index, line in enumerate(document.lines):
                if not re.search(r"\b" + name + r"\b", line):
                    continue
                if any(pattern.search(line) for pattern in contexts):
                    found[name] = EnvironmentVariable(
                        name=name,
                        required=True,
                        description=self._describe(name, None),
                        value_type=infer_value_type(None, name),
                    )
                    evidence.append(scoring.make_evidence(scoring.TEXT_MENTION, name, _line_range(index, line)))
                    break

    def _surrounding_prose(self, document: MarkdownDocument, index: int) -> str:
        window = document.lines[max(0, index - 2): index + 1]
        return " ".join(window)

    def _is_required(self, prose: str, default: Optional[str]) -> bool:
        if self._OPTIONAL_WORDS.search(prose) and not self._REQUIRED_WORDS.search(prose):
            return False
        if default is not None:
            return False
        return True

    def _describe(self, name: str, fallback: Optional[str]) -> Optional[str]:
        return self.COMMON_ENV_DESCRIPTIONS.get(name, fallback)

    def _is_env_name(self, name: str) -> bool:
        return 2 <= len(name) <= 50 and bool(self._ENV_NAME.match(name))


def infer_value_type(value: Optional[str], name: str = "") -> str:
    """Guess the type of an environment variable from its example value."""
    if value is not None:
        lowered = value.lower()
        if lowered in {"true", "false", "yes", "no", "on", "off"}:
            return "boolean"
        if re.fullmatch(r"-?\d+", value):
            return "integer"
        if re.match(r"^[a-z][a-z0-9+.-]*://", lowered):
            return "url"
        if value.startswith(("/", "./", "~/", "../")):
            return "path"
        return "string"
    upper = name.upper()
    if upper.endswith(("_URL", "_URI")):
        return "url"
    if upper.endswith(("_PATH", "_DIR", "_FILE")):
        return "path"
    if upper in {"PORT"} or upper.endswith("_PORT"):
        return "integer"
    if upper in {"DEBUG"}:
        return "boolean"
    return "string"


def _line_range(index: int, line: str) -> SourceRange:
    return SourceRange(index, index, 0, max(len(line) - 1, 0))


__all__ = ["MetadataExtractor", "infer_value_type"]
