"""Dependency analyzer for package manifests, install commands and mentions."""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from .. import confidence as scoring
from ..context.analysis import AnalysisContext
from ..markdown import MarkdownDocument, Node
from ..models import (
    AnalyzerResult,
    Dependency,
    DependencyInfo,
    Evidence,
    InstallCommand,
    PackageFile,
    PackageMention,
    SourceRange,
)
from .base import Analyzer, build_result
from .utils import (
    INSTALL_PATTERNS,
    KNOWN_PACKAGES,
    MENTION_PATTERNS,
    PACKAGE_FILES,
    command_body,
    is_shell_block,
    iter_command_lines,
    normalise_command,
    parse_go_mod,
    parse_package_json,
    parse_requirements,
    parse_toml_dependencies,
    prose_lines,
    split_names,
    split_packages,
)

_DEV_FLAGS = {"-D", "--save-dev", "--dev", "-G", "--group=dev"}
_REQUIREMENTS_TAGS = {"requirements", "requirements.txt", "pip"}
_PLAIN_TAGS = {"", "txt", "text", "plaintext"}
_TOML_TAGS = {"toml", "cargo.toml", "pyproject.toml"}
_JSON_TAGS = {"json", "package.json", "jsonc"}


class DependencyExtractor(Analyzer):
    """Extracts package managers, install commands and declared packages."""

    name = "dependencies"

    def detect(
        self, document: MarkdownDocument, content: str, context: Optional[AnalysisContext]
    ) -> AnalyzerResult:
        info = DependencyInfo()
        evidence: List[Evidence] = []

        self._package_files(document, info, evidence)
        self._install_commands(document, info, evidence)
        self._manifest_blocks(document, info, evidence)
        self._prose_mentions(document, info, evidence)

        confidence = scoring.score(evidence)
        return build_result(
            info,
            confidence,
            scoring.source_kinds(evidence),
            metadata={"managers": info.managers()},
        )

    def _package_files(
        self, document: MarkdownDocument, info: DependencyInfo, evidence: List[Evidence]
    ) -> None:
        seen: Dict[str, PackageFile] = {}
        for index, line in enumerate(document.lines):
            for filename, manager, pattern in PACKAGE_FILES:
                for match in pattern.finditer(line):
                    name = filename if not filename.startswith("*") else match.group(0)
                    evidence.append(
                        scoring.make_evidence(
                            scoring.CONFIG_FILE,
                            name,
                            SourceRange(index, index, match.start(), match.end() - 1),
                            snippet=line.strip(),
                        )
                    )
                    if name not in seen:
                        seen[name] = PackageFile(
                            name=name,
                            type=manager,
                            confidence=scoring.weight_for(scoring.CONFIG_FILE),
                        )
        info.package_files.extend(seen.values())

    def _install_commands(
        self, document: MarkdownDocument, info: DependencyInfo, evidence: List[Evidence]
    ) -> None:
        candidates: List[Tuple[int, int, str, str]] = []
        for node in document.code_blocks():
            if not is_shell_block(node):
                continue
            for line, text in iter_command_lines(node):
                candidates.append((line, 0, text, "code-block"))
        for span in document.find("codespan"):
            candidates.append((span.start_line, span.position.start_column, span.value, "inline-code"))

        seen_commands: Dict[str, InstallCommand] = {}
        seen_packages: Dict[Tuple[str, str], PackageMention] = {}
        for line, column, raw, source in candidates:
            command = normalise_command(raw)
            matched = _match_install(command_body(command))
            if matched is None:
                continue
            manager, tail = matched
            confidence = 0.9 if source == "code-block" else 0.75
            if command not in seen_commands:
                seen_commands[command] = InstallCommand(
                    command=command, manager=manager, confidence=confidence, context=source
                )
            location = SourceRange(line, line, column, column + max(len(raw) - 1, 0))
            evidence.append(scoring.make_evidence(scoring.COMMAND, command, location, snippet=command))

            dev = any(flag in tail.split() for flag in _DEV_FLAGS)
            for name, version in split_packages(tail):
                key = (name, manager)
                if key in seen_packages:
                    continue
                seen_packages[key] = PackageMention(name=name, manager=manager, confidence=0.8)
                dependency = Dependency(
                    name=name,
                    manager=manager,
                    confidence=0.8,
                    source="install-command",
                    version=version,
                    type="development" if dev else "production",
                )
                (info.dev_dependencies if dev else info.dependencies).append(dependency)
                evidence.append(scoring.make_evidence(scoring.DEPENDENCY, name, location))

        info.install_commands.extend(seen_commands.values())
        info.packages.extend(seen_packages.values())

    def _manifest_blocks(
        self, document: MarkdownDocument, info: DependencyInfo, evidence: List[Evidence]
    ) -> None:
        known = {(item.name, item.manager) for item in (*info.dependencies, *info.dev_dependencies)}

        def _add(name: str, version: Optional[str], manager: str, kind: str, source: str, node: Node) -> None:
            if (name, manager) in known:
                return
            known.add((name, manager))
            dependency = Dependency(
                name=name,
                manager=manager,
                confidence=0.9,
                source=source,
                version=version,
                type=kind,
            )
            (info.dev_dependencies if kind == "development" else info.dependencies).append(dependency)
            evidence.append(scoring.make_evidence(scoring.DEPENDENCY, name, node.position))

        for node in document.code_blocks():
            lang = (node.lang or "").lower()
            body = node.value
            if lang in _JSON_TAGS or (not lang and '"dependencies"' in body):
                for key, items in parse_package_json(body).items():
                    kind = "development" if key == "devDependencies" else "production"
                    for name, version in items:
                        _add(name, version, "npm", kind, "package.json", node)
            elif lang in _TOML_TAGS:
                for key, items in parse_toml_dependencies(body).items():
                    manager, _, section = key.partition(":")
                    kind = "development" if section.startswith("dev") else "production"
                    source = "Cargo.toml" if manager == "cargo" else "pyproject.toml"
                    for name, version in items:
                        _add(name, version, manager, kind, source, node)
            elif lang in {"go.mod", "gomod"} or (not lang and body.lstrip().startswith("module ")):
                for name, version in parse_go_mod(body):
                    _add(name, version, "go", "production", "go.mod", node)
            elif lang in _REQUIREMENTS_TAGS or (lang in _PLAIN_TAGS and self._follows_requirements(document, node)):
                for name, version in parse_requirements(body):
                    _add(name, version, "pip", "production", "requirements.txt", node)

    @staticmethod
    def _follows_requirements(document: MarkdownDocument, node: Node) -> bool:
        window = document.lines[max(0, node.start_line - 2): node.start_line]
        return any("requirements" in line.lower() for line in window)

    def _prose_mentions(
        self, document: MarkdownDocument, info: DependencyInfo, evidence: List[Evidence]
    ) -> None:
        seen = {package.name.lower() for package in info.packages}
        for index, line in prose_lines(document):
            for pattern in MENTION_PATTERNS:
                for match in pattern.finditer(line):
                    for name in split_names(match.group("names")):
                        lowered = name.lower()
                        if lowered in seen:
                            continue
                        manager = KNOWN_PACKAGES.get(lowered)
                        if manager is None and not _looks_like_package(name):
                            continue
                        seen.add(lowered)
                        info.packages.append(
                            PackageMention(
                                name=name,
                                manager=manager or "unknown",
                                confidence=0.6 if manager else 0.4,
                            )
                        )
                        evidence.append(
                            scoring.make_evidence(
                                scoring.TEXT_MENTION,
                                name,
                                SourceRange(index, index, match.start("names"), match.end("names") - 1),
                                snippet=line.strip(),
                            )
                        )


def _match_install(command: str) -> Optional[Tuple[str, str]]:
    for manager, pattern in INSTALL_PATTERNS:
        match = pattern.match(command)
        if match:
            return manager, match.group("packages") or ""
    return None


def _looks_like_package(name: str) -> bool:
    # Prose mentions without a known ecosystem only count when written like an identifier.
    return " " not in name and (any(char in name for char in "-_./@") or name.islower())


__all__ = ["DependencyExtractor"]
