"""End-to-end tests for the README parser facade."""

from __future__ import annotations

from pathlib import Path

import pytest

from readmeci.config import ParserConfig
from readmeci.models import AnalyzerResult, ParseResult, ProjectInfo
from readmeci.parser import FILE_READ_ERROR, ReadmeParser
from readmeci.pipeline import INVALID_INPUT
from tests._fixtures.readmes import FULL_README, JEST_README, MALFORMED_README, POLYGLOT_README, RUST_README

SAMPLES = ["", RUST_README, POLYGLOT_README, JEST_README, FULL_README, MALFORMED_README]


def _confidences(value, path="root"):
    """Yield every ``confidence`` number found in a plain ProjectInfo dump."""
    if isinstance(value, dict):
        for key, item in value.items():
            if isinstance(item, (int, float)) and not isinstance(item, bool) and (
                key == "confidence" or path.endswith("confidence")
            ):
                yield f"{path}.{key}", item
            else:
                yield from _confidences(item, f"{path}.{key}")
    elif isinstance(value, list):
        for index, item in enumerate(value):
            yield from _confidences(item, f"{path}[{index}]")


@pytest.mark.parametrize("content", SAMPLES)
def test_every_confidence_is_bounded(readme_parser: ReadmeParser, content: str) -> None:
    result = readme_parser.parse_content(content)

    values = list(_confidences(result.data.to_dict()))
    assert values
    for path, value in values:
        assert 0.0 <= value <= 1.0, path
    for analyzer_result in result.analyzer_results.values():
        assert 0.0 <= analyzer_result.confidence <= 1.0


def test_empty_input_is_successful_and_empty(readme_parser: ReadmeParser) -> None:
    result = readme_parser.parse_content("")

    assert result.success is True
    info = result.data
    assert info.languages == []
    assert info.commands.all_commands() == []
    assert info.dependencies.managers() == []
    assert info.testing.frameworks == []
    assert info.metadata.structure == []
    assert info.confidence.overall == 0.0


def test_rust_scenario(readme_parser: ReadmeParser) -> None:
    result = readme_parser.parse_content(RUST_README)

    detection = result.analyzer_results["language"].data
    assert any(context.language == "Rust" and context.confidence > 0.5 for context in detection.contexts)
    commands = result.data.commands
    assert [(item.command, item.language) for item in commands.build] == [("cargo build --release", "Rust")]
    assert [(item.command, item.language) for item in commands.test] == [("cargo test", "Rust")]
    assert result.data.metadata.name == "ripfast"


def test_npm_and_pip_scenario(readme_parser: ReadmeParser) -> None:
    result = readme_parser.parse_content(POLYGLOT_README)

    info = result.data
    managers = {item.name: item.type for item in info.dependencies.package_files}
    assert managers == {"package.json": "npm", "requirements.txt": "pip"}
    assert {"JavaScript", "Python"} <= {language.name for language in info.languages}


def test_full_readme_populates_every_domain(readme_parser: ReadmeParser) -> None:
    result = readme_parser.parse_content(FULL_README)

    info = result.data
    assert info.metadata.name == "Acme API"
    assert [item.name for item in info.testing.frameworks][0] == "Jest"
    assert info.commands.test[0].command == "npm test"
    assert info.dependencies.dev_dependencies[0].name == "jest"
    assert {"JavaScript", "TypeScript"} <= {language.name for language in info.languages}
    assert result.aggregated.validation_status.is_valid is True
    assert 0 < info.confidence.overall <= 1


def test_cache_transparency() -> None:
    cached = ReadmeParser(ParserConfig(enable_caching=True))
    uncached = ReadmeParser(ParserConfig(enable_caching=False))

    cached.parse_content(FULL_README)
    twice = cached.parse_content(FULL_README)
    once = uncached.parse_content(FULL_README)

    assert twice.data.to_dict() == once.data.to_dict()


def test_throwing_analyzer_does_not_block_others(readme_parser: ReadmeParser) -> None:
    def broken(document, content, context):
        raise ValueError("broken analyzer")

    registration = readme_parser.register_analyzer("broken", broken, [])
    result = readme_parser.parse_content(RUST_README)

    assert registration.success is True
    assert result.success is True
    assert result.analyzer_results["broken"].success is False
    assert result.data.commands.build


def test_removing_evidence_never_raises_confidence(readme_parser: ReadmeParser) -> None:
    lines = RUST_README.splitlines()
    previous = None
    for size in range(len(lines), -1, -1):
        content = "\n".join(lines[:size])
        detection = readme_parser.parse_content(content).analyzer_results["language"].data
        rust = detection.language("Rust")
        current = rust.confidence if rust is not None else 0.0
        if previous is not None:
            assert current <= previous
        previous = current


def test_register_unregister_round_trip(readme_parser: ReadmeParser) -> None:
    before_names = readme_parser.analyzer_names()
    before = readme_parser.parse_content(RUST_README).data.to_dict()

    readme_parser.register_analyzer("extra", lambda document, content, context: AnalyzerResult(success=True, data=1))
    assert "extra" in readme_parser.analyzer_names()
    assert readme_parser.unregister_analyzer("extra") is True

    assert readme_parser.analyzer_names() == before_names
    assert readme_parser.parse_content(RUST_README).data.to_dict() == before


def test_register_analyzer_rejects_contract_violations(readme_parser: ReadmeParser) -> None:
    missing_fn = readme_parser.register_analyzer("nameless-fn")
    no_analyze = readme_parser.register_analyzer(type("Plugin", (), {"name": "plugin"})())

    assert missing_fn.success is False
    assert "callable" in missing_fn.error
    assert no_analyze.success is False
    assert "analyze" in no_analyze.error


def test_register_analyzer_object_with_dependencies(readme_parser: ReadmeParser) -> None:
    class Summary:
        name = "summary"

        def analyze(self, document, content, context=None):
            return AnalyzerResult(success=True, data={"commands": context.upstream_available("commands")})

    assert readme_parser.register_analyzer(Summary(), ["commands"]).success is True

    result = readme_parser.parse_content(RUST_README)

    assert result.data.extras["summary"] == {"commands": True}


def test_non_string_content_is_rejected(readme_parser: ReadmeParser) -> None:
    result = readme_parser.parse_content(None)

    assert result.success is False
    assert result.errors[0].code == INVALID_INPUT
    assert result.errors[0].component == "parser"


def test_lone_surrogates_still_parse(readme_parser: ReadmeParser) -> None:
    result = readme_parser.parse_content("# Proj \udc80\n")
    fuzzed = readme_parser.parse_content("\x00\ufffd# \udc80")

    assert result.success is True
    assert result.data.metadata.name.startswith("Proj")
    assert isinstance(fuzzed, ParseResult)


def test_parse_file_uses_reader(readme_parser: ReadmeParser) -> None:
    seen = []

    def reader(path: Path) -> str:
        seen.append(path)
        return RUST_README

    result = readme_parser.parse_file("docs/README.md", reader=reader)

    assert seen == [Path("docs/README.md")]
    assert result.success is True
    assert isinstance(result.data, ProjectInfo)


def test_parse_file_reads_from_disk(readme_parser: ReadmeParser, tmp_path: Path) -> None:
    readme = tmp_path / "README.md"
    readme.write_text(RUST_README, encoding="utf-8")

    assert readme_parser.parse_file(readme).data.metadata.name == "ripfast"


def test_parse_file_reports_read_errors(readme_parser: ReadmeParser, tmp_path: Path) -> None:
    result = readme_parser.parse_file(tmp_path / "missing.md")

    assert result.success is False
    assert result.errors[0].code == FILE_READ_ERROR


def test_from_config_file(tmp_path: Path) -> None:
    (tmp_path / ".readmeci.yml").write_text("parser:\n  enabledAnalyzers: [language]\n", encoding="utf-8")

    parser = ReadmeParser.from_config_file(tmp_path)

    assert parser.analyzer_names() == ["language"]
