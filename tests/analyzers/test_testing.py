"""Tests for the testing analyzer."""

from __future__ import annotations

from readmeci.analyzers.testing import TestingDetector
from tests._fixtures.readmes import JEST_README, readme

PYTEST_README = readme(
    """
    # Toolkit

    ## Tests

    ```bash
    python -m pytest --cov
    ```

    Coverage is reported with pytest-cov and configured in .coveragerc.
    """
)


def test_jest_detected_with_config_file(language_context) -> None:
    context = language_context(JEST_README)

    result = TestingDetector().analyze(context.document, JEST_README, context)

    info = result.data
    [jest] = info.frameworks
    assert jest.name == "Jest"
    assert jest.language == "JavaScript"
    assert jest.type == "unit"
    assert jest.confidence > 0.7
    assert info.config_files == ["jest.config.js"]
    assert info.test_commands == ["npm test"]
    assert result.metadata["frameworks"] == ["Jest"]
    assert result.confidence > 0.7


def test_jest_detected_without_upstream_context(parse_document) -> None:
    result = TestingDetector().analyze(parse_document(JEST_README), JEST_README)

    [jest] = result.data.frameworks
    assert jest.language == "JavaScript"
    assert jest.confidence > 0.7


def test_pytest_and_coverage_tooling(language_context) -> None:
    context = language_context(PYTEST_README)

    info = TestingDetector().analyze(context.document, PYTEST_README, context).data

    [framework] = info.frameworks
    assert (framework.name, framework.language) == ("pytest", "Python")
    [tool] = info.tools
    assert (tool.name, tool.type) == ("coverage.py", "coverage")
    assert info.config_files == [".coveragerc"]
    assert info.test_commands == ["python -m pytest --cov"]


def test_javascript_framework_follows_typescript_documents(language_context) -> None:
    text = "# ts-lib\n\nA TypeScript library tested with Jest.\n"
    context = language_context(text)

    [framework] = TestingDetector().analyze(context.document, text, context).data.frameworks

    assert framework.name == "Jest"
    assert framework.language == "TypeScript"


def test_frameworks_sorted_by_confidence(parse_document) -> None:
    text = readme(
        """
        # Mixed

        Unit tests use Mocha; browser tests use Cypress.

        ```bash
        npx cypress run
        ```

        Cypress settings live in cypress.config.js.
        """
    )

    frameworks = TestingDetector().analyze(parse_document(text), text).data.frameworks

    assert [framework.name for framework in frameworks] == ["Cypress", "Mocha"]
    assert frameworks[0].type == "e2e"


def test_no_testing_signals(parse_document) -> None:
    result = TestingDetector().analyze(parse_document("# Docs\n\nRead me.\n"), "# Docs\n\nRead me.\n")

    assert result.data.frameworks == []
    assert result.confidence == 0.0
    assert result.sources == []
