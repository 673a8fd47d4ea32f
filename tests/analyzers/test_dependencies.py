"""Tests for the dependency analyzer."""

from __future__ import annotations

from readmeci.analyzers.dependencies import DependencyExtractor
from readmeci.analyzers.utils import parse_requirements, split_packages
from tests._fixtures.readmes import FULL_README, POLYGLOT_README, readme


def _extract(parse_document, text: str):
    return DependencyExtractor().analyze(parse_document(text), text)


def test_polyglot_readme_detects_both_ecosystems(parse_document) -> None:
    result = _extract(parse_document, POLYGLOT_README)

    info = result.data
    assert [(item.name, item.type) for item in info.package_files] == [
        ("package.json", "npm"),
        ("requirements.txt", "pip"),
    ]
    assert [(item.command, item.manager) for item in info.install_commands] == [
        ("npm install", "npm"),
        ("pip install -r requirements.txt", "pip"),
    ]
    assert info.managers() == ["npm", "pip"]
    assert info.dependencies == []
    assert result.metadata["managers"] == ["npm", "pip"]
    assert 0 < result.confidence <= 1
    assert result.sources


def test_dev_flag_routes_packages_to_dev_dependencies(parse_document) -> None:
    info = _extract(parse_document, FULL_README).data

    [jest] = info.dev_dependencies
    assert (jest.name, jest.manager, jest.type, jest.source) == ("jest", "npm", "development", "install-command")
    assert info.dependencies == []
    assert {package.name: package.manager for package in info.packages} == {
        "jest": "npm",
        "Express": "npm",
        "TypeScript": "npm",
    }


def test_install_command_packages_and_versions(parse_document) -> None:
    text = readme(
        """
        ```bash
        pip install "requests==2.31.0" rich
        cargo add serde
        ```
        """
    )

    info = _extract(parse_document, text).data

    assert [(dep.name, dep.manager, dep.version) for dep in info.dependencies] == [
        ("requests", "pip", "2.31.0"),
        ("rich", "pip", None),
        ("serde", "cargo", None),
    ]


def test_embedded_manifests_are_parsed(parse_document) -> None:
    text = readme(
        """
        # Manifests

        ```json
        {"dependencies": {"express": "^4.18.0"}, "devDependencies": {"jest": "^29.0.0"}}
        ```

        ```toml
        [dependencies]
        serde = { version = "1.0", features = ["derive"] }
        tokio = "1"

        [dev-dependencies]
        criterion = "0.5"
        ```

        Install the requirements:

        ```text
        flask>=2.0
        requests==2.31.0
        ```
        """
    )

    info = _extract(parse_document, text).data

    production = {(dep.name, dep.manager): (dep.version, dep.source) for dep in info.dependencies}
    assert production == {
        ("express", "npm"): ("^4.18.0", "package.json"),
        ("serde", "cargo"): ("1.0", "Cargo.toml"),
        ("tokio", "cargo"): ("1", "Cargo.toml"),
        ("flask", "pip"): (">=2.0", "requirements.txt"),
        ("requests", "pip"): ("==2.31.0", "requirements.txt"),
    }
    assert {(dep.name, dep.manager) for dep in info.dev_dependencies} == {("jest", "npm"), ("criterion", "cargo")}


def test_unknown_prose_mentions_are_tagged_unknown(parse_document) -> None:
    info = _extract(parse_document, "This project requires libfoo-dev.\n").data

    [package] = info.packages
    assert package.name == "libfoo-dev"
    assert package.manager == "unknown"
    assert info.managers() == []


def test_no_dependency_signals(parse_document) -> None:
    result = _extract(parse_document, "# Notes\n\nNothing to install here.\n")

    assert result.success is True
    assert result.confidence == 0.0
    assert result.sources == []


def test_split_packages_skips_flags_and_files() -> None:
    assert split_packages(" -r requirements.txt --upgrade pip-tools==7.0 ./local") == [("pip-tools", "7.0")]


def test_parse_requirements_ignores_comments_and_options() -> None:
    text = "# pinned\n-e .\nDjango>=4.2,<5 ; python_version >= '3.10'\nuvicorn[standard]\n"

    assert parse_requirements(text) == [("Django", ">=4.2,<5"), ("uvicorn", None)]
