"""Shared pattern tables and helpers for analyzer implementations."""

from __future__ import annotations

from dataclasses import dataclass
import json
import re
import tomllib
from typing import Dict, Iterable, List, Optional, Pattern, Tuple

from ..context.languages import infer_language_from_command
from ..markdown import MarkdownDocument, Node

SHELL_FENCE_TAGS = {
    "bash",
    "sh",
    "shell",
    "zsh",
    "fish",
    "console",
    "terminal",
    "shell-session",
    "cmd",
    "bat",
    "powershell",
    "ps",
    "ps1",
    "pwsh",
}

# Command helpers


def _patterns(*expressions: str) -> Tuple[Pattern[str], ...]:
    return tuple(re.compile(expression, re.IGNORECASE) for expression in expressions)


OTHER_COMMANDS = _patterns(r"^(?:sudo\s+)?(?:docker|docker-compose|podman|kubectl|helm)\b")

BUILD_COMMANDS = _patterns(
    r"^npm\s+run\s+(?:build|compile|dist)\b",
    r"^yarn\s+(?:run\s+)?(?:build|compile)\b",
    r"^pnpm\s+(?:run\s+)?build\b",
    r"^cargo\s+build\b",
    r"^go\s+(?:build|install)\b",
    r"^(?:mvn|\./mvnw)\s+(?:clean\s+)?(?:compile|package|install)\b",
    r"^(?:gradle|\./gradlew)\s+(?:clean\s+)?(?:build|assemble)\b",
    r"^make(?:\s+(?:build|all|compile))?\s*$",
    r"^cmake\s+(?:--build|\.)",
    r"^python3?\s+setup\.py\s+build\b",
    r"^python3?\s+-m\s+build\b",
    r"^pip3?\s+install\s+\.\s*$",
    r"^dotnet\s+(?:build|publish)\b",
    r"^bundle\s+exec\s+rake\s+build\b",
    r"^gem\s+build\b",
    r"^(?:tsc|webpack|vite\s+build|rollup|parcel\s+build)\b",
)

TEST_COMMANDS = _patterns(
    r"^npm\s+(?:run\s+)?(?:test|spec)\b",
    r"^npm\s+t\s*$",
    r"^yarn\s+(?:run\s+)?test\b",
    r"^pnpm\s+(?:run\s+)?test\b",
    r"^cargo\s+test\b",
    r"^go\s+test\b",
    r"^(?:mvn|\./mvnw)\s+(?:clean\s+)?(?:test|verify)\b",
    r"^(?:gradle|\./gradlew)\s+(?:clean\s+)?test\b",
    r"^make\s+(?:test|check)\b",
    r"^python3?\s+-m\s+(?:pytest|unittest|nose2)\b",
    r"^(?:pytest|tox|nose2)\b",
    r"^python3?\s+\S*test\S*\.py\b",
    r"^dotnet\s+test\b",
    r"^(?:bundle\s+exec\s+)?(?:rspec|rake\s+test)\b",
    r"^ruby\s+\S*test\S*\b",
    r"^(?:\./vendor/bin/)?phpunit\b",
    r"^composer\s+test\b",
    r"^(?:npx\s+)?(?:jest|mocha|vitest|jasmine|cypress\s+run|playwright\s+test|karma\s+start)\b",
)

RUN_COMMANDS = _patterns(
    r"^npm\s+(?:run\s+)?(?:start|dev|serve)\b",
    r"^yarn\s+(?:run\s+)?(?:start|dev|serve)\b",
    r"^pnpm\s+(?:run\s+)?(?:start|dev)\b",
    r"^cargo\s+run\b",
    r"^go\s+run\b",
    r"^python3?\s+manage\.py\s+runserver\b",
    r"^python3?\s+-m\s+\w+",
    r"^python3?\s+[\w./-]+\.py\b",
    r"^(?:uvicorn|gunicorn|flask\s+run)\b",
    r"^java\s+-jar\b",
    r"^java\s+\w+",
    r"^dotnet\s+run\b",
    r"^ruby\s+[\w./-]+\.rb\b",
    r"^(?:bundle\s+exec\s+)?rails\s+(?:server|s)\b",
    r"^php\s+(?:-S\b|artisan\s+serve\b|[\w./-]+\.php\b)",
    r"^node\s+[\w./-]+",
    r"^\./[\w./-]+",
)

INSTALL_COMMANDS = _patterns(
    r"^npm\s+(?:install|i|ci|add)\b",
    r"^yarn(?:\s+(?:install|add)\b|\s*$)",
    r"^pnpm\s+(?:install|i|add)\b",
    r"^(?:python3?\s+-m\s+)?pip3?\s+install\b",
    r"^(?:poetry|pipenv)\s+install\b",
    r"^conda\s+(?:install|env\s+create)\b",
    r"^cargo\s+(?:install|add|fetch)\b",
    r"^go\s+(?:get|mod\s+download|mod\s+tidy)\b",
    r"^(?:mvn|\./mvnw)\s+dependency:resolve\b",
    r"^(?:gradle|\./gradlew)\s+dependencies\b",
    r"^composer\s+(?:install|require|update)\b",
    r"^bundle(?:\s+install)?\s*$",
    r"^gem\s+install\b",
    r"^dotnet\s+(?:restore|add\s+package)\b",
    r"^(?:sudo\s+)?(?:apt(?:-get)?|brew|yum|dnf|apk)\s+(?:install|add)\b",
)

COMMAND_CATEGORIES: Tuple[Tuple[str, Tuple[Pattern[str], ...]], ...] = (
    ("other", OTHER_COMMANDS),
    ("build", BUILD_COMMANDS),
    ("test", TEST_COMMANDS),
    ("run", RUN_COMMANDS),
    ("install", INSTALL_COMMANDS),
)

KEYWORD_FALLBACK: Tuple[Tuple[str, Pattern[str]], ...] = (
    ("build", re.compile(r"\b(?:build|compile|dist|assemble|package)\b", re.IGNORECASE)),
    ("test", re.compile(r"\b(?:test|tests|spec|check)\b", re.IGNORECASE)),
    ("run", re.compile(r"\b(?:start|serve|dev|run|exec)\b", re.IGNORECASE)),
    ("install", re.compile(r"\b(?:install|add|get|restore|download)\b", re.IGNORECASE)),
)

COMMAND_PREFIXES = _patterns(
    r"^(?:sudo\s+)?(?:npm|npx|yarn|pnpm|bun|pip|pip3|poetry|pipenv|conda|cargo|rustup|mvn|\./mvnw|gradle|\./gradlew|make|cmake|dotnet|nuget|bundle|composer|gem|rake)(?:\s+|$)",
    r"^go\s+(?:build|test|run|get|install|mod|vet|fmt|generate)\b",
    r"^(?:sudo\s+)?(?:python|python3|node|java|javac|ruby|php|rustc|gcc|g\+\+|clang|deno)(?:\s+|$)",
    r"^(?:sudo\s+)?(?:docker|docker-compose|kubectl|helm|podman)(?:\s+|$)",
    r"^(?:webpack|vite|rollup|parcel|tsc|babel|ts-node|uvicorn|gunicorn|flask|rails)(?:\s+|$)",
    r"^(?:pytest|tox|nose2|rspec|phpunit|jest|mocha|jasmine|vitest|cypress|playwright|karma|nyc|codecov)(?:\s+|$)",
    r"^(?:sudo\s+)?(?:apt|apt-get|brew|yum|dnf|apk)\s+",
    r"^(?:git\s+clone|cd|mkdir|cp|mv|rm|chmod|curl|wget|source|export)\s+",
    r"^\./[\w.-]+",
)

_PROMPT = re.compile(r"^\s*(?:\$|>|PS>|#\s)\s*")
_ENV_PREFIX = re.compile(r"^(?:[A-Z_][A-Z0-9_]*=\S*\s+)+")


def normalise_command(text: str) -> str:
    """Strip prompts, trailing comments and inline env assignments from a command line."""
    stripped = _PROMPT.sub("", text.strip())
    if " #" in stripped:
        stripped = stripped.split(" #", 1)[0]
    return stripped.strip()


def command_body(command: str) -> str:
    """Return the command without leading ``VAR=value`` assignments or sudo."""
    body = _ENV_PREFIX.sub("", command.strip())
    if body.startswith("sudo "):
        body = body[5:].lstrip()
    return body


def looks_like_command(text: str) -> bool:
    body = command_body(normalise_command(text))
    if not body or len(body) > 300:
        return False
    return any(pattern.match(body) for pattern in COMMAND_PREFIXES)


def classify_command(command: str) -> str:
    """Bucket a command into build/test/run/install/other."""
    body = command_body(command)
    for category, patterns in COMMAND_CATEGORIES:
        if any(pattern.match(body) for pattern in patterns):
            return category
    for category, pattern in KEYWORD_FALLBACK:
        if pattern.search(body):
            return category
    return "other"


def command_language(command: str) -> str:
    return infer_language_from_command(command_body(command)) or "Shell"


def iter_command_lines(node: Node) -> Iterable[Tuple[int, str]]:
    """Yield (line, command) pairs from a shell-like code block, joining continuations."""
    body = node.value.split("\n")
    # Indented blocks span exactly their body; fenced ones add the delimiter lines.
    body_start = node.start_line if len(body) == node.end_line - node.start_line + 1 else node.start_line + 1
    pending = ""
    pending_line = 0
    for offset, raw in enumerate(body):
        line_no = body_start + offset
        text = raw.rstrip()
        if not text.strip() or text.lstrip().startswith(("#", "//", "REM ")):
            continue
        if pending:
            pending = f"{pending} {text.strip()}"
        else:
            pending = text.strip()
            pending_line = line_no
        if pending.endswith("\\"):
            pending = pending[:-1].rstrip()
            continue
        yield pending_line, pending
        pending = ""
    if pending:
        yield pending_line, pending


def is_shell_block(node: Node) -> bool:
    return node.lang is None or node.lang in SHELL_FENCE_TAGS


# Dependency helpers

PACKAGE_FILES: Tuple[Tuple[str, str, Pattern[str]], ...] = (
    ("package.json", "npm", re.compile(r"(?<![\w-])package\.json\b", re.IGNORECASE)),
    ("requirements.txt", "pip", re.compile(r"(?<![\w-])requirements(?:[-_.]\w+)?\.txt\b", re.IGNORECASE)),
    ("setup.py", "pip", re.compile(r"(?<![\w-])setup\.py\b", re.IGNORECASE)),
    ("pyproject.toml", "pip", re.compile(r"(?<![\w-])pyproject\.toml\b", re.IGNORECASE)),
    ("Pipfile", "pip", re.compile(r"(?<![\w-])Pipfile\b")),
    ("Cargo.toml", "cargo", re.compile(r"(?<![\w-])Cargo\.toml\b", re.IGNORECASE)),
    ("go.mod", "go", re.compile(r"(?<![\w-])go\.mod\b", re.IGNORECASE)),
    ("pom.xml", "maven", re.compile(r"(?<![\w-])pom\.xml\b", re.IGNORECASE)),
    ("build.gradle", "gradle", re.compile(r"(?<![\w-])build\.gradle(?:\.kts)?\b", re.IGNORECASE)),
    ("composer.json", "composer", re.compile(r"(?<![\w-])composer\.json\b", re.IGNORECASE)),
    ("Gemfile", "bundler", re.compile(r"(?<![\w-])Gemfile\b")),
    ("*.csproj", "nuget", re.compile(r"\b[\w.-]+\.csproj\b", re.IGNORECASE)),
)

# Install commands per manager; the ``packages`` group holds the named packages.
INSTALL_PATTERNS: Tuple[Tuple[str, Pattern[str]], ...] = (
    ("npm", re.compile(r"^(?:npm\s+(?:install|i|add)|pnpm\s+(?:install|i|add))\b(?P<packages>(?:\s+[^\s;&|]+)*)", re.IGNORECASE)),
    ("npm", re.compile(r"^npm\s+ci\b(?P<packages>)", re.IGNORECASE)),
    ("yarn", re.compile(r"^yarn\s+(?:install|add)(?P<packages>(?:\s+[^\s;&|]+)*)", re.IGNORECASE)),
    ("yarn", re.compile(r"^yarn(?P<packages>)\s*$", re.IGNORECASE)),
    ("pip", re.compile(r"^(?:python3?\s+-m\s+)?pip3?\s+install(?P<packages>(?:\s+[^\s;&|]+)*)", re.IGNORECASE)),
    ("pip", re.compile(r"^(?:poetry|pipenv)\s+(?:install|add)(?P<packages>(?:\s+[^\s;&|]+)*)", re.IGNORECASE)),
    ("conda", re.compile(r"^conda\s+install(?P<packages>(?:\s+[^\s;&|]+)*)", re.IGNORECASE)),
    ("cargo", re.compile(r"^cargo\s+build\b(?P<packages>)", re.IGNORECASE)),
    ("cargo", re.compile(r"^cargo\s+(?:install|add|fetch)(?P<packages>(?:\s+[^\s;&|]+)*)", re.IGNORECASE)),
    ("go", re.compile(r"^go\s+(?:get|install|mod\s+download)(?P<packages>(?:\s+[^\s;&|]+)*)", re.IGNORECASE)),
    ("maven", re.compile(r"^(?:mvn|\./mvnw)\s+(?:clean\s+)?(?:install|compile|package|dependency:resolve)\b(?P<packages>)", re.IGNORECASE)),
    ("gradle", re.compile(r"^(?:gradle|\./gradlew)\s+(?:clean\s+)?(?:dependencies|build)\b(?P<packages>)", re.IGNORECASE)),
    ("composer", re.compile(r"^composer\s+(?:install|require)(?P<packages>(?:\s+[^\s;&|]+)*)", re.IGNORECASE)),
    ("bundler", re.compile(r"^bundle(?:\s+install)?(?P<packages>)\s*$", re.IGNORECASE)),
    ("gem", re.compile(r"^gem\s+install(?P<packages>(?:\s+[^\s;&|]+)*)", re.IGNORECASE)),
    ("nuget", re.compile(r"^dotnet\s+(?:restore|add\s+package)(?P<packages>(?:\s+[^\s;&|]+)*)", re.IGNORECASE)),
)

FALSE_POSITIVE_PACKAGES = {
    "install",
    "build",
    "test",
    "requirements",
    "setup",
    "run",
    "start",
    "dev",
    "prod",
    "production",
    "development",
    "config",
    "configure",
    "init",
    "create",
    "new",
    "add",
    "remove",
    "delete",
    "update",
    "upgrade",
    "clean",
    "and",
    "or",
    "the",
    "with",
    "a",
    "an",
}

MENTION_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"\bdependencies\s+include\s+(?P<names>[^.\n]+?)\s+packages?\b", re.IGNORECASE),
    re.compile(r"\buses\s+(?P<names>[^.\n]+?)\s+(?:packages?|libraries|library)\b", re.IGNORECASE),
    re.compile(r"\bbuilt\s+(?:with|using)\s+(?P<names>[^.\n]+)", re.IGNORECASE),
    re.compile(r"\brequires\s+(?P<names>[^.\n]+)", re.IGNORECASE),
)

MANAGER_LANGUAGES: Dict[str, str] = {
    "npm": "JavaScript",
    "yarn": "JavaScript",
    "pnpm": "JavaScript",
    "pip": "Python",
    "conda": "Python",
    "cargo": "Rust",
    "go": "Go",
    "maven": "Java",
    "gradle": "Java",
    "composer": "PHP",
    "bundler": "Ruby",
    "gem": "Ruby",
    "nuget": "C#",
}

# Package names that identify an ecosystem when mentioned in prose.
KNOWN_PACKAGES: Dict[str, str] = {
    "react": "npm",
    "vue": "npm",
    "angular": "npm",
    "express": "npm",
    "next.js": "npm",
    "typescript": "npm",
    "webpack": "npm",
    "lodash": "npm",
    "axios": "npm",
    "jest": "npm",
    "django": "pip",
    "flask": "pip",
    "fastapi": "pip",
    "pandas": "pip",
    "numpy": "pip",
    "requests": "pip",
    "pytest": "pip",
    "sqlalchemy": "pip",
    "tokio": "cargo",
    "serde": "cargo",
    "actix-web": "cargo",
    "rocket": "cargo",
    "gin": "go",
    "spring": "maven",
    "spring boot": "maven",
    "hibernate": "maven",
    "laravel": "composer",
    "symfony": "composer",
    "rails": "bundler",
    "sinatra": "bundler",
    "rspec": "bundler",
}

_REQUIREMENT_LINE = re.compile(
    r"^(?P<name>[A-Za-z0-9][A-Za-z0-9._-]*)(?:\[[^\]]*\])?\s*(?P<version>(?:[<>=!~]=?|===)\s*[\w.*+-]+(?:\s*,\s*[<>=!~]=?\s*[\w.*+-]+)*)?\s*(?:;.*)?$"
)
_GO_REQUIRE = re.compile(r"^\s*(?:require\s+)?(?P<name>[\w.-]+\.[a-z]{2,}/[\w./-]+)\s+(?P<version>v[\w.+-]+)")
_FILE_FLAGS = {"-r", "-c", "-e", "--requirement", "--constraint", "--editable", "-f", "--file"}
_MANIFEST_SUFFIX = re.compile(r"\.(?:txt|toml|cfg|json|lock|in)$", re.IGNORECASE)


def split_packages(raw: str) -> List[Tuple[str, Optional[str]]]:
    """Split an install command's argument tail into (name, version) pairs."""
    packages: List[Tuple[str, Optional[str]]] = []
    skip_next = False
    for token in raw.split():
        token = token.strip("'\"")
        if skip_next:
            skip_next = False
            continue
        if token in _FILE_FLAGS:
            skip_next = True
            continue
        if token.startswith((".", "-", "/", "~")) or _MANIFEST_SUFFIX.search(token):
            continue
        if token.lower() in FALSE_POSITIVE_PACKAGES:
            continue
        name, version = token, None
        for separator in ("==", ">=", "<=", "~=", "@"):
            if separator in token[1:]:
                index = token.index(separator, 1)
                name, version = token[:index], token[index:].lstrip("=@") or None
                break
        if re.fullmatch(r"@?[\w.-]+(?:/[\w.-]+)*", name) and name.lower() not in FALSE_POSITIVE_PACKAGES:
            packages.append((name, version))
    return packages



def split_names(raw: str) -> List[str]:
    """Split prose such as ``React, Express and Jest`` into candidate names."""
    cleaned = re.sub(r"[`*_]", "", raw)
    parts = re.split(r",|\band\b|\bor\b|&|/", cleaned)
    names: List[str] = []
    for part in parts:
        candidate = part.strip().strip(".:;()").strip()
        if not candidate or len(candidate) > 40 or len(candidate.split()) > 2:
            continue
        if candidate.lower() in FALSE_POSITIVE_PACKAGES:
            continue
        names.append(candidate)
    return names


def parse_package_json(text: str) -> Dict[str, List[Tuple[str, str]]]:
    """Return ``dependencies`` and ``devDependencies`` from an embedded package.json."""
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return _loose_json_dependencies(text)
    if not isinstance(data, dict):
        return {}
    result: Dict[str, List[Tuple[str, str]]] = {}
    for key in ("dependencies", "devDependencies"):
        section = data.get(key)
        if isinstance(section, dict):
            result[key] = [(str(name), str(version)) for name, version in section.items()]
    return result


def _loose_json_dependencies(text: str) -> Dict[str, List[Tuple[str, str]]]:
    # Snippets are frequently partial; fall back to scanning the dependency blocks.
    result: Dict[str, List[Tuple[str, str]]] = {}
    for key in ("devDependencies", "dependencies"):
        match = re.search(r'"' + key + r'"\s*:\s*\{(?P<body>[^}]*)\}', text)
        if match is None:
            continue
        result[key] = re.findall(r'"([^"]+)"\s*:\s*"([^"]+)"', match.group("body"))
    return result


def parse_requirements(text: str) -> List[Tuple[str, Optional[str]]]:
    packages: List[Tuple[str, Optional[str]]] = []
    for line in text.splitlines():
        stripped = line.split(" #", 1)[0].strip()
        if not stripped or stripped.startswith(("#", "-")):
            continue
        match = _REQUIREMENT_LINE.match(stripped)
        if match is None:
            continue
        name = match.group("name")
        if name.lower() in FALSE_POSITIVE_PACKAGES:
            continue
        version = match.group("version")
        packages.append((name, version.replace(" ", "") if version else None))
    return packages


def parse_toml_dependencies(text: str) -> Dict[str, List[Tuple[str, Optional[str]]]]:
    """Extract dependency tables from Cargo.toml or pyproject.toml snippets."""
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError:
        return {}

    result: Dict[str, List[Tuple[str, Optional[str]]]] = {}

    def _table(values: object) -> List[Tuple[str, Optional[str]]]:
        items: List[Tuple[str, Optional[str]]] = []
        if isinstance(values, dict):
            for name, spec in values.items():
                if name == "python":
                    continue
                if isinstance(spec, dict):
                    version = spec.get("version")
                    items.append((str(name), str(version) if version else None))
                else:
                    items.append((str(name), str(spec)))
        elif isinstance(values, list):
            for spec in values:
                match = _REQUIREMENT_LINE.match(str(spec).strip())
                if match:
                    items.append((match.group("name"), match.group("version")))
        return items

    if "dependencies" in data:
        result["cargo:dependencies"] = _table(data.get("dependencies"))
    if "dev-dependencies" in data:
        result["cargo:dev-dependencies"] = _table(data.get("dev-dependencies"))
    project = data.get("project")
    if isinstance(project, dict):
        result["pip:dependencies"] = _table(project.get("dependencies", []))
        optional = project.get("optional-dependencies")
        if isinstance(optional, dict):
            result["pip:dev-dependencies"] = [
                item for values in optional.values() for item in _table(values)
            ]
    tool = data.get("tool")
    poetry = tool.get("poetry") if isinstance(tool, dict) else None
    if isinstance(poetry, dict):
        result.setdefault("pip:dependencies", []).extend(_table(poetry.get("dependencies")))
        result.setdefault("pip:dev-dependencies", []).extend(_table(poetry.get("dev-dependencies")))
    return result


def parse_go_mod(text: str) -> List[Tuple[str, Optional[str]]]:
    return [(match.group("name"), match.group("version")) for match in map(_GO_REQUIRE.match, text.splitlines()) if match]


# Testing helpers


@dataclass(frozen=True)
class FrameworkPattern:
    name: str
    language: Optional[str]
    type: str
    mentions: Tuple[str, ...]
    config_files: Tuple[str, ...] = ()
    commands: Tuple[str, ...] = ()
    imports: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ToolPattern:
    name: str
    type: str
    mentions: Tuple[str, ...]
    config_files: Tuple[str, ...] = ()


TESTING_FRAMEWORKS: Tuple[FrameworkPattern, ...] = (
    FrameworkPattern(
        "Jest",
        "JavaScript",
        "unit",
        ("jest",),
        ("jest.config.js", "jest.config.ts", "jest.config.json"),
        (r"^(?:npx\s+)?jest\b",),
        (r"@jest/globals", r"from\s+['\"]jest['\"]"),
    ),
    FrameworkPattern(
        "Mocha",
        "JavaScript",
        "unit",
        ("mocha",),
        (".mocharc.json", ".mocharc.js", ".mocharc.yml"),
        (r"^(?:npx\s+)?mocha\b",),
        (r"require\(\s*['\"]mocha['\"]",),
    ),
    FrameworkPattern(
        "Vitest",
        "JavaScript",
        "unit",
        ("vitest",),
        ("vitest.config.ts", "vitest.config.js"),
        (r"^(?:npx\s+)?vitest\b",),
        (r"from\s+['\"]vitest['\"]",),
    ),
    FrameworkPattern(
        "Jasmine",
        "JavaScript",
        "unit",
        ("jasmine",),
        ("jasmine.json",),
        (r"^(?:npx\s+)?jasmine\b",),
    ),
    FrameworkPattern(
        "Cypress",
        "JavaScript",
        "e2e",
        ("cypress",),
        ("cypress.config.js", "cypress.config.ts", "cypress.json"),
        (r"^(?:npx\s+)?cypress\s+(?:run|open)\b",),
        (r"\bcy\.visit\(",),
    ),
    FrameworkPattern(
        "Playwright",
        "JavaScript",
        "e2e",
        ("playwright",),
        ("playwright.config.ts", "playwright.config.js"),
        (r"^(?:npx\s+)?playwright\s+test\b",),
        (r"@playwright/test",),
    ),
    FrameworkPattern(
        "pytest",
        "Python",
        "unit",
        ("pytest",),
        ("pytest.ini", "conftest.py"),
        (r"^(?:python3?\s+-m\s+)?pytest\b",),
        (r"^\s*import\s+pytest\b", r"@pytest\."),
    ),
    FrameworkPattern(
        "unittest",
        "Python",
        "unit",
        ("unittest",),
        (),
        (r"^python3?\s+-m\s+unittest\b",),
        (r"^\s*import\s+unittest\b", r"unittest\.TestCase"),
    ),
    FrameworkPattern(
        "nose2",
        "Python",
        "unit",
        ("nose2",),
        (),
        (r"^(?:python3?\s+-m\s+)?nose2\b",),
    ),
    FrameworkPattern(
        "JUnit",
        "Java",
        "unit",
        ("junit",),
        (),
        (),
        (r"import\s+org\.junit", r"@Test\b"),
    ),
    FrameworkPattern(
        "TestNG",
        "Java",
        "unit",
        ("testng",),
        ("testng.xml",),
        (),
        (r"import\s+org\.testng",),
    ),
    FrameworkPattern(
        "Go testing",
        "Go",
        "unit",
        ("go test",),
        (),
        (r"^go\s+test\b",),
        (r"\"testing\"", r"\*testing\.T\b"),
    ),
    FrameworkPattern(
        "Rust cargo test",
        "Rust",
        "unit",
        ("cargo test",),
        (),
        (r"^cargo\s+test\b",),
        (r"#\[test\]", r"#\[cfg\(test\)\]"),
    ),
    FrameworkPattern(
        "RSpec",
        "Ruby",
        "unit",
        ("rspec",),
        (".rspec", "spec_helper.rb"),
        (r"^(?:bundle\s+exec\s+)?rspec\b",),
        (r"RSpec\.describe",),
    ),
    FrameworkPattern(
        "Minitest",
        "Ruby",
        "unit",
        ("minitest",),
        (),
        (r"^(?:bundle\s+exec\s+)?rake\s+test\b",),
        (r"require\s+['\"]minitest",),
    ),
    FrameworkPattern(
        "PHPUnit",
        "PHP",
        "unit",
        ("phpunit",),
        ("phpunit.xml", "phpunit.xml.dist"),
        (r"^(?:\./vendor/bin/)?phpunit\b",),
        (r"extends\s+TestCase",),
    ),
    FrameworkPattern(
        "xUnit",
        "C#",
        "unit",
        ("xunit",),
        (),
        (),
        (r"using\s+Xunit;", r"\[Fact\]"),
    ),
    FrameworkPattern(
        "NUnit",
        "C#",
        "unit",
        ("nunit",),
        (),
        (),
        (r"using\s+NUnit", r"\[TestFixture\]"),
    ),
)

TESTING_TOOLS: Tuple[ToolPattern, ...] = (
    ToolPattern("nyc", "coverage", ("nyc",), (".nycrc", ".nycrc.json")),
    ToolPattern("Istanbul", "coverage", ("istanbul",)),
    ToolPattern("Codecov", "coverage", ("codecov",), ("codecov.yml", ".codecov.yml")),
    ToolPattern("Coveralls", "coverage", ("coveralls",)),
    ToolPattern("coverage.py", "coverage", ("coverage.py", "pytest-cov"), (".coveragerc",)),
    ToolPattern("JaCoCo", "coverage", ("jacoco",)),
    ToolPattern("SimpleCov", "coverage", ("simplecov",)),
    ToolPattern("Sinon", "mocking", ("sinon",)),
    ToolPattern("unittest.mock", "mocking", ("unittest.mock",)),
    ToolPattern("Mockito", "mocking", ("mockito",)),
    ToolPattern("Chai", "assertion", ("chai",)),
    ToolPattern("Karma", "runner", ("karma",), ("karma.conf.js",)),
    ToolPattern("tox", "runner", ("tox",), ("tox.ini",)),
)


def mention_pattern(term: str) -> Pattern[str]:
    return re.compile(r"(?<![\w@/.-])" + re.escape(term) + r"(?![\w-]|\.\w)", re.IGNORECASE)


def file_pattern(name: str) -> Pattern[str]:
    return re.compile(r"(?<![\w-])" + re.escape(name) + r"(?![\w-]|\.\w)", re.IGNORECASE)


# Document helpers


def node_text_lines(document: MarkdownDocument, node: Node) -> List[Tuple[int, str]]:
    return [
        (line, document.lines[line])
        for line in range(node.start_line, min(node.end_line + 1, len(document.lines)))
    ]


def prose_lines(document: MarkdownDocument) -> List[Tuple[int, str]]:
    """Return (line, text) for every line outside code blocks."""
    in_code = set()
    for node in document.code_blocks():
        in_code.update(range(node.start_line, node.end_line + 1))
    return [
        (index, line)
        for index, line in enumerate(document.lines)
        if index not in in_code and line.strip()
    ]


__all__ = [
    "COMMAND_CATEGORIES",
    "FALSE_POSITIVE_PACKAGES",
    "FrameworkPattern",
    "INSTALL_PATTERNS",
    "KNOWN_PACKAGES",
    "MANAGER_LANGUAGES",
    "MENTION_PATTERNS",
    "PACKAGE_FILES",
    "SHELL_FENCE_TAGS",
    "TESTING_FRAMEWORKS",
    "TESTING_TOOLS",
    "ToolPattern",
    "classify_command",
    "command_body",
    "command_language",
    "file_pattern",
    "is_shell_block",
    "iter_command_lines",
    "looks_like_command",
    "mention_pattern",
    "node_text_lines",
    "normalise_command",
    "parse_go_mod",
    "parse_package_json",
    "parse_requirements",
    "parse_toml_dependencies",
    "prose_lines",
    "split_names",
    "split_packages",
]
