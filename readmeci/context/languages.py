"""Per-language detection tables used by the context engine."""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Dict, List, Optional, Pattern, Tuple


@dataclass(frozen=True)
class LanguagePattern:
    name: str
    keywords: Tuple[str, ...]
    fence_tags: Tuple[str, ...]
    extensions: Tuple[str, ...]
    frameworks: Tuple[str, ...]
    config_files: Tuple[str, ...] = ()
    imports: Tuple[str, ...] = ()


LANGUAGE_PATTERNS: Tuple[LanguagePattern, ...] = (
    LanguagePattern(
        name="JavaScript",
        keywords=("javascript", "node.js", "nodejs", "npm", "yarn", "pnpm"),
        fence_tags=("javascript", "js", "jsx", "mjs", "node"),
        extensions=(".js", ".mjs", ".cjs", ".jsx"),
        frameworks=("react", "vue", "angular", "express", "next.js", "svelte"),
        config_files=("package.json", "package-lock.json", "yarn.lock", ".eslintrc.js"),
        imports=(
            r"^\s*(?:const|let|var)\s+\w+\s*=\s*require\(\s*['\"][^'\"]+['\"]\s*\)",
            r"^\s*import\s+.+\s+from\s+['\"][^'\"]+['\"];?\s*$",
            r"^\s*module\.exports\s*=",
        ),
    ),
    LanguagePattern(
        name="TypeScript",
        keywords=("typescript",),
        fence_tags=("typescript", "ts", "tsx"),
        extensions=(".ts", ".tsx"),
        frameworks=("angular", "nestjs", "next.js"),
        config_files=("tsconfig.json",),
        imports=(r"^\s*(?:export\s+)?(?:interface|type)\s+\w+\s*(?:=|\{|<)",),
    ),
    LanguagePattern(
        name="Python",
        keywords=("python", "python3", "pip", "pip3", "conda", "pypi"),
        fence_tags=("python", "py", "python3", "py3"),
        extensions=(".py",),
        frameworks=("django", "flask", "fastapi", "pandas"),
        config_files=("requirements.txt", "setup.py", "pyproject.toml", "pipfile", "setup.cfg", "pytest.ini"),
        imports=(
            r"^\s*from\s+[\w.]+\s+import\s+[\w*(]",
            r"^\s*import\s+[\w.]+(?:\s+as\s+\w+)?\s*$",
            r"^\s*def\s+\w+\(.*\)\s*(?:->\s*[\w\[\], .]+)?:\s*$",
        ),
    ),
    LanguagePattern(
        name="Java",
        keywords=("java", "maven", "gradle", "jvm"),
        fence_tags=("java",),
        extensions=(".java", ".jar"),
        frameworks=("spring", "spring boot", "hibernate"),
        config_files=("pom.xml", "build.gradle", "build.gradle.kts"),
        imports=(r"^\s*import\s+(?:static\s+)?[\w.]+\*?;\s*$", r"^\s*public\s+(?:static\s+)?class\s+\w+"),
    ),
    LanguagePattern(
        name="Go",
        keywords=("golang",),
        fence_tags=("go", "golang"),
        extensions=(".go",),
        frameworks=("gin", "gorilla/mux", "labstack/echo"),
        config_files=("go.mod", "go.sum"),
        imports=(r"^\s*package\s+main\s*$", r"^\s*func\s+\w+\(.*\)\s*(?:\w+\s*)?\{\s*$"),
    ),
    LanguagePattern(
        name="Rust",
        keywords=("rust", "cargo", "rustc", "crates.io"),
        fence_tags=("rust", "rs"),
        extensions=(".rs",),
        frameworks=("actix", "actix-web", "rocket", "tokio"),
        config_files=("cargo.toml", "cargo.lock"),
        imports=(r"^\s*use\s+[\w:]+(?:::\{[^}]*\})?;\s*$", r"^\s*fn\s+\w+\s*\(.*\)\s*(?:->\s*[^{]+)?\{"),
    ),
    LanguagePattern(
        name="PHP",
        keywords=("php", "composer"),
        fence_tags=("php",),
        extensions=(".php",),
        frameworks=("laravel", "symfony"),
        config_files=("composer.json", "composer.lock", "phpunit.xml"),
        imports=(r"^\s*<\?php", r"^\s*use\s+[A-Z][\w\\]+;\s*$", r"^\s*namespace\s+[A-Z][\w\\]+;\s*$"),
    ),
    LanguagePattern(
        name="C#",
        keywords=("csharp", "c#", "dotnet", ".net", "nuget"),
        fence_tags=("csharp", "cs", "c#"),
        extensions=(".cs",),
        frameworks=("asp.net", "blazor"),
        config_files=(".csproj", ".sln"),
        imports=(r"^\s*using\s+System(?:\.[\w.]+)?;\s*$", r"^\s*namespace\s+[\w.]+\s*\{?\s*$"),
    ),
    LanguagePattern(
        name="Ruby",
        keywords=("ruby", "gem", "bundler", "rubygems"),
        fence_tags=("ruby", "rb"),
        extensions=(".rb", ".gemspec"),
        frameworks=("rails", "ruby on rails", "sinatra"),
        config_files=("gemfile", "gemfile.lock", "rakefile"),
        imports=(r"^\s*require\s+['\"][\w/]+['\"]\s*$", r"^\s*class\s+\w+\s*<\s*[\w:]+\s*$"),
    ),
)

PATTERNS_BY_NAME: Dict[str, LanguagePattern] = {pattern.name: pattern for pattern in LANGUAGE_PATTERNS}

FRAMEWORK_DISPLAY_NAMES: Dict[str, str] = {
    "react": "React",
    "vue": "Vue",
    "angular": "Angular",
    "express": "Express",
    "next.js": "Next.js",
    "svelte": "Svelte",
    "nestjs": "NestJS",
    "django": "Django",
    "flask": "Flask",
    "fastapi": "FastAPI",
    "pandas": "pandas",
    "spring": "Spring",
    "spring boot": "Spring Boot",
    "hibernate": "Hibernate",
    "gin": "Gin",
    "gorilla/mux": "Gorilla Mux",
    "labstack/echo": "Echo",
    "actix": "Actix",
    "actix-web": "Actix",
    "rocket": "Rocket",
    "tokio": "Tokio",
    "laravel": "Laravel",
    "symfony": "Symfony",
    "asp.net": "ASP.NET",
    "blazor": "Blazor",
    "rails": "Rails",
    "ruby on rails": "Rails",
    "sinatra": "Sinatra",
}

# Tool prefixes mapped to the language their ecosystem implies, checked in order.
TOOL_LANGUAGES: Tuple[Tuple[Pattern[str], str], ...] = (
    (re.compile(r"^(?:sudo\s+)?(?:npm|npx|yarn|pnpm|node|bun)\b"), "JavaScript"),
    (re.compile(r"^(?:sudo\s+)?(?:tsc|ts-node)\b"), "TypeScript"),
    (re.compile(r"^(?:sudo\s+)?(?:pip3?|python3?|pytest|conda|poetry|pipenv|uvicorn|gunicorn|flask|django-admin|tox)\b"), "Python"),
    (re.compile(r"^(?:sudo\s+)?(?:cargo|rustc|rustup)\b"), "Rust"),
    (re.compile(r"^(?:sudo\s+)?go\s+(?:build|test|run|get|install|mod|vet|fmt|generate)\b"), "Go"),
    (re.compile(r"^(?:sudo\s+)?(?:mvn|\./mvnw|gradle|\./gradlew|java|javac)\b"), "Java"),
    (re.compile(r"^(?:sudo\s+)?(?:dotnet|nuget)\b"), "C#"),
    (re.compile(r"^(?:sudo\s+)?(?:bundle|gem|rake|ruby|rails|rspec)\b"), "Ruby"),
    (re.compile(r"^(?:sudo\s+)?(?:composer|php|phpunit|artisan|\./vendor/bin/phpunit)\b"), "PHP"),
    (re.compile(r"^(?:sudo\s+)?(?:make|cmake|gcc|g\+\+|clang)\b"), "C/C++"),
    (re.compile(r"^(?:sudo\s+)?(?:docker|docker-compose|podman|kubectl|helm)\b"), "Docker"),
)


def infer_language_from_command(command: str) -> Optional[str]:
    """Return the ecosystem language implied by a command's tool, if any."""
    stripped = command.strip().lstrip("$> ").strip()
    for pattern, language in TOOL_LANGUAGES:
        if pattern.match(stripped):
            return language
    return None


def language_for_fence(tag: Optional[str]) -> Optional[str]:
    if not tag:
        return None
    lowered = tag.lower()
    for pattern in LANGUAGE_PATTERNS:
        if lowered in pattern.fence_tags:
            return pattern.name
    return None


def word_pattern(term: str) -> Pattern[str]:
    """Case-insensitive whole-word matcher tolerant of punctuation inside terms."""
    return re.compile(r"(?<![\w#+.@/-])" + re.escape(term) + r"(?![\w#+@/-]|\.\w)", re.IGNORECASE)


def extension_pattern(extension: str) -> Pattern[str]:
    return re.compile(r"(?<![\w/])[\w./-]*\w" + re.escape(extension) + r"(?![\w.])", re.IGNORECASE)


def compiled_imports(pattern: LanguagePattern) -> List[Pattern[str]]:
    return [re.compile(expression) for expression in pattern.imports]


__all__ = [
    "FRAMEWORK_DISPLAY_NAMES",
    "LANGUAGE_PATTERNS",
    "LanguagePattern",
    "PATTERNS_BY_NAME",
    "TOOL_LANGUAGES",
    "compiled_imports",
    "extension_pattern",
    "infer_language_from_command",
    "language_for_fence",
    "word_pattern",
]
