"""Core data models shared across readmeci components."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple


class ReadmeCIError(RuntimeError):
    """Base class for errors raised by readmeci."""


@dataclass(frozen=True)
class SourceRange:
    """Zero-based line/column span inside the analysed document."""

    start_line: int
    end_line: int
    start_column: int = 0
    end_column: int = 0

    def contains(self, line: int, column: Optional[int] = None) -> bool:
        if line < self.start_line or line > self.end_line:
            return False
        if column is None:
            return True
        if line == self.start_line and column < self.start_column:
            return False
        if line == self.end_line and self.end_column and column > self.end_column:
            return False
        return True

    def overlaps(self, other: "SourceRange") -> bool:
        return not (other.end_line < self.start_line or other.start_line > self.end_line)

    @staticmethod
    def empty() -> "SourceRange":
        return SourceRange(0, 0, 0, 0)


@dataclass(frozen=True)
class Evidence:
    """Single located, typed and weighted signal supporting a detection."""

    type: str
    value: str
    location: SourceRange
    weight: float
    snippet: Optional[str] = None


@dataclass(frozen=True)
class ContextMetadata:
    """Provenance attached to a language context."""

    created_at: datetime
    source: str
    framework: Optional[str] = None


@dataclass(frozen=True)
class LanguageContext:
    """Confidence-scored region of the document attributed to one language."""

    language: str
    confidence: float
    source_range: SourceRange
    evidence: Tuple[Evidence, ...]
    metadata: ContextMetadata


@dataclass(frozen=True)
class ContextBoundary:
    """Transition point between two adjacent contexts."""

    position: int
    transition_type: str
    from_language: Optional[str] = None
    to_language: Optional[str] = None


@dataclass
class LanguageInfo:
    """Externally visible summary of a detected language."""

    name: str
    confidence: float
    sources: List[str] = field(default_factory=list)
    frameworks: List[str] = field(default_factory=list)


# Commands


@dataclass
class Command:
    """Shell command extracted from the documentation."""

    command: str
    language: str
    confidence: float
    source: str = "code-block"
    line: Optional[int] = None
    context_language: Optional[str] = None


@dataclass
class CommandInfo:
    """Commands bucketed by purpose."""

    build: List[Command] = field(default_factory=list)
    test: List[Command] = field(default_factory=list)
    run: List[Command] = field(default_factory=list)
    install: List[Command] = field(default_factory=list)
    other: List[Command] = field(default_factory=list)
    confidence: float = 0.0
    sources: List[str] = field(default_factory=list)

    def all_commands(self) -> List[Command]:
        return [*self.build, *self.test, *self.run, *self.install, *self.other]

    def for_language(self, language: str) -> List[Command]:
        return [command for command in self.all_commands() if command.language == language]


# Dependencies


@dataclass
class PackageFile:
    """Package manifest mentioned in the documentation."""

    name: str
    type: str
    confidence: float


@dataclass
class InstallCommand:
    command: str
    manager: str
    confidence: float
    context: str = "code-block"


@dataclass
class Dependency:
    """Dependency declared in an embedded manifest or install command."""

    name: str
    manager: str
    confidence: float
    source: str
    version: Optional[str] = None
    type: str = "production"


@dataclass
class PackageMention:
    name: str
    manager: str
    confidence: float


@dataclass
class DependencyInfo:
    """Everything the documentation says about dependencies."""

    package_files: List[PackageFile] = field(default_factory=list)
    install_commands: List[InstallCommand] = field(default_factory=list)
    packages: List[PackageMention] = field(default_factory=list)
    dependencies: List[Dependency] = field(default_factory=list)
    dev_dependencies: List[Dependency] = field(default_factory=list)
    confidence: float = 0.0
    sources: List[str] = field(default_factory=list)

    def managers(self) -> List[str]:
        seen: Dict[str, None] = {}
        for item in self.package_files:
            seen.setdefault(item.type, None)
        for item in (*self.install_commands, *self.packages, *self.dependencies, *self.dev_dependencies):
            seen.setdefault(item.manager, None)
        return [manager for manager in seen if manager != "unknown"]


# Testing


@dataclass
class TestingFramework:
    __test__ = False

    name: str
    language: str
    confidence: float
    type: str = "unit"


@dataclass
class TestingTool:
    __test__ = False

    name: str
    type: str
    confidence: float


@dataclass
class TestingInfo:
    """Testing frameworks, tools and configuration mentioned in the document."""

    __test__ = False

    frameworks: List[TestingFramework] = field(default_factory=list)
    tools: List[TestingTool] = field(default_factory=list)
    config_files: List[str] = field(default_factory=list)
    test_commands: List[str] = field(default_factory=list)
    confidence: float = 0.0
    sources: List[str] = field(default_factory=list)


# Metadata


@dataclass
class EnvironmentVariable:
    name: str
    required: bool
    description: Optional[str] = None
    default_value: Optional[str] = None
    value_type: str = "string"


@dataclass
class ProjectMetadata:
    """Project level facts: title, description, layout and environment."""

    name: Optional[str] = None
    description: Optional[str] = None
    structure: List[str] = field(default_factory=list)
    environment: List[EnvironmentVariable] = field(default_factory=list)
    confidence: float = 0.0
    sources: List[str] = field(default_factory=list)


# Analyzer results


@dataclass
class ParseError:
    """Structured error record; analyzers report failures as data."""

    code: str
    message: str
    component: str
    severity: str = "error"
    recoverable: bool = True


@dataclass
class AnalyzerResult:
    """Partial result produced by one analyzer."""

    success: bool
    data: Any = None
    confidence: float = 0.0
    sources: List[str] = field(default_factory=list)
    errors: List[ParseError] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failure(cls, error: ParseError, data: Any = None) -> "AnalyzerResult":
        return cls(success=False, data=data, confidence=0.0, sources=[], errors=[error])

    @property
    def usable(self) -> bool:
        return self.success and (self.confidence > 0 or has_content(self.data))


@dataclass
class AnalyzerMetadata:
    processing_time: float = 0.0
    data_quality: float = 0.0
    completeness: float = 0.0


@dataclass
class EnhancedAnalyzerResult:
    """Analyzer result annotated with aggregation-time metadata."""

    analyzer_name: str
    result: AnalyzerResult
    metadata: AnalyzerMetadata = field(default_factory=AnalyzerMetadata)

    @property
    def success(self) -> bool:
        return self.result.success

    @property
    def confidence(self) -> float:
        return self.result.confidence

    @property
    def data(self) -> Any:
        return self.result.data


# Aggregation


@dataclass
class ValidationIssue:
    """Single finding of aggregation-time validation."""

    rule: str
    severity: str
    message: str
    producer: Optional[str] = None
    consumer: Optional[str] = None


@dataclass
class ValidationStatus:
    is_valid: bool = True
    issues: List[ValidationIssue] = field(default_factory=list)


@dataclass
class DataFlowValidation:
    """Whether data produced upstream was observably used downstream."""

    producer: str
    consumer: str
    propagated: bool
    detail: str = ""


@dataclass
class ConfidenceScores:
    overall: float = 0.0
    languages: float = 0.0
    dependencies: float = 0.0
    commands: float = 0.0
    testing: float = 0.0
    metadata: float = 0.0


@dataclass
class ProjectInfo:
    """Validated project model consumed by CI/CD generation."""

    metadata: ProjectMetadata = field(default_factory=ProjectMetadata)
    languages: List[LanguageInfo] = field(default_factory=list)
    dependencies: DependencyInfo = field(default_factory=DependencyInfo)
    commands: CommandInfo = field(default_factory=CommandInfo)
    testing: TestingInfo = field(default_factory=TestingInfo)
    confidence: ConfidenceScores = field(default_factory=ConfidenceScores)
    extras: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return _to_plain(self)


@dataclass
class IntegrationMetadata:
    analyzers_run: List[str] = field(default_factory=list)
    analyzers_failed: List[str] = field(default_factory=list)
    data_flow: List[DataFlowValidation] = field(default_factory=list)
    naive_confidence: float = 0.0
    penalty: float = 0.0
    analyzer_details: Dict[str, EnhancedAnalyzerResult] = field(default_factory=dict)


@dataclass
class AggregatedResult:
    project_info: ProjectInfo
    confidence: ConfidenceScores
    validation_status: ValidationStatus
    integration_metadata: IntegrationMetadata


@dataclass
class ParseResult:
    """Top-level outcome handed to CLI and workflow generation."""

    success: bool
    data: Optional[ProjectInfo] = None
    errors: List[ParseError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class PipelineResult(ParseResult):
    """ParseResult plus the execution details of the pipeline run."""

    aggregated: Optional[AggregatedResult] = None
    analyzer_results: Dict[str, AnalyzerResult] = field(default_factory=dict)
    execution_order: List[List[str]] = field(default_factory=list)
    performance: Dict[str, float] = field(default_factory=dict)
    cache_hits: List[str] = field(default_factory=list)


def has_content(value: Any) -> bool:
    """Return True when ``value`` carries any finding at all.

    Scores and flags nested inside a record do not count as findings; only
    strings, collections and nested records with such content do.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (str, bytes, list, tuple, set, frozenset, Mapping)):
        return bool(value)
    if is_dataclass(value) and not isinstance(value, type):
        for item in fields(value):
            if item.name.startswith("_") or item.name in {"confidence", "sources"}:
                continue
            nested = getattr(value, item.name)
            if isinstance(nested, (bool, int, float)):
                continue
            if has_content(nested):
                return True
        return False
    return True


def _to_plain(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return {
            item.name: _to_plain(getattr(value, item.name))
            for item in fields(value)
            if not item.name.startswith("_")
        }
    if isinstance(value, Mapping):
        return {str(key): _to_plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_to_plain(item) for item in value]
    if isinstance(value, datetime):
        return value.isoformat()
    return value


__all__ = [
    "AggregatedResult",
    "AnalyzerMetadata",
    "AnalyzerResult",
    "Command",
    "CommandInfo",
    "ConfidenceScores",
    "ContextBoundary",
    "ContextMetadata",
    "DataFlowValidation",
    "Dependency",
    "DependencyInfo",
    "EnhancedAnalyzerResult",
    "EnvironmentVariable",
    "Evidence",
    "InstallCommand",
    "IntegrationMetadata",
    "LanguageContext",
    "LanguageInfo",
    "PackageFile",
    "PackageMention",
    "ParseError",
    "ParseResult",
    "PipelineResult",
    "ProjectInfo",
    "ProjectMetadata",
    "ReadmeCIError",
    "SourceRange",
    "TestingFramework",
    "TestingInfo",
    "TestingTool",
    "ValidationIssue",
    "ValidationStatus",
    "has_content",
]
