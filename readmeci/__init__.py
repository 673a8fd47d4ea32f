"""readmeci: extract CI-relevant project facts from README documentation."""

from .aggregator import ResultAggregator
from .config import ConfigError, ParserConfig, load_config
from .models import AggregatedResult, ParseResult, PipelineResult, ProjectInfo, ReadmeCIError
from .parser import ReadmeParser
from .pipeline import IntegrationPipeline
from .registry import AnalyzerRegistry, RegistrationError, RegistrationResult

__all__ = [
    "AggregatedResult",
    "AnalyzerRegistry",
    "ConfigError",
    "IntegrationPipeline",
    "ParseResult",
    "ParserConfig",
    "PipelineResult",
    "ProjectInfo",
    "ReadmeCIError",
    "ReadmeParser",
    "RegistrationError",
    "RegistrationResult",
    "ResultAggregator",
    "load_config",
]

__version__ = "0.1.0"
