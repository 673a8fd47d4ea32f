"""Language context detection and the shared analysis context."""

from .analysis import AnalysisContext
from .collection import ContextDetection
from .engine import CONTEXT_MERGE_GAP, LanguageContextEngine
from .languages import LANGUAGE_PATTERNS, infer_language_from_command

__all__ = [
    "AnalysisContext",
    "CONTEXT_MERGE_GAP",
    "ContextDetection",
    "LANGUAGE_PATTERNS",
    "LanguageContextEngine",
    "infer_language_from_command",
]
