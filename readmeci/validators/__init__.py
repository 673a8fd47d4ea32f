"""Aggregation-time validators."""

from .base import ERROR, INFO, WARNING, ValidationContext, Validator
from .consistency import ConsistencyValidator
from .data_flow import DataFlowValidator

__all__ = [
    "ConsistencyValidator",
    "DataFlowValidator",
    "ERROR",
    "INFO",
    "ValidationContext",
    "Validator",
    "WARNING",
]
