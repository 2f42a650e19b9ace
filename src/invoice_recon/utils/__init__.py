"""Utility modules."""

from .exceptions import (
    ReconciliationError,
    SourceReadError,
    RecordParseError,
    ConfigurationError,
    ReportGenerationError,
)
from .logging_config import setup_logging

__all__ = [
    "ReconciliationError",
    "SourceReadError",
    "RecordParseError",
    "ConfigurationError",
    "ReportGenerationError",
    "setup_logging",
]
