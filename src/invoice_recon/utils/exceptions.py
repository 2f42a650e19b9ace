"""Custom exceptions for the reconciliation application."""


class ReconciliationError(Exception):
    """Base exception for reconciliation errors."""

    pass


class SourceReadError(ReconciliationError):
    """Error reading a CSV or spreadsheet source."""

    pass


class RecordParseError(ReconciliationError):
    """Error mapping a source table onto invoice records."""

    pass


class ConfigurationError(ReconciliationError):
    """Error in configuration."""

    pass


class ReportGenerationError(ReconciliationError):
    """Error generating Excel report."""

    pass
