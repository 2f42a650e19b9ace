"""Data models for reconciliation."""

from .records import (
    ColumnMapping,
    Difference,
    FixedInvoiceRecord,
    GenericRecord,
    InvoiceField,
    MatchKind,
    MatchedPair,
    ReconciliationResult,
    ReconciliationSummary,
    Record,
)

__all__ = [
    "ColumnMapping",
    "Difference",
    "FixedInvoiceRecord",
    "GenericRecord",
    "InvoiceField",
    "MatchKind",
    "MatchedPair",
    "ReconciliationResult",
    "ReconciliationSummary",
    "Record",
]
