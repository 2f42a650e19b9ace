"""Invoice reconciliation between two independently-sourced tabular datasets."""

from .matching.engine import ReconciliationEngine, reconcile_generic, reconcile_invoices
from .models.records import (
    ColumnMapping,
    FixedInvoiceRecord,
    GenericRecord,
    ReconciliationResult,
)

__version__ = "0.1.0"

__all__ = [
    "ColumnMapping",
    "FixedInvoiceRecord",
    "GenericRecord",
    "ReconciliationEngine",
    "ReconciliationResult",
    "reconcile_generic",
    "reconcile_invoices",
]
