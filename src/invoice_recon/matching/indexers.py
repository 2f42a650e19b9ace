"""Lookup structures from normalized keys to record positions."""

from typing import Sequence
import logging

from ..models.records import FixedInvoiceRecord
from .normalizers import normalize_invoice_number, normalize_tax_id

logger = logging.getLogger(__name__)


def composite_key(record: FixedInvoiceRecord, separator: str = "|") -> str:
    """Normalized tax id and invoice number joined by ``separator``."""
    return (
        f"{normalize_tax_id(record.counterparty_tax_id)}"
        f"{separator}"
        f"{normalize_invoice_number(record.invoice_number)}"
    )


def build_exact_index(
    records: Sequence[FixedInvoiceRecord], separator: str = "|"
) -> dict[str, int]:
    """
    Map each composite key to the position of its record.

    When two records share a key the later one wins.
    """
    index: dict[str, int] = {}
    for position, record in enumerate(records):
        key = composite_key(record, separator)
        if key in index:
            logger.warning(
                f"Duplicate composite key {key!r} at rows {records[index[key]].row_number} "
                f"and {record.row_number}; keeping the later row"
            )
        index[key] = position
    return index


def build_invoice_index(records: Sequence[FixedInvoiceRecord]) -> dict[str, list[int]]:
    """Map each normalized invoice number to the positions sharing it, in input order."""
    index: dict[str, list[int]] = {}
    for position, record in enumerate(records):
        index.setdefault(normalize_invoice_number(record.invoice_number), []).append(position)
    return index
