"""
Invoice record parser.
Maps a source table onto the canonical six-field invoice layout.
"""

from pathlib import Path
from typing import Optional
import logging

from ..config import ReconConfig, SourceConfig
from ..models.records import FixedInvoiceRecord, GenericRecord, InvoiceField
from ..matching.normalizers import strip_country_prefix
from ..utils.exceptions import RecordParseError
from .tabular_reader import TabularData, TabularReader

logger = logging.getLogger(__name__)


class InvoiceRecordParser:
    """
    Parser turning rows of one side into ``FixedInvoiceRecord`` objects.

    Column names come from ``input.left`` or ``input.right`` in the
    configuration.
    """

    def __init__(self, config: Optional[ReconConfig] = None, side: str = "left"):
        """
        Initialize the parser for one side of the reconciliation.

        Args:
            config: Application configuration object
            side: "left" or "right"
        """
        if side not in ("left", "right"):
            raise ValueError(f"side must be 'left' or 'right', not {side!r}")
        self.config = config or ReconConfig()
        self.side = side
        self.source: SourceConfig = getattr(self.config.input, side)

    def parse_file(self, file_path: Path) -> list[FixedInvoiceRecord]:
        """
        Read a source file and return its invoice records.

        Raises:
            SourceReadError: If the file cannot be read
            RecordParseError: If configured columns are missing
        """
        table = TabularReader(self.config).read(file_path)
        return self.parse(table)

    def parse(self, table: TabularData) -> list[FixedInvoiceRecord]:
        """
        Convert a table to invoice records.

        Rows without an invoice number are skipped.

        Args:
            table: Headers and string rows

        Returns:
            List of invoice records in table order
        """
        columns = self._resolve_columns(table.headers)
        records: list[FixedInvoiceRecord] = []

        for row_number, row in enumerate(table.rows, start=1):
            values = {
                invoice_field.value: (row.get(column) or "").strip()
                for invoice_field, column in columns.items()
            }
            if not values[InvoiceField.INVOICE_NUMBER.value]:
                logger.warning(
                    f"{self.source.label} row {row_number}: no invoice number, skipping"
                )
                continue

            tax_id_key = InvoiceField.COUNTERPARTY_TAX_ID.value
            if self.source.strip_country_prefix:
                values[tax_id_key] = strip_country_prefix(values[tax_id_key])

            records.append(
                FixedInvoiceRecord(row_number=row_number, raw_data=dict(row), **values)
            )

        logger.info(
            f"Parsed {len(records)} invoice records from {self.source.label} "
            f"({len(table.rows) - len(records)} skipped)"
        )
        return records

    def _resolve_columns(self, headers: list[str]) -> dict[InvoiceField, str]:
        """Match configured column names to the table headers, ignoring case and spacing."""
        by_key = {" ".join(h.split()).lower(): h for h in headers}
        resolved: dict[InvoiceField, str] = {}
        missing: list[str] = []

        for invoice_field in InvoiceField:
            configured = self.source.column_mappings.get(invoice_field.value)
            if not configured:
                missing.append(f"{invoice_field.value} (not configured)")
                continue
            header = by_key.get(" ".join(configured.split()).lower())
            if header is None:
                missing.append(configured)
            else:
                resolved[invoice_field] = header

        if missing:
            raise RecordParseError(
                f"{self.source.label} source is missing columns: {', '.join(missing)}; "
                f"available columns: {', '.join(headers) or '(none)'}"
            )
        return resolved


def parse_generic_file(
    file_path: Path, config: Optional[ReconConfig] = None
) -> tuple[TabularData, list[GenericRecord]]:
    """Read a file for generic-mode reconciliation."""
    table = TabularReader(config).read(file_path)
    return table, GenericRecord.from_rows(table.rows)
