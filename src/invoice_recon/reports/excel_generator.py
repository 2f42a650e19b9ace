"""
Excel report generator for reconciliation results.
Creates a summary sheet and a detail sheet with a running total.
"""

from pathlib import Path
from typing import Any, Callable, Iterator, Optional, Sequence
import logging

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Border, Side
from openpyxl.worksheet.worksheet import Worksheet

from ..config import ReconConfig
from ..matching.normalizers import normalize_number
from ..models.records import (
    ColumnMapping,
    FixedInvoiceRecord,
    GenericRecord,
    MatchedPair,
    ReconciliationResult,
    ReconciliationSummary,
)
from ..utils.exceptions import ReportGenerationError

logger = logging.getLogger(__name__)

# Style definitions
HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True)
IDENTICAL_FILL = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
VALUE_DIFF_FILL = PatternFill(start_color="FCD5B4", end_color="FCD5B4", fill_type="solid")
COUNTERPARTY_FILL = PatternFill(start_color="BDD7EE", end_color="BDD7EE", fill_type="solid")
LEFT_ONLY_FILL = PatternFill(start_color="FFEB9C", end_color="FFEB9C", fill_type="solid")
RIGHT_ONLY_FILL = PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)

STATUS_IDENTICAL = "IDENTICAL"
STATUS_VALUE_DIFF = "VALUE DIFFERENCES"
STATUS_COUNTERPARTY = "COUNTERPARTY DIFFERENCES"
STATUS_LEFT_ONLY = "LEFT ONLY"
STATUS_RIGHT_ONLY = "RIGHT ONLY"

INVOICE_COLUMNS = [
    ("Invoice Number", "invoice_number"),
    ("Issue Date", "issue_date"),
    ("Counterparty", "counterparty_name"),
    ("Tax ID", "counterparty_tax_id"),
    ("VAT Rate", "vat_rate"),
    ("VAT Base", "vat_base"),
]


class ExcelReportGenerator:
    """Generates Excel reconciliation reports."""

    def __init__(self, config: Optional[ReconConfig] = None):
        """
        Initialize the report generator.

        Args:
            config: Application configuration
        """
        self.config = config or ReconConfig()
        self.sheet_config = self.config.output.sheets
        self.left_label = self.config.input.left.label
        self.right_label = self.config.input.right.label

    def generate_report(
        self,
        summary: ReconciliationSummary,
        result: ReconciliationResult,
        output_path: Path,
        mappings: Optional[Sequence[ColumnMapping]] = None,
        sum_column: Optional[str] = None,
    ) -> Path:
        """
        Generate the complete reconciliation report.

        Args:
            summary: Reconciliation summary
            result: Reconciliation result buckets
            output_path: Path for output file
            mappings: Column mappings for a generic-mode result
            sum_column: Left column to total in generic mode

        Returns:
            Path to generated report

        Raises:
            ReportGenerationError: If the workbook cannot be written
        """
        logger.info(f"Generating Excel report: {output_path}")

        wb = self.build_workbook(summary, result, mappings, sum_column)

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            wb.save(output_path)
        except OSError as e:
            raise ReportGenerationError(f"Could not save report to {output_path}: {e}") from e

        logger.info(f"Report saved: {output_path}")
        return output_path

    def build_workbook(
        self,
        summary: ReconciliationSummary,
        result: ReconciliationResult,
        mappings: Optional[Sequence[ColumnMapping]] = None,
        sum_column: Optional[str] = None,
    ) -> Workbook:
        """Build the workbook in memory without saving it."""
        wb = Workbook()

        # Remove default sheet
        if wb.active:
            wb.remove(wb.active)

        if self.sheet_config.summary.enabled:
            self._create_summary_sheet(wb, summary)

        if self.sheet_config.details.enabled:
            if mappings is None:
                self._create_invoice_detail_sheet(wb, result)
            else:
                self._create_generic_detail_sheet(wb, result, mappings, sum_column)

        if not wb.sheetnames:
            wb.create_sheet(self.sheet_config.summary.name)

        return wb

    def _create_summary_sheet(self, wb: Workbook, summary: ReconciliationSummary) -> None:
        """Create the summary sheet with counts per bucket."""
        ws = wb.create_sheet(self.sheet_config.summary.name)

        ws["A1"] = "Invoice Reconciliation Summary"
        ws["A1"].font = Font(size=16, bold=True)
        ws.merge_cells("A1:D1")

        ws["A3"] = "Sources"
        ws["A3"].font = Font(bold=True)

        source_info = [
            (f"{self.left_label}:", summary.left_name),
            (f"{self.right_label}:", summary.right_name),
            ("Mode:", summary.mode),
            ("Generated:", summary.reconciliation_date.strftime("%Y-%m-%d %H:%M:%S")),
            ("Config File:", summary.config_file_used or "Default"),
        ]
        row = self._write_pairs(ws, source_info, start=4)

        row += 1
        ws[f"A{row}"] = "Results"
        ws[f"A{row}"].font = Font(bold=True)

        count_data = [
            (f"Total {self.left_label} Records:", summary.total_left),
            (f"Total {self.right_label} Records:", summary.total_right),
            ("Identical:", summary.identical_count),
            ("Value Differences:", summary.value_difference_count),
            ("Counterparty Differences:", summary.counterparty_difference_count),
            (f"Only in {self.left_label}:", summary.left_only_count),
            (f"Only in {self.right_label}:", summary.right_only_count),
            (f"{self.left_label} Match Rate:", f"{summary.match_rate_left:.1f}%"),
            (f"{self.right_label} Match Rate:", f"{summary.match_rate_right:.1f}%"),
        ]
        row = self._write_pairs(ws, count_data, start=row + 1)

        row += 1
        ws[f"A{row}"] = "Matches by Kind"
        ws[f"A{row}"].font = Font(bold=True)
        self._write_pairs(ws, list(summary.matches_by_kind.items()), start=row + 1)

        ws.column_dimensions["A"].width = 32
        ws.column_dimensions["B"].width = 40

    @staticmethod
    def _write_pairs(ws: Worksheet, pairs: list[tuple[str, Any]], start: int) -> int:
        """Write label/value pairs in columns A and B; return the next free row."""
        row = start
        for label, value in pairs:
            ws[f"A{row}"] = label
            ws[f"B{row}"] = value
            row += 1
        return row

    def _create_invoice_detail_sheet(self, wb: Workbook, result: ReconciliationResult) -> None:
        """One row per record with status, values, running VAT base total and differences."""
        headers = ["Status", "Source"] + [h for h, _ in INVOICE_COLUMNS]
        headers += ["Running Total", "Match Kind", "Differences"]

        def values(record: FixedInvoiceRecord, side: str) -> list[Any]:
            return [getattr(record, attr) for _, attr in INVOICE_COLUMNS]

        def amount(record: FixedInvoiceRecord, side: str) -> float:
            return normalize_number(record.vat_base)

        self._write_detail_sheet(wb, result, headers, values, amount, "VAT Base")

    def _create_generic_detail_sheet(
        self,
        wb: Workbook,
        result: ReconciliationResult,
        mappings: Sequence[ColumnMapping],
        sum_column: Optional[str],
    ) -> None:
        """Detail rows for generic mode: one column per mapping."""
        headers = ["Status", "Source"] + [m.label for m in mappings]
        headers += ["Running Total", "Match Kind", "Differences"]
        sum_mapping = next((m for m in mappings if m.left_column == sum_column), None)

        def values(record: GenericRecord, side: str) -> list[Any]:
            if side == "left":
                return [record.get(m.left_column) for m in mappings]
            return [record.get(m.right_column) for m in mappings]

        def amount(record: GenericRecord, side: str) -> float:
            if sum_column is None:
                return 0.0
            if side == "left":
                return normalize_number(record.get(sum_column))
            if sum_mapping is None:
                return 0.0
            return normalize_number(record.get(sum_mapping.right_column))

        self._write_detail_sheet(wb, result, headers, values, amount, sum_column or "")

    def _write_detail_sheet(
        self,
        wb: Workbook,
        result: ReconciliationResult,
        headers: list[str],
        values: Callable[[Any, str], list[Any]],
        amount: Callable[[Any, str], float],
        total_label: str,
    ) -> None:
        """
        Write the detail sheet shared by both modes.

        Matched pairs take two rows (left then right); the running total
        advances once per bucket entry, by the left value for pairs.
        """
        ws = wb.create_sheet(self.sheet_config.details.name)

        for col, header in enumerate(headers, start=1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.fill = HEADER_FILL
            cell.font = HEADER_FONT
            cell.border = THIN_BORDER

        total_col = headers.index("Running Total") + 1
        running_total = 0.0
        row = 2

        for status, fill, entry in self._detail_entries(result):
            if isinstance(entry, MatchedPair):
                running_total += amount(entry.left, "left")
                lines = [
                    (
                        status,
                        "left",
                        entry.left,
                        entry.kind.value,
                        entry.describe_differences(self.left_label, self.right_label),
                    ),
                    ("", "right", entry.right, entry.kind.value, ""),
                ]
            else:
                side = "left" if status == STATUS_LEFT_ONLY else "right"
                running_total += amount(entry, side)
                lines = [(status, side, entry, "", "")]

            for line_no, (label, side, record, kind, diff_text) in enumerate(lines):
                source = self.left_label if side == "left" else self.right_label
                row_data = [label, source] + values(record, side)
                row_data += [round(running_total, 2) if line_no == 0 else "", kind, diff_text]
                for col, value in enumerate(row_data, start=1):
                    cell = ws.cell(row=row, column=col, value=value)
                    cell.border = THIN_BORDER
                    cell.fill = fill
                row += 1

        row += 1
        ws.cell(row=row, column=1, value="TOTAL").font = Font(bold=True)
        ws.cell(row=row, column=total_col, value=round(running_total, 2)).font = Font(bold=True)
        if total_label:
            ws.cell(row=row, column=total_col + 2, value=f"Sum of {total_label}")

        self._auto_fit_columns(ws)

    @staticmethod
    def _detail_entries(result: ReconciliationResult) -> Iterator[tuple[str, PatternFill, Any]]:
        for pair in result.identical:
            yield STATUS_IDENTICAL, IDENTICAL_FILL, pair
        for pair in result.value_differences:
            yield STATUS_VALUE_DIFF, VALUE_DIFF_FILL, pair
        for pair in result.counterparty_differences:
            yield STATUS_COUNTERPARTY, COUNTERPARTY_FILL, pair
        for record in result.left_only:
            yield STATUS_LEFT_ONLY, LEFT_ONLY_FILL, record
        for record in result.right_only:
            yield STATUS_RIGHT_ONLY, RIGHT_ONLY_FILL, record

    def _auto_fit_columns(self, ws: Worksheet) -> None:
        """Auto-fit column widths based on content."""
        for column_cells in ws.columns:
            max_length = max(
                (len(str(cell.value)) for cell in column_cells if cell.value is not None),
                default=0,
            )
            ws.column_dimensions[column_cells[0].column_letter].width = min(max_length + 2, 60)
