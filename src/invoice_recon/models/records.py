"""Data models for invoice records, matched pairs and reconciliation results."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional, Union


class InvoiceField(Enum):
    """Canonical fields of a fixed-schema invoice record."""

    INVOICE_NUMBER = "invoice_number"
    ISSUE_DATE = "issue_date"
    COUNTERPARTY_NAME = "counterparty_name"
    COUNTERPARTY_TAX_ID = "counterparty_tax_id"
    VAT_RATE = "vat_rate"
    VAT_BASE = "vat_base"

    @property
    def label(self) -> str:
        return FIELD_LABELS[self]


FIELD_LABELS = {
    InvoiceField.INVOICE_NUMBER: "Invoice number",
    InvoiceField.ISSUE_DATE: "Issue date",
    InvoiceField.COUNTERPARTY_NAME: "Counterparty name",
    InvoiceField.COUNTERPARTY_TAX_ID: "Tax ID",
    InvoiceField.VAT_RATE: "VAT rate",
    InvoiceField.VAT_BASE: "VAT base",
}


class MatchKind(Enum):
    """How a matched pair was found."""

    EXACT_KEY = "exact-key"
    FALLBACK_SCORED = "fallback-scored"
    GENERIC_GREEDY = "generic-greedy"


@dataclass
class FixedInvoiceRecord:
    """
    One invoice row in the canonical six-field layout.

    All values are kept as the strings read from the source; typing is
    reapplied by the normalizers at comparison time.
    """

    invoice_number: str = ""
    issue_date: str = ""
    counterparty_name: str = ""
    counterparty_tax_id: str = ""
    vat_rate: str = ""
    vat_base: str = ""

    # 1-based data row number in the source file, 0 when built in memory
    row_number: int = 0

    # Original row for audit output
    raw_data: dict[str, str] = field(default_factory=dict, compare=False)

    def get(self, invoice_field: InvoiceField) -> str:
        """Return the raw string value of a canonical field."""
        return getattr(self, invoice_field.value) or ""


@dataclass
class GenericRecord:
    """A row with an open set of columns; missing columns read as ''."""

    values: dict[str, str] = field(default_factory=dict)
    row_number: int = 0

    def get(self, column: str) -> str:
        value = self.values.get(column)
        return "" if value is None else str(value)

    @classmethod
    def from_rows(cls, rows: list[Mapping[str, Any]]) -> list["GenericRecord"]:
        """Wrap plain row mappings, numbering them from 1."""
        return [
            cls(
                values={str(k): "" if v is None else str(v) for k, v in row.items()},
                row_number=i,
            )
            for i, row in enumerate(rows, start=1)
        ]


Record = Union[FixedInvoiceRecord, GenericRecord]


@dataclass(frozen=True)
class ColumnMapping:
    """Declares that a left column is compared with a right column."""

    left_column: str
    right_column: str

    @property
    def label(self) -> str:
        if self.left_column == self.right_column:
            return self.left_column
        return f"{self.left_column} / {self.right_column}"

    @classmethod
    def parse(cls, text: str) -> "ColumnMapping":
        """Build a mapping from ``LEFT=RIGHT`` (or a single shared name)."""
        left, sep, right = text.partition("=")
        left = left.strip()
        right = right.strip() if sep else left
        if not left or not right:
            raise ValueError(f"Invalid column mapping: {text!r}")
        return cls(left, right)


@dataclass(frozen=True)
class Difference:
    """A single field-level disagreement between two matched records."""

    field: str
    left_value: str
    right_value: str

    # Canonical field when the difference comes from fixed-schema comparison
    invoice_field: Optional[InvoiceField] = None

    def describe(self, left_label: str = "Left", right_label: str = "Right") -> str:
        return (
            f'{self.field}: {left_label}="{self.left_value}" '
            f'vs {right_label}="{self.right_value}"'
        )

    def __str__(self) -> str:
        return self.describe()


@dataclass
class MatchedPair:
    """A left record paired with a right record."""

    left: Record
    right: Record
    differences: list[Difference]
    kind: MatchKind

    # Positions in the input sequences
    left_index: int = -1
    right_index: int = -1

    # Fallback or generic confidence, 1.0 for exact-key pairs
    score: float = 1.0
    reason: str = ""

    @property
    def is_identical(self) -> bool:
        return not self.differences

    def describe_differences(
        self, left_label: str = "Left", right_label: str = "Right", sep: str = "; "
    ) -> str:
        return sep.join(d.describe(left_label, right_label) for d in self.differences)


@dataclass
class ReconciliationResult:
    """
    Outcome of one reconciliation run.

    Every left record lands in exactly one of ``left_only`` or a matched
    bucket, and likewise every right record in ``right_only`` or a matched
    bucket.
    """

    left_only: list[Record] = field(default_factory=list)
    right_only: list[Record] = field(default_factory=list)
    value_differences: list[MatchedPair] = field(default_factory=list)
    counterparty_differences: list[MatchedPair] = field(default_factory=list)
    identical: list[MatchedPair] = field(default_factory=list)

    @property
    def matched(self) -> list[MatchedPair]:
        """All matched pairs, identical ones first."""
        return self.identical + self.value_differences + self.counterparty_differences

    @property
    def matched_count(self) -> int:
        return len(self.identical) + len(self.value_differences) + len(
            self.counterparty_differences
        )

    def counts(self) -> dict[str, int]:
        return {
            "identical": len(self.identical),
            "value_differences": len(self.value_differences),
            "counterparty_differences": len(self.counterparty_differences),
            "left_only": len(self.left_only),
            "right_only": len(self.right_only),
        }


@dataclass
class ReconciliationSummary:
    """Summary of the reconciliation process."""

    left_name: str
    right_name: str
    mode: str
    reconciliation_date: datetime

    total_left: int
    total_right: int

    identical_count: int
    value_difference_count: int
    counterparty_difference_count: int
    left_only_count: int
    right_only_count: int

    matches_by_kind: dict[str, int] = field(default_factory=dict)

    processing_time_seconds: float = 0.0
    config_file_used: Optional[str] = None

    @property
    def matched_count(self) -> int:
        return (
            self.identical_count
            + self.value_difference_count
            + self.counterparty_difference_count
        )

    @property
    def match_rate_left(self) -> float:
        """Percentage of left records matched."""
        if self.total_left == 0:
            return 0.0
        return (self.matched_count / self.total_left) * 100

    @property
    def match_rate_right(self) -> float:
        """Percentage of right records matched."""
        if self.total_right == 0:
            return 0.0
        return (self.matched_count / self.total_right) * 100
