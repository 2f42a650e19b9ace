"""
Difference detection and bucket classification for matched pairs.
"""

from enum import Enum
from typing import Optional, Sequence

from ..config import MatchingConfig
from ..models.records import (
    ColumnMapping,
    Difference,
    FixedInvoiceRecord,
    GenericRecord,
    InvoiceField,
    MatchedPair,
    ReconciliationResult,
)
from .similarity import (
    company_names_match,
    dates_match,
    generic_values_match,
    numbers_equal,
    tax_ids_match,
)

COUNTERPARTY_FIELDS = frozenset(
    {InvoiceField.COUNTERPARTY_NAME, InvoiceField.COUNTERPARTY_TAX_ID}
)


class PairCategory(Enum):
    """Bucket a matched pair belongs to."""

    IDENTICAL = "identical"
    VALUE_DIFFERENCE = "value_difference"
    COUNTERPARTY_DIFFERENCE = "counterparty_difference"


class DifferenceClassifier:
    """Computes per-field differences and files matched pairs into buckets."""

    def __init__(self, config: Optional[MatchingConfig] = None):
        self.config = config or MatchingConfig()

    def invoice_differences(
        self, left: FixedInvoiceRecord, right: FixedInvoiceRecord
    ) -> list[Difference]:
        """Compare tax id, issue date, counterparty name, VAT rate and VAT base."""
        company = self.config.company
        tolerance = self.config.numeric_tolerance

        checks = [
            (InvoiceField.COUNTERPARTY_TAX_ID, tax_ids_match),
            (InvoiceField.ISSUE_DATE, dates_match),
            (
                InvoiceField.COUNTERPARTY_NAME,
                lambda a, b: company_names_match(
                    a,
                    b,
                    token_ratio=company.token_ratio,
                    stop_words=company.stop_words,
                    min_token_length=company.min_token_length,
                ),
            ),
            (InvoiceField.VAT_RATE, lambda a, b: numbers_equal(a, b, tolerance)),
            (InvoiceField.VAT_BASE, lambda a, b: numbers_equal(a, b, tolerance)),
        ]

        differences: list[Difference] = []
        for invoice_field, same in checks:
            left_value = left.get(invoice_field)
            right_value = right.get(invoice_field)
            if not same(left_value, right_value):
                differences.append(
                    Difference(
                        field=invoice_field.label,
                        left_value=left_value,
                        right_value=right_value,
                        invoice_field=invoice_field,
                    )
                )
        return differences

    def generic_differences(
        self,
        left: GenericRecord,
        right: GenericRecord,
        mappings: Sequence[ColumnMapping],
    ) -> list[Difference]:
        """One difference per mapping whose two cells do not match."""
        generic = self.config.generic
        differences: list[Difference] = []
        for mapping in mappings:
            left_value = left.get(mapping.left_column)
            right_value = right.get(mapping.right_column)
            if not generic_values_match(
                left_value,
                right_value,
                numeric_tolerance=self.config.numeric_tolerance,
                edit_similarity_threshold=generic.edit_similarity_threshold,
                edit_min_length=generic.edit_min_length,
            ):
                differences.append(Difference(mapping.label, left_value, right_value))
        return differences

    @staticmethod
    def categorize(pair: MatchedPair, fixed_schema: bool) -> PairCategory:
        if pair.is_identical:
            return PairCategory.IDENTICAL
        if fixed_schema and all(
            d.invoice_field in COUNTERPARTY_FIELDS for d in pair.differences
        ):
            return PairCategory.COUNTERPARTY_DIFFERENCE
        return PairCategory.VALUE_DIFFERENCE

    def file_pair(
        self, result: ReconciliationResult, pair: MatchedPair, fixed_schema: bool
    ) -> PairCategory:
        """Append ``pair`` to the bucket of ``result`` it belongs to."""
        category = self.categorize(pair, fixed_schema)
        if category is PairCategory.IDENTICAL:
            result.identical.append(pair)
        elif category is PairCategory.COUNTERPARTY_DIFFERENCE:
            result.counterparty_differences.append(pair)
        else:
            result.value_differences.append(pair)
        return category
