"""
Reconciliation engine for invoice datasets.
Runs the matching strategies in priority order and classifies the outcome.
"""

from datetime import datetime
from typing import Optional, Sequence
import logging

from ..config import ReconConfig
from ..models.records import (
    ColumnMapping,
    FixedInvoiceRecord,
    GenericRecord,
    MatchedPair,
    Record,
    ReconciliationResult,
    ReconciliationSummary,
)
from .classifier import DifferenceClassifier
from .strategies import (
    ExactKeyStrategy,
    FallbackScoreStrategy,
    GenericGreedyStrategy,
    MatchingStrategy,
)

logger = logging.getLogger(__name__)

FIXED_SCHEMA_MODE = "fixed-schema"
GENERIC_MODE = "generic"


class ReconciliationEngine:
    """
    Main reconciliation engine that orchestrates the matching process.

    Fixed-schema runs try the exact composite key first and the scored
    invoice-number fallback second; generic runs use a single greedy pass.
    Whatever is left unconsumed ends up one-sided. The engine never raises
    on well-formed input, and holds no state between calls.
    """

    def __init__(self, config: Optional[ReconConfig] = None):
        """
        Initialize the reconciliation engine.

        Args:
            config: Application configuration (defaults when omitted)
        """
        self.config = config or ReconConfig()
        self.classifier = DifferenceClassifier(self.config.matching)

    def _invoice_strategies(self) -> list[MatchingStrategy]:
        matching = self.config.matching
        return [
            ExactKeyStrategy(separator=matching.key_separator),
            FallbackScoreStrategy(
                scoring=matching.fallback,
                numeric_tolerance=matching.numeric_tolerance,
            ),
        ]

    def reconcile_invoices(
        self,
        left: Sequence[FixedInvoiceRecord],
        right: Sequence[FixedInvoiceRecord],
    ) -> ReconciliationResult:
        """
        Reconcile two fixed-schema invoice collections.

        Args:
            left: Records from the first source
            right: Records from the second source

        Returns:
            Reconciliation result with all five buckets filled
        """
        return self._run(
            left,
            right,
            self._invoice_strategies(),
            differences=self.classifier.invoice_differences,
            fixed_schema=True,
        )

    def reconcile_generic(
        self,
        left: Sequence[GenericRecord],
        right: Sequence[GenericRecord],
        mappings: Sequence[ColumnMapping],
    ) -> ReconciliationResult:
        """
        Reconcile two tables over user-declared column pairs.

        Args:
            left: Rows from the first source
            right: Rows from the second source
            mappings: Column pairs to compare

        Returns:
            Reconciliation result (no counterparty bucket in this mode)
        """
        if not mappings:
            logger.warning("No column mappings given; every row will be one-sided")

        matching = self.config.matching
        strategy = GenericGreedyStrategy(
            mappings,
            settings=matching.generic,
            numeric_tolerance=matching.numeric_tolerance,
        )
        return self._run(
            left,
            right,
            [strategy],
            differences=lambda a, b: self.classifier.generic_differences(a, b, mappings),
            fixed_schema=False,
        )

    def _run(
        self,
        left: Sequence[Record],
        right: Sequence[Record],
        strategies: list[MatchingStrategy],
        differences,
        fixed_schema: bool,
    ) -> ReconciliationResult:
        start_time = datetime.now()
        mode = FIXED_SCHEMA_MODE if fixed_schema else GENERIC_MODE
        logger.info(
            f"Starting {mode} reconciliation: {len(left)} left records, "
            f"{len(right)} right records"
        )

        result = ReconciliationResult()
        left_consumed: set[int] = set()
        right_consumed: set[int] = set()

        for strategy in strategies:
            candidates = strategy.find_matches(left, right, left_consumed, right_consumed)

            for candidate in candidates:
                left_record = left[candidate.left_index]
                right_record = right[candidate.right_index]
                pair = MatchedPair(
                    left=left_record,
                    right=right_record,
                    differences=differences(left_record, right_record),
                    kind=strategy.kind,
                    left_index=candidate.left_index,
                    right_index=candidate.right_index,
                    score=candidate.score,
                    reason=candidate.reason,
                )
                self.classifier.file_pair(result, pair, fixed_schema)

            logger.debug(
                f"Strategy {strategy.kind.value}: {len(candidates)} matches, "
                f"{len(left) - len(left_consumed)} left and "
                f"{len(right) - len(right_consumed)} right remaining"
            )

        result.left_only = [r for i, r in enumerate(left) if i not in left_consumed]
        result.right_only = [r for i, r in enumerate(right) if i not in right_consumed]

        elapsed = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"Reconciliation complete in {elapsed:.2f}s: "
            f"{len(result.identical)} identical, "
            f"{len(result.value_differences)} with value differences, "
            f"{len(result.counterparty_differences)} with counterparty differences, "
            f"{len(result.left_only)} left-only, {len(result.right_only)} right-only"
        )
        return result

    def generate_summary(
        self,
        result: ReconciliationResult,
        total_left: int,
        total_right: int,
        left_name: str = "left",
        right_name: str = "right",
        mode: str = FIXED_SCHEMA_MODE,
        processing_time: float = 0.0,
    ) -> ReconciliationSummary:
        """
        Generate a summary of the reconciliation results.

        Args:
            result: Reconciliation result
            total_left: Number of left records reconciled
            total_right: Number of right records reconciled
            left_name: Display name of the left source
            right_name: Display name of the right source
            mode: Reconciliation mode name
            processing_time: Time taken in seconds

        Returns:
            Reconciliation summary object
        """
        kind_counts: dict[str, int] = {}
        for pair in result.matched:
            kind_counts[pair.kind.value] = kind_counts.get(pair.kind.value, 0) + 1

        return ReconciliationSummary(
            left_name=left_name,
            right_name=right_name,
            mode=mode,
            reconciliation_date=datetime.now(),
            total_left=total_left,
            total_right=total_right,
            identical_count=len(result.identical),
            value_difference_count=len(result.value_differences),
            counterparty_difference_count=len(result.counterparty_differences),
            left_only_count=len(result.left_only),
            right_only_count=len(result.right_only),
            matches_by_kind=kind_counts,
            processing_time_seconds=processing_time,
            config_file_used=self.config.config_file_path,
        )


def reconcile_invoices(
    left: Sequence[FixedInvoiceRecord],
    right: Sequence[FixedInvoiceRecord],
    config: Optional[ReconConfig] = None,
) -> ReconciliationResult:
    """Fixed-schema reconciliation with default (or given) configuration."""
    return ReconciliationEngine(config).reconcile_invoices(left, right)


def reconcile_generic(
    left: Sequence[GenericRecord],
    right: Sequence[GenericRecord],
    mappings: Sequence[ColumnMapping],
    config: Optional[ReconConfig] = None,
) -> ReconciliationResult:
    """Generic-mode reconciliation with default (or given) configuration."""
    return ReconciliationEngine(config).reconcile_generic(left, right, mappings)
