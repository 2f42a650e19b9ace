"""
Matching strategies for invoice reconciliation.
Each strategy proposes left/right pairs among the records not yet consumed.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence

from ..config import FallbackScoring, GenericMatching
from ..models.records import (
    ColumnMapping,
    FixedInvoiceRecord,
    GenericRecord,
    MatchKind,
    Record,
)
from .indexers import build_exact_index, build_invoice_index, composite_key
from .normalizers import normalize_invoice_number
from .similarity import (
    amount_within_percent,
    date_distance_days,
    dates_match,
    generic_values_match,
    numbers_equal,
)


@dataclass
class Candidate:
    """A proposed pairing of input positions."""

    left_index: int
    right_index: int
    score: float
    reason: str


class MatchingStrategy(ABC):
    """Abstract base class for matching strategies."""

    kind: MatchKind

    @abstractmethod
    def find_matches(
        self,
        left: Sequence[Record],
        right: Sequence[Record],
        left_consumed: set[int],
        right_consumed: set[int],
    ) -> list[Candidate]:
        """
        Pair unconsumed left records with unconsumed right records.

        Implementations add every position they pair to ``left_consumed``
        and ``right_consumed`` so later left records cannot claim it.

        Args:
            left: Left-side records
            right: Right-side records
            left_consumed: Positions of left records already paired
            right_consumed: Positions of right records already paired

        Returns:
            Accepted pairings in left input order
        """
        pass

    @staticmethod
    def _claim(
        candidate: Candidate, left_consumed: set[int], right_consumed: set[int]
    ) -> Candidate:
        left_consumed.add(candidate.left_index)
        right_consumed.add(candidate.right_index)
        return candidate


class ExactKeyStrategy(MatchingStrategy):
    """
    Exact match on normalized tax id + invoice number.
    Highest confidence matching tier.
    """

    kind = MatchKind.EXACT_KEY

    def __init__(self, separator: str = "|"):
        self.separator = separator

    def find_matches(
        self,
        left: Sequence[FixedInvoiceRecord],
        right: Sequence[FixedInvoiceRecord],
        left_consumed: set[int],
        right_consumed: set[int],
    ) -> list[Candidate]:
        """Look up each left record's composite key in the right-side index."""
        index = build_exact_index(right, self.separator)
        matches: list[Candidate] = []

        for left_index, record in enumerate(left):
            if left_index in left_consumed:
                continue
            right_index = index.get(composite_key(record, self.separator))
            if right_index is None or right_index in right_consumed:
                continue
            matches.append(
                self._claim(
                    Candidate(left_index, right_index, 1.0, "Tax ID and invoice number match"),
                    left_consumed,
                    right_consumed,
                )
            )

        return matches


class FallbackScoreStrategy(MatchingStrategy):
    """
    Invoice-number-only matching scored on date, amount and VAT rate.

    Left records are resolved one at a time in input order, each taking the
    best still-unclaimed candidate; this is greedy, not a global optimum.
    """

    kind = MatchKind.FALLBACK_SCORED

    def __init__(
        self,
        scoring: Optional[FallbackScoring] = None,
        numeric_tolerance: float = 0.01,
    ):
        """
        Initialize with scoring weights.

        Args:
            scoring: Weights, windows and acceptance threshold
            numeric_tolerance: Absolute tolerance for numeric equality
        """
        self.scoring = scoring or FallbackScoring()
        self.numeric_tolerance = numeric_tolerance

    def find_matches(
        self,
        left: Sequence[FixedInvoiceRecord],
        right: Sequence[FixedInvoiceRecord],
        left_consumed: set[int],
        right_consumed: set[int],
    ) -> list[Candidate]:
        """Pick the highest-scoring candidate sharing the invoice number."""
        index = build_invoice_index(right)
        matches: list[Candidate] = []

        for left_index, record in enumerate(left):
            if left_index in left_consumed:
                continue

            best: Optional[Candidate] = None
            for right_index in index.get(normalize_invoice_number(record.invoice_number), []):
                if right_index in right_consumed:
                    continue
                score, reason = self.calculate_match_score(record, right[right_index])
                if best is None or score > best.score:
                    best = Candidate(left_index, right_index, score, reason)

            if best is not None and best.score > self.scoring.min_score:
                matches.append(self._claim(best, left_consumed, right_consumed))

        return matches

    def calculate_match_score(
        self, left: FixedInvoiceRecord, right: FixedInvoiceRecord
    ) -> tuple[float, str]:
        """
        Score a candidate pair that shares an invoice number.

        Returns:
            Tuple of (score 0.0-1.0, reason string)
        """
        scoring = self.scoring
        score = 0.0
        reasons: list[str] = []

        if dates_match(left.issue_date, right.issue_date):
            score += scoring.date_exact_weight
            reasons.append("same date")
        else:
            days = date_distance_days(left.issue_date, right.issue_date)
            if days is not None and days <= scoring.date_window_days:
                score += scoring.date_near_weight
                reasons.append(f"{days} day(s) apart")

        if numbers_equal(left.vat_base, right.vat_base, self.numeric_tolerance):
            score += scoring.amount_exact_weight
            reasons.append("same amount")
        elif amount_within_percent(
            left.vat_base, right.vat_base, scoring.amount_tolerance_percent
        ):
            score += scoring.amount_near_weight
            reasons.append(f"amount within {scoring.amount_tolerance_percent:g}%")

        if numbers_equal(left.vat_rate, right.vat_rate, self.numeric_tolerance):
            score += scoring.vat_rate_weight
            reasons.append("same VAT rate")

        # 0.4 + 0.2 is not exactly 0.6 in floating point
        score = round(score, 6)
        reason = "Invoice number match"
        if reasons:
            reason += ": " + ", ".join(reasons)
        return score, reason


class GenericGreedyStrategy(MatchingStrategy):
    """
    Schema-agnostic matching over user-declared column pairs.

    Every left row scans all unconsumed right rows; the score is the share
    of mappings whose cells match. Ties go to the earliest right row.
    """

    kind = MatchKind.GENERIC_GREEDY

    def __init__(
        self,
        mappings: Sequence[ColumnMapping],
        settings: Optional[GenericMatching] = None,
        numeric_tolerance: float = 0.01,
    ):
        self.mappings = list(mappings)
        self.settings = settings or GenericMatching()
        self.numeric_tolerance = numeric_tolerance

    def find_matches(
        self,
        left: Sequence[GenericRecord],
        right: Sequence[GenericRecord],
        left_consumed: set[int],
        right_consumed: set[int],
    ) -> list[Candidate]:
        """Claim the best right row for each left row in turn."""
        if not self.mappings:
            return []

        matches: list[Candidate] = []
        for left_index, record in enumerate(left):
            if left_index in left_consumed:
                continue

            best: Optional[Candidate] = None
            for right_index, other in enumerate(right):
                if right_index in right_consumed:
                    continue
                score, reason = self.calculate_match_score(record, other)
                if best is None or score > best.score:
                    best = Candidate(left_index, right_index, score, reason)

            if best is not None and best.score >= self.settings.min_score:
                matches.append(self._claim(best, left_consumed, right_consumed))

        return matches

    def calculate_match_score(
        self, left: GenericRecord, right: GenericRecord
    ) -> tuple[float, str]:
        """Share of mappings whose two cells match."""
        if not self.mappings:
            return 0.0, "No column mappings"

        matched = sum(
            1
            for mapping in self.mappings
            if generic_values_match(
                left.get(mapping.left_column),
                right.get(mapping.right_column),
                numeric_tolerance=self.numeric_tolerance,
                edit_similarity_threshold=self.settings.edit_similarity_threshold,
                edit_min_length=self.settings.edit_min_length,
            )
        )
        total = len(self.mappings)
        return matched / total, f"{matched} of {total} mapped columns match"
