# tests/test_matching.py

"""
Tests for the fixed-schema reconciliation engine.
"""

import pytest

from invoice_recon.config import ReconConfig
from invoice_recon.matching.classifier import DifferenceClassifier, PairCategory
from invoice_recon.matching.engine import ReconciliationEngine, reconcile_invoices
from invoice_recon.matching.strategies import FallbackScoreStrategy
from invoice_recon.models.records import (
    Difference,
    InvoiceField,
    MatchedPair,
    MatchKind,
    ReconciliationResult,
)
from invoice_recon.parsers.invoice_parser import InvoiceRecordParser
from invoice_recon.parsers.tabular_reader import TabularData

from tests.conftest import make_invoice


def assert_exhaustive(result, left, right):
    """Every input record sits in exactly one bucket."""
    pairs = result.matched
    assert len(result.left_only) + len(pairs) == len(left)
    assert len(result.right_only) + len(pairs) == len(right)

    left_ids = [id(p.left) for p in pairs] + [id(r) for r in result.left_only]
    right_ids = [id(p.right) for p in pairs] + [id(r) for r in result.right_only]
    assert sorted(left_ids) == sorted(id(r) for r in left)
    assert sorted(right_ids) == sorted(id(r) for r in right)


# ============================================
# Exact-key phase
# ============================================

class TestExactKeyMatching:
    """Composite key (tax id + invoice number) matching."""

    def test_scenario_a_prefix_and_decimal_comma(self, config):
        """Prefix stripped by the parser and a decimal comma still give an identical match."""
        headers = ["Invoice Number", "Issue Date", "Counterparty", "Tax ID", "VAT Rate", "VAT Base"]
        left_table = TabularData(
            headers=headers,
            rows=[dict(zip(headers, ["F001", "2024-01-10", "ACME SRL", "RO123", "19", "100.00"]))],
        )
        right_table = TabularData(
            headers=headers,
            rows=[dict(zip(headers, ["F001", "2024-01-10", "ACME SRL", "123", "19", "100,00"]))],
        )
        left = InvoiceRecordParser(config, "left").parse(left_table)
        right = InvoiceRecordParser(config, "right").parse(right_table)

        result = ReconciliationEngine(config).reconcile_invoices(left, right)

        assert len(result.identical) == 1
        assert result.identical[0].kind == MatchKind.EXACT_KEY
        assert not result.left_only and not result.right_only
        assert_exhaustive(result, left, right)

    def test_scenario_b_legal_suffix_drift_is_identical(self, engine):
        """ACME SRL vs ACME IMPEX SRL reduce to the same distinctive token."""
        left = [make_invoice(counterparty_name="ACME SRL")]
        right = [make_invoice(counterparty_name="ACME IMPEX SRL")]

        result = engine.reconcile_invoices(left, right)

        assert len(result.identical) == 1

    def test_scenario_b_name_mismatch_is_counterparty_difference(self, engine):
        """Two of three distinctive tokens shared is below the 70% requirement."""
        left = [make_invoice(counterparty_name="ALPHA BETA GAMMA SRL")]
        right = [make_invoice(counterparty_name="ALPHA BETA OMEGA SRL")]

        result = engine.reconcile_invoices(left, right)

        assert len(result.counterparty_differences) == 1
        pair = result.counterparty_differences[0]
        assert [d.invoice_field for d in pair.differences] == [InvoiceField.COUNTERPARTY_NAME]
        assert not result.identical and not result.value_differences

    @pytest.mark.parametrize("messy_side", ["left", "right"])
    @pytest.mark.parametrize(
        "clean_tax_id, messy_tax_id",
        [("123", " 123 "), ("AB12", " ab12 "), ("ab12", " AB12 ")],
    )
    def test_key_normalization_invariance(self, engine, messy_side, clean_tax_id, messy_tax_id):
        """Case and surrounding whitespace of the key fields do not matter on either side."""
        clean = make_invoice(counterparty_tax_id=clean_tax_id, invoice_number="F001")
        messy = make_invoice(counterparty_tax_id=messy_tax_id, invoice_number=" f001 ")
        left, right = ([messy], [clean]) if messy_side == "left" else ([clean], [messy])

        result = engine.reconcile_invoices(left, right)

        assert len(result.identical) == 1
        assert result.identical[0].kind == MatchKind.EXACT_KEY

    def test_two_digit_year_dates_compare_equal(self, engine):
        left = [make_invoice(issue_date="10.01.24")]
        right = [make_invoice(issue_date="10.1.24")]

        result = engine.reconcile_invoices(left, right)

        assert len(result.identical) == 1

    def test_numeric_tolerance_boundary(self, engine):
        within = engine.reconcile_invoices(
            [make_invoice(vat_base="100.000")], [make_invoice(vat_base="100.009")]
        )
        outside = engine.reconcile_invoices(
            [make_invoice(vat_base="100.000")], [make_invoice(vat_base="100.011")]
        )

        assert len(within.identical) == 1
        assert len(outside.value_differences) == 1
        assert outside.value_differences[0].differences[0].invoice_field == InvoiceField.VAT_BASE

    def test_value_and_name_difference_is_value_difference(self, engine):
        left = [make_invoice(counterparty_name="ALPHA BETA GAMMA", vat_rate="19")]
        right = [make_invoice(counterparty_name="OMEGA SIGMA", vat_rate="9")]

        result = engine.reconcile_invoices(left, right)

        assert len(result.value_differences) == 1
        fields = [d.invoice_field for d in result.value_differences[0].differences]
        assert fields == [InvoiceField.COUNTERPARTY_NAME, InvoiceField.VAT_RATE]

    def test_duplicate_right_key_keeps_last(self, engine, caplog):
        """A repeated composite key on the right indexes only the later row."""
        left = [make_invoice()]
        right = [make_invoice(vat_base="1.00"), make_invoice(vat_base="100.00")]

        with caplog.at_level("WARNING"):
            result = engine.reconcile_invoices(left, right)

        assert len(result.identical) == 1
        assert result.identical[0].right_index == 1
        assert result.right_only == [right[0]]
        assert "Duplicate composite key" in caplog.text

    def test_difference_description(self, engine):
        result = engine.reconcile_invoices(
            [make_invoice(vat_rate="19")], [make_invoice(vat_rate="9")]
        )
        text = result.value_differences[0].describe_differences("Books", "Registry")
        assert text == 'VAT rate: Books="19" vs Registry="9"'


# ============================================
# Fallback phase
# ============================================

class TestFallbackMatching:
    """Invoice-number-only matching with confidence scores."""

    def test_scenario_c_close_date_equal_amount(self, engine):
        left = [make_invoice(invoice_number="F002", counterparty_tax_id="111", issue_date="2024-03-01")]
        right = [make_invoice(invoice_number="F002", counterparty_tax_id="222", issue_date="2024-03-04")]

        result = engine.reconcile_invoices(left, right)

        pairs = result.matched
        assert len(pairs) == 1
        assert pairs[0].kind == MatchKind.FALLBACK_SCORED
        assert pairs[0].score == pytest.approx(0.8)
        # Tax id and date disagree; the date makes it a value difference
        assert pairs[0] in result.value_differences
        fields = [d.invoice_field for d in pairs[0].differences]
        assert fields == [InvoiceField.COUNTERPARTY_TAX_ID, InvoiceField.ISSUE_DATE]

    def test_fallback_with_only_tax_id_difference_is_counterparty(self, engine):
        left = [make_invoice(counterparty_tax_id="111")]
        right = [make_invoice(counterparty_tax_id="222")]

        result = engine.reconcile_invoices(left, right)

        assert len(result.counterparty_differences) == 1
        assert result.counterparty_differences[0].kind == MatchKind.FALLBACK_SCORED
        assert result.counterparty_differences[0].score == pytest.approx(1.0)

    def test_date_window_boundary(self):
        strategy = FallbackScoreStrategy()
        base = make_invoice(issue_date="2024-01-10")

        seven, _ = strategy.calculate_match_score(base, make_invoice(issue_date="2024-01-17"))
        eight, _ = strategy.calculate_match_score(base, make_invoice(issue_date="2024-01-18"))

        assert seven == pytest.approx(0.2 + 0.4 + 0.2)
        assert eight == pytest.approx(0.4 + 0.2)

    def test_amount_within_five_percent_scores_partial(self):
        strategy = FallbackScoreStrategy()
        score, reason = strategy.calculate_match_score(
            make_invoice(vat_base="100"), make_invoice(vat_base="96")
        )
        assert score == pytest.approx(0.4 + 0.2 + 0.2)
        assert "amount within 5%" in reason

    def test_low_score_is_rejected(self, engine):
        """0.2 (date) + 0.2 (amount) = 0.4 does not clear the 0.5 threshold."""
        left = [make_invoice(counterparty_tax_id="111", issue_date="2024-01-10", vat_base="100", vat_rate="19")]
        right = [make_invoice(counterparty_tax_id="222", issue_date="2024-01-13", vat_base="97", vat_rate="9")]

        result = engine.reconcile_invoices(left, right)

        assert result.left_only == left
        assert result.right_only == right
        assert not result.matched

    def test_unparsable_dates_do_not_score(self):
        strategy = FallbackScoreStrategy()
        score, _ = strategy.calculate_match_score(
            make_invoice(issue_date="soon"), make_invoice(issue_date="later")
        )
        assert score == pytest.approx(0.6)

    def test_best_candidate_wins(self, engine):
        left = [make_invoice(counterparty_tax_id="111", vat_base="100")]
        right = [
            make_invoice(counterparty_tax_id="222", vat_base="97", issue_date="2024-01-12"),
            make_invoice(counterparty_tax_id="333", vat_base="100"),
        ]

        result = engine.reconcile_invoices(left, right)

        assert result.matched[0].right_index == 1
        assert result.right_only == [right[0]]

    def test_greedy_first_claim_wins(self, engine):
        """
        The first left record takes its best candidate even though pairing
        it with the other one would have let the second left record match too.
        """
        left = [
            make_invoice(counterparty_tax_id="111", issue_date="2024-01-10", vat_base="100"),
            make_invoice(counterparty_tax_id="112", issue_date="2024-01-03", vat_base="104.5"),
        ]
        right = [
            make_invoice(counterparty_tax_id="221", issue_date="2024-01-10", vat_base="100"),
            make_invoice(counterparty_tax_id="222", issue_date="2024-01-12", vat_base="100"),
        ]

        result = engine.reconcile_invoices(left, right)

        by_left = {p.left_index: p.right_index for p in result.matched}
        assert by_left == {0: 0}
        assert result.left_only == [left[1]]
        assert result.right_only == [right[1]]
        assert_exhaustive(result, left, right)

    def test_exact_phase_consumes_before_fallback(self, engine):
        left = [make_invoice(counterparty_tax_id="111"), make_invoice(counterparty_tax_id="999")]
        right = [make_invoice(counterparty_tax_id="111")]

        result = engine.reconcile_invoices(left, right)

        assert result.identical[0].kind == MatchKind.EXACT_KEY
        assert result.identical[0].left_index == 0
        assert result.left_only == [left[1]]


# ============================================
# Residue and whole-run properties
# ============================================

class TestReconciliationProperties:
    """Exhaustiveness, determinism and one-sided residue."""

    @pytest.fixture
    def mixed(self):
        left = [
            make_invoice(invoice_number="F001"),
            make_invoice(invoice_number="F002", counterparty_tax_id="111"),
            make_invoice(invoice_number="F003", vat_rate="9"),
            make_invoice(invoice_number="F005", counterparty_name="ALPHA BETA GAMMA"),
            make_invoice(invoice_number="X999", counterparty_tax_id="777"),
        ]
        right = [
            make_invoice(invoice_number="F001"),
            make_invoice(invoice_number="F002", counterparty_tax_id="222", issue_date="2024-01-12"),
            make_invoice(invoice_number="F003"),
            make_invoice(invoice_number="F004"),
            make_invoice(invoice_number="F005", counterparty_name="OMEGA SIGMA"),
        ]
        return left, right

    def test_scenario_e_one_sided(self, engine, mixed):
        left, right = mixed
        result = engine.reconcile_invoices(left, right)

        assert result.left_only == [left[4]]
        assert result.right_only == [right[3]]

    def test_buckets(self, engine, mixed):
        left, right = mixed
        result = engine.reconcile_invoices(left, right)

        assert result.counts() == {
            "identical": 1,
            "value_differences": 2,
            "counterparty_differences": 1,
            "left_only": 1,
            "right_only": 1,
        }

    def test_exhaustive(self, engine, mixed):
        left, right = mixed
        assert_exhaustive(engine.reconcile_invoices(left, right), left, right)

    def test_idempotent(self, engine, mixed):
        left, right = mixed
        assert engine.reconcile_invoices(left, right) == engine.reconcile_invoices(left, right)

    def test_inputs_not_mutated(self, engine, mixed):
        left, right = mixed
        before = (list(left), list(right))
        engine.reconcile_invoices(left, right)
        assert (left, right) == before

    def test_empty_inputs(self, engine):
        result = engine.reconcile_invoices([], [])
        assert result.counts() == {
            "identical": 0,
            "value_differences": 0,
            "counterparty_differences": 0,
            "left_only": 0,
            "right_only": 0,
        }

    def test_one_side_empty(self, engine):
        left = [make_invoice(), make_invoice(invoice_number="F002")]
        result = engine.reconcile_invoices(left, [])
        assert result.left_only == left
        assert_exhaustive(result, left, [])

    def test_module_level_helper(self):
        result = reconcile_invoices([make_invoice()], [make_invoice()])
        assert len(result.identical) == 1

    def test_configured_threshold(self):
        config = ReconConfig()
        config.matching.fallback.min_score = 0.9
        left = [make_invoice(counterparty_tax_id="111", issue_date="2024-01-12")]
        right = [make_invoice(counterparty_tax_id="222")]

        result = ReconciliationEngine(config).reconcile_invoices(left, right)

        assert not result.matched

    def test_summary(self, engine, mixed):
        left, right = mixed
        result = engine.reconcile_invoices(left, right)

        summary = engine.generate_summary(result, len(left), len(right), "a.csv", "b.csv")

        assert summary.matched_count == 4
        assert summary.match_rate_left == pytest.approx(80.0)
        assert summary.matches_by_kind == {"exact-key": 3, "fallback-scored": 1}


# ============================================
# Classifier
# ============================================

class TestDifferenceClassifier:
    """Bucket assignment for matched pairs."""

    def make_pair(self, *differences):
        return MatchedPair(
            left=make_invoice(),
            right=make_invoice(),
            differences=list(differences),
            kind=MatchKind.EXACT_KEY,
        )

    def test_no_differences_is_identical(self):
        pair = self.make_pair()
        assert pair.is_identical
        assert DifferenceClassifier.categorize(pair, fixed_schema=True) is PairCategory.IDENTICAL

    def test_counterparty_only(self):
        pair = self.make_pair(
            Difference("Tax ID", "1", "2", InvoiceField.COUNTERPARTY_TAX_ID),
            Difference("Counterparty name", "A", "B", InvoiceField.COUNTERPARTY_NAME),
        )
        assert not pair.is_identical
        assert (
            DifferenceClassifier.categorize(pair, fixed_schema=True)
            is PairCategory.COUNTERPARTY_DIFFERENCE
        )

    def test_generic_mode_has_no_counterparty_bucket(self):
        pair = self.make_pair(Difference("Name / Customer", "A", "B"))
        assert (
            DifferenceClassifier.categorize(pair, fixed_schema=False)
            is PairCategory.VALUE_DIFFERENCE
        )

    def test_file_pair_appends_to_bucket(self):
        result = ReconciliationResult()
        pair = self.make_pair(Difference("VAT base", "1", "2", InvoiceField.VAT_BASE))

        category = DifferenceClassifier().file_pair(result, pair, fixed_schema=True)

        assert category is PairCategory.VALUE_DIFFERENCE
        assert result.value_differences == [pair]
