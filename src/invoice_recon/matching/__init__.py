"""Matching engine and strategies."""

from .classifier import DifferenceClassifier, PairCategory
from .engine import (
    FIXED_SCHEMA_MODE,
    GENERIC_MODE,
    ReconciliationEngine,
    reconcile_generic,
    reconcile_invoices,
)
from .strategies import (
    Candidate,
    MatchingStrategy,
    ExactKeyStrategy,
    FallbackScoreStrategy,
    GenericGreedyStrategy,
)

__all__ = [
    "Candidate",
    "DifferenceClassifier",
    "FIXED_SCHEMA_MODE",
    "GENERIC_MODE",
    "PairCategory",
    "ReconciliationEngine",
    "reconcile_generic",
    "reconcile_invoices",
    "MatchingStrategy",
    "ExactKeyStrategy",
    "FallbackScoreStrategy",
    "GenericGreedyStrategy",
]
