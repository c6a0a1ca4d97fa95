"""Piece-rate calculation pipeline."""

from piecework_payroll.calculators.aggregator import aggregate
from piecework_payroll.calculators.amounts import AmountCalculator
from piecework_payroll.calculators.ledger import WorkRecordLedger, record_work
from piecework_payroll.calculators.review import QualityReviewProcessor

__all__ = [
    "aggregate",
    "AmountCalculator",
    "WorkRecordLedger",
    "record_work",
    "QualityReviewProcessor",
]
