"""Compensation aggregator: approved work plus adjustments to gross pay."""

from __future__ import annotations

import logging
import warnings
from decimal import Decimal
from typing import Iterable, Sequence

from piecework_payroll.calculators.amounts import AmountCalculator
from piecework_payroll.calculators.review import pending_review
from piecework_payroll.calculators.types import (
    BonusEntry,
    CompensationTotals,
    DeductionEntry,
    QualityReview,
    WorkItem,
)
from piecework_payroll.errors import NegativeGrossWarning

logger = logging.getLogger(__name__)


def effective_review(item: WorkItem) -> QualityReview:
    """Latest review of an item, or the implicit pending review."""
    return item.latest_review or pending_review(item.work_record)


def active_items(work_items: Iterable[WorkItem]) -> list[WorkItem]:
    """Drop superseded records; they never count again."""
    return [item for item in work_items if not item.work_record.superseded]


def _check_ownership(
    employee_id: str,
    period: str,
    work_items: Sequence[WorkItem],
    bonuses: Sequence[BonusEntry],
    deductions: Sequence[DeductionEntry],
) -> None:
    for item in work_items:
        record = item.work_record
        if record.employee_id != employee_id or record.period != period:
            raise ValueError(
                f"Work record {record.work_record_id} belongs to "
                f"{record.employee_id}/{record.period}, not {employee_id}/{period}"
            )
    for entry in (*bonuses, *deductions):
        if entry.employee_id != employee_id or entry.period != period:
            raise ValueError(
                f"Adjustment {entry.entry_id} belongs to "
                f"{entry.employee_id}/{entry.period}, not {employee_id}/{period}"
            )


def aggregate(
    employee_id: str,
    period: str,
    work_items: Sequence[WorkItem],
    bonuses: Sequence[BonusEntry] = (),
    deductions: Sequence[DeductionEntry] = (),
) -> CompensationTotals:
    """Sum the employee-period's work and adjustments.

    Pure: same inputs, same totals. Items without a review count as fully
    pending and are left out of the quality score. A negative gross is
    clamped to zero and reported once via NegativeGrossWarning.
    """
    _check_ownership(employee_id, period, work_items, bonuses, deductions)

    totals = CompensationTotals(employee_id=employee_id, period=period)
    totals.total_estimated = AmountCalculator.ZERO
    totals.total_approved = AmountCalculator.ZERO
    totals.total_pending = AmountCalculator.ZERO
    totals.total_rejected = AmountCalculator.ZERO
    reviewed_percents: list[Decimal] = []

    for item in active_items(work_items):
        review = effective_review(item)
        totals.total_estimated += item.work_record.estimated_amount
        totals.total_approved += review.approved_amount
        totals.total_pending += review.pending_amount
        totals.total_rejected += review.rejected_amount
        if review.reviewed:
            reviewed_percents.append(review.approval_percent)

    if reviewed_percents:
        totals.quality_score = AmountCalculator.round_to_cents(
            sum(reviewed_percents, Decimal("0")) / len(reviewed_percents)
        )

    totals.total_bonuses = AmountCalculator.round_to_cents(
        sum((b.amount for b in bonuses), Decimal("0"))
    )
    totals.total_deductions = AmountCalculator.round_to_cents(
        sum((d.amount for d in deductions), Decimal("0"))
    )

    gross = totals.total_approved + totals.total_bonuses - totals.total_deductions
    if gross < 0:
        warning = NegativeGrossWarning(employee_id, period, -gross)
        logger.warning("%s", warning)
        warnings.warn(warning, stacklevel=2)
        totals.warnings.append(str(warning))
        totals.gross_clamped = True
        gross = AmountCalculator.ZERO
    totals.total_gross = AmountCalculator.round_to_cents(gross)

    return totals
