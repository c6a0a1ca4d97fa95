"""Payroll status derivation and review state transitions."""

from __future__ import annotations

from typing import Sequence

from piecework_payroll.calculators.aggregator import active_items, effective_review
from piecework_payroll.calculators.review import review_status_for
from piecework_payroll.calculators.types import PayrollStatus, ReviewStatus, WorkItem


class PayrollStatusMachine:
    """Derives an employee-period payment status from its work items.

    Status is never stored and moved around by hand; it is recomputed from
    the current reviews and disbursement confirmations on every rebuild.

    Precedence:
    1. any item pending_review (or no items at all) -> pending
    2. any partially_approved item, or a rejection that is not final -> processing
    3. every approved amount disbursed -> paid
       some approved amounts disbursed -> partially_paid
       nothing disbursed yet -> processing
    """

    REVIEW_STATES = tuple(ReviewStatus)

    # Rows still awaiting corrections before they can be settled
    UNRESOLVED = {ReviewStatus.PARTIALLY_APPROVED, ReviewStatus.REJECTED}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Re-review is always allowed, from any review state to any other."""
        return from_status in cls.REVIEW_STATES and to_status in cls.REVIEW_STATES

    @classmethod
    def review_status_for(cls, approval_percent) -> ReviewStatus:
        return review_status_for(approval_percent)

    @classmethod
    def item_status(cls, item: WorkItem) -> ReviewStatus:
        return effective_review(item).status

    @classmethod
    def is_unresolved(cls, item: WorkItem) -> bool:
        review = effective_review(item)
        if review.status not in cls.UNRESOLVED:
            return False
        return not (review.status == ReviewStatus.REJECTED and review.final)

    @classmethod
    def derive_status(cls, work_items: Sequence[WorkItem]) -> PayrollStatus:
        items = active_items(work_items)
        if not items:
            return PayrollStatus.PENDING

        if any(cls.item_status(item) == ReviewStatus.PENDING_REVIEW for item in items):
            return PayrollStatus.PENDING

        if any(cls.is_unresolved(item) for item in items):
            return PayrollStatus.PROCESSING

        # Only approved items and final rejections remain
        payable = [item for item in items if cls.item_status(item) == ReviewStatus.APPROVED]
        if not payable:
            return PayrollStatus.PAID

        disbursed = [item for item in payable if item.disbursed]
        if len(disbursed) == len(payable):
            return PayrollStatus.PAID
        if disbursed:
            return PayrollStatus.PARTIALLY_PAID
        return PayrollStatus.PROCESSING

    @classmethod
    def review_state_counts(cls, work_items: Sequence[WorkItem]) -> dict[str, int]:
        """Count active items by review state."""
        counts = {state.value: 0 for state in ReviewStatus}
        for item in active_items(work_items):
            counts[cls.item_status(item).value] += 1
        return counts
