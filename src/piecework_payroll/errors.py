"""Error taxonomy for the piecework payroll core.

Every error is local to a single work record or review. Batch rebuilds
catch ``PayrollError`` per employee and keep going.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID


class PayrollError(Exception):
    """Base class for all payroll core errors."""


class InvalidMeasurementError(PayrollError):
    """Raised when a work record submission is malformed."""


class ValidationError(PayrollError):
    """Raised when a review, adjustment or disbursement request fails validation."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class MeasurementDisputeError(PayrollError):
    """Raised when verified meters exceed the claimed meters beyond tolerance.

    The dispute is left for manual arbitration; no review is produced.
    """

    def __init__(
        self,
        work_record_id: UUID,
        claimed: Decimal,
        verified: Decimal,
        tolerance: Decimal,
    ):
        self.work_record_id = work_record_id
        self.claimed = claimed
        self.verified = verified
        self.tolerance = tolerance
        super().__init__(
            f"Verified measurement {verified} m2 exceeds claimed {claimed} m2 "
            f"by more than {tolerance} m2 for work record {work_record_id}"
        )


class StaleReviewError(PayrollError):
    """Raised when a review write does not supersede the current head review."""

    def __init__(
        self,
        work_record_id: UUID,
        expected: UUID | None,
        actual: UUID | None,
    ):
        self.work_record_id = work_record_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Review for work record {work_record_id} supersedes {expected}, "
            f"but the current review is {actual}"
        )


class RecordSupersededError(PayrollError):
    """Raised when an operation targets a work record that was already superseded."""

    def __init__(self, work_record_id: UUID, superseded_by: UUID | None = None):
        self.work_record_id = work_record_id
        self.superseded_by = superseded_by
        super().__init__(
            f"Work record {work_record_id} was superseded by {superseded_by}"
        )


class WorkRecordNotFoundError(PayrollError):
    """Raised when a work record id is unknown."""

    def __init__(self, work_record_id: UUID):
        self.work_record_id = work_record_id
        super().__init__(f"Work record {work_record_id} not found")


class ReviewNotFoundError(PayrollError):
    """Raised when a quality review id is unknown."""

    def __init__(self, review_id: UUID):
        self.review_id = review_id
        super().__init__(f"Quality review {review_id} not found")


class NegativeGrossWarning(UserWarning):
    """Deductions exceeded approved pay plus bonuses; gross was clamped to zero."""

    def __init__(self, employee_id: str, period: str, shortfall: Decimal):
        self.employee_id = employee_id
        self.period = period
        self.shortfall = shortfall
        super().__init__(
            f"Gross pay for employee {employee_id} in {period} would be "
            f"-{shortfall}; clamped to 0.00"
        )
