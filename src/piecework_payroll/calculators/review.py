"""Quality review processor: coordinator verdicts on work records."""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from uuid import UUID, uuid4

from piecework_payroll.calculators.amounts import AmountCalculator
from piecework_payroll.calculators.types import QualityReview, ReviewStatus, WorkRecord
from piecework_payroll.errors import (
    MeasurementDisputeError,
    RecordSupersededError,
    ValidationError,
)


def review_status_for(approval_percent: Decimal) -> ReviewStatus:
    """Map an approval percentage onto the review state it reaches."""
    if approval_percent == AmountCalculator.HUNDRED:
        return ReviewStatus.APPROVED
    if approval_percent == 0:
        return ReviewStatus.REJECTED
    return ReviewStatus.PARTIALLY_APPROVED


def pending_review(work_record: WorkRecord) -> QualityReview:
    """Implicit review of a record nobody has looked at yet.

    Everything is pending: approved 0, pending = estimate.
    """
    zero = AmountCalculator.ZERO
    return QualityReview(
        review_id=work_record.work_record_id,
        work_record_id=work_record.work_record_id,
        version=0,
        status=ReviewStatus.PENDING_REVIEW,
        approval_percent=Decimal("0"),
        approved_amount=zero,
        pending_amount=work_record.estimated_amount,
        rejected_amount=zero,
    )


def _percent(value: Decimal | int | float | str) -> Decimal:
    try:
        percent = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"approval_percent is not a number: {value!r}", "approval_percent")
    if not percent.is_finite() or percent < 0 or percent > 100:
        raise ValidationError(
            f"approval_percent must be within [0, 100], got {value}", "approval_percent"
        )
    return percent


class QualityReviewProcessor:
    """Produces QualityReview values from coordinator verdicts.

    State reached by a review:
    - 100%      -> approved
    - 0% < p < 100% -> partially_approved (corrections + deadline required)
    - 0%        -> rejected (corrections required; deadline unless final)

    Any state may follow any other via a new review. The processor only
    builds the value; persisting it (and detecting stale writes) belongs
    to the repository.
    """

    def __init__(self, measurement_tolerance: Decimal = Decimal("0.5")):
        self.measurement_tolerance = measurement_tolerance

    def review(
        self,
        work_record: WorkRecord,
        reviewer_id: str,
        approval_percent: Decimal | int | float | str,
        feedback: str = "",
        meters_verified: Decimal | int | float | str | None = None,
        corrections_needed: str | None = None,
        revision_deadline: date | None = None,
        final: bool = False,
        review_date: date | None = None,
        prior_review: QualityReview | None = None,
        review_id: UUID | None = None,
    ) -> QualityReview:
        """Validate a verdict and derive approved/pending/rejected amounts.

        Raises:
            ValidationError: malformed verdict
            MeasurementDisputeError: verified meters exceed the claim beyond tolerance
            RecordSupersededError: the work record was already corrected
        """
        if work_record.superseded:
            raise RecordSupersededError(work_record.work_record_id, work_record.superseded_by)

        review_date = review_date or date.today()
        percent = _percent(approval_percent)
        status = review_status_for(percent)
        corrections = (corrections_needed or "").strip() or None

        verified = self._check_measurement(work_record, meters_verified)

        if final and status != ReviewStatus.REJECTED:
            raise ValidationError("Only a rejection can be final", "final")

        if status == ReviewStatus.PARTIALLY_APPROVED:
            if corrections is None:
                raise ValidationError(
                    "corrections_needed is required for partial approval",
                    "corrections_needed",
                )
            if revision_deadline is None:
                raise ValidationError(
                    "revision_deadline is required for partial approval",
                    "revision_deadline",
                )
        elif status == ReviewStatus.REJECTED:
            if corrections is None:
                raise ValidationError(
                    "corrections_needed is required for rejection", "corrections_needed"
                )
            if revision_deadline is None and not final:
                raise ValidationError(
                    "revision_deadline is required unless the rejection is final",
                    "revision_deadline",
                )

        if revision_deadline is not None and revision_deadline <= review_date:
            raise ValidationError(
                f"revision_deadline {revision_deadline} must be after review date {review_date}",
                "revision_deadline",
            )

        if prior_review is not None and prior_review.work_record_id != work_record.work_record_id:
            raise ValidationError(
                f"Prior review {prior_review.review_id} belongs to another work record",
                "prior_review",
            )

        approved, pending, rejected = AmountCalculator.split(
            work_record.estimated_amount, percent, status
        )

        return QualityReview(
            review_id=review_id or uuid4(),
            work_record_id=work_record.work_record_id,
            version=prior_review.version + 1 if prior_review else 1,
            status=status,
            approval_percent=percent,
            approved_amount=approved,
            pending_amount=pending,
            rejected_amount=rejected,
            reviewer_id=reviewer_id,
            review_date=review_date,
            meters_verified=verified,
            feedback=feedback,
            corrections_needed=corrections,
            revision_deadline=revision_deadline,
            final=final,
            supersedes_review_id=prior_review.review_id if prior_review else None,
        )

    def _check_measurement(
        self,
        work_record: WorkRecord,
        meters_verified: Decimal | int | float | str | None,
    ) -> Decimal | None:
        if meters_verified is None:
            return None
        try:
            verified = (
                meters_verified
                if isinstance(meters_verified, Decimal)
                else Decimal(str(meters_verified))
            )
        except InvalidOperation:
            raise ValidationError(
                f"meters_verified is not a number: {meters_verified!r}", "meters_verified"
            )
        if not verified.is_finite() or verified < 0:
            raise ValidationError("meters_verified must be non-negative", "meters_verified")
        if verified > work_record.meters_square + self.measurement_tolerance:
            raise MeasurementDisputeError(
                work_record.work_record_id,
                work_record.meters_square,
                verified,
                self.measurement_tolerance,
            )
        return verified
