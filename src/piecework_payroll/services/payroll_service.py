"""Application service: validated writes plus domain events."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from piecework_payroll.calculators.ledger import record_work, to_decimal, validate_period
from piecework_payroll.calculators.review import QualityReviewProcessor
from piecework_payroll.calculators.types import (
    BonusEntry,
    BonusType,
    DeductionEntry,
    DeductionType,
    QualityReview,
    WorkRecord,
    WorkUnit,
    select_latest_review,
)
from piecework_payroll.config import get_settings
from piecework_payroll.errors import InvalidMeasurementError, RecordSupersededError, ValidationError
from piecework_payroll.events import (
    AdjustmentRecorded,
    DisbursementConfirmed,
    EventEmitter,
    EventMetadata,
    QualityReviewed,
    WorkRecorded,
    WorkRecordSuperseded,
)
from piecework_payroll.services.repository import PayrollRepository


class PayrollService:
    """Entry point for the measurement, review, adjustment and payment systems.

    Each write appends to the repository and emits one event scoped to the
    affected employee-period. Payroll records are never touched here; they
    are rebuilt by PayrollRecordBuilder.
    """

    def __init__(
        self,
        repository: PayrollRepository,
        emitter: EventEmitter | None = None,
        processor: QualityReviewProcessor | None = None,
    ):
        self.repository = repository
        self.emitter = emitter or EventEmitter()
        self.processor = processor or QualityReviewProcessor(
            get_settings().measurement_tolerance_m2
        )

    async def record_work(
        self,
        employee_id: str,
        period: str,
        location_ref: str,
        work_unit: WorkUnit,
        meters_square: Decimal,
        meters_linear: Decimal = Decimal("0"),
        actor_id: str | None = None,
    ) -> WorkRecord:
        record = record_work(
            employee_id, period, location_ref, work_unit, meters_square, meters_linear
        )
        await self.repository.add_work_record(record)
        self.emitter.emit(
            WorkRecorded(
                metadata=EventMetadata.create(actor_id=actor_id),
                employee_id=record.employee_id,
                period=record.period,
                work_record_id=record.work_record_id,
                location_ref=record.location_ref,
                estimated_amount=record.estimated_amount,
            )
        )
        return record

    async def correct_measurement(
        self,
        work_record_id: UUID,
        meters_square: Decimal,
        meters_linear: Decimal = Decimal("0"),
        actor_id: str | None = None,
    ) -> WorkRecord:
        """Supersede a record with a re-measured one for the same location."""
        old = await self.repository.get_work_record(work_record_id)
        if old.superseded:
            raise RecordSupersededError(old.work_record_id, old.superseded_by)

        new = record_work(
            old.employee_id,
            old.period,
            old.location_ref,
            old.work_unit,
            meters_square,
            meters_linear,
            supersedes=old.work_record_id,
        )
        await self.repository.mark_superseded(old.work_record_id, new.work_record_id)
        await self.repository.add_work_record(new)

        metadata = EventMetadata.create(actor_id=actor_id)
        with self.emitter.batch() as batch:
            batch.add(
                WorkRecordSuperseded(
                    metadata=metadata,
                    employee_id=old.employee_id,
                    period=old.period,
                    work_record_id=old.work_record_id,
                    superseded_by=new.work_record_id,
                )
            )
            batch.add(
                WorkRecorded(
                    metadata=EventMetadata.create(
                        correlation_id=metadata.correlation_id, actor_id=actor_id
                    ),
                    employee_id=new.employee_id,
                    period=new.period,
                    work_record_id=new.work_record_id,
                    location_ref=new.location_ref,
                    estimated_amount=new.estimated_amount,
                )
            )
        return new

    async def review_work(
        self,
        work_record_id: UUID,
        reviewer_id: str,
        approval_percent: Decimal,
        feedback: str = "",
        meters_verified: Decimal | None = None,
        corrections_needed: str | None = None,
        revision_deadline: date | None = None,
        final: bool = False,
        review_date: date | None = None,
        supersedes_review_id: UUID | None = None,
    ) -> QualityReview:
        """Review a work record.

        ``supersedes_review_id`` must name the current review (None for the
        first one); otherwise the write fails with StaleReviewError and the
        caller should refetch and retry.
        """
        record = await self.repository.get_work_record(work_record_id)
        prior = None
        if supersedes_review_id is not None:
            prior = await self.repository.get_review(supersedes_review_id)

        review = self.processor.review(
            record,
            reviewer_id,
            approval_percent,
            feedback=feedback,
            meters_verified=meters_verified,
            corrections_needed=corrections_needed,
            revision_deadline=revision_deadline,
            final=final,
            review_date=review_date,
            prior_review=prior,
        )
        await self.repository.append_review(review)

        self.emitter.emit(
            QualityReviewed(
                metadata=EventMetadata.create(actor_id=reviewer_id),
                employee_id=record.employee_id,
                period=record.period,
                work_record_id=record.work_record_id,
                review_id=review.review_id,
                version=review.version,
                status=review.status.value,
                approval_percent=review.approval_percent,
                approved_amount=review.approved_amount,
            )
        )
        return review

    async def add_bonus(
        self,
        employee_id: str,
        period: str,
        bonus_type: BonusType,
        amount: Decimal,
        description: str = "",
        actor_id: str | None = None,
    ) -> BonusEntry:
        bonus = BonusEntry(
            entry_id=uuid4(),
            employee_id=employee_id,
            period=validate_period(period),
            type=BonusType(bonus_type),
            amount=self._adjustment_amount(amount),
            description=description,
        )
        await self.repository.add_bonus(bonus)
        self._emit_adjustment(
            "bonus", bonus.entry_id, employee_id, period, bonus.type.value, bonus.amount, actor_id
        )
        return bonus

    async def add_deduction(
        self,
        employee_id: str,
        period: str,
        deduction_type: DeductionType,
        amount: Decimal,
        description: str = "",
        actor_id: str | None = None,
    ) -> DeductionEntry:
        deduction = DeductionEntry(
            entry_id=uuid4(),
            employee_id=employee_id,
            period=validate_period(period),
            type=DeductionType(deduction_type),
            amount=self._adjustment_amount(amount),
            description=description,
        )
        await self.repository.add_deduction(deduction)
        self._emit_adjustment(
            "deduction",
            deduction.entry_id,
            employee_id,
            period,
            deduction.type.value,
            deduction.amount,
            actor_id,
        )
        return deduction

    async def confirm_disbursement(
        self, review_id: UUID, actor_id: str | None = None
    ) -> QualityReview:
        """Record the payment system's confirmation that an approved amount was paid.

        Only the current review of a work record with a positive approved
        amount can be disbursed.
        """
        review = await self.repository.get_review(review_id)
        record = await self.repository.get_work_record(review.work_record_id)
        head = select_latest_review(await self.repository.list_reviews(record.work_record_id))
        if head is not None and head.review_id != review_id:
            raise ValidationError(
                f"Review {review_id} was superseded by review {head.review_id}", "review_id"
            )
        if review.approved_amount <= 0:
            raise ValidationError(
                f"Review {review_id} approved nothing to disburse", "review_id"
            )
        await self.repository.confirm_disbursement(review_id)
        self.emitter.emit(
            DisbursementConfirmed(
                metadata=EventMetadata.create(actor_id=actor_id),
                employee_id=record.employee_id,
                period=record.period,
                review_id=review_id,
            )
        )
        return review

    @staticmethod
    def _adjustment_amount(amount: Decimal) -> Decimal:
        try:
            value = to_decimal(amount, "amount")
        except InvalidMeasurementError as e:
            raise ValidationError(str(e), "amount") from e
        if value < 0:
            raise ValidationError(f"Adjustment amount must be non-negative, got {value}", "amount")
        return value

    def _emit_adjustment(
        self,
        kind: str,
        entry_id: UUID,
        employee_id: str,
        period: str,
        adjustment_type: str,
        amount: Decimal,
        actor_id: str | None,
    ) -> None:
        self.emitter.emit(
            AdjustmentRecorded(
                metadata=EventMetadata.create(actor_id=actor_id),
                employee_id=employee_id,
                period=period,
                entry_id=entry_id,
                kind=kind,
                adjustment_type=adjustment_type,
                amount=amount,
            )
        )
