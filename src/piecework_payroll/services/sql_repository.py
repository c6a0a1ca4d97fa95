"""SQLAlchemy-backed payroll repository."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from piecework_payroll.calculators.types import (
    BonusEntry,
    BonusType,
    DeductionEntry,
    DeductionType,
    PayrollRecord,
    QualityReview,
    ReviewStatus,
    WorkRecord,
    WorkUnit,
)
from piecework_payroll.errors import (
    RecordSupersededError,
    ReviewNotFoundError,
    StaleReviewError,
    WorkRecordNotFoundError,
)
from piecework_payroll.models import (
    DisbursementRow,
    PayrollAdjustmentRow,
    PayrollSnapshotRow,
    QualityReviewRow,
    WorkRecordRow,
)
from piecework_payroll.services.repository import check_review_head


def _to_work_record(row: WorkRecordRow) -> WorkRecord:
    return WorkRecord(
        work_record_id=row.work_record_id,
        employee_id=row.employee_id,
        period=row.period,
        location_ref=row.location_ref,
        work_unit=WorkUnit(
            task_type=row.task_type,
            rate_per_square_meter=row.rate_per_square_meter,
            rate_per_linear_meter=row.rate_per_linear_meter,
        ),
        meters_square=row.meters_square,
        meters_linear=row.meters_linear,
        estimated_amount=row.estimated_amount,
        created_at=row.created_at,
        supersedes=row.supersedes,
        superseded_by=row.superseded_by,
    )


def _to_review(row: QualityReviewRow) -> QualityReview:
    return QualityReview(
        review_id=row.review_id,
        work_record_id=row.work_record_id,
        version=row.version,
        status=ReviewStatus(row.status),
        approval_percent=row.approval_percent,
        approved_amount=row.approved_amount,
        pending_amount=row.pending_amount,
        rejected_amount=row.rejected_amount,
        reviewer_id=row.reviewer_id,
        review_date=row.review_date,
        meters_verified=row.meters_verified,
        feedback=row.feedback,
        corrections_needed=row.corrections_needed,
        revision_deadline=row.revision_deadline,
        final=row.final,
        supersedes_review_id=row.supersedes_review_id,
    )


class SqlPayrollRepository:
    """Repository over an AsyncSession.

    Notes:
    - work_record rows are never deleted; only superseded_by is ever set,
      and only while it is still NULL. supersedes is unique, so a record
      has at most one correction.
    - quality_review is append-only; (work_record_id, version) and
      supersedes_review_id are unique, so two writers racing to supersede
      the same review cannot both succeed.
    - The caller owns the transaction (commit/rollback).
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add_work_record(self, record: WorkRecord) -> None:
        self.session.add(
            WorkRecordRow(
                work_record_id=record.work_record_id,
                employee_id=record.employee_id,
                period=record.period,
                location_ref=record.location_ref,
                task_type=record.work_unit.task_type,
                rate_per_square_meter=record.work_unit.rate_per_square_meter,
                rate_per_linear_meter=record.work_unit.rate_per_linear_meter,
                meters_square=record.meters_square,
                meters_linear=record.meters_linear,
                estimated_amount=record.estimated_amount,
                created_at=record.created_at,
                supersedes=record.supersedes,
                superseded_by=record.superseded_by,
            )
        )
        try:
            await self.session.flush()
        except IntegrityError as e:
            if record.supersedes is None:
                raise
            # Another correction of the same record got there first
            raise RecordSupersededError(record.supersedes, None) from e

    async def _get_row(self, work_record_id: UUID) -> WorkRecordRow:
        row = await self.session.get(WorkRecordRow, work_record_id)
        if row is None:
            raise WorkRecordNotFoundError(work_record_id)
        return row

    async def mark_superseded(self, work_record_id: UUID, superseded_by: UUID) -> WorkRecord:
        result = await self.session.execute(
            update(WorkRecordRow)
            .where(
                WorkRecordRow.work_record_id == work_record_id,
                WorkRecordRow.superseded_by.is_(None),
            )
            .values(superseded_by=superseded_by)
        )
        row = await self._get_row(work_record_id)
        if result.rowcount == 0:
            # Already superseded, possibly by a writer that committed after our read
            await self.session.refresh(row)
            raise RecordSupersededError(work_record_id, row.superseded_by)
        return _to_work_record(row)

    async def get_work_record(self, work_record_id: UUID) -> WorkRecord:
        return _to_work_record(await self._get_row(work_record_id))

    async def list_work_records(
        self, employee_id: str, period: str, include_superseded: bool = False
    ) -> list[WorkRecord]:
        query = select(WorkRecordRow).where(
            WorkRecordRow.employee_id == employee_id,
            WorkRecordRow.period == period,
        )
        if not include_superseded:
            query = query.where(WorkRecordRow.superseded_by.is_(None))
        query = query.order_by(WorkRecordRow.created_at, WorkRecordRow.work_record_id)
        result = await self.session.execute(query)
        return [_to_work_record(row) for row in result.scalars().all()]

    async def list_employee_ids(self, period: str) -> list[str]:
        work = await self.session.execute(
            select(WorkRecordRow.employee_id).where(WorkRecordRow.period == period).distinct()
        )
        adjustments = await self.session.execute(
            select(PayrollAdjustmentRow.employee_id)
            .where(PayrollAdjustmentRow.period == period)
            .distinct()
        )
        return sorted(set(work.scalars().all()) | set(adjustments.scalars().all()))

    async def append_review(self, review: QualityReview) -> None:
        record = await self._get_row(review.work_record_id)
        if record.superseded_by is not None:
            raise RecordSupersededError(record.work_record_id, record.superseded_by)

        check_review_head(review, await self.list_reviews(review.work_record_id))

        self.session.add(
            QualityReviewRow(
                review_id=review.review_id,
                work_record_id=review.work_record_id,
                version=review.version,
                status=review.status.value,
                approval_percent=review.approval_percent,
                approved_amount=review.approved_amount,
                pending_amount=review.pending_amount,
                rejected_amount=review.rejected_amount,
                reviewer_id=review.reviewer_id,
                review_date=review.review_date,
                meters_verified=review.meters_verified,
                feedback=review.feedback,
                corrections_needed=review.corrections_needed,
                revision_deadline=review.revision_deadline,
                final=review.final,
                supersedes_review_id=review.supersedes_review_id,
            )
        )
        try:
            await self.session.flush()
        except IntegrityError as e:
            # Another writer appended between our head check and flush
            raise StaleReviewError(
                review.work_record_id, review.supersedes_review_id, None
            ) from e

    async def get_review(self, review_id: UUID) -> QualityReview:
        row = await self.session.get(QualityReviewRow, review_id)
        if row is None:
            raise ReviewNotFoundError(review_id)
        return _to_review(row)

    async def list_reviews(self, work_record_id: UUID) -> list[QualityReview]:
        result = await self.session.execute(
            select(QualityReviewRow)
            .where(QualityReviewRow.work_record_id == work_record_id)
            .order_by(QualityReviewRow.version)
        )
        return [_to_review(row) for row in result.scalars().all()]

    async def _add_adjustment(self, kind: str, entry: BonusEntry | DeductionEntry) -> None:
        self.session.add(
            PayrollAdjustmentRow(
                entry_id=entry.entry_id,
                employee_id=entry.employee_id,
                period=entry.period,
                kind=kind,
                adjustment_type=entry.type.value,
                amount=entry.amount,
                description=entry.description,
            )
        )
        await self.session.flush()

    async def add_bonus(self, bonus: BonusEntry) -> None:
        await self._add_adjustment("bonus", bonus)

    async def add_deduction(self, deduction: DeductionEntry) -> None:
        await self._add_adjustment("deduction", deduction)

    async def _list_adjustments(
        self, kind: str, employee_id: str, period: str
    ) -> list[PayrollAdjustmentRow]:
        result = await self.session.execute(
            select(PayrollAdjustmentRow)
            .where(
                PayrollAdjustmentRow.kind == kind,
                PayrollAdjustmentRow.employee_id == employee_id,
                PayrollAdjustmentRow.period == period,
            )
            .order_by(PayrollAdjustmentRow.entry_id)
        )
        return list(result.scalars().all())

    async def list_bonuses(self, employee_id: str, period: str) -> list[BonusEntry]:
        rows = await self._list_adjustments("bonus", employee_id, period)
        return [
            BonusEntry(
                entry_id=row.entry_id,
                employee_id=row.employee_id,
                period=row.period,
                type=BonusType(row.adjustment_type),
                amount=row.amount,
                description=row.description,
            )
            for row in rows
        ]

    async def list_deductions(self, employee_id: str, period: str) -> list[DeductionEntry]:
        rows = await self._list_adjustments("deduction", employee_id, period)
        return [
            DeductionEntry(
                entry_id=row.entry_id,
                employee_id=row.employee_id,
                period=row.period,
                type=DeductionType(row.adjustment_type),
                amount=row.amount,
                description=row.description,
            )
            for row in rows
        ]

    async def confirm_disbursement(self, review_id: UUID) -> None:
        if await self.session.get(QualityReviewRow, review_id) is None:
            raise ReviewNotFoundError(review_id)
        if await self.session.get(DisbursementRow, review_id) is None:
            self.session.add(DisbursementRow(review_id=review_id))
            await self.session.flush()

    async def list_disbursed_review_ids(self, work_record_ids: list[UUID]) -> set[UUID]:
        if not work_record_ids:
            return set()
        result = await self.session.execute(
            select(DisbursementRow.review_id)
            .join(QualityReviewRow, QualityReviewRow.review_id == DisbursementRow.review_id)
            .where(QualityReviewRow.work_record_id.in_(work_record_ids))
        )
        return set(result.scalars().all())

    async def save_payroll_record(self, record: PayrollRecord) -> None:
        """Replace the employee-period snapshot atomically."""
        await self.session.merge(
            PayrollSnapshotRow(
                employee_id=record.employee_id,
                period=record.period,
                status=record.status.value,
                total_estimated=record.total_estimated,
                total_approved=record.total_approved,
                total_pending=record.total_pending,
                total_rejected=record.total_rejected,
                total_gross=record.total_gross,
                total_net=record.total_net,
                quality_score=record.quality_score,
                fingerprint=record.fingerprint,
                payload=record.to_canonical_dict(),
                built_at=datetime.now(timezone.utc),
            )
        )
        await self.session.flush()

    async def get_snapshot(self, employee_id: str, period: str) -> PayrollSnapshotRow | None:
        return await self.session.get(PayrollSnapshotRow, (employee_id, period))

    @asynccontextmanager
    async def savepoint(self) -> AsyncIterator[None]:
        """SAVEPOINT around one unit of work; the outer transaction stays usable."""
        async with self.session.begin_nested():
            yield
