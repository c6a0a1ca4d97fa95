"""Storage contract for work records, reviews, adjustments and snapshots.

The core never reaches storage directly; the builder and application
service talk to a ``PayrollRepository``. Two implementations ship:
an in-process one (tests, batch scripts) and a SQLAlchemy one.
"""

from __future__ import annotations

import threading
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import replace
from typing import Protocol
from uuid import UUID

from piecework_payroll.calculators.types import (
    BonusEntry,
    DeductionEntry,
    PayrollRecord,
    QualityReview,
    WorkRecord,
    select_latest_review,
)
from piecework_payroll.errors import (
    RecordSupersededError,
    ReviewNotFoundError,
    StaleReviewError,
    WorkRecordNotFoundError,
)


class PayrollRepository(Protocol):
    """Protocol for payroll persistence adapters."""

    async def add_work_record(self, record: WorkRecord) -> None: ...

    async def mark_superseded(self, work_record_id: UUID, superseded_by: UUID) -> WorkRecord:
        """Flag a record superseded. Raises RecordSupersededError if already flagged."""
        ...

    async def get_work_record(self, work_record_id: UUID) -> WorkRecord: ...

    async def list_work_records(
        self, employee_id: str, period: str, include_superseded: bool = False
    ) -> list[WorkRecord]: ...

    async def list_employee_ids(self, period: str) -> list[str]: ...

    async def append_review(self, review: QualityReview) -> None:
        """Append a review if it supersedes the current head, else StaleReviewError."""
        ...

    async def get_review(self, review_id: UUID) -> QualityReview: ...

    async def list_reviews(self, work_record_id: UUID) -> list[QualityReview]: ...

    async def add_bonus(self, bonus: BonusEntry) -> None: ...

    async def add_deduction(self, deduction: DeductionEntry) -> None: ...

    async def list_bonuses(self, employee_id: str, period: str) -> list[BonusEntry]: ...

    async def list_deductions(self, employee_id: str, period: str) -> list[DeductionEntry]: ...

    async def confirm_disbursement(self, review_id: UUID) -> None: ...

    async def list_disbursed_review_ids(self, work_record_ids: list[UUID]) -> set[UUID]: ...

    async def save_payroll_record(self, record: PayrollRecord) -> None: ...

    def savepoint(self) -> AbstractAsyncContextManager[None]:
        """Scope one unit of work so a failure undoes only its own writes."""
        ...


def check_review_head(
    review: QualityReview, history: list[QualityReview]
) -> None:
    """Optimistic concurrency check shared by repository implementations."""
    head = select_latest_review(history)
    head_id = head.review_id if head else None
    if review.supersedes_review_id != head_id:
        raise StaleReviewError(review.work_record_id, review.supersedes_review_id, head_id)


class InMemoryPayrollRepository:
    """Thread-safe in-process repository."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[UUID, WorkRecord] = {}
        self._reviews: dict[UUID, list[QualityReview]] = {}
        self._review_index: dict[UUID, QualityReview] = {}
        self._bonuses: list[BonusEntry] = []
        self._deductions: list[DeductionEntry] = []
        self._disbursed: set[UUID] = set()
        self._snapshots: dict[tuple[str, str], PayrollRecord] = {}

    async def add_work_record(self, record: WorkRecord) -> None:
        with self._lock:
            self._records[record.work_record_id] = record

    async def mark_superseded(self, work_record_id: UUID, superseded_by: UUID) -> WorkRecord:
        with self._lock:
            record = self._get(work_record_id)
            if record.superseded:
                raise RecordSupersededError(work_record_id, record.superseded_by)
            updated = replace(record, superseded_by=superseded_by)
            self._records[work_record_id] = updated
            return updated

    async def get_work_record(self, work_record_id: UUID) -> WorkRecord:
        with self._lock:
            return self._get(work_record_id)

    def _get(self, work_record_id: UUID) -> WorkRecord:
        try:
            return self._records[work_record_id]
        except KeyError:
            raise WorkRecordNotFoundError(work_record_id) from None

    async def list_work_records(
        self, employee_id: str, period: str, include_superseded: bool = False
    ) -> list[WorkRecord]:
        with self._lock:
            records = [
                r
                for r in self._records.values()
                if r.employee_id == employee_id
                and r.period == period
                and (include_superseded or not r.superseded)
            ]
        return sorted(records, key=lambda r: (r.created_at, str(r.work_record_id)))

    async def list_employee_ids(self, period: str) -> list[str]:
        with self._lock:
            ids = {r.employee_id for r in self._records.values() if r.period == period}
            ids.update(e.employee_id for e in (*self._bonuses, *self._deductions) if e.period == period)
        return sorted(ids)

    async def append_review(self, review: QualityReview) -> None:
        with self._lock:
            record = self._get(review.work_record_id)
            if record.superseded:
                raise RecordSupersededError(record.work_record_id, record.superseded_by)
            history = self._reviews.setdefault(review.work_record_id, [])
            check_review_head(review, history)
            history.append(review)
            self._review_index[review.review_id] = review

    async def get_review(self, review_id: UUID) -> QualityReview:
        with self._lock:
            try:
                return self._review_index[review_id]
            except KeyError:
                raise ReviewNotFoundError(review_id) from None

    async def list_reviews(self, work_record_id: UUID) -> list[QualityReview]:
        with self._lock:
            return sorted(self._reviews.get(work_record_id, []), key=lambda r: r.version)

    async def add_bonus(self, bonus: BonusEntry) -> None:
        with self._lock:
            self._bonuses.append(bonus)

    async def add_deduction(self, deduction: DeductionEntry) -> None:
        with self._lock:
            self._deductions.append(deduction)

    async def list_bonuses(self, employee_id: str, period: str) -> list[BonusEntry]:
        with self._lock:
            return [b for b in self._bonuses if b.employee_id == employee_id and b.period == period]

    async def list_deductions(self, employee_id: str, period: str) -> list[DeductionEntry]:
        with self._lock:
            return [
                d for d in self._deductions if d.employee_id == employee_id and d.period == period
            ]

    async def confirm_disbursement(self, review_id: UUID) -> None:
        with self._lock:
            if review_id not in self._review_index:
                raise ReviewNotFoundError(review_id)
            self._disbursed.add(review_id)

    async def list_disbursed_review_ids(self, work_record_ids: list[UUID]) -> set[UUID]:
        wanted = set(work_record_ids)
        with self._lock:
            return {
                review_id
                for review_id in self._disbursed
                if self._review_index[review_id].work_record_id in wanted
            }

    async def save_payroll_record(self, record: PayrollRecord) -> None:
        with self._lock:
            self._snapshots[(record.employee_id, record.period)] = record

    async def get_payroll_record(self, employee_id: str, period: str) -> PayrollRecord | None:
        with self._lock:
            return self._snapshots.get((employee_id, period))

    @asynccontextmanager
    async def savepoint(self) -> AsyncIterator[None]:
        # No transaction to scope in memory
        yield
