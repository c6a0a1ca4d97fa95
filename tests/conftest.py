"""Pytest fixtures for piecework payroll tests."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable

import pytest

from piecework_payroll.calculators.ledger import record_work
from piecework_payroll.calculators.review import QualityReviewProcessor
from piecework_payroll.calculators.types import QualityReview, WorkItem, WorkRecord, WorkUnit
from piecework_payroll.events import EventEmitter
from piecework_payroll.services import (
    InMemoryPayrollRepository,
    PayrollRecordBuilder,
    PayrollService,
)

EMPLOYEE_ID = "emp-001"
PERIOD = "2025-03"
REVIEW_DATE = date(2025, 3, 20)
DEADLINE = date(2025, 3, 31)
BASE_TIME = datetime(2025, 3, 1, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def tiling() -> WorkUnit:
    """Floor tiling paid per square meter."""
    return WorkUnit(task_type="tiling", rate_per_square_meter=Decimal("18"))


@pytest.fixture
def tiling_with_skirting() -> WorkUnit:
    """Tiling plus skirting boards paid per linear meter."""
    return WorkUnit(
        task_type="tiling_with_skirting",
        rate_per_square_meter=Decimal("18"),
        rate_per_linear_meter=Decimal("15"),
    )


@pytest.fixture
def processor() -> QualityReviewProcessor:
    return QualityReviewProcessor(measurement_tolerance=Decimal("0.5"))


@pytest.fixture
def make_record(tiling: WorkUnit) -> Callable[..., WorkRecord]:
    """Factory for work records with deterministic creation times."""
    counter = {"n": 0}

    def _make(
        meters_square: str = "10",
        meters_linear: str = "0",
        work_unit: WorkUnit | None = None,
        employee_id: str = EMPLOYEE_ID,
        period: str = PERIOD,
        location_ref: str | None = None,
    ) -> WorkRecord:
        counter["n"] += 1
        return record_work(
            employee_id,
            period,
            location_ref or f"block-a/unit-{counter['n']}",
            work_unit or tiling,
            Decimal(meters_square),
            Decimal(meters_linear),
            created_at=BASE_TIME + timedelta(minutes=counter["n"]),
        )

    return _make


@pytest.fixture
def approve(processor: QualityReviewProcessor) -> Callable[..., QualityReview]:
    """Review a record with the corrections and deadline a verdict needs."""

    def _approve(
        record: WorkRecord,
        percent: str = "100",
        prior: QualityReview | None = None,
        final: bool = False,
    ) -> QualityReview:
        needs_followup = Decimal(percent) < 100
        return processor.review(
            record,
            "coord-7",
            Decimal(percent),
            feedback="checked on site",
            corrections_needed="regrout the joints" if needs_followup else None,
            revision_deadline=DEADLINE if needs_followup and not final else None,
            final=final,
            review_date=REVIEW_DATE,
            prior_review=prior,
        )

    return _approve


@pytest.fixture
def make_item() -> Callable[..., WorkItem]:
    """Bundle a record with its reviews and the reviews already paid out."""

    def _make(
        record: WorkRecord,
        *reviews: QualityReview,
        disbursed: tuple[QualityReview, ...] = (),
    ) -> WorkItem:
        return WorkItem(
            work_record=record,
            reviews=tuple(reviews),
            disbursed_review_ids=frozenset(r.review_id for r in disbursed),
        )

    return _make


@pytest.fixture
def repository() -> InMemoryPayrollRepository:
    return InMemoryPayrollRepository()


@pytest.fixture
def emitter() -> EventEmitter:
    return EventEmitter()


@pytest.fixture
def service(
    repository: InMemoryPayrollRepository,
    emitter: EventEmitter,
    processor: QualityReviewProcessor,
) -> PayrollService:
    return PayrollService(repository, emitter=emitter, processor=processor)


@pytest.fixture
def builder(repository: InMemoryPayrollRepository, emitter: EventEmitter) -> PayrollRecordBuilder:
    return PayrollRecordBuilder(repository, emitter=emitter)
