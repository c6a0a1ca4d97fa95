"""WorkRecord ledger: measured work claims with frozen estimates."""

from __future__ import annotations

import re
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from uuid import UUID, uuid4

from piecework_payroll.calculators.amounts import AmountCalculator
from piecework_payroll.calculators.types import WorkRecord, WorkUnit
from piecework_payroll.errors import (
    InvalidMeasurementError,
    RecordSupersededError,
    WorkRecordNotFoundError,
)

PERIOD_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def validate_period(period: str) -> str:
    """Validate a YYYY-MM calendar month."""
    if not isinstance(period, str) or not PERIOD_PATTERN.match(period):
        raise InvalidMeasurementError(f"Period must be a YYYY-MM month, got {period!r}")
    return period


def to_decimal(value: Decimal | int | float | str, name: str) -> Decimal:
    """Coerce a numeric input to Decimal without binary float artifacts."""
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except InvalidOperation:
            raise InvalidMeasurementError(f"{name} is not a number: {value!r}")
    if not result.is_finite():
        raise InvalidMeasurementError(f"{name} must be finite, got {value!r}")
    return result


def record_work(
    employee_id: str,
    period: str,
    location_ref: str,
    work_unit: WorkUnit,
    meters_square: Decimal | int | float | str,
    meters_linear: Decimal | int | float | str = Decimal("0"),
    *,
    work_record_id: UUID | None = None,
    created_at: datetime | None = None,
    supersedes: UUID | None = None,
) -> WorkRecord:
    """Create a work record and freeze its estimated amount.

    Raises:
        InvalidMeasurementError: negative meters, no meters at all, negative
            rates, or a malformed period
    """
    validate_period(period)
    m2 = to_decimal(meters_square, "meters_square")
    mb = to_decimal(meters_linear, "meters_linear")

    if m2 < 0 or mb < 0:
        raise InvalidMeasurementError(
            f"Measurements must be non-negative (m2={m2}, mb={mb})"
        )
    if m2 == 0 and mb == 0:
        raise InvalidMeasurementError("A work record must claim some work")
    if work_unit.rate_per_square_meter < 0 or work_unit.rate_per_linear_meter < 0:
        raise InvalidMeasurementError(
            f"Rates for task type {work_unit.task_type!r} must be non-negative"
        )

    return WorkRecord(
        work_record_id=work_record_id or uuid4(),
        employee_id=employee_id,
        period=period,
        location_ref=location_ref,
        work_unit=work_unit,
        meters_square=m2,
        meters_linear=mb,
        estimated_amount=AmountCalculator.estimate(work_unit, m2, mb),
        created_at=created_at or datetime.now(timezone.utc),
        supersedes=supersedes,
    )


def supersede(old: WorkRecord, new: WorkRecord) -> WorkRecord:
    """Return ``old`` marked as superseded by ``new``.

    Supersession is one-way: a superseded record can never be reinstated.
    """
    if old.superseded:
        raise RecordSupersededError(old.work_record_id, old.superseded_by)
    return replace(old, superseded_by=new.work_record_id)


class WorkRecordLedger:
    """Append-only in-process ledger of work records.

    Corrections never edit a record: they append a new record for the same
    location and mark the old one superseded.
    """

    def __init__(self) -> None:
        self._records: dict[UUID, WorkRecord] = {}

    def record_work(
        self,
        employee_id: str,
        period: str,
        location_ref: str,
        work_unit: WorkUnit,
        meters_square: Decimal | int | float | str,
        meters_linear: Decimal | int | float | str = Decimal("0"),
    ) -> WorkRecord:
        record = record_work(
            employee_id, period, location_ref, work_unit, meters_square, meters_linear
        )
        self._records[record.work_record_id] = record
        return record

    def correct_measurement(
        self,
        work_record_id: UUID,
        meters_square: Decimal | int | float | str,
        meters_linear: Decimal | int | float | str = Decimal("0"),
    ) -> WorkRecord:
        """Append a corrected record and mark the original superseded."""
        old = self.get(work_record_id)
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
        self._records[old.work_record_id] = supersede(old, new)
        self._records[new.work_record_id] = new
        return new

    def get(self, work_record_id: UUID) -> WorkRecord:
        try:
            return self._records[work_record_id]
        except KeyError:
            raise WorkRecordNotFoundError(work_record_id) from None

    def records_for(
        self, employee_id: str, period: str, include_superseded: bool = False
    ) -> list[WorkRecord]:
        records = [
            r
            for r in self._records.values()
            if r.employee_id == employee_id
            and r.period == period
            and (include_superseded or not r.superseded)
        ]
        return sorted(records, key=lambda r: (r.created_at, str(r.work_record_id)))
