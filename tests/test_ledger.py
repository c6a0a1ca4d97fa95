"""Tests for the work record ledger."""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from piecework_payroll.calculators.ledger import (
    WorkRecordLedger,
    record_work,
    supersede,
    validate_period,
)
from piecework_payroll.calculators.types import WorkUnit
from piecework_payroll.errors import (
    InvalidMeasurementError,
    RecordSupersededError,
    WorkRecordNotFoundError,
)


class TestRecordWork:
    """Test work record creation."""

    def test_estimate_is_frozen_at_creation(self, tiling):
        record = record_work("emp-001", "2025-03", "block-a/unit-4", tiling, Decimal("85.5"))

        assert record.estimated_amount == Decimal("1539.00")
        assert record.meters_linear == Decimal("0")
        assert not record.superseded
        assert record.created_at.tzinfo is not None

    def test_linear_meters_only(self):
        unit = WorkUnit("skirting", rate_per_linear_meter=Decimal("15"))
        record = record_work("emp-001", "2025-03", "hall", unit, 0, "24.5")

        assert record.estimated_amount == Decimal("367.50")

    def test_accepts_numeric_strings(self, tiling):
        record = record_work("emp-001", "2025-03", "hall", tiling, "12.25")
        assert record.meters_square == Decimal("12.25")

    def test_float_inputs_avoid_binary_artifacts(self, tiling):
        record = record_work("emp-001", "2025-03", "hall", tiling, 0.1)
        assert record.meters_square == Decimal("0.1")
        assert record.estimated_amount == Decimal("1.80")

    @pytest.mark.parametrize("m2,mb", [("-1", "0"), ("10", "-0.5")])
    def test_negative_measurement_rejected(self, tiling, m2, mb):
        with pytest.raises(InvalidMeasurementError):
            record_work("emp-001", "2025-03", "hall", tiling, Decimal(m2), Decimal(mb))

    def test_no_work_rejected(self, tiling):
        with pytest.raises(InvalidMeasurementError, match="claim some work"):
            record_work("emp-001", "2025-03", "hall", tiling, Decimal("0"), Decimal("0"))

    def test_negative_rate_rejected(self):
        unit = WorkUnit("tiling", rate_per_square_meter=Decimal("-18"))
        with pytest.raises(InvalidMeasurementError):
            record_work("emp-001", "2025-03", "hall", unit, Decimal("10"))

    def test_non_numeric_rejected(self, tiling):
        with pytest.raises(InvalidMeasurementError):
            record_work("emp-001", "2025-03", "hall", tiling, "ten")

    def test_infinite_rejected(self, tiling):
        with pytest.raises(InvalidMeasurementError):
            record_work("emp-001", "2025-03", "hall", tiling, Decimal("Infinity"))

    def test_explicit_id_and_time(self, tiling):
        record_id = uuid4()
        created = datetime(2025, 3, 2, tzinfo=timezone.utc)
        record = record_work(
            "emp-001", "2025-03", "hall", tiling, 1, work_record_id=record_id, created_at=created
        )
        assert record.work_record_id == record_id
        assert record.created_at == created


class TestPeriod:
    """Test period validation."""

    @pytest.mark.parametrize("period", ["2025-01", "2025-12", "1999-06"])
    def test_valid(self, period):
        assert validate_period(period) == period

    @pytest.mark.parametrize("period", ["2025-13", "2025-00", "2025-3", "March", "", None])
    def test_invalid(self, period):
        with pytest.raises(InvalidMeasurementError):
            validate_period(period)


class TestSupersession:
    """Test corrections through supersession."""

    def test_supersede_marks_old_record(self, make_record):
        old = make_record("10")
        new = make_record("9.5", location_ref=old.location_ref)

        marked = supersede(old, new)

        assert marked.superseded
        assert marked.superseded_by == new.work_record_id
        assert not old.superseded  # frozen original untouched

    def test_supersede_twice_fails(self, make_record):
        old = supersede(make_record("10"), make_record("9"))
        with pytest.raises(RecordSupersededError):
            supersede(old, make_record("8"))


class TestWorkRecordLedger:
    """Test the in-process ledger."""

    def test_correct_measurement(self, tiling):
        ledger = WorkRecordLedger()
        original = ledger.record_work("emp-001", "2025-03", "block-a/unit-4", tiling, "10")

        corrected = ledger.correct_measurement(original.work_record_id, "9.5")

        assert corrected.supersedes == original.work_record_id
        assert corrected.location_ref == original.location_ref
        assert corrected.estimated_amount == Decimal("171.00")
        assert ledger.get(original.work_record_id).superseded_by == corrected.work_record_id

    def test_records_for_excludes_superseded(self, tiling):
        ledger = WorkRecordLedger()
        a = ledger.record_work("emp-001", "2025-03", "unit-1", tiling, "10")
        b = ledger.record_work("emp-001", "2025-03", "unit-2", tiling, "5")
        ledger.record_work("emp-002", "2025-03", "unit-3", tiling, "5")
        ledger.record_work("emp-001", "2025-04", "unit-4", tiling, "5")
        c = ledger.correct_measurement(a.work_record_id, "11")

        active = ledger.records_for("emp-001", "2025-03")
        everything = ledger.records_for("emp-001", "2025-03", include_superseded=True)

        assert {r.work_record_id for r in active} == {b.work_record_id, c.work_record_id}
        assert len(everything) == 3

    def test_correcting_superseded_record_fails(self, tiling):
        ledger = WorkRecordLedger()
        original = ledger.record_work("emp-001", "2025-03", "unit-1", tiling, "10")
        ledger.correct_measurement(original.work_record_id, "9")

        with pytest.raises(RecordSupersededError):
            ledger.correct_measurement(original.work_record_id, "8")

    def test_unknown_record(self):
        with pytest.raises(WorkRecordNotFoundError):
            WorkRecordLedger().get(uuid4())
