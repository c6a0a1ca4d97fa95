"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from piecework_payroll.calculators.types import (
    BonusEntry,
    BonusType,
    DeductionEntry,
    DeductionType,
    PayrollRecord,
    PayrollStatus,
    ReviewStatus,
    WorkItem,
)
from piecework_payroll.services.payroll_builder import PayrollRunResult, PayrollSummary


# ============================================================================
# Work records
# ============================================================================


class WorkUnitSchema(BaseModel):
    """Task type and piece rates."""

    model_config = ConfigDict(from_attributes=True)

    task_type: str
    rate_per_square_meter: Decimal = Decimal("0")
    rate_per_linear_meter: Decimal = Decimal("0")


class WorkRecordCreate(BaseModel):
    """Schema for submitting a measurement."""

    employee_id: str
    period: str = Field(description="Calendar month, YYYY-MM")
    location_ref: str
    work_unit: WorkUnitSchema
    meters_square: Decimal = Decimal("0")
    meters_linear: Decimal = Decimal("0")
    actor_id: str | None = None


class MeasurementCorrection(BaseModel):
    """Schema for re-measuring a work record."""

    meters_square: Decimal = Decimal("0")
    meters_linear: Decimal = Decimal("0")
    actor_id: str | None = None


class WorkRecordResponse(BaseModel):
    """Schema for work record response."""

    model_config = ConfigDict(from_attributes=True)

    work_record_id: UUID
    employee_id: str
    period: str
    location_ref: str
    work_unit: WorkUnitSchema
    meters_square: Decimal
    meters_linear: Decimal
    estimated_amount: Decimal
    created_at: datetime
    supersedes: UUID | None = None
    superseded_by: UUID | None = None
    superseded: bool


# ============================================================================
# Quality reviews
# ============================================================================


class ReviewCreate(BaseModel):
    """Schema for a coordinator's verdict."""

    reviewer_id: str
    approval_percent: Decimal
    feedback: str = ""
    meters_verified: Decimal | None = None
    corrections_needed: str | None = None
    revision_deadline: date | None = None
    final: bool = False
    review_date: date | None = None
    supersedes_review_id: UUID | None = Field(
        default=None,
        description="Current review being replaced; omit for the first review",
    )


class ReviewResponse(BaseModel):
    """Schema for quality review response."""

    model_config = ConfigDict(from_attributes=True)

    review_id: UUID
    work_record_id: UUID
    version: int
    status: ReviewStatus
    approval_percent: Decimal
    approved_amount: Decimal
    pending_amount: Decimal
    rejected_amount: Decimal
    reviewer_id: str | None = None
    review_date: date | None = None
    meters_verified: Decimal | None = None
    measurement_verified: bool
    feedback: str = ""
    corrections_needed: str | None = None
    revision_deadline: date | None = None
    final: bool = False
    supersedes_review_id: UUID | None = None


# ============================================================================
# Adjustments
# ============================================================================


class BonusCreate(BaseModel):
    type: BonusType
    amount: Decimal
    description: str = ""
    actor_id: str | None = None


class DeductionCreate(BaseModel):
    type: DeductionType
    amount: Decimal
    description: str = ""
    actor_id: str | None = None


class AdjustmentResponse(BaseModel):
    """Schema for bonus or deduction response."""

    model_config = ConfigDict(from_attributes=True)

    entry_id: UUID
    employee_id: str
    period: str
    type: str
    amount: Decimal
    description: str


# ============================================================================
# Payroll records
# ============================================================================


class WorkItemResponse(BaseModel):
    work_record: WorkRecordResponse
    latest_review: ReviewResponse | None = None
    review_history: list[ReviewResponse]
    disbursed: bool

    @classmethod
    def from_item(cls, item: WorkItem) -> WorkItemResponse:
        latest = item.latest_review
        return cls(
            work_record=WorkRecordResponse.model_validate(item.work_record),
            latest_review=ReviewResponse.model_validate(latest) if latest else None,
            review_history=[
                ReviewResponse.model_validate(r)
                for r in sorted(item.reviews, key=lambda r: r.version)
            ],
            disbursed=item.disbursed,
        )


class PayrollRecordResponse(BaseModel):
    """Schema for an employee-period payroll record."""

    employee_id: str
    period: str
    status: PayrollStatus
    total_estimated: Decimal
    total_approved: Decimal
    total_pending: Decimal
    total_rejected: Decimal
    total_gross: Decimal
    total_net: Decimal | None = None
    quality_score: Decimal | None = None
    gross_clamped: bool
    fingerprint: str
    work_items: list[WorkItemResponse]
    bonuses: list[AdjustmentResponse]
    deductions: list[AdjustmentResponse]

    @classmethod
    def from_record(cls, record: PayrollRecord) -> PayrollRecordResponse:
        return cls(
            employee_id=record.employee_id,
            period=record.period,
            status=record.status,
            total_estimated=record.total_estimated,
            total_approved=record.total_approved,
            total_pending=record.total_pending,
            total_rejected=record.total_rejected,
            total_gross=record.total_gross,
            total_net=record.total_net,
            quality_score=record.quality_score,
            gross_clamped=record.gross_clamped,
            fingerprint=record.fingerprint,
            work_items=[WorkItemResponse.from_item(item) for item in record.work_items],
            bonuses=[adjustment_response(b) for b in record.bonuses],
            deductions=[adjustment_response(d) for d in record.deductions],
        )


def _adjustment(entry: BonusEntry | DeductionEntry) -> dict:
    return {
        "entry_id": entry.entry_id,
        "employee_id": entry.employee_id,
        "period": entry.period,
        "type": entry.type.value,
        "amount": entry.amount,
        "description": entry.description,
    }


def adjustment_response(entry: BonusEntry | DeductionEntry) -> AdjustmentResponse:
    return AdjustmentResponse(**_adjustment(entry))


class PayrollRunRequest(BaseModel):
    employee_ids: list[str] | None = Field(
        default=None, description="Employees to rebuild; all with activity in the period if omitted"
    )


class EmployeeFailureResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: str
    error_type: str
    message: str


class PayrollSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_payroll: Decimal
    total_approved: Decimal
    total_pending: Decimal
    total_rejected: Decimal
    employee_count: int
    pending_count: int
    processing_count: int
    partially_paid_count: int
    paid_count: int
    average_quality_score: Decimal | None = None
    review_states: dict[str, int]


class PayrollRunResponse(BaseModel):
    period: str
    records: list[PayrollRecordResponse]
    failures: list[EmployeeFailureResponse]
    summary: PayrollSummaryResponse

    @classmethod
    def from_result(cls, result: PayrollRunResult) -> PayrollRunResponse:
        summary: PayrollSummary = result.summary
        return cls(
            period=result.period,
            records=[PayrollRecordResponse.from_record(r) for r in result.records.values()],
            failures=[EmployeeFailureResponse.model_validate(f) for f in result.failures],
            summary=PayrollSummaryResponse.model_validate(summary),
        )


class ErrorResponse(BaseModel):
    """Error response schema."""

    detail: str
    code: str
    field: str | None = None
