"""Adjustment, disbursement and payroll record endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from piecework_payroll.api.dependencies import Builder, Service
from piecework_payroll.config import get_settings
from piecework_payroll.api.schemas import (
    AdjustmentResponse,
    BonusCreate,
    DeductionCreate,
    ErrorResponse,
    PayrollRecordResponse,
    PayrollRunRequest,
    PayrollRunResponse,
    ReviewResponse,
    adjustment_response,
)

router = APIRouter(tags=["payroll"])

EmployeeId = Annotated[str, Path()]
Period = Annotated[str, Path(description="Calendar month, YYYY-MM")]


@router.post(
    "/employees/{employee_id}/periods/{period}/bonuses",
    response_model=AdjustmentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse}},
)
async def add_bonus(
    service: Service, employee_id: EmployeeId, period: Period, payload: BonusCreate
) -> AdjustmentResponse:
    bonus = await service.add_bonus(
        employee_id,
        period,
        payload.type,
        payload.amount,
        payload.description,
        actor_id=payload.actor_id,
    )
    return adjustment_response(bonus)


@router.post(
    "/employees/{employee_id}/periods/{period}/deductions",
    response_model=AdjustmentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse}},
)
async def add_deduction(
    service: Service, employee_id: EmployeeId, period: Period, payload: DeductionCreate
) -> AdjustmentResponse:
    deduction = await service.add_deduction(
        employee_id,
        period,
        payload.type,
        payload.amount,
        payload.description,
        actor_id=payload.actor_id,
    )
    return adjustment_response(deduction)


@router.post(
    "/reviews/{review_id}/disbursement",
    response_model=ReviewResponse,
    responses={404: {"model": ErrorResponse}},
)
async def confirm_disbursement(
    service: Service, review_id: Annotated[UUID, Path()]
) -> ReviewResponse:
    """Payment system callback: the review's approved amount was paid out."""
    review = await service.confirm_disbursement(review_id)
    return ReviewResponse.model_validate(review)


@router.get(
    "/employees/{employee_id}/periods/{period}/payroll",
    response_model=PayrollRecordResponse,
    responses={422: {"model": ErrorResponse}},
)
async def get_payroll_record(
    builder: Builder, employee_id: EmployeeId, period: Period
) -> PayrollRecordResponse:
    """Rebuild and return the employee-period payroll record."""
    record = await builder.build_payroll_record(
        employee_id, period, persist=get_settings().persist_snapshots
    )
    return PayrollRecordResponse.from_record(record)


@router.post(
    "/periods/{period}/payroll-runs",
    response_model=PayrollRunResponse,
    responses={422: {"model": ErrorResponse}},
)
async def run_payroll(
    builder: Builder, period: Period, payload: PayrollRunRequest | None = None
) -> PayrollRunResponse:
    """Rebuild every employee's record for a period; failures are reported per employee."""
    employee_ids = payload.employee_ids if payload else None
    result = await builder.build_payroll_run(period, employee_ids)
    return PayrollRunResponse.from_result(result)
