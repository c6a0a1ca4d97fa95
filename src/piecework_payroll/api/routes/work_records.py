"""Work record and quality review endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from piecework_payroll.api.dependencies import Repository, Service
from piecework_payroll.api.schemas import (
    ErrorResponse,
    MeasurementCorrection,
    ReviewCreate,
    ReviewResponse,
    WorkRecordCreate,
    WorkRecordResponse,
)
from piecework_payroll.calculators.types import WorkUnit

router = APIRouter(prefix="/work-records", tags=["work-records"])


@router.post(
    "",
    response_model=WorkRecordResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse}},
)
async def create_work_record(service: Service, payload: WorkRecordCreate) -> WorkRecordResponse:
    """Submit a measurement; the estimate is computed and frozen."""
    record = await service.record_work(
        employee_id=payload.employee_id,
        period=payload.period,
        location_ref=payload.location_ref,
        work_unit=WorkUnit(
            task_type=payload.work_unit.task_type,
            rate_per_square_meter=payload.work_unit.rate_per_square_meter,
            rate_per_linear_meter=payload.work_unit.rate_per_linear_meter,
        ),
        meters_square=payload.meters_square,
        meters_linear=payload.meters_linear,
        actor_id=payload.actor_id,
    )
    return WorkRecordResponse.model_validate(record)


@router.get(
    "/{work_record_id}",
    response_model=WorkRecordResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_work_record(
    repository: Repository,
    work_record_id: Annotated[UUID, Path()],
) -> WorkRecordResponse:
    record = await repository.get_work_record(work_record_id)
    return WorkRecordResponse.model_validate(record)


@router.post(
    "/{work_record_id}/corrections",
    response_model=WorkRecordResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def correct_work_record(
    service: Service,
    work_record_id: Annotated[UUID, Path()],
    payload: MeasurementCorrection,
) -> WorkRecordResponse:
    """Re-measure: creates a new record and supersedes the old one."""
    record = await service.correct_measurement(
        work_record_id,
        payload.meters_square,
        payload.meters_linear,
        actor_id=payload.actor_id,
    )
    return WorkRecordResponse.model_validate(record)


@router.get(
    "/{work_record_id}/reviews",
    response_model=list[ReviewResponse],
    responses={404: {"model": ErrorResponse}},
)
async def list_reviews(
    repository: Repository,
    work_record_id: Annotated[UUID, Path()],
) -> list[ReviewResponse]:
    """Full review history, oldest first."""
    await repository.get_work_record(work_record_id)
    reviews = await repository.list_reviews(work_record_id)
    return [ReviewResponse.model_validate(r) for r in reviews]


@router.post(
    "/{work_record_id}/reviews",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def review_work_record(
    service: Service,
    work_record_id: Annotated[UUID, Path()],
    payload: ReviewCreate,
) -> ReviewResponse:
    """Record a coordinator's verdict.

    Returns 409 when supersedes_review_id is not the current review or the
    verified measurement is disputed.
    """
    review = await service.review_work(
        work_record_id,
        reviewer_id=payload.reviewer_id,
        approval_percent=payload.approval_percent,
        feedback=payload.feedback,
        meters_verified=payload.meters_verified,
        corrections_needed=payload.corrections_needed,
        revision_deadline=payload.revision_deadline,
        final=payload.final,
        review_date=payload.review_date,
        supersedes_review_id=payload.supersedes_review_id,
    )
    return ReviewResponse.model_validate(review)
