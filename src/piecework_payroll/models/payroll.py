"""Work record, quality review, adjustment and payroll snapshot tables."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from piecework_payroll.models.base import Base, TimestampMixin


class WorkRecordRow(Base):
    """Append-only measured work claim."""

    __tablename__ = "work_record"

    work_record_id: Mapped[UUID] = mapped_column(primary_key=True)
    employee_id: Mapped[str] = mapped_column(String, nullable=False)
    period: Mapped[str] = mapped_column(String(7), nullable=False)
    location_ref: Mapped[str] = mapped_column(String, nullable=False)
    task_type: Mapped[str] = mapped_column(String, nullable=False)
    rate_per_square_meter: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    rate_per_linear_meter: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    meters_square: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    meters_linear: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    estimated_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    supersedes: Mapped[UUID | None] = mapped_column(nullable=True)
    superseded_by: Mapped[UUID | None] = mapped_column(nullable=True)

    __table_args__ = (
        CheckConstraint("meters_square >= 0", name="work_record_m2_check"),
        CheckConstraint("meters_linear >= 0", name="work_record_mb_check"),
        CheckConstraint(
            "meters_square > 0 OR meters_linear > 0", name="work_record_claims_work_check"
        ),
        UniqueConstraint("supersedes", name="work_record_supersedes_unique"),
        Index("work_record_employee_period_idx", "employee_id", "period"),
    )


class QualityReviewRow(Base):
    """One entry in a work record's review history."""

    __tablename__ = "quality_review"

    review_id: Mapped[UUID] = mapped_column(primary_key=True)
    work_record_id: Mapped[UUID] = mapped_column(
        ForeignKey("work_record.work_record_id", ondelete="RESTRICT"),
        nullable=False,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False)
    approval_percent: Mapped[Decimal] = mapped_column(Numeric(7, 4), nullable=False)
    approved_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    pending_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    rejected_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    reviewer_id: Mapped[str | None] = mapped_column(String, nullable=True)
    review_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    meters_verified: Mapped[Decimal | None] = mapped_column(Numeric(12, 4), nullable=True)
    feedback: Mapped[str] = mapped_column(Text, nullable=False, default="")
    corrections_needed: Mapped[str | None] = mapped_column(Text, nullable=True)
    revision_deadline: Mapped[date | None] = mapped_column(Date, nullable=True)
    final: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    supersedes_review_id: Mapped[UUID | None] = mapped_column(nullable=True)

    __table_args__ = (
        UniqueConstraint("work_record_id", "version", name="quality_review_version_unique"),
        UniqueConstraint("supersedes_review_id", name="quality_review_supersedes_unique"),
        CheckConstraint(
            "approval_percent >= 0 AND approval_percent <= 100",
            name="quality_review_percent_check",
        ),
        CheckConstraint(
            "status IN ('pending_review', 'approved', 'partially_approved', 'rejected')",
            name="quality_review_status_check",
        ),
    )


class PayrollAdjustmentRow(Base, TimestampMixin):
    """Bonus or deduction for an employee-period."""

    __tablename__ = "payroll_adjustment"

    entry_id: Mapped[UUID] = mapped_column(primary_key=True)
    employee_id: Mapped[str] = mapped_column(String, nullable=False)
    period: Mapped[str] = mapped_column(String(7), nullable=False)
    kind: Mapped[str] = mapped_column(String, nullable=False)
    adjustment_type: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    __table_args__ = (
        CheckConstraint("kind IN ('bonus', 'deduction')", name="payroll_adjustment_kind_check"),
        CheckConstraint("amount >= 0", name="payroll_adjustment_amount_check"),
        Index("payroll_adjustment_employee_period_idx", "employee_id", "period"),
    )


class DisbursementRow(Base, TimestampMixin):
    """Payment system confirmation that a review's approved amount was paid."""

    __tablename__ = "disbursement"

    review_id: Mapped[UUID] = mapped_column(
        ForeignKey("quality_review.review_id", ondelete="RESTRICT"),
        primary_key=True,
    )


class PayrollSnapshotRow(Base):
    """Latest built payroll record for an employee-period."""

    __tablename__ = "payroll_snapshot"

    employee_id: Mapped[str] = mapped_column(String, primary_key=True)
    period: Mapped[str] = mapped_column(String(7), primary_key=True)
    status: Mapped[str] = mapped_column(String, nullable=False)
    total_estimated: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_approved: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_pending: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_rejected: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_gross: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_net: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    quality_score: Mapped[Decimal | None] = mapped_column(Numeric(7, 2), nullable=True)
    fingerprint: Mapped[str] = mapped_column(String(32), nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    built_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
