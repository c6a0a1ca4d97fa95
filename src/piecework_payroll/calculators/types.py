"""Type definitions for the piecework payroll pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable
from uuid import UUID

# Injected withholding function: gross -> net. No formula lives in this package.
NetPayCalculator = Callable[[Decimal], Decimal]


class ReviewStatus(str, Enum):
    """State of the latest quality review of a work record."""

    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    PARTIALLY_APPROVED = "partially_approved"
    REJECTED = "rejected"


class PayrollStatus(str, Enum):
    """Derived payment status of an employee-period."""

    PENDING = "pending"
    PROCESSING = "processing"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"


class BonusType(str, Enum):
    """Bonus categories."""

    QUALITY = "quality"
    PERFORMANCE = "performance"
    PROJECT_COMPLETION = "project_completion"
    ATTENDANCE = "attendance"
    OTHER = "other"


class DeductionType(str, Enum):
    """Deduction categories."""

    ABSENCE = "absence"
    DAMAGE = "damage"
    ADVANCE = "advance"
    OTHER = "other"


def _opt(value: Any) -> str | None:
    return str(value) if value is not None else None


@dataclass(frozen=True)
class WorkUnit:
    """Task type and its piece rates, set by the pricing authority."""

    task_type: str
    rate_per_square_meter: Decimal = Decimal("0")
    rate_per_linear_meter: Decimal = Decimal("0")

    def to_canonical_dict(self) -> dict[str, Any]:
        return {
            "task_type": self.task_type,
            "rate_per_square_meter": str(self.rate_per_square_meter),
            "rate_per_linear_meter": str(self.rate_per_linear_meter),
        }


@dataclass(frozen=True)
class WorkRecord:
    """One measured claim of completed work with a frozen estimate."""

    work_record_id: UUID
    employee_id: str
    period: str  # YYYY-MM
    location_ref: str
    work_unit: WorkUnit
    meters_square: Decimal
    meters_linear: Decimal
    estimated_amount: Decimal
    created_at: datetime
    supersedes: UUID | None = None
    superseded_by: UUID | None = None

    @property
    def superseded(self) -> bool:
        return self.superseded_by is not None

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict for hashing (deterministic ordering)."""
        return {
            "work_record_id": str(self.work_record_id),
            "employee_id": self.employee_id,
            "period": self.period,
            "location_ref": self.location_ref,
            "work_unit": self.work_unit.to_canonical_dict(),
            "meters_square": str(self.meters_square),
            "meters_linear": str(self.meters_linear),
            "estimated_amount": str(self.estimated_amount),
            "created_at": self.created_at.isoformat(),
            "supersedes": _opt(self.supersedes),
            "superseded_by": _opt(self.superseded_by),
        }


@dataclass(frozen=True)
class QualityReview:
    """A coordinator's verdict on one work record.

    Reviews form a chain per work record: each new review names the review
    it supersedes and carries the next version number.
    """

    review_id: UUID
    work_record_id: UUID
    version: int
    status: ReviewStatus
    approval_percent: Decimal
    approved_amount: Decimal
    pending_amount: Decimal
    rejected_amount: Decimal
    reviewer_id: str | None = None
    review_date: date | None = None  # None = not yet reviewed
    meters_verified: Decimal | None = None
    feedback: str = ""
    corrections_needed: str | None = None
    revision_deadline: date | None = None
    final: bool = False
    supersedes_review_id: UUID | None = None

    @property
    def reviewed(self) -> bool:
        return self.review_date is not None

    @property
    def measurement_verified(self) -> bool:
        """False when the claimed measurement was taken without verification."""
        return self.meters_verified is not None

    @property
    def total(self) -> Decimal:
        return self.approved_amount + self.pending_amount + self.rejected_amount

    def to_canonical_dict(self) -> dict[str, Any]:
        return {
            "review_id": str(self.review_id),
            "work_record_id": str(self.work_record_id),
            "version": self.version,
            "status": self.status.value,
            "approval_percent": str(self.approval_percent),
            "approved_amount": str(self.approved_amount),
            "pending_amount": str(self.pending_amount),
            "rejected_amount": str(self.rejected_amount),
            "reviewer_id": self.reviewer_id,
            "review_date": _opt(self.review_date),
            "meters_verified": _opt(self.meters_verified),
            "feedback": self.feedback,
            "corrections_needed": self.corrections_needed,
            "revision_deadline": _opt(self.revision_deadline),
            "final": self.final,
            "supersedes_review_id": _opt(self.supersedes_review_id),
        }


def select_latest_review(
    reviews: tuple[QualityReview, ...] | list[QualityReview],
) -> QualityReview | None:
    """Return the head of the supersession chain.

    The head is the review no other review supersedes. Insertion order is
    never consulted; a higher version wins if the chain ever forks.
    """
    if not reviews:
        return None
    superseded_ids = {
        r.supersedes_review_id for r in reviews if r.supersedes_review_id is not None
    }
    heads = [r for r in reviews if r.review_id not in superseded_ids]
    if not heads:
        return None
    return max(heads, key=lambda r: (r.version, str(r.review_id)))


@dataclass(frozen=True)
class BonusEntry:
    """Bonus added to an employee-period total."""

    entry_id: UUID
    employee_id: str
    period: str
    type: BonusType
    amount: Decimal
    description: str = ""

    def to_canonical_dict(self) -> dict[str, Any]:
        return {
            "entry_id": str(self.entry_id),
            "type": self.type.value,
            "amount": str(self.amount),
            "description": self.description,
        }


@dataclass(frozen=True)
class DeductionEntry:
    """Deduction subtracted from an employee-period total."""

    entry_id: UUID
    employee_id: str
    period: str
    type: DeductionType
    amount: Decimal
    description: str = ""

    def to_canonical_dict(self) -> dict[str, Any]:
        return {
            "entry_id": str(self.entry_id),
            "type": self.type.value,
            "amount": str(self.amount),
            "description": self.description,
        }


@dataclass(frozen=True)
class WorkItem:
    """A work record together with its review history and disbursements."""

    work_record: WorkRecord
    reviews: tuple[QualityReview, ...] = ()
    disbursed_review_ids: frozenset[UUID] = frozenset()

    @property
    def latest_review(self) -> QualityReview | None:
        own = [r for r in self.reviews if r.work_record_id == self.work_record.work_record_id]
        return select_latest_review(own)

    @property
    def disbursed(self) -> bool:
        """Whether the approved amount of the latest review has been paid out."""
        latest = self.latest_review
        return latest is not None and latest.review_id in self.disbursed_review_ids

    def to_canonical_dict(self) -> dict[str, Any]:
        latest = self.latest_review
        return {
            "work_record": self.work_record.to_canonical_dict(),
            "reviews": [
                r.to_canonical_dict()
                for r in sorted(self.reviews, key=lambda r: (r.version, str(r.review_id)))
            ],
            "latest_review_id": _opt(latest.review_id if latest else None),
            "disbursed": self.disbursed,
        }


@dataclass
class CompensationTotals:
    """Aggregated amounts for one employee-period."""

    employee_id: str
    period: str
    total_estimated: Decimal = Decimal("0")
    total_approved: Decimal = Decimal("0")
    total_pending: Decimal = Decimal("0")
    total_rejected: Decimal = Decimal("0")
    total_bonuses: Decimal = Decimal("0")
    total_deductions: Decimal = Decimal("0")
    total_gross: Decimal = Decimal("0")
    quality_score: Decimal | None = None
    gross_clamped: bool = False
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class PayrollRecord:
    """Immutable per-employee-per-period payroll snapshot."""

    employee_id: str
    period: str
    work_items: tuple[WorkItem, ...]
    bonuses: tuple[BonusEntry, ...]
    deductions: tuple[DeductionEntry, ...]
    total_estimated: Decimal
    total_approved: Decimal
    total_pending: Decimal
    total_rejected: Decimal
    total_gross: Decimal
    total_net: Decimal | None
    quality_score: Decimal | None
    status: PayrollStatus
    gross_clamped: bool = False
    fingerprint: str = ""

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict (excludes the fingerprint itself)."""
        return {
            "employee_id": self.employee_id,
            "period": self.period,
            "work_items": [item.to_canonical_dict() for item in self.work_items],
            "bonuses": [b.to_canonical_dict() for b in self.bonuses],
            "deductions": [d.to_canonical_dict() for d in self.deductions],
            "total_estimated": str(self.total_estimated),
            "total_approved": str(self.total_approved),
            "total_pending": str(self.total_pending),
            "total_rejected": str(self.total_rejected),
            "total_gross": str(self.total_gross),
            "total_net": _opt(self.total_net),
            "quality_score": _opt(self.quality_score),
            "status": self.status.value,
            "gross_clamped": self.gross_clamped,
        }
