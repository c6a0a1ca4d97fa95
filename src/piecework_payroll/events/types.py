"""Domain event types for piecework payroll operations.

All events are:
- Immutable (frozen dataclasses)
- Typed with explicit payloads
- Scoped to one employee-period, so consumers can invalidate exactly
  the payroll record a write affects
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class EventCategory(str, Enum):
    """Event categories for routing and filtering."""

    WORK = "work"
    REVIEW = "review"
    ADJUSTMENT = "adjustment"
    DISBURSEMENT = "disbursement"
    PAYROLL = "payroll"


@dataclass(frozen=True)
class EventMetadata:
    """Metadata attached to every domain event."""

    event_id: UUID
    timestamp: datetime
    correlation_id: UUID
    actor_id: str | None
    source_service: str
    version: int = 1

    @classmethod
    def create(
        cls,
        correlation_id: UUID | None = None,
        actor_id: str | None = None,
        source_service: str = "piecework_payroll",
    ) -> EventMetadata:
        """Create metadata with auto-generated fields."""
        return cls(
            event_id=uuid4(),
            timestamp=datetime.now(timezone.utc),
            correlation_id=correlation_id or uuid4(),
            actor_id=actor_id,
            source_service=source_service,
        )


@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events."""

    metadata: EventMetadata
    employee_id: str
    period: str

    @property
    def event_type(self) -> str:
        """Event type name for routing."""
        return self.__class__.__name__

    @property
    def category(self) -> EventCategory:
        """Event category for filtering."""
        raise NotImplementedError("Subclasses must define category")

    @property
    def invalidates_payroll(self) -> bool:
        """Whether this event changes the inputs of a payroll record."""
        return True

    def to_dict(self) -> dict[str, Any]:
        """Serialize event to dictionary."""
        data = asdict(self)
        data["event_type"] = self.event_type
        return _serialize_dict(data)

    def to_json(self) -> str:
        """Serialize event to JSON string."""
        return json.dumps(self.to_dict(), default=str)


def _serialize_dict(obj: Any) -> Any:
    """Recursively serialize objects for JSON compatibility."""
    if isinstance(obj, dict):
        return {k: _serialize_dict(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [_serialize_dict(v) for v in obj]
    elif isinstance(obj, UUID):
        return str(obj)
    elif isinstance(obj, (datetime, date)):
        return obj.isoformat()
    elif isinstance(obj, Decimal):
        return str(obj)
    elif isinstance(obj, Enum):
        return obj.value
    return obj


# =============================================================================
# Work Events
# =============================================================================


@dataclass(frozen=True)
class WorkRecorded(DomainEvent):
    """A measured work claim was appended to the ledger."""

    work_record_id: UUID
    location_ref: str
    estimated_amount: Decimal

    @property
    def category(self) -> EventCategory:
        return EventCategory.WORK


@dataclass(frozen=True)
class WorkRecordSuperseded(DomainEvent):
    """A work record was replaced by a corrected measurement."""

    work_record_id: UUID
    superseded_by: UUID

    @property
    def category(self) -> EventCategory:
        return EventCategory.WORK


# =============================================================================
# Review Events
# =============================================================================


@dataclass(frozen=True)
class QualityReviewed(DomainEvent):
    """A quality review was appended to a work record's history."""

    work_record_id: UUID
    review_id: UUID
    version: int
    status: str
    approval_percent: Decimal
    approved_amount: Decimal

    @property
    def category(self) -> EventCategory:
        return EventCategory.REVIEW


# =============================================================================
# Adjustment & Disbursement Events
# =============================================================================


@dataclass(frozen=True)
class AdjustmentRecorded(DomainEvent):
    """A bonus or deduction was recorded for an employee-period."""

    entry_id: UUID
    kind: str  # 'bonus' or 'deduction'
    adjustment_type: str
    amount: Decimal

    @property
    def category(self) -> EventCategory:
        return EventCategory.ADJUSTMENT


@dataclass(frozen=True)
class DisbursementConfirmed(DomainEvent):
    """The payment system confirmed a review's approved amount was paid out."""

    review_id: UUID

    @property
    def category(self) -> EventCategory:
        return EventCategory.DISBURSEMENT


# =============================================================================
# Payroll Events
# =============================================================================


@dataclass(frozen=True)
class PayrollRecordRebuilt(DomainEvent):
    """A payroll record snapshot was rebuilt from its inputs."""

    status: str
    total_gross: Decimal
    fingerprint: str

    @property
    def category(self) -> EventCategory:
        return EventCategory.PAYROLL

    @property
    def invalidates_payroll(self) -> bool:
        return False


@dataclass(frozen=True)
class NegativeGrossFlagged(DomainEvent):
    """Deductions exceeded pay; gross was clamped and needs manual adjustment."""

    shortfall: Decimal

    @property
    def category(self) -> EventCategory:
        return EventCategory.PAYROLL

    @property
    def invalidates_payroll(self) -> bool:
        return False
