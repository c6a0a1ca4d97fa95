"""Domain events for work, review, adjustment and payroll changes."""

from piecework_payroll.events.emitter import (
    EventBatch,
    EventEmitter,
    EventHandler,
    Subscription,
)
from piecework_payroll.events.types import (
    AdjustmentRecorded,
    DisbursementConfirmed,
    DomainEvent,
    EventCategory,
    EventMetadata,
    NegativeGrossFlagged,
    PayrollRecordRebuilt,
    QualityReviewed,
    WorkRecorded,
    WorkRecordSuperseded,
)

__all__ = [
    "AdjustmentRecorded",
    "DisbursementConfirmed",
    "DomainEvent",
    "EventBatch",
    "EventCategory",
    "EventEmitter",
    "EventHandler",
    "EventMetadata",
    "NegativeGrossFlagged",
    "PayrollRecordRebuilt",
    "QualityReviewed",
    "Subscription",
    "WorkRecorded",
    "WorkRecordSuperseded",
]
