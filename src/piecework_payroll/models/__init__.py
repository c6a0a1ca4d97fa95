"""SQLAlchemy models for piecework payroll persistence."""

from piecework_payroll.models.base import Base, TimestampMixin
from piecework_payroll.models.payroll import (
    DisbursementRow,
    PayrollAdjustmentRow,
    PayrollSnapshotRow,
    QualityReviewRow,
    WorkRecordRow,
)

__all__ = [
    "Base",
    "DisbursementRow",
    "PayrollAdjustmentRow",
    "PayrollSnapshotRow",
    "QualityReviewRow",
    "TimestampMixin",
    "WorkRecordRow",
]
