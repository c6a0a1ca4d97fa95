"""PayrollRecord builder: total rebuild of an employee-period snapshot."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Sequence

from piecework_payroll.calculators.aggregator import active_items, aggregate
from piecework_payroll.calculators.amounts import AmountCalculator
from piecework_payroll.calculators.ledger import validate_period
from piecework_payroll.calculators.types import (
    BonusEntry,
    DeductionEntry,
    NetPayCalculator,
    PayrollRecord,
    PayrollStatus,
    WorkItem,
)
from piecework_payroll.errors import PayrollError
from piecework_payroll.events import (
    EventEmitter,
    EventMetadata,
    NegativeGrossFlagged,
    PayrollRecordRebuilt,
)
from piecework_payroll.services.repository import PayrollRepository
from piecework_payroll.services.state_machine import PayrollStatusMachine

logger = logging.getLogger(__name__)


def assemble_payroll_record(
    employee_id: str,
    period: str,
    work_items: Sequence[WorkItem],
    bonuses: Sequence[BonusEntry] = (),
    deductions: Sequence[DeductionEntry] = (),
    net_pay_calculator: NetPayCalculator | None = None,
) -> PayrollRecord:
    """Assemble an immutable PayrollRecord from its inputs.

    Pure: the same inputs yield an identical record and fingerprint.
    Ordering is fixed by record creation time and ids, never by the
    order the caller happened to pass things in.
    """
    items = tuple(
        sorted(
            active_items(work_items),
            key=lambda i: (i.work_record.created_at, str(i.work_record.work_record_id)),
        )
    )
    sorted_bonuses = tuple(sorted(bonuses, key=lambda b: str(b.entry_id)))
    sorted_deductions = tuple(sorted(deductions, key=lambda d: str(d.entry_id)))

    totals = aggregate(employee_id, period, items, sorted_bonuses, sorted_deductions)
    status = PayrollStatusMachine.derive_status(items)

    total_net = None
    if net_pay_calculator is not None:
        total_net = AmountCalculator.round_to_cents(net_pay_calculator(totals.total_gross))

    record = PayrollRecord(
        employee_id=employee_id,
        period=period,
        work_items=items,
        bonuses=sorted_bonuses,
        deductions=sorted_deductions,
        total_estimated=totals.total_estimated,
        total_approved=totals.total_approved,
        total_pending=totals.total_pending,
        total_rejected=totals.total_rejected,
        total_gross=totals.total_gross,
        total_net=total_net,
        quality_score=totals.quality_score,
        status=status,
        gross_clamped=totals.gross_clamped,
    )
    return replace(
        record, fingerprint=AmountCalculator.compute_fingerprint(record.to_canonical_dict())
    )


@dataclass
class EmployeeFailure:
    """A single employee whose record could not be rebuilt."""

    employee_id: str
    error_type: str
    message: str


@dataclass
class PayrollSummary:
    """Period-wide roll-up of payroll records."""

    total_payroll: Decimal = Decimal("0.00")
    total_approved: Decimal = Decimal("0.00")
    total_pending: Decimal = Decimal("0.00")
    total_rejected: Decimal = Decimal("0.00")
    employee_count: int = 0
    pending_count: int = 0
    processing_count: int = 0
    partially_paid_count: int = 0
    paid_count: int = 0
    average_quality_score: Decimal | None = None
    review_states: dict[str, int] = field(default_factory=dict)


def summarize(records: Sequence[PayrollRecord]) -> PayrollSummary:
    """Roll up payroll records for a period dashboard."""
    summary = PayrollSummary(employee_count=len(records))
    summary.review_states = PayrollStatusMachine.review_state_counts(())
    scores: list[Decimal] = []

    for record in records:
        summary.total_payroll += record.total_gross
        summary.total_approved += record.total_approved
        summary.total_pending += record.total_pending
        summary.total_rejected += record.total_rejected
        if record.status == PayrollStatus.PENDING:
            summary.pending_count += 1
        elif record.status == PayrollStatus.PROCESSING:
            summary.processing_count += 1
        elif record.status == PayrollStatus.PARTIALLY_PAID:
            summary.partially_paid_count += 1
        else:
            summary.paid_count += 1
        if record.quality_score is not None:
            scores.append(record.quality_score)
        for state, count in PayrollStatusMachine.review_state_counts(record.work_items).items():
            summary.review_states[state] += count

    if scores:
        summary.average_quality_score = AmountCalculator.round_to_cents(
            sum(scores, Decimal("0")) / len(scores)
        )
    return summary


@dataclass
class PayrollRunResult:
    """Result of rebuilding every employee's record for a period."""

    period: str
    records: dict[str, PayrollRecord] = field(default_factory=dict)
    failures: list[EmployeeFailure] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.failures)

    @property
    def summary(self) -> PayrollSummary:
        return summarize(list(self.records.values()))


class PayrollRecordBuilder:
    """Fetches an employee-period's inputs and rebuilds its snapshot.

    Rebuilding is always a total replacement. Nothing is written until
    the finished record is handed to the repository, so a rebuild can be
    abandoned or retried at any point.
    """

    def __init__(
        self,
        repository: PayrollRepository,
        net_pay_calculator: NetPayCalculator | None = None,
        emitter: EventEmitter | None = None,
    ):
        self.repository = repository
        self.net_pay_calculator = net_pay_calculator
        self.emitter = emitter

    async def load_work_items(self, employee_id: str, period: str) -> list[WorkItem]:
        records = await self.repository.list_work_records(employee_id, period)
        disbursed = await self.repository.list_disbursed_review_ids(
            [r.work_record_id for r in records]
        )
        items: list[WorkItem] = []
        for record in records:
            reviews = await self.repository.list_reviews(record.work_record_id)
            own_ids = {r.review_id for r in reviews}
            items.append(
                WorkItem(
                    work_record=record,
                    reviews=tuple(reviews),
                    disbursed_review_ids=frozenset(disbursed & own_ids),
                )
            )
        return items

    async def build_payroll_record(
        self, employee_id: str, period: str, persist: bool = True
    ) -> PayrollRecord:
        validate_period(period)
        items = await self.load_work_items(employee_id, period)
        bonuses = await self.repository.list_bonuses(employee_id, period)
        deductions = await self.repository.list_deductions(employee_id, period)

        record = assemble_payroll_record(
            employee_id, period, items, bonuses, deductions, self.net_pay_calculator
        )

        if persist:
            await self.repository.save_payroll_record(record)
        logger.info(
            "Rebuilt payroll record for %s/%s: status=%s gross=%s fingerprint=%s",
            employee_id,
            period,
            record.status.value,
            record.total_gross,
            record.fingerprint,
        )
        self._emit(record)
        return record

    async def build_payroll_run(
        self, period: str, employee_ids: Sequence[str] | None = None
    ) -> PayrollRunResult:
        """Rebuild every employee's record; failures are reported, not fatal."""
        validate_period(period)
        if employee_ids is None:
            employee_ids = await self.repository.list_employee_ids(period)

        result = PayrollRunResult(period=period)
        for employee_id in employee_ids:
            try:
                async with self.repository.savepoint():
                    record = await self.build_payroll_record(employee_id, period)
                result.records[employee_id] = record
            except PayrollError as e:
                logger.warning("Payroll rebuild failed for %s/%s: %s", employee_id, period, e)
                result.failures.append(
                    EmployeeFailure(employee_id, type(e).__name__, str(e))
                )
            except Exception as e:
                logger.exception("Unexpected error rebuilding %s/%s", employee_id, period)
                result.failures.append(
                    EmployeeFailure(employee_id, type(e).__name__, f"Unexpected error: {e}")
                )
        return result

    def _emit(self, record: PayrollRecord) -> None:
        if self.emitter is None:
            return
        with self.emitter.batch() as batch:
            batch.add(
                PayrollRecordRebuilt(
                    metadata=EventMetadata.create(),
                    employee_id=record.employee_id,
                    period=record.period,
                    status=record.status.value,
                    total_gross=record.total_gross,
                    fingerprint=record.fingerprint,
                )
            )
            if record.gross_clamped:
                bonuses = sum((b.amount for b in record.bonuses), Decimal("0"))
                deductions = sum((d.amount for d in record.deductions), Decimal("0"))
                batch.add(
                    NegativeGrossFlagged(
                        metadata=EventMetadata.create(),
                        employee_id=record.employee_id,
                        period=record.period,
                        shortfall=AmountCalculator.round_to_cents(
                            deductions - record.total_approved - bonuses
                        ),
                    )
                )
