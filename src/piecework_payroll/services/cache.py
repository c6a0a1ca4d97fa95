"""Memoized payroll records, invalidated by domain events."""

from __future__ import annotations

import logging

from piecework_payroll.calculators.types import PayrollRecord
from piecework_payroll.events import DomainEvent, EventEmitter
from piecework_payroll.services.payroll_builder import PayrollRecordBuilder

logger = logging.getLogger(__name__)


class PayrollRecordCache:
    """Caches built records per employee-period.

    Every write event for an employee-period drops its entry, so a cached
    record is never served after its inputs change. The next read rebuilds.
    """

    def __init__(self, builder: PayrollRecordBuilder):
        self.builder = builder
        self._records: dict[tuple[str, str], PayrollRecord] = {}
        self._generations: dict[tuple[str, str], int] = {}

    def subscribe(self, emitter: EventEmitter) -> None:
        emitter.on_invalidation(self.handle_event)

    def handle_event(self, event: DomainEvent) -> None:
        if event.invalidates_payroll:
            self.invalidate(event.employee_id, event.period)

    def invalidate(self, employee_id: str, period: str) -> None:
        key = (employee_id, period)
        self._generations[key] = self._generations.get(key, 0) + 1
        if self._records.pop(key, None) is not None:
            logger.debug("Invalidated cached payroll record %s/%s", employee_id, period)

    def cached(self, employee_id: str, period: str) -> PayrollRecord | None:
        return self._records.get((employee_id, period))

    async def get(self, employee_id: str, period: str) -> PayrollRecord:
        key = (employee_id, period)
        record = self._records.get(key)
        if record is not None:
            return record

        generation = self._generations.get(key, 0)
        record = await self.builder.build_payroll_record(employee_id, period)
        # A write landed while building; the record may predate it
        if self._generations.get(key, 0) == generation:
            self._records[key] = record
        else:
            logger.debug(
                "Not caching payroll record for %s/%s built before a write", employee_id, period
            )
        return record
