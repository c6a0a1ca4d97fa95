"""Piecework payroll services."""

from piecework_payroll.services.cache import PayrollRecordCache
from piecework_payroll.services.payroll_builder import (
    PayrollRecordBuilder,
    PayrollRunResult,
    assemble_payroll_record,
    summarize,
)
from piecework_payroll.services.payroll_service import PayrollService
from piecework_payroll.services.repository import InMemoryPayrollRepository, PayrollRepository
from piecework_payroll.services.state_machine import PayrollStatusMachine

__all__ = [
    "InMemoryPayrollRepository",
    "PayrollRecordBuilder",
    "PayrollRecordCache",
    "PayrollRepository",
    "PayrollRunResult",
    "PayrollService",
    "PayrollStatusMachine",
    "assemble_payroll_record",
    "summarize",
]
