"""API routes."""

from piecework_payroll.api.routes.health import router as health_router
from piecework_payroll.api.routes.payroll import router as payroll_router
from piecework_payroll.api.routes.work_records import router as work_records_router

__all__ = ["health_router", "payroll_router", "work_records_router"]
