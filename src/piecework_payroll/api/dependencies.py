"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from piecework_payroll.database import get_session
from piecework_payroll.events import EventEmitter
from piecework_payroll.services.payroll_builder import PayrollRecordBuilder
from piecework_payroll.services.payroll_service import PayrollService
from piecework_payroll.services.repository import PayrollRepository
from piecework_payroll.services.sql_repository import SqlPayrollRepository


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency (commit on success)."""
    async with get_session() as session:
        yield session


DbSession = Annotated[AsyncSession, Depends(get_db_session)]


def get_repository(db: DbSession) -> PayrollRepository:
    return SqlPayrollRepository(db)


def get_emitter(request: Request) -> EventEmitter:
    return request.app.state.emitter


Repository = Annotated[PayrollRepository, Depends(get_repository)]
Emitter = Annotated[EventEmitter, Depends(get_emitter)]


def get_payroll_service(repository: Repository, emitter: Emitter) -> PayrollService:
    return PayrollService(repository, emitter=emitter)


def get_builder(
    request: Request, repository: Repository, emitter: Emitter
) -> PayrollRecordBuilder:
    return PayrollRecordBuilder(
        repository,
        net_pay_calculator=request.app.state.net_pay_calculator,
        emitter=emitter,
    )


# Type aliases for cleaner dependency injection
Service = Annotated[PayrollService, Depends(get_payroll_service)]
Builder = Annotated[PayrollRecordBuilder, Depends(get_builder)]
