from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.session import get_async_session
from src.repositories.ncm import NcmRepository, NcmRepositoryProtocol
from src.services.ncm import NcmService


# PUBLIC_INTERFACE
async def get_ncm_repository(
    session: AsyncSession = Depends(get_async_session),
) -> NcmRepositoryProtocol:
    """Build the SQL-backed NCM repository for the request-scoped session."""
    return NcmRepository(session)


# PUBLIC_INTERFACE
async def get_ncm_service(
    repository: NcmRepositoryProtocol = Depends(get_ncm_repository),
) -> NcmService:
    """
    Build the NCM service around the request's repository.

    Tests override get_ncm_repository (or this provider) through
    app.dependency_overrides to swap in an in-memory store.
    """
    return NcmService(repository)
