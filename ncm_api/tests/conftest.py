"""Pytest configuration and fixtures."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Sequence
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from src.api.main import app
from src.core.deps import get_ncm_repository
from src.core.errors import NotFoundError
from src.db.base import Base
from src.db.session import build_session_maker
from src.repositories.ncm import NcmRepository
from src.schemas.ncm import NcmRecord
from src.services.ncm import NcmService


class InMemoryNcmRepository:
    """Dict-backed stand-in for NcmRepository with the same error contract."""

    def __init__(self) -> None:
        self.rows: Dict[str, NcmRecord] = {}

    def _sorted(self, rows) -> List[NcmRecord]:
        return sorted(rows, key=lambda r: r.code or "")

    def _matching_text(self, text: str) -> List[NcmRecord]:
        needle = text.lower()
        return self._sorted(r for r in self.rows.values() if needle in (r.description or "").lower())

    async def create(self, record: NcmRecord) -> NcmRecord:
        created = record.model_copy(update={"id": str(uuid4())})
        self.rows[created.id] = created
        return created

    async def update(self, record: NcmRecord) -> NcmRecord:
        if record.id not in self.rows:
            raise NotFoundError(f"ncm with id {record.id} not found")
        self.rows[record.id] = record
        return record

    async def delete(self, ncm_id: str) -> None:
        if self.rows.pop(ncm_id, None) is None:
            raise NotFoundError(f"ncm with id {ncm_id} not found")

    async def get_by_id(self, ncm_id: str) -> NcmRecord:
        if ncm_id not in self.rows:
            raise NotFoundError(f"ncm with id {ncm_id} not found")
        return self.rows[ncm_id]

    async def get_by_code(self, code: str) -> NcmRecord:
        for row in self._sorted(self.rows.values()):
            if row.code_normalized == code:
                return row
        raise NotFoundError(f"ncm with code {code} not found")

    async def get_by_text(self, text: str) -> NcmRecord:
        matches = self._matching_text(text)
        if not matches:
            raise NotFoundError(f"ncm with text '{text}' not found")
        return matches[0]

    async def list_by_codes(self, codes: Sequence[str]) -> List[NcmRecord]:
        wanted = set(codes)
        return self._sorted(r for r in self.rows.values() if r.code_normalized in wanted)

    async def list_by_text(self, text: str) -> List[NcmRecord]:
        return self._matching_text(text)

    async def list_all(self) -> List[NcmRecord]:
        return self._sorted(self.rows.values())

    async def bulk_insert(self, records: Sequence[NcmRecord]) -> List[NcmRecord]:
        inserted = []
        for record in records:
            stored = record.model_copy(update={"id": record.id or str(uuid4())})
            if stored.id not in self.rows:
                self.rows[stored.id] = stored
                inserted.append(stored)
        return inserted


@pytest.fixture
def memory_repo() -> InMemoryNcmRepository:
    return InMemoryNcmRepository()


@pytest.fixture
def service(memory_repo) -> NcmService:
    return NcmService(memory_repo)


@pytest.fixture
def client(memory_repo):
    """TestClient whose NCM endpoints run against the in-memory repository."""
    app.dependency_overrides[get_ncm_repository] = lambda: memory_repo
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@asynccontextmanager
async def sqlite_repository() -> AsyncIterator[NcmRepository]:
    """Yield an NcmRepository bound to a fresh in-memory SQLite database."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        async with build_session_maker(engine)() as session:
            yield NcmRepository(session)
    finally:
        await engine.dispose()


@pytest.fixture
def sqlite_repo():
    """Factory for SQLite-backed repositories; use as `async with sqlite_repo() as repo`."""
    return sqlite_repository
