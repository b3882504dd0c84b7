from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Protocol, Sequence
from uuid import uuid4

from sqlalchemy import delete, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError

from src.core.errors import NotFoundError, PersistenceError
from src.db.models.ncm import Ncm
from src.schemas.ncm import NcmRecord
from .base import BaseRepository

logger = logging.getLogger(__name__)

# Dialect-specific INSERT constructs supporting ON CONFLICT DO NOTHING.
_CONFLICT_AWARE_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}

# asyncpg caps a statement at 32767 bind parameters; nine columns per row.
BULK_INSERT_CHUNK_SIZE = 3000


def _to_row(record: NcmRecord, ncm_id: str) -> dict:
    return {
        "id": ncm_id,
        "code": record.code,
        "code_no_symbols": record.code_normalized,
        "description": record.description,
        "initial_date": record.initial_date,
        "final_date": record.final_date,
        "type_year_ini": record.type_year_ini,
        "number_ato_ini": record.number_ato_ini,
        "year_ato_ini": record.year_ato_ini,
    }


def _to_records(rows) -> List[NcmRecord]:
    return [NcmRecord.model_validate(row) for row in rows]


class NcmRepositoryProtocol(Protocol):
    """Storage operations the NCM service depends on."""

    async def create(self, record: NcmRecord) -> NcmRecord: ...

    async def update(self, record: NcmRecord) -> NcmRecord: ...

    async def delete(self, ncm_id: str) -> None: ...

    async def get_by_id(self, ncm_id: str) -> NcmRecord: ...

    async def get_by_code(self, code: str) -> NcmRecord: ...

    async def get_by_text(self, text: str) -> NcmRecord: ...

    async def list_by_codes(self, codes: Sequence[str]) -> List[NcmRecord]: ...

    async def list_by_text(self, text: str) -> List[NcmRecord]: ...

    async def list_all(self) -> List[NcmRecord]: ...

    async def bulk_insert(self, records: Sequence[NcmRecord]) -> List[NcmRecord]: ...


class NcmRepository(BaseRepository):
    """
    SQL repository for the ncm table.

    Every method is a single statement (plus commit for writes). Lookups by
    code match the code_no_symbols column, so callers pass normalized codes.
    Driver failures surface as PersistenceError; misses as NotFoundError.
    """

    @asynccontextmanager
    async def _translate_errors(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            await self.rollback()
            logger.warning("ncm %s failed: %s", operation, exc)
            raise PersistenceError(f"error on ncm {operation}: {exc}") from exc

    async def create(self, record: NcmRecord) -> NcmRecord:
        row = Ncm(**_to_row(record, str(uuid4())))
        async with self._translate_errors("create"):
            self.session.add(row)
            await self.commit()
        return NcmRecord.model_validate(row)

    async def update(self, record: NcmRecord) -> NcmRecord:
        values = _to_row(record, record.id)
        del values["id"]
        stmt = update(Ncm).where(Ncm.id == record.id).values(**values)
        async with self._translate_errors("update"):
            result = await self.execute(stmt)
            if result.rowcount == 0:
                await self.rollback()
                raise NotFoundError(f"ncm with id {record.id} not found")
            await self.commit()
        return record

    async def delete(self, ncm_id: str) -> None:
        stmt = delete(Ncm).where(Ncm.id == ncm_id)
        async with self._translate_errors("delete"):
            result = await self.execute(stmt)
            if result.rowcount == 0:
                await self.rollback()
                raise NotFoundError(f"ncm with id {ncm_id} not found")
            await self.commit()

    async def get_by_id(self, ncm_id: str) -> NcmRecord:
        async with self._translate_errors("get_by_id"):
            row = await self.scalar_one_or_none(select(Ncm).where(Ncm.id == ncm_id))
        if row is None:
            raise NotFoundError(f"ncm with id {ncm_id} not found")
        return NcmRecord.model_validate(row)

    async def get_by_code(self, code: str) -> NcmRecord:
        stmt = select(Ncm).where(Ncm.code_no_symbols == code).order_by(Ncm.code).limit(1)
        async with self._translate_errors("get_by_code"):
            row = await self.scalar_one_or_none(stmt)
        if row is None:
            raise NotFoundError(f"ncm with code {code} not found")
        return NcmRecord.model_validate(row)

    async def get_by_text(self, text: str) -> NcmRecord:
        stmt = select(Ncm).where(Ncm.description.ilike(f"%{text}%")).order_by(Ncm.code).limit(1)
        async with self._translate_errors("get_by_text"):
            row = await self.scalar_one_or_none(stmt)
        if row is None:
            raise NotFoundError(f"ncm with text '{text}' not found")
        return NcmRecord.model_validate(row)

    async def list_by_codes(self, codes: Sequence[str]) -> List[NcmRecord]:
        if not codes:
            return []
        stmt = select(Ncm).where(Ncm.code_no_symbols.in_(list(codes))).order_by(Ncm.code)
        async with self._translate_errors("list_by_codes"):
            rows = await self.scalars(stmt)
            return _to_records(rows)

    async def list_by_text(self, text: str) -> List[NcmRecord]:
        stmt = select(Ncm).where(Ncm.description.ilike(f"%{text}%")).order_by(Ncm.code)
        async with self._translate_errors("list_by_text"):
            rows = await self.scalars(stmt)
            return _to_records(rows)

    async def list_all(self) -> List[NcmRecord]:
        async with self._translate_errors("list_all"):
            rows = await self.scalars(select(Ncm).order_by(Ncm.code.asc()))
            return _to_records(rows)

    async def bulk_insert(self, records: Sequence[NcmRecord]) -> List[NcmRecord]:
        """
        Insert all records with multi-row statements, committed together.

        Records keep a caller-supplied id, otherwise get a fresh one. Rows
        whose id already exists (in the table or earlier in the batch) are
        skipped; duplicate codes are inserted as-is. Only the records that
        were actually stored are returned, in submission order.
        """
        if not records:
            return []
        insert_fn = _CONFLICT_AWARE_INSERTS.get(self.dialect_name)
        if insert_fn is None:
            raise PersistenceError(f"bulk insert is not supported on dialect {self.dialect_name}")

        rows = [_to_row(record, record.id or str(uuid4())) for record in records]
        stored_ids = set()
        async with self._translate_errors("bulk_insert"):
            for start in range(0, len(rows), BULK_INSERT_CHUNK_SIZE):
                chunk = rows[start:start + BULK_INSERT_CHUNK_SIZE]
                stmt = (
                    insert_fn(Ncm)
                    .values(chunk)
                    .on_conflict_do_nothing(index_elements=["id"])
                    .returning(Ncm.id)
                )
                result = await self.execute(stmt)
                stored_ids.update(result.scalars().all())
            await self.commit()
        logger.info("Bulk inserted %d of %d ncm rows", len(stored_ids), len(rows))

        inserted = []
        for record, row in zip(records, rows):
            # The first record carrying an id is the one ON CONFLICT kept.
            if row["id"] in stored_ids:
                stored_ids.discard(row["id"])
                inserted.append(record.model_copy(update={"id": row["id"]}))
        return inserted
