from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from src.core.errors import NcmError, ValidationError
from src.core.text import is_null_or_whitespace, normalize_code
from src.repositories.ncm import NcmRepositoryProtocol
from src.schemas.ncm import NcmRecord

logger = logging.getLogger(__name__)

_RECORD_LIST = TypeAdapter(List[NcmRecord])


def _with_context(exc: NcmError, context: str) -> NcmError:
    """Return an error of the same type whose message is prefixed with context."""
    return type(exc)(f"{context}: {exc.message}")


def _require(value: Optional[str], name: str) -> str:
    if is_null_or_whitespace(value):
        raise ValidationError(f"{name} cannot be null or empty")
    return value  # type: ignore[return-value]


def _normalized_code(code: Optional[str]) -> str:
    normalized = normalize_code(_require(code, "code"))
    if not normalized:
        raise ValidationError(f"code {code!r} has no letters or digits")
    return normalized


def _validated_record(record: Optional[NcmRecord], *, require_id: bool = False) -> NcmRecord:
    """Check required fields and return a copy with code_normalized recomputed."""
    if record is None:
        raise ValidationError("ncm cannot be null")
    if require_id:
        _require(record.id, "id")
    code = _require(record.code, "code")
    _require(record.description, "description")
    return record.model_copy(update={"code_normalized": normalize_code(code)})


class NcmService:
    """
    Domain service for NCM records.

    Validates and normalizes caller input before delegating to the repository.
    Repository failures are re-raised with the operation and key added; nothing
    is recovered locally.
    """

    def __init__(self, repository: NcmRepositoryProtocol) -> None:
        self.repo = repository

    # PUBLIC_INTERFACE
    async def create_ncm(self, record: Optional[NcmRecord]) -> NcmRecord:
        """
        Create a record with a server-generated id.

        Any id supplied by the caller is ignored by the repository.
        Raises:
            ValidationError: record missing, or blank code/description.
            PersistenceError: datastore failure.
        """
        candidate = _validated_record(record)
        try:
            created = await self.repo.create(candidate)
        except NcmError as exc:
            raise _with_context(exc, f"error creating ncm with code {candidate.code}") from exc
        logger.info("Created ncm %s (code=%s)", created.id, created.code)
        return created

    # PUBLIC_INTERFACE
    async def update_ncm(self, record: Optional[NcmRecord]) -> NcmRecord:
        """
        Replace every field of the record identified by record.id.

        Raises:
            ValidationError: record missing, or blank id/code/description.
            NotFoundError: no record with that id.
            PersistenceError: datastore failure.
        """
        candidate = _validated_record(record, require_id=True)
        try:
            updated = await self.repo.update(candidate)
        except NcmError as exc:
            raise _with_context(exc, f"error updating ncm with id {candidate.id}") from exc
        logger.info("Updated ncm %s", updated.id)
        return updated

    # PUBLIC_INTERFACE
    async def delete_ncm(self, ncm_id: Optional[str]) -> None:
        """Delete by id. Raises NotFoundError when nothing was deleted."""
        _require(ncm_id, "id")
        try:
            await self.repo.delete(ncm_id)  # type: ignore[arg-type]
        except NcmError as exc:
            raise _with_context(exc, f"error deleting ncm with id {ncm_id}") from exc
        logger.info("Deleted ncm %s", ncm_id)

    # PUBLIC_INTERFACE
    async def get_ncm_by_id(self, ncm_id: Optional[str]) -> NcmRecord:
        """Fetch one record by id."""
        _require(ncm_id, "id")
        try:
            return await self.repo.get_by_id(ncm_id)  # type: ignore[arg-type]
        except NcmError as exc:
            raise _with_context(exc, f"error fetching ncm with id {ncm_id}") from exc

    # PUBLIC_INTERFACE
    async def get_ncm_by_code(self, code: Optional[str]) -> NcmRecord:
        """
        Fetch one record by code.

        The code is normalized first, so "0101.21.00" and "01012100" find the
        same record.
        """
        normalized = _normalized_code(code)
        try:
            return await self.repo.get_by_code(normalized)
        except NcmError as exc:
            raise _with_context(exc, f"error fetching ncm with code {code}") from exc

    # PUBLIC_INTERFACE
    async def get_ncm_by_text(self, text: Optional[str]) -> NcmRecord:
        """Fetch the first record whose description contains text (case-insensitive)."""
        _require(text, "text")
        try:
            return await self.repo.get_by_text(text)  # type: ignore[arg-type]
        except NcmError as exc:
            raise _with_context(exc, f"error fetching ncm with text {text}") from exc

    # PUBLIC_INTERFACE
    async def list_ncms_by_codes(self, codes: Optional[Sequence[str]]) -> List[NcmRecord]:
        """
        List the records matching any of the given codes.

        Unlike the repository, an empty code list is rejected.
        """
        if not codes:
            raise ValidationError("codes cannot be empty")
        normalized = [_normalized_code(code) for code in codes]
        try:
            return await self.repo.list_by_codes(normalized)
        except NcmError as exc:
            raise _with_context(exc, f"error listing ncms with codes {list(codes)}") from exc

    # PUBLIC_INTERFACE
    async def list_ncms_by_text(self, text: Optional[str]) -> List[NcmRecord]:
        """List every record whose description contains text (case-insensitive)."""
        _require(text, "text")
        try:
            return await self.repo.list_by_text(text)  # type: ignore[arg-type]
        except NcmError as exc:
            raise _with_context(exc, f"error listing ncms with text {text}") from exc

    # PUBLIC_INTERFACE
    async def list_all_ncms(self) -> List[NcmRecord]:
        """List every record ordered by code."""
        try:
            return await self.repo.list_all()
        except NcmError as exc:
            raise _with_context(exc, "error listing ncms") from exc

    # PUBLIC_INTERFACE
    async def bulk_insert_ncms(self, records: Optional[Sequence[NcmRecord]]) -> List[NcmRecord]:
        """
        Insert many records in one statement.

        Each record is validated like create_ncm. Records sharing an id with an
        existing row (or an earlier record in the batch) are skipped and left
        out of the result.
        """
        if not records:
            raise ValidationError("ncms cannot be empty")
        candidates = [_validated_record(record) for record in records]
        try:
            inserted = await self.repo.bulk_insert(candidates)
        except NcmError as exc:
            raise _with_context(exc, f"error bulk inserting {len(candidates)} ncms") from exc
        logger.info("Bulk inserted %d of %d ncms", len(inserted), len(candidates))
        return inserted

    # PUBLIC_INTERFACE
    async def import_from_json(self, content: Optional[str]) -> List[NcmRecord]:
        """
        Parse a JSON array of records (wire field names) and bulk insert it.

        Raises:
            ValidationError: blank content, malformed JSON, or a non-array payload.
        """
        _require(content, "json")
        try:
            records = _RECORD_LIST.validate_json(content)  # type: ignore[arg-type]
        except PydanticValidationError as exc:
            raise ValidationError(f"error parsing ncm json: {exc.error_count()} error(s)") from exc
        return await self.bulk_insert_ncms(records)
