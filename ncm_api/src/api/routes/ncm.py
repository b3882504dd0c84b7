from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, Response, status

from src.core.deps import get_ncm_service
from src.core.errors import NcmError, NotFoundError, ValidationError
from src.schemas.ncm import NcmRecord
from src.services.ncm import NcmService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ncm", tags=["NCM"])


@contextmanager
def _service_errors() -> Iterator[None]:
    """Map service errors to HTTP responses: 400 validation, 404 not found, 500 otherwise."""
    try:
        yield
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message) from exc
    except NcmError as exc:
        logger.error("NCM operation failed: %s", exc.message)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.message) from exc


def _non_empty(items: List[NcmRecord], message: str) -> List[NcmRecord]:
    if not items:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=message)
    return items


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=List[NcmRecord],
    summary="List NCMs",
    description="List every NCM ordered by code. 404 when the table is empty.",
)
async def list_ncms(service: NcmService = Depends(get_ncm_service)) -> List[NcmRecord]:
    with _service_errors():
        ncms = await service.list_all_ncms()
    return _non_empty(ncms, "No NCMs found")


# PUBLIC_INTERFACE
@router.get(
    "/code/{code}",
    response_model=NcmRecord,
    summary="Get NCM by code",
    description="Punctuation is ignored: 0101.21.00 and 01012100 match the same NCM.",
)
async def get_ncm_by_code(
    code: str = Path(..., description="NCM code, with or without symbols"),
    service: NcmService = Depends(get_ncm_service),
) -> NcmRecord:
    with _service_errors():
        return await service.get_ncm_by_code(code)


# PUBLIC_INTERFACE
@router.get(
    "/text",
    response_model=NcmRecord,
    summary="Get first NCM by description",
    description="Return the first NCM whose description contains the text (case-insensitive).",
)
async def get_ncm_by_text(
    text: Optional[str] = Query(None, description="Substring of the description"),
    service: NcmService = Depends(get_ncm_service),
) -> NcmRecord:
    with _service_errors():
        return await service.get_ncm_by_text(text)


# PUBLIC_INTERFACE
@router.get(
    "/codes",
    response_model=List[NcmRecord],
    summary="List NCMs by codes",
    description="Codes may be repeated (?codes=a&codes=b) or comma-separated (?codes=a,b).",
)
async def list_ncms_by_codes(
    codes: Optional[List[str]] = Query(None, description="NCM codes"),
    service: NcmService = Depends(get_ncm_service),
) -> List[NcmRecord]:
    expanded = [part.strip() for raw in (codes or []) for part in raw.split(",")]
    with _service_errors():
        ncms = await service.list_ncms_by_codes(expanded)
    return _non_empty(ncms, "No NCMs found")


# PUBLIC_INTERFACE
@router.get(
    "/search",
    response_model=List[NcmRecord],
    summary="Search NCMs by description",
    description="List every NCM whose description contains the text (case-insensitive).",
)
async def search_ncms(
    text: Optional[str] = Query(None, description="Substring of the description"),
    service: NcmService = Depends(get_ncm_service),
) -> List[NcmRecord]:
    with _service_errors():
        ncms = await service.list_ncms_by_text(text)
    return _non_empty(ncms, "No NCMs found")


# PUBLIC_INTERFACE
@router.get(
    "/{ncm_id}",
    response_model=NcmRecord,
    summary="Get NCM",
    description="Get an NCM by id.",
)
async def get_ncm(
    ncm_id: str = Path(..., description="NCM id"),
    service: NcmService = Depends(get_ncm_service),
) -> NcmRecord:
    with _service_errors():
        return await service.get_ncm_by_id(ncm_id)


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=NcmRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Create NCM",
    description="Create an NCM. codigo and descricao are required; id_ncm is generated.",
)
async def create_ncm(
    payload: NcmRecord = Body(...),
    service: NcmService = Depends(get_ncm_service),
) -> NcmRecord:
    with _service_errors():
        return await service.create_ncm(payload)


# PUBLIC_INTERFACE
@router.post(
    "/bulk",
    response_model=List[NcmRecord],
    summary="Bulk create NCMs",
    description="Insert many NCMs. Entries whose id_ncm already exists are skipped and left out of the response.",
)
async def bulk_create_ncms(
    payload: List[NcmRecord] = Body(...),
    service: NcmService = Depends(get_ncm_service),
) -> List[NcmRecord]:
    with _service_errors():
        return await service.bulk_insert_ncms(payload)


# PUBLIC_INTERFACE
@router.put(
    "/",
    response_model=NcmRecord,
    summary="Update NCM",
    description="Replace every field of the NCM identified by id_ncm.",
)
async def update_ncm(
    payload: NcmRecord = Body(...),
    service: NcmService = Depends(get_ncm_service),
) -> NcmRecord:
    with _service_errors():
        return await service.update_ncm(payload)


# PUBLIC_INTERFACE
@router.delete(
    "/{ncm_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete NCM",
    description="Delete an NCM by id.",
)
async def delete_ncm(
    ncm_id: str = Path(..., description="NCM id"),
    service: NcmService = Depends(get_ncm_service),
) -> Response:
    with _service_errors():
        await service.delete_ncm(ncm_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
