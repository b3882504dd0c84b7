from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class NcmRecord(BaseModel):
    """
    NCM record as exchanged over HTTP and between service and repository.

    JSON uses the Portuguese wire names (id_ncm, codigo, descricao, ...);
    the Python attribute names are accepted on input as well. code_normalized
    is derived from code by the service and never serialized.
    """
    id: Optional[str] = Field(None, alias="id_ncm", description="NCM ID (generated on create)")
    code: Optional[str] = Field(None, alias="codigo", description="Classification code, e.g. 0101.21.00")
    code_normalized: Optional[str] = Field(None, exclude=True, validation_alias="code_no_symbols")
    description: Optional[str] = Field(None, alias="descricao", description="Free-text label")
    initial_date: Optional[str] = Field(None, alias="data_inicio", description="Validity start")
    final_date: Optional[str] = Field(None, alias="data_fim", description="Validity end")
    type_year_ini: Optional[str] = Field(None, alias="tipo_ato_ini")
    number_ato_ini: Optional[str] = Field(None, alias="numero_ato_ini")
    year_ato_ini: Optional[str] = Field(None, alias="ano_ato_ini")

    class Config:
        from_attributes = True
        populate_by_name = True
