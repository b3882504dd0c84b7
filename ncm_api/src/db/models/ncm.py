from __future__ import annotations

from typing import Optional

from sqlalchemy import Text
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import Base


class Ncm(Base):
    """NCM (Nomenclatura Comum do Mercosul) classification code entry."""
    __tablename__ = "ncm"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    code: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    # alphanumeric-only projection of code, e.g. "0101.21.00" -> "01012100"
    code_no_symbols: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    initial_date: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    final_date: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    type_year_ini: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    number_ato_ini: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    year_ato_ini: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
