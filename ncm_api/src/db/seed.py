"""
Load NCM records from a JSON file into the database.

The file holds a JSON array using the API field names (codigo, descricao,
data_inicio, ...). Records carrying an id_ncm that already exists are skipped,
so re-running an import is safe.

Usage:
  python -m src.db.run_migrations upgrade head
  python -m src.db.seed path/to/ncm.json
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import List, Optional

from src.core.logging import configure_logging
from src.db.config import Settings, get_settings
from src.db.session import build_engine, build_session_maker
from src.repositories.ncm import NcmRepository
from src.services.ncm import NcmService

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
async def import_file(path: Path, settings: Optional[Settings] = None) -> int:
    """
    Import the JSON array at path and return the number of records inserted.

    Raises:
        ValidationError: empty file, malformed JSON or invalid records.
        PersistenceError: datastore failure.
    """
    content = path.read_text(encoding="utf-8")
    engine = build_engine(settings or get_settings())
    try:
        async with build_session_maker(engine)() as session:
            service = NcmService(NcmRepository(session))
            inserted = await service.import_from_json(content)
    finally:
        await engine.dispose()
    logger.info("Imported %d ncm records from %s", len(inserted), path)
    return len(inserted)


def main(argv: List[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Import NCM records from a JSON file.")
    parser.add_argument("path", type=Path, help="JSON array of NCM records")
    args = parser.parse_args(argv)

    configure_logging()
    asyncio.run(import_file(args.path))


if __name__ == "__main__":
    main()
