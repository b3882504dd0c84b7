"""
Programmatic Alembic migration runner.

Runs migrations without an alembic.ini by pointing the script location at
this package's migrations directory.

Usage examples:
    python -m src.db.run_migrations upgrade head
    python -m src.db.run_migrations downgrade base
    python -m src.db.run_migrations current
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional

from alembic import command
from alembic.config import Config

from src.db.config import Settings, get_settings

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def build_config(settings: Optional[Settings] = None) -> Config:
    """Build an Alembic Config bound to the migrations folder next to this file."""
    settings = settings or get_settings()
    cfg = Config()
    cfg.set_main_option("script_location", str(Path(__file__).resolve().parent / "migrations"))
    # Used by offline mode; env.py builds its own async engine when online.
    cfg.set_main_option("sqlalchemy.url", settings.sync_database_url.replace("%", "%%"))
    return cfg


# PUBLIC_INTERFACE
def main(argv: List[str] | None = None) -> None:
    """Run an Alembic command (upgrade, downgrade, current, history, heads)."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        raise SystemExit("No Alembic arguments provided. Example: upgrade head")

    cfg = build_config()
    cmd, other = args[0], args[1:]
    logger.info("Running alembic %s %s", cmd, " ".join(other))

    if cmd == "upgrade":
        command.upgrade(cfg, *(other or ["head"]))
    elif cmd == "downgrade":
        command.downgrade(cfg, *(other or ["-1"]))
    elif cmd == "current":
        command.current(cfg, *other)
    elif cmd == "history":
        command.history(cfg, *other)
    elif cmd == "heads":
        command.heads(cfg, *other)
    else:
        raise SystemExit(f"Unsupported Alembic command: {cmd}")


if __name__ == "__main__":
    main()
