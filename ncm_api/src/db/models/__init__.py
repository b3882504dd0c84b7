"""
ORM models for the NCM reference table.

Importing this package ensures model classes are registered with the Base
metadata for Alembic and runtime usage.
"""

from .ncm import Ncm  # noqa: F401
