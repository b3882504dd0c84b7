"""
Repository layer for data access.

Repositories encapsulate SQLAlchemy statements for each access pattern and
translate driver failures into src.core.errors types.
"""

from .ncm import NcmRepository, NcmRepositoryProtocol  # noqa: F401
