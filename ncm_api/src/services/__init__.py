"""
Service layer: validation and orchestration in front of the repositories.
"""

from .ncm import NcmService  # noqa: F401
