"""
Public Pydantic schemas used by FastAPI routes, services, and tests.
"""

from .common import ErrorResponse, MessageResponse  # noqa: F401
from .ncm import NcmRecord  # noqa: F401
