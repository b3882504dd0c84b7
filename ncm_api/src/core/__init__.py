"""
Core application utilities.

This package provides:
- Application-level settings (separate from DB settings)
- Logging configuration with request correlation ids
- Domain errors and text helpers (code normalization, blank checks)
- FastAPI dependency providers for sessions, repositories and services
"""
