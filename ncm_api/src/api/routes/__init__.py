"""
API route modules.

- ncm: CRUD and lookup endpoints for the NCM reference table (/ncm)

Routers are included from src.api.main.
"""
