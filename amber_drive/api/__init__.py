"""API module for Amber Drive admin."""

from amber_drive.api.dependencies import (
    get_db,
    get_auth_context,
    DatabaseDep,
    AuthDep,
)

__all__ = [
    "get_db",
    "get_auth_context",
    "DatabaseDep",
    "AuthDep",
]
