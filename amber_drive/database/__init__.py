"""
Database module for Amber Drive admin.

Provides async database connections, session management,
and the declarative base model.
"""

from amber_drive.database.base import (
    Base,
    engine,
    async_session_factory,
    get_db_session,
    get_session,
    init_db,
    close_db,
)

__all__ = [
    "Base",
    "engine",
    "async_session_factory",
    "get_db_session",
    "get_session",
    "init_db",
    "close_db",
]
