"""Database connection and session management."""

from calendar_sync.database.connection import (
    check_connection,
    close_engine,
    create_engine,
    create_tables,
    get_engine,
)
from calendar_sync.database.models import Base, NylasAccount, NylasEvent
from calendar_sync.database.session import (
    close_db,
    get_session_factory,
    init_db,
    session_scope,
)

__all__ = [
    # Models
    "Base",
    "NylasAccount",
    "NylasEvent",
    # Connection
    "get_engine",
    "create_engine",
    "close_engine",
    "check_connection",
    "create_tables",
    # Session
    "get_session_factory",
    "session_scope",
    "init_db",
    "close_db",
]
