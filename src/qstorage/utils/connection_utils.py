"""
Connection helpers for the DB-API connections the storage runs on.

This module provides:
1. Unwrapping of SQLAlchemy connections to the underlying DBAPI connection
2. Driver-independent detection of closed connections
3. Dialect detection used to enable driver-specific statement options
"""
import logging
import sqlite3
from typing import Any

import sqlalchemy as sa

__all__ = [
    'get_dbapi_connection',
    'is_closed',
    'get_dialect_name',
]

logger = logging.getLogger(__name__)


def get_dbapi_connection(cn: Any) -> Any:
    """Return the DBAPI connection behind `cn`.

    SQLAlchemy connections are unwrapped to their pooled DBAPI connection;
    anything else is returned unchanged.
    """
    if isinstance(cn, sa.engine.Connection):
        return cn.connection
    return cn


def is_closed(cn: Any) -> bool:
    """Check whether a connection is closed.

    Args:
        cn: SQLAlchemy connection, psycopg connection, sqlite3 connection
            or any object exposing a boolean ``closed`` attribute

    Returns
        True if the connection can no longer be used

    sqlite3 connections have no ``closed`` flag, so they are probed with a
    cheap attribute read that raises once the connection is closed.
    """
    closed = getattr(cn, 'closed', None)
    if isinstance(closed, int):
        return bool(closed)

    if isinstance(cn, sqlite3.Connection):
        try:
            cn.total_changes
        except sqlite3.ProgrammingError:
            return True
    return False


def get_dialect_name(cn: Any) -> str:
    """Get dialect name for a database connection.

    Returns
        str: Dialect name ('postgresql', 'sqlite' or 'unknown')
    """
    if isinstance(cn, sa.engine.Connection):
        return str(cn.dialect.name).lower()

    if hasattr(cn, 'driver_connection'):
        cn = cn.driver_connection

    type_name = f'{type(cn).__module__}.{type(cn).__name__}'
    if 'psycopg' in type_name:
        return 'postgresql'
    if 'sqlite3' in type_name:
        return 'sqlite'

    logger.debug(f'Cannot determine dialect for {type(cn)}')
    return 'unknown'
