"""
Storage-specific exception classes.
"""
import sqlite3

import psycopg
import sqlalchemy as sa


class StorageError(Exception):
    """Base class for all storage module errors.
    """


class InvalidInput(StorageError, ValueError):
    """Invalid argument passed to the storage, raised before any driver call.
    """


class QueryNotFound(StorageError, LookupError):
    """No SQL registered under the requested query name.
    """

    def __init__(self, name: str) -> None:
        super().__init__(f'Query {name} not found')
        self.name = name


class TypeConversionError(StorageError):
    """Error reading a column value as the declared type.
    """


class StatementReleaseError(StorageError):
    """One or more statements failed to release on close.

    Every statement is released before this is raised; ``errors`` holds a
    ``(query name, exception)`` pair per failure.
    """

    def __init__(self, errors: list[tuple[str, BaseException]]) -> None:
        names = ', '.join(name for name, _ in errors)
        super().__init__(f'Failed to release {len(errors)} statement(s): {names}')
        self.errors = errors


DriverFailure = (
    sqlite3.Error,
    psycopg.Error,
    sa.exc.DBAPIError,
    )
