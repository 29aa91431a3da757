"""
Statement handles and result cursors on top of DB-API 2.0 cursors.

A Statement owns one driver cursor for one named query: parameters are bound
onto it positionally, then it is executed as a query, as an update, or
accumulated into a batch. Queries return a ResultCursor that walks the rows
one position at a time and reads columns as declared types.
"""
import logging
import time
from collections import deque
from collections.abc import Sequence
from functools import wraps
from typing import Any

from qstorage.types import ColumnReader

logger = logging.getLogger(__name__)


def dumpsql(func):
    """Decorator for logging statement executions and timing them."""
    @wraps(func)
    def wrapper(self, *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL [{self.name}]:\n{self.sql}\nargs: {self.parameters}')
        try:
            return func(self, *args, **kwargs)
        except Exception:
            logger.error(f'Error with query [{self.name}]:\nSQL:\n{self.sql}\nargs: {self.parameters}')
            raise
        finally:
            elapsed = time.time() - start
            if self.on_call is not None:
                self.on_call(elapsed)
            logger.debug(f'Query time [{self.name}]: {elapsed:.4f}s')
    return wrapper


def dumpsql_many(func):
    """Decorator for logging batch executions and timing them."""
    @wraps(func)
    def wrapper(self, *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL [{self.name}]:\n{self.sql}\nparams: {len(self.batch)} rows')
        try:
            return func(self, *args, **kwargs)
        except Exception:
            logger.error(f'Error with batch [{self.name}]:\nSQL:\n{self.sql}')
            raise
        finally:
            elapsed = time.time() - start
            if self.on_call is not None:
                self.on_call(elapsed)
            logger.debug(f'Batch time [{self.name}]: {elapsed:.4f}s')
    return wrapper


class ResultCursor:
    """Positioned cursor over the rows of an executed query.

    `next()` advances to the following row and reports whether one exists;
    `get()` reads a column of the current row, 1-indexed, as a declared type.
    Rows are fetched from the driver `fetch_size` at a time.
    """

    def __init__(self, cursor: Any, fetch_size: int = 500) -> None:
        self.dbapi_cursor = cursor
        self.fetch_size = fetch_size
        self._buffer: deque = deque()
        self._current: Sequence | None = None
        self._exhausted = False

    def next(self) -> bool:
        """Move to the next row, returning False once the rows are exhausted."""
        if not self._buffer and not self._exhausted:
            chunk = self.dbapi_cursor.fetchmany(self.fetch_size)
            if chunk:
                self._buffer.extend(chunk)
            else:
                self._exhausted = True

        if not self._buffer:
            self._current = None
            return False

        self._current = self._buffer.popleft()
        return True

    def get(self, index: int, column_type: type = object) -> Any:
        """Read column `index` (1-based) of the current row as `column_type`."""
        if self._current is None:
            raise IndexError('Cursor is not positioned on a row')
        if not 1 <= index <= len(self._current):
            raise IndexError(f'Column index {index} out of range 1..{len(self._current)}')
        return ColumnReader.read(self._current[index - 1], column_type)


class Statement:
    """Driver-level handle for one named query.

    Wraps a single DB-API cursor created when the query is first used. Bound
    parameters stay set until the next binding, mirroring prepared statement
    semantics, so the same binding can be added to a batch after execution.
    """

    def __init__(self, name: str, sql: str, cursor: Any, *,
                 fetch_size: int = 500, prepare: bool | None = None,
                 on_call=None) -> None:
        """Initialize a statement handle

        Args:
            name: Query name the statement is cached under
            sql: SQL text, passed verbatim to the driver
            cursor: DB-API cursor owned by this statement
            fetch_size: Rows fetched per round trip while reading results
            prepare: Value of psycopg's ``prepare`` flag, or None for drivers without it
            on_call: Callback receiving the elapsed seconds of every execution
        """
        self.name = name
        self.sql = sql
        self.dbapi_cursor = cursor
        self.fetch_size = fetch_size
        self.prepare = prepare
        self.on_call = on_call
        self.batch: list[tuple] = []
        self.closed = False
        self._parameters: dict[int, Any] = {}
        try:
            cursor.arraysize = fetch_size
        except AttributeError:
            pass

    def __repr__(self) -> str:
        return f'Statement(name={self.name!r}, closed={self.closed})'

    @property
    def parameters(self) -> tuple:
        """Bound parameter values in placeholder order."""
        return tuple(self._parameters[i] for i in sorted(self._parameters))

    def set_parameter(self, index: int, value: Any) -> None:
        """Bind `value` to placeholder `index` (1-based)."""
        if index < 1:
            raise IndexError(f'Parameter index must be >= 1, got {index}')
        self._parameters[index] = value

    def clear_parameters(self) -> None:
        """Drop all bound parameter values."""
        self._parameters.clear()

    def _execute(self) -> None:
        if self.prepare is None:
            self.dbapi_cursor.execute(self.sql, self.parameters)
        else:
            self.dbapi_cursor.execute(self.sql, self.parameters, prepare=self.prepare)

    @dumpsql
    def execute_query(self) -> ResultCursor:
        """Execute the statement and return a cursor over its rows."""
        self._execute()
        return ResultCursor(self.dbapi_cursor, self.fetch_size)

    @dumpsql
    def execute_update(self) -> int:
        """Execute the statement and return the affected row count."""
        self._execute()
        return self.dbapi_cursor.rowcount

    def add_batch(self) -> None:
        """Add the current binding to the pending batch."""
        self.batch.append(self.parameters)
        logger.debug(f'Added binding to batch [{self.name}]: {len(self.batch)} pending')

    @dumpsql_many
    def execute_batch(self) -> int:
        """Execute every pending binding and return the total affected rows.

        The batch is emptied whether or not the driver call succeeds.
        """
        batch, self.batch = self.batch, []
        if not batch:
            return 0
        self.dbapi_cursor.executemany(self.sql, batch)
        return max(self.dbapi_cursor.rowcount, 0)

    def close(self) -> None:
        """Release the driver cursor. Closing twice is a no-op."""
        if self.closed:
            return
        self.batch.clear()
        self.dbapi_cursor.close()
        self.closed = True
