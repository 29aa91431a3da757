"""
Named-query storage facade.

Composes the query registry, statement cache, parameter binding, result
mapping and batch accumulation behind `read` and `write`:

    with create(cn, {'users.select.all': 'select userid, email from users'}) as storage:
        rows = storage.read('users.select.all', [str, str])

The storage is meant for one thread at a time. Statement handles and batch
counters are mutated without locking, so concurrent callers need one storage
per thread or their own locking.
"""
import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Self

from qstorage.batch import BatchAccumulator
from qstorage.binder import bind_parameters
from qstorage.cache import StatementCache
from qstorage.exceptions import InvalidInput
from qstorage.mapper import map_rows
from qstorage.options import StorageOptions, load_options
from qstorage.registry import QueryRegistry
from qstorage.types import Row
from qstorage.utils.connection_utils import get_dbapi_connection
from qstorage.utils.connection_utils import get_dialect_name, is_closed

logger = logging.getLogger(__name__)


class QueryableStorage:
    """Runs registered queries by name on a caller-supplied connection.

    The storage never opens, commits or closes the connection; closing the
    storage releases only the statements it prepared.
    """

    def __init__(self, connection: Any, registry: QueryRegistry,
                 options: StorageOptions | None = None) -> None:
        """Initialize the storage. Prefer `create`, which validates its input.

        Args:
            connection: Open DB-API or SQLAlchemy connection
            registry: Queries this storage can run
            options: Storage options, defaults if omitted
        """
        self.options = options or StorageOptions()
        self.connection = connection
        self.registry = registry
        self.dialect = get_dialect_name(connection)
        self.calls = 0
        self.time = 0.0
        self.closed = False

        prepare = self.options.prepare if self.dialect == 'postgresql' else None
        self.statements = StatementCache(
            get_dbapi_connection(connection),
            fetch_size=self.options.fetch_size,
            prepare=prepare,
            on_call=self.addcall,
            )
        self.batches = BatchAccumulator()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None,
                 exc_tb: Any | None) -> None:
        """Close the storage, releasing every statement.

        Errors while closing are raised unless an exception is already
        propagating, in which case they are logged so it is not masked.
        """
        try:
            self.close()
        except Exception as e:
            if exc_type is None:
                raise
            logger.error(f'Error closing storage while handling {exc_type.__name__}: {e}')

    def __repr__(self) -> str:
        return (f'QueryableStorage(dialect={self.dialect!r}, queries={len(self.registry)}, '
                f'statements={len(self.statements)}, closed={self.closed})')

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics

        Args:
            elapsed: Time in seconds that the execution took
        """
        self.time += elapsed
        self.calls += 1

    def prepared_names(self) -> list[str]:
        """Names of queries that have a prepared statement."""
        return self.statements.names()

    def _check_open(self) -> None:
        if self.closed:
            raise InvalidInput('Storage is closed')

    def read(self, name: str, column_types: Iterable[type],
             params: Sequence[Any] | None = None) -> list[Row]:
        """Run a query and return its rows typed by `column_types`.

        Args:
            name: Registered query name
            column_types: Python type per column to extract, in column order
            params: Positional parameter values, if the query has placeholders

        Returns
            List of rows in cursor order, empty when nothing matched

        Raises
            InvalidInput: Missing name or column types
            QueryNotFound: Name not registered
        """
        self._check_open()
        if not name:
            raise InvalidInput('Invalid query name')
        column_types = tuple(column_types or ())
        if not column_types:
            raise InvalidInput('Invalid column types')

        sql = self.registry.resolve(name)
        statement = self.statements.get(name, sql)
        bind_parameters(statement, params)
        cursor = statement.execute_query()
        return map_rows(cursor, column_types)

    def write(self, name: str, params: Sequence[Any] | None, batch_size: int = 1) -> int:
        """Run an insert, update or delete.

        With `batch_size` greater than 1 the binding is queued and 0 is
        returned until `batch_size` bindings are pending; that call executes
        the batch and returns the affected rows of the whole batch.

        Args:
            name: Registered query name
            params: Positional parameter values
            batch_size: Bindings to accumulate before executing, 1 to execute now

        Returns
            Affected row count, 0 while a batch is still filling

        Raises
            InvalidInput: Missing name
            QueryNotFound: Name not registered
        """
        self._check_open()
        if not name:
            raise InvalidInput('Invalid query name')

        sql = self.registry.resolve(name)
        statement = self.statements.get(name, sql)
        bind_parameters(statement, params)
        return self.batches.submit(name, statement, batch_size)

    def close(self) -> None:
        """Release every prepared statement. Closing twice is a no-op.

        Partially filled batches are discarded unless the storage was created
        with ``flush_on_close``.

        Raises
            StatementReleaseError: If statements failed to release
        """
        if self.closed:
            return
        self.closed = True

        try:
            self._settle_batches()
        finally:
            self.statements.close_all()
            logger.debug(f'Storage closed: {len(self.registry)} queries, '
                         f'{self.calls} calls in {self.time:.2f}s')

    def _settle_batches(self) -> None:
        pending = self.batches.pending_names()
        if not pending:
            return
        if self.options.flush_on_close:
            count = self.batches.flush_all()
            logger.debug(f'Flushed pending batches on close: {count} rows')
            return
        summary = ', '.join(f'{name} ({count})' for name, count in pending.items())
        logger.warning(f'Discarding unflushed batched writes on close: {summary}')


def create(connection: Any, queries: Mapping[str, str] | None,
           options: StorageOptions | dict[str, Any] | None = None,
           **kw: Any) -> QueryableStorage:
    """Create a storage for `queries` on an open connection.

    No statement is prepared until its query is first used.

    Args:
        connection: Open DB-API connection (sqlite3, psycopg) or SQLAlchemy connection
        queries: Mapping of query name to SQL text
        options: StorageOptions, dict of options, or None for defaults
        **kw: Option overrides

    Returns
        QueryableStorage ready for use

    Raises
        InvalidInput: Missing or closed connection, missing or empty queries
    """
    if connection is None or is_closed(connection):
        raise InvalidInput('Invalid connection')
    registry = QueryRegistry(queries)
    storage = QueryableStorage(connection, registry, load_options(options, **kw))
    logger.debug(f'Created storage for {len(registry)} queries on {storage.dialect} connection')
    return storage
