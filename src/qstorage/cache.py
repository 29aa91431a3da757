"""
Per-query statement cache.

Statements are created on first use of a query name and kept until the
owning storage closes. Nothing is evicted: the cache holds exactly one
statement per distinct name used.
"""
import logging
from collections.abc import Callable
from typing import Any

from qstorage.exceptions import StatementReleaseError
from qstorage.statement import Statement

logger = logging.getLogger(__name__)


class StatementCache:
    """Lazily prepared statements keyed by query name.

    Not thread-safe: statements are created and mutated without locking.
    """

    def __init__(self, connection: Any,
                 statement_factory: Callable[..., Statement] = Statement,
                 **statement_kwargs: Any) -> None:
        """Initialize the cache

        Args:
            connection: DB-API connection statements are prepared on
            statement_factory: Callable building a statement from name, sql and cursor
            **statement_kwargs: Extra keyword arguments for every statement
        """
        self.connection = connection
        self.statement_factory = statement_factory
        self.statement_kwargs = statement_kwargs
        self._statements: dict[str, Statement] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._statements

    def __len__(self) -> int:
        return len(self._statements)

    def names(self) -> list[str]:
        """Names of the queries prepared so far, in first-use order."""
        return list(self._statements)

    def get(self, name: str, sql: str) -> Statement:
        """Return the statement for `name`, preparing it from `sql` on first use.

        Driver errors while preparing propagate and nothing is cached.
        """
        statement = self._statements.get(name)
        if statement is not None:
            return statement

        cursor = self.connection.cursor()
        statement = self.statement_factory(name, sql, cursor, **self.statement_kwargs)
        self._statements[name] = statement
        logger.debug(f'Prepared statement [{name}]')
        return statement

    def close_all(self) -> None:
        """Release every cached statement.

        Each release is attempted even if an earlier one failed. The cache is
        emptied either way; failures are raised together afterwards.

        Raises
            StatementReleaseError: If one or more statements failed to release
        """
        errors = []
        statements, self._statements = self._statements, {}
        for name, statement in statements.items():
            try:
                statement.close()
            except Exception as e:
                logger.warning(f'Error releasing statement [{name}]: {e}')
                errors.append((name, e))

        logger.debug(f'Released {len(statements) - len(errors)}/{len(statements)} statements')
        if errors:
            raise StatementReleaseError(errors) from errors[0][1]
