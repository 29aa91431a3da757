"""
Named-query storage on top of a DB-API connection.

Register SQL statements under names, then run them by name:
- storage.read(name, column_types, params) for typed rows
- storage.write(name, params, batch_size) for inserts, updates and deletes

    >>> import sqlite3
    >>> import qstorage
    >>> cn = sqlite3.connect(':memory:')
    >>> _ = cn.execute('create table users (userid text, email text)')
    >>> queries = {
    ...     'users.insert': 'insert into users values (?, ?)',
    ...     'users.select.all': 'select userid, email from users',
    ... }
    >>> with qstorage.create(cn, queries) as storage:
    ...     storage.write('users.insert', ['dylan', 'dylan@example.com'])
    ...     storage.read('users.select.all', [str, str])
    1
    [Row('dylan', 'dylan@example.com')]
"""
__version__ = '0.1.0'

from qstorage.batch import BatchAccumulator, BatchState
from qstorage.binder import bind_parameters
from qstorage.cache import StatementCache
from qstorage.exceptions import DriverFailure, InvalidInput, QueryNotFound
from qstorage.exceptions import StatementReleaseError, StorageError
from qstorage.exceptions import TypeConversionError
from qstorage.mapper import map_rows
from qstorage.options import StorageOptions, load_options
from qstorage.registry import QueryDefinition, QueryRegistry, load_queries
from qstorage.statement import ResultCursor, Statement
from qstorage.storage import QueryableStorage, create
from qstorage.types import ColumnReader, Row

__all__ = [
    'BatchAccumulator',
    'BatchState',
    'ColumnReader',
    'DriverFailure',
    'InvalidInput',
    'QueryDefinition',
    'QueryNotFound',
    'QueryRegistry',
    'QueryableStorage',
    'ResultCursor',
    'Row',
    'Statement',
    'StatementCache',
    'StatementReleaseError',
    'StorageError',
    'StorageOptions',
    'TypeConversionError',
    'bind_parameters',
    'create',
    'load_options',
    'load_queries',
    'map_rows',
]


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
