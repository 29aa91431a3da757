"""
Named SQL queries.

This module provides:
- QueryDefinition: A name bound to SQL text
- QueryRegistry: The validated, read-only name to SQL mapping a storage resolves against
- load_queries: Read a mapping from a properties file
"""
import logging
import pathlib
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from qstorage.exceptions import InvalidInput, QueryNotFound

__all__ = [
    'QueryDefinition',
    'QueryRegistry',
    'load_queries',
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueryDefinition:
    name: str
    sql: str


class QueryRegistry:
    """Immutable mapping from query name to SQL text.

    The SQL is not inspected; it reaches the driver verbatim. Lookups are
    exact and case-sensitive.

    >>> registry = QueryRegistry({'users.select.all': 'select * from users'})
    >>> registry.resolve('users.select.all')
    'select * from users'
    >>> registry.resolve('Users.select.all')
    Traceback (most recent call last):
    ...
    qstorage.exceptions.QueryNotFound: Query Users.select.all not found
    """

    def __init__(self, queries: Mapping[str, str] | None) -> None:
        if not queries:
            raise InvalidInput('Invalid queries')
        self._queries = MappingProxyType(dict(queries))
        logger.debug(f'Registered {len(self._queries)} queries')

    def __contains__(self, name: object) -> bool:
        return name in self._queries

    def __iter__(self) -> Iterator[str]:
        return iter(self._queries)

    def __len__(self) -> int:
        return len(self._queries)

    @property
    def queries(self) -> Mapping[str, str]:
        """Read-only view of the registered queries."""
        return self._queries

    def resolve(self, name: str) -> str:
        """Return the SQL registered under `name`."""
        try:
            return self._queries[name]
        except KeyError:
            raise QueryNotFound(name) from None

    def definitions(self) -> list[QueryDefinition]:
        """All registered queries as definitions, in registration order."""
        return [QueryDefinition(name, sql) for name, sql in self._queries.items()]


def _logical_lines(text: str) -> Iterator[str]:
    """Join backslash-continued lines and skip blanks and comments."""
    buffer = ''
    for raw in text.splitlines():
        line = raw.lstrip() if buffer else raw.strip()
        if not buffer and (not line or line[0] in '#!'):
            continue
        line = line.rstrip()
        trailing = len(line) - len(line.rstrip('\\'))
        if trailing % 2:
            buffer += line[:-1]
            continue
        yield buffer + line
        buffer = ''
    if buffer:
        yield buffer


def _split_entry(line: str) -> tuple[str, str]:
    """Split a properties entry at the first unescaped '=', ':' or whitespace."""
    index = 0
    while index < len(line):
        char = line[index]
        if char == '\\':
            index += 2
            continue
        if char in '=:' or char.isspace():
            break
        index += 1
    key = line[:index].replace('\\', '')
    value = line[index:].lstrip()
    if value[:1] in {'=', ':'}:
        value = value[1:].lstrip()
    return key, value


def load_queries(path: str | pathlib.Path, prefix: str | None = None) -> dict[str, str]:
    """Read queries from a Java-style properties file.

    Each entry is ``name=sql`` or ``name: sql``; lines starting with ``#`` or
    ``!`` are comments and a trailing backslash continues the SQL on the next
    line. With `prefix`, only names starting with it are returned.

    Args:
        path: Properties file to read
        prefix: Optional query name prefix filter, e.g. ``'users.'``

    Returns
        dict mapping query names to SQL text, in file order
    """
    path = pathlib.Path(path)
    text = path.read_text(encoding='utf-8')

    queries = {}
    for line in _logical_lines(text):
        name, sql = _split_entry(line)
        if prefix and not name.startswith(prefix):
            continue
        queries[name] = sql

    logger.debug(f'Loaded {len(queries)} queries from {path}')
    return queries


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
