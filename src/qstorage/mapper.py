"""
Typed result extraction.
"""
import logging
from collections.abc import Iterable

from qstorage.statement import ResultCursor
from qstorage.types import Row

logger = logging.getLogger(__name__)


def map_rows(cursor: ResultCursor, column_types: Iterable[type]) -> list[Row]:
    """Drain `cursor` into rows typed by `column_types`.

    One value is read per declared type, column ``i`` as ``column_types[i-1]``.
    Rows keep the cursor order. Returns an empty list when there are no rows.
    """
    column_types = tuple(column_types)
    rows = []
    while cursor.next():
        rows.append(Row(cursor.get(index, column_type)
                        for index, column_type in enumerate(column_types, start=1)))
    logger.debug(f'Mapped {len(rows)} rows of {len(column_types)} columns')
    return rows
