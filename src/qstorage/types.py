"""
Row type and type-directed column extraction.

This module provides:
- Row: Immutable ordered result row
- ColumnReader: Registry of readers that return a column value as a declared Python type
"""
import datetime
import logging
from collections.abc import Callable
from decimal import Decimal, InvalidOperation
from typing import Any

import dateutil.parser
from qstorage.exceptions import TypeConversionError

logger = logging.getLogger(__name__)

Reader = Callable[[Any], Any]


class Row(tuple):
    """One result row, values ordered as the caller declared the column types.

    >>> row = Row(('dylan', 42))
    >>> row.columns
    ('dylan', 42)
    >>> row[1]
    42
    """

    __slots__ = ()

    @property
    def columns(self) -> tuple:
        """Column values in declared order."""
        return tuple(self)

    def __repr__(self) -> str:
        return f'Row{tuple.__repr__(self)}'


def _read_str(value: Any) -> str:
    if isinstance(value, bytes | bytearray | memoryview):
        return bytes(value).decode()
    return str(value)


def _read_int(value: Any) -> int:
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f'{value!r} has a fractional part')
    if isinstance(value, Decimal) and value != value.to_integral_value():
        raise ValueError(f'{value!r} has a fractional part')
    return int(value)


def _read_float(value: Any) -> float:
    return float(value)


def _read_bool(value: Any) -> bool:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {'1', 't', 'true', 'y', 'yes'}:
            return True
        if lowered in {'0', 'f', 'false', 'n', 'no'}:
            return False
        raise ValueError(f'{value!r} is not a boolean')
    return bool(value)


def _read_decimal(value: Any) -> Decimal:
    # str() avoids binary float artifacts (0.1 -> 0.1000000000000000055...)
    if isinstance(value, float):
        return Decimal(str(value))
    try:
        return Decimal(value)
    except InvalidOperation as e:
        raise ValueError(f'{value!r} is not a decimal') from e


def _read_date(value: Any) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, str):
        return dateutil.parser.isoparse(value).date()
    raise ValueError(f'{value!r} is not a date')


def _read_datetime(value: Any) -> datetime.datetime:
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time())
    if isinstance(value, str):
        return dateutil.parser.isoparse(value)
    if isinstance(value, int | float):
        # naive UTC, like the strings isoparse reads without an offset
        return datetime.datetime.fromtimestamp(value, tz=datetime.UTC).replace(tzinfo=None)
    raise ValueError(f'{value!r} is not a datetime')


def _read_time(value: Any) -> datetime.time:
    if isinstance(value, datetime.datetime):
        return value.time()
    if isinstance(value, str):
        return datetime.time.fromisoformat(value)
    raise ValueError(f'{value!r} is not a time')


def _read_bytes(value: Any) -> bytes:
    if isinstance(value, str):
        return value.encode()
    return bytes(value)


class ColumnReader:
    """Reads column values as a declared Python type.

    Readers are looked up by the exact type object, so ``bool`` is not
    handled by the ``int`` reader. A value that already is an instance of the
    declared type is returned unchanged and ``None`` (SQL NULL) is returned
    as ``None`` for every type. ``object`` returns values as the driver
    produced them.

    >>> ColumnReader.read('42', int)
    42
    >>> ColumnReader.read('2024-03-01', datetime.date)
    datetime.date(2024, 3, 1)
    >>> ColumnReader.read(None, Decimal) is None
    True
    """

    _readers: dict[type, Reader] = {
        str: _read_str,
        int: _read_int,
        float: _read_float,
        bool: _read_bool,
        Decimal: _read_decimal,
        datetime.date: _read_date,
        datetime.datetime: _read_datetime,
        datetime.time: _read_time,
        bytes: _read_bytes,
        }

    @classmethod
    def register(cls, column_type: type, reader: Reader) -> None:
        """Register a reader for `column_type`, replacing any existing one."""
        cls._readers[column_type] = reader
        logger.debug(f'Registered column reader for {column_type.__name__}')

    @classmethod
    def unregister(cls, column_type: type) -> None:
        """Remove the reader for `column_type` if one is registered."""
        cls._readers.pop(column_type, None)

    @classmethod
    def is_supported(cls, column_type: type) -> bool:
        """Whether a dedicated reader exists for `column_type`."""
        return column_type is object or column_type in cls._readers

    @classmethod
    def read(cls, value: Any, column_type: type) -> Any:
        """Return `value` as `column_type`.

        Raises
            TypeConversionError: If the value cannot be read as the type
        """
        if value is None or column_type is object:
            return value

        # bool is an int subclass, keep it out of the int fast path
        if type(value) is column_type or (
                isinstance(value, column_type) and column_type not in {int, datetime.date}):
            return value

        reader = cls._readers.get(column_type)
        if reader is None:
            raise TypeConversionError(
                f'Cannot read {type(value).__name__} value as {column_type.__name__}: '
                f'no reader registered')
        try:
            return reader(value)
        except (TypeError, ValueError, OverflowError) as e:
            raise TypeConversionError(
                f'Cannot read {type(value).__name__} value {value!r} as {column_type.__name__}') from e


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
