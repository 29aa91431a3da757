"""
Positional parameter binding.
"""
from collections.abc import Sequence
from typing import Any

from qstorage.statement import Statement


def bind_parameters(statement: Statement, params: Sequence[Any] | None) -> Statement:
    """Bind `params` onto the statement placeholders, 1-indexed in list order.

    Values are handed to the driver as-is. An empty or missing parameter list
    binds nothing, for queries without placeholders. A count mismatch is
    reported by the driver when the statement executes.
    """
    statement.clear_parameters()
    for index, value in enumerate(params or (), start=1):
        statement.set_parameter(index, value)
    return statement
