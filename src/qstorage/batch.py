"""
Batch accumulation and flush-on-threshold for write statements.

Per query name, a write either runs immediately (batch size 1 or less) or is
added to the statement's pending batch. Once the number of pending bindings
reaches the batch size the batch is executed and the counter starts over.

Callers must pass the same batch size for a name throughout a session;
switching sizes, or mixing batched and immediate writes on one name, is not
supported and not checked. The batch size seen on the first batched write is
the one kept.
"""
import logging
from dataclasses import dataclass

from qstorage.statement import Statement

logger = logging.getLogger(__name__)


@dataclass
class BatchState:
    pending_count: int = 0
    batch_size: int = 1

    @property
    def is_full(self) -> bool:
        return self.pending_count >= self.batch_size


class BatchAccumulator:
    """Pending write counters, one per query name used for batched writes.
    """

    def __init__(self) -> None:
        self._states: dict[str, BatchState] = {}
        self._statements: dict[str, Statement] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._states

    def state(self, name: str) -> BatchState | None:
        """Batch state for `name`, or None if it was never batched."""
        return self._states.get(name)

    def pending(self, name: str) -> int:
        """Number of bindings waiting in the batch for `name`."""
        state = self._states.get(name)
        return state.pending_count if state else 0

    def pending_names(self) -> dict[str, int]:
        """Query names with unflushed bindings and their pending counts."""
        return {name: state.pending_count
                for name, state in self._states.items() if state.pending_count}

    def submit(self, name: str, statement: Statement, batch_size: int = 1) -> int:
        """Execute or batch the statement's current binding.

        Returns
            The affected row count when something was executed, else 0
        """
        if batch_size <= 1:
            return statement.execute_update()

        state = self._states.get(name)
        if state is None:
            state = self._states[name] = BatchState(batch_size=batch_size)
            self._statements[name] = statement

        statement.add_batch()
        state.pending_count += 1

        if not state.is_full:
            return 0
        return self.flush(name)

    def flush(self, name: str) -> int:
        """Execute the pending batch for `name` and reset its counter."""
        state = self._states.get(name)
        if state is None or not state.pending_count:
            return 0

        statement = self._statements[name]
        pending, state.pending_count = state.pending_count, 0
        count = statement.execute_batch()
        logger.debug(f'Flushed batch [{name}]: {pending} bindings, {count} rows')
        return count

    def flush_all(self) -> int:
        """Flush every pending batch, returning the total affected rows."""
        return sum(self.flush(name) for name in list(self.pending_names()))
