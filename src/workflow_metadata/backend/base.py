"""Storage backend interface.

A backend is a wide-column store: values are addressed by
``(table, partition, column)``. Each single-cell operation is atomic; there are
no transactions spanning more than one cell.
"""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import Literal

from workflow_metadata.errors import OperationCancelled

ConsistencyLevel = Literal["ONE", "LOCAL_ONE", "QUORUM", "LOCAL_QUORUM", "ALL"]


class Deadline:
    """A caller-supplied deadline and cancellation token.

    Backends call :meth:`check` before every cell operation, so an expired or
    cancelled operation stops between two writes and never in the middle of one.
    """

    def __init__(self, timeout_seconds: float | None = None) -> None:
        self._expires_at = (
            time.monotonic() + timeout_seconds if timeout_seconds is not None else None
        )
        self._cancelled = threading.Event()

    @property
    def remaining(self) -> float | None:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def check(self) -> None:
        if self.cancelled:
            raise OperationCancelled("Operation cancelled by caller")
        if self.expired:
            raise OperationCancelled("Operation deadline exceeded")


class WideColumnBackend(ABC):
    """Abstract wide-column store consumed by the metadata stores."""

    def __init__(
        self,
        *,
        read_consistency: ConsistencyLevel = "LOCAL_QUORUM",
        write_consistency: ConsistencyLevel = "LOCAL_QUORUM",
    ) -> None:
        self.read_consistency = read_consistency
        self.write_consistency = write_consistency

    @property
    @abstractmethod
    def supports_conditional_writes(self) -> bool:
        """Whether :meth:`put_if_absent` is available."""
        ...

    @abstractmethod
    def get(
        self, table: str, partition: str, column: str, *, deadline: Deadline | None = None
    ) -> str | None:
        """Return the value of one cell, or None if absent."""
        ...

    @abstractmethod
    def put(
        self,
        table: str,
        partition: str,
        column: str,
        value: str,
        *,
        deadline: Deadline | None = None,
    ) -> None:
        """Write one cell, overwriting any previous value."""
        ...

    @abstractmethod
    def put_if_absent(
        self,
        table: str,
        partition: str,
        column: str,
        value: str,
        *,
        deadline: Deadline | None = None,
    ) -> bool:
        """Write one cell only if it does not exist yet.

        Returns:
            True if the write was applied, False if the cell already existed.

        Raises:
            NotImplementedError: if the backend has no conditional writes.
        """
        ...

    @abstractmethod
    def delete(
        self, table: str, partition: str, column: str, *, deadline: Deadline | None = None
    ) -> None:
        """Delete one cell. Deleting an absent cell is a no-op."""
        ...

    @abstractmethod
    def scan_partition(
        self, table: str, partition: str, *, deadline: Deadline | None = None
    ) -> dict[str, str]:
        """Return all cells of one partition keyed by column."""
        ...

    @abstractmethod
    def scan(
        self, table: str, *, deadline: Deadline | None = None
    ) -> Iterator[tuple[str, str, str]]:
        """Yield ``(partition, column, value)`` for every cell of a table."""
        ...

    @abstractmethod
    def truncate(self, table: str) -> None:
        """Remove every cell of a table."""
        ...

    @staticmethod
    def _check(deadline: Deadline | None) -> None:
        if deadline is not None:
            deadline.check()
