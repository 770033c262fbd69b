"""In-process backend used by tests and embedded deployments."""

from __future__ import annotations

import threading
from collections.abc import Iterator

from workflow_metadata.backend.base import ConsistencyLevel, Deadline, WideColumnBackend


class InMemoryBackend(WideColumnBackend):
    """Thread-safe dict-backed wide-column store.

    Pass ``conditional_writes=False`` to model a backend without lightweight
    transactions; callers then fall back to check-then-write.
    """

    def __init__(
        self,
        *,
        conditional_writes: bool = True,
        read_consistency: ConsistencyLevel = "LOCAL_QUORUM",
        write_consistency: ConsistencyLevel = "LOCAL_QUORUM",
    ) -> None:
        super().__init__(read_consistency=read_consistency, write_consistency=write_consistency)
        self._conditional_writes = conditional_writes
        self._tables: dict[str, dict[str, dict[str, str]]] = {}
        self._lock = threading.Lock()

    @property
    def supports_conditional_writes(self) -> bool:
        return self._conditional_writes

    def get(
        self, table: str, partition: str, column: str, *, deadline: Deadline | None = None
    ) -> str | None:
        self._check(deadline)
        with self._lock:
            return self._tables.get(table, {}).get(partition, {}).get(column)

    def put(
        self,
        table: str,
        partition: str,
        column: str,
        value: str,
        *,
        deadline: Deadline | None = None,
    ) -> None:
        self._check(deadline)
        with self._lock:
            self._tables.setdefault(table, {}).setdefault(partition, {})[column] = value

    def put_if_absent(
        self,
        table: str,
        partition: str,
        column: str,
        value: str,
        *,
        deadline: Deadline | None = None,
    ) -> bool:
        if not self._conditional_writes:
            raise NotImplementedError("Conditional writes are disabled for this backend")
        self._check(deadline)
        with self._lock:
            row = self._tables.setdefault(table, {}).setdefault(partition, {})
            if column in row:
                return False
            row[column] = value
            return True

    def delete(
        self, table: str, partition: str, column: str, *, deadline: Deadline | None = None
    ) -> None:
        self._check(deadline)
        with self._lock:
            partitions = self._tables.get(table, {})
            row = partitions.get(partition)
            if row is None:
                return
            row.pop(column, None)
            if not row:
                del partitions[partition]

    def scan_partition(
        self, table: str, partition: str, *, deadline: Deadline | None = None
    ) -> dict[str, str]:
        self._check(deadline)
        with self._lock:
            return dict(self._tables.get(table, {}).get(partition, {}))

    def scan(
        self, table: str, *, deadline: Deadline | None = None
    ) -> Iterator[tuple[str, str, str]]:
        self._check(deadline)
        with self._lock:
            snapshot = [
                (partition, column, value)
                for partition, row in self._tables.get(table, {}).items()
                for column, value in row.items()
            ]
        yield from snapshot

    def truncate(self, table: str) -> None:
        with self._lock:
            self._tables.pop(table, None)
