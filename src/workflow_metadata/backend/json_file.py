"""File-backed backend for local use and the CLI.

Each table is persisted to ``<directory>/<table>.json`` as a mapping of
partition -> column -> value. This is a single-node stand-in for a real
cluster; every cell operation rewrites its table file under a lock.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterator
from pathlib import Path

from workflow_metadata.backend.base import ConsistencyLevel, Deadline, WideColumnBackend
from workflow_metadata.errors import StorageUnavailable

logger = logging.getLogger(__name__)

_Table = dict[str, dict[str, str]]


class JsonFileBackend(WideColumnBackend):
    """JSON-file backed wide-column store."""

    def __init__(
        self,
        directory: Path,
        *,
        read_consistency: ConsistencyLevel = "LOCAL_QUORUM",
        write_consistency: ConsistencyLevel = "LOCAL_QUORUM",
    ) -> None:
        super().__init__(read_consistency=read_consistency, write_consistency=write_consistency)
        self._directory = directory
        self._lock = threading.Lock()

    @property
    def supports_conditional_writes(self) -> bool:
        return True

    def _path(self, table: str) -> Path:
        if not table or "/" in table or "\\" in table or ".." in table:
            raise ValueError(f"Invalid table name: {table!r}")
        return self._directory / f"{table}.json"

    def _load_unlocked(self, table: str) -> _Table:
        path = self._path(table)
        if not path.exists():
            return {}
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise StorageUnavailable(f"Failed to read table {table!r}: {e}") from e
        except json.JSONDecodeError as e:
            logger.error("Table file is not valid JSON", extra={"path": str(path)})
            raise StorageUnavailable(f"Table {table!r} is not valid JSON: {e}") from e

        if not isinstance(raw, dict):
            raise StorageUnavailable(f"Table {table!r} has unexpected shape")
        table_data: _Table = {}
        for partition, row in raw.items():
            if not isinstance(row, dict) or not all(isinstance(v, str) for v in row.values()):
                logger.error(
                    "Table partition has unexpected shape",
                    extra={"path": str(path), "partition": partition},
                )
                raise StorageUnavailable(
                    f"Table {table!r} partition {partition!r} has unexpected shape"
                )
            table_data[partition] = dict(row)
        return table_data

    def _save_unlocked(self, table: str, data: _Table) -> None:
        path = self._path(table)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(
                json.dumps(data, indent=2, ensure_ascii=False, sort_keys=True) + "\n",
                encoding="utf-8",
            )
        except OSError as e:
            raise StorageUnavailable(f"Failed to write table {table!r}: {e}") from e

    def get(
        self, table: str, partition: str, column: str, *, deadline: Deadline | None = None
    ) -> str | None:
        self._check(deadline)
        with self._lock:
            return self._load_unlocked(table).get(partition, {}).get(column)

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
            data = self._load_unlocked(table)
            data.setdefault(partition, {})[column] = value
            self._save_unlocked(table, data)

    def put_if_absent(
        self,
        table: str,
        partition: str,
        column: str,
        value: str,
        *,
        deadline: Deadline | None = None,
    ) -> bool:
        self._check(deadline)
        with self._lock:
            data = self._load_unlocked(table)
            row = data.setdefault(partition, {})
            if column in row:
                return False
            row[column] = value
            self._save_unlocked(table, data)
            return True

    def delete(
        self, table: str, partition: str, column: str, *, deadline: Deadline | None = None
    ) -> None:
        self._check(deadline)
        with self._lock:
            data = self._load_unlocked(table)
            row = data.get(partition)
            if row is None or column not in row:
                return
            del row[column]
            if not row:
                del data[partition]
            self._save_unlocked(table, data)

    def scan_partition(
        self, table: str, partition: str, *, deadline: Deadline | None = None
    ) -> dict[str, str]:
        self._check(deadline)
        with self._lock:
            return dict(self._load_unlocked(table).get(partition, {}))

    def scan(
        self, table: str, *, deadline: Deadline | None = None
    ) -> Iterator[tuple[str, str, str]]:
        self._check(deadline)
        with self._lock:
            data = self._load_unlocked(table)
        for partition, row in data.items():
            for column, value in row.items():
                yield (partition, column, value)

    def truncate(self, table: str) -> None:
        with self._lock:
            path = self._path(table)
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                raise StorageUnavailable(f"Failed to truncate table {table!r}: {e}") from e
