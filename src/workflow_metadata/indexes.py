"""Derived index state kept beside the primary tables.

Each class here owns one derived table and is the only code that reads or
writes it. The derived tables are projections of the primary records:

- :class:`VersionIndex`: workflow name -> versions present
- :class:`LatestVersionPointer`: workflow name -> highest version present
- :class:`EventIndex`: event -> handler names with their active flag

Writers always persist the primary record before touching a derived table, so
an interrupted operation can only leave a derived table behind its primary.
Readers treat an index entry without a primary record as absent. Everything
here can be rebuilt from a full scan of the primary tables (see
:mod:`workflow_metadata.reconcile`).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from workflow_metadata.backend.base import Deadline, WideColumnBackend

logger = logging.getLogger(__name__)

_LATEST_COLUMN = "latest"
_ACTIVE = "1"
_INACTIVE = "0"


def _parse_version(raw: str) -> int | None:
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring malformed version cell", extra={"value": raw})
        return None


class VersionIndex:
    """Versions present for each workflow name."""

    def __init__(self, backend: WideColumnBackend, table: str) -> None:
        self._backend = backend
        self._table = table

    def add(self, workflow: str, version: int, *, deadline: Deadline | None = None) -> None:
        self._backend.put(self._table, workflow, str(version), "", deadline=deadline)

    def discard(self, workflow: str, version: int, *, deadline: Deadline | None = None) -> None:
        self._backend.delete(self._table, workflow, str(version), deadline=deadline)

    def versions(self, workflow: str, *, deadline: Deadline | None = None) -> list[int]:
        """Return the indexed versions of a workflow in ascending order."""

        cells = self._backend.scan_partition(self._table, workflow, deadline=deadline)
        parsed = (_parse_version(column) for column in cells)
        return sorted(v for v in parsed if v is not None)

    def max_version(self, workflow: str, *, deadline: Deadline | None = None) -> int | None:
        versions = self.versions(workflow, deadline=deadline)
        return versions[-1] if versions else None

    def entries(self, *, deadline: Deadline | None = None) -> dict[str, set[int]]:
        out: dict[str, set[int]] = {}
        for workflow, column, _ in self._backend.scan(self._table, deadline=deadline):
            version = _parse_version(column)
            if version is not None:
                out.setdefault(workflow, set()).add(version)
        return out

    def rebuild(
        self, live: Mapping[str, Iterable[int]], *, deadline: Deadline | None = None
    ) -> tuple[int, int]:
        """Make the index equal to ``live``.

        Returns:
            (entries added, entries removed)
        """

        wanted = {workflow: set(versions) for workflow, versions in live.items()}
        current = self.entries(deadline=deadline)

        added = removed = 0
        for workflow, versions in wanted.items():
            for version in sorted(versions - current.get(workflow, set())):
                self.add(workflow, version, deadline=deadline)
                added += 1
        for workflow, versions in current.items():
            for version in sorted(versions - wanted.get(workflow, set())):
                self.discard(workflow, version, deadline=deadline)
                removed += 1
        return added, removed


class LatestVersionPointer:
    """The highest version present for each workflow name."""

    def __init__(self, backend: WideColumnBackend, table: str) -> None:
        self._backend = backend
        self._table = table

    def get(self, workflow: str, *, deadline: Deadline | None = None) -> int | None:
        raw = self._backend.get(self._table, workflow, _LATEST_COLUMN, deadline=deadline)
        if raw is None:
            return None
        return _parse_version(raw)

    def set(self, workflow: str, version: int, *, deadline: Deadline | None = None) -> None:
        self._backend.put(self._table, workflow, _LATEST_COLUMN, str(version), deadline=deadline)

    def clear(self, workflow: str, *, deadline: Deadline | None = None) -> None:
        self._backend.delete(self._table, workflow, _LATEST_COLUMN, deadline=deadline)

    def advance(self, workflow: str, version: int, *, deadline: Deadline | None = None) -> bool:
        """Move the pointer to ``version`` if it is higher than the current one.

        The read and the write are separate backend calls; a concurrent writer
        can interleave. Reconciliation repairs a pointer left too low.

        Returns:
            True if the pointer was written.
        """

        current = self.get(workflow, deadline=deadline)
        if current is not None and current >= version:
            return False
        self.set(workflow, version, deadline=deadline)
        return True

    def reset(
        self, workflow: str, version: int | None, *, deadline: Deadline | None = None
    ) -> None:
        """Point at ``version``, or clear the pointer when it is None."""

        if version is None:
            self.clear(workflow, deadline=deadline)
        else:
            self.set(workflow, version, deadline=deadline)

    def entries(self, *, deadline: Deadline | None = None) -> dict[str, int]:
        out: dict[str, int] = {}
        for workflow, column, value in self._backend.scan(self._table, deadline=deadline):
            if column != _LATEST_COLUMN:
                continue
            version = _parse_version(value)
            if version is not None:
                out[workflow] = version
        return out

    def rebuild(
        self, live: Mapping[str, Iterable[int]], *, deadline: Deadline | None = None
    ) -> int:
        """Point every workflow at the max of its live versions.

        Returns:
            Number of pointers written or cleared.
        """

        wanted = {workflow: max(versions) for workflow, versions in live.items() if versions}
        current = self.entries(deadline=deadline)

        fixed = 0
        for workflow, version in wanted.items():
            if current.get(workflow) != version:
                self.set(workflow, version, deadline=deadline)
                fixed += 1
        for workflow in current.keys() - wanted.keys():
            self.clear(workflow, deadline=deadline)
            fixed += 1
        return fixed


class EventIndex:
    """Handler names and active flags per event."""

    def __init__(self, backend: WideColumnBackend, table: str) -> None:
        self._backend = backend
        self._table = table

    def put(
        self, event: str, handler: str, active: bool, *, deadline: Deadline | None = None
    ) -> None:
        flag = _ACTIVE if active else _INACTIVE
        self._backend.put(self._table, event, handler, flag, deadline=deadline)

    def discard(self, event: str, handler: str, *, deadline: Deadline | None = None) -> None:
        self._backend.delete(self._table, event, handler, deadline=deadline)

    def handlers(self, event: str, *, deadline: Deadline | None = None) -> dict[str, bool]:
        """Return handler name -> indexed active flag for one event."""

        cells = self._backend.scan_partition(self._table, event, deadline=deadline)
        return {handler: flag == _ACTIVE for handler, flag in sorted(cells.items())}

    def entries(self, *, deadline: Deadline | None = None) -> dict[tuple[str, str], bool]:
        return {
            (event, handler): flag == _ACTIVE
            for event, handler, flag in self._backend.scan(self._table, deadline=deadline)
        }

    def rebuild(
        self, live: Mapping[tuple[str, str], bool], *, deadline: Deadline | None = None
    ) -> tuple[int, int]:
        """Make the index equal to ``live`` ((event, handler) -> active).

        Returns:
            (entries written, entries removed)
        """

        current = self.entries(deadline=deadline)

        written = removed = 0
        for (event, handler), active in sorted(live.items()):
            if current.get((event, handler)) != active:
                self.put(event, handler, active, deadline=deadline)
                written += 1
        for event, handler in sorted(current.keys() - live.keys()):
            self.discard(event, handler, deadline=deadline)
            removed += 1
        return written, removed
