"""Versioned workflow definitions.

Primary rows live in the workflow definitions table, partitioned by name with
one column per version. Each write is followed by updates to the version index
and the latest-version pointer, in that order. There are no multi-row
transactions: if a later step fails, the primary row stays written and the
derived state lags until the next write or reconciliation.

Without conditional writes on the backend, ``create`` checks for the key and
then writes it. Two concurrent creates of the same (name, version) can then
both succeed, and the last write wins.
"""

from __future__ import annotations

import logging

from workflow_metadata.backend.base import Deadline, WideColumnBackend
from workflow_metadata.codec import JsonCodec
from workflow_metadata.config import MetadataSettings
from workflow_metadata.errors import AlreadyExists, InvalidDefinition
from workflow_metadata.indexes import LatestVersionPointer, VersionIndex
from workflow_metadata.models import WorkflowDef

logger = logging.getLogger(__name__)


def _validate(defn: WorkflowDef) -> None:
    if not defn.name or not defn.name.strip():
        raise InvalidDefinition("Workflow definition name cannot be empty")
    if defn.version < 1:
        raise InvalidDefinition(
            f"Workflow {defn.name!r} version must be positive, got {defn.version}"
        )


class WorkflowDefStore:
    """CRUD for workflow definitions keyed by (name, version)."""

    def __init__(self, backend: WideColumnBackend, settings: MetadataSettings) -> None:
        self._backend = backend
        self._table = settings.workflow_defs_table
        self._use_conditional = settings.conditional_writes and backend.supports_conditional_writes
        self._codec = JsonCodec(WorkflowDef)
        self.versions = VersionIndex(backend, settings.workflow_versions_table)
        self.latest = LatestVersionPointer(backend, settings.workflow_latest_table)

    def create(self, defn: WorkflowDef, *, deadline: Deadline | None = None) -> None:
        """Register a new (name, version).

        Raises:
            InvalidDefinition: name empty or version not a positive integer.
            AlreadyExists: the (name, version) is already registered.
        """

        _validate(defn)
        payload = self._codec.encode(defn)
        column = str(defn.version)

        if self._use_conditional:
            applied = self._backend.put_if_absent(
                self._table, defn.name, column, payload, deadline=deadline
            )
            if not applied:
                raise AlreadyExists(name=defn.name, version=defn.version)
        else:
            if self._backend.get(self._table, defn.name, column, deadline=deadline) is not None:
                raise AlreadyExists(name=defn.name, version=defn.version)
            logger.debug(
                "Creating workflow definition without conditional write",
                extra={"workflow": defn.name, "version": defn.version},
            )
            self._backend.put(self._table, defn.name, column, payload, deadline=deadline)

        self._index(defn, deadline=deadline)
        logger.info(
            "Workflow definition created",
            extra={"workflow": defn.name, "version": defn.version},
        )

    def update(self, defn: WorkflowDef, *, deadline: Deadline | None = None) -> None:
        """Overwrite the payload of (name, version), creating it if absent."""

        _validate(defn)
        self._backend.put(
            self._table,
            defn.name,
            str(defn.version),
            self._codec.encode(defn),
            deadline=deadline,
        )
        self._index(defn, deadline=deadline)
        logger.debug(
            "Workflow definition updated",
            extra={"workflow": defn.name, "version": defn.version},
        )

    def _index(self, defn: WorkflowDef, *, deadline: Deadline | None) -> None:
        self.versions.add(defn.name, defn.version, deadline=deadline)
        if self.latest.advance(defn.name, defn.version, deadline=deadline):
            logger.debug(
                "Latest version pointer advanced",
                extra={"workflow": defn.name, "version": defn.version},
            )

    def get(
        self, name: str, version: int, *, deadline: Deadline | None = None
    ) -> WorkflowDef | None:
        payload = self._backend.get(self._table, name, str(version), deadline=deadline)
        if payload is None:
            return None
        return self._codec.decode(payload)

    def get_latest(self, name: str, *, deadline: Deadline | None = None) -> WorkflowDef | None:
        """Return the highest version of a workflow.

        Follows the latest pointer. When the pointer is missing or points at a
        removed version, falls back to the highest version in the version index
        that still has a primary row. The fallback does not repair the pointer.
        """

        pointer = self.latest.get(name, deadline=deadline)
        if pointer is not None:
            found = self.get(name, pointer, deadline=deadline)
            if found is not None:
                return found

        for version in reversed(self.versions.versions(name, deadline=deadline)):
            if version == pointer:
                continue
            found = self.get(name, version, deadline=deadline)
            if found is not None:
                logger.warning(
                    "Latest version pointer is stale",
                    extra={"workflow": name, "pointer": pointer, "resolved": version},
                )
                return found
        return None

    def get_all(self, *, deadline: Deadline | None = None) -> list[WorkflowDef]:
        """Return every workflow definition by scanning the primary table.

        Cost grows with the total number of definitions; meant for
        administrative listing.
        """

        defs = [
            self._codec.decode(payload)
            for _, _, payload in self._backend.scan(self._table, deadline=deadline)
        ]
        defs.sort(key=lambda d: d.key)
        return defs

    def live_keys(self, *, deadline: Deadline | None = None) -> dict[str, set[int]]:
        """Return name -> versions present in the primary table.

        Keys come from cell coordinates, so rows with undecodable payloads are
        still counted.
        """

        keys: dict[str, set[int]] = {}
        for name, column, _ in self._backend.scan(self._table, deadline=deadline):
            try:
                version = int(column)
            except ValueError:
                logger.warning(
                    "Ignoring malformed workflow version column",
                    extra={"workflow": name, "column": column},
                )
                continue
            keys.setdefault(name, set()).add(version)
        return keys

    def get_all_versions(
        self, name: str, *, deadline: Deadline | None = None
    ) -> list[WorkflowDef]:
        """Return every version of one workflow, lowest first."""

        defs: list[WorkflowDef] = []
        for version in self.versions.versions(name, deadline=deadline):
            found = self.get(name, version, deadline=deadline)
            if found is not None:
                defs.append(found)
        return defs

    def get_all_latest(self, *, deadline: Deadline | None = None) -> list[WorkflowDef]:
        """Return the highest version of every workflow, by full scan."""

        latest: dict[str, WorkflowDef] = {}
        for defn in self.get_all(deadline=deadline):
            current = latest.get(defn.name)
            if current is None or defn.version > current.version:
                latest[defn.name] = defn
        return [latest[name] for name in sorted(latest)]

    def remove(self, name: str, version: int, *, deadline: Deadline | None = None) -> None:
        """Delete (name, version). Removing an absent definition is a no-op."""

        self._backend.delete(self._table, name, str(version), deadline=deadline)
        self.versions.discard(name, version, deadline=deadline)

        pointer = self.latest.get(name, deadline=deadline)
        if pointer is None or pointer == version:
            remaining = self.versions.max_version(name, deadline=deadline)
            self.latest.reset(name, remaining, deadline=deadline)
            logger.debug(
                "Latest version pointer recomputed",
                extra={"workflow": name, "version": remaining},
            )

        logger.info("Workflow definition removed", extra={"workflow": name, "version": version})

    def exists(self, defn: WorkflowDef, *, deadline: Deadline | None = None) -> bool:
        return (
            self._backend.get(self._table, defn.name, str(defn.version), deadline=deadline)
            is not None
        )
