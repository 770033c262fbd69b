"""Unversioned task definitions, keyed by name. Create and update are upserts."""

from __future__ import annotations

import logging

from workflow_metadata.backend.base import Deadline, WideColumnBackend
from workflow_metadata.codec import JsonCodec
from workflow_metadata.config import MetadataSettings
from workflow_metadata.errors import InvalidDefinition
from workflow_metadata.models import TaskDef

logger = logging.getLogger(__name__)

_DEFINITION_COLUMN = "definition"


class TaskDefStore:
    def __init__(self, backend: WideColumnBackend, settings: MetadataSettings) -> None:
        self._backend = backend
        self._table = settings.task_defs_table
        self._codec = JsonCodec(TaskDef)

    def create(self, defn: TaskDef, *, deadline: Deadline | None = None) -> None:
        self._upsert(defn, deadline=deadline)

    def update(self, defn: TaskDef, *, deadline: Deadline | None = None) -> None:
        self._upsert(defn, deadline=deadline)

    def _upsert(self, defn: TaskDef, *, deadline: Deadline | None) -> None:
        if not defn.name or not defn.name.strip():
            raise InvalidDefinition("Task definition name cannot be empty")
        self._backend.put(
            self._table,
            defn.name,
            _DEFINITION_COLUMN,
            self._codec.encode(defn),
            deadline=deadline,
        )
        logger.debug("Task definition stored", extra={"task": defn.name})

    def get(self, name: str, *, deadline: Deadline | None = None) -> TaskDef | None:
        payload = self._backend.get(self._table, name, _DEFINITION_COLUMN, deadline=deadline)
        if payload is None:
            return None
        return self._codec.decode(payload)

    def get_all(self, *, deadline: Deadline | None = None) -> list[TaskDef]:
        defs = [
            self._codec.decode(payload)
            for _, column, payload in self._backend.scan(self._table, deadline=deadline)
            if column == _DEFINITION_COLUMN
        ]
        defs.sort(key=lambda d: d.name)
        return defs

    def remove(self, name: str, *, deadline: Deadline | None = None) -> None:
        self._backend.delete(self._table, name, _DEFINITION_COLUMN, deadline=deadline)
        logger.info("Task definition removed", extra={"task": name})
