"""Rebuild derived index state from the primary tables.

A full scan of the primary tables is the authoritative view. Reconciliation
brings the version index, the latest pointers and the event index back in line
with it after interrupted writes or concurrent races.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from workflow_metadata.backend.base import Deadline, WideColumnBackend
from workflow_metadata.config import MetadataSettings
from workflow_metadata.event_store import EventHandlerRegistry
from workflow_metadata.workflow_store import WorkflowDefStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReconciliationReport:
    version_entries_added: int = 0
    version_entries_removed: int = 0
    latest_pointers_fixed: int = 0
    event_entries_written: int = 0
    event_entries_removed: int = 0

    @property
    def changes(self) -> int:
        return (
            self.version_entries_added
            + self.version_entries_removed
            + self.latest_pointers_fixed
            + self.event_entries_written
            + self.event_entries_removed
        )

    def merge(self, other: ReconciliationReport) -> ReconciliationReport:
        return ReconciliationReport(
            version_entries_added=self.version_entries_added + other.version_entries_added,
            version_entries_removed=self.version_entries_removed + other.version_entries_removed,
            latest_pointers_fixed=self.latest_pointers_fixed + other.latest_pointers_fixed,
            event_entries_written=self.event_entries_written + other.event_entries_written,
            event_entries_removed=self.event_entries_removed + other.event_entries_removed,
        )


class IndexReconciler:
    def __init__(
        self,
        backend: WideColumnBackend,
        settings: MetadataSettings,
        *,
        workflow_defs: WorkflowDefStore | None = None,
        event_handlers: EventHandlerRegistry | None = None,
    ) -> None:
        self._workflow_defs = workflow_defs or WorkflowDefStore(backend, settings)
        self._event_handlers = event_handlers or EventHandlerRegistry(backend, settings)

    def reconcile_workflow_defs(self, *, deadline: Deadline | None = None) -> ReconciliationReport:
        live = self._workflow_defs.live_keys(deadline=deadline)

        added, removed = self._workflow_defs.versions.rebuild(live, deadline=deadline)
        fixed = self._workflow_defs.latest.rebuild(live, deadline=deadline)

        report = ReconciliationReport(
            version_entries_added=added,
            version_entries_removed=removed,
            latest_pointers_fixed=fixed,
        )
        logger.info(
            "Workflow definition indexes reconciled",
            extra={"workflows": len(live), "changes": report.changes},
        )
        return report

    def reconcile_event_handlers(
        self, *, deadline: Deadline | None = None
    ) -> ReconciliationReport:
        live = {
            (handler.event, handler.name): handler.active
            for handler in self._event_handlers.readable(deadline=deadline)
        }
        written, removed = self._event_handlers.index.rebuild(live, deadline=deadline)

        report = ReconciliationReport(event_entries_written=written, event_entries_removed=removed)
        logger.info(
            "Event index reconciled",
            extra={"handlers": len(live), "changes": report.changes},
        )
        return report

    def reconcile_all(self, *, deadline: Deadline | None = None) -> ReconciliationReport:
        return self.reconcile_workflow_defs(deadline=deadline).merge(
            self.reconcile_event_handlers(deadline=deadline)
        )
