"""Facade wiring the three stores onto one backend."""

from __future__ import annotations

import logging

from workflow_metadata.backend.base import WideColumnBackend
from workflow_metadata.backend.json_file import JsonFileBackend
from workflow_metadata.config import MetadataSettings
from workflow_metadata.event_store import EventHandlerRegistry
from workflow_metadata.reconcile import IndexReconciler
from workflow_metadata.task_store import TaskDefStore
from workflow_metadata.workflow_store import WorkflowDefStore

logger = logging.getLogger(__name__)


class MetadataDAO:
    """Entry point used by the orchestration engine.

    Example:
        >>> from workflow_metadata.backend import InMemoryBackend
        >>> from workflow_metadata.config import MetadataSettings
        >>> from workflow_metadata.models import WorkflowDef
        >>> dao = MetadataDAO(InMemoryBackend(), MetadataSettings())
        >>> dao.workflow_defs.create(WorkflowDef(name="wf", version=1))
        >>> dao.workflow_defs.get_latest("wf").version
        1
    """

    def __init__(self, backend: WideColumnBackend, settings: MetadataSettings) -> None:
        self.backend = backend
        self.settings = settings

        self.workflow_defs = WorkflowDefStore(backend, settings)
        self.task_defs = TaskDefStore(backend, settings)
        self.event_handlers = EventHandlerRegistry(backend, settings)
        self.reconciler = IndexReconciler(
            backend,
            settings,
            workflow_defs=self.workflow_defs,
            event_handlers=self.event_handlers,
        )

        logger.debug(
            "Metadata DAO initialized",
            extra={
                "backend": type(backend).__name__,
                "conditional_writes": settings.conditional_writes
                and backend.supports_conditional_writes,
            },
        )

    @classmethod
    def from_settings(cls, settings: MetadataSettings) -> MetadataDAO:
        """Build a DAO on the file backend at ``settings.storage_path``."""

        backend = JsonFileBackend(
            settings.storage_path,
            read_consistency=settings.read_consistency,
            write_consistency=settings.write_consistency,
        )
        return cls(backend, settings)
