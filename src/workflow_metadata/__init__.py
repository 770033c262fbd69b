"""Workflow Metadata Store.

Persistence for workflow-orchestration metadata on top of a wide-column store:
- versioned workflow definitions with a derived latest-version pointer
- unversioned task definitions
- event handlers indexed by the event they react to
"""

__version__ = "0.1.0"

from workflow_metadata.config import MetadataSettings
from workflow_metadata.dao import MetadataDAO
from workflow_metadata.models import EventHandler, TaskDef, WorkflowDef

__all__ = [
    "__version__",
    "EventHandler",
    "MetadataDAO",
    "MetadataSettings",
    "TaskDef",
    "WorkflowDef",
]
