"""Storage backends."""

from workflow_metadata.backend.base import ConsistencyLevel, Deadline, WideColumnBackend
from workflow_metadata.backend.json_file import JsonFileBackend
from workflow_metadata.backend.memory import InMemoryBackend

__all__ = [
    "ConsistencyLevel",
    "Deadline",
    "InMemoryBackend",
    "JsonFileBackend",
    "WideColumnBackend",
]
