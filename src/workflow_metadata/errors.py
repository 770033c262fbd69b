"""Error kinds raised by the metadata stores.

Lookups report a missing key by returning ``None``; the exceptions below are
reserved for conditions the caller has to act on.
"""

from __future__ import annotations

from dataclasses import dataclass


class MetadataError(Exception):
    """Base class for all metadata store errors."""


@dataclass(frozen=True, slots=True)
class NotFound(MetadataError):
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class AlreadyExists(MetadataError):
    """Raised when creating a workflow definition whose (name, version) is taken."""

    name: str
    version: int

    def __str__(self) -> str:
        return f"Workflow: {self.name}, version: {self.version} already exists!"


class InvalidDefinition(MetadataError, ValueError):
    """A required field is missing or malformed. Raised before any backend call."""


class StorageUnavailable(MetadataError):
    """The storage backend failed in a way the caller may retry."""

    retryable = True


class OperationCancelled(StorageUnavailable):
    """The caller's deadline expired or the operation was cancelled."""


class CorruptRecord(MetadataError):
    """A stored payload could not be decoded into its record type."""
