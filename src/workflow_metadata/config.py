"""Configuration for the metadata store.

Configuration is loaded from:
- environment variables prefixed with ``METADATA_``
- and a local `.env` file (if present)

Table names and consistency levels describe an already provisioned keyspace;
this package never creates or alters schema.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from workflow_metadata.backend.base import ConsistencyLevel


class MetadataSettings(BaseSettings):
    """Settings for the metadata store.

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `MetadataSettings(_env_file=path_to_env)`.
    """

    workflow_defs_table: str = Field(
        default="workflow_definitions",
        description="Primary table for workflow definitions, keyed by (name, version)",
    )
    workflow_versions_table: str = Field(
        default="workflow_def_versions",
        description="Index of existing versions per workflow name",
    )
    workflow_latest_table: str = Field(
        default="workflow_def_latest",
        description="Latest version pointer per workflow name",
    )
    task_defs_table: str = Field(
        default="task_definitions",
        description="Primary table for task definitions, keyed by name",
    )
    event_handlers_table: str = Field(
        default="event_handlers",
        description="Primary table for event handlers, keyed by name",
    )
    event_index_table: str = Field(
        default="event_handlers_by_event",
        description="Index of handler names (and active flags) per event",
    )

    read_consistency: ConsistencyLevel = Field(
        default="LOCAL_QUORUM",
        description="Consistency level used for reads",
    )
    write_consistency: ConsistencyLevel = Field(
        default="LOCAL_QUORUM",
        description="Consistency level used for writes",
    )
    conditional_writes: bool = Field(
        default=True,
        description="Use insert-if-absent writes when the backend supports them",
    )

    storage_path: Path = Field(
        default=Path("metadata_state"),
        description="Directory used by the file backend",
    )

    log_level: str = Field(
        default="INFO",
        description="Root logging level",
    )

    model_config = SettingsConfigDict(
        env_prefix="METADATA_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if not isinstance(logging.getLevelName(normalized), int):
            raise ValueError(f"Unknown log level: {value!r}")
        return normalized

    @property
    def tables(self) -> list[str]:
        """All table names, primary tables first."""

        return [
            self.workflow_defs_table,
            self.task_defs_table,
            self.event_handlers_table,
            self.workflow_versions_table,
            self.workflow_latest_table,
            self.event_index_table,
        ]
