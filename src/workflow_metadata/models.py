"""Metadata records persisted by the stores.

Records are pydantic models, so two records compare equal when all of their
fields are equal.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

TimeoutPolicy = Literal["RETRY", "TIME_OUT_WF", "ALERT_ONLY"]


class _Record(BaseModel):
    model_config = ConfigDict(validate_assignment=True, extra="ignore")


class WorkflowDef(_Record):
    """A versioned workflow definition, identified by (name, version)."""

    name: str = Field(default="")
    version: int = Field(default=1)
    description: str | None = Field(default=None)
    owner_email: str | None = Field(default=None)

    tasks: list[dict[str, Any]] = Field(default_factory=list)
    input_parameters: list[str] = Field(default_factory=list)
    output_parameters: dict[str, Any] = Field(default_factory=dict)

    schema_version: int = Field(default=2)
    restartable: bool = Field(default=True)
    timeout_seconds: int = Field(default=0, ge=0)
    timeout_policy: Literal["TIME_OUT_WF", "ALERT_ONLY"] = Field(default="ALERT_ONLY")

    @property
    def key(self) -> tuple[str, int]:
        return (self.name, self.version)


class TaskDef(_Record):
    """An unversioned task definition, identified by name."""

    name: str = Field(default="")
    description: str | None = Field(default=None)
    owner_email: str | None = Field(default=None)

    retry_count: int = Field(default=3, ge=0)
    retry_logic: Literal["FIXED", "EXPONENTIAL_BACKOFF", "LINEAR_BACKOFF"] = Field(
        default="FIXED"
    )
    retry_delay_seconds: int = Field(default=60, ge=0)

    timeout_seconds: int = Field(default=0, ge=0)
    timeout_policy: TimeoutPolicy = Field(default="TIME_OUT_WF")
    response_timeout_seconds: int = Field(default=3600, ge=1)

    input_keys: list[str] = Field(default_factory=list)
    output_keys: list[str] = Field(default_factory=list)
    concurrent_exec_limit: int | None = Field(default=None)


class EventHandler(_Record):
    """A handler reacting to an event, identified by name."""

    name: str = Field(default="")
    event: str = Field(default="")
    condition: str | None = Field(default=None)
    actions: list[dict[str, Any]] = Field(default_factory=list)
    active: bool = Field(default=False)
    evaluator_type: str | None = Field(default=None)
