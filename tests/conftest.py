"""Test configuration and fixtures."""

from pathlib import Path

import pytest

from workflow_metadata.backend import InMemoryBackend, JsonFileBackend
from workflow_metadata.config import MetadataSettings
from workflow_metadata.dao import MetadataDAO


@pytest.fixture
def settings(tmp_path: Path) -> MetadataSettings:
    """Provide settings isolated from the developer's environment."""
    return MetadataSettings(_env_file=None, storage_path=tmp_path / "metadata_state")


@pytest.fixture
def memory_backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def dao(memory_backend: InMemoryBackend, settings: MetadataSettings) -> MetadataDAO:
    """Provide a DAO on a fresh in-memory backend."""
    return MetadataDAO(memory_backend, settings)


@pytest.fixture(params=["memory", "json_file"])
def any_dao(request: pytest.FixtureRequest, settings: MetadataSettings) -> MetadataDAO:
    """Provide a DAO on each backend implementation."""
    if request.param == "memory":
        return MetadataDAO(InMemoryBackend(), settings)
    return MetadataDAO(JsonFileBackend(settings.storage_path), settings)
