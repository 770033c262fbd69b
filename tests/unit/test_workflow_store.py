"""Unit tests for versioned workflow definitions."""

from __future__ import annotations

import pytest

from workflow_metadata.backend import InMemoryBackend
from workflow_metadata.config import MetadataSettings
from workflow_metadata.dao import MetadataDAO
from workflow_metadata.errors import AlreadyExists, InvalidDefinition, StorageUnavailable
from workflow_metadata.models import WorkflowDef
from workflow_metadata.workflow_store import WorkflowDefStore


def test_workflow_def_crud(any_dao: MetadataDAO) -> None:
    store = any_dao.workflow_defs
    name = "workflow_def_1"

    workflow_def = WorkflowDef(name=name, version=1, owner_email="test@junit.com")
    store.create(workflow_def)

    assert store.exists(workflow_def)
    assert store.get(name, 1) == workflow_def
    assert store.get_all() == [workflow_def]

    # register a higher version
    workflow_def.version = 2
    workflow_def.description = "higher version"
    store.create(workflow_def)

    assert store.exists(workflow_def)
    assert store.get(name, 2) == workflow_def
    assert store.get_latest(name) == workflow_def
    assert len(store.get_all()) == 2

    # modify the definition
    workflow_def.owner_email = "junit@test.com"
    store.update(workflow_def)
    assert store.get(name, 2) == workflow_def

    with pytest.raises(AlreadyExists, match="Workflow: workflow_def_1, version: 2 already exists!"):
        store.create(workflow_def)

    store.remove(name, 2)
    assert store.get(name, 2) is None
    assert len(store.get_all()) == 1
    assert not store.exists(workflow_def)


def test_already_exists_carries_name_and_version(dao: MetadataDAO) -> None:
    dao.workflow_defs.create(WorkflowDef(name="wf", version=7))

    with pytest.raises(AlreadyExists) as excinfo:
        dao.workflow_defs.create(WorkflowDef(name="wf", version=7, description="other"))

    assert excinfo.value.name == "wf"
    assert excinfo.value.version == 7
    assert "wf" in str(excinfo.value)
    assert "7" in str(excinfo.value)
    # the losing create must not overwrite the stored payload
    assert dao.workflow_defs.get("wf", 7) == WorkflowDef(name="wf", version=7)


def test_latest_follows_removals(dao: MetadataDAO) -> None:
    store = dao.workflow_defs
    store.create(WorkflowDef(name="wf", version=1))
    store.create(WorkflowDef(name="wf", version=2))

    latest = store.get_latest("wf")
    assert latest is not None and latest.version == 2

    store.remove("wf", 2)
    latest = store.get_latest("wf")
    assert latest is not None and latest.version == 1

    store.remove("wf", 1)
    assert store.get_latest("wf") is None
    assert store.latest.get("wf") is None


def test_latest_is_not_lowered_by_creating_an_older_version(dao: MetadataDAO) -> None:
    store = dao.workflow_defs
    store.create(WorkflowDef(name="wf", version=3))
    store.create(WorkflowDef(name="wf", version=1))

    assert store.latest.get("wf") == 3
    assert store.versions.versions("wf") == [1, 3]


def test_removing_a_lower_version_keeps_the_pointer(dao: MetadataDAO) -> None:
    store = dao.workflow_defs
    for version in (1, 2, 3):
        store.create(WorkflowDef(name="wf", version=version))

    store.remove("wf", 2)

    assert store.latest.get("wf") == 3
    assert store.versions.versions("wf") == [1, 3]


def test_update_does_not_move_the_pointer_for_existing_versions(dao: MetadataDAO) -> None:
    store = dao.workflow_defs
    store.create(WorkflowDef(name="wf", version=1))
    store.create(WorkflowDef(name="wf", version=2))

    store.update(WorkflowDef(name="wf", version=1, description="patched"))

    assert store.latest.get("wf") == 2
    fetched = store.get("wf", 1)
    assert fetched is not None and fetched.description == "patched"


def test_update_creates_missing_definition(dao: MetadataDAO) -> None:
    store = dao.workflow_defs
    store.update(WorkflowDef(name="wf", version=4))

    assert store.exists(WorkflowDef(name="wf", version=4))
    assert store.versions.versions("wf") == [4]
    assert store.latest.get("wf") == 4
    assert store.get_latest("wf") == WorkflowDef(name="wf", version=4)


def test_update_of_higher_version_advances_latest_pointer(dao: MetadataDAO) -> None:
    store = dao.workflow_defs
    store.create(WorkflowDef(name="wf", version=1))
    store.update(WorkflowDef(name="wf", version=3, description="v3"))

    assert store.latest.get("wf") == 3
    assert store.versions.versions("wf") == [1, 3]


def test_get_all_returns_exactly_the_live_keys(dao: MetadataDAO) -> None:
    store = dao.workflow_defs
    for name, version in [("b", 1), ("a", 2), ("a", 1), ("b", 2)]:
        store.create(WorkflowDef(name=name, version=version))
    store.remove("b", 1)

    assert [d.key for d in store.get_all()] == [("a", 1), ("a", 2), ("b", 2)]


def test_get_all_versions_and_get_all_latest(dao: MetadataDAO) -> None:
    store = dao.workflow_defs
    for name, version in [("a", 1), ("a", 3), ("b", 1)]:
        store.create(WorkflowDef(name=name, version=version))

    assert [d.version for d in store.get_all_versions("a")] == [1, 3]
    assert [d.key for d in store.get_all_latest()] == [("a", 3), ("b", 1)]
    assert store.get_all_versions("missing") == []


def test_remove_absent_definition_is_a_noop(dao: MetadataDAO) -> None:
    dao.workflow_defs.create(WorkflowDef(name="wf", version=1))

    dao.workflow_defs.remove("wf", 5)
    dao.workflow_defs.remove("other", 1)

    assert dao.workflow_defs.latest.get("wf") == 1
    assert len(dao.workflow_defs.get_all()) == 1


@pytest.mark.parametrize(
    "defn",
    [
        WorkflowDef(name="", version=1),
        WorkflowDef(name="   ", version=1),
        WorkflowDef(name="wf", version=0),
        WorkflowDef(name="wf", version=-3),
    ],
)
def test_create_validates_before_touching_storage(defn: WorkflowDef) -> None:
    backend = InMemoryBackend()
    store = WorkflowDefStore(backend, MetadataSettings(_env_file=None))

    with pytest.raises(InvalidDefinition):
        store.create(defn)
    with pytest.raises(InvalidDefinition):
        store.update(defn)

    assert store.get_all() == []


def test_get_latest_falls_back_when_pointer_is_stale(dao: MetadataDAO) -> None:
    store = dao.workflow_defs
    store.create(WorkflowDef(name="wf", version=1))
    store.create(WorkflowDef(name="wf", version=2))

    # Simulate a concurrent removal that deleted v2 but never recomputed the pointer.
    dao.backend.delete(dao.settings.workflow_defs_table, "wf", "2")
    store.versions.discard("wf", 2)

    latest = store.get_latest("wf")
    assert latest is not None and latest.version == 1
    # reads never repair derived state
    assert store.latest.get("wf") == 2


def test_get_latest_skips_index_entries_without_primary(dao: MetadataDAO) -> None:
    store = dao.workflow_defs
    store.create(WorkflowDef(name="wf", version=1))
    store.create(WorkflowDef(name="wf", version=2))

    dao.backend.delete(dao.settings.workflow_defs_table, "wf", "2")

    latest = store.get_latest("wf")
    assert latest is not None and latest.version == 1


def test_get_latest_without_pointer_uses_version_index(dao: MetadataDAO) -> None:
    store = dao.workflow_defs
    store.create(WorkflowDef(name="wf", version=1))
    store.latest.clear("wf")

    latest = store.get_latest("wf")
    assert latest is not None and latest.version == 1


def test_get_latest_unknown_workflow(dao: MetadataDAO) -> None:
    assert dao.workflow_defs.get_latest("nope") is None


def test_create_without_conditional_writes_still_rejects_duplicates(
    settings: MetadataSettings,
) -> None:
    backend = InMemoryBackend(conditional_writes=False)
    store = WorkflowDefStore(backend, settings)

    store.create(WorkflowDef(name="wf", version=1))
    with pytest.raises(AlreadyExists):
        store.create(WorkflowDef(name="wf", version=1))


def test_conditional_writes_can_be_disabled_by_settings(settings: MetadataSettings) -> None:
    backend = InMemoryBackend()
    disabled = settings.model_copy(update={"conditional_writes": False})
    store = WorkflowDefStore(backend, disabled)

    calls: list[str] = []
    original = backend.put_if_absent

    def _spy(*args: object, **kwargs: object) -> bool:
        calls.append("put_if_absent")
        return original(*args, **kwargs)  # type: ignore[arg-type]

    backend.put_if_absent = _spy  # type: ignore[method-assign]
    store.create(WorkflowDef(name="wf", version=1))

    assert calls == []
    assert store.exists(WorkflowDef(name="wf", version=1))


def test_primary_write_survives_index_failure(
    settings: MetadataSettings, monkeypatch: pytest.MonkeyPatch
) -> None:
    backend = InMemoryBackend()
    store = WorkflowDefStore(backend, settings)

    def _fail(*args: object, **kwargs: object) -> None:
        raise StorageUnavailable("index write timed out")

    monkeypatch.setattr(store.versions, "add", _fail)

    with pytest.raises(StorageUnavailable):
        store.create(WorkflowDef(name="wf", version=1))

    # the primary row is ground truth and is not rolled back
    assert store.exists(WorkflowDef(name="wf", version=1))
    assert store.latest.get("wf") is None
