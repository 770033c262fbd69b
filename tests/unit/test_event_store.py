"""Unit tests for the event handler registry."""

from __future__ import annotations

import pytest

from workflow_metadata.dao import MetadataDAO
from workflow_metadata.errors import InvalidDefinition
from workflow_metadata.models import EventHandler


def test_event_handler_crud(any_dao: MetadataDAO) -> None:
    registry = any_dao.event_handlers
    event = "event"

    handler = EventHandler(name="event_handler1", event=event)
    registry.add(handler)

    handlers = registry.get_for_event(event, False)
    assert len(handlers) == 1
    assert handlers[0].name == handler.name
    assert handlers[0].event == handler.event
    assert handlers[0].active is False

    # add an active event handler for the same event
    active_handler = EventHandler(name="event_handler2", event=event, active=True)
    registry.add(active_handler)

    assert len(registry.get_all()) == 2
    assert len(registry.get_for_event(event, False)) == 2

    handlers = registry.get_for_event(event, True)
    assert handlers == [active_handler]

    registry.remove("event_handler1")
    assert registry.get_all() == [active_handler]
    assert registry.get_for_event(event, False) == [active_handler]


def test_readding_a_handler_overwrites_it(dao: MetadataDAO) -> None:
    registry = dao.event_handlers
    registry.add(EventHandler(name="h", event="e", active=True))
    registry.add(EventHandler(name="h", event="e", active=False, condition="$.x > 1"))

    assert registry.get_for_event("e", True) == []
    assert registry.get_for_event("e", False) == [
        EventHandler(name="h", event="e", active=False, condition="$.x > 1")
    ]
    assert registry.index.handlers("e") == {"h": False}


def test_moving_a_handler_to_another_event_updates_both_indexes(dao: MetadataDAO) -> None:
    registry = dao.event_handlers
    registry.add(EventHandler(name="h", event="old", active=True))
    registry.update(EventHandler(name="h", event="new", active=True))

    assert registry.get_for_event("old", False) == []
    assert registry.index.handlers("old") == {}
    assert [h.name for h in registry.get_for_event("new", True)] == ["h"]


def test_remove_unknown_handler_is_a_noop(dao: MetadataDAO) -> None:
    dao.event_handlers.add(EventHandler(name="h", event="e"))

    dao.event_handlers.remove("missing")

    assert len(dao.event_handlers.get_all()) == 1


def test_remove_clears_index_entry(dao: MetadataDAO) -> None:
    dao.event_handlers.add(EventHandler(name="h", event="e", active=True))
    dao.event_handlers.remove("h")

    assert dao.event_handlers.get("h") is None
    assert dao.event_handlers.index.handlers("e") == {}
    assert dao.event_handlers.get_for_event("e", True) == []


def test_index_entry_without_primary_is_filtered_out(dao: MetadataDAO) -> None:
    registry = dao.event_handlers
    registry.add(EventHandler(name="h", event="e", active=True))
    registry.index.put("e", "ghost", True)

    assert [h.name for h in registry.get_for_event("e", False)] == ["h"]


def test_stale_active_flag_is_checked_against_primary(dao: MetadataDAO) -> None:
    registry = dao.event_handlers
    registry.add(EventHandler(name="h", event="e", active=True))

    # primary deactivated, index write lost
    dao.backend.put(
        dao.settings.event_handlers_table,
        "h",
        "handler",
        EventHandler(name="h", event="e", active=False).model_dump_json(),
    )

    assert registry.get_for_event("e", True) == []
    assert len(registry.get_for_event("e", False)) == 1


def test_stale_event_entry_is_filtered_out(dao: MetadataDAO) -> None:
    registry = dao.event_handlers
    registry.add(EventHandler(name="h", event="new"))
    registry.index.put("old", "h", False)

    assert registry.get_for_event("old", False) == []


def test_add_requires_name(dao: MetadataDAO) -> None:
    with pytest.raises(InvalidDefinition):
        dao.event_handlers.add(EventHandler(name="", event="e"))
    assert dao.event_handlers.get_all() == []


def test_unknown_event_returns_empty_list(dao: MetadataDAO) -> None:
    assert dao.event_handlers.get_for_event("nothing", False) == []


def _corrupt_handler(dao: MetadataDAO, name: str) -> None:
    dao.backend.put(dao.settings.event_handlers_table, name, "handler", "garbage")


def test_remove_deletes_undecodable_handler(dao: MetadataDAO) -> None:
    registry = dao.event_handlers
    registry.add(EventHandler(name="h", event="e"))
    _corrupt_handler(dao, "h")

    registry.remove("h")

    assert registry.get("h") is None
    assert registry.get_all() == []
    # index entry stays until reconciliation; listings skip it
    assert registry.index.entries() == {("e", "h"): False}
    assert registry.get_for_event("e", False) == []


def test_add_overwrites_undecodable_handler(dao: MetadataDAO) -> None:
    registry = dao.event_handlers
    _corrupt_handler(dao, "h")

    registry.add(EventHandler(name="h", event="e"))

    assert registry.get("h") == EventHandler(name="h", event="e")
    assert [h.name for h in registry.get_for_event("e", False)] == ["h"]


def test_readable_skips_undecodable_handlers(dao: MetadataDAO) -> None:
    registry = dao.event_handlers
    registry.add(EventHandler(name="a", event="e"))
    _corrupt_handler(dao, "b")

    assert [h.name for h in registry.readable()] == ["a"]
