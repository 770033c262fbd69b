"""Event handler registry.

Handlers are stored by name in the primary table. The event index groups
handler names by event, with a copy of each handler's active flag so that
active-only listings can be filtered before any primary row is fetched.

Write order:
- ``add``: primary row, then index entry (then removal of the entry under a
  previous event, if the handler moved).
- ``remove``: index entry, then primary row.

Listings by event always re-read the primary rows and drop index entries that
no longer match them.
"""

from __future__ import annotations

import logging

from workflow_metadata.backend.base import Deadline, WideColumnBackend
from workflow_metadata.codec import JsonCodec
from workflow_metadata.config import MetadataSettings
from workflow_metadata.errors import CorruptRecord, InvalidDefinition
from workflow_metadata.indexes import EventIndex
from workflow_metadata.models import EventHandler

logger = logging.getLogger(__name__)

_HANDLER_COLUMN = "handler"


class EventHandlerRegistry:
    """CRUD for event handlers, with lookup by event."""

    def __init__(self, backend: WideColumnBackend, settings: MetadataSettings) -> None:
        self._backend = backend
        self._table = settings.event_handlers_table
        self._codec = JsonCodec(EventHandler)
        self.index = EventIndex(backend, settings.event_index_table)

    def add(self, handler: EventHandler, *, deadline: Deadline | None = None) -> None:
        """Store a handler, replacing any handler with the same name."""

        if not handler.name or not handler.name.strip():
            raise InvalidDefinition("Event handler name cannot be empty")

        try:
            previous = self.get(handler.name, deadline=deadline)
        except CorruptRecord:
            # Unknown previous event; reconciliation drops any entry it left behind.
            logger.warning(
                "Overwriting undecodable event handler", extra={"handler": handler.name}
            )
            previous = None

        self._backend.put(
            self._table,
            handler.name,
            _HANDLER_COLUMN,
            self._codec.encode(handler),
            deadline=deadline,
        )
        self.index.put(handler.event, handler.name, handler.active, deadline=deadline)

        if previous is not None and previous.event != handler.event:
            self.index.discard(previous.event, handler.name, deadline=deadline)
            logger.debug(
                "Event handler moved between events",
                extra={
                    "handler": handler.name,
                    "from_event": previous.event,
                    "to_event": handler.event,
                },
            )

        logger.info(
            "Event handler stored",
            extra={"handler": handler.name, "event": handler.event, "active": handler.active},
        )

    def update(self, handler: EventHandler, *, deadline: Deadline | None = None) -> None:
        self.add(handler, deadline=deadline)

    def get(self, name: str, *, deadline: Deadline | None = None) -> EventHandler | None:
        payload = self._backend.get(self._table, name, _HANDLER_COLUMN, deadline=deadline)
        if payload is None:
            return None
        return self._codec.decode(payload)

    def get_all(self, *, deadline: Deadline | None = None) -> list[EventHandler]:
        handlers = [
            self._codec.decode(payload)
            for _, column, payload in self._backend.scan(self._table, deadline=deadline)
            if column == _HANDLER_COLUMN
        ]
        handlers.sort(key=lambda h: h.name)
        return handlers

    def readable(self, *, deadline: Deadline | None = None) -> list[EventHandler]:
        """Like :meth:`get_all`, but skips rows whose payload does not decode."""

        handlers: list[EventHandler] = []
        for name, column, payload in self._backend.scan(self._table, deadline=deadline):
            if column != _HANDLER_COLUMN:
                continue
            try:
                handlers.append(self._codec.decode(payload))
            except CorruptRecord:
                logger.warning("Skipping undecodable event handler", extra={"handler": name})
        handlers.sort(key=lambda h: h.name)
        return handlers

    def get_for_event(
        self, event: str, active_only: bool, *, deadline: Deadline | None = None
    ) -> list[EventHandler]:
        """Return the handlers registered for ``event``, ordered by name."""

        handlers: list[EventHandler] = []
        for name, indexed_active in self.index.handlers(event, deadline=deadline).items():
            if active_only and not indexed_active:
                continue

            handler = self.get(name, deadline=deadline)
            if handler is None or handler.event != event:
                logger.warning(
                    "Skipping stale event index entry",
                    extra={"handler": name, "event": event},
                )
                continue
            if active_only and not handler.active:
                continue
            handlers.append(handler)
        return handlers

    def remove(self, name: str, *, deadline: Deadline | None = None) -> None:
        """Delete a handler. Removing an unknown handler is a no-op."""

        try:
            handler = self.get(name, deadline=deadline)
        except CorruptRecord:
            logger.warning(
                "Removing undecodable event handler; its index entry is left for reconciliation",
                extra={"handler": name},
            )
            self._backend.delete(self._table, name, _HANDLER_COLUMN, deadline=deadline)
            return
        if handler is None:
            logger.debug("Event handler already absent", extra={"handler": name})
            return

        self.index.discard(handler.event, name, deadline=deadline)
        self._backend.delete(self._table, name, _HANDLER_COLUMN, deadline=deadline)
        logger.info("Event handler removed", extra={"handler": name, "event": handler.event})
