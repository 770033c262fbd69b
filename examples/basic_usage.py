#!/usr/bin/env python3
"""Programmatic usage example.

This demonstrates using the metadata stores directly:

* load settings from `.env`
* register two versions of a workflow and resolve the latest
* register event handlers and list the active ones for an event

Data is persisted under `METADATA_STORAGE_PATH` (default `metadata_state/`).
"""

from __future__ import annotations

import argparse
from typing import Sequence

from workflow_metadata.config import MetadataSettings
from workflow_metadata.dao import MetadataDAO
from workflow_metadata.errors import AlreadyExists
from workflow_metadata.logging import configure_logging
from workflow_metadata.models import EventHandler, WorkflowDef


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Register example metadata.")
    parser.add_argument("--workflow", default="example_workflow", help="Workflow name")
    parser.add_argument("--event", default="example:event", help="Event name for the handlers")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = MetadataSettings()
    configure_logging(settings.log_level)
    dao = MetadataDAO.from_settings(settings)

    for version in (1, 2):
        try:
            dao.workflow_defs.create(
                WorkflowDef(name=args.workflow, version=version, owner_email="dev@example.com")
            )
        except AlreadyExists as e:
            print(e)

    latest = dao.workflow_defs.get_latest(args.workflow)
    print(f"Latest version of {args.workflow}: {latest.version if latest else 'none'}")

    dao.event_handlers.add(EventHandler(name="notify", event=args.event, active=True))
    dao.event_handlers.add(EventHandler(name="audit", event=args.event, active=False))

    active = dao.event_handlers.get_for_event(args.event, True)
    print(f"Active handlers for {args.event}: {[h.name for h in active]}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
