"""CLI entrypoint for inspecting and repairing a metadata store.

Operates on the file backend configured by ``METADATA_STORAGE_PATH``.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Sequence

from pydantic import BaseModel, ValidationError

from workflow_metadata import __version__
from workflow_metadata.config import MetadataSettings
from workflow_metadata.dao import MetadataDAO
from workflow_metadata.errors import NotFound, StorageUnavailable
from workflow_metadata.logging import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="metadata-store",
        description="Inspect and repair workflow metadata",
    )
    parser.add_argument(
        "--version", action="version", version=f"workflow-metadata-store {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list-workflows", help="List every workflow definition")
    subparsers.add_parser(
        "list-latest", help="List the latest version of every workflow definition"
    )

    get_workflow = subparsers.add_parser("get-workflow", help="Print one workflow definition")
    get_workflow.add_argument("--name", required=True, help="Workflow name")
    get_workflow.add_argument(
        "--version",
        dest="workflow_version",
        type=int,
        default=None,
        help="Version to fetch (defaults to the latest)",
    )

    remove_workflow = subparsers.add_parser(
        "remove-workflow", help="Remove one version of a workflow definition"
    )
    remove_workflow.add_argument("--name", required=True, help="Workflow name")
    remove_workflow.add_argument(
        "--version", dest="workflow_version", type=int, required=True, help="Version to remove"
    )

    subparsers.add_parser("list-tasks", help="List every task definition")

    list_handlers = subparsers.add_parser("list-handlers", help="List event handlers")
    list_handlers.add_argument(
        "--event", default=None, help="Only list handlers registered for this event"
    )
    list_handlers.add_argument(
        "--active-only",
        action="store_true",
        help="With --event, only list active handlers",
    )

    subparsers.add_parser(
        "reconcile", help="Rebuild version, latest-version and event indexes from primary rows"
    )

    return parser


def _print_records(records: Sequence[BaseModel]) -> None:
    payload = [r.model_dump(mode="json") for r in records]
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _run(args: argparse.Namespace, dao: MetadataDAO) -> int:
    if args.command == "list-workflows":
        _print_records(dao.workflow_defs.get_all())
        return 0

    if args.command == "list-latest":
        _print_records(dao.workflow_defs.get_all_latest())
        return 0

    if args.command == "get-workflow":
        if args.workflow_version is None:
            found = dao.workflow_defs.get_latest(args.name)
        else:
            found = dao.workflow_defs.get(args.name, args.workflow_version)
        if found is None:
            raise NotFound(f"Workflow not found: {args.name}")
        print(found.model_dump_json(indent=2))
        return 0

    if args.command == "remove-workflow":
        dao.workflow_defs.remove(args.name, args.workflow_version)
        print(f"Removed workflow {args.name} version {args.workflow_version}")
        return 0

    if args.command == "list-tasks":
        _print_records(dao.task_defs.get_all())
        return 0

    if args.command == "list-handlers":
        if args.event is None:
            _print_records(dao.event_handlers.get_all())
        else:
            _print_records(dao.event_handlers.get_for_event(args.event, args.active_only))
        return 0

    if args.command == "reconcile":
        report = dao.reconciler.reconcile_all()
        print(
            "Reconciled: "
            f"{report.version_entries_added} version entries added, "
            f"{report.version_entries_removed} removed, "
            f"{report.latest_pointers_fixed} latest pointers fixed, "
            f"{report.event_entries_written} event entries written, "
            f"{report.event_entries_removed} removed"
        )
        return 0

    logger.error("Unknown command", extra={"command": args.command})
    return 2


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = MetadataSettings()
    except ValidationError as e:
        # Logging isn't configured yet.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    try:
        return _run(args, MetadataDAO.from_settings(settings))
    except NotFound as e:
        print(str(e), file=sys.stderr)
        return 3
    except StorageUnavailable as e:
        logger.error("Storage unavailable", extra={"error": str(e)})
        print(f"Storage unavailable: {e}", file=sys.stderr)
        return 4
    except Exception:
        logger.exception("Command failed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
