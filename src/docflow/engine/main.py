"""CLI entrypoint for the workflow engine.

Administrative commands (workflows, nodes) plus event creation and
application against the configured SQLite database. Results are printed as
JSON on stdout.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from pydantic import ValidationError

from docflow import __version__
from docflow.engine.config import DocflowSettings
from docflow.engine.errors import (
    AlreadyAppliedError,
    DuplicateError,
    IllegalActionError,
    InvalidArgumentError,
    NotFoundError,
    StoreError,
    TypeMismatchError,
)
from docflow.engine.logging import configure_logging
from docflow.engine.workflow import MailboxNotifier, NodeType, Workflow, WorkflowRegistry

logger = logging.getLogger(__name__)

# Exit codes are designed to be CI-friendly.
EXIT_OK = 0
EXIT_STORE = 1
EXIT_INVALID = 2
EXIT_NOT_FOUND = 3
EXIT_REJECTED = 4
EXIT_DUPLICATE = 5


def _parse_transitions(value: str) -> list[tuple[int, int]]:
    """Parse ``"1=20,2=30"`` into ``[(1, 20), (2, 30)]``."""

    pairs: list[tuple[int, int]] = []
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        action, sep, to_state = part.partition("=")
        if not sep:
            raise argparse.ArgumentTypeError(f"Expected ACTION=STATE, got {part!r}")
        try:
            pairs.append((int(action), int(to_state)))
        except ValueError as e:
            raise argparse.ArgumentTypeError(f"Expected integers in {part!r}") from e
    return pairs


def _parse_groups(value: str) -> list[int]:
    try:
        return [int(p) for p in value.split(",") if p.strip()]
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Expected group ids, got {value!r}") from e


def _workflow_json(w: Workflow) -> dict[str, object]:
    return {"id": w.id, "name": w.name, "doc_type": w.doc_type, "begin_state": w.begin_state}


def _emit(payload: object) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docflow",
        description="Document workflow engine",
    )
    parser.add_argument("--version", action="version", version=f"docflow {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create the engine tables if missing")

    new_workflow = subparsers.add_parser("new-workflow", help="Create a workflow definition")
    new_workflow.add_argument("--name", required=True, help="Globally-unique workflow name")
    new_workflow.add_argument("--doc-type", type=int, required=True, help="Document type id")
    new_workflow.add_argument("--begin-state", type=int, required=True, help="Begin state id")

    list_workflows = subparsers.add_parser("list-workflows", help="List workflow definitions")
    list_workflows.add_argument(
        "--offset", type=int, default=0, help="Smallest workflow id to include"
    )
    list_workflows.add_argument(
        "--limit", type=int, default=0, help="Maximum number of workflows (0 = all)"
    )

    get_workflow = subparsers.add_parser("get-workflow", help="Show a workflow and its nodes")
    get_workflow.add_argument("workflow_id", type=int)

    add_node = subparsers.add_parser("add-node", help="Register a node with its transitions")
    add_node.add_argument("--workflow-id", type=int, required=True)
    add_node.add_argument("--doc-type", type=int, required=True)
    add_node.add_argument("--state", type=int, required=True, help="State governed by the node")
    add_node.add_argument("--name", required=True)
    add_node.add_argument(
        "--type",
        dest="node_type",
        choices=[t.value for t in NodeType],
        default=NodeType.LINEAR.value,
    )
    add_node.add_argument(
        "--transitions",
        type=_parse_transitions,
        required=True,
        help="Comma-separated ACTION=STATE pairs, e.g. '1=20,2=30'",
    )

    new_event = subparsers.add_parser("new-event", help="Record a document event")
    new_event.add_argument("--doc-type", type=int, required=True)
    new_event.add_argument("--state", type=int, required=True)
    new_event.add_argument("--action", type=int, required=True)
    new_event.add_argument("--text", default="", help="Optional note")

    apply_event = subparsers.add_parser("apply-event", help="Apply an event through a workflow")
    apply_event.add_argument("--workflow-id", type=int, required=True)
    apply_event.add_argument("--event-id", type=int, required=True)
    apply_event.add_argument(
        "--recipients",
        type=_parse_groups,
        required=True,
        help="Comma-separated recipient group ids",
    )

    notifications = subparsers.add_parser(
        "notifications", help="List notification intents recorded for an event"
    )
    notifications.add_argument("event_id", type=int)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = DocflowSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return EXIT_INVALID

    configure_logging(settings.log_level)
    store = settings.open_store()

    try:
        store.ensure_schema()
        if args.command == "init-db":
            _emit({"database": str(store.db_path)})
            return EXIT_OK

        registry = WorkflowRegistry(store)

        if args.command == "new-workflow":
            wid = registry.new(None, args.name, args.doc_type, args.begin_state)
            _emit(_workflow_json(registry.get(wid)))
            return EXIT_OK

        if args.command == "list-workflows":
            _emit([_workflow_json(w) for w in registry.list(args.offset, args.limit)])
            return EXIT_OK

        if args.command == "get-workflow":
            workflow = registry.get(args.workflow_id)
            payload = _workflow_json(workflow)
            payload["nodes"] = [
                {
                    "id": n.id,
                    "name": n.name,
                    "state": n.state,
                    "type": n.node_type.value,
                    "transitions": {str(a): s for a, s in sorted(n.transitions.items())},
                }
                for n in registry.nodes(workflow.id)
            ]
            _emit(payload)
            return EXIT_OK

        if args.command == "add-node":
            nid = registry.add_node(
                None,
                args.doc_type,
                args.state,
                args.workflow_id,
                args.name,
                NodeType(args.node_type),
                args.transitions,
            )
            _emit({"node_id": nid})
            return EXIT_OK

        if args.command == "new-event":
            eid = registry.events.new(None, args.doc_type, args.state, args.action, args.text)
            _emit(registry.events.get(eid).model_dump(mode="json"))
            return EXIT_OK

        if args.command == "apply-event":
            workflow = registry.get(args.workflow_id)
            event = registry.events.get(args.event_id)
            new_state = workflow.apply_event(None, event, args.recipients)
            _emit({"event_id": event.id, "from_state": event.state, "to_state": new_state})
            return EXIT_OK

        if args.command == "notifications":
            registry.events.get(args.event_id)
            intents = MailboxNotifier(store).list_for_event(args.event_id)
            _emit([i.model_dump(mode="json") for i in intents])
            return EXIT_OK

        logger.error("Unknown command", extra={"command": args.command})
        return EXIT_INVALID

    except InvalidArgumentError as e:
        print(str(e), file=sys.stderr)
        return EXIT_INVALID

    except NotFoundError as e:
        print(str(e), file=sys.stderr)
        return EXIT_NOT_FOUND

    except (IllegalActionError, AlreadyAppliedError, TypeMismatchError) as e:
        logger.warning(str(e), extra={"command": args.command})
        print(str(e), file=sys.stderr)
        return EXIT_REJECTED

    except DuplicateError as e:
        print(str(e), file=sys.stderr)
        return EXIT_DUPLICATE

    except StoreError:
        logger.exception("Store failure")
        return EXIT_STORE

    except Exception:
        logger.exception("Command failed")
        return EXIT_STORE


if __name__ == "__main__":
    raise SystemExit(main())
