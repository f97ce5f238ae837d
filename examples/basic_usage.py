#!/usr/bin/env python3
"""Programmatic workflow example.

This demonstrates using the engine components directly:

* load settings from `.env`
* define an invoice workflow with two nodes
* register nodes for the workflow inside one caller-owned unit of work
* apply an event and list the resulting notification intents
"""

from __future__ import annotations

import argparse
from typing import Sequence

from docflow.engine.config import DocflowSettings
from docflow.engine.errors import DuplicateError
from docflow.engine.logging import configure_logging
from docflow.engine.workflow import MailboxNotifier, NodeType, WorkflowRegistry

INVOICE = 1
DRAFT, SUBMITTED, APPROVED = 10, 20, 30
SUBMIT, APPROVE, REWORK = 1, 2, 3


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a tiny invoice workflow.")
    parser.add_argument("--name", default="acme.invoice", help="Workflow name")
    parser.add_argument(
        "--recipients",
        default="7",
        help='Comma-separated recipient group ids, e.g. "7,8"',
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    recipients = [int(g) for g in args.recipients.split(",") if g.strip()]

    settings = DocflowSettings()
    configure_logging(settings.log_level)

    store = settings.open_store()
    store.ensure_schema()
    registry = WorkflowRegistry(store)

    try:
        workflow = registry.get(registry.new(None, args.name, INVOICE, DRAFT))
    except DuplicateError:
        workflow = registry.get_by_name(args.name)
    else:
        uow = store.begin()
        try:
            registry.add_node(
                uow, INVOICE, DRAFT, workflow.id, "Draft", NodeType.BEGIN, {SUBMIT: SUBMITTED}
            )
            registry.add_node(
                uow,
                INVOICE,
                SUBMITTED,
                workflow.id,
                "Submitted",
                NodeType.BRANCH,
                {APPROVE: APPROVED, REWORK: DRAFT},
            )
        except Exception:
            uow.rollback()
            raise
        uow.commit()

    event = registry.events.get(registry.events.new(None, INVOICE, DRAFT, SUBMIT, "first draft"))
    new_state = workflow.apply_event(None, event, recipients)
    print(f"Event {event.id}: state {event.state} -> {new_state}")

    for intent in MailboxNotifier(store).list_for_event(event.id):
        print(f"  notify group {intent.group_id} (state {intent.state})")
    print(f"Persisted to: {settings.database_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
