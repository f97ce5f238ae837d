from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from docflow.engine.errors import IllegalActionError, NodeNotFoundError
from docflow.engine.store import SQLiteStore, UnitOfWork, scoped_unit_of_work

from .events import DocEventStore
from .models import DocEvent, DocStateID, DocTypeID, GroupID, NodeID, NodeType, WorkflowID
from .notifications import Notifier
from .transitions import TransitionTable

logger = logging.getLogger(__name__)


class Node:
    """Resolver of enabled actions for one (document type, state) pair."""

    def __init__(
        self,
        *,
        id: NodeID,
        doc_type: DocTypeID,
        state: DocStateID,
        workflow_id: WorkflowID,
        name: str,
        node_type: NodeType,
        transitions: TransitionTable,
        events: DocEventStore,
        notifier: Notifier,
    ) -> None:
        self._id = id
        self._doc_type = doc_type
        self._state = state
        self._workflow_id = workflow_id
        self._name = name
        self._node_type = node_type
        self._transitions = transitions
        self._events = events
        self._notifier = notifier

    @property
    def id(self) -> NodeID:
        return self._id

    @property
    def doc_type(self) -> DocTypeID:
        return self._doc_type

    @property
    def state(self) -> DocStateID:
        return self._state

    @property
    def workflow_id(self) -> WorkflowID:
        return self._workflow_id

    @property
    def name(self) -> str:
        return self._name

    @property
    def node_type(self) -> NodeType:
        return self._node_type

    @property
    def transitions(self) -> TransitionTable:
        return self._transitions

    def __repr__(self) -> str:
        return (
            f"Node(id={self._id}, doc_type={self._doc_type}, state={self._state}, "
            f"name={self._name!r}, type={self._node_type.value})"
        )

    def apply_event(
        self, uow: UnitOfWork, event: DocEvent, recipients: Sequence[GroupID]
    ) -> DocStateID:
        """Apply ``event`` inside ``uow`` and return the destination state.

        The status flip and the notification intents share the caller's unit
        of work; the caller decides whether they become durable.
        """

        to_state = self._transitions.resolve(event.action)
        if to_state is None:
            logger.info(
                "Action not enabled",
                extra={"event_id": event.id, "state": self._state, "action": event.action},
            )
            raise IllegalActionError(self._doc_type, self._state, event.action)

        self._events.mark_applied(uow, event)
        for group in recipients:
            self._notifier.post(uow, event, to_state, group)

        logger.info(
            "Event applied",
            extra={
                "event_id": event.id,
                "doc_type": self._doc_type,
                "from_state": self._state,
                "to_state": to_state,
                "recipients": len(recipients),
            },
        )
        return to_state


class NodeStore:
    """Lookup of node definitions, with their transition tables."""

    def __init__(self, store: SQLiteStore, events: DocEventStore, notifier: Notifier) -> None:
        self._store = store
        self._events = events
        self._notifier = notifier

    def _build(self, tx: UnitOfWork, row: dict[str, Any]) -> Node:
        q = """
        SELECT docaction_id, to_state_id
        FROM wf_docstate_transitions
        WHERE doctype_id = ? AND from_state_id = ?
        """
        edges = tx.query(q, (row["doctype_id"], row["docstate_id"]))
        return Node(
            id=row["id"],
            doc_type=row["doctype_id"],
            state=row["docstate_id"],
            workflow_id=row["workflow_id"],
            name=row["name"],
            node_type=NodeType(row["type"]),
            transitions=TransitionTable((e["docaction_id"], e["to_state_id"]) for e in edges),
            events=self._events,
            notifier=self._notifier,
        )

    def get_by_state(
        self, doc_type: DocTypeID, state: DocStateID, *, uow: UnitOfWork | None = None
    ) -> Node:
        q = """
        SELECT id, doctype_id, docstate_id, workflow_id, name, type
        FROM wf_workflow_nodes
        WHERE doctype_id = ? AND docstate_id = ?
        """
        with scoped_unit_of_work(self._store, uow, immediate=False) as tx:
            rows = tx.query(q, (doc_type, state))
            if not rows:
                raise NodeNotFoundError(
                    f"No node for document type {doc_type} in state {state}"
                )
            return self._build(tx, rows[0])

    def get(self, node_id: NodeID, *, uow: UnitOfWork | None = None) -> Node:
        q = """
        SELECT id, doctype_id, docstate_id, workflow_id, name, type
        FROM wf_workflow_nodes
        WHERE id = ?
        """
        with scoped_unit_of_work(self._store, uow, immediate=False) as tx:
            rows = tx.query(q, (node_id,))
            if not rows:
                raise NodeNotFoundError(f"Node {node_id} not found")
            return self._build(tx, rows[0])

    def list_for_workflow(
        self, workflow_id: WorkflowID, *, uow: UnitOfWork | None = None
    ) -> list[Node]:
        q = """
        SELECT id, doctype_id, docstate_id, workflow_id, name, type
        FROM wf_workflow_nodes
        WHERE workflow_id = ?
        ORDER BY id
        """
        with scoped_unit_of_work(self._store, uow, immediate=False) as tx:
            rows = tx.query(q, (workflow_id,))
            return [self._build(tx, row) for row in rows]
