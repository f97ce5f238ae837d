"""Administration of workflow definitions.

The registry is a plain service object: construct it once around a store and
pass it to whoever needs it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from docflow.engine.errors import (
    InvalidArgumentError,
    StoreError,
    TypeMismatchError,
    WorkflowNotFoundError,
)
from docflow.engine.store import SQLiteStore, UnitOfWork, scoped_unit_of_work

from .events import DocEventStore
from .models import DocActionID, DocStateID, DocTypeID, NodeID, NodeType, WorkflowID
from .node import Node, NodeStore
from .notifications import MailboxNotifier, Notifier
from .transitions import TransitionTable, require_non_empty
from .workflow import Workflow

logger = logging.getLogger(__name__)

# SQLite reads a negative LIMIT as "no limit".
_UNBOUNDED = -1


class WorkflowRegistry:
    """Create, list and fetch workflows; register their nodes."""

    def __init__(self, store: SQLiteStore, *, notifier: Notifier | None = None) -> None:
        self._store = store
        self.events = DocEventStore(store)
        self.notifier: Notifier = notifier if notifier is not None else MailboxNotifier(store)
        self.node_store = NodeStore(store, self.events, self.notifier)

    @property
    def store(self) -> SQLiteStore:
        return self._store

    def _to_workflow(self, row: dict[str, Any]) -> Workflow:
        return Workflow(
            id=row["id"],
            name=row["name"],
            doc_type=row["doctype_id"],
            begin_state=row["docstate_id"],
            store=self._store,
            nodes=self.node_store,
        )

    def new(
        self, uow: UnitOfWork | None, name: str, doc_type: DocTypeID, begin_state: DocStateID
    ) -> WorkflowID:
        """Create a workflow definition.

        ``name`` must be globally unique; a collision raises DuplicateError.
        """

        name = (name or "").strip()
        if not name:
            raise InvalidArgumentError("Name should not be empty")

        q = """
        INSERT INTO wf_workflows(name, doctype_id, docstate_id)
        VALUES(?, ?, ?)
        """
        with scoped_unit_of_work(self._store, uow) as tx:
            res = tx.execute(q, (name, doc_type, begin_state))
        if res.lastrowid is None:
            raise StoreError("Insert did not yield a workflow id")

        logger.info(
            "Workflow created",
            extra={"workflow_id": res.lastrowid, "workflow": name, "doc_type": doc_type},
        )
        return res.lastrowid

    def list(self, offset: int = 0, limit: int = 0) -> list[Workflow]:
        """Answer workflows in ascending id order.

        ``offset`` is the smallest id to include (an id lower bound, not a
        number of rows to skip); ``limit`` caps the result size, with ``0``
        meaning no cap.
        """

        if offset < 0 or limit < 0:
            raise InvalidArgumentError("Offset and limit must be non-negative integers")

        q = """
        SELECT id, name, doctype_id, docstate_id
        FROM wf_workflows
        WHERE id >= ?
        ORDER BY id
        LIMIT ?
        """
        with scoped_unit_of_work(self._store, immediate=False) as tx:
            rows = tx.query(q, (offset, limit or _UNBOUNDED))
        return [self._to_workflow(row) for row in rows]

    def get(self, workflow_id: WorkflowID, *, uow: UnitOfWork | None = None) -> Workflow:
        """Fetch the primary information of a workflow.

        Its nodes are fetched separately, through :meth:`nodes`.
        """

        q = """
        SELECT id, name, doctype_id, docstate_id
        FROM wf_workflows
        WHERE id = ?
        """
        with scoped_unit_of_work(self._store, uow, immediate=False) as tx:
            rows = tx.query(q, (workflow_id,))
        if not rows:
            raise WorkflowNotFoundError(f"Workflow {workflow_id} not found")
        return self._to_workflow(rows[0])

    def get_by_name(self, name: str) -> Workflow:
        q = """
        SELECT id, name, doctype_id, docstate_id
        FROM wf_workflows
        WHERE name = ?
        """
        with scoped_unit_of_work(self._store, immediate=False) as tx:
            rows = tx.query(q, ((name or "").strip(),))
        if not rows:
            raise WorkflowNotFoundError(f"Workflow {name!r} not found")
        return self._to_workflow(rows[0])

    def nodes(self, workflow_id: WorkflowID) -> list[Node]:
        """Answer the nodes registered for a workflow, in id order."""

        with scoped_unit_of_work(self._store, immediate=False) as tx:
            self.get(workflow_id, uow=tx)
            return self.node_store.list_for_workflow(workflow_id, uow=tx)

    def add_node(
        self,
        uow: UnitOfWork | None,
        doc_type: DocTypeID,
        state: DocStateID,
        workflow_id: WorkflowID,
        name: str,
        node_type: NodeType,
        transitions: Mapping[DocActionID, DocStateID] | Iterable[tuple[DocActionID, DocStateID]],
    ) -> NodeID:
        """Map a document state to a new node, with its transitions.

        The node row and every transition row are written in one unit of
        work: if any insert fails, none of them persist.
        """

        name = (name or "").strip()
        if not name:
            raise InvalidArgumentError("Name should not be empty")
        table = require_non_empty(TransitionTable(transitions or {}))
        try:
            node_type = NodeType(node_type)
        except ValueError as e:
            raise InvalidArgumentError(f"Unknown node type: {node_type!r}") from e

        with scoped_unit_of_work(self._store, uow) as tx:
            workflow = self.get(workflow_id, uow=tx)
            if workflow.doc_type != doc_type:
                raise TypeMismatchError(workflow.doc_type, doc_type)

            q = """
            INSERT INTO wf_workflow_nodes(doctype_id, docstate_id, workflow_id, name, type)
            VALUES(?, ?, ?, ?, ?)
            """
            res = tx.execute(q, (doc_type, state, workflow_id, name, node_type.value))
            if res.lastrowid is None:
                raise StoreError("Insert did not yield a node id")

            q = """
            INSERT INTO wf_docstate_transitions(
                doctype_id, from_state_id, docaction_id, to_state_id
            )
            VALUES(?, ?, ?, ?)
            """
            for edge in table.edges(doc_type, state):
                tx.execute(q, (edge.doc_type, edge.from_state, edge.action, edge.to_state))

        logger.info(
            "Node added",
            extra={
                "node_id": res.lastrowid,
                "workflow_id": workflow_id,
                "doc_type": doc_type,
                "state": state,
                "transitions": len(table),
            },
        )
        return res.lastrowid
