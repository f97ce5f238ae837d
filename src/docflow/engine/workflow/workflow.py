from __future__ import annotations

import logging
from collections.abc import Iterable

from docflow.engine.errors import AlreadyAppliedError, InvalidArgumentError, TypeMismatchError
from docflow.engine.store import SQLiteStore, UnitOfWork, scoped_unit_of_work

from .models import DocEvent, DocStateID, DocTypeID, EventStatus, GroupID, WorkflowID
from .node import NodeStore

logger = logging.getLogger(__name__)


def _recipient_set(recipients: Iterable[GroupID] | None) -> list[GroupID]:
    message = f"Recipients should be a collection of group ids: {recipients!r}"
    if isinstance(recipients, (str, bytes)):
        raise InvalidArgumentError(message)
    try:
        groups = iter(recipients or ())
    except TypeError as e:
        raise InvalidArgumentError(message) from e
    seen: dict[GroupID, None] = {}
    for group in groups:
        try:
            seen.setdefault(int(group), None)
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError(f"Invalid recipient group: {group!r}") from e
    return list(seen)


class Workflow:
    """The life cycle of a single document type.

    A workflow begins with the creation of a document and drives its life
    cycle through responses to user actions or system events. Its topology
    is the graph formed by the nodes registered for its document type.

    Workflow names are globally unique; hierarchical names such as
    ``acme.invoice`` are recommended but not required.
    """

    def __init__(
        self,
        *,
        id: WorkflowID,
        name: str,
        doc_type: DocTypeID,
        begin_state: DocStateID,
        store: SQLiteStore,
        nodes: NodeStore,
    ) -> None:
        self._id = id
        self._name = name
        self._doc_type = doc_type
        self._begin_state = begin_state
        self._store = store
        self._nodes = nodes

    @property
    def id(self) -> WorkflowID:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @property
    def doc_type(self) -> DocTypeID:
        return self._doc_type

    @property
    def begin_state(self) -> DocStateID:
        return self._begin_state

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Workflow):
            return NotImplemented
        return (self._id, self._name, self._doc_type, self._begin_state) == (
            other._id,
            other._name,
            other._doc_type,
            other._begin_state,
        )

    def __hash__(self) -> int:
        return hash(self._id)

    def __repr__(self) -> str:
        return (
            f"Workflow(id={self._id}, name={self._name!r}, doc_type={self._doc_type}, "
            f"begin_state={self._begin_state})"
        )

    def apply_event(
        self,
        uow: UnitOfWork | None,
        event: DocEvent | None,
        recipients: Iterable[GroupID] | None,
    ) -> DocStateID:
        """Apply the event's action to the document and return the new state.

        One notification intent is recorded per recipient group. With a
        caller-supplied ``uow`` this call only participates in it; otherwise
        it runs in its own unit of work, committed on success and rolled back
        on failure.
        """

        if event is None:
            raise InvalidArgumentError("Event should be non-nil")
        groups = _recipient_set(recipients)
        if not groups:
            raise InvalidArgumentError("List of recipients should have length > 0")
        if event.status == EventStatus.APPLIED:
            raise AlreadyAppliedError(event.id)
        if event.doc_type != self._doc_type:
            raise TypeMismatchError(self._doc_type, event.doc_type)

        with scoped_unit_of_work(self._store, uow) as tx:
            node = self._nodes.get_by_state(self._doc_type, event.state, uow=tx)
            new_state = node.apply_event(tx, event, groups)

        logger.debug(
            "Workflow transition complete",
            extra={"workflow": self._name, "event_id": event.id, "to_state": new_state},
        )
        return new_state
