"""Creation and retrieval of document events.

Events are produced upstream of the transition engine and retained as audit
records once applied; this store never deletes them.
"""

from __future__ import annotations

import logging
from typing import Any

from docflow.engine.errors import (
    AlreadyAppliedError,
    EventNotFoundError,
    IllegalActionError,
    StoreError,
    TypeMismatchError,
)
from docflow.engine.store import SQLiteStore, UnitOfWork, scoped_unit_of_work

from .models import (
    DocActionID,
    DocEvent,
    DocEventID,
    DocStateID,
    DocTypeID,
    EventStatus,
    utc_iso_now,
)

logger = logging.getLogger(__name__)


def _row_to_event(row: dict[str, Any]) -> DocEvent:
    return DocEvent(
        id=row["id"],
        doc_type=row["doctype_id"],
        state=row["docstate_id"],
        action=row["docaction_id"],
        status=EventStatus(row["status"]),
        text=row["text"],
        created_at=row["ctime"],
    )


class DocEventStore:
    def __init__(self, store: SQLiteStore) -> None:
        self._store = store

    def new(
        self,
        uow: UnitOfWork | None,
        doc_type: DocTypeID,
        state: DocStateID,
        action: DocActionID,
        text: str = "",
    ) -> DocEventID:
        q = """
        INSERT INTO wf_docevents(doctype_id, docstate_id, docaction_id, text, status, ctime)
        VALUES(?, ?, ?, ?, ?, ?)
        """
        with scoped_unit_of_work(self._store, uow) as tx:
            res = tx.execute(
                q,
                (
                    doc_type,
                    state,
                    action,
                    (text or "").strip(),
                    EventStatus.CREATED.value,
                    utc_iso_now(),
                ),
            )
        if res.lastrowid is None:
            raise StoreError("Insert did not yield an event id")
        logger.debug("Event created", extra={"event_id": res.lastrowid, "doc_type": doc_type})
        return res.lastrowid

    def get(self, event_id: DocEventID, *, uow: UnitOfWork | None = None) -> DocEvent:
        q = """
        SELECT id, doctype_id, docstate_id, docaction_id, text, status, ctime
        FROM wf_docevents
        WHERE id = ?
        """
        with scoped_unit_of_work(self._store, uow, immediate=False) as tx:
            rows = tx.query(q, (event_id,))
        if not rows:
            raise EventNotFoundError(f"Event {event_id} not found")
        return _row_to_event(rows[0])

    def mark_applied(self, uow: UnitOfWork, event: DocEvent) -> None:
        """Flip the stored status from Created to Applied.

        The update only matches a row still in the Created state whose stored
        document type, state and action agree with ``event``. That makes the
        flip the at-most-once guard for concurrent appliers, and keeps a stale
        or forged copy from consuming a different stored event.
        """

        q = """
        UPDATE wf_docevents
        SET status = ?
        WHERE id = ? AND status = ?
          AND doctype_id = ? AND docstate_id = ? AND docaction_id = ?
        """
        res = uow.execute(
            q,
            (
                EventStatus.APPLIED.value,
                event.id,
                EventStatus.CREATED.value,
                event.doc_type,
                event.state,
                event.action,
            ),
        )
        if res.rowcount == 1:
            return

        stored = self.get(event.id, uow=uow)
        if stored.doc_type != event.doc_type:
            raise TypeMismatchError(event.doc_type, stored.doc_type)
        if stored.state != event.state or stored.action != event.action:
            raise IllegalActionError(stored.doc_type, stored.state, stored.action)
        raise AlreadyAppliedError(event.id)
