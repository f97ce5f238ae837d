"""Notification hand-off after a successful transition.

The engine's only contract with notification delivery is that exactly one
intent per recipient group is handed off inside the same unit of work as the
state mutation. Delivery itself happens elsewhere.
"""

from __future__ import annotations

import logging
from typing import Protocol

from docflow.engine.store import SQLiteStore, UnitOfWork, scoped_unit_of_work

from .models import DocEvent, DocEventID, DocStateID, GroupID, NotificationIntent, utc_iso_now

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def post(self, uow: UnitOfWork, event: DocEvent, state: DocStateID, group: GroupID) -> None: ...


class MailboxNotifier:
    """Records notification intents in the ``wf_notifications`` table."""

    def __init__(self, store: SQLiteStore) -> None:
        self._store = store

    def post(self, uow: UnitOfWork, event: DocEvent, state: DocStateID, group: GroupID) -> None:
        q = """
        INSERT INTO wf_notifications(event_id, group_id, docstate_id, ctime)
        VALUES(?, ?, ?, ?)
        """
        uow.execute(q, (event.id, group, state, utc_iso_now()))
        logger.debug(
            "Notification intent recorded",
            extra={"event_id": event.id, "group_id": group, "state": state},
        )

    def list_for_event(
        self, event_id: DocEventID, *, uow: UnitOfWork | None = None
    ) -> list[NotificationIntent]:
        q = """
        SELECT id, event_id, group_id, docstate_id, ctime
        FROM wf_notifications
        WHERE event_id = ?
        ORDER BY id
        """
        with scoped_unit_of_work(self._store, uow, immediate=False) as tx:
            rows = tx.query(q, (event_id,))
        return [
            NotificationIntent(
                id=row["id"],
                event_id=row["event_id"],
                group_id=row["group_id"],
                state=row["docstate_id"],
                created_at=row["ctime"],
            )
            for row in rows
        ]
