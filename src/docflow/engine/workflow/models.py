"""Records of the workflow data model.

Identifiers are opaque integers; the aliases below only document intent.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

DocTypeID = int
DocStateID = int
DocActionID = int
DocEventID = int
WorkflowID = int
NodeID = int
GroupID = int


class EventStatus(str, Enum):
    CREATED = "created"
    APPLIED = "applied"


class NodeType(str, Enum):
    """Tag describing a node's position in the graph.

    The engine never interprets it; it is kept for the benefit of tooling
    that renders or audits workflows.
    """

    BEGIN = "begin"
    LINEAR = "linear"
    BRANCH = "branch"
    JOIN_ANY = "joinany"
    JOIN_ALL = "joinall"
    END = "end"


def utc_iso_now() -> str:
    return datetime.now(tz=UTC).isoformat()


class DocEvent(BaseModel):
    """A discrete trigger proposed for application to a document.

    Instances are snapshots: applying an event does not mutate the caller's
    copy. Re-read it from the event store to observe the new status.
    """

    model_config = ConfigDict(frozen=True)

    id: DocEventID
    doc_type: DocTypeID
    state: DocStateID
    action: DocActionID
    status: EventStatus = EventStatus.CREATED
    text: str = Field(default="")
    created_at: str = Field(default_factory=utc_iso_now)


class NotificationIntent(BaseModel):
    """Hand-off record for one recipient group after a transition."""

    model_config = ConfigDict(frozen=True)

    id: int
    event_id: DocEventID
    group_id: GroupID
    state: DocStateID
    created_at: str
