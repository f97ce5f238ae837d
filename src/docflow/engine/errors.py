"""Error taxonomy of the workflow engine.

Every failure raised by the engine derives from :class:`DocflowError`, tagged
with a specific subclass so that callers (CLI, HTTP adapter, host services)
can tell business-rule rejections apart from infrastructure failures.
"""

from __future__ import annotations


class DocflowError(Exception):
    """Base exception for the workflow engine."""


class InvalidArgumentError(DocflowError, ValueError):
    """Malformed input, rejected before any storage access."""


class AlreadyAppliedError(DocflowError):
    """Raised when an event has already been applied."""

    def __init__(self, event_id: int) -> None:
        super().__init__(event_id)
        self.event_id = event_id

    def __str__(self) -> str:
        return f"Event {self.event_id} already applied; nothing to do"


class TypeMismatchError(DocflowError):
    """Two objects disagree about their document type."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(expected, actual)
        self.expected = expected
        self.actual = actual

    def __str__(self) -> str:
        return f"Document type mismatch: expected {self.expected}, got {self.actual}"


class NotFoundError(DocflowError, LookupError):
    """Referential lookup miss."""


class WorkflowNotFoundError(NotFoundError):
    pass


class NodeNotFoundError(NotFoundError):
    pass


class EventNotFoundError(NotFoundError):
    pass


class IllegalActionError(DocflowError):
    """The action is not enabled from the current state.

    This is an expected business outcome, not a system failure.
    """

    def __init__(self, doc_type: int, state: int, action: int) -> None:
        super().__init__(doc_type, state, action)
        self.doc_type = doc_type
        self.state = state
        self.action = action

    def __str__(self) -> str:
        return (
            f"Action {self.action} is not enabled from state {self.state} "
            f"of document type {self.doc_type}"
        )


class DuplicateError(DocflowError):
    """Uniqueness violation."""


class StoreError(DocflowError):
    """Transaction or connection failure in the underlying store."""
