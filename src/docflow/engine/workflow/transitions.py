from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass

from docflow.engine.errors import DuplicateError, InvalidArgumentError

from .models import DocActionID, DocStateID, DocTypeID


@dataclass(frozen=True, slots=True)
class Transition:
    """One directed edge of a document type's state graph."""

    doc_type: DocTypeID
    from_state: DocStateID
    action: DocActionID
    to_state: DocStateID


class TransitionTable(Mapping[DocActionID, DocStateID]):
    """Partial function from action to destination state for one source state.

    Built either from a mapping or from ``(action, to_state)`` pairs; a pair
    list that names the same action twice is rejected, so an action never
    resolves to more than one destination.
    """

    __slots__ = ("_table",)

    def __init__(
        self,
        transitions: Mapping[DocActionID, DocStateID] | Iterable[tuple[DocActionID, DocStateID]],
    ) -> None:
        pairs = transitions.items() if isinstance(transitions, Mapping) else transitions
        table: dict[DocActionID, DocStateID] = {}
        try:
            for action, to_state in pairs:
                action, to_state = int(action), int(to_state)
                if action in table:
                    raise DuplicateError(f"Duplicate transition for action {action}")
                table[action] = to_state
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError(f"Malformed transitions: {transitions!r}") from e
        self._table = table

    def __getitem__(self, action: DocActionID) -> DocStateID:
        return self._table[action]

    def __iter__(self) -> Iterator[DocActionID]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def __repr__(self) -> str:
        return f"TransitionTable({self._table!r})"

    def resolve(self, action: DocActionID) -> DocStateID | None:
        return self._table.get(action)

    def edges(self, doc_type: DocTypeID, from_state: DocStateID) -> list[Transition]:
        return [
            Transition(doc_type=doc_type, from_state=from_state, action=a, to_state=s)
            for a, s in sorted(self._table.items())
        ]


def require_non_empty(table: TransitionTable) -> TransitionTable:
    if not table:
        raise InvalidArgumentError("Transitions map should have length > 0")
    return table
