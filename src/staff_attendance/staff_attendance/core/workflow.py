from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Mapping, TypeVar

from .exceptions import InvalidTransition

S = TypeVar("S", bound=Enum)


@dataclass(frozen=True)
class ApprovalWorkflow(Generic[S]):
    """Tagged state + allowed-transition table shared by every approval flow.

    ``transitions`` maps ``(current_state, action)`` to the next state. Anything
    not in the table is an invalid transition, which keeps the leave, expense
    and comp-off state machines declared in one shape.
    """

    name: str
    transitions: Mapping[tuple[S, str], S]

    def can(self, current: S, action: str) -> bool:
        return (current, action) in self.transitions

    def next_state(self, current: S, action: str) -> S:
        try:
            return self.transitions[(current, action)]
        except KeyError:
            raise InvalidTransition(
                f"Cannot {action} {self.name} in status '{current.value}'"
            ) from None

    def actions_from(self, current: S) -> list[str]:
        return sorted(action for (state, action) in self.transitions if state == current)

    def is_terminal(self, state: S) -> bool:
        return not self.actions_from(state)
