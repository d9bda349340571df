"""
Workflow primitives -- declarative document lifecycles.

Responsibility:
    Frozen definitions of guards, transitions and workflows used by the
    settlement modules (verification records, payment requests, supplier
    statements, invoice authenticity).  ``Workflow.require`` is the single
    place where an action is checked against the current state.

Architecture position:
    Kernel > Domain -- pure, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from settlement_kernel.exceptions import InvalidTransitionError


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Contract: frozen, descriptive only.
    Non-goals: does not evaluate the condition -- the owning service does.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow.

    ``requires_approval=True`` marks transitions that need an out-of-band
    approval confirmation from the caller.
    """
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None
    requires_approval: bool = False


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    ``terminal_states`` have no outgoing transitions.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"Workflow {self.name}: initial state {self.initial_state} not in states"
            )
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"Workflow {self.name}: transition {t.action} references unknown state"
                )
            if t.from_state in self.terminal_states:
                raise ValueError(
                    f"Workflow {self.name}: terminal state {t.from_state} has outgoing transition"
                )

    def find(self, current_state: str, action: str) -> Transition | None:
        """Return the transition for ``action`` from ``current_state``, if any."""
        for t in self.transitions:
            if t.from_state == current_state and t.action == action:
                return t
        return None

    def actions_from(self, current_state: str) -> tuple[str, ...]:
        """Actions available from a state."""
        return tuple(t.action for t in self.transitions if t.from_state == current_state)

    def require(
        self,
        current_state: str,
        action: str,
        entity_type: str,
        entity_id: Any,
    ) -> Transition:
        """
        Return the transition or raise.

        Raises:
            InvalidTransitionError: If ``action`` is not allowed from
                ``current_state``.
        """
        transition = self.find(current_state, action)
        if transition is None:
            raise InvalidTransitionError(entity_type, entity_id, current_state, action)
        return transition
