"""
Canonical workflow types (``wholesale_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for entity state machines.  Used by the purchasing and
sales modules so that Guard, Transition, and Workflow are defined once.
Entities consult their module's ``Workflow`` before moving state and raise
their own typed ``IllegalStateError`` when no transition matches.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states have no outgoing transitions except those explicitly
  declared as reversals.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Contract: frozen, descriptive only.
    Non-goals: does not evaluate the condition -- the owning entity does.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow.

    Contract: frozen.  ``reverts=True`` marks an explicit backward move that
    needs its own authorizing operation.
    """
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None
    reverts: bool = False


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for an entity lifecycle.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    Guarantees: ``initial_state`` is a member of ``states``; only
    ``reverts=True`` transitions leave a state in ``terminal_states``.
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
                f"Workflow {self.name}: initial_state {self.initial_state!r} "
                f"is not one of {self.states}"
            )
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"Workflow {self.name}: transition {t.action!r} "
                    f"references unknown state ({t.from_state} -> {t.to_state})"
                )
        for state in self.terminal_states:
            if state not in self.states:
                raise ValueError(
                    f"Workflow {self.name}: terminal state {state!r} "
                    f"is not one of {self.states}"
                )
        for t in self.transitions:
            if t.from_state in self.terminal_states and not t.reverts:
                raise ValueError(
                    f"Workflow {self.name}: transition {t.action!r} leaves "
                    f"terminal state {t.from_state!r} without reverts=True"
                )

    def find_transition(self, from_state: str, action: str) -> Transition | None:
        """Return the transition for ``action`` out of ``from_state``, if any."""
        for t in self.transitions:
            if t.from_state == from_state and t.action == action:
                return t
        return None

    def permits(self, from_state: str, to_state: str, action: str) -> bool:
        """True when ``action`` may move ``from_state`` to ``to_state``."""
        if from_state == to_state:
            return True
        t = self.find_transition_to(from_state, to_state, action)
        return t is not None

    def find_transition_to(
        self, from_state: str, to_state: str, action: str
    ) -> Transition | None:
        for t in self.transitions:
            if (
                t.from_state == from_state
                and t.to_state == to_state
                and t.action == action
            ):
                return t
        return None

    def actions_from(self, state: str) -> tuple[str, ...]:
        return tuple(t.action for t in self.transitions if t.from_state == state)
