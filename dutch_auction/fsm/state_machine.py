"""
Table-Driven State Machine
==========================

Transitions are data, not control flow:

    TRANSITIONS = {(state, event): next_state, ...}

Each state has one handler. A call to step() runs the current state's
handler once:

    handler returns an event  -> look up (state, event), move on
    handler returns None      -> suspended, waiting for a message
    current state is terminal -> handler runs once, machine is finished
                                 (its return value is ignored)

TERMINATION GUARANTEE:
- Terminal states have NO outgoing transitions
- A pair missing from the table is an error, never a silent stay
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, ClassVar, Dict, FrozenSet, List, Optional, Tuple

from ..errors import InvalidTransition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transition:
    """One recorded move of a state machine."""
    source: Enum
    event: Enum
    target: Enum


class StateMachine:
    """
    Base class for the auction state machines.

    Subclasses define INITIAL, TERMINAL and TRANSITIONS, and implement
    `_handlers()` returning a handler per state.
    """

    INITIAL: ClassVar[Enum]
    TERMINAL: ClassVar[FrozenSet[Enum]]
    TRANSITIONS: ClassVar[Dict[Tuple[Enum, Enum], Enum]]

    def __init__(self):
        self.state = self.INITIAL
        self.history: List[Transition] = []
        self._finished = False
        self._handler_table = self._handlers()
        missing = set(type(self.INITIAL)) - set(self._handler_table)
        if missing:
            raise InvalidTransition(f"No handler for states: {sorted(s.name for s in missing)}")

    def _handlers(self) -> Dict[Enum, Callable[[], Optional[Enum]]]:
        raise NotImplementedError

    @property
    def finished(self) -> bool:
        """True once the terminal state's handler has run."""
        return self._finished

    def is_terminal(self) -> bool:
        return self.state in self.TERMINAL

    @classmethod
    def next_state(cls, state: Enum, event: Enum) -> Enum:
        """Look up the table, failing loudly on an unknown pair."""
        try:
            return cls.TRANSITIONS[(state, event)]
        except KeyError:
            raise InvalidTransition(
                f"{cls.__name__}: no transition from {state.name} on {event.name}"
            ) from None

    def step(self) -> bool:
        """
        Run the current state once.

        Returns:
            True if the machine made progress, False if it is suspended
            or already finished.
        """
        if self._finished:
            return False

        if self.is_terminal():
            self._handler_table[self.state]()
            self._finished = True
            return True

        event = self._handler_table[self.state]()
        if event is None:
            return False

        target = self.next_state(self.state, event)
        self.history.append(Transition(self.state, event, target))
        logger.debug("[%s] %s --%s--> %s", type(self).__name__, self.state.name, event.name, target.name)
        self.state = target
        return True

    def run_until_blocked(self) -> bool:
        """Step until suspended or finished. Returns True if anything ran."""
        progressed = False
        while self.step():
            progressed = True
        return progressed

    def check_invariants(self) -> bool:
        """Terminal states never have outgoing transitions."""
        for (source, _event) in self.TRANSITIONS:
            assert source not in self.TERMINAL
        return True
