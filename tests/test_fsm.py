"""
Tests for FSM Layer
===================

The transition tables are data, so they can be checked exhaustively.
"""

from collections import deque
from decimal import Decimal
from enum import Enum, auto

import pytest

from dutch_auction.agents import AuctionConfig
from dutch_auction.errors import InvalidTransition
from dutch_auction.fsm import (
    AuctionCoordinatorFSM,
    BidderEvent,
    BidderFSM,
    BidderStateName,
    CoordinatorEvent,
    CoordinatorState,
    StateMachine,
)
from dutch_auction.transport import InMemoryChannel, InMemoryDirectory


MACHINES = [
    (AuctionCoordinatorFSM, CoordinatorState, CoordinatorEvent),
    (BidderFSM, BidderStateName, BidderEvent),
]


def reachable_from(machine, start):
    seen = {start}
    queue = deque([start])
    while queue:
        state = queue.popleft()
        for (source, _event), target in machine.TRANSITIONS.items():
            if source == state and target not in seen:
                seen.add(target)
                queue.append(target)
    return seen


@pytest.mark.parametrize("machine, states, events", MACHINES)
class TestTransitionTables:
    """Every (state, event) pair, checked against the table."""

    def test_terminal_states_have_no_outgoing_transitions(self, machine, states, events):
        """END has no way out."""
        for (source, _event) in machine.TRANSITIONS:
            assert source not in machine.TERMINAL

    def test_single_initial_and_terminal_state(self, machine, states, events):
        """One start state, one end state."""
        assert machine.INITIAL in states
        assert len(machine.TERMINAL) == 1

    def test_targets_are_known_states(self, machine, states, events):
        """The table only mentions this machine's states and events."""
        for (source, event), target in machine.TRANSITIONS.items():
            assert source in states
            assert event in events
            assert target in states

    def test_every_state_is_reachable(self, machine, states, events):
        """No dead states."""
        assert reachable_from(machine, machine.INITIAL) == set(states)

    def test_end_is_reachable_from_every_state(self, machine, states, events):
        """Every state can still terminate."""
        for state in states:
            assert machine.TERMINAL & reachable_from(machine, state)

    def test_exhaustive_lookup(self, machine, states, events):
        """Pairs in the table resolve; every other pair is an error."""
        for state in states:
            for event in events:
                if (state, event) in machine.TRANSITIONS:
                    assert machine.next_state(state, event) == machine.TRANSITIONS[(state, event)]
                else:
                    with pytest.raises(InvalidTransition):
                        machine.next_state(state, event)


class TestCoordinatorTable:
    """The auctioneer's edges, spelled out."""

    S = CoordinatorState
    E = CoordinatorEvent

    def test_edges(self):
        """The complete auctioneer table."""
        assert AuctionCoordinatorFSM.TRANSITIONS == {
            (self.S.DISCOVER, self.E.DONE): self.S.ANNOUNCE,
            (self.S.ANNOUNCE, self.E.DONE): self.S.CALL_FOR_BIDS,
            (self.S.CALL_FOR_BIDS, self.E.DONE): self.S.COLLECT,
            (self.S.COLLECT, self.E.HAS_WINNER): self.S.ACCEPT,
            (self.S.COLLECT, self.E.NO_WINNER): self.S.REDUCE_PRICE,
            (self.S.REDUCE_PRICE, self.E.VALID_PRICE): self.S.CALL_FOR_BIDS,
            (self.S.REDUCE_PRICE, self.E.BELOW_RESERVE): self.S.END,
            (self.S.ACCEPT, self.E.DONE): self.S.END,
        }

    def test_starts_in_discover(self):
        """A new coordinator sits in DISCOVER."""
        fsm = AuctionCoordinatorFSM(
            "auctioneer", AuctionConfig(initial_price=100), InMemoryDirectory(), InMemoryChannel(),
        )
        assert fsm.state == CoordinatorState.DISCOVER
        assert not fsm.finished
        assert fsm.check_invariants()


class TestBidderTable:
    """The buyer's edges, spelled out."""

    def test_edges(self):
        """The complete bidder table."""
        S, E = BidderStateName, BidderEvent
        assert BidderFSM.TRANSITIONS == {
            (S.WAIT_START, E.STARTED): S.WAIT_CALL,
            (S.WAIT_CALL, E.DECLINED): S.WAIT_CALL,
            (S.WAIT_CALL, E.OFFERED): S.END,
            (S.WAIT_CALL, E.AUCTION_OVER): S.END,
        }

    def test_starts_in_wait_start(self):
        """A new bidder sits in WAIT_START, not started."""
        fsm = BidderFSM("alice", Decimal("90"), InMemoryChannel())
        assert fsm.state == BidderStateName.WAIT_START
        assert fsm.bidder_state.has_started is False


# ---------------------------------------------------------------------------
# Base machine behaviour, on a toy machine
# ---------------------------------------------------------------------------

class Lamp(Enum):
    OFF = auto()
    ON = auto()
    BROKEN = auto()


class Switch(Enum):
    FLIP = auto()
    SMASH = auto()


class LampFSM(StateMachine):
    INITIAL = Lamp.OFF
    TERMINAL = frozenset({Lamp.BROKEN})
    TRANSITIONS = {
        (Lamp.OFF, Switch.FLIP): Lamp.ON,
        (Lamp.ON, Switch.FLIP): Lamp.OFF,
        (Lamp.ON, Switch.SMASH): Lamp.BROKEN,
    }

    def __init__(self, script):
        self.script = deque(script)
        self.end_runs = 0
        super().__init__()

    def _next(self):
        return self.script.popleft() if self.script else None

    def _count_end(self):
        self.end_runs += 1

    def _handlers(self):
        return {Lamp.OFF: self._next, Lamp.ON: self._next, Lamp.BROKEN: self._count_end}


class TestStateMachineBase:
    """Stepping rules shared by both machines."""

    def test_none_means_suspended(self):
        """A handler returning None leaves the state unchanged."""
        fsm = LampFSM([])
        assert fsm.step() is False
        assert fsm.state == Lamp.OFF
        assert fsm.history == []

    def test_event_moves_and_is_recorded(self):
        """Each event moves the machine and lands in history."""
        fsm = LampFSM([Switch.FLIP, Switch.FLIP])
        assert fsm.run_until_blocked() is True
        assert fsm.state == Lamp.OFF
        assert [(t.source, t.target) for t in fsm.history] == [(Lamp.OFF, Lamp.ON), (Lamp.ON, Lamp.OFF)]

    def test_terminal_handler_runs_once(self):
        """The terminal handler runs once, then the machine is finished."""
        fsm = LampFSM([Switch.FLIP, Switch.SMASH])
        fsm.run_until_blocked()

        assert fsm.state == Lamp.BROKEN
        assert fsm.finished
        assert fsm.end_runs == 1
        assert fsm.step() is False
        assert fsm.end_runs == 1

    def test_unknown_pair_raises(self):
        """A pair missing from the table is an error."""
        fsm = LampFSM([Switch.SMASH])
        with pytest.raises(InvalidTransition):
            fsm.step()

    def test_missing_handler_is_rejected(self):
        """Every state needs a handler."""
        class Incomplete(LampFSM):
            def _handlers(self):
                return {Lamp.OFF: self._next}

        with pytest.raises(InvalidTransition):
            Incomplete([])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
