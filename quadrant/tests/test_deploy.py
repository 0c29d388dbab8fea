"""
Tests for deploying personnel and ships.
"""

import pytest

from ..cards.card import PersonnelCard
from ..engine_core.action import Action, ErrorCode
from ..engine_core.state import Phase
from .conftest import ASSAULT_8472, HQ, HUNT_ALIEN


@pytest.fixture
def hand_state(board, make_card):
    """Play and Draw with seven counters and a few cards in hand."""
    hand = (
        make_card("EN03122"),
        make_card("EN03122"),
        make_card("EN03118"),
        make_card("EN03198"),
        make_card("EN03137"),
        make_card("EN02060"),
    )
    return board._copy_with(phase=Phase.PLAY_AND_DRAW, counters=7, hand=hand)


class TestDeploy:
    """Tests for the deploy action."""

    def test_personnel_join_headquarters_surface(self, reducer, hand_state):
        """Without a mission index personnel go to group 0 at headquarters."""
        queen = hand_state.hand[0]

        result = reducer.apply(hand_state, Action.deploy(queen.instance_id))

        state = result.new_state
        assert result.success
        assert state.missions[HQ].group(0) == (queen,)
        assert state.counters == 3
        assert "EN03122" in state.unique_in_play
        assert queen not in state.hand

    def test_ship_creates_group(self, reducer, hand_state):
        """A ship becomes a new group with full range."""
        cube = hand_state.hand[3]

        state = reducer.apply(hand_state, Action.deploy(cube.instance_id)).new_state

        assert len(state.missions[HQ].groups) == 2
        assert state.missions[HQ].group_ship(1).range_remaining == 10

    def test_spending_all_counters_advances_phase(self, reducer, hand_state):
        """Cube (6) and Research Drone (1) use all seven counters."""
        state = reducer.apply(hand_state, Action.deploy(hand_state.hand[3].instance_id)).new_state
        state = reducer.apply(state, Action.deploy(hand_state.hand[4].instance_id)).new_state

        assert state.counters == 0
        assert state.phase == Phase.EXECUTE_ORDERS

    def test_unique_card_deploys_once(self, reducer, hand_state):
        """The second copy of a unique card is refused and nothing changes."""
        first, second = hand_state.hand[0], hand_state.hand[1]
        state = hand_state._copy_with(counters=20)

        state = reducer.apply(state, Action.deploy(first.instance_id)).new_state
        result = reducer.apply(state, Action.deploy(second.instance_id))

        assert result.error_code == ErrorCode.UNIQUE_IN_PLAY
        assert result.new_state is None
        assert state.counters == 16
        assert second in state.hand

    def test_insufficient_counters(self, reducer, hand_state):
        """A card costing more than the remaining counters is refused."""
        state = hand_state._copy_with(counters=5)

        result = reducer.apply(state, Action.deploy(hand_state.hand[3].instance_id))

        assert result.error_code == ErrorCode.INSUFFICIENT_COUNTERS

    def test_personnel_refused_at_space_mission(self, reducer, hand_state):
        """Personnel reach space missions only aboard a ship."""
        result = reducer.apply(hand_state, Action.deploy(hand_state.hand[2].instance_id, ASSAULT_8472))

        assert result.error_code == ErrorCode.INVALID_TARGET

    def test_personnel_at_planet_mission(self, reducer, hand_state):
        """Planet missions take personnel on the surface."""
        drone = hand_state.hand[2]

        state = reducer.apply(hand_state, Action.deploy(drone.instance_id, HUNT_ALIEN)).new_state

        assert state.missions[HUNT_ALIEN].group(0) == (drone,)

    def test_headquarters_allow_list(self, reducer, hand_state):
        """The Unicomplex only accepts Borg and Equipment cards."""
        ensign = PersonnelCard(
            card_id="T0002", name="Ensign", instance_id="T0002-1", affiliations=("Federation",), deploy=1
        )
        state = hand_state._copy_with(hand=(ensign,))

        result = reducer.apply(state, Action.deploy(ensign.instance_id))

        assert result.error_code == ErrorCode.AFFILIATION_MISMATCH

    def test_events_are_not_deployed(self, reducer, hand_state):
        """Events go through play_event."""
        result = reducer.apply(hand_state, Action.deploy(hand_state.hand[5].instance_id))

        assert result.error_code == ErrorCode.INVALID_TARGET

    def test_card_not_in_hand(self, reducer, hand_state):
        result = reducer.apply(hand_state, Action.deploy("EN03118-404"))

        assert result.error_code == ErrorCode.CARD_NOT_FOUND

    def test_mission_index_out_of_range(self, reducer, hand_state):
        result = reducer.apply(hand_state, Action.deploy(hand_state.hand[2].instance_id, 9))

        assert result.error_code == ErrorCode.OUT_OF_RANGE

    def test_deploy_outside_play_and_draw(self, reducer, board, make_card):
        drone = make_card("EN03137")
        state = board._copy_with(hand=(drone,))

        result = reducer.apply(state, Action.deploy(drone.instance_id))

        assert result.error_code == ErrorCode.WRONG_PHASE
