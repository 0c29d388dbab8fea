"""
Tests for staffing and range calculations, and ship moves through the reducer.
"""

from ..cards.card import MissionCard, PersonnelCard, PersonnelStatus, Quadrant, ShipCard, StaffingIcon
from ..engine_core.action import Action, ErrorCode
from ..logic.ship_movement import calculate_range_cost, check_staffed, validate_ship_move
from .conftest import BATTLE_RECON, HQ, SALVAGE_BORG_SHIP, place


class TestStaffing:
    """Tests for check_staffed."""

    def test_staff_slots_filled(self, make_card):
        """A Borg Sphere needs four Staff-icon crew."""
        sphere = make_card("EN03199")
        crew = [make_card("EN03137") for _ in range(4)]

        assert check_staffed([sphere] + crew)
        assert not check_staffed([sphere] + crew[:3])

    def test_stopped_crew_do_not_staff(self, make_card):
        """Stopped personnel cannot staff a ship."""
        sphere = make_card("EN03199")
        crew = [make_card("EN03137") for _ in range(3)] + [make_card("EN03137", status=PersonnelStatus.STOPPED)]

        assert not check_staffed([sphere] + crew)

    def test_command_crew_fill_staff_slots(self, make_card):
        """Command-icon crew can fill Staff slots."""
        sphere = make_card("EN03199")
        crew = [make_card("EN03122")] + [make_card("EN03137") for _ in range(3)]

        assert check_staffed([sphere] + crew)

    def test_no_ship(self, make_card):
        """A group without a ship is never staffed."""
        assert not check_staffed([make_card("EN03137")])

    def test_command_slot_needs_command_crew(self):
        """Two Staff-icon crew cannot fill a Command slot; Command plus Staff can."""
        ship = ShipCard(
            card_id="T0100", name="Scout", instance_id="T0100-1",
            staffing=(StaffingIcon.COMMAND, StaffingIcon.STAFF), range=8,
        )

        def crew(n, icon):
            return PersonnelCard(card_id=f"T010{n}", name=f"Crew {n}", instance_id=f"T010{n}-1", icons=(icon,))

        assert not check_staffed([ship, crew(1, StaffingIcon.STAFF), crew(2, StaffingIcon.STAFF)])
        assert check_staffed([ship, crew(1, StaffingIcon.COMMAND), crew(2, StaffingIcon.STAFF)])


class TestRangeCost:
    """Tests for range cost and move validation."""

    def test_same_quadrant(self, catalog):
        """Unicomplex (2) to Battle Reconnaissance (2), both Delta."""
        assert calculate_range_cost(catalog.lookup("EN03110"), catalog.lookup("EN03083")) == 4

    def test_quadrant_penalty(self, catalog):
        """Crossing from Delta to Alpha adds 2."""
        assert calculate_range_cost(catalog.lookup("EN03110"), catalog.lookup("EN03103")) == 6

    def test_cross_quadrant_cost(self):
        """Range 3 in one quadrant to range 4 in another costs 3 + 4 + 2."""
        source = MissionCard(card_id="T0200", name="Here", instance_id="T0200-1", quadrant=Quadrant.ALPHA, range=3)
        target = MissionCard(card_id="T0201", name="There", instance_id="T0201-1", quadrant=Quadrant.GAMMA, range=4)

        assert calculate_range_cost(source, target) == 9
        assert calculate_range_cost(source, target, quadrant_penalty=0) == 7

    def test_insufficient_range(self, make_card, catalog):
        """A ship with too little range left cannot move."""
        group = [make_card("EN03199", range_remaining=5)] + [make_card("EN03137") for _ in range(4)]

        result = validate_ship_move(group, catalog.lookup("EN03110"), catalog.lookup("EN03103"))

        assert not result.valid
        assert result.range_cost == 6


class TestMoveShip:
    """Tests for the move_ship action."""

    def _crewed_sphere(self, board, make_card):
        sphere = make_card("EN03199")
        crew = [make_card("EN03137") for _ in range(4)]
        return place(board, HQ, 1, sphere, *crew), sphere

    def test_move_detaches_group_and_spends_range(self, reducer, board, make_card):
        """The whole group moves and the ship loses the trip's range."""
        state, sphere = self._crewed_sphere(board, make_card)

        result = reducer.apply(state, Action.move_ship(HQ, 1, BATTLE_RECON))

        assert result.success
        new_state = result.new_state
        assert len(new_state.missions[HQ].groups) == 1
        moved = new_state.missions[BATTLE_RECON].group(1)
        assert len(moved) == 5
        assert moved[0].instance_id == sphere.instance_id
        assert new_state.missions[BATTLE_RECON].group_ship(1).range_remaining == 9 - 4

    def test_move_refused_without_range(self, reducer, board, make_card):
        """Two long trips exhaust a Sphere's range."""
        state, _ = self._crewed_sphere(board, make_card)
        state = reducer.apply(state, Action.move_ship(HQ, 1, SALVAGE_BORG_SHIP)).new_state  # 6 range

        result = reducer.apply(state, Action.move_ship(SALVAGE_BORG_SHIP, 1, BATTLE_RECON))  # needs 6, has 3

        assert not result.success
        assert result.error_code == ErrorCode.OUT_OF_RANGE
        assert result.new_state is None

    def test_move_refused_outside_execute_orders(self, reducer, board, make_card):
        """Ships only move during Execute Orders."""
        from ..engine_core.state import Phase

        state, _ = self._crewed_sphere(board, make_card)
        state = state._copy_with(phase=Phase.PLAY_AND_DRAW, counters=3)

        result = reducer.apply(state, Action.move_ship(HQ, 1, BATTLE_RECON))

        assert result.error_code == ErrorCode.WRONG_PHASE

    def test_new_turn_restores_range(self, reducer, board, make_card):
        """Ship range resets at the start of a turn."""
        state, _ = self._crewed_sphere(board, make_card)
        state = reducer.apply(state, Action.move_ship(HQ, 1, BATTLE_RECON)).new_state

        state = reducer.apply(state, Action.new_turn()).new_state

        assert state.missions[BATTLE_RECON].group_ship(1).range_remaining == 9
