"""
Tests for order, interlink, interrupt and event abilities.

Tests:
- Validation happens before any cost is paid
- Usage limits and their turn reset
- Each effect and cost variant used by the starter set
"""

import pytest

from ..cards.card import InterruptCard, PersonnelCard, PersonnelStatus
from ..cards.ability import Ability, DiscardFromHand, Duration, HandRefresh, ReturnToHand, SkillGrant, Trigger
from ..engine_core.action import Action, ErrorCode
from ..engine_core.state import LogType, Phase
from .conftest import HQ, HUNT_ALIEN, SALVAGE_BORG_SHIP, place

QUEEN_GRANT = "borg-queen-skill-grant"
ADAPT = "adapt-prevent-dilemma"


@pytest.fixture
def stocked(board, make_card):
    """The board with three cards left in the deck."""
    return board._copy_with(deck=tuple(make_card("EN03124") for _ in range(3)))


@pytest.fixture
def queen(make_card):
    return make_card("EN03122")


@pytest.fixture
def with_queen(stocked, queen):
    return place(stocked, HQ, 0, queen)


class TestOrderAbilities:
    """Tests for execute_order_ability."""

    def test_queen_grants_chosen_skill(self, reducer, with_queen, queen):
        """The grant lasts the turn and costs the top card of the deck."""
        action = Action.execute_order_ability(queen.instance_id, QUEEN_GRANT, {"skill": "Diplomacy"})

        result = reducer.apply(with_queen, action)

        state = result.new_state
        assert result.success
        grant = state.granted_skills[0]
        assert grant.skill == "Diplomacy"
        assert grant.duration == Duration.UNTIL_END_OF_TURN
        assert grant.source_card_id == queen.instance_id
        assert len(state.deck) == 2
        assert state.discard == with_queen.deck[:1]
        assert f"{queen.instance_id}:{QUEEN_GRANT}" in state.used_abilities
        assert state.action_log[-1].log_type == LogType.ORDER_ABILITY

    def test_once_per_turn(self, reducer, with_queen, queen):
        """A second use in the same turn is refused; a new turn allows it again."""
        action = Action.execute_order_ability(queen.instance_id, QUEEN_GRANT, {"skill": "Diplomacy"})
        state = reducer.apply(with_queen, action).new_state

        assert reducer.apply(state, action).error_code == ErrorCode.ALREADY_USED

        state = reducer.apply(state, Action.new_turn()).new_state
        assert state.granted_skills == ()
        state = state._copy_with(phase=Phase.EXECUTE_ORDERS, counters=0)
        assert reducer.apply(state, action).success

    def test_missing_choice_pays_nothing(self, reducer, with_queen, queen):
        """A refused ability leaves the deck untouched."""
        result = reducer.apply(with_queen, Action.execute_order_ability(queen.instance_id, QUEEN_GRANT))

        assert result.error_code == ErrorCode.INVALID_TARGET
        assert result.new_state is None
        assert len(with_queen.deck) == 3

    def test_cost_must_be_payable(self, reducer, board, queen):
        """An empty deck cannot pay the Queen's cost."""
        state = place(board, HQ, 0, queen)

        result = reducer.apply(state, Action.execute_order_ability(queen.instance_id, QUEEN_GRANT, {"skill": "Law"}))

        assert result.error_code == ErrorCode.CANNOT_PAY

    def test_orders_only_in_execute_orders(self, reducer, with_queen, queen):
        state = with_queen._copy_with(phase=Phase.PLAY_AND_DRAW, counters=1)

        result = reducer.apply(state, Action.execute_order_ability(queen.instance_id, QUEEN_GRANT, {"skill": "Law"}))

        assert result.error_code == ErrorCode.WRONG_PHASE

    def test_stopped_personnel_cannot_act(self, reducer, stocked, make_card):
        queen = make_card("EN03122", status=PersonnelStatus.STOPPED)
        state = place(stocked, HQ, 0, queen)

        result = reducer.apply(state, Action.execute_order_ability(queen.instance_id, QUEEN_GRANT, {"skill": "Law"}))

        assert result.error_code == ErrorCode.CONDITION_FAILED

    def test_unknown_card_and_wrong_trigger(self, reducer, stocked, make_card):
        research = make_card("EN03137")
        state = place(stocked, HQ, 0, research)

        missing = reducer.apply(state, Action.execute_order_ability("EN03122-404", QUEEN_GRANT))
        wrong = reducer.apply(state, Action.execute_order_ability(research.instance_id, "research-drone-interlink-physics"))

        assert missing.error_code == ErrorCode.CARD_NOT_FOUND
        assert wrong.error_code == ErrorCode.INVALID_TARGET

    def test_transwarp_boosts_ship_range(self, reducer, stocked, make_card):
        """Transwarp Drone adds 2 range and returns to hand."""
        transwarp = make_card("EN03140")
        crew = [make_card("EN03137") for _ in range(4)]
        state = place(stocked, HQ, 1, make_card("EN03199"), transwarp, *crew)

        state = reducer.apply(
            state, Action.execute_order_ability(transwarp.instance_id, "transwarp-drone-range-boost")
        ).new_state

        assert state.missions[HQ].group_ship(1).range_remaining == 11
        assert len(state.range_boosts) == 1
        assert state.hand[-1].instance_id == transwarp.instance_id
        assert state.find_in_play(transwarp.instance_id) is None

        state = reducer.apply(state, Action.new_turn()).new_state

        assert state.missions[HQ].group_ship(1).range_remaining == 9
        assert state.range_boosts == ()

    def test_transwarp_needs_a_ship(self, reducer, stocked, make_card):
        transwarp = make_card("EN03140")
        state = place(stocked, HQ, 0, transwarp)

        result = reducer.apply(state, Action.execute_order_ability(transwarp.instance_id, "transwarp-drone-range-boost"))

        assert result.error_code == ErrorCode.CONDITION_FAILED
        assert state.find_in_play(transwarp.instance_id) is not None

    def test_calibration_refreshes_hand(self, reducer, stocked, make_card):
        """The drone is sacrificed, the hand goes under the deck and is redrawn."""
        calibration = make_card("EN03124")
        hand = (make_card("EN03137"), make_card("EN03137"))
        state = place(stocked, HQ, 0, calibration)._copy_with(hand=hand)

        state = reducer.apply(
            state, Action.execute_order_ability(calibration.instance_id, "calibration-drone-hand-refresh")
        ).new_state

        assert state.hand == stocked.deck[:2]
        assert state.deck == stocked.deck[2:] + hand
        assert state.discard == (calibration,)

    def test_invasive_beams_personnel_aboard(self, reducer, stocked, make_card):
        """Chosen personnel move onto the ship and the drone returns to hand."""
        invasive = make_card("EN03131")
        first, second = make_card("EN03137"), make_card("EN03137")
        state = place(stocked, HQ, 0, invasive, first, second)
        state = place(state, HQ, 1, make_card("EN03199"))
        params = {"personnel_ids": [first.instance_id, second.instance_id], "target_group_index": 1}

        state = reducer.apply(
            state, Action.execute_order_ability(invasive.instance_id, "invasive-drone-beam-to-ship", params)
        ).new_state

        assert state.missions[HQ].group(0) == ()
        assert state.missions[HQ].group(1)[1:] == (first, second)
        assert state.hand == (invasive,)

    def test_invasive_needs_a_ship_target(self, reducer, stocked, make_card):
        invasive, drone = make_card("EN03131"), make_card("EN03137")
        state = place(stocked, HQ, 0, invasive, drone)
        params = {"personnel_ids": [drone.instance_id], "target_group_index": 0}

        result = reducer.apply(
            state, Action.execute_order_ability(invasive.instance_id, "invasive-drone-beam-to-ship", params)
        )

        assert result.error_code == ErrorCode.INVALID_TARGET

    def test_invasive_cannot_beam_during_an_attempt(self, reducer, stocked, make_card):
        """Personnel waiting on a dilemma choice stay in the attempting group."""
        invasive = make_card("EN03131")
        crew = [make_card("EN03140"), invasive, make_card("EN03137")]
        state = _facing_triage(reducer, stocked, crew, make_card)
        state = place(state, SALVAGE_BORG_SHIP, 1, make_card("EN03199"))
        params = {"personnel_ids": [crew[0].instance_id, crew[2].instance_id], "target_group_index": 1}

        result = reducer.apply(
            state, Action.execute_order_ability(invasive.instance_id, "invasive-drone-beam-to-ship", params)
        )

        assert result.error_code == ErrorCode.INVALID_TARGET
        assert result.error == "Finish the mission attempt first"

    def test_attempting_personnel_cannot_leave_through_a_cost(self, reducer, stocked, make_card):
        withdraw = Ability("withdraw", Trigger.ORDER, effects=(HandRefresh(),), cost=ReturnToHand())
        drone = make_card("EN03137", abilities=(withdraw,))
        state = _facing_triage(reducer, stocked, [make_card("EN03140"), drone], make_card)

        result = reducer.apply(state, Action.execute_order_ability(drone.instance_id, "withdraw"))

        assert result.error_code == ErrorCode.CANNOT_PAY
        assert drone in state.missions[SALVAGE_BORG_SHIP].group(0)


def _facing_triage(reducer, state, crew, make_card):
    """Start an attempt at Salvage Borg Ship that waits on Triage."""
    state = place(state, SALVAGE_BORG_SHIP, 0, *crew)._copy_with(dilemma_pool=(make_card("EN01057"),))
    result = reducer.apply(state, Action.attempt_mission(SALVAGE_BORG_SHIP, 0))
    assert result.new_state.dilemma_result.requires_selection
    return result.new_state


class TestInterlink:
    """Tests for execute_interlink_ability."""

    def test_research_drone_grants_physics(self, reducer, stocked, make_card):
        """The grant lasts until the attempt ends."""
        research = make_card("EN03137")
        state = _facing_triage(reducer, stocked, [make_card("EN03140"), research], make_card)

        state = reducer.apply(
            state, Action.execute_interlink_ability(research.instance_id, "research-drone-interlink-physics")
        ).new_state

        assert [g.skill for g in state.granted_skills] == ["Physics"]
        assert state.granted_skills[0].duration == Duration.UNTIL_END_OF_MISSION_ATTEMPT
        assert len(state.deck) == 2
        assert state.action_log[-1].log_type == LogType.INTERLINK

        state = reducer.apply(state, Action.clear_encounter()).new_state

        assert state.granted_skills == ()

    def test_needs_an_encounter(self, reducer, stocked, make_card):
        research = make_card("EN03137")
        state = place(stocked, SALVAGE_BORG_SHIP, 0, research)

        result = reducer.apply(
            state, Action.execute_interlink_ability(research.instance_id, "research-drone-interlink-physics")
        )

        assert result.error_code == ErrorCode.NO_ENCOUNTER

    def test_only_the_attempting_group(self, reducer, stocked, make_card):
        """Personnel elsewhere cannot interlink."""
        bystander = make_card("EN03137")
        state = place(stocked, HQ, 0, bystander)
        state = _facing_triage(reducer, state, [make_card("EN03137")], make_card)

        result = reducer.apply(
            state, Action.execute_interlink_ability(bystander.instance_id, "research-drone-interlink-physics")
        )

        assert result.error_code == ErrorCode.INVALID_TARGET

    def test_information_drone_copies_non_borg_skill(self, reducer, stocked, make_card):
        """Only skills of non-Borg personnel present may be copied."""
        information = make_card("EN03130")
        ambassador = PersonnelCard(
            card_id="T0003", name="Ambassador", instance_id="T0003-1",
            affiliations=("Federation",), skills=("Diplomacy",),
        )
        state = _facing_triage(reducer, stocked, [information, ambassador, make_card("EN03137")], make_card)

        refused = reducer.apply(
            state,
            Action.execute_interlink_ability(information.instance_id, "information-drone-interlink", {"skill": "Medical"}),
        )
        granted = reducer.apply(
            state,
            Action.execute_interlink_ability(information.instance_id, "information-drone-interlink", {"skill": "Diplomacy"}),
        )

        assert refused.error_code == ErrorCode.INVALID_TARGET
        assert granted.new_state.granted_skills[0].skill == "Diplomacy"


class TestAdapt:
    """Tests for the Adapt interrupt."""

    @pytest.fixture
    def seen_before(self, board, make_card):
        """Triage has already been overcome at Hunt Alien; Adapt is in hand."""
        deployment = board.missions[HUNT_ALIEN].with_dilemma(make_card("EN01057", overcome=True, faceup=True))
        return board.with_mission(HUNT_ALIEN, deployment)._copy_with(hand=(make_card("EN03069"),))

    @pytest.fixture
    def salvage_crew(self, make_card):
        return [make_card("EN03140", cunning=12), make_card("EN03118", cunning=12), make_card("EN03131", cunning=11)]

    def test_prevents_and_overcomes(self, reducer, seen_before, salvage_crew, make_card):
        """Nobody is stopped and the attempt can go on to score."""
        state = _facing_triage(reducer, seen_before, salvage_crew, make_card)
        adapt = state.hand[0]

        state = reducer.apply(state, Action.play_interrupt(adapt.instance_id, ADAPT)).new_state

        assert state.dilemma_result.message == "Triage prevented and overcome"
        assert state.missions[SALVAGE_BORG_SHIP].overcome_count == 1
        assert state.discard == (adapt,)
        assert state.hand == ()
        assert state.action_log[-1].log_type == LogType.INTERRUPT

        state = reducer.apply(state, Action.advance_dilemma()).new_state

        assert state.score == 35

    def test_needs_dilemma_overcome_before(self, reducer, board, salvage_crew, make_card):
        adapt = make_card("EN03069")
        state = _facing_triage(reducer, board._copy_with(hand=(adapt,)), salvage_crew, make_card)

        result = reducer.apply(state, Action.play_interrupt(adapt.instance_id, ADAPT))

        assert result.error_code == ErrorCode.CONDITION_FAILED

    def test_needs_an_encounter(self, reducer, seen_before):
        result = reducer.apply(seen_before, Action.play_interrupt(seen_before.hand[0].instance_id, ADAPT))

        assert result.error_code == ErrorCode.NO_ENCOUNTER

    def test_too_late_once_resolved(self, reducer, seen_before, salvage_crew, make_card):
        """After the personnel is chosen the dilemma can no longer be prevented."""
        state = _facing_triage(reducer, seen_before, salvage_crew, make_card)
        state = reducer.apply(state, Action.select_personnel_for_dilemma(salvage_crew[1].instance_id)).new_state

        result = reducer.apply(state, Action.play_interrupt(state.hand[0].instance_id, ADAPT))

        assert result.error_code == ErrorCode.INVALID_TARGET


class TestEvents:
    """Tests for play_event with Salvaging the Wreckage."""

    @pytest.fixture
    def wreckage(self, board, make_card):
        discard = (
            make_card("EN03137", status=PersonnelStatus.KILLED),
            make_card("EN03199", range_remaining=0),
            make_card("EN03069"),
        )
        return board._copy_with(
            phase=Phase.PLAY_AND_DRAW,
            counters=7,
            hand=(make_card("EN02060"),),
            discard=discard,
        )

    def test_recovers_to_deck_bottom(self, reducer, wreckage):
        """Recovered cards are reset and the event is removed from the game."""
        event = wreckage.hand[0]
        drone, sphere, _ = wreckage.discard
        params = {"selected_card_ids": [drone.instance_id, sphere.instance_id]}

        state = reducer.apply(wreckage, Action.play_event(event.instance_id, params)).new_state

        assert state.counters == 4
        assert [c.instance_id for c in state.deck] == [drone.instance_id, sphere.instance_id]
        assert state.deck[0].status == PersonnelStatus.UNSTOPPED
        assert state.deck[1].range_remaining == 9
        assert [c.card_id for c in state.discard] == ["EN03069"]
        assert state.removed_from_game == (event,)
        assert state.action_log[-1].log_type == LogType.EVENT

    def test_only_allowed_card_types(self, reducer, wreckage):
        """Interrupts cannot be salvaged."""
        params = {"selected_card_ids": [wreckage.discard[2].instance_id]}

        result = reducer.apply(wreckage, Action.play_event(wreckage.hand[0].instance_id, params))

        assert result.error_code == ErrorCode.INVALID_TARGET

    def test_at_most_four(self, reducer, wreckage, make_card):
        extra = tuple(make_card("EN03137") for _ in range(4))
        state = wreckage._copy_with(discard=wreckage.discard + extra)
        params = {"selected_card_ids": [c.instance_id for c in extra] + [wreckage.discard[0].instance_id]}

        result = reducer.apply(state, Action.play_event(wreckage.hand[0].instance_id, params))

        assert result.error_code == ErrorCode.INVALID_TARGET

    def test_counters_required(self, reducer, wreckage):
        state = wreckage._copy_with(counters=2)

        result = reducer.apply(state, Action.play_event(wreckage.hand[0].instance_id))

        assert result.error_code == ErrorCode.INSUFFICIENT_COUNTERS

    def test_last_counters_advance_phase(self, reducer, wreckage):
        state = wreckage._copy_with(counters=3)

        state = reducer.apply(state, Action.play_event(wreckage.hand[0].instance_id)).new_state

        assert state.counters == 0
        assert state.phase == Phase.EXECUTE_ORDERS


class TestInterrupts:
    """Tests for play_interrupt costs."""

    @pytest.fixture
    def reflex(self):
        ability = Ability("reflex", Trigger.INTERRUPT, effects=(SkillGrant(skill="Physics"),), cost=DiscardFromHand(1))
        return InterruptCard(card_id="T0300", name="Reflex", instance_id="T0300-1", abilities=(ability,))

    def test_hand_cost_skips_the_played_card(self, reducer, board, make_card, reflex):
        """The interrupt is discarded once and the cost takes another card."""
        drone = make_card("EN03137")
        state = board._copy_with(hand=(reflex, drone))

        state = reducer.apply(state, Action.play_interrupt(reflex.instance_id, "reflex")).new_state

        assert state.hand == ()
        assert state.discard == (drone, reflex)

    def test_played_card_cannot_pay_for_itself(self, reducer, board, reflex):
        state = board._copy_with(hand=(reflex,))

        result = reducer.apply(state, Action.play_interrupt(reflex.instance_id, "reflex"))

        assert result.error_code == ErrorCode.CANNOT_PAY
