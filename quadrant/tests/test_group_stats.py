"""
Tests for group stats, mission checks and deployment costs.
"""

from ..cards.card import Attribute, CardType, PersonnelCard, PersonnelStatus
from ..cards.ability import (
    Ability,
    CostModifier,
    Duration,
    TargetFilter,
    TargetScope,
    Trigger,
)
from ..engine_core.state import GrantedSkill
from ..logic.group_stats import calculate_group_stats, check_mission, effective_deploy_cost


def borg_grant(skill: str) -> GrantedSkill:
    return GrantedSkill(
        skill=skill,
        target=TargetFilter(scope=TargetScope.ALL_IN_PLAY, species=("Borg",)),
        duration=Duration.UNTIL_END_OF_TURN,
        source_card_id="EN03122-t0",
        source_ability_id="borg-queen-skill-grant",
    )


class TestGroupStats:
    """Tests for calculate_group_stats."""

    def test_sums_unstopped_personnel(self, make_card):
        """Stopped personnel contribute nothing."""
        cards = [
            make_card("EN03140"),
            make_card("EN03118"),
            make_card("EN03131", status=PersonnelStatus.STOPPED),
        ]

        stats = calculate_group_stats(cards)

        assert stats.personnel_count == 2
        assert stats.integrity == 10
        assert stats.skill_count("Astrometrics") == 1
        assert stats.skill_count("Programming") == 0

    def test_passive_boost_applies_to_others_present(self, make_card):
        """Computation Drone gives +1 Cunning to each other Borg present."""
        cards = [make_card("EN03126"), make_card("EN03140"), make_card("EN03118")]

        stats = calculate_group_stats(cards)

        assert stats.cunning == 6 + 5 + 5 + 2

    def test_facing_dilemma_abilities(self, make_card):
        """Seven of Nine only adds Strength and Security while facing a dilemma."""
        cards = [make_card("EN03139")]

        normal = calculate_group_stats(cards)
        facing = calculate_group_stats(cards, facing_dilemma=True)

        assert normal.strength == 6
        assert normal.skill_count("Security") == 0
        assert facing.strength == 8
        assert facing.skill_count("Security") == 1

    def test_grants_count_per_matching_personnel(self, make_card):
        """A Borg-wide grant adds one level per Borg personnel."""
        cards = [make_card("EN03140"), make_card("EN03118"), make_card("EN03131")]

        stats = calculate_group_stats(cards, [borg_grant("Diplomacy")])

        assert stats.skill_count("Diplomacy") == 3

    def test_present_grant_ignores_location(self, make_card):
        """A PRESENT-scope grant reaches a group its source is not in."""
        grant = GrantedSkill(
            skill="Physics",
            target=TargetFilter(scope=TargetScope.PRESENT),
            duration=Duration.UNTIL_END_OF_TURN,
            source_card_id="EN03137-t99",
            source_ability_id="research-drone-interlink-physics",
        )

        stats = calculate_group_stats([make_card("EN03140")], [grant])

        assert stats.skill_count("Physics") == 1

    def test_stopped_sources_give_no_passive_bonus(self, make_card):
        cards = [make_card("EN03126", status=PersonnelStatus.STOPPED), make_card("EN03140"), make_card("EN03118")]

        stats = calculate_group_stats(cards)

        assert stats.cunning == 5 + 5


class TestCheckMission:
    """Tests for check_mission."""

    def _crew(self, make_card, third_cunning: int):
        # Astrometrics, Engineer + Medical, Programming
        return [
            make_card("EN03140", cunning=12),
            make_card("EN03118", cunning=12),
            make_card("EN03131", cunning=third_cunning),
        ]

    def test_attribute_must_exceed_value(self, make_card, catalog):
        """Cunning equal to the requirement fails; one more passes."""
        mission = catalog.lookup("EN03103")  # Cunning>34

        assert not check_mission(self._crew(make_card, 10), mission)
        assert check_mission(self._crew(make_card, 11), mission)

    def test_granted_skill_fills_requirement(self, make_card, catalog):
        """An active grant counts toward mission skills."""
        mission = catalog.lookup("EN03103")
        crew = self._crew(make_card, 20)[:2] + [make_card("EN03137", cunning=20)]  # Medical, no Programming

        assert not check_mission(crew, mission)
        assert check_mission(crew, mission, [borg_grant("Programming")])

    def test_headquarters_never_completes(self, make_card, catalog):
        """A mission without requirements cannot be completed."""
        crew = self._crew(make_card, 30)

        assert not check_mission(crew, catalog.lookup("EN03110"))


class TestDeployCost:
    """Tests for effective_deploy_cost."""

    def test_base_cost(self, make_card):
        """Without modifiers the printed cost applies."""
        assert effective_deploy_cost(make_card("EN03198"), []) == 6

    def test_acclimation_discount_counts_unowned_personnel(self, make_card):
        """Acclimation Drone costs 1 less per personnel you command but do not own."""
        drone = make_card("EN03118")
        rivals = [make_card("EN03137", owner_id="rival") for _ in range(3)]

        assert effective_deploy_cost(drone, [make_card("EN03137")]) == 2
        assert effective_deploy_cost(drone, rivals[:1]) == 1
        assert effective_deploy_cost(drone, rivals) == 0

    def test_passive_modifier_from_card_in_play(self, make_card):
        """A passive modifier in play reaches matching cards in hand."""
        shipwright = PersonnelCard(
            card_id="T0001",
            name="Shipwright",
            instance_id="T0001-1",
            abilities=(
                Ability(
                    ability_id="shipwright-discount",
                    trigger=Trigger.PASSIVE,
                    target=TargetFilter(scope=TargetScope.ALL_IN_PLAY, card_types=(CardType.SHIP,)),
                    effects=(CostModifier(value=-1),),
                ),
            ),
        )

        assert effective_deploy_cost(make_card("EN03198"), [shipwright]) == 5
        assert effective_deploy_cost(make_card("EN03118"), [shipwright]) == 2

    def test_attribute_lookup(self, make_card):
        """attribute_value reads the named stat."""
        assert make_card("EN03134").attribute_value(Attribute.STRENGTH) == 6
