"""
Card Catalog - Static lookup from card id to card template.

The engine only needs lookup(card_id) -> template or None. The bundled
starter set covers the cards in DEFAULT_DECK: a Borg headquarters,
four scorable missions, drones, ships, one interrupt, one event and
a twenty-card dilemma pile.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable

from .card import (
    Attribute,
    Card,
    CardType,
    DilemmaCard,
    DilemmaLocation,
    EventCard,
    InterruptCard,
    MissionCard,
    MissionType,
    PersonnelCard,
    Quadrant,
    ShipCard,
    StaffingIcon,
)
from .ability import (
    Ability,
    AboardShip,
    BeamAllToShip,
    BorgPersonnelFacing,
    CostModifier,
    DilemmaOvercomeAtAnyMission,
    DiscardFromDeck,
    Duration,
    HandRefresh,
    InterruptTiming,
    Ownership,
    PerMatchingCard,
    PreventAndOvercomeDilemma,
    RecoverDestination,
    RecoverFromDiscard,
    ReturnToHand,
    SacrificeSelf,
    ShipRangeModifier,
    SkillGrant,
    SkillSourceFilter,
    StatModifier,
    TargetFilter,
    TargetScope,
    Trigger,
    UsageLimit,
    interlink_skill,
    passive_stat_boost,
)
from .rules import (
    ChoosePenalty,
    ChooseMatchingToStopElseStopAll,
    ChooseToStop,
    CrewLimit,
    DilemmaRequirement,
    RandomKillWithSkill,
    RandomStop,
    RandomThenCheck,
    StopAllReturnToPile,
    UnlessCheck,
)


ALL_AFFILIATIONS = (
    "Bajoran", "Borg", "Cardassian", "Dominion", "Federation",
    "Ferengi", "Klingon", "Non-Aligned", "Romulan", "Starfleet",
)

STAFF = StaffingIcon.STAFF
COMMAND = StaffingIcon.COMMAND


@dataclass
class CardCatalog:
    """
    Card template database.

    Usage:
        catalog = CardCatalog.starter()
        template = catalog.lookup("EN03118")
    """
    cards: dict[str, Card] = field(default_factory=dict)

    @classmethod
    def from_cards(cls, cards: Iterable[Card]) -> CardCatalog:
        catalog = cls()
        for card in cards:
            catalog.register(card)
        return catalog

    @classmethod
    def starter(cls) -> CardCatalog:
        """Catalog holding the bundled starter set."""
        return cls.from_cards(starter_cards())

    def register(self, card: Card) -> None:
        """Add or replace a template."""
        self.cards[card.card_id] = card

    def lookup(self, card_id: str) -> Card | None:
        """Get a template by id, or None if unknown."""
        return self.cards.get(card_id)

    def cards_of_type(self, card_type: CardType) -> list[Card]:
        return [c for c in self.cards.values() if c.card_type == card_type]

    def __contains__(self, card_id: str) -> bool:
        return card_id in self.cards

    def __len__(self) -> int:
        return len(self.cards)


# =============================================================================
# Starter set
# =============================================================================

def _missions() -> list[Card]:
    return [
        MissionCard(
            card_id="EN03110",
            name="Unicomplex, Root of the Hive Mind",
            unique=True,
            mission_type=MissionType.HEADQUARTERS,
            quadrant=Quadrant.DELTA,
            range=2,
            play=("Equipment", "Borg"),
        ),
        MissionCard(
            card_id="EN03094",
            name="Hunt Alien",
            unique=True,
            mission_type=MissionType.PLANET,
            quadrant=Quadrant.DELTA,
            range=3,
            score=35,
            affiliations=("Borg", "Klingon"),
            skills=(
                ("Exobiology", "Exobiology", "Navigation", "Leadership"),
                ("Exobiology", "Exobiology", "Navigation", "Security"),
            ),
            attribute=Attribute.STRENGTH,
            value=32,
        ),
        MissionCard(
            card_id="EN03103",
            name="Salvage Borg Ship",
            unique=True,
            mission_type=MissionType.PLANET,
            quadrant=Quadrant.ALPHA,
            range=2,
            score=35,
            affiliations=ALL_AFFILIATIONS,
            skills=(("Astrometrics", "Engineer", "Medical", "Programming"),),
            attribute=Attribute.CUNNING,
            value=34,
        ),
        MissionCard(
            card_id="EN03082",
            name="Assault on Species 8472",
            unique=True,
            mission_type=MissionType.SPACE,
            quadrant=Quadrant.DELTA,
            range=4,
            score=35,
            affiliations=("Borg", "Klingon", "Federation"),
            skills=(("Engineer", "Engineer", "Exobiology", "Physics"),),
            attribute=Attribute.CUNNING,
            value=34,
        ),
        MissionCard(
            card_id="EN03083",
            name="Battle Reconnaissance",
            unique=True,
            mission_type=MissionType.SPACE,
            quadrant=Quadrant.DELTA,
            range=2,
            score=35,
            affiliations=ALL_AFFILIATIONS,
            skills=(("Exobiology", "Programming", "Security", "Transporters"),),
            attribute=Attribute.STRENGTH,
            value=32,
        ),
    ]


def _drone(card_id: str, name: str, deploy: int, skills: tuple[str, ...], **kwargs) -> PersonnelCard:
    """Borg drone with the common defaults (Staff icon, 5/5/5)."""
    values = dict(integrity=5, cunning=5, strength=5, icons=(STAFF,))
    values.update(kwargs)
    return PersonnelCard(
        card_id=card_id,
        name=name,
        affiliations=("Borg",),
        species=("Borg",),
        deploy=deploy,
        skills=skills,
        **values,
    )


def _personnel() -> list[Card]:
    return [
        _drone(
            "EN03118", "Acclimation Drone", 2,
            ("Anthropology", "Engineer", "Exobiology", "Medical"),
            abilities=(
                Ability(
                    ability_id="acclimation-drone-cost-reduction",
                    trigger=Trigger.WHILE_PLAYING,
                    effects=(
                        CostModifier(
                            value=-1,
                            per_matching_card=PerMatchingCard(
                                ownership=Ownership.COMMANDED_NOT_OWNED,
                                card_types=(CardType.PERSONNEL,),
                            ),
                        ),
                    ),
                ),
            ),
        ),
        _drone(
            "EN03122", "Borg Queen, Bringer of Order", 4,
            ("Leadership", "Leadership", "Leadership", "Treachery"),
            unique=True, icons=(COMMAND,), integrity=3, cunning=8, strength=6,
            abilities=(
                Ability(
                    ability_id="borg-queen-skill-grant",
                    trigger=Trigger.ORDER,
                    target=TargetFilter(scope=TargetScope.ALL_IN_PLAY, species=("Borg",)),
                    effects=(SkillGrant(skill=None),),
                    cost=DiscardFromDeck(1),
                    duration=Duration.UNTIL_END_OF_TURN,
                    usage_limit=UsageLimit.ONCE_PER_TURN,
                ),
            ),
        ),
        _drone(
            "EN03124", "Calibration Drone", 2, ("Archaeology", "Biology", "Geology"),
            abilities=(
                Ability(
                    ability_id="calibration-drone-hand-refresh",
                    trigger=Trigger.ORDER,
                    effects=(HandRefresh(),),
                    cost=SacrificeSelf(),
                ),
            ),
        ),
        _drone(
            "EN03125", "Cartography Drone", 1, ("Engineer",),
            abilities=(interlink_skill("cartography-drone-interlink-astrometrics", "Astrometrics", ("Borg",)),),
        ),
        _drone(
            "EN03126", "Computation Drone", 2, ("Navigation", "Programming"), cunning=6,
            abilities=(passive_stat_boost("computation-drone-cunning-boost", Attribute.CUNNING, 1, ("Borg",)),),
        ),
        _drone(
            "EN03130", "Information Drone", 2, ("Exobiology", "Science", "Transporters"),
            abilities=(
                interlink_skill(
                    "information-drone-interlink",
                    None,
                    ("Borg",),
                    skill_source=SkillSourceFilter(scope=TargetScope.PRESENT, exclude_affiliations=("Borg",)),
                ),
            ),
        ),
        _drone(
            "EN03131", "Invasive Drone", 2, ("Programming", "Security", "Transporters"),
            abilities=(
                Ability(
                    ability_id="invasive-drone-beam-to-ship",
                    trigger=Trigger.ORDER,
                    target=TargetFilter(scope=TargetScope.MISSION),
                    effects=(BeamAllToShip(),),
                    cost=ReturnToHand(),
                ),
            ),
        ),
        _drone(
            "EN03134", "Opposition Drone", 2, ("Biology", "Security"), strength=6,
            abilities=(passive_stat_boost("opposition-drone-strength-boost", Attribute.STRENGTH, 1, ("Borg",)),),
        ),
        _drone(
            "EN03137", "Research Drone", 1, ("Medical",),
            abilities=(interlink_skill("research-drone-interlink-physics", "Physics", ("Borg",)),),
        ),
        _drone(
            "EN03139", "Seven of Nine, Representative of the Hive", 3,
            ("Engineer", "Exobiology", "Physics", "Programming", "Science"),
            unique=True, cunning=7, strength=6,
            abilities=(
                Ability(
                    ability_id="seven-of-nine-dilemma-boost",
                    trigger=Trigger.WHILE_FACING_DILEMMA,
                    effects=(StatModifier(Attribute.STRENGTH, 2), SkillGrant(skill="Security")),
                ),
            ),
        ),
        _drone(
            "EN03140", "Transwarp Drone", 2, ("Astrometrics", "Navigation", "Physics"),
            abilities=(
                Ability(
                    ability_id="transwarp-drone-range-boost",
                    trigger=Trigger.ORDER,
                    conditions=(AboardShip(),),
                    effects=(ShipRangeModifier(value=2),),
                    cost=ReturnToHand(),
                    duration=Duration.UNTIL_END_OF_TURN,
                ),
            ),
        ),
    ]


def _ships() -> list[Card]:
    return [
        ShipCard(
            card_id="EN03198", name="Borg Cube", affiliations=("Borg",), deploy=6,
            species=("Borg",), staffing=(STAFF,) * 5, range=10, weapons=12, shields=11,
        ),
        ShipCard(
            card_id="EN03199", name="Borg Sphere", affiliations=("Borg",), deploy=5,
            species=("Borg",), staffing=(STAFF,) * 4, range=9, weapons=10, shields=9,
        ),
    ]


def _events_and_interrupts() -> list[Card]:
    return [
        EventCard(
            card_id="EN02060",
            name="Salvaging the Wreckage",
            deploy=3,
            abilities=(
                Ability(
                    ability_id="salvaging-the-wreckage-recover",
                    trigger=Trigger.EVENT,
                    effects=(
                        RecoverFromDiscard(
                            max_count=4,
                            card_types=(CardType.PERSONNEL, CardType.SHIP),
                            destination=RecoverDestination.DECK_BOTTOM,
                        ),
                    ),
                    remove_from_game=True,
                ),
            ),
        ),
        InterruptCard(
            card_id="EN03069",
            name="Adapt",
            abilities=(
                Ability(
                    ability_id="adapt-prevent-dilemma",
                    trigger=Trigger.INTERRUPT,
                    interrupt_timing=InterruptTiming.WHEN_FACING_DILEMMA,
                    effects=(PreventAndOvercomeDilemma(),),
                    conditions=(BorgPersonnelFacing(), DilemmaOvercomeAtAnyMission()),
                ),
            ),
        ),
    ]


def _single(*skills: str) -> DilemmaRequirement:
    return DilemmaRequirement(skills=skills, single_personnel=True)


def _dilemmas() -> list[Card]:
    planet, space, dual = DilemmaLocation.PLANET, DilemmaLocation.SPACE, DilemmaLocation.DUAL
    return [
        DilemmaCard(
            card_id="EN01017", name="Command Decisions", where=space, cost=1,
            text="Choose a personnel who has Leadership or Officer to be stopped. "
                 "If you cannot, randomly select a personnel to be killed.",
            rule=ChooseToStop(("Leadership", "Officer"), ChoosePenalty.RANDOM_KILL),
        ),
        DilemmaCard(
            card_id="EN01052", name="Systems Diagnostic", where=space, cost=2,
            text="Choose a personnel who has Engineer or Programming to be stopped. If you cannot, "
                 "all your personnel are stopped and this dilemma returns to its owner's dilemma pile.",
            rule=ChooseToStop(("Engineer", "Programming"), ChoosePenalty.STOP_ALL_RETURN_TO_PILE),
        ),
        DilemmaCard(
            card_id="EN01060", name="Wavefront", where=space, cost=2,
            text="Unless you have a personnel who has 2 Astrometrics or a personnel who has "
                 "2 Navigation, your opponent chooses an Astrometrics or Navigation personnel to be stopped.",
            rule=UnlessCheck(
                (_single("Astrometrics", "Astrometrics"), _single("Navigation", "Navigation")),
                ChooseMatchingToStopElseStopAll(("Astrometrics", "Navigation")),
            ),
        ),
        DilemmaCard(
            card_id="EN01008", name="Authenticate Artifacts", where=planet, cost=2,
            text="Unless you have a personnel who has 2 Anthropology or a personnel who has "
                 "2 Archaeology, your opponent chooses an Anthropology or Archaeology personnel to be stopped.",
            rule=UnlessCheck(
                (_single("Anthropology", "Anthropology"), _single("Archaeology", "Archaeology")),
                ChooseMatchingToStopElseStopAll(("Anthropology", "Archaeology")),
            ),
        ),
        DilemmaCard(
            card_id="EN03010", name="Failure To Communicate", where=planet, cost=2,
            text="Unless you have a personnel who has 2 Anthropology or a personnel who has "
                 "2 Security, your opponent chooses an Anthropology or Security personnel to be stopped.",
            rule=UnlessCheck(
                (_single("Anthropology", "Anthropology"), _single("Security", "Security")),
                ChooseMatchingToStopElseStopAll(("Anthropology", "Security")),
            ),
        ),
        DilemmaCard(
            card_id="EN01033", name="Kolaran Raiders", where=planet, cost=1,
            text="Choose a personnel who has Leadership or Security to be stopped. "
                 "If you cannot, randomly select a personnel to be killed.",
            rule=ChooseToStop(("Leadership", "Security"), ChoosePenalty.RANDOM_KILL),
        ),
        DilemmaCard(
            card_id="EN01057", name="Triage", where=planet, cost=1,
            text="Choose a personnel who has Biology or Medical to be stopped. "
                 "If you cannot, randomly select a personnel to be killed.",
            rule=ChooseToStop(("Biology", "Medical"), ChoosePenalty.RANDOM_KILL),
        ),
        DilemmaCard(
            card_id="EN03002", name="An Old Debt", where=dual, cost=3,
            text="Unless you have Biology, Physics, and Cunning>32 or Intelligence and 2 Medical, "
                 "randomly select a Leadership personnel to be killed.",
            rule=UnlessCheck(
                (
                    DilemmaRequirement(("Biology", "Physics"), attribute=Attribute.CUNNING, attribute_threshold=32),
                    DilemmaRequirement(("Intelligence", "Medical", "Medical")),
                ),
                RandomKillWithSkill("Leadership"),
            ),
        ),
        DilemmaCard(
            card_id="EN03016", name="Justice or Vengeance", where=dual, cost=3,
            text="Unless you have Anthropology and 2 Security or Exobiology, Honor, and Integrity>32, "
                 "randomly select a Treachery personnel to be killed.",
            rule=UnlessCheck(
                (
                    DilemmaRequirement(("Anthropology", "Security", "Security")),
                    DilemmaRequirement(("Exobiology", "Honor"), attribute=Attribute.INTEGRITY, attribute_threshold=32),
                ),
                RandomKillWithSkill("Treachery"),
            ),
        ),
        DilemmaCard(
            card_id="EN01034", name="Limited Welcome", where=dual, cost=2,
            text="Randomly select nine personnel. All your other personnel are stopped. "
                 "Place this dilemma on this mission.",
            rule=CrewLimit(keep_count=9),
        ),
        DilemmaCard(
            card_id="EN01041", name="Ornaran Threat", where=dual, cost=4,
            text="Randomly select a personnel to be stopped. Unless you have Diplomacy and Medical or "
                 "2 Security, that personnel is killed instead, then all your other personnel are stopped "
                 "and this dilemma returns to its owner's dilemma pile.",
            rule=RandomThenCheck(
                (DilemmaRequirement(("Diplomacy", "Medical")), DilemmaRequirement(("Security", "Security"))),
            ),
        ),
        DilemmaCard(
            card_id="EN01043", name="Pinned Down", where=dual, cost=2,
            text="Randomly select a personnel to be stopped. If you still have nine personnel remaining, "
                 "randomly select a second personnel to be stopped. If you still have ten personnel "
                 "remaining, randomly select a third personnel to be stopped.",
            rule=RandomStop(thresholds=(1, 9, 10)),
        ),
        DilemmaCard(
            card_id="EN03030", name="Sokath, His Eyes Uncovered!", where=dual, cost=3,
            text="Unless you have 2 Diplomacy or Cunning>35, all your personnel are stopped "
                 "and this dilemma returns to its owner's dilemma pile.",
            rule=UnlessCheck(
                (
                    DilemmaRequirement(("Diplomacy", "Diplomacy")),
                    DilemmaRequirement(attribute=Attribute.CUNNING, attribute_threshold=35),
                ),
                StopAllReturnToPile(),
            ),
        ),
    ]


def starter_cards() -> list[Card]:
    """Every template in the bundled starter set."""
    return _missions() + _personnel() + _ships() + _events_and_interrupts() + _dilemmas()


def _copies(card_id: str, count: int) -> list[str]:
    return [card_id] * count


DEFAULT_DECK: list[str] = (
    # Missions
    ["EN03110", "EN03094", "EN03103", "EN03082", "EN03083"]
    # Personnel
    + _copies("EN03118", 3)
    + _copies("EN03122", 2)
    + _copies("EN03124", 2)
    + _copies("EN03125", 2)
    + _copies("EN03126", 2)
    + _copies("EN03130", 2)
    + _copies("EN03131", 2)
    + _copies("EN03134", 2)
    + _copies("EN03137", 2)
    + _copies("EN03139", 1)
    + _copies("EN03140", 2)
    # Ships
    + _copies("EN03198", 1)
    + _copies("EN03199", 3)
    # Interrupts and events
    + _copies("EN03069", 3)
    + _copies("EN02060", 3)
    # Dilemmas
    + _copies("EN01017", 2)
    + _copies("EN01052", 1)
    + _copies("EN01060", 1)
    + _copies("EN01008", 1)
    + _copies("EN03010", 2)
    + _copies("EN01033", 2)
    + _copies("EN01057", 1)
    + _copies("EN03002", 2)
    + _copies("EN03016", 2)
    + _copies("EN01034", 2)
    + _copies("EN01041", 1)
    + _copies("EN01043", 2)
    + _copies("EN03030", 1)
)
