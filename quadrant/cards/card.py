"""
Card Model - Tagged union of the six card kinds.

Cards are immutable values. A card carries its template data (name, costs,
skills, abilities) plus a per-copy instance_id assigned when the card enters
the game. Runtime fields (personnel status, a ship's remaining range,
a dilemma's overcome flag) change only by producing a new card with
dataclasses.replace().

Design principles:
- One frozen dataclass per card kind, sharing the Card base
- The kind tag is a ClassVar, so isinstance() and card_type always agree
- Sequences are tuples so cards stay hashable and safe to share between states
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from enum import Enum
from typing import ClassVar, TYPE_CHECKING

if TYPE_CHECKING:
    from .ability import Ability
    from .rules import DilemmaRule


class CardType(Enum):
    """The six card kinds."""
    MISSION = "Mission"
    PERSONNEL = "Personnel"
    SHIP = "Ship"
    DILEMMA = "Dilemma"
    EVENT = "Event"
    INTERRUPT = "Interrupt"


class PersonnelStatus(Enum):
    UNSTOPPED = "Unstopped"
    STOPPED = "Stopped"
    KILLED = "Killed"


class MissionType(Enum):
    HEADQUARTERS = "Headquarters"
    PLANET = "Planet"
    SPACE = "Space"


class DilemmaLocation(Enum):
    """Where a dilemma may be drawn. DUAL matches any mission."""
    PLANET = "Planet"
    SPACE = "Space"
    DUAL = "Dual"


class StaffingIcon(Enum):
    STAFF = "Staff"
    COMMAND = "Command"


class Quadrant(Enum):
    ALPHA = "Alpha"
    BETA = "Beta"
    GAMMA = "Gamma"
    DELTA = "Delta"


class Attribute(Enum):
    """Personnel attributes checked by missions and dilemmas."""
    STRENGTH = "Strength"
    INTEGRITY = "Integrity"
    CUNNING = "Cunning"

    @property
    def stat_name(self) -> str:
        """Lowercase field name used on personnel and group stats."""
        return self.value.lower()


@dataclass(frozen=True)
class Card:
    """
    Base for every card kind.

    card_id is the template id shared by all copies (e.g. "EN03118");
    instance_id identifies one copy in the game (e.g. "EN03118-7").
    """
    card_id: str
    name: str
    unique: bool = False
    instance_id: str = ""
    owner_id: str | None = None

    card_type: ClassVar[CardType]

    def with_instance(self, instance_id: str, owner_id: str | None = None) -> Card:
        """Return a copy of this template bound to a game instance id."""
        return replace(self, instance_id=instance_id, owner_id=owner_id or self.owner_id)


@dataclass(frozen=True)
class MissionCard(Card):
    """A mission location. Headquarters missions carry a play allow-list."""
    card_type: ClassVar[CardType] = CardType.MISSION

    mission_type: MissionType = MissionType.PLANET
    quadrant: Quadrant = Quadrant.ALPHA
    range: int = 0
    completed: bool = False
    play: tuple[str, ...] = ()  # Headquarters only: affiliations allowed to deploy here
    score: int = 0
    affiliations: tuple[str, ...] = ()  # Empty means any affiliation may attempt
    skills: tuple[tuple[str, ...], ...] = ()  # Alternative requirements (OR)
    attribute: Attribute | None = None
    value: int = 0  # Attribute must exceed this

    @property
    def is_headquarters(self) -> bool:
        return self.mission_type == MissionType.HEADQUARTERS


@dataclass(frozen=True)
class PersonnelCard(Card):
    card_type: ClassVar[CardType] = CardType.PERSONNEL

    affiliations: tuple[str, ...] = ()
    deploy: int = 0
    species: tuple[str, ...] = ()
    status: PersonnelStatus = PersonnelStatus.UNSTOPPED
    icons: tuple[StaffingIcon, ...] = ()
    skills: tuple[str, ...] = ()  # Repeated entries count as multiple levels
    integrity: int = 0
    cunning: int = 0
    strength: int = 0
    abilities: tuple[Ability, ...] = ()

    @property
    def is_unstopped(self) -> bool:
        return self.status == PersonnelStatus.UNSTOPPED

    def attribute_value(self, attribute: Attribute) -> int:
        return getattr(self, attribute.stat_name)

    def with_status(self, status: PersonnelStatus) -> PersonnelCard:
        return replace(self, status=status)


@dataclass(frozen=True)
class ShipCard(Card):
    """A ship. range_remaining defaults to the full range."""
    card_type: ClassVar[CardType] = CardType.SHIP

    affiliations: tuple[str, ...] = ()
    deploy: int = 0
    species: tuple[str, ...] = ()
    staffing: tuple[StaffingIcon, ...] = ()
    range: int = 0
    range_remaining: int | None = None
    weapons: int = 0
    shields: int = 0

    def __post_init__(self):
        if self.range_remaining is None:
            object.__setattr__(self, "range_remaining", self.range)

    def with_range_remaining(self, value: int) -> ShipCard:
        return replace(self, range_remaining=value)


@dataclass(frozen=True)
class EventCard(Card):
    card_type: ClassVar[CardType] = CardType.EVENT

    deploy: int = 0
    abilities: tuple[Ability, ...] = ()


@dataclass(frozen=True)
class InterruptCard(Card):
    card_type: ClassVar[CardType] = CardType.INTERRUPT

    abilities: tuple[Ability, ...] = ()


@dataclass(frozen=True)
class DilemmaCard(Card):
    card_type: ClassVar[CardType] = CardType.DILEMMA

    where: DilemmaLocation = DilemmaLocation.DUAL
    cost: int = 0
    overcome: bool = False
    faceup: bool = False
    text: str = ""
    lore: str = ""
    rule: DilemmaRule | None = None

    def matches_mission(self, mission_type: MissionType) -> bool:
        """True if this dilemma can be drawn against a mission of this type."""
        if self.where == DilemmaLocation.DUAL:
            return True
        return self.where.value == mission_type.value


CARD_CLASSES: dict[CardType, type[Card]] = {
    CardType.MISSION: MissionCard,
    CardType.PERSONNEL: PersonnelCard,
    CardType.SHIP: ShipCard,
    CardType.EVENT: EventCard,
    CardType.INTERRUPT: InterruptCard,
    CardType.DILEMMA: DilemmaCard,
}


# =============================================================================
# Type-narrowing predicates
# =============================================================================

def is_mission(card: Card) -> bool:
    return isinstance(card, MissionCard)


def is_personnel(card: Card) -> bool:
    return isinstance(card, PersonnelCard)


def is_ship(card: Card) -> bool:
    return isinstance(card, ShipCard)


def is_event(card: Card) -> bool:
    return isinstance(card, EventCard)


def is_interrupt(card: Card) -> bool:
    return isinstance(card, InterruptCard)


def is_dilemma(card: Card) -> bool:
    return isinstance(card, DilemmaCard)


def has_deploy_cost(card: Card) -> bool:
    """Personnel, ships and events carry a counter cost."""
    return isinstance(card, (PersonnelCard, ShipCard, EventCard))


def is_deployable(card: Card) -> bool:
    """Only personnel and ships are deployed; events are played."""
    return isinstance(card, (PersonnelCard, ShipCard))


def is_unstopped_personnel(card: Card) -> bool:
    return isinstance(card, PersonnelCard) and card.is_unstopped


def card_affiliations(card: Card) -> tuple[str, ...]:
    return getattr(card, "affiliations", ())


def card_species(card: Card) -> tuple[str, ...]:
    return getattr(card, "species", ())


def card_abilities(card: Card) -> tuple[Ability, ...]:
    return getattr(card, "abilities", ())


def find_ability(card: Card, ability_id: str) -> Ability | None:
    for ability in card_abilities(card):
        if ability.ability_id == ability_id:
            return ability
    return None
