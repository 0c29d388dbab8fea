"""
Ability Model - Declarative description of card abilities.

Abilities are data, not code. Each ability names:
- A trigger (when it applies or can be used)
- A target filter (which cards it affects)
- A list of effects (closed set of variants)
- Optional cost, duration, usage limit, conditions and interrupt timing

All semantics live in the engine (engine_core/effect_resolver.py and
logic/group_stats.py), which dispatches on the effect, cost and
condition classes. Adding an effect kind means adding a variant here and a
handler there.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Union

from .card import Attribute, CardType


class Trigger(Enum):
    """When an ability is evaluated or may be used."""
    PASSIVE = "passive"  # Always on while in play
    WHILE_PLAYING = "whilePlaying"  # During deployment cost calculation
    WHILE_FACING_DILEMMA = "whileFacingDilemma"
    ON_DEPLOY = "onDeploy"
    ON_ATTEMPT = "onAttempt"
    ON_STOP = "onStop"
    ON_KILL = "onKill"
    ACTIVATED = "activated"
    ORDER = "order"  # Execute Orders phase only
    INTERLINK = "interlink"  # Only while this personnel is attempting a mission
    INTERRUPT = "interrupt"  # Played from hand in response to a game event
    EVENT = "event"  # Played from hand during Play and Draw


class TargetScope(Enum):
    """
    Which cards an ability can reach.

    PRESENT: same group (ship crew or planet surface)
    SELF: only the source card
    MISSION: every group at the source's mission
    ALL_IN_PLAY: every card in play
    """
    PRESENT = "present"
    SELF = "self"
    MISSION = "mission"
    ALL_IN_PLAY = "allInPlay"


class Ownership(Enum):
    COMMANDED = "commanded"
    OWNED = "owned"
    COMMANDED_NOT_OWNED = "commandedNotOwned"


class Duration(Enum):
    UNTIL_END_OF_TURN = "untilEndOfTurn"
    UNTIL_END_OF_MISSION_ATTEMPT = "untilEndOfMissionAttempt"
    PERMANENT = "permanent"


class UsageLimit(Enum):
    ONCE_PER_TURN = "oncePerTurn"
    ONCE_PER_GAME = "oncePerGame"
    UNLIMITED = "unlimited"


class InterruptTiming(Enum):
    WHEN_FACING_DILEMMA = "whenFacingDilemma"


class RecoverDestination(Enum):
    DECK_BOTTOM = "deckBottom"
    DECK_TOP = "deckTop"
    HAND = "hand"


@dataclass(frozen=True)
class TargetFilter:
    """Filter determining which cards an ability affects."""
    scope: TargetScope = TargetScope.SELF
    card_types: tuple[CardType, ...] = ()
    affiliations: tuple[str, ...] = ()
    species: tuple[str, ...] = ()
    exclude_self: bool = False


@dataclass(frozen=True)
class SkillSourceFilter:
    """Personnel whose skills may be copied by a skill grant."""
    scope: TargetScope = TargetScope.PRESENT
    affiliations: tuple[str, ...] = ()
    species: tuple[str, ...] = ()
    exclude_affiliations: tuple[str, ...] = ()
    exclude_species: tuple[str, ...] = ()


@dataclass(frozen=True)
class PerMatchingCard:
    """Multiplies a cost modifier by the number of matching cards in play."""
    ownership: Ownership
    card_types: tuple[CardType, ...] = ()


# =============================================================================
# Effects
# =============================================================================

@dataclass(frozen=True)
class StatModifier:
    stat: Attribute
    value: int


@dataclass(frozen=True)
class CostModifier:
    value: int
    per_matching_card: PerMatchingCard | None = None


@dataclass(frozen=True)
class SkillGrant:
    """Grants a skill. skill=None means the player names it on activation."""
    skill: str | None = None
    skill_source: SkillSourceFilter | None = None


@dataclass(frozen=True)
class HandRefresh:
    pass


@dataclass(frozen=True)
class BeamAllToShip:
    pass


@dataclass(frozen=True)
class ShipRangeModifier:
    value: int


@dataclass(frozen=True)
class PreventAndOvercomeDilemma:
    pass


@dataclass(frozen=True)
class RecoverFromDiscard:
    max_count: int
    card_types: tuple[CardType, ...]
    destination: RecoverDestination = RecoverDestination.DECK_BOTTOM


AbilityEffect = Union[
    StatModifier,
    CostModifier,
    SkillGrant,
    HandRefresh,
    BeamAllToShip,
    ShipRangeModifier,
    PreventAndOvercomeDilemma,
    RecoverFromDiscard,
]


# =============================================================================
# Costs
# =============================================================================

@dataclass(frozen=True)
class DiscardFromDeck:
    count: int


@dataclass(frozen=True)
class DiscardFromHand:
    count: int


@dataclass(frozen=True)
class StopSelf:
    pass


@dataclass(frozen=True)
class SacrificeSelf:
    pass


@dataclass(frozen=True)
class ReturnToHand:
    pass


AbilityCost = Union[DiscardFromDeck, DiscardFromHand, StopSelf, SacrificeSelf, ReturnToHand]


# =============================================================================
# Conditions
# =============================================================================

@dataclass(frozen=True)
class AboardShip:
    pass


@dataclass(frozen=True)
class AtPlanet:
    pass


@dataclass(frozen=True)
class HasPersonnelPresent:
    count: int


@dataclass(frozen=True)
class BorgPersonnelFacing:
    pass


@dataclass(frozen=True)
class DilemmaOvercomeAtAnyMission:
    pass


AbilityCondition = Union[
    AboardShip,
    AtPlanet,
    HasPersonnelPresent,
    BorgPersonnelFacing,
    DilemmaOvercomeAtAnyMission,
]


@dataclass(frozen=True)
class Ability:
    """
    A complete ability definition.

    Example (a drone that grants Astrometrics during a mission attempt):
        Ability(
            ability_id="cartography-drone-interlink",
            trigger=Trigger.INTERLINK,
            target=TargetFilter(scope=TargetScope.ALL_IN_PLAY, species=("Borg",)),
            effects=(SkillGrant(skill="Astrometrics"),),
            cost=DiscardFromDeck(1),
            duration=Duration.UNTIL_END_OF_MISSION_ATTEMPT,
        )
    """
    ability_id: str
    trigger: Trigger
    target: TargetFilter = TargetFilter()
    effects: tuple[AbilityEffect, ...] = ()
    cost: AbilityCost | None = None
    duration: Duration | None = None
    usage_limit: UsageLimit = UsageLimit.UNLIMITED
    conditions: tuple[AbilityCondition, ...] = ()
    interrupt_timing: InterruptTiming | None = None
    remove_from_game: bool = False

    def effects_of(self, effect_type: type) -> list:
        """Effects of one variant, in declaration order."""
        return [e for e in self.effects if isinstance(e, effect_type)]


# ============================================================================
# Factory functions for common ability patterns
# ============================================================================

def passive_stat_boost(
    ability_id: str,
    stat: Attribute,
    value: int,
    species: tuple[str, ...] = (),
    exclude_self: bool = True,
) -> Ability:
    """Create a passive modifier for personnel present with the source."""
    return Ability(
        ability_id=ability_id,
        trigger=Trigger.PASSIVE,
        target=TargetFilter(scope=TargetScope.PRESENT, species=species, exclude_self=exclude_self),
        effects=(StatModifier(stat=stat, value=value),),
    )


def interlink_skill(
    ability_id: str,
    skill: str | None,
    species: tuple[str, ...] = (),
    skill_source: SkillSourceFilter | None = None,
    deck_cost: int = 1,
) -> Ability:
    """Create an interlink skill grant lasting for the mission attempt."""
    return Ability(
        ability_id=ability_id,
        trigger=Trigger.INTERLINK,
        target=TargetFilter(scope=TargetScope.ALL_IN_PLAY, species=species),
        effects=(SkillGrant(skill=skill, skill_source=skill_source),),
        cost=DiscardFromDeck(deck_cost),
        duration=Duration.UNTIL_END_OF_MISSION_ATTEMPT,
    )
