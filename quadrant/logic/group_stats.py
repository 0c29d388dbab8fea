"""
Group Stats - Aggregate attributes and skills of cards present together.

Given the cards in one group (a ship crew or a mission surface), computes
integrity, cunning, strength and a skill multiset after applying ability
modifiers and active skill grants. Also checks mission requirements and
computes effective deployment costs.

All functions are pure: they read cards and grants and return new values.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging
from typing import Iterable, Sequence, TYPE_CHECKING

from ..cards.card import (
    Attribute,
    Card,
    MissionCard,
    PersonnelCard,
    card_abilities,
    card_affiliations,
    card_species,
)
from ..cards.ability import (
    CostModifier,
    Ownership,
    SkillGrant,
    StatModifier,
    TargetFilter,
    TargetScope,
    Trigger,
)

if TYPE_CHECKING:
    from ..engine_core.state import GrantedSkill

logger = logging.getLogger(__name__)


@dataclass
class GroupStats:
    """Totals for the unstopped personnel of one group."""
    integrity: int = 0
    cunning: int = 0
    strength: int = 0
    skills: dict[str, int] = field(default_factory=dict)
    personnel_count: int = 0

    def attribute(self, attribute: Attribute) -> int:
        return getattr(self, attribute.stat_name)

    def skill_count(self, skill: str) -> int:
        return self.skills.get(skill, 0)

    def add_skill(self, skill: str, count: int = 1) -> None:
        self.skills[skill] = self.skills.get(skill, 0) + count


def _intersects(values: Iterable[str], allowed: Sequence[str]) -> bool:
    return any(v in allowed for v in values)


def matches_target_filter(target: TargetFilter, card: Card, source: Card) -> bool:
    """True if card is affected by an ability of source with this filter."""
    is_source = card.instance_id == source.instance_id
    if target.scope == TargetScope.SELF:
        return is_source
    if target.exclude_self and is_source:
        return False
    if target.card_types and card.card_type not in target.card_types:
        return False
    if target.species and not _intersects(card_species(card), target.species):
        return False
    if target.affiliations and not _intersects(card_affiliations(card), target.affiliations):
        return False
    return True


def grant_applies(grant: GrantedSkill, card: Card) -> bool:
    """
    True if an active skill grant reaches this card.

    Location is not checked: a PRESENT-scope grant reaches matching
    personnel at every mission, not just those with its source.
    """
    target = grant.target
    if target.scope == TargetScope.SELF:
        return card.instance_id == grant.source_card_id
    if target.card_types and card.card_type not in target.card_types:
        return False
    if target.species and not _intersects(card_species(card), target.species):
        return False
    if target.affiliations and not _intersects(card_affiliations(card), target.affiliations):
        return False
    return True


def unstopped_personnel(cards: Iterable[Card]) -> list[PersonnelCard]:
    return [c for c in cards if isinstance(c, PersonnelCard) and c.is_unstopped]


def _active_triggers(facing_dilemma: bool) -> set[Trigger]:
    triggers = {Trigger.PASSIVE}
    if facing_dilemma:
        triggers.add(Trigger.WHILE_FACING_DILEMMA)
    return triggers


def calculate_group_stats(
    cards: Iterable[Card],
    granted_skills: Iterable[GrantedSkill] = (),
    facing_dilemma: bool = False,
) -> GroupStats:
    """
    Compute the totals of a group.

    Only unstopped personnel contribute. Passive abilities of those
    personnel (and whileFacingDilemma abilities, when facing a dilemma)
    modify stats and grant skills to matching personnel present.
    Active skill grants add one level of the skill per matching personnel.
    """
    personnel = unstopped_personnel(cards)
    stats = GroupStats(personnel_count=len(personnel))

    for member in personnel:
        stats.integrity += member.integrity
        stats.cunning += member.cunning
        stats.strength += member.strength
        for skill in member.skills:
            stats.add_skill(skill)

    triggers = _active_triggers(facing_dilemma)
    for source in personnel:
        for ability in card_abilities(source):
            if ability.trigger not in triggers:
                continue
            targets = [p for p in personnel if matches_target_filter(ability.target, p, source)]
            for effect in ability.effects:
                if isinstance(effect, StatModifier):
                    bonus = effect.value * len(targets)
                    setattr(stats, effect.stat.stat_name, stats.attribute(effect.stat) + bonus)
                elif isinstance(effect, SkillGrant) and effect.skill:
                    stats.add_skill(effect.skill, len(targets))

    for grant in granted_skills:
        for member in personnel:
            if grant_applies(grant, member):
                stats.add_skill(grant.skill)

    return stats


def _meets_alternative(skills: Sequence[str], stats: GroupStats) -> bool:
    available = dict(stats.skills)
    for skill in skills:
        if available.get(skill, 0) <= 0:
            return False
        available[skill] -= 1
    return True


def check_mission(
    cards: Iterable[Card],
    mission: MissionCard,
    granted_skills: Iterable[GrantedSkill] = (),
) -> bool:
    """
    Check whether a group meets a mission's requirements.

    Any one skill alternative must be covered, and the mission attribute
    must be strictly greater than its value. A mission without skill
    requirements (a headquarters) can never be completed.
    """
    if not mission.skills:
        return False
    stats = calculate_group_stats(cards, granted_skills)
    if mission.attribute is not None and stats.attribute(mission.attribute) <= mission.value:
        logger.debug(
            "%s needs %s>%d, group has %d",
            mission.name, mission.attribute.value, mission.value, stats.attribute(mission.attribute),
        )
        return False
    return any(_meets_alternative(alternative, stats) for alternative in mission.skills)


def _ownership_matches(card: Card, ownership: Ownership, owner_id: str | None) -> bool:
    # Solitaire play: a card with no owner belongs to the player
    owned = card.owner_id is None or card.owner_id == owner_id
    if ownership == Ownership.COMMANDED:
        return True
    if ownership == Ownership.OWNED:
        return owned
    return not owned


def _modifier_total(effect: CostModifier, in_play: Sequence[Card], owner_id: str | None) -> int:
    per_card = effect.per_matching_card
    if per_card is None:
        return effect.value
    matching = [
        c for c in in_play
        if (not per_card.card_types or c.card_type in per_card.card_types)
        and _ownership_matches(c, per_card.ownership, owner_id)
    ]
    return effect.value * len(matching)


def effective_deploy_cost(
    card: Card,
    in_play: Sequence[Card],
    owner_id: str | None = None,
) -> int:
    """
    Deployment cost after cost modifiers, never below zero.

    Applies the card's own whilePlaying modifiers and passive modifiers of
    cards already in play whose target filter reaches the card.
    """
    cost = getattr(card, "deploy", 0)

    for ability in card_abilities(card):
        if ability.trigger != Trigger.WHILE_PLAYING:
            continue
        for effect in ability.effects_of(CostModifier):
            cost += _modifier_total(effect, in_play, owner_id)

    for source in in_play:
        for ability in card_abilities(source):
            if ability.trigger != Trigger.PASSIVE or ability.target.scope == TargetScope.SELF:
                continue
            if not matches_target_filter(ability.target, card, source):
                continue
            for effect in ability.effects_of(CostModifier):
                cost += _modifier_total(effect, in_play, owner_id)

    return max(0, cost)
