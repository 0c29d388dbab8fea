"""
Catalog Validation - Structural checks for card templates and deck lists.

Validates that:
1. Every template has an id and a name
2. Kind-specific fields are sane (costs, ranges, mission requirements)
3. Abilities are well-formed (unique ids, triggers match their card kind)
4. A deck list has the mission layout the engine expects

Bad card data is a programming error, not a rule violation, so
validate_catalog(..., raise_on_error=True) raises CatalogValidationError.
Unknown ids in a deck list are only warnings: setup skips them.
"""

from __future__ import annotations
from dataclasses import dataclass

from ..config import DEFAULT_CONFIG, EngineConfig
from .card import (
    Card,
    DilemmaCard,
    EventCard,
    InterruptCard,
    MissionCard,
    ShipCard,
    card_abilities,
    has_deploy_cost,
)
from .ability import Ability, SkillGrant, Trigger
from .catalog import CardCatalog
from .rules import CrewLimit, RandomStop


class CatalogValidationError(Exception):
    """Raised when catalog validation fails."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Catalog validation failed with {len(errors)} error(s)")


@dataclass
class ValidationResult:
    """Result of validation, with errors and warnings."""
    valid: bool
    errors: list[str]
    warnings: list[str]


def validate_catalog(catalog: CardCatalog, raise_on_error: bool = False) -> ValidationResult:
    """
    Validate every template in a catalog.

    Raises CatalogValidationError if raise_on_error=True and errors exist.
    """
    errors: list[str] = []
    warnings: list[str] = []

    for card_id, card in catalog.cards.items():
        if card_id != card.card_id:
            errors.append(f"Catalog key '{card_id}' does not match card id '{card.card_id}'")
        errors.extend(_validate_card(card))

    if not catalog.cards:
        warnings.append("Catalog is empty")

    result = ValidationResult(valid=len(errors) == 0, errors=errors, warnings=warnings)
    if raise_on_error and errors:
        raise CatalogValidationError(errors)
    return result


def validate_deck(
    deck_ids: list[str],
    catalog: CardCatalog,
    config: EngineConfig = DEFAULT_CONFIG,
) -> ValidationResult:
    """Check a deck list against the catalog and the mission layout."""
    errors: list[str] = []
    warnings: list[str] = []

    missions: list[MissionCard] = []
    for card_id in deck_ids:
        template = catalog.lookup(card_id)
        if template is None:
            warnings.append(f"Unknown card id '{card_id}' will be skipped")
            continue
        if isinstance(template, MissionCard):
            missions.append(template)

    if len(missions) != config.mission_count:
        errors.append(f"Deck has {len(missions)} missions, expected {config.mission_count}")
    headquarters = [m for m in missions if m.is_headquarters]
    if len(headquarters) != 1:
        errors.append(f"Deck has {len(headquarters)} headquarters missions, expected 1")

    return ValidationResult(valid=len(errors) == 0, errors=errors, warnings=warnings)


def _validate_card(card: Card) -> list[str]:
    """Validate a single template."""
    errors = []
    if not card.card_id:
        errors.append("Card has empty ID")
    if not card.name:
        errors.append(f"Card '{card.card_id}' has empty name")

    if has_deploy_cost(card) and getattr(card, "deploy", 0) < 0:
        errors.append(f"Card '{card.card_id}' has a negative deploy cost")

    if isinstance(card, MissionCard):
        errors.extend(_validate_mission(card))
    elif isinstance(card, ShipCard):
        if card.range < 0:
            errors.append(f"Ship '{card.card_id}' has a negative range")
    elif isinstance(card, DilemmaCard):
        errors.extend(_validate_dilemma(card))

    ability_ids = set()
    for ability in card_abilities(card):
        if ability.ability_id in ability_ids:
            errors.append(f"Duplicate ability_id '{ability.ability_id}' on card '{card.card_id}'")
        ability_ids.add(ability.ability_id)
        errors.extend(f"Card '{card.card_id}': {e}" for e in _validate_ability(card, ability))

    return errors


def _validate_mission(mission: MissionCard) -> list[str]:
    errors = []
    if mission.is_headquarters:
        if mission.score:
            errors.append(f"Headquarters '{mission.card_id}' cannot be worth points")
        return errors
    if not mission.skills:
        errors.append(f"Mission '{mission.card_id}' has no skill requirements")
    if mission.attribute is None:
        errors.append(f"Mission '{mission.card_id}' has no attribute requirement")
    return errors


def _validate_dilemma(dilemma: DilemmaCard) -> list[str]:
    errors = []
    if dilemma.cost < 0:
        errors.append(f"Dilemma '{dilemma.card_id}' has a negative cost")
    if dilemma.rule is None:
        errors.append(f"Dilemma '{dilemma.card_id}' has no rule")
    elif isinstance(dilemma.rule, CrewLimit) and dilemma.rule.keep_count < 0:
        errors.append(f"Dilemma '{dilemma.card_id}' keeps a negative number of personnel")
    elif isinstance(dilemma.rule, RandomStop) and any(t < 1 for t in dilemma.rule.thresholds):
        errors.append(f"Dilemma '{dilemma.card_id}' has a stop threshold below 1")
    return errors


def _validate_ability(card: Card, ability: Ability) -> list[str]:
    """Validate that an ability fits the card carrying it."""
    errors = []
    if not ability.ability_id:
        errors.append("Ability has empty ability_id")
    if not ability.effects:
        errors.append(f"Ability '{ability.ability_id}' has no effects")

    if ability.trigger == Trigger.INTERRUPT and not isinstance(card, InterruptCard):
        errors.append(f"Interrupt ability '{ability.ability_id}' on a non-interrupt card")
    if ability.trigger == Trigger.EVENT and not isinstance(card, EventCard):
        errors.append(f"Event ability '{ability.ability_id}' on a non-event card")

    for effect in ability.effects_of(SkillGrant):
        if effect.skill_source is not None and effect.skill is not None:
            errors.append(f"Ability '{ability.ability_id}' names a skill and a skill source")

    return errors
