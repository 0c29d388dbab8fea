"""Card model, ability model, dilemma rules and the card catalog."""

from .card import (
    Card,
    CardType,
    MissionCard,
    PersonnelCard,
    ShipCard,
    EventCard,
    InterruptCard,
    DilemmaCard,
    PersonnelStatus,
    MissionType,
    DilemmaLocation,
    StaffingIcon,
    Quadrant,
    Attribute,
)
from .ability import Ability, Trigger, TargetFilter, TargetScope, Duration, UsageLimit
from .catalog import CardCatalog, DEFAULT_DECK, starter_cards
from .validation import validate_catalog, validate_deck, CatalogValidationError

__all__ = [
    "Card",
    "CardType",
    "MissionCard",
    "PersonnelCard",
    "ShipCard",
    "EventCard",
    "InterruptCard",
    "DilemmaCard",
    "PersonnelStatus",
    "MissionType",
    "DilemmaLocation",
    "StaffingIcon",
    "Quadrant",
    "Attribute",
    "Ability",
    "Trigger",
    "TargetFilter",
    "TargetScope",
    "Duration",
    "UsageLimit",
    "CardCatalog",
    "DEFAULT_DECK",
    "starter_cards",
    "validate_catalog",
    "validate_deck",
    "CatalogValidationError",
]
