"""
Ship Movement - Staffing checks and range costs.

A ship may only move when its crew satisfies its staffing icons and it has
enough range left for the trip. Moving between missions costs the sum of
both missions' span values, plus a penalty when the trip crosses quadrants.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable

from ..cards.card import Card, MissionCard, ShipCard, StaffingIcon
from ..config import DEFAULT_CONFIG
from .group_stats import unstopped_personnel


@dataclass(frozen=True)
class MoveValidation:
    """Outcome of validating a ship move."""
    valid: bool
    reason: str = ""
    range_cost: int = 0


def find_ship(cards: Iterable[Card]) -> ShipCard | None:
    for card in cards:
        if isinstance(card, ShipCard):
            return card
    return None


def check_staffed(group: Iterable[Card]) -> bool:
    """
    Check whether a group's crew can staff its ship.

    Each Command slot needs its own unstopped Command-icon crew member.
    Staff slots take the remaining Command-icon crew plus Staff-icon crew.
    An empty requirement is always met. Without a ship there is nothing
    to staff, so the check fails.
    """
    cards = list(group)
    ship = find_ship(cards)
    if ship is None:
        return False

    command_needed = sum(1 for icon in ship.staffing if icon == StaffingIcon.COMMAND)
    staff_needed = sum(1 for icon in ship.staffing if icon == StaffingIcon.STAFF)

    crew = unstopped_personnel(cards)
    command_crew = sum(1 for p in crew if StaffingIcon.COMMAND in p.icons)
    staff_crew = sum(1 for p in crew if StaffingIcon.STAFF in p.icons and StaffingIcon.COMMAND not in p.icons)

    if command_crew < command_needed:
        return False
    spare_command = command_crew - command_needed
    return staff_crew + spare_command >= staff_needed


def calculate_range_cost(
    source: MissionCard,
    destination: MissionCard,
    quadrant_penalty: int = DEFAULT_CONFIG.quadrant_penalty,
) -> int:
    """Range needed to fly from one mission to another."""
    cost = source.range + destination.range
    if source.quadrant != destination.quadrant:
        cost += quadrant_penalty
    return cost


def validate_ship_move(
    group: Iterable[Card],
    source: MissionCard,
    destination: MissionCard,
    same_location: bool = False,
    quadrant_penalty: int = DEFAULT_CONFIG.quadrant_penalty,
) -> MoveValidation:
    """Check every precondition of a move, cheapest first."""
    if same_location:
        return MoveValidation(False, "Ship is already at that mission")

    cards = list(group)
    ship = find_ship(cards)
    if ship is None:
        return MoveValidation(False, "Group has no ship")
    if not check_staffed(cards):
        return MoveValidation(False, f"{ship.name} is not fully staffed")

    cost = calculate_range_cost(source, destination, quadrant_penalty)
    if ship.range_remaining < cost:
        return MoveValidation(
            False,
            f"{ship.name} needs {cost} range but has {ship.range_remaining}",
            range_cost=cost,
        )
    return MoveValidation(True, range_cost=cost)
