"""
Rules logic - Pure helpers the engine calls.

- group_stats: aggregate stats, mission checks, deployment costs
- dilemma_resolver: one resolver per dilemma rule family
- ship_movement: staffing and range
"""

from .group_stats import GroupStats, calculate_group_stats, check_mission, effective_deploy_cost
from .dilemma_resolver import DilemmaResolution, resolve_dilemma, resolve_selection_stop
from .ship_movement import MoveValidation, check_staffed, calculate_range_cost, validate_ship_move

__all__ = [
    "GroupStats",
    "calculate_group_stats",
    "check_mission",
    "effective_deploy_cost",
    "DilemmaResolution",
    "resolve_dilemma",
    "resolve_selection_stop",
    "MoveValidation",
    "check_staffed",
    "calculate_range_cost",
    "validate_ship_move",
]
