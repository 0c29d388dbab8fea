"""
Engine Core - Deterministic game state management and rule enforcement.

The engine is the runtime that:
1. Builds a GameState from a deck list
2. Applies actions via the reducer
3. Drives mission attempts through the dilemma encounter
4. Executes card abilities as validate-pay-apply transactions
5. Projects state for the presentation layer (selectors)
"""

from .state import GameState, MissionDeployment, DilemmaEncounter, GrantedSkill, RangeBoost, Phase, LogType
from .action import Action, ActionType, ActionPayload, ActionResult, ErrorCode
from .reducer import Reducer, apply_action
from .encounter import EncounterRules, select_dilemmas
from .effect_resolver import AbilityExecutor, AbilityParams

__all__ = [
    "GameState",
    "MissionDeployment",
    "DilemmaEncounter",
    "GrantedSkill",
    "RangeBoost",
    "Phase",
    "LogType",
    "Action",
    "ActionType",
    "ActionPayload",
    "ActionResult",
    "ErrorCode",
    "Reducer",
    "apply_action",
    "EncounterRules",
    "select_dilemmas",
    "AbilityExecutor",
    "AbilityParams",
]
