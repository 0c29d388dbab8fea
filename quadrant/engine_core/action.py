"""
Action System - Actions, payloads, and results.

Actions represent:
1. Turn structure (setup, next phase, new turn)
2. Resource actions (draw, deploy, discard, play event)
3. Movement (move ship, beam personnel)
4. Mission attempts and dilemma resolution
5. Ability use (orders, interlinks, interrupts)

All state changes flow through actions, and every committed action is
recorded on the state so a game can be replayed from its seed.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ActionType(Enum):
    """Types of actions in the system."""
    # Turn structure
    SETUP_GAME = "setup_game"
    RESET_GAME = "reset_game"
    NEW_TURN = "new_turn"
    NEXT_PHASE = "next_phase"

    # Resources
    DRAW = "draw"
    DEPLOY = "deploy"
    DISCARD = "discard"

    # Movement
    MOVE_SHIP = "move_ship"
    BEAM_TO_SHIP = "beam_to_ship"
    BEAM_TO_PLANET = "beam_to_planet"
    BEAM_ALL_TO_SHIP = "beam_all_to_ship"
    BEAM_ALL_TO_PLANET = "beam_all_to_planet"

    # Mission attempts
    ATTEMPT_MISSION = "attempt_mission"
    SELECT_PERSONNEL_FOR_DILEMMA = "select_personnel_for_dilemma"
    ADVANCE_DILEMMA = "advance_dilemma"
    CLEAR_ENCOUNTER = "clear_encounter"

    # Abilities
    EXECUTE_ORDER_ABILITY = "execute_order_ability"
    EXECUTE_INTERLINK_ABILITY = "execute_interlink_ability"
    PLAY_INTERRUPT = "play_interrupt"
    PLAY_EVENT = "play_event"


class ErrorCode:
    """Structured refusal codes carried by ActionResult.error_code."""
    WRONG_PHASE = "WRONG_PHASE"
    INSUFFICIENT_COUNTERS = "INSUFFICIENT_COUNTERS"
    CARD_NOT_FOUND = "CARD_NOT_FOUND"
    OUT_OF_RANGE = "OUT_OF_RANGE"
    AFFILIATION_MISMATCH = "AFFILIATION_MISMATCH"
    UNIQUE_IN_PLAY = "UNIQUE_IN_PLAY"
    INVALID_TARGET = "INVALID_TARGET"
    NO_ENCOUNTER = "NO_ENCOUNTER"
    CONDITION_FAILED = "CONDITION_FAILED"
    ALREADY_USED = "ALREADY_USED"
    CANNOT_PAY = "CANNOT_PAY"
    GAME_OVER = "GAME_OVER"
    NOT_STARTED = "NOT_STARTED"
    NO_HANDLER = "NO_HANDLER"
    HANDLER_ERROR = "HANDLER_ERROR"


@dataclass(frozen=True)
class ActionPayload:
    """
    Payload for an action - contains the action parameters.

    Different action types use different fields.
    This is a generic container; validation happens in the reducer.
    """
    # Card references are instance ids
    card_id: str | None = None
    ability_id: str | None = None

    # Locations
    mission_index: int | None = None
    group_index: int | None = None
    target_mission_index: int | None = None
    target_group_index: int | None = None

    # Resources
    count: int | None = None
    deck_ids: tuple[str, ...] = ()

    # Ability parameters: skill, personnel_ids, selected_card_ids
    params: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Action:
    """
    A complete action to be applied to the game state.

    Actions are:
    - Logged for replay
    - Validated before application
    - Applied atomically by the reducer
    """
    action_type: ActionType
    payload: ActionPayload = ActionPayload()

    @classmethod
    def setup_game(cls, deck_ids: list[str]) -> Action:
        return cls(ActionType.SETUP_GAME, ActionPayload(deck_ids=tuple(deck_ids)))

    @classmethod
    def reset_game(cls) -> Action:
        return cls(ActionType.RESET_GAME)

    @classmethod
    def new_turn(cls) -> Action:
        return cls(ActionType.NEW_TURN)

    @classmethod
    def next_phase(cls) -> Action:
        return cls(ActionType.NEXT_PHASE)

    @classmethod
    def draw(cls, count: int = 1) -> Action:
        """Factory for draw action."""
        return cls(ActionType.DRAW, ActionPayload(count=count))

    @classmethod
    def deploy(cls, card_id: str, mission_index: int | None = None) -> Action:
        """Factory for deploy action. No mission means headquarters."""
        return cls(ActionType.DEPLOY, ActionPayload(card_id=card_id, mission_index=mission_index))

    @classmethod
    def discard(cls, card_id: str) -> Action:
        return cls(ActionType.DISCARD, ActionPayload(card_id=card_id))

    @classmethod
    def move_ship(cls, mission_index: int, group_index: int, target_mission_index: int) -> Action:
        return cls(
            ActionType.MOVE_SHIP,
            ActionPayload(
                mission_index=mission_index,
                group_index=group_index,
                target_mission_index=target_mission_index,
            ),
        )

    @classmethod
    def beam_to_ship(
        cls, card_id: str, mission_index: int, group_index: int, target_group_index: int
    ) -> Action:
        return cls(
            ActionType.BEAM_TO_SHIP,
            ActionPayload(
                card_id=card_id,
                mission_index=mission_index,
                group_index=group_index,
                target_group_index=target_group_index,
            ),
        )

    @classmethod
    def beam_to_planet(cls, card_id: str, mission_index: int, group_index: int) -> Action:
        return cls(
            ActionType.BEAM_TO_PLANET,
            ActionPayload(card_id=card_id, mission_index=mission_index, group_index=group_index),
        )

    @classmethod
    def beam_all_to_ship(cls, mission_index: int, group_index: int, target_group_index: int) -> Action:
        return cls(
            ActionType.BEAM_ALL_TO_SHIP,
            ActionPayload(
                mission_index=mission_index,
                group_index=group_index,
                target_group_index=target_group_index,
            ),
        )

    @classmethod
    def beam_all_to_planet(cls, mission_index: int, group_index: int) -> Action:
        return cls(
            ActionType.BEAM_ALL_TO_PLANET,
            ActionPayload(mission_index=mission_index, group_index=group_index),
        )

    @classmethod
    def attempt_mission(cls, mission_index: int, group_index: int) -> Action:
        return cls(
            ActionType.ATTEMPT_MISSION,
            ActionPayload(mission_index=mission_index, group_index=group_index),
        )

    @classmethod
    def select_personnel_for_dilemma(cls, card_id: str) -> Action:
        return cls(ActionType.SELECT_PERSONNEL_FOR_DILEMMA, ActionPayload(card_id=card_id))

    @classmethod
    def advance_dilemma(cls) -> Action:
        return cls(ActionType.ADVANCE_DILEMMA)

    @classmethod
    def clear_encounter(cls) -> Action:
        return cls(ActionType.CLEAR_ENCOUNTER)

    @classmethod
    def execute_order_ability(
        cls, card_id: str, ability_id: str, params: dict[str, Any] | None = None
    ) -> Action:
        return cls(
            ActionType.EXECUTE_ORDER_ABILITY,
            ActionPayload(card_id=card_id, ability_id=ability_id, params=params or {}),
        )

    @classmethod
    def execute_interlink_ability(
        cls, card_id: str, ability_id: str, params: dict[str, Any] | None = None
    ) -> Action:
        return cls(
            ActionType.EXECUTE_INTERLINK_ABILITY,
            ActionPayload(card_id=card_id, ability_id=ability_id, params=params or {}),
        )

    @classmethod
    def play_interrupt(cls, card_id: str, ability_id: str) -> Action:
        return cls(ActionType.PLAY_INTERRUPT, ActionPayload(card_id=card_id, ability_id=ability_id))

    @classmethod
    def play_event(cls, card_id: str, params: dict[str, Any] | None = None) -> Action:
        return cls(ActionType.PLAY_EVENT, ActionPayload(card_id=card_id, params=params or {}))


@dataclass
class ActionResult:
    """
    Result of applying an action.

    Contains:
    - Whether action succeeded
    - New state (if succeeded)
    - Errors (if failed)
    - Human-readable changes (for UI updates)
    """
    success: bool
    new_state: Any | None = None  # GameState
    error: str | None = None
    error_code: str | None = None

    # For UI/presentation
    state_changes: list[str] = field(default_factory=list)

    # Set when a dilemma waits for the player to pick a personnel
    pending_choice: Any | None = None  # DilemmaResolution

    @classmethod
    def failure(cls, error: str, error_code: str | None = None) -> ActionResult:
        """Create a failure result."""
        return cls(success=False, error=error, error_code=error_code)

    @classmethod
    def success_with_state(
        cls,
        state: Any,
        changes: list[str] | None = None,
        pending_choice: Any | None = None,
    ) -> ActionResult:
        """Create a success result with new state."""
        return cls(
            success=True,
            new_state=state,
            state_changes=changes or [],
            pending_choice=pending_choice,
        )
