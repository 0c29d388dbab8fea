"""
Game Service - The single mutable state cell in front of the engine.

The service:
1. Holds the current GameState
2. Translates action-API calls into Actions for the reducer
3. Swaps in the new state only when an action succeeds
4. Saves, restores and replays games through snapshots

Every action method returns True on success and False on refusal; the
reason for the last refusal is kept in last_error / last_error_code.
This layer is framework-agnostic.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging
from typing import Any, Iterable

from ..cards.catalog import CardCatalog, DEFAULT_DECK
from ..config import DEFAULT_CONFIG, EngineConfig
from ..engine_core.action import Action, ActionResult
from ..engine_core.reducer import Reducer
from ..engine_core.state import GameState
from ..shuffle import ShuffleFn, Shuffler, default_shuffle
from .schemas import GameSnapshot, action_from_snapshot, from_snapshot, to_snapshot

logger = logging.getLogger(__name__)


@dataclass
class GameService:
    """
    Main entry point for a presentation layer.

    Usage:
        service = GameService.seeded(42)
        service.setup_game(DEFAULT_DECK)
        service.draw(3)
        snapshot = service.snapshot()
    """
    catalog: CardCatalog = field(default_factory=CardCatalog.starter)
    config: EngineConfig = DEFAULT_CONFIG
    shuffle_fn: ShuffleFn = default_shuffle

    state: GameState = field(default_factory=GameState)
    last_result: ActionResult | None = field(default=None, repr=False)

    reducer: Reducer = field(init=False, repr=False)

    def __post_init__(self):
        self.reducer = Reducer(catalog=self.catalog, config=self.config, shuffle_fn=self.shuffle_fn)

    @classmethod
    def seeded(cls, seed: int, **kwargs: Any) -> GameService:
        """A service whose every shuffle is reproducible from seed."""
        return cls(shuffle_fn=Shuffler(seed), **kwargs)

    @property
    def last_error(self) -> str | None:
        return self.last_result.error if self.last_result else None

    @property
    def last_error_code(self) -> str | None:
        return self.last_result.error_code if self.last_result else None

    def dispatch(self, action: Action) -> bool:
        """Apply one action; the state changes only if it succeeds."""
        result = self.reducer.apply(self.state, action)
        self.last_result = result
        if result.success:
            self.state = result.new_state
        return result.success

    # ------------------------------------------------------------------
    # Action API
    # ------------------------------------------------------------------

    def setup_game(self, deck_ids: Iterable[str] = DEFAULT_DECK) -> bool:
        return self.dispatch(Action.setup_game(list(deck_ids)))

    def reset_game(self) -> bool:
        return self.dispatch(Action.reset_game())

    def new_turn(self) -> bool:
        return self.dispatch(Action.new_turn())

    def next_phase(self) -> bool:
        return self.dispatch(Action.next_phase())

    def draw(self, count: int = 1) -> bool:
        return self.dispatch(Action.draw(count))

    def deploy(self, card_id: str, mission_index: int | None = None) -> bool:
        return self.dispatch(Action.deploy(card_id, mission_index))

    def discard(self, card_id: str) -> bool:
        return self.dispatch(Action.discard(card_id))

    def move_ship(self, mission_index: int, group_index: int, target_mission_index: int) -> bool:
        return self.dispatch(Action.move_ship(mission_index, group_index, target_mission_index))

    def beam_to_ship(self, card_id: str, mission_index: int, group_index: int, target_group_index: int) -> bool:
        return self.dispatch(Action.beam_to_ship(card_id, mission_index, group_index, target_group_index))

    def beam_to_planet(self, card_id: str, mission_index: int, group_index: int) -> bool:
        return self.dispatch(Action.beam_to_planet(card_id, mission_index, group_index))

    def beam_all_to_ship(self, mission_index: int, group_index: int, target_group_index: int) -> bool:
        return self.dispatch(Action.beam_all_to_ship(mission_index, group_index, target_group_index))

    def beam_all_to_planet(self, mission_index: int, group_index: int) -> bool:
        return self.dispatch(Action.beam_all_to_planet(mission_index, group_index))

    def attempt_mission(self, mission_index: int, group_index: int) -> bool:
        return self.dispatch(Action.attempt_mission(mission_index, group_index))

    def select_personnel_for_dilemma(self, card_id: str) -> bool:
        return self.dispatch(Action.select_personnel_for_dilemma(card_id))

    def advance_dilemma(self) -> bool:
        return self.dispatch(Action.advance_dilemma())

    def clear_encounter(self) -> bool:
        return self.dispatch(Action.clear_encounter())

    def execute_order_ability(self, card_id: str, ability_id: str, params: dict[str, Any] | None = None) -> bool:
        return self.dispatch(Action.execute_order_ability(card_id, ability_id, params))

    def execute_interlink_ability(self, card_id: str, ability_id: str, params: dict[str, Any] | None = None) -> bool:
        return self.dispatch(Action.execute_interlink_ability(card_id, ability_id, params))

    def play_interrupt(self, card_id: str, ability_id: str) -> bool:
        return self.dispatch(Action.play_interrupt(card_id, ability_id))

    def play_event(self, card_id: str, params: dict[str, Any] | None = None) -> bool:
        return self.dispatch(Action.play_event(card_id, params))

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def snapshot(self) -> GameSnapshot:
        return to_snapshot(self.state)

    def to_json(self) -> str:
        return self.snapshot().model_dump_json()

    def restore(self, snapshot: GameSnapshot | dict[str, Any]) -> None:
        """Replace the current state with a saved one."""
        self.state = from_snapshot(snapshot, self.catalog)
        self.last_result = None
        logger.info("Restored game at turn %d", self.state.turn)

    def replay(self, snapshot: GameSnapshot | dict[str, Any], seed: int) -> GameState:
        """
        Rebuild a game from its recorded actions.

        The replay starts from an empty state with a fresh Shuffler(seed),
        so it reproduces the original game only when that game was played
        with the same seed. Returns the replayed state without installing it.
        """
        if not isinstance(snapshot, GameSnapshot):
            snapshot = GameSnapshot.model_validate(snapshot)
        reducer = Reducer(catalog=self.catalog, config=self.config, shuffle_fn=Shuffler(seed))
        state = GameState()
        for recorded in snapshot.action_history:
            action = action_from_snapshot(recorded)
            result = reducer.apply(state, action)
            if not result.success:
                raise ValueError(f"Replay diverged at {action.action_type.value}: {result.error}")
            state = result.new_state
        return state
