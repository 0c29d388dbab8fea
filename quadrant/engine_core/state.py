"""
Game State - The aggregate root owned by the engine.

Design principles:
- Immutable-friendly: every mutation returns a new value
- Serializable: api/schemas.py turns a GameState into plain JSON and back
- Observable: every committed change is described in the action log
- Single writer: only the Reducer produces new GameState values
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, TYPE_CHECKING
import time

from ..cards.card import Card, DilemmaCard, MissionCard, PersonnelCard, ShipCard
from ..cards.ability import Duration, TargetFilter

if TYPE_CHECKING:
    from ..logic.dilemma_resolver import DilemmaResolution
    from .action import Action


Group = tuple[Card, ...]


class Phase(Enum):
    """Turn phases, in order."""
    PLAY_AND_DRAW = "PlayAndDraw"
    EXECUTE_ORDERS = "ExecuteOrders"
    DISCARD_EXCESS = "DiscardExcess"


PHASE_NAMES = {
    Phase.PLAY_AND_DRAW: "Play and Draw",
    Phase.EXECUTE_ORDERS: "Execute Orders",
    Phase.DISCARD_EXCESS: "Discard Excess",
}


class LogType(Enum):
    GAME_START = "game_start"
    NEW_TURN = "new_turn"
    PHASE_CHANGE = "phase_change"
    DRAW = "draw"
    DEPLOY = "deploy"
    DISCARD = "discard"
    MOVE_SHIP = "move_ship"
    BEAM = "beam"
    MISSION_ATTEMPT = "mission_attempt"
    DILEMMA_DRAW = "dilemma_draw"
    DILEMMA_RESULT = "dilemma_result"
    MISSION_COMPLETE = "mission_complete"
    MISSION_FAIL = "mission_fail"
    ORDER_ABILITY = "order_ability"
    INTERLINK = "interlink"
    INTERRUPT = "interrupt"
    EVENT = "event"
    GAME_OVER = "game_over"


@dataclass(frozen=True)
class ActionLogEntry:
    """One human-readable record of a committed change."""
    entry_id: str
    timestamp: float
    log_type: LogType
    message: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class GrantedSkill:
    """A skill granted by an ability to every card matching target."""
    skill: str
    target: TargetFilter
    duration: Duration
    source_card_id: str
    source_ability_id: str


@dataclass(frozen=True)
class RangeBoost:
    """Extra range applied to one ship until the boost expires."""
    ship_instance_id: str
    value: int
    duration: Duration
    source_card_id: str = ""


@dataclass(frozen=True)
class MissionDeployment:
    """
    One mission location and everything at it.

    Group 0 is the surface (personnel not aboard a ship). Each later group
    is one ship and its crew.
    """
    mission: MissionCard
    groups: tuple[Group, ...] = ((),)
    dilemmas: tuple[DilemmaCard, ...] = ()

    @property
    def overcome_count(self) -> int:
        """Dilemmas recorded here that were overcome."""
        return sum(1 for d in self.dilemmas if d.overcome)

    def group(self, index: int) -> Group:
        return self.groups[index]

    def has_group(self, index: int) -> bool:
        return 0 <= index < len(self.groups)

    def group_ship(self, index: int) -> ShipCard | None:
        for card in self.groups[index]:
            if isinstance(card, ShipCard):
                return card
        return None

    def with_mission(self, mission: MissionCard) -> MissionDeployment:
        return replace(self, mission=mission)

    def with_group(self, index: int, cards: Group) -> MissionDeployment:
        groups = list(self.groups)
        groups[index] = tuple(cards)
        return replace(self, groups=tuple(groups))

    def add_to_group(self, index: int, card: Card) -> MissionDeployment:
        return self.with_group(index, self.groups[index] + (card,))

    def add_group(self, cards: Group) -> MissionDeployment:
        """Append a new group (a ship and its crew)."""
        return replace(self, groups=self.groups + (tuple(cards),))

    def remove_group(self, index: int) -> MissionDeployment:
        """Detach a whole group. Group 0 is never removed, only emptied."""
        if index == 0:
            return self.with_group(0, ())
        return replace(self, groups=self.groups[:index] + self.groups[index + 1:])

    def with_dilemma(self, dilemma: DilemmaCard) -> MissionDeployment:
        return replace(self, dilemmas=self.dilemmas + (dilemma,))

    def all_cards(self) -> list[Card]:
        return [card for group in self.groups for card in group]

    def locate(self, instance_id: str) -> tuple[int, Card] | None:
        """Find (group index, card) for an instance at this mission."""
        for group_index, group in enumerate(self.groups):
            for card in group:
                if card.instance_id == instance_id:
                    return group_index, card
        return None

    def replace_card(self, card: Card) -> MissionDeployment:
        """Swap in a new value for the card with the same instance id."""
        groups = tuple(
            tuple(card if c.instance_id == card.instance_id else c for c in group)
            for group in self.groups
        )
        return replace(self, groups=groups)

    def remove_card(self, instance_id: str) -> MissionDeployment:
        groups = tuple(
            tuple(c for c in group if c.instance_id != instance_id)
            for group in self.groups
        )
        return replace(self, groups=groups)


@dataclass(frozen=True)
class DilemmaEncounter:
    """
    One in-progress mission attempt.

    Exists only between attempt_mission and scoring, failure or an
    explicit clear_encounter.
    """
    mission_index: int
    group_index: int
    selected_dilemmas: tuple[DilemmaCard, ...]
    current_dilemma_index: int = 0
    cost_budget: int = 0
    cost_spent: int = 0
    faced_dilemma_ids: tuple[str, ...] = ()

    @property
    def current_dilemma(self) -> DilemmaCard | None:
        if 0 <= self.current_dilemma_index < len(self.selected_dilemmas):
            return self.selected_dilemmas[self.current_dilemma_index]
        return None


@dataclass(frozen=True)
class InPlayLocation:
    """Where a card in play sits."""
    mission_index: int
    group_index: int
    card: Card


@dataclass(frozen=True)
class GameState:
    """
    Complete game state at a point in time.

    This is the canonical state that the engine operates on.
    All state changes go through the reducer.
    """
    # Zones
    deck: tuple[Card, ...] = ()
    hand: tuple[Card, ...] = ()
    discard: tuple[Card, ...] = ()
    removed_from_game: tuple[Card, ...] = ()
    dilemma_pool: tuple[DilemmaCard, ...] = ()

    # Locations
    missions: tuple[MissionDeployment, ...] = ()
    headquarters_index: int = 0
    unique_in_play: frozenset[str] = frozenset()  # Base card ids

    # Turn structure
    turn: int = 0
    phase: Phase = Phase.PLAY_AND_DRAW
    counters: int = 0

    # Scoring
    score: int = 0
    completed_planet_missions: int = 0
    completed_space_missions: int = 0

    # Mission attempt
    dilemma_encounter: DilemmaEncounter | None = None
    dilemma_result: DilemmaResolution | None = None

    # Abilities
    used_abilities: frozenset[str] = frozenset()  # Reset every turn
    used_once_per_game: frozenset[str] = frozenset()
    granted_skills: tuple[GrantedSkill, ...] = ()
    range_boosts: tuple[RangeBoost, ...] = ()

    # Terminal flags
    game_over: bool = False
    victory: bool = False

    # History (for replay and diagnostics)
    action_log: tuple[ActionLogEntry, ...] = ()
    log_counter: int = 0
    action_history: tuple[Action, ...] = ()

    @property
    def is_started(self) -> bool:
        return bool(self.missions)

    def _copy_with(self, **kwargs) -> GameState:
        """Create a copy with some fields replaced."""
        return replace(self, **kwargs)

    def with_mission(self, index: int, deployment: MissionDeployment) -> GameState:
        """Return new state with one mission deployment replaced."""
        missions = list(self.missions)
        missions[index] = deployment
        return self._copy_with(missions=tuple(missions))

    def with_log(self, log_type: LogType, message: str, **details: Any) -> GameState:
        """Return new state with an action log entry appended."""
        counter = self.log_counter + 1
        entry = ActionLogEntry(
            entry_id=f"log-{counter}",
            timestamp=time.time(),
            log_type=log_type,
            message=message,
            details=details,
        )
        return self._copy_with(action_log=self.action_log + (entry,), log_counter=counter)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_in_hand(self, instance_id: str) -> Card | None:
        for card in self.hand:
            if card.instance_id == instance_id:
                return card
        return None

    def find_in_play(self, instance_id: str) -> InPlayLocation | None:
        for mission_index, deployment in enumerate(self.missions):
            located = deployment.locate(instance_id)
            if located is not None:
                group_index, card = located
                return InPlayLocation(mission_index, group_index, card)
        return None

    def in_play_cards(self) -> list[Card]:
        return [card for deployment in self.missions for card in deployment.all_cards()]

    def encounter_group(self) -> Group:
        """Cards in the group currently attempting a mission."""
        encounter = self.dilemma_encounter
        if encounter is None:
            return ()
        deployment = self.missions[encounter.mission_index]
        if not deployment.has_group(encounter.group_index):
            return ()
        return deployment.group(encounter.group_index)

    # ------------------------------------------------------------------
    # Shared transitions
    # ------------------------------------------------------------------

    def replace_in_play(self, card: Card) -> GameState:
        located = self.find_in_play(card.instance_id)
        if located is None:
            return self
        deployment = self.missions[located.mission_index].replace_card(card)
        return self.with_mission(located.mission_index, deployment)

    def remove_from_play(self, instance_id: str) -> tuple[Card | None, GameState]:
        """
        Take a card out of play, releasing its unique id.

        Returns (removed card, new state).
        """
        located = self.find_in_play(instance_id)
        if located is None:
            return None, self
        deployment = self.missions[located.mission_index].remove_card(instance_id)
        state = self.with_mission(located.mission_index, deployment)
        return located.card, state.release_unique(located.card)

    def release_unique(self, card: Card) -> GameState:
        if not card.unique:
            return self
        return self._copy_with(unique_in_play=self.unique_in_play - {card.card_id})

    def purge_duration(self, duration: Duration) -> GameState:
        """Drop granted skills and range boosts with the given expiry."""
        return self._copy_with(
            granted_skills=tuple(g for g in self.granted_skills if g.duration != duration),
            range_boosts=tuple(b for b in self.range_boosts if b.duration != duration),
        )

    def with_phase(self, phase: Phase) -> GameState:
        state = self._copy_with(phase=phase)
        return state.with_log(LogType.PHASE_CHANGE, f"{PHASE_NAMES[phase]} phase", phase=phase.value)

    def advance_if_exhausted(self) -> GameState:
        """Spending the last counter moves Play and Draw on to Execute Orders."""
        if self.phase == Phase.PLAY_AND_DRAW and self.counters == 0:
            return self.with_phase(Phase.EXECUTE_ORDERS)
        return self

    def personnel_in_play(self) -> list[PersonnelCard]:
        return [c for c in self.in_play_cards() if isinstance(c, PersonnelCard)]
