"""
Selectors - Read-only projections of GameState.

Used by:
1. The presentation layer, to decide what to show and enable
2. Scripted games and bots, to enumerate what can be done next
3. Tests, as a stable vocabulary over the raw state

Every function is pure: it reads a state and returns plain values.
"""

from __future__ import annotations
from typing import Any

from ..cards.card import (
    Card,
    EventCard,
    InterruptCard,
    MissionCard,
    PersonnelCard,
    ShipCard,
    is_deployable,
)
from ..cards.ability import RecoverFromDiscard, Trigger
from ..config import DEFAULT_CONFIG, EngineConfig
from ..logic.dilemma_resolver import DilemmaResolution
from ..logic.group_stats import effective_deploy_cost
from .effect_resolver import AbilityExecutor
from .state import ActionLogEntry, DilemmaEncounter, GameState, Group, MissionDeployment, Phase


# =============================================================================
# Zones and counters
# =============================================================================

def deck_count(state: GameState) -> int:
    return len(state.deck)


def hand_count(state: GameState) -> int:
    return len(state.hand)


def needs_discard(state: GameState, config: EngineConfig = DEFAULT_CONFIG) -> bool:
    return state.phase == Phase.DISCARD_EXCESS and len(state.hand) > config.max_hand_size


def phase(state: GameState) -> Phase:
    return state.phase


def turn(state: GameState) -> int:
    return state.turn


def counters(state: GameState) -> int:
    return state.counters


def score(state: GameState) -> int:
    return state.score


def is_game_over(state: GameState) -> bool:
    return state.game_over


def is_victory(state: GameState) -> bool:
    return state.victory


def discard_pile(state: GameState) -> tuple[Card, ...]:
    return state.discard


def removed_from_game(state: GameState) -> tuple[Card, ...]:
    return state.removed_from_game


def action_log(state: GameState) -> tuple[ActionLogEntry, ...]:
    return state.action_log


# =============================================================================
# Missions
# =============================================================================

def missions(state: GameState) -> tuple[MissionDeployment, ...]:
    return state.missions


def mission_at(state: GameState, index: int) -> MissionDeployment | None:
    if 0 <= index < len(state.missions):
        return state.missions[index]
    return None


def headquarters(state: GameState) -> MissionCard | None:
    deployment = mission_at(state, state.headquarters_index)
    return deployment.mission if deployment else None


def cards_in_group(state: GameState, mission_index: int, group_index: int) -> Group:
    deployment = mission_at(state, mission_index)
    if deployment is None or not deployment.has_group(group_index):
        return ()
    return deployment.group(group_index)


def personnel_at_mission(state: GameState, mission_index: int) -> list[PersonnelCard]:
    deployment = mission_at(state, mission_index)
    if deployment is None:
        return []
    return [c for c in deployment.all_cards() if isinstance(c, PersonnelCard)]


def ships_at_mission(state: GameState, mission_index: int) -> list[ShipCard]:
    deployment = mission_at(state, mission_index)
    if deployment is None:
        return []
    return [c for c in deployment.all_cards() if isinstance(c, ShipCard)]


# =============================================================================
# What can be done
# =============================================================================

def _active(state: GameState) -> bool:
    return state.is_started and not state.game_over


def can_draw(state: GameState) -> bool:
    return _active(state) and state.phase == Phase.PLAY_AND_DRAW and bool(state.deck) and state.counters > 0


def can_advance_phase(state: GameState, config: EngineConfig = DEFAULT_CONFIG) -> bool:
    """Mirrors the guards of next_phase."""
    if not _active(state):
        return False
    if state.phase == Phase.PLAY_AND_DRAW:
        return state.counters == 0 or not state.deck
    if state.phase == Phase.EXECUTE_ORDERS:
        return True
    return len(state.hand) <= config.max_hand_size and state.counters == 0


def deployable_cards(state: GameState) -> list[Card]:
    """Cards in hand that deploy would accept right now (at headquarters or elsewhere)."""
    if not _active(state) or state.phase != Phase.PLAY_AND_DRAW:
        return []
    in_play = state.in_play_cards()
    return [
        card for card in state.hand
        if is_deployable(card)
        and effective_deploy_cost(card, in_play) <= state.counters
        and not (card.unique and card.card_id in state.unique_in_play)
    ]


def playable_interrupts(state: GameState) -> list[tuple[InterruptCard, str]]:
    """(card, ability id) pairs that play_interrupt would accept."""
    if not _active(state):
        return []
    executor = AbilityExecutor()
    playable = []
    for card in state.hand:
        if not isinstance(card, InterruptCard):
            continue
        for ability in card.abilities:
            if ability.trigger != Trigger.INTERRUPT:
                continue
            if executor.play_interrupt(state, card.instance_id, ability.ability_id).success:
                playable.append((card, ability.ability_id))
    return playable


def playable_events(state: GameState) -> list[EventCard]:
    if not _active(state) or state.phase != Phase.PLAY_AND_DRAW:
        return []
    return [c for c in state.hand if isinstance(c, EventCard) and c.deploy <= state.counters]


def recoverable_cards(state: GameState, event_id: str) -> list[Card]:
    """Discard-pile cards an event in hand could bring back."""
    event = state.find_in_hand(event_id)
    if not isinstance(event, EventCard):
        return []
    allowed = {
        card_type
        for ability in event.abilities
        for effect in ability.effects_of(RecoverFromDiscard)
        for card_type in effect.card_types
    }
    return [c for c in state.discard if c.card_type in allowed]


# =============================================================================
# Mission attempts
# =============================================================================

def dilemma_encounter(state: GameState) -> DilemmaEncounter | None:
    return state.dilemma_encounter


def dilemma_result(state: GameState) -> DilemmaResolution | None:
    return state.dilemma_result


def turn_summary(state: GameState) -> dict[str, Any]:
    """One-line status for logs and the command line."""
    return {
        "turn": state.turn,
        "phase": state.phase.value,
        "counters": state.counters,
        "deck": len(state.deck),
        "hand": len(state.hand),
        "score": state.score,
        "completed": [d.mission.name for d in state.missions if d.mission.completed],
        "encounter": state.dilemma_encounter is not None,
        "game_over": state.game_over,
        "victory": state.victory,
    }
