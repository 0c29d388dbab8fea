"""
Pydantic Schemas - The serialization boundary of the engine.

A GameSnapshot is a JSON-safe image of a GameState:
- Cards are stored by reference (card_id + instance_id) together with the
  few fields that change during play (status, remaining range, overcome,
  completed). Card text, stats and abilities come back from the catalog.
- Sets become sorted lists and enums become their values.
- The action history is kept, so a snapshot can also be replayed.

A snapshot that does not validate raises pydantic.ValidationError.
A snapshot that names a card the catalog does not know raises SnapshotError.
"""

from dataclasses import replace
from typing import Any, Optional, Union

from pydantic import BaseModel, Field

from ..cards.card import (
    Card,
    CardType,
    DilemmaCard,
    MissionCard,
    PersonnelCard,
    PersonnelStatus,
    ShipCard,
)
from ..cards.ability import Duration, TargetFilter, TargetScope
from ..cards.catalog import CardCatalog
from ..engine_core.action import Action, ActionPayload, ActionType
from ..engine_core.state import (
    ActionLogEntry,
    DilemmaEncounter,
    GameState,
    GrantedSkill,
    LogType,
    MissionDeployment,
    Phase,
    RangeBoost,
)
from ..logic.dilemma_resolver import DilemmaResolution

SNAPSHOT_VERSION = 1


class SnapshotError(ValueError):
    """A snapshot refers to something the catalog cannot provide."""


# =============================================================================
# Models
# =============================================================================

class CardSnapshot(BaseModel):
    """One card instance by reference, plus its in-play state."""
    card_id: str
    instance_id: str
    name: str = ""
    card_type: CardType
    owner_id: Optional[str] = None
    status: Optional[PersonnelStatus] = Field(None, description="Personnel only")
    range_remaining: Optional[int] = Field(None, description="Ships only")
    overcome: Optional[bool] = Field(None, description="Dilemmas only")
    faceup: Optional[bool] = Field(None, description="Dilemmas only")
    completed: Optional[bool] = Field(None, description="Missions only")

    model_config = {"from_attributes": True}


class MissionSnapshot(BaseModel):
    mission: CardSnapshot
    groups: list[list[CardSnapshot]] = Field(default_factory=lambda: [[]])
    dilemmas: list[CardSnapshot] = Field(default_factory=list)


class EncounterSnapshot(BaseModel):
    mission_index: int
    group_index: int
    selected_dilemmas: list[CardSnapshot] = Field(default_factory=list)
    current_dilemma_index: int = 0
    cost_budget: int = 0
    cost_spent: int = 0
    faced_dilemma_ids: list[str] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class ResolutionSnapshot(BaseModel):
    stopped_personnel: list[str] = Field(default_factory=list)
    killed_personnel: list[str] = Field(default_factory=list)
    overcome: bool = False
    returns_to_pile: bool = False
    message: str = ""
    requires_selection: bool = False
    selectable_personnel: list[str] = Field(default_factory=list)
    selection_prompt: Optional[str] = None
    failure_reason: Optional[str] = None

    model_config = {"from_attributes": True}


class TargetFilterSnapshot(BaseModel):
    scope: TargetScope = TargetScope.SELF
    card_types: list[CardType] = Field(default_factory=list)
    affiliations: list[str] = Field(default_factory=list)
    species: list[str] = Field(default_factory=list)
    exclude_self: bool = False

    model_config = {"from_attributes": True}


class GrantedSkillSnapshot(BaseModel):
    skill: str
    target: TargetFilterSnapshot
    duration: Duration
    source_card_id: str
    source_ability_id: str

    model_config = {"from_attributes": True}


class RangeBoostSnapshot(BaseModel):
    ship_instance_id: str
    value: int
    duration: Duration
    source_card_id: str = ""

    model_config = {"from_attributes": True}


class LogEntrySnapshot(BaseModel):
    entry_id: str
    timestamp: float
    log_type: LogType
    message: str
    details: dict[str, Any] = Field(default_factory=dict)

    model_config = {"from_attributes": True}


class ActionSnapshot(BaseModel):
    """A recorded action, flattened for JSON."""
    action_type: ActionType
    card_id: Optional[str] = None
    ability_id: Optional[str] = None
    mission_index: Optional[int] = None
    group_index: Optional[int] = None
    target_mission_index: Optional[int] = None
    target_group_index: Optional[int] = None
    count: Optional[int] = None
    deck_ids: list[str] = Field(default_factory=list)
    params: dict[str, Any] = Field(default_factory=dict)


class GameSnapshot(BaseModel):
    """Complete JSON-safe image of a game."""
    version: int = SNAPSHOT_VERSION

    deck: list[CardSnapshot] = Field(default_factory=list)
    hand: list[CardSnapshot] = Field(default_factory=list)
    discard: list[CardSnapshot] = Field(default_factory=list)
    removed_from_game: list[CardSnapshot] = Field(default_factory=list)
    dilemma_pool: list[CardSnapshot] = Field(default_factory=list)

    missions: list[MissionSnapshot] = Field(default_factory=list)
    headquarters_index: int = 0
    unique_in_play: list[str] = Field(default_factory=list)

    turn: int = 0
    phase: Phase = Phase.PLAY_AND_DRAW
    counters: int = 0

    score: int = 0
    completed_planet_missions: int = 0
    completed_space_missions: int = 0

    dilemma_encounter: Optional[EncounterSnapshot] = None
    dilemma_result: Optional[ResolutionSnapshot] = None

    used_abilities: list[str] = Field(default_factory=list)
    used_once_per_game: list[str] = Field(default_factory=list)
    granted_skills: list[GrantedSkillSnapshot] = Field(default_factory=list)
    range_boosts: list[RangeBoostSnapshot] = Field(default_factory=list)

    game_over: bool = False
    victory: bool = False

    action_log: list[LogEntrySnapshot] = Field(default_factory=list)
    log_counter: int = 0
    action_history: list[ActionSnapshot] = Field(default_factory=list)


# =============================================================================
# State -> snapshot
# =============================================================================

def card_to_snapshot(card: Card) -> CardSnapshot:
    snapshot = CardSnapshot(
        card_id=card.card_id,
        instance_id=card.instance_id,
        name=card.name,
        card_type=card.card_type,
        owner_id=card.owner_id,
    )
    if isinstance(card, PersonnelCard):
        snapshot.status = card.status
    elif isinstance(card, ShipCard):
        snapshot.range_remaining = card.range_remaining
    elif isinstance(card, DilemmaCard):
        snapshot.overcome = card.overcome
        snapshot.faceup = card.faceup
    elif isinstance(card, MissionCard):
        snapshot.completed = card.completed
    return snapshot


def _cards(cards) -> list[CardSnapshot]:
    return [card_to_snapshot(c) for c in cards]


def action_to_snapshot(action: Action) -> ActionSnapshot:
    payload = action.payload
    return ActionSnapshot(
        action_type=action.action_type,
        card_id=payload.card_id,
        ability_id=payload.ability_id,
        mission_index=payload.mission_index,
        group_index=payload.group_index,
        target_mission_index=payload.target_mission_index,
        target_group_index=payload.target_group_index,
        count=payload.count,
        deck_ids=list(payload.deck_ids),
        params=dict(payload.params),
    )


def to_snapshot(state: GameState) -> GameSnapshot:
    """Build the JSON-safe snapshot of a state."""
    encounter = state.dilemma_encounter
    result = state.dilemma_result
    return GameSnapshot(
        deck=_cards(state.deck),
        hand=_cards(state.hand),
        discard=_cards(state.discard),
        removed_from_game=_cards(state.removed_from_game),
        dilemma_pool=_cards(state.dilemma_pool),
        missions=[
            MissionSnapshot(
                mission=card_to_snapshot(d.mission),
                groups=[_cards(group) for group in d.groups],
                dilemmas=_cards(d.dilemmas),
            )
            for d in state.missions
        ],
        headquarters_index=state.headquarters_index,
        unique_in_play=sorted(state.unique_in_play),
        turn=state.turn,
        phase=state.phase,
        counters=state.counters,
        score=state.score,
        completed_planet_missions=state.completed_planet_missions,
        completed_space_missions=state.completed_space_missions,
        dilemma_encounter=EncounterSnapshot(
            mission_index=encounter.mission_index,
            group_index=encounter.group_index,
            selected_dilemmas=_cards(encounter.selected_dilemmas),
            current_dilemma_index=encounter.current_dilemma_index,
            cost_budget=encounter.cost_budget,
            cost_spent=encounter.cost_spent,
            faced_dilemma_ids=list(encounter.faced_dilemma_ids),
        ) if encounter else None,
        dilemma_result=ResolutionSnapshot.model_validate(result) if result else None,
        used_abilities=sorted(state.used_abilities),
        used_once_per_game=sorted(state.used_once_per_game),
        granted_skills=[GrantedSkillSnapshot.model_validate(g) for g in state.granted_skills],
        range_boosts=[RangeBoostSnapshot.model_validate(b) for b in state.range_boosts],
        game_over=state.game_over,
        victory=state.victory,
        action_log=[LogEntrySnapshot.model_validate(e) for e in state.action_log],
        log_counter=state.log_counter,
        action_history=[action_to_snapshot(a) for a in state.action_history],
    )


# =============================================================================
# Snapshot -> state
# =============================================================================

def restore_card(snapshot: CardSnapshot, catalog: CardCatalog) -> Card:
    """Rebuild a card instance from its template and saved play state."""
    template = catalog.lookup(snapshot.card_id)
    if template is None:
        raise SnapshotError(f"Unknown card id in snapshot: {snapshot.card_id}")
    card = template.with_instance(snapshot.instance_id, snapshot.owner_id)
    if isinstance(card, PersonnelCard) and snapshot.status is not None:
        card = card.with_status(snapshot.status)
    elif isinstance(card, ShipCard) and snapshot.range_remaining is not None:
        card = card.with_range_remaining(snapshot.range_remaining)
    elif isinstance(card, DilemmaCard):
        card = replace(card, overcome=bool(snapshot.overcome), faceup=bool(snapshot.faceup))
    elif isinstance(card, MissionCard):
        card = replace(card, completed=bool(snapshot.completed))
    return card


def _restore(cards: list[CardSnapshot], catalog: CardCatalog) -> tuple:
    return tuple(restore_card(c, catalog) for c in cards)


def action_from_snapshot(snapshot: ActionSnapshot) -> Action:
    return Action(
        snapshot.action_type,
        ActionPayload(
            card_id=snapshot.card_id,
            ability_id=snapshot.ability_id,
            mission_index=snapshot.mission_index,
            group_index=snapshot.group_index,
            target_mission_index=snapshot.target_mission_index,
            target_group_index=snapshot.target_group_index,
            count=snapshot.count,
            deck_ids=tuple(snapshot.deck_ids),
            params=dict(snapshot.params),
        ),
    )


def from_snapshot(
    snapshot: Union[GameSnapshot, dict[str, Any]],
    catalog: Optional[CardCatalog] = None,
) -> GameState:
    """Rehydrate a GameState. Plain dicts are validated first."""
    if not isinstance(snapshot, GameSnapshot):
        snapshot = GameSnapshot.model_validate(snapshot)
    catalog = catalog or CardCatalog.starter()

    encounter = None
    if snapshot.dilemma_encounter is not None:
        e = snapshot.dilemma_encounter
        encounter = DilemmaEncounter(
            mission_index=e.mission_index,
            group_index=e.group_index,
            selected_dilemmas=_restore(e.selected_dilemmas, catalog),
            current_dilemma_index=e.current_dilemma_index,
            cost_budget=e.cost_budget,
            cost_spent=e.cost_spent,
            faced_dilemma_ids=tuple(e.faced_dilemma_ids),
        )

    result = None
    if snapshot.dilemma_result is not None:
        r = snapshot.dilemma_result
        result = DilemmaResolution(
            stopped_personnel=tuple(r.stopped_personnel),
            killed_personnel=tuple(r.killed_personnel),
            overcome=r.overcome,
            returns_to_pile=r.returns_to_pile,
            message=r.message,
            requires_selection=r.requires_selection,
            selectable_personnel=tuple(r.selectable_personnel),
            selection_prompt=r.selection_prompt,
            failure_reason=r.failure_reason,
        )

    return GameState(
        deck=_restore(snapshot.deck, catalog),
        hand=_restore(snapshot.hand, catalog),
        discard=_restore(snapshot.discard, catalog),
        removed_from_game=_restore(snapshot.removed_from_game, catalog),
        dilemma_pool=_restore(snapshot.dilemma_pool, catalog),
        missions=tuple(
            MissionDeployment(
                mission=restore_card(m.mission, catalog),
                groups=tuple(_restore(group, catalog) for group in m.groups),
                dilemmas=_restore(m.dilemmas, catalog),
            )
            for m in snapshot.missions
        ),
        headquarters_index=snapshot.headquarters_index,
        unique_in_play=frozenset(snapshot.unique_in_play),
        turn=snapshot.turn,
        phase=snapshot.phase,
        counters=snapshot.counters,
        score=snapshot.score,
        completed_planet_missions=snapshot.completed_planet_missions,
        completed_space_missions=snapshot.completed_space_missions,
        dilemma_encounter=encounter,
        dilemma_result=result,
        used_abilities=frozenset(snapshot.used_abilities),
        used_once_per_game=frozenset(snapshot.used_once_per_game),
        granted_skills=tuple(
            GrantedSkill(
                skill=g.skill,
                target=TargetFilter(
                    scope=g.target.scope,
                    card_types=tuple(g.target.card_types),
                    affiliations=tuple(g.target.affiliations),
                    species=tuple(g.target.species),
                    exclude_self=g.target.exclude_self,
                ),
                duration=g.duration,
                source_card_id=g.source_card_id,
                source_ability_id=g.source_ability_id,
            )
            for g in snapshot.granted_skills
        ),
        range_boosts=tuple(
            RangeBoost(b.ship_instance_id, b.value, b.duration, b.source_card_id)
            for b in snapshot.range_boosts
        ),
        game_over=snapshot.game_over,
        victory=snapshot.victory,
        action_log=tuple(
            ActionLogEntry(e.entry_id, e.timestamp, e.log_type, e.message, dict(e.details))
            for e in snapshot.action_log
        ),
        log_counter=snapshot.log_counter,
        action_history=tuple(action_from_snapshot(a) for a in snapshot.action_history),
    )
