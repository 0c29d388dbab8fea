"""
Effect Resolver - Executes order, interlink, interrupt and event abilities.

Every use is a small transaction:
1. Validate: phase, location, trigger, conditions, usage limit, every
   effect's parameters and whether the cost can be paid
2. Pay the cost
3. Apply each effect in declaration order

Nothing is paid or applied until step 1 has passed, so a refused ability
never leaves the state half-changed. Effects, costs and conditions are
dispatched through handler tables keyed by their variant class.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
import logging
from typing import Any, Callable

from ..cards.card import (
    Card,
    EventCard,
    InterruptCard,
    MissionType,
    PersonnelCard,
    PersonnelStatus,
    ShipCard,
    card_affiliations,
    card_species,
    find_ability,
)
from ..cards.ability import (
    AboardShip,
    Ability,
    AtPlanet,
    BeamAllToShip,
    BorgPersonnelFacing,
    DilemmaOvercomeAtAnyMission,
    DiscardFromDeck,
    DiscardFromHand,
    Duration,
    HandRefresh,
    HasPersonnelPresent,
    InterruptTiming,
    PreventAndOvercomeDilemma,
    RecoverDestination,
    RecoverFromDiscard,
    ReturnToHand,
    SacrificeSelf,
    ShipRangeModifier,
    SkillGrant,
    SkillSourceFilter,
    StopSelf,
    TargetScope,
    Trigger,
    UsageLimit,
)
from ..config import DEFAULT_CONFIG, EngineConfig
from ..logic.dilemma_resolver import DilemmaResolution
from ..logic.group_stats import unstopped_personnel
from ..shuffle import ShuffleFn, default_shuffle
from .action import ActionResult, ErrorCode
from .state import GameState, GrantedSkill, InPlayLocation, LogType, Phase, RangeBoost

logger = logging.getLogger(__name__)


class AbilityError(Exception):
    """Raised during validation; carries the refusal code."""

    def __init__(self, message: str, error_code: str = ErrorCode.INVALID_TARGET):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


@dataclass(frozen=True)
class AbilityParams:
    """Player choices supplied with an ability use."""
    skill: str | None = None
    personnel_ids: tuple[str, ...] = ()
    target_group_index: int | None = None
    selected_card_ids: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, params: dict[str, Any] | None) -> AbilityParams:
        params = params or {}
        return cls(
            skill=params.get("skill"),
            personnel_ids=tuple(params.get("personnel_ids", ())),
            target_group_index=params.get("target_group_index"),
            selected_card_ids=tuple(params.get("selected_card_ids", ())),
        )


@dataclass(frozen=True)
class Activation:
    """Everything validated about one ability use."""
    card: Card
    ability: Ability
    params: AbilityParams
    location: InPlayLocation | None = None
    default_duration: Duration = Duration.UNTIL_END_OF_TURN

    @property
    def usage_key(self) -> str:
        return f"{self.card.instance_id}:{self.ability.ability_id}"


def skills_from_source(state: GameState, activation: Activation, source: SkillSourceFilter) -> list[str]:
    """Sorted native skills of the personnel a skill may be copied from."""
    location = activation.location
    if location is None:
        return []
    if source.scope == TargetScope.ALL_IN_PLAY:
        cards = state.in_play_cards()
    elif source.scope == TargetScope.MISSION:
        cards = state.missions[location.mission_index].all_cards()
    else:
        cards = state.missions[location.mission_index].group(location.group_index)

    skills: set[str] = set()
    for personnel in unstopped_personnel(cards):
        if personnel.instance_id == activation.card.instance_id:
            continue
        affiliations, species = card_affiliations(personnel), card_species(personnel)
        if source.affiliations and not any(a in source.affiliations for a in affiliations):
            continue
        if source.species and not any(s in source.species for s in species):
            continue
        if any(a in source.exclude_affiliations for a in affiliations):
            continue
        if any(s in source.exclude_species for s in species):
            continue
        skills.update(personnel.skills)
    return sorted(skills)


@dataclass
class AbilityExecutor:
    """Validates, pays for and applies ability uses."""
    config: EngineConfig = DEFAULT_CONFIG
    shuffle_fn: ShuffleFn = default_shuffle

    _effect_checks: dict[type, Callable] = field(init=False, repr=False)
    _effect_handlers: dict[type, Callable] = field(init=False, repr=False)
    _cost_checks: dict[type, Callable] = field(init=False, repr=False)
    _cost_handlers: dict[type, Callable] = field(init=False, repr=False)
    _condition_checks: dict[type, Callable] = field(init=False, repr=False)

    def __post_init__(self):
        self._effect_checks = {
            SkillGrant: self._check_skill_grant,
            HandRefresh: self._check_nothing,
            BeamAllToShip: self._check_beam_all,
            ShipRangeModifier: self._check_ship_range,
            PreventAndOvercomeDilemma: self._check_prevent,
            RecoverFromDiscard: self._check_recover,
        }
        self._effect_handlers = {
            SkillGrant: self._apply_skill_grant,
            HandRefresh: self._apply_hand_refresh,
            BeamAllToShip: self._apply_beam_all,
            ShipRangeModifier: self._apply_ship_range,
            PreventAndOvercomeDilemma: self._apply_prevent,
            RecoverFromDiscard: self._apply_recover,
        }
        self._cost_checks = {
            DiscardFromDeck: lambda state, act, cost: len(state.deck) >= cost.count,
            DiscardFromHand: lambda state, act, cost: len(_other_hand_cards(state, act)) >= cost.count,
            StopSelf: lambda state, act, cost: act.location is not None and _is_unstopped(act.card),
            SacrificeSelf: lambda state, act, cost: act.location is not None and not _in_attempt(state, act),
            ReturnToHand: lambda state, act, cost: act.location is not None and not _in_attempt(state, act),
        }
        self._cost_handlers = {
            DiscardFromDeck: self._pay_discard_from_deck,
            DiscardFromHand: self._pay_discard_from_hand,
            StopSelf: self._pay_stop_self,
            SacrificeSelf: self._pay_sacrifice_self,
            ReturnToHand: self._pay_return_to_hand,
        }
        self._condition_checks = {
            AboardShip: self._aboard_ship,
            AtPlanet: self._at_planet,
            HasPersonnelPresent: self._has_personnel_present,
            BorgPersonnelFacing: self._borg_personnel_facing,
            DilemmaOvercomeAtAnyMission: self._dilemma_overcome_elsewhere,
        }

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def execute_order(self, state: GameState, card_id: str, ability_id: str, params: dict | None = None) -> ActionResult:
        try:
            if state.phase != Phase.EXECUTE_ORDERS:
                raise AbilityError("Orders can only be used during Execute Orders", ErrorCode.WRONG_PHASE)
            activation = self._in_play_activation(state, card_id, ability_id, Trigger.ORDER, params)
            activation = replace(activation, default_duration=Duration.UNTIL_END_OF_TURN)
            self._validate(state, activation)
        except AbilityError as e:
            return ActionResult.failure(e.message, e.error_code)

        state = self._commit(state, activation)
        state = state.with_log(
            LogType.ORDER_ABILITY,
            f"{activation.card.name} used {activation.ability.ability_id}",
            card=card_id,
            ability=ability_id,
        )
        return ActionResult.success_with_state(state, changes=[f"{activation.card.name} used an order ability"])

    def execute_interlink(self, state: GameState, card_id: str, ability_id: str, params: dict | None = None) -> ActionResult:
        try:
            encounter = state.dilemma_encounter
            if encounter is None:
                raise AbilityError("Interlinks need a mission attempt in progress", ErrorCode.NO_ENCOUNTER)
            activation = self._in_play_activation(state, card_id, ability_id, Trigger.INTERLINK, params)
            location = activation.location
            if (location.mission_index, location.group_index) != (encounter.mission_index, encounter.group_index):
                raise AbilityError(f"{activation.card.name} is not attempting the mission", ErrorCode.INVALID_TARGET)
            activation = replace(activation, default_duration=Duration.UNTIL_END_OF_MISSION_ATTEMPT)
            self._validate(state, activation)
        except AbilityError as e:
            return ActionResult.failure(e.message, e.error_code)

        state = self._commit(state, activation)
        state = state.with_log(
            LogType.INTERLINK,
            f"{activation.card.name} interlinked",
            card=card_id,
            ability=ability_id,
        )
        return ActionResult.success_with_state(state, changes=[f"{activation.card.name} interlinked"])

    def play_interrupt(self, state: GameState, card_id: str, ability_id: str) -> ActionResult:
        try:
            card = state.find_in_hand(card_id)
            if not isinstance(card, InterruptCard):
                raise AbilityError(f"No interrupt {card_id} in hand", ErrorCode.CARD_NOT_FOUND)
            ability = find_ability(card, ability_id)
            if ability is None or ability.trigger != Trigger.INTERRUPT:
                raise AbilityError(f"{card.name} has no interrupt {ability_id}", ErrorCode.INVALID_TARGET)
            if ability.interrupt_timing == InterruptTiming.WHEN_FACING_DILEMMA and state.dilemma_encounter is None:
                raise AbilityError(f"{card.name} can only be played while facing a dilemma", ErrorCode.NO_ENCOUNTER)
            activation = Activation(card, ability, AbilityParams())
            self._validate(state, activation)
        except AbilityError as e:
            return ActionResult.failure(e.message, e.error_code)

        state = self._commit(state, activation)
        state = _leave_hand(state, card, to_removed=ability.remove_from_game)
        state = state.with_log(LogType.INTERRUPT, f"Played {card.name}", card=card.card_id)
        return ActionResult.success_with_state(state, changes=[f"Played {card.name}"])

    def play_event(self, state: GameState, card_id: str, params: dict | None = None) -> ActionResult:
        try:
            if state.phase != Phase.PLAY_AND_DRAW:
                raise AbilityError("Events can only be played during Play and Draw", ErrorCode.WRONG_PHASE)
            card = state.find_in_hand(card_id)
            if not isinstance(card, EventCard):
                raise AbilityError(f"No event {card_id} in hand", ErrorCode.CARD_NOT_FOUND)
            if state.counters < card.deploy:
                raise AbilityError(
                    f"{card.name} costs {card.deploy} but only {state.counters} counters remain",
                    ErrorCode.INSUFFICIENT_COUNTERS,
                )
            activations = [
                Activation(card, ability, AbilityParams.from_dict(params))
                for ability in card.abilities
                if ability.trigger == Trigger.EVENT
            ]
            for activation in activations:
                self._validate(state, activation)
        except AbilityError as e:
            return ActionResult.failure(e.message, e.error_code)

        remove = any(a.ability.remove_from_game for a in activations)
        state = _leave_hand(state, card, to_removed=remove)
        for activation in activations:
            state = self._commit(state, activation)
        state = state._copy_with(counters=state.counters - card.deploy)
        state = state.with_log(LogType.EVENT, f"Played {card.name}", card=card.card_id, cost=card.deploy)
        return ActionResult.success_with_state(state.advance_if_exhausted(), changes=[f"Played {card.name}"])

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _in_play_activation(
        self, state: GameState, card_id: str, ability_id: str, trigger: Trigger, params: dict | None
    ) -> Activation:
        location = state.find_in_play(card_id)
        if location is None or not isinstance(location.card, PersonnelCard):
            raise AbilityError(f"No personnel {card_id} in play", ErrorCode.CARD_NOT_FOUND)
        card = location.card
        if not card.is_unstopped:
            raise AbilityError(f"{card.name} is stopped", ErrorCode.CONDITION_FAILED)
        ability = find_ability(card, ability_id)
        if ability is None or ability.trigger != trigger:
            raise AbilityError(f"{card.name} has no {trigger.value} ability {ability_id}", ErrorCode.INVALID_TARGET)
        return Activation(card, ability, AbilityParams.from_dict(params), location)

    def _validate(self, state: GameState, activation: Activation) -> None:
        ability = activation.ability
        for condition in ability.conditions:
            check = self._condition_checks.get(type(condition))
            if check is None or not check(state, activation, condition):
                raise AbilityError(
                    f"Condition {type(condition).__name__} not met for {activation.card.name}",
                    ErrorCode.CONDITION_FAILED,
                )

        if ability.usage_limit == UsageLimit.ONCE_PER_TURN and activation.usage_key in state.used_abilities:
            raise AbilityError(f"{ability.ability_id} was already used this turn", ErrorCode.ALREADY_USED)
        if ability.usage_limit == UsageLimit.ONCE_PER_GAME and activation.usage_key in state.used_once_per_game:
            raise AbilityError(f"{ability.ability_id} was already used this game", ErrorCode.ALREADY_USED)

        for effect in ability.effects:
            check = self._effect_checks.get(type(effect))
            if check is None:
                raise AbilityError(f"{type(effect).__name__} cannot be activated", ErrorCode.INVALID_TARGET)
            check(state, activation, effect)

        if ability.cost is not None:
            check = self._cost_checks.get(type(ability.cost))
            if check is None or not check(state, activation, ability.cost):
                raise AbilityError(f"Cannot pay the cost of {ability.ability_id}", ErrorCode.CANNOT_PAY)

    def _commit(self, state: GameState, activation: Activation) -> GameState:
        ability = activation.ability
        if ability.cost is not None:
            state = self._cost_handlers[type(ability.cost)](state, activation, ability.cost)
        for effect in ability.effects:
            state = self._effect_handlers[type(effect)](state, activation, effect)

        if ability.usage_limit == UsageLimit.ONCE_PER_TURN:
            state = state._copy_with(used_abilities=state.used_abilities | {activation.usage_key})
        elif ability.usage_limit == UsageLimit.ONCE_PER_GAME:
            state = state._copy_with(used_once_per_game=state.used_once_per_game | {activation.usage_key})
        logger.debug("Committed %s", activation.usage_key)
        return state

    # ------------------------------------------------------------------
    # Conditions
    # ------------------------------------------------------------------

    def _aboard_ship(self, state: GameState, activation: Activation, condition: AboardShip) -> bool:
        location = activation.location
        return (
            location is not None
            and location.group_index > 0
            and state.missions[location.mission_index].group_ship(location.group_index) is not None
        )

    def _at_planet(self, state: GameState, activation: Activation, condition: AtPlanet) -> bool:
        location = activation.location
        return (
            location is not None
            and location.group_index == 0
            and state.missions[location.mission_index].mission.mission_type == MissionType.PLANET
        )

    def _has_personnel_present(self, state: GameState, activation: Activation, condition: HasPersonnelPresent) -> bool:
        location = activation.location
        if location is None:
            return False
        group = state.missions[location.mission_index].group(location.group_index)
        return len(unstopped_personnel(group)) >= condition.count

    def _borg_personnel_facing(self, state: GameState, activation: Activation, condition: BorgPersonnelFacing) -> bool:
        return any("Borg" in p.species for p in unstopped_personnel(state.encounter_group()))

    def _dilemma_overcome_elsewhere(
        self, state: GameState, activation: Activation, condition: DilemmaOvercomeAtAnyMission
    ) -> bool:
        encounter = state.dilemma_encounter
        current = encounter.current_dilemma if encounter else None
        if current is None:
            return False
        return any(
            d.card_id == current.card_id and d.overcome
            for deployment in state.missions
            for d in deployment.dilemmas
        )

    # ------------------------------------------------------------------
    # Effect checks
    # ------------------------------------------------------------------

    def _check_nothing(self, state: GameState, activation: Activation, effect: Any) -> None:
        return None

    def _chosen_skill(self, state: GameState, activation: Activation, effect: SkillGrant) -> str:
        if effect.skill:
            return effect.skill
        skill = activation.params.skill
        if not skill:
            raise AbilityError("Choose a skill to grant", ErrorCode.INVALID_TARGET)
        if effect.skill_source is not None and skill not in skills_from_source(state, activation, effect.skill_source):
            raise AbilityError(f"No eligible personnel present has {skill}", ErrorCode.INVALID_TARGET)
        return skill

    def _check_skill_grant(self, state: GameState, activation: Activation, effect: SkillGrant) -> None:
        self._chosen_skill(state, activation, effect)

    def _check_beam_all(self, state: GameState, activation: Activation, effect: BeamAllToShip) -> None:
        if state.dilemma_encounter is not None:
            raise AbilityError("Finish the mission attempt first", ErrorCode.INVALID_TARGET)
        location = activation.location
        target = activation.params.target_group_index
        deployment = state.missions[location.mission_index]
        if target is None or target <= 0 or not deployment.has_group(target) or deployment.group_ship(target) is None:
            raise AbilityError("Choose a ship at this mission to beam aboard", ErrorCode.INVALID_TARGET)
        ids = [pid for pid in activation.params.personnel_ids if pid != activation.card.instance_id]
        if not ids:
            raise AbilityError("Choose personnel to beam", ErrorCode.INVALID_TARGET)
        for personnel_id in ids:
            located = deployment.locate(personnel_id)
            if located is None or not isinstance(located[1], PersonnelCard):
                raise AbilityError(f"{personnel_id} is not at this mission", ErrorCode.INVALID_TARGET)

    def _check_ship_range(self, state: GameState, activation: Activation, effect: ShipRangeModifier) -> None:
        if not self._aboard_ship(state, activation, AboardShip()):
            raise AbilityError(f"{activation.card.name} is not aboard a ship", ErrorCode.CONDITION_FAILED)

    def _check_prevent(self, state: GameState, activation: Activation, effect: PreventAndOvercomeDilemma) -> None:
        result = state.dilemma_result
        if state.dilemma_encounter is None or state.dilemma_encounter.current_dilemma is None:
            raise AbilityError("No dilemma is being faced", ErrorCode.NO_ENCOUNTER)
        if result is None or not result.requires_selection:
            raise AbilityError("The current dilemma has already been resolved", ErrorCode.INVALID_TARGET)

    def _check_recover(self, state: GameState, activation: Activation, effect: RecoverFromDiscard) -> None:
        selected = activation.params.selected_card_ids
        if len(selected) > effect.max_count:
            raise AbilityError(f"Choose at most {effect.max_count} cards", ErrorCode.INVALID_TARGET)
        if len(set(selected)) != len(selected):
            raise AbilityError("A card was chosen twice", ErrorCode.INVALID_TARGET)
        discard = {c.instance_id: c for c in state.discard}
        for card_id in selected:
            card = discard.get(card_id)
            if card is None:
                raise AbilityError(f"{card_id} is not in the discard pile", ErrorCode.CARD_NOT_FOUND)
            if card.card_type not in effect.card_types:
                raise AbilityError(f"{card.name} cannot be recovered", ErrorCode.INVALID_TARGET)

    # ------------------------------------------------------------------
    # Effects
    # ------------------------------------------------------------------

    def _apply_skill_grant(self, state: GameState, activation: Activation, effect: SkillGrant) -> GameState:
        grant = GrantedSkill(
            skill=self._chosen_skill(state, activation, effect),
            target=activation.ability.target,
            duration=activation.ability.duration or activation.default_duration,
            source_card_id=activation.card.instance_id,
            source_ability_id=activation.ability.ability_id,
        )
        return state._copy_with(granted_skills=state.granted_skills + (grant,))

    def _apply_hand_refresh(self, state: GameState, activation: Activation, effect: HandRefresh) -> GameState:
        count = len(state.hand)
        deck = state.deck + tuple(self.shuffle_fn(state.hand))
        return state._copy_with(hand=deck[:count], deck=deck[count:])

    def _apply_beam_all(self, state: GameState, activation: Activation, effect: BeamAllToShip) -> GameState:
        mission_index = activation.location.mission_index
        target = activation.params.target_group_index
        deployment = state.missions[mission_index]
        for personnel_id in activation.params.personnel_ids:
            located = deployment.locate(personnel_id)
            if located is None or located[0] == target:
                continue
            deployment = deployment.remove_card(personnel_id).add_to_group(target, located[1])
        return state.with_mission(mission_index, deployment)

    def _apply_ship_range(self, state: GameState, activation: Activation, effect: ShipRangeModifier) -> GameState:
        location = activation.location
        deployment = state.missions[location.mission_index]
        ship = deployment.group_ship(location.group_index)
        if ship is None:
            return state
        boost = RangeBoost(
            ship_instance_id=ship.instance_id,
            value=effect.value,
            duration=activation.ability.duration or activation.default_duration,
            source_card_id=activation.card.instance_id,
        )
        deployment = deployment.replace_card(ship.with_range_remaining(ship.range_remaining + effect.value))
        state = state.with_mission(location.mission_index, deployment)
        return state._copy_with(range_boosts=state.range_boosts + (boost,))

    def _apply_prevent(self, state: GameState, activation: Activation, effect: PreventAndOvercomeDilemma) -> GameState:
        encounter = state.dilemma_encounter
        dilemma = encounter.current_dilemma
        deployment = state.missions[encounter.mission_index].with_dilemma(replace(dilemma, overcome=True, faceup=True))
        message = f"{dilemma.name} prevented and overcome"
        state = state.with_mission(encounter.mission_index, deployment)._copy_with(
            dilemma_encounter=replace(encounter, cost_spent=encounter.cost_spent + dilemma.cost),
            dilemma_result=DilemmaResolution(overcome=True, message=message),
        )
        return state.with_log(LogType.DILEMMA_RESULT, message, dilemma=dilemma.card_id, prevented=True)

    def _apply_recover(self, state: GameState, activation: Activation, effect: RecoverFromDiscard) -> GameState:
        selected = set(activation.params.selected_card_ids)
        recovered = tuple(c for c in state.discard if c.instance_id in selected)
        discard = tuple(c for c in state.discard if c.instance_id not in selected)
        recovered = tuple(_reset_status(c) for c in recovered)
        if effect.destination == RecoverDestination.DECK_TOP:
            return state._copy_with(discard=discard, deck=recovered + state.deck)
        if effect.destination == RecoverDestination.HAND:
            return state._copy_with(discard=discard, hand=state.hand + recovered)
        return state._copy_with(discard=discard, deck=state.deck + recovered)

    # ------------------------------------------------------------------
    # Costs
    # ------------------------------------------------------------------

    def _pay_discard_from_deck(self, state: GameState, activation: Activation, cost: DiscardFromDeck) -> GameState:
        return state._copy_with(deck=state.deck[cost.count:], discard=state.discard + state.deck[:cost.count])

    def _pay_discard_from_hand(self, state: GameState, activation: Activation, cost: DiscardFromHand) -> GameState:
        paid = _other_hand_cards(state, activation)[:cost.count]
        paid_ids = {c.instance_id for c in paid}
        hand = tuple(c for c in state.hand if c.instance_id not in paid_ids)
        return state._copy_with(hand=hand, discard=state.discard + paid)

    def _pay_stop_self(self, state: GameState, activation: Activation, cost: StopSelf) -> GameState:
        return state.replace_in_play(activation.card.with_status(PersonnelStatus.STOPPED))

    def _pay_sacrifice_self(self, state: GameState, activation: Activation, cost: SacrificeSelf) -> GameState:
        card, state = state.remove_from_play(activation.card.instance_id)
        return state._copy_with(discard=state.discard + (card,))

    def _pay_return_to_hand(self, state: GameState, activation: Activation, cost: ReturnToHand) -> GameState:
        card, state = state.remove_from_play(activation.card.instance_id)
        return state._copy_with(hand=state.hand + (_reset_status(card),))


def _is_unstopped(card: Card) -> bool:
    return isinstance(card, PersonnelCard) and card.is_unstopped


def _other_hand_cards(state: GameState, activation: Activation) -> tuple[Card, ...]:
    """Hand cards available to pay a cost, never the card being played."""
    return tuple(c for c in state.hand if c.instance_id != activation.card.instance_id)


def _in_attempt(state: GameState, activation: Activation) -> bool:
    encounter = state.dilemma_encounter
    location = activation.location
    return (
        encounter is not None
        and location is not None
        and (location.mission_index, location.group_index) == (encounter.mission_index, encounter.group_index)
    )


def _reset_status(card: Card) -> Card:
    if isinstance(card, PersonnelCard):
        return card.with_status(PersonnelStatus.UNSTOPPED)
    if isinstance(card, ShipCard):
        return card.with_range_remaining(card.range)
    return card


def _leave_hand(state: GameState, card: Card, to_removed: bool) -> GameState:
    hand = tuple(c for c in state.hand if c.instance_id != card.instance_id)
    if to_removed:
        return state._copy_with(hand=hand, removed_from_game=state.removed_from_game + (card,))
    return state._copy_with(hand=hand, discard=state.discard + (card,))
