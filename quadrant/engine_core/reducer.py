"""
Reducer - Applies actions to game state.

The reducer is the single point of state mutation.
All state changes must go through apply_action().

Design principles:
- Pure function: (state, action) -> new_state
- Validates before applying
- Returns ActionResult with success/failure; a failure never carries state
- Delegates mission attempts to EncounterRules and abilities to AbilityExecutor
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging

from ..cards.card import (
    Card,
    DilemmaCard,
    MissionCard,
    MissionType,
    PersonnelCard,
    PersonnelStatus,
    ShipCard,
    card_affiliations,
    is_deployable,
)
from ..cards.ability import Duration
from ..cards.catalog import CardCatalog
from ..cards.validation import validate_deck
from ..config import DEFAULT_CONFIG, EngineConfig
from ..logic.group_stats import effective_deploy_cost, unstopped_personnel
from ..logic.ship_movement import find_ship, validate_ship_move
from ..shuffle import ShuffleFn, default_shuffle
from .action import Action, ActionResult, ActionType, ErrorCode
from .effect_resolver import AbilityExecutor
from .encounter import EncounterRules
from .state import GameState, LogType, MissionDeployment, Phase

logger = logging.getLogger(__name__)


@dataclass
class Reducer:
    """
    Reducer applies actions to game state.

    Stateless - all state is in GameState.
    The catalog supplies card templates for setup; config supplies the
    numeric rules (counters, hand limit, win score).
    """
    catalog: CardCatalog = field(default_factory=CardCatalog.starter)
    config: EngineConfig = DEFAULT_CONFIG
    shuffle_fn: ShuffleFn = default_shuffle

    encounters: EncounterRules = field(init=False, repr=False)
    abilities: AbilityExecutor = field(init=False, repr=False)

    def __post_init__(self):
        self.encounters = EncounterRules(config=self.config, shuffle_fn=self.shuffle_fn)
        self.abilities = AbilityExecutor(config=self.config, shuffle_fn=self.shuffle_fn)

    def apply(self, state: GameState, action: Action) -> ActionResult:
        """
        Apply an action to the game state.

        Returns ActionResult with new state or error.
        """
        validation_error = self._validate_action(state, action)
        if validation_error:
            message, code = validation_error
            logger.debug("Refused %s: %s", action.action_type.value, message)
            return ActionResult.failure(message, error_code=code)

        handler = self._get_handler(action.action_type)
        if not handler:
            return ActionResult.failure(
                f"No handler for action type: {action.action_type}",
                error_code=ErrorCode.NO_HANDLER,
            )

        try:
            result = handler(state, action)
        except Exception as e:
            logger.exception("Handler for %s raised", action.action_type.value)
            return ActionResult.failure(str(e), error_code=ErrorCode.HANDLER_ERROR)

        if not result.success:
            logger.debug("Refused %s: %s", action.action_type.value, result.error)
            return result

        # Record the action for replay (a reset starts a fresh history)
        if action.action_type != ActionType.RESET_GAME:
            result.new_state = result.new_state._copy_with(
                action_history=result.new_state.action_history + (action,)
            )
        return result

    def _validate_action(self, state: GameState, action: Action) -> tuple[str, str] | None:
        """
        Validate that an action is legal in the current state.

        Returns (message, error code) if invalid, None if valid.
        """
        if action.action_type in {ActionType.SETUP_GAME, ActionType.RESET_GAME}:
            return None
        if not state.is_started:
            return "Game not started - only setup actions allowed", ErrorCode.NOT_STARTED
        if state.game_over:
            return "Game is over - no actions allowed", ErrorCode.GAME_OVER
        return None

    def _get_handler(self, action_type: ActionType):
        """Get the handler function for an action type."""
        handlers = {
            ActionType.SETUP_GAME: self._handle_setup,
            ActionType.RESET_GAME: self._handle_reset,
            ActionType.NEW_TURN: self._handle_new_turn,
            ActionType.NEXT_PHASE: self._handle_next_phase,
            ActionType.DRAW: self._handle_draw,
            ActionType.DEPLOY: self._handle_deploy,
            ActionType.DISCARD: self._handle_discard,
            ActionType.MOVE_SHIP: self._handle_move_ship,
            ActionType.BEAM_TO_SHIP: self._handle_beam_to_ship,
            ActionType.BEAM_TO_PLANET: self._handle_beam_to_planet,
            ActionType.BEAM_ALL_TO_SHIP: self._handle_beam_all_to_ship,
            ActionType.BEAM_ALL_TO_PLANET: self._handle_beam_all_to_planet,
            ActionType.ATTEMPT_MISSION: self._handle_attempt_mission,
            ActionType.SELECT_PERSONNEL_FOR_DILEMMA: self._handle_select_personnel,
            ActionType.ADVANCE_DILEMMA: lambda state, action: self.encounters.advance(state),
            ActionType.CLEAR_ENCOUNTER: lambda state, action: self.encounters.clear(state),
            ActionType.EXECUTE_ORDER_ABILITY: self._handle_order_ability,
            ActionType.EXECUTE_INTERLINK_ABILITY: self._handle_interlink_ability,
            ActionType.PLAY_INTERRUPT: self._handle_play_interrupt,
            ActionType.PLAY_EVENT: self._handle_play_event,
        }
        return handlers.get(action_type)

    # ------------------------------------------------------------------
    # Turn structure
    # ------------------------------------------------------------------

    def _handle_setup(self, state: GameState, action: Action) -> ActionResult:
        """Build a fresh game from a list of card ids."""
        deck_ids = action.payload.deck_ids
        report = validate_deck(deck_ids, self.catalog, self.config)
        for problem in report.errors + report.warnings:
            logger.warning("Deck list: %s", problem)

        cards: list[Card] = []
        for index, card_id in enumerate(deck_ids):
            template = self.catalog.lookup(card_id)
            if template is None:
                continue
            cards.append(template.with_instance(f"{card_id}-{index}"))

        missions = [c for c in cards if isinstance(c, MissionCard)]
        if not missions:
            return ActionResult.failure("A deck needs at least one mission", ErrorCode.INVALID_TARGET)

        headquarters_index = next((i for i, m in enumerate(missions) if m.is_headquarters), 0)
        dilemmas = [c for c in cards if isinstance(c, DilemmaCard)]
        playable = [c for c in cards if not isinstance(c, (MissionCard, DilemmaCard))]

        draw_deck = self.shuffle_fn(playable)
        opening = self.config.opening_hand_size
        new_state = GameState(
            deck=tuple(draw_deck[opening:]),
            hand=tuple(draw_deck[:opening]),
            dilemma_pool=tuple(self.shuffle_fn(dilemmas)),
            missions=tuple(MissionDeployment(mission=m) for m in missions),
            headquarters_index=headquarters_index,
            turn=1,
            phase=Phase.PLAY_AND_DRAW,
            counters=self.config.starting_counters,
        )
        new_state = new_state.with_log(
            LogType.GAME_START,
            f"Game started: {len(missions)} missions, {len(playable)} cards, {len(dilemmas)} dilemmas",
            missions=len(missions),
            cards=len(playable),
            dilemmas=len(dilemmas),
        )
        logger.info("Game set up with %d cards", len(cards))
        return ActionResult.success_with_state(new_state, changes=["Game started"])

    def _handle_reset(self, state: GameState, action: Action) -> ActionResult:
        return ActionResult.success_with_state(GameState(), changes=["Game reset"])

    def _handle_new_turn(self, state: GameState, action: Action) -> ActionResult:
        new_state = self.start_new_turn(state)
        return ActionResult.success_with_state(new_state, changes=[f"Turn {new_state.turn}"])

    def start_new_turn(self, state: GameState) -> GameState:
        """
        Begin the next turn.

        Ships get their full range back (plus any boosts that outlast the
        turn), stopped personnel recover, counters refill and end-of-turn
        grants expire. Then the lose condition is checked.
        """
        state = state.purge_duration(Duration.UNTIL_END_OF_TURN)
        boosts: dict[str, int] = {}
        for boost in state.range_boosts:
            boosts[boost.ship_instance_id] = boosts.get(boost.ship_instance_id, 0) + boost.value

        missions = []
        for deployment in state.missions:
            groups = []
            for group in deployment.groups:
                refreshed = []
                for card in group:
                    if isinstance(card, ShipCard):
                        card = card.with_range_remaining(card.range + boosts.get(card.instance_id, 0))
                    elif isinstance(card, PersonnelCard) and card.status == PersonnelStatus.STOPPED:
                        card = card.with_status(PersonnelStatus.UNSTOPPED)
                    refreshed.append(card)
                groups.append(tuple(refreshed))
            missions.append(MissionDeployment(deployment.mission, tuple(groups), deployment.dilemmas))

        turn = state.turn + 1
        state = state._copy_with(
            missions=tuple(missions),
            turn=turn,
            phase=Phase.PLAY_AND_DRAW,
            counters=self.config.starting_counters,
            used_abilities=frozenset(),
        )
        state = state.with_log(LogType.NEW_TURN, f"Turn {turn} started", turn=turn)
        logger.info("Turn %d started", turn)
        return self._check_lose(state)

    def _check_lose(self, state: GameState) -> GameState:
        """The game is lost when both the deck and the hand are empty."""
        if state.deck or state.hand:
            return state
        state = state._copy_with(game_over=True, victory=False)
        state = state.with_log(LogType.GAME_OVER, "Game over: deck and hand are empty", score=state.score)
        logger.info("Game lost with %d points", state.score)
        return state

    def _handle_next_phase(self, state: GameState, action: Action) -> ActionResult:
        if state.phase == Phase.PLAY_AND_DRAW:
            if state.counters > 0 and state.deck:
                return ActionResult.failure(
                    f"{state.counters} counters left to spend", ErrorCode.INSUFFICIENT_COUNTERS
                )
            return ActionResult.success_with_state(state.with_phase(Phase.EXECUTE_ORDERS))

        if state.phase == Phase.EXECUTE_ORDERS:
            return ActionResult.success_with_state(state.with_phase(Phase.DISCARD_EXCESS))

        if len(state.hand) > self.config.max_hand_size:
            return ActionResult.failure(
                f"Discard down to {self.config.max_hand_size} cards first", ErrorCode.INVALID_TARGET
            )
        if state.counters != 0:
            return ActionResult.failure(
                f"{state.counters} counters left to spend", ErrorCode.INSUFFICIENT_COUNTERS
            )
        return self._handle_new_turn(state, action)

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    def _handle_draw(self, state: GameState, action: Action) -> ActionResult:
        """Handle draw action."""
        if state.phase != Phase.PLAY_AND_DRAW:
            return ActionResult.failure("Cards can only be drawn during Play and Draw", ErrorCode.WRONG_PHASE)

        requested = action.payload.count if action.payload.count is not None else 1
        count = min(requested, len(state.deck), state.counters)
        if count <= 0:
            return ActionResult.failure("Nothing can be drawn", ErrorCode.INSUFFICIENT_COUNTERS)

        new_state = state._copy_with(
            deck=state.deck[count:],
            hand=state.hand + state.deck[:count],
            counters=state.counters - count,
        )
        new_state = new_state.with_log(LogType.DRAW, f"Drew {count} card{'s' if count != 1 else ''}", count=count)
        return ActionResult.success_with_state(new_state.advance_if_exhausted(), changes=[f"Drew {count}"])

    def _handle_deploy(self, state: GameState, action: Action) -> ActionResult:
        """Handle deploy action."""
        if state.phase != Phase.PLAY_AND_DRAW:
            return ActionResult.failure("Cards can only be deployed during Play and Draw", ErrorCode.WRONG_PHASE)

        card = state.find_in_hand(action.payload.card_id)
        if card is None:
            return ActionResult.failure(f"Card {action.payload.card_id} not in hand", ErrorCode.CARD_NOT_FOUND)
        if not is_deployable(card):
            return ActionResult.failure(f"{card.name} cannot be deployed", ErrorCode.INVALID_TARGET)

        cost = effective_deploy_cost(card, state.in_play_cards())
        if state.counters < cost:
            return ActionResult.failure(
                f"{card.name} costs {cost} but only {state.counters} counters remain",
                ErrorCode.INSUFFICIENT_COUNTERS,
            )
        if card.unique and card.card_id in state.unique_in_play:
            return ActionResult.failure(f"{card.name} is unique and already in play", ErrorCode.UNIQUE_IN_PLAY)

        mission_index = action.payload.mission_index
        if mission_index is None:
            mission_index = state.headquarters_index
        if not 0 <= mission_index < len(state.missions):
            return ActionResult.failure(f"No mission at index {mission_index}", ErrorCode.OUT_OF_RANGE)

        deployment = state.missions[mission_index]
        mission = deployment.mission
        if mission.is_headquarters and mission.play:
            if not any(a in mission.play for a in card_affiliations(card)):
                return ActionResult.failure(
                    f"{card.name} cannot be played at {mission.name}", ErrorCode.AFFILIATION_MISMATCH
                )
        if isinstance(card, PersonnelCard):
            if mission.mission_type == MissionType.SPACE:
                return ActionResult.failure(
                    "Personnel cannot be deployed to a space mission", ErrorCode.INVALID_TARGET
                )
            deployment = deployment.add_to_group(0, card)
        else:
            deployment = deployment.add_group((card,))

        unique_in_play = state.unique_in_play | {card.card_id} if card.unique else state.unique_in_play
        new_state = state.with_mission(mission_index, deployment)._copy_with(
            hand=tuple(c for c in state.hand if c.instance_id != card.instance_id),
            unique_in_play=unique_in_play,
            counters=state.counters - cost,
        )
        new_state = new_state.with_log(
            LogType.DEPLOY,
            f"Deployed {card.name} to {mission.name} for {cost}",
            card=card.card_id,
            mission=mission.card_id,
            cost=cost,
        )
        return ActionResult.success_with_state(new_state.advance_if_exhausted(), changes=[f"Deployed {card.name}"])

    def _handle_discard(self, state: GameState, action: Action) -> ActionResult:
        if state.phase != Phase.DISCARD_EXCESS:
            return ActionResult.failure("Discarding happens during Discard Excess", ErrorCode.WRONG_PHASE)
        if len(state.hand) <= self.config.max_hand_size:
            return ActionResult.failure("Hand is within the limit", ErrorCode.INVALID_TARGET)
        card = state.find_in_hand(action.payload.card_id)
        if card is None:
            return ActionResult.failure(f"Card {action.payload.card_id} not in hand", ErrorCode.CARD_NOT_FOUND)

        new_state = state._copy_with(
            hand=tuple(c for c in state.hand if c.instance_id != card.instance_id),
            discard=state.discard + (card,),
        )
        new_state = new_state.with_log(LogType.DISCARD, f"Discarded {card.name}", card=card.card_id)
        return ActionResult.success_with_state(new_state, changes=[f"Discarded {card.name}"])

    # ------------------------------------------------------------------
    # Movement
    # ------------------------------------------------------------------

    def _movement_error(self, state: GameState, mission_index: int | None) -> ActionResult | None:
        if state.phase != Phase.EXECUTE_ORDERS:
            return ActionResult.failure("Movement happens during Execute Orders", ErrorCode.WRONG_PHASE)
        if state.dilemma_encounter is not None:
            return ActionResult.failure("Finish the mission attempt first", ErrorCode.INVALID_TARGET)
        if mission_index is None or not 0 <= mission_index < len(state.missions):
            return ActionResult.failure(f"No mission at index {mission_index}", ErrorCode.OUT_OF_RANGE)
        return None

    def _handle_move_ship(self, state: GameState, action: Action) -> ActionResult:
        payload = action.payload
        error = self._movement_error(state, payload.mission_index)
        if error:
            return error
        destination_index = payload.target_mission_index
        if destination_index is None or not 0 <= destination_index < len(state.missions):
            return ActionResult.failure(f"No mission at index {destination_index}", ErrorCode.OUT_OF_RANGE)

        source = state.missions[payload.mission_index]
        group_index = payload.group_index
        if group_index is None or group_index < 1 or not source.has_group(group_index):
            return ActionResult.failure(f"No ship group at index {group_index}", ErrorCode.OUT_OF_RANGE)

        group = source.group(group_index)
        destination = state.missions[destination_index]
        check = validate_ship_move(
            group,
            source.mission,
            destination.mission,
            same_location=payload.mission_index == destination_index,
            quadrant_penalty=self.config.quadrant_penalty,
        )
        if not check.valid:
            code = ErrorCode.OUT_OF_RANGE if check.range_cost else ErrorCode.INVALID_TARGET
            return ActionResult.failure(check.reason, code)

        ship = find_ship(group)
        moved = ship.with_range_remaining(ship.range_remaining - check.range_cost)
        group = tuple(moved if c.instance_id == ship.instance_id else c for c in group)

        new_state = state.with_mission(payload.mission_index, source.remove_group(group_index))
        new_state = new_state.with_mission(destination_index, new_state.missions[destination_index].add_group(group))
        new_state = new_state.with_log(
            LogType.MOVE_SHIP,
            f"{ship.name} moved from {source.mission.name} to {destination.mission.name} ({check.range_cost} range)",
            ship=ship.card_id,
            range_cost=check.range_cost,
        )
        return ActionResult.success_with_state(new_state, changes=[f"{ship.name} moved"])

    def _beam(
        self,
        state: GameState,
        personnel_ids: list[str] | None,
        mission_index: int | None,
        from_group: int | None,
        to_group: int | None,
    ) -> ActionResult:
        """
        Move personnel between two groups at one mission.

        personnel_ids=None moves every unstopped personnel in the source group.
        """
        error = self._movement_error(state, mission_index)
        if error:
            return error
        deployment = state.missions[mission_index]
        for index in (from_group, to_group):
            if index is None or not deployment.has_group(index):
                return ActionResult.failure(f"No group at index {index}", ErrorCode.OUT_OF_RANGE)
        if from_group == to_group:
            return ActionResult.failure("Source and destination groups are the same", ErrorCode.INVALID_TARGET)
        if to_group == 0 and deployment.mission.mission_type == MissionType.SPACE:
            return ActionResult.failure("There is no surface at a space mission", ErrorCode.INVALID_TARGET)
        if to_group > 0 and deployment.group_ship(to_group) is None:
            return ActionResult.failure("Destination group has no ship", ErrorCode.INVALID_TARGET)

        source = deployment.group(from_group)
        if personnel_ids is None:
            moving = unstopped_personnel(source)
            if not moving:
                return ActionResult.failure("No unstopped personnel to beam", ErrorCode.INVALID_TARGET)
        else:
            by_id = {c.instance_id: c for c in source if isinstance(c, PersonnelCard)}
            if not all(pid in by_id for pid in personnel_ids):
                return ActionResult.failure("Personnel not found in that group", ErrorCode.CARD_NOT_FOUND)
            moving = [by_id[pid] for pid in personnel_ids]

        moving_ids = {p.instance_id for p in moving}
        deployment = deployment.with_group(from_group, tuple(c for c in source if c.instance_id not in moving_ids))
        deployment = deployment.with_group(to_group, deployment.group(to_group) + tuple(moving))
        names = ", ".join(p.name for p in moving)
        new_state = state.with_mission(mission_index, deployment).with_log(
            LogType.BEAM,
            f"Beamed {names} at {deployment.mission.name}",
            personnel=sorted(moving_ids),
            from_group=from_group,
            to_group=to_group,
        )
        return ActionResult.success_with_state(new_state, changes=[f"Beamed {names}"])

    def _handle_beam_to_ship(self, state: GameState, action: Action) -> ActionResult:
        payload = action.payload
        return self._beam(state, [payload.card_id], payload.mission_index, payload.group_index, payload.target_group_index)

    def _handle_beam_to_planet(self, state: GameState, action: Action) -> ActionResult:
        payload = action.payload
        return self._beam(state, [payload.card_id], payload.mission_index, payload.group_index, 0)

    def _handle_beam_all_to_ship(self, state: GameState, action: Action) -> ActionResult:
        payload = action.payload
        return self._beam(state, None, payload.mission_index, payload.group_index, payload.target_group_index)

    def _handle_beam_all_to_planet(self, state: GameState, action: Action) -> ActionResult:
        payload = action.payload
        return self._beam(state, None, payload.mission_index, payload.group_index, 0)

    # ------------------------------------------------------------------
    # Mission attempts and abilities
    # ------------------------------------------------------------------

    def _handle_attempt_mission(self, state: GameState, action: Action) -> ActionResult:
        payload = action.payload
        return self.encounters.attempt_mission(state, payload.mission_index, payload.group_index)

    def _handle_select_personnel(self, state: GameState, action: Action) -> ActionResult:
        return self.encounters.select_personnel(state, action.payload.card_id)

    def _handle_order_ability(self, state: GameState, action: Action) -> ActionResult:
        payload = action.payload
        return self.abilities.execute_order(state, payload.card_id, payload.ability_id, payload.params)

    def _handle_interlink_ability(self, state: GameState, action: Action) -> ActionResult:
        payload = action.payload
        return self.abilities.execute_interlink(state, payload.card_id, payload.ability_id, payload.params)

    def _handle_play_interrupt(self, state: GameState, action: Action) -> ActionResult:
        payload = action.payload
        return self.abilities.play_interrupt(state, payload.card_id, payload.ability_id)

    def _handle_play_event(self, state: GameState, action: Action) -> ActionResult:
        payload = action.payload
        return self.abilities.play_event(state, payload.card_id, payload.params)


def apply_action(reducer: Reducer, state: GameState, action: Action) -> ActionResult:
    """Convenience function to apply an action."""
    return reducer.apply(state, action)
