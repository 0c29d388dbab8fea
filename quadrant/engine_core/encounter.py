"""
Encounter Rules - The dilemma-encounter state machine.

A mission attempt walks through these states:

    no encounter
      -> attempt_mission: dilemmas selected, dilemma 0 resolved
      -> (waiting for a personnel selection | outcome applied)
      -> advance_dilemma: next dilemma resolved, or a duplicate auto-overcome
      -> ... -> scoring or failure -> no encounter

Duplicates halt: a dilemma whose base id was already faced this attempt is
overcome without being faced, and the machine waits for the next explicit
advance_dilemma instead of cascading.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
import logging
from typing import Sequence

from ..cards.card import DilemmaCard, MissionType, PersonnelCard, PersonnelStatus, card_affiliations
from ..cards.ability import Duration
from ..config import DEFAULT_CONFIG, EngineConfig
from ..logic.dilemma_resolver import DilemmaResolution, resolve_dilemma, resolve_selection_stop
from ..logic.group_stats import check_mission, unstopped_personnel
from ..shuffle import ShuffleFn, default_shuffle
from .action import ActionResult, ErrorCode
from .state import DilemmaEncounter, GameState, LogType, Phase

logger = logging.getLogger(__name__)


def select_dilemmas(
    candidates: Sequence[DilemmaCard],
    budget: int,
    draw_count: int,
    shuffle_fn: ShuffleFn = default_shuffle,
) -> list[DilemmaCard]:
    """
    Pick dilemmas for an attempt.

    Candidates are shuffled, then stably sorted by descending cost, then taken
    greedily while the running cost stays within budget. A cheaper dilemma
    fills the remaining budget once a costlier one no longer fits.
    """
    ordered = sorted(shuffle_fn(candidates), key=lambda d: d.cost, reverse=True)
    selected: list[DilemmaCard] = []
    total = 0
    for dilemma in ordered:
        if len(selected) >= draw_count:
            break
        if total + dilemma.cost <= budget:
            selected.append(dilemma)
            total += dilemma.cost
    return selected


@dataclass
class EncounterRules:
    """Drives mission attempts from selection through scoring."""
    config: EngineConfig = DEFAULT_CONFIG
    shuffle_fn: ShuffleFn = default_shuffle

    def attempt_mission(self, state: GameState, mission_index: int, group_index: int) -> ActionResult:
        if state.phase != Phase.EXECUTE_ORDERS:
            return ActionResult.failure("Missions can only be attempted during Execute Orders", ErrorCode.WRONG_PHASE)
        if state.dilemma_encounter is not None:
            return ActionResult.failure("A mission attempt is already in progress", ErrorCode.INVALID_TARGET)
        if mission_index is None or not 0 <= mission_index < len(state.missions):
            return ActionResult.failure(f"No mission at index {mission_index}", ErrorCode.OUT_OF_RANGE)
        if mission_index == state.headquarters_index:
            return ActionResult.failure("Headquarters cannot be attempted", ErrorCode.INVALID_TARGET)

        deployment = state.missions[mission_index]
        mission = deployment.mission
        if mission.completed:
            return ActionResult.failure(f"{mission.name} is already completed", ErrorCode.INVALID_TARGET)
        if group_index is None or not deployment.has_group(group_index):
            return ActionResult.failure(f"No group at index {group_index}", ErrorCode.OUT_OF_RANGE)

        crew = unstopped_personnel(deployment.group(group_index))
        if not crew:
            return ActionResult.failure("No unstopped personnel in that group", ErrorCode.INVALID_TARGET)
        if mission.affiliations and not any(
            a in mission.affiliations for p in crew for a in card_affiliations(p)
        ):
            return ActionResult.failure(
                f"No personnel match the affiliations of {mission.name}", ErrorCode.AFFILIATION_MISMATCH
            )

        budget = max(0, len(crew) - deployment.overcome_count)
        candidates = [d for d in state.dilemma_pool if d.matches_mission(mission.mission_type)]
        selected = select_dilemmas(candidates, budget, budget, self.shuffle_fn)
        selected_ids = {d.instance_id for d in selected}

        encounter = DilemmaEncounter(
            mission_index=mission_index,
            group_index=group_index,
            selected_dilemmas=tuple(selected),
            cost_budget=budget,
            faced_dilemma_ids=(selected[0].card_id,) if selected else (),
        )
        state = state._copy_with(
            dilemma_pool=tuple(d for d in state.dilemma_pool if d.instance_id not in selected_ids),
            dilemma_encounter=encounter,
            dilemma_result=None,
        )
        state = state.with_log(
            LogType.MISSION_ATTEMPT,
            f"Attempting {mission.name} with {len(crew)} personnel",
            mission=mission.card_id,
            personnel=len(crew),
        )
        state = state.with_log(
            LogType.DILEMMA_DRAW,
            f"Drew {len(selected)} dilemma{'s' if len(selected) != 1 else ''} (budget {budget})",
            dilemmas=[d.name for d in selected],
            budget=budget,
        )
        logger.info("Attempting %s: %d personnel, budget %d, %d dilemmas", mission.name, len(crew), budget, len(selected))

        if not selected:
            return self.score_mission(state)

        first = selected[0]
        resolution = resolve_dilemma(first, deployment.group(group_index), state.granted_skills, self.shuffle_fn)
        return self._present(state, first, resolution)

    def select_personnel(self, state: GameState, personnel_id: str) -> ActionResult:
        encounter = state.dilemma_encounter
        if encounter is None:
            return ActionResult.failure("No mission attempt in progress", ErrorCode.NO_ENCOUNTER)
        result = state.dilemma_result
        if result is None or not result.requires_selection:
            return ActionResult.failure("The current dilemma does not need a selection", ErrorCode.INVALID_TARGET)
        if personnel_id not in result.selectable_personnel:
            return ActionResult.failure(f"{personnel_id} cannot be chosen for this dilemma", ErrorCode.INVALID_TARGET)

        dilemma = encounter.current_dilemma
        return self.apply_result(state, dilemma, resolve_selection_stop(dilemma, personnel_id))

    def advance(self, state: GameState) -> ActionResult:
        encounter = state.dilemma_encounter
        if encounter is None:
            return ActionResult.failure("No mission attempt in progress", ErrorCode.NO_ENCOUNTER)
        if state.dilemma_result is not None and state.dilemma_result.requires_selection:
            return ActionResult.failure("Choose a personnel for the current dilemma first", ErrorCode.INVALID_TARGET)

        group = state.encounter_group()
        if not unstopped_personnel(group):
            return self.fail_attempt(state, "No unstopped personnel remain")

        next_index = encounter.current_dilemma_index + 1
        if next_index >= len(encounter.selected_dilemmas):
            return self.score_mission(state)

        dilemma = encounter.selected_dilemmas[next_index]
        if dilemma.card_id in encounter.faced_dilemma_ids:
            return self._auto_overcome_duplicate(state, dilemma, next_index)

        encounter = replace(
            encounter,
            current_dilemma_index=next_index,
            faced_dilemma_ids=encounter.faced_dilemma_ids + (dilemma.card_id,),
        )
        state = state._copy_with(dilemma_encounter=encounter, dilemma_result=None)
        resolution = resolve_dilemma(dilemma, group, state.granted_skills, self.shuffle_fn)
        return self._present(state, dilemma, resolution)

    def clear(self, state: GameState) -> ActionResult:
        """
        Abandon the attempt.

        Dilemmas not yet faced go back to the pool, as does the current one
        when its outcome is still waiting on a personnel selection.
        """
        encounter = state.dilemma_encounter
        if encounter is None:
            return ActionResult.failure("No mission attempt in progress", ErrorCode.NO_ENCOUNTER)
        first_unresolved = encounter.current_dilemma_index + 1
        if state.dilemma_result is not None and state.dilemma_result.requires_selection:
            first_unresolved = encounter.current_dilemma_index
        unfaced = encounter.selected_dilemmas[first_unresolved:]
        state = state._copy_with(
            dilemma_pool=state.dilemma_pool + tuple(unfaced),
            dilemma_encounter=None,
            dilemma_result=None,
        ).purge_duration(Duration.UNTIL_END_OF_MISSION_ATTEMPT)
        return ActionResult.success_with_state(state, changes=["Mission attempt cleared"])

    # ------------------------------------------------------------------
    # Outcomes
    # ------------------------------------------------------------------

    def _present(self, state: GameState, dilemma: DilemmaCard, resolution: DilemmaResolution) -> ActionResult:
        """Apply a resolution, or park it until the player picks a personnel."""
        if resolution.requires_selection:
            state = state._copy_with(dilemma_result=resolution)
            state = state.with_log(LogType.DILEMMA_RESULT, f"{dilemma.name}: {resolution.message}")
            return ActionResult.success_with_state(state, changes=[resolution.message], pending_choice=resolution)
        return self.apply_result(state, dilemma, resolution)

    def _auto_overcome_duplicate(self, state: GameState, dilemma: DilemmaCard, index: int) -> ActionResult:
        encounter = state.dilemma_encounter
        message = f'Duplicate dilemma "{dilemma.name}" auto-overcome'
        deployment = state.missions[encounter.mission_index].with_dilemma(
            replace(dilemma, overcome=True, faceup=True)
        )
        state = state.with_mission(encounter.mission_index, deployment)._copy_with(
            dilemma_encounter=replace(encounter, current_dilemma_index=index),
            dilemma_result=DilemmaResolution(overcome=True, message=message),
        )
        state = state.with_log(LogType.DILEMMA_RESULT, message, dilemma=dilemma.card_id, duplicate=True)
        return ActionResult.success_with_state(state, changes=[message])

    def apply_result(self, state: GameState, dilemma: DilemmaCard, resolution: DilemmaResolution) -> ActionResult:
        """
        Commit a resolution to the attempting group.

        Killed personnel go to discard (freeing unique ids); stopped personnel
        are flipped in place. The dilemma stays at the mission when overcome
        or when it is meant to remain posted; otherwise it returns to the pool.
        """
        encounter = state.dilemma_encounter
        deployment = state.missions[encounter.mission_index]
        discard = list(state.discard)
        unique_in_play = set(state.unique_in_play)

        for personnel_id in resolution.killed_personnel:
            located = deployment.locate(personnel_id)
            if located is None:
                continue
            card = located[1]
            deployment = deployment.remove_card(personnel_id)
            if isinstance(card, PersonnelCard):
                card = card.with_status(PersonnelStatus.KILLED)
            discard.append(card)
            if card.unique:
                unique_in_play.discard(card.card_id)

        for personnel_id in resolution.stopped_personnel:
            located = deployment.locate(personnel_id)
            if located is not None and isinstance(located[1], PersonnelCard):
                deployment = deployment.replace_card(located[1].with_status(PersonnelStatus.STOPPED))

        pool = state.dilemma_pool
        if resolution.returns_to_pile and not resolution.overcome:
            pool = pool + (replace(dilemma, overcome=False, faceup=False),)
        else:
            deployment = deployment.with_dilemma(replace(dilemma, overcome=resolution.overcome, faceup=True))

        state = state.with_mission(encounter.mission_index, deployment)._copy_with(
            discard=tuple(discard),
            unique_in_play=frozenset(unique_in_play),
            dilemma_pool=pool,
            dilemma_encounter=replace(encounter, cost_spent=encounter.cost_spent + dilemma.cost),
            dilemma_result=resolution,
        )
        state = state.with_log(
            LogType.DILEMMA_RESULT,
            f"{dilemma.name}: {resolution.message}",
            stopped=list(resolution.stopped_personnel),
            killed=list(resolution.killed_personnel),
            overcome=resolution.overcome,
        )
        return ActionResult.success_with_state(state, changes=[resolution.message])

    def score_mission(self, state: GameState) -> ActionResult:
        """Re-check requirements against what is left of the group, then score or fail."""
        encounter = state.dilemma_encounter
        deployment = state.missions[encounter.mission_index]
        mission = deployment.mission

        if not check_mission(state.encounter_group(), mission, state.granted_skills):
            return self.fail_attempt(state, f"{mission.name} requirements not met")

        completed = replace(mission, completed=True)
        state = state.with_mission(encounter.mission_index, deployment.with_mission(completed))
        state = state._copy_with(
            score=state.score + mission.score,
            completed_planet_missions=state.completed_planet_missions
            + (1 if mission.mission_type == MissionType.PLANET else 0),
            completed_space_missions=state.completed_space_missions
            + (1 if mission.mission_type == MissionType.SPACE else 0),
            dilemma_encounter=None,
            dilemma_result=None,
        ).purge_duration(Duration.UNTIL_END_OF_MISSION_ATTEMPT)
        state = state.with_log(
            LogType.MISSION_COMPLETE,
            f"{mission.name} completed for {mission.score} points",
            mission=mission.card_id,
            score=state.score,
        )
        logger.info("%s completed; score is now %d", mission.name, state.score)
        state = self._check_win(state)
        return ActionResult.success_with_state(state, changes=[f"{mission.name} completed"])

    def fail_attempt(self, state: GameState, reason: str) -> ActionResult:
        """
        End the attempt unsuccessfully.

        Every remaining unstopped personnel in the group is stopped. Dilemmas
        selected but not yet faced are placed at the mission as overcome.
        """
        encounter = state.dilemma_encounter
        deployment = state.missions[encounter.mission_index]
        for personnel in unstopped_personnel(deployment.group(encounter.group_index)):
            deployment = deployment.replace_card(personnel.with_status(PersonnelStatus.STOPPED))
        for dilemma in encounter.selected_dilemmas[encounter.current_dilemma_index + 1:]:
            deployment = deployment.with_dilemma(replace(dilemma, overcome=True, faceup=True))

        state = state.with_mission(encounter.mission_index, deployment)._copy_with(
            dilemma_encounter=None,
            dilemma_result=None,
        ).purge_duration(Duration.UNTIL_END_OF_MISSION_ATTEMPT)
        state = state.with_log(LogType.MISSION_FAIL, f"Mission attempt failed: {reason}", mission=deployment.mission.card_id)
        logger.info("Attempt at %s failed: %s", deployment.mission.name, reason)
        return ActionResult.success_with_state(state, changes=[f"Mission attempt failed: {reason}"])

    def _check_win(self, state: GameState) -> GameState:
        if (
            state.score >= self.config.win_score
            and state.completed_planet_missions >= 1
            and state.completed_space_missions >= 1
        ):
            state = state._copy_with(game_over=True, victory=True)
            state = state.with_log(LogType.GAME_OVER, f"Victory with {state.score} points", score=state.score)
            logger.info("Game won with %d points", state.score)
        return state
