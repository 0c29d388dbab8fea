"""
Dilemma Resolver - Pure resolution of one dilemma against one group.

resolve_dilemma(dilemma, cards, granted_skills) dispatches on the dilemma's
rule variant and returns a DilemmaResolution describing what should happen:
which personnel are stopped or killed, whether the dilemma is overcome,
whether it returns to the dilemma pile, and whether the player must first
pick a personnel to stop.

Nothing here touches game state. The engine applies the resolution.

Skill checks consult native skills and active skill grants. Attribute
checks are always strict (>), never >=.
"""

from __future__ import annotations
from dataclasses import dataclass
import logging
from typing import Callable, Sequence, TYPE_CHECKING

from ..cards.card import Card, DilemmaCard, PersonnelCard
from ..cards.rules import (
    ChooseMatchingToStopElseStopAll,
    ChoosePenalty,
    ChooseToStop,
    CrewLimit,
    DilemmaRequirement,
    RandomKill,
    RandomKillWithSkill,
    RandomStop,
    RandomThenCheck,
    StopAllReturnToPile,
    UnlessCheck,
    format_requirements,
)
from ..shuffle import ShuffleFn, default_shuffle
from .group_stats import GroupStats, calculate_group_stats, grant_applies, unstopped_personnel

if TYPE_CHECKING:
    from ..engine_core.state import GrantedSkill

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DilemmaResolution:
    """
    Result of resolving a dilemma.

    When requires_selection is set, nothing has happened yet: the player
    must choose one of selectable_personnel to be stopped.
    """
    stopped_personnel: tuple[str, ...] = ()
    killed_personnel: tuple[str, ...] = ()
    overcome: bool = False
    returns_to_pile: bool = False
    message: str = ""
    requires_selection: bool = False
    selectable_personnel: tuple[str, ...] = ()
    selection_prompt: str | None = None
    failure_reason: str | None = None


Grants = Sequence["GrantedSkill"]


# =============================================================================
# Helpers
# =============================================================================

def _ids(personnel: Sequence[PersonnelCard]) -> tuple[str, ...]:
    return tuple(p.instance_id for p in personnel)


def personnel_has_skill(personnel: PersonnelCard, skills: Sequence[str], granted_skills: Grants = ()) -> bool:
    """True if the personnel has any of skills, natively or through a grant."""
    if any(skill in skills for skill in personnel.skills):
        return True
    return any(grant.skill in skills and grant_applies(grant, personnel) for grant in granted_skills)


def find_personnel_with_skills(
    cards: Sequence[Card], skills: Sequence[str], granted_skills: Grants = ()
) -> list[PersonnelCard]:
    """Unstopped personnel having at least one of skills, in group order."""
    return [p for p in unstopped_personnel(cards) if personnel_has_skill(p, skills, granted_skills)]


def _single_personnel_meets(req: DilemmaRequirement, cards: Sequence[Card]) -> bool:
    # Native skills only, and the attribute of that one personnel
    for personnel in unstopped_personnel(cards):
        meets = all(personnel.skills.count(skill) >= req.skills.count(skill) for skill in set(req.skills))
        if meets and req.attribute is not None and req.attribute_threshold is not None:
            meets = personnel.attribute_value(req.attribute) > req.attribute_threshold
        if meets:
            return True
    return False


def _group_meets(req: DilemmaRequirement, stats: GroupStats) -> bool:
    available = dict(stats.skills)
    for skill in req.skills:
        if available.get(skill, 0) <= 0:
            return False
        available[skill] -= 1
    if req.attribute is not None and req.attribute_threshold is not None:
        return stats.attribute(req.attribute) > req.attribute_threshold
    return True


def check_requirements(
    requirements: Sequence[DilemmaRequirement], stats: GroupStats, cards: Sequence[Card]
) -> bool:
    """True if any alternative is met. No alternatives means nothing to meet."""
    if not requirements:
        return True
    for req in requirements:
        if req.single_personnel:
            if _single_personnel_meets(req, cards):
                return True
        elif _group_meets(req, stats):
            return True
    return False


def _overcome(message: str, **kwargs) -> DilemmaResolution:
    return DilemmaResolution(overcome=True, message=message, **kwargs)


def _stop_all_and_return(cards: Sequence[Card], message: str, **kwargs) -> DilemmaResolution:
    return DilemmaResolution(
        stopped_personnel=_ids(unstopped_personnel(cards)),
        returns_to_pile=True,
        message=message,
        **kwargs,
    )


# =============================================================================
# Rule resolvers
# =============================================================================

def _resolve_choose_to_stop(
    rule: ChooseToStop, cards: Sequence[Card], granted_skills: Grants, shuffle_fn: ShuffleFn
) -> DilemmaResolution:
    """Choose a personnel who has one of the skills to be stopped. If you cannot, penalty."""
    skill_text = " or ".join(rule.skills)
    matching = find_personnel_with_skills(cards, rule.skills, granted_skills)
    if matching:
        prompt = f"Choose a personnel with {skill_text} to stop."
        return DilemmaResolution(
            message=prompt,
            requires_selection=True,
            selectable_personnel=_ids(matching),
            selection_prompt=prompt,
        )

    if rule.penalty == ChoosePenalty.RANDOM_KILL:
        unstopped = unstopped_personnel(cards)
        if not unstopped:
            return _overcome("No personnel to kill. Dilemma overcome.")
        killed = shuffle_fn(unstopped)[0]
        return _overcome(
            f"No personnel with {skill_text}. {killed.name} was randomly killed.",
            killed_personnel=(killed.instance_id,),
        )

    return _stop_all_and_return(cards, f"No personnel with {skill_text} found. All personnel stopped.")


def _resolve_unless_check(
    rule: UnlessCheck, cards: Sequence[Card], granted_skills: Grants, shuffle_fn: ShuffleFn
) -> DilemmaResolution:
    """Unless you have one of the requirements, apply the penalty."""
    stats = calculate_group_stats(cards, granted_skills, facing_dilemma=True)
    if check_requirements(rule.requirements, stats, cards):
        return _overcome("Requirements met. Dilemma overcome.")

    failure_reason = f"Needed: {format_requirements(rule.requirements)}"
    penalty = rule.penalty
    unstopped = unstopped_personnel(cards)

    if isinstance(penalty, RandomKill):
        if not unstopped:
            return _overcome("No personnel to kill. Dilemma overcome.", failure_reason=failure_reason)
        killed = shuffle_fn(unstopped)[0]
        return _overcome(
            f"Requirements not met. {killed.name} was randomly killed.",
            killed_personnel=(killed.instance_id,),
            failure_reason=failure_reason,
        )

    if isinstance(penalty, RandomKillWithSkill):
        candidates = [p for p in unstopped if personnel_has_skill(p, (penalty.skill,), granted_skills)]
        if not candidates:
            return _overcome(
                f"No personnel with {penalty.skill} to kill. Dilemma overcome.",
                failure_reason=failure_reason,
            )
        killed = shuffle_fn(candidates)[0]
        return _overcome(
            f"Requirements not met. {killed.name} with {penalty.skill} was killed.",
            killed_personnel=(killed.instance_id,),
            failure_reason=failure_reason,
        )

    if isinstance(penalty, StopAllReturnToPile):
        return _stop_all_and_return(
            cards, "Requirements not met. All personnel stopped.", failure_reason=failure_reason
        )

    if isinstance(penalty, ChooseMatchingToStopElseStopAll):
        matching = find_personnel_with_skills(cards, penalty.skills, granted_skills)
        if matching:
            prompt = f"Choose a personnel with {' or '.join(penalty.skills)} to stop."
            return DilemmaResolution(
                message="Choose a personnel to stop.",
                requires_selection=True,
                selectable_personnel=_ids(matching),
                selection_prompt=prompt,
                failure_reason=failure_reason,
            )
        return _stop_all_and_return(
            cards, "No matching personnel. All stopped and dilemma returns.", failure_reason=failure_reason
        )

    raise ValueError(f"Unknown dilemma penalty: {penalty!r}")


def _resolve_random_then_check(
    rule: RandomThenCheck, cards: Sequence[Card], granted_skills: Grants, shuffle_fn: ShuffleFn
) -> DilemmaResolution:
    """Randomly select a personnel. Met: it is stopped. Not met: killed, all others stopped."""
    unstopped = unstopped_personnel(cards)
    if not unstopped:
        return _overcome("No personnel. Dilemma overcome.")

    target = shuffle_fn(unstopped)[0]
    stats = calculate_group_stats(cards, granted_skills, facing_dilemma=True)
    if check_requirements(rule.requirements, stats, cards):
        return _overcome(
            f"Skills met. {target.name} stopped. Dilemma overcome.",
            stopped_personnel=(target.instance_id,),
        )

    others = tuple(p.instance_id for p in unstopped if p.instance_id != target.instance_id)
    return DilemmaResolution(
        stopped_personnel=others,
        killed_personnel=(target.instance_id,),
        returns_to_pile=True,
        message=f"Skills not met. {target.name} killed, all others stopped.",
        failure_reason=f"Needed: {format_requirements(rule.requirements)}",
    )


def _resolve_random_stop(
    rule: RandomStop, cards: Sequence[Card], granted_skills: Grants, shuffle_fn: ShuffleFn
) -> DilemmaResolution:
    """Stop one random personnel per threshold the remaining crew still reaches."""
    remaining = shuffle_fn(unstopped_personnel(cards))
    stopped: list[PersonnelCard] = []
    for threshold in rule.thresholds:
        if remaining and len(remaining) >= threshold:
            remaining = shuffle_fn(remaining)
            stopped.append(remaining.pop(0))

    if not stopped:
        return _overcome("No personnel to stop. Dilemma overcome.")
    return _overcome(
        f"{', '.join(p.name for p in stopped)} randomly stopped.",
        stopped_personnel=_ids(stopped),
    )


def _resolve_crew_limit(
    rule: CrewLimit, cards: Sequence[Card], granted_skills: Grants, shuffle_fn: ShuffleFn
) -> DilemmaResolution:
    """Keep N random personnel, stop the rest. The dilemma stays on the mission."""
    unstopped = unstopped_personnel(cards)
    if len(unstopped) <= rule.keep_count:
        return DilemmaResolution(message=f"{rule.keep_count} or fewer personnel. Dilemma stays on mission.")

    to_stop = shuffle_fn(unstopped)[rule.keep_count:]
    return DilemmaResolution(
        stopped_personnel=_ids(to_stop),
        message=f"{len(to_stop)} personnel stopped. Dilemma stays on mission.",
    )


RuleHandler = Callable[..., DilemmaResolution]

_RULE_HANDLERS: dict[type, RuleHandler] = {
    ChooseToStop: _resolve_choose_to_stop,
    UnlessCheck: _resolve_unless_check,
    RandomThenCheck: _resolve_random_then_check,
    RandomStop: _resolve_random_stop,
    CrewLimit: _resolve_crew_limit,
}


# =============================================================================
# Main resolver
# =============================================================================

def resolve_dilemma(
    dilemma: DilemmaCard,
    cards: Sequence[Card],
    granted_skills: Grants = (),
    shuffle_fn: ShuffleFn | None = None,
) -> DilemmaResolution:
    """Resolve one dilemma against the cards of the attempting group."""
    handler = _RULE_HANDLERS.get(type(dilemma.rule))
    if handler is None:
        logger.warning("Dilemma %s has no known rule; treating as overcome", dilemma.card_id)
        return _overcome("Unknown dilemma type. Overcome by default.")
    resolution = handler(dilemma.rule, list(cards), tuple(granted_skills), shuffle_fn or default_shuffle)
    logger.debug("Resolved %s: %s", dilemma.name, resolution.message)
    return resolution


def resolve_selection_stop(dilemma: DilemmaCard, personnel_id: str) -> DilemmaResolution:
    """Outcome once the player has picked the personnel to stop."""
    return _overcome("Personnel stopped. Dilemma overcome.", stopped_personnel=(personnel_id,))
