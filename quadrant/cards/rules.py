"""
Dilemma Rules - Structured description of what a dilemma does.

Each dilemma card carries exactly one rule variant. The rule is pure data;
the Dilemma Resolver (logic/dilemma_resolver.py) interprets it.

Rule families:
- ChooseToStop: "Choose a personnel who has X or Y to be stopped. If you cannot, ..."
- UnlessCheck: "Unless you have <requirements>, <penalty>."
- RandomThenCheck: "Randomly select a personnel. Unless <requirements>, kill it, stop all."
- RandomStop: "Randomly stop personnel, more when the crew is large."
- CrewLimit: "Keep N random personnel, stop the rest. Place this dilemma on the mission."
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Union

from .card import Attribute


class ChoosePenalty(Enum):
    """Fallback when nobody can be chosen for a ChooseToStop dilemma."""
    RANDOM_KILL = "randomKill"
    STOP_ALL_RETURN_TO_PILE = "stopAllReturnToPile"


@dataclass(frozen=True)
class DilemmaRequirement:
    """
    One alternative for passing a dilemma check.

    skills may repeat (("Security", "Security") means 2 Security).
    When single_personnel is set, one personnel must meet the whole
    requirement on their own; otherwise the group total is used.
    """
    skills: tuple[str, ...] = ()
    single_personnel: bool = False
    attribute: Attribute | None = None
    attribute_threshold: int | None = None  # Must exceed, never equal

    def describe(self) -> str:
        """Human-readable form, e.g. "Biology + Physics + Cunning>32"."""
        parts: list[str] = []
        counts: dict[str, int] = {}
        for skill in self.skills:
            counts[skill] = counts.get(skill, 0) + 1
        for skill, count in counts.items():
            parts.append(f"{count} {skill}" if count > 1 else skill)
        if self.attribute is not None and self.attribute_threshold is not None:
            parts.append(f"{self.attribute.value}>{self.attribute_threshold}")
        joined = " + ".join(parts)
        return f"one personnel with {joined}" if self.single_personnel else joined


# Penalties for UnlessCheck

@dataclass(frozen=True)
class RandomKill:
    pass


@dataclass(frozen=True)
class RandomKillWithSkill:
    skill: str


@dataclass(frozen=True)
class StopAllReturnToPile:
    pass


@dataclass(frozen=True)
class ChooseMatchingToStopElseStopAll:
    skills: tuple[str, ...]


FailPenalty = Union[RandomKill, RandomKillWithSkill, StopAllReturnToPile, ChooseMatchingToStopElseStopAll]


# Rule variants

@dataclass(frozen=True)
class ChooseToStop:
    skills: tuple[str, ...]
    penalty: ChoosePenalty = ChoosePenalty.RANDOM_KILL


@dataclass(frozen=True)
class UnlessCheck:
    requirements: tuple[DilemmaRequirement, ...]
    penalty: FailPenalty


@dataclass(frozen=True)
class RandomThenCheck:
    requirements: tuple[DilemmaRequirement, ...]


@dataclass(frozen=True)
class RandomStop:
    thresholds: tuple[int, ...]  # Stop one more while at least this many remain


@dataclass(frozen=True)
class CrewLimit:
    keep_count: int


DilemmaRule = Union[ChooseToStop, UnlessCheck, RandomThenCheck, RandomStop, CrewLimit]


def format_requirements(requirements: tuple[DilemmaRequirement, ...]) -> str:
    """Join requirement alternatives for a failure message."""
    return " or ".join(req.describe() for req in requirements)
