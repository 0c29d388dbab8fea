"""
Pytest fixtures for Quadrant tests.
"""

from dataclasses import replace
import itertools

import pytest

from ..cards.card import Card
from ..cards.catalog import CardCatalog
from ..engine_core.reducer import Reducer
from ..engine_core.state import GameState, MissionDeployment, Phase
from ..shuffle import identity_shuffle

HQ = 0
HUNT_ALIEN = 1  # Planet, Delta, span 3
SALVAGE_BORG_SHIP = 2  # Planet, Alpha, span 2
ASSAULT_8472 = 3  # Space, Delta, span 4
BATTLE_RECON = 4  # Space, Delta, span 2

MISSION_IDS = ["EN03110", "EN03094", "EN03103", "EN03082", "EN03083"]


@pytest.fixture
def catalog() -> CardCatalog:
    """The bundled starter catalog."""
    return CardCatalog.starter()


@pytest.fixture
def reducer(catalog: CardCatalog) -> Reducer:
    """Reducer whose shuffles keep the original order."""
    return Reducer(catalog=catalog, shuffle_fn=identity_shuffle)


@pytest.fixture
def make_card(catalog: CardCatalog):
    """
    Factory for card instances built from catalog templates.

    Keyword arguments override template fields, e.g.
    make_card("EN03118", cunning=12).
    """
    counter = itertools.count(1)

    def _make(card_id: str, **changes) -> Card:
        card = catalog.lookup(card_id).with_instance(f"{card_id}-t{next(counter)}")
        return replace(card, **changes) if changes else card

    return _make


@pytest.fixture
def board(catalog: CardCatalog) -> GameState:
    """
    A started game with the five starter missions and nothing in play.

    The game is in Execute Orders with no counters left.
    """
    missions = tuple(
        MissionDeployment(mission=catalog.lookup(card_id).with_instance(f"{card_id}-m"))
        for card_id in MISSION_IDS
    )
    return GameState(
        missions=missions,
        headquarters_index=HQ,
        turn=1,
        phase=Phase.EXECUTE_ORDERS,
        counters=0,
    )


def place(state: GameState, mission_index: int, group_index: int, *cards: Card) -> GameState:
    """Put cards into a group, creating the group when it is the next index."""
    deployment = state.missions[mission_index]
    if group_index == len(deployment.groups):
        deployment = deployment.add_group(tuple(cards))
    else:
        deployment = deployment.with_group(group_index, deployment.group(group_index) + tuple(cards))
    unique = {c.card_id for c in cards if c.unique}
    return state.with_mission(mission_index, deployment)._copy_with(
        unique_in_play=state.unique_in_play | unique
    )
