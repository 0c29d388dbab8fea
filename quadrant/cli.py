"""
Quadrant CLI - Command-line interface for the engine.

Usage:
    quadrant play [--seed N] [--turns T]       Auto-play a seeded game
    quadrant snapshot [--seed N] [--turns T]   Auto-play, then print the JSON snapshot
    quadrant validate                          Check the bundled catalog and deck

The auto-player is deliberately simple: it deploys what it can at
headquarters, flies each crewed ship to the first mission in range and
attempts it, always choosing the first personnel a dilemma offers.
"""

import argparse
import json
import logging
import sys

from .api.service import GameService
from .cards.card import MissionType
from .cards.catalog import CardCatalog, DEFAULT_DECK
from .cards.validation import validate_catalog, validate_deck
from .config import EngineConfig, configure_logging
from .engine_core import selectors
from .engine_core.state import Phase

logger = logging.getLogger(__name__)


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Quadrant - Single-player mission and dilemma rules engine",
        prog="quadrant",
    )
    parser.add_argument("--log-level", default="WARNING", help="DEBUG, INFO, WARNING or ERROR")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    play_parser = subparsers.add_parser("play", help="Auto-play a seeded game")
    play_parser.add_argument("--seed", type=int, default=0, help="Shuffle seed")
    play_parser.add_argument("--turns", type=int, default=10, help="Maximum number of turns")

    snapshot_parser = subparsers.add_parser("snapshot", help="Auto-play, then print the snapshot")
    snapshot_parser.add_argument("--seed", type=int, default=0, help="Shuffle seed")
    snapshot_parser.add_argument("--turns", type=int, default=1, help="Number of turns to play first")

    subparsers.add_parser("validate", help="Validate the bundled catalog and deck")

    args = parser.parse_args(argv)
    configure_logging(args.log_level.upper())

    if args.command == "play":
        cmd_play(args)
    elif args.command == "snapshot":
        cmd_snapshot(args)
    elif args.command == "validate":
        cmd_validate(args)
    else:
        parser.print_help()
        sys.exit(1)


def cmd_play(args):
    """Auto-play a seeded game and print a line per turn."""
    service = _new_game(args.seed)
    for _ in range(args.turns):
        if service.state.game_over:
            break
        play_turn(service)
        summary = selectors.turn_summary(service.state)
        print(
            f"Turn {summary['turn']}: score {summary['score']}, "
            f"deck {summary['deck']}, hand {summary['hand']}, "
            f"completed {', '.join(summary['completed']) or '-'}"
        )

    state = service.state
    if state.game_over:
        print("Victory!" if state.victory else "Defeat.")
    else:
        print(f"Stopped after {args.turns} turns with {state.score} points.")


def cmd_snapshot(args):
    """Print the JSON snapshot after a few auto-played turns."""
    service = _new_game(args.seed)
    for _ in range(args.turns):
        if service.state.game_over:
            break
        play_turn(service)
    print(json.dumps(service.snapshot().model_dump(mode="json"), indent=2))


def cmd_validate(args):
    """Validate the bundled catalog and default deck."""
    catalog = CardCatalog.starter()
    results = [
        ("catalog", validate_catalog(catalog)),
        ("deck", validate_deck(DEFAULT_DECK, catalog, EngineConfig.from_env())),
    ]
    failed = False
    for label, result in results:
        print(f"{label}: {'ok' if result.valid else 'invalid'}")
        for e in result.errors:
            print(f"  error: {e}")
        for w in result.warnings:
            print(f"  warning: {w}")
        failed = failed or not result.valid
    if failed:
        sys.exit(1)


def _new_game(seed: int) -> GameService:
    service = GameService.seeded(seed, config=EngineConfig.from_env())
    if not service.setup_game(DEFAULT_DECK):
        print(f"Error: {service.last_error}")
        sys.exit(1)
    return service


# =============================================================================
# Auto-player
# =============================================================================

def play_turn(service: GameService) -> None:
    """Play one full turn with the simple auto-player policy."""
    _play_and_draw(service)
    if service.state.phase == Phase.EXECUTE_ORDERS and not service.state.game_over:
        _execute_orders(service)
        service.next_phase()
    _discard_and_end_turn(service)


def _play_and_draw(service: GameService) -> None:
    while service.state.phase == Phase.PLAY_AND_DRAW and not service.state.game_over:
        deployable = selectors.deployable_cards(service.state)
        if deployable and service.deploy(deployable[0].instance_id):
            continue
        if service.draw(service.state.counters):
            continue
        service.next_phase()
        break


def _execute_orders(service: GameService) -> None:
    hq = service.state.headquarters_index
    ship_groups = len(service.state.missions[hq].groups) - 1

    # Highest index first, so moving a group does not shift the ones still to visit
    for group_index in range(ship_groups, 0, -1):
        service.beam_all_to_ship(hq, 0, group_index)
        for mission_index, deployment in enumerate(service.state.missions):
            if mission_index == hq or deployment.mission.completed:
                continue
            if service.move_ship(hq, group_index, mission_index):
                break

    for mission_index, deployment in enumerate(service.state.missions):
        if mission_index == hq or deployment.mission.completed:
            continue
        for group_index in range(len(service.state.missions[mission_index].groups) - 1, 0, -1):
            if service.state.missions[mission_index].mission.completed:
                break
            if deployment.mission.mission_type == MissionType.PLANET:
                service.beam_all_to_planet(mission_index, group_index)
                attempted = service.attempt_mission(mission_index, 0)
            else:
                attempted = service.attempt_mission(mission_index, group_index)
            if attempted:
                _resolve_encounter(service)


def _resolve_encounter(service: GameService) -> None:
    while service.state.dilemma_encounter is not None:
        result = service.state.dilemma_result
        if result is not None and result.requires_selection:
            moved_on = service.select_personnel_for_dilemma(result.selectable_personnel[0])
        else:
            moved_on = service.advance_dilemma()
        if not moved_on:
            logger.warning("Abandoning attempt: %s", service.last_error)
            service.clear_encounter()


def _discard_and_end_turn(service: GameService) -> None:
    state = service.state
    if state.game_over:
        return
    if state.phase == Phase.EXECUTE_ORDERS:
        service.next_phase()
    while selectors.needs_discard(service.state, service.config):
        service.discard(service.state.hand[-1].instance_id)
    if not service.next_phase():
        # Counters left over with an empty deck; start the next turn directly
        service.new_turn()
