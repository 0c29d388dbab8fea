"""
API Module - Presentation-layer interface.

Exposes the engine to a user interface:
1. GameService holds the state and offers the boolean action API
2. Snapshots carry state across process boundaries as JSON
3. Recorded actions allow a seeded game to be replayed

Network transport is left to the embedding application.
"""

from .schemas import (
    GameSnapshot,
    CardSnapshot,
    MissionSnapshot,
    EncounterSnapshot,
    ResolutionSnapshot,
    ActionSnapshot,
    SnapshotError,
    to_snapshot,
    from_snapshot,
)
from .service import GameService

__all__ = [
    "GameSnapshot",
    "CardSnapshot",
    "MissionSnapshot",
    "EncounterSnapshot",
    "ResolutionSnapshot",
    "ActionSnapshot",
    "SnapshotError",
    "to_snapshot",
    "from_snapshot",
    "GameService",
]
