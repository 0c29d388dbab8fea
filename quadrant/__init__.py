"""
Quadrant - Single-player mission and dilemma rules engine.

A deterministic, rules-driven engine for a solitaire collectible-card game.
The engine owns the game state and provides:
- A turn/phase state machine (play and draw, execute orders, discard)
- Mission attempts resolved through dilemma encounters
- Declarative card abilities executed with validate-then-pay semantics
- Read-only selectors and a JSON-safe state snapshot
"""

__version__ = "0.1.0"
