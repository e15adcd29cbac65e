# tilemerge
# Stateless sliding-tile (2048-style) grid engine with a state codec and thin hosts.

from tilemerge.core import (
    DIRECTION,
    GameOptions,
    GameProgressState,
    GameState,
    MoveResult,
    MoveSummary,
    Tile,
    TileAnnotation,
    create_game_state,
    has_available_moves,
    move,
)
from tilemerge.codec import (
    SerializedGameState,
    deserialize_game_state,
    serialize_game_state,
)

__version__ = "1.0.0"

__all__ = [
    "DIRECTION",
    "GameOptions",
    "GameProgressState",
    "GameState",
    "MoveResult",
    "MoveSummary",
    "SerializedGameState",
    "Tile",
    "TileAnnotation",
    "create_game_state",
    "deserialize_game_state",
    "has_available_moves",
    "move",
    "serialize_game_state",
]
