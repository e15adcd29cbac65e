# codec.py
# Converts live game states to and from minimal persistable snapshots.

import logging
from typing import Any, List, Mapping, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from tilemerge.core import GameProgressState, GameState, Tile

logger = logging.getLogger(__name__)


class PositionData(BaseModel):
    """A board cell."""
    row: int = Field(..., ge=0, description="Zero-based row index.")
    col: int = Field(..., ge=0, description="Zero-based column index.")


class TileSnapshot(BaseModel):
    """The persistent part of a tile."""
    id: str = Field(..., min_length=1, description="Tile id, unique within the board.")
    value: int = Field(..., ge=2, description="Tile value, a power of two.")
    position: PositionData

    @field_validator("value")
    @classmethod
    def _value_is_power_of_two(cls, value: int) -> int:
        if value & (value - 1):
            raise ValueError(f"Tile value {value} is not a power of two.")
        return value


class SerializedGameState(BaseModel):
    """Persistable game snapshot. Carries no animation or provenance data."""
    size: int = Field(..., gt=0, description="The dimension N of the N x N board.")
    score: int = Field(..., ge=0, description="Current score of the game.")
    move_count: int = Field(..., ge=0, description="Number of moves that changed the board.")
    status: GameProgressState = Field(..., description="playing, won or lost.")
    tiles: List[TileSnapshot] = Field(default_factory=list)
    next_tile_id: Optional[int] = Field(
        default=None,
        ge=1,
        description="Counter for the next tile id. Defaults to one past the tile count.",
    )

    @model_validator(mode="after")
    def _check_board(self) -> "SerializedGameState":
        if len(self.tiles) > self.size * self.size:
            raise ValueError(f"{len(self.tiles)} tiles do not fit a {self.size}x{self.size} board.")
        ids = set()
        cells = set()
        for tile in self.tiles:
            cell = (tile.position.row, tile.position.col)
            if tile.position.row >= self.size or tile.position.col >= self.size:
                raise ValueError(f"Tile {tile.id!r} at {cell} is outside the board.")
            if tile.id in ids:
                raise ValueError(f"Duplicate tile id {tile.id!r}.")
            if cell in cells:
                raise ValueError(f"More than one tile at {cell}.")
            ids.add(tile.id)
            cells.add(cell)
        return self


def serialize_game_state(state: GameState) -> SerializedGameState:
    """Projects a game state onto its persistable fields."""
    return SerializedGameState(
        size=state.size,
        score=state.score,
        move_count=state.move_count,
        status=state.status,
        tiles=[
            TileSnapshot(
                id=tile.id,
                value=tile.value,
                position=PositionData(row=tile.position[0], col=tile.position[1]),
            )
            for tile in state.tiles
        ],
        next_tile_id=state.next_tile_id,
    )


def deserialize_game_state(snapshot: Union[SerializedGameState, Mapping[str, Any]]) -> GameState:
    """
    Rebuilds a game state from a snapshot or a plain mapping such as parsed JSON.
    Raises:
        pydantic.ValidationError: If the snapshot is malformed (a ValueError subclass).
    """
    if not isinstance(snapshot, SerializedGameState):
        snapshot = SerializedGameState.model_validate(snapshot)
    tiles = tuple(
        Tile(id=tile.id, value=tile.value, position=(tile.position.row, tile.position.col))
        for tile in snapshot.tiles
    )
    next_tile_id = snapshot.next_tile_id if snapshot.next_tile_id is not None else len(tiles) + 1
    return GameState(
        size=snapshot.size,
        tiles=tiles,
        score=snapshot.score,
        move_count=snapshot.move_count,
        status=snapshot.status,
        next_tile_id=next_tile_id,
    )


def dumps_game_state(state: GameState) -> str:
    return serialize_game_state(state).model_dump_json()


def loads_game_state(text: Union[str, bytes]) -> GameState:
    snapshot = SerializedGameState.model_validate_json(text)
    logger.debug("Loaded snapshot: %d tiles, score %d", len(snapshot.tiles), snapshot.score)
    return deserialize_game_state(snapshot)
