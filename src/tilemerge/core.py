# core.py
# This file is the stateless core logic for a sliding-tile (2048-style) game.

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple, TypeVar, Union

from tilemerge import config

logger = logging.getLogger(__name__)

Position = Tuple[int, int]
RandomSource = Callable[[], float]
T = TypeVar("T")


class GameProgressState(Enum):
    """Represents the current progress state of the game."""
    PLAYING = "playing"
    WON = "won"
    LOST = "lost"


class DIRECTION(Enum):
    """Represents the possible move directions."""
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


# (d_row, d_col) step for each direction.
DIRECTION_VECTORS: Dict[DIRECTION, Position] = {
    DIRECTION.UP: (-1, 0),
    DIRECTION.DOWN: (1, 0),
    DIRECTION.LEFT: (0, -1),
    DIRECTION.RIGHT: (0, 1),
}


@dataclass(frozen=True)
class Tile:
    """A numbered piece on the board. Only persistent fields live here."""
    id: str
    value: int
    position: Position


@dataclass(frozen=True)
class TileAnnotation:
    """
    One-shot rendering hints for a tile, produced by a single move.

    `merged_from` holds value snapshots of the two consumed tiles, never live objects.
    """
    previous_position: Optional[Position] = None
    merged_from: Optional[Tuple[Tile, Tile]] = None
    is_new: bool = False
    is_merged_result: bool = False


@dataclass(frozen=True)
class GameState:
    """Immutable snapshot of a game. `next_tile_id` seeds ids for spawned and merged tiles."""
    size: int
    tiles: Tuple[Tile, ...] = ()
    score: int = 0
    move_count: int = 0
    status: GameProgressState = GameProgressState.PLAYING
    next_tile_id: int = 1


@dataclass(frozen=True)
class GameOptions:
    """Options for a new game. The random source is always passed in explicitly."""
    random: RandomSource
    size: int = config.DEFAULT_SIZE
    starting_tile_count: int = config.DEFAULT_STARTING_TILES
    target_value: int = config.DEFAULT_TARGET_VALUE


@dataclass(frozen=True)
class MoveSummary:
    """What happened during one move. `merged_values` is in traversal order."""
    moved: bool
    score_delta: int
    merged_values: List[int] = field(default_factory=list)
    spawned_tile: Optional[Tile] = None


@dataclass(frozen=True)
class MoveResult:
    state: GameState
    summary: MoveSummary
    annotations: Dict[str, TileAnnotation] = field(default_factory=dict)


Grid = List[List[Optional[Tile]]]

# --- Board Helper Functions ---

def within_bounds(size: int, position: Position) -> bool:
    row, col = position
    return 0 <= row < size and 0 <= col < size


def coerce_direction(direction: Union[DIRECTION, str]) -> DIRECTION:
    """
    Accepts a DIRECTION member or its name/value ("up", "UP").
    Raises:
        ValueError: If the direction is not one of up, down, left, right.
    """
    if isinstance(direction, DIRECTION):
        return direction
    if isinstance(direction, str):
        try:
            return DIRECTION(direction.lower())
        except ValueError:
            pass
    raise ValueError(f"Invalid direction specified for move: {direction!r}")


def tile_grid(size: int, tiles: Sequence[Tile]) -> Grid:
    """
    Places tiles onto a size x size grid indexed by [row][col].
    Args:
        size (int): The board dimension.
        tiles (Sequence[Tile]): Tiles to place.
    Returns:
        Grid: A new grid; empty cells hold None.
    Raises:
        ValueError: If a tile lies outside the board or two tiles share a cell.
    """
    grid: Grid = [[None] * size for _ in range(size)]
    for tile in tiles:
        if not within_bounds(size, tile.position):
            raise ValueError(f"Tile {tile.id!r} at {tile.position} is outside a {size}x{size} board.")
        row, col = tile.position
        if grid[row][col] is not None:
            raise ValueError(f"Tiles {grid[row][col].id!r} and {tile.id!r} share cell {tile.position}.")
        grid[row][col] = tile
    return grid


def flatten_grid(grid: Grid) -> List[Tile]:
    """Tiles of a grid in row-major order."""
    return [tile for row in grid for tile in row if tile is not None]


def get_empty_cells(size: int, occupied: Sequence[Tile]) -> List[Position]:
    """
    Get coordinates of empty cells, in row-major order.
    Args:
        size (int): The board dimension.
        occupied (Sequence[Tile]): Tiles currently on the board.
    Returns:
        List[Position]: List of (row, col) tuples for empty cells.
    """
    taken = {tile.position for tile in occupied}
    return [(row, col) for row in range(size) for col in range(size) if (row, col) not in taken]


def traverse_order(size: int, direction: Union[DIRECTION, str]) -> List[Position]:
    """
    Visiting order over every cell for one move, so that cells nearer the
    target edge are resolved before the cells behind them.
    """
    d_row, d_col = DIRECTION_VECTORS[coerce_direction(direction)]
    rows = range(size - 1, -1, -1) if d_row == 1 else range(size)
    cols = range(size - 1, -1, -1) if d_col == 1 else range(size)
    return [(row, col) for row in rows for col in cols]


def compute_farthest_position(grid: Grid, start: Position,
                              direction: Union[DIRECTION, str]) -> Tuple[Position, Position]:
    """
    Walks from `start` in `direction` while the next cell is in bounds and empty.
    Returns:
        Tuple[Position, Position]: The last empty cell reached (`start` if none)
                                   and the cell one step beyond it, which may be
                                   occupied or out of bounds.
    """
    d_row, d_col = DIRECTION_VECTORS[coerce_direction(direction)]
    size = len(grid)
    previous = start
    current = (start[0] + d_row, start[1] + d_col)
    while within_bounds(size, current) and grid[current[0]][current[1]] is None:
        previous = current
        current = (current[0] + d_row, current[1] + d_col)
    return previous, current

# --- Tile Spawning ---

def weighted_choice(options: Sequence[Tuple[T, float]], random: RandomSource) -> T:
    """
    Picks an item from (item, weight) pairs. Weights are normalised by their total;
    the last option is the fallback for floating-point edge cases.
    """
    total_weight = sum(weight for _, weight in options)
    threshold = random() * total_weight
    cumulative = 0.0
    for item, weight in options:
        cumulative += weight
        if threshold <= cumulative:
            return item
    return options[-1][0]


def allocate_tile_id(next_tile_id: int, taken: Set[str]) -> Tuple[str, int]:
    """
    Returns a fresh tile id and the counter value that follows it.
    Ids already on the board are skipped so caller-supplied ids never collide.
    """
    candidate = next_tile_id
    while f"t{candidate}" in taken:
        candidate += 1
    return f"t{candidate}", candidate + 1


def generate_tile(size: int, occupied: Sequence[Tile], random: RandomSource,
                  tile_id: str, value: Optional[int] = None) -> Optional[Tile]:
    """
    Creates a tile on a uniformly chosen empty cell.
    The random source is called once for the cell and, unless `value` is given,
    once more for the value.
    Args:
        size (int): The board dimension.
        occupied (Sequence[Tile]): Tiles already on the board.
        random (RandomSource): Returns floats in [0, 1).
        tile_id (str): Id for the new tile.
        value (Optional[int]): Fixed value, skipping the weighted draw.
    Returns:
        Optional[Tile]: The new tile, or None if no empty cell exists.
    """
    empty_cells = get_empty_cells(size, occupied)
    if not empty_cells:
        return None
    position = empty_cells[int(random() * len(empty_cells))]
    if value is None:
        value = weighted_choice(config.NEW_TILE_WEIGHTS, random)
    return Tile(id=tile_id, value=value, position=position)

# --- Game State Checks ---

def has_available_moves(state: GameState) -> bool:
    """
    Checks whether any cell is empty or any two 4-adjacent cells hold equal values.
    Args:
        state (GameState): The game to inspect.
    Returns:
        bool: True if at least one move can change the board.
    """
    grid = tile_grid(state.size, state.tiles)
    for row in range(state.size):
        for col in range(state.size):
            tile = grid[row][col]
            if tile is None:
                return True
            # Checking right and down covers every adjacent pair once.
            for n_row, n_col in ((row + 1, col), (row, col + 1)):
                if within_bounds(state.size, (n_row, n_col)):
                    neighbor = grid[n_row][n_col]
                    if neighbor is None or neighbor.value == tile.value:
                        return True
    return False


def evaluate_status(state: GameState, target_value: int = config.DEFAULT_TARGET_VALUE) -> GameProgressState:
    """
    Determines the progress state for a board. A win is sticky.
    """
    if state.status == GameProgressState.WON:
        return GameProgressState.WON
    if any(tile.value >= target_value for tile in state.tiles):
        return GameProgressState.WON
    if has_available_moves(state):
        return GameProgressState.PLAYING
    return GameProgressState.LOST

# --- Core Game Move Processing ---

def create_game_state(options: GameOptions) -> GameState:
    """
    Initializes a new game with `starting_tile_count` random tiles.
    Args:
        options (GameOptions): Board size, starting tiles, target and random source.
    Returns:
        GameState: Score 0, move count 0, status PLAYING.
    Raises:
        ValueError: If the size, tile count or target value is invalid.
    """
    if not isinstance(options.size, int) or options.size <= 0:
        raise ValueError("Board size must be a positive integer.")
    if options.starting_tile_count < 0:
        raise ValueError("Starting tile count must not be negative.")
    if options.target_value <= 0:
        raise ValueError("Target value must be a positive integer.")

    tiles: List[Tile] = []
    next_tile_id = 1
    for _ in range(options.starting_tile_count):
        tile_id, following_id = allocate_tile_id(next_tile_id, set())
        tile = generate_tile(options.size, tiles, options.random, tile_id)
        if tile is None:
            break
        tiles.append(tile)
        next_tile_id = following_id

    logger.debug("Created %dx%d game with %d tiles", options.size, options.size, len(tiles))
    return GameState(size=options.size, tiles=tuple(tiles), next_tile_id=next_tile_id)


def _can_merge(tile: Tile, target: Optional[Tile], locked: Set[str]) -> bool:
    return (
        target is not None
        and target.value == tile.value
        and tile.id not in locked
        and target.id not in locked
    )


def move(state: GameState, direction: Union[DIRECTION, str], random: RandomSource,
         target_value: int = config.DEFAULT_TARGET_VALUE) -> MoveResult:
    """
    Slides every tile in `direction`, merging equal neighbours once per move,
    then spawns one tile if anything changed.
    Args:
        state (GameState): The current game. It is never modified.
        direction (DIRECTION | str): The direction to move.
        random (RandomSource): Random source for the spawned tile.
        target_value (int): Tile value that wins the game.
    Returns:
        MoveResult: The new state, a summary of the move and per-tile annotations
                    keyed by tile id.
    Raises:
        ValueError: If the direction is unknown, or tiles overlap or lie off the board.
    """
    direction = coerce_direction(direction)
    if state.status == GameProgressState.LOST:
        return MoveResult(state=state, summary=MoveSummary(moved=False, score_delta=0))

    size = state.size
    grid = tile_grid(size, state.tiles)
    taken_ids = {tile.id for tile in state.tiles}
    next_tile_id = state.next_tile_id

    # Ids of tiles produced by a merge during this pass; they never merge again.
    locked: Set[str] = set()
    annotations: Dict[str, TileAnnotation] = {}
    merged_values: List[int] = []
    score_delta = 0
    moved = False

    for row, col in traverse_order(size, direction):
        tile = grid[row][col]
        if tile is None:
            continue

        farthest, next_cell = compute_farthest_position(grid, (row, col), direction)
        target = grid[next_cell[0]][next_cell[1]] if within_bounds(size, next_cell) else None

        if _can_merge(tile, target, locked):
            merged_id, next_tile_id = allocate_tile_id(next_tile_id, taken_ids)
            taken_ids.add(merged_id)
            merged = Tile(id=merged_id, value=tile.value * 2, position=next_cell)

            grid[row][col] = None
            grid[next_cell[0]][next_cell[1]] = merged
            locked.add(merged.id)
            # The target was resolved earlier in this pass; record where it started.
            target_origin = annotations.pop(target.id).previous_position
            annotations[merged.id] = TileAnnotation(
                previous_position=tile.position,
                merged_from=(tile, replace(target, position=target_origin)),
                is_merged_result=True,
            )

            merged_values.append(merged.value)
            score_delta += merged.value
            moved = True
        else:
            if farthest != tile.position:
                moved = True
                grid[row][col] = None
                grid[farthest[0]][farthest[1]] = replace(tile, position=farthest)
            annotations[tile.id] = TileAnnotation(previous_position=tile.position)

    tiles = flatten_grid(grid)

    spawned_tile: Optional[Tile] = None
    if moved:
        spawn_id, following_id = allocate_tile_id(next_tile_id, taken_ids)
        spawned_tile = generate_tile(size, tiles, random, spawn_id)
        if spawned_tile is not None:
            tiles.append(spawned_tile)
            annotations[spawned_tile.id] = TileAnnotation(is_new=True)
            next_tile_id = following_id

    next_state = GameState(
        size=size,
        tiles=tuple(tiles),
        score=state.score + score_delta,
        move_count=state.move_count + 1 if moved else state.move_count,
        status=state.status,
        next_tile_id=next_tile_id,
    )
    next_state = replace(next_state, status=evaluate_status(next_state, target_value))

    logger.debug(
        "Move %s: moved=%s score_delta=%d merged=%s spawned=%s status=%s",
        direction.value, moved, score_delta, merged_values,
        spawned_tile.id if spawned_tile else None, next_state.status.value,
    )
    return MoveResult(
        state=next_state,
        summary=MoveSummary(
            moved=moved,
            score_delta=score_delta,
            merged_values=merged_values,
            spawned_tile=spawned_tile,
        ),
        annotations=annotations,
    )
