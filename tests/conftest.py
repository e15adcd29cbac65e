from __future__ import annotations

from collections.abc import Callable, Iterable

import pytest

from tilemerge.core import GameProgressState, GameState, Tile


def sequence_random(*values: float) -> Callable[[], float]:
    """Random source that cycles through `values`, like a replayed RNG."""
    index = 0

    def _next() -> float:
        nonlocal index
        value = values[index % len(values)]
        index += 1
        return value

    return _next


def board_state(rows: Iterable[Iterable[int]], **kwargs) -> GameState:
    """Build a state from a value matrix; 0 means empty. Tile ids are "r-c"."""
    tiles = []
    rows = [list(r) for r in rows]
    for r, row in enumerate(rows):
        for c, value in enumerate(row):
            if value:
                tiles.append(Tile(id=f"{r}-{c}", value=value, position=(r, c)))
    kwargs.setdefault("status", GameProgressState.PLAYING)
    return GameState(size=len(rows), tiles=tuple(tiles), **kwargs)


def values_of(state: GameState) -> list[list[int]]:
    grid = [[0] * state.size for _ in range(state.size)]
    for tile in state.tiles:
        grid[tile.position[0]][tile.position[1]] = tile.value
    return grid


@pytest.fixture()
def rng_factory() -> Callable[..., Callable[[], float]]:
    return sequence_random


@pytest.fixture()
def make_board() -> Callable[..., GameState]:
    return board_state


@pytest.fixture()
def grid_values() -> Callable[[GameState], list[list[int]]]:
    return values_of


# Packed board with no empty cell and no equal neighbours.
STUCK_BOARD = [
    [2, 4, 8, 16],
    [32, 64, 128, 256],
    [512, 1024, 2, 4],
    [8, 16, 32, 64],
]


@pytest.fixture()
def stuck_board() -> list[list[int]]:
    return [list(row) for row in STUCK_BOARD]
