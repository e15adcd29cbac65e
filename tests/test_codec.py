from __future__ import annotations

import json
import random

import pytest
from pydantic import ValidationError

from tilemerge import core
from tilemerge.codec import (
    SerializedGameState,
    deserialize_game_state,
    dumps_game_state,
    loads_game_state,
    serialize_game_state,
)
from tilemerge.core import GameOptions, GameProgressState, GameState, Tile


def _played_state(moves: int = 25) -> GameState:
    rng = random.Random(5)
    state = core.create_game_state(GameOptions(random=rng.random))
    for _ in range(moves):
        state = core.move(state, rng.choice(list(core.DIRECTION)), rng.random).state
    return state


def test_serialize_keeps_only_persistent_fields() -> None:
    state = GameState(
        size=4,
        tiles=(Tile("a", 2, (0, 1)), Tile("b", 8, (3, 3))),
        score=12,
        move_count=3,
        status=GameProgressState.WON,
        next_tile_id=9,
    )

    data = serialize_game_state(state).model_dump(mode="json")

    assert data == {
        "size": 4,
        "score": 12,
        "move_count": 3,
        "status": "won",
        "tiles": [
            {"id": "a", "value": 2, "position": {"row": 0, "col": 1}},
            {"id": "b", "value": 8, "position": {"row": 3, "col": 3}},
        ],
        "next_tile_id": 9,
    }


def test_round_trip_preserves_state() -> None:
    state = _played_state()
    assert deserialize_game_state(serialize_game_state(state)) == state
    assert loads_game_state(dumps_game_state(state)) == state


def test_round_trip_of_move_result_drops_annotations() -> None:
    state = GameState(size=4, tiles=(Tile("a", 2, (1, 0)), Tile("b", 2, (2, 0))))
    result = core.move(state, "up", random.Random(1).random)
    assert result.annotations

    restored = deserialize_game_state(serialize_game_state(result.state))

    assert restored == result.state
    assert not hasattr(restored.tiles[0], "merged_from")


def test_deserialize_accepts_plain_mapping() -> None:
    state = deserialize_game_state(
        {
            "size": 2,
            "score": 4,
            "move_count": 1,
            "status": "playing",
            "tiles": [{"id": "x", "value": 4, "position": {"row": 1, "col": 0}}],
        }
    )

    assert state.tiles == (Tile("x", 4, (1, 0)),)
    assert state.status == GameProgressState.PLAYING
    # Missing counter defaults to one past the tile count.
    assert state.next_tile_id == 2


@pytest.mark.parametrize(
    "change",
    [
        {"size": 0},
        {"score": -1},
        {"move_count": -2},
        {"status": "paused"},
        {"tiles": [{"id": "a", "value": 3, "position": {"row": 0, "col": 0}}]},
        {"tiles": [{"id": "a", "value": 1, "position": {"row": 0, "col": 0}}]},
        {"tiles": [{"id": "a", "value": 2, "position": {"row": 2, "col": 0}}]},
        {"tiles": [{"id": "a", "value": 2, "position": {"row": 0, "col": -1}}]},
        {
            "tiles": [
                {"id": "a", "value": 2, "position": {"row": 0, "col": 0}},
                {"id": "a", "value": 4, "position": {"row": 0, "col": 1}},
            ]
        },
        {
            "tiles": [
                {"id": "a", "value": 2, "position": {"row": 1, "col": 1}},
                {"id": "b", "value": 4, "position": {"row": 1, "col": 1}},
            ]
        },
    ],
)
def test_deserialize_rejects_malformed_snapshots(change) -> None:
    data = {"size": 2, "score": 0, "move_count": 0, "status": "playing", "tiles": []}
    data.update(change)

    with pytest.raises(ValidationError):
        deserialize_game_state(data)


def test_validation_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        loads_game_state(json.dumps({"size": 2}))


def test_loads_rejects_invalid_json() -> None:
    with pytest.raises(ValueError):
        loads_game_state("{not json")


def test_snapshot_model_is_reusable_for_deserialize() -> None:
    snapshot = SerializedGameState(size=3, score=0, move_count=0, status=GameProgressState.LOST)
    state = deserialize_game_state(snapshot)
    assert state == GameState(size=3, status=GameProgressState.LOST, next_tile_id=1)
