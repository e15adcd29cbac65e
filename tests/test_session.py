from __future__ import annotations

import logging
import random

from conftest import board_state
from tilemerge.codec import serialize_game_state
from tilemerge.core import GameProgressState
from tilemerge.session import GameSession, PersistedPayload, clamp_history, load_payload


def _session(seed: int = 3, **kwargs) -> GameSession:
    return GameSession(random.Random(seed).random, **kwargs)


def _move_until_moved(session: GameSession) -> None:
    for direction in ("left", "up", "right", "down"):
        if session.move(direction).summary.moved:
            return
    raise AssertionError("no direction changed the board")


def test_new_session_starts_a_game() -> None:
    session = _session()
    assert len(session.state.tiles) == 2
    assert session.history == []
    assert session.can_undo is False
    assert session.can_accept_input is True
    assert session.best_score == 0


def test_moves_record_history_and_undo_restores() -> None:
    session = _session()
    start = session.state

    _move_until_moved(session)
    assert session.can_undo is True
    assert len(session.history) == 1

    assert session.undo() is True
    assert session.state.tiles == start.tiles
    assert (session.state.score, session.state.move_count) == (start.score, start.move_count)
    assert session.undo() is False


def test_undo_does_not_reissue_tile_ids() -> None:
    session = _session(state=board_state([[2, 2, 0, 0], [0] * 4, [0] * 4, [0] * 4]))
    first_branch = {t.id for t in session.move("left").state.tiles}

    session.undo()
    second_branch = {t.id for t in session.move("left").state.tiles}

    new_in_first = first_branch - {"0-0", "0-1"}
    new_in_second = second_branch - {"0-0", "0-1"}
    assert new_in_first and new_in_second
    assert not new_in_first & new_in_second


def test_unmoved_result_keeps_state_and_history() -> None:
    session = _session(state=board_state([[2, 4, 8, 16], [0] * 4, [0] * 4, [0] * 4]))
    before = session.state

    result = session.move("left")

    assert result.summary.moved is False
    assert session.state is before
    assert session.history == []
    assert session.last_summary is result.summary


def test_history_is_bounded() -> None:
    session = _session(seed=8, history_limit=3)
    for _ in range(10):
        _move_until_moved(session)
    assert len(session.history) == 3
    assert session.history[-1].move_count == session.state.move_count - 1


def test_best_score_survives_reset_and_undo() -> None:
    session = _session(state=board_state([[2, 2, 0, 0], [0] * 4, [0] * 4, [0] * 4]))
    session.move("left")
    assert session.best_score == 4

    session.undo()
    assert session.state.score == 0
    assert session.best_score == 4

    session.reset()
    assert session.best_score == 4
    assert session.history == []
    assert session.state.score == 0


def test_lost_session_does_not_accept_input(stuck_board) -> None:
    session = _session(state=board_state(stuck_board))
    session.move("up")
    assert session.state.status == GameProgressState.LOST
    assert session.can_accept_input is False


def test_payload_round_trip() -> None:
    session = _session(seed=21)
    for _ in range(4):
        _move_until_moved(session)

    restored = GameSession.from_payload(load_payload(session.dumps()), random.Random(0).random)

    assert restored.state == session.state
    assert restored.history == session.history
    assert restored.best_score == session.best_score
    assert restored.undo() is True


def test_payload_history_is_clamped_on_load() -> None:
    session = _session()
    snapshots = [serialize_game_state(session.state)] * 20
    payload = PersistedPayload(game=snapshots[0], history=snapshots, best_score=0)

    restored = GameSession.from_payload(payload, random.Random(0).random, history_limit=5)

    assert len(restored.history) == 5


def test_clamp_history() -> None:
    assert clamp_history([1, 2, 3, 4], 2) == [3, 4]
    assert clamp_history([1, 2], 5) == [1, 2]
    assert clamp_history([1, 2], 0) == []


def test_load_payload_handles_missing_and_corrupt_blobs(caplog) -> None:
    assert load_payload(None) is None
    assert load_payload("") is None

    with caplog.at_level(logging.WARNING, logger="tilemerge.session"):
        assert load_payload("{broken") is None
        assert load_payload('{"game": {"size": -1}}') is None

    assert "Failed to load persisted game state" in caplog.text
