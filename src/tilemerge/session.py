# session.py
# Host-side game session: undo history, best score and the persisted payload.

import logging
from dataclasses import replace
from typing import List, Optional, Sequence, Union

from pydantic import BaseModel, Field

from tilemerge import config, core
from tilemerge.codec import SerializedGameState, deserialize_game_state, serialize_game_state

logger = logging.getLogger(__name__)


class PersistedPayload(BaseModel):
    """Everything a host needs to store to resume a session."""
    game: SerializedGameState
    history: List[SerializedGameState] = Field(default_factory=list)
    best_score: int = Field(default=0, ge=0)


def clamp_history(history: Sequence[SerializedGameState],
                  limit: int = config.HISTORY_LIMIT) -> List[SerializedGameState]:
    """Keeps the newest `limit` snapshots, oldest first."""
    if limit <= 0:
        return []
    return list(history[-limit:])


class GameSession:
    """
    Holds the current game for an interactive host.

    The engine stays stateless; the session only decides which state to keep:
    a move that changed nothing leaves the current state in place, and each
    applied move pushes a snapshot of the state it replaced onto the history.
    """

    def __init__(self, random: core.RandomSource, size: int = config.DEFAULT_SIZE,
                 target_value: int = config.DEFAULT_TARGET_VALUE,
                 history_limit: int = config.HISTORY_LIMIT,
                 state: Optional[core.GameState] = None):
        self.random = random
        self.size = size
        self.target_value = target_value
        self.history_limit = history_limit
        self.history: List[SerializedGameState] = []
        self.last_summary: Optional[core.MoveSummary] = None
        self.state = state if state is not None else self._new_state()
        self.best_score = self.state.score

    def _new_state(self) -> core.GameState:
        return core.create_game_state(
            core.GameOptions(random=self.random, size=self.size, target_value=self.target_value)
        )

    @property
    def can_undo(self) -> bool:
        return bool(self.history)

    @property
    def can_accept_input(self) -> bool:
        return self.state.status != core.GameProgressState.LOST

    def move(self, direction: Union[core.DIRECTION, str]) -> core.MoveResult:
        snapshot = serialize_game_state(self.state)
        result = core.move(self.state, direction, self.random, self.target_value)
        self.last_summary = result.summary
        if result.summary.moved:
            self.history = clamp_history(self.history + [snapshot], self.history_limit)
            self.best_score = max(self.best_score, result.state.score)
            self.state = result.state
        return result

    def undo(self) -> bool:
        """Restores the state before the last applied move. Returns False if there is none."""
        if not self.history:
            return False
        snapshot = self.history.pop()
        restored = deserialize_game_state(snapshot)
        # Ids issued on the discarded branch stay retired.
        self.state = replace(restored, next_tile_id=max(restored.next_tile_id, self.state.next_tile_id))
        self.last_summary = None
        logger.debug("Undo to move %d, %d snapshots left", self.state.move_count, len(self.history))
        return True

    def reset(self) -> None:
        """Starts a new game. The best score is kept."""
        self.state = self._new_state()
        self.history = []
        self.last_summary = None

    def to_payload(self) -> PersistedPayload:
        return PersistedPayload(
            game=serialize_game_state(self.state),
            history=clamp_history(self.history, self.history_limit),
            best_score=self.best_score,
        )

    def dumps(self) -> str:
        return self.to_payload().model_dump_json()

    @classmethod
    def from_payload(cls, payload: PersistedPayload, random: core.RandomSource,
                     target_value: int = config.DEFAULT_TARGET_VALUE,
                     history_limit: int = config.HISTORY_LIMIT) -> "GameSession":
        state = deserialize_game_state(payload.game)
        session = cls(random, size=state.size, target_value=target_value,
                      history_limit=history_limit, state=state)
        session.history = clamp_history(payload.history, history_limit)
        session.best_score = max(payload.best_score, state.score)
        return session


def load_payload(raw: Optional[Union[str, bytes]]) -> Optional[PersistedPayload]:
    """
    Parses a stored payload. Missing or corrupt blobs yield None.
    """
    if not raw:
        return None
    try:
        return PersistedPayload.model_validate_json(raw)
    except ValueError as e:
        logger.warning("Failed to load persisted game state: %s", e)
        return None
