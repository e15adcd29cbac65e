import logging
import random
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from tilemerge import config, core
from tilemerge.codec import (
    PositionData,
    SerializedGameState,
    TileSnapshot,
    deserialize_game_state,
    serialize_game_state,
)

logging.basicConfig(level=config.log_level())
logger = logging.getLogger(__name__)

# Initialize the rate limiter
limiter = Limiter(key_func=get_remote_address)
app = FastAPI(
    title="Tile Merge Game API",
    description="A stateless API for playing a 2048-style sliding tile game. "\
                "Keep your game snapshot (and undo history) on the client side.",
    version="1.0.0"
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# --- Pydantic Models for API requests and responses ---

class NewGameSettings(BaseModel):
    """Settings for creating a new game."""
    size: int = Field(
        default=config.DEFAULT_SIZE,
        gt=1, # Board size must be at least 2x2
        le=config.MAX_BOARD_SIZE,
        description="Size of the N x N game board (e.g., 4 for a 4x4 board)."
    )
    starting_tile_count: int = Field(
        default=config.DEFAULT_STARTING_TILES,
        ge=0,
        description="Number of tiles placed on the new board."
    )
    target_value: int = Field(
        default=config.DEFAULT_TARGET_VALUE,
        gt=0,
        description="The tile value to achieve for winning the game (e.g., 2048)."
    )
    seed: Optional[int] = Field(
        default=None,
        description="Seed for the tile spawner. Omit for a fresh random game."
    )

class GameStateData(BaseModel):
    """A game snapshot plus the settings the client must send back with each move."""
    game: SerializedGameState
    target_value: int = Field(..., gt=0, description="The tile value required to win this game instance.")
    available_moves: bool = Field(..., description="True if any move can still change the board.")

class MoveRequestData(BaseModel):
    """Data required to make a move."""
    game: SerializedGameState = Field(..., description="Game snapshot before the move.")
    direction: core.DIRECTION = Field(..., description="Direction of the move (up, down, left, right).")
    target_value: int = Field(
        default=config.DEFAULT_TARGET_VALUE,
        gt=0,
        description="The win condition tile for this game instance."
    )
    seed: Optional[int] = Field(default=None, description="Seed for the spawned tile.")

class TileAnnotationData(BaseModel):
    """Rendering hints for one tile after a move."""
    previous_position: Optional[PositionData] = None
    merged_from: Optional[List[TileSnapshot]] = None
    is_new: bool = False
    is_merged_result: bool = False

class MoveSummaryData(BaseModel):
    moved: bool
    score_delta: int = Field(..., ge=0)
    merged_values: List[int] = Field(default_factory=list)
    spawned_tile: Optional[TileSnapshot] = None

class MoveResponseData(GameStateData):
    """Response after a move, including the new game state and what the move did."""
    summary: MoveSummaryData
    annotations: Dict[str, TileAnnotationData] = Field(default_factory=dict)
    message: Optional[str] = Field(
        default=None,
        description="An optional message, e.g., if a move was not effective or the game ended."
    )

class UndoRequestData(BaseModel):
    """Client-held history, oldest snapshot first."""
    history: List[SerializedGameState] = Field(..., description="Snapshots captured before each applied move.")

class UndoResponseData(BaseModel):
    game: SerializedGameState
    history: List[SerializedGameState]

class AvailableMovesRequestData(BaseModel):
    game: SerializedGameState

class AvailableMovesResponseData(BaseModel):
    available_moves: bool

# --- Conversion helpers ---

def _tile_snapshot(tile: core.Tile) -> TileSnapshot:
    return TileSnapshot(id=tile.id, value=tile.value,
                        position=PositionData(row=tile.position[0], col=tile.position[1]))

def _annotation_data(annotation: core.TileAnnotation) -> TileAnnotationData:
    previous = annotation.previous_position
    return TileAnnotationData(
        previous_position=PositionData(row=previous[0], col=previous[1]) if previous else None,
        merged_from=[_tile_snapshot(t) for t in annotation.merged_from] if annotation.merged_from else None,
        is_new=annotation.is_new,
        is_merged_result=annotation.is_merged_result,
    )

def _check_board_size(snapshot: SerializedGameState) -> None:
    if snapshot.size > config.MAX_BOARD_SIZE:
        raise HTTPException(status_code=400,
                            detail=f"Board size {snapshot.size} exceeds the limit of {config.MAX_BOARD_SIZE}.")

# --- API Endpoints ---

@app.post("/game/new", response_model=GameStateData, summary="Start a New Game")
@limiter.limit(config.RATE_LIMIT)
async def start_new_game(request: Request, settings: NewGameSettings):
    """
    Initializes a new game based on the provided settings.

    - **size**: Dimension of the N x N board (e.g., 4 for 4x4). Default is 4.
    - **starting_tile_count**: Tiles on the new board. Default is 2.
    - **target_value**: Tile value to reach to win (e.g., 2048). Default is 2048.
    - **seed**: Optional seed for reproducible spawns.
    """
    try:
        options = core.GameOptions(
            random=random.Random(settings.seed).random,
            size=settings.size,
            starting_tile_count=settings.starting_tile_count,
            target_value=settings.target_value,
        )
        state = core.create_game_state(options)
        return GameStateData(
            game=serialize_game_state(state),
            target_value=settings.target_value,
            available_moves=core.has_available_moves(state),
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Unexpected error in /game/new")
        raise HTTPException(status_code=500, detail=f"An unexpected error occurred during game creation: {str(e)}")


@app.post("/game/move", response_model=MoveResponseData, summary="Make a Move in the Game")
@limiter.limit(config.RATE_LIMIT)
async def make_move(request: Request, request_data: MoveRequestData):
    """
    Processes a player's move.

    The API will:
    1. Slide and merge tiles in the requested direction.
    2. If the board changed, add a new random tile (2 or 4).
    3. Determine the new game status (playing, won, lost).

    Returns the updated snapshot, a move summary, per-tile annotations and an optional message.
    """
    _check_board_size(request_data.game)
    try:
        state = deserialize_game_state(request_data.game)
        result = core.move(
            state,
            request_data.direction,
            random.Random(request_data.seed).random,
            request_data.target_value,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Error processing move: {str(e)}")
    except Exception as e:
        logger.exception("Unexpected error in /game/move")
        raise HTTPException(status_code=500, detail=f"An unexpected server error occurred while processing the move: {str(e)}")

    message_for_client: Optional[str] = None
    if not result.summary.moved:
        message_for_client = "Move was not effective; board state unchanged by slide."
    if result.state.status == core.GameProgressState.WON:
        message_for_client = "Congratulations! You won!"
    elif result.state.status == core.GameProgressState.LOST:
        message_for_client = "Game Over. No more valid moves."

    summary = result.summary
    return MoveResponseData(
        game=serialize_game_state(result.state),
        target_value=request_data.target_value,
        available_moves=core.has_available_moves(result.state),
        summary=MoveSummaryData(
            moved=summary.moved,
            score_delta=summary.score_delta,
            merged_values=summary.merged_values,
            spawned_tile=_tile_snapshot(summary.spawned_tile) if summary.spawned_tile else None,
        ),
        annotations={tile_id: _annotation_data(a) for tile_id, a in result.annotations.items()},
        message=message_for_client,
    )


@app.post("/game/undo", response_model=UndoResponseData, summary="Undo the Last Move")
@limiter.limit(config.RATE_LIMIT)
async def undo_move(request: Request, request_data: UndoRequestData):
    """
    Pops the newest snapshot from the client's history and returns it as the current game.
    """
    if not request_data.history:
        raise HTTPException(status_code=400, detail="Nothing to undo; history is empty.")
    history = list(request_data.history)
    snapshot = history.pop()
    # Round trip through the engine state so the returned snapshot is normalised.
    state = deserialize_game_state(snapshot)
    return UndoResponseData(game=serialize_game_state(state), history=history)


@app.post("/game/available-moves", response_model=AvailableMovesResponseData,
          summary="Check Whether Any Move Is Possible")
@limiter.limit(config.RATE_LIMIT)
async def available_moves(request: Request, request_data: AvailableMovesRequestData):
    _check_board_size(request_data.game)
    state = deserialize_game_state(request_data.game)
    return AvailableMovesResponseData(available_moves=core.has_available_moves(state))
