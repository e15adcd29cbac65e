# config.py
# Game defaults and environment overrides shared by the engine and its hosts.

import os
from typing import Tuple

DEFAULT_SIZE = 4
DEFAULT_STARTING_TILES = 2
DEFAULT_TARGET_VALUE = 2048

# (value, weight) pairs for newly spawned tiles. Weights need not sum to 1.
NEW_TILE_WEIGHTS: Tuple[Tuple[int, float], ...] = ((2, 0.9), (4, 0.1))

# Largest board the HTTP API will create or play.
MAX_BOARD_SIZE = 16

# Number of undo snapshots a session keeps.
HISTORY_LIMIT = 16

RATE_LIMIT = os.environ.get("TILEMERGE_RATE_LIMIT", "100/minute")


def log_level(default: str = "INFO") -> str:
    """Log level name for hosts, taken from TILEMERGE_LOG_LEVEL when set."""
    return os.environ.get("TILEMERGE_LOG_LEVEL", default).upper()
