# cli_driver.py
# This file is intended to be run to play or test the game on the CLI

import argparse
import logging
import random
from typing import Optional, Sequence

from tilemerge import config
from tilemerge.core import DIRECTION, GameProgressState, GameState
from tilemerge.session import GameSession

logger = logging.getLogger(__name__)

DIRECTION_KEYS = {'W': DIRECTION.UP, 'A': DIRECTION.LEFT, 'S': DIRECTION.DOWN, 'D': DIRECTION.RIGHT}


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Play the sliding tile game in the terminal.")
    parser.add_argument("--size", type=int, default=config.DEFAULT_SIZE, help="Board dimension.")
    parser.add_argument("--target", type=int, default=config.DEFAULT_TARGET_VALUE,
                        help="Tile value that wins the game. Set lower (e.g. 32) for testing.")
    parser.add_argument("--seed", type=int, default=None, help="Seed for reproducible games.")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None, read=input, write=print) -> GameSession:
    args = parse_args(argv)
    logging.basicConfig(level=config.log_level("WARNING"))

    # 1. Initialize game
    session = GameSession(random.Random(args.seed).random, size=args.size, target_value=args.target)
    display_board_state(session, write)

    # 2. Game Loop; undo, reset and quit stay available after a loss.
    while True:
        move_input = read("Enter move (W/A/S/D to move, U undo, R reset, Q quit): ").strip().upper()

        if move_input == 'Q':
            write("Quitting game.")
            break
        if move_input == 'U':
            if not session.undo():
                write("Nothing to undo.")
            display_board_state(session, write)
            continue
        if move_input == 'R':
            session.reset()
            display_board_state(session, write)
            continue

        chosen_direction = DIRECTION_KEYS.get(move_input)
        if not chosen_direction:
            write("Invalid input. Use W, A, S, D, U, R or Q.")
            continue
        if not session.can_accept_input:
            write("No more moves possible. Undo (U), reset (R) or quit (Q).")
            continue

        # 3. Process the move; the session keeps the old state if nothing changed.
        result = session.move(chosen_direction)
        if not result.summary.moved:
            write("Move did not change the board. Try a different direction.")
        elif result.summary.merged_values:
            logger.info("Merged %s for +%d", result.summary.merged_values, result.summary.score_delta)

        display_board_state(session, write)
        if session.state.status == GameProgressState.LOST:
            write("No more moves possible. Better luck next time!")

    return session


# --- Display Function (Example of external usage) ---
def format_board(state: GameState) -> str:
    cells = [["."] * state.size for _ in range(state.size)]
    for tile in state.tiles:
        cells[tile.position[0]][tile.position[1]] = str(tile.value)
    return "\n".join("\t".join(row) for row in cells)


def display_board_state(session: GameSession, write=print):
    """Prints the board, score and game status to the console."""
    state = session.state
    write(f"\nScore: {state.score}  Best: {session.best_score}  Moves: {state.move_count}")
    status_message = {
        GameProgressState.PLAYING: f"Status: {state.status.name}",
        GameProgressState.WON: "YOU WON! Keep going for a higher score.",
        GameProgressState.LOST: "GAME OVER!"
    }
    write(status_message[state.status])
    write(format_board(state))
    write("-" * (state.size * 6)) # Adjust width based on board size


if __name__ == "__main__":
    main()
