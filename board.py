"""
2048 Board primitive
A 4x4 grid of log2 tile ranks (0 means empty, 1 means 2, 2 means 4, ...)
with the slide rule of the game. Cells can be read and written by row-major
linear index 0..15.
"""

from functools import lru_cache
from typing import Optional, Tuple

import numpy as np


BOARD_SIZE = 4
NUM_CELLS = BOARD_SIZE * BOARD_SIZE

# Largest rank reachable on a 4x4 board (2^17 = 131072)
MAX_RANK = 17

# Returned by slide/place when the board would not change
INVALID_MOVE = -1

UP, DOWN, LEFT, RIGHT = 0, 1, 2, 3
DIRECTIONS = (UP, DOWN, LEFT, RIGHT)
DIRECTION_NAMES = ("UP", "DOWN", "LEFT", "RIGHT")


@lru_cache(maxsize=None)
def _merge_line(line: Tuple[int, ...]) -> Tuple[Tuple[int, ...], int]:
    """
    Merge a line (row or column) toward its first cell.

    Args:
        line: Tile ranks along the line, first cell first

    Returns:
        Tuple of (merged_line, reward)
    """
    tiles = [x for x in line if x != 0]

    # Merge adjacent equal tiles
    merged = []
    reward = 0
    i = 0
    while i < len(tiles):
        if i + 1 < len(tiles) and tiles[i] == tiles[i + 1]:
            merged_value = tiles[i] + 1
            merged.append(merged_value)
            reward += 2 ** merged_value  # Add the actual tile value as reward
            i += 2
        else:
            merged.append(tiles[i])
            i += 1

    merged.extend([0] * (len(line) - len(merged)))
    return tuple(merged), reward


class Board:
    """
    4x4 grid of tile ranks.

    The board is mutable: slide() and place() change it in place, copy()
    gives an independent board for search.
    """

    def __init__(self, cells: Optional[np.ndarray] = None):
        """
        Create a board.

        Args:
            cells: Optional 16 ranks (flat or 4x4, row-major). Empty board if None.
        """
        if cells is None:
            self.grid = np.zeros((BOARD_SIZE, BOARD_SIZE), dtype=np.int32)
        else:
            self.grid = np.array(cells, dtype=np.int32).reshape(BOARD_SIZE, BOARD_SIZE)

    @property
    def cells(self) -> np.ndarray:
        """Flat view of the grid; writes go through to the board."""
        return self.grid.reshape(NUM_CELLS)

    def __getitem__(self, position) -> int:
        if isinstance(position, tuple):
            return int(self.grid[position])
        return int(self.cells[position])

    def __setitem__(self, position, rank: int) -> None:
        if isinstance(position, tuple):
            self.grid[position] = rank
        else:
            self.cells[position] = rank

    def __eq__(self, other) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return bool(np.array_equal(self.grid, other.grid))

    __hash__ = None

    def copy(self) -> "Board":
        return Board(self.grid.copy())

    def _lines(self, direction: int) -> np.ndarray:
        """Writable view whose rows are the lines merged toward column 0."""
        if direction == LEFT:
            return self.grid
        if direction == RIGHT:
            return self.grid[:, ::-1]
        if direction == UP:
            return self.grid.T
        if direction == DOWN:
            return self.grid[::-1, :].T
        raise ValueError(f"Invalid direction: {direction}")

    def slide(self, direction: int) -> int:
        """
        Move and merge tiles in the given direction.

        Args:
            direction: 0=up, 1=down, 2=left, 3=right

        Returns:
            Merge reward, or INVALID_MOVE if no tile moved
        """
        lines = self._lines(direction)
        reward = 0
        changed = False
        for i in range(BOARD_SIZE):
            line = tuple(lines[i].tolist())
            merged, line_reward = _merge_line(line)
            if merged != line:
                lines[i] = merged
                reward += line_reward
                changed = True
        return reward if changed else INVALID_MOVE

    def place(self, position: int, rank: int) -> int:
        """Put a tile on an empty cell. Returns 0, or INVALID_MOVE if occupied."""
        if not 0 <= position < NUM_CELLS or self.cells[position] != 0:
            return INVALID_MOVE
        self.cells[position] = rank
        return 0

    def empty_cells(self) -> np.ndarray:
        """Linear indices of the empty cells, ascending."""
        return np.flatnonzero(self.cells == 0)

    def is_terminal(self) -> bool:
        """True when no slide in any direction changes the board."""
        if np.any(self.grid == 0):
            return False
        # A full board can only move through a merge of equal neighbours
        return not (np.any(self.grid[:, 1:] == self.grid[:, :-1])
                    or np.any(self.grid[1:, :] == self.grid[:-1, :]))

    def max_rank(self) -> int:
        return int(self.grid.max())

    def max_tile(self) -> int:
        rank = self.max_rank()
        return 2 ** rank if rank > 0 else 0

    def rotate_clockwise(self) -> "Board":
        return Board(np.rot90(self.grid, k=-1))

    def reflect_horizontal(self) -> "Board":
        return Board(self.grid[:, ::-1])

    def __repr__(self) -> str:
        return f"Board({self.cells.tolist()})"

    def __str__(self) -> str:
        lines = ["+" + "-" * 24 + "+"]
        for i in range(BOARD_SIZE):
            row_str = ""
            for j in range(BOARD_SIZE):
                value = self.grid[i, j]
                tile_value = "." if value == 0 else str(2 ** int(value))
                row_str += f"{tile_value:>6}"
            lines.append("|" + row_str + "|")
        lines.append("+" + "-" * 24 + "+")
        return "\n".join(lines)
