import numpy as np
import pytest

from board import DOWN, INVALID_MOVE, LEFT, RIGHT, UP, Board


def test_linear_index_is_row_major():
    board = Board(np.arange(16))
    assert board[0] == 0
    assert board[5] == 5
    assert board[(1, 1)] == 5
    board[15] = 7
    assert board.grid[3, 3] == 7


def test_slide_left_merges_pairs_once():
    board = Board([
        [1, 1, 1, 1],
        [2, 0, 2, 0],
        [0, 0, 0, 3],
        [1, 2, 1, 2],
    ])
    reward = board.slide(LEFT)

    assert board.grid[0].tolist() == [2, 2, 0, 0]
    assert board.grid[1].tolist() == [3, 0, 0, 0]
    assert board.grid[2].tolist() == [3, 0, 0, 0]
    assert board.grid[3].tolist() == [1, 2, 1, 2]
    assert reward == 4 + 4 + 8


def test_slide_right_merges_from_the_right():
    board = Board([
        [1, 1, 1, 0],
        [0, 0, 0, 0],
        [0, 0, 0, 0],
        [0, 0, 0, 0],
    ])
    assert board.slide(RIGHT) == 4
    assert board.grid[0].tolist() == [0, 0, 1, 2]


def test_slide_up_and_down_move_columns():
    board = Board([
        [0, 0, 0, 0],
        [1, 0, 0, 0],
        [0, 0, 0, 0],
        [1, 0, 0, 3],
    ])
    up = board.copy()
    assert up.slide(UP) == 4
    assert up.grid[:, 0].tolist() == [2, 0, 0, 0]
    assert up.grid[:, 3].tolist() == [3, 0, 0, 0]

    down = board.copy()
    assert down.slide(DOWN) == 4
    assert down.grid[:, 0].tolist() == [0, 0, 0, 2]
    assert down.grid[:, 3].tolist() == [0, 0, 0, 3]


def test_slide_that_changes_nothing_is_invalid():
    board = Board([
        [1, 2, 0, 0],
        [0, 0, 0, 0],
        [0, 0, 0, 0],
        [0, 0, 0, 0],
    ])
    before = board.copy()
    assert board.slide(LEFT) == INVALID_MOVE
    assert board.slide(UP) == INVALID_MOVE
    assert board == before


def test_invalid_direction_raises():
    with pytest.raises(ValueError):
        Board().slide(4)


def test_copy_is_independent(mid_game_board):
    copy = mid_game_board.copy()
    copy.slide(LEFT)
    assert copy != mid_game_board


def test_place_only_on_empty_cells():
    board = Board()
    assert board.place(3, 1) == 0
    assert board[3] == 1
    assert board.place(3, 2) == INVALID_MOVE
    assert board[3] == 1
    assert board.place(16, 1) == INVALID_MOVE


def test_empty_cells_and_max_tile(mid_game_board):
    assert mid_game_board.empty_cells().tolist() == [3, 4, 8, 9, 12, 13, 14]
    assert mid_game_board.max_rank() == 5
    assert mid_game_board.max_tile() == 32
    assert Board().max_tile() == 0


def test_terminal_detection(terminal_board, mid_game_board):
    assert terminal_board.is_terminal()
    assert all(terminal_board.copy().slide(d) == INVALID_MOVE for d in (UP, DOWN, LEFT, RIGHT))
    assert not mid_game_board.is_terminal()

    full_with_merge = terminal_board.copy()
    full_with_merge[0] = 2  # equal to its right neighbour
    assert not full_with_merge.is_terminal()


def test_rotation_and_reflection():
    board = Board(np.arange(16))
    rotated = board.rotate_clockwise()
    # (r, c) -> (c, 3 - r)
    assert rotated[(0, 3)] == board[(0, 0)]
    assert rotated[(3, 3)] == board[(0, 3)]
    assert board.rotate_clockwise().rotate_clockwise().rotate_clockwise().rotate_clockwise() == board

    reflected = board.reflect_horizontal()
    assert reflected.grid[0].tolist() == [3, 2, 1, 0]
    assert reflected.reflect_horizontal() == board
