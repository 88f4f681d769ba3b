import numpy as np
import pytest

from agent import Action, Player, RandomEnvironment
from agent_config import AgentConfig
from board import INVALID_MOVE, LEFT, Board
from ntuple_errors import WeightFileError


def small_player(args: str = "") -> Player:
    return Player(AgentConfig.from_args(f"max_index=6 {args}"))


def test_action_apply():
    board = Board([1, 1] + [0] * 14)
    assert Action.slide(LEFT).apply(board) == 4
    assert Action.place(5, 2).apply(board) == 0
    assert board[5] == 2
    assert Action.place(5, 1).apply(board) == INVALID_MOVE
    assert Action.noop().apply(board) == INVALID_MOVE
    assert Action.noop().is_noop
    assert not Action.slide(LEFT).is_noop
    assert str(Action.slide(LEFT)) == "#LEFT"
    assert str(Action.place(5, 2)) == "5=4"


def test_environment_places_on_the_only_empty_cell(terminal_board):
    board = terminal_board.copy()
    board[6] = 0
    action = RandomEnvironment(seed=1).take_action(board)
    assert action.position == 6
    assert action.rank in (1, 2)


def test_environment_noop_on_full_board(terminal_board):
    assert RandomEnvironment(seed=1).take_action(terminal_board).is_noop


def test_environment_is_seeded():
    board = Board()
    first = [RandomEnvironment(seed=42).take_action(board) for _ in range(3)]
    second = [RandomEnvironment(seed=42).take_action(board) for _ in range(3)]
    assert first == second


def test_environment_tile_distribution():
    environment = RandomEnvironment(seed=0)
    ranks = [environment.take_action(Board()).rank for _ in range(4000)]
    assert set(ranks) == {1, 2}
    assert 0.87 < ranks.count(1) / len(ranks) < 0.93


def test_player_noop_on_terminal_board(terminal_board):
    player = small_player("alpha=0.1")
    player.open_episode()
    assert player.take_action(terminal_board).is_noop
    assert len(player.history) == 0


def test_player_records_afterstate_and_reward():
    player = small_player("depth=0")
    board = Board([1, 1] + [0] * 14)
    player.open_episode()

    action = player.take_action(board)

    assert action == Action.slide(LEFT)
    assert len(player.history) == 1
    entry = player.history.last
    assert entry.reward == 4.0
    assert entry.afterstate.grid[0].tolist() == [2, 0, 0, 0]
    # Player never moves the real board
    assert board.grid[0].tolist() == [1, 1, 0, 0]


def test_player_learns_at_episode_end(mid_game_board):
    player = small_player("alpha=0.1 depth=0")
    player.network.weights[:] = 1.0
    player.open_episode()
    player.take_action(mid_game_board)

    player.close_episode()

    assert len(player.history) == 0
    assert float(player.network.weights.astype(np.float64).sum()) < player.network.weights.size


def test_player_without_alpha_does_not_learn(mid_game_board):
    player = small_player("depth=0")
    player.network.weights[:] = 1.0
    player.open_episode()
    player.take_action(mid_game_board)
    player.close_episode()

    assert len(player.history) == 0
    assert np.all(player.network.weights == 1.0)


def test_player_saves_and_loads(tmp_path, mid_game_board):
    path = str(tmp_path / "ntuple.bin")
    trained = small_player(f"save={path}")
    trained.network.weights[1, :100] = 3.0
    trained.close()

    loaded = small_player(f"load={path}")
    assert loaded.network.value(mid_game_board) == trained.network.value(mid_game_board)


def test_player_missing_load_file_is_fatal(tmp_path):
    with pytest.raises(WeightFileError):
        small_player(f"load={tmp_path / 'missing.bin'}")
