import json

import numpy as np
import pytest

from agent import Player
from agent_config import AgentConfig
from board import LEFT, UP, Board
from game_2048 import Game2048
from train_ntuple import EpisodeRecord, main, play_episode, summarize_block


def test_reset_places_two_tiles():
    env = Game2048(seed=3)
    observation, info = env.reset()

    assert observation.shape == (4, 4)
    assert np.count_nonzero(observation) == 2
    assert set(observation[observation > 0].tolist()) <= {1, 2}
    assert info["score"] == 0
    assert env.observation_space.contains(observation)


def test_valid_step_spawns_a_tile():
    env = Game2048(seed=3)
    env.reset()
    env.board = Board([1, 1] + [0] * 14)

    observation, reward, terminated, truncated, info = env.step(LEFT)

    assert reward == 4.0
    assert info["grid_changed"]
    assert info["score"] == 4
    assert info["moves"] == 1
    assert np.count_nonzero(observation) == 2
    assert not terminated and not truncated


def test_invalid_step_changes_nothing():
    env = Game2048(seed=3)
    env.reset()
    env.board = Board([1, 2] + [0] * 14)

    observation, reward, terminated, _, info = env.step(UP)

    assert reward == 0.0
    assert not info["grid_changed"]
    assert np.count_nonzero(observation) == 2
    assert info["moves"] == 0


def test_step_rejects_bad_actions():
    env = Game2048(seed=3)
    env.reset()
    with pytest.raises(ValueError):
        env.step(4)
    with pytest.raises(ValueError):
        env.step("left")


def test_play_episode_runs_to_the_end():
    player = Player(AgentConfig.from_args("max_index=6 depth=0 alpha=0.01"))
    env = Game2048(seed=11)

    record = play_episode(player, env)

    assert env.board.is_terminal()
    assert record.moves > 0
    assert record.score == env.score
    assert record.max_tile >= 4
    assert len(player.history) == 0


def test_summarize_block_tile_rates():
    records = [
        EpisodeRecord(score=1000, moves=100, max_tile=128, duration=1.0),
        EpisodeRecord(score=3000, moves=200, max_tile=256, duration=1.0),
        EpisodeRecord(score=2000, moves=100, max_tile=256, duration=2.0),
        EpisodeRecord(score=8000, moves=400, max_tile=512, duration=4.0),
    ]
    summary = summarize_block(records)

    assert summary["avg_score"] == pytest.approx(3500.0)
    assert summary["max_score"] == 8000
    assert summary["ops_per_sec"] == pytest.approx(100.0)
    assert summary["tile_rates"][128] == {"reached": 1.0, "ended": 0.25}
    assert summary["tile_rates"][256] == {"reached": 0.75, "ended": 0.5}
    assert summary["tile_rates"][512] == {"reached": 0.25, "ended": 0.25}


def test_main_trains_and_saves(tmp_path):
    weights = tmp_path / "weights" / "ntuple.bin"
    stats = tmp_path / "stats.json"

    status = main([
        "--total", "2", "--block", "1",
        "--play", f"max_index=6 depth=0 alpha=0.01 save={weights}",
        "--env", "seed=5",
        "--stats", str(stats),
        "--log-dir", str(tmp_path / "logs"),
    ])

    assert status == 0
    assert weights.exists()
    blocks = json.loads(stats.read_text())
    assert [block["episode"] for block in blocks] == [1, 2]


def test_main_fails_on_missing_weights(tmp_path):
    status = main([
        "--total", "1",
        "--play", f"max_index=6 load={tmp_path / 'missing.bin'}",
        "--log-dir", str(tmp_path / "logs"),
    ])
    assert status == 1


def test_main_rejects_unknown_agent_option(tmp_path):
    status = main(["--total", "1", "--play", "role=player", "--log-dir", str(tmp_path / "logs")])
    assert status == 1


def test_main_rejects_player_options_in_environment_args(tmp_path):
    status = main([
        "--total", "1",
        "--play", "max_index=6 depth=0",
        "--env", f"seed=5 alpha=0.3 load={tmp_path / 'missing.bin'}",
        "--log-dir", str(tmp_path / "logs"),
    ])
    assert status == 1
