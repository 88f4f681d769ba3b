"""
Training script for 2048 using an n-tuple network with expectimax search

Each episode the player picks moves with a 2-ply expectimax over its
n-tuple network; at the end of the episode the afterstates are replayed
backward with TD learning.

Usage:
    python train_ntuple.py --total 1000 --block 100 --play "alpha=0.00125 save=weights/ntuple.bin"
    python train_ntuple.py --total 100 --play "load=weights/ntuple.bin alpha=0"
"""

import argparse
import json
import logging
import os
import sys
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np
from tqdm import tqdm

from agent import Player
from agent_config import AgentConfig, EnvironmentConfig
from game_2048 import Game2048
from ntuple_errors import ConfigError, WeightFileError


logger = logging.getLogger("train_ntuple")


def setup_logging(log_dir: str = "logs") -> logging.Logger:
    """
    Setup logging to both console and file.

    Args:
        log_dir: Directory to store log files

    Returns:
        Configured logger
    """
    os.makedirs(log_dir, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = os.path.join(log_dir, f"training_{timestamp}.log")

    # Handlers go on the root logger so module loggers (weights, agent) share them
    root = logging.getLogger()
    root.setLevel(logging.INFO)
    root.handlers.clear()

    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(logging.Formatter('%(asctime)s | %(message)s', datefmt='%Y-%m-%d %H:%M:%S'))

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter('%(message)s'))

    root.addHandler(file_handler)
    root.addHandler(console_handler)

    logger.info(f"Logging to: {log_file}")
    return logger


@dataclass
class EpisodeRecord:
    score: int
    moves: int
    max_tile: int
    duration: float


def play_episode(player: Player, env: Game2048, seed: Optional[int] = None) -> EpisodeRecord:
    """
    Play one game to the end, then let the player learn from it.

    Args:
        player: Learning player
        env: Game environment (drops the random tiles)
        seed: Optional reseed of the environment

    Returns:
        Episode statistics
    """
    start = time.time()
    env.reset(seed=seed)
    player.open_episode()

    while True:
        action = player.take_action(env.board)
        if action.is_noop:
            break
        env.step(action.direction)

    player.close_episode()
    return EpisodeRecord(
        score=env.score,
        moves=env.moves_made,
        max_tile=env.board.max_tile(),
        duration=time.time() - start,
    )


def summarize_block(records: Sequence[EpisodeRecord]) -> Dict[str, object]:
    """
    Statistics of a block of episodes.

    Tile rates are cumulative: the share of episodes whose max tile is at
    least that tile.
    """
    scores = np.array([r.score for r in records])
    max_tiles = np.array([r.max_tile for r in records])
    moves = sum(r.moves for r in records)
    duration = sum(r.duration for r in records)

    tile_rates = {}
    for tile in sorted(set(max_tiles.tolist())):
        tile_rates[int(tile)] = {
            "reached": float(np.mean(max_tiles >= tile)),
            "ended": float(np.mean(max_tiles == tile)),
        }

    return {
        "episodes": len(records),
        "avg_score": float(np.mean(scores)),
        "max_score": int(np.max(scores)),
        "median_max_tile": int(np.median(max_tiles)),
        "ops_per_sec": moves / duration if duration > 0 else 0.0,
        "tile_rates": tile_rates,
    }


def log_block(episode: int, summary: Dict[str, object]) -> None:
    logger.info(f"\nEpisode {episode}")
    logger.info(f"  avg = {summary['avg_score']:.0f}, max = {summary['max_score']}, "
                f"ops = {summary['ops_per_sec']:.0f}")
    for tile, rates in summary["tile_rates"].items():
        logger.info(f"  {tile:>6}  {rates['reached'] * 100:6.1f}%  ({rates['ended'] * 100:.1f}%)")


def plot_training_curves(history: Dict[str, List[float]], save_path: str = "plots/ntuple_curves.png") -> None:
    """Plot score and max tile curves."""
    directory = os.path.dirname(save_path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    fig, axes = plt.subplots(1, 2, figsize=(12, 5))

    window = 100

    def moving_average(data, window):
        if len(data) < window:
            return data
        return np.convolve(data, np.ones(window) / window, mode='valid')

    axes[0].plot(moving_average(history['scores'], window))
    axes[0].set_title('Episode Score')
    axes[0].set_xlabel('Episode')
    axes[0].set_ylabel('Score')
    axes[0].grid(True)

    axes[1].plot(moving_average(history['max_tiles'], window))
    axes[1].set_title('Max Tile')
    axes[1].set_xlabel('Episode')
    axes[1].set_ylabel('Max Tile Value')
    axes[1].grid(True)

    plt.tight_layout()
    plt.savefig(save_path, dpi=150)
    plt.close(fig)
    logger.info(f"Training curves saved to {save_path}")


def train(player: Player, env: Game2048, total: int, block: int) -> Dict[str, object]:
    """
    Run `total` episodes, logging a summary every `block` episodes.

    Returns:
        Dict with per-episode history and the per-block summaries
    """
    history = {"scores": [], "max_tiles": [], "moves": []}
    blocks = []
    records: List[EpisodeRecord] = []

    for episode in tqdm(range(1, total + 1), desc="Training", disable=total < block):
        record = play_episode(player, env)
        records.append(record)
        history["scores"].append(record.score)
        history["max_tiles"].append(record.max_tile)
        history["moves"].append(record.moves)

        if episode % block == 0 or episode == total:
            summary = summarize_block(records)
            log_block(episode, summary)
            blocks.append({"episode": episode, **summary})
            records = []

    return {"history": history, "blocks": blocks}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Train a 2048 n-tuple agent with expectimax search')
    parser.add_argument('--total', type=int, default=1000,
                        help='Number of episodes to play (default: 1000)')
    parser.add_argument('--block', type=int, default=100,
                        help='Episodes per statistics block (default: 100)')
    parser.add_argument('--play', type=str, default='',
                        help='Player options, e.g. "alpha=0.00125 load=weights.bin save=weights.bin"')
    parser.add_argument('--env', type=str, default='',
                        help='Environment options, e.g. "seed=42"')
    parser.add_argument('--stats', type=str, default=None,
                        help='Write block statistics to this JSON file')
    parser.add_argument('--plot', type=str, default=None,
                        help='Save training curves to this PNG file')
    parser.add_argument('--log-dir', type=str, default='logs',
                        help='Directory for log files (default: logs)')
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main training function. Returns the process exit status."""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_dir)

    if args.total < 1 or args.block < 1:
        logger.error("--total and --block must be positive")
        return 1

    try:
        env_config = EnvironmentConfig.from_args(args.env)
        player = Player(AgentConfig.from_args(args.play))
    except (ConfigError, WeightFileError) as exc:
        # A player without a usable network must not run
        logger.error(f"Fatal configuration error: {exc}")
        return 1

    env = Game2048(seed=env_config.seed)

    logger.info(f"\nStarting {args.total} episodes (block {args.block})")
    results = train(player, env, args.total, args.block)

    try:
        player.close()
    except WeightFileError as exc:
        logger.error(f"Fatal: {exc}")
        return 1

    if args.stats:
        directory = os.path.dirname(args.stats)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(args.stats, 'w') as f:
            json.dump(results["blocks"], f, indent=2)
        logger.info(f"Statistics saved to {args.stats}")

    if args.plot:
        plot_training_curves(results["history"], args.plot)

    return 0


if __name__ == "__main__":
    sys.exit(main())
