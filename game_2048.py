"""
2048 Game as a Gymnasium Environment
The board and the slide rule live in board.py; new tiles are dropped by an
environment agent (RandomEnvironment by default), so the same tile policy
is used for real play and assumed by the player's search.
"""

from typing import Any, Dict, Optional, Tuple

import gymnasium as gym
import numpy as np
from gymnasium import spaces

from agent import Agent, RandomEnvironment
from board import BOARD_SIZE, DIRECTION_NAMES, INVALID_MOVE, MAX_RANK, Board


class Game2048(gym.Env):
    """
    2048 Game Environment compatible with Gymnasium API.

    - Actions: 0=up, 1=down, 2=left, 3=right
    - Observation: 4x4 grid of log2 tile ranks
    - Reward: Sum of merged tiles in each step
    - Episode termination: When no more moves are possible
    """

    metadata = {"render_modes": ["human"], "render_fps": 4}

    def __init__(self, render_mode: Optional[str] = None, seed: Optional[int] = None,
                 environment: Optional[Agent] = None):
        """
        Initialize the 2048 game environment.

        Args:
            render_mode: Optional render mode ('human' or None)
            seed: Random seed of the default tile placement
            environment: Tile placing agent (RandomEnvironment(seed) if None)
        """
        super().__init__()

        self.render_mode = render_mode
        self.environment = environment if environment is not None else RandomEnvironment(seed)

        self.board = Board()
        self.score: int = 0
        self.moves_made: int = 0

        self.action_space = spaces.Discrete(len(DIRECTION_NAMES))
        self.observation_space = spaces.Box(
            low=0,
            high=MAX_RANK,
            shape=(BOARD_SIZE, BOARD_SIZE),
            dtype=np.int32
        )

    def _info(self, grid_changed: bool = False) -> Dict[str, Any]:
        return {
            "score": self.score,
            "moves": self.moves_made,
            "grid_changed": grid_changed,
            "max_tile": self.board.max_tile(),
            "game_over": self.board.is_terminal(),
        }

    def reset(self, seed: Optional[int] = None, options: Optional[Dict] = None) -> Tuple[np.ndarray, Dict[str, Any]]:
        """
        Start a new game: empty board plus two tiles from the environment agent.

        Args:
            seed: Reseeds the tile placement if it is a RandomEnvironment
            options: Unused

        Returns:
            Tuple of (observation, info)
        """
        super().reset(seed=seed)
        if seed is not None and isinstance(self.environment, RandomEnvironment):
            self.environment.seed(seed)

        self.board = Board()
        self.score = 0
        self.moves_made = 0

        self.environment.open_episode()
        for _ in range(2):
            self.environment.take_action(self.board).apply(self.board)

        return self.board.grid.copy(), self._info()

    def step(self, action: int) -> Tuple[np.ndarray, float, bool, bool, Dict[str, Any]]:
        """
        Slide, then let the environment agent drop a tile if the board changed.

        Args:
            action: 0=up, 1=down, 2=left, 3=right

        Returns:
            observation, reward, terminated, truncated, info
        """
        if not isinstance(action, (int, np.integer)):
            raise ValueError(f"Invalid action type: {type(action)}")
        if action < 0 or action >= self.action_space.n:
            raise ValueError(f"Invalid action: {action}")

        reward = self.board.slide(int(action))
        grid_changed = reward != INVALID_MOVE
        if grid_changed:
            self.score += reward
            self.moves_made += 1
            self.environment.take_action(self.board).apply(self.board)
        else:
            reward = 0

        terminated = self.board.is_terminal()
        if terminated:
            self.environment.close_episode()

        return self.board.grid.copy(), float(reward), terminated, False, self._info(grid_changed)

    def render(self) -> Optional[str]:
        if self.render_mode == "human":
            output = f"Score: {self.score} | Moves: {self.moves_made}\n{self.board}"
            print(output)
            return output
        return None
