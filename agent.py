"""
Agents for 2048
Both sides of the game share one contract: given a board, produce the next
action. The Player slides tiles using expectimax over its n-tuple network
and learns from each finished episode; the RandomEnvironment drops new
tiles on empty cells.
"""

import logging
from typing import NamedTuple, Optional, Protocol

import numpy as np

from agent_config import AgentConfig
from board import Board, DIRECTION_NAMES, INVALID_MOVE, NUM_CELLS
from expectimax import REWARD_TERMS, ExpectimaxSearch
from ntuple_network import NTupleNetwork
from td_learning import EpisodeHistory, TDLearner


logger = logging.getLogger(__name__)

SLIDE, PLACE, NOOP = "slide", "place", "noop"


class Action(NamedTuple):
    """A slide by the player, a tile placement by the environment, or nothing."""

    kind: str
    direction: int = -1
    position: int = -1
    rank: int = 0

    @classmethod
    def slide(cls, direction: int) -> "Action":
        return cls(SLIDE, direction=direction)

    @classmethod
    def place(cls, position: int, rank: int) -> "Action":
        return cls(PLACE, position=position, rank=rank)

    @classmethod
    def noop(cls) -> "Action":
        return cls(NOOP)

    @property
    def is_noop(self) -> bool:
        return self.kind == NOOP

    def apply(self, board: Board) -> int:
        """Apply to a board. Returns the reward, or INVALID_MOVE."""
        if self.kind == SLIDE:
            return board.slide(self.direction)
        if self.kind == PLACE:
            return board.place(self.position, self.rank)
        return INVALID_MOVE

    def __str__(self) -> str:
        if self.kind == SLIDE:
            return f"#{DIRECTION_NAMES[self.direction]}"
        if self.kind == PLACE:
            return f"{self.position}={2 ** self.rank}"
        return "??"


class Agent(Protocol):
    """Anything that can take part in an episode."""

    def open_episode(self) -> None:
        ...

    def close_episode(self) -> None:
        ...

    def take_action(self, board: Board) -> Action:
        ...


class RandomEnvironment:
    """
    Random tile placement.

    Adds a new tile to a random empty cell:
    - 2-tile: 90%
    - 4-tile: 10%
    """

    def __init__(self, seed: Optional[int] = None):
        self._rng = np.random.RandomState(seed)
        self._space = np.arange(NUM_CELLS)

    def seed(self, seed: Optional[int]) -> None:
        self._rng.seed(seed)

    def open_episode(self) -> None:
        pass

    def close_episode(self) -> None:
        pass

    def take_action(self, board: Board) -> Action:
        self._rng.shuffle(self._space)
        for position in self._space:
            if board[int(position)] != 0:
                continue
            rank = 1 if self._rng.randint(0, 10) else 2
            return Action.place(int(position), rank)
        return Action.noop()


class Player:
    """
    Learning player: n-tuple network + expectimax search + backward TD.

    Every move appends (afterstate, reward term) to the episode history;
    close_episode() replays it into the network and clears it.
    """

    def __init__(self, config: Optional[AgentConfig] = None):
        """
        Args:
            config: Agent options (defaults if None)

        Raises:
            WeightFileError: config.load is set and cannot be loaded
        """
        self.config = config if config is not None else AgentConfig()

        self.network = NTupleNetwork(
            max_index=self.config.max_index,
            tc_mode=self.config.tc_mode,
            init=self.config.init,
        )
        if self.config.load:
            self.network.load(self.config.load)

        self.search = ExpectimaxSearch(
            self.network,
            depth=self.config.depth,
            reward_term=REWARD_TERMS[self.config.shaping],
        )
        self.learner = TDLearner(
            alpha=self.config.alpha,
            trace_lambda=self.config.trace_lambda,
            trace_mode=self.config.trace,
        )
        self.history = EpisodeHistory()

        logger.info(f"Player '{self.name}': {self.config.to_args()}")

    @property
    def name(self) -> str:
        return self.config.name

    def open_episode(self) -> None:
        self.history.clear()

    def take_action(self, board: Board) -> Action:
        result = self.search.choose(board)
        if result is None:
            return Action.noop()
        self.history.append(result.afterstate, result.reward)
        return Action.slide(result.direction)

    def close_episode(self) -> None:
        if self.config.alpha > 0:
            self.learner.learn(self.network, self.history)
        self.history.clear()

    def close(self) -> None:
        """Save the weights if a save path was configured."""
        if self.config.save:
            self.network.save(self.config.save)
