"""
Expectimax move selection over an n-tuple value function

Three roles alternate:
- decision node: the agent's real move, maximizing reward term + chance value
- chance node: the environment drops a 2-tile (p=0.9) or 4-tile (p=0.1) on
  a uniformly chosen empty cell
- best-response node: one simulated agent move, maximizing reward + chance value

A chance node with no depth budget left returns the network value.
"""

from typing import Callable, Dict, NamedTuple, Optional

import numpy as np

from board import Board, DIRECTIONS, INVALID_MOVE
from ntuple_network import NTupleNetwork


# New tile rank and its probability (rank 1 = 2-tile, rank 2 = 4-tile)
TILE_PROBABILITIES = ((1, 0.9), (2, 0.1))

# Shaped decision reward
EMPTY_CELL_BONUS = 16.0
BORDER_WEIGHTS = np.array([
    [2, 1, 1, 2],
    [1, 0, 0, 1],
    [1, 0, 0, 1],
    [2, 1, 1, 2],
], dtype=np.int64)

RewardTerm = Callable[[int, Board], float]


def plain_reward(reward: int, afterstate: Board) -> float:
    return float(reward)


def shaped_reward(reward: int, afterstate: Board) -> float:
    """Merge score plus bonuses for open cells and for ranks kept on the border."""
    empty_bonus = EMPTY_CELL_BONUS * len(afterstate.empty_cells())
    border_bonus = float(np.sum(BORDER_WEIGHTS * afterstate.grid))
    return float(reward) + empty_bonus + border_bonus


REWARD_TERMS: Dict[str, RewardTerm] = {
    "plain": plain_reward,
    "shaped": shaped_reward,
}


class SearchResult(NamedTuple):
    direction: int
    afterstate: Board
    reward: float  # decision reward term, recorded in the episode history
    score: float


class ExpectimaxSearch:
    """
    Fixed-depth expectimax driven by an NTupleNetwork.

    With depth=1 this is the 2-ply search: one real move, one chance layer,
    one simulated move, then the static evaluation.
    """

    def __init__(self, network: NTupleNetwork, depth: int = 1,
                 reward_term: RewardTerm = plain_reward):
        self.network = network
        self.depth = depth
        self.reward_term = reward_term

    def choose(self, board: Board) -> Optional[SearchResult]:
        """
        Pick the best move for the current board.

        Directions are tried in the fixed order up, down, left, right and the
        first one reaching the maximum score wins.

        Returns:
            The chosen move, or None if no direction changes the board
        """
        best = None
        for direction in DIRECTIONS:
            after = board.copy()
            reward = after.slide(direction)
            if reward == INVALID_MOVE:
                continue

            term = self.reward_term(reward, after)
            score = term + self.expected_value(after, self.depth)
            if best is None or score > best.score:
                best = SearchResult(direction, after, term, score)
        return best

    def expected_value(self, board: Board, depth: int) -> float:
        """Chance node: average over every empty cell and new tile rank."""
        if depth == 0:
            return self.network.value(board)

        empty = board.empty_cells()
        if len(empty) == 0:
            return 0.0

        expectation = 0.0
        for position in empty:
            for rank, probability in TILE_PROBABILITIES:
                placed = board.copy()
                placed[position] = rank
                expectation += probability * self.move_simulation(placed, depth)
        return expectation / len(empty)

    def move_simulation(self, board: Board, depth: int) -> float:
        """Best-response node: best reward + chance value, 0 on a dead end."""
        best = None
        for direction in DIRECTIONS:
            after = board.copy()
            reward = after.slide(direction)
            if reward == INVALID_MOVE:
                continue

            value = reward + self.expected_value(after, depth - 1)
            if best is None or value > best:
                best = value
        return 0.0 if best is None else best
