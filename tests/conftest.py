"""
Shared fixtures for the n-tuple agent tests.

Networks use a small tile rank cap so the weight tables stay a few MB.
"""

import numpy as np
import pytest

from board import Board
from ntuple_network import NTupleNetwork


SMALL_MAX_INDEX = 6


@pytest.fixture
def small_network():
    return NTupleNetwork(max_index=SMALL_MAX_INDEX)


@pytest.fixture
def mid_game_board():
    return Board([
        [1, 2, 3, 0],
        [0, 1, 4, 2],
        [0, 0, 5, 1],
        [0, 0, 0, 3],
    ])


@pytest.fixture
def terminal_board():
    # Checkerboard of 2 and 4 tiles: full, no equal neighbours
    return Board([
        [1, 2, 1, 2],
        [2, 1, 2, 1],
        [1, 2, 1, 2],
        [2, 1, 2, 1],
    ])


@pytest.fixture
def random_boards():
    rng = np.random.RandomState(2048)
    return [Board(rng.randint(0, 10, size=16)) for _ in range(20)]
