"""
N-Tuple Network value function for 2048

The value of a board is the sum of one table lookup per 6-cell pattern.
The 32 patterns are grouped into 4 orbits: the 8 rotations/reflections of a
base shape. Every orbit shares a single weight table, so a board and its
mirror images always get the same value.

Weight file layout (little-endian):
    uint32 K                          number of tables
    K times: uint64 N, N x float32    one table in feature index order
"""

import logging
import os
from typing import List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from board import Board, BOARD_SIZE
from ntuple_errors import ConfigError, WeightFileError


logger = logging.getLogger(__name__)

TUPLE_LENGTH = 6
ORBIT_SIZE = 8

# Tile rank cap B: ranks above B-1 share the last digit
DEFAULT_MAX_INDEX = 21

# Optimistic "heuristic" initialisation
HEURISTIC_RANK = 10
HEURISTIC_BONUS = 5000.0

# Seed of the temporal coherence accumulators, keeps |E|/A defined
TC_EPSILON = 1e-8

INIT_MODES = ("zero", "heuristic")


def _rotate(position: int) -> int:
    # 90 degrees clockwise: (r, c) -> (c, 3 - r)
    r, c = divmod(position, BOARD_SIZE)
    return c * BOARD_SIZE + (BOARD_SIZE - 1 - r)


def _reflect(position: int) -> int:
    # Mirror over the vertical axis: (r, c) -> (r, 3 - c)
    r, c = divmod(position, BOARD_SIZE)
    return r * BOARD_SIZE + (BOARD_SIZE - 1 - c)


def symmetric_variants(pattern: Sequence[int]) -> List[Tuple[int, ...]]:
    """
    The 8 symmetric versions of a pattern: 4 rotations x 2 reflections.

    Args:
        pattern: Linear cell indices of the base pattern

    Returns:
        List of 8 patterns, the base pattern first
    """
    variants = []
    current = tuple(pattern)
    for _ in range(4):
        variants.append(current)
        variants.append(tuple(_reflect(p) for p in current))
        current = tuple(_rotate(p) for p in current)
    return variants


class Orbit(NamedTuple):
    """A base shape and its symmetric variants, all sharing one weight table."""

    name: str
    patterns: Tuple[Tuple[int, ...], ...]

    @classmethod
    def from_base(cls, name: str, base: Sequence[int]) -> "Orbit":
        return cls(name, tuple(symmetric_variants(base)))


ORBITS: Tuple[Orbit, ...] = (
    Orbit.from_base("outer six", (3, 2, 1, 0, 4, 5)),
    Orbit.from_base("inner six", (7, 6, 5, 4, 8, 9)),
    Orbit.from_base("outer 2x3 rectangle", (0, 1, 5, 9, 8, 4)),
    Orbit.from_base("inner 2x3 rectangle", (1, 2, 6, 10, 9, 5)),
)

PATTERNS: Tuple[Tuple[int, ...], ...] = tuple(p for orbit in ORBITS for p in orbit.patterns)
PATTERN_ORBIT: Tuple[int, ...] = tuple(i for i, orbit in enumerate(ORBITS) for _ in orbit.patterns)


def encode(board: Board, pattern: Sequence[int], base: int = DEFAULT_MAX_INDEX) -> int:
    """
    Feature index of a board along one pattern.

    The ranks along the pattern are read as base-B digits, most significant
    first. Ranks above B-1 are clamped, so the index is always in [0, B^6).
    """
    index = 0
    for position in pattern:
        index = index * base + min(board[position], base - 1)
    return index


class NTupleNetwork:
    """
    N-tuple network with one shared weight table per symmetry orbit.

    Attributes:
        weights: (num_orbits, B^6) float32 array
        errors: Running signed sum of TD errors per feature (TC mode only)
        abs_errors: Running sum of absolute TD errors per feature (TC mode only)
    """

    def __init__(self, max_index: int = DEFAULT_MAX_INDEX, tc_mode: bool = False,
                 init: Optional[str] = None):
        """
        Initialize the network.

        Args:
            max_index: Tile rank cap B
            tc_mode: Keep temporal coherence accumulators for adaptive step sizes
            init: 'zero' (default) or 'heuristic' table initialisation
        """
        if init is None:
            init = "zero"
        if init not in INIT_MODES:
            raise ConfigError(f"Unknown init mode {init!r}, expected one of {INIT_MODES}")

        self.max_index = max_index
        self.table_size = max_index ** TUPLE_LENGTH
        self.tc_mode = tc_mode

        self.weights = np.zeros((len(ORBITS), self.table_size), dtype=np.float32)
        if init == "heuristic":
            self._seed_heuristic()

        self.errors: Optional[np.ndarray] = None
        self.abs_errors: Optional[np.ndarray] = None
        if tc_mode:
            self.reset_coherence()

        # Precomputed lookup arrays for the vectorized feature extraction
        self._positions = np.array(PATTERNS, dtype=np.intp)
        self._orbit_ids = np.array(PATTERN_ORBIT, dtype=np.intp)
        self._powers = max_index ** np.arange(TUPLE_LENGTH - 1, -1, -1, dtype=np.int64)

        logger.debug(f"N-tuple network: {len(PATTERNS)} patterns, {len(ORBITS)} tables "
                     f"of {self.table_size} entries, init={init}, tc_mode={tc_mode}")

    def _seed_heuristic(self) -> None:
        """Bonus on every feature holding a high rank in any of its 6 cells."""
        tables = self.weights.reshape((len(ORBITS),) + (self.max_index,) * TUPLE_LENGTH)
        for axis in range(1, TUPLE_LENGTH + 1):
            index = [slice(None)] * (TUPLE_LENGTH + 1)
            index[axis] = slice(HEURISTIC_RANK, None)
            tables[tuple(index)] = HEURISTIC_BONUS

    def reset_coherence(self) -> None:
        self.errors = np.full_like(self.weights, TC_EPSILON)
        self.abs_errors = np.full_like(self.weights, TC_EPSILON)

    def features(self, board: Board) -> np.ndarray:
        """Feature index of every pattern, in PATTERNS order."""
        ranks = np.minimum(board.cells[self._positions], self.max_index - 1)
        return ranks.astype(np.int64) @ self._powers

    def value(self, board: Board) -> float:
        """Estimated future score of a board (sum over all patterns)."""
        return float(self.weights[self._orbit_ids, self.features(board)].sum())

    def update(self, board: Board, step: float, error: float) -> None:
        """
        Apply one TD correction to every pattern's feature.

        Each application carries step / ORBIT_SIZE, so one orbit moves by
        `step` in total. Applications are sequential: a feature hit twice
        sees its own first update.

        Args:
            board: Afterstate whose features are corrected
            step: Step-scaled correction (the trace value)
            error: Raw TD error, accumulated in TC mode
        """
        share = step / ORBIT_SIZE
        features = self.features(board).tolist()
        for orbit, feature in zip(PATTERN_ORBIT, features):
            if self.tc_mode:
                rate = abs(self.errors[orbit, feature]) / self.abs_errors[orbit, feature]
                self.weights[orbit, feature] += share * rate
                self.errors[orbit, feature] += error
                self.abs_errors[orbit, feature] += abs(error)
            else:
                self.weights[orbit, feature] += share

    def save(self, path: str) -> None:
        """Write all tables to a binary weight file."""
        directory = os.path.dirname(path)
        try:
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(path, "wb") as f:
                f.write(np.array([len(self.weights)], dtype="<u4").tobytes())
                for table in self.weights:
                    f.write(np.array([table.size], dtype="<u8").tobytes())
                    f.write(table.astype("<f4").tobytes())
        except OSError as exc:
            raise WeightFileError(path, f"cannot write ({exc.strerror or exc})") from exc
        logger.info(f"Weights saved to {path}")

    def load(self, path: str) -> None:
        """
        Read all tables from a binary weight file.

        Raises:
            WeightFileError: missing/unreadable file, or table count/size
                that does not match this network's configuration
        """
        try:
            with open(path, "rb") as f:
                header = f.read(4)
                if len(header) != 4:
                    raise WeightFileError(path, "truncated header")
                count = int(np.frombuffer(header, dtype="<u4")[0])
                if count != len(self.weights):
                    raise WeightFileError(path, f"holds {count} tables, expected {len(self.weights)}")

                # Nothing is copied into the network until the whole file checks out
                loaded = np.empty_like(self.weights)
                for i in range(count):
                    raw_size = f.read(8)
                    if len(raw_size) != 8:
                        raise WeightFileError(path, f"truncated table {i}")
                    size = int(np.frombuffer(raw_size, dtype="<u8")[0])
                    if size != self.table_size:
                        raise WeightFileError(
                            path, f"table {i} has {size} entries, expected {self.table_size} "
                                  f"(max_index={self.max_index})")
                    data = f.read(4 * size)
                    if len(data) != 4 * size:
                        raise WeightFileError(path, f"truncated table {i}")
                    loaded[i] = np.frombuffer(data, dtype="<f4")
        except OSError as exc:
            raise WeightFileError(path, f"cannot read ({exc.strerror or exc})") from exc

        self.weights[:] = loaded
        if self.tc_mode:
            self.reset_coherence()
        logger.info(f"Weights loaded from {path}")
