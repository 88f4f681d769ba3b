"""
Backward TD learning for the n-tuple network

After an episode ends, the afterstate/reward trace is replayed from the last
move to the first. The last afterstate is pulled toward 0 (nothing follows
the end of the game); every earlier afterstate is pulled toward
reward' + V(afterstate'). A trace value carries credit from later errors
back to earlier moves.
"""

from functools import reduce
from typing import Iterator, List, NamedTuple, Sequence

from board import Board
from ntuple_network import NTupleNetwork


TRACE_MODES = ("blend", "direct")


class HistoryEntry(NamedTuple):
    afterstate: Board
    reward: float


class EpisodeHistory:
    """Ordered (afterstate, reward) pairs of one episode."""

    def __init__(self):
        self.entries: List[HistoryEntry] = []

    def append(self, afterstate: Board, reward: float) -> None:
        self.entries.append(HistoryEntry(afterstate, reward))

    def clear(self) -> None:
        self.entries.clear()

    @property
    def last(self) -> HistoryEntry:
        return self.entries[-1]

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self.entries)


class TDLearner:
    """
    Applies TD corrections to a network from a finished episode.

    Credit mixing:
        direct: trace = alpha * delta
        blend:  trace = alpha * delta * (1 - lambda) + trace * lambda
    """

    def __init__(self, alpha: float, trace_lambda: float = 0.5, trace_mode: str = "blend"):
        """
        Args:
            alpha: Step size
            trace_lambda: Weight of the carried trace in blend mode
            trace_mode: 'blend' or 'direct'
        """
        if trace_mode not in TRACE_MODES:
            raise ValueError(f"Invalid trace mode: {trace_mode}")
        self.alpha = alpha
        self.trace_lambda = trace_lambda
        self.trace_mode = trace_mode

    def mix(self, delta: float, trace: float) -> float:
        if self.trace_mode == "direct":
            return self.alpha * delta
        return self.alpha * delta * (1.0 - self.trace_lambda) + trace * self.trace_lambda

    def terminal_step(self, network: NTupleNetwork, afterstate: Board) -> float:
        """Pull the final afterstate toward 0. Returns the initial trace."""
        delta = -network.value(afterstate)
        trace = self.alpha * delta
        network.update(afterstate, trace, delta)
        return trace

    def backward_step(self, network: NTupleNetwork, trace: float,
                      entry: HistoryEntry, following: HistoryEntry) -> float:
        """Correct one afterstate from its successor. Returns the new trace."""
        delta = (following.reward + network.value(following.afterstate)
                 - network.value(entry.afterstate))
        trace = self.mix(delta, trace)
        network.update(entry.afterstate, trace, delta)
        return trace

    def replay(self, network: NTupleNetwork, entries: Sequence[HistoryEntry]) -> float:
        """
        Fold over the reversed history, carrying the trace value.

        Args:
            network: Network updated in place
            entries: Episode history, first move first

        Returns:
            Trace value after the first move was corrected (0.0 for no moves)
        """
        if not entries:
            return 0.0

        trace = self.terminal_step(network, entries[-1].afterstate)
        transitions = zip(reversed(entries[:-1]), reversed(entries[1:]))
        return reduce(
            lambda carried, pair: self.backward_step(network, carried, *pair),
            transitions,
            trace,
        )

    def learn(self, network: NTupleNetwork, history: EpisodeHistory) -> float:
        """Replay a whole episode into the network, then clear the history."""
        trace = self.replay(network, history.entries)
        history.clear()
        return trace
