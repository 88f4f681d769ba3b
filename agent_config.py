"""
Agent configuration
Agents are configured from a whitespace separated "key=value" string, e.g.

    AgentConfig.from_args("alpha=0.1 load=weights.bin save=weights.bin")

Every recognised key is a typed field below; unknown keys are rejected.
"""

from dataclasses import dataclass, fields
from typing import Callable, Dict, Optional, Tuple

from expectimax import REWARD_TERMS
from ntuple_errors import ConfigError
from ntuple_network import DEFAULT_MAX_INDEX, INIT_MODES
from td_learning import TRACE_MODES


def _parse_bool(raw: str) -> bool:
    lowered = raw.lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"not a boolean: {raw!r}")


def _optional(convert: Callable[[str], object]) -> Callable[[str], object]:
    return lambda raw: None if raw.lower() in ("", "none") else convert(raw)


def _parse_pairs(args: str, arguments: Dict[str, Tuple[str, Callable[[str], object]]]) -> Dict[str, object]:
    """
    Split "key=value key=value" into field values.

    Raises:
        ConfigError: malformed pair, key missing from `arguments` or unparsable value
    """
    values = {}
    for pair in args.split():
        key, sep, raw = pair.partition("=")
        if not sep:
            raise ConfigError(f"Expected key=value, got {pair!r}")
        if key not in arguments:
            raise ConfigError(f"Unknown option {key!r}, expected one of {sorted(arguments)}")
        field_name, convert = arguments[key]
        try:
            values[field_name] = convert(raw)
        except ValueError as exc:
            raise ConfigError(f"Invalid value for {key}: {exc}") from exc
    return values


@dataclass
class AgentConfig:
    """
    Options of a playing/learning agent.

    Attributes:
        name: Label used in logs
        seed: Random seed of the agent, recorded with its options
        alpha: TD step size, 0 disables learning
        init: Table initialisation, 'zero' or 'heuristic'
        load: Weight file read when the agent is created
        save: Weight file written when the agent is closed
        trace_lambda: Blend factor of the carried trace (key 'lambda')
        depth: Number of chance layers searched below the real move
        tc_mode: Temporal coherence adaptive step sizes
        shaping: Decision reward, 'plain' merge score or 'shaped'
        trace: Credit mixing, 'blend' or 'direct'
        max_index: Tile rank cap B of the feature encoding
    """

    name: str = "ntuple"
    seed: Optional[int] = None
    alpha: float = 0.0
    init: Optional[str] = None
    load: Optional[str] = None
    save: Optional[str] = None
    trace_lambda: float = 0.5
    depth: int = 1
    tc_mode: bool = False
    shaping: str = "plain"
    trace: str = "blend"
    max_index: int = DEFAULT_MAX_INDEX

    def __post_init__(self):
        if self.alpha < 0:
            raise ConfigError(f"alpha must be >= 0, got {self.alpha}")
        if not 0.0 <= self.trace_lambda <= 1.0:
            raise ConfigError(f"lambda must be in [0, 1], got {self.trace_lambda}")
        if self.depth < 0:
            raise ConfigError(f"depth must be >= 0, got {self.depth}")
        if self.max_index < 2:
            raise ConfigError(f"max_index must be >= 2, got {self.max_index}")
        if self.init is not None and self.init not in INIT_MODES:
            raise ConfigError(f"init must be one of {INIT_MODES}, got {self.init!r}")
        if self.shaping not in REWARD_TERMS:
            raise ConfigError(f"shaping must be one of {tuple(REWARD_TERMS)}, got {self.shaping!r}")
        if self.trace not in TRACE_MODES:
            raise ConfigError(f"trace must be one of {TRACE_MODES}, got {self.trace!r}")

    @classmethod
    def from_args(cls, args: str = "") -> "AgentConfig":
        """
        Parse a "key=value key=value" string.

        Raises:
            ConfigError: malformed pair, unknown key or unparsable value
        """
        return cls(**_parse_pairs(args, ARGUMENTS))

    def to_args(self) -> str:
        """Inverse of from_args, for logs and resumed runs."""
        keys = {field_name: key for key, (field_name, _) in ARGUMENTS.items()}
        pairs = []
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if isinstance(value, bool):
                value = int(value)
            pairs.append(f"{keys[f.name]}={value}")
        return " ".join(pairs)


# Argument key -> (field name, converter)
ARGUMENTS: Dict[str, Tuple[str, Callable[[str], object]]] = {
    "name": ("name", str),
    "seed": ("seed", _optional(int)),
    "alpha": ("alpha", float),
    "init": ("init", _optional(str)),
    "load": ("load", _optional(str)),
    "save": ("save", _optional(str)),
    "lambda": ("trace_lambda", float),
    "depth": ("depth", int),
    "tc_mode": ("tc_mode", _parse_bool),
    "shaping": ("shaping", str),
    "trace": ("trace", str),
    "max_index": ("max_index", int),
}


@dataclass
class EnvironmentConfig:
    """
    Options of the tile placing environment (the --env string).

    Attributes:
        name: Label used in logs
        seed: Random seed of the tile placement
    """

    name: str = "random"
    seed: Optional[int] = None

    @classmethod
    def from_args(cls, args: str = "") -> "EnvironmentConfig":
        return cls(**_parse_pairs(args, ENVIRONMENT_ARGUMENTS))


ENVIRONMENT_ARGUMENTS: Dict[str, Tuple[str, Callable[[str], object]]] = {
    "name": ("name", str),
    "seed": ("seed", _optional(int)),
}
