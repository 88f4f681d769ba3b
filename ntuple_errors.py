"""Exception classes for the n-tuple 2048 agent."""


class NTupleError(Exception):
    """Base exception for all n-tuple agent errors."""


class ConfigError(NTupleError):
    """Raised when agent arguments are unknown or hold an invalid value."""


class WeightFileError(NTupleError):
    """Raised when a weight file cannot be read/written or does not match the network."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Weight file {path}: {reason}")
