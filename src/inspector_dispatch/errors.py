"""Exception types raised by the dispatch core."""

from __future__ import annotations


class DispatchError(Exception):
    """Base class for errors raised by the dispatch core."""


class ConfigurationError(DispatchError, ValueError):
    """A caller supplied an option the engine cannot act on."""


class UnknownAlgorithmError(ConfigurationError):
    def __init__(self, name: str, known: tuple[str, ...]) -> None:
        self.name = name
        self.known = known
        super().__init__(f"Unknown optimization algorithm: '{name}'. Expected one of: {', '.join(known)}.")


class UnknownStrategyError(ConfigurationError):
    def __init__(self, name: str, known: tuple[str, ...]) -> None:
        self.name = name
        self.known = known
        super().__init__(f"Unknown optimization strategy: '{name}'. Expected one of: {', '.join(known)}.")
