"""
Exception hierarchy for the Bug Fights combat core.

Insufficient stamina is not represented here: a refused action is ordinary
control flow and is reported through return values.
"""


class BugFightsError(Exception):
    """Base class for all combat core errors."""


class GenomeValidationError(BugFightsError, ValueError):
    """Raised when a genome violates stat bounds, the stat cap, or trait sets."""


class ConfigError(BugFightsError, ValueError):
    """Raised when a combat or arena configuration value is invalid."""


class SimulationError(BugFightsError, RuntimeError):
    """Raised when the engine detects a broken tick invariant."""


class MatchStateError(BugFightsError, RuntimeError):
    """Raised when a match operation is invalid for the current phase."""
