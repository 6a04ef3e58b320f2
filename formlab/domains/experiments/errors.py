"""Exceptions raised by the experimentation engine."""


class ExperimentError(Exception):
    """Base class for engine errors."""


class ValidationError(ExperimentError, ValueError):
    """A test definition violates a creation-time invariant."""
