"""Error types raised by the identifier codecs."""

from __future__ import annotations


class SortidError(Exception):
    """Base error type."""


class ConfigurationError(SortidError, ValueError):
    """A codec or settings object was constructed with unusable parameters."""


class InvalidInputError(SortidError, ValueError):
    """A value passed to an encode or decode call was rejected."""


class ConsistencyError(SortidError, RuntimeError):
    """A freshly generated identifier failed to decode to its own inputs."""
