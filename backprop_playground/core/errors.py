"""Exception and warning types raised by the network engine."""

from __future__ import annotations


class InvalidConfigurationError(ValueError):
    """Raised when a network is constructed with unsupported settings."""


class DimensionMismatchError(ValueError):
    """Raised by strict networks when a tensor has the wrong shape."""


class DimensionMismatchWarning(RuntimeWarning):
    """Emitted when a mismatched tensor is zero-filled or truncated."""


__all__ = [
    "DimensionMismatchError",
    "DimensionMismatchWarning",
    "InvalidConfigurationError",
]
