"""Exception types shared across the backtest core."""
from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised when inputs are malformed before any simulation work starts."""


__all__ = ["ConfigurationError"]
