"""Exceptions raised by the stopping package.

Checks performed by a stopping criterion never raise: they only set status
flags. Exceptions are reserved for inconsistent configuration detected at
construction time.
"""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised when tolerances or resource limits are inconsistent."""


__all__ = ["ConfigurationError"]
