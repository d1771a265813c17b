"""Exceptions raised by the discovery engine."""

from __future__ import annotations


class DiscoveryError(Exception):
    """Base class for engine errors."""


class InvalidInputError(DiscoveryError, ValueError):
    """Raised for malformed options (negative limits, unknown timeframes, …)."""


class CandidateRetrievalError(DiscoveryError):
    """Raised when a collaborator could not supply candidates or a location.

    Distinct from an empty result: callers should render a retryable error.
    """
