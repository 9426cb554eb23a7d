"""
Gap Analysis Errors

Only InvalidDomainError and TargetProfileError abort an analysis.
Everything else degrades: a failed competitor profile becomes an empty
profile, and cache failures fall back to a fresh computation.
"""

from typing import Optional


class GapAnalysisError(Exception):
    """Base class for gap analysis failures."""


class InvalidDomainError(GapAnalysisError, ValueError):
    """A site identifier could not be turned into a single hostname."""

    def __init__(self, message: str, identifier: Optional[str] = None):
        super().__init__(message)
        self.identifier = identifier


class UnsupportedIdentifier(InvalidDomainError):
    """Aggregate Search Console property sets (sc-set:) have no single domain."""


class NoCompetitorsError(GapAnalysisError):
    """No competitor profiles were available to intersect."""


class ProviderError(GapAnalysisError):
    """A backlink profile fetch failed or timed out."""

    def __init__(self, message: str, domain: Optional[str] = None):
        super().__init__(message)
        self.domain = domain


class TargetProfileError(ProviderError):
    """The target's own referring domains could not be fetched."""


class CacheError(GapAnalysisError):
    """Cache read or write failed."""
