"""
Loom's Gap Analysis

The package root exposes the data model, errors and domain normalization.
Pipeline stages live in their own modules and are imported from there,
since the scoring package depends on the models defined here.

Example Usage:
    from src.gap.orchestrator import GapAnalysisOrchestrator, GapAnalysisConfig

    orchestrator = GapAnalysisOrchestrator(client, config=GapAnalysisConfig())
    outcome = await orchestrator.analyze("https://www.example.com/")
    print(outcome.to_dict())
"""

from .models import (
    AnalysisResult,
    Competitor,
    Coverage,
    FailureReason,
    GapAnalysisOutcome,
    GapDomain,
    ProgressEvent,
    ProgressStage,
    ReferringDomain,
    ThreadStarvation,
)
from .errors import (
    CacheError,
    GapAnalysisError,
    InvalidDomainError,
    NoCompetitorsError,
    ProviderError,
    TargetProfileError,
    UnsupportedIdentifier,
)
from .domains import normalize_domain, normalize_domains

__all__ = [
    "AnalysisResult",
    "Competitor",
    "Coverage",
    "FailureReason",
    "GapAnalysisOutcome",
    "GapDomain",
    "ProgressEvent",
    "ProgressStage",
    "ReferringDomain",
    "ThreadStarvation",
    "CacheError",
    "GapAnalysisError",
    "InvalidDomainError",
    "NoCompetitorsError",
    "ProviderError",
    "TargetProfileError",
    "UnsupportedIdentifier",
    "normalize_domain",
    "normalize_domains",
]
