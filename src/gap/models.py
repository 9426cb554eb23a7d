"""
Gap Analysis Data Models

Dataclasses shared by every stage of the backlink gap pipeline:

    ReferringDomain  - one row of a backlink profile (provider output)
    Competitor       - a competitor site plus its topical-overlap metrics
    GapDomain        - a domain linking to 2+ competitors but not the target
    AnalysisResult   - the full analysis payload rendered by the dashboard

Wire serialization (to_dict/from_dict) uses the dashboard's camelCase keys.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


def clamp_rating(value: Any) -> float:
    """Coerce a provider domain rating into [0, 100]."""
    try:
        rating = float(value or 0)
    except (TypeError, ValueError):
        return 0.0
    return max(0.0, min(rating, 100.0))


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


# ============================================================================
# ENUMS
# ============================================================================

class ThreadStarvation(str, Enum):
    """Severity of missed high-authority link opportunities."""
    MILD = "MILD"
    MODERATE = "MODERATE"
    SEVERE = "SEVERE"


class FailureReason(Enum):
    """Why an analysis could not produce a result."""
    NO_COMPETITORS = "no_competitors"
    TARGET_UNREACHABLE = "target_unreachable"
    INVALID_DOMAIN = "invalid_domain"

    @property
    def description(self) -> str:
        return {
            FailureReason.NO_COMPETITORS: "no competitors resolved",
            FailureReason.TARGET_UNREACHABLE: "provider unreachable for target",
            FailureReason.INVALID_DOMAIN: "invalid domain identifier",
        }[self]


class ProgressStage(Enum):
    """Pipeline stages reported through progress events."""
    RESOLVING = "resolving"
    FETCHING = "fetching"
    INTERSECTING = "intersecting"
    SCORING = "scoring"
    COMPLETE = "complete"
    FAILED = "failed"


# ============================================================================
# PROVIDER RECORDS
# ============================================================================

@dataclass(frozen=True)
class ReferringDomain:
    """A domain linking to a site, with its authority metadata."""
    domain: str
    domain_rating: float = 0.0
    backlinks: int = 0
    ref_pages: int = 0
    first_seen: Optional[str] = None
    last_visited: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "domainRating": self.domain_rating,
            "backlinks": self.backlinks,
            "refPages": self.ref_pages,
            "firstSeen": self.first_seen,
            "lastVisited": self.last_visited,
        }


@dataclass
class Competitor:
    """
    A competitor of the target site.

    common_keywords is the number of keywords shared with the target and
    drives topical relevance. None means unknown (manual competitors).
    """
    domain: str
    common_keywords: Optional[int] = None
    domain_rating: float = 0.0
    organic_keywords: int = 0
    organic_traffic: int = 0
    intersections: int = 0
    common_traffic: int = 0
    manual: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "commonKeywords": self.common_keywords,
            "domainRating": self.domain_rating,
            "organicKeywords": self.organic_keywords,
            "organicTraffic": self.organic_traffic,
            "manual": self.manual,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Competitor":
        return cls(
            domain=data["domain"],
            common_keywords=data.get("commonKeywords"),
            domain_rating=clamp_rating(data.get("domainRating")),
            organic_keywords=_as_int(data.get("organicKeywords")),
            organic_traffic=_as_int(data.get("organicTraffic")),
            manual=bool(data.get("manual", False)),
        )


# ============================================================================
# DERIVED RECORDS
# ============================================================================

@dataclass
class GapDomain:
    """A domain that links to several competitors but not to the target."""
    domain: str
    domain_rating: float
    backlinks: int
    ref_pages: int
    first_seen: Optional[str]
    last_visited: Optional[str]
    competitors_linked: List[str] = field(default_factory=list)
    thread_resonance: int = 0

    @property
    def competitors_linked_count(self) -> int:
        return len(self.competitors_linked)

    @classmethod
    def from_referring_domain(cls, record: ReferringDomain, competitors_linked: List[str]) -> "GapDomain":
        return cls(
            domain=record.domain,
            domain_rating=record.domain_rating,
            backlinks=record.backlinks,
            ref_pages=record.ref_pages,
            first_seen=record.first_seen,
            last_visited=record.last_visited,
            competitors_linked=list(competitors_linked),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "domainRating": self.domain_rating,
            "backlinks": self.backlinks,
            "refPages": self.ref_pages,
            "firstSeen": self.first_seen,
            "lastVisited": self.last_visited,
            "competitorsLinkedCount": self.competitors_linked_count,
            "competitorsLinked": list(self.competitors_linked),
            "threadResonance": self.thread_resonance,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GapDomain":
        return cls(
            domain=data["domain"],
            domain_rating=clamp_rating(data.get("domainRating")),
            backlinks=_as_int(data.get("backlinks")),
            ref_pages=_as_int(data.get("refPages")),
            first_seen=data.get("firstSeen"),
            last_visited=data.get("lastVisited"),
            competitors_linked=list(data.get("competitorsLinked", [])),
            thread_resonance=_as_int(data.get("threadResonance")),
        )


@dataclass
class Coverage:
    """How many competitor profiles actually fed the analysis."""
    requested: int
    analyzed: int
    failed: List[str] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return self.analyzed == self.requested

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requested": self.requested,
            "analyzed": self.analyzed,
            "failed": list(self.failed),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Coverage":
        return cls(
            requested=_as_int(data.get("requested")),
            analyzed=_as_int(data.get("analyzed")),
            failed=list(data.get("failed", [])),
        )


@dataclass
class AnalysisResult:
    """Complete output of one gap analysis run."""
    user_domain: str
    competitors: List[Competitor]
    gap_domains: List[GapDomain]
    high_authority_gaps: int
    medium_authority_gaps: int
    thread_starvation: ThreadStarvation
    coverage: Coverage
    target_referring_domains: int = 0
    analyzed_at: datetime = field(default_factory=datetime.utcnow)
    elapsed_seconds: float = 0.0
    from_cache: bool = False

    # Number of gap domains summarized in thread_resonance_scores
    TOP_SCORES_LIMIT = 50

    @property
    def total_gaps(self) -> int:
        return len(self.gap_domains)

    @property
    def thread_resonance_scores(self) -> List[Dict[str, Any]]:
        return [
            {
                "domain": gap.domain,
                "resonance": gap.thread_resonance,
                "domainRating": gap.domain_rating,
                "competitorsLinked": gap.competitors_linked_count,
            }
            for gap in self.gap_domains[:self.TOP_SCORES_LIMIT]
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userDomain": self.user_domain,
            "competitors": [c.to_dict() for c in self.competitors],
            "gapDomains": [g.to_dict() for g in self.gap_domains],
            "totalGaps": self.total_gaps,
            "highAuthorityGaps": self.high_authority_gaps,
            "mediumAuthorityGaps": self.medium_authority_gaps,
            "threadStarvation": self.thread_starvation.value,
            "threadResonanceScores": self.thread_resonance_scores,
            "coverage": self.coverage.to_dict(),
            "targetReferringDomains": self.target_referring_domains,
            "fromCache": self.from_cache,
            "analyzedAt": self.analyzed_at.isoformat(),
            "elapsedSeconds": self.elapsed_seconds,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisResult":
        return cls(
            user_domain=data["userDomain"],
            competitors=[Competitor.from_dict(c) for c in data.get("competitors", [])],
            gap_domains=[GapDomain.from_dict(g) for g in data.get("gapDomains", [])],
            high_authority_gaps=_as_int(data.get("highAuthorityGaps")),
            medium_authority_gaps=_as_int(data.get("mediumAuthorityGaps")),
            thread_starvation=ThreadStarvation(data.get("threadStarvation", "MILD")),
            coverage=Coverage.from_dict(data.get("coverage", {})),
            target_referring_domains=_as_int(data.get("targetReferringDomains")),
            analyzed_at=datetime.fromisoformat(data["analyzedAt"]),
            elapsed_seconds=float(data.get("elapsedSeconds", 0.0)),
            from_cache=bool(data.get("fromCache", False)),
        )


# ============================================================================
# PIPELINE OUTCOME & PROGRESS
# ============================================================================

@dataclass
class GapAnalysisOutcome:
    """
    Either a result or a structured failure.

    "No competitors" is reported here rather than raised, so callers can
    render "could not run" distinctly from "ran and found nothing".
    """
    success: bool
    result: Optional[AnalysisResult] = None
    failure: Optional[FailureReason] = None
    message: Optional[str] = None
    user_domain: Optional[str] = None
    elapsed_seconds: float = 0.0

    @classmethod
    def ok(cls, result: AnalysisResult) -> "GapAnalysisOutcome":
        return cls(
            success=True,
            result=result,
            user_domain=result.user_domain,
            elapsed_seconds=result.elapsed_seconds,
        )

    @classmethod
    def failed(
        cls,
        reason: FailureReason,
        message: Optional[str] = None,
        user_domain: Optional[str] = None,
        elapsed_seconds: float = 0.0,
    ) -> "GapAnalysisOutcome":
        return cls(
            success=False,
            failure=reason,
            message=message or reason.description,
            user_domain=user_domain,
            elapsed_seconds=elapsed_seconds,
        )

    def to_dict(self) -> Dict[str, Any]:
        if self.success and self.result is not None:
            return {"success": True, **self.result.to_dict()}
        return {
            "success": False,
            "error": self.failure.value if self.failure else None,
            "message": self.message,
            "userDomain": self.user_domain,
            "elapsedSeconds": self.elapsed_seconds,
        }


@dataclass
class ProgressEvent:
    """One progress update, delivered on a per-request queue."""
    stage: ProgressStage
    message: str
    completed: int = 0
    total: int = 0
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "progress",
            "stage": self.stage.value,
            "message": self.message,
            "completed": self.completed,
            "total": self.total,
            "timestamp": self.timestamp.isoformat(),
        }


def emit_progress(progress: Optional[asyncio.Queue], event: ProgressEvent) -> None:
    """Push an event onto the caller's progress queue, if one was given."""
    if progress is None:
        return
    try:
        progress.put_nowait(event)
    except asyncio.QueueFull:
        logger.debug(f"Progress queue full, dropping {event.stage.value} event")
