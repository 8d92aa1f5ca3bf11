from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from performance_analytics.core.exceptions import DataSourceError


SENTIMENTS: Tuple[str, ...] = ("positive", "neutral", "negative")
# Applied when a raw record is read, never inside the aggregation math.
DEFAULT_SENTIMENT = "neutral"
DEFAULT_RATING = 0.0
UNASSIGNED_DEPARTMENT = "N/A"


def round_metric(value: float) -> float:
    """Round half-up to two decimals. Used only when serializing."""
    return math.floor(value * 100 + 0.5) / 100


class ScopeKind(str, enum.Enum):
    ORGANIZATION = "organization"
    DEPARTMENT = "department"
    TEAM = "team"
    INDIVIDUAL = "individual"


@dataclass(frozen=True)
class KeyResultRecord:
    score: float


@dataclass(frozen=True)
class ObjectiveRecord:
    id: int
    owner_id: int
    key_results: Sequence[KeyResultRecord] = ()
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class FeedbackRecord:
    """
    One peer feedback item as seen by the analytics core.

    ``rating`` and ``sentiment`` are optional upstream. Missing values are
    replaced by ``DEFAULT_RATING`` / ``DEFAULT_SENTIMENT`` here, so every
    downstream stage sees a complete record.
    """

    id: int
    giver_id: Optional[int]
    receiver_id: int
    created_at: datetime
    rating: Optional[float] = None
    sentiment: Optional[str] = None

    def __post_init__(self) -> None:
        if self.rating is None:
            object.__setattr__(self, "rating", DEFAULT_RATING)
        if self.sentiment is None:
            object.__setattr__(self, "sentiment", DEFAULT_SENTIMENT)
        elif self.sentiment not in SENTIMENTS:
            raise DataSourceError(
                f"Feedback {self.id} has unknown sentiment {self.sentiment!r}",
                details={"feedback_id": self.id},
            )


@dataclass(frozen=True)
class TeamMeta:
    id: int
    name: str
    department_id: Optional[int] = None
    department_name: Optional[str] = None
    member_ids: Tuple[int, ...] = ()

    @property
    def member_count(self) -> int:
        return len(self.member_ids)


@dataclass(frozen=True)
class DateRange:
    """Inclusive bounds on ``created_at``; either side may be open."""

    start: Optional[date] = None
    end: Optional[date] = None

    def as_dict(self) -> Dict[str, Optional[str]]:
        return {
            "startDate": self.start.isoformat() if self.start else None,
            "endDate": self.end.isoformat() if self.end else None,
        }


@dataclass(frozen=True)
class CallerContext:
    """The verified caller plus the membership facts the scoper needs."""

    id: int
    role: str
    team_id: Optional[int] = None
    department_id: Optional[int] = None
    managed_team_ids: Tuple[int, ...] = ()
    direct_report_ids: Tuple[int, ...] = ()
    managed_member_ids: Tuple[int, ...] = ()


@dataclass(frozen=True)
class ScopeRequest:
    kind: Optional[ScopeKind] = None
    target_id: Optional[int] = None


@dataclass(frozen=True)
class ResolvedScope:
    """
    Scope the caller is allowed to see.

    ``team_ids`` is ``None`` when every team under the organization or the
    department is meant; the data source expands it.
    """

    kind: ScopeKind
    department_id: Optional[int] = None
    team_ids: Optional[Tuple[int, ...]] = None
    user_id: Optional[int] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "departmentId": self.department_id,
            "teamIds": None if self.team_ids is None else list(self.team_ids),
            "userId": self.user_id,
        }


@dataclass(frozen=True)
class ScopedRecords:
    """In-memory result of one data source fetch."""

    teams: Sequence[TeamMeta] = ()
    objectives_by_team: Mapping[int, Sequence[ObjectiveRecord]] = field(default_factory=dict)
    feedback_by_team: Mapping[int, Sequence[FeedbackRecord]] = field(default_factory=dict)
    member_objectives: Sequence[ObjectiveRecord] = ()
    member_feedback: Sequence[FeedbackRecord] = ()

    def all_feedback(self) -> List[FeedbackRecord]:
        seen = set()
        items: List[FeedbackRecord] = []
        for records in list(self.feedback_by_team.values()) + [self.member_feedback]:
            for record in records:
                if record.id in seen:
                    continue
                seen.add(record.id)
                items.append(record)
        return items


@dataclass(frozen=True)
class SentimentCounts:
    positive: int = 0
    neutral: int = 0
    negative: int = 0

    @property
    def total(self) -> int:
        return self.positive + self.neutral + self.negative

    def as_dict(self) -> Dict[str, int]:
        return {"positive": self.positive, "neutral": self.neutral, "negative": self.negative}


@dataclass(frozen=True)
class MetricsSnapshot:
    avg_okr_score: float
    avg_feedback_rating: float
    feedback_count: int
    okr_count: int
    sentiment_counts: SentimentCounts

    def as_dict(self) -> Dict[str, Any]:
        return {
            "avgOkrScore": round_metric(self.avg_okr_score),
            "avgFeedbackRating": round_metric(self.avg_feedback_rating),
            "feedbackCount": self.feedback_count,
            "okrCount": self.okr_count,
            "sentiment": self.sentiment_counts.as_dict(),
        }


@dataclass(frozen=True)
class TeamMetrics:
    team_id: int
    team_name: str
    department_name: str
    member_count: int
    metrics: MetricsSnapshot

    @property
    def avg_okr_score(self) -> float:
        return self.metrics.avg_okr_score

    @property
    def avg_feedback_rating(self) -> float:
        return self.metrics.avg_feedback_rating

    @property
    def feedback_count(self) -> int:
        return self.metrics.feedback_count

    @property
    def okr_count(self) -> int:
        return self.metrics.okr_count

    @property
    def sentiment_counts(self) -> SentimentCounts:
        return self.metrics.sentiment_counts

    def as_dict(self) -> Dict[str, Any]:
        return {
            "teamId": self.team_id,
            "teamName": self.team_name,
            "departmentName": self.department_name,
            "memberCount": self.member_count,
            "metrics": self.metrics.as_dict(),
        }


@dataclass(frozen=True)
class TrendPoint:
    period: str
    count: int
    avg_rating: float

    def as_dict(self) -> Dict[str, Any]:
        return {"period": self.period, "count": self.count, "avgRating": round_metric(self.avg_rating)}


@dataclass(frozen=True)
class SentimentTrendPoint:
    period: str
    counts: SentimentCounts

    def as_dict(self) -> Dict[str, Any]:
        return {"period": self.period, **self.counts.as_dict()}


@dataclass(frozen=True)
class FeedbackSummary:
    total_feedback: int
    avg_rating: float
    sentiment_breakdown: SentimentCounts

    def as_dict(self) -> Dict[str, Any]:
        return {
            "totalFeedback": self.total_feedback,
            "avgRating": round_metric(self.avg_rating),
            "sentimentBreakdown": self.sentiment_breakdown.as_dict(),
        }


@dataclass(frozen=True)
class FeedbackReport:
    summary: FeedbackSummary
    trends: Sequence[TrendPoint]
    sentiment_trends: Sequence[SentimentTrendPoint]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary.as_dict(),
            "trends": [point.as_dict() for point in self.trends],
            "sentimentTrends": [point.as_dict() for point in self.sentiment_trends],
        }


@dataclass(frozen=True)
class DashboardResult:
    teams: Sequence[TeamMetrics]
    trends: Sequence[TrendPoint]
    scope: ResolvedScope
    personal: Optional[MetricsSnapshot] = None

    def as_dict(self) -> Dict[str, Any]:
        """JSON-ready structure; averages are rounded here and nowhere earlier."""
        payload: Dict[str, Any] = {
            "teams": [team.as_dict() for team in self.teams],
            "trends": [point.as_dict() for point in self.trends],
            "scope": self.scope.as_dict(),
        }
        if self.personal is not None:
            payload["personal"] = self.personal.as_dict()
        return payload


@dataclass(frozen=True)
class ExportPayload:
    export_type: str
    format: str
    content: Any
    media_type: str
    filename: Optional[str] = None


def sorted_teams(teams: Iterable[TeamMetrics]) -> List[TeamMetrics]:
    return sorted(teams, key=lambda team: (team.team_name, team.team_id))
