from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Sequence

from .aggregation import count_sentiments
from .models import (
    SENTIMENTS,
    FeedbackRecord,
    FeedbackReport,
    FeedbackSummary,
    SentimentCounts,
    SentimentTrendPoint,
    TrendPoint,
)


def month_period(moment: datetime) -> str:
    """``YYYY-MM`` of ``moment`` in UTC; naive timestamps are already UTC."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return f"{moment.year:04d}-{moment.month:02d}"


@dataclass
class _Bucket:
    count: int = 0
    total_rating: float = 0.0
    avg_rating: float = 0.0

    def add(self, rating: float) -> None:
        self.count += 1
        self.total_rating += rating
        self.avg_rating = self.total_rating / self.count


def build_trends(feedback: Iterable[FeedbackRecord]) -> List[TrendPoint]:
    buckets: Dict[str, _Bucket] = defaultdict(_Bucket)
    for item in feedback:
        buckets[month_period(item.created_at)].add(item.rating)

    # YYYY-MM sorts lexically in calendar order
    return [
        TrendPoint(period=period, count=bucket.count, avg_rating=bucket.avg_rating)
        for period, bucket in sorted(buckets.items())
    ]


def build_sentiment_trends(feedback: Iterable[FeedbackRecord]) -> List[SentimentTrendPoint]:
    monthly: Dict[str, Dict[str, int]] = defaultdict(lambda: {sentiment: 0 for sentiment in SENTIMENTS})
    for item in feedback:
        monthly[month_period(item.created_at)][item.sentiment] += 1

    return [
        SentimentTrendPoint(period=period, counts=SentimentCounts(**counts))
        for period, counts in sorted(monthly.items())
    ]


def build_feedback_report(feedback: Sequence[FeedbackRecord]) -> FeedbackReport:
    total = len(feedback)
    summary = FeedbackSummary(
        total_feedback=total,
        avg_rating=sum(item.rating for item in feedback) / total if total else 0.0,
        sentiment_breakdown=count_sentiments(feedback),
    )
    return FeedbackReport(
        summary=summary,
        trends=build_trends(feedback),
        sentiment_trends=build_sentiment_trends(feedback),
    )
