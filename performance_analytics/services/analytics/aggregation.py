"""
Per-team rollups of objectives and feedback.

The team OKR score is a mean of per-objective means: every objective counts
once, however many key results it has. Values stay unrounded here; rounding
belongs to serialization.
"""
from __future__ import annotations

from collections import Counter
from typing import Sequence

from .models import (
    SENTIMENTS,
    UNASSIGNED_DEPARTMENT,
    FeedbackRecord,
    MetricsSnapshot,
    ObjectiveRecord,
    SentimentCounts,
    TeamMeta,
    TeamMetrics,
)


def _mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def objective_score(objective: ObjectiveRecord) -> float:
    """Mean key-result score; an objective without key results scores 0."""
    return _mean([key_result.score for key_result in objective.key_results])


def count_sentiments(feedback: Sequence[FeedbackRecord]) -> SentimentCounts:
    counter = Counter({sentiment: 0 for sentiment in SENTIMENTS})
    counter.update(item.sentiment for item in feedback)
    return SentimentCounts(**{sentiment: counter[sentiment] for sentiment in SENTIMENTS})


def aggregate(objectives: Sequence[ObjectiveRecord], feedback: Sequence[FeedbackRecord]) -> MetricsSnapshot:
    return MetricsSnapshot(
        avg_okr_score=_mean([objective_score(objective) for objective in objectives]),
        avg_feedback_rating=_mean([item.rating for item in feedback]),
        feedback_count=len(feedback),
        okr_count=len(objectives),
        sentiment_counts=count_sentiments(feedback),
    )


def build_team_metrics(
    team: TeamMeta,
    objectives: Sequence[ObjectiveRecord],
    feedback: Sequence[FeedbackRecord],
) -> TeamMetrics:
    return TeamMetrics(
        team_id=team.id,
        team_name=team.name,
        department_name=team.department_name or UNASSIGNED_DEPARTMENT,
        member_count=team.member_count,
        metrics=aggregate(objectives, feedback),
    )
