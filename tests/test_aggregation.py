import pytest
from datetime import datetime

from performance_analytics.core.exceptions import DataSourceError
from performance_analytics.services.analytics import (
    FeedbackRecord,
    KeyResultRecord,
    ObjectiveRecord,
    TeamMeta,
    aggregate,
    build_team_metrics,
    objective_score,
)

def _objective(obj_id, *scores):
    return ObjectiveRecord(id=obj_id, owner_id=1, key_results=tuple(KeyResultRecord(score=s) for s in scores))

def _feedback(fb_id, rating=None, sentiment=None, when=datetime(2024, 1, 1)):
    return FeedbackRecord(id=fb_id, giver_id=2, receiver_id=1, created_at=when, rating=rating, sentiment=sentiment)

def test_worked_example_from_fixed_dataset():
    """[8,6] and [9,7] average to 7.5; ratings 9/7/8 average to 8."""
    objectives = [_objective(1, 8, 6), _objective(2, 9, 7)]
    feedback = [_feedback(1, 9, "positive"), _feedback(2, 7, "neutral"), _feedback(3, 8, "positive")]

    snapshot = aggregate(objectives, feedback)

    assert snapshot.avg_okr_score == 7.5
    assert snapshot.avg_feedback_rating == 8
    assert snapshot.okr_count == 2
    assert snapshot.feedback_count == 3
    assert snapshot.sentiment_counts.as_dict() == {"positive": 2, "neutral": 1, "negative": 0}

def test_okr_average_is_mean_of_means_not_weighted_by_key_results():
    """An objective with many key results still counts once."""
    objectives = [_objective(1, 10), _objective(2, 0, 0, 0, 0)]
    assert aggregate(objectives, []).avg_okr_score == 5.0

def test_objective_without_key_results_contributes_zero():
    assert objective_score(_objective(1)) == 0
    assert aggregate([_objective(1), _objective(2, 8)], []).avg_okr_score == 4.0

def test_missing_rating_counts_as_zero():
    feedback = [_feedback(1, None), _feedback(2, 6)]
    assert aggregate([], feedback).avg_feedback_rating == 3.0

def test_missing_sentiment_counts_as_neutral():
    feedback = [_feedback(1, 5, None), _feedback(2, 5, "negative")]
    counts = aggregate([], feedback).sentiment_counts
    assert counts.neutral == 1
    assert counts.negative == 1
    assert counts.total == 2

def test_empty_inputs_yield_zeroed_metrics():
    snapshot = aggregate([], [])
    assert snapshot.avg_okr_score == 0
    assert snapshot.avg_feedback_rating == 0
    assert snapshot.okr_count == 0
    assert snapshot.feedback_count == 0
    assert snapshot.sentiment_counts.as_dict() == {"positive": 0, "neutral": 0, "negative": 0}

def test_averages_are_not_rounded_during_aggregation():
    feedback = [_feedback(1, 7), _feedback(2, 7), _feedback(3, 8)]
    assert aggregate([], feedback).avg_feedback_rating == pytest.approx(22 / 3)

def test_sentiment_counts_always_sum_to_feedback_count():
    sentiments = ["positive", None, "negative", "neutral", None, "positive"]
    feedback = [_feedback(i, 5, s) for i, s in enumerate(sentiments)]
    snapshot = aggregate([], feedback)
    assert snapshot.sentiment_counts.total == snapshot.feedback_count == len(sentiments)

def test_unknown_sentiment_is_rejected_as_malformed_data():
    with pytest.raises(DataSourceError):
        _feedback(1, 5, "ecstatic")

def test_team_metrics_carry_identity_and_default_department():
    team = TeamMeta(id=3, name="Gamma", member_ids=(1, 2, 4))
    metrics = build_team_metrics(team, [_objective(1, 6)], [_feedback(1, 4)])

    assert metrics.team_id == 3
    assert metrics.team_name == "Gamma"
    assert metrics.department_name == "N/A"
    assert metrics.member_count == 3
    assert metrics.avg_okr_score == 6
    assert metrics.avg_feedback_rating == 4
