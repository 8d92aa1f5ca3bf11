"""
CSV / JSON serialization of analytics results.

The CSV column lists below are a compatibility contract with downstream
spreadsheet consumers: order and spelling must not change.
"""
from __future__ import annotations

import csv
import io
from typing import Any, Dict, List, Sequence, Union

from performance_analytics.core.exceptions import UnsupportedFormatError

from .models import FeedbackReport, TeamMetrics, round_metric

CSV_FORMAT = "csv"
JSON_FORMAT = "json"
SUPPORTED_FORMATS = (CSV_FORMAT, JSON_FORMAT)

TEAM_CSV_COLUMNS = (
    "Team Name",
    "Department",
    "Member Count",
    "Avg OKR Score",
    "Avg Feedback Rating",
    "Feedback Count",
    "OKR Count",
    "Positive Sentiment",
    "Neutral Sentiment",
    "Negative Sentiment",
)

FEEDBACK_CSV_COLUMNS = ("Month", "Count", "Avg Rating", "Positive", "Neutral", "Negative")

_LINE_TERMINATOR = "\n"


def check_format(requested_format: str) -> str:
    normalized = (requested_format or "").strip().lower()
    if normalized not in SUPPORTED_FORMATS:
        raise UnsupportedFormatError(requested_format)
    return normalized


def format_average(value: float) -> str:
    """Two decimals at most, no trailing ``.0``: 8, 7.5, 7.33."""
    rounded = round_metric(value)
    if rounded == int(rounded):
        return str(int(rounded))
    return repr(rounded)


def _write_csv(header: Sequence[str], rows: Sequence[Sequence[Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator=_LINE_TERMINATOR, quoting=csv.QUOTE_MINIMAL)
    writer.writerow(header)
    writer.writerows(rows)
    text = buffer.getvalue()
    # Rows are newline-joined, no trailing terminator
    return text[: -len(_LINE_TERMINATOR)] if text.endswith(_LINE_TERMINATOR) else text


def team_rows(metrics: Sequence[TeamMetrics]) -> List[List[str]]:
    return [
        [
            team.team_name,
            team.department_name,
            str(team.member_count),
            format_average(team.avg_okr_score),
            format_average(team.avg_feedback_rating),
            str(team.feedback_count),
            str(team.okr_count),
            str(team.sentiment_counts.positive),
            str(team.sentiment_counts.neutral),
            str(team.sentiment_counts.negative),
        ]
        for team in metrics
    ]


def export(metrics: Sequence[TeamMetrics], requested_format: str) -> Union[str, List[Dict[str, Any]]]:
    output_format = check_format(requested_format)
    if output_format == JSON_FORMAT:
        return [team.as_dict() for team in metrics]
    return _write_csv(TEAM_CSV_COLUMNS, team_rows(metrics))


def export_feedback(report: FeedbackReport, requested_format: str) -> Union[str, Dict[str, Any]]:
    output_format = check_format(requested_format)
    if output_format == JSON_FORMAT:
        return report.as_dict()

    sentiment_by_period = {point.period: point.counts for point in report.sentiment_trends}
    rows = []
    for point in report.trends:
        counts = sentiment_by_period.get(point.period)
        rows.append([
            point.period,
            str(point.count),
            format_average(point.avg_rating),
            str(counts.positive if counts else 0),
            str(counts.neutral if counts else 0),
            str(counts.negative if counts else 0),
        ])
    return _write_csv(FEEDBACK_CSV_COLUMNS, rows)
