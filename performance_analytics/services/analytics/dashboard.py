"""
Analytics service layer.

Composes scope resolution, one data source fetch, per-team aggregation,
trend building and export into the operations the router exposes.

Architecture:
- Router -> AnalyticsService (this module) -> AnalyticsDataSource
- Every request is computed from scratch; nothing is cached or retried
- A request either returns a complete result or raises; no partial dashboards
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

from performance_analytics.core.config import settings
from performance_analytics.core.exceptions import AppException, DataSourceError, ValidationError

from . import export as exporter
from .access import ensure_can_export, ensure_can_view_summary, resolve_scope
from .aggregation import aggregate, build_team_metrics
from .models import (
    CallerContext,
    DashboardResult,
    DateRange,
    ExportPayload,
    FeedbackReport,
    ResolvedScope,
    ScopedRecords,
    ScopeKind,
    ScopeRequest,
    TeamMetrics,
    TrendPoint,
    round_metric,
    sorted_teams,
)
from .repository import AnalyticsDataSource
from .trends import build_feedback_report, build_trends

logger = logging.getLogger(__name__)

EXPORT_TYPES = ("team", "feedback")


def make_date_range(start: Optional[date] = None, end: Optional[date] = None) -> DateRange:
    if start and end and start > end:
        raise ValidationError(
            "start_date must not be after end_date",
            details={"start_date": start.isoformat(), "end_date": end.isoformat()},
        )
    return DateRange(start=start, end=end)


@dataclass(frozen=True)
class AnalyticsSummary:
    teams: Sequence[TeamMetrics]
    report: FeedbackReport
    date_range: DateRange
    days: int
    top_teams: int
    trend_months: int

    def as_dict(self) -> Dict[str, Any]:
        count = len(self.teams)
        avg_okr = sum(team.avg_okr_score for team in self.teams) / count if count else 0.0
        avg_rating = sum(team.avg_feedback_rating for team in self.teams) / count if count else 0.0
        trends = list(self.report.trends)[-self.trend_months:] if self.trend_months > 0 else []
        return {
            "summary": {
                "teams": {
                    "total": count,
                    "avgOkrScore": round_metric(avg_okr),
                    "avgFeedbackRating": round_metric(avg_rating),
                    "totalMembers": sum(team.member_count for team in self.teams),
                },
                "feedback": {
                    "total": self.report.summary.total_feedback,
                    "avgRating": round_metric(self.report.summary.avg_rating),
                    "sentiment": self.report.summary.sentiment_breakdown.as_dict(),
                },
                "period": {**self.date_range.as_dict(), "days": self.days},
            },
            "teamAnalytics": [team.as_dict() for team in list(self.teams)[: self.top_teams]],
            "feedbackTrends": [point.as_dict() for point in trends],
        }


class AnalyticsService:
    """Role-scoped team rollups, feedback trends and exports."""

    def __init__(self, data_source: AnalyticsDataSource):
        self.data_source = data_source

    def build_dashboard(
        self,
        caller: CallerContext,
        requested: Optional[ScopeRequest] = None,
        date_range: Optional[DateRange] = None,
    ) -> DashboardResult:
        scope = resolve_scope(caller, requested)
        records = self._fetch(scope, date_range)
        teams = self._team_metrics(records)
        personal = None
        if scope.kind == ScopeKind.INDIVIDUAL:
            personal = aggregate(records.member_objectives, records.member_feedback)
        trends: List[TrendPoint] = build_trends(records.all_feedback())
        logger.info(
            f"Dashboard for user {caller.id}: scope={scope.kind.value} teams={len(teams)} periods={len(trends)}"
        )
        return DashboardResult(teams=teams, trends=trends, scope=scope, personal=personal)

    def team_analytics(
        self,
        caller: CallerContext,
        requested: Optional[ScopeRequest] = None,
        date_range: Optional[DateRange] = None,
    ) -> List[TeamMetrics]:
        scope = resolve_scope(caller, requested)
        return self._team_metrics(self._fetch(scope, date_range))

    def feedback_analytics(
        self,
        caller: CallerContext,
        requested: Optional[ScopeRequest] = None,
        date_range: Optional[DateRange] = None,
    ) -> FeedbackReport:
        scope = resolve_scope(caller, requested)
        return build_feedback_report(self._fetch(scope, date_range).all_feedback())

    def summary(self, caller: CallerContext, now: Optional[datetime] = None) -> AnalyticsSummary:
        ensure_can_view_summary(caller)
        config = settings.analytics
        now = now or datetime.now(timezone.utc)
        date_range = make_date_range((now - timedelta(days=config.summary_window_days)).date(), now.date())

        scope = resolve_scope(caller)
        records = self._fetch(scope, date_range)
        return AnalyticsSummary(
            teams=self._team_metrics(records),
            report=build_feedback_report(records.all_feedback()),
            date_range=date_range,
            days=config.summary_window_days,
            top_teams=config.summary_top_teams,
            trend_months=config.summary_trend_months,
        )

    def export(
        self,
        caller: CallerContext,
        requested: Optional[ScopeRequest] = None,
        export_type: str = "team",
        output_format: Optional[str] = None,
        date_range: Optional[DateRange] = None,
        today: Optional[date] = None,
    ) -> ExportPayload:
        ensure_can_export(caller)
        output_format = exporter.check_format(output_format or settings.analytics.default_export_format)
        if export_type not in EXPORT_TYPES:
            raise ValidationError(
                f"Invalid export type {export_type!r}",
                details={"type": export_type, "allowed": list(EXPORT_TYPES)},
            )

        scope = resolve_scope(caller, requested)
        records = self._fetch(scope, date_range)
        if export_type == "team":
            content = exporter.export(self._team_metrics(records), output_format)
        else:
            content = exporter.export_feedback(build_feedback_report(records.all_feedback()), output_format)

        logger.info(f"User {caller.id} exported {export_type} analytics as {output_format}")
        if output_format == exporter.CSV_FORMAT:
            stamp = (today or datetime.now(timezone.utc).date()).isoformat()
            return ExportPayload(
                export_type=export_type,
                format=output_format,
                content=content,
                media_type="text/csv",
                filename=f"{export_type}-analytics-{stamp}.csv",
            )
        return ExportPayload(
            export_type=export_type,
            format=output_format,
            content=content,
            media_type="application/json",
        )

    def _fetch(self, scope: ResolvedScope, date_range: Optional[DateRange]) -> ScopedRecords:
        try:
            return self.data_source.fetch_scoped_records(scope, date_range)
        except AppException:
            raise
        except Exception as e:
            logger.error(f"Data source failed for scope {scope.kind.value}: {e}")
            raise DataSourceError(f"Analytics data source failed: {e}") from e

    @staticmethod
    def _team_metrics(records: ScopedRecords) -> List[TeamMetrics]:
        return sorted_teams(
            build_team_metrics(
                team,
                records.objectives_by_team.get(team.id, []),
                records.feedback_by_team.get(team.id, []),
            )
            for team in records.teams
        )
