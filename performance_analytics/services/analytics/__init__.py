"""
Analytics aggregation and reporting.

Turns per-person objectives and feedback into role-scoped team rollups,
monthly feedback trends and CSV/JSON exports.
"""

from .access import CAPABILITIES, Capability, ensure_can_export, parse_scope, resolve_scope  # noqa: F401
from .aggregation import aggregate, build_team_metrics, objective_score  # noqa: F401
from .dashboard import AnalyticsService, AnalyticsSummary, make_date_range  # noqa: F401
from .export import FEEDBACK_CSV_COLUMNS, TEAM_CSV_COLUMNS, export, export_feedback  # noqa: F401
from .models import (  # noqa: F401
    CallerContext,
    DashboardResult,
    DateRange,
    ExportPayload,
    FeedbackRecord,
    FeedbackReport,
    KeyResultRecord,
    MetricsSnapshot,
    ObjectiveRecord,
    ResolvedScope,
    ScopedRecords,
    ScopeKind,
    ScopeRequest,
    SentimentCounts,
    TeamMeta,
    TeamMetrics,
    TrendPoint,
)
from .repository import AnalyticsDataSource, SQLAnalyticsRepository  # noqa: F401
from .trends import build_feedback_report, build_sentiment_trends, build_trends  # noqa: F401
