import dataclasses
import pytest
from datetime import date, datetime, timezone

from performance_analytics.core.exceptions import (
    AuthorizationError,
    DataSourceError,
    UnsupportedFormatError,
    ValidationError,
)
from performance_analytics.services.analytics import (
    AnalyticsDataSource,
    AnalyticsService,
    CallerContext,
    FeedbackRecord,
    KeyResultRecord,
    ObjectiveRecord,
    ScopedRecords,
    ScopeKind,
    ScopeRequest,
    TeamMeta,
    make_date_range,
)

ADMIN = CallerContext(id=1, role="admin")
MANAGER = CallerContext(id=3, role="manager", managed_team_ids=(10,), managed_member_ids=(20, 21))
EMPLOYEE = CallerContext(id=20, role="employee", team_id=10)


class FakeDataSource(AnalyticsDataSource):
    """Returns canned records and remembers every scope it was asked for."""

    def __init__(self, records=None, error=None):
        self.records = records if records is not None else ScopedRecords()
        self.error = error
        self.calls = []

    def load_caller(self, user_id):
        return None

    def fetch_scoped_records(self, scope, date_range=None):
        self.calls.append((scope, date_range))
        if self.error:
            raise self.error
        return self.records


def _feedback(fb_id, receiver_id, when, rating, sentiment=None):
    return FeedbackRecord(
        id=fb_id, giver_id=99, receiver_id=receiver_id, created_at=when, rating=rating, sentiment=sentiment
    )


def _two_team_records():
    zeta = TeamMeta(id=10, name="Zeta", department_name="Ops", member_ids=(20, 21))
    alpha = TeamMeta(id=11, name="Alpha", department_name="Engineering", member_ids=(30,))
    return ScopedRecords(
        teams=[zeta, alpha],
        objectives_by_team={
            10: [ObjectiveRecord(id=1, owner_id=20, key_results=(KeyResultRecord(4),))],
            11: [ObjectiveRecord(id=2, owner_id=30, key_results=(KeyResultRecord(8), KeyResultRecord(6)))],
        },
        feedback_by_team={
            10: [_feedback(1, 20, datetime(2024, 2, 1), 6, "negative")],
            11: [_feedback(2, 30, datetime(2024, 1, 5), 9, "positive")],
        },
    )


def test_dashboard_lists_teams_by_name_and_builds_trend():
    service = AnalyticsService(FakeDataSource(_two_team_records()))

    dashboard = service.build_dashboard(ADMIN)

    assert [team.team_name for team in dashboard.teams] == ["Alpha", "Zeta"]
    assert dashboard.teams[0].avg_okr_score == 7
    assert [(p.period, p.count) for p in dashboard.trends] == [("2024-01", 1), ("2024-02", 1)]
    assert dashboard.personal is None
    assert dashboard.as_dict()["scope"]["kind"] == "organization"


def test_empty_scope_yields_empty_dashboard():
    dashboard = AnalyticsService(FakeDataSource()).build_dashboard(ADMIN)
    assert dashboard.as_dict() == {
        "teams": [],
        "trends": [],
        "scope": {"kind": "organization", "departmentId": None, "teamIds": None, "userId": None},
    }


def test_individual_scope_returns_personal_snapshot():
    records = ScopedRecords(
        member_objectives=[ObjectiveRecord(id=1, owner_id=20, key_results=(KeyResultRecord(6),))],
        member_feedback=[_feedback(1, 20, datetime(2024, 3, 3), 8, "positive")],
    )
    source = FakeDataSource(records)

    dashboard = AnalyticsService(source).build_dashboard(EMPLOYEE)

    scope, _ = source.calls[0]
    assert scope.kind == ScopeKind.INDIVIDUAL
    assert scope.user_id == EMPLOYEE.id
    assert dashboard.teams == []
    assert dashboard.personal.avg_okr_score == 6
    assert dashboard.as_dict()["personal"]["feedbackCount"] == 1
    assert [p.period for p in dashboard.trends] == ["2024-03"]


def test_authorization_fails_before_any_fetch():
    source = FakeDataSource(_two_team_records())
    with pytest.raises(AuthorizationError):
        AnalyticsService(source).build_dashboard(EMPLOYEE, ScopeRequest(ScopeKind.TEAM, 10))
    assert source.calls == []


def test_data_source_error_is_passed_through():
    error = DataSourceError("database is down")
    with pytest.raises(DataSourceError) as exc_info:
        AnalyticsService(FakeDataSource(error=error)).build_dashboard(ADMIN)
    assert exc_info.value is error


def test_unexpected_data_source_failure_is_wrapped():
    with pytest.raises(DataSourceError) as exc_info:
        AnalyticsService(FakeDataSource(error=RuntimeError("boom"))).team_analytics(ADMIN)
    assert exc_info.value.status_code == 503
    assert isinstance(exc_info.value.__cause__, RuntimeError)


def test_date_range_reaches_the_data_source():
    source = FakeDataSource()
    date_range = make_date_range(date(2024, 1, 1), date(2024, 1, 31))
    AnalyticsService(source).feedback_analytics(ADMIN, date_range=date_range)
    assert source.calls[0][1] == date_range


def test_inverted_date_range_is_rejected():
    with pytest.raises(ValidationError):
        make_date_range(date(2024, 2, 1), date(2024, 1, 1))


def test_employee_export_rejected_before_format_check():
    source = FakeDataSource()
    with pytest.raises(AuthorizationError):
        AnalyticsService(source).export(EMPLOYEE, output_format="xml")
    assert source.calls == []


def test_bad_format_rejected_before_fetch():
    source = FakeDataSource(_two_team_records())
    with pytest.raises(UnsupportedFormatError):
        AnalyticsService(source).export(ADMIN, output_format="xml")
    assert source.calls == []


def test_bad_export_type_rejected():
    with pytest.raises(ValidationError):
        AnalyticsService(FakeDataSource()).export(ADMIN, export_type="payroll", output_format="csv")


def test_csv_export_carries_dated_filename():
    service = AnalyticsService(FakeDataSource(_two_team_records()))

    payload = service.export(MANAGER, output_format="csv", today=date(2024, 4, 2))

    assert payload.filename == "team-analytics-2024-04-02.csv"
    assert payload.media_type == "text/csv"
    lines = payload.content.split("\n")
    assert lines[1].startswith("Alpha,Engineering,1,7,9,")
    assert lines[2].startswith("Zeta,Ops,2,4,6,")


def test_export_defaults_to_csv():
    payload = AnalyticsService(FakeDataSource()).export(ADMIN)
    assert payload.format == "csv"


def test_json_feedback_export_has_no_filename():
    payload = AnalyticsService(FakeDataSource(_two_team_records())).export(
        ADMIN, export_type="feedback", output_format="json"
    )
    assert payload.filename is None
    assert payload.media_type == "application/json"
    assert payload.content["summary"]["totalFeedback"] == 2


def test_summary_uses_configured_window():
    source = FakeDataSource(_two_team_records())
    now = datetime(2024, 3, 31, 12, 0, tzinfo=timezone.utc)

    summary = AnalyticsService(source).summary(ADMIN, now=now).as_dict()

    _, date_range = source.calls[0]
    assert date_range.end == date(2024, 3, 31)
    assert date_range.start == date(2024, 3, 1)
    assert summary["summary"]["teams"]["total"] == 2
    assert summary["summary"]["teams"]["totalMembers"] == 3
    assert summary["summary"]["teams"]["avgOkrScore"] == 5.5
    assert summary["summary"]["feedback"]["total"] == 2
    assert summary["summary"]["period"]["days"] == 30
    assert [team["teamName"] for team in summary["teamAnalytics"]] == ["Alpha", "Zeta"]


def test_employee_cannot_view_summary():
    with pytest.raises(AuthorizationError):
        AnalyticsService(FakeDataSource()).summary(EMPLOYEE)


def test_fetched_records_are_read_only():
    records = _two_team_records()
    with pytest.raises(dataclasses.FrozenInstanceError):
        records.teams = []
