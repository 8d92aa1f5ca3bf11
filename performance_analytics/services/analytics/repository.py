from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, time, timedelta
from typing import Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from performance_analytics.core.exceptions import DataSourceError
from performance_analytics.models.department import Department
from performance_analytics.models.feedback import Feedback
from performance_analytics.models.okr import Objective
from performance_analytics.models.team import Team
from performance_analytics.models.user import User

from .models import (
    CallerContext,
    DateRange,
    FeedbackRecord,
    KeyResultRecord,
    ObjectiveRecord,
    ResolvedScope,
    ScopedRecords,
    ScopeKind,
    TeamMeta,
)

logger = logging.getLogger(__name__)


class AnalyticsDataSource:
    """
    Read side consumed by the analytics service.

    Implementations return fully materialized records for a resolved scope and
    report any failure as ``DataSourceError``. Retries, if wanted, belong to
    the implementation, never to the caller.
    """

    def load_caller(self, user_id: int) -> Optional[CallerContext]:
        raise NotImplementedError

    def fetch_scoped_records(self, scope: ResolvedScope, date_range: Optional[DateRange] = None) -> ScopedRecords:
        raise NotImplementedError


class SQLAnalyticsRepository(AnalyticsDataSource):
    """
    Load analytics inputs through SQLAlchemy.

    Objectives are attributed to their owner's team and feedback to the
    receiver's team, so one membership lookup drives both queries.
    """

    def __init__(self, db: Session):
        self.db = db

    def load_caller(self, user_id: int) -> Optional[CallerContext]:
        try:
            user = self.db.query(User).filter(User.id == user_id, User.is_active.is_(True)).first()
            if user is None:
                return None
            managed_team_ids = [
                team_id for (team_id,) in self.db.query(Team.id).filter(Team.manager_id == user.id).all()
            ]
            report_ids = [
                report_id for (report_id,) in self.db.query(User.id).filter(User.manager_id == user.id).all()
            ]
            member_ids: List[int] = []
            if managed_team_ids:
                member_ids = [
                    member_id
                    for (member_id,) in self.db.query(User.id).filter(User.team_id.in_(managed_team_ids)).all()
                ]
        except SQLAlchemyError as e:
            logger.error(f"Caller lookup failed for user {user_id}: {e}")
            raise DataSourceError("Could not load caller context") from e

        return CallerContext(
            id=user.id,
            role=user.role.value,
            team_id=user.team_id,
            department_id=user.department_id,
            managed_team_ids=tuple(sorted(managed_team_ids)),
            direct_report_ids=tuple(sorted(report_ids)),
            managed_member_ids=tuple(sorted(member_ids)),
        )

    def fetch_scoped_records(self, scope: ResolvedScope, date_range: Optional[DateRange] = None) -> ScopedRecords:
        date_range = date_range or DateRange()
        try:
            if scope.kind == ScopeKind.INDIVIDUAL:
                return ScopedRecords(
                    member_objectives=self._load_objectives([scope.user_id], date_range),
                    member_feedback=self._load_feedback([scope.user_id], date_range),
                )
            return self._load_team_records(scope, date_range)
        except SQLAlchemyError as e:
            logger.error(f"Analytics fetch failed for scope {scope.kind.value}: {e}")
            raise DataSourceError("Could not load analytics records", details={"scope": scope.kind.value}) from e

    def _load_team_records(self, scope: ResolvedScope, date_range: DateRange) -> ScopedRecords:
        teams = self._load_teams(scope)
        if not teams:
            return ScopedRecords()

        team_by_member: Dict[int, int] = {
            member_id: team.id for team in teams for member_id in team.member_ids
        }
        objectives_by_team: Dict[int, List[ObjectiveRecord]] = defaultdict(list)
        feedback_by_team: Dict[int, List[FeedbackRecord]] = defaultdict(list)

        member_ids = list(team_by_member)
        for objective in self._load_objectives(member_ids, date_range):
            objectives_by_team[team_by_member[objective.owner_id]].append(objective)
        for item in self._load_feedback(member_ids, date_range):
            feedback_by_team[team_by_member[item.receiver_id]].append(item)

        logger.info(
            f"Fetched {len(teams)} teams, {sum(map(len, objectives_by_team.values()))} objectives, "
            f"{sum(map(len, feedback_by_team.values()))} feedback for {scope.kind.value} scope"
        )
        return ScopedRecords(
            teams=teams,
            objectives_by_team={team.id: objectives_by_team.get(team.id, []) for team in teams},
            feedback_by_team={team.id: feedback_by_team.get(team.id, []) for team in teams},
        )

    def _load_teams(self, scope: ResolvedScope) -> List[TeamMeta]:
        query = self.db.query(Team.id, Team.name, Team.department_id, Department.name).outerjoin(
            Department, Team.department_id == Department.id
        )
        if scope.kind == ScopeKind.DEPARTMENT:
            query = query.filter(Team.department_id == scope.department_id)
        elif scope.kind == ScopeKind.TEAM:
            if not scope.team_ids:
                return []
            query = query.filter(Team.id.in_(scope.team_ids))
        rows = query.all()
        if not rows:
            return []

        members: Dict[int, List[int]] = defaultdict(list)
        member_rows = (
            self.db.query(User.id, User.team_id)
            .filter(User.team_id.in_([row[0] for row in rows]), User.is_active.is_(True))
            .all()
        )
        for user_id, team_id in member_rows:
            members[team_id].append(user_id)

        return [
            TeamMeta(
                id=team_id,
                name=name,
                department_id=department_id,
                department_name=department_name,
                member_ids=tuple(sorted(members.get(team_id, []))),
            )
            for team_id, name, department_id, department_name in rows
        ]

    def _load_objectives(self, owner_ids: Sequence[int], date_range: DateRange) -> List[ObjectiveRecord]:
        if not owner_ids:
            return []
        query = (
            self.db.query(Objective)
            .options(selectinload(Objective.key_results))
            .filter(Objective.owner_id.in_(owner_ids))
        )
        query = _apply_date_range(query, Objective.created_at, date_range)
        return [
            ObjectiveRecord(
                id=objective.id,
                owner_id=objective.owner_id,
                key_results=tuple(KeyResultRecord(score=float(kr.score or 0)) for kr in objective.key_results),
                created_at=objective.created_at,
            )
            for objective in query.order_by(Objective.id).all()
        ]

    def _load_feedback(self, receiver_ids: Sequence[int], date_range: DateRange) -> List[FeedbackRecord]:
        if not receiver_ids:
            return []
        query = self.db.query(Feedback).filter(Feedback.receiver_id.in_(receiver_ids))
        query = _apply_date_range(query, Feedback.created_at, date_range)
        return [
            FeedbackRecord(
                id=row.id,
                giver_id=row.giver_id,
                receiver_id=row.receiver_id,
                created_at=row.created_at,
                rating=row.rating,
                sentiment=row.sentiment,
            )
            for row in query.order_by(Feedback.created_at, Feedback.id).all()
        ]


def _apply_date_range(query, column, date_range: DateRange):
    if date_range.start:
        query = query.filter(column >= datetime.combine(date_range.start, time.min))
    if date_range.end:
        query = query.filter(column < datetime.combine(date_range.end + timedelta(days=1), time.min))
    return query
