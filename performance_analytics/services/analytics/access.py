"""
Role-based visibility for analytics requests.

All role decisions go through ``CAPABILITIES``; nothing else in the analytics
package branches on a role name.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional

from performance_analytics.core.exceptions import AuthorizationError, ValidationError
from performance_analytics.models.user import UserRole

from .models import CallerContext, ResolvedScope, ScopeKind, ScopeRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Capability:
    view_kinds: FrozenSet[ScopeKind]
    can_export: bool
    default_kind: ScopeKind
    can_view_summary: bool = False
    # False: teams limited to managed teams, people limited to self (+ reports)
    unrestricted: bool = False
    sees_reports: bool = False

    def can_view(self, kind: ScopeKind) -> bool:
        return kind in self.view_kinds


_ALL_KINDS = frozenset(ScopeKind)

CAPABILITIES: Dict[UserRole, Capability] = {
    UserRole.ADMIN: Capability(
        view_kinds=_ALL_KINDS,
        can_export=True,
        default_kind=ScopeKind.ORGANIZATION,
        can_view_summary=True,
        unrestricted=True,
    ),
    UserRole.HR: Capability(
        view_kinds=_ALL_KINDS,
        can_export=True,
        default_kind=ScopeKind.ORGANIZATION,
        can_view_summary=True,
        unrestricted=True,
    ),
    UserRole.MANAGER: Capability(
        view_kinds=frozenset({ScopeKind.TEAM, ScopeKind.INDIVIDUAL}),
        can_export=True,
        default_kind=ScopeKind.TEAM,
        can_view_summary=True,
        sees_reports=True,
    ),
    UserRole.EMPLOYEE: Capability(
        view_kinds=frozenset({ScopeKind.INDIVIDUAL}),
        can_export=False,
        default_kind=ScopeKind.INDIVIDUAL,
    ),
}


def capability_for(role: str) -> Capability:
    try:
        return CAPABILITIES[UserRole(role)]
    except ValueError:
        raise AuthorizationError(f"Unknown role: {role!r}")


def parse_scope(kind: Optional[str], scope_id: Optional[str]) -> ScopeRequest:
    """Turn raw query values into a ``ScopeRequest``; nothing is fetched here."""
    if kind is None or kind == "":
        if scope_id not in (None, ""):
            raise ValidationError("scope_id given without scope", details={"scope_id": scope_id})
        return ScopeRequest()

    try:
        scope_kind = ScopeKind(kind.lower())
    except ValueError:
        raise ValidationError(
            f"Unknown scope {kind!r}",
            details={"scope": kind, "allowed": [k.value for k in ScopeKind]},
        )

    target_id: Optional[int] = None
    if scope_id not in (None, ""):
        try:
            target_id = int(scope_id)
        except (TypeError, ValueError):
            raise ValidationError(f"scope_id must be an integer, got {scope_id!r}", details={"scope_id": scope_id})

    if scope_kind in (ScopeKind.DEPARTMENT, ScopeKind.TEAM) and target_id is None:
        raise ValidationError(f"scope_id is required for {scope_kind.value} scope")

    return ScopeRequest(kind=scope_kind, target_id=target_id)


def ensure_can_export(caller: CallerContext) -> None:
    if not capability_for(caller.role).can_export:
        logger.info(f"Export denied for user {caller.id} ({caller.role})")
        raise AuthorizationError("Your role cannot export analytics")


def ensure_can_view_summary(caller: CallerContext) -> None:
    if not capability_for(caller.role).can_view_summary:
        raise AuthorizationError("Your role cannot view the analytics summary")


def default_scope(caller: CallerContext) -> ScopeRequest:
    kind = capability_for(caller.role).default_kind
    if kind == ScopeKind.INDIVIDUAL:
        return ScopeRequest(kind=kind, target_id=caller.id)
    return ScopeRequest(kind=kind)


def resolve_scope(caller: CallerContext, requested: Optional[ScopeRequest] = None) -> ResolvedScope:
    """
    Narrow ``requested`` to what ``caller`` may see, or raise ``AuthorizationError``.

    A team request without an id (only produced by ``default_scope``) means
    every team the caller manages.
    """
    capability = capability_for(caller.role)
    if requested is None or requested.kind is None:
        requested = default_scope(caller)

    if not capability.can_view(requested.kind):
        raise AuthorizationError(
            f"Role {caller.role} cannot view {requested.kind.value} analytics",
            details={"scope": requested.kind.value},
        )

    if requested.kind == ScopeKind.ORGANIZATION:
        return ResolvedScope(kind=ScopeKind.ORGANIZATION)

    if requested.kind == ScopeKind.DEPARTMENT:
        return ResolvedScope(kind=ScopeKind.DEPARTMENT, department_id=requested.target_id)

    if requested.kind == ScopeKind.TEAM:
        if requested.target_id is None:
            # An unrestricted caller never gets here without an id from parse_scope
            return ResolvedScope(kind=ScopeKind.TEAM, team_ids=tuple(sorted(caller.managed_team_ids)))
        if not capability.unrestricted and requested.target_id not in caller.managed_team_ids:
            raise AuthorizationError(
                "You can only view analytics for teams you manage",
                details={"team_id": requested.target_id},
            )
        return ResolvedScope(kind=ScopeKind.TEAM, team_ids=(requested.target_id,))

    user_id = caller.id if requested.target_id is None else requested.target_id
    if not capability.unrestricted and user_id != caller.id:
        visible = set(caller.direct_report_ids) | set(caller.managed_member_ids)
        if not capability.sees_reports or user_id not in visible:
            raise AuthorizationError(
                "You can only view your own analytics",
                details={"user_id": user_id},
            )
    return ResolvedScope(kind=ScopeKind.INDIVIDUAL, user_id=user_id)
