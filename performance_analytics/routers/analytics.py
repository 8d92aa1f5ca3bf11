from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response

from performance_analytics.core.schemas import ApiResponse
from performance_analytics.routers.auth_deps import get_analytics_service, get_current_caller
from performance_analytics.services.analytics import (
    AnalyticsService,
    CallerContext,
    ensure_can_export,
    make_date_range,
    parse_scope,
)

router = APIRouter(
    prefix="/analytics",
    tags=["analytics"]
)


@router.get("/dashboard")
def get_dashboard(
    scope: Optional[str] = Query(None, description="organization | department | team | individual"),
    scope_id: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    caller: CallerContext = Depends(get_current_caller),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """
    Team metrics and monthly feedback trend for the caller's scope.
    """
    requested = parse_scope(scope, scope_id)
    date_range = make_date_range(start_date, end_date)
    dashboard = service.build_dashboard(caller, requested, date_range)
    return JSONResponse(ApiResponse.ok(dashboard.as_dict()).to_dict())


@router.get("/team")
def get_team_performance(
    scope: Optional[str] = Query(None),
    scope_id: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    caller: CallerContext = Depends(get_current_caller),
    service: AnalyticsService = Depends(get_analytics_service),
):
    requested = parse_scope(scope, scope_id)
    teams = service.team_analytics(caller, requested, make_date_range(start_date, end_date))
    return JSONResponse(ApiResponse.ok([team.as_dict() for team in teams]).to_dict())


@router.get("/feedback")
def get_feedback_trends(
    scope: Optional[str] = Query(None),
    scope_id: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    caller: CallerContext = Depends(get_current_caller),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """
    Feedback summary, monthly rating trend and monthly sentiment counts.
    """
    requested = parse_scope(scope, scope_id)
    report = service.feedback_analytics(caller, requested, make_date_range(start_date, end_date))
    return JSONResponse(ApiResponse.ok(report.as_dict()).to_dict())


@router.get("/summary")
def get_summary(
    caller: CallerContext = Depends(get_current_caller),
    service: AnalyticsService = Depends(get_analytics_service),
):
    summary = service.summary(caller)
    return JSONResponse(ApiResponse.ok(summary.as_dict()).to_dict())


@router.get("/export")
def export_analytics(
    export_type: str = Query("team", alias="type"),
    output_format: Optional[str] = Query(None, alias="format"),
    scope: Optional[str] = Query(None),
    scope_id: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    caller: CallerContext = Depends(get_current_caller),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """
    Download team or feedback analytics as CSV, or get them as a JSON payload.
    """
    # Roles without export are refused before any query value is looked at
    ensure_can_export(caller)
    requested = parse_scope(scope, scope_id)
    payload = service.export(
        caller,
        requested,
        export_type=export_type,
        output_format=output_format,
        date_range=make_date_range(start_date, end_date),
    )

    if payload.filename:
        return Response(
            content=payload.content,
            media_type=payload.media_type,
            headers={"Content-Disposition": f'attachment; filename="{payload.filename}"'},
        )
    return JSONResponse({
        "success": True,
        "format": payload.format,
        "type": payload.export_type,
        "data": payload.content,
        "exportedAt": datetime.now(timezone.utc).isoformat(),
        "exportedBy": caller.id,
    })
