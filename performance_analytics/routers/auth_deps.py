"""
Caller and service dependencies for analytics endpoints.

Authentication happens upstream: the gateway verifies credentials and
forwards the caller's user id in ``settings.caller_id_header``. This module
trusts that id and only loads the role and membership facts for it.
"""
import logging

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from performance_analytics.core.config import settings
from performance_analytics.core.exceptions import AuthenticationError
from performance_analytics.database import get_db
from performance_analytics.services.analytics import (
    AnalyticsDataSource,
    AnalyticsService,
    CallerContext,
    SQLAnalyticsRepository,
)

logger = logging.getLogger(__name__)


def get_data_source(db: Session = Depends(get_db)) -> AnalyticsDataSource:
    return SQLAnalyticsRepository(db)


def get_analytics_service(data_source: AnalyticsDataSource = Depends(get_data_source)) -> AnalyticsService:
    return AnalyticsService(data_source)


def get_current_caller(
    request: Request,
    data_source: AnalyticsDataSource = Depends(get_data_source),
) -> CallerContext:
    """
    Resolves the verified caller forwarded by the gateway.
    """
    raw_id = request.headers.get(settings.caller_id_header)
    if not raw_id:
        logger.warning("Authentication failed: missing caller header")
        raise AuthenticationError("Missing verified caller identity")

    try:
        user_id = int(raw_id)
    except ValueError:
        logger.warning(f"Authentication failed: malformed caller id {raw_id!r}")
        raise AuthenticationError("Malformed caller identity")

    caller = data_source.load_caller(user_id)
    if caller is None:
        logger.warning(f"Authentication failed: user {user_id} not found or inactive")
        raise AuthenticationError("Unknown caller")
    return caller
