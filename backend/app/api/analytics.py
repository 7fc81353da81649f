import logging

from fastapi import APIRouter, Depends, Query

from app.auth import require_analytics_access
from app.dependencies import DbSession
from app.errors import ApiError
from app.services.analytics import DEFAULT_RECENT_LIMIT, MAX_RECENT_LIMIT, build_report
from app.utils.ranges import clamp_limit, normalize_date_param

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/analytics",
    tags=["analytics"],
    dependencies=[Depends(require_analytics_access)],
)


@router.get("")
async def analytics_report(
    db: DbSession,
    date: str | None = Query(None),
    limit: str | None = Query(None),
) -> dict:
    """Page views for one local day (default today)."""
    try:
        report = await build_report(
            db,
            normalize_date_param(date),
            clamp_limit(limit, DEFAULT_RECENT_LIMIT, MAX_RECENT_LIMIT),
        )
    except Exception as exc:
        logger.error("Analytics query failed: %s", exc)
        raise ApiError(500, "统计失败") from exc
    return {"ok": True, **report}
