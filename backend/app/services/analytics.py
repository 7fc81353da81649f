"""First-party page-view tracking and the daily report."""

import hashlib
import logging
import re
from pathlib import PurePosixPath

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.page_view import PageView

logger = logging.getLogger(__name__)

VISITOR_COOKIE = "mx_vid"
VISITOR_COOKIE_MAX_AGE = 60 * 60 * 24 * 365
REFERRER_MAX_LENGTH = 300
USER_AGENT_MAX_LENGTH = 300
DEFAULT_RECENT_LIMIT = 200
MAX_RECENT_LIMIT = 1000

_VISITOR_ID = re.compile(r"^[0-9a-f-]{36}$", re.IGNORECASE)
_UNTRACKED_PREFIXES = ("/api", "/assets", "/image")
_STATIC_EXTENSIONS = {
    ".css", ".js", ".png", ".jpg", ".jpeg", ".webp", ".gif", ".svg", ".ico", ".map",
    ".json", ".txt", ".xml", ".woff", ".woff2", ".ttf", ".eot", ".pdf", ".zip",
}


def should_track(method: str, path: str) -> bool:
    """Only GET requests for pages count; API calls and static files do not."""
    if method != "GET" or not path:
        return False
    if path.startswith(_UNTRACKED_PREFIXES):
        return False
    return PurePosixPath(path).suffix.lower() not in _STATIC_EXTENSIONS


def is_valid_visitor_id(value: str | None) -> bool:
    return bool(value) and bool(_VISITOR_ID.match(value))


def hash_ip(ip: str | None) -> str:
    if not ip:
        return ""
    return hashlib.sha256(ip.encode("utf-8")).hexdigest()


async def record_page_view(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    visitor_id: str,
    path: str,
    referrer: str,
    user_agent: str,
    ip: str,
) -> None:
    """Store one page view. Failures are logged and never reach the visitor."""
    try:
        async with session_factory() as db:
            db.add(
                PageView(
                    visitor_id=visitor_id,
                    path=path,
                    referrer=(referrer or "")[:REFERRER_MAX_LENGTH],
                    user_agent=(user_agent or "")[:USER_AGENT_MAX_LENGTH],
                    ip_hash=hash_ip(ip),
                )
            )
            await db.commit()
    except Exception as exc:
        logger.error("Analytics insert failed: %s", exc)


async def build_report(db: AsyncSession, day: str, limit: int) -> dict:
    """Per-page and per-hour PV/UV plus the most recent views for one local day."""
    local_day = func.date(PageView.created_at, "localtime")
    pv = func.count(PageView.id).label("pv")
    uv = func.count(distinct(PageView.visitor_id)).label("uv")

    result = await db.execute(
        select(PageView.path, pv, uv)
        .where(local_day == day)
        .group_by(PageView.path)
        .order_by(pv.desc())
    )
    by_page = [{"path": row.path, "pv": row.pv, "uv": row.uv} for row in result.all()]

    hour = func.strftime("%H:00", func.datetime(PageView.created_at, "localtime")).label("hour")
    result = await db.execute(
        select(hour, pv, uv).where(local_day == day).group_by(hour).order_by(hour.asc())
    )
    by_hour = [{"hour": row.hour, "pv": row.pv, "uv": row.uv} for row in result.all()]

    local_time = func.datetime(PageView.created_at, "localtime").label("time")
    result = await db.execute(
        select(local_time, PageView.path, PageView.referrer, PageView.visitor_id)
        .where(local_day == day)
        .order_by(local_time.desc(), PageView.id.desc())
        .limit(limit)
    )
    recent = [
        {
            "time": row.time,
            "path": row.path,
            "referrer": row.referrer,
            "visitor_id": row.visitor_id,
        }
        for row in result.all()
    ]
    return {"date": day, "byPage": by_page, "byHour": by_hour, "recent": recent}
