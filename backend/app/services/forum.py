"""Community forum posts with a per-IP posting rate limit."""

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import ApiError
from app.models.forum_post import ForumPost
from app.schemas.forum import ForumPostCreate
from app.services.analytics import USER_AGENT_MAX_LENGTH, hash_ip

logger = logging.getLogger(__name__)

RATE_LIMIT_WINDOW_S = 10 * 60
RATE_LIMIT_MAX_POSTS = 4
MIN_POST_INTERVAL_S = 25
DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 200


@dataclass
class _RateEntry:
    count: int
    reset_at: float
    last_at: float | None


class ForumRateLimiter:
    """In-memory posting limits keyed by client IP."""

    def __init__(
        self,
        *,
        window_s: float = RATE_LIMIT_WINDOW_S,
        max_posts: int = RATE_LIMIT_MAX_POSTS,
        min_interval_s: float = MIN_POST_INTERVAL_S,
        clock: Callable[[], float] = time.time,
    ):
        self.window_s = window_s
        self.max_posts = max_posts
        self.min_interval_s = min_interval_s
        self._clock = clock
        self._entries: dict[str, _RateEntry] = {}

    def check(self, ip: str) -> float:
        """Record a post attempt; returns 0 if allowed, else seconds to wait."""
        key = ip or "unknown"
        now = self._clock()
        entry = self._entries.get(key)
        if entry is None or now > entry.reset_at:
            entry = _RateEntry(count=0, reset_at=now + self.window_s, last_at=None)
        if entry.last_at is not None and now - entry.last_at < self.min_interval_s:
            return self.min_interval_s - (now - entry.last_at)
        if entry.count >= self.max_posts:
            return entry.reset_at - now
        entry.count += 1
        entry.last_at = now
        self._entries[key] = entry
        return 0.0


def validate_post(payload: ForumPostCreate) -> dict:
    title = (payload.title or "").strip()
    content = (payload.content or "").strip()
    if not 2 <= len(title) <= 80:
        raise ApiError(400, "标题需要 2-80 个字")
    if not 10 <= len(content) <= 2000:
        raise ApiError(400, "内容需要 10-2000 个字")
    return {
        "title": title,
        "content": content,
        "category": (payload.category or "").strip(),
        "city": (payload.city or "").strip(),
        "contact": (payload.contact or "").strip(),
    }


async def create_post(
    db: AsyncSession,
    payload: ForumPostCreate,
    *,
    limiter: ForumRateLimiter,
    ip: str,
    user_agent: str,
) -> ForumPost:
    if (payload.website or "").strip():
        raise ApiError(400, "提交失败")
    retry_in = limiter.check(ip)
    if retry_in > 0:
        seconds = max(1, math.ceil(retry_in))
        raise ApiError(429, f"发布太频繁，请 {seconds} 秒后再试")

    post = ForumPost(
        **validate_post(payload),
        ip_hash=hash_ip(ip),
        user_agent=(user_agent or "")[:USER_AGENT_MAX_LENGTH],
    )
    db.add(post)
    try:
        await db.commit()
    except Exception as exc:
        await db.rollback()
        logger.error("Forum insert error: %s", exc)
        raise ApiError(500, "存储失败") from exc
    await db.refresh(post)
    return post


async def list_posts(db: AsyncSession, limit: int) -> list[ForumPost]:
    try:
        result = await db.execute(
            select(ForumPost).order_by(ForumPost.created_at.desc(), ForumPost.id.desc()).limit(limit)
        )
    except Exception as exc:
        logger.error("Forum read error: %s", exc)
        raise ApiError(500, "读取失败") from exc
    return list(result.scalars().all())
