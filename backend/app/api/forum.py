from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from app.api.forms import forum_post_body
from app.dependencies import DbSession, ForumLimiter
from app.schemas.forum import ForumPostCreate, ForumPostResponse
from app.services.forum import DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT, create_post, list_posts
from app.utils.ranges import clamp_limit

router = APIRouter(prefix="/api/forum-posts", tags=["forum"])


@router.get("")
async def forum_posts(db: DbSession, limit: str | None = Query(None)) -> dict:
    rows = await list_posts(db, clamp_limit(limit, DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT))
    return {
        "ok": True,
        "data": [ForumPostResponse.model_validate(row).model_dump(mode="json") for row in rows],
    }


@router.post("")
async def publish_post(
    payload: Annotated[ForumPostCreate, Depends(forum_post_body)],
    request: Request,
    db: DbSession,
    limiter: ForumLimiter,
) -> dict:
    post = await create_post(
        db,
        payload,
        limiter=limiter,
        ip=request.client.host if request.client else "",
        user_agent=request.headers.get("user-agent", ""),
    )
    return {"ok": True, "id": post.id}
