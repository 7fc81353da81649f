import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import ApiError
from app.models.submission import Submission
from app.schemas.submission import SubmissionCreate

logger = logging.getLogger(__name__)

DEFAULT_VISITOR_NAME = "网站访客"
DEFAULT_LIST_LIMIT = 100
MAX_LIST_LIMIT = 500


def normalize_submission(payload: SubmissionCreate) -> dict:
    """Fill defaults: a contact stands in for a missing name and email.

    Raises ``ApiError(400)`` when neither email nor contact is given.
    """
    contact = (payload.contact or "").strip()
    name = (payload.name or "").strip() or (DEFAULT_VISITOR_NAME if contact else "")
    email = (payload.email or "").strip() or contact
    if not email:
        raise ApiError(400, "缺少联系方式")
    return {
        "name": name,
        "email": email,
        "city": payload.city,
        "type": payload.type,
        "details": payload.details,
        "contact": contact,
    }


async def create_submission(db: AsyncSession, payload: SubmissionCreate) -> Submission:
    submission = Submission(**normalize_submission(payload))
    db.add(submission)
    try:
        await db.commit()
    except Exception as exc:
        await db.rollback()
        logger.error("DB insert error: %s", exc)
        raise ApiError(500, "存储失败") from exc
    await db.refresh(submission)
    logger.info("Stored submission %d", submission.id)
    return submission


async def list_submissions(db: AsyncSession, limit: int) -> list[Submission]:
    try:
        result = await db.execute(
            select(Submission)
            .order_by(Submission.created_at.desc(), Submission.id.desc())
            .limit(limit)
        )
    except Exception as exc:
        logger.error("DB read error: %s", exc)
        raise ApiError(500, "读取失败") from exc
    return list(result.scalars().all())
