"""Request bodies posted either as JSON or as an HTML form."""

import logging
from typing import TypeVar

from fastapi import Request
from pydantic import BaseModel, ValidationError

from app.errors import ApiError
from app.schemas.forum import ForumPostCreate
from app.schemas.submission import SubmissionCreate

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPES = {"application/x-www-form-urlencoded", "multipart/form-data"}
MALFORMED_BODY_MESSAGE = "提交内容格式错误"

ModelT = TypeVar("ModelT", bound=BaseModel)


async def read_body(request: Request, model: type[ModelT]) -> ModelT:
    """Parse a JSON or form-encoded body into ``model``; unreadable bodies are a 400."""
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    try:
        if content_type in FORM_CONTENT_TYPES:
            form = await request.form()
            raw = {key: value for key, value in form.items() if isinstance(value, str)}
        else:
            raw = await request.json()
        return model.model_validate(raw)
    except (ValueError, ValidationError) as exc:
        logger.warning("Malformed %s body on %s: %s", model.__name__, request.url.path, exc)
        raise ApiError(400, MALFORMED_BODY_MESSAGE) from exc


async def submission_body(request: Request) -> SubmissionCreate:
    return await read_body(request, SubmissionCreate)


async def forum_post_body(request: Request) -> ForumPostCreate:
    return await read_body(request, ForumPostCreate)
