import logging
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from app.api.forms import submission_body
from app.dependencies import AppSettings, DbSession, Feishu
from app.integrations.google_sheets import append_submission
from app.schemas.submission import SubmissionCreate, SubmissionResponse
from app.services.submissions import (
    DEFAULT_LIST_LIMIT,
    MAX_LIST_LIMIT,
    create_submission,
    list_submissions,
)
from app.utils.ranges import clamp_limit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["submissions"])


@router.post("/submit")
async def submit(
    payload: Annotated[SubmissionCreate, Depends(submission_body)],
    db: DbSession,
    background_tasks: BackgroundTasks,
    app_settings: AppSettings,
    feishu: Feishu,
) -> dict:
    """Store a contact-form submission and mirror it to the export sinks.

    Accepts JSON and form posts alike.
    """
    submission = await create_submission(db, payload)
    record = SubmissionResponse.model_validate(submission)
    background_tasks.add_task(append_submission, app_settings, record)
    background_tasks.add_task(feishu.append_submission, record)
    return {"ok": True, "id": submission.id}


@router.get("/submissions")
async def submissions(db: DbSession, limit: str | None = Query(None)) -> dict:
    rows = await list_submissions(db, clamp_limit(limit, DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT))
    data = [SubmissionResponse.model_validate(row).model_dump(mode="json") for row in rows]
    return {"ok": True, "data": data}
