"""
Google Sheets mirror for contact-form submissions via gspread.
Rows are appended to the ``Submissions`` tab (created with headers if absent).
"""

import base64
import binascii
import json
import logging
from datetime import UTC, datetime

import gspread
from google.oauth2.service_account import Credentials

from app.config import Settings
from app.schemas.submission import SubmissionResponse

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


def load_service_account(settings: Settings) -> dict | None:
    """Service account info from base64 or raw JSON settings, else None."""
    raw = ""
    try:
        if settings.google_service_account_base64:
            raw = base64.b64decode(settings.google_service_account_base64).decode("utf-8")
        elif settings.google_service_account_json:
            raw = settings.google_service_account_json
        if not raw:
            return None
        info = json.loads(raw)
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.error("Failed to parse Google service account JSON: %s", exc)
        return None
    if not isinstance(info, dict) or not info.get("client_email") or not info.get("private_key"):
        return None
    # Keys pasted into env files often carry literal "\n"
    info["private_key"] = info["private_key"].replace("\\n", "\n")
    return info


def _get_client(info: dict) -> gspread.Client:
    creds = Credentials.from_service_account_info(info, scopes=SCOPES)
    return gspread.authorize(creds)


def _get_or_create_sheet(
    spreadsheet: gspread.Spreadsheet, title: str, headers: list
) -> gspread.Worksheet:
    try:
        ws = spreadsheet.worksheet(title)
    except gspread.WorksheetNotFound:
        ws = spreadsheet.add_worksheet(title=title, rows=1000, cols=len(headers))
        ws.append_row(headers, value_input_option="RAW")
        logger.info("Created sheet tab: %s", title)
    return ws


def append_submission(settings: Settings, submission: SubmissionResponse) -> bool:
    """Append one submission row. Returns False when disabled or on failure."""
    info = load_service_account(settings)
    if info is None or not settings.google_sheet_id:
        return False
    try:
        client = _get_client(info)
        ss = client.open_by_key(settings.google_sheet_id)
        ws = _get_or_create_sheet(ss, settings.google_sheet_tab, SubmissionResponse.sheet_headers())
        row = submission.to_sheet_row(datetime.now(UTC).isoformat())
        ws.append_row(row, value_input_option="RAW")
    except Exception as exc:
        logger.error("Append to Google Sheet failed for submission %s: %s", submission.id, exc)
        return False
    logger.info("Mirrored submission %s to Google Sheets", submission.id)
    return True
