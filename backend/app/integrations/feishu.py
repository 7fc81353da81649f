import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime

import httpx

from app.config import Settings
from app.schemas.submission import SubmissionResponse

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL_S = 7200
TOKEN_REFRESH_MARGIN_S = 60


class FeishuError(Exception):
    pass


class FeishuBitableClient:
    """Appends submissions as records of one Feishu Bitable table."""

    def __init__(self, settings: Settings, *, clock: Callable[[], float] = time.time):
        self.app_id = settings.feishu_app_id
        self.app_secret = settings.feishu_app_secret
        self.app_token = settings.feishu_app_token
        self.table_id = settings.feishu_table_id
        self.base_url = settings.feishu_api_base_url.rstrip("/")
        self._clock = clock
        self._token: str | None = None
        self._token_expires_at = 0.0

    @property
    def enabled(self) -> bool:
        return all((self.app_id, self.app_secret, self.app_token, self.table_id))

    async def _post(self, path: str, payload: dict, headers: dict | None = None) -> dict:
        async with httpx.AsyncClient(timeout=30) as client:
            response = await client.post(f"{self.base_url}{path}", json=payload, headers=headers)
            data = response.json()
            if response.status_code >= 400:
                raise FeishuError(data.get("msg") or f"HTTP {response.status_code}")
            return data

    async def tenant_token(self) -> str:
        """Tenant access token, reused until shortly before it expires."""
        if self._token and self._token_expires_at > self._clock():
            return self._token
        data = await self._post(
            "/auth/v3/tenant_access_token/internal",
            {"app_id": self.app_id, "app_secret": self.app_secret},
        )
        token = data.get("tenant_access_token")
        if not token:
            raise FeishuError(data.get("msg") or "Failed to get Feishu tenant_access_token")
        expire = data.get("expire") or DEFAULT_TOKEN_TTL_S
        self._token = token
        self._token_expires_at = self._clock() + expire - TOKEN_REFRESH_MARGIN_S
        return token

    async def append_submission(self, submission: SubmissionResponse) -> bool:
        if not self.enabled:
            return False
        try:
            token = await self.tenant_token()
        except Exception as exc:
            logger.error("Feishu token error: %s", exc)
            return False

        payload = {"fields": submission.to_feishu_fields(datetime.now(UTC).isoformat())}
        try:
            data = await self._post(
                f"/bitable/v1/apps/{self.app_token}/tables/{self.table_id}/records",
                payload,
                headers={"Authorization": f"Bearer {token}"},
            )
            if not data.get("data"):
                raise FeishuError(data.get("msg") or "Feishu append failed")
        except Exception as exc:
            logger.error("Append to Feishu failed for submission %s: %s", submission.id, exc)
            return False
        logger.info("Mirrored submission %s to Feishu", submission.id)
        return True
