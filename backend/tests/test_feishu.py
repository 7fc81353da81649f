from datetime import datetime
from unittest.mock import AsyncMock, patch

import pytest
from conftest import make_settings

from app.integrations.feishu import FeishuBitableClient, FeishuError
from app.schemas.submission import SubmissionResponse

SUBMISSION = SubmissionResponse(
    id=7,
    name="网站访客",
    email="+52123",
    city="CDMX",
    contact="+52123",
    created_at=datetime(2024, 5, 8, 12, 0),
)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _client(tmp_path, clock=None) -> FeishuBitableClient:
    settings = make_settings(
        tmp_path,
        feishu_app_id="cli_a",
        feishu_app_secret="secret",
        feishu_app_token="app_tok",
        feishu_table_id="tbl1",
    )
    return FeishuBitableClient(settings, clock=clock or FakeClock())


def test_disabled_without_all_settings(tmp_path):
    assert not FeishuBitableClient(make_settings(tmp_path)).enabled
    assert _client(tmp_path).enabled


@pytest.mark.asyncio
async def test_disabled_client_does_nothing(tmp_path):
    client = FeishuBitableClient(make_settings(tmp_path))
    with patch.object(client, "_post", new_callable=AsyncMock) as mock_post:
        assert await client.append_submission(SUBMISSION) is False
    mock_post.assert_not_called()


@pytest.mark.asyncio
async def test_append_submission(tmp_path):
    client = _client(tmp_path)
    with patch.object(
        client,
        "_post",
        new_callable=AsyncMock,
        side_effect=[
            {"tenant_access_token": "t-123", "expire": 7200},
            {"code": 0, "data": {"record": {"record_id": "rec1"}}},
        ],
    ) as mock_post:
        assert await client.append_submission(SUBMISSION) is True

    path, payload = mock_post.call_args.args
    assert path == "/bitable/v1/apps/app_tok/tables/tbl1/records"
    assert payload["fields"]["ID"] == "7"
    assert payload["fields"]["姓名"] == "网站访客"
    assert payload["fields"]["备用联系方式"] == "+52123"
    assert mock_post.call_args.kwargs["headers"] == {"Authorization": "Bearer t-123"}


@pytest.mark.asyncio
async def test_token_is_reused_until_expiry(tmp_path):
    clock = FakeClock()
    client = _client(tmp_path, clock)
    with patch.object(
        client,
        "_post",
        new_callable=AsyncMock,
        side_effect=[
            {"tenant_access_token": "t-1", "expire": 120},
            {"tenant_access_token": "t-2", "expire": 120},
        ],
    ) as mock_post:
        assert await client.tenant_token() == "t-1"
        clock.now += 30
        assert await client.tenant_token() == "t-1"
        # Refreshed 60s before the stated expiry
        clock.now += 31
        assert await client.tenant_token() == "t-2"
    assert mock_post.await_count == 2


@pytest.mark.asyncio
async def test_token_error_is_logged_not_raised(tmp_path):
    client = _client(tmp_path)
    with patch.object(
        client, "_post", new_callable=AsyncMock, return_value={"code": 10003, "msg": "invalid app_secret"}
    ):
        with pytest.raises(FeishuError):
            await client.tenant_token()
        assert await client.append_submission(SUBMISSION) is False


@pytest.mark.asyncio
async def test_append_without_data_fails(tmp_path):
    client = _client(tmp_path)
    with patch.object(
        client,
        "_post",
        new_callable=AsyncMock,
        side_effect=[
            {"tenant_access_token": "t-123", "expire": 7200},
            {"code": 1254045, "msg": "FieldNameNotFound"},
        ],
    ):
        assert await client.append_submission(SUBMISSION) is False
