from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from app.errors import ApiError
from app.schemas.submission import SubmissionCreate
from app.services.submissions import normalize_submission


def test_normalize_contact_only():
    data = normalize_submission(SubmissionCreate(contact=" +52123 ", city="CDMX"))
    assert data["name"] == "网站访客"
    assert data["email"] == "+52123"
    assert data["contact"] == "+52123"


def test_normalize_requires_email_or_contact():
    with pytest.raises(ApiError) as exc_info:
        normalize_submission(SubmissionCreate(name="张三"))
    assert exc_info.value.status_code == 400
    assert exc_info.value.message == "缺少联系方式"


@pytest.mark.asyncio
async def test_submit_contact_only(client: AsyncClient):
    with patch("app.api.submissions.append_submission", return_value=True) as mock_sheet:
        response = await client.post("/api/submit", json={"contact": "+52123", "city": "CDMX"})
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert isinstance(body["id"], int)
    mock_sheet.assert_called_once()
    record = mock_sheet.call_args.args[1]
    assert record.name == "网站访客"
    assert record.email == "+52123"

    listed = (await client.get("/api/submissions")).json()
    assert listed["ok"] is True
    assert listed["data"][0]["email"] == "+52123"
    assert listed["data"][0]["city"] == "CDMX"


@pytest.mark.asyncio
async def test_submit_without_contact_is_400(client: AsyncClient):
    response = await client.post("/api/submit", json={"name": "张三", "details": "想合作"})
    assert response.status_code == 400
    assert response.json() == {"ok": False, "message": "缺少联系方式"}


@pytest.mark.asyncio
async def test_submit_with_sinks_disabled(client: AsyncClient):
    response = await client.post(
        "/api/submit",
        json={"name": "李四", "email": "li@example.com", "type": "广告", "details": "投放广告"},
    )
    assert response.status_code == 200
    assert response.json()["ok"] is True


@pytest.mark.asyncio
async def test_list_newest_first_and_limit(client: AsyncClient):
    for index in range(3):
        await client.post("/api/submit", json={"email": f"user{index}@example.com"})

    rows = (await client.get("/api/submissions?limit=2")).json()["data"]
    assert [row["email"] for row in rows] == ["user2@example.com", "user1@example.com"]

    rows = (await client.get("/api/submissions?limit=abc")).json()["data"]
    assert len(rows) == 3


@pytest.mark.asyncio
async def test_list_limit_is_capped(client: AsyncClient):
    with patch("app.api.submissions.list_submissions", new_callable=AsyncMock, return_value=[]) as mock_list:
        await client.get("/api/submissions?limit=100000")
    assert mock_list.call_args.args[1] == 500


@pytest.mark.asyncio
async def test_submit_form_encoded(client: AsyncClient):
    with patch("app.api.submissions.append_submission", return_value=True) as mock_sheet:
        response = await client.post("/api/submit", data={"contact": "+52123", "city": "CDMX"})
    assert response.status_code == 200
    assert response.json()["ok"] is True
    record = mock_sheet.call_args.args[1]
    assert record.name == "网站访客"
    assert record.city == "CDMX"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    ['{"contact": "+52123"', "", '["not", "an", "object"]', '{"name": 42, "email": "a@b"}'],
)
async def test_submit_malformed_body_is_400(client: AsyncClient, body):
    response = await client.post(
        "/api/submit", content=body, headers={"content-type": "application/json"}
    )
    assert response.status_code == 400
    assert response.json() == {"ok": False, "message": "提交内容格式错误"}
