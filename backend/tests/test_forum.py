import pytest
from httpx import AsyncClient

from app.services.forum import ForumRateLimiter

POST = {
    "title": "求推荐蒙特雷的中文驾校",
    "content": "刚到蒙特雷，想找一个能用中文沟通的驾校，有推荐吗？",
    "city": "蒙特雷",
    "contact": "wx: newcomer",
}


class FakeClock:
    def __init__(self, now: float = 10_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_limiter_enforces_min_interval():
    clock = FakeClock()
    limiter = ForumRateLimiter(clock=clock)
    assert limiter.check("1.2.3.4") == 0
    clock.now += 10
    assert limiter.check("1.2.3.4") == pytest.approx(15)
    # Other addresses are independent
    assert limiter.check("5.6.7.8") == 0


def test_limiter_enforces_window_cap():
    clock = FakeClock()
    limiter = ForumRateLimiter(clock=clock)
    for _ in range(4):
        assert limiter.check("1.2.3.4") == 0
        clock.now += 30
    # Fifth post inside the 10 minute window
    assert limiter.check("1.2.3.4") == pytest.approx(600 - 120)

    clock.now += 600
    assert limiter.check("1.2.3.4") == 0


def test_limiter_first_post_at_time_zero():
    clock = FakeClock(0.0)
    limiter = ForumRateLimiter(clock=clock)
    assert limiter.check("ip") == 0
    assert limiter.check("ip") == pytest.approx(25)


@pytest.mark.asyncio
async def test_publish_and_list(client: AsyncClient):
    response = await client.post("/api/forum-posts", json=POST)
    assert response.status_code == 200
    assert response.json()["ok"] is True

    listed = (await client.get("/api/forum-posts")).json()
    assert listed["ok"] is True
    assert listed["data"][0]["title"] == POST["title"]
    assert "ip_hash" not in listed["data"][0]


@pytest.mark.asyncio
async def test_second_post_too_soon_is_429(client: AsyncClient):
    await client.post("/api/forum-posts", json=POST)
    response = await client.post("/api/forum-posts", json=POST)
    assert response.status_code == 429
    body = response.json()
    assert body["ok"] is False
    assert body["message"].startswith("发布太频繁，请 ")
    assert body["message"].endswith(" 秒后再试")


@pytest.mark.asyncio
async def test_honeypot_rejects(client: AsyncClient):
    response = await client.post("/api/forum-posts", json={**POST, "website": "http://spam.example"})
    assert response.status_code == 400
    assert response.json()["message"] == "提交失败"


@pytest.mark.asyncio
async def test_title_too_short(client: AsyncClient):
    response = await client.post("/api/forum-posts", json={**POST, "title": "嗨"})
    assert response.status_code == 400
    assert response.json()["message"] == "标题需要 2-80 个字"


@pytest.mark.asyncio
async def test_content_too_short(client: AsyncClient):
    response = await client.post("/api/forum-posts", json={**POST, "content": "太短"})
    assert response.status_code == 400
    assert response.json()["message"] == "内容需要 10-2000 个字"


@pytest.mark.asyncio
async def test_publish_form_encoded(client: AsyncClient):
    response = await client.post("/api/forum-posts", data=POST)
    assert response.status_code == 200
    assert response.json()["ok"] is True


@pytest.mark.asyncio
async def test_publish_malformed_json_is_400(client: AsyncClient):
    response = await client.post(
        "/api/forum-posts", content="{oops", headers={"content-type": "application/json"}
    )
    assert response.status_code == 400
    assert response.json()["ok"] is False
