from unittest.mock import AsyncMock, patch

import pytest

from app.integrations.google_places import GooglePlacesProvider

MOCK_DETAILS_RESPONSE = {
    "status": "OK",
    "result": {
        "place_id": "ChIJ123",
        "name": "重庆火锅",
        "rating": 4.6,
        "user_ratings_total": 212,
        "price_level": 2,
        "geometry": {"location": {"lat": 25.67, "lng": -100.31}},
        "formatted_address": "Av. Constitución 100, Monterrey",
        "formatted_phone_number": "81 1234 5678",
        "opening_hours": {"open_now": True, "weekday_text": ["星期一: 12:00–22:00"] * 7},
        "photos": [{"photo_reference": "ref-0", "width": 800, "height": 600}],
        "url": "https://maps.google.com/?cid=42",
    },
}


@pytest.mark.asyncio
async def test_find_place_id():
    provider = GooglePlacesProvider(api_key="test")
    with patch.object(
        provider,
        "_get",
        new_callable=AsyncMock,
        return_value={"status": "OK", "candidates": [{"place_id": " ChIJ123 ", "name": "x"}]},
    ) as mock_get:
        place_id = await provider.find_place_id("重庆火锅 Monterrey")
    assert place_id == "ChIJ123"
    path, params = mock_get.call_args.args
    assert path == "findplacefromtext/json"
    assert params["input"] == "重庆火锅 Monterrey"
    assert params["language"] == "zh-CN"


@pytest.mark.asyncio
async def test_find_place_id_zero_results():
    provider = GooglePlacesProvider(api_key="test")
    with patch.object(
        provider, "_get", new_callable=AsyncMock, return_value={"status": "ZERO_RESULTS", "candidates": []}
    ):
        assert await provider.find_place_id("nothing") == ""


@pytest.mark.asyncio
async def test_find_place_id_empty_query_skips_request():
    provider = GooglePlacesProvider(api_key="test")
    with patch.object(provider, "_get", new_callable=AsyncMock) as mock_get:
        assert await provider.find_place_id("") == ""
    mock_get.assert_not_called()


@pytest.mark.asyncio
async def test_fetch_details():
    provider = GooglePlacesProvider(api_key="test")
    with patch.object(provider, "_get", new_callable=AsyncMock, return_value=MOCK_DETAILS_RESPONSE):
        place = await provider.fetch_details("ChIJ123")
    assert place is not None
    assert place.name == "重庆火锅"
    assert place.rating == 4.6
    assert place.location.lat == 25.67
    assert len(place.weekday_text) == 7
    assert place.photo_reference(0) == "ref-0"


@pytest.mark.asyncio
async def test_fetch_details_request_denied():
    provider = GooglePlacesProvider(api_key="bad")
    with patch.object(
        provider,
        "_get",
        new_callable=AsyncMock,
        return_value={"status": "REQUEST_DENIED", "error_message": "The provided API key is invalid."},
    ):
        assert await provider.fetch_details("ChIJ123") is None


@pytest.mark.asyncio
async def test_fetch_details_network_error():
    provider = GooglePlacesProvider(api_key="test")
    with patch.object(
        provider, "_get", new_callable=AsyncMock, side_effect=Exception("Connection timeout")
    ):
        assert await provider.fetch_details("ChIJ123") is None


@pytest.mark.asyncio
async def test_fetch_photo_from_reference():
    provider = GooglePlacesProvider(api_key="test")
    with patch.object(
        provider, "_get_bytes", new_callable=AsyncMock, return_value=(b"jpeg", "image/jpeg")
    ) as mock_get:
        photo = await provider.fetch_photo("ref-0")
    assert photo.content == b"jpeg"
    assert mock_get.call_args.kwargs["params"]["photo_reference"] == "ref-0"


@pytest.mark.asyncio
async def test_fetch_photo_from_url():
    provider = GooglePlacesProvider(api_key="test")
    with patch.object(
        provider, "_get_bytes", new_callable=AsyncMock, return_value=(b"png", "image/png")
    ) as mock_get:
        photo = await provider.fetch_photo("https://lh3.googleusercontent.com/p/abc=s400")
    assert photo.content_type == "image/png"
    assert mock_get.call_args.args[0] == "https://lh3.googleusercontent.com/p/abc=s400"


@pytest.mark.asyncio
async def test_fetch_photo_failure_returns_none():
    provider = GooglePlacesProvider(api_key="test")
    with patch.object(provider, "_get_bytes", new_callable=AsyncMock, side_effect=Exception("403")):
        assert await provider.fetch_photo("ref-0") is None
    assert await provider.fetch_photo("") is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [["unexpected"], None, {"status": "OK", "candidates": ["ChIJ123"]}, {"status": "OK", "candidates": {}}],
)
async def test_find_place_id_malformed_payload(payload):
    provider = GooglePlacesProvider(api_key="test")
    with patch.object(provider, "_get", new_callable=AsyncMock, return_value=payload):
        assert await provider.find_place_id("重庆火锅 Monterrey") == ""
