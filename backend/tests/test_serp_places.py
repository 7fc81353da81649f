from unittest.mock import AsyncMock, patch

import pytest

from app.integrations.serp_places import (
    SearchApiPlacesProvider,
    SerpPlacesProvider,
    map_serp_place,
    normalize_open_now,
    normalize_price_level,
    normalize_weekday_text,
    pick_place_result,
)

MOCK_PLACE_RESULT = {
    "place_id": "ChIJ456",
    "title": "兰州牛肉面",
    "rating": "4.3",
    "reviews": 87,
    "price": "$$",
    "gps_coordinates": {"latitude": 19.43, "longitude": -99.13},
    "address": "Calle Dolores 10, CDMX",
    "phone": "+52 55 1234 5678",
    "hours": {
        "open_now": "Open",
        "days": [
            {"day": "Monday", "hours": "11 AM–9 PM"},
            {"day": "Tuesday", "hours": "11 AM–9 PM"},
        ],
    },
    "photos": [
        {"image": "https://lh5.googleusercontent.com/p/a=w400-h300", "width": 400, "height": 300},
        "https://lh5.googleusercontent.com/p/b=s200",
        {"nothing": True},
    ],
    "website": "https://lanzhou.example",
    "thumbnail": "https://lh5.googleusercontent.com/p/t=s100",
}


def test_normalizers():
    assert normalize_open_now("Open now") is True
    assert normalize_open_now("休息中") is False
    assert normalize_open_now("maybe") is None
    assert normalize_price_level("$$$") == 3
    assert normalize_price_level(2) == 2
    assert normalize_price_level("n/a") is None
    assert normalize_weekday_text({"weekday_text": ["a"] * 7}) == ["a"] * 7
    assert normalize_weekday_text(None) == []


def test_map_serp_place():
    place = map_serp_place(MOCK_PLACE_RESULT)
    assert place.place_id == "ChIJ456"
    assert place.name == "兰州牛肉面"
    assert place.rating == 4.3
    assert place.user_ratings_total == 87
    assert place.price_level == 2
    assert place.location.lng == -99.13
    assert place.opening_hours.open_now is True
    assert place.weekday_text == ["Monday: 11 AM–9 PM", "Tuesday: 11 AM–9 PM"]
    assert [p.photo_reference for p in place.photos] == [
        "https://lh5.googleusercontent.com/p/a=w400-h300",
        "https://lh5.googleusercontent.com/p/b=s200",
    ]
    assert place.url == "https://www.google.com/maps/place/?q=place_id:ChIJ456"
    assert place.website == "https://lanzhou.example"
    assert place.to_cache_dict()["thumbnail"] == "https://lh5.googleusercontent.com/p/t=s100"


def test_map_serp_place_uses_fallback_id():
    place = map_serp_place({"title": "A"}, "fallback-id")
    assert place.place_id == "fallback-id"
    assert place.geometry is None
    assert map_serp_place({}) is None
    assert map_serp_place(None) is None


def test_pick_place_result_prefers_matching_id():
    data = {"local_results": [{"place_id": "a"}, {"place_id": "b"}]}
    assert pick_place_result(data, "b") == {"place_id": "b"}
    assert pick_place_result(data, "zzz") == {"place_id": "a"}
    assert pick_place_result({"place_results": {"place_id": "c"}}) == {"place_id": "c"}
    assert pick_place_result({}) is None


@pytest.mark.asyncio
async def test_serpapi_find_place_id():
    provider = SerpPlacesProvider(api_key="test")
    with patch.object(
        provider,
        "_get",
        new_callable=AsyncMock,
        return_value={"local_results": [{"place_id": "ChIJ456"}, {"place_id": "other"}]},
    ) as mock_get:
        assert await provider.find_place_id("兰州牛肉面") == "ChIJ456"
    params = mock_get.call_args.args[0]
    assert params["engine"] == "google_maps"
    assert params["type"] == "search"
    assert params["q"] == "兰州牛肉面"


@pytest.mark.asyncio
async def test_serpapi_find_place_id_from_place_results():
    provider = SerpPlacesProvider(api_key="test")
    with patch.object(
        provider, "_get", new_callable=AsyncMock, return_value={"place_results": {"place_id": "X"}}
    ):
        assert await provider.find_place_id("q") == "X"


@pytest.mark.asyncio
async def test_serpapi_fetch_details():
    provider = SerpPlacesProvider(api_key="test")
    with patch.object(
        provider, "_get", new_callable=AsyncMock, return_value={"place_results": MOCK_PLACE_RESULT}
    ) as mock_get:
        place = await provider.fetch_details("ChIJ456")
    assert place.name == "兰州牛肉面"
    params = mock_get.call_args.args[0]
    assert params["type"] == "place"
    assert params["place_id"] == "ChIJ456"


@pytest.mark.asyncio
async def test_serpapi_fetch_details_error():
    provider = SerpPlacesProvider(api_key="test")
    with patch.object(provider, "_get", new_callable=AsyncMock, side_effect=Exception("429")):
        assert await provider.fetch_details("ChIJ456") is None


@pytest.mark.asyncio
async def test_searchapi_details_rerun_text_query():
    provider = SearchApiPlacesProvider(api_key="test")
    with patch.object(
        provider,
        "_get",
        new_callable=AsyncMock,
        return_value={"local_results": [{"place_id": "other", "title": "B"}, MOCK_PLACE_RESULT]},
    ) as mock_get:
        place = await provider.fetch_details("ChIJ456", "兰州牛肉面 CDMX")
    assert place.place_id == "ChIJ456"
    assert mock_get.call_args.args[0]["q"] == "兰州牛肉面 CDMX"


@pytest.mark.asyncio
async def test_searchapi_details_without_query():
    provider = SearchApiPlacesProvider(api_key="test")
    with patch.object(provider, "_get", new_callable=AsyncMock) as mock_get:
        assert await provider.fetch_details("ChIJ456") is None
    mock_get.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [None, ["unexpected"], {"local_results": ["X"]}])
async def test_serpapi_find_place_id_malformed_payload(payload):
    provider = SerpPlacesProvider(api_key="test")
    with patch.object(provider, "_get", new_callable=AsyncMock, return_value=payload):
        assert await provider.find_place_id("重庆火锅 Monterrey") == ""


@pytest.mark.asyncio
async def test_serpapi_fetch_details_malformed_payload():
    provider = SerpPlacesProvider(api_key="test")
    with patch.object(provider, "_get", new_callable=AsyncMock, return_value=["unexpected"]):
        assert await provider.fetch_details("X") is None
