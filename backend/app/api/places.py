from fastapi import APIRouter
from fastapi.responses import PlainTextResponse, Response

from app.dependencies import Places

router = APIRouter(prefix="/api/place-photo", tags=["places"])

PHOTO_CACHE_CONTROL = "public, max-age=86400"


async def _photo_response(places: Places, place_id: str, index: int) -> Response:
    photo = await places.fetch_place_photo(place_id.strip(), max(index, 0))
    if photo is None:
        return PlainTextResponse("Not found", status_code=404)
    return Response(
        content=photo.content,
        media_type=photo.content_type or "image/jpeg",
        headers={"Cache-Control": PHOTO_CACHE_CONTROL},
    )


@router.get("/{place_id}")
async def place_photo(place_id: str, places: Places) -> Response:
    return await _photo_response(places, place_id, 0)


@router.get("/{place_id}/{index}")
async def place_photo_at(place_id: str, index: str, places: Places) -> Response:
    """Photo ``index`` of a place; a non-numeric index means the first photo."""
    try:
        position = int(index)
    except ValueError:
        position = 0
    return await _photo_response(places, place_id, position)
