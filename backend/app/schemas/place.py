from pydantic import BaseModel, ConfigDict


class LatLng(BaseModel):
    model_config = ConfigDict(extra="allow")

    lat: float
    lng: float


class PlaceGeometry(BaseModel):
    model_config = ConfigDict(extra="allow")

    location: LatLng | None = None


class OpeningHours(BaseModel):
    model_config = ConfigDict(extra="allow")

    open_now: bool | None = None
    weekday_text: list[str] | None = None


class PlacePhoto(BaseModel):
    model_config = ConfigDict(extra="allow")

    photo_reference: str = ""
    width: int | None = None
    height: int | None = None


class CachedPlace(BaseModel):
    """Normalized place details shared by every places provider.

    Unknown provider keys are kept so an entry read from the disk cache
    dumps back to the same JSON it was loaded from.
    """

    model_config = ConfigDict(extra="allow")

    place_id: str = ""
    name: str = ""
    rating: float | None = None
    user_ratings_total: int | None = None
    price_level: int | None = None
    geometry: PlaceGeometry | None = None
    formatted_address: str | None = None
    formatted_phone_number: str | None = None
    opening_hours: OpeningHours | None = None
    photos: list[PlacePhoto] | None = None
    images: list[dict | str] | None = None
    url: str | None = None
    website: str | None = None

    @property
    def location(self) -> LatLng | None:
        return self.geometry.location if self.geometry else None

    @property
    def weekday_text(self) -> list[str]:
        if self.opening_hours and self.opening_hours.weekday_text:
            return self.opening_hours.weekday_text
        return []

    def photo_count(self) -> int:
        return max(len(self.photos or []), len(self.images or []))

    def photo_reference(self, index: int = 0) -> str:
        """Photo reference at ``index``, falling back to the first photo/image."""
        photos = self.photos or []
        images = self.images or []
        photo = photos[index] if index < len(photos) else (photos[0] if photos else None)
        if photo and photo.photo_reference:
            return photo.photo_reference
        for key in ("url", "image", "thumbnail"):
            value = (photo.model_extra or {}).get(key) if photo else None
            if value:
                return str(value)
        image = images[index] if index < len(images) else (images[0] if images else None)
        if isinstance(image, str):
            return image
        if isinstance(image, dict):
            for key in ("image", "url", "thumbnail"):
                if image.get(key):
                    return str(image[key])
        return ""

    def to_cache_dict(self) -> dict:
        return self.model_dump(exclude_none=True)
