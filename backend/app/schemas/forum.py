from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ForumPostCreate(BaseModel):
    title: str | None = None
    content: str | None = None
    category: str | None = None
    city: str | None = None
    contact: str | None = None
    # Honeypot: hidden from people, filled in by bots
    website: str | None = None


class ForumPostResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    content: str
    category: str | None = None
    city: str | None = None
    contact: str | None = None
    created_at: datetime | None = None
