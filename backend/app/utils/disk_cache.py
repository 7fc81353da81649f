"""Durable place-details cache.

All entries live in one JSON object keyed by place id (by default
``data/place-details.json``). The file is read once per process and kept
resident; every ``put`` is followed by a full rewrite of the file, so when
two writers race the last snapshot written wins. Entries never expire.
"""

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from app.schemas.place import CachedPlace

logger = logging.getLogger(__name__)


class PlaceDetailsDiskCache:
    def __init__(self, path: Path):
        self.path = Path(path)
        self._entries: dict[str, dict] | None = None

    def _load(self) -> dict[str, dict]:
        if self._entries is not None:
            return self._entries
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            data = {}
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Failed to read place details cache %s: %s", self.path, exc)
            data = {}
        self._entries = data if isinstance(data, dict) else {}
        logger.debug("Loaded %d cached place(s) from %s", len(self._entries), self.path)
        return self._entries

    def get(self, place_id: str) -> CachedPlace | None:
        raw = self._load().get(place_id)
        if not isinstance(raw, dict):
            return None
        try:
            return CachedPlace.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Ignoring malformed cached place %s: %s", place_id, exc)
            return None

    def put(self, place_id: str, place: CachedPlace) -> None:
        """Store an entry and rewrite the whole file."""
        self._load()[place_id] = place.to_cache_dict()
        self.save()

    def save(self) -> None:
        if self._entries is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps(self._entries, indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
        except OSError as exc:
            logger.warning("Failed to persist place details cache: %s", exc)

    def find_by_name(self, name: str) -> CachedPlace | None:
        if not name:
            return None
        for place_id, raw in self._load().items():
            if isinstance(raw, dict) and raw.get("name") == name:
                return self.get(place_id)
        return None
