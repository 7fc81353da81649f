import json
import logging
import math
import re
from dataclasses import dataclass, field
from pathlib import Path

from app.errors import CompanyDataError

logger = logging.getLogger(__name__)

# Placeholder contact values entered when a company has no real contact
_NO_CONTACT = re.compile(r"未提供|暂无", re.IGNORECASE)


@dataclass
class Company:
    slug: str
    name: str = ""
    summary: str = ""
    city: str = ""
    industry: str = ""
    category: str = ""
    place_id: str = ""
    contact: str = ""
    lat: float | None = None
    lng: float | None = None
    cover: str = ""
    detail: str = ""
    detail_paid: bool = False
    map_query: str = ""
    map_embed: str = ""
    map_link: str = ""
    phone: str = ""
    website: str = ""
    building_place_id: str = ""
    raw: dict = field(default_factory=dict, repr=False)

    @property
    def has_contact(self) -> bool:
        return bool(self.contact) and not _NO_CONTACT.search(self.contact)

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None

    @property
    def lookup_query(self) -> str:
        """Free-text query used to find this company at the places provider."""
        return self.map_query or self.name


def _text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _number(value) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_company(raw: dict) -> Company | None:
    """Build a Company from one JSON record. Records without a slug are unusable."""
    if not isinstance(raw, dict):
        return None
    slug = _text(raw.get("slug"))
    if not slug:
        return None
    return Company(
        slug=slug,
        name=_text(raw.get("name")),
        summary=_text(raw.get("summary")),
        city=_text(raw.get("city")),
        industry=_text(raw.get("industry")),
        category=_text(raw.get("category")),
        place_id=_text(raw.get("placeId") or raw.get("place_id")),
        contact=_text(raw.get("contact")),
        lat=_number(raw.get("lat")),
        lng=_number(raw.get("lng")),
        cover=_text(raw.get("cover")),
        detail=_text(raw.get("detail")),
        detail_paid=bool(raw.get("detailPaid")),
        map_query=_text(raw.get("mapQuery")),
        map_embed=_text(raw.get("mapEmbed")),
        map_link=_text(raw.get("mapLink") or raw.get("mapUrl") or raw.get("map")),
        phone=_text(raw.get("phone")),
        website=_text(raw.get("website")),
        building_place_id=_text(raw.get("buildingPlaceId")),
        raw=raw,
    )


class CompanyStore:
    """Read-only view of the companies JSON file.

    Nothing is kept between calls: every ``load`` parses the file again so
    pages always reflect the file currently on disk.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def load_raw(self) -> list:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.warning("Companies data not found: %s", self.path)
            return []
        except OSError as exc:
            raise CompanyDataError(f"Cannot read {self.path}: {exc}") from exc
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise CompanyDataError(f"Invalid JSON in {self.path}: {exc}") from exc
        if not isinstance(data, list):
            raise CompanyDataError(f"{self.path} must contain a JSON array")
        return data

    def load(self) -> list[Company]:
        companies = []
        for raw in self.load_raw():
            company = parse_company(raw)
            if company is None:
                logger.debug("Skipping company record without slug: %r", raw)
                continue
            companies.append(company)
        return companies

    def find(self, slug: str) -> Company | None:
        for company in self.load():
            if company.slug == slug:
                return company
        return None

    def place_ids(self) -> list[str]:
        """Distinct place ids in first-seen order."""
        seen: dict[str, None] = {}
        for company in self.load():
            if company.place_id:
                seen.setdefault(company.place_id, None)
        return list(seen)

    def save_raw(self, records: list) -> None:
        self.path.write_text(
            json.dumps(records, indent=2, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )
