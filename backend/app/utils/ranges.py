import re
from datetime import date

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def clamp_limit(raw, default: int, maximum: int) -> int:
    """Parse a ``limit`` query value; non-positive or invalid values use ``default``."""
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default
    if value <= 0:
        return default
    return min(value, maximum)


def normalize_date_param(raw, today: date | None = None) -> str:
    """A ``YYYY-MM-DD`` string from the query, else today's local date."""
    value = str(raw or "").strip()
    if _ISO_DATE.match(value):
        return value
    return (today or date.today()).isoformat()
