"""Shared page chrome: the head, header and footer partials from ``site/partials``."""

import logging
from dataclasses import dataclass
from pathlib import Path

from app.errors import TemplateMissingError
from app.views.html import escape

logger = logging.getLogger(__name__)

PARTIAL_NAMES = ("head", "header", "footer")


@dataclass(frozen=True)
class SiteLayout:
    head: str
    header: str
    footer: str

    @classmethod
    def load(cls, site_dir: Path) -> "SiteLayout":
        """Read the partials fresh from disk; a missing one is a TemplateMissingError."""
        parts = {}
        for name in PARTIAL_NAMES:
            path = Path(site_dir) / "partials" / f"{name}.html"
            try:
                parts[name] = path.read_text(encoding="utf-8").strip()
            except OSError as exc:
                logger.error("Page partial unavailable: %s (%s)", path, exc)
                raise TemplateMissingError(f"partials/{name}.html") from exc
        return cls(**parts)

    def render_document(
        self,
        *,
        title: str,
        body: str,
        body_class: str = "",
        extra_head: str = "",
        scripts: str = "",
    ) -> str:
        head = "\n".join(part for part in (self.head, extra_head) if part)
        class_attr = f' class="{escape(body_class)}"' if body_class else ""
        return (
            "<!DOCTYPE html>\n"
            '<html lang="zh-CN">\n'
            "<head>\n"
            f"<title>{escape(title)}</title>\n"
            f"{head}\n"
            "</head>\n"
            f"<body{class_attr}>\n"
            f"{self.header}\n"
            f"<main>\n{body}\n</main>\n"
            f"{self.footer}\n"
            f"{scripts}"
            "</body>\n"
            "</html>\n"
        )
