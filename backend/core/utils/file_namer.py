from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from datetime import date
from typing import Dict, Optional


_NON_ALNUM = re.compile(r"[^A-Z0-9_]+")
_UNDERSCORE = re.compile(r"_+")
MAX_DETAIL_LENGTH = 40


def _normalize(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value)
    ascii_only = normalized.encode("ascii", "ignore").decode("ascii")
    replaced = ascii_only.replace(" ", "_").upper()
    cleaned = _NON_ALNUM.sub("_", replaced)
    collapsed = _UNDERSCORE.sub("_", cleaned).strip("_")
    return collapsed


@dataclass(frozen=True)
class FileNamingResult:
    filename: str
    content_type: str


class FileNamer:
    """Génère les noms des fichiers téléchargés (diagrammes de kill chain)."""

    CONTENT_TYPES = {"png": "image/png"}

    def generate(
        self,
        *,
        doc_type: str,
        reference: str,
        detail: str,
        extension: str = "png",
        issued_on: Optional[date] = None,
    ) -> FileNamingResult:
        issued_on = issued_on or date.today()
        detail_part = _normalize(detail)[:MAX_DETAIL_LENGTH].strip("_") or "SANS_TITRE"
        parts = [
            issued_on.strftime("%Y_%m%d"),
            _normalize(doc_type),
            _normalize(reference),
            detail_part,
        ]
        extension = _normalize(extension).lower()
        filename = f"{'_'.join(part for part in parts if part)}.{extension}"
        return FileNamingResult(
            filename=filename,
            content_type=self.CONTENT_TYPES.get(extension, "application/octet-stream"),
        )

    def for_story_diagram(self, story, *, issued_on: Optional[date] = None) -> FileNamingResult:
        return self.generate(
            doc_type="KILLCHAIN",
            reference=str(story.pk).split("-")[0],
            detail=story.title,
            issued_on=issued_on,
        )

    @staticmethod
    def examples() -> Dict[str, str]:
        """Exemples de noms de fichiers."""
        return {
            "KILLCHAIN": "2026_1017_KILLCHAIN_3F2A9C1B_PHISHING_CAMPAIGN_ACME.png",
        }
