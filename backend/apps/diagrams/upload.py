from __future__ import annotations

import io
from typing import Optional

from django.conf import settings
from PIL import Image, UnidentifiedImageError

from .renderer import to_data_url

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
PNG_MIME = "image/png"


class DiagramUploadError(Exception):
    """Fichier de diagramme refusé."""


def max_upload_bytes() -> int:
    return int(getattr(settings, "STORIES_CONFIG", {}).get("diagram_max_bytes", 10 * 1024 * 1024))


def validate_png_upload(uploaded_file) -> bytes:
    """Vérifie type MIME, signature et taille puis renvoie le contenu PNG."""
    if uploaded_file is None:
        raise DiagramUploadError("Aucun fichier fourni.")

    content_type: Optional[str] = getattr(uploaded_file, "content_type", None)
    if content_type != PNG_MIME:
        raise DiagramUploadError(
            "Type de fichier invalide : seuls les fichiers PNG sont acceptés pour les diagrammes."
        )

    limit = max_upload_bytes()
    if uploaded_file.size > limit:
        raise DiagramUploadError(
            f"Fichier trop volumineux : le PNG doit faire moins de {limit // (1024 * 1024)} Mo."
        )

    data = uploaded_file.read()
    if not data.startswith(PNG_SIGNATURE):
        raise DiagramUploadError("Le contenu du fichier n'est pas un PNG valide.")

    try:
        with Image.open(io.BytesIO(data)) as image:
            image.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise DiagramUploadError("Le contenu du fichier n'est pas un PNG valide.") from exc
    return data


def upload_to_data_url(uploaded_file) -> str:
    return to_data_url(validate_png_upload(uploaded_file))
