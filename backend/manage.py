#!/usr/bin/env python
from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import NoReturn

from dotenv import load_dotenv

# .env du répertoire backend chargé avant les settings
BASE_DIR = Path(__file__).resolve().parent
load_dotenv(BASE_DIR / ".env")


def main() -> NoReturn:
    # Sans base distante configurée, SQLite local
    if not os.getenv("USE_SQLITE") and not os.getenv("DATABASE_URL"):
        os.environ["USE_SQLITE"] = "1"
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "core.settings")
    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        raise ImportError(
            "Django est introuvable. Activez l'environnement virtuel puis "
            "installez le projet (pip install -e .)."
        ) from exc
    execute_from_command_line(sys.argv)


if __name__ == "__main__":
    main()
