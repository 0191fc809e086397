from __future__ import annotations

from django.apps import AppConfig


class DiagramsConfig(AppConfig):
    name = "apps.diagrams"
    label = "diagrams"
    verbose_name = "Kill Chain Diagrams"
