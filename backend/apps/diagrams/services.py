from __future__ import annotations

import logging
from typing import Optional

from apps.stories.models import Story

from .renderer import render_template, to_data_url
from .templates import STOCK_IMAGES, KillChainTemplate, parse_template, template_for_tags
from .upload import upload_to_data_url

logger = logging.getLogger(__name__)

MODE_RENDER = "render"
MODE_STOCK = "stock"


def generate_for_story(
    story: Story, *, template: Optional[str] = None, mode: str = MODE_RENDER
) -> KillChainTemplate:
    """Choisit le modèle (explicite ou déduit des tags) et l'attache à la story."""
    if template:
        chosen = parse_template(template)
    else:
        chosen = template_for_tags(story.tags.values_list("name", flat=True))

    if mode == MODE_STOCK:
        story.diagram_url = STOCK_IMAGES[chosen]
    elif mode == MODE_RENDER:
        story.diagram_url = to_data_url(render_template(chosen))
    else:
        raise ValueError(f"Mode inconnu: {mode!r}")

    story.save(update_fields=["diagram_url", "updated_at"])
    logger.info("Diagramme %s (%s) attaché à la story %s", chosen.value, mode, story.pk)
    return chosen


def attach_upload(story: Story, uploaded_file) -> Story:
    data_url = upload_to_data_url(uploaded_file)
    story.diagram_url = data_url
    story.save(update_fields=["diagram_url", "updated_at"])
    return story


def clear_diagram(story: Story) -> Story:
    story.diagram_url = ""
    story.save(update_fields=["diagram_url", "updated_at"])
    return story
