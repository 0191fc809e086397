from __future__ import annotations

import logging
import random
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from django.conf import settings
from django.db import IntegrityError, transaction
from guardian.shortcuts import assign_perm

from apps.stories.models import BusinessVertical, Story, StoryTag, Tag

logger = logging.getLogger(__name__)

TAG_PALETTE = (
    "#ef4444",
    "#f97316",
    "#eab308",
    "#22c55e",
    "#06b6d4",
    "#3b82f6",
    "#8b5cf6",
    "#ec4899",
    "#10b981",
    "#6366f1",
)

_SUSPICIOUS_PATTERNS = (
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
    re.compile(r"data:text/html", re.IGNORECASE),
)
_SCRIPT_BLOCK = re.compile(
    r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE
)
_JS_PROTOCOL = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_HANDLER = re.compile(r"on\w+\s*=", re.IGNORECASE)

OWNER_PERMISSIONS = ("stories.change_story", "stories.delete_story")


class StoryValidationError(Exception):
    """Saisie refusée avant toute écriture."""


class TagAlreadyExistsError(Exception):
    def __init__(self, tag: Tag):
        super().__init__(f"Le tag « {tag.name} » existe déjà.")
        self.tag = tag


@dataclass
class StoryInput:
    title: str
    content: str
    business_vertical_id: Optional[str] = None
    region: str = ""
    tag_ids: List[str] = field(default_factory=list)


def _limits() -> tuple[int, int]:
    config = getattr(settings, "STORIES_CONFIG", {})
    return (
        int(config.get("title_max_length", 200)),
        int(config.get("content_max_length", 50_000)),
    )


def validate_story_input(title: str, content: str) -> None:
    title_max, content_max = _limits()
    trimmed_title = (title or "").strip()
    trimmed_content = (content or "").strip()

    if not trimmed_title or not trimmed_content:
        raise StoryValidationError("Le titre et le contenu sont obligatoires.")
    if len(trimmed_title) > title_max:
        raise StoryValidationError(
            f"Le titre doit contenir entre 1 et {title_max} caractères."
        )
    if len(trimmed_content) > content_max:
        limit = f"{content_max:,}".replace(",", " ")
        raise StoryValidationError(
            f"Le contenu doit contenir entre 1 et {limit} caractères."
        )
    for pattern in _SUSPICIOUS_PATTERNS:
        if pattern.search(trimmed_title) or pattern.search(trimmed_content):
            raise StoryValidationError("Caractères non autorisés détectés dans la saisie.")


def sanitize_input(value: str) -> str:
    """Retire balises script, protocole javascript: et gestionnaires d'évènements."""
    cleaned = _SCRIPT_BLOCK.sub("", value or "")
    cleaned = _JS_PROTOCOL.sub("", cleaned)
    cleaned = _EVENT_HANDLER.sub("", cleaned)
    return cleaned.strip()


def _resolve_tags(tag_ids: Iterable[str]) -> List[Tag]:
    wanted = {str(tag_id) for tag_id in tag_ids if tag_id}
    if not wanted:
        return []
    tags = list(Tag.objects.filter(id__in=wanted))
    if len(tags) != len(wanted):
        found = {str(tag.id) for tag in tags}
        missing = sorted(wanted - found)
        raise StoryValidationError(f"Tags inconnus: {', '.join(missing)}")
    return tags


def _resolve_vertical(vertical_id: Optional[str]) -> Optional[BusinessVertical]:
    if not vertical_id:
        return None
    vertical = BusinessVertical.objects.filter(id=vertical_id).first()
    if vertical is None:
        raise StoryValidationError("Secteur d'activité inconnu.")
    return vertical


def _resolve_region(region: str) -> str:
    region = (region or "").strip().upper()
    if region and region not in Story.Region.values:
        raise StoryValidationError(f"Région inconnue: {region}")
    return region


def replace_story_tags(story: Story, tags: Sequence[Tag]) -> None:
    """Remplacement complet : suppression de toutes les associations puis insertion."""
    StoryTag.objects.filter(story=story).delete()
    StoryTag.objects.bulk_create([StoryTag(story=story, tag=tag) for tag in tags])


def save_story(*, author, data: StoryInput, story: Optional[Story] = None) -> Story:
    """Crée ou met à jour une story puis remplace l'ensemble de ses tags."""
    validate_story_input(data.title, data.content)
    tags = _resolve_tags(data.tag_ids)
    vertical = _resolve_vertical(data.business_vertical_id)
    region = _resolve_region(data.region)

    with transaction.atomic():
        created = story is None
        if created:
            story = Story(author=author)
        story.title = sanitize_input(data.title)
        story.content = sanitize_input(data.content)
        story.business_vertical = vertical
        story.region = region
        story.save()
        replace_story_tags(story, tags)

        if created:
            for perm in OWNER_PERMISSIONS:
                assign_perm(perm, author, story)

    logger.info(
        "Story %s %s par %s (%s tags)",
        story.pk,
        "créée" if created else "mise à jour",
        getattr(author, "pk", None),
        len(tags),
    )
    return story


def create_adhoc_tag(name: str) -> Tag:
    """
    Création d'un tag à la volée depuis le formulaire d'écriture.

    Un nom déjà présent (sans tenir compte de la casse) est refusé plutôt que
    réutilisé silencieusement.
    """
    name = (name or "").strip()
    if not name:
        raise StoryValidationError("Le nom du tag est obligatoire.")
    if len(name) > Tag._meta.get_field("name").max_length:
        raise StoryValidationError("Nom de tag trop long.")

    existing = Tag.objects.filter(name__iexact=name).first()
    if existing is not None:
        raise TagAlreadyExistsError(existing)

    try:
        with transaction.atomic():
            return Tag.objects.create(name=name, color=random.choice(TAG_PALETTE))
    except IntegrityError as exc:
        existing = Tag.objects.filter(name__iexact=name).first()
        if existing is not None:
            raise TagAlreadyExistsError(existing) from exc
        raise
