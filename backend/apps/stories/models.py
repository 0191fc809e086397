from __future__ import annotations

import uuid

from auditlog.registry import auditlog
from django.conf import settings
from django.db import models
from django.db.models.functions import Lower


class BusinessVertical(models.Model):
    """BUSINESS_VERTICAL - Secteur d'activité rattachable à une story."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=150, unique=True)
    description = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "business_verticals"
        ordering = ("name",)

    def __str__(self) -> str:
        return self.name


class Tag(models.Model):
    """TAG - Étiquette courte, unique sans tenir compte de la casse."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=64, unique=True)
    color = models.CharField(max_length=7, default="#3b82f6")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "tags"
        ordering = ("name",)
        constraints = [
            models.UniqueConstraint(Lower("name"), name="tags_name_ci_unique"),
        ]

    def __str__(self) -> str:
        return self.name


class Story(models.Model):
    """STORY - Récit de pentest rédigé par un utilisateur."""

    class Region(models.TextChoices):
        AMER = "AMER", "AMER"
        EMEA = "EMEA", "EMEA"
        APAC = "APAC", "APAC"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=200)
    content = models.TextField()
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="stories"
    )
    business_vertical = models.ForeignKey(
        BusinessVertical,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stories",
    )
    region = models.CharField(max_length=8, choices=Region.choices, blank=True)
    diagram_url = models.TextField(blank=True)
    tags = models.ManyToManyField(Tag, through="StoryTag", related_name="stories")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "stories"
        ordering = ("-created_at",)

    def __str__(self) -> str:
        return self.title


class StoryTag(models.Model):
    """STORY_TAG - Association story / tag, remplacée en bloc à chaque édition."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    story = models.ForeignKey(Story, on_delete=models.CASCADE, related_name="story_tags")
    tag = models.ForeignKey(Tag, on_delete=models.CASCADE, related_name="story_tags")

    class Meta:
        db_table = "story_tags"
        unique_together = ("story", "tag")

    def __str__(self) -> str:
        return f"{self.story_id} -> {self.tag_id}"


auditlog.register(BusinessVertical)
auditlog.register(Tag)
auditlog.register(Story, exclude_fields=["diagram_url"])
