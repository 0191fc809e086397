from __future__ import annotations

import logging

from django.conf import settings
from django.contrib.contenttypes.models import ContentType
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver
from guardian.models import UserObjectPermission

from apps.stories.models import Story
from identity.models import Profile

logger = logging.getLogger(__name__)


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_profile_on_signup(sender, instance, created: bool, **kwargs) -> None:
    """Crée le profil à l'inscription (nom affiché = partie locale de l'email par défaut)."""
    if not created or kwargs.get("raw"):
        return
    email = instance.email or ""
    Profile.objects.get_or_create(
        user=instance,
        defaults={
            "email": email,
            "display_name": (email or instance.get_username()).split("@")[0],
        },
    )


@receiver(post_delete, sender=Story)
def purge_story_object_permissions(sender, instance: Story, **kwargs) -> None:
    """Les permissions objet django-guardian ne suivent pas la cascade SQL."""
    content_type = ContentType.objects.get_for_model(Story)
    deleted, _ = UserObjectPermission.objects.filter(
        content_type=content_type, object_pk=str(instance.pk)
    ).delete()
    if deleted:
        logger.debug("Permissions objet purgées pour la story %s (%s)", instance.pk, deleted)
