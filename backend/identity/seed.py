from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from django.contrib.auth import get_user_model
from django.db import transaction

from apps.stories.authoring import StoryInput, save_story
from apps.stories.models import BusinessVertical, Story, Tag
from identity.models import Profile, UserRole

logger = logging.getLogger(__name__)


DEMO_USERS = [
    {
        "email": "admin@pentest-stories.local",
        "password": "Adm1n-Stories!",
        "display_name": "Admin Sécurité",
        "department": "Red Team",
        "role": UserRole.Role.ADMIN,
        "vertical": "Finance",
    },
    {
        "email": "alice.martin@pentest-stories.local",
        "password": "Al1ce-Pentest!",
        "display_name": "Alice Martin",
        "department": "Audit applicatif",
        "role": UserRole.Role.USER,
        "vertical": "Santé",
    },
    {
        "email": "karim.benali@pentest-stories.local",
        "password": "K4rim-Pentest!",
        "display_name": "Karim Benali",
        "department": "Tests d'intrusion interne",
        "role": UserRole.Role.USER,
        "vertical": "Industrie",
    },
]

DEMO_TAGS = [
    ("Phishing", "#ef4444"),
    ("Web App", "#3b82f6"),
    ("Wireless", "#06b6d4"),
    ("Internal Pentest", "#8b5cf6"),
    ("Stolen Device", "#f97316"),
    ("Active Directory", "#22c55e"),
]

DEMO_VERTICALS = [
    ("Finance", "Banques, assurances et services de paiement."),
    ("Santé", "Hôpitaux, cliniques et laboratoires."),
    ("Industrie", "Production, OT et chaînes logistiques."),
    ("Commerce", "Distribution et e-commerce."),
]

DEMO_STORIES = [
    {
        "author": "alice.martin@pentest-stories.local",
        "title": "Campagne de phishing ciblée sur le service RH",
        "content": (
            "Un faux portail de recrutement a permis de collecter des identifiants "
            "valides en moins de deux heures. L'absence de MFA sur le webmail a "
            "ouvert l'accès à l'annuaire interne."
        ),
        "tags": ("Phishing",),
        "vertical": "Santé",
        "region": Story.Region.EMEA,
    },
    {
        "author": "karim.benali@pentest-stories.local",
        "title": "Du poste invité au domaine en une journée",
        "content": (
            "Depuis une prise réseau de salle de réunion, un relais NTLM vers un "
            "serveur de fichiers a suffi à obtenir un compte de service, puis les "
            "droits d'administration du domaine."
        ),
        "tags": ("Internal Pentest", "Active Directory"),
        "vertical": "Industrie",
        "region": Story.Region.EMEA,
    },
    {
        "author": "admin@pentest-stories.local",
        "title": "IDOR sur l'API de virement",
        "content": (
            "L'identifiant de bénéficiaire n'était pas contrôlé côté serveur : un "
            "client pouvait consulter et modifier les bénéficiaires d'un autre compte."
        ),
        "tags": ("Web App",),
        "vertical": "Finance",
        "region": Story.Region.AMER,
    },
]


def seed_demo() -> Dict[str, int]:
    """Jeu de démonstration idempotent : comptes, tags, secteurs et stories."""
    with transaction.atomic():
        verticals = {name: _ensure_vertical(name, description) for name, description in DEMO_VERTICALS}
        tags = {name: _ensure_tag(name, color) for name, color in DEMO_TAGS}
        users = {
            entry["email"]: _ensure_user(entry, verticals.get(entry["vertical"]))
            for entry in DEMO_USERS
        }
        created_stories = 0
        for entry in DEMO_STORIES:
            author = users[entry["author"]]
            if Story.objects.filter(author=author, title=entry["title"]).exists():
                continue
            save_story(
                author=author,
                data=StoryInput(
                    title=entry["title"],
                    content=entry["content"],
                    business_vertical_id=str(verticals[entry["vertical"]].pk),
                    region=entry["region"],
                    tag_ids=_tag_ids(tags, entry["tags"]),
                ),
            )
            created_stories += 1

    logger.info("Données de démonstration prêtes (%s nouvelles stories)", created_stories)
    return {
        "users": len(users),
        "tags": len(tags),
        "verticals": len(verticals),
        "stories": created_stories,
    }


def _ensure_vertical(name: str, description: str) -> BusinessVertical:
    vertical, _ = BusinessVertical.objects.get_or_create(
        name=name, defaults={"description": description}
    )
    return vertical


def _ensure_tag(name: str, color: str) -> Tag:
    tag = Tag.objects.filter(name__iexact=name).first()
    if tag is None:
        tag = Tag.objects.create(name=name, color=color)
    return tag


def _tag_ids(tags: Dict[str, Tag], names: Iterable[str]) -> List[str]:
    return [str(tags[name].pk) for name in names]


def _ensure_user(entry: dict, vertical):
    user_model = get_user_model()
    user, created = user_model.objects.get_or_create(
        username=entry["email"], defaults={"email": entry["email"]}
    )
    if created:
        user.set_password(entry["password"])
        user.save(update_fields=["password"])

    Profile.objects.update_or_create(
        user=user,
        defaults={
            "email": entry["email"],
            "display_name": entry["display_name"],
            "department": entry["department"],
            "business_vertical": vertical,
        },
    )
    if entry["role"] == UserRole.Role.ADMIN:
        # Amorçage : aucun admin n'existe encore pour exécuter la promotion.
        UserRole.objects.get_or_create(user=user, defaults={"role": UserRole.Role.ADMIN})
    return user
