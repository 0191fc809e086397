"""Tests pour apps/stories/authoring.py et l'écriture via /api/stories/"""
import pytest
from django.contrib.auth.models import User
from rest_framework import status
from rest_framework.test import APIClient

from apps.stories.authoring import (
    TAG_PALETTE,
    StoryInput,
    StoryValidationError,
    TagAlreadyExistsError,
    create_adhoc_tag,
    sanitize_input,
    save_story,
    validate_story_input,
)
from apps.stories.models import Story, StoryTag, Tag
from identity.models import UserRole


class TestValidateStoryInput:
    """Bornes de longueur et contenu suspect"""

    def test_boundaries_accepted(self):
        validate_story_input("t" * 200, "c" * 50_000)

    def test_title_too_long(self):
        with pytest.raises(StoryValidationError):
            validate_story_input("t" * 201, "contenu")

    def test_content_too_long(self):
        with pytest.raises(StoryValidationError) as excinfo:
            validate_story_input("titre", "c" * 50_001)
        assert "50 000" in str(excinfo.value)

    def test_length_measured_after_trim(self):
        validate_story_input("  " + "t" * 200 + "  ", "contenu")

    def test_empty_after_trim(self):
        with pytest.raises(StoryValidationError):
            validate_story_input("   ", "contenu")

    @pytest.mark.parametrize(
        "payload",
        [
            "<script>alert(1)</script>",
            "<a href='JavaScript:alert(1)'>x</a>",
            "<img src=x onerror=alert(1)>",
            "data:text/html;base64,PHNjcmlwdD4=",
        ],
    )
    def test_suspicious_patterns_rejected(self, payload):
        with pytest.raises(StoryValidationError):
            validate_story_input(payload, "contenu")
        with pytest.raises(StoryValidationError):
            validate_story_input("titre", f"Compte rendu\n{payload}\nfin")

    def test_sanitize_input(self):
        assert sanitize_input("  ok <script>x</script> fin ") == "ok  fin"
        assert "javascript:" not in sanitize_input("javascript:alert(1)")


@pytest.mark.django_db
class TestSaveStory:
    """Enregistrement et remplacement complet des tags"""

    def setup_method(self):
        self.author = User.objects.create_user(username="alice@pentest.local", email="alice@pentest.local")
        self.tag_a = Tag.objects.create(name="A")
        self.tag_b = Tag.objects.create(name="B")
        self.tag_c = Tag.objects.create(name="C")

    def test_full_replace_tags(self):
        """{A,B} modifié en {B,C} donne exactement {B,C}"""
        story = save_story(
            author=self.author,
            data=StoryInput(
                title="Story", content="Contenu", tag_ids=[str(self.tag_a.id), str(self.tag_b.id)]
            ),
        )
        save_story(
            author=self.author,
            data=StoryInput(
                title="Story", content="Contenu", tag_ids=[str(self.tag_b.id), str(self.tag_c.id)]
            ),
            story=story,
        )
        names = set(StoryTag.objects.filter(story=story).values_list("tag__name", flat=True))
        assert names == {"B", "C"}

    def test_unknown_tag_rejected_without_write(self):
        with pytest.raises(StoryValidationError):
            save_story(
                author=self.author,
                data=StoryInput(
                    title="Story",
                    content="Contenu",
                    tag_ids=["00000000-0000-0000-0000-000000000000"],
                ),
            )
        assert Story.objects.count() == 0

    def test_script_title_never_stored(self):
        with pytest.raises(StoryValidationError):
            save_story(
                author=self.author,
                data=StoryInput(title="<script>alert(1)</script>", content="Contenu"),
            )
        assert not Story.objects.filter(title__icontains="script").exists()

    def test_owner_gets_object_permissions(self):
        story = save_story(author=self.author, data=StoryInput(title="Story", content="Contenu"))
        author = User.objects.get(pk=self.author.pk)
        assert author.has_perm("stories.change_story", story)
        assert author.has_perm("stories.delete_story", story)

    def test_unknown_region_rejected(self):
        with pytest.raises(StoryValidationError):
            save_story(
                author=self.author,
                data=StoryInput(title="Story", content="Contenu", region="MARS"),
            )


@pytest.mark.django_db
class TestAdhocTag:
    """Création de tag à la volée"""

    def test_create_with_palette_color(self):
        tag = create_adhoc_tag("  Cloud  ")
        assert tag.name == "Cloud"
        assert tag.color in TAG_PALETTE

    def test_duplicate_case_insensitive(self):
        existing = Tag.objects.create(name="Phishing")
        with pytest.raises(TagAlreadyExistsError) as excinfo:
            create_adhoc_tag("PHISHING")
        assert excinfo.value.tag == existing
        assert Tag.objects.count() == 1

    def test_quick_create_endpoint_conflict(self):
        user = User.objects.create_user(username="bob@pentest.local", email="bob@pentest.local")
        client = APIClient()
        client.force_authenticate(user=user)
        Tag.objects.create(name="Wireless")
        response = client.post("/api/tags/quick-create/", {"name": "wireless"}, format="json")
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["detail"] == "Ce tag existe déjà."

    def test_quick_create_endpoint_success(self):
        user = User.objects.create_user(username="bob@pentest.local", email="bob@pentest.local")
        client = APIClient()
        client.force_authenticate(user=user)
        response = client.post("/api/tags/quick-create/", {"name": "Red Team"}, format="json")
        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["name"] == "Red Team"


@pytest.mark.django_db
class TestStoryWriteEndpoints:
    """Création, modification et suppression via l'API"""

    def setup_method(self):
        self.client = APIClient()
        self.author = User.objects.create_user(username="alice@pentest.local", email="alice@pentest.local")
        self.other = User.objects.create_user(username="eve@pentest.local", email="eve@pentest.local")
        self.admin = User.objects.create_user(username="admin@pentest.local", email="admin@pentest.local")
        UserRole.objects.create(user=self.admin, role=UserRole.Role.ADMIN)
        self.tag = Tag.objects.create(name="Web App")

    def _create(self):
        self.client.force_authenticate(user=self.author)
        response = self.client.post(
            "/api/stories/",
            {"title": "IDOR", "content": "Contenu", "tag_ids": [str(self.tag.id)], "region": "EMEA"},
            format="json",
        )
        assert response.status_code == status.HTTP_201_CREATED
        return response.data["id"]

    def test_create(self):
        story_id = self._create()
        story = Story.objects.get(pk=story_id)
        assert story.author == self.author
        assert list(story.tags.values_list("name", flat=True)) == ["Web App"]

    def test_create_title_too_long(self):
        self.client.force_authenticate(user=self.author)
        response = self.client.post(
            "/api/stories/", {"title": "t" * 201, "content": "Contenu"}, format="json"
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert Story.objects.count() == 0

    def test_partial_update_keeps_tags(self):
        story_id = self._create()
        response = self.client.patch(
            f"/api/stories/{story_id}/", {"title": "IDOR v2"}, format="json"
        )
        assert response.status_code == status.HTTP_200_OK
        story = Story.objects.get(pk=story_id)
        assert story.title == "IDOR v2"
        assert story.tags.count() == 1

    def test_other_user_cannot_edit_or_delete(self):
        story_id = self._create()
        self.client.force_authenticate(user=self.other)
        response = self.client.patch(f"/api/stories/{story_id}/", {"title": "x"}, format="json")
        assert response.status_code == status.HTTP_403_FORBIDDEN
        response = self.client.delete(f"/api/stories/{story_id}/")
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_admin_can_edit(self):
        story_id = self._create()
        self.client.force_authenticate(user=self.admin)
        response = self.client.patch(f"/api/stories/{story_id}/", {"content": "Revu"}, format="json")
        assert response.status_code == status.HTTP_200_OK
        assert Story.objects.get(pk=story_id).author == self.author

    def test_author_delete_cascades_tags(self):
        story_id = self._create()
        response = self.client.delete(f"/api/stories/{story_id}/")
        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not StoryTag.objects.filter(story_id=story_id).exists()

    @pytest.mark.parametrize(
        "diagram_url",
        [
            "javascript:alert(1)",
            "data:text/html,<script>alert(1)</script>",
            "data:image/png;base64,!!notpng",
        ],
    )
    def test_diagram_url_not_writable_on_create(self, diagram_url):
        """Le diagramme ne passe que par /diagram/generate/ et /diagram/upload/"""
        self.client.force_authenticate(user=self.author)
        response = self.client.post(
            "/api/stories/",
            {"title": "T", "content": "C", "diagram_url": diagram_url},
            format="json",
        )
        assert response.status_code == status.HTTP_201_CREATED
        story = Story.objects.get(pk=response.data["id"])
        assert story.diagram_url == ""
        assert response.data["has_diagram"] is False

    def test_diagram_url_not_writable_on_update(self):
        story_id = self._create()
        Story.objects.filter(pk=story_id).update(diagram_url="https://example.com/kc.png")
        response = self.client.patch(
            f"/api/stories/{story_id}/",
            {"title": "IDOR v2", "diagram_url": "javascript:alert(1)"},
            format="json",
        )
        assert response.status_code == status.HTTP_200_OK
        story = Story.objects.get(pk=story_id)
        assert story.title == "IDOR v2"
        assert story.diagram_url == "https://example.com/kc.png"

    def test_suspicious_content_rejected_by_endpoint(self):
        self.client.force_authenticate(user=self.author)
        response = self.client.post(
            "/api/stories/",
            {"title": "Titre", "content": "<img src=x onerror=alert(1)>"},
            format="json",
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert Story.objects.count() == 0
