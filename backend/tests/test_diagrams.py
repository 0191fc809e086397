"""Tests pour apps/diagrams et les endpoints de diagramme"""
import io
from datetime import date

import pytest
from django.contrib.auth.models import User
from django.core.files.uploadedfile import SimpleUploadedFile
from PIL import Image
from rest_framework import status
from rest_framework.test import APIClient

from apps.diagrams.renderer import BoxLayout, from_data_url, render_template, to_data_url
from apps.diagrams.templates import (
    PHASES,
    STOCK_IMAGES,
    KillChainTemplate,
    numbered_phases,
    parse_template,
    template_for_tags,
)
from apps.diagrams.upload import DiagramUploadError, validate_png_upload
from apps.stories.authoring import StoryInput, save_story
from apps.stories.models import Story, Tag
from core.utils.file_namer import FileNamer


def _png_bytes(size=(4, 4)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, "#ff0000").save(buffer, format="PNG")
    return buffer.getvalue()


class TestTemplates:
    """Registre des modèles de kill chain"""

    def test_template_by_tag(self):
        assert template_for_tags(["Web App", "Phishing"]) == KillChainTemplate.PHISHING
        assert template_for_tags(["wireless"]) == KillChainTemplate.WIRELESS
        assert template_for_tags(["Internal Pentest"]) == KillChainTemplate.NETWORK
        assert template_for_tags(["Stolen Device"]) == KillChainTemplate.STOLEN_DEVICE
        assert template_for_tags(["Cloud"]) == KillChainTemplate.GENERIC
        assert template_for_tags([]) == KillChainTemplate.GENERIC

    def test_every_template_has_phases_and_image(self):
        for template in KillChainTemplate:
            assert PHASES[template]
            assert STOCK_IMAGES[template].startswith("https://")

    def test_numbered_phases(self):
        phases = numbered_phases(KillChainTemplate.PHISHING)
        assert phases[0] == "1. Reconnaissance"
        assert len(phases) == 7

    def test_parse_template(self):
        assert parse_template(" WebApp ") == KillChainTemplate.WEBAPP
        with pytest.raises(ValueError):
            parse_template("ransomware")


class TestRenderer:
    """Rendu Pillow"""

    def test_layout_three_per_row(self):
        layout = BoxLayout()
        assert layout.position(0) == (50, 50)
        assert layout.position(2) == (50 + 2 * 160, 50)
        assert layout.position(3) == (50, 50 + 100)

    def test_render_template_is_png_800x600(self):
        png = render_template(KillChainTemplate.GENERIC)
        with Image.open(io.BytesIO(png)) as image:
            assert image.format == "PNG"
            assert image.size == (800, 600)

    def test_data_url_roundtrip(self):
        png = _png_bytes()
        assert from_data_url(to_data_url(png)) == png
        with pytest.raises(ValueError):
            from_data_url("https://example.com/x.png")


class TestUploadValidation:
    """Validation des fichiers PNG importés"""

    def test_valid_png(self):
        data = _png_bytes()
        upload = SimpleUploadedFile("kc.png", data, content_type="image/png")
        assert validate_png_upload(upload) == data

    def test_wrong_mime(self):
        upload = SimpleUploadedFile("kc.jpg", _png_bytes(), content_type="image/jpeg")
        with pytest.raises(DiagramUploadError):
            validate_png_upload(upload)

    def test_png_mime_with_other_content(self):
        upload = SimpleUploadedFile("kc.png", b"GIF89a....", content_type="image/png")
        with pytest.raises(DiagramUploadError):
            validate_png_upload(upload)

    def test_over_ten_megabytes(self):
        data = b"\x89PNG\r\n\x1a\n" + b"\x00" * (10 * 1024 * 1024)
        upload = SimpleUploadedFile("big.png", data, content_type="image/png")
        with pytest.raises(DiagramUploadError) as excinfo:
            validate_png_upload(upload)
        assert "10 Mo" in str(excinfo.value)

    def test_exactly_ten_megabytes_accepted(self):
        """La limite est inclusive : 10 Mio tout juste passent"""
        png = _png_bytes()
        data = png + b"\x00" * (10 * 1024 * 1024 - len(png))
        assert len(data) == 10 * 1024 * 1024
        upload = SimpleUploadedFile("limit.png", data, content_type="image/png")
        assert validate_png_upload(upload) == data

    def test_missing_file(self):
        with pytest.raises(DiagramUploadError):
            validate_png_upload(None)


class TestFileNamer:
    """Noms des fichiers téléchargés"""

    def test_generate(self):
        result = FileNamer().generate(
            doc_type="killchain",
            reference="3f2a9c1b",
            detail="Phishing : campagne été",
            issued_on=date(2026, 10, 17),
        )
        assert result.filename == "2026_1017_KILLCHAIN_3F2A9C1B_PHISHING_CAMPAGNE_ETE.png"
        assert result.content_type == "image/png"

    def test_empty_detail(self):
        result = FileNamer().generate(
            doc_type="killchain", reference="x", detail="???", issued_on=date(2026, 1, 2)
        )
        assert result.filename == "2026_0102_KILLCHAIN_X_SANS_TITRE.png"


@pytest.mark.django_db
class TestDiagramEndpoints:
    """Endpoints /api/stories/<id>/diagram/..."""

    def setup_method(self):
        self.client = APIClient()
        self.author = User.objects.create_user(username="alice@pentest.local", email="alice@pentest.local")
        self.other = User.objects.create_user(username="eve@pentest.local", email="eve@pentest.local")
        phishing = Tag.objects.create(name="Phishing")
        self.story = save_story(
            author=self.author,
            data=StoryInput(title="Campagne RH", content="Contenu", tag_ids=[str(phishing.id)]),
        )
        self.client.force_authenticate(user=self.author)

    def test_templates_listing(self):
        response = self.client.get("/api/diagrams/templates/")
        assert response.status_code == status.HTTP_200_OK
        keys = [entry["key"] for entry in response.data["templates"]]
        assert keys == [template.value for template in KillChainTemplate]

    def test_generate_render_from_tags(self):
        response = self.client.post(
            f"/api/stories/{self.story.id}/diagram/generate/", {"mode": "render"}, format="json"
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.data["template"] == "phishing"
        self.story.refresh_from_db()
        assert self.story.diagram_url.startswith("data:image/png;base64,")

    def test_generate_stock_explicit_template(self):
        response = self.client.post(
            f"/api/stories/{self.story.id}/diagram/generate/",
            {"mode": "stock", "template": "wireless"},
            format="json",
        )
        assert response.status_code == status.HTTP_200_OK
        self.story.refresh_from_db()
        assert self.story.diagram_url == STOCK_IMAGES[KillChainTemplate.WIRELESS]

    def test_generate_unknown_template(self):
        response = self.client.post(
            f"/api/stories/{self.story.id}/diagram/generate/", {"template": "x"}, format="json"
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_upload_png_and_download(self):
        upload = SimpleUploadedFile("kc.png", _png_bytes(), content_type="image/png")
        response = self.client.post(
            f"/api/stories/{self.story.id}/diagram/upload/", {"file": upload}, format="multipart"
        )
        assert response.status_code == status.HTTP_200_OK

        response = self.client.get(f"/api/stories/{self.story.id}/diagram/")
        assert response.status_code == status.HTTP_200_OK
        assert response["Content-Type"] == "image/png"
        assert "KILLCHAIN" in response["Content-Disposition"]
        assert response.content.startswith(b"\x89PNG")

    def test_rejected_upload_leaves_story_unchanged(self):
        Story.objects.filter(pk=self.story.pk).update(diagram_url="https://example.com/old.png")
        upload = SimpleUploadedFile("kc.txt", b"hello", content_type="text/plain")
        response = self.client.post(
            f"/api/stories/{self.story.id}/diagram/upload/", {"file": upload}, format="multipart"
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        self.story.refresh_from_db()
        assert self.story.diagram_url == "https://example.com/old.png"

    def test_oversized_upload_rejected(self, settings):
        settings.STORIES_CONFIG = {**settings.STORIES_CONFIG, "diagram_max_bytes": 16}
        upload = SimpleUploadedFile("kc.png", _png_bytes((64, 64)), content_type="image/png")
        response = self.client.post(
            f"/api/stories/{self.story.id}/diagram/upload/", {"file": upload}, format="multipart"
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        self.story.refresh_from_db()
        assert self.story.diagram_url == ""

    def test_other_user_cannot_change_diagram(self):
        self.client.force_authenticate(user=self.other)
        response = self.client.delete(f"/api/stories/{self.story.id}/diagram/")
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_clear_diagram(self):
        Story.objects.filter(pk=self.story.pk).update(diagram_url=to_data_url(_png_bytes()))
        response = self.client.delete(f"/api/stories/{self.story.id}/diagram/")
        assert response.status_code == status.HTTP_200_OK
        self.story.refresh_from_db()
        assert self.story.diagram_url == ""
        assert self.client.get(f"/api/stories/{self.story.id}/diagram/").status_code == 404
