from __future__ import annotations

import json

from django.contrib.auth import get_user_model
from rest_framework import serializers

from apps.stories.authoring import StoryInput
from apps.stories.models import BusinessVertical, Story, Tag
from identity.models import AuditLog, Profile, UserRole


class ProfileSerializer(serializers.ModelSerializer):
    business_vertical_name = serializers.CharField(
        source="business_vertical.name", read_only=True, default=None
    )

    class Meta:
        model = Profile
        fields = (
            "id",
            "user",
            "display_name",
            "email",
            "department",
            "business_vertical",
            "business_vertical_name",
            "status",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("id", "user", "email", "status", "created_at", "updated_at")


class ProfileUpdateSerializer(serializers.ModelSerializer):
    """Champs modifiables par l'utilisateur lui-même."""

    class Meta:
        model = Profile
        fields = ("display_name", "department", "business_vertical")


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = get_user_model()
        fields = ("id", "email", "last_login", "date_joined")


class SignInSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(trim_whitespace=False)


class SignUpSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(trim_whitespace=False)
    display_name = serializers.CharField(required=False, allow_blank=True, max_length=150)


class ChangePasswordSerializer(serializers.Serializer):
    current_password = serializers.CharField(trim_whitespace=False)
    new_password = serializers.CharField(trim_whitespace=False)


class TagSerializer(serializers.ModelSerializer):
    class Meta:
        model = Tag
        fields = ("id", "name", "color", "created_at")
        read_only_fields = ("id", "created_at")

    def validate_name(self, value: str) -> str:
        value = value.strip()
        queryset = Tag.objects.filter(name__iexact=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError("Ce tag existe déjà.")
        return value


class QuickTagSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=64)


class BusinessVerticalSerializer(serializers.ModelSerializer):
    story_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = BusinessVertical
        fields = ("id", "name", "description", "story_count", "created_at", "updated_at")
        read_only_fields = ("id", "created_at", "updated_at")


class TagRefSerializer(serializers.Serializer):
    id = serializers.CharField()
    name = serializers.CharField()
    color = serializers.CharField()


class StoryRowSerializer(serializers.Serializer):
    """Sérialise une ligne dénormalisée de l'annuaire (StoryRow)."""

    id = serializers.CharField()
    title = serializers.CharField()
    content = serializers.CharField()
    author_id = serializers.IntegerField()
    author_name = serializers.CharField()
    author_department = serializers.CharField()
    business_vertical_id = serializers.CharField(allow_null=True)
    business_vertical_name = serializers.CharField(allow_null=True)
    region = serializers.CharField(allow_blank=True)
    diagram_url = serializers.CharField(allow_blank=True)
    has_diagram = serializers.SerializerMethodField()
    tags = TagRefSerializer(many=True)
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()

    def get_has_diagram(self, row) -> bool:
        return bool(row.diagram_url)

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if self.context.get("include_email"):
            data["author_email"] = instance.author_email
        return data


class StoryWriteSerializer(serializers.Serializer):
    """Saisie brute ; la validation métier est faite par apps.stories.authoring."""

    title = serializers.CharField(allow_blank=True, trim_whitespace=False)
    content = serializers.CharField(allow_blank=True, trim_whitespace=False)
    business_vertical = serializers.UUIDField(required=False, allow_null=True)
    region = serializers.ChoiceField(
        choices=Story.Region.choices, required=False, allow_blank=True
    )
    tag_ids = serializers.ListField(child=serializers.UUIDField(), required=False)

    def to_story_input(self, story: Story | None = None) -> StoryInput:
        data = self.validated_data
        if story is not None and self.partial:
            tag_ids = data.get("tag_ids", [tag.pk for tag in story.tags.all()])
            vertical = data.get("business_vertical", story.business_vertical_id)
            return StoryInput(
                title=data.get("title", story.title),
                content=data.get("content", story.content),
                business_vertical_id=str(vertical) if vertical else None,
                region=data.get("region", story.region),
                tag_ids=[str(tag_id) for tag_id in tag_ids],
            )
        vertical = data.get("business_vertical")
        return StoryInput(
            title=data.get("title", ""),
            content=data.get("content", ""),
            business_vertical_id=str(vertical) if vertical else None,
            region=data.get("region", ""),
            tag_ids=[str(tag_id) for tag_id in data.get("tag_ids", [])],
        )


class UserRoleSerializer(serializers.ModelSerializer):
    email = serializers.EmailField(source="user.email", read_only=True)

    class Meta:
        model = UserRole
        fields = ("id", "user", "email", "role", "created_at")
        read_only_fields = fields


class AdminUserSerializer(serializers.ModelSerializer):
    """Profil + rôle résolu (absence de ligne user_roles ⇒ "user")."""

    role = serializers.SerializerMethodField()
    is_admin = serializers.SerializerMethodField()

    class Meta:
        model = Profile
        fields = (
            "id",
            "user",
            "display_name",
            "email",
            "department",
            "business_vertical",
            "status",
            "role",
            "is_admin",
            "created_at",
        )
        read_only_fields = fields

    def get_role(self, obj: Profile) -> str:
        user_role = getattr(obj.user, "user_role", None)
        return user_role.role if user_role else UserRole.Role.USER

    def get_is_admin(self, obj: Profile) -> bool:
        return self.get_role(obj) == UserRole.Role.ADMIN


class PromoteByEmailSerializer(serializers.Serializer):
    email = serializers.CharField(allow_blank=True)


class AuditLogSerializer(serializers.ModelSerializer):
    actor_email = serializers.SerializerMethodField()
    old_values_pretty = serializers.SerializerMethodField()
    new_values_pretty = serializers.SerializerMethodField()

    class Meta:
        model = AuditLog
        fields = (
            "id",
            "actor",
            "actor_email",
            "action",
            "table_name",
            "record_id",
            "old_values",
            "new_values",
            "old_values_pretty",
            "new_values_pretty",
            "ip_address",
            "user_agent",
            "created_at",
        )
        read_only_fields = fields

    def get_actor_email(self, obj: AuditLog):
        return obj.actor.email if obj.actor else None

    @staticmethod
    def _pretty(values):
        if values is None:
            return None
        return json.dumps(values, indent=2, ensure_ascii=False, sort_keys=True)

    def get_old_values_pretty(self, obj: AuditLog):
        return self._pretty(obj.old_values)

    def get_new_values_pretty(self, obj: AuditLog):
        return self._pretty(obj.new_values)


class DiagramGenerateSerializer(serializers.Serializer):
    template = serializers.CharField(required=False, allow_blank=True)
    mode = serializers.ChoiceField(choices=("render", "stock"), default="render")


class PasswordResetFunctionSerializer(serializers.Serializer):
    userId = serializers.CharField()
    newPassword = serializers.CharField(trim_whitespace=False)
