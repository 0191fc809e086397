from __future__ import annotations

from django.contrib import admin
from guardian.admin import GuardedModelAdmin

from .models import BusinessVertical, Story, StoryTag, Tag


class StoryTagInline(admin.TabularInline):
    model = StoryTag
    extra = 0
    autocomplete_fields = ("tag",)


@admin.register(Story)
class StoryAdmin(GuardedModelAdmin):
    list_display = ("title", "author", "business_vertical", "region", "created_at")
    search_fields = ("title", "content", "author__email", "author__profile__display_name")
    list_filter = ("region", "business_vertical")
    readonly_fields = ("created_at", "updated_at")
    inlines = (StoryTagInline,)


@admin.register(Tag)
class TagAdmin(admin.ModelAdmin):
    list_display = ("name", "color", "created_at")
    search_fields = ("name",)


@admin.register(BusinessVertical)
class BusinessVerticalAdmin(admin.ModelAdmin):
    list_display = ("name", "description", "updated_at")
    search_fields = ("name",)
