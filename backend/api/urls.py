from __future__ import annotations

from django.urls import include, path
from drf_yasg import openapi
from drf_yasg.views import get_schema_view
from rest_framework import permissions
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from .admin_views import AdminStoriesViewSet, AdminUsersViewSet, AuditLogViewSet
from .auth import change_password, session, sign_in, sign_out, sign_up, update_profile
from .diagram_views import diagram_templates, generate_diagram, story_diagram, upload_diagram
from .stories_views import StoriesViewSet, dashboard, quick_create_tag
from .viewsets import BusinessVerticalViewSet, TagViewSet, UserRoleViewSet

router = DefaultRouter()
router.register(r"stories", StoriesViewSet, basename="stories")
router.register(r"tags", TagViewSet, basename="tags")
router.register(r"verticals", BusinessVerticalViewSet, basename="verticals")
router.register(r"user-roles", UserRoleViewSet, basename="user-roles")
router.register(r"admin/users", AdminUsersViewSet, basename="admin-users")
router.register(r"admin/stories", AdminStoriesViewSet, basename="admin-stories")
router.register(r"admin/audit-logs", AuditLogViewSet, basename="admin-audit-logs")

schema_view = get_schema_view(
    openapi.Info(
        title="Pentest Stories API",
        default_version="v1",
        description="Retours d'expérience de tests d'intrusion (stories, tags, secteurs, administration).",
    ),
    public=True,
    permission_classes=[permissions.AllowAny],
)

urlpatterns = [
    path("auth/sign-in/", sign_in, name="sign-in"),
    path("auth/sign-up/", sign_up, name="sign-up"),
    path("auth/sign-out/", sign_out, name="sign-out"),
    path("auth/session/", session, name="session"),
    path("auth/profile/", update_profile, name="update-profile"),
    path("auth/change-password/", change_password, name="change-password"),
    path("auth/refresh/", TokenRefreshView.as_view(), name="token-refresh"),
    path("dashboard/", dashboard, name="dashboard"),
    path("tags/quick-create/", quick_create_tag, name="tags-quick-create"),
    path("diagrams/templates/", diagram_templates, name="diagram-templates"),
    path(
        "stories/<uuid:story_id>/diagram/generate/",
        generate_diagram,
        name="story-diagram-generate",
    ),
    path(
        "stories/<uuid:story_id>/diagram/upload/",
        upload_diagram,
        name="story-diagram-upload",
    ),
    path("stories/<uuid:story_id>/diagram/", story_diagram, name="story-diagram"),
    path("swagger/", schema_view.with_ui("swagger", cache_timeout=0), name="swagger-ui"),
    path("redoc/", schema_view.with_ui("redoc", cache_timeout=0), name="redoc"),
    path("", include(router.urls)),
]
