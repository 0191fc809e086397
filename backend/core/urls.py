from __future__ import annotations

from django.contrib import admin
from django.urls import include, path

from api.functions import admin_reset_password
from api.health import health

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include("api.urls")),
    path("functions/admin-reset-password/", admin_reset_password, name="admin-reset-password"),
    path("health/", health),
]
