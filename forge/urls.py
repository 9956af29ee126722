"""URL configuration for Forge.

Public pages are served elsewhere; this project exposes the admin only.
"""

from __future__ import annotations

from django.contrib import admin
from django.urls import path

urlpatterns = [
    path("admin/", admin.site.urls),
]
