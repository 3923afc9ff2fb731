# backend/urls.py
"""
PROJECT URLS

The pricing / reservation engine is a service layer with no HTTP surface of
its own. Only the Django admin is routed here (read-mostly views of stock,
movements and invoices).

Security hardening:
- Admin path configurable via ADMIN_PATH setting.
"""

from __future__ import annotations

from django.conf import settings
from django.contrib import admin
from django.urls import path

ADMIN_PATH = getattr(settings, "ADMIN_PATH", "admin/")
if not ADMIN_PATH.endswith("/"):
    ADMIN_PATH = f"{ADMIN_PATH}/"

urlpatterns = [
    path(ADMIN_PATH, admin.site.urls),
]
