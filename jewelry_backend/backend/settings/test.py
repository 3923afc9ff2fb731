# backend/settings/test.py
"""
PATH: backend/settings/test.py

TEST SETTINGS

Used by both runners:
- python manage.py test --settings=backend.settings.test
- pytest (pytest-django reads DJANGO_SETTINGS_MODULE from pyproject.toml)

Notes:
- DATABASE_URL is honoured so the PostgreSQL-only concurrency test can run in CI.
  Without it, tests use in-memory SQLite.
- Fast password hashing; quiet logging.
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import LOGGING, env

DEBUG = False

DATABASES = {
    "default": env.db("DATABASE_URL", default="sqlite://:memory:"),
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

# Keep the engine defaults fixed regardless of a developer's .env
PRICING_DEFAULTS = {
    "LABOR_PERCENTAGE": "10.00",
    "PROFIT_PERCENTAGE": "15.00",
    "TAX_PERCENTAGE": "9.00",
}
INVOICE_DUE_DAYS = 30
INVOICE_NUMBER_PREFIX = "INV"

for _logger in LOGGING["loggers"].values():
    _logger["level"] = "CRITICAL"
