# pricing/apps.py

"""
PRICING APP CONFIG

Pure computation (no models). Installed as an app only so that the
`price_item` management command is discoverable.
"""

from django.apps import AppConfig


class PricingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "pricing"
    verbose_name = "Gold Pricing"
