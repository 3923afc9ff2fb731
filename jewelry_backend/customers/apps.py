# customers/apps.py

"""
CUSTOMERS APP CONFIG

Minimal customer directory. Invoices reference customers by id only; the
pricing/reservation core checks existence and nothing else.
"""

from django.apps import AppConfig


class CustomersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "customers"
    verbose_name = "Customers"
