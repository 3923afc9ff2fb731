# invoices/apps.py

"""
INVOICES APP CONFIG

Jewelry invoices: priced line snapshots + the inventory reservation they hold.

Golden Rule:
- Invoices are created / updated / cancelled ONLY through
  invoices.services.invoice_orchestrator.InvoiceOrchestrator.
"""

from django.apps import AppConfig


class InvoicesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "invoices"
    verbose_name = "Invoices"
