# invoices/admin.py

"""
Admin rules:

- Invoices are read-only here. Create / update / cancel go through
  InvoiceOrchestrator so pricing, reservation and movements stay consistent.
"""

from django.contrib import admin

from invoices.models import Invoice, InvoiceItem


class InvoiceItemInline(admin.TabularInline):
    model = InvoiceItem
    extra = 0
    can_delete = False
    fields = (
        "name",
        "sku",
        "quantity",
        "weight",
        "pricing_mode",
        "base_gold_cost",
        "labor_cost",
        "profit_amount",
        "tax_amount",
        "unit_price",
        "total_price",
    )
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = (
        "invoice_number",
        "customer",
        "status",
        "issue_date",
        "due_date",
        "total_amount",
        "inventory_reserved",
    )
    list_filter = ("status", "inventory_reserved")
    search_fields = ("invoice_number", "customer__name")
    list_select_related = ("customer",)
    inlines = [InvoiceItemInline]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
