# inventory/admin.py

"""
Admin rules (audit-safe inventory):

- quantity can be set when an item is first created; afterwards it is
  read-only (changes go through inventory.services.ledger.adjust()).
- InventoryMovement rows are immutable: no add / change / delete in admin.
"""

from django.contrib import admin

from inventory.models import InventoryItem, InventoryMovement


class InventoryMovementInline(admin.TabularInline):
    model = InventoryMovement
    extra = 0
    can_delete = False
    ordering = ("-created_at",)
    fields = ("created_at", "movement_type", "quantity", "reference_type", "reference_id", "notes", "performed_by")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(InventoryItem)
class InventoryItemAdmin(admin.ModelAdmin):
    list_display = ("name", "sku", "quantity", "minimum_stock", "weight", "gold_purity", "unit_price", "is_active")
    search_fields = ("name", "sku")
    list_filter = ("is_active",)
    inlines = [InventoryMovementInline]

    def get_readonly_fields(self, request, obj=None):
        if obj is not None:
            return ("quantity", "created_at", "updated_at")
        return ("created_at", "updated_at")


@admin.register(InventoryMovement)
class InventoryMovementAdmin(admin.ModelAdmin):
    list_display = ("created_at", "inventory_item", "movement_type", "quantity", "reference_type", "reference_id")
    list_filter = ("movement_type", "reference_type")
    search_fields = ("inventory_item__name", "inventory_item__sku", "reference_id")
    list_select_related = ("inventory_item",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
