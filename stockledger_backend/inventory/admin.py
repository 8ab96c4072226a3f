# inventory/admin.py

from django.contrib import admin

from inventory.models import InventoryMovement, StockItem


@admin.register(StockItem)
class StockItemAdmin(admin.ModelAdmin):
    list_display = (
        "sku",
        "name",
        "tenant",
        "on_hand",
        "average_cost_cents",
        "last_cost_cents",
        "is_active",
        "is_deleted",
    )
    list_filter = ("tenant", "is_active", "is_deleted", "is_vat_exempt")
    search_fields = ("sku", "name")

    # service-managed: only receipt posting/cancellation moves these
    readonly_fields = ("on_hand", "average_cost_cents", "last_cost_cents", "created_at", "updated_at")

    def has_delete_permission(self, request, obj=None):
        return False


# ============================================================
# MOVEMENT LEDGER (STRICTLY IMMUTABLE)
# ============================================================


@admin.register(InventoryMovement)
class InventoryMovementAdmin(admin.ModelAdmin):
    list_display = (
        "created_at",
        "stock_item",
        "source_type",
        "movement_type",
        "quantity",
        "quantity_before",
        "quantity_after",
        "cost_after_cents",
    )
    list_filter = ("tenant", "source_type", "movement_type")
    search_fields = ("stock_item__sku", "stock_item__name", "source_id")
    ordering = ("-created_at",)

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
