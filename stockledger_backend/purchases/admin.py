# purchases/admin.py

from django.contrib import admin

from purchases.models import GoodsReceivedVoucher, GoodsReceivedVoucherLine, Supplier


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ("name", "tenant", "phone", "email", "is_active", "created_at")
    list_filter = ("tenant", "is_active")
    search_fields = ("name", "email", "phone")


class GoodsReceivedVoucherLineInline(admin.TabularInline):
    model = GoodsReceivedVoucherLine
    extra = 0
    can_delete = False

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request, obj=None):
        return False


# GRVs are changed only through grv_service (post/cancel write stock);
# the admin is a read-only window.
@admin.register(GoodsReceivedVoucher)
class GoodsReceivedVoucherAdmin(admin.ModelAdmin):
    list_display = (
        "grv_number",
        "tenant",
        "supplier",
        "status",
        "received_at",
        "grand_total_cents",
        "posted_at",
        "cancelled_at",
    )
    list_filter = ("tenant", "status", "is_deleted")
    search_fields = ("grv_number", "reference_number", "supplier__name")
    inlines = [GoodsReceivedVoucherLineInline]

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
