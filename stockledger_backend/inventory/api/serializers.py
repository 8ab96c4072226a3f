# inventory/api/serializers.py

from rest_framework import serializers

from inventory.models import InventoryMovement, StockItem


class StockItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = StockItem
        fields = [
            "id",
            "sku",
            "name",
            "unit",
            "on_hand",
            "average_cost_cents",
            "last_cost_cents",
            "vat_rate_bps",
            "is_vat_exempt",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class InventoryMovementSerializer(serializers.ModelSerializer):
    stock_item_sku = serializers.CharField(source="stock_item.sku", read_only=True)
    stock_item_name = serializers.CharField(source="stock_item.name", read_only=True)
    total_cost_cents = serializers.IntegerField(read_only=True)
    created_by_email = serializers.EmailField(
        source="created_by.email", read_only=True, default=None
    )

    class Meta:
        model = InventoryMovement
        fields = [
            "id",
            "stock_item",
            "stock_item_sku",
            "stock_item_name",
            "location_code",
            "location_name",
            "source_type",
            "source_id",
            "source_line_id",
            "movement_type",
            "quantity",
            "unit_cost_cents",
            "total_cost_cents",
            "quantity_before",
            "quantity_after",
            "cost_before_cents",
            "cost_after_cents",
            "batch_number",
            "expiry_date",
            "serial_numbers",
            "created_by",
            "created_by_email",
            "created_at",
        ]
        read_only_fields = fields
