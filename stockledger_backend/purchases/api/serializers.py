# purchases/api/serializers.py

from rest_framework import serializers

from core.services.totals import DiscountType
from purchases.models import GoodsReceivedVoucher, GoodsReceivedVoucherLine, Supplier


class SupplierSerializer(serializers.ModelSerializer):
    class Meta:
        model = Supplier
        fields = ["id", "name", "phone", "email", "address", "is_active", "created_at"]
        read_only_fields = ("id", "created_at")


class GRVLineWriteSerializer(serializers.Serializer):
    stock_item_id = serializers.UUIDField()
    received_qty = serializers.DecimalField(max_digits=14, decimal_places=3, min_value=0)
    unit_cost_cents = serializers.IntegerField(min_value=0)
    ordered_qty = serializers.DecimalField(
        max_digits=14, decimal_places=3, min_value=0, required=False
    )
    discount_type = serializers.ChoiceField(
        choices=DiscountType.choices, required=False, default=DiscountType.NONE
    )
    discount_value = serializers.DecimalField(
        max_digits=14, decimal_places=3, min_value=0, required=False
    )
    batch_number = serializers.CharField(required=False, allow_blank=True)
    expiry_date = serializers.DateField(required=False, allow_null=True)
    serial_numbers = serializers.ListField(
        child=serializers.CharField(), required=False, allow_empty=True
    )
    variance_reason = serializers.ChoiceField(
        choices=GoodsReceivedVoucherLine.VarianceReason.choices, required=False
    )
    remarks = serializers.CharField(required=False, allow_blank=True)


class GRVCreateSerializer(serializers.Serializer):
    supplier_id = serializers.UUIDField()
    received_at = serializers.DateTimeField(required=False)
    location_code = serializers.CharField(required=False, allow_blank=True)
    location_name = serializers.CharField(required=False, allow_blank=True)
    reference_type = serializers.ChoiceField(
        choices=GoodsReceivedVoucher.ReferenceType.choices, required=False
    )
    reference_number = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    lines = GRVLineWriteSerializer(many=True, allow_empty=False)


class GRVUpdateSerializer(GRVCreateSerializer):
    supplier_id = serializers.UUIDField(required=False)
    lines = GRVLineWriteSerializer(many=True, allow_empty=False, required=False)


class GRVLineSerializer(serializers.ModelSerializer):
    class Meta:
        model = GoodsReceivedVoucherLine
        fields = [
            "id",
            "line_no",
            "stock_item",
            "sku",
            "name",
            "unit",
            "ordered_qty",
            "received_qty",
            "unit_cost_cents",
            "discount_type",
            "discount_value",
            "subtotal_cents",
            "discount_cents",
            "vat_rate_bps",
            "is_vat_exempt",
            "vat_cents",
            "total_cents",
            "batch_number",
            "expiry_date",
            "serial_numbers",
            "variance_reason",
            "remarks",
        ]
        read_only_fields = fields


class GRVSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source="supplier.name", read_only=True, default="")
    lines = GRVLineSerializer(many=True, read_only=True)

    class Meta:
        model = GoodsReceivedVoucher
        fields = [
            "id",
            "grv_number",
            "supplier",
            "supplier_name",
            "reference_type",
            "reference_number",
            "location_code",
            "location_name",
            "received_at",
            "status",
            "posted_at",
            "posted_by",
            "cancelled_at",
            "cancelled_by",
            "notes",
            "subtotal_cents",
            "discount_total_cents",
            "vat_total_cents",
            "grand_total_cents",
            "lines",
            "created_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class GRVCancelResponseSerializer(serializers.Serializer):
    grv = GRVSerializer()
    movements_created = serializers.IntegerField()
    partially_reversed = serializers.BooleanField()


class GRVPostResponseSerializer(serializers.Serializer):
    grv = GRVSerializer()
    movements_created = serializers.IntegerField()
