# purchases/models.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from core.services.totals import DiscountType

User = settings.AUTH_USER_MODEL


class Supplier(models.Model):
    """
    Supplier master (tenant-scoped).
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant = models.ForeignKey(
        "tenants.Tenant",
        on_delete=models.PROTECT,
        related_name="suppliers",
    )

    name = models.CharField(max_length=200)
    phone = models.CharField(max_length=50, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    address = models.TextField(blank=True, default="")

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["tenant", "is_active"], name="supplier_tenant_active_idx"),
        ]

    def __str__(self):
        return self.name


class GoodsReceivedVoucher(models.Model):
    """
    Goods Received Voucher (GRV) header.

    Lifecycle (services only, see purchases.services.grv_service):
    - DRAFT:     editable; lines + rollups recomputed on every edit
    - POSTED:    stock received (IN movements + weighted-average cost)
    - CANCELLED: receipt reversed (OUT movements); terminal
    """

    STATUS_DRAFT = "DRAFT"
    STATUS_POSTED = "POSTED"
    STATUS_CANCELLED = "CANCELLED"

    STATUSES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_POSTED, "Posted"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    class ReferenceType(models.TextChoices):
        NONE = "none", "None"
        PO = "po", "Purchase Order"
        SUPPLIER_INVOICE = "supplier_invoice", "Supplier Invoice"
        DELIVERY_NOTE = "delivery_note", "Delivery Note"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant = models.ForeignKey(
        "tenants.Tenant",
        on_delete=models.PROTECT,
        related_name="grvs",
    )

    grv_number = models.CharField(max_length=40)

    supplier = models.ForeignKey(
        Supplier,
        on_delete=models.PROTECT,
        related_name="grvs",
        null=True,
        blank=True,
    )

    reference_type = models.CharField(
        max_length=20, choices=ReferenceType.choices, default=ReferenceType.NONE
    )
    reference_number = models.CharField(max_length=100, blank=True, default="")

    location_code = models.CharField(max_length=50)
    location_name = models.CharField(max_length=255, blank=True, default="")

    received_at = models.DateTimeField()

    status = models.CharField(max_length=10, choices=STATUSES, default=STATUS_DRAFT)

    posted_at = models.DateTimeField(null=True, blank=True)
    posted_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="posted_grvs"
    )
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="cancelled_grvs"
    )

    notes = models.TextField(blank=True, default="")

    subtotal_cents = models.BigIntegerField(default=0)
    discount_total_cents = models.BigIntegerField(default=0)
    vat_total_cents = models.BigIntegerField(default=0)
    grand_total_cents = models.BigIntegerField(default=0)

    is_deleted = models.BooleanField(default=False)
    deleted_at = models.DateTimeField(null=True, blank=True)
    deleted_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="deleted_grvs"
    )

    created_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="created_grvs"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "grv_number"], name="uniq_grv_number_per_tenant"
            ),
            models.CheckConstraint(
                condition=Q(status__in=["DRAFT", "POSTED", "CANCELLED"]),
                name="grv_status_valid",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant", "status"], name="grv_tenant_status_idx"),
            models.Index(fields=["tenant", "received_at"], name="grv_tenant_received_idx"),
        ]

    def __str__(self):
        return f"{self.grv_number} ({self.status})"


class GoodsReceivedVoucherLine(models.Model):
    """
    One received stock item.

    sku/name/unit/vat fields are a snapshot of the stock item taken when the
    line is written; money columns are computed by the totals service.
    """

    class VarianceReason(models.TextChoices):
        NONE = "none", "None"
        DAMAGED = "damaged", "Damaged"
        SHORT_DELIVERY = "short_delivery", "Short Delivery"
        WRONG_ITEM = "wrong_item", "Wrong Item"
        FREE_STOCK = "free_stock", "Free Stock"
        OTHER = "other", "Other"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    grv = models.ForeignKey(
        GoodsReceivedVoucher, on_delete=models.CASCADE, related_name="lines"
    )
    line_no = models.PositiveIntegerField()

    stock_item = models.ForeignKey(
        "inventory.StockItem",
        on_delete=models.PROTECT,
        related_name="grv_lines",
    )

    sku = models.CharField(max_length=64)
    name = models.CharField(max_length=255)
    unit = models.CharField(max_length=32, default="each")
    vat_rate_bps = models.PositiveIntegerField(default=1500)
    is_vat_exempt = models.BooleanField(default=False)

    ordered_qty = models.DecimalField(max_digits=14, decimal_places=3, default=Decimal("0.000"))
    received_qty = models.DecimalField(max_digits=14, decimal_places=3)
    unit_cost_cents = models.PositiveBigIntegerField(default=0)

    discount_type = models.CharField(
        max_length=10, choices=DiscountType.choices, default=DiscountType.NONE
    )
    discount_value = models.DecimalField(
        max_digits=14, decimal_places=3, default=Decimal("0.000")
    )

    subtotal_cents = models.BigIntegerField(default=0)
    discount_cents = models.BigIntegerField(default=0)
    vat_cents = models.BigIntegerField(default=0)
    total_cents = models.BigIntegerField(default=0)

    batch_number = models.CharField(max_length=100, blank=True, default="")
    expiry_date = models.DateField(null=True, blank=True)
    serial_numbers = models.JSONField(default=list, blank=True)

    variance_reason = models.CharField(
        max_length=20, choices=VarianceReason.choices, default=VarianceReason.NONE
    )
    remarks = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["line_no"]
        constraints = [
            models.UniqueConstraint(fields=["grv", "line_no"], name="uniq_grv_line_no"),
            models.CheckConstraint(
                condition=Q(received_qty__gte=0), name="grv_line_received_qty_non_negative"
            ),
            models.CheckConstraint(
                condition=Q(ordered_qty__gte=0), name="grv_line_ordered_qty_non_negative"
            ),
        ]

    def clean(self):
        if self.received_qty is not None and self.received_qty < 0:
            raise ValidationError({"received_qty": "received_qty cannot be negative"})
        if self.discount_value is not None and self.discount_value < 0:
            raise ValidationError({"discount_value": "discount_value cannot be negative"})

    def __str__(self):
        return f"{self.grv_id} #{self.line_no} {self.sku} x {self.received_qty}"
