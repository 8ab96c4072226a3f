# inventory/models/stock_item.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from core.conf import ledger_setting


def default_vat_rate_bps() -> int:
    return int(ledger_setting("DEFAULT_VAT_RATE_BPS"))


class StockItem(models.Model):
    """
    A stockable item with its current on-hand quantity and weighted-average
    unit cost.

    on_hand / average_cost_cents / last_cost_cents are service-managed:
    only inventory.services.stock_store.apply_delta writes them.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant = models.ForeignKey(
        "tenants.Tenant",
        on_delete=models.PROTECT,
        related_name="stock_items",
    )

    sku = models.CharField(max_length=64)
    name = models.CharField(max_length=255)
    unit = models.CharField(max_length=32, default="each")

    on_hand = models.DecimalField(
        max_digits=14, decimal_places=3, default=Decimal("0.000")
    )
    average_cost_cents = models.PositiveBigIntegerField(default=0)
    last_cost_cents = models.PositiveBigIntegerField(default=0)

    vat_rate_bps = models.PositiveIntegerField(default=default_vat_rate_bps)
    is_vat_exempt = models.BooleanField(default=False)

    is_active = models.BooleanField(default=True)
    is_deleted = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name", "sku"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "sku"], name="uniq_stock_item_sku_per_tenant"
            ),
            models.CheckConstraint(
                condition=Q(on_hand__gte=0), name="stock_item_on_hand_non_negative"
            ),
        ]
        indexes = [
            models.Index(fields=["tenant", "is_deleted"], name="stock_item_tenant_deleted_idx"),
        ]

    def clean(self):
        if self.on_hand is not None and self.on_hand < 0:
            raise ValidationError({"on_hand": "on_hand cannot be negative"})
        if self.vat_rate_bps is not None and self.vat_rate_bps > 10000:
            raise ValidationError({"vat_rate_bps": "vat_rate_bps cannot exceed 10000"})

    def __str__(self):
        return f"{self.sku} | {self.name}"
