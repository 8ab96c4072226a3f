# inventory/models/inventory_movement.py

"""
INVENTORY LEDGER

Immutable record of one quantity change to one stock item.

GUARANTEES:
- Append-only: instance save() on an existing row raises, delete() raises
- Bulk QuerySet.update()/delete() raise as well
- Movement direction validated against source_type
- quantity_after == quantity_before +/- quantity
"""

import uuid
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models


class InventoryMovementQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise ValidationError("InventoryMovement records are immutable")

    def delete(self):
        raise ValidationError(
            "InventoryMovement records are immutable and cannot be deleted"
        )


class InventoryMovement(models.Model):
    class MovementType(models.TextChoices):
        IN = "IN", "Stock In"
        OUT = "OUT", "Stock Out"

    class SourceType(models.TextChoices):
        RECEIPT = "RECEIPT", "Goods Received"
        RECEIPT_CANCEL = "RECEIPT_CANCEL", "Goods Received (Cancelled)"
        SALE = "SALE", "Sale"
        SALE_CANCEL = "SALE_CANCEL", "Sale (Cancelled)"
        ADJUSTMENT = "ADJUSTMENT", "Adjustment"
        TRANSFER = "TRANSFER", "Transfer"
        RETURN = "RETURN", "Return"

    SOURCE_TO_MOVEMENT = {
        SourceType.RECEIPT: MovementType.IN,
        SourceType.SALE_CANCEL: MovementType.IN,
        SourceType.RETURN: MovementType.IN,
        SourceType.RECEIPT_CANCEL: MovementType.OUT,
        SourceType.SALE: MovementType.OUT,
        SourceType.ADJUSTMENT: None,
        SourceType.TRANSFER: None,
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant = models.ForeignKey(
        "tenants.Tenant",
        on_delete=models.PROTECT,
        related_name="inventory_movements",
    )
    stock_item = models.ForeignKey(
        "inventory.StockItem",
        on_delete=models.PROTECT,
        related_name="movements",
    )

    location_code = models.CharField(max_length=50)
    location_name = models.CharField(max_length=255, blank=True, default="")

    source_type = models.CharField(max_length=20, choices=SourceType.choices)
    source_id = models.UUIDField()
    source_line_id = models.UUIDField(null=True, blank=True)

    movement_type = models.CharField(max_length=3, choices=MovementType.choices)

    quantity = models.DecimalField(max_digits=14, decimal_places=3)
    unit_cost_cents = models.PositiveBigIntegerField(default=0)

    quantity_before = models.DecimalField(max_digits=14, decimal_places=3)
    quantity_after = models.DecimalField(max_digits=14, decimal_places=3)
    cost_before_cents = models.PositiveBigIntegerField(default=0)
    cost_after_cents = models.PositiveBigIntegerField(default=0)

    batch_number = models.CharField(max_length=100, blank=True, default="")
    expiry_date = models.DateField(null=True, blank=True)
    serial_numbers = models.JSONField(default=list, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="inventory_movements",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = InventoryMovementQuerySet.as_manager()

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["tenant", "source_type", "source_id"], name="movement_source_idx"
            ),
            models.Index(
                fields=["tenant", "stock_item", "created_at"], name="movement_item_created_idx"
            ),
            models.Index(fields=["created_at"], name="movement_created_idx"),
        ]

    def clean(self):
        if self.quantity is None or self.quantity <= 0:
            raise ValidationError("quantity must be greater than zero")

        expected_type = self.SOURCE_TO_MOVEMENT.get(self.source_type)
        if expected_type and self.movement_type != expected_type:
            raise ValidationError(
                f"{self.source_type} requires movement_type={expected_type}"
            )

        if not isinstance(self.serial_numbers, list):
            raise ValidationError("serial_numbers must be a list")

        before = Decimal(self.quantity_before)
        after = Decimal(self.quantity_after)
        if self.movement_type == self.MovementType.IN:
            expected_after = before + Decimal(self.quantity)
        else:
            expected_after = before - Decimal(self.quantity)

        if after != expected_after:
            raise ValidationError(
                f"quantity_after mismatch: expected {expected_after}, got {after}"
            )

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("InventoryMovement records are immutable")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError(
            "InventoryMovement records are immutable and cannot be deleted"
        )

    @property
    def total_cost_cents(self) -> int:
        value = Decimal(self.quantity) * Decimal(int(self.unit_cost_cents or 0))
        return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    def __str__(self):
        sku = getattr(self.stock_item, "sku", "item")
        return f"{sku} | {self.source_type} | {self.movement_type} {self.quantity}"
