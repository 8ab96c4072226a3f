# inventory/migrations/0001_initial.py

import uuid
from decimal import Decimal

import django.db.models.deletion
import inventory.models.stock_item
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("tenants", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="StockItem",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                ("sku", models.CharField(max_length=64)),
                ("name", models.CharField(max_length=255)),
                ("unit", models.CharField(default="each", max_length=32)),
                (
                    "on_hand",
                    models.DecimalField(
                        decimal_places=3, default=Decimal("0.000"), max_digits=14
                    ),
                ),
                ("average_cost_cents", models.PositiveBigIntegerField(default=0)),
                ("last_cost_cents", models.PositiveBigIntegerField(default=0)),
                (
                    "vat_rate_bps",
                    models.PositiveIntegerField(
                        default=inventory.models.stock_item.default_vat_rate_bps
                    ),
                ),
                ("is_vat_exempt", models.BooleanField(default=False)),
                ("is_active", models.BooleanField(default=True)),
                ("is_deleted", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_items",
                        to="tenants.tenant",
                    ),
                ),
            ],
            options={"ordering": ["name", "sku"]},
        ),
        migrations.AddConstraint(
            model_name="stockitem",
            constraint=models.UniqueConstraint(
                fields=("tenant", "sku"), name="uniq_stock_item_sku_per_tenant"
            ),
        ),
        migrations.AddConstraint(
            model_name="stockitem",
            constraint=models.CheckConstraint(
                condition=models.Q(on_hand__gte=0),
                name="stock_item_on_hand_non_negative",
            ),
        ),
        migrations.AddIndex(
            model_name="stockitem",
            index=models.Index(
                fields=["tenant", "is_deleted"], name="stock_item_tenant_deleted_idx"
            ),
        ),
        migrations.CreateModel(
            name="InventoryMovement",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                ("location_code", models.CharField(max_length=50)),
                ("location_name", models.CharField(blank=True, default="", max_length=255)),
                (
                    "source_type",
                    models.CharField(
                        choices=[
                            ("RECEIPT", "Goods Received"),
                            ("RECEIPT_CANCEL", "Goods Received (Cancelled)"),
                            ("SALE", "Sale"),
                            ("SALE_CANCEL", "Sale (Cancelled)"),
                            ("ADJUSTMENT", "Adjustment"),
                            ("TRANSFER", "Transfer"),
                            ("RETURN", "Return"),
                        ],
                        max_length=20,
                    ),
                ),
                ("source_id", models.UUIDField()),
                ("source_line_id", models.UUIDField(blank=True, null=True)),
                (
                    "movement_type",
                    models.CharField(
                        choices=[("IN", "Stock In"), ("OUT", "Stock Out")], max_length=3
                    ),
                ),
                ("quantity", models.DecimalField(decimal_places=3, max_digits=14)),
                ("unit_cost_cents", models.PositiveBigIntegerField(default=0)),
                ("quantity_before", models.DecimalField(decimal_places=3, max_digits=14)),
                ("quantity_after", models.DecimalField(decimal_places=3, max_digits=14)),
                ("cost_before_cents", models.PositiveBigIntegerField(default=0)),
                ("cost_after_cents", models.PositiveBigIntegerField(default=0)),
                ("batch_number", models.CharField(blank=True, default="", max_length=100)),
                ("expiry_date", models.DateField(blank=True, null=True)),
                ("serial_numbers", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="inventory_movements",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "stock_item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="movements",
                        to="inventory.stockitem",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="inventory_movements",
                        to="tenants.tenant",
                    ),
                ),
            ],
            options={"ordering": ["created_at", "id"]},
        ),
        migrations.AddIndex(
            model_name="inventorymovement",
            index=models.Index(
                fields=["tenant", "source_type", "source_id"], name="movement_source_idx"
            ),
        ),
        migrations.AddIndex(
            model_name="inventorymovement",
            index=models.Index(
                fields=["tenant", "stock_item", "created_at"], name="movement_item_created_idx"
            ),
        ),
        migrations.AddIndex(
            model_name="inventorymovement",
            index=models.Index(fields=["created_at"], name="movement_created_idx"),
        ),
    ]
