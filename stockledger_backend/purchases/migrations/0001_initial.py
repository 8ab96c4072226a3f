# purchases/migrations/0001_initial.py

import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("tenants", "0001_initial"),
        ("inventory", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Supplier",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                ("name", models.CharField(max_length=200)),
                ("phone", models.CharField(blank=True, default="", max_length=50)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("address", models.TextField(blank=True, default="")),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="suppliers",
                        to="tenants.tenant",
                    ),
                ),
            ],
            options={"ordering": ["name"]},
        ),
        migrations.AddIndex(
            model_name="supplier",
            index=models.Index(fields=["tenant", "is_active"], name="supplier_tenant_active_idx"),
        ),
        migrations.CreateModel(
            name="GoodsReceivedVoucher",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                ("grv_number", models.CharField(max_length=40)),
                (
                    "reference_type",
                    models.CharField(
                        choices=[
                            ("none", "None"),
                            ("po", "Purchase Order"),
                            ("supplier_invoice", "Supplier Invoice"),
                            ("delivery_note", "Delivery Note"),
                        ],
                        default="none",
                        max_length=20,
                    ),
                ),
                ("reference_number", models.CharField(blank=True, default="", max_length=100)),
                ("location_code", models.CharField(max_length=50)),
                ("location_name", models.CharField(blank=True, default="", max_length=255)),
                ("received_at", models.DateTimeField()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("DRAFT", "Draft"),
                            ("POSTED", "Posted"),
                            ("CANCELLED", "Cancelled"),
                        ],
                        default="DRAFT",
                        max_length=10,
                    ),
                ),
                ("posted_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, default="")),
                ("subtotal_cents", models.BigIntegerField(default=0)),
                ("discount_total_cents", models.BigIntegerField(default=0)),
                ("vat_total_cents", models.BigIntegerField(default=0)),
                ("grand_total_cents", models.BigIntegerField(default=0)),
                ("is_deleted", models.BooleanField(default=False)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "cancelled_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="cancelled_grvs",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="created_grvs",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "deleted_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="deleted_grvs",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "posted_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="posted_grvs",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "supplier",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="grvs",
                        to="purchases.supplier",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="grvs",
                        to="tenants.tenant",
                    ),
                ),
            ],
            options={"ordering": ["-created_at"]},
        ),
        migrations.AddConstraint(
            model_name="goodsreceivedvoucher",
            constraint=models.UniqueConstraint(
                fields=("tenant", "grv_number"), name="uniq_grv_number_per_tenant"
            ),
        ),
        migrations.AddConstraint(
            model_name="goodsreceivedvoucher",
            constraint=models.CheckConstraint(
                condition=models.Q(status__in=["DRAFT", "POSTED", "CANCELLED"]),
                name="grv_status_valid",
            ),
        ),
        migrations.AddIndex(
            model_name="goodsreceivedvoucher",
            index=models.Index(fields=["tenant", "status"], name="grv_tenant_status_idx"),
        ),
        migrations.AddIndex(
            model_name="goodsreceivedvoucher",
            index=models.Index(fields=["tenant", "received_at"], name="grv_tenant_received_idx"),
        ),
        migrations.CreateModel(
            name="GoodsReceivedVoucherLine",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                ("line_no", models.PositiveIntegerField()),
                ("sku", models.CharField(max_length=64)),
                ("name", models.CharField(max_length=255)),
                ("unit", models.CharField(default="each", max_length=32)),
                ("vat_rate_bps", models.PositiveIntegerField(default=1500)),
                ("is_vat_exempt", models.BooleanField(default=False)),
                (
                    "ordered_qty",
                    models.DecimalField(decimal_places=3, default=Decimal("0.000"), max_digits=14),
                ),
                ("received_qty", models.DecimalField(decimal_places=3, max_digits=14)),
                ("unit_cost_cents", models.PositiveBigIntegerField(default=0)),
                (
                    "discount_type",
                    models.CharField(
                        choices=[
                            ("none", "None"),
                            ("percent", "Percent"),
                            ("amount", "Amount per unit"),
                        ],
                        default="none",
                        max_length=10,
                    ),
                ),
                (
                    "discount_value",
                    models.DecimalField(decimal_places=3, default=Decimal("0.000"), max_digits=14),
                ),
                ("subtotal_cents", models.BigIntegerField(default=0)),
                ("discount_cents", models.BigIntegerField(default=0)),
                ("vat_cents", models.BigIntegerField(default=0)),
                ("total_cents", models.BigIntegerField(default=0)),
                ("batch_number", models.CharField(blank=True, default="", max_length=100)),
                ("expiry_date", models.DateField(blank=True, null=True)),
                ("serial_numbers", models.JSONField(blank=True, default=list)),
                (
                    "variance_reason",
                    models.CharField(
                        choices=[
                            ("none", "None"),
                            ("damaged", "Damaged"),
                            ("short_delivery", "Short Delivery"),
                            ("wrong_item", "Wrong Item"),
                            ("free_stock", "Free Stock"),
                            ("other", "Other"),
                        ],
                        default="none",
                        max_length=20,
                    ),
                ),
                ("remarks", models.TextField(blank=True, default="")),
                (
                    "grv",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                        to="purchases.goodsreceivedvoucher",
                    ),
                ),
                (
                    "stock_item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="grv_lines",
                        to="inventory.stockitem",
                    ),
                ),
            ],
            options={"ordering": ["line_no"]},
        ),
        migrations.AddConstraint(
            model_name="goodsreceivedvoucherline",
            constraint=models.UniqueConstraint(fields=("grv", "line_no"), name="uniq_grv_line_no"),
        ),
        migrations.AddConstraint(
            model_name="goodsreceivedvoucherline",
            constraint=models.CheckConstraint(
                condition=models.Q(received_qty__gte=0),
                name="grv_line_received_qty_non_negative",
            ),
        ),
        migrations.AddConstraint(
            model_name="goodsreceivedvoucherline",
            constraint=models.CheckConstraint(
                condition=models.Q(ordered_qty__gte=0),
                name="grv_line_ordered_qty_non_negative",
            ),
        ),
    ]
