# purchases/management/commands/seed_stock_demo.py

from __future__ import annotations

from dataclasses import dataclass

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from inventory.models import StockItem
from purchases.models import Supplier
from purchases.services.grv_service import create_grv, post_grv
from tenants.models import Tenant

User = get_user_model()

DEFAULT_PASSWORD = "Pass1234!"  # dev only


@dataclass(frozen=True)
class SeedItem:
    sku: str
    name: str
    unit: str = "each"
    is_vat_exempt: bool = False


DEMO_ITEMS = [
    SeedItem("BOLT-M10", "Hex bolt M10 x 50"),
    SeedItem("NUT-M10", "Hex nut M10"),
    SeedItem("WSH-M10", "Flat washer M10"),
    SeedItem("CEM-50", "Cement 50kg", unit="bag"),
    SeedItem("BREAD-WHT", "White bread loaf", is_vat_exempt=True),
]

DEMO_ROLES = [User.ROLE_ADMIN, User.ROLE_MANAGER, User.ROLE_STOREMAN, User.ROLE_VIEWER]


class Command(BaseCommand):
    help = "Seed a demo tenant with users, a supplier, stock items and (optionally) a posted GRV."

    def add_arguments(self, parser):
        parser.add_argument("--tenant-code", default="DEMO")
        parser.add_argument("--tenant-name", default="Demo Hardware")
        parser.add_argument(
            "--password",
            default=DEFAULT_PASSWORD,
            help="Password for all seeded users (dev only).",
        )
        parser.add_argument(
            "--with-receipt",
            action="store_true",
            help="Create and post one GRV so stock and movements are non-empty.",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        code = options["tenant_code"].strip()
        password = options["password"]

        tenant, _ = Tenant.objects.get_or_create(
            code=code, defaults={"name": options["tenant_name"]}
        )
        self.stdout.write(f"Seeding tenant {tenant} ...")

        created_users = 0
        storeman = None
        for role in DEMO_ROLES:
            email = f"{role}_{code.lower()}@example.com"
            user = User.objects.filter(email=email).first()
            if user is None:
                user = User.objects.create_user(
                    email=email, password=password, tenant=tenant, role=role
                )
                created_users += 1
            else:
                # corrective re-run
                user.tenant = tenant
                user.role = role
                user.set_password(password)
                user.save(update_fields=["tenant", "role", "password"])
            if role == User.ROLE_STOREMAN:
                storeman = user

        supplier, _ = Supplier.objects.get_or_create(
            tenant=tenant, name="Demo Supplies (Pty) Ltd"
        )

        items = []
        for seed in DEMO_ITEMS:
            item, _ = StockItem.objects.get_or_create(
                tenant=tenant,
                sku=seed.sku,
                defaults={
                    "name": seed.name,
                    "unit": seed.unit,
                    "is_vat_exempt": seed.is_vat_exempt,
                },
            )
            items.append(item)

        if options["with_receipt"]:
            grv = create_grv(
                tenant=tenant,
                user=storeman,
                supplier_id=supplier.id,
                reference_type="delivery_note",
                reference_number="DN-DEMO-1",
                lines=[
                    {"stock_item_id": item.id, "received_qty": 10, "unit_cost_cents": 250 * (i + 1)}
                    for i, item in enumerate(items)
                ],
            )
            result = post_grv(tenant=tenant, grv_id=grv.id, user=storeman)
            self.stdout.write(
                f"Posted {result.grv.grv_number}: {len(result.movements)} movements"
            )

        self.stdout.write(
            self.style.SUCCESS(
                f"Seeded {tenant}: {created_users} users created, {len(items)} stock items."
            )
        )
