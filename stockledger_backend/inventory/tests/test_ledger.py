import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from inventory.models import InventoryMovement, StockItem
from inventory.services.exceptions import ValidationFailedError
from inventory.services.ledger import append_movement, group_by_stock_item, list_by_source
from tenants.models import Tenant


class MovementLedgerTests(TestCase):
    """
    GUARANTEES:
    - movements are append-only (no save-after-create, no delete, no bulk update/delete)
    - direction must match the source type
    - quantity_after must equal quantity_before +/- quantity
    """

    def setUp(self):
        self.tenant = Tenant.objects.create(name="Acme")
        self.other_tenant = Tenant.objects.create(name="Globex")
        self.item = StockItem.objects.create(tenant=self.tenant, sku="BOLT-10", name="Bolt M10")
        self.other_item = StockItem.objects.create(tenant=self.tenant, sku="NUT-10", name="Nut M10")
        self.source_id = uuid.uuid4()

    def _append(self, **overrides):
        data = dict(
            tenant=self.tenant,
            stock_item_id=self.item.id,
            source_type=InventoryMovement.SourceType.RECEIPT,
            source_id=self.source_id,
            source_line_id=None,
            movement_type=InventoryMovement.MovementType.IN,
            quantity=Decimal("10"),
            unit_cost_cents=500,
            quantity_before=Decimal("0"),
            quantity_after=Decimal("10"),
            cost_before_cents=0,
            cost_after_cents=500,
            location_code="main",
            location_name="Main Warehouse",
        )
        data.update(overrides)
        return append_movement(**data)

    def test_append_persists_snapshot(self):
        movement = self._append(batch_number="B-1", serial_numbers=["S1", "S2"])

        stored = InventoryMovement.objects.get(pk=movement.pk)
        self.assertEqual(stored.quantity, Decimal("10.000"))
        self.assertEqual(stored.quantity_after, Decimal("10.000"))
        self.assertEqual(stored.cost_after_cents, 500)
        self.assertEqual(stored.batch_number, "B-1")
        self.assertEqual(stored.serial_numbers, ["S1", "S2"])
        self.assertEqual(stored.total_cost_cents, 5000)

    def test_movement_cannot_be_edited(self):
        movement = self._append()
        movement.quantity = Decimal("99")

        with self.assertRaises(ValidationError):
            movement.save()

    def test_movement_cannot_be_deleted(self):
        movement = self._append()

        with self.assertRaises(ValidationError):
            movement.delete()
        self.assertTrue(InventoryMovement.objects.filter(pk=movement.pk).exists())

    def test_bulk_update_and_delete_are_blocked(self):
        self._append()

        with self.assertRaises(ValidationError):
            InventoryMovement.objects.filter(tenant=self.tenant).update(quantity=Decimal("1"))
        with self.assertRaises(ValidationError):
            InventoryMovement.objects.filter(tenant=self.tenant).delete()

        self.assertEqual(InventoryMovement.objects.get().quantity, Decimal("10.000"))

    def test_direction_must_match_source_type(self):
        with self.assertRaises(ValidationFailedError):
            self._append(
                movement_type=InventoryMovement.MovementType.OUT,
                quantity_before=Decimal("10"),
                quantity_after=Decimal("0"),
            )

    def test_quantity_after_must_match(self):
        with self.assertRaises(ValidationFailedError):
            self._append(quantity_after=Decimal("11"))

    def test_quantity_must_be_positive(self):
        with self.assertRaises(ValidationFailedError):
            self._append(quantity=Decimal("0"), quantity_after=Decimal("0"))

    def test_adjustment_may_go_either_way(self):
        out = self._append(
            source_type=InventoryMovement.SourceType.ADJUSTMENT,
            movement_type=InventoryMovement.MovementType.OUT,
            quantity=Decimal("2"),
            quantity_before=Decimal("10"),
            quantity_after=Decimal("8"),
        )
        self.assertEqual(out.movement_type, "OUT")

    def test_list_by_source_is_scoped_and_ordered(self):
        first = self._append()
        second = self._append(
            stock_item_id=self.other_item.id,
            quantity=Decimal("3"),
            quantity_after=Decimal("3"),
        )
        self._append(source_id=uuid.uuid4())
        self._append(
            source_type=InventoryMovement.SourceType.RECEIPT_CANCEL,
            movement_type=InventoryMovement.MovementType.OUT,
            quantity_before=Decimal("10"),
            quantity_after=Decimal("0"),
        )

        found = list_by_source(
            tenant=self.tenant,
            source_type=InventoryMovement.SourceType.RECEIPT,
            source_id=self.source_id,
        )
        self.assertEqual([m.pk for m in found], [first.pk, second.pk])

        self.assertEqual(
            list_by_source(
                tenant=self.other_tenant,
                source_type=InventoryMovement.SourceType.RECEIPT,
                source_id=self.source_id,
            ),
            [],
        )

    def test_group_by_stock_item_keeps_order(self):
        a1 = self._append()
        b1 = self._append(stock_item_id=self.other_item.id)
        a2 = self._append(quantity_before=Decimal("10"), quantity_after=Decimal("20"))

        groups = group_by_stock_item([a1, b1, a2])

        self.assertEqual(list(groups), [self.item.id, self.other_item.id])
        self.assertEqual(groups[self.item.id], [a1, a2])
        self.assertEqual(groups[self.other_item.id], [b1])
