import re
import uuid
from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings

from inventory.models import InventoryMovement, StockItem
from inventory.services.exceptions import (
    ConcurrencyConflictError,
    InvalidStateError,
    NothingToReverseError,
    NotFoundError,
    ValidationFailedError,
)
from purchases.models import GoodsReceivedVoucher, Supplier
from purchases.services import grv_service
from purchases.services.grv_service import (
    cancel_grv,
    create_grv,
    delete_grv,
    get_grv,
    post_grv,
    update_grv,
)
from tenants.models import Tenant

User = get_user_model()


class GRVServiceTestCase(TestCase):
    def setUp(self):
        self.tenant = Tenant.objects.create(name="Acme")
        self.other_tenant = Tenant.objects.create(name="Globex")

        self.user = User.objects.create_user(
            email="storeman@example.com",
            password="pass",
            tenant=self.tenant,
            role="storeman",
        )
        self.supplier = Supplier.objects.create(tenant=self.tenant, name="Fasteners Ltd")

        self.bolt = StockItem.objects.create(tenant=self.tenant, sku="BOLT-10", name="Bolt M10")
        self.nut = StockItem.objects.create(tenant=self.tenant, sku="NUT-10", name="Nut M10")
        self.washer = StockItem.objects.create(
            tenant=self.tenant, sku="WSH-10", name="Washer M10", is_vat_exempt=True
        )

    def _create(self, *lines, tenant=None):
        return create_grv(
            tenant=tenant or self.tenant,
            user=self.user,
            supplier_id=self.supplier.id,
            lines=[
                {"stock_item_id": item.id, "received_qty": qty, "unit_cost_cents": cost}
                for item, qty, cost in lines
            ],
        )

    def _post(self, grv):
        return post_grv(tenant=self.tenant, grv_id=grv.id, user=self.user)

    def _cancel(self, grv):
        return cancel_grv(tenant=self.tenant, grv_id=grv.id, user=self.user)

    def _stock(self, item):
        item.refresh_from_db()
        return item.on_hand, item.average_cost_cents


class CreateAndEditGRVTests(GRVServiceTestCase):
    """
    GUARANTEES:
    - new GRVs are DRAFT with a GRV-YYYYMM-NNNNNN number
    - lines snapshot their stock item; rollups come from the totals service
    - only DRAFT GRVs can be edited or deleted
    """

    def test_create_draft_with_number_and_rollups(self):
        grv = self._create((self.bolt, 10, 500), (self.washer, 2, 1000))

        self.assertEqual(grv.status, GoodsReceivedVoucher.STATUS_DRAFT)
        self.assertRegex(grv.grv_number, r"^GRV-\d{6}-000001$")
        self.assertEqual(grv.location_code, "main")

        grv.refresh_from_db()
        self.assertEqual(grv.subtotal_cents, 7000)
        self.assertEqual(grv.vat_total_cents, 750)
        self.assertEqual(grv.grand_total_cents, 7750)

        lines = list(grv.lines.all())
        self.assertEqual([line.line_no for line in lines], [1, 2])
        self.assertEqual(lines[0].sku, "BOLT-10")
        self.assertEqual(lines[0].total_cents, 5750)
        self.assertTrue(lines[1].is_vat_exempt)
        self.assertEqual(lines[1].vat_cents, 0)

    def test_numbers_are_sequential_per_tenant(self):
        first = self._create((self.bolt, 1, 100))
        second = self._create((self.bolt, 1, 100))

        self.assertEqual(
            int(re.search(r"(\d+)$", second.grv_number).group(1)),
            int(re.search(r"(\d+)$", first.grv_number).group(1)) + 1,
        )

    def test_discount_is_applied_once(self):
        grv = create_grv(
            tenant=self.tenant,
            user=self.user,
            supplier_id=self.supplier.id,
            lines=[
                {
                    "stock_item_id": self.bolt.id,
                    "received_qty": 10,
                    "unit_cost_cents": 500,
                    "discount_type": "percent",
                    "discount_value": 10,
                }
            ],
        )
        grv.refresh_from_db()

        self.assertEqual(grv.subtotal_cents, 4500)
        self.assertEqual(grv.discount_total_cents, 500)
        self.assertEqual(grv.vat_total_cents, 675)
        self.assertEqual(grv.grand_total_cents, 5175)

    @override_settings(STOCK_LEDGER={"DEFAULT_VAT_RATE_BPS": 1000, "DEFAULT_VAT_MODE": "inclusive"})
    def test_vat_defaults_come_from_settings(self):
        item = StockItem.objects.create(tenant=self.tenant, sku="GLUE", name="Wood glue")
        self.assertEqual(item.vat_rate_bps, 1000)

        grv = self._create((item, 1, 1100))
        grv.refresh_from_db()

        self.assertEqual(grv.subtotal_cents, 1100)
        self.assertEqual(grv.vat_total_cents, 100)
        self.assertEqual(grv.grand_total_cents, 1100)

    def test_create_requires_known_supplier(self):
        with self.assertRaises(NotFoundError):
            create_grv(
                tenant=self.tenant,
                user=self.user,
                supplier_id=uuid.uuid4(),
                lines=[{"stock_item_id": self.bolt.id, "received_qty": 1, "unit_cost_cents": 1}],
            )

        with self.assertRaises(ValidationFailedError):
            create_grv(
                tenant=self.tenant,
                user=self.user,
                supplier_id=None,
                lines=[{"stock_item_id": self.bolt.id, "received_qty": 1, "unit_cost_cents": 1}],
            )

    def test_create_requires_lines(self):
        with self.assertRaises(ValidationFailedError):
            create_grv(tenant=self.tenant, user=self.user, supplier_id=self.supplier.id, lines=[])

    def test_create_rejects_foreign_stock_item(self):
        foreign = StockItem.objects.create(tenant=self.other_tenant, sku="X", name="Foreign")

        with self.assertRaises(NotFoundError):
            self._create((foreign, 1, 100))
        self.assertFalse(GoodsReceivedVoucher.objects.exists())

    def test_create_rejects_negative_quantity(self):
        with self.assertRaises(ValidationFailedError):
            self._create((self.bolt, -1, 100))

    def test_update_replaces_lines_and_recomputes(self):
        grv = self._create((self.bolt, 10, 500))

        updated = update_grv(
            tenant=self.tenant,
            grv_id=grv.id,
            user=self.user,
            notes="second delivery",
            lines=[{"stock_item_id": self.nut.id, "received_qty": 4, "unit_cost_cents": 250}],
        )

        self.assertEqual(updated.notes, "second delivery")
        self.assertEqual([line.sku for line in updated.lines.all()], ["NUT-10"])
        self.assertEqual(updated.subtotal_cents, 1000)
        self.assertEqual(updated.grand_total_cents, 1150)

    def test_update_rejects_unknown_fields(self):
        grv = self._create((self.bolt, 10, 500))

        with self.assertRaises(ValidationFailedError):
            update_grv(tenant=self.tenant, grv_id=grv.id, user=self.user, status="POSTED")

    def test_update_blank_location_name_falls_back_to_default(self):
        grv = self._create((self.bolt, 10, 500))

        updated = update_grv(
            tenant=self.tenant, grv_id=grv.id, user=self.user, location_name=""
        )

        self.assertEqual(updated.location_name, "Main Warehouse")

    def test_posted_grv_cannot_be_edited_or_deleted(self):
        grv = self._create((self.bolt, 10, 500))
        self._post(grv)

        with self.assertRaises(InvalidStateError):
            update_grv(tenant=self.tenant, grv_id=grv.id, user=self.user, notes="late edit")
        with self.assertRaises(InvalidStateError):
            delete_grv(tenant=self.tenant, grv_id=grv.id, user=self.user)

    def test_delete_draft_is_soft(self):
        grv = self._create((self.bolt, 10, 500))

        delete_grv(tenant=self.tenant, grv_id=grv.id, user=self.user)

        stored = GoodsReceivedVoucher.objects.get(pk=grv.pk)
        self.assertTrue(stored.is_deleted)
        self.assertEqual(stored.deleted_by, self.user)
        with self.assertRaises(NotFoundError):
            get_grv(tenant=self.tenant, grv_id=grv.id)

    def test_other_tenant_cannot_see_grv(self):
        grv = self._create((self.bolt, 10, 500))

        with self.assertRaises(NotFoundError):
            get_grv(tenant=self.other_tenant, grv_id=grv.id)
        with self.assertRaises(NotFoundError):
            post_grv(tenant=self.other_tenant, grv_id=grv.id, user=self.user)

    def test_malformed_id_is_not_found(self):
        with self.assertRaises(NotFoundError):
            get_grv(tenant=self.tenant, grv_id="nope")


class PostGRVTests(GRVServiceTestCase):
    """
    GUARANTEES:
    - posting receives stock at weighted-average cost (Scenarios A, B)
    - one IN movement per non-zero line, with before/after snapshots
    - posting is all-or-nothing across lines
    """

    def test_scenario_a_first_receipt(self):
        grv = self._create((self.bolt, 10, 500))

        result = self._post(grv)

        self.assertEqual(self._stock(self.bolt), (Decimal("10.000"), 500))
        self.assertEqual(self.bolt.last_cost_cents, 500)

        self.assertEqual(result.grv.status, GoodsReceivedVoucher.STATUS_POSTED)
        self.assertIsNotNone(result.grv.posted_at)
        self.assertEqual(result.grv.posted_by, self.user)

        [movement] = result.movements
        self.assertEqual(movement.source_type, InventoryMovement.SourceType.RECEIPT)
        self.assertEqual(movement.movement_type, InventoryMovement.MovementType.IN)
        self.assertEqual(movement.source_id, grv.id)
        self.assertEqual(movement.source_line_id, grv.lines.get().id)
        self.assertEqual(movement.quantity_before, Decimal("0.000"))
        self.assertEqual(movement.quantity_after, Decimal("10.000"))
        self.assertEqual(movement.cost_before_cents, 0)
        self.assertEqual(movement.cost_after_cents, 500)
        self.assertEqual(movement.created_by, self.user)

    def test_scenario_b_second_receipt_blends_cost(self):
        self._post(self._create((self.bolt, 10, 500)))
        self._post(self._create((self.bolt, 10, 700)))

        self.assertEqual(self._stock(self.bolt), (Decimal("20.000"), 600))
        self.assertEqual(self.bolt.last_cost_cents, 700)

    def test_same_item_on_two_lines_chains_snapshots(self):
        grv = self._create((self.bolt, 10, 500), (self.bolt, 10, 700))

        result = self._post(grv)

        first, second = result.movements
        self.assertEqual((first.quantity_before, first.quantity_after), (Decimal("0.000"), Decimal("10.000")))
        self.assertEqual((second.quantity_before, second.quantity_after), (Decimal("10.000"), Decimal("20.000")))
        self.assertEqual(second.cost_before_cents, 500)
        self.assertEqual(second.cost_after_cents, 600)
        self.assertEqual(self._stock(self.bolt), (Decimal("20.000"), 600))

    def test_zero_quantity_line_writes_nothing(self):
        grv = self._create((self.bolt, 10, 500), (self.nut, 0, 300))

        result = self._post(grv)

        self.assertEqual(len(result.movements), 1)
        self.assertEqual(self._stock(self.nut), (Decimal("0.000"), 0))

    def test_post_twice_is_invalid_state(self):
        grv = self._create((self.bolt, 10, 500))
        self._post(grv)

        with self.assertRaises(InvalidStateError):
            self._post(grv)
        self.assertEqual(InventoryMovement.objects.filter(source_id=grv.id).count(), 1)

    def test_post_requires_supplier(self):
        grv = self._create((self.bolt, 10, 500))
        GoodsReceivedVoucher.objects.filter(pk=grv.pk).update(supplier=None)

        with self.assertRaises(ValidationFailedError):
            self._post(grv)

    def test_post_requires_lines(self):
        grv = self._create((self.bolt, 10, 500))
        grv.lines.all().delete()

        with self.assertRaises(ValidationFailedError):
            self._post(grv)

    def test_missing_second_item_leaves_no_side_effects(self):
        grv = self._create((self.bolt, 10, 500), (self.nut, 5, 200), (self.washer, 3, 100))
        StockItem.objects.filter(pk=self.nut.pk).update(is_deleted=True)

        with self.assertRaises(NotFoundError):
            self._post(grv)

        self.assertEqual(self._stock(self.bolt), (Decimal("0.000"), 0))
        self.assertFalse(InventoryMovement.objects.exists())
        grv.refresh_from_db()
        self.assertEqual(grv.status, GoodsReceivedVoucher.STATUS_DRAFT)

    def test_failure_mid_batch_rolls_back_earlier_lines(self):
        grv = self._create((self.bolt, 10, 500), (self.nut, 5, 200), (self.washer, 3, 100))
        real_apply_delta = grv_service.apply_delta
        calls = []

        def flaky_apply_delta(**kwargs):
            calls.append(kwargs["stock_item_id"])
            if len(calls) == 2:
                raise NotFoundError("Stock item vanished")
            return real_apply_delta(**kwargs)

        with mock.patch.object(grv_service, "apply_delta", side_effect=flaky_apply_delta):
            with self.assertRaises(NotFoundError):
                self._post(grv)

        self.assertEqual(len(calls), 2)
        self.assertEqual(self._stock(self.bolt), (Decimal("0.000"), 0))
        self.assertFalse(InventoryMovement.objects.exists())
        grv.refresh_from_db()
        self.assertEqual(grv.status, GoodsReceivedVoucher.STATUS_DRAFT)

    def test_scenario_e_stale_second_post_loses_status_guard(self):
        grv = self._create((self.bolt, 10, 500))
        stale = GoodsReceivedVoucher.objects.get(pk=grv.pk)

        self._post(grv)

        # a second request that read the GRV while it was still DRAFT
        with mock.patch.object(grv_service, "_lock_grv", return_value=stale):
            with self.assertRaises(ConcurrencyConflictError):
                self._post(grv)

        self.assertEqual(InventoryMovement.objects.filter(source_id=grv.id).count(), 1)
        self.assertEqual(self._stock(self.bolt), (Decimal("10.000"), 500))


class CancelGRVTests(GRVServiceTestCase):
    """
    GUARANTEES:
    - cancelling reverses what is still on hand (Scenarios C, D)
    - one OUT movement per original movement, chained before/after
    - earlier movements are never rewritten
    """

    def test_scenario_c_cancel_recomputes_cost(self):
        first = self._create((self.bolt, 10, 500))
        self._post(first)
        self._post(self._create((self.bolt, 10, 700)))

        result = self._cancel(first)

        self.assertEqual(self._stock(self.bolt), (Decimal("10.000"), 700))
        self.assertFalse(result.partially_reversed)
        self.assertEqual(result.grv.status, GoodsReceivedVoucher.STATUS_CANCELLED)
        self.assertIsNotNone(result.grv.cancelled_at)
        self.assertEqual(result.grv.cancelled_by, self.user)

        [out] = result.movements
        self.assertEqual(out.source_type, InventoryMovement.SourceType.RECEIPT_CANCEL)
        self.assertEqual(out.movement_type, InventoryMovement.MovementType.OUT)
        self.assertEqual(out.quantity, Decimal("10.000"))
        self.assertEqual(out.unit_cost_cents, 500)
        self.assertEqual((out.quantity_before, out.quantity_after), (Decimal("20.000"), Decimal("10.000")))
        self.assertEqual((out.cost_before_cents, out.cost_after_cents), (600, 700))

    def test_scenario_d_partial_reversal(self):
        grv = self._create((self.bolt, 10, 500))
        self._post(grv)
        # five units consumed elsewhere
        StockItem.objects.filter(pk=self.bolt.pk).update(on_hand=Decimal("5"))

        result = self._cancel(grv)

        self.assertTrue(result.partially_reversed)
        self.assertEqual(result.grv.status, GoodsReceivedVoucher.STATUS_CANCELLED)
        self.assertEqual(self._stock(self.bolt), (Decimal("0.000"), 500))

        [out] = result.movements
        self.assertEqual(out.quantity, Decimal("5.000"))
        self.assertEqual((out.quantity_before, out.quantity_after), (Decimal("5.000"), Decimal("0.000")))

    def test_cancel_with_nothing_on_hand_flips_status_without_movements(self):
        grv = self._create((self.bolt, 10, 500))
        self._post(grv)
        StockItem.objects.filter(pk=self.bolt.pk).update(on_hand=Decimal("0"))

        result = self._cancel(grv)

        self.assertEqual(result.movements, [])
        self.assertTrue(result.partially_reversed)
        self.assertEqual(result.grv.status, GoodsReceivedVoucher.STATUS_CANCELLED)

    def test_cancel_two_lines_same_item_chains_out_entries(self):
        grv = self._create((self.bolt, 10, 500), (self.bolt, 10, 700))
        self._post(grv)

        result = self._cancel(grv)

        first, second = result.movements
        self.assertEqual((first.quantity_before, first.quantity_after), (Decimal("20.000"), Decimal("10.000")))
        self.assertEqual((second.quantity_before, second.quantity_after), (Decimal("10.000"), Decimal("0.000")))
        self.assertEqual(self._stock(self.bolt), (Decimal("0.000"), 600))

    def test_cancel_multiple_items(self):
        grv = self._create((self.bolt, 10, 500), (self.nut, 4, 250))
        self._post(self._create((self.nut, 4, 750)))
        self._post(grv)

        result = self._cancel(grv)

        self.assertEqual(len(result.movements), 2)
        self.assertEqual(self._stock(self.bolt), (Decimal("0.000"), 500))
        self.assertEqual(self._stock(self.nut), (Decimal("4.000"), 750))

    def test_cancel_draft_is_invalid_state(self):
        grv = self._create((self.bolt, 10, 500))

        with self.assertRaises(InvalidStateError):
            self._cancel(grv)

    def test_cancel_twice_is_invalid_state(self):
        grv = self._create((self.bolt, 10, 500))
        self._post(grv)
        self._cancel(grv)

        with self.assertRaises(InvalidStateError):
            self._cancel(grv)
        self.assertEqual(
            InventoryMovement.objects.filter(
                source_id=grv.id, source_type=InventoryMovement.SourceType.RECEIPT_CANCEL
            ).count(),
            1,
        )

    def test_cancel_without_movements_is_nothing_to_reverse(self):
        grv = self._create((self.bolt, 0, 500))
        self._post(grv)

        with self.assertRaises(NothingToReverseError):
            self._cancel(grv)

        grv.refresh_from_db()
        self.assertEqual(grv.status, GoodsReceivedVoucher.STATUS_POSTED)

    def test_earlier_movements_are_never_rewritten(self):
        first = self._create((self.bolt, 10, 500))
        [original] = self._post(first).movements
        self._post(self._create((self.bolt, 10, 700)))
        self._cancel(first)

        stored = InventoryMovement.objects.get(pk=original.pk)
        self.assertEqual(stored.quantity_before, Decimal("0.000"))
        self.assertEqual(stored.quantity_after, Decimal("10.000"))
        self.assertEqual(stored.cost_after_cents, 500)

    def test_post_then_cancel_round_trip(self):
        StockItem.objects.filter(pk=self.bolt.pk).update(on_hand=Decimal("7"), average_cost_cents=333)
        grv = self._create((self.bolt, 5, 911))
        self._post(grv)

        self._cancel(grv)

        on_hand, avg = self._stock(self.bolt)
        self.assertEqual(on_hand, Decimal("7.000"))
        self.assertLessEqual(abs(avg - 333), 1)

    def test_fractional_receipts_stay_on_quantity_grid(self):
        grvs = [self._create((self.bolt, qty, 100)) for qty in ("0.1", "0.2", "0.3")]
        for grv in grvs:
            self._post(grv)
        self.assertEqual(self._stock(self.bolt), (Decimal("0.600"), 100))

        [out] = self._cancel(grvs[1]).movements

        self.assertEqual(out.quantity, Decimal("0.200"))
        self.assertEqual((out.quantity_before, out.quantity_after), (Decimal("0.600"), Decimal("0.400")))
        self.assertEqual(self._stock(self.bolt), (Decimal("0.400"), 100))

        # the stored value must still match the next snapshot guard
        self._post(self._create((self.bolt, 1, 100)))
        self.assertEqual(self._stock(self.bolt), (Decimal("1.400"), 100))

    def test_cancel_reverses_soft_deleted_stock_item(self):
        grv = self._create((self.bolt, 10, 500))
        self._post(grv)
        StockItem.objects.filter(pk=self.bolt.pk).update(is_deleted=True)

        result = self._cancel(grv)

        self.assertEqual(result.grv.status, GoodsReceivedVoucher.STATUS_CANCELLED)
        self.assertFalse(result.partially_reversed)
        [out] = result.movements
        self.assertEqual(out.quantity, Decimal("10.000"))
        self.assertEqual(self._stock(self.bolt), (Decimal("0.000"), 500))
