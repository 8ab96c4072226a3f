import uuid
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIClient

from inventory.models import InventoryMovement, StockItem
from purchases.models import GoodsReceivedVoucher, Supplier
from tenants.models import Tenant

User = get_user_model()


class GRVApiTests(TestCase):
    """
    GUARANTEES:
    - GRV endpoints are tenant-scoped and role-gated
    - domain errors come back as {"detail", "code"} with the mapped status
    - inventory endpoints expose the stock and movements written by posting
    """

    def setUp(self):
        self.tenant = Tenant.objects.create(name="Acme", code="ACME")
        self.other_tenant = Tenant.objects.create(name="Globex", code="GLBX")

        self.storeman = User.objects.create_user(
            email="storeman@example.com", password="pass", tenant=self.tenant, role="storeman"
        )
        self.viewer = User.objects.create_user(
            email="viewer@example.com", password="pass", tenant=self.tenant, role="viewer"
        )
        self.outsider = User.objects.create_user(
            email="outsider@example.com", password="pass", tenant=self.other_tenant, role="admin"
        )
        self.no_tenant = User.objects.create_user(
            email="nobody@example.com", password="pass", role="admin"
        )

        self.supplier = Supplier.objects.create(tenant=self.tenant, name="Fasteners Ltd")
        self.bolt = StockItem.objects.create(tenant=self.tenant, sku="BOLT-10", name="Bolt M10")

        self.client = APIClient()
        self.client.force_authenticate(user=self.storeman)

    def _payload(self, qty="10", cost=500, **extra):
        payload = {
            "supplier_id": str(self.supplier.id),
            "lines": [
                {"stock_item_id": str(self.bolt.id), "received_qty": qty, "unit_cost_cents": cost}
            ],
        }
        payload.update(extra)
        return payload

    def _create(self, **kwargs):
        res = self.client.post("/api/purchases/grvs/", self._payload(**kwargs), format="json")
        self.assertEqual(res.status_code, 201, res.data)
        return res.data

    # ---------------- create / read / edit ----------------

    def test_create_returns_draft(self):
        data = self._create(reference_type="po", reference_number="PO-77")

        self.assertEqual(data["status"], GoodsReceivedVoucher.STATUS_DRAFT)
        self.assertTrue(data["grv_number"].startswith("GRV-"))
        self.assertEqual(data["supplier_name"], "Fasteners Ltd")
        self.assertEqual(data["reference_number"], "PO-77")
        self.assertEqual(data["grand_total_cents"], 5750)
        self.assertEqual(len(data["lines"]), 1)
        self.assertEqual(data["lines"][0]["sku"], "BOLT-10")

    def test_list_is_paginated_and_filterable(self):
        self._create()
        posted = self._create()
        self.client.post(f"/api/purchases/grvs/{posted['id']}/post/")

        res = self.client.get("/api/purchases/grvs/", {"status": "posted"})

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["count"], 1)
        self.assertEqual(res.data["results"][0]["id"], posted["id"])

    def test_list_rejects_malformed_supplier_filter(self):
        res = self.client.get("/api/purchases/grvs/", {"supplier": "not-a-uuid"})
        self.assertEqual(res.status_code, 400)

    def test_list_filters_by_supplier(self):
        other = Supplier.objects.create(tenant=self.tenant, name="Paint Co")
        mine = self._create()
        self._create(supplier_id=str(other.id))

        res = self.client.get("/api/purchases/grvs/", {"supplier": str(self.supplier.id)})

        self.assertEqual(res.status_code, 200)
        self.assertEqual([grv["id"] for grv in res.data["results"]], [mine["id"]])

    def test_negative_quantity_is_rejected(self):
        res = self.client.post("/api/purchases/grvs/", self._payload(qty="-1"), format="json")
        self.assertEqual(res.status_code, 400)
        self.assertFalse(GoodsReceivedVoucher.objects.exists())

    def test_unknown_stock_item_is_not_found(self):
        payload = self._payload()
        payload["lines"][0]["stock_item_id"] = str(uuid.uuid4())

        res = self.client.post("/api/purchases/grvs/", payload, format="json")

        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.data["code"], "not_found")

    def test_put_updates_draft(self):
        grv = self._create()

        res = self.client.put(
            f"/api/purchases/grvs/{grv['id']}/", {"notes": "pallet 3 of 4"}, format="json"
        )

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["notes"], "pallet 3 of 4")
        self.assertEqual(len(res.data["lines"]), 1)

    def test_delete_draft_then_posted(self):
        draft = self._create()
        res = self.client.delete(f"/api/purchases/grvs/{draft['id']}/")
        self.assertEqual(res.status_code, 204)
        self.assertEqual(self.client.get(f"/api/purchases/grvs/{draft['id']}/").status_code, 404)

        posted = self._create()
        self.client.post(f"/api/purchases/grvs/{posted['id']}/post/")
        res = self.client.delete(f"/api/purchases/grvs/{posted['id']}/")
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["code"], "invalid_state")

    # ---------------- post / cancel ----------------

    def test_post_then_post_again(self):
        grv = self._create()

        res = self.client.post(f"/api/purchases/grvs/{grv['id']}/post/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["movements_created"], 1)
        self.assertEqual(res.data["grv"]["status"], GoodsReceivedVoucher.STATUS_POSTED)

        res = self.client.post(f"/api/purchases/grvs/{grv['id']}/post/")
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["code"], "invalid_state")
        self.assertNotIn("retryable", res.data)

    def test_cancel_draft_is_conflict(self):
        grv = self._create()

        res = self.client.post(f"/api/purchases/grvs/{grv['id']}/cancel/")

        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["code"], "invalid_state")

    def test_cancel_posted(self):
        grv = self._create()
        self.client.post(f"/api/purchases/grvs/{grv['id']}/post/")

        res = self.client.post(f"/api/purchases/grvs/{grv['id']}/cancel/")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["grv"]["status"], GoodsReceivedVoucher.STATUS_CANCELLED)
        self.assertEqual(res.data["movements_created"], 1)
        self.assertFalse(res.data["partially_reversed"])

        self.bolt.refresh_from_db()
        self.assertEqual(self.bolt.on_hand, Decimal("0.000"))

    def test_cancel_without_movements_is_nothing_to_reverse(self):
        grv = self._create(qty="0")
        self.client.post(f"/api/purchases/grvs/{grv['id']}/post/")

        res = self.client.post(f"/api/purchases/grvs/{grv['id']}/cancel/")

        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["code"], "nothing_to_reverse")

    # ---------------- scoping / roles ----------------

    def test_other_tenant_gets_not_found(self):
        grv = self._create()

        self.client.force_authenticate(user=self.outsider)

        self.assertEqual(self.client.get(f"/api/purchases/grvs/{grv['id']}/").status_code, 404)
        self.assertEqual(
            self.client.post(f"/api/purchases/grvs/{grv['id']}/post/").status_code, 404
        )

    def test_user_without_tenant_is_forbidden(self):
        self.client.force_authenticate(user=self.no_tenant)

        self.assertEqual(self.client.get("/api/purchases/grvs/").status_code, 403)
        self.assertEqual(self.client.get("/api/inventory/stock-items/").status_code, 403)

    def test_viewer_can_read_but_not_write(self):
        grv = self._create()
        self.client.force_authenticate(user=self.viewer)

        self.assertEqual(self.client.get("/api/purchases/grvs/").status_code, 200)
        self.assertEqual(self.client.get(f"/api/purchases/grvs/{grv['id']}/").status_code, 200)
        self.assertEqual(
            self.client.post("/api/purchases/grvs/", self._payload(), format="json").status_code,
            403,
        )
        self.assertEqual(
            self.client.post(f"/api/purchases/grvs/{grv['id']}/post/").status_code, 403
        )

    def test_anonymous_is_rejected(self):
        self.client.force_authenticate(user=None)
        self.assertIn(self.client.get("/api/purchases/grvs/").status_code, (401, 403))

    # ---------------- suppliers ----------------

    def test_supplier_create_and_list(self):
        res = self.client.post(
            "/api/purchases/suppliers/", {"name": "Paint Co"}, format="json"
        )
        self.assertEqual(res.status_code, 201)
        self.assertTrue(Supplier.objects.filter(tenant=self.tenant, name="Paint Co").exists())

        res = self.client.get("/api/purchases/suppliers/")
        self.assertEqual([s["name"] for s in res.data], ["Fasteners Ltd", "Paint Co"])

    # ---------------- inventory read endpoints ----------------

    def test_inventory_endpoints_reflect_posting(self):
        grv = self._create()
        self.client.post(f"/api/purchases/grvs/{grv['id']}/post/")

        res = self.client.get("/api/inventory/stock-items/", {"sku": "bolt-10"})
        self.assertEqual(res.status_code, 200)
        [item] = res.data["results"]
        self.assertEqual(item["on_hand"], "10.000")
        self.assertEqual(item["average_cost_cents"], 500)

        res = self.client.get("/api/inventory/movements/", {"source_id": grv["id"]})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["count"], 1)
        self.assertEqual(res.data["results"][0]["source_type"], InventoryMovement.SourceType.RECEIPT)
        self.assertEqual(res.data["results"][0]["total_cost_cents"], 5000)

        res = self.client.get(f"/api/inventory/movements/by-source/{grv['id']}/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(len(res.data), 1)
        self.assertEqual(res.data[0]["stock_item_sku"], "BOLT-10")

    def test_inventory_is_tenant_scoped(self):
        StockItem.objects.create(tenant=self.other_tenant, sku="OTHER", name="Other")

        res = self.client.get("/api/inventory/stock-items/")

        self.assertEqual([item["sku"] for item in res.data["results"]], ["BOLT-10"])

    def test_inventory_is_read_only(self):
        res = self.client.post(
            "/api/inventory/stock-items/", {"sku": "NEW", "name": "New"}, format="json"
        )
        self.assertEqual(res.status_code, 405)
