# inventory/api/views.py

"""
INVENTORY API (READ-ONLY)

- Stock items: current on-hand + weighted-average cost per tenant
- Movements: the immutable ledger, newest first, filterable by
  stock_item / source_type / source_id / movement_type
- /movements/by-source/<uuid>/ lists every movement written by one document

Writes happen only through the receipt lifecycle services.
"""

from drf_spectacular.utils import extend_schema
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import ReadOnlyModelViewSet

from inventory.api.filters import InventoryMovementFilter, StockItemFilter
from inventory.api.serializers import InventoryMovementSerializer, StockItemSerializer
from inventory.models import InventoryMovement, StockItem
from users.permissions import HasTenant, request_tenant


@extend_schema(tags=["inventory"])
class StockItemViewSet(ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated, HasTenant]
    serializer_class = StockItemSerializer
    filterset_class = StockItemFilter

    def get_queryset(self):
        return StockItem.objects.filter(
            tenant=request_tenant(self.request), is_deleted=False
        ).order_by("name", "sku")


@extend_schema(tags=["inventory"])
class InventoryMovementViewSet(ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated, HasTenant]
    serializer_class = InventoryMovementSerializer
    filterset_class = InventoryMovementFilter

    def get_queryset(self):
        return (
            InventoryMovement.objects.filter(tenant=request_tenant(self.request))
            .select_related("stock_item", "created_by")
            .order_by("-created_at", "-id")
        )

    @extend_schema(tags=["inventory"], responses=InventoryMovementSerializer(many=True))
    @action(detail=False, methods=["get"], url_path=r"by-source/(?P<source_id>[0-9a-f-]{36})")
    def by_source(self, request, source_id=None):
        qs = (
            InventoryMovement.objects.filter(
                tenant=request_tenant(request), source_id=source_id
            )
            .select_related("stock_item", "created_by")
            .order_by("created_at", "id")
        )
        return Response(InventoryMovementSerializer(qs, many=True).data)
