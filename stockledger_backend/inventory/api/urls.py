# inventory/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from inventory.api.views import InventoryMovementViewSet, StockItemViewSet

router = DefaultRouter()
router.register("stock-items", StockItemViewSet, basename="stock-item")
router.register("movements", InventoryMovementViewSet, basename="inventory-movement")

urlpatterns = [
    path("", include(router.urls)),
]
