# inventory/api/filters.py

import django_filters
from django.db.models import Q

from inventory.models import InventoryMovement, StockItem


class StockItemFilter(django_filters.FilterSet):
    sku = django_filters.CharFilter(field_name="sku", lookup_expr="iexact")
    q = django_filters.CharFilter(method="filter_search")

    class Meta:
        model = StockItem
        fields = ["sku", "is_active"]

    def filter_search(self, queryset, name, value):
        value = (value or "").strip()
        if not value:
            return queryset
        return queryset.filter(Q(name__icontains=value) | Q(sku__icontains=value))


class InventoryMovementFilter(django_filters.FilterSet):
    created_from = django_filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    created_to = django_filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = InventoryMovement
        fields = ["stock_item", "source_type", "source_id", "movement_type", "location_code"]
