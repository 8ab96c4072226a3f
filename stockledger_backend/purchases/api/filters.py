# purchases/api/filters.py

import django_filters

from purchases.models import GoodsReceivedVoucher


class GRVFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(method="filter_status")
    supplier = django_filters.UUIDFilter(field_name="supplier_id")

    class Meta:
        model = GoodsReceivedVoucher
        fields = ["status", "supplier"]

    def filter_status(self, queryset, name, value):
        value = (value or "").strip().upper()
        if not value:
            return queryset
        return queryset.filter(status=value)
