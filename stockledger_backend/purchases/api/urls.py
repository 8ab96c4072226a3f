# purchases/api/urls.py

from django.urls import path

from purchases.api.views import (
    GRVCancelView,
    GRVDetailView,
    GRVListCreateView,
    GRVPostView,
    SupplierListCreateView,
)

urlpatterns = [
    path("suppliers/", SupplierListCreateView.as_view(), name="purchase-suppliers"),
    path("grvs/", GRVListCreateView.as_view(), name="grv-list"),
    path("grvs/<uuid:grv_id>/", GRVDetailView.as_view(), name="grv-detail"),
    path("grvs/<uuid:grv_id>/post/", GRVPostView.as_view(), name="grv-post"),
    path("grvs/<uuid:grv_id>/cancel/", GRVCancelView.as_view(), name="grv-cancel"),
]
