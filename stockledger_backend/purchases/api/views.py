# purchases/api/views.py

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from inventory.api.errors import stock_ledger_error_response
from inventory.services.exceptions import StockLedgerError
from purchases.api.filters import GRVFilter
from purchases.api.serializers import (
    GRVCancelResponseSerializer,
    GRVCreateSerializer,
    GRVPostResponseSerializer,
    GRVSerializer,
    GRVUpdateSerializer,
    SupplierSerializer,
)
from purchases.models import GoodsReceivedVoucher, Supplier
from purchases.services.grv_service import (
    cancel_grv,
    create_grv,
    delete_grv,
    get_grv,
    post_grv,
    update_grv,
)
from users.permissions import HasTenant, IsStockWriter, request_tenant

PERMISSIONS = [IsAuthenticated, HasTenant, IsStockWriter]


class SupplierListCreateView(GenericAPIView):
    permission_classes = PERMISSIONS
    serializer_class = SupplierSerializer

    @extend_schema(tags=["purchases"], responses=SupplierSerializer(many=True))
    def get(self, request):
        qs = Supplier.objects.filter(
            tenant=request_tenant(request), is_active=True
        ).order_by("name")
        return Response(
            SupplierSerializer(qs, many=True).data, status=status.HTTP_200_OK
        )

    @extend_schema(
        tags=["purchases"],
        request=SupplierSerializer,
        responses={201: SupplierSerializer},
    )
    def post(self, request):
        s = SupplierSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        supplier = s.save(tenant=request_tenant(request))
        return Response(
            SupplierSerializer(supplier).data, status=status.HTTP_201_CREATED
        )


class GRVListCreateView(GenericAPIView):
    permission_classes = PERMISSIONS
    serializer_class = GRVSerializer
    filterset_class = GRVFilter

    def get_queryset(self):
        return (
            GoodsReceivedVoucher.objects.filter(
                tenant=request_tenant(self.request), is_deleted=False
            )
            .select_related("supplier")
            .prefetch_related("lines")
            .order_by("-created_at")
        )

    @extend_schema(tags=["purchases"], responses=GRVSerializer(many=True))
    def get(self, request):
        qs = self.filter_queryset(self.get_queryset())

        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(GRVSerializer(page, many=True).data)
        return Response(GRVSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["purchases"],
        request=GRVCreateSerializer,
        responses={201: GRVSerializer},
    )
    def post(self, request):
        s = GRVCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = dict(s.validated_data)
        lines = [dict(line) for line in data.pop("lines")]

        try:
            grv = create_grv(
                tenant=request_tenant(request),
                user=request.user,
                lines=lines,
                **data,
            )
        except StockLedgerError as exc:
            return stock_ledger_error_response(exc)

        grv = get_grv(tenant=grv.tenant, grv_id=grv.pk)
        return Response(GRVSerializer(grv).data, status=status.HTTP_201_CREATED)


class GRVDetailView(GenericAPIView):
    permission_classes = PERMISSIONS
    serializer_class = GRVSerializer

    @extend_schema(tags=["purchases"], responses=GRVSerializer)
    def get(self, request, grv_id):
        try:
            grv = get_grv(tenant=request_tenant(request), grv_id=grv_id)
        except StockLedgerError as exc:
            return stock_ledger_error_response(exc)
        return Response(GRVSerializer(grv).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["purchases"], request=GRVUpdateSerializer, responses=GRVSerializer)
    def put(self, request, grv_id):
        s = GRVUpdateSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        changes = dict(s.validated_data)
        if "lines" in changes:
            changes["lines"] = [dict(line) for line in changes["lines"]]

        try:
            grv = update_grv(
                tenant=request_tenant(request),
                grv_id=grv_id,
                user=request.user,
                **changes,
            )
        except StockLedgerError as exc:
            return stock_ledger_error_response(exc)
        return Response(GRVSerializer(grv).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["purchases"], responses={204: None})
    def delete(self, request, grv_id):
        try:
            delete_grv(tenant=request_tenant(request), grv_id=grv_id, user=request.user)
        except StockLedgerError as exc:
            return stock_ledger_error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)


class GRVPostView(GenericAPIView):
    permission_classes = PERMISSIONS
    serializer_class = GRVPostResponseSerializer

    @extend_schema(tags=["purchases"], request=None, responses=GRVPostResponseSerializer)
    def post(self, request, grv_id):
        try:
            result = post_grv(
                tenant=request_tenant(request), grv_id=grv_id, user=request.user
            )
        except StockLedgerError as exc:
            return stock_ledger_error_response(exc)

        return Response(
            {
                "grv": GRVSerializer(result.grv).data,
                "movements_created": len(result.movements),
            },
            status=status.HTTP_200_OK,
        )


class GRVCancelView(GenericAPIView):
    permission_classes = PERMISSIONS
    serializer_class = GRVCancelResponseSerializer

    @extend_schema(tags=["purchases"], request=None, responses=GRVCancelResponseSerializer)
    def post(self, request, grv_id):
        try:
            result = cancel_grv(
                tenant=request_tenant(request), grv_id=grv_id, user=request.user
            )
        except StockLedgerError as exc:
            return stock_ledger_error_response(exc)

        return Response(
            {
                "grv": GRVSerializer(result.grv).data,
                "movements_created": len(result.movements),
                "partially_reversed": result.partially_reversed,
            },
            status=status.HTTP_200_OK,
        )
