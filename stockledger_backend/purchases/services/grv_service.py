# purchases/services/grv_service.py

"""
GOODS RECEIVED VOUCHER (GRV) SERVICE

Lifecycle:
- create_grv / update_grv: DRAFT only, lines snapshotted + rollups recomputed
- post_grv:   DRAFT -> POSTED, receives stock at weighted-average cost
- cancel_grv: POSTED -> CANCELLED, reverses what is still on hand
- delete_grv: soft delete, DRAFT only

Atomicity:
- post/cancel run in ONE transaction: the GRV row is locked, every
  referenced stock item is locked (sorted), and any failure rolls back
  all movements and stock deltas written so far
- every status write is guarded (UPDATE ... WHERE status = <expected>);
  losing that race raises ConcurrencyConflictError and rolls back
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from core.conf import ledger_setting
from core.services.numbering import generate_document_number
from core.services.totals import (
    DocumentTotals,
    calculate_document_totals,
    calculate_line_totals,
    line_discount_cents,
)
from inventory.models import InventoryMovement, StockItem
from inventory.services import costing
from inventory.services.exceptions import (
    ConcurrencyConflictError,
    NothingToReverseError,
    NotFoundError,
    ValidationFailedError,
)
from inventory.services.ledger import append_movement, group_by_stock_item, list_by_source
from inventory.services.stock_store import apply_delta, get_stock, lock_stock_items
from purchases.models import GoodsReceivedVoucher, GoodsReceivedVoucherLine, Supplier
from purchases.services.grv_lifecycle import ensure_editable, validate_transition
from purchases.services.grv_lines import GRVLineInput, normalize_lines

logger = logging.getLogger("purchases")

GRV_DOCUMENT_KEY = "GRV"

EDITABLE_FIELDS = {
    "supplier_id",
    "lines",
    "received_at",
    "location_code",
    "location_name",
    "reference_type",
    "reference_number",
    "notes",
}


@dataclass(frozen=True)
class PostingResult:
    grv: GoodsReceivedVoucher
    movements: list[InventoryMovement]


@dataclass(frozen=True)
class CancellationResult:
    grv: GoodsReceivedVoucher
    movements: list[InventoryMovement]
    partially_reversed: bool


# ============================================================
# LOOKUPS
# ============================================================


def _scoped(tenant):
    return GoodsReceivedVoucher.objects.filter(tenant=tenant, is_deleted=False)


def get_grv(*, tenant, grv_id) -> GoodsReceivedVoucher:
    try:
        return (
            _scoped(tenant)
            .select_related("supplier", "posted_by", "cancelled_by", "created_by")
            .prefetch_related("lines")
            .get(pk=grv_id)
        )
    except (GoodsReceivedVoucher.DoesNotExist, ValidationError):
        raise NotFoundError(f"GRV not found: {grv_id}")


def _lock_grv(*, tenant, grv_id) -> GoodsReceivedVoucher:
    try:
        return _scoped(tenant).select_for_update().get(pk=grv_id)
    except (GoodsReceivedVoucher.DoesNotExist, ValidationError):
        raise NotFoundError(f"GRV not found: {grv_id}")


def _resolve_supplier(*, tenant, supplier_id) -> Supplier:
    if supplier_id in (None, ""):
        raise ValidationFailedError("supplier_id is required")
    try:
        return Supplier.objects.get(pk=supplier_id, tenant=tenant, is_active=True)
    except (Supplier.DoesNotExist, ValidationError):
        raise NotFoundError(f"Supplier not found: {supplier_id}")


def _resolve_stock_items(*, tenant, lines: Iterable[GRVLineInput]) -> dict:
    ids = {line.stock_item_id for line in lines}
    items = {
        item.pk: item
        for item in StockItem.objects.filter(tenant=tenant, is_deleted=False, pk__in=ids)
    }
    for line_no, line in enumerate(lines, start=1):
        if line.stock_item_id not in items:
            raise NotFoundError(f"Line {line_no}: stock item not found: {line.stock_item_id}")
    return items


def _validate_reference_type(value: str) -> str:
    value = (value or GoodsReceivedVoucher.ReferenceType.NONE).strip()
    if value not in GoodsReceivedVoucher.ReferenceType.values:
        raise ValidationFailedError(f"Unknown reference_type '{value}'")
    return value


# ============================================================
# LINES + ROLLUPS
# ============================================================


def _write_lines(*, grv: GoodsReceivedVoucher, lines: list[GRVLineInput], items: dict) -> DocumentTotals:
    vat_mode = ledger_setting("DEFAULT_VAT_MODE")
    rows = []
    line_totals = []

    for line_no, line in enumerate(lines, start=1):
        item = items[line.stock_item_id]

        discount = line_discount_cents(
            quantity=line.received_qty,
            unit_price_cents=line.unit_cost_cents,
            discount_type=line.discount_type,
            discount_value=line.discount_value,
        )
        totals = calculate_line_totals(
            quantity=line.received_qty,
            unit_price_cents=line.unit_cost_cents,
            discount_cents=discount,
            taxable=not item.is_vat_exempt,
            vat_rate_bps=item.vat_rate_bps,
            vat_mode=vat_mode,
        )
        line_totals.append(totals)

        rows.append(
            GoodsReceivedVoucherLine(
                grv=grv,
                line_no=line_no,
                stock_item=item,
                sku=item.sku,
                name=item.name,
                unit=item.unit,
                vat_rate_bps=item.vat_rate_bps,
                is_vat_exempt=item.is_vat_exempt,
                ordered_qty=line.ordered_qty,
                received_qty=line.received_qty,
                unit_cost_cents=line.unit_cost_cents,
                discount_type=line.discount_type,
                discount_value=line.discount_value,
                subtotal_cents=totals.subtotal_cents,
                discount_cents=totals.discount_cents,
                vat_cents=totals.vat_cents,
                total_cents=totals.total_cents,
                batch_number=line.batch_number,
                expiry_date=line.expiry_date,
                serial_numbers=list(line.serial_numbers),
                variance_reason=line.variance_reason,
                remarks=line.remarks,
            )
        )

    GoodsReceivedVoucherLine.objects.bulk_create(rows)
    return calculate_document_totals(line_totals, vat_mode=vat_mode)


def _rollup_fields(totals: DocumentTotals) -> dict:
    return {
        "subtotal_cents": totals.subtotal_cents,
        "discount_total_cents": totals.discount_total_cents,
        "vat_total_cents": totals.vat_total_cents,
        "grand_total_cents": totals.grand_total_cents,
    }


def _guarded_status_update(*, tenant, grv: GoodsReceivedVoucher, expected_status: str, **fields) -> None:
    updated = (
        _scoped(tenant)
        .filter(pk=grv.pk, status=expected_status)
        .update(updated_at=timezone.now(), **fields)
    )
    if updated != 1:
        logger.warning(
            "GRV status guard failed",
            extra={
                "tenant_id": str(tenant.pk),
                "grv_id": str(grv.pk),
                "expected_status": expected_status,
            },
        )
        raise ConcurrencyConflictError(
            f"GRV {grv.grv_number} is no longer {expected_status}; retry the operation"
        )


# ============================================================
# CREATE / UPDATE / DELETE (DRAFT)
# ============================================================


@transaction.atomic
def create_grv(
    *,
    tenant,
    user,
    supplier_id,
    lines,
    received_at=None,
    location_code: str | None = None,
    location_name: str | None = None,
    reference_type: str = GoodsReceivedVoucher.ReferenceType.NONE,
    reference_number: str = "",
    notes: str = "",
) -> GoodsReceivedVoucher:
    supplier = _resolve_supplier(tenant=tenant, supplier_id=supplier_id)
    normalized = normalize_lines(lines)
    items = _resolve_stock_items(tenant=tenant, lines=normalized)

    grv = GoodsReceivedVoucher.objects.create(
        tenant=tenant,
        grv_number=generate_document_number(
            tenant=tenant,
            document_key=GRV_DOCUMENT_KEY,
            prefix=ledger_setting("GRV_NUMBER_PREFIX"),
        ),
        supplier=supplier,
        reference_type=_validate_reference_type(reference_type),
        reference_number=(reference_number or "").strip(),
        location_code=(location_code or ledger_setting("DEFAULT_LOCATION_CODE")).strip(),
        location_name=(location_name or ledger_setting("DEFAULT_LOCATION_NAME")).strip(),
        received_at=received_at or timezone.now(),
        status=GoodsReceivedVoucher.STATUS_DRAFT,
        notes=notes or "",
        created_by=user,
    )

    totals = _write_lines(grv=grv, lines=normalized, items=items)
    for name, value in _rollup_fields(totals).items():
        setattr(grv, name, value)
    grv.save(update_fields=[*_rollup_fields(totals).keys(), "updated_at"])

    logger.info(
        "GRV created",
        extra={
            "tenant_id": str(tenant.pk),
            "grv_id": str(grv.pk),
            "grv_number": grv.grv_number,
            "lines": len(normalized),
        },
    )
    return grv


@transaction.atomic
def update_grv(*, tenant, grv_id, user, **changes: Any) -> GoodsReceivedVoucher:
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise ValidationFailedError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

    grv = _lock_grv(tenant=tenant, grv_id=grv_id)
    ensure_editable(grv)

    fields: dict[str, Any] = {}

    if "supplier_id" in changes:
        fields["supplier"] = _resolve_supplier(tenant=tenant, supplier_id=changes["supplier_id"])
    if "reference_type" in changes:
        fields["reference_type"] = _validate_reference_type(changes["reference_type"])
    if "reference_number" in changes:
        fields["reference_number"] = (changes["reference_number"] or "").strip()
    if "location_code" in changes:
        fields["location_code"] = (
            changes["location_code"] or ledger_setting("DEFAULT_LOCATION_CODE")
        ).strip()
    if "location_name" in changes:
        fields["location_name"] = (
            changes["location_name"] or ledger_setting("DEFAULT_LOCATION_NAME")
        ).strip()
    if "received_at" in changes:
        if changes["received_at"] is None:
            raise ValidationFailedError("received_at cannot be empty")
        fields["received_at"] = changes["received_at"]
    if "notes" in changes:
        fields["notes"] = changes["notes"] or ""

    if "lines" in changes:
        normalized = normalize_lines(changes["lines"])
        items = _resolve_stock_items(tenant=tenant, lines=normalized)
        grv.lines.all().delete()
        fields.update(_rollup_fields(_write_lines(grv=grv, lines=normalized, items=items)))

    _guarded_status_update(
        tenant=tenant,
        grv=grv,
        expected_status=GoodsReceivedVoucher.STATUS_DRAFT,
        **fields,
    )

    logger.info(
        "GRV updated",
        extra={
            "tenant_id": str(tenant.pk),
            "grv_id": str(grv.pk),
            "fields": sorted(changes),
            "user_id": str(getattr(user, "pk", "")),
        },
    )
    return get_grv(tenant=tenant, grv_id=grv.pk)


@transaction.atomic
def delete_grv(*, tenant, grv_id, user) -> None:
    grv = _lock_grv(tenant=tenant, grv_id=grv_id)
    ensure_editable(grv)

    _guarded_status_update(
        tenant=tenant,
        grv=grv,
        expected_status=GoodsReceivedVoucher.STATUS_DRAFT,
        is_deleted=True,
        deleted_at=timezone.now(),
        deleted_by=user,
    )
    logger.info(
        "GRV deleted",
        extra={"tenant_id": str(tenant.pk), "grv_id": str(grv.pk), "grv_number": grv.grv_number},
    )


# ============================================================
# POST (DRAFT -> POSTED)
# ============================================================


@transaction.atomic
def post_grv(*, tenant, grv_id, user) -> PostingResult:
    """
    Receive every line into stock.

    Per line (in line order): read the current snapshot (which already
    includes earlier lines of this GRV), compute the new weighted-average
    cost, append one RECEIPT/IN movement, then apply the delta with a
    compare-and-swap. Zero-quantity lines write nothing.
    """
    logger.info(
        "Posting GRV",
        extra={"tenant_id": str(tenant.pk), "grv_id": str(grv_id)},
    )

    grv = _lock_grv(tenant=tenant, grv_id=grv_id)
    validate_transition(grv=grv, target_status=GoodsReceivedVoucher.STATUS_POSTED)

    if not grv.supplier_id:
        raise ValidationFailedError("GRV must have a supplier before posting")

    lines = list(grv.lines.order_by("line_no"))
    if not lines:
        raise ValidationFailedError("GRV must have at least one line before posting")

    lock_stock_items(tenant=tenant, stock_item_ids=[line.stock_item_id for line in lines])

    movements = []
    for line in lines:
        qty = costing.quantize_qty(line.received_qty)
        if qty <= 0:
            continue

        current = get_stock(tenant=tenant, stock_item_id=line.stock_item_id)
        result = costing.receive(
            current_on_hand=current.on_hand,
            current_average_cost_cents=current.average_cost_cents,
            received_qty=qty,
            received_unit_cost_cents=line.unit_cost_cents,
        )

        movements.append(
            append_movement(
                tenant=tenant,
                stock_item_id=line.stock_item_id,
                source_type=InventoryMovement.SourceType.RECEIPT,
                source_id=grv.pk,
                source_line_id=line.pk,
                movement_type=InventoryMovement.MovementType.IN,
                quantity=qty,
                unit_cost_cents=line.unit_cost_cents,
                quantity_before=current.on_hand,
                quantity_after=result.new_on_hand,
                cost_before_cents=current.average_cost_cents,
                cost_after_cents=result.new_average_cost_cents,
                location_code=grv.location_code,
                location_name=grv.location_name,
                batch_number=line.batch_number,
                expiry_date=line.expiry_date,
                serial_numbers=line.serial_numbers,
                user=user,
            )
        )

        apply_delta(
            tenant=tenant,
            stock_item_id=line.stock_item_id,
            quantity_delta=qty,
            new_average_cost_cents=result.new_average_cost_cents,
            expected=current,
            last_cost_cents=line.unit_cost_cents,
        )

    now = timezone.now()
    _guarded_status_update(
        tenant=tenant,
        grv=grv,
        expected_status=GoodsReceivedVoucher.STATUS_DRAFT,
        status=GoodsReceivedVoucher.STATUS_POSTED,
        posted_at=now,
        posted_by=user,
    )

    logger.info(
        "GRV posted",
        extra={
            "tenant_id": str(tenant.pk),
            "grv_id": str(grv.pk),
            "grv_number": grv.grv_number,
            "movements": len(movements),
        },
    )
    return PostingResult(grv=get_grv(tenant=tenant, grv_id=grv.pk), movements=movements)


# ============================================================
# CANCEL (POSTED -> CANCELLED)
# ============================================================


@transaction.atomic
def cancel_grv(*, tenant, grv_id, user) -> CancellationResult:
    """
    Reverse a posted GRV.

    Per stock item: reverse at most what is still on hand, write one
    RECEIPT_CANCEL/OUT movement per original movement (apportioned), apply
    the delta. Status flips to CANCELLED even when only part of the receipt
    could be reversed. Stock items soft-deleted since posting are still
    reversed.
    """
    logger.info(
        "Cancelling GRV",
        extra={"tenant_id": str(tenant.pk), "grv_id": str(grv_id)},
    )

    grv = _lock_grv(tenant=tenant, grv_id=grv_id)
    validate_transition(grv=grv, target_status=GoodsReceivedVoucher.STATUS_CANCELLED)

    originals = list_by_source(
        tenant=tenant,
        source_type=InventoryMovement.SourceType.RECEIPT,
        source_id=grv.pk,
    )
    if not originals:
        logger.warning(
            "GRV cancel rejected: no movements",
            extra={"tenant_id": str(tenant.pk), "grv_id": str(grv.pk)},
        )
        raise NothingToReverseError(f"No inventory movements found for GRV {grv.grv_number}")

    groups = group_by_stock_item(originals)
    lock_stock_items(tenant=tenant, stock_item_ids=groups.keys(), include_deleted=True)

    movements = []
    partially_reversed = False

    for stock_item_id, item_movements in groups.items():
        current = get_stock(tenant=tenant, stock_item_id=stock_item_id, include_deleted=True)
        result = costing.reverse(
            current_on_hand=current.on_hand,
            current_average_cost_cents=current.average_cost_cents,
            original_movements=item_movements,
        )

        if result.is_partial:
            partially_reversed = True
            logger.warning(
                "Partial GRV reversal: stock already consumed",
                extra={
                    "tenant_id": str(tenant.pk),
                    "grv_id": str(grv.pk),
                    "stock_item_id": str(stock_item_id),
                    "on_hand": str(current.on_hand),
                    "original_qty": str(result.total_original_qty),
                    "reversal_qty": str(result.reversal_qty),
                },
            )

        entries = costing.reversal_entries(
            current_on_hand=current.on_hand,
            current_average_cost_cents=current.average_cost_cents,
            original_movements=item_movements,
            result=result,
        )
        for entry in entries:
            original = entry.original
            movements.append(
                append_movement(
                    tenant=tenant,
                    stock_item_id=stock_item_id,
                    source_type=InventoryMovement.SourceType.RECEIPT_CANCEL,
                    source_id=grv.pk,
                    source_line_id=original.source_line_id,
                    movement_type=InventoryMovement.MovementType.OUT,
                    quantity=entry.quantity,
                    unit_cost_cents=entry.unit_cost_cents,
                    quantity_before=entry.quantity_before,
                    quantity_after=entry.quantity_after,
                    cost_before_cents=entry.cost_before_cents,
                    cost_after_cents=entry.cost_after_cents,
                    location_code=original.location_code,
                    location_name=original.location_name,
                    batch_number=original.batch_number,
                    expiry_date=original.expiry_date,
                    serial_numbers=original.serial_numbers,
                    user=user,
                )
            )

        if result.reversal_qty > 0:
            apply_delta(
                tenant=tenant,
                stock_item_id=stock_item_id,
                quantity_delta=-result.reversal_qty,
                new_average_cost_cents=result.new_average_cost_cents,
                expected=current,
                include_deleted=True,
            )

    now = timezone.now()
    _guarded_status_update(
        tenant=tenant,
        grv=grv,
        expected_status=GoodsReceivedVoucher.STATUS_POSTED,
        status=GoodsReceivedVoucher.STATUS_CANCELLED,
        cancelled_at=now,
        cancelled_by=user,
    )

    logger.info(
        "GRV cancelled",
        extra={
            "tenant_id": str(tenant.pk),
            "grv_id": str(grv.pk),
            "grv_number": grv.grv_number,
            "movements": len(movements),
            "partially_reversed": partially_reversed,
        },
    )
    return CancellationResult(
        grv=get_grv(tenant=tenant, grv_id=grv.pk),
        movements=movements,
        partially_reversed=partially_reversed,
    )
