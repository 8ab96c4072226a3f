# inventory/services/stock_store.py

"""
STOCK ITEM STORE

The only writer of StockItem.on_hand / average_cost_cents / last_cost_cents.

Rules:
- Reads are tenant-scoped; soft-deleted or foreign-tenant items are NotFound
  (reversal paths opt in to soft-deleted rows with include_deleted=True)
- Row locks are taken in sorted id order (no lock-order deadlocks between
  two documents touching the same items)
- apply_delta is a single conditional UPDATE (compare-and-swap on the
  expected on_hand + average cost), never a read-modify-write pair; the
  new on_hand is computed in Decimal and written as a value, so it stays
  on the 0.001 grid on every backend
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from django.utils import timezone

from inventory.models import StockItem

from .costing import quantize_qty
from .exceptions import ConcurrencyConflictError, NotFoundError, ValidationFailedError

logger = logging.getLogger("inventory")


@dataclass(frozen=True)
class StockSnapshot:
    stock_item_id: uuid.UUID
    on_hand: Decimal
    average_cost_cents: int


def _scoped(tenant, *, include_deleted: bool = False):
    qs = StockItem.objects.filter(tenant=tenant)
    if not include_deleted:
        qs = qs.filter(is_deleted=False)
    return qs


def _as_uuid(value) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        raise NotFoundError(f"Stock item not found: {value}")


def _snapshot(item: StockItem) -> StockSnapshot:
    return StockSnapshot(
        stock_item_id=item.pk,
        on_hand=quantize_qty(item.on_hand),
        average_cost_cents=int(item.average_cost_cents or 0),
    )


def get_stock(*, tenant, stock_item_id, lock: bool = False, include_deleted: bool = False) -> StockSnapshot:
    item_id = _as_uuid(stock_item_id)
    qs = _scoped(tenant, include_deleted=include_deleted)
    if lock:
        qs = qs.select_for_update()

    item = qs.filter(pk=item_id).first()
    if item is None:
        raise NotFoundError(f"Stock item not found: {item_id}")
    return _snapshot(item)


def lock_stock_items(
    *, tenant, stock_item_ids: Iterable, include_deleted: bool = False
) -> dict[uuid.UUID, StockSnapshot]:
    """
    Row-lock every referenced item (must be called inside transaction.atomic).

    Raises NotFoundError naming the first missing id (in sorted order)
    before the caller writes anything.
    """
    ids = sorted({_as_uuid(value) for value in stock_item_ids}, key=str)
    if not ids:
        return {}

    rows = (
        _scoped(tenant, include_deleted=include_deleted)
        .select_for_update()
        .filter(pk__in=ids)
        .order_by("pk")
    )
    found = {item.pk: _snapshot(item) for item in rows}

    for item_id in ids:
        if item_id not in found:
            raise NotFoundError(f"Stock item not found: {item_id}")

    return found


def apply_delta(
    *,
    tenant,
    stock_item_id,
    quantity_delta,
    new_average_cost_cents: int,
    expected: StockSnapshot,
    last_cost_cents: int | None = None,
    include_deleted: bool = False,
) -> StockSnapshot:
    """
    on_hand = expected.on_hand + quantity_delta and average_cost_cents =
    new value, in one UPDATE guarded by the expected snapshot.

    Zero rows updated:
    - row gone (or soft-deleted, or other tenant) -> NotFoundError
    - row changed underneath us                   -> ConcurrencyConflictError
    """
    item_id = _as_uuid(stock_item_id)
    delta = quantize_qty(quantity_delta)
    new_avg = int(new_average_cost_cents)

    new_on_hand = quantize_qty(expected.on_hand + delta)
    if new_on_hand < 0:
        raise ValidationFailedError(
            f"Stock item {item_id} cannot go below zero (on hand {expected.on_hand}, delta {delta})"
        )
    if new_avg < 0:
        raise ValidationFailedError("new_average_cost_cents cannot be negative")

    updates = {
        "on_hand": new_on_hand,
        "average_cost_cents": new_avg,
        "updated_at": timezone.now(),
    }
    if last_cost_cents is not None:
        if int(last_cost_cents) < 0:
            raise ValidationFailedError("last_cost_cents cannot be negative")
        updates["last_cost_cents"] = int(last_cost_cents)

    updated = (
        _scoped(tenant, include_deleted=include_deleted)
        .filter(
            pk=item_id,
            on_hand=expected.on_hand,
            average_cost_cents=expected.average_cost_cents,
        )
        .update(**updates)
    )

    if updated == 0:
        if not _scoped(tenant, include_deleted=include_deleted).filter(pk=item_id).exists():
            raise NotFoundError(f"Stock item not found: {item_id}")

        logger.warning(
            "Stock update lost a race",
            extra={
                "tenant_id": str(getattr(tenant, "id", tenant)),
                "stock_item_id": str(item_id),
                "expected_on_hand": str(expected.on_hand),
                "expected_average_cost_cents": expected.average_cost_cents,
            },
        )
        raise ConcurrencyConflictError(
            f"Stock item {item_id} changed concurrently; retry the operation"
        )

    return StockSnapshot(
        stock_item_id=item_id,
        on_hand=new_on_hand,
        average_cost_cents=new_avg,
    )
