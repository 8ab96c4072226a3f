# inventory/services/ledger.py

"""
MOVEMENT LEDGER

Append + read only. There is no update/delete entry point, and
appending a movement does not touch the stock item itself (callers pair it
with stock_store.apply_delta inside one transaction).
"""

from __future__ import annotations

import uuid
from collections import OrderedDict
from datetime import date
from typing import Iterable

from django.core.exceptions import ValidationError

from inventory.models import InventoryMovement

from .costing import quantize_qty
from .exceptions import ValidationFailedError


def append_movement(
    *,
    tenant,
    stock_item_id,
    source_type: str,
    source_id,
    source_line_id,
    movement_type: str,
    quantity,
    unit_cost_cents: int,
    quantity_before,
    quantity_after,
    cost_before_cents: int,
    cost_after_cents: int,
    location_code: str,
    location_name: str = "",
    batch_number: str = "",
    expiry_date: date | None = None,
    serial_numbers: Iterable[str] = (),
    user=None,
) -> InventoryMovement:
    movement = InventoryMovement(
        tenant=tenant,
        stock_item_id=stock_item_id,
        source_type=source_type,
        source_id=source_id,
        source_line_id=source_line_id,
        movement_type=movement_type,
        quantity=quantize_qty(quantity),
        unit_cost_cents=int(unit_cost_cents),
        quantity_before=quantize_qty(quantity_before),
        quantity_after=quantize_qty(quantity_after),
        cost_before_cents=int(cost_before_cents),
        cost_after_cents=int(cost_after_cents),
        location_code=location_code,
        location_name=location_name or "",
        batch_number=batch_number or "",
        expiry_date=expiry_date,
        serial_numbers=list(serial_numbers or ()),
        created_by=user,
    )

    try:
        movement.save()
    except ValidationError as exc:
        raise ValidationFailedError("; ".join(exc.messages)) from exc

    return movement


def list_by_source(*, tenant, source_type: str, source_id) -> list[InventoryMovement]:
    return list(
        InventoryMovement.objects.filter(
            tenant=tenant,
            source_type=source_type,
            source_id=source_id,
        ).order_by("created_at", "id")
    )


def group_by_stock_item(
    movements: Iterable[InventoryMovement],
) -> "OrderedDict[uuid.UUID, list[InventoryMovement]]":
    """Group movements by stock item, keeping both group and row order."""
    groups: OrderedDict = OrderedDict()
    for movement in movements:
        groups.setdefault(movement.stock_item_id, []).append(movement)
    return groups
