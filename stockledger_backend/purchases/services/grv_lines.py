# purchases/services/grv_lines.py

"""
GRV LINE INPUT

Raw line payloads (dicts from the API or callers) are validated and given
their defaults ONCE here. Everything downstream (totals, posting, costing)
works on GRVLineInput only.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from core.services.totals import DiscountType
from inventory.services.costing import quantize_qty
from inventory.services.exceptions import ValidationFailedError
from purchases.models import GoodsReceivedVoucherLine

VARIANCE_REASONS = set(GoodsReceivedVoucherLine.VarianceReason.values)


@dataclass(frozen=True)
class GRVLineInput:
    stock_item_id: uuid.UUID
    received_qty: Decimal
    unit_cost_cents: int
    ordered_qty: Decimal = Decimal("0.000")
    discount_type: str = DiscountType.NONE
    discount_value: Decimal = Decimal("0.000")
    batch_number: str = ""
    expiry_date: date | None = None
    serial_numbers: tuple[str, ...] = field(default_factory=tuple)
    variance_reason: str = GoodsReceivedVoucherLine.VarianceReason.NONE
    remarks: str = ""


def _decimal(value, *, name: str, line_no: int) -> Decimal:
    if isinstance(value, bool):
        raise ValidationFailedError(f"Line {line_no}: {name} must be a number")
    try:
        number = quantize_qty(value if value is not None else 0)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationFailedError(f"Line {line_no}: {name} must be a number")
    if not number.is_finite():
        raise ValidationFailedError(f"Line {line_no}: {name} must be a number")
    return number


def _cents(value, *, name: str, line_no: int) -> int:
    if value is None or value == "" or isinstance(value, bool):
        raise ValidationFailedError(f"Line {line_no}: {name} is required")
    try:
        cents = Decimal(str(value))
    except InvalidOperation:
        raise ValidationFailedError(f"Line {line_no}: {name} must be an integer")
    if not cents.is_finite():
        raise ValidationFailedError(f"Line {line_no}: {name} must be an integer")
    if cents != cents.to_integral_value():
        raise ValidationFailedError(f"Line {line_no}: {name} must be whole cents")
    return int(cents)


def _stock_item_id(value, *, line_no: int) -> uuid.UUID:
    if value in (None, ""):
        raise ValidationFailedError(f"Line {line_no}: stock_item_id is required")
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValidationFailedError(f"Line {line_no}: stock_item_id is not a valid id")


def normalize_line(raw: Mapping[str, Any] | GRVLineInput, *, line_no: int) -> GRVLineInput:
    if isinstance(raw, GRVLineInput):
        raw = asdict(raw)

    if raw.get("received_qty") in (None, ""):
        raise ValidationFailedError(f"Line {line_no}: received_qty is required")

    received_qty = _decimal(raw.get("received_qty"), name="received_qty", line_no=line_no)
    ordered_qty = _decimal(raw.get("ordered_qty"), name="ordered_qty", line_no=line_no)
    unit_cost_cents = _cents(raw.get("unit_cost_cents"), name="unit_cost_cents", line_no=line_no)
    discount_value = _decimal(raw.get("discount_value"), name="discount_value", line_no=line_no)

    for name, value in (
        ("received_qty", received_qty),
        ("ordered_qty", ordered_qty),
        ("unit_cost_cents", unit_cost_cents),
        ("discount_value", discount_value),
    ):
        if value < 0:
            raise ValidationFailedError(f"Line {line_no}: {name} cannot be negative")

    discount_type = (raw.get("discount_type") or DiscountType.NONE).strip().lower()
    if discount_type not in DiscountType.values:
        raise ValidationFailedError(f"Line {line_no}: unknown discount_type '{discount_type}'")
    if discount_type == DiscountType.PERCENT and discount_value > 100:
        raise ValidationFailedError(f"Line {line_no}: percent discount cannot exceed 100")

    variance_reason = (raw.get("variance_reason") or GoodsReceivedVoucherLine.VarianceReason.NONE).strip()
    if variance_reason not in VARIANCE_REASONS:
        raise ValidationFailedError(f"Line {line_no}: unknown variance_reason '{variance_reason}'")

    serials = raw.get("serial_numbers") or ()
    if isinstance(serials, str):
        raise ValidationFailedError(f"Line {line_no}: serial_numbers must be a list")

    return GRVLineInput(
        stock_item_id=_stock_item_id(raw.get("stock_item_id"), line_no=line_no),
        received_qty=received_qty,
        unit_cost_cents=unit_cost_cents,
        ordered_qty=ordered_qty,
        discount_type=discount_type,
        discount_value=discount_value,
        batch_number=(raw.get("batch_number") or "").strip(),
        expiry_date=raw.get("expiry_date") or None,
        serial_numbers=tuple(str(s).strip() for s in serials if str(s).strip()),
        variance_reason=variance_reason,
        remarks=(raw.get("remarks") or "").strip(),
    )


def normalize_lines(raw_lines: Iterable[Mapping[str, Any] | GRVLineInput] | None) -> list[GRVLineInput]:
    lines = [normalize_line(raw, line_no=index) for index, raw in enumerate(raw_lines or (), start=1)]
    if not lines:
        raise ValidationFailedError("A GRV needs at least one line")
    return lines
