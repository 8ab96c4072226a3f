# inventory/services/costing.py

"""
COSTING ENGINE (WEIGHTED AVERAGE)

Pure calculations. No database access, no side effects.

Rounding rule (identical on receive and reverse):
- money: Decimal arithmetic rounded to whole cents with ROUND_HALF_UP
- quantities: quantized to 0.001 with ROUND_HALF_UP

Receive:
    new_on_hand = on_hand + received_qty
    new_avg     = round((on_hand * avg + received_qty * unit_cost) / new_on_hand)
    (new_on_hand == 0 keeps avg)

Reverse (one stock item, the IN movements of one source document):
    reversal_qty = min(on_hand, sum(q_i))       # never drives stock negative
    new_on_hand  = on_hand - reversal_qty
    recalc avg only when reversal_qty > 0 and new_on_hand > 0
    otherwise the last known cost is held
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Sequence

from .exceptions import ValidationFailedError

QTY_PLACES = Decimal("0.001")
_QTY_SCALE = 1000
ZERO_QTY = Decimal("0.000")


def round_cents(value) -> int:
    return int(Decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def quantize_qty(value) -> Decimal:
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(QTY_PLACES, rounding=ROUND_HALF_UP)


def _require_non_negative(name: str, value) -> None:
    if value < 0:
        raise ValidationFailedError(f"{name} cannot be negative")


@dataclass(frozen=True)
class ReceiveResult:
    new_on_hand: Decimal
    new_average_cost_cents: int


@dataclass(frozen=True)
class OriginalMovement:
    """Minimal view of an IN movement; InventoryMovement rows work as well."""

    quantity: Decimal
    unit_cost_cents: int


@dataclass(frozen=True)
class ReversalResult:
    new_on_hand: Decimal
    new_average_cost_cents: int
    reversal_qty: Decimal
    total_original_qty: Decimal
    per_movement_qty: tuple[Decimal, ...]
    is_partial: bool


@dataclass(frozen=True)
class ReversalEntry:
    original: Any
    quantity: Decimal
    unit_cost_cents: int
    quantity_before: Decimal
    quantity_after: Decimal
    cost_before_cents: int
    cost_after_cents: int


def receive(
    *,
    current_on_hand,
    current_average_cost_cents: int,
    received_qty,
    received_unit_cost_cents: int,
) -> ReceiveResult:
    on_hand = quantize_qty(current_on_hand)
    qty = quantize_qty(received_qty)
    unit_cost = int(received_unit_cost_cents)
    avg = int(current_average_cost_cents)

    _require_non_negative("received_qty", qty)
    _require_non_negative("received_unit_cost_cents", unit_cost)
    _require_non_negative("current_average_cost_cents", avg)

    new_on_hand = on_hand + qty
    if new_on_hand <= 0:
        return ReceiveResult(new_on_hand=new_on_hand, new_average_cost_cents=avg)

    total_value = on_hand * Decimal(avg) + qty * Decimal(unit_cost)
    return ReceiveResult(
        new_on_hand=new_on_hand,
        new_average_cost_cents=max(0, round_cents(total_value / new_on_hand)),
    )


def apportion(quantities: Sequence[Decimal], total) -> list[Decimal]:
    """
    Split `total` across `quantities` proportionally at 0.001 precision.

    Largest remainder: floor every share, then hand the leftover thousandths
    to the largest fractional parts (earlier entries win ties). The result
    sums exactly to `total` and no share exceeds its quantity when
    total <= sum(quantities).
    """
    units = [int(quantize_qty(q) * _QTY_SCALE) for q in quantities]
    target = int(quantize_qty(total) * _QTY_SCALE)
    whole = sum(units)

    if whole <= 0 or target <= 0:
        return [ZERO_QTY for _ in units]
    if target >= whole:
        return [(Decimal(u) / _QTY_SCALE).quantize(QTY_PLACES) for u in units]

    shares = []
    remainders = []
    for index, u in enumerate(units):
        share, remainder = divmod(u * target, whole)
        shares.append(share)
        remainders.append((remainder, -index))

    leftover = target - sum(shares)
    for _, neg_index in sorted(remainders, reverse=True)[:leftover]:
        shares[-neg_index] += 1

    return [(Decimal(s) / _QTY_SCALE).quantize(QTY_PLACES) for s in shares]


def reverse(
    *,
    current_on_hand,
    current_average_cost_cents: int,
    original_movements: Sequence[Any],
) -> ReversalResult:
    avg = int(current_average_cost_cents)
    _require_non_negative("current_average_cost_cents", avg)

    quantities = []
    for movement in original_movements:
        qty = quantize_qty(movement.quantity)
        _require_non_negative("movement quantity", qty)
        _require_non_negative("movement unit_cost_cents", int(movement.unit_cost_cents or 0))
        quantities.append(qty)

    on_hand = max(quantize_qty(current_on_hand), ZERO_QTY)
    total_original_qty = sum(quantities, ZERO_QTY)
    reversal_qty = min(on_hand, total_original_qty)
    new_on_hand = on_hand - reversal_qty

    new_avg = avg
    if reversal_qty > 0 and new_on_hand > 0 and total_original_qty > 0:
        total_original_cost = sum(
            (q * Decimal(int(m.unit_cost_cents or 0)) for q, m in zip(quantities, original_movements)),
            Decimal("0"),
        )
        reversal_value = round_cents(reversal_qty / total_original_qty * total_original_cost)
        new_stock_value = max(Decimal("0"), on_hand * Decimal(avg) - Decimal(reversal_value))
        new_avg = max(0, round_cents(new_stock_value / new_on_hand))

    return ReversalResult(
        new_on_hand=new_on_hand,
        new_average_cost_cents=new_avg,
        reversal_qty=reversal_qty,
        total_original_qty=total_original_qty,
        per_movement_qty=tuple(apportion(quantities, reversal_qty)),
        is_partial=reversal_qty < total_original_qty,
    )


def reversal_entries(
    *,
    current_on_hand,
    current_average_cost_cents: int,
    original_movements: Sequence[Any],
    result: ReversalResult,
) -> list[ReversalEntry]:
    """
    OUT-entry snapshots for one stock item's reversal.

    Entries are chained from the document's starting on-hand: entry k's
    quantity_before is entry k-1's quantity_after. Zero-quantity shares
    produce no entry.
    """
    running = max(quantize_qty(current_on_hand), ZERO_QTY)
    entries = []

    for movement, qty in zip(original_movements, result.per_movement_qty):
        if qty <= 0:
            continue
        after = running - qty
        entries.append(
            ReversalEntry(
                original=movement,
                quantity=qty,
                unit_cost_cents=int(movement.unit_cost_cents or 0),
                quantity_before=running,
                quantity_after=after,
                cost_before_cents=int(current_average_cost_cents),
                cost_after_cents=result.new_average_cost_cents,
            )
        )
        running = after

    return entries
