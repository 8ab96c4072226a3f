# core/services/totals.py

"""
LINE + DOCUMENT TOTALS (VAT)

Pure, stateless money math in integer cents.

VAT modes:
- exclusive: VAT is added on top of the (discounted) line subtotal
- inclusive: the line subtotal already contains VAT; VAT is extracted from it
- none:      no VAT

Rounding: Decimal ROUND_HALF_UP to whole cents, per line.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from django.db import models

BPS_DENOMINATOR = Decimal("10000")


class VatMode(models.TextChoices):
    EXCLUSIVE = "exclusive", "Exclusive"
    INCLUSIVE = "inclusive", "Inclusive"
    NONE = "none", "No VAT"


class DiscountType(models.TextChoices):
    NONE = "none", "None"
    PERCENT = "percent", "Percent"
    AMOUNT = "amount", "Amount per unit"


@dataclass(frozen=True)
class LineTotals:
    gross_cents: int
    discount_cents: int
    subtotal_cents: int
    vat_cents: int
    total_cents: int


@dataclass(frozen=True)
class DocumentTotals:
    subtotal_cents: int
    discount_total_cents: int
    vat_total_cents: int
    grand_total_cents: int


def _cents(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def line_discount_cents(*, quantity, unit_price_cents: int, discount_type: str, discount_value) -> int:
    """
    percent: discount_value percent of qty * unit price
    amount:  discount_value cents off every unit
    Capped at the line's gross value.
    """
    qty = Decimal(str(quantity or 0))
    gross = qty * Decimal(int(unit_price_cents or 0))
    value = Decimal(str(discount_value or 0))

    if discount_type in (None, "", DiscountType.NONE) or value <= 0:
        return 0

    if discount_type == DiscountType.PERCENT:
        discount = gross * value / Decimal("100")
    elif discount_type == DiscountType.AMOUNT:
        discount = value * qty
    else:
        raise ValueError(f"Unknown discount_type: {discount_type!r}")

    return min(_cents(discount), _cents(gross))


def calculate_line_totals(
    *,
    quantity,
    unit_price_cents: int,
    discount_cents: int = 0,
    taxable: bool = True,
    vat_rate_bps: int = 1500,
    vat_mode: str = VatMode.EXCLUSIVE,
) -> LineTotals:
    if vat_mode not in VatMode.values:
        raise ValueError(f"Unknown vat_mode: {vat_mode!r}")

    gross = _cents(Decimal(str(quantity or 0)) * Decimal(int(unit_price_cents or 0)))
    discount = max(0, int(discount_cents or 0))
    subtotal = max(0, gross - discount)

    vat = 0
    if taxable and vat_mode != VatMode.NONE and vat_rate_bps:
        rate = Decimal(int(vat_rate_bps))
        if vat_mode == VatMode.EXCLUSIVE:
            vat = _cents(Decimal(subtotal) * rate / BPS_DENOMINATOR)
        else:
            # VAT = total - total / (1 + rate)
            vat = _cents(Decimal(subtotal) - (Decimal(subtotal) * BPS_DENOMINATOR) / (BPS_DENOMINATOR + rate))

    total = subtotal if vat_mode == VatMode.INCLUSIVE else subtotal + vat

    return LineTotals(
        gross_cents=gross,
        discount_cents=min(discount, gross),
        subtotal_cents=subtotal,
        vat_cents=vat,
        total_cents=total,
    )


def calculate_document_totals(lines: Iterable[LineTotals], *, vat_mode: str = VatMode.EXCLUSIVE) -> DocumentTotals:
    subtotal = 0
    discount = 0
    vat = 0

    for line in lines:
        subtotal += line.subtotal_cents
        discount += line.discount_cents
        vat += line.vat_cents

    grand = subtotal if vat_mode == VatMode.INCLUSIVE else subtotal + vat

    return DocumentTotals(
        subtotal_cents=subtotal,
        discount_total_cents=discount,
        vat_total_cents=vat,
        grand_total_cents=grand,
    )
