from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from .models_cart import CartLine, CartTotals, Discount, DiscountType

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
DEFAULT_TAX_RATE = Decimal("0.08")


def money(value: Decimal | float | int | str) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_subtotal(lines: Iterable[CartLine]) -> Decimal:
    # Overridden lines are priced at their original price for audit display.
    return money(sum((line.pricing_unit_price * line.quantity for line in lines), ZERO))


def compute_discount(
    subtotal: Decimal,
    discount: Discount | None,
    *,
    clamp_fixed_discount: bool = False,
) -> Decimal:
    if discount is None:
        return ZERO
    if discount.type == DiscountType.PERCENTAGE:
        return money(subtotal * discount.value / Decimal("100"))
    amount = money(discount.value)
    if clamp_fixed_discount:
        amount = min(max(amount, ZERO), subtotal)
    return amount


def compute_totals(
    lines: Iterable[CartLine],
    discount: Discount | None = None,
    *,
    tax_rate: Decimal = DEFAULT_TAX_RATE,
    clamp_fixed_discount: bool = False,
) -> CartTotals:
    """Price a cart.

    ``total`` is always exactly ``subtotal - discount_amount + tax``; each part
    is rounded to cents before the sum. An unclamped fixed discount larger than
    the subtotal yields a negative total and zero tax.
    """
    subtotal = compute_subtotal(lines)
    discount_amount = compute_discount(subtotal, discount, clamp_fixed_discount=clamp_fixed_discount)
    taxable = max(subtotal - discount_amount, ZERO)
    tax = money(taxable * tax_rate)
    return CartTotals(
        subtotal=subtotal,
        discount_amount=discount_amount,
        tax=tax,
        total=subtotal - discount_amount + tax,
    )
