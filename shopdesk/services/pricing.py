# shopdesk/services/pricing.py
"""Discount calculation and order total assembly.

Everything here is pure Decimal arithmetic on already-validated inputs; no
database access and no Flask context.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from decimal import Decimal

from ..model.types import CouponType
from ..utils.money import D, ZERO, Money, non_negative, round_money, to_string_money

HUNDRED = Decimal("100")


def calculate_discount(coupon, subtotal, shipping_cost=ZERO) -> Money:
    """Discount granted by ``coupon`` on ``subtotal``.

    PERCENTAGE rounds half-up to cents before applying ``max_discount``;
    FIXED_AMOUNT never exceeds the subtotal; FREE_SHIPPING zeroes shipping.
    """
    subtotal = D(subtotal)
    value = D(coupon.value)
    ctype = CouponType(coupon.ctype)

    if ctype == CouponType.PERCENTAGE:
        amount = round_money(subtotal * value / HUNDRED)
        if coupon.max_discount is not None:
            amount = min(amount, D(coupon.max_discount))
    elif ctype == CouponType.FIXED_AMOUNT:
        amount = min(value, subtotal)
    elif ctype == CouponType.FREE_SHIPPING:
        amount = D(shipping_cost)
    else:
        amount = ZERO

    return non_negative(amount)


def compute_shipping(subtotal, flat_rate, free_threshold) -> Money:
    if free_threshold is not None and D(subtotal) >= D(free_threshold):
        return ZERO
    return round_money(flat_rate)


def compute_tax(subtotal, merchandise_discount, rate) -> Money:
    """Flat rate over the discounted merchandise amount."""
    taxable = non_negative(D(subtotal) - D(merchandise_discount))
    return round_money(taxable * D(rate))


def assemble_total(subtotal, shipping_cost, tax, discount) -> Money:
    """subtotal + shipping + tax - discount, never below zero."""
    return non_negative(D(subtotal) + D(shipping_cost) + D(tax) - D(discount))


@dataclass(frozen=True)
class Quote:
    subtotal: Money
    shipping_cost: Money
    tax: Money
    discount: Money
    total: Money
    coupon_code: str | None = None

    def as_api(self):
        data = asdict(self)
        for k, v in data.items():
            if isinstance(v, Decimal):
                data[k] = to_string_money(v)
        return data


def build_quote(subtotal, *, coupon=None, tax_rate=ZERO, flat_rate=ZERO, free_threshold=None) -> Quote:
    """Price a subtotal end to end. ``coupon`` must already be validated."""
    subtotal = round_money(subtotal)
    shipping = compute_shipping(subtotal, flat_rate, free_threshold)

    discount = ZERO
    merchandise_discount = ZERO
    if coupon is not None:
        discount = calculate_discount(coupon, subtotal, shipping)
        if CouponType(coupon.ctype) != CouponType.FREE_SHIPPING:
            merchandise_discount = discount

    tax = compute_tax(subtotal, merchandise_discount, tax_rate)
    total = assemble_total(subtotal, shipping, tax, discount)
    return Quote(
        subtotal=subtotal,
        shipping_cost=shipping,
        tax=tax,
        discount=discount,
        total=total,
        coupon_code=coupon.code if coupon is not None else None,
    )
