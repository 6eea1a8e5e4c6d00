# shopdesk/services/cart_service.py
from __future__ import annotations

import logging

from flask import current_app

from ..errors import CartError, NotFound, OutOfStock, ValidationError, repository_call
from ..extensions import db
from ..model import Cart, CartItem
from ..utils.params import to_int
from . import coupon_service
from .pricing import build_quote
from .product_service import get_variant

logger = logging.getLogger(__name__)

MAX_LINE_QTY = 99


def _parse_qty(value, allow_zero=False):
    qty = to_int(value)
    low = 0 if allow_zero else 1
    if qty is None or qty < low or qty > MAX_LINE_QTY:
        raise ValidationError(f"quantity must be between {low} and {MAX_LINE_QTY}", {"quantity": "out_of_range"})
    return qty


def get_cart(customer_id, create=True) -> Cart | None:
    cart = Cart.query.filter_by(customer_id=customer_id).first()
    if not cart and create:
        cart = Cart(customer_id=customer_id)
        db.session.add(cart)
        db.session.commit()
    return cart


def _find_item(cart, item_id) -> CartItem:
    for it in cart.items:
        if it.id == item_id:
            return it
    raise NotFound("Cart item not found")


@repository_call("Failed to add item to cart")
def add_item(customer_id, variant_id, quantity=1) -> Cart:
    qty = _parse_qty(quantity)
    v = get_variant(to_int(variant_id))
    if not v.is_active or not v.product.is_purchasable:
        raise CartError("Product is not available")

    cart = get_cart(customer_id)
    line = next((i for i in cart.items if i.variant_id == v.id), None)
    new_qty = qty + (line.quantity if line else 0)
    if new_qty > MAX_LINE_QTY:
        raise ValidationError(f"quantity must be between 1 and {MAX_LINE_QTY}", {"quantity": "out_of_range"})
    if new_qty > v.inventory:
        raise OutOfStock(f"Only {v.inventory} left for {v.product.name} ({v.name})")

    if line:
        line.quantity = new_qty
    else:
        cart.items.append(CartItem(variant_id=v.id, variant=v, quantity=qty))
    db.session.commit()
    return cart


@repository_call("Failed to update cart item")
def update_item(customer_id, item_id, quantity) -> Cart:
    qty = _parse_qty(quantity, allow_zero=True)
    cart = get_cart(customer_id)
    line = _find_item(cart, item_id)
    if qty == 0:
        cart.items.remove(line)
    else:
        if qty > line.variant.inventory:
            raise OutOfStock(f"Only {line.variant.inventory} left for {line.variant.name}")
        line.quantity = qty
    db.session.commit()
    return cart


@repository_call("Failed to remove cart item")
def remove_item(customer_id, item_id) -> Cart:
    cart = get_cart(customer_id)
    cart.items.remove(_find_item(cart, item_id))
    db.session.commit()
    return cart


@repository_call("Failed to clear cart")
def clear_cart(customer_id, commit=True):
    cart = get_cart(customer_id, create=False)
    if cart:
        cart.items.clear()
        if commit:
            db.session.commit()
    return cart


def price_subtotal(subtotal, coupon=None):
    cfg = current_app.config
    return build_quote(
        subtotal,
        coupon=coupon,
        tax_rate=cfg["TAX_RATE"],
        flat_rate=cfg["SHIPPING_FLAT_RATE"],
        free_threshold=cfg["FREE_SHIPPING_THRESHOLD"],
    )


def resolve_coupon(code, subtotal, customer_id):
    """Look up and validate ``code``; raises the matching CouponError."""
    coupon = coupon_service.find_by_code(code)
    if not coupon:
        raise NotFound("Coupon not found")
    coupon_service.validate_for_customer(coupon, subtotal, customer_id).raise_for_reason()
    return coupon


def quote_cart(customer_id, coupon_code=None):
    """Cart plus its priced quote; an invalid coupon raises."""
    cart = get_cart(customer_id)
    if not cart.items and coupon_code:
        raise CartError("Cart is empty")
    subtotal = cart.subtotal_dec()
    coupon = resolve_coupon(coupon_code, subtotal, customer_id) if coupon_code else None
    return cart, price_subtotal(subtotal, coupon)
