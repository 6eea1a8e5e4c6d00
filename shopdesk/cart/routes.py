# shopdesk/cart/routes.py
from __future__ import annotations

from flask import request

from ..errors import ValidationError
from ..services import cart_service as svc
from ..services import order_service
from ..utils.api import ok
from ..utils.decorators import current_customer, customer_required
from ..utils.params import clean_str, to_int
from . import bp


def _cart_payload(cart, quote):
    data = cart.as_api()
    data["quote"] = quote.as_api()
    return data


@bp.get("")
@customer_required
def get_cart():
    cart, quote = svc.quote_cart(current_customer().id)
    return ok("Cart fetched", _cart_payload(cart, quote))


@bp.post("/items")
@customer_required
def add_item():
    data = request.get_json(silent=True) or {}
    if to_int(data.get("variant_id")) is None:
        raise ValidationError("variant_id is required", {"variant_id": "required"})
    cid = current_customer().id
    svc.add_item(cid, data.get("variant_id"), data.get("quantity", 1))
    cart, quote = svc.quote_cart(cid)
    return ok("Item added", _cart_payload(cart, quote), 201)


@bp.patch("/items/<int:item_id>")
@customer_required
def update_item(item_id):
    data = request.get_json(silent=True) or {}
    cid = current_customer().id
    svc.update_item(cid, item_id, data.get("quantity"))
    cart, quote = svc.quote_cart(cid)
    return ok("Cart updated", _cart_payload(cart, quote))


@bp.delete("/items/<int:item_id>")
@customer_required
def remove_item(item_id):
    cid = current_customer().id
    svc.remove_item(cid, item_id)
    cart, quote = svc.quote_cart(cid)
    return ok("Item removed", _cart_payload(cart, quote))


@bp.delete("")
@customer_required
def clear_cart():
    svc.clear_cart(current_customer().id)
    return ok("Cart cleared")


@bp.post("/coupon/preview")
@customer_required
def preview_coupon():
    data = request.get_json(silent=True) or {}
    code = clean_str(data.get("code"))
    if not code:
        raise ValidationError("code is required", {"code": "required"})
    cart, quote = svc.quote_cart(current_customer().id, coupon_code=code)
    return ok("Coupon applied", _cart_payload(cart, quote))


@bp.post("/checkout")
@customer_required
def checkout():
    data = request.get_json(silent=True) or {}
    if to_int(data.get("address_id")) is None:
        raise ValidationError("address_id is required", {"address_id": "required"})
    order = order_service.place_order(
        current_customer().id,
        data.get("address_id"),
        coupon_code=clean_str(data.get("coupon_code")),
        payment_method=data.get("payment_method"),
    )
    return ok("Order placed", order.as_api(), 201)
