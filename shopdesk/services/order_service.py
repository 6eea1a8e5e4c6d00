# shopdesk/services/order_service.py
"""Checkout, admin order management and customer order history."""
from __future__ import annotations

import logging
import random
import time
from io import BytesIO

import pandas as pd
from sqlalchemy import or_

from ..errors import CartError, NotFound, OrderError, ShopError, ValidationError, repository_call
from ..extensions import db
from ..model import CouponType, Customer, Order, OrderItem, OrderStatus, PaymentStatus
from ..model.types import parse_enum
from ..utils.dates import iso
from ..utils.money import parse_money
from ..utils.params import clean_str, page_count, paginate, to_int
from . import address_service, cart_service, coupon_service
from .order_status import transition
from .pricing import assemble_total, calculate_discount
from .product_service import reserve_inventory

logger = logging.getLogger(__name__)


def generate_order_number():
    """ORD + last 8 digits of the ms timestamp + 4 random digits."""
    stamp = str(int(time.time() * 1000))[-8:]
    return f"ORD{stamp}{random.randint(0, 9999):04d}"


def _unique_order_number(attempts=5):
    for _ in range(attempts):
        number = generate_order_number()
        if not db.session.query(Order.id).filter_by(order_number=number).first():
            return number
    raise OrderError("Could not allocate an order number")


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------
@repository_call("Failed to place order")
def place_order(customer_id, address_id, coupon_code=None, payment_method=None) -> Order:
    cart = cart_service.get_cart(customer_id, create=False)
    if not cart or not cart.items:
        raise CartError("Cart is empty")
    address = address_service.get_address(customer_id, to_int(address_id))

    for line in cart.items:
        v = line.variant
        if not v or not v.is_active or not v.product.is_purchasable:
            raise CartError("Cart contains an unavailable product")

    subtotal = cart.subtotal_dec()
    coupon = cart_service.resolve_coupon(coupon_code, subtotal, customer_id) if coupon_code else None
    quote = cart_service.price_subtotal(subtotal, coupon)

    order = Order(
        order_number=_unique_order_number(),
        customer_id=customer_id,
        coupon_id=coupon.id if coupon else None,
        status=OrderStatus.PENDING,
        payment_status=PaymentStatus.PENDING,
        payment_method=clean_str(payment_method),
        subtotal=quote.subtotal,
        shipping_cost=quote.shipping_cost,
        tax=quote.tax,
        discount=quote.discount,
        total=quote.total,
        shipping_full_name=address.full_name,
        shipping_phone=address.phone,
        shipping_address_line1=address.address_line1,
        shipping_address_line2=address.address_line2,
        shipping_city=address.city,
        shipping_state=address.state,
        shipping_postal_code=address.postal_code,
        shipping_country=address.country,
    )
    for line in cart.items:
        v = line.variant
        order.items.append(OrderItem(
            variant_id=v.id,
            product_name=v.product.name,
            product_slug=v.product.slug,
            product_image=v.product.thumbnail,
            variant_name=v.name,
            quantity=line.quantity,
            unit_price=line.unit_price_dec(),
            line_total=line.line_total_dec(),
        ))

    try:
        if coupon:
            coupon_service.consume_coupon(coupon.id, coupon.code)
        for line in cart.items:
            reserve_inventory(line.variant_id, line.quantity, label=line.variant.name)
        db.session.add(order)
        cart.items.clear()
        db.session.commit()
    except ShopError:
        db.session.rollback()
        raise

    logger.info("order %s placed by customer %s total=%s", order.order_number, customer_id, order.total)
    return order


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------
@repository_call("Failed to fetch orders")
def list_orders(page=1, per_page=10, status=None, payment_status=None, search=None):
    q = Order.query
    if status:
        q = q.filter(Order.status == parse_enum(OrderStatus, status, "status"))
    if payment_status:
        q = q.filter(Order.payment_status == parse_enum(PaymentStatus, payment_status, "payment_status"))
    if search:
        like = f"%{search}%"
        q = q.join(Customer, Order.customer_id == Customer.id).filter(or_(
            Order.order_number.ilike(like),
            Customer.email.ilike(like),
            Order.shipping_full_name.ilike(like),
        ))
    q = q.order_by(Order.created_at.desc(), Order.id.desc())
    return paginate(q, page, per_page)


def get_order(order_id) -> Order:
    o = db.session.get(Order, order_id)
    if not o:
        raise NotFound("Order not found")
    return o


_ADDRESS_FIELDS = {
    "full_name": "shipping_full_name",
    "phone": "shipping_phone",
    "address_line1": "shipping_address_line1",
    "address_line2": "shipping_address_line2",
    "city": "shipping_city",
    "state": "shipping_state",
    "postal_code": "shipping_postal_code",
    "country": "shipping_country",
}
_REQUIRED_ADDRESS = {"full_name", "phone", "address_line1", "city", "postal_code", "country"}


@repository_call("Failed to update order")
def update_order(order_id, data) -> Order:
    """Edit an order. A status change is routed through the tracker after
    the other fields, so a payment update in the same request counts."""
    o = get_order(order_id)
    try:
        if "payment_status" in data:
            o.payment_status = parse_enum(PaymentStatus, data.get("payment_status"), "payment_status")
        if "payment_method" in data:
            o.payment_method = clean_str(data.get("payment_method"))
        if "admin_note" in data:
            o.admin_note = clean_str(data.get("admin_note"))
        if "tracking_number" in data:
            o.tracking_number = clean_str(data.get("tracking_number"))
        if "shipping_cost" in data:
            o.shipping_cost = parse_money(data.get("shipping_cost"), "shipping_cost")
            if o.coupon is not None and CouponType(o.coupon.ctype) == CouponType.FREE_SHIPPING:
                o.discount = calculate_discount(o.coupon, o.subtotal, o.shipping_cost)
            o.total = assemble_total(o.subtotal, o.shipping_cost, o.tax, o.discount)

        addr = data.get("shipping_address") or {}
        for key, col in _ADDRESS_FIELDS.items():
            if key in addr:
                value = clean_str(addr.get(key))
                if key in _REQUIRED_ADDRESS and not value:
                    raise ValidationError(f"{key} is required", {f"shipping_address.{key}": "required"})
                setattr(o, col, value)

        if data.get("status"):
            transition(
                o,
                parse_enum(OrderStatus, data.get("status"), "status"),
                tracking_number=data.get("tracking_number"),
                cancel_reason=data.get("cancel_reason"),
                refund_amount=data.get("refund_amount"),
            )
        db.session.commit()
    except ShopError:
        db.session.rollback()
        raise
    return o


@repository_call("Failed to cancel order")
def cancel_order(order_id, reason) -> Order:
    o = get_order(order_id)
    transition(o, OrderStatus.CANCELLED, cancel_reason=reason)
    db.session.commit()
    return o


@repository_call("Failed to refund order")
def refund_order(order_id, amount=None) -> Order:
    o = get_order(order_id)
    transition(o, OrderStatus.REFUNDED, refund_amount=amount)
    db.session.commit()
    return o


EXPORT_FORMATS = {
    "csv": ("text/csv", "orders_export.csv"),
    "xlsx": ("application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", "orders_export.xlsx"),
}


@repository_call("Failed to export orders")
def export_orders(fmt="csv", status=None):
    """Return (buffer, mimetype, filename) for the order table."""
    fmt = (fmt or "csv").lower()
    if fmt not in EXPORT_FORMATS:
        raise ValidationError("format must be csv or xlsx", {"format": "invalid"})

    q = Order.query
    if status:
        q = q.filter(Order.status == parse_enum(OrderStatus, status, "status"))
    rows = [{
        "Order Number": o.order_number,
        "Customer Email": o.customer.email if o.customer else None,
        "Status": o.status.value,
        "Payment Status": o.payment_status.value,
        "Payment Method": o.payment_method,
        "Subtotal": float(o.subtotal),
        "Shipping": float(o.shipping_cost),
        "Tax": float(o.tax),
        "Discount": float(o.discount),
        "Total": float(o.total),
        "Refund Amount": float(o.refund_amount) if o.refund_amount is not None else None,
        "Coupon": o.coupon.code if o.coupon else None,
        "Items": sum(i.quantity for i in o.items),
        "Created At": iso(o.created_at),
    } for o in q.order_by(Order.created_at.desc()).all()]
    df = pd.DataFrame(rows, columns=[
        "Order Number", "Customer Email", "Status", "Payment Status", "Payment Method",
        "Subtotal", "Shipping", "Tax", "Discount", "Total", "Refund Amount",
        "Coupon", "Items", "Created At",
    ])

    output = BytesIO()
    if fmt == "csv":
        output.write(df.to_csv(index=False).encode("utf-8"))
    else:
        df.to_excel(output, index=False)
    output.seek(0)
    mimetype, filename = EXPORT_FORMATS[fmt]
    return output, mimetype, filename


# ---------------------------------------------------------------------------
# Customer history
# ---------------------------------------------------------------------------
@repository_call("Failed to fetch orders")
def recent_orders(customer_id, limit=5):
    return (
        Order.query.filter_by(customer_id=customer_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(limit)
        .all()
    )


@repository_call("Failed to fetch orders")
def orders_page(customer_id, page=1, limit=10):
    page = to_int(page)
    limit = to_int(limit)
    if page is None or page < 1:
        raise OrderError("Page number must be greater than 0")
    if limit is None or limit < 1 or limit > 100:
        raise OrderError("Limit must be between 1 and 100")

    q = Order.query.filter_by(customer_id=customer_id)
    total = q.count()
    orders = (
        q.order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    total_pages = page_count(total, limit)
    return {
        "orders": orders,
        "pagination": {
            "currentPage": page,
            "totalPages": total_pages,
            "totalOrders": total,
            "pageSize": limit,
            "hasNextPage": page < total_pages,
            "hasPreviousPage": page > 1,
        },
    }


def get_customer_order(customer_id, order_number) -> Order:
    o = Order.query.filter_by(customer_id=customer_id, order_number=order_number).first()
    if not o:
        raise NotFound("Order not found")
    return o
