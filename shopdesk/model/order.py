# shopdesk/model/order.py
from ..extensions import db
from ..utils.dates import utcnow, iso
from ..utils.money import to_string_money
from .types import EnumColumn, Money, OrderStatus, PaymentStatus

class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(32), unique=True, nullable=False, index=True)  # e.g. "ORD123456781234"
    customer_id = db.Column(db.Integer, db.ForeignKey("customer.id"), nullable=False, index=True)
    coupon_id = db.Column(db.Integer, db.ForeignKey("coupon.id"), nullable=True, index=True)

    status = EnumColumn(OrderStatus, nullable=False, default=OrderStatus.PENDING, index=True)
    payment_status = EnumColumn(PaymentStatus, nullable=False, default=PaymentStatus.PENDING, index=True)
    payment_method = db.Column(db.String(50))

    # Money snapshot
    subtotal = Money(nullable=False, default=0)
    shipping_cost = Money(nullable=False, default=0)
    tax = Money(nullable=False, default=0)
    discount = Money(nullable=False, default=0)
    total = Money(nullable=False, default=0)
    refund_amount = Money(nullable=True)

    # Shipping address snapshot
    shipping_full_name = db.Column(db.String(120), nullable=False)
    shipping_phone = db.Column(db.String(50), nullable=False)
    shipping_address_line1 = db.Column(db.String(255), nullable=False)
    shipping_address_line2 = db.Column(db.String(255))
    shipping_city = db.Column(db.String(100), nullable=False)
    shipping_state = db.Column(db.String(100))
    shipping_postal_code = db.Column(db.String(20), nullable=False)
    shipping_country = db.Column(db.String(100), nullable=False)

    tracking_number = db.Column(db.String(255))
    admin_note = db.Column(db.Text)
    cancel_reason = db.Column(db.String(500))

    shipped_at = db.Column(db.DateTime)
    delivered_at = db.Column(db.DateTime)
    cancelled_at = db.Column(db.DateTime)
    refunded_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    customer = db.relationship("Customer", lazy="joined")
    coupon = db.relationship("Coupon")
    items = db.relationship(
        "OrderItem",
        backref="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.id.asc()",
    )

    def shipping_address(self):
        return {
            "full_name": self.shipping_full_name,
            "phone": self.shipping_phone,
            "address_line1": self.shipping_address_line1,
            "address_line2": self.shipping_address_line2,
            "city": self.shipping_city,
            "state": self.shipping_state,
            "postal_code": self.shipping_postal_code,
            "country": self.shipping_country,
        }

    def as_api(self):
        return {
            "id": self.id,
            "order_number": self.order_number,
            "customer_id": self.customer_id,
            "status": self.status.value,
            "payment_status": self.payment_status.value,
            "payment_method": self.payment_method,
            "coupon": self.coupon.code if self.coupon else None,
            "money": {
                "subtotal": to_string_money(self.subtotal),
                "shipping_cost": to_string_money(self.shipping_cost),
                "tax": to_string_money(self.tax),
                "discount": to_string_money(self.discount),
                "total": to_string_money(self.total),
                "refund_amount": to_string_money(self.refund_amount),
            },
            "shipping_address": self.shipping_address(),
            "tracking_number": self.tracking_number,
            "admin_note": self.admin_note,
            "cancel_reason": self.cancel_reason,
            "items": [i.as_api() for i in self.items],
            "shipped_at": iso(self.shipped_at),
            "delivered_at": iso(self.delivered_at),
            "cancelled_at": iso(self.cancelled_at),
            "refunded_at": iso(self.refunded_at),
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

class OrderItem(db.Model):
    """Immutable line snapshot taken at order time."""
    __tablename__ = "order_items"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    # plain references, not FKs: the snapshot outlives catalogue edits
    variant_id = db.Column(db.Integer, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    product_slug = db.Column(db.String(255))
    product_image = db.Column(db.String(1024))
    variant_name = db.Column(db.String(255))

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = Money(nullable=False)
    line_total = Money(nullable=False)

    def as_api(self):
        return {
            "id": self.id,
            "variant_id": self.variant_id,
            "product_name": self.product_name,
            "product_slug": self.product_slug,
            "product_image": self.product_image,
            "variant_name": self.variant_name,
            "quantity": self.quantity,
            "unit_price": to_string_money(self.unit_price),
            "line_total": to_string_money(self.line_total),
        }
