# shopdesk/model/cart.py
from __future__ import annotations
from decimal import Decimal
from ..extensions import db
from ..utils.dates import utcnow, iso
from ..utils.money import round_money, to_string_money

class Cart(db.Model):
    __tablename__ = "cart"

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customer.id"), unique=True, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    items = db.relationship(
        "CartItem",
        backref="cart",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="CartItem.id.asc()"
    )

    # --------- money helpers ----------
    def subtotal_dec(self) -> Decimal:
        return round_money(sum((i.line_total_dec() for i in self.items), Decimal("0")))

    def item_count(self) -> int:
        return sum(i.quantity for i in self.items)

    def as_api(self):
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "items": [i.as_api() for i in self.items],
            "item_count": self.item_count(),
            "subtotal": to_string_money(self.subtotal_dec()),
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }


class CartItem(db.Model):
    __tablename__ = "cart_item"

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(db.Integer, db.ForeignKey("cart.id"), nullable=False, index=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("product_variant.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, default=utcnow)

    variant = db.relationship("ProductVariant", lazy="joined")

    __table_args__ = (db.UniqueConstraint("cart_id", "variant_id", name="uq_cart_variant"),)

    # ---- price helpers ----
    def unit_price_dec(self) -> Decimal:
        return round_money(self.variant.price)

    def line_total_dec(self) -> Decimal:
        return round_money(self.unit_price_dec() * self.quantity)

    def as_api(self):
        v = self.variant
        p = v.product if v else None
        return {
            "id": self.id,
            "variant_id": self.variant_id,
            "variant_name": v.name if v else None,
            "product_id": p.id if p else None,
            "product_name": p.name if p else None,
            "product_slug": p.slug if p else None,
            "image_url": p.thumbnail if p else None,
            "unit_price": to_string_money(self.unit_price_dec()),
            "quantity": self.quantity,
            "line_total": to_string_money(self.line_total_dec()),
        }
