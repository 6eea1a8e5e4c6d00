# --- shopdesk/model/coupon.py ---

from ..extensions import db
from ..utils.dates import utcnow, iso
from ..utils.money import to_string_money
from .types import CouponType, EnumColumn, Money

class Coupon(db.Model):
    __tablename__ = "coupon"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), unique=True, nullable=False, index=True)
    description = db.Column(db.String(255))

    ctype = EnumColumn(CouponType, nullable=False, default=CouponType.PERCENTAGE)
    # percent for PERCENTAGE, currency amount for FIXED_AMOUNT, unused for FREE_SHIPPING
    value = Money(nullable=False, default=0)

    # Optional constraints
    min_purchase = Money(nullable=True)         # require subtotal >= this
    max_discount = Money(nullable=True)         # cap, PERCENTAGE only
    usage_limit = db.Column(db.Integer, nullable=True)               # global cap
    usage_limit_per_customer = db.Column(db.Integer, nullable=True)
    usage_count = db.Column(db.Integer, nullable=False, default=0)

    starts_at = db.Column(db.DateTime, nullable=False)
    ends_at = db.Column(db.DateTime, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)


    def as_api(self):
        return {
            "id": self.id,
            "code": self.code,
            "description": self.description,
            "type": self.ctype.value if self.ctype else None,
            "value": to_string_money(self.value),
            "min_purchase": to_string_money(self.min_purchase),
            "max_discount": to_string_money(self.max_discount),
            "usage_limit": self.usage_limit,
            "usage_limit_per_customer": self.usage_limit_per_customer,
            "usage_count": self.usage_count,
            "starts_at": iso(self.starts_at),
            "ends_at": iso(self.ends_at),
            "is_active": self.is_active,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }
