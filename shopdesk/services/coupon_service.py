# shopdesk/services/coupon_service.py
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from sqlalchemy import func, or_, update

from ..errors import (
    BelowMinimumPurchase,
    CouponExpired,
    CouponInUse,
    CouponInactive,
    CouponNotYetActive,
    CustomerUsageLimitExceeded,
    DuplicateName,
    NotFound,
    ShopError,
    UsageLimitExceeded,
    ValidationError,
    repository_call,
)
from ..extensions import db
from ..model import Coupon, CouponType, Order
from ..model.types import parse_enum
from ..utils.dates import parse_iso8601, utcnow
from ..utils.money import D, parse_money
from ..utils.params import clean_str, parse_bool, to_int

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Validator
# ---------------------------------------------------------------------------
class CouponRejection(str, enum.Enum):
    EXPIRED = "EXPIRED"
    NOT_YET_ACTIVE = "NOT_YET_ACTIVE"
    INACTIVE = "INACTIVE"
    BELOW_MINIMUM_PURCHASE = "BELOW_MINIMUM_PURCHASE"
    USAGE_LIMIT_EXCEEDED = "USAGE_LIMIT_EXCEEDED"
    CUSTOMER_LIMIT_EXCEEDED = "CUSTOMER_LIMIT_EXCEEDED"


_REJECTION_ERRORS = {
    CouponRejection.EXPIRED: CouponExpired,
    CouponRejection.NOT_YET_ACTIVE: CouponNotYetActive,
    CouponRejection.INACTIVE: CouponInactive,
    CouponRejection.BELOW_MINIMUM_PURCHASE: BelowMinimumPurchase,
    CouponRejection.USAGE_LIMIT_EXCEEDED: UsageLimitExceeded,
    CouponRejection.CUSTOMER_LIMIT_EXCEEDED: CustomerUsageLimitExceeded,
}


@dataclass(frozen=True)
class CouponVerdict:
    applicable: bool
    reason: CouponRejection | None = None
    coupon_code: str | None = None

    def raise_for_reason(self):
        if self.reason is not None:
            raise _REJECTION_ERRORS[self.reason](coupon_code=self.coupon_code)


def evaluate_coupon(coupon, subtotal, *, now=None, customer_uses=None) -> CouponVerdict:
    """Decide whether ``coupon`` applies to ``subtotal``. No side effects.

    ``customer_uses`` is the number of earlier orders by the same customer
    with this coupon; when it is None the per-customer cap is not checked.
    """
    now = now or utcnow()
    code = coupon.code

    def reject(reason):
        return CouponVerdict(False, reason, code)

    if coupon.ends_at is not None and now > coupon.ends_at:
        return reject(CouponRejection.EXPIRED)
    if coupon.starts_at is not None and now < coupon.starts_at:
        return reject(CouponRejection.NOT_YET_ACTIVE)
    if not coupon.is_active:
        return reject(CouponRejection.INACTIVE)
    if coupon.min_purchase is not None and D(subtotal) < D(coupon.min_purchase):
        return reject(CouponRejection.BELOW_MINIMUM_PURCHASE)
    if coupon.usage_limit is not None and (coupon.usage_count or 0) >= coupon.usage_limit:
        return reject(CouponRejection.USAGE_LIMIT_EXCEEDED)
    if (coupon.usage_limit_per_customer is not None and customer_uses is not None
            and customer_uses >= coupon.usage_limit_per_customer):
        return reject(CouponRejection.CUSTOMER_LIMIT_EXCEEDED)
    return CouponVerdict(True, None, code)


@repository_call("Failed to count coupon usage")
def count_customer_coupon_uses(customer_id, coupon_id) -> int:
    return (
        db.session.query(func.count(Order.id))
        .filter(Order.customer_id == customer_id, Order.coupon_id == coupon_id)
        .scalar()
    ) or 0


def validate_for_customer(coupon, subtotal, customer_id, *, now=None) -> CouponVerdict:
    uses = None
    if coupon.usage_limit_per_customer is not None and customer_id is not None:
        uses = count_customer_coupon_uses(customer_id, coupon.id)
    return evaluate_coupon(coupon, subtotal, now=now, customer_uses=uses)


@repository_call("Failed to consume coupon")
def consume_coupon(coupon_id, coupon_code=None):
    """Atomically bump usage_count if the coupon is still under its limit.

    Single conditional UPDATE; a zero row count means another order took
    the last use (or the coupon was switched off) in the meantime.
    """
    stmt = (
        update(Coupon)
        .where(
            Coupon.id == coupon_id,
            Coupon.is_active.is_(True),
            or_(Coupon.usage_limit.is_(None), Coupon.usage_count < Coupon.usage_limit),
        )
        .values(usage_count=Coupon.usage_count + 1)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if result.rowcount != 1:
        logger.info("coupon %s refused: usage limit reached", coupon_code or coupon_id)
        raise UsageLimitExceeded(coupon_code=coupon_code)
    logger.info("coupon %s consumed", coupon_code or coupon_id)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------
_SORTABLE = {"created_at": Coupon.created_at, "usage_count": Coupon.usage_count}


@repository_call("Failed to fetch coupons")
def list_coupons(page=1, page_size=10, search=None, is_active=None, sort_by="created_at", sort_order="desc"):
    page = max(to_int(page, 1), 1)
    page_size = min(max(to_int(page_size, 10), 1), 100)

    q = Coupon.query
    if is_active is not None:
        q = q.filter(Coupon.is_active.is_(bool(is_active)))
    if search:
        q = q.filter(Coupon.code.ilike(f"%{search}%"))

    col = _SORTABLE.get(sort_by, Coupon.created_at)
    q = q.order_by(col.asc() if sort_order == "asc" else col.desc(), Coupon.id.desc())

    total = q.count()
    items = q.offset((page - 1) * page_size).limit(page_size).all()
    return {"items": items, "total": total, "page": page, "page_size": page_size}


def get_coupon(coupon_id) -> Coupon:
    c = db.session.get(Coupon, coupon_id)
    if not c:
        raise NotFound("Coupon not found")
    return c


def find_by_code(code) -> Coupon | None:
    code = (code or "").strip()
    if not code:
        return None
    return Coupon.query.filter(func.lower(Coupon.code) == code.lower()).first()


def _opt_int(data, field):
    if data.get(field) in (None, ""):
        return None
    v = to_int(data.get(field))
    if v is None or v < 0:
        raise ValidationError(f"{field} must be a non-negative integer", {field: "invalid"})
    return v


def _parse_dt(data, field, required):
    raw = data.get(field)
    if not raw:
        if required:
            raise ValidationError(f"{field} is required", {field: "required"})
        return None
    dt = parse_iso8601(raw)
    if not dt:
        raise ValidationError(f"Invalid datetime format for {field}", {field: "invalid"})
    return dt


def _check_value(c: Coupon):
    """Type and value must agree, whichever of the two was just edited."""
    value = D(c.value)
    if c.ctype != CouponType.FREE_SHIPPING and value <= 0:
        raise ValidationError("value must be > 0", {"value": "out_of_range"})
    if c.ctype == CouponType.PERCENTAGE and value > 100:
        raise ValidationError("percentage value must be <= 100", {"value": "out_of_range"})


def _apply_fields(c: Coupon, data: dict, partial: bool):
    """Copy validated payload fields onto ``c``."""
    touched_value = not partial or "type" in data or "value" in data
    if not partial or "type" in data:
        c.ctype = parse_enum(CouponType, data.get("type") or "PERCENTAGE", "type")
    if not partial or "value" in data:
        zero_ok = c.ctype == CouponType.FREE_SHIPPING
        c.value = parse_money(data.get("value", 0 if zero_ok else None), "value", allow_zero=zero_ok)
    if touched_value:
        _check_value(c)
    if not partial or "description" in data:
        c.description = clean_str(data.get("description"))
    if not partial or "min_purchase" in data:
        c.min_purchase = parse_money(data.get("min_purchase"), "min_purchase", required=False)
    if not partial or "max_discount" in data:
        c.max_discount = parse_money(data.get("max_discount"), "max_discount", required=False)
    if not partial or "usage_limit" in data:
        c.usage_limit = _opt_int(data, "usage_limit")
    if not partial or "usage_limit_per_customer" in data:
        c.usage_limit_per_customer = _opt_int(data, "usage_limit_per_customer")
    if not partial or "starts_at" in data:
        c.starts_at = _parse_dt(data, "starts_at", required=True)
    if not partial or "ends_at" in data:
        c.ends_at = _parse_dt(data, "ends_at", required=True)
    if not partial or "is_active" in data:
        c.is_active = parse_bool(data.get("is_active"), True)

    if c.starts_at and c.ends_at and c.ends_at <= c.starts_at:
        raise ValidationError("ends_at must be after starts_at", {"ends_at": "out_of_range"})


@repository_call("Failed to create coupon")
def create_coupon(data: dict) -> Coupon:
    code = (data.get("code") or "").strip()
    if not code:
        raise ValidationError("code is required", {"code": "required"})
    # unique case-insensitive
    if find_by_code(code):
        raise DuplicateName("Coupon code already exists")

    c = Coupon(code=code, usage_count=0)
    _apply_fields(c, data, partial=False)
    db.session.add(c)
    db.session.commit()
    logger.info("coupon %s created", c.code)
    return c


@repository_call("Failed to update coupon")
def update_coupon(coupon_id, data: dict) -> Coupon:
    c = get_coupon(coupon_id)
    if "code" in data:
        raise ValidationError("code cannot be changed", {"code": "immutable"})
    try:
        _apply_fields(c, data, partial=True)
    except ShopError:
        db.session.rollback()
        raise
    db.session.commit()
    return c


@repository_call("Failed to update coupon")
def toggle_coupon_status(coupon_id, is_active: bool) -> Coupon:
    c = get_coupon(coupon_id)
    c.is_active = bool(is_active)
    db.session.commit()
    logger.info("coupon %s %s", c.code, "activated" if c.is_active else "deactivated")
    return c


def is_coupon_expired(coupon_id, now=None) -> bool:
    c = db.session.get(Coupon, coupon_id)
    if not c:
        return True
    return c.ends_at < (now or utcnow())


@repository_call("Failed to delete coupon")
def delete_coupon(coupon_id):
    c = get_coupon(coupon_id)
    if db.session.query(Order.id).filter(Order.coupon_id == c.id).first():
        raise CouponInUse()
    code = c.code
    db.session.delete(c)
    db.session.commit()
    logger.info("coupon %s deleted", code)
