# --- shopdesk/errors.py ---
from __future__ import annotations

import logging
from functools import wraps

from flask import jsonify
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db
from .utils.api import api_error

logger = logging.getLogger(__name__)


class ShopError(Exception):
    status_code = 400
    code = "SHOP_ERROR"

    def __init__(self, message=None, payload=None):
        message = message or (self.__class__.__doc__ or self.code).strip()
        super().__init__(message)
        self.message = message
        self.payload = payload or {}

    def to_dict(self):
        return {"code": self.code, **self.payload}


# ---- validation -------------------------------------------------------------
class ValidationError(ShopError):
    """Invalid input"""
    status_code = 422
    code = "VALIDATION_ERROR"

    def __init__(self, message=None, fields=None):
        super().__init__(message, {"fields": fields} if fields else None)
        self.fields = fields or {}


class NotFound(ShopError):
    """Resource not found"""
    status_code = 404
    code = "NOT_FOUND"


# ---- business rules ---------------------------------------------------------
class BusinessRuleError(ShopError):
    status_code = 409
    code = "BUSINESS_RULE"


class CouponError(BusinessRuleError):
    code = "COUPON_ERROR"
    reason = None

    def __init__(self, message=None, coupon_code=None):
        super().__init__(message, {"reason": self.reason, "coupon": coupon_code})
        self.coupon_code = coupon_code


class CouponExpired(CouponError):
    """Coupon has expired"""
    reason = "EXPIRED"


class CouponNotYetActive(CouponError):
    """Coupon is not active yet"""
    reason = "NOT_YET_ACTIVE"


class CouponInactive(CouponError):
    """Coupon is inactive"""
    reason = "INACTIVE"


class BelowMinimumPurchase(CouponError):
    """Subtotal is below the coupon's minimum purchase"""
    reason = "BELOW_MINIMUM_PURCHASE"


class UsageLimitExceeded(CouponError):
    """Coupon usage limit reached"""
    reason = "USAGE_LIMIT_EXCEEDED"


class CustomerUsageLimitExceeded(CouponError):
    """Coupon already used the maximum number of times by this customer"""
    reason = "CUSTOMER_LIMIT_EXCEEDED"


class CouponInUse(BusinessRuleError):
    """Coupon is referenced by orders and cannot be deleted"""
    code = "COUPON_IN_USE"


class InvalidTransition(BusinessRuleError):
    code = "INVALID_TRANSITION"

    def __init__(self, current, target):
        super().__init__(
            f"Cannot transition order from {current} to {target}",
            {"from": current, "to": target},
        )


class CategoryProtected(BusinessRuleError):
    code = "CATEGORY_PROTECTED"


class CategoryRootDeletion(BusinessRuleError):
    """Cannot delete root category"""
    code = "CATEGORY_ROOT"


class CategoryHasChildren(BusinessRuleError):
    """Cannot delete category with subcategories. Please reassign or delete the subcategories first."""
    code = "CATEGORY_HAS_CHILDREN"


class CategoryHasProducts(BusinessRuleError):
    """Cannot delete category with associated products. Please reassign or delete the products first."""
    code = "CATEGORY_HAS_PRODUCTS"


class ParentDisallowsChildren(BusinessRuleError):
    """Parent category does not allow children"""
    code = "PARENT_DISALLOWS_CHILDREN"


class DuplicateName(BusinessRuleError):
    code = "DUPLICATE"


class OutOfStock(BusinessRuleError):
    code = "OUT_OF_STOCK"


class CartError(BusinessRuleError):
    """Cart Error"""
    code = "CART_ERROR"


class OrderError(BusinessRuleError):
    """Order Error"""
    code = "ORDER_ERROR"


# ---- infrastructure ---------------------------------------------------------
class RepositoryError(ShopError):
    status_code = 500
    code = "REPOSITORY_ERROR"


def repository_call(message):
    """Turn database failures into a generic RepositoryError.

    The session is rolled back and the original exception is logged with its
    traceback; callers only see ``message``.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except SQLAlchemyError as e:
                db.session.rollback()
                logger.exception("%s (%s)", message, fn.__qualname__)
                raise RepositoryError(message) from e
        return wrapper
    return decorator


def register_error_handlers(app):
    @app.errorhandler(ShopError)
    def handle_shop_error(e):
        r = jsonify(api_error(e.message, e.to_dict()))
        r.status_code = e.status_code
        return r
