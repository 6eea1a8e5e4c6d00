# shopdesk/model/types.py
import enum

from ..extensions import db


class CouponType(str, enum.Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"
    FREE_SHIPPING = "FREE_SHIPPING"


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"
    UNKNOWN = "UNKNOWN"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"
    UNKNOWN = "UNKNOWN"


class ProductStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


def EnumColumn(enum_cls, **kw):
    """Enum stored as its name in a VARCHAR, portable across SQLite/Postgres."""
    return db.Column(db.Enum(enum_cls, native_enum=False, length=20, validate_strings=True), **kw)


def Money(**kw):
    return db.Column(db.Numeric(12, 2), **kw)


def parse_enum(enum_cls, value, field):
    from ..errors import ValidationError

    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value or "").strip().upper())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{field} must be one of: {allowed}", {field: "invalid"})
