# shopdesk/services/order_status.py
"""Order status tracker.

Every status write goes through :func:`transition`; routes never assign
``order.status`` directly.
"""
from __future__ import annotations

import logging

from ..errors import InvalidTransition, ValidationError
from ..model.types import OrderStatus, PaymentStatus
from ..utils.dates import utcnow
from ..utils.money import D, round_money
from ..utils.params import clean_str

logger = logging.getLogger(__name__)

S = OrderStatus

ALLOWED_TRANSITIONS = {
    S.PENDING: {S.PROCESSING, S.CANCELLED, S.REFUNDED},
    S.PROCESSING: {S.SHIPPED, S.CANCELLED, S.REFUNDED},
    S.SHIPPED: {S.DELIVERED, S.REFUNDED},
    S.DELIVERED: {S.REFUNDED},
    S.CANCELLED: {S.REFUNDED},
    S.REFUNDED: set(),
    # repair path for rows written with an unrecognised status
    S.UNKNOWN: {S.PENDING, S.PROCESSING, S.SHIPPED, S.DELIVERED, S.CANCELLED},
}


def can_transition(order, target) -> bool:
    current = order.status or S.UNKNOWN
    if target not in ALLOWED_TRANSITIONS.get(current, set()):
        return False
    if target == S.REFUNDED and order.payment_status != PaymentStatus.PAID:
        return False
    return True


def _refund_amount(order, amount):
    total = round_money(order.total)
    if amount is None or amount == "":
        return total
    try:
        value = round_money(D(amount))
    except (ArithmeticError, ValueError):
        raise ValidationError("refund_amount must be numeric", {"refund_amount": "invalid"})
    if value <= 0 or value > total:
        raise ValidationError("refund_amount must be > 0 and <= order total", {"refund_amount": "out_of_range"})
    return value


def transition(order, target, *, tracking_number=None, cancel_reason=None, refund_amount=None, now=None):
    """Move ``order`` to ``target`` and apply the lifecycle side effects.

    Returns True when the order changed, False for a same-status write.
    Nothing is committed here; the caller owns the unit of work.
    """
    target = OrderStatus(target)
    current = order.status or S.UNKNOWN
    if target == current:
        return False

    if not can_transition(order, target):
        raise InvalidTransition(current.value, target.value)

    now = now or utcnow()

    # validate before mutating anything
    if target == S.CANCELLED:
        reason = clean_str(cancel_reason)
        if not reason:
            raise ValidationError("cancel_reason is required", {"cancel_reason": "required"})
    if target == S.REFUNDED:
        amount = _refund_amount(order, refund_amount)

    if target == S.SHIPPED:
        if order.shipped_at is None:
            order.shipped_at = now
        tn = clean_str(tracking_number)
        if tn:
            order.tracking_number = tn
    elif target == S.DELIVERED:
        order.delivered_at = now
    elif target == S.CANCELLED:
        order.cancel_reason = reason
        order.cancelled_at = now
    elif target == S.REFUNDED:
        order.refund_amount = amount
        order.refunded_at = now
        order.payment_status = PaymentStatus.REFUNDED

    order.status = target
    order.updated_at = now
    logger.info("order %s: %s -> %s", order.order_number, current.value, target.value)
    return True
