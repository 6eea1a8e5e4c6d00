# ------- shopdesk/utils/decorators.py -------
from functools import wraps

from flask import g, jsonify
from flask_jwt_extended import get_jwt, get_jwt_identity, verify_jwt_in_request

from ..utils.api import api_error

ADMIN_ROLE = "admin"


def _load_customer():
    from ..services.customer_service import sync_customer

    verify_jwt_in_request()
    sub = get_jwt_identity()
    if not sub:
        return None
    return sync_customer(sub, get_jwt())


def current_customer():
    """Customer for the verified token of this request (set by the decorators)."""
    return g.get("customer")


def customer_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        c = _load_customer()
        if not c:
            return jsonify(api_error("Unauthorized")), 401
        g.customer = c
        return fn(*args, **kwargs)
    return wrapper


def admin_required(message: str | None = None):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            c = _load_customer()
            if not c:
                return jsonify(api_error("Unauthorized")), 401
            if get_jwt().get("role") != ADMIN_ROLE:
                return jsonify(api_error(message or "Forbidden")), 403
            g.customer = c
            return fn(*args, **kwargs)
        return wrapper
    return decorator
