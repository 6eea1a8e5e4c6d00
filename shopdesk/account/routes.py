# shopdesk/account/routes.py
from flask import request

from ..services import address_service, order_service
from ..utils.api import ok
from ..utils.decorators import current_customer, customer_required
from . import bp


@bp.get("/me")
@customer_required
def me():
    return ok("OK", current_customer().as_api())


# ---------- address book ----------
@bp.get("/addresses")
@customer_required
def list_addresses():
    rows = address_service.list_addresses(current_customer().id)
    return ok("Addresses fetched", [a.as_api() for a in rows])


@bp.post("/addresses")
@customer_required
def create_address():
    data = request.get_json(silent=True) or {}
    a = address_service.create_address(current_customer().id, data)
    return ok("Address created", a.as_api(), 201)


@bp.patch("/addresses/<int:aid>")
@customer_required
def update_address(aid):
    data = request.get_json(silent=True) or {}
    a = address_service.update_address(current_customer().id, aid, data)
    return ok("Address updated", a.as_api())


@bp.post("/addresses/<int:aid>/default")
@customer_required
def set_default_address(aid):
    a = address_service.set_default_address(current_customer().id, aid)
    return ok("Default address updated", a.as_api())


@bp.delete("/addresses/<int:aid>")
@customer_required
def delete_address(aid):
    address_service.delete_address(current_customer().id, aid)
    return ok("Address deleted")


# ---------- orders ----------
@bp.get("/orders/recent")
@customer_required
def recent_orders():
    rows = order_service.recent_orders(current_customer().id)
    return ok("Recent orders", [o.as_api() for o in rows])


@bp.get("/orders")
@customer_required
def list_orders():
    result = order_service.orders_page(
        current_customer().id,
        page=request.args.get("page", 1),
        limit=request.args.get("limit", 10),
    )
    return ok("Orders fetched", {
        "orders": [o.as_api() for o in result["orders"]],
        "pagination": result["pagination"],
    })


@bp.get("/orders/<order_number>")
@customer_required
def get_order(order_number):
    o = order_service.get_customer_order(current_customer().id, order_number)
    return ok("Order fetched", o.as_api())
