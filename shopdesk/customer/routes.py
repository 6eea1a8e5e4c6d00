# shopdesk/customer/routes.py
from flask import request

from ..services import customer_service as svc
from ..services import order_service
from ..utils.api import ok
from ..utils.decorators import admin_required
from . import bp


@bp.get("")
@admin_required()
def list_customers():
    args = request.args
    page_data = svc.list_customers(
        page=args.get("page"),
        per_page=args.get("per_page"),
        search=(args.get("q") or "").strip() or None,
    )
    return ok("Customers fetched", {
        "meta": page_data["meta"],
        "customers": [c.as_api() for c in page_data["items"]],
    })


@bp.get("/stats/new")
@admin_required()
def new_customers():
    return ok("New customers this month", svc.monthly_new_customers())


@bp.get("/<int:cid>")
@admin_required()
def get_customer(cid):
    c = svc.get_customer(cid)
    data = c.as_api()
    data["addresses"] = [a.as_api() for a in c.addresses]
    data["recent_orders"] = [o.as_api() for o in order_service.recent_orders(c.id)]
    return ok("Customer fetched", data)
