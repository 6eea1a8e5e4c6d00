# shopdesk/order/routes.py
from flask import request, send_file

from ..services import order_service as svc
from ..utils.api import ok
from ..utils.decorators import admin_required
from . import bp


@bp.get("")
@admin_required()
def list_orders():
    """
    status          -> PENDING | PROCESSING | ...
    payment_status  -> PENDING | PAID | ...
    q               -> order number, customer email or recipient name
    page, per_page  -> pagination (cap 100)
    """
    args = request.args
    page_data = svc.list_orders(
        page=args.get("page"),
        per_page=args.get("per_page"),
        status=args.get("status"),
        payment_status=args.get("payment_status"),
        search=(args.get("q") or "").strip() or None,
    )
    return ok("Orders fetched", {
        "meta": page_data["meta"],
        "orders": [o.as_api() for o in page_data["items"]],
    })


@bp.get("/export")
@admin_required()
def export_orders():
    output, mimetype, filename = svc.export_orders(
        request.args.get("format", "csv"), status=request.args.get("status")
    )
    return send_file(output, as_attachment=True, download_name=filename, mimetype=mimetype)


@bp.get("/<int:oid>")
@admin_required()
def get_order(oid):
    o = svc.get_order(oid)
    data = o.as_api()
    data["customer"] = o.customer.as_summary() if o.customer else None
    return ok("Order fetched", data)


@bp.patch("/<int:oid>")
@admin_required()
def update_order(oid):
    data = request.get_json(silent=True) or {}
    return ok("Order updated", svc.update_order(oid, data).as_api())


@bp.post("/<int:oid>/cancel")
@admin_required()
def cancel_order(oid):
    data = request.get_json(silent=True) or {}
    return ok("Order cancelled", svc.cancel_order(oid, data.get("reason")).as_api())


@bp.post("/<int:oid>/refund")
@admin_required()
def refund_order(oid):
    data = request.get_json(silent=True) or {}
    return ok("Order refunded", svc.refund_order(oid, data.get("amount")).as_api())
