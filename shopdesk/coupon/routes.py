# shopdesk/coupon/routes.py
from __future__ import annotations

from flask import request

from ..errors import ValidationError
from ..services import coupon_service as svc
from ..utils.api import ok
from ..utils.decorators import admin_required
from ..utils.params import parse_bool
from . import bp


@bp.get("")
@admin_required()
def list_coupons():
    """
    page       -> default 1
    page_size  -> default 10 (cap 100)
    search     -> case-insensitive match on code
    is_active  -> true / false
    sort_by    -> created_at | usage_count
    sort_order -> asc | desc
    """
    args = request.args
    result = svc.list_coupons(
        page=args.get("page", 1),
        page_size=args.get("page_size", 10),
        search=(args.get("search") or "").strip() or None,
        is_active=parse_bool(args.get("is_active")),
        sort_by=args.get("sort_by", "created_at"),
        sort_order=args.get("sort_order", "desc"),
    )
    return ok("Coupons fetched", {
        "items": [c.as_api() for c in result["items"]],
        "total": result["total"],
        "page": result["page"],
        "page_size": result["page_size"],
    })


@bp.get("/<int:cid>")
@admin_required()
def get_coupon(cid):
    return ok("Coupon fetched", svc.get_coupon(cid).as_api())


@bp.post("")
@admin_required()
def create_coupon():
    data = request.get_json(silent=True) or {}
    c = svc.create_coupon(data)
    return ok("Coupon created", c.as_api(), 201)


@bp.patch("/<int:cid>")
@admin_required()
def update_coupon(cid):
    data = request.get_json(silent=True) or {}
    return ok("Coupon updated", svc.update_coupon(cid, data).as_api())


@bp.patch("/<int:cid>/status")
@admin_required()
def toggle_coupon(cid):
    data = request.get_json(silent=True) or {}
    is_active = parse_bool(data.get("is_active"))
    if is_active is None:
        raise ValidationError("is_active is required", {"is_active": "required"})
    return ok("Coupon status updated", svc.toggle_coupon_status(cid, is_active).as_api())


@bp.get("/<int:cid>/expired")
@admin_required()
def coupon_expired(cid):
    return ok("OK", {"id": cid, "expired": svc.is_coupon_expired(cid)})


@bp.delete("/<int:cid>")
@admin_required()
def delete_coupon(cid):
    svc.delete_coupon(cid)
    return ok("Coupon deleted")
