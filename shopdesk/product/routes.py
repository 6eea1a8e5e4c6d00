from flask import request

from ..services import product_service as svc
from ..utils.api import ok
from ..utils.decorators import admin_required
from . import bp, storefront_bp


def _page_payload(page_data):
    return {
        "meta": page_data["meta"],
        "products": [p.as_api() for p in page_data["items"]],
    }


# ---------- admin ----------
@bp.get("")
@admin_required()
def list_products():
    """
    q           -> substring match on name / slug
    status      -> DRAFT | ACTIVE | ARCHIVED
    category_id -> filter
    sort        -> newest, oldest, name, -name
    page, per_page
    """
    args = request.args
    page_data = svc.list_products(
        page=args.get("page"),
        per_page=args.get("per_page"),
        search=(args.get("q") or "").strip() or None,
        status=args.get("status"),
        category_id=args.get("category_id"),
        sort=args.get("sort"),
    )
    return ok("Products fetched", _page_payload(page_data))


@bp.get("/<int:pid>")
@admin_required()
def get_product(pid):
    return ok("Product fetched", svc.get_product(pid).as_api())


@bp.post("")
@admin_required()
def create_product():
    data = request.get_json(silent=True) or {}
    return ok("Product created", svc.create_product(data).as_api(), 201)


@bp.patch("/<int:pid>")
@admin_required()
def update_product(pid):
    data = request.get_json(silent=True) or {}
    return ok("Product updated", svc.update_product(pid, data).as_api())


@bp.post("/<int:pid>/archive")
@admin_required()
def archive_product(pid):
    return ok("Product archived", svc.archive_product(pid).as_api())


# ---------- storefront ----------
@storefront_bp.get("")
def browse_products():
    args = request.args
    page_data = svc.list_products(
        page=args.get("page"),
        per_page=args.get("per_page"),
        search=(args.get("q") or "").strip() or None,
        category_id=args.get("category_id"),
        sort=args.get("sort"),
        storefront=True,
    )
    return ok("Products fetched", _page_payload(page_data))


@storefront_bp.get("/<slug>")
def product_detail(slug):
    return ok("Product fetched", svc.get_storefront_product(slug).as_api())
