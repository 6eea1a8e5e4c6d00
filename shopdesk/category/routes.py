# --- category/routes.py ---
from flask import request

from ..services import category_service as svc
from ..utils.api import ok
from ..utils.decorators import admin_required
from ..utils.params import parse_bool
from . import bp


@bp.get("")
@admin_required()
def list_categories():
    rows = svc.list_categories_with_counts()
    return ok("Categories fetched", [c.as_dict(product_count=n) for c, n in rows])


@bp.get("/tree")
@admin_required()
def category_tree():
    return ok("Category tree", svc.category_tree())


@bp.get("/<int:cid>")
@admin_required()
def get_category(cid):
    return ok("Category fetched", svc.get_category(cid).as_dict())


@bp.get("/slug/<slug>")
@admin_required()
def get_category_by_slug(slug):
    return ok("Category fetched", svc.get_category_by_slug(slug).as_dict())


@bp.get("/<int:cid>/products")
@admin_required()
def category_products(cid):
    args = request.args
    products = svc.category_products(
        cid,
        include_subcategories=parse_bool(args.get("include_subcategories"), False),
        limit=args.get("limit", 50),
        offset=args.get("offset", 0),
    )
    return ok("Products fetched", [p.as_api() for p in products])


@bp.post("")
@admin_required()
def create_category():
    data = request.get_json(silent=True) or {}
    return ok("Category created", svc.create_category(data).as_dict(), 201)


@bp.patch("/<int:cid>")
@admin_required()
def update_category(cid):
    data = request.get_json(silent=True) or {}
    return ok("Category updated", svc.update_category(cid, data).as_dict())


@bp.put("/order")
@admin_required()
def reorder_categories():
    data = request.get_json(silent=True) or {}
    count = svc.reorder_categories(data.get("updates"))
    return ok("Categories reordered", {"updated": count})


@bp.delete("/<int:cid>")
@admin_required()
def delete_category(cid):
    svc.delete_category(cid)
    return ok("Category deleted")
