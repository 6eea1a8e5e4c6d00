# shopdesk/services/product_service.py
import logging

from sqlalchemy import or_, update

from ..errors import DuplicateName, NotFound, OutOfStock, ValidationError, repository_call
from ..extensions import db
from ..model import Category, Product, ProductStatus, ProductVariant
from ..model.types import parse_enum
from ..utils.money import parse_money
from ..utils.params import clean_str, paginate, parse_bool, to_int
from .category_service import slugify

logger = logging.getLogger(__name__)


def _sort_products(query, sort):
    sort_map = {
        "newest": Product.created_at.desc(),
        "oldest": Product.created_at.asc(),
        "name": Product.name.asc(),
        "-name": Product.name.desc(),
    }
    return query.order_by(sort_map.get(sort, Product.created_at.desc()), Product.id.desc())


@repository_call("Failed to fetch products")
def list_products(page=1, per_page=10, search=None, status=None, category_id=None, sort=None, storefront=False):
    q = Product.query
    if storefront:
        q = q.filter(Product.status == ProductStatus.ACTIVE, Product.is_active.is_(True))
    elif status:
        q = q.filter(Product.status == parse_enum(ProductStatus, status, "status"))
    if category_id:
        q = q.filter(Product.category_id == to_int(category_id))
    if search:
        like = f"%{search}%"
        q = q.filter(or_(Product.name.ilike(like), Product.slug.ilike(like)))
    return paginate(_sort_products(q, sort), page, per_page)


def get_product(product_id) -> Product:
    p = db.session.get(Product, product_id)
    if not p:
        raise NotFound("Product not found")
    return p


def get_storefront_product(slug) -> Product:
    p = Product.query.filter_by(slug=slug).first()
    if not p or not p.is_purchasable:
        raise NotFound("Product not found")
    return p


def get_variant(variant_id) -> ProductVariant:
    v = db.session.get(ProductVariant, variant_id)
    if not v:
        raise NotFound("Variant not found")
    return v


# ---------- variants ----------
def _variant_fields(data, idx):
    name = clean_str(data.get("name"))
    if not name:
        raise ValidationError("variant name is required", {f"variants[{idx}].name": "required"})
    inventory = to_int(data.get("inventory"), 0)
    if inventory < 0:
        raise ValidationError("inventory must be >= 0", {f"variants[{idx}].inventory": "out_of_range"})
    return {
        "name": name,
        "sku": clean_str(data.get("sku")),
        "price": parse_money(data.get("price"), f"variants[{idx}].price"),
        "inventory": inventory,
        "is_active": parse_bool(data.get("is_active"), True),
    }


def _check_sku(sku, exclude_id=None):
    if not sku:
        return
    q = ProductVariant.query.filter(ProductVariant.sku == sku)
    if exclude_id:
        q = q.filter(ProductVariant.id != exclude_id)
    if q.first():
        raise DuplicateName(f'SKU "{sku}" already exists')


def _sync_variants(p, rows):
    """Upsert by id; rows without id are new; variants not listed are removed."""
    if not isinstance(rows, list):
        raise ValidationError("variants must be a list", {"variants": "invalid"})
    existing = {v.id: v for v in p.variants}
    keep = []
    for idx, row in enumerate(rows):
        fields = _variant_fields(row or {}, idx)
        vid = to_int((row or {}).get("id"))
        if vid and vid in existing:
            v = existing[vid]
            _check_sku(fields["sku"], exclude_id=v.id)
            for k, val in fields.items():
                setattr(v, k, val)
        else:
            _check_sku(fields["sku"])
            v = ProductVariant(**fields)
        keep.append(v)
    p.variants = keep


# ---------- products ----------
def _apply_product_fields(p, data, partial):
    if not partial or "name" in data:
        name = clean_str(data.get("name"))
        if not name:
            raise ValidationError("name is required", {"name": "required"})
        p.name = name
    if not partial or "slug" in data or not p.slug:
        slug = slugify(data.get("slug") or p.name)
        q = Product.query.filter(Product.slug == slug)
        if p.id:
            q = q.filter(Product.id != p.id)
        if q.first():
            raise DuplicateName(f'Slug "{slug}" already exists')
        p.slug = slug
    if not partial or "description" in data:
        p.description = clean_str(data.get("description"))
    if not partial or "thumbnail" in data:
        p.thumbnail = clean_str(data.get("thumbnail"))
    if not partial or "status" in data:
        p.status = parse_enum(ProductStatus, data.get("status") or ProductStatus.DRAFT, "status")
    if not partial or "is_active" in data:
        p.is_active = parse_bool(data.get("is_active"), True)
    if not partial or "category_id" in data:
        cid = to_int(data.get("category_id"))
        if cid is not None and not db.session.get(Category, cid):
            raise ValidationError("category not found", {"category_id": "invalid"})
        p.category_id = cid
    if "variants" in data:
        _sync_variants(p, data.get("variants"))


@repository_call("Failed to create product")
def create_product(data) -> Product:
    p = Product()
    _apply_product_fields(p, data, partial=False)
    db.session.add(p)
    db.session.commit()
    logger.info("product %s created with %d variants", p.slug, len(p.variants))
    return p


@repository_call("Failed to update product")
def update_product(product_id, data) -> Product:
    p = get_product(product_id)
    _apply_product_fields(p, data, partial=True)
    db.session.commit()
    return p


@repository_call("Failed to archive product")
def archive_product(product_id) -> Product:
    p = get_product(product_id)
    p.status = ProductStatus.ARCHIVED
    p.is_active = False
    db.session.commit()
    logger.info("product %s archived", p.slug)
    return p


def reserve_inventory(variant_id, quantity, label=None):
    """Decrement stock only if enough is left; caller commits."""
    stmt = (
        update(ProductVariant)
        .where(ProductVariant.id == variant_id, ProductVariant.inventory >= quantity)
        .values(inventory=ProductVariant.inventory - quantity)
        .execution_options(synchronize_session=False)
    )
    if db.session.execute(stmt).rowcount != 1:
        raise OutOfStock(f"Not enough stock for {label or variant_id}")
