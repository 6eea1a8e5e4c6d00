# shopdesk/services/category_service.py
import logging
import re

from sqlalchemy import func

from ..errors import (
    CategoryHasChildren,
    CategoryHasProducts,
    CategoryProtected,
    CategoryRootDeletion,
    DuplicateName,
    NotFound,
    ParentDisallowsChildren,
    ValidationError,
    repository_call,
)
from ..extensions import db
from ..model import Category, Product, ProductStatus
from ..utils.params import clean_str, parse_bool, to_int

logger = logging.getLogger(__name__)

PATH_SEP = ">"


def slugify(text):
    text = (text or "").strip().lower()
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[\s_-]+", "-", text)
    return text.strip("-")


def build_path(parent, slug):
    if parent is None:
        return slug
    return f"{parent.path}{PATH_SEP}{slug}" if parent.path else slug


# ------------------------ guards ------------------------
def _ensure_unique(name=None, slug=None, exclude_id=None):
    if name:
        q = Category.query.filter(Category.name == name)
        if exclude_id:
            q = q.filter(Category.id != exclude_id)
        if q.first():
            raise DuplicateName(f'Category name "{name}" already exists')
    if slug:
        q = Category.query.filter(Category.slug == slug)
        if exclude_id:
            q = q.filter(Category.id != exclude_id)
        if q.first():
            raise DuplicateName(f'Slug "{slug}" already exists')


def _resolve_parent(parent_id):
    if parent_id in (None, ""):
        return None
    parent = db.session.get(Category, to_int(parent_id))
    if not parent:
        raise NotFound("Parent category not found")
    if not parent.allow_children:
        raise ParentDisallowsChildren()
    return parent


def _not_protected(c, operation):
    if c.is_protected:
        raise CategoryProtected(f"Cannot {operation} a protected category")


# ------------------------ reads ------------------------
def get_category(category_id) -> Category:
    c = db.session.get(Category, category_id)
    if not c:
        raise NotFound("Category not found")
    return c


def get_category_by_slug(slug) -> Category:
    c = Category.query.filter_by(slug=slug).first()
    if not c:
        raise NotFound("Category not found")
    return c


@repository_call("Failed to fetch categories")
def list_categories_with_counts():
    """[(category, product_count)] ordered by sort_order then name."""
    counts = (
        db.session.query(Product.category_id, func.count(Product.id))
        .group_by(Product.category_id)
        .all()
    )
    by_id = {cid: n for cid, n in counts}
    cats = Category.query.order_by(Category.sort_order.asc(), Category.name.asc()).all()
    return [(c, by_id.get(c.id, 0)) for c in cats]


@repository_call("Failed to build category tree")
def category_tree():
    rows = list_categories_with_counts()
    active = [(c, n) for c, n in rows if c.is_active]

    def build(parent_id):
        out = []
        for c, n in active:
            if c.parent_id != parent_id:
                continue
            node = c.as_dict(product_count=n)
            node["children"] = build(c.id)
            node["children_count"] = len(node["children"])
            out.append(node)
        return out

    return build(None)


def _descendant_ids(c):
    prefix = f"{c.path}{PATH_SEP}"
    rows = db.session.query(Category.id).filter(
        (Category.parent_id == c.id) | Category.path.startswith(prefix)
    ).all()
    return {r[0] for r in rows}


@repository_call("Failed to fetch category products")
def category_products(category_id, include_subcategories=False, limit=50, offset=0):
    c = get_category(category_id)
    ids = {c.id}
    if include_subcategories:
        ids |= _descendant_ids(c)

    limit = min(max(to_int(limit, 50), 1), 100)
    offset = max(to_int(offset, 0), 0)
    return (
        Product.query.filter(
            Product.category_id.in_(ids),
            Product.status == ProductStatus.ACTIVE,
            Product.is_active.is_(True),
        )
        .order_by(Product.created_at.desc(), Product.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


# ------------------------ writes ------------------------
@repository_call("Failed to create category")
def create_category(data) -> Category:
    name = clean_str(data.get("name"))
    if not name:
        raise ValidationError("name is required", {"name": "required"})
    slug = slugify(data.get("slug") or name)
    if not slug:
        raise ValidationError("slug could not be derived from name", {"slug": "invalid"})

    parent = _resolve_parent(data.get("parent_id"))
    _ensure_unique(name=name, slug=slug)

    c = Category(
        name=name,
        slug=slug,
        description=clean_str(data.get("description")),
        image_url=clean_str(data.get("image_url")),
        parent_id=parent.id if parent else None,
        path=build_path(parent, slug),
        is_active=parse_bool(data.get("is_active"), True),
        allow_children=parse_bool(data.get("allow_children"), True),
        sort_order=to_int(data.get("sort_order"), 0),
    )
    db.session.add(c)
    db.session.commit()
    logger.info("category %s created (path=%s)", c.slug, c.path)
    return c


@repository_call("Failed to update category")
def update_category(category_id, data) -> Category:
    c = get_category(category_id)
    _not_protected(c, "update")

    if "name" in data:
        name = clean_str(data.get("name"))
        if not name:
            raise ValidationError("name cannot be empty", {"name": "required"})
        _ensure_unique(name=name, exclude_id=c.id)
        c.name = name
    if data.get("slug"):
        slug = slugify(data["slug"])
        _ensure_unique(slug=slug, exclude_id=c.id)
        c.slug = slug
        c.path = build_path(c.parent, slug)

    for field in ("description", "image_url"):
        if field in data:
            setattr(c, field, clean_str(data.get(field)))
    for field in ("is_active", "allow_children"):
        if field in data:
            setattr(c, field, parse_bool(data.get(field), getattr(c, field)))
    if "sort_order" in data:
        c.sort_order = to_int(data.get("sort_order"), c.sort_order)

    db.session.commit()
    return c


@repository_call("Failed to delete category")
def delete_category(category_id):
    c = get_category(category_id)
    _not_protected(c, "delete")
    if c.parent_id is None:
        raise CategoryRootDeletion()
    if db.session.query(Product.id).filter(Product.category_id == c.id).first():
        raise CategoryHasProducts()
    if db.session.query(Category.id).filter(Category.parent_id == c.id).first():
        raise CategoryHasChildren()

    slug = c.slug
    db.session.delete(c)
    db.session.commit()
    logger.info("category %s deleted", slug)


@repository_call("Failed to reorder categories")
def reorder_categories(updates):
    """Apply [{"id", "sort_order"}] in one transaction; all or nothing."""
    if not isinstance(updates, list) or not updates:
        raise ValidationError("updates must be a non-empty list", {"updates": "invalid"})

    cats = []
    for u in updates:
        cid = to_int((u or {}).get("id"))
        order = to_int((u or {}).get("sort_order"))
        if cid is None or order is None:
            raise ValidationError("each update needs id and sort_order", {"updates": "invalid"})
        cats.append((get_category(cid), order))

    for c, order in cats:
        c.sort_order = order
    db.session.commit()
    return len(cats)
