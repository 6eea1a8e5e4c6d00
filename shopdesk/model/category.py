# --- models/category.py ---
from ..extensions import db
from ..utils.dates import utcnow, iso

# ---------------- CATEGORY ----------------
class Category(db.Model):
    __tablename__ = "category"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    slug = db.Column(db.String(160), nullable=False, unique=True, index=True)
    description = db.Column(db.Text)
    image_url = db.Column(db.String(1024))

    parent_id = db.Column(db.Integer, db.ForeignKey("category.id"), nullable=True, index=True)
    # ancestor slugs joined with ">"
    path = db.Column(db.String(1024), nullable=False, default="")

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_protected = db.Column(db.Boolean, nullable=False, default=False)
    allow_children = db.Column(db.Boolean, nullable=False, default=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    parent = db.relationship("Category", remote_side=[id], backref="children")
    products = db.relationship(
        "Product",
        backref="category",
        lazy=True
        )

    def as_dict(self, product_count=None):
        data = {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "image_url": self.image_url,
            "parent_id": self.parent_id,
            "path": self.path,
            "is_active": self.is_active,
            "is_protected": self.is_protected,
            "allow_children": self.allow_children,
            "sort_order": self.sort_order,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }
        if product_count is not None:
            data["product_count"] = product_count
        return data
