# shopdesk/model/product.py
from ..extensions import db
from ..utils.dates import utcnow, iso
from ..utils.money import to_string_money
from .types import EnumColumn, Money, ProductStatus

class Product(db.Model):
    __tablename__ = "product"
    id = db.Column(db.Integer, primary_key=True)
    slug = db.Column(db.String(255), unique=True, index=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    description = db.Column(db.Text)
    thumbnail = db.Column(db.String(1024))

    status = EnumColumn(ProductStatus, nullable=False, default=ProductStatus.DRAFT, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    category_id = db.Column(
        db.Integer,
        db.ForeignKey("category.id"),
        nullable=True,
        index=True,
    )

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    variants = db.relationship(
        "ProductVariant",
        backref="product",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ProductVariant.id.asc()",
    )

    @property
    def is_purchasable(self):
        return self.is_active and self.status == ProductStatus.ACTIVE

    def as_api(self):
        return {
            "id": self.id,
            "slug": self.slug,
            "name": self.name,
            "description": self.description,
            "thumbnail": self.thumbnail,
            "status": self.status.value if self.status else None,
            "is_active": self.is_active,
            "category": self.category.as_dict() if self.category else None,
            "variants": [v.as_api() for v in self.variants],
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

class ProductVariant(db.Model):
    __tablename__ = "product_variant"
    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("product.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), unique=True, index=True)
    price = Money(nullable=False, default=0)
    inventory = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def as_api(self):
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "price": to_string_money(self.price),
            "inventory": self.inventory,
            "is_active": self.is_active,
        }
