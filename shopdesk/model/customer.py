# --- shopdesk/model/customer.py ---

from ..extensions import db
from ..utils.dates import utcnow, iso

class Customer(db.Model):
    """Internal row for an identity-provider user, keyed by the IdP subject."""
    __tablename__ = "customer"

    id = db.Column(db.Integer, primary_key=True)
    external_id = db.Column(db.String(128), unique=True, nullable=False, index=True)
    email = db.Column(db.String(255), index=True)
    first_name = db.Column(db.String(120))
    last_name = db.Column(db.String(120))
    username = db.Column(db.String(120))
    image_url = db.Column(db.String(1024))
    phone = db.Column(db.String(50))
    role = db.Column(db.String(50), nullable=False, default="customer", index=True)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    addresses = db.relationship(
        "Address",
        back_populates="customer",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def name(self):
        full = " ".join(p for p in (self.first_name, self.last_name) if p)
        return full or self.username or self.email

    def as_api(self):
        return {
            "id": self.id,
            "external_id": self.external_id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "username": self.username,
            "image_url": self.image_url,
            "phone": self.phone,
            "role": self.role,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def as_summary(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "image_url": self.image_url,
        }
