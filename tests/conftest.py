from datetime import timedelta
from decimal import Decimal

import pytest
from flask_jwt_extended import create_access_token

from shopdesk import create_app
from shopdesk.config import TestConfig
from shopdesk.extensions import db
from shopdesk.model import (
    Address,
    Category,
    Coupon,
    CouponType,
    Customer,
    Product,
    ProductStatus,
    ProductVariant,
)
from shopdesk.utils.dates import utcnow


@pytest.fixture()
def app():
    app = create_app(TestConfig)
    # requests made by the test client reuse this context and its session
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


def _headers(sub, **claims):
    token = create_access_token(identity=sub, additional_claims=claims)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin_headers(app):
    return _headers("admin-ext-1", role="admin", email="admin@shopdesk.test")


@pytest.fixture()
def customer_headers(app):
    return _headers(
        "cust-ext-1",
        email="jane@example.com",
        given_name="Jane",
        family_name="Doe",
    )


@pytest.fixture()
def make_customer(app):
    counter = {"n": 0}

    def factory(**kw):
        counter["n"] += 1
        c = Customer(
            external_id=kw.pop("external_id", f"ext-{counter['n']}"),
            email=kw.pop("email", f"user{counter['n']}@example.com"),
            **kw,
        )
        db.session.add(c)
        db.session.commit()
        return c

    return factory


@pytest.fixture()
def make_address(app):
    def factory(customer, **kw):
        fields = dict(
            full_name="Jane Doe",
            phone="+1-555-0100",
            address_line1="1 Main St",
            city="Springfield",
            postal_code="62701",
            country="US",
            is_default=False,
        )
        fields.update(kw)
        a = Address(customer_id=customer.id, **fields)
        db.session.add(a)
        db.session.commit()
        return a

    return factory


@pytest.fixture()
def make_product(app):
    counter = {"n": 0}

    def factory(price="50.00", inventory=10, status=ProductStatus.ACTIVE, category=None, **kw):
        counter["n"] += 1
        n = counter["n"]
        p = Product(
            name=kw.pop("name", f"Product {n}"),
            slug=kw.pop("slug", f"product-{n}"),
            status=status,
            is_active=kw.pop("is_active", True),
            category_id=category.id if category else None,
        )
        p.variants = [ProductVariant(
            name=kw.pop("variant_name", "Default"),
            sku=f"SKU-{n}",
            price=Decimal(price),
            inventory=inventory,
        )]
        db.session.add(p)
        db.session.commit()
        return p

    return factory


@pytest.fixture()
def make_category(app):
    def factory(name, slug=None, parent=None, **kw):
        slug = slug or name.lower().replace(" ", "-")
        c = Category(
            name=name,
            slug=slug,
            parent_id=parent.id if parent else None,
            path=f"{parent.path}>{slug}" if parent else slug,
            **kw,
        )
        db.session.add(c)
        db.session.commit()
        return c

    return factory


@pytest.fixture()
def make_coupon(app):
    def factory(code="SAVE15", ctype=CouponType.PERCENTAGE, value="15", **kw):
        now = utcnow()
        c = Coupon(
            code=code,
            ctype=ctype,
            value=Decimal(value),
            starts_at=kw.pop("starts_at", now - timedelta(days=1)),
            ends_at=kw.pop("ends_at", now + timedelta(days=30)),
            usage_count=kw.pop("usage_count", 0),
            is_active=kw.pop("is_active", True),
            **kw,
        )
        db.session.add(c)
        db.session.commit()
        return c

    return factory
