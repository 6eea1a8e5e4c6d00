# shopdesk/services/customer_service.py
import logging

from sqlalchemy import func, or_

from ..errors import NotFound, repository_call
from ..extensions import db
from ..model import Customer
from ..utils.dates import growth_rate, month_bounds, utcnow
from ..utils.params import clean_str, paginate

logger = logging.getLogger(__name__)

# claim name -> column
_CLAIM_FIELDS = {
    "email": "email",
    "given_name": "first_name",
    "family_name": "last_name",
    "username": "username",
    "picture": "image_url",
}


@repository_call("Failed to sync customer")
def sync_customer(external_id, claims=None) -> Customer:
    """Return the Customer mapped to an IdP subject, creating it on first sight.

    Missing profile columns are filled from the token claims; values already
    stored are left alone.
    """
    claims = claims or {}
    c = Customer.query.filter_by(external_id=str(external_id)).first()
    created = c is None
    if created:
        c = Customer(external_id=str(external_id))
        db.session.add(c)

    changed = created
    for claim, col in _CLAIM_FIELDS.items():
        value = clean_str(claims.get(claim))
        if value and not getattr(c, col):
            setattr(c, col, value)
            changed = True
    role = clean_str(claims.get("role"))
    if role and role != c.role:
        c.role = role
        changed = True

    if changed:
        db.session.commit()
    if created:
        logger.info("customer created for subject %s", external_id)
    return c


@repository_call("Failed to fetch customers")
def list_customers(page=1, per_page=10, search=None):
    q = Customer.query
    if search:
        like = f"%{search}%"
        q = q.filter(or_(
            Customer.email.ilike(like),
            Customer.first_name.ilike(like),
            Customer.last_name.ilike(like),
            Customer.username.ilike(like),
        ))
    q = q.order_by(Customer.created_at.desc(), Customer.id.desc())
    return paginate(q, page, per_page)


def get_customer(customer_id) -> Customer:
    c = db.session.get(Customer, customer_id)
    if not c:
        raise NotFound("Customer not found")
    return c


@repository_call("Failed to fetch customer stats")
def monthly_new_customers(now=None):
    now = now or utcnow()
    current_start, previous_start = month_bounds(now)

    current = db.session.query(func.count(Customer.id)).filter(
        Customer.created_at >= current_start
    ).scalar() or 0
    previous = db.session.query(func.count(Customer.id)).filter(
        Customer.created_at >= previous_start,
        Customer.created_at < current_start,
    ).scalar() or 0

    return {
        "count": current,
        "last_month": previous,
        "growth_rate": growth_rate(current, previous),
    }
