# shopdesk/services/address_service.py
import logging

from ..errors import NotFound, ValidationError, repository_call
from ..extensions import db
from ..model import Address
from ..utils.params import clean_str, parse_bool

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("full_name", "phone", "address_line1", "city", "postal_code", "country")
OPTIONAL_FIELDS = ("address_line2", "state")


def _clean_payload(data, partial=False):
    out = {}
    missing = {}
    for f in REQUIRED_FIELDS:
        if partial and f not in data:
            continue
        v = clean_str(data.get(f))
        if not v:
            missing[f] = "required"
        out[f] = v
    if missing:
        raise ValidationError("Missing required address fields", missing)
    for f in OPTIONAL_FIELDS:
        if not partial or f in data:
            out[f] = clean_str(data.get(f))
    return out


def _unset_defaults(customer_id, keep_id=None):
    q = Address.query.filter(Address.customer_id == customer_id, Address.is_default.is_(True))
    if keep_id is not None:
        q = q.filter(Address.id != keep_id)
    q.update({Address.is_default: False}, synchronize_session="fetch")


@repository_call("Failed to fetch addresses")
def list_addresses(customer_id):
    return (
        Address.query.filter_by(customer_id=customer_id)
        .order_by(Address.is_default.desc(), Address.created_at.desc(), Address.id.desc())
        .all()
    )


def get_address(customer_id, address_id) -> Address:
    a = Address.query.filter_by(id=address_id, customer_id=customer_id).first()
    if not a:
        raise NotFound("Address not found")
    return a


@repository_call("Failed to create address")
def create_address(customer_id, data) -> Address:
    fields = _clean_payload(data)
    make_default = parse_bool(data.get("is_default"), False)
    # first address becomes the default
    if not Address.query.filter_by(customer_id=customer_id).first():
        make_default = True

    if make_default:
        _unset_defaults(customer_id)
    a = Address(customer_id=customer_id, is_default=make_default, **fields)
    db.session.add(a)
    db.session.commit()
    return a


@repository_call("Failed to update address")
def update_address(customer_id, address_id, data) -> Address:
    a = get_address(customer_id, address_id)
    for k, v in _clean_payload(data, partial=True).items():
        setattr(a, k, v)
    if parse_bool(data.get("is_default"), False):
        _unset_defaults(customer_id, keep_id=a.id)
        a.is_default = True
    db.session.commit()
    return a


@repository_call("Failed to delete address")
def delete_address(customer_id, address_id):
    a = get_address(customer_id, address_id)
    db.session.delete(a)
    db.session.commit()


@repository_call("Failed to set default address")
def set_default_address(customer_id, address_id) -> Address:
    """Unset every other default, then flag this one; one transaction."""
    a = get_address(customer_id, address_id)
    _unset_defaults(customer_id, keep_id=a.id)
    a.is_default = True
    db.session.commit()
    logger.info("customer %s default address -> %s", customer_id, a.id)
    return a
