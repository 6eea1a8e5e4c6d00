"""Address book: ownership, ordering and the single-default rule."""

import pytest

from shopdesk.errors import NotFound, ValidationError
from shopdesk.extensions import db
from shopdesk.model import Address
from shopdesk.services import address_service

PAYLOAD = {
    "full_name": "Jane Doe",
    "phone": "+1-555-0100",
    "address_line1": "1 Main St",
    "city": "Springfield",
    "postal_code": "62701",
    "country": "US",
}


def defaults_for(customer_id):
    return Address.query.filter_by(customer_id=customer_id, is_default=True).count()


class TestAddressBook:
    def test_first_address_becomes_default(self, make_customer):
        c = make_customer()
        a = address_service.create_address(c.id, PAYLOAD)
        assert a.is_default

    def test_missing_required_fields(self, make_customer):
        c = make_customer()
        with pytest.raises(ValidationError) as exc:
            address_service.create_address(c.id, {"full_name": "Jane"})
        assert "city" in exc.value.fields
        assert "country" in exc.value.fields

    def test_set_default_keeps_single_default(self, make_customer):
        c = make_customer()
        a1 = address_service.create_address(c.id, PAYLOAD)
        a2 = address_service.create_address(c.id, {**PAYLOAD, "address_line1": "2 Oak Ave"})
        a3 = address_service.create_address(c.id, {**PAYLOAD, "address_line1": "3 Elm Rd"})

        for target in (a2, a3, a1, a3):
            address_service.set_default_address(c.id, target.id)
            assert defaults_for(c.id) == 1

        assert address_service.list_addresses(c.id)[0].id == a3.id

    def test_create_with_default_flag_moves_default(self, make_customer):
        c = make_customer()
        a1 = address_service.create_address(c.id, PAYLOAD)
        a2 = address_service.create_address(c.id, {**PAYLOAD, "is_default": True})
        assert defaults_for(c.id) == 1
        assert db.session.get(Address, a2.id).is_default
        assert not db.session.get(Address, a1.id).is_default

    def test_other_customers_address_is_not_found(self, make_customer):
        owner = make_customer()
        other = make_customer()
        a = address_service.create_address(owner.id, PAYLOAD)
        with pytest.raises(NotFound):
            address_service.set_default_address(other.id, a.id)
        with pytest.raises(NotFound):
            address_service.delete_address(other.id, a.id)

    def test_defaults_are_per_customer(self, make_customer):
        c1 = make_customer()
        c2 = make_customer()
        address_service.create_address(c1.id, PAYLOAD)
        address_service.create_address(c2.id, PAYLOAD)
        assert defaults_for(c1.id) == 1
        assert defaults_for(c2.id) == 1
