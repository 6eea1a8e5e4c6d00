from datetime import datetime

import pytest

from shopdesk.extensions import db
from shopdesk.model import Customer
from shopdesk.services import customer_service
from shopdesk.utils.dates import growth_rate, month_bounds

pytestmark = pytest.mark.usefixtures("app")


def test_sync_creates_once_and_keeps_existing_fields():
    c = customer_service.sync_customer("sub-1", {"email": "a@example.com", "given_name": "Ann"})
    assert c.first_name == "Ann"

    again = customer_service.sync_customer("sub-1", {"email": "b@example.com", "family_name": "Lee"})
    assert again.id == c.id
    assert again.email == "a@example.com"
    assert again.last_name == "Lee"
    assert Customer.query.count() == 1


def test_monthly_new_customers_growth():
    now = datetime(2025, 3, 15)
    for created in [datetime(2025, 2, 3), datetime(2025, 2, 20), datetime(2025, 3, 1), datetime(2025, 3, 2),
                    datetime(2025, 3, 10)]:
        db.session.add(Customer(external_id=f"sub-{created.isoformat()}", created_at=created))
    db.session.commit()

    stats = customer_service.monthly_new_customers(now)
    assert stats["count"] == 3
    assert stats["last_month"] == 2
    assert stats["growth_rate"] == 50.0


def test_growth_rate_rules():
    assert growth_rate(5, 0) == 100.0
    assert growth_rate(1, 3) == -66.7
    assert growth_rate(10, 10) == 0.0


def test_month_bounds_wraps_year():
    current, previous = month_bounds(datetime(2025, 1, 20, 8, 30))
    assert current == datetime(2025, 1, 1)
    assert previous == datetime(2024, 12, 1)
