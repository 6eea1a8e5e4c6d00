"""Cart pricing and checkout through the service layer."""

from decimal import Decimal

import pytest

from shopdesk.errors import (
    BelowMinimumPurchase,
    CartError,
    CustomerUsageLimitExceeded,
    OutOfStock,
    UsageLimitExceeded,
)
from shopdesk.extensions import db
from shopdesk.model import Cart, Coupon, CouponType, Order, OrderStatus, ProductVariant
from shopdesk.services import cart_service, coupon_service, order_service


@pytest.fixture()
def shopper(make_customer, make_address):
    c = make_customer()
    address = make_address(c, is_default=True)
    return c, address


class TestCartQuote:
    def test_quote_below_free_shipping(self, shopper, make_product):
        customer, _ = shopper
        p = make_product(price="40.00")
        cart_service.add_item(customer.id, p.variants[0].id, 2)

        _, quote = cart_service.quote_cart(customer.id)
        assert quote.subtotal == Decimal("80.00")
        assert quote.shipping_cost == Decimal("15.00")
        assert quote.tax == Decimal("4.80")
        assert quote.total == Decimal("99.80")

    def test_adding_same_variant_merges_lines(self, shopper, make_product):
        customer, _ = shopper
        v = make_product(inventory=5).variants[0]
        cart_service.add_item(customer.id, v.id, 2)
        cart = cart_service.add_item(customer.id, v.id, 1)
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 3

    def test_cannot_add_more_than_stock(self, shopper, make_product):
        customer, _ = shopper
        v = make_product(inventory=2).variants[0]
        with pytest.raises(OutOfStock):
            cart_service.add_item(customer.id, v.id, 3)

    def test_coupon_below_minimum(self, shopper, make_product, make_coupon):
        customer, _ = shopper
        make_coupon(code="BIG", min_purchase=Decimal("200"))
        cart_service.add_item(customer.id, make_product(price="40.00").variants[0].id, 1)
        with pytest.raises(BelowMinimumPurchase):
            cart_service.quote_cart(customer.id, coupon_code="big")


class TestPlaceOrder:
    def test_order_snapshots_and_consumes(self, shopper, make_product, make_coupon):
        customer, address = shopper
        p = make_product(price="125.00", inventory=5)
        coupon = make_coupon(code="SAVE15", max_discount=Decimal("30"), usage_limit=10)
        cart_service.add_item(customer.id, p.variants[0].id, 2)

        order = order_service.place_order(customer.id, address.id, coupon_code="save15")

        assert order.order_number.startswith("ORD")
        assert len(order.order_number) == 15
        assert order.status == OrderStatus.PENDING
        assert order.subtotal == Decimal("250.00")
        assert order.discount == Decimal("30.00")
        assert order.shipping_cost == Decimal("0.00")
        assert order.total == Decimal("233.20")
        assert order.shipping_city == address.city
        assert order.items[0].product_name == p.name
        assert order.items[0].line_total == Decimal("250.00")

        assert db.session.get(Coupon, coupon.id).usage_count == 1
        assert db.session.get(ProductVariant, p.variants[0].id).inventory == 3
        assert Cart.query.filter_by(customer_id=customer.id).one().items == []

    def test_empty_cart(self, shopper):
        customer, address = shopper
        with pytest.raises(CartError):
            order_service.place_order(customer.id, address.id)

    def test_second_checkout_with_single_use_coupon_fails(self, make_customer, make_address, make_product, make_coupon):
        make_coupon(code="ONCE", ctype=CouponType.FIXED_AMOUNT, value="10", usage_limit=1)
        v = make_product(price="50.00", inventory=10).variants[0]

        results = []
        for _ in range(2):
            c = make_customer()
            a = make_address(c)
            cart_service.add_item(c.id, v.id, 1)
            try:
                results.append(order_service.place_order(c.id, a.id, coupon_code="ONCE"))
            except UsageLimitExceeded:
                results.append(None)

        assert len([r for r in results if r is not None]) == 1
        assert Order.query.count() == 1
        assert Coupon.query.filter_by(code="ONCE").one().usage_count == 1

    def test_last_use_taken_after_validation_is_refused(self, shopper, make_product, make_coupon, monkeypatch):
        customer, address = shopper
        coupon = make_coupon(code="LAST", ctype=CouponType.FIXED_AMOUNT, value="10", usage_limit=1)
        v = make_product(price="50.00", inventory=10).variants[0]
        cart_service.add_item(customer.id, v.id, 1)

        validate = coupon_service.validate_for_customer

        def validate_then_lose_race(*args, **kwargs):
            verdict = validate(*args, **kwargs)
            assert verdict.applicable
            # another checkout consumes the last use before this one does
            coupon_service.consume_coupon(coupon.id, "LAST")
            db.session.commit()
            return verdict

        monkeypatch.setattr(coupon_service, "validate_for_customer", validate_then_lose_race)

        with pytest.raises(UsageLimitExceeded):
            order_service.place_order(customer.id, address.id, coupon_code="LAST")

        assert db.session.get(Coupon, coupon.id).usage_count == 1
        assert db.session.get(ProductVariant, v.id).inventory == 10
        assert Order.query.count() == 0
        assert len(Cart.query.filter_by(customer_id=customer.id).one().items) == 1

    def test_per_customer_limit(self, shopper, make_product, make_coupon):
        customer, address = shopper
        make_coupon(code="ONEEACH", usage_limit_per_customer=1)
        v = make_product(price="20.00").variants[0]

        cart_service.add_item(customer.id, v.id, 1)
        order_service.place_order(customer.id, address.id, coupon_code="ONEEACH")

        cart_service.add_item(customer.id, v.id, 1)
        with pytest.raises(CustomerUsageLimitExceeded):
            order_service.place_order(customer.id, address.id, coupon_code="ONEEACH")

    def test_stock_failure_rolls_back_coupon(self, shopper, make_product, make_coupon):
        customer, address = shopper
        coupon = make_coupon(code="ROLL", usage_limit=5)
        v = make_product(price="20.00", inventory=3).variants[0]
        cart_service.add_item(customer.id, v.id, 3)

        # stock sold elsewhere after the item was carted
        db.session.get(ProductVariant, v.id).inventory = 1
        db.session.commit()

        with pytest.raises(OutOfStock):
            order_service.place_order(customer.id, address.id, coupon_code="ROLL")
        assert db.session.get(Coupon, coupon.id).usage_count == 0
        assert Order.query.count() == 0
