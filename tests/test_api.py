"""HTTP surface: auth gates, envelopes and the main admin/storefront flows."""

from datetime import timedelta

from shopdesk.extensions import db
from shopdesk.model import CouponType, Customer, Order, OrderStatus, PaymentStatus
from shopdesk.utils.dates import utcnow

ADDRESS = {
    "full_name": "Jane Doe",
    "phone": "+1-555-0100",
    "address_line1": "1 Main St",
    "city": "Springfield",
    "postal_code": "62701",
    "country": "US",
}


class TestAuth:
    def test_missing_token(self, client):
        assert client.get("/account/me").status_code == 401

    def test_customer_cannot_reach_admin(self, client, customer_headers):
        r = client.get("/admin/coupons", headers=customer_headers)
        assert r.status_code == 403
        assert r.get_json()["status"] is False

    def test_me_provisions_customer_from_claims(self, client, customer_headers):
        r = client.get("/account/me", headers=customer_headers)
        assert r.status_code == 200
        body = r.get_json()
        assert body["status"] is True
        assert body["data"]["external_id"] == "cust-ext-1"
        assert body["data"]["first_name"] == "Jane"
        assert Customer.query.filter_by(external_id="cust-ext-1").count() == 1


class TestAdminCoupons:
    def _payload(self, **kw):
        now = utcnow()
        data = {
            "code": "WELCOME10",
            "type": "PERCENTAGE",
            "value": "10",
            "max_discount": "25",
            "starts_at": (now - timedelta(days=1)).isoformat(),
            "ends_at": (now + timedelta(days=10)).isoformat(),
        }
        data.update(kw)
        return data

    def test_create_list_toggle(self, client, admin_headers):
        r = client.post("/admin/coupons", json=self._payload(), headers=admin_headers)
        assert r.status_code == 201
        cid = r.get_json()["data"]["id"]
        assert r.get_json()["data"]["max_discount"] == "25.00"

        r = client.get("/admin/coupons?search=welcome", headers=admin_headers)
        assert r.get_json()["data"]["total"] == 1

        r = client.patch(f"/admin/coupons/{cid}/status", json={"is_active": False}, headers=admin_headers)
        assert r.get_json()["data"]["is_active"] is False

        r = client.get(f"/admin/coupons/{cid}/expired", headers=admin_headers)
        assert r.get_json()["data"]["expired"] is False

    def test_duplicate_code_is_case_insensitive(self, client, admin_headers):
        client.post("/admin/coupons", json=self._payload(), headers=admin_headers)
        r = client.post("/admin/coupons", json=self._payload(code="welcome10"), headers=admin_headers)
        assert r.status_code == 409
        assert r.get_json()["data"]["code"] == "DUPLICATE"

    def test_invalid_payload(self, client, admin_headers):
        r = client.post("/admin/coupons", json=self._payload(value="abc"), headers=admin_headers)
        assert r.status_code == 422
        assert r.get_json()["data"]["fields"] == {"value": "invalid"}

    def test_partial_update_keeps_other_fields(self, client, admin_headers):
        cid = client.post("/admin/coupons", json=self._payload(), headers=admin_headers).get_json()["data"]["id"]
        r = client.patch(
            f"/admin/coupons/{cid}", json={"value": "20", "description": "Spring"}, headers=admin_headers
        )
        assert r.status_code == 200
        data = r.get_json()["data"]
        assert data["value"] == "20.00"
        assert data["type"] == "PERCENTAGE"
        assert data["max_discount"] == "25.00"

    def test_type_switch_rechecks_existing_value(self, client, admin_headers):
        r = client.post(
            "/admin/coupons", json=self._payload(type="FIXED_AMOUNT", value="500"), headers=admin_headers
        )
        cid = r.get_json()["data"]["id"]

        r = client.patch(f"/admin/coupons/{cid}", json={"type": "PERCENTAGE"}, headers=admin_headers)
        assert r.status_code == 422
        assert r.get_json()["data"]["fields"] == {"value": "out_of_range"}

        data = client.get(f"/admin/coupons/{cid}", headers=admin_headers).get_json()["data"]
        assert data["type"] == "FIXED_AMOUNT"
        assert data["value"] == "500.00"

    def test_leaving_free_shipping_needs_a_value(self, client, admin_headers):
        r = client.post(
            "/admin/coupons", json=self._payload(code="SHIPIT", type="FREE_SHIPPING", value="0"), headers=admin_headers
        )
        assert r.status_code == 201
        cid = r.get_json()["data"]["id"]

        r = client.patch(f"/admin/coupons/{cid}", json={"type": "FIXED_AMOUNT"}, headers=admin_headers)
        assert r.status_code == 422

        r = client.patch(f"/admin/coupons/{cid}", json={"type": "FIXED_AMOUNT", "value": "5"}, headers=admin_headers)
        assert r.status_code == 200
        assert r.get_json()["data"]["type"] == "FIXED_AMOUNT"

    def test_delete_blocked_while_used(self, client, admin_headers, make_coupon, make_customer):
        coupon = make_coupon(code="USED")
        customer = make_customer()
        db.session.add(Order(
            order_number="ORD000000010001",
            customer_id=customer.id,
            coupon_id=coupon.id,
            shipping_full_name="Jane", shipping_phone="1", shipping_address_line1="x",
            shipping_city="c", shipping_postal_code="p", shipping_country="US",
        ))
        db.session.commit()

        r = client.delete(f"/admin/coupons/{coupon.id}", headers=admin_headers)
        assert r.status_code == 409
        assert r.get_json()["data"]["code"] == "COUPON_IN_USE"


class TestStorefrontFlow:
    def test_browse_cart_checkout_and_history(self, client, customer_headers, make_product, make_coupon):
        p = make_product(price="40.00", inventory=5)
        make_product(status="DRAFT")
        make_coupon(code="TENOFF", ctype="FIXED_AMOUNT", value="10")

        r = client.get("/products")
        assert r.get_json()["data"]["meta"]["total"] == 1

        r = client.post("/account/addresses", json=ADDRESS, headers=customer_headers)
        assert r.status_code == 201
        address_id = r.get_json()["data"]["id"]
        assert r.get_json()["data"]["is_default"] is True

        r = client.post("/cart/items", json={"variant_id": p.variants[0].id, "quantity": 2}, headers=customer_headers)
        assert r.status_code == 201
        assert r.get_json()["data"]["quote"]["subtotal"] == "80.00"

        r = client.post("/cart/coupon/preview", json={"code": "tenoff"}, headers=customer_headers)
        assert r.get_json()["data"]["quote"]["discount"] == "10.00"

        r = client.post(
            "/cart/checkout",
            json={"address_id": address_id, "coupon_code": "TENOFF"},
            headers=customer_headers,
        )
        assert r.status_code == 201
        order = r.get_json()["data"]
        # 80 + 15 shipping + 6% of 70 - 10
        assert order["money"]["total"] == "89.20"

        r = client.get("/account/orders?page=1&limit=5", headers=customer_headers)
        pagination = r.get_json()["data"]["pagination"]
        assert pagination["totalOrders"] == 1
        assert pagination["hasNextPage"] is False

        r = client.get("/account/orders?page=0", headers=customer_headers)
        assert r.status_code == 409
        assert r.get_json()["data"]["code"] == "ORDER_ERROR"

    def test_coupon_rejection_reason(self, client, customer_headers, make_product, make_coupon):
        make_coupon(code="BIGSPEND", min_purchase="200")
        p = make_product(price="40.00")
        client.post("/cart/items", json={"variant_id": p.variants[0].id}, headers=customer_headers)

        r = client.post("/cart/coupon/preview", json={"code": "BIGSPEND"}, headers=customer_headers)
        assert r.status_code == 409
        assert r.get_json()["data"]["reason"] == "BELOW_MINIMUM_PURCHASE"


class TestAdminOrders:
    def _order(self, make_customer, **kw):
        customer = make_customer()
        fields = dict(
            order_number=f"ORD{customer.id:08d}0001",
            customer_id=customer.id,
            subtotal="100.00", shipping_cost="15.00", tax="6.00", discount="0", total="121.00",
            shipping_full_name="Jane", shipping_phone="1", shipping_address_line1="x",
            shipping_city="c", shipping_postal_code="p", shipping_country="US",
        )
        fields.update(kw)
        o = Order(**fields)
        db.session.add(o)
        db.session.commit()
        return o

    def test_status_flow_and_rejection(self, client, admin_headers, make_customer):
        o = self._order(make_customer)

        r = client.patch(f"/admin/orders/{o.id}", json={"status": "SHIPPED"}, headers=admin_headers)
        assert r.status_code == 409
        assert r.get_json()["data"]["code"] == "INVALID_TRANSITION"

        r = client.patch(f"/admin/orders/{o.id}", json={"status": "PROCESSING"}, headers=admin_headers)
        assert r.get_json()["data"]["status"] == "PROCESSING"

        r = client.patch(
            f"/admin/orders/{o.id}",
            json={"status": "SHIPPED", "tracking_number": "1Z999"},
            headers=admin_headers,
        )
        data = r.get_json()["data"]
        assert data["status"] == "SHIPPED"
        assert data["tracking_number"] == "1Z999"
        assert data["shipped_at"] is not None

    def test_shipping_cost_edit_recomputes_total(self, client, admin_headers, make_customer):
        o = self._order(make_customer)
        r = client.patch(f"/admin/orders/{o.id}", json={"shipping_cost": "5.00"}, headers=admin_headers)
        assert r.get_json()["data"]["money"]["total"] == "111.00"

    def test_shipping_cost_edit_keeps_free_shipping_free(self, client, admin_headers, make_customer, make_coupon):
        coupon = make_coupon(code="SHIPFREE", ctype=CouponType.FREE_SHIPPING, value="0")
        o = self._order(make_customer, coupon_id=coupon.id, discount="15.00", total="106.00")

        r = client.patch(f"/admin/orders/{o.id}", json={"shipping_cost": "0"}, headers=admin_headers)
        money = r.get_json()["data"]["money"]
        assert money["discount"] == "0.00"
        assert money["total"] == "106.00"

        r = client.patch(f"/admin/orders/{o.id}", json={"shipping_cost": "20.00"}, headers=admin_headers)
        money = r.get_json()["data"]["money"]
        assert money["discount"] == "20.00"
        assert money["total"] == "106.00"

    def test_refund_and_cancel(self, client, admin_headers, make_customer):
        paid = self._order(make_customer, payment_status=PaymentStatus.PAID, status=OrderStatus.DELIVERED)
        r = client.post(f"/admin/orders/{paid.id}/refund", json={"amount": "20"}, headers=admin_headers)
        data = r.get_json()["data"]
        assert data["status"] == "REFUNDED"
        assert data["payment_status"] == "REFUNDED"
        assert data["money"]["refund_amount"] == "20.00"

        pending = self._order(make_customer)
        r = client.post(f"/admin/orders/{pending.id}/cancel", json={}, headers=admin_headers)
        assert r.status_code == 422
        r = client.post(f"/admin/orders/{pending.id}/cancel", json={"reason": "duplicate"}, headers=admin_headers)
        assert r.get_json()["data"]["cancel_reason"] == "duplicate"

    def test_export_csv(self, client, admin_headers, make_customer):
        o = self._order(make_customer)
        r = client.get("/admin/orders/export?format=csv", headers=admin_headers)
        assert r.status_code == 200
        assert r.mimetype == "text/csv"
        assert o.order_number in r.get_data(as_text=True)


class TestOverview:
    def test_revenue_counts_paid_orders_only(self, client, admin_headers, make_customer):
        for n, payment in enumerate([PaymentStatus.PAID, PaymentStatus.PAID, PaymentStatus.PENDING]):
            c = make_customer()
            db.session.add(Order(
                order_number=f"ORD{n:08d}9999",
                customer_id=c.id,
                payment_status=payment,
                subtotal="50.00", total="50.00",
                shipping_full_name="Jane", shipping_phone="1", shipping_address_line1="x",
                shipping_city="c", shipping_postal_code="p", shipping_country="US",
            ))
        db.session.commit()

        r = client.get("/admin/overview", headers=admin_headers)
        data = r.get_json()["data"]
        assert data["revenue"]["total_revenue"] == "100.00"
        assert data["revenue"]["growth_rate"] == 100.0
        assert data["daily_revenue"][-1]["revenue"] == 100.0
        assert len(data["monthly_revenue"]) == 6
        assert len(data["recent_sales"]) == 3
        assert data["new_customers"]["growth_rate"] == 100.0
