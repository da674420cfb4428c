import json
from decimal import Decimal
from unittest import mock

import requests
from django.contrib.auth import get_user_model
from django.core import mail
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse

from catalog.models import Product

from .inventory_utils import OrderLine, ProductUnavailableError, StockReservationError, reserve_stock
from .models import Order, OrderItem
from .razorpay_utils import RazorpayAPI, generate_payment_signature, generate_webhook_signature

User = get_user_model()

PASSWORD = "Wax-and-Wick-2024"
SHIPPING = {"address": "12 Wick Lane", "city": "Pune", "postal_code": "411001", "country": "India"}
RAZORPAY_SETTINGS = {
    "RAZORPAY_KEY_ID": "rzp_test_key",
    "RAZORPAY_KEY_SECRET": "test_secret",
    "RAZORPAY_WEBHOOK_SECRET": "hook_secret",
    "RAZORPAY_BASE_URL": "https://api.razorpay.test/v1",
}


def make_user(email="buyer@example.com", is_staff=False):
    return User.objects.create_user(
        username=email, email=email, password=PASSWORD, first_name=email.split("@")[0], is_staff=is_staff
    )


def make_product(name="Lavender Bliss", price="24.99", stock=12, **kwargs):
    return Product.objects.create(
        name=name, price=Decimal(price), category="Aromatherapy", count_in_stock=stock, **kwargs
    )


def make_order(user, product, quantity=1, **kwargs):
    """Unpaid order created straight through the ORM"""
    total = product.price * quantity + Decimal("50.00")
    order = Order.objects.create(
        user=user,
        items_price=product.price * quantity,
        shipping_price=Decimal("50.00"),
        total_price=total,
        **SHIPPING,
        **kwargs,
    )
    OrderItem.objects.create(
        order=order, product=product, name=product.name, image=product.image, price=product.price, quantity=quantity
    )
    return order


def gateway_response(payload, status_code=200):
    response = mock.Mock(status_code=status_code)
    response.json.return_value = payload
    return response


class OrderPlacementTests(TestCase):
    def setUp(self):
        self.user = make_user()
        self.client.force_login(self.user)
        self.lavender = make_product(stock=12)
        self.vanilla = make_product(name="Vanilla Bean", price="22.50", stock=2)

    def place(self, items, **extra):
        body = {"order_items": items, "shipping_address": SHIPPING, "payment_method": "Razorpay", **extra}
        return self.client.post(reverse("order_list"), body, content_type="application/json")

    def test_order_decrements_stock_and_snapshots_items(self):
        response = self.place([{"product": self.lavender.id, "quantity": 3}])

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data["order_items"][0]["name"], "Lavender Bliss")
        self.assertEqual(data["order_items"][0]["price"], "24.99")
        self.assertEqual(data["order_items"][0]["quantity"], 3)
        self.assertFalse(data["is_paid"])
        self.assertEqual(data["status"], "Pending")

        self.lavender.refresh_from_db()
        self.assertEqual(self.lavender.count_in_stock, 9)

    def test_totals_are_computed_from_catalog_prices(self):
        response = self.place(
            [{"product": self.lavender.id, "quantity": 2}],
            items_price=1, tax_price=0, shipping_price=0, total_price=1,
        )

        data = response.json()
        self.assertEqual(data["items_price"], "49.98")
        self.assertEqual(data["shipping_price"], "50.00")
        self.assertEqual(data["total_price"], "99.98")

    @override_settings(ORDER_TAX_RATE=Decimal("0.08"))
    def test_tax_rate_applies_to_items_price(self):
        response = self.place([{"product": self.lavender.id, "quantity": 2}])

        data = response.json()
        self.assertEqual(data["tax_price"], "4.00")
        self.assertEqual(data["total_price"], "103.98")

    def test_snapshot_survives_later_price_change(self):
        response = self.place([{"product": self.lavender.id, "quantity": 1}])
        self.lavender.price = Decimal("30.00")
        self.lavender.save()

        item = OrderItem.objects.get(order_id=response.json()["id"])
        self.assertEqual(item.price, Decimal("24.99"))

    def test_insufficient_stock_is_rejected_without_mutation(self):
        response = self.place([{"product": self.vanilla.id, "quantity": 3}])

        self.assertEqual(response.status_code, 400)
        self.assertIn("Insufficient stock for Vanilla Bean", response.json()["error"])
        self.vanilla.refresh_from_db()
        self.assertEqual(self.vanilla.count_in_stock, 2)
        self.assertFalse(Order.objects.exists())

    def test_failing_line_rolls_back_earlier_decrements(self):
        response = self.place([
            {"product": self.lavender.id, "quantity": 5},
            {"product": self.vanilla.id, "quantity": 3},
        ])

        self.assertEqual(response.status_code, 400)
        self.lavender.refresh_from_db()
        self.vanilla.refresh_from_db()
        self.assertEqual(self.lavender.count_in_stock, 12)
        self.assertEqual(self.vanilla.count_in_stock, 2)
        self.assertFalse(Order.objects.exists())

    def test_only_one_of_two_orders_for_the_last_units_succeeds(self):
        first = self.place([{"product": self.vanilla.id, "quantity": 2}])
        second = self.place([{"product": self.vanilla.id, "quantity": 2}])

        self.assertEqual(first.status_code, 201)
        self.assertEqual(second.status_code, 400)
        self.vanilla.refresh_from_db()
        self.assertEqual(self.vanilla.count_in_stock, 0)
        self.assertEqual(Order.objects.count(), 1)

    def test_repeated_lines_for_one_product_cannot_oversell(self):
        response = self.place([
            {"product": self.vanilla.id, "quantity": 1},
            {"product": self.vanilla.id, "quantity": 2},
        ])

        self.assertEqual(response.status_code, 400)
        self.vanilla.refresh_from_db()
        self.assertEqual(self.vanilla.count_in_stock, 2)

    def test_missing_product_returns_404(self):
        response = self.place([{"product": 9999, "quantity": 1}])
        self.assertEqual(response.status_code, 404)

    def test_soft_deleted_product_cannot_be_ordered(self):
        self.lavender.is_deleted = True
        self.lavender.save()

        response = self.place([{"product": self.lavender.id, "quantity": 1}])

        self.assertEqual(response.status_code, 404)
        self.lavender.refresh_from_db()
        self.assertEqual(self.lavender.count_in_stock, 12)

    def test_empty_order_is_rejected(self):
        response = self.place([])
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "No order items")

    def test_invalid_quantities_are_rejected(self):
        for quantity in (0, -1, 1.5, "abc", None, True):
            with self.subTest(quantity=quantity):
                response = self.place([{"product": self.lavender.id, "quantity": quantity}])
                self.assertEqual(response.status_code, 400)
        self.lavender.refresh_from_db()
        self.assertEqual(self.lavender.count_in_stock, 12)

    def test_shipping_address_is_required(self):
        body = {"order_items": [{"product": self.lavender.id, "quantity": 1}],
                "shipping_address": {**SHIPPING, "city": ""}}
        response = self.client.post(reverse("order_list"), body, content_type="application/json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "city is required")

    def test_malformed_json_is_rejected(self):
        response = self.client.post(reverse("order_list"), "{not json", content_type="application/json")
        self.assertEqual(response.status_code, 400)

    def test_non_finite_quantity_is_rejected(self):
        body = '{"order_items": [{"product": %d, "quantity": Infinity}], "shipping_address": %s}' % (
            self.lavender.id, json.dumps(SHIPPING),
        )

        response = self.client.post(reverse("order_list"), body, content_type="application/json")

        self.assertEqual(response.status_code, 400)
        self.lavender.refresh_from_db()
        self.assertEqual(self.lavender.count_in_stock, 12)

    def test_admin_is_notified_of_new_orders(self):
        self.place([{"product": self.lavender.id, "quantity": 1}])

        self.assertEqual(len(mail.outbox), 1)
        self.assertIn("New Order Received", mail.outbox[0].subject)

    def test_anonymous_user_cannot_order(self):
        self.client.logout()
        response = self.place([{"product": self.lavender.id, "quantity": 1}])
        self.assertEqual(response.status_code, 401)


class ReserveStockTests(TestCase):
    def test_returns_products_after_decrement(self):
        product = make_product(stock=4)

        reserved = reserve_stock([OrderLine(product.id, 3)])

        self.assertEqual(reserved[0].product.count_in_stock, 1)
        self.assertEqual(reserved[0].quantity, 3)

    def test_unknown_product_raises_unavailable(self):
        with self.assertRaises(ProductUnavailableError) as ctx:
            reserve_stock([OrderLine(12345, 1)])
        self.assertEqual(ctx.exception.status, 404)

    def test_stock_never_goes_negative(self):
        product = make_product(stock=1)

        with self.assertRaises(StockReservationError):
            reserve_stock([OrderLine(product.id, 2)])

        product.refresh_from_db()
        self.assertEqual(product.count_in_stock, 1)


class OrderQueryTests(TestCase):
    def setUp(self):
        self.buyer = make_user()
        self.other = make_user("other@example.com")
        self.admin = make_user("admin@example.com", is_staff=True)
        product = make_product()
        self.own_order = make_order(self.buyer, product)
        self.other_order = make_order(self.other, product)

    def test_my_orders_lists_only_own_orders(self):
        self.client.force_login(self.buyer)
        response = self.client.get(reverse("my_orders"))

        self.assertEqual([o["id"] for o in response.json()], [self.own_order.id])

    def test_order_detail_hides_other_users_orders(self):
        self.client.force_login(self.buyer)
        self.assertEqual(self.client.get(reverse("order_detail", args=[self.own_order.id])).status_code, 200)
        self.assertEqual(self.client.get(reverse("order_detail", args=[self.other_order.id])).status_code, 404)

    def test_all_orders_is_admin_only(self):
        self.client.force_login(self.buyer)
        self.assertEqual(self.client.get(reverse("order_list")).status_code, 403)

        self.client.force_login(self.admin)
        response = self.client.get(reverse("order_list"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()), 2)


@override_settings(**RAZORPAY_SETTINGS)
class PaymentInitiationTests(TestCase):
    def setUp(self):
        self.user = make_user()
        self.client.force_login(self.user)
        self.order = make_order(self.user, make_product(), quantity=2)  # 49.98 + 50.00 shipping

    @mock.patch("orders.razorpay_utils.requests.post")
    def test_creates_gateway_order_in_minor_units(self, mock_post):
        mock_post.return_value = gateway_response({"id": "order_RZP1", "amount": 9998, "currency": "INR"})

        response = self.client.post(reverse("create_razorpay_order", args=[self.order.id]))

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["id"], "order_RZP1")
        self.assertEqual(data["key_id"], "rzp_test_key")

        _, kwargs = mock_post.call_args
        self.assertEqual(kwargs["json"]["amount"], 9998)
        self.assertEqual(kwargs["json"]["currency"], "INR")
        self.assertEqual(kwargs["json"]["receipt"], f"order_{self.order.id}")
        self.assertEqual(kwargs["auth"], ("rzp_test_key", "test_secret"))

        self.order.refresh_from_db()
        self.assertEqual(self.order.razorpay_order_id, "order_RZP1")
        self.assertEqual(self.order.payment_status, "CREATED")

    @mock.patch("orders.razorpay_utils.requests.get")
    @mock.patch("orders.razorpay_utils.requests.post")
    def test_second_initiation_reuses_the_bound_gateway_order(self, mock_post, mock_get):
        mock_post.return_value = gateway_response({"id": "order_RZP1", "amount": 9998})
        mock_get.return_value = gateway_response({"id": "order_RZP1", "amount": 9998, "status": "attempted"})

        self.client.post(reverse("create_razorpay_order", args=[self.order.id]))
        response = self.client.post(reverse("create_razorpay_order", args=[self.order.id]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["id"], "order_RZP1")
        self.assertEqual(mock_post.call_count, 1)
        mock_get.assert_called_once()
        self.order.refresh_from_db()
        self.assertEqual(self.order.razorpay_order_id, "order_RZP1")

    @mock.patch("orders.razorpay_utils.requests.get")
    @mock.patch("orders.razorpay_utils.requests.post")
    def test_concurrently_bound_order_keeps_first_gateway_order(self, mock_post, mock_get):
        def bind_elsewhere(*args, **kwargs):
            # another request binds the order while ours talks to the gateway
            Order.objects.filter(pk=self.order.pk).update(razorpay_order_id="order_FIRST")
            return gateway_response({"id": "order_SECOND"})

        mock_post.side_effect = bind_elsewhere
        mock_get.return_value = gateway_response({"id": "order_FIRST"})

        response = self.client.post(reverse("create_razorpay_order", args=[self.order.id]))

        self.assertEqual(response.json()["id"], "order_FIRST")
        self.order.refresh_from_db()
        self.assertEqual(self.order.razorpay_order_id, "order_FIRST")

    @mock.patch("orders.razorpay_utils.requests.post")
    def test_paid_order_cannot_be_paid_again(self, mock_post):
        Order.objects.filter(pk=self.order.pk).update(is_paid=True)

        response = self.client.post(reverse("create_razorpay_order", args=[self.order.id]))

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Order already paid")
        mock_post.assert_not_called()

    @mock.patch("orders.razorpay_utils.requests.post")
    def test_other_users_order_is_not_found(self, mock_post):
        self.client.force_login(make_user("other@example.com"))

        response = self.client.post(reverse("create_razorpay_order", args=[self.order.id]))

        self.assertEqual(response.status_code, 404)
        mock_post.assert_not_called()

    @mock.patch("orders.razorpay_utils.requests.post")
    def test_gateway_failure_leaves_order_unbound(self, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError("gateway down")

        response = self.client.post(reverse("create_razorpay_order", args=[self.order.id]))

        self.assertEqual(response.status_code, 502)
        self.order.refresh_from_db()
        self.assertIsNone(self.order.razorpay_order_id)
        self.assertEqual(self.order.payment_status, "Pending")

    @override_settings(RAZORPAY_KEY_ID="", RAZORPAY_KEY_SECRET="")
    @mock.patch("orders.razorpay_utils.requests.post")
    def test_missing_keys_fail_without_calling_gateway(self, mock_post):
        response = self.client.post(reverse("create_razorpay_order", args=[self.order.id]))

        self.assertEqual(response.status_code, 502)
        mock_post.assert_not_called()


@override_settings(**RAZORPAY_SETTINGS)
class PaymentVerificationTests(TestCase):
    def setUp(self):
        self.user = make_user()
        self.client.force_login(self.user)
        self.product = make_product()
        self.order = make_order(self.user, self.product, razorpay_order_id="order_RZP1", payment_status="CREATED")

    def verify(self, razorpay_order_id="order_RZP1", payment_id="pay_1", signature=None, order_id=None):
        if signature is None:
            signature = generate_payment_signature("test_secret", razorpay_order_id, payment_id)
        body = {
            "razorpay_order_id": razorpay_order_id,
            "razorpay_payment_id": payment_id,
            "razorpay_signature": signature,
            "order_id": order_id or self.order.id,
        }
        return self.client.post(reverse("verify_payment"), body, content_type="application/json")

    def test_valid_payment_marks_order_paid(self):
        response = self.verify()

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "Payment verified successfully")
        self.order.refresh_from_db()
        self.assertTrue(self.order.is_paid)
        self.assertIsNotNone(self.order.paid_at)
        self.assertIsNotNone(self.order.payment_verified_at)
        self.assertEqual(self.order.payment_status, "SUCCESS")
        self.assertEqual(self.order.razorpay_payment_id, "pay_1")
        self.assertEqual(self.order.gateway_response["razorpay_payment_id"], "pay_1")

    def test_customer_confirmation_is_sent_once(self):
        self.verify()
        self.verify()

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["buyer@example.com"])
        self.order.refresh_from_db()
        self.assertTrue(self.order.customer_notified)

    def test_duplicate_verification_is_idempotent(self):
        self.verify()
        self.order.refresh_from_db()
        first_paid_at = self.order.paid_at

        response = self.verify()

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "Order already paid")
        self.order.refresh_from_db()
        self.assertEqual(self.order.paid_at, first_paid_at)

    def test_bad_signature_is_rejected(self):
        response = self.verify(signature="0" * 64)

        self.assertEqual(response.status_code, 400)
        self.order.refresh_from_db()
        self.assertFalse(self.order.is_paid)

    def test_mismatched_gateway_order_is_rejected_despite_valid_signature(self):
        # signature is genuine for order_fake123, just not this order's
        response = self.verify(razorpay_order_id="order_fake123")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Payment does not belong to this order")
        self.order.refresh_from_db()
        self.assertFalse(self.order.is_paid)

    def test_mismatched_gateway_order_is_rejected_for_paid_order(self):
        self.verify()

        response = self.verify(razorpay_order_id="order_fake123", payment_id="pay_2")

        self.assertEqual(response.status_code, 400)
        self.order.refresh_from_db()
        self.assertEqual(self.order.razorpay_payment_id, "pay_1")

    def test_unbound_order_is_rejected(self):
        unbound = make_order(self.user, self.product)

        response = self.verify(order_id=unbound.id)

        self.assertEqual(response.status_code, 400)
        unbound.refresh_from_db()
        self.assertFalse(unbound.is_paid)

    def test_payment_id_cannot_pay_two_orders(self):
        second = make_order(self.user, self.product, razorpay_order_id="order_RZP2")
        self.verify()

        response = self.verify(razorpay_order_id="order_RZP2", order_id=second.id)

        self.assertEqual(response.status_code, 400)
        second.refresh_from_db()
        self.assertFalse(second.is_paid)

    def test_other_users_order_is_not_found(self):
        self.client.force_login(make_user("other@example.com"))

        response = self.verify()

        self.assertEqual(response.status_code, 404)
        self.order.refresh_from_db()
        self.assertFalse(self.order.is_paid)

    def test_missing_fields_are_rejected(self):
        response = self.client.post(
            reverse("verify_payment"), {"razorpay_order_id": "order_RZP1"}, content_type="application/json"
        )
        self.assertEqual(response.status_code, 400)


class OrderStatusTests(TestCase):
    def setUp(self):
        self.admin = make_user("admin@example.com", is_staff=True)
        self.client.force_login(self.admin)
        self.order = make_order(make_user(), make_product())

    def set_status(self, status):
        return self.client.put(
            reverse("update_order_status", args=[self.order.id]), {"status": status}, content_type="application/json"
        )

    def test_out_for_delivery_is_accepted(self):
        response = self.set_status("Out for Delivery")

        self.assertEqual(response.status_code, 200)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "Out for Delivery")
        self.assertFalse(self.order.is_delivered)
        self.assertIsNone(self.order.delivered_at)

    def test_delivered_sets_delivery_flags(self):
        response = self.set_status("Delivered")

        self.assertTrue(response.json()["is_delivered"])
        self.order.refresh_from_db()
        self.assertTrue(self.order.is_delivered)
        self.assertIsNotNone(self.order.delivered_at)

    def test_unknown_status_is_rejected_without_mutation(self):
        for status in ("In Space", "delivered", "", None):
            with self.subTest(status=status):
                response = self.set_status(status)
                self.assertEqual(response.status_code, 400)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "Pending")
        self.assertFalse(self.order.is_delivered)

    def test_customers_cannot_change_status(self):
        self.client.force_login(make_user("other@example.com"))

        response = self.set_status("Delivered")

        self.assertEqual(response.status_code, 403)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "Pending")


class OrderAdminStatusTests(TestCase):
    def setUp(self):
        self.admin = User.objects.create_superuser(
            username="root@example.com", email="root@example.com", password=PASSWORD
        )
        self.client.force_login(self.admin)
        self.customer = make_user()
        self.order = Order.objects.create(
            user=self.customer, items_price=Decimal("24.99"), shipping_price=Decimal("50.00"),
            total_price=Decimal("74.99"), **SHIPPING,
        )

    def change_form(self, **overrides):
        data = {
            "user": self.customer.id,
            **SHIPPING,
            "payment_method": "Razorpay",
            "items_price": "24.99",
            "tax_price": "0.00",
            "shipping_price": "50.00",
            "total_price": "74.99",
            "status": "Pending",
            "items-TOTAL_FORMS": "0",
            "items-INITIAL_FORMS": "0",
            "items-MIN_NUM_FORMS": "0",
            "items-MAX_NUM_FORMS": "1000",
            "_save": "Save",
        }
        data.update(overrides)
        return self.client.post(reverse("admin:orders_order_change", args=[self.order.id]), data)

    def test_delivered_in_admin_sets_delivery_flags(self):
        response = self.change_form(status="Delivered")

        self.assertEqual(response.status_code, 302)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "Delivered")
        self.assertTrue(self.order.is_delivered)
        self.assertIsNotNone(self.order.delivered_at)

    def test_delivery_flags_are_not_editable_in_admin(self):
        response = self.change_form(is_delivered="on", city="Mumbai")

        self.assertEqual(response.status_code, 302)
        self.order.refresh_from_db()
        self.assertEqual(self.order.city, "Mumbai")
        self.assertEqual(self.order.status, "Pending")
        self.assertFalse(self.order.is_delivered)


@override_settings(**RAZORPAY_SETTINGS)
class RazorpayWebhookTests(TestCase):
    def setUp(self):
        self.order = make_order(make_user(), make_product(), razorpay_order_id="order_RZP1")

    def send(self, event, order_id="order_RZP1", payment_id="pay_9", secret="hook_secret"):
        body = json.dumps({
            "event": event,
            "payload": {"payment": {"entity": {"id": payment_id, "order_id": order_id, "status": "captured"}}},
        })
        return self.send_body(body, secret)

    def send_body(self, body, secret="hook_secret"):
        signature = generate_webhook_signature(secret, body.encode("utf-8"))
        return self.client.post(
            reverse("razorpay_webhook"), body, content_type="application/json", HTTP_X_RAZORPAY_SIGNATURE=signature
        )

    def test_captured_event_marks_order_paid_once(self):
        first = self.send("payment.captured")
        second = self.send("payment.captured")

        self.assertEqual(first.json()["status"], "success")
        self.assertEqual(second.json()["status"], "already processed")
        self.order.refresh_from_db()
        self.assertTrue(self.order.is_paid)
        self.assertEqual(self.order.razorpay_payment_id, "pay_9")

    def test_failed_event_records_failure(self):
        response = self.send("payment.failed")

        self.assertEqual(response.status_code, 200)
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, "FAILED")
        self.assertFalse(self.order.is_paid)

    def test_failed_event_does_not_downgrade_paid_order(self):
        self.send("payment.captured")
        self.send("payment.failed", payment_id="pay_10")

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, "SUCCESS")

    def test_bad_signature_is_unauthorized(self):
        response = self.send("payment.captured", secret="wrong")

        self.assertEqual(response.status_code, 401)
        self.order.refresh_from_db()
        self.assertFalse(self.order.is_paid)

    def test_unknown_gateway_order(self):
        response = self.send("payment.captured", order_id="order_missing")
        self.assertEqual(response.status_code, 404)

    def test_other_events_are_ignored(self):
        response = self.send("refund.created")
        self.assertEqual(response.json()["status"], "ignored")

    def test_signed_body_with_wrong_shape_is_rejected(self):
        for body in (
            '{"event": "payment.captured", "payload": null}',
            '{"event": "payment.captured", "payload": {"payment": "pay_9"}}',
            '[{"event": "payment.captured"}]',
        ):
            with self.subTest(body=body):
                response = self.send_body(body)
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json()["status"], "invalid payload")
        self.order.refresh_from_db()
        self.assertFalse(self.order.is_paid)


@override_settings(**RAZORPAY_SETTINGS)
class RazorpayAPITests(SimpleTestCase):
    def setUp(self):
        self.gateway = RazorpayAPI()

    def test_settings_are_read_when_no_keys_are_given(self):
        self.assertEqual(self.gateway.key_id, "rzp_test_key")
        self.assertEqual(self.gateway.base_url, "https://api.razorpay.test/v1")

    def test_explicit_keys_override_settings(self):
        gateway = RazorpayAPI(key_id="rzp_other", key_secret="other_secret")
        self.assertEqual(gateway.auth, ("rzp_other", "other_secret"))

    @mock.patch("orders.razorpay_utils.requests.post")
    def test_create_order_posts_to_orders_endpoint(self, mock_post):
        mock_post.return_value = gateway_response({"id": "order_RZP1"})

        success, data = self.gateway.create_order(amount=2499, receipt="order_1")

        self.assertTrue(success)
        self.assertEqual(data["id"], "order_RZP1")
        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], "https://api.razorpay.test/v1/orders")
        self.assertEqual(kwargs["timeout"], 10)

    @mock.patch("orders.razorpay_utils.requests.post")
    def test_create_order_is_not_retried_on_timeout(self, mock_post):
        mock_post.side_effect = requests.exceptions.Timeout()

        success, message = self.gateway.create_order(amount=2499, receipt="order_1")

        self.assertFalse(success)
        self.assertEqual(mock_post.call_count, 1)

    @mock.patch("orders.razorpay_utils.time.sleep")
    @mock.patch("orders.razorpay_utils.requests.get")
    def test_fetch_order_retries_timeouts(self, mock_get, mock_sleep):
        mock_get.side_effect = [requests.exceptions.Timeout(), gateway_response({"id": "order_RZP1"})]

        success, data = self.gateway.fetch_order("order_RZP1")

        self.assertTrue(success)
        self.assertEqual(mock_get.call_count, 2)
        mock_sleep.assert_called_once_with(1)

    def test_payment_signature_verification(self):
        signature = generate_payment_signature("test_secret", "order_RZP1", "pay_1")

        self.assertTrue(self.gateway.verify_payment_signature("order_RZP1", "pay_1", signature))
        self.assertFalse(self.gateway.verify_payment_signature("order_RZP1", "pay_2", signature))
        self.assertFalse(self.gateway.verify_payment_signature("order_RZP1", "pay_1", "ünïcode"))
        self.assertFalse(self.gateway.verify_payment_signature("order_RZP1", "pay_1", ""))

    @override_settings(RAZORPAY_KEY_SECRET="")
    def test_signature_never_verifies_without_secret(self):
        signature = generate_payment_signature("", "order_RZP1", "pay_1")
        self.assertFalse(RazorpayAPI().verify_payment_signature("order_RZP1", "pay_1", signature))
