from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import RequestFactory, SimpleTestCase, TestCase, override_settings
from django.urls import reverse

from candleshop.utils import load_json_body, parse_whole_number
from catalog.models import Product
from orders.models import Order

User = get_user_model()


class HealthTests(TestCase):
    def test_health(self):
        response = self.client.get(reverse("health"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"ok": True})

    def test_security_headers_are_set(self):
        response = self.client.get(reverse("health"))

        self.assertEqual(response["X-Content-Type-Options"], "nosniff")
        self.assertEqual(response["X-Frame-Options"], "DENY")
        self.assertEqual(response["Referrer-Policy"], "same-origin")

    def test_public_responses_keep_default_caching(self):
        response = self.client.get(reverse("product_list"))
        self.assertFalse(response.has_header("Cache-Control"))

    def test_account_responses_are_not_cached(self):
        response = self.client.get(reverse("csrf"))

        self.assertIn("no-store", response["Cache-Control"])
        self.assertEqual(response["Pragma"], "no-cache")


class RequestParsingTests(SimpleTestCase):
    def post(self, body):
        return RequestFactory().post("/", body, content_type="application/json")

    def test_non_finite_json_constants_are_rejected(self):
        for body in ('{"quantity": Infinity}', '{"quantity": -Infinity}', '{"price": NaN}'):
            with self.subTest(body=body):
                with self.assertRaises(ValueError):
                    load_json_body(self.post(body))

    def test_body_must_be_an_object(self):
        with self.assertRaises(ValueError):
            load_json_body(self.post("[1, 2]"))

    def test_parse_whole_number(self):
        self.assertEqual(parse_whole_number(3), 3)
        self.assertEqual(parse_whole_number(3.0), 3)
        self.assertEqual(parse_whole_number(" 7 "), 7)
        for value in (2.5, "abc", None, True, float("inf"), float("-inf"), float("nan"), [1]):
            with self.subTest(value=value):
                self.assertIsNone(parse_whole_number(value))


@override_settings(LOW_STOCK_THRESHOLD=5)
class AdminStatsTests(TestCase):
    def setUp(self):
        self.admin = User.objects.create_user(
            username="admin@example.com", email="admin@example.com", password="Wax-and-Wick-2024", is_staff=True
        )
        self.customer = User.objects.create_user(
            username="ana@example.com", email="ana@example.com", password="Wax-and-Wick-2024"
        )
        Product.objects.create(name="Lavender Bliss", price=Decimal("24.99"), category="Aromatherapy", count_in_stock=12)
        Product.objects.create(name="Ocean Breeze", price=Decimal("26.00"), category="Fresh", count_in_stock=2)
        Product.objects.create(
            name="Sandalwood", price=Decimal("28.00"), category="Woody", count_in_stock=0, is_deleted=True
        )

    def make_order(self, total, is_paid):
        return Order.objects.create(
            user=self.customer, address="12 Wick Lane", city="Pune", postal_code="411001", country="India",
            items_price=total, total_price=total, is_paid=is_paid,
        )

    def test_stats_count_paid_revenue_only(self):
        self.make_order(Decimal("74.99"), is_paid=True)
        self.make_order(Decimal("25.01"), is_paid=True)
        self.make_order(Decimal("500.00"), is_paid=False)
        self.client.force_login(self.admin)

        data = self.client.get(reverse("admin_stats")).json()

        self.assertEqual(data["total_orders"], 3)
        self.assertEqual(data["total_users"], 2)
        self.assertEqual(data["total_products"], 2)
        self.assertEqual(data["low_stock_products"], 1)
        self.assertEqual(Decimal(data["total_revenue"]), Decimal("100.00"))

    def test_revenue_is_zero_without_paid_orders(self):
        self.client.force_login(self.admin)

        data = self.client.get(reverse("admin_stats")).json()

        self.assertEqual(data["total_revenue"], "0.00")

    def test_stats_are_admin_only(self):
        self.client.force_login(self.customer)
        self.assertEqual(self.client.get(reverse("admin_stats")).status_code, 403)

    def test_order_api_responses_are_not_cached(self):
        self.client.force_login(self.customer)

        response = self.client.get(reverse("my_orders"))

        self.assertIn("no-store", response["Cache-Control"])
