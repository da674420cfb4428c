from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase
from django.urls import reverse

from .models import Product, Review

User = get_user_model()


class CatalogTestCase(TestCase):
    def setUp(self):
        self.customer = User.objects.create_user(
            username="ana@example.com", email="ana@example.com", password="Wax-and-Wick-2024", first_name="Ana"
        )
        self.admin = User.objects.create_user(
            username="admin@example.com", email="admin@example.com", password="Wax-and-Wick-2024", is_staff=True
        )
        self.lavender = Product.objects.create(
            name="Lavender Bliss", price=Decimal("24.99"), category="Aromatherapy", count_in_stock=12
        )
        self.vanilla = Product.objects.create(
            name="Vanilla Bean", price=Decimal("22.50"), category="Classic", count_in_stock=0
        )
        self.sandalwood = Product.objects.create(
            name="Sandalwood", price=Decimal("28.00"), category="Woody", count_in_stock=8, is_deleted=True
        )


class ProductListTests(CatalogTestCase):
    def names(self, response):
        return sorted(p["name"] for p in response.json())

    def test_storefront_hides_sold_out_and_deleted_products(self):
        response = self.client.get(reverse("product_list"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.names(response), ["Lavender Bliss"])
        self.assertEqual(response.json()[0]["price"], "24.99")

    def test_show_all_includes_sold_out_products(self):
        response = self.client.get(reverse("product_list"), {"show_all": "true"})

        self.assertEqual(self.names(response), ["Lavender Bliss", "Vanilla Bean"])
        sold_out = next(p for p in response.json() if p["name"] == "Vanilla Bean")
        self.assertTrue(sold_out["is_out_of_stock"])

    def test_keyword_matches_name_case_insensitively(self):
        response = self.client.get(reverse("product_list"), {"keyword": "LAVENDER"})
        self.assertEqual(self.names(response), ["Lavender Bliss"])

    def test_category_filter(self):
        response = self.client.get(reverse("product_list"), {"category": "Classic", "show_all": "true"})
        self.assertEqual(self.names(response), ["Vanilla Bean"])

    def test_categories_are_distinct_and_exclude_deleted(self):
        Product.objects.create(name="Rose Garden", price=Decimal("19.00"), category="Aromatherapy", count_in_stock=3)

        response = self.client.get(reverse("product_categories"))

        self.assertEqual(response.json(), ["Aromatherapy", "Classic"])

    def test_history_is_admin_only_and_includes_deleted(self):
        self.client.force_login(self.customer)
        self.assertEqual(self.client.get(reverse("product_history")).status_code, 403)

        self.client.force_login(self.admin)
        response = self.client.get(reverse("product_history"))
        self.assertEqual(len(response.json()), 3)


class ProductAdminTests(CatalogTestCase):
    def test_admin_creates_product(self):
        self.client.force_login(self.admin)

        response = self.client.post(
            reverse("product_list"),
            {"name": "Ocean Breeze", "price": "26.00", "category": "Fresh", "count_in_stock": 2},
            content_type="application/json",
        )

        self.assertEqual(response.status_code, 201)
        product = Product.objects.get(name="Ocean Breeze")
        self.assertEqual(product.price, Decimal("26.00"))
        self.assertEqual(product.description, "No description")

    def test_create_requires_fields(self):
        self.client.force_login(self.admin)

        response = self.client.post(reverse("product_list"), {"name": "Nameless"}, content_type="application/json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Please fill in all required fields")

    def test_create_rejects_invalid_values(self):
        self.client.force_login(self.admin)
        for body in (
            {"name": "Bad", "price": "-1", "category": "X"},
            {"name": "Bad", "price": "5", "category": "X", "count_in_stock": -3},
            {"name": "Bad", "price": "NaN", "category": "X"},
            {"name": "Bad", "price": "1e30", "category": "X"},
            {"name": "Bad", "price": "123456789.00", "category": "X"},
            {"name": "Bad", "price": "Infinity", "category": "X"},
        ):
            with self.subTest(body=body):
                response = self.client.post(reverse("product_list"), body, content_type="application/json")
                self.assertEqual(response.status_code, 400)
        self.assertFalse(Product.objects.filter(name="Bad").exists())

    def test_customers_cannot_manage_products(self):
        self.client.force_login(self.customer)
        url = reverse("product_detail", args=[self.lavender.id])

        self.assertEqual(
            self.client.post(reverse("product_list"), {"name": "X"}, content_type="application/json").status_code, 403
        )
        self.assertEqual(self.client.put(url, {"price": "1.00"}, content_type="application/json").status_code, 403)
        self.assertEqual(self.client.delete(url).status_code, 403)

    def test_anonymous_cannot_manage_products(self):
        url = reverse("product_detail", args=[self.lavender.id])
        self.assertEqual(self.client.delete(url).status_code, 401)

    def test_admin_updates_product(self):
        self.client.force_login(self.admin)

        response = self.client.put(
            reverse("product_detail", args=[self.lavender.id]),
            {"price": "21.50", "count_in_stock": 30},
            content_type="application/json",
        )

        self.assertEqual(response.status_code, 200)
        self.lavender.refresh_from_db()
        self.assertEqual(self.lavender.price, Decimal("21.50"))
        self.assertEqual(self.lavender.count_in_stock, 30)
        self.assertEqual(self.lavender.name, "Lavender Bliss")

    def test_delete_is_a_soft_delete(self):
        self.client.force_login(self.admin)

        response = self.client.delete(reverse("product_detail", args=[self.lavender.id]))

        self.assertEqual(response.json()["message"], "Product removed")
        self.lavender.refresh_from_db()
        self.assertTrue(self.lavender.is_deleted)
        self.assertNotIn("Lavender Bliss", [p["name"] for p in self.client.get(reverse("product_list")).json()])

    def test_unknown_product_is_404(self):
        self.assertEqual(self.client.get(reverse("product_detail", args=[9999])).status_code, 404)


class ReviewTests(CatalogTestCase):
    def setUp(self):
        super().setUp()
        self.url = reverse("product_reviews", args=[self.lavender.id])
        self.client.force_login(self.customer)

    def review(self, rating=5, comment="Smells like a summer field", method="post"):
        return getattr(self.client, method)(
            self.url, {"rating": rating, "comment": comment}, content_type="application/json"
        )

    def test_review_updates_product_rating(self):
        response = self.review(rating=4)

        self.assertEqual(response.status_code, 201)
        self.lavender.refresh_from_db()
        self.assertEqual(self.lavender.num_reviews, 1)
        self.assertEqual(self.lavender.rating, 4.0)

        detail = self.client.get(reverse("product_detail", args=[self.lavender.id])).json()
        self.assertEqual(detail["reviews"][0]["name"], "Ana")

    def test_rating_is_the_average_of_reviews(self):
        self.review(rating=4)
        self.client.force_login(self.admin)
        self.review(rating=1)

        self.lavender.refresh_from_db()
        self.assertEqual(self.lavender.num_reviews, 2)
        self.assertEqual(self.lavender.rating, 2.5)

    def test_one_review_per_user(self):
        self.review()
        response = self.review()

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Product already reviewed")
        self.assertEqual(Review.objects.count(), 1)

    def test_invalid_ratings_are_rejected(self):
        for rating in (0, 6, 3.5, "great", None):
            with self.subTest(rating=rating):
                self.assertEqual(self.review(rating=rating).status_code, 400)
        self.assertFalse(Review.objects.exists())

    def test_comment_is_required(self):
        self.assertEqual(self.review(comment="  ").status_code, 400)

    def test_edit_review_recomputes_rating(self):
        self.review(rating=2)

        response = self.review(rating=5, comment="Grew on me", method="put")

        self.assertEqual(response.json()["message"], "Review updated")
        self.lavender.refresh_from_db()
        self.assertEqual(self.lavender.rating, 5.0)

    def test_delete_review_resets_rating(self):
        self.review(rating=3)

        response = self.client.delete(self.url)

        self.assertEqual(response.json()["message"], "Review removed")
        self.lavender.refresh_from_db()
        self.assertEqual(self.lavender.num_reviews, 0)
        self.assertEqual(self.lavender.rating, 0)

    def test_editing_a_missing_review_is_404(self):
        self.assertEqual(self.review(method="put").status_code, 404)
        self.assertEqual(self.client.delete(self.url).status_code, 404)

    def test_reviews_require_login(self):
        self.client.logout()
        self.assertEqual(self.review().status_code, 401)


class SeedProductsCommandTests(TestCase):
    def test_seeding_is_idempotent(self):
        call_command("seed_products", verbosity=0)
        call_command("seed_products", verbosity=0)

        self.assertEqual(Product.objects.count(), 4)
        self.assertEqual(Product.objects.get(name="Ocean Breeze").count_in_stock, 2)
