from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from .models import Profile

User = get_user_model()

PASSWORD = "Wax-and-Wick-2024"


class RegistrationTests(TestCase):
    def register(self, **overrides):
        body = {"name": "Meera", "email": "Meera@Example.com", "password": PASSWORD, **overrides}
        return self.client.post(reverse("register"), body, content_type="application/json")

    def test_register_creates_user_profile_and_session(self):
        response = self.register()

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data["email"], "meera@example.com")
        self.assertFalse(data["is_admin"])
        self.assertEqual(data["addresses"], [])

        user = User.objects.get(email="meera@example.com")
        self.assertTrue(Profile.objects.filter(user=user).exists())
        self.assertEqual(self.client.get(reverse("profile")).status_code, 200)

    def test_duplicate_email_is_rejected(self):
        self.register()
        self.client.logout()

        response = self.register(email="meera@example.com")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "User already exists")

    def test_missing_fields_are_rejected(self):
        self.assertEqual(self.register(name="").status_code, 400)
        self.assertEqual(self.register(email="not-an-email").status_code, 400)

    def test_weak_password_is_rejected(self):
        response = self.register(password="123")

        self.assertEqual(response.status_code, 400)
        self.assertFalse(User.objects.exists())


class LoginTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            username="meera@example.com", email="meera@example.com", password=PASSWORD, first_name="Meera"
        )

    def login(self, password=PASSWORD):
        return self.client.post(
            reverse("login"), {"email": "MEERA@example.com", "password": password}, content_type="application/json"
        )

    def test_login_with_email_and_password(self):
        response = self.login()

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["name"], "Meera")

    def test_wrong_password_is_unauthorized(self):
        response = self.login(password="nope")

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"], "Invalid email or password")

    def test_logout_ends_session(self):
        self.login()
        self.client.post(reverse("logout"))

        self.assertEqual(self.client.get(reverse("profile")).status_code, 401)

    def test_csrf_endpoint_sets_cookie(self):
        response = self.client.get(reverse("csrf"))
        self.assertIn("csrftoken", response.cookies)


class ProfileTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            username="meera@example.com", email="meera@example.com", password=PASSWORD, first_name="Meera"
        )
        self.client.force_login(self.user)

    def update(self, **body):
        return self.client.put(reverse("profile"), body, content_type="application/json")

    def test_profile_requires_login(self):
        self.client.logout()
        self.assertEqual(self.client.get(reverse("profile")).status_code, 401)

    def test_update_contact_details_and_addresses(self):
        addresses = [{"address": "12 Wick Lane", "city": "Pune", "postal_code": "411001", "country": "India"}]

        response = self.update(name="Meera K", phone_number="9876543210", addresses=addresses)

        self.assertEqual(response.status_code, 200)
        self.user.refresh_from_db()
        self.assertEqual(self.user.first_name, "Meera K")
        self.assertEqual(self.user.profile.phone_number, "9876543210")
        self.assertEqual(self.user.profile.addresses, addresses)

    def test_addresses_must_be_a_list(self):
        response = self.update(addresses="12 Wick Lane")
        self.assertEqual(response.status_code, 400)

    def test_email_taken_by_someone_else_is_rejected(self):
        User.objects.create_user(username="taken@example.com", email="taken@example.com", password=PASSWORD)

        response = self.update(email="taken@example.com")

        self.assertEqual(response.status_code, 400)
        self.user.refresh_from_db()
        self.assertEqual(self.user.email, "meera@example.com")

    def test_password_change_keeps_session(self):
        response = self.update(password="Beeswax-Glow-2025")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get(reverse("profile")).status_code, 200)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password("Beeswax-Glow-2025"))
