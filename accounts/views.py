import logging

from django.contrib.auth import authenticate, get_user_model, login, logout, update_session_auth_hash
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.db import transaction
from django.http import JsonResponse
from django.views.decorators.csrf import ensure_csrf_cookie
from django.views.decorators.http import require_GET, require_POST, require_http_methods

from candleshop.utils import json_error, load_json_body

from .decorators import api_login_required
from .models import Profile

logger = logging.getLogger(__name__)

User = get_user_model()


def serialize_user(user):
    profile, _ = Profile.objects.get_or_create(user=user)
    return {
        "id": user.id,
        "name": user.first_name,
        "email": user.email,
        "is_admin": user.is_staff,
        "phone_number": profile.phone_number,
        "profile_image": profile.profile_image,
        "addresses": profile.addresses,
    }


@require_GET
@ensure_csrf_cookie
def csrf(request):
    """Hands the SPA a CSRF cookie before its first unsafe request"""
    return JsonResponse({"success": True})


@require_POST
def register(request):
    try:
        data = load_json_body(request)
    except ValueError as e:
        return json_error(str(e))

    name = str(data.get("name", "")).strip()
    email = str(data.get("email", "")).strip().lower()
    password = data.get("password") or ""

    if not name or not email or not password:
        return json_error("name, email and password are required")
    try:
        validate_email(email)
    except ValidationError:
        return json_error("Invalid email address")

    if User.objects.filter(email__iexact=email).exists():
        return json_error("User already exists")

    candidate = User(username=email, email=email, first_name=name)
    try:
        validate_password(password, user=candidate)
    except ValidationError as e:
        return json_error(" ".join(e.messages))

    with transaction.atomic():
        user = User.objects.create_user(username=email, email=email, password=password, first_name=name)
        Profile.objects.create(user=user)

    login(request, user)
    logger.info(f"Registered user #{user.id}")
    return JsonResponse(serialize_user(user), status=201)


@require_POST
def login_view(request):
    try:
        data = load_json_body(request)
    except ValueError as e:
        return json_error(str(e))

    email = str(data.get("email", "")).strip().lower()
    password = data.get("password") or ""

    user = authenticate(request, username=email, password=password)
    if user is None:
        logger.warning(f"Failed login for {email}")
        return json_error("Invalid email or password", status=401)

    login(request, user)
    return JsonResponse(serialize_user(user))


@require_POST
def logout_view(request):
    logout(request)
    return JsonResponse({"success": True, "message": "Logged out"})


@api_login_required
@require_http_methods(["GET", "PUT"])
def profile(request):
    user = request.user
    if request.method == "GET":
        return JsonResponse(serialize_user(user))

    try:
        data = load_json_body(request)
    except ValueError as e:
        return json_error(str(e))

    profile, _ = Profile.objects.get_or_create(user=user)

    if data.get("name"):
        user.first_name = str(data["name"]).strip()

    if data.get("email"):
        email = str(data["email"]).strip().lower()
        try:
            validate_email(email)
        except ValidationError:
            return json_error("Invalid email address")
        if User.objects.filter(email__iexact=email).exclude(pk=user.pk).exists():
            return json_error("Email already in use")
        user.email = email
        user.username = email

    if data.get("password"):
        try:
            validate_password(data["password"], user=user)
        except ValidationError as e:
            return json_error(" ".join(e.messages))
        user.set_password(data["password"])

    if data.get("phone_number"):
        profile.phone_number = str(data["phone_number"]).strip()
    if data.get("profile_image"):
        profile.profile_image = str(data["profile_image"]).strip()

    # addresses are replaced wholesale
    if "addresses" in data:
        if not isinstance(data["addresses"], list):
            return json_error("addresses must be a list")
        profile.addresses = data["addresses"]

    with transaction.atomic():
        user.save()
        profile.save()

    if data.get("password"):
        # keep the current session valid after a password change
        update_session_auth_hash(request, user)

    return JsonResponse(serialize_user(user))
