import logging
from decimal import Decimal, InvalidOperation

from django.db import IntegrityError, transaction
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_http_methods

from accounts.decorators import api_admin_required, api_login_required
from candleshop.utils import isoformat, json_error, load_json_body, parse_whole_number

from .models import Product, Review

logger = logging.getLogger(__name__)

MAX_PRICE = Decimal("1e8")

# ==================== SERIALIZERS ====================

def serialize_review(review):
    return {
        "id": review.id,
        "user": review.user_id,
        "name": review.name,
        "rating": review.rating,
        "comment": review.comment,
        "images": review.images,
        "created_at": isoformat(review.created_at),
        "updated_at": isoformat(review.updated_at),
    }


def serialize_product(product, with_reviews=False):
    data = {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "price": str(product.price),
        "category": product.category,
        "image": product.image,
        "count_in_stock": product.count_in_stock,
        "is_out_of_stock": product.is_out_of_stock,
        "rating": product.rating,
        "num_reviews": product.num_reviews,
        "is_deleted": product.is_deleted,
        "created_at": isoformat(product.created_at),
        "updated_at": isoformat(product.updated_at),
    }
    if with_reviews:
        data["reviews"] = [serialize_review(r) for r in product.reviews.select_related("user")]
    return data

# ==================== VALIDATION HELPERS ====================

def parse_price(value):
    try:
        price = Decimal(str(value)).quantize(Decimal("0.01"))
        # must fit DecimalField(max_digits=10, decimal_places=2)
        if price < 0 or price >= MAX_PRICE:
            raise ValueError("Invalid price")
        return price
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError("Invalid price")


def parse_stock(value):
    stock = parse_whole_number(value)
    if stock is None or stock < 0:
        raise ValueError("Invalid stock count")
    return stock


def parse_rating(value):
    rating = parse_whole_number(value)
    if rating is None or not 1 <= rating <= 5:
        raise ValueError("Rating must be a whole number from 1 to 5")
    return rating

# ==================== PRODUCTS ====================

@require_http_methods(["GET", "POST"])
def product_list(request):
    if request.method == "POST":
        return create_product(request)

    products = Product.objects.filter(is_deleted=False)

    keyword = request.GET.get("keyword", "").strip()
    if keyword:
        products = products.filter(name__icontains=keyword)

    category = request.GET.get("category", "").strip()
    if category:
        products = products.filter(category=category)

    # Storefront hides sold out candles; the admin inventory passes show_all
    if request.GET.get("show_all") != "true":
        products = products.filter(count_in_stock__gt=0)

    return JsonResponse([serialize_product(p) for p in products], safe=False)


@api_admin_required
def create_product(request):
    try:
        data = load_json_body(request)
    except ValueError as e:
        return json_error(str(e))

    name = str(data.get("name") or "").strip()
    category = str(data.get("category") or "").strip()
    if not name or data.get("price") in (None, "") or not category:
        return json_error("Please fill in all required fields")

    try:
        price = parse_price(data["price"])
        count_in_stock = parse_stock(data.get("count_in_stock") or 0)
    except ValueError as e:
        return json_error(str(e))

    product = Product.objects.create(
        name=name,
        price=price,
        category=category,
        image=str(data.get("image") or "/images/sample.jpg"),
        description=str(data.get("description") or "No description"),
        count_in_stock=count_in_stock,
    )
    logger.info(f"Product #{product.id} '{product.name}' created by user #{request.user.id}")
    return JsonResponse(serialize_product(product), status=201)


@require_GET
def product_categories(request):
    categories = (
        Product.objects.filter(is_deleted=False)
        .order_by("category")
        .values_list("category", flat=True)
        .distinct()
    )
    return JsonResponse(list(categories), safe=False)


@api_admin_required
@require_GET
def product_history(request):
    """Every product ever added, deleted ones included"""
    products = Product.objects.all().order_by("-created_at")
    return JsonResponse([serialize_product(p) for p in products], safe=False)


@require_http_methods(["GET", "PUT", "DELETE"])
def product_detail(request, product_id):
    if request.method == "PUT":
        return update_product(request, product_id)
    if request.method == "DELETE":
        return delete_product(request, product_id)

    product = get_object_or_404(Product, pk=product_id)
    return JsonResponse(serialize_product(product, with_reviews=True))


@api_admin_required
def update_product(request, product_id):
    product = get_object_or_404(Product, pk=product_id)
    try:
        data = load_json_body(request)
    except ValueError as e:
        return json_error(str(e))

    try:
        if "name" in data:
            name = str(data["name"] or "").strip()
            if not name:
                raise ValueError("Name cannot be empty")
            product.name = name
        if "category" in data:
            category = str(data["category"] or "").strip()
            if not category:
                raise ValueError("Category cannot be empty")
            product.category = category
        if "price" in data:
            product.price = parse_price(data["price"])
        if "count_in_stock" in data:
            product.count_in_stock = parse_stock(data["count_in_stock"])
        if "description" in data:
            product.description = str(data["description"] or "No description")
        if "image" in data:
            product.image = str(data["image"] or "/images/sample.jpg")
    except ValueError as e:
        return json_error(str(e))

    product.save()
    logger.info(f"Product #{product.id} updated by user #{request.user.id}")
    return JsonResponse(serialize_product(product))


@api_admin_required
def delete_product(request, product_id):
    product = get_object_or_404(Product, pk=product_id)
    product.is_deleted = True
    product.save(update_fields=["is_deleted", "updated_at"])
    logger.info(f"Product #{product.id} soft-deleted by user #{request.user.id}")
    return JsonResponse({"success": True, "message": "Product removed"})

# ==================== REVIEWS ====================

@api_login_required
@require_http_methods(["POST", "PUT", "DELETE"])
def product_reviews(request, product_id):
    product = get_object_or_404(Product, pk=product_id)

    if request.method == "DELETE":
        with transaction.atomic():
            deleted, _ = Review.objects.filter(product=product, user=request.user).delete()
            if not deleted:
                return json_error("Review not found", status=404)
            product.update_rating()
        return JsonResponse({"success": True, "message": "Review removed"})

    try:
        data = load_json_body(request)
        rating = parse_rating(data.get("rating"))
    except ValueError as e:
        return json_error(str(e))

    comment = str(data.get("comment") or "").strip()
    if not comment:
        return json_error("Comment is required")

    if request.method == "PUT":
        with transaction.atomic():
            review = Review.objects.filter(product=product, user=request.user).first()
            if review is None:
                return json_error("Review not found", status=404)
            review.rating = rating
            review.comment = comment
            review.save()
            product.update_rating()
        return JsonResponse({"success": True, "message": "Review updated"})

    images = data.get("images") or []
    if not isinstance(images, list):
        return json_error("images must be a list of URLs")

    if Review.objects.filter(product=product, user=request.user).exists():
        return json_error("Product already reviewed")

    try:
        with transaction.atomic():
            Review.objects.create(
                product=product,
                user=request.user,
                name=request.user.first_name or request.user.email,
                rating=rating,
                comment=comment,
                images=[str(url) for url in images],
            )
            product.update_rating()
    except IntegrityError:
        return json_error("Product already reviewed")

    return JsonResponse({"success": True, "message": "Review added"}, status=201)
