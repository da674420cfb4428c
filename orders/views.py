import logging

from django.db import transaction
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST, require_http_methods

from accounts.decorators import api_admin_required, api_login_required
from candleshop.utils import isoformat, json_error, load_json_body, parse_whole_number

from .inventory_utils import StockReservationError, calculate_order_totals, parse_order_lines, reserve_stock
from .models import Order, OrderItem
from .payment_utils import PaymentError, confirm_payment, initiate_gateway_order, mark_payment_failed
from .razorpay_utils import RazorpayAPI
from .utils import notify_customer_once, send_admin_order_notification


logger = logging.getLogger(__name__)

SHIPPING_FIELDS = ("address", "city", "postal_code", "country")


def get_payment_gateway():
    """Gateway client handed to the payment helpers; patched in tests"""
    return RazorpayAPI()


def visible_orders(request):
    """Orders the caller may see: all for admins, own otherwise"""
    if request.user.is_staff:
        return Order.objects.all()
    return Order.objects.filter(user=request.user)

# ==================== SERIALIZERS ====================

def serialize_order(order):
    return {
        "id": order.id,
        "user": {
            "id": order.user_id,
            "name": order.user.first_name,
            "email": order.user.email,
        },
        "order_items": [
            {
                "product": item.product_id,
                "name": item.name,
                "image": item.image,
                "price": str(item.price),
                "quantity": item.quantity,
            }
            for item in order.items.all()
        ],
        "shipping_address": {field: getattr(order, field) for field in SHIPPING_FIELDS},
        "payment_method": order.payment_method,
        "items_price": str(order.items_price),
        "tax_price": str(order.tax_price),
        "shipping_price": str(order.shipping_price),
        "total_price": str(order.total_price),
        "is_paid": order.is_paid,
        "paid_at": isoformat(order.paid_at),
        "payment_verified_at": isoformat(order.payment_verified_at),
        "payment_status": order.payment_status,
        "razorpay_order_id": order.razorpay_order_id,
        "razorpay_payment_id": order.razorpay_payment_id,
        "status": order.status,
        "is_delivered": order.is_delivered,
        "delivered_at": isoformat(order.delivered_at),
        "created_at": isoformat(order.created_at),
        "updated_at": isoformat(order.updated_at),
    }


def serialize_orders(queryset):
    queryset = queryset.select_related("user").prefetch_related("items")
    return [serialize_order(order) for order in queryset]

# ==================== ORDERS ====================

@api_login_required
@require_http_methods(["GET", "POST"])
def order_list(request):
    if request.method == "POST":
        return add_order_items(request)
    return get_orders(request)


def add_order_items(request):
    """Reserve stock and create the order in one transaction"""
    try:
        data = load_json_body(request)
    except ValueError as e:
        return json_error(str(e))

    shipping = data.get("shipping_address")
    if not isinstance(shipping, dict):
        return json_error("Shipping address is required")
    for field in SHIPPING_FIELDS:
        value = str(shipping.get(field) or "").strip()
        if not value:
            return json_error(f"{field} is required")
        if len(value) > Order._meta.get_field(field).max_length:
            return json_error(f"{field} is too long")

    payment_method = str(data.get("payment_method") or "Razorpay").strip()
    if len(payment_method) > Order._meta.get_field("payment_method").max_length:
        return json_error("payment_method is too long")

    try:
        lines = parse_order_lines(data.get("order_items"))
        with transaction.atomic():
            reserved = reserve_stock(lines)
            totals = calculate_order_totals(reserved)

            order = Order.objects.create(
                user=request.user,
                address=str(shipping["address"]).strip(),
                city=str(shipping["city"]).strip(),
                postal_code=str(shipping["postal_code"]).strip(),
                country=str(shipping["country"]).strip(),
                payment_method=payment_method,
                **totals,
            )
            OrderItem.objects.bulk_create([
                OrderItem(
                    order=order,
                    product=line.product,
                    name=line.product.name,
                    image=line.product.image,
                    price=line.product.price,
                    quantity=line.quantity,
                )
                for line in reserved
            ])
    except StockReservationError as e:
        return json_error(str(e), status=e.status)

    logger.info(f"Order #{order.id} created by user #{request.user.id}, total {order.total_price}")

    order = Order.objects.select_related("user").prefetch_related("items").get(pk=order.pk)
    send_admin_order_notification(order, list(order.items.all()))
    return JsonResponse(serialize_order(order), status=201)


@api_admin_required
def get_orders(request):
    return JsonResponse(serialize_orders(Order.objects.all()), safe=False)


@api_login_required
@require_GET
def get_my_orders(request):
    return JsonResponse(serialize_orders(Order.objects.filter(user=request.user)), safe=False)


@api_login_required
@require_GET
def get_order_by_id(request, order_id):
    order = get_object_or_404(visible_orders(request).select_related("user"), pk=order_id)
    return JsonResponse(serialize_order(order))


@api_admin_required
@require_http_methods(["PUT"])
def update_order_status(request, order_id):
    order = get_object_or_404(Order, pk=order_id)
    try:
        data = load_json_body(request)
        order.transition_to(data.get("status"))
    except ValueError as e:
        return json_error(str(e))

    logger.info(f"Order #{order.id} status set to {order.status} by user #{request.user.id}")
    return JsonResponse(serialize_order(order))

# ==================== PAYMENT PROCESSING ====================

@api_login_required
@require_POST
def create_razorpay_order(request, order_id):
    """Start a Razorpay checkout for an unpaid order"""
    order = get_object_or_404(visible_orders(request), pk=order_id)
    gateway = get_payment_gateway()

    try:
        gateway_order = initiate_gateway_order(order, gateway)
    except PaymentError as e:
        return json_error(str(e), status=e.status)

    return JsonResponse({**gateway_order, "key_id": gateway.key_id})


@api_login_required
@require_POST
def verify_payment(request):
    """
    Checkout callback relayed by the frontend.

    The signature proves Razorpay issued this payment for the gateway
    order; the stored gateway order id proves it was issued for this
    local order.
    """
    try:
        data = load_json_body(request)
    except ValueError as e:
        return json_error(str(e))

    razorpay_order_id = str(data.get("razorpay_order_id") or "").strip()
    razorpay_payment_id = str(data.get("razorpay_payment_id") or "").strip()
    razorpay_signature = str(data.get("razorpay_signature") or "").strip()
    order_id = parse_whole_number(data.get("order_id"))

    if not (razorpay_order_id and razorpay_payment_id and razorpay_signature and order_id):
        return json_error("razorpay_order_id, razorpay_payment_id, razorpay_signature and order_id are required")

    gateway = get_payment_gateway()
    if not gateway.verify_payment_signature(razorpay_order_id, razorpay_payment_id, razorpay_signature):
        logger.warning(f"Razorpay signature mismatch for order {order_id}, gateway order {razorpay_order_id}")
        return json_error("Invalid payment signature")

    lookup = None if request.user.is_staff else {"user": request.user}
    try:
        order, created = confirm_payment(
            order_id,
            razorpay_order_id,
            razorpay_payment_id,
            gateway_response={
                "razorpay_order_id": razorpay_order_id,
                "razorpay_payment_id": razorpay_payment_id,
                "razorpay_signature": razorpay_signature,
            },
            lookup=lookup,
        )
    except PaymentError as e:
        return json_error(str(e), status=e.status)

    if not created:
        return JsonResponse({"success": True, "message": "Order already paid"})

    notify_customer_once(order)
    return JsonResponse({"success": True, "message": "Payment verified successfully", "order_id": order.id})

# ==================== WEBHOOK ====================

def _payment_entity(data):
    """payload.payment.entity of a webhook body; ValueError if any level is not an object"""
    entity = data
    for key in ("payload", "payment", "entity"):
        entity = entity.get(key) or {}
        if not isinstance(entity, dict):
            raise ValueError(f"Webhook {key} must be an object")
    return entity


@csrf_exempt
@require_POST
def razorpay_webhook(request):
    """Handle Razorpay payment webhooks with signature check and idempotency"""
    gateway = get_payment_gateway()
    signature = request.headers.get("X-Razorpay-Signature")
    if not gateway.verify_webhook_signature(request.body, signature):
        logger.warning("Invalid Razorpay webhook signature")
        return JsonResponse({"status": "unauthorized"}, status=401)

    try:
        data = load_json_body(request)
        entity = _payment_entity(data)
    except ValueError:
        return JsonResponse({"status": "invalid payload"}, status=400)

    event = data.get("event")
    razorpay_order_id = entity.get("order_id")
    logger.info(f"Razorpay webhook received: {event} for {razorpay_order_id}")

    if event not in ("payment.captured", "payment.failed"):
        return JsonResponse({"status": "ignored"})
    if not isinstance(razorpay_order_id, str) or not razorpay_order_id or not entity.get("id"):
        return JsonResponse({"status": "incomplete payment entity"}, status=400)

    if event == "payment.failed":
        order = mark_payment_failed(razorpay_order_id, {"event": event, "payment": entity})
        if order is None:
            return JsonResponse({"status": "order not found"}, status=404)
        return JsonResponse({"status": "success"})

    order = Order.objects.filter(razorpay_order_id=razorpay_order_id).first()
    if order is None:
        logger.warning(f"Order for gateway order {razorpay_order_id} not found for webhook")
        return JsonResponse({"status": "order not found"}, status=404)

    try:
        order, created = confirm_payment(
            order.id,
            razorpay_order_id,
            entity.get("id"),
            gateway_response={"event": event, "payment": entity},
        )
    except PaymentError as e:
        return JsonResponse({"status": "error", "message": str(e)}, status=e.status)

    if created:
        notify_customer_once(order)
        return JsonResponse({"status": "success"})
    return JsonResponse({"status": "already processed"})
