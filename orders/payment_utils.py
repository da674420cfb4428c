# orders/payment_utils.py
import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from .models import Order

logger = logging.getLogger(__name__)


class PaymentError(Exception):
    """Payment request rejected; the order is left untouched"""

    def __init__(self, message, status=400):
        super().__init__(message)
        self.status = status


def initiate_gateway_order(order, gateway):
    """
    Create (or reuse) the gateway order for an unpaid local order.

    The gateway order id is written only while the order has none, so an
    order is bound to at most one gateway transaction even when two
    initiation requests race. Returns the gateway order payload.
    """
    if order.is_paid:
        raise PaymentError("Order already paid")

    if order.razorpay_order_id:
        logger.info(f"Order #{order.id} already has gateway order {order.razorpay_order_id}")
        return _fetch_existing(order, gateway)

    success, result = gateway.create_order(
        amount=order.amount_in_minor_units,
        receipt=f"order_{order.id}",
        notes={"order_id": str(order.id)},
    )
    if not success:
        raise PaymentError(result, status=502)

    bound = Order.objects.filter(pk=order.pk, razorpay_order_id__isnull=True, is_paid=False).update(
        razorpay_order_id=result["id"],
        payment_status="CREATED",
        updated_at=timezone.now(),
    )
    order.refresh_from_db()
    if not bound:
        # Lost the race against a concurrent initiation (or a payment)
        logger.warning(f"Order #{order.id} was bound concurrently, discarding gateway order {result['id']}")
        if order.is_paid:
            raise PaymentError("Order already paid")
        return _fetch_existing(order, gateway)

    logger.info(f"Order #{order.id} bound to gateway order {order.razorpay_order_id}")
    return result


def _fetch_existing(order, gateway):
    success, result = gateway.fetch_order(order.razorpay_order_id)
    if not success:
        raise PaymentError(result, status=502)
    return result


def confirm_payment(order_id, razorpay_order_id, razorpay_payment_id, gateway_response, lookup=None):
    """
    Mark an order paid exactly once.

    `lookup` narrows which orders the caller may touch (e.g. the owner's
    orders). Returns (order, created) where created is False when the
    order was already paid and nothing changed.
    """
    queryset = Order.objects.all() if lookup is None else Order.objects.filter(**lookup)

    try:
        with transaction.atomic():
            order = queryset.select_for_update().get(pk=order_id)

            # Checked before the paid short-circuit so a foreign gateway
            # order id is rejected even for orders that are already paid
            if not order.razorpay_order_id or order.razorpay_order_id != razorpay_order_id:
                logger.warning(
                    f"Payment binding mismatch for order #{order.id}: "
                    f"stored {order.razorpay_order_id}, received {razorpay_order_id}"
                )
                raise PaymentError("Payment does not belong to this order")

            if order.is_paid:
                logger.info(f"Duplicate payment confirmation for order #{order.id}")
                return order, False

            now = timezone.now()
            order.is_paid = True
            order.paid_at = now
            order.payment_verified_at = now
            order.payment_status = "SUCCESS"
            order.razorpay_payment_id = razorpay_payment_id
            order.gateway_response = gateway_response
            order.save()
    except Order.DoesNotExist:
        raise PaymentError("Order not found", status=404)
    except IntegrityError:
        logger.error(f"Payment {razorpay_payment_id} is already bound to another order")
        raise PaymentError("Payment already used for another order")

    logger.info(f"Order #{order.id} paid with {razorpay_payment_id}")
    return order, True


def mark_payment_failed(razorpay_order_id, gateway_response):
    """Record a failed attempt; paid orders are never downgraded. Returns the order or None"""
    with transaction.atomic():
        order = Order.objects.select_for_update().filter(razorpay_order_id=razorpay_order_id).first()
        if order is None:
            return None
        if not order.is_paid:
            order.payment_status = "FAILED"
            order.gateway_response = gateway_response
            order.save(update_fields=["payment_status", "gateway_response", "updated_at"])
            logger.info(f"Order #{order.id} payment attempt failed")
    return order
