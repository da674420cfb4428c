import logging
from django.conf import settings
from django.core.mail import send_mail

from .models import Order

logger = logging.getLogger(__name__)


def send_admin_order_notification(order, items):
    """Send detailed email to admin about new order"""
    try:
        items_details = "\n".join([
            f"• {item.name} (Qty: {item.quantity}, Price: {item.price})"
            for item in items
        ])

        message = f"""
Hello Admin,

A new order has been placed on the Candle Shop.

ORDER DETAILS:
Order ID: #{order.id}
Order Date: {order.created_at.strftime('%d-%b-%Y %I:%M %p')}
Status: {order.status}
Payment Method: {order.payment_method}

CUSTOMER:
Name: {order.user.first_name}
Email: {order.user.email}

SHIPPING ADDRESS:
{order.address}
{order.city}, {order.postal_code}, {order.country}

ORDER ITEMS:
{items_details}

PAYMENT SUMMARY:
Items: {order.items_price}
Tax: {order.tax_price}
Shipping: {order.shipping_price}
TOTAL: {order.total_price}
        """.strip()

        send_mail(
            subject=f'New Order Received - #{order.id}',
            message=message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[settings.ADMIN_ORDER_EMAIL],
            fail_silently=False,
        )

        logger.info(f"Admin notification sent for Order #{order.id}")
        return True, "Admin email sent successfully"

    except Exception as e:
        logger.error(f"Admin notification failed for Order #{order.id}: {str(e)}")
        return False, str(e)


def send_customer_order_confirmation(order, items):
    """Send payment confirmation to the customer"""
    if not order.user.email:
        return False, "Customer has no email address"

    try:
        item_names = [item.name for item in items[:3]]
        items_text = ", ".join(item_names)
        if len(items) > 3:
            items_text += f" and {len(items) - 3} more"

        message = f"""
Candle Shop - Payment Received!

Order ID: #{order.id}
Items: {items_text}
Total: {order.total_price}
Payment ID: {order.razorpay_payment_id}
Delivery Address: {order.address}, {order.city}, {order.postal_code}, {order.country}

Thank you for shopping with us!
        """.strip()

        send_mail(
            subject=f'Order Confirmed - #{order.id} - Candle Shop',
            message=message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[order.user.email],
            fail_silently=False,
        )

        logger.info(f"Customer confirmation sent for Order #{order.id}")
        return True, "Customer email sent successfully"

    except Exception as e:
        logger.error(f"Customer notification failed for Order #{order.id}: {str(e)}")
        return False, str(e)


def notify_customer_once(order):
    """Send the confirmation a single time per order"""
    # Claim the flag first so concurrent callers cannot both send
    claimed = Order.objects.filter(pk=order.pk, customer_notified=False).update(customer_notified=True)
    if not claimed:
        return False

    items = list(order.items.all())
    sent, _ = send_customer_order_confirmation(order, items)
    if not sent:
        Order.objects.filter(pk=order.pk).update(customer_notified=False)
        return False

    order.customer_notified = True
    return True
