# orders/inventory_utils.py
import logging
from collections import namedtuple
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from catalog.models import Product
from candleshop.utils import parse_whole_number

logger = logging.getLogger(__name__)

OrderLine = namedtuple("OrderLine", ["product_id", "quantity"])
ReservedLine = namedtuple("ReservedLine", ["product", "quantity"])

CENT = Decimal("0.01")


class StockReservationError(Exception):
    """Order cannot be placed; nothing has been decremented"""
    status = 400


class ProductUnavailableError(StockReservationError):
    status = 404


def parse_order_lines(raw_items):
    """Validate the request's order_items into OrderLine tuples"""
    if not raw_items or not isinstance(raw_items, list):
        raise StockReservationError("No order items")

    lines = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            raise StockReservationError("Invalid order item")
        product_id = parse_whole_number(raw.get("product"))
        if product_id is None or product_id < 1:
            raise StockReservationError("Invalid product reference")
        quantity = parse_whole_number(raw.get("quantity"))
        if quantity is None or quantity < 1:
            raise StockReservationError("Quantity must be a whole number of at least 1")
        lines.append(OrderLine(product_id, quantity))
    return lines


def reserve_stock(lines):
    """
    Decrement stock for every line or for none of them.

    Each line is a single conditional UPDATE guarded by
    count_in_stock >= quantity, so the database rejects an oversell even
    when orders race. A failing line raises inside the transaction and the
    decrements already applied to earlier lines are rolled back.

    Returns ReservedLine tuples with the product as read after the
    decrement, for snapshotting name/image/price onto the order.
    """
    with transaction.atomic():
        for line in lines:
            updated = Product.objects.filter(
                pk=line.product_id,
                is_deleted=False,
                count_in_stock__gte=line.quantity,
            ).update(
                count_in_stock=F("count_in_stock") - line.quantity,
                updated_at=timezone.now(),
            )
            if updated:
                continue

            product = Product.objects.filter(pk=line.product_id, is_deleted=False).first()
            if product is None:
                logger.warning(f"Order rejected, product #{line.product_id} not found")
                raise ProductUnavailableError(f"Product not found: {line.product_id}")
            logger.warning(
                f"Order rejected, insufficient stock for product #{product.id} "
                f"(requested {line.quantity}, available {product.count_in_stock})"
            )
            raise StockReservationError(f"Insufficient stock for {product.name}")

        products = Product.objects.in_bulk({line.product_id for line in lines})
        return [ReservedLine(products[line.product_id], line.quantity) for line in lines]


def calculate_order_totals(reserved_lines):
    """Server-side totals from the reserved products' current prices"""
    items_price = sum(
        (line.product.price * line.quantity for line in reserved_lines),
        Decimal("0.00"),
    ).quantize(CENT, rounding=ROUND_HALF_UP)
    tax_price = (items_price * settings.ORDER_TAX_RATE).quantize(CENT, rounding=ROUND_HALF_UP)
    shipping_price = Decimal(settings.ORDER_SHIPPING_PRICE).quantize(CENT, rounding=ROUND_HALF_UP)
    total_price = items_price + tax_price + shipping_price

    return {
        "items_price": items_price,
        "tax_price": tax_price,
        "shipping_price": shipping_price,
        "total_price": total_price,
    }
