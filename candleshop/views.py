import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models import Sum
from django.http import JsonResponse
from django.views.decorators.http import require_GET

from accounts.decorators import api_admin_required
from catalog.models import Product
from orders.models import Order

logger = logging.getLogger(__name__)


@require_GET
def health(request):
    return JsonResponse({"ok": True})


@api_admin_required
@require_GET
def admin_stats(request):
    """Dashboard counters; revenue counts paid orders only"""
    products = Product.objects.filter(is_deleted=False)
    revenue = Order.objects.filter(is_paid=True).aggregate(total=Sum("total_price"))["total"]

    return JsonResponse({
        "total_orders": Order.objects.count(),
        "total_users": get_user_model().objects.count(),
        "total_products": products.count(),
        "low_stock_products": products.filter(count_in_stock__lt=settings.LOW_STOCK_THRESHOLD).count(),
        "total_revenue": str(revenue or "0.00"),
    })
