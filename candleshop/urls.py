from django.contrib import admin
from django.urls import path, include
from . import views

urlpatterns = [
    path("health/", views.health, name="health"),

    # ============ JSON API ============
    path("api/auth/", include("accounts.urls")),
    path("api/products/", include("catalog.urls")),
    path("api/orders/", include("orders.urls")),
    path("api/admin/stats/", views.admin_stats, name="admin_stats"),

    # ============ ADMIN ============
    path("admin/", admin.site.urls),
]
