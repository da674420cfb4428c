from django.urls import path
from . import views

urlpatterns = [
    path("", views.order_list, name="order_list"),
    path("myorders/", views.get_my_orders, name="my_orders"),

    # ============ Payment Processing ============
    path("pay/verify/", views.verify_payment, name="verify_payment"),
    path("pay/<int:order_id>/", views.create_razorpay_order, name="create_razorpay_order"),
    path("webhook/razorpay/", views.razorpay_webhook, name="razorpay_webhook"),

    # ============ Admin ============
    path("<int:order_id>/deliver/", views.update_order_status, name="update_order_status"),

    path("<int:order_id>/", views.get_order_by_id, name="order_detail"),
]
