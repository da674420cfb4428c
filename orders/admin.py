from django.contrib import admin
from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ('product', 'name', 'price', 'quantity', 'image')
    readonly_fields = ('product', 'name', 'price', 'quantity', 'image')
    can_delete = False  # Items are a purchase-time snapshot


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "user",
        "total_price",
        "is_paid",
        "payment_status",
        "razorpay_order_id",
        "status",
        "is_delivered",
        "created_at",
    )

    list_filter = (
        "status",
        "is_paid",
        "payment_status",
        "is_delivered",
        "created_at",
    )

    search_fields = (
        "id",
        "user__email",
        "user__first_name",
        "razorpay_order_id",
        "razorpay_payment_id",
    )

    # Payment state only changes through signature-verified callbacks
    readonly_fields = (
        'is_paid',
        'paid_at',
        'payment_verified_at',
        'payment_status',
        'razorpay_order_id',
        'razorpay_payment_id',
        'gateway_response',
        'customer_notified',
        'is_delivered',
        'delivered_at',
        'created_at',
        'updated_at',
    )

    inlines = [OrderItemInline]

    fieldsets = (
        ("Customer", {
            "fields": ("user",)
        }),
        ("Shipping Address", {
            "fields": (
                "address",
                "city",
                "postal_code",
                "country",
            )
        }),
        ("Pricing", {
            "fields": (
                "payment_method",
                "items_price",
                "tax_price",
                "shipping_price",
                "total_price",
            )
        }),
        ("Payment", {
            "fields": (
                "is_paid",
                "paid_at",
                "payment_verified_at",
                "payment_status",
                "razorpay_order_id",
                "razorpay_payment_id",
            )
        }),
        ("Delivery", {
            "fields": ("status", "is_delivered", "delivered_at")
        }),
        ("System Metadata", {
            "fields": (
                "gateway_response",
                "customer_notified",
                "created_at",
                "updated_at",
            ),
            "classes": ("collapse",)
        }),
    )

    def save_model(self, request, obj, form, change):
        # Delivered stamps is_delivered and delivered_at
        if 'status' in form.changed_data:
            obj.transition_to(form.cleaned_data['status'])
        else:
            super().save_model(request, obj, form, change)

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('user').prefetch_related('items')
