# orders/models.py
from django.conf import settings
from django.db import models
from django.utils import timezone


class Order(models.Model):
    STATUS_CHOICES = [
        ("Pending", "Pending"),
        ("Processed", "Processed"),
        ("Out for Delivery", "Out for Delivery"),
        ("Delivered", "Delivered"),
        ("Cancelled", "Cancelled"),
    ]

    PAYMENT_STATUS_CHOICES = [
        ("Pending", "Pending"),
        ("CREATED", "Gateway order created"),
        ("SUCCESS", "Payment verified"),
        ("FAILED", "Payment failed"),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="orders", on_delete=models.PROTECT)

    # Shipping
    address = models.CharField(max_length=255)
    city = models.CharField(max_length=100)
    postal_code = models.CharField(max_length=20)
    country = models.CharField(max_length=100)

    # Pricing
    payment_method = models.CharField(max_length=50, default="Razorpay")
    items_price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    tax_price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    shipping_price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    total_price = models.DecimalField(max_digits=10, decimal_places=2, default=0)

    # Payment
    is_paid = models.BooleanField(default=False, db_index=True)
    paid_at = models.DateTimeField(blank=True, null=True)
    payment_verified_at = models.DateTimeField(blank=True, null=True)
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default="Pending")
    # Set once; binds the order to a single gateway transaction
    razorpay_order_id = models.CharField(max_length=100, blank=True, null=True, unique=True)
    razorpay_payment_id = models.CharField(max_length=100, blank=True, null=True, unique=True)
    gateway_response = models.JSONField(default=dict, blank=True)

    # Delivery
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="Pending", db_index=True)
    is_delivered = models.BooleanField(default=False)
    delivered_at = models.DateTimeField(blank=True, null=True)

    # Idempotency flag for the confirmation email
    customer_notified = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="order_status_created_idx"),
        ]

    @property
    def amount_in_minor_units(self):
        """Gateway amount, e.g. paise for INR"""
        return int(round(self.total_price * 100))

    def transition_to(self, status):
        """Apply an admin status change; raises ValueError for unknown statuses"""
        allowed = {value for value, _ in self.STATUS_CHOICES}
        if not isinstance(status, str) or status not in allowed:
            raise ValueError(f"Invalid status. Allowed: {', '.join(sorted(allowed))}")

        self.status = status
        if status == "Delivered":
            self.is_delivered = True
            self.delivered_at = timezone.now()
        self.save()

    def __str__(self):
        return f"Order #{self.id} - {self.user}"


class OrderItem(models.Model):
    order = models.ForeignKey(Order, related_name="items", on_delete=models.CASCADE)
    product = models.ForeignKey("catalog.Product", related_name="order_items", on_delete=models.PROTECT)

    # Snapshot at time of purchase
    name = models.CharField(max_length=200)
    image = models.CharField(max_length=500, blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.PositiveIntegerField()

    class Meta:
        constraints = [
            models.CheckConstraint(condition=models.Q(quantity__gte=1), name="order_item_quantity_positive"),
        ]

    def __str__(self):
        return f"{self.name} x {self.quantity}"
