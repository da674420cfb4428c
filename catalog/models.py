# catalog/models.py
from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Avg, Count


class Product(models.Model):
    name = models.CharField(max_length=200)
    description = models.TextField(default="No description")
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    category = models.CharField(max_length=100, db_index=True)
    image = models.CharField(max_length=500, default="/images/sample.jpg", help_text="Image URL")
    count_in_stock = models.PositiveIntegerField(default=0)

    # Derived from reviews, kept denormalised for listing pages
    rating = models.FloatField(default=0)
    num_reviews = models.PositiveIntegerField(default=0)

    # Products are never hard-deleted, orders keep referencing them
    is_deleted = models.BooleanField(default=False, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(condition=models.Q(count_in_stock__gte=0), name='product_stock_non_negative'),
            models.CheckConstraint(condition=models.Q(price__gte=0), name='product_price_non_negative'),
        ]

    @property
    def is_out_of_stock(self):
        return self.count_in_stock == 0

    def update_rating(self):
        """Recompute rating and num_reviews from the stored reviews"""
        stats = self.reviews.aggregate(avg=Avg('rating'), total=Count('id'))
        self.num_reviews = stats['total']
        self.rating = float(stats['avg']) if stats['avg'] is not None else 0
        self.save(update_fields=['rating', 'num_reviews', 'updated_at'])

    def __str__(self):
        return f"{self.name} ({self.category})"


class Review(models.Model):
    product = models.ForeignKey(Product, related_name='reviews', on_delete=models.CASCADE)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, related_name='reviews', on_delete=models.CASCADE)
    name = models.CharField(max_length=150)
    rating = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(5)])
    comment = models.TextField()
    images = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['product', 'user'], name='one_review_per_user'),
            models.CheckConstraint(condition=models.Q(rating__gte=1, rating__lte=5), name='review_rating_range'),
        ]

    def __str__(self):
        return f"{self.name} on {self.product.name}: {self.rating}/5"
