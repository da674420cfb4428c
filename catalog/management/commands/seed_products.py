from decimal import Decimal

from django.core.management.base import BaseCommand

from catalog.models import Product

STARTER_CANDLES = [
    {
        "name": "Lavender Bliss",
        "image": "/uploads/lavender.png",
        "description": "A soothing lavender scent to relax your mind.",
        "category": "Aromatherapy",
        "price": Decimal("24.99"),
        "count_in_stock": 12,
    },
    {
        "name": "Vanilla Bean",
        "image": "/uploads/vanilla.png",
        "description": "Warm and comforting vanilla fragrance.",
        "category": "Scented",
        "price": Decimal("22.50"),
        "count_in_stock": 45,
    },
    {
        "name": "Ocean Breeze",
        "image": "/uploads/ocean.png",
        "description": "Fresh and crisp scent of the ocean.",
        "category": "Fresh",
        "price": Decimal("26.00"),
        "count_in_stock": 2,
    },
    {
        "name": "Sandalwood",
        "image": "/uploads/sandalwood.png",
        "description": "Earthy and woody sandalwood aroma.",
        "category": "Woody",
        "price": Decimal("28.00"),
        "count_in_stock": 8,
    },
]


class Command(BaseCommand):
    help = "Load the starter candle catalog (existing products with the same name are left alone)"

    def handle(self, *args, **options):
        created_count = 0
        for candle in STARTER_CANDLES:
            _, created = Product.objects.get_or_create(name=candle["name"], defaults=candle)
            if created:
                created_count += 1
        self.stdout.write(self.style.SUCCESS(f"Seeded {created_count} new products"))
