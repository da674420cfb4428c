from django.contrib import admin
from .models import Product, Review


class ReviewInline(admin.TabularInline):
    model = Review
    extra = 0
    fields = ('user', 'name', 'rating', 'comment', 'created_at')
    readonly_fields = ('user', 'name', 'created_at')


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ('name', 'category', 'price', 'count_in_stock', 'rating', 'num_reviews', 'is_deleted', 'created_at')
    list_filter = ('category', 'is_deleted')
    search_fields = ('name', 'category')
    ordering = ('-created_at',)
    inlines = [ReviewInline]
    actions = ['soft_delete', 'restore']

    fieldsets = (
        ('Product Details', {
            'fields': ('name', 'category', 'image', 'description')
        }),
        ('Pricing & Inventory', {
            'fields': ('price', 'count_in_stock')
        }),
        ('Reviews', {
            'fields': ('rating', 'num_reviews'),
        }),
        ('Status', {
            'fields': ('is_deleted', 'created_at', 'updated_at'),
        }),
    )

    readonly_fields = ('rating', 'num_reviews', 'created_at', 'updated_at')

    def has_delete_permission(self, request, obj=None):
        # Orders reference products; use the soft delete action instead
        return False

    @admin.action(description="Soft delete selected products")
    def soft_delete(self, request, queryset):
        queryset.update(is_deleted=True)

    @admin.action(description="Restore selected products")
    def restore(self, request, queryset):
        queryset.update(is_deleted=False)


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ('id', 'product', 'name', 'rating', 'created_at')
    list_filter = ('rating',)
    search_fields = ('name', 'comment', 'product__name')
    list_select_related = ('product',)
