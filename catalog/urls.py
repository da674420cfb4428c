from django.urls import path
from . import views

urlpatterns = [
    path("", views.product_list, name="product_list"),
    path("categories/", views.product_categories, name="product_categories"),
    path("history/", views.product_history, name="product_history"),
    path("<int:product_id>/", views.product_detail, name="product_detail"),
    path("<int:product_id>/reviews/", views.product_reviews, name="product_reviews"),
]
