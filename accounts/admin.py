from django.contrib import admin
from .models import Profile


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "phone_number", "created_at")
    search_fields = ("user__email", "user__first_name", "phone_number")
    readonly_fields = ("created_at", "updated_at")
    list_select_related = ("user",)
