# accounts/models.py
from django.conf import settings
from django.db import models


class Profile(models.Model):
    """Storefront details kept alongside django.contrib.auth's User"""

    user = models.OneToOneField(settings.AUTH_USER_MODEL, related_name="profile", on_delete=models.CASCADE)
    phone_number = models.CharField(max_length=20, blank=True)
    profile_image = models.CharField(max_length=500, blank=True)
    # [{"address": ..., "city": ..., "postal_code": ..., "country": ...}, ...]
    addresses = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Profile for {self.user.email}"
