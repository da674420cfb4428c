# accounts/decorators.py
from functools import wraps

from django.http import JsonResponse


def api_login_required(view_func):
    """JSON 401 instead of the login redirect used by django.contrib.auth"""
    @wraps(view_func)
    def decorated(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({"success": False, "error": "Not authorized, please log in"}, status=401)
        return view_func(request, *args, **kwargs)
    return decorated


def api_admin_required(view_func):
    @wraps(view_func)
    def decorated(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({"success": False, "error": "Not authorized, please log in"}, status=401)
        if not request.user.is_staff:
            return JsonResponse({"success": False, "error": "Not authorized as an admin"}, status=403)
        return view_func(request, *args, **kwargs)
    return decorated
