# candleshop/middleware.py
from django.conf import settings
from django.utils.cache import add_never_cache_headers


class NoStoreApiMiddleware:
    """Marks private API responses (orders, payments, accounts) as uncacheable"""

    def __init__(self, get_response):
        self.get_response = get_response
        self.prefixes = tuple(settings.NO_STORE_PATH_PREFIXES)

    def __call__(self, request):
        response = self.get_response(request)

        if request.path.startswith(self.prefixes):
            add_never_cache_headers(response)
            response['Pragma'] = 'no-cache'

        return response
