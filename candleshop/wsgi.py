"""
WSGI config for candleshop project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'candleshop.settings')

application = get_wsgi_application()
