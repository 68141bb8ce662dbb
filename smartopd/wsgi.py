"""
WSGI config for the SmartOPD project.

It exposes the WSGI callable as a module-level variable named ``application``.
WebSocket routes are only served by the ASGI entrypoint in ``smartopd.asgi``.
"""
import os

from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'smartopd.settings')

application = get_wsgi_application()
