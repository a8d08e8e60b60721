"""
WSGI config for the studyroom project.

HTTP only; WebSocket rooms need the ASGI application.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "studyroom.settings")

application = get_wsgi_application()
