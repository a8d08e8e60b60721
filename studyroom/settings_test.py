"""Settings for the test suite: debug on, in-memory channel layer, no API key."""

import os

os.environ.setdefault("DJANGO_DEBUG", "1")
os.environ.pop("REDIS_URL", None)
os.environ.pop("AUTH_API_KEY", None)

from studyroom.settings import *  # noqa: E402,F401,F403

CHANNEL_LAYERS = {"default": {"BACKEND": "channels.layers.InMemoryChannelLayer"}}
AUTH_API_KEY = None
SECURE_SSL_REDIRECT = False
