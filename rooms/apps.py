from django.apps import AppConfig


class RoomsConfig(AppConfig):
    """App configuration for the realtime rooms app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "rooms"
    verbose_name = "Rooms"
