"""
URL configuration for the studyroom project.

HTTP is only used for health and historical reads; live chat is on /ws/rooms/.
"""
from django.contrib import admin
from django.urls import include, path

from .health import health

urlpatterns = [
    path("admin/", admin.site.urls),
    path("health/", health),
    path("rooms/", include("rooms.urls")),
]
