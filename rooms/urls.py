from django.urls import path

from . import views

app_name = "rooms"

urlpatterns = [
    path("", views.room_list, name="room_list"),
    path("<str:room>/messages/", views.room_messages, name="room_messages"),
]
