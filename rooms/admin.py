from django.contrib import admin

from .models import Message, Room


@admin.register(Room)
class RoomAdmin(admin.ModelAdmin):
    list_display = ("name", "created_at")
    search_fields = ("name",)


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ("room", "display_name", "text", "pinned", "created_at")
    list_filter = ("room", "pinned")
    search_fields = ("text", "display_name")
    readonly_fields = ("id", "created_at")
