import uuid

from django.db import models


class Room(models.Model):
    """A named room. Joins do not check that a row exists."""

    name = models.CharField(max_length=100, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Message(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    room = models.CharField(max_length=100, db_index=True)
    display_name = models.CharField(max_length=100, blank=True, default="")
    text = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    # label -> count
    reactions = models.JSONField(default=dict, blank=True)
    pinned = models.BooleanField(default=False)

    class Meta:
        indexes = [models.Index(fields=["room", "created_at"], name="rooms_msg_room_created_idx")]

    def __str__(self) -> str:
        return f"{self.display_name}@{self.room}: {self.text[:40]}"
