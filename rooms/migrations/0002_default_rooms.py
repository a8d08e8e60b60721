from django.db import migrations

DEFAULT_ROOMS = ("general", "math", "physics")


def create_default_rooms(apps, schema_editor):
    Room = apps.get_model("rooms", "Room")
    if Room.objects.exists():
        return
    Room.objects.bulk_create([Room(name=name) for name in DEFAULT_ROOMS])


def remove_default_rooms(apps, schema_editor):
    Room = apps.get_model("rooms", "Room")
    Room.objects.filter(name__in=DEFAULT_ROOMS).delete()


class Migration(migrations.Migration):

    dependencies = [
        ("rooms", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(create_default_rooms, remove_default_rooms),
    ]
