import uuid

from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Customer",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        primary_key=True,
                        default=uuid.uuid4,
                        editable=False,
                        serialize=False,
                    ),
                ),
                ("name", models.CharField(max_length=255, db_index=True)),
                ("email", models.EmailField(max_length=254, blank=True, default="")),
                ("phone", models.CharField(max_length=32, blank=True, default="")),
                (
                    "preferred_language",
                    models.CharField(
                        max_length=8,
                        choices=[("en", "English"), ("fa", "Persian")],
                        default="en",
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["name"],
            },
        ),
    ]
