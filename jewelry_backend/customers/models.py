# customers/models.py

import uuid

from django.db import models


class Customer(models.Model):
    """
    Customer directory entry.

    Owned by the CRM side of the platform; kept here so invoices have a
    real foreign key to point at.
    """

    LANGUAGE_EN = "en"
    LANGUAGE_FA = "fa"

    LANGUAGE_CHOICES = [
        (LANGUAGE_EN, "English"),
        (LANGUAGE_FA, "Persian"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=255, db_index=True)
    email = models.EmailField(blank=True, default="")
    phone = models.CharField(max_length=32, blank=True, default="")
    preferred_language = models.CharField(
        max_length=8, choices=LANGUAGE_CHOICES, default=LANGUAGE_EN
    )

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name
