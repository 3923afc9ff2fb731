import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="InventoryItem",
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
                ("sku", models.CharField(max_length=64, unique=True)),
                ("name", models.CharField(max_length=255, db_index=True)),
                ("description", models.TextField(blank=True, default="")),
                (
                    "quantity",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="On-hand units (ledger-managed after creation)",
                    ),
                ),
                (
                    "weight",
                    models.DecimalField(
                        max_digits=10,
                        decimal_places=3,
                        default=Decimal("0.000"),
                        help_text="Weight in grams (per unit)",
                    ),
                ),
                (
                    "gold_purity",
                    models.DecimalField(
                        max_digits=6,
                        decimal_places=3,
                        null=True,
                        blank=True,
                        help_text="Karat, e.g. 18.000",
                    ),
                ),
                (
                    "unit_price",
                    models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True),
                ),
                (
                    "cost_price",
                    models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True),
                ),
                ("minimum_stock", models.PositiveIntegerField(default=0)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["name"],
                "indexes": [
                    models.Index(fields=["is_active", "quantity"], name="inventory_i_is_acti_5b1f0c_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(quantity__gte=0),
                        name="chk_inventoryitem_quantity_gte_zero",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="InventoryMovement",
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
                (
                    "movement_type",
                    models.CharField(
                        max_length=16,
                        choices=[
                            ("sale", "Sale"),
                            ("return", "Return"),
                            ("adjustment", "Adjustment"),
                        ],
                    ),
                ),
                (
                    "quantity",
                    models.IntegerField(help_text="Signed delta applied to the item"),
                ),
                (
                    "reference_type",
                    models.CharField(
                        max_length=32,
                        blank=True,
                        default="",
                        choices=[
                            ("invoice", "Invoice"),
                            ("invoice_cancellation", "Invoice Cancellation"),
                            ("manual_adjustment", "Manual Adjustment"),
                        ],
                    ),
                ),
                (
                    "reference_id",
                    models.CharField(max_length=64, blank=True, default="", db_index=True),
                ),
                ("notes", models.TextField(blank=True, default="")),
                (
                    "created_at",
                    models.DateTimeField(default=django.utils.timezone.now, db_index=True),
                ),
                (
                    "inventory_item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="movements",
                        to="inventory.inventoryitem",
                    ),
                ),
                (
                    "performed_by",
                    models.ForeignKey(
                        null=True,
                        blank=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="inventory_movements",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["inventory_item", "created_at"], name="inventory_i_invento_8c2d4e_idx"),
                    models.Index(fields=["reference_type", "reference_id"], name="inventory_i_referen_3a7f91_idx"),
                    models.Index(fields=["movement_type"], name="inventory_i_movemen_d41e27_idx"),
                ],
            },
        ),
    ]
