import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("customers", "0001_initial"),
        ("inventory", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Invoice",
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
                ("invoice_number", models.CharField(max_length=32, unique=True)),
                ("issue_date", models.DateField()),
                ("due_date", models.DateField()),
                (
                    "status",
                    models.CharField(
                        max_length=16,
                        choices=[
                            ("draft", "Draft"),
                            ("issued", "Issued"),
                            ("paid", "Paid"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="draft",
                    ),
                ),
                (
                    "gold_price_per_gram",
                    models.DecimalField(max_digits=12, decimal_places=4, default=Decimal("0.0000")),
                ),
                (
                    "labor_percentage",
                    models.DecimalField(max_digits=7, decimal_places=3, default=Decimal("0.000")),
                ),
                (
                    "profit_percentage",
                    models.DecimalField(max_digits=7, decimal_places=3, default=Decimal("0.000")),
                ),
                (
                    "tax_percentage",
                    models.DecimalField(max_digits=7, decimal_places=3, default=Decimal("0.000")),
                ),
                (
                    "subtotal",
                    models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00")),
                ),
                (
                    "discount_amount",
                    models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00")),
                ),
                (
                    "tax_amount",
                    models.DecimalField(
                        max_digits=12,
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Tax embedded in line prices (sum of line tax).",
                    ),
                ),
                (
                    "total_amount",
                    models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00")),
                ),
                ("notes", models.TextField(blank=True, default="")),
                ("internal_notes", models.TextField(blank=True, default="")),
                ("inventory_reserved", models.BooleanField(default=False)),
                ("issued_at", models.DateTimeField(null=True, blank=True)),
                ("paid_at", models.DateTimeField(null=True, blank=True)),
                ("cancelled_at", models.DateTimeField(null=True, blank=True)),
                ("cancellation_reason", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="invoices",
                        to="customers.customer",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        null=True,
                        blank=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="invoices_created",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status"], name="invoices_in_status_7c41a2_idx"),
                    models.Index(fields=["issue_date"], name="invoices_in_issue_d_52be0f_idx"),
                    models.Index(fields=["customer", "issue_date"], name="invoices_in_custome_e93c17_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(discount_amount__gte=0),
                        name="chk_invoice_discount_gte_zero",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="InvoiceItem",
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
                ("name", models.CharField(max_length=255)),
                ("sku", models.CharField(max_length=64, blank=True, default="")),
                ("quantity", models.PositiveIntegerField()),
                (
                    "weight",
                    models.DecimalField(max_digits=10, decimal_places=3, null=True, blank=True),
                ),
                (
                    "gold_purity",
                    models.DecimalField(max_digits=6, decimal_places=3, null=True, blank=True),
                ),
                (
                    "pricing_mode",
                    models.CharField(
                        max_length=16,
                        choices=[
                            ("dynamic", "Dynamic (gold formula)"),
                            ("static", "Static (stored unit price)"),
                        ],
                    ),
                ),
                (
                    "base_gold_cost",
                    models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00")),
                ),
                (
                    "labor_cost",
                    models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00")),
                ),
                (
                    "profit_amount",
                    models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00")),
                ),
                (
                    "tax_amount",
                    models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00")),
                ),
                ("unit_price", models.DecimalField(max_digits=12, decimal_places=2)),
                ("total_price", models.DecimalField(max_digits=12, decimal_places=2)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "invoice",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="invoices.invoice",
                    ),
                ),
                (
                    "inventory_item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="invoice_items",
                        to="inventory.inventoryitem",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(fields=["invoice", "inventory_item"], name="invoices_in_invoice_0b6d3e_idx"),
                ],
            },
        ),
    ]
