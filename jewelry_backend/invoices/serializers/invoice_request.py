# invoices/serializers/invoice_request.py

"""
INVOICE REQUEST SERIALIZERS (COMMAND INPUT ONLY)

These serializers do NOT touch the database.
They only validate the shape of a create / update request and turn it into
typed request objects (invoices.services.requests).

Existence checks (customer, inventory items), invoice-level pricing sanity and
uniqueness live in the orchestrator.

Error keys are flattened to dotted paths: items.0.quantity, gold_pricing.tax_percentage.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal

from rest_framework import serializers
from rest_framework.settings import api_settings

from invoices.models import Invoice
from invoices.services.requests import GoldPricing, InvoiceLineRequest, InvoiceRequest

ITEMS_REQUIRED = "At least one item is required"
QUANTITY_POSITIVE = "Quantity must be greater than zero"


def flatten_errors(errors, prefix: str = "") -> dict[str, str]:
    """
    DRF nested errors -> {"items.0.quantity": "message"} (first message per field).
    """
    out: dict[str, str] = {}

    if isinstance(errors, Mapping):
        for key, value in errors.items():
            if key == api_settings.NON_FIELD_ERRORS_KEY and prefix:
                path = prefix
            elif prefix:
                path = f"{prefix}.{key}"
            else:
                path = str(key)
            out.update(flatten_errors(value, path))
        return out

    if isinstance(errors, (list, tuple)):
        if errors and all(not isinstance(e, (Mapping, list, tuple)) for e in errors):
            out[prefix or api_settings.NON_FIELD_ERRORS_KEY] = str(errors[0])
            return out
        for index, value in enumerate(errors):
            out.update(flatten_errors(value, f"{prefix}.{index}" if prefix else str(index)))
        return out

    out[prefix or api_settings.NON_FIELD_ERRORS_KEY] = str(errors)
    return out


class GoldPricingSerializer(serializers.Serializer):
    # Sign / range checks are done on the resolved rates (key "gold_pricing").
    gold_price_per_gram = serializers.DecimalField(
        max_digits=12, decimal_places=4, required=False, allow_null=True
    )
    labor_percentage = serializers.DecimalField(
        max_digits=7, decimal_places=3, required=False, allow_null=True
    )
    profit_percentage = serializers.DecimalField(
        max_digits=7, decimal_places=3, required=False, allow_null=True
    )
    tax_percentage = serializers.DecimalField(
        max_digits=7, decimal_places=3, required=False, allow_null=True
    )


class InvoiceLineSerializer(serializers.Serializer):
    inventory_item_id = serializers.UUIDField()
    quantity = serializers.IntegerField(
        min_value=1,
        error_messages={"min_value": QUANTITY_POSITIVE},
    )
    weight = serializers.DecimalField(
        max_digits=10,
        decimal_places=3,
        required=False,
        allow_null=True,
        min_value=Decimal("0"),
    )
    name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    unit_price = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        required=False,
        allow_null=True,
        min_value=Decimal("0"),
    )
    gold_purity = serializers.DecimalField(
        max_digits=6, decimal_places=3, required=False, allow_null=True
    )


class InvoiceRequestSerializer(serializers.Serializer):
    customer_id = serializers.UUIDField(
        error_messages={"required": "Valid customer is required"},
    )
    items = InvoiceLineSerializer(
        many=True,
        allow_empty=False,
        error_messages={"required": ITEMS_REQUIRED, "empty": ITEMS_REQUIRED},
    )
    issue_date = serializers.DateField(required=False, allow_null=True)
    due_date = serializers.DateField(required=False, allow_null=True)
    invoice_number = serializers.CharField(required=False, max_length=32)
    status = serializers.ChoiceField(
        choices=[Invoice.STATUS_DRAFT, Invoice.STATUS_ISSUED],
        required=False,
    )
    discount_amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        required=False,
        min_value=Decimal("0"),
    )
    notes = serializers.CharField(required=False, allow_blank=True)
    internal_notes = serializers.CharField(required=False, allow_blank=True)
    gold_pricing = GoldPricingSerializer(required=False, allow_null=True)

    def validate(self, attrs):
        issue_date = attrs.get("issue_date")
        due_date = attrs.get("due_date")
        if issue_date and due_date and due_date < issue_date:
            raise serializers.ValidationError({"due_date": "Due date cannot be before issue date"})
        return attrs


class InvoiceUpdateSerializer(InvoiceRequestSerializer):
    """
    Update request: every top-level field is optional (omitted = keep).
    Supplied lines are still validated in full.
    """

    customer_id = serializers.UUIDField(required=False)
    items = InvoiceLineSerializer(
        many=True,
        required=False,
        allow_empty=False,
        error_messages={"empty": ITEMS_REQUIRED},
    )
    status = None


def to_request(validated: Mapping) -> InvoiceRequest:
    items = validated.get("items")
    pricing = validated.get("gold_pricing")

    return InvoiceRequest(
        customer_id=validated.get("customer_id"),
        items=(
            tuple(
                InvoiceLineRequest(
                    inventory_item_id=line["inventory_item_id"],
                    quantity=line["quantity"],
                    weight=line.get("weight"),
                    name=(line.get("name") or None),
                    unit_price=line.get("unit_price"),
                    gold_purity=line.get("gold_purity"),
                )
                for line in items
            )
            if items is not None
            else None
        ),
        issue_date=validated.get("issue_date"),
        due_date=validated.get("due_date"),
        invoice_number=validated.get("invoice_number"),
        status=validated.get("status"),
        discount_amount=validated.get("discount_amount"),
        notes=validated.get("notes"),
        internal_notes=validated.get("internal_notes"),
        gold_pricing=GoldPricing(**pricing) if pricing is not None else None,
    )


def parse_invoice_request(data, *, partial: bool = False) -> tuple[dict[str, str], InvoiceRequest | None]:
    """
    Validate raw request data.
    Returns (errors, request); request is None whenever errors is non-empty.
    """
    serializer_cls = InvoiceUpdateSerializer if partial else InvoiceRequestSerializer
    serializer = serializer_cls(data=data)
    if not serializer.is_valid():
        return flatten_errors(serializer.errors), None
    return {}, to_request(serializer.validated_data)
