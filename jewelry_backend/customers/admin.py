# customers/admin.py

from django.contrib import admin

from customers.models import Customer


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("name", "email", "phone", "preferred_language", "is_active")
    search_fields = ("name", "email", "phone")
    list_filter = ("is_active", "preferred_language")
