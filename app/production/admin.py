"""
Production admin configuration.
"""

from django.contrib import admin

from production.models import Customer, Item, ProductionTask


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):
    list_display = ["id", "title", "category", "price"]
    list_filter = ["category"]
    search_fields = ["title"]


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ["id", "name", "email", "created_at"]
    search_fields = ["name", "email"]


@admin.register(ProductionTask)
class ProductionTaskAdmin(admin.ModelAdmin):
    """
    Admin configuration for ProductionTask.

    Source reference and paid totals come from settlements and are
    read-only here.
    """

    list_display = [
        "id",
        "customer",
        "category",
        "status",
        "total_amount",
        "amount_paid",
        "due_date",
        "deadline",
    ]
    list_filter = ["status", "category", "deadline"]
    search_fields = ["customer__email", "source_reference", "notes"]
    readonly_fields = ["source_reference", "amount_paid", "created_at", "updated_at"]
    ordering = ["deadline"]
