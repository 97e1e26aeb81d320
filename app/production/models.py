"""
Workshop production models.

The back-office keeps a small catalog of made-to-order pieces, the
customers who order them, and one production task per paid order.

Models:
    Item: Catalog entry (title, category, price)
    Customer: Back-office customer record keyed by email
    ProductionTask: Workshop job opened when an order is paid

Related files:
    - services.py: Collaborator implementations used by the payments app
"""

from django.db import models

from core.models import BaseModel


class Item(BaseModel):
    """A made-to-order piece that can be purchased."""

    title = models.CharField(
        max_length=255,
        help_text="Display title (e.g. 'Linen Kaftan')",
    )
    category = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Garment category; some categories have their own installment plan",
    )
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Unit price in major currency units",
    )

    class Meta:
        ordering = ["title"]
        verbose_name = "Item"
        verbose_name_plural = "Items"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gte=0),
                name="item_price_non_negative",
            ),
        ]

    def __str__(self):
        return self.title


class Customer(BaseModel):
    """A back-office customer, matched to platform users by email."""

    name = models.CharField(max_length=255, blank=True, default="")
    email = models.EmailField(unique=True, max_length=254)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Customer"
        verbose_name_plural = "Customers"

    def __str__(self):
        return self.name or self.email


class ProductionTask(BaseModel):
    """
    Workshop job for a paid order.

    Fields:
        source_reference: Settlement reference that opened the task. Unique,
            so a replayed settlement can never open a second task.
        notes: Human summary plus [ref:...] / [parent-transaction:...] tokens
        amount_paid: Running total, increased by later installments
    """

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        IN_PROGRESS = "in_progress", "In Progress"
        COMPLETED = "completed", "Completed"
        DELIVERED = "delivered", "Delivered"

    customer = models.ForeignKey(
        Customer,
        on_delete=models.PROTECT,
        related_name="tasks",
    )
    category = models.CharField(max_length=100)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    amount_paid = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=0,
    )
    due_date = models.DateTimeField(help_text="Promised delivery date")
    deadline = models.DateTimeField(help_text="Internal workshop deadline")
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
    )
    notes = models.TextField(blank=True, default="")
    quantity = models.PositiveIntegerField(default=1)
    delivery_destination = models.TextField(blank=True, default="")
    production_notes = models.TextField(blank=True, default="")
    source_reference = models.CharField(
        max_length=255,
        unique=True,
        help_text="Payment reference that opened this task",
    )

    class Meta:
        ordering = ["deadline"]
        verbose_name = "Production Task"
        verbose_name_plural = "Production Tasks"

    def __str__(self):
        return f"Task {self.pk} ({self.category}) for {self.customer}"
