"""
Catalog models referenced by chat conversations.

Models:
    Product: An item a vendor sells; a conversation about it is a
             product inquiry between a customer and that vendor
    Order: A customer purchase; a conversation about it is order support

Design Decisions:
    - Only the fields chat needs are modelled (name, vendor, order number)
    - Deleting a product or order never deletes conversations; the
      conversation's context reference is nulled instead
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel


class OrderStatus(models.TextChoices):
    """Lifecycle of a customer order."""

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"


class Product(BaseModel):
    """
    A product listed by a vendor.

    Fields:
        name: Display name of the product
        vendor: Vendor user who sells the product (default chat counterpart)
        image: Optional primary image URL
        price: Listed price
    """

    name = models.CharField(
        max_length=200,
        help_text="Display name of the product",
    )

    vendor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="products",
        help_text="Vendor who sells this product",
    )

    image = models.URLField(
        max_length=500,
        blank=True,
        default="",
        help_text="Primary product image URL",
    )

    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=0,
        help_text="Listed price",
    )

    class Meta:
        db_table = "catalog_product"
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.name


class Order(BaseModel):
    """
    A customer order.

    Fields:
        order_number: Human-facing order reference
        customer: User who placed the order
        status: Current order status
    """

    order_number = models.CharField(
        max_length=32,
        unique=True,
        help_text="Human-facing order reference",
    )

    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="orders",
        help_text="Customer who placed the order",
    )

    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
        help_text="Current order status",
    )

    class Meta:
        db_table = "catalog_order"
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.order_number
