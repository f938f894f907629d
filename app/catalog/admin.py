"""
Django admin configuration for catalog models.
"""

from django.contrib import admin

from catalog.models import Order, Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ["id", "name", "vendor", "price", "created_at"]
    search_fields = ["name"]
    raw_id_fields = ["vendor"]


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ["id", "order_number", "customer", "status", "created_at"]
    list_filter = ["status"]
    search_fields = ["order_number"]
    raw_id_fields = ["customer"]
